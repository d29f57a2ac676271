"""
Capacity and overbooking arithmetic.

Everything here is advisory. Nothing in the placement path consults
`would_overbook`; admins are allowed to overbook knowingly.
"""
from collections.abc import Sequence

from schedgrid.schemas import Evaluation


def _capacities(capacity_per_column, column_count):
    if isinstance(capacity_per_column, Sequence):
        return [max(0, int(c)) for c in capacity_per_column]
    if column_count is None:
        raise ValueError("column_count is required with a uniform capacity")
    return [max(0, int(capacity_per_column))] * column_count


def _row_bookings(bookings, time_index, day):
    return [
        b for b in bookings
        if b.is_active and b.time_index == time_index and (day is None or b.date == day)
    ]


def column_load(bookings, time_index, capacities, day=None):
    """
    Headcount carried by each column at one row.

    A booking's people fill its columns left to right up to each column's
    capacity; whatever is left lands on its last column.
    """
    load = [0] * len(capacities)
    for b in _row_bookings(bookings, time_index, day):
        remaining = b.number_of_people
        cols = [c for c in range(b.start_column, b.end_column + 1) if 0 <= c < len(capacities)]
        for i, col in enumerate(cols):
            take = remaining if i == len(cols) - 1 else min(remaining, max(0, capacities[col] - load[col]))
            load[col] += take
            remaining -= take
    return load


def evaluate(time_index, requested, capacity_per_column, bookings=(), column_count=None, day=None):
    capacities = _capacities(capacity_per_column, column_count)
    load = column_load(bookings, time_index, capacities, day)
    spots = sum(max(0, cap - used) for cap, used in zip(capacities, load))
    return Evaluation(available_spots=spots, would_overbook=requested > spots)


def available_pilot_count(resources, availability, time_index):
    return sum(1 for r in resources if time_index in availability.get(r.id, ()))


def available_spots_for_request(request, bookings, resources, availability):
    """Pilots available at the request's row minus people already booked there."""
    pilots = available_pilot_count(resources, availability, request.time_index)
    booked = sum(
        b.number_of_people or b.span or 1
        for b in _row_bookings(bookings, request.time_index, request.date)
    )
    return max(0, pilots - booked)


def columns_needed(resources, time_indices, bookings, availability, day=None):
    """
    Width of the grid for a day.

    At least one column per resource, widened wherever booked headcount plus
    unavailable resources spills past that, and never fewer than one.
    """
    widest = len(resources)
    for idx in time_indices:
        booked = sum(b.number_of_people or b.span or 1 for b in _row_bookings(bookings, idx, day))
        unavailable = len(resources) - available_pilot_count(resources, availability, idx)
        widest = max(widest, booked + unavailable)
    return max(1, widest)


def _created_at(booking):
    return booking.history[0].timestamp if booking.history else None


def overbooked_positions(bookings, time_index, available_count, day=None):
    """
    {booking_id: number of its positions past the available pilots}.

    Bookings fill positions oldest first, each taking span positions.
    """
    row = _row_bookings(bookings, time_index, day)
    row.sort(key=lambda b: (_created_at(b) is None, _created_at(b) or 0, b.start_column))
    result = {}
    position = 0
    for b in row:
        over = sum(1 for p in range(position, position + b.span) if p >= available_count)
        if over:
            result[b.id] = over
        position += b.span
    return result
