from datetime import date, datetime, timedelta, timezone

import pytest

from schedgrid import availability, grid
from schedgrid.schemas import Actor, Booking, BookingRequest, HistoryAction, HistoryEntry, Resource

DAY = date(2025, 7, 14)
T0 = datetime(2025, 7, 1, tzinfo=timezone.utc)


def booking(bid, time_index=0, start=0, span=1, people=1, created_minutes=0, **kw):
    created = HistoryEntry(
        action=HistoryAction.CREATED, timestamp=T0 + timedelta(minutes=created_minutes),
        actor_id="u", actor_name="U",
    )
    return Booking(
        id=bid, date=DAY, time_index=time_index, start_column=start, span=span,
        number_of_people=people, history=(created,), **kw,
    )


def test_overbooking_is_flagged_but_placement_still_allowed():
    result = availability.evaluate(0, 10, 4, column_count=2)
    assert result.available_spots == 8
    assert result.would_overbook is True

    # an admin going ahead anyway is only subject to the cell check
    placed = grid.place((), booking("big", people=10), 2, Actor(id="a", name="A"))
    assert placed.booking.number_of_people == 10


def test_exact_fit_is_not_overbooking():
    result = availability.evaluate(0, 8, [4, 4])
    assert result == availability.evaluate(0, 8, 4, column_count=2)
    assert result.would_overbook is False


def test_existing_bookings_consume_column_capacity():
    bookings = [
        booking("a", start=0, people=3),
        booking("b", start=1, span=2, people=5),  # fills col 1, overflow to col 2
        booking("gone", start=0, people=9, status="deleted"),
        booking("other-row", time_index=1, start=0, people=9),
    ]
    load = availability.column_load(bookings, 0, [4, 4, 4], DAY)
    assert load == [3, 4, 1]

    result = availability.evaluate(0, 4, 4, bookings=bookings, column_count=3, day=DAY)
    assert result.available_spots == 1 + 0 + 3
    assert result.would_overbook is False


def test_uniform_capacity_needs_column_count():
    with pytest.raises(ValueError):
        availability.evaluate(0, 1, 4)


def test_available_spots_for_request():
    resources = [Resource(id=f"p{i}", label=f"P{i}") for i in range(4)]
    avail = {"p0": {2}, "p1": {2}, "p2": {2}, "p3": {1}}
    bookings = [booking("a", time_index=2, people=2)]
    request = BookingRequest(id="r", date=DAY, time_index=2, customer_name="C", number_of_people=3)

    assert availability.available_spots_for_request(request, bookings, resources, avail) == 1

    crowded = bookings + [booking("b", time_index=2, start=1, people=4)]
    assert availability.available_spots_for_request(request, crowded, resources, avail) == 0


def test_columns_needed_grows_with_overbooking():
    resources = [Resource(id="p0", label="P0"), Resource(id="p1", label="P1")]
    avail = {"p0": {0, 1}, "p1": {0}}
    bookings = [booking("a", time_index=1, people=3)]

    # row 1: 3 people + p1 unavailable = 4 columns
    assert availability.columns_needed(resources, [0, 1], bookings, avail, DAY) == 4
    assert availability.columns_needed([], [0], [], {}, DAY) == 1


def test_overbooked_positions_fill_oldest_first():
    bookings = [
        booking("late", start=0, span=2, created_minutes=10),
        booking("early", start=2, span=2, created_minutes=0),
    ]
    # three pilots: early takes positions 0-1, late takes 2-3 and overflows once
    assert availability.overbooked_positions(bookings, 0, 3, DAY) == {"late": 1}
