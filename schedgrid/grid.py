"""
Grid placement model.

A booking with span N occupies columns start..start+N-1 at its time row.
Active (non-deleted) bookings on the same day and row never share a column.
Every mutation here returns a new booking tuple; the input set is never
touched, so callers swap the whole set in one assignment.
"""
import logging
from datetime import datetime, timezone
from typing import NamedTuple

from schedgrid.config import Config
from schedgrid.errors import (
    AssignmentRejected,
    BookingNotFound,
    Conflict,
    InvalidSpan,
    OutOfBounds,
)
from schedgrid.schemas import HistoryAction, HistoryEntry

logger = logging.getLogger(__name__)

FEMALE = "female"


class Placement(NamedTuple):
    ok: bool
    conflicting_ids: tuple = ()
    reason: str | None = None  # None | "out_of_bounds" | "invalid_span" | "conflict"


class Mutation(NamedTuple):
    bookings: tuple
    booking: object
    entry: HistoryEntry | None


def _same_row(b, day, time_index):
    return b.time_index == time_index and (day is None or b.date == day)


def _overlaps(b, start, end):
    return b.start_column <= end and start <= b.end_column


def overlapping(bookings, time_index, start_column, span, day=None, ignore_id=None):
    """Ids of active bookings sharing a cell with the given span."""
    end = start_column + span - 1
    return tuple(
        b.id for b in bookings
        if b.is_active
        and b.id != ignore_id
        and _same_row(b, day, time_index)
        and _overlaps(b, start_column, end)
    )


def can_place(bookings, time_index, start_column, span, column_count, day=None, ignore_id=None):
    """
    Pure check of a proposed span at one time row.

    The booking named by ignore_id is left out, which is how a move validates
    its new span without tripping over its own old cells.
    """
    if not 1 <= span <= Config.MAX_SPAN:
        return Placement(False, (), "invalid_span")
    if start_column < 0 or start_column + span - 1 >= column_count:
        return Placement(False, (), "out_of_bounds")

    conflicting = overlapping(bookings, time_index, start_column, span, day, ignore_id)
    if conflicting:
        return Placement(False, conflicting, "conflict")
    return Placement(True)


def _raise_for(placement, start_column, span, column_count):
    if placement.reason == "invalid_span":
        raise InvalidSpan(span, Config.MAX_SPAN)
    if placement.reason == "out_of_bounds":
        raise OutOfBounds(start_column, span, column_count)
    raise Conflict(placement.conflicting_ids)


def occupancy(bookings, time_index, day=None):
    """Map of column -> booking id for the active bookings at one row."""
    cells = {}
    for b in bookings:
        if b.is_active and _same_row(b, day, time_index):
            for col in range(b.start_column, b.end_column + 1):
                cells[col] = b.id
    return cells


def history_entry(action, actor, detail=None, now=None):
    return HistoryEntry(
        action=action,
        timestamp=now or datetime.now(timezone.utc),
        actor_id=actor.id,
        actor_name=actor.name,
        detail=detail,
    )


def _with_entry(booking, entry, **changes):
    return booking.model_copy(update={**changes, "history": booking.history + (entry,)})


def _swap(bookings, updated):
    return tuple(updated if b.id == updated.id else b for b in bookings)


def find(bookings, booking_id):
    for b in bookings:
        if b.id == booking_id:
            return b
    raise BookingNotFound(booking_id)


def place(bookings, booking, column_count, actor, now=None):
    """Add a new booking; raises Conflict/OutOfBounds/InvalidSpan without touching the set."""
    placement = can_place(
        bookings, booking.time_index, booking.start_column, booking.span,
        column_count, day=booking.date,
    )
    if not placement.ok:
        logger.info("placement of %s rejected: %s", booking.id, placement.reason)
        _raise_for(placement, booking.start_column, booking.span, column_count)

    assigned = tuple(booking.assigned[:booking.span]) + ("",) * (booking.span - len(booking.assigned))
    entry = history_entry(HistoryAction.CREATED, actor, now=now)
    created = _with_entry(booking, entry, assigned=assigned, created_by=booking.created_by or actor.id)
    return Mutation(tuple(bookings) + (created,), created, entry)


def _cell_label(time_index, column, labels):
    row = labels.get(time_index, f"row {time_index}") if labels else f"row {time_index}"
    return f"{row} col {column + 1}"


def move(bookings, booking_id, time_index, start_column, column_count, actor,
         day=None, labels=None, now=None):
    """
    Relocate a booking, span intact.

    The whole new span is validated against everything except the booking
    itself. Assignments are cleared since the resources at the old cell are
    not necessarily free at the new one. Moving onto the same cell is a no-op.
    """
    current = find(bookings, booking_id)
    if not current.is_active:
        logger.info("move of deleted booking %s refused", booking_id)
        raise BookingNotFound(booking_id)
    day = day or current.date
    if (current.time_index, current.start_column, current.date) == (time_index, start_column, day):
        return Mutation(tuple(bookings), current, None)

    placement = can_place(
        bookings, time_index, start_column, current.span, column_count,
        day=day, ignore_id=booking_id,
    )
    if not placement.ok:
        logger.info("move of %s rejected: %s", booking_id, placement.reason)
        _raise_for(placement, start_column, current.span, column_count)

    detail = "from {} to {}".format(
        _cell_label(current.time_index, current.start_column, labels),
        _cell_label(time_index, start_column, labels),
    )
    entry = history_entry(HistoryAction.MOVED, actor, detail, now)
    moved = _with_entry(
        current, entry,
        date=day,
        time_index=time_index,
        start_column=start_column,
        assigned=("",) * current.span,
    )
    return Mutation(_swap(bookings, moved), moved, entry)


def change_status(bookings, booking_id, status, actor, now=None):
    current = find(bookings, booking_id)
    if current.status == status:
        return Mutation(tuple(bookings), current, None)
    if status == "deleted":
        return soft_delete(bookings, booking_id, actor, now)
    entry = history_entry(HistoryAction.STATUS_CHANGED, actor, f"from {current.status} to {status}", now)
    updated = _with_entry(current, entry, status=status)
    return Mutation(_swap(bookings, updated), updated, entry)


def soft_delete(bookings, booking_id, actor, now=None):
    """Deleted bookings stay in the set for audit and stop occupying cells."""
    current = find(bookings, booking_id)
    entry = history_entry(HistoryAction.DELETED, actor, now=now)
    updated = _with_entry(current, entry, status="deleted")
    return Mutation(_swap(bookings, updated), updated, entry)


def restore(bookings, booking_id, column_count, actor, now=None):
    current = find(bookings, booking_id)
    if current.is_active:
        return Mutation(tuple(bookings), current, None)
    placement = can_place(
        bookings, current.time_index, current.start_column, current.span,
        column_count, day=current.date, ignore_id=booking_id,
    )
    if not placement.ok:
        _raise_for(placement, current.start_column, current.span, column_count)
    entry = history_entry(HistoryAction.RESTORED, actor, now=now)
    updated = _with_entry(current, entry, status="unconfirmed")
    return Mutation(_swap(bookings, updated), updated, entry)


def assign_resource(bookings, booking_id, position, resource, actor, now=None):
    """
    Put a resource on one position of a booking.

    The first female_pilots_required positions only take resources with the
    female capability, and a resource can fly one booking per time row.
    """
    current = find(bookings, booking_id)
    if not 0 <= position < current.span:
        raise AssignmentRejected(f"position {position} outside span {current.span}")
    if position < current.female_pilots_required and FEMALE not in resource.capabilities:
        raise AssignmentRejected(f"position {position + 1} requires a female pilot")

    for b in bookings:
        if b.id == booking_id or not b.is_active or not _same_row(b, current.date, current.time_index):
            continue
        if resource.label in b.assigned:
            raise AssignmentRejected(f"{resource.label} already flies booking {b.id}")
    others = [name for i, name in enumerate(current.assigned) if i != position]
    if resource.label in others:
        raise AssignmentRejected(f"{resource.label} already assigned to this booking")

    assigned = list(current.assigned) + [""] * (current.span - len(current.assigned))
    assigned[position] = resource.label
    entry = history_entry(HistoryAction.PILOT_ASSIGNED, actor, resource.label, now)
    updated = _with_entry(current, entry, assigned=tuple(assigned))
    return Mutation(_swap(bookings, updated), updated, entry)


def unassign_resource(bookings, booking_id, position, actor, now=None):
    current = find(bookings, booking_id)
    if not 0 <= position < len(current.assigned) or not current.assigned[position]:
        return Mutation(tuple(bookings), current, None)
    name = current.assigned[position]
    assigned = list(current.assigned)
    assigned[position] = ""
    entry = history_entry(HistoryAction.PILOT_UNASSIGNED, actor, name, now)
    updated = _with_entry(current, entry, assigned=tuple(assigned))
    return Mutation(_swap(bookings, updated), updated, entry)


def check_invariant(bookings):
    """Pairs of active bookings sharing a cell. Empty when the grid is sound."""
    clashes = []
    active = [b for b in bookings if b.is_active]
    for i, a in enumerate(active):
        for b in active[i + 1:]:
            if a.date == b.date and a.time_index == b.time_index and _overlaps(b, a.start_column, a.end_column):
                clashes.append((a.id, b.id))
    return clashes
