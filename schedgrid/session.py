"""
Client-side grid session.

Owns the working booking set for one day and wires the pieces together:
the store feed goes through the edit lock, UI callbacks validate through
the placement model, apply optimistically, then write. A failed write rolls
the working set back to the last snapshot the feed delivered.
"""
import logging
import uuid
from datetime import datetime, time, timedelta, timezone

from schedgrid import availability, grid, ranking, timeslots
from schedgrid.config import Config
from schedgrid.edit_lock import EditLockQueue
from schedgrid.errors import (
    AssignmentRejected,
    BookingNotFound,
    Conflict,
    GridError,
    InvalidSpan,
    OutOfBounds,
    StaleWrite,
    WriteFailed,
)
from schedgrid.gestures import LongPressGesture
from schedgrid.schemas import ActionResult, Booking

logger = logging.getLogger(__name__)

MOVE_TOKEN = "move"


_ERROR_CODES = (
    (Conflict, "conflict"),
    (OutOfBounds, "out_of_bounds"),
    (InvalidSpan, "invalid_span"),
    (BookingNotFound, "not_found"),
    (WriteFailed, "write_failed"),
)


def _failure(error):
    code = next((c for cls, c in _ERROR_CODES if isinstance(error, cls)), "rejected")
    return ActionResult(
        ok=False,
        error=code,
        message=str(error),
        conflicting_ids=list(getattr(error, "conflicting_ids", ())),
    )


def _refused(code, message):
    return ActionResult(ok=False, error=code, message=message)


class GridSession:
    def __init__(self, store, capabilities, actor, day, now=None):
        self.store = store
        self.capabilities = capabilities
        self.actor = actor
        self.day = day
        self._now = now or (lambda: datetime.now(timezone.utc))

        self.bookings = tuple(store.bookings())
        self._known_good = self.bookings
        self._snapshot_seq = 0
        self.stale_writes = 0
        self.notices = []
        self.context_menu = None
        self.move_target = None

        self.resources = store.resources()
        self.availability = store.availability(day)
        overrides, additional = store.day_slots(day)
        self.rows = timeslots.time_rows(day, overrides, additional)
        self._memo = ranking.RankingMemo()

        self.lock = EditLockQueue(self._apply_snapshot)
        self._unsubscribe = store.subscribe(self.lock.offer)

    def close(self):
        self._unsubscribe()

    # -- feed --

    def _apply_snapshot(self, snapshot):
        self.bookings = tuple(snapshot)
        self._known_good = self.bookings
        self._snapshot_seq += 1

    # -- derived views --

    @property
    def column_count(self):
        return max(1, len(self.resources))

    def day_bookings(self):
        return [b for b in self.bookings if b.date == self.day]

    def ranked_columns(self):
        metrics = ranking.compute_metrics(self.resources, self.bookings, self.availability, self.day)
        return self._memo.rank(self.resources, metrics)

    def grid_width(self):
        return availability.columns_needed(
            self.resources, [r.index for r in self.rows], self.bookings, self.availability, self.day
        )

    def evaluate_row(self, time_index, requested, capacity_per_column=None):
        if capacity_per_column is None:
            capacity_per_column = Config.DEFAULT_COLUMN_CAPACITY
        return availability.evaluate(
            time_index, requested, capacity_per_column,
            bookings=self.bookings, column_count=self.column_count, day=self.day,
        )

    def has_row(self, time_index):
        return any(r.index == time_index for r in self.rows)

    def _unknown_row(self, time_index):
        return _refused("out_of_bounds", f"no time row {time_index} on {self.day}")

    def can_edit_day(self):
        if self.capabilities.is_admin:
            return True
        day_end = datetime.combine(self.day, time.max, tzinfo=timezone.utc)
        return self._now() - day_end <= timedelta(hours=Config.NON_ADMIN_EDIT_WINDOW_HOURS)

    # -- edit sessions --

    def begin_edit(self, token="edit"):
        self.lock.begin(token)

    def end_edit(self, token="edit"):
        self.lock.end(token)

    # -- mutations --

    def _mutate(self, change, write):
        try:
            mutation = change(self.bookings)
        except GridError as e:
            return _failure(e)
        if mutation.entry is None:
            return ActionResult(ok=True, booking=mutation.booking)

        self.bookings = mutation.bookings
        seq = self._snapshot_seq
        try:
            write(mutation.booking)
        except (WriteFailed, Conflict) as e:
            logger.error("write for booking %s failed, rolling back: %s", mutation.booking.id, e)
            self.bookings = self._known_good
            self.notices.append(str(e))
            return _failure(e)

        if self._snapshot_seq != seq:
            confirmed = next((b for b in self.bookings if b.id == mutation.booking.id), None)
            if confirmed != mutation.booking:
                # the feed got there first; its version wins, nothing is merged
                self.stale_writes += 1
                logger.info("%s", StaleWrite(f"booking {mutation.booking.id} superseded by feed, keeping feed version"))
        return ActionResult(ok=True, booking=mutation.booking)

    def _update_fields(self, *fields):
        def write(booking):
            self.store.update(booking.id, {f: getattr(booking, f) for f in fields})
        return write

    def place_booking(self, time_index, start_column, span=1, **fields):
        if not self.can_edit_day():
            return _refused("forbidden", "day is closed for editing")
        if not self.has_row(time_index):
            return self._unknown_row(time_index)
        draft = Booking(
            id=fields.pop("id", None) or f"bk-{uuid.uuid4().hex[:12]}",
            date=self.day,
            time_index=time_index,
            start_column=start_column,
            span=span,
            **fields,
        )
        return self._mutate(
            lambda bookings: grid.place(bookings, draft, self.column_count, self.actor, self._now()),
            self.store.create,
        )

    def move_booking(self, booking_id, time_index, start_column):
        if not self.capabilities.can_drag_bookings:
            return _refused("forbidden", "not allowed to move bookings")
        if not self.has_row(time_index):
            return self._unknown_row(time_index)
        labels = timeslots.labels(self.rows)
        return self._mutate(
            lambda bookings: grid.move(
                bookings, booking_id, time_index, start_column, self.column_count,
                self.actor, day=self.day, labels=labels, now=self._now(),
            ),
            self._update_fields("date", "time_index", "start_column", "assigned", "history"),
        )

    def change_status(self, booking_id, status):
        return self._mutate(
            lambda bookings: grid.change_status(bookings, booking_id, status, self.actor, self._now()),
            self._update_fields("status", "history"),
        )

    def delete_booking(self, booking_id):
        return self.change_status(booking_id, "deleted")

    def restore_booking(self, booking_id):
        return self._mutate(
            lambda bookings: grid.restore(bookings, booking_id, self.column_count, self.actor, self._now()),
            self._update_fields("status", "history"),
        )

    def assign_resource(self, booking_id, position, resource_id):
        resource = next((r for r in self.resources if r.id == resource_id), None)
        if resource is None:
            return _failure(AssignmentRejected(f"unknown resource {resource_id}"))
        return self._mutate(
            lambda bookings: grid.assign_resource(bookings, booking_id, position, resource, self.actor, self._now()),
            self._update_fields("assigned", "history"),
        )

    def unassign_resource(self, booking_id, position):
        return self._mutate(
            lambda bookings: grid.unassign_resource(bookings, booking_id, position, self.actor, self._now()),
            self._update_fields("assigned", "history"),
        )

    # -- interaction callbacks --

    def open_context_menu(self, x, y, entity_id):
        self.context_menu = (x, y, entity_id)
        return ActionResult(ok=True)

    def enter_move_mode(self, booking_id):
        if not self.capabilities.can_drag_bookings:
            return _refused("forbidden", "not allowed to move bookings")
        if not any(b.id == booking_id and b.is_active for b in self.bookings):
            return _refused("not_found", f"booking {booking_id} not found")
        self.move_target = booking_id
        self.lock.begin(MOVE_TOKEN)
        return ActionResult(ok=True)

    def exit_move_mode(self):
        self.move_target = None
        self.lock.end(MOVE_TOKEN)

    def commit_move(self, time_index, start_column):
        if self.move_target is None:
            return _refused("rejected", "no booking armed for moving")
        try:
            return self.move_booking(self.move_target, time_index, start_column)
        finally:
            self.exit_move_mode()

    def gesture_for(self, booking_id, loop=None, clock=None, haptics=None):
        """Long-press handler for one booking cell, wired to this session's callbacks."""
        kwargs = {"clock": clock} if clock is not None else {}
        return LongPressGesture(
            on_menu=lambda x, y: self.open_context_menu(x, y, booking_id),
            on_move_armed=lambda: self.enter_move_mode(booking_id),
            on_move_ended=self.exit_move_mode,
            move_capable=True,
            privileged=self.capabilities.can_drag_bookings,
            haptics=haptics,
            loop=loop,
            **kwargs,
        )
