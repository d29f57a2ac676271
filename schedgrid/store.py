"""
SQLAlchemy-backed storage for the grid, with a push feed.

Every committed write re-reads the booking set and hands the full snapshot
to each subscriber, in commit order. Subscribers are plain callables.
"""
import logging
import uuid
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from schedgrid import grid
from schedgrid.errors import Conflict, GridError, WriteFailed
from schedgrid.models import (
    AvailabilityRow,
    BookingRequestRow,
    BookingRow,
    DaySlotsRow,
    ResourceRow,
)
from schedgrid.schemas import Booking, BookingRequest, HistoryEntry, Resource

logger = logging.getLogger(__name__)

_BOOKING_FIELDS = (
    "date", "time_index", "start_column", "span", "customer_name", "number_of_people",
    "status", "assigned", "phone", "email", "notes", "booking_source",
    "female_pilots_required", "created_by", "history",
)


def booking_from_row(row):
    return Booking.model_validate({"id": row.id, **{f: getattr(row, f) for f in _BOOKING_FIELDS}})


def _column_value(field, value):
    if field == "assigned":
        return list(value)
    if field == "history":
        return [
            (e if isinstance(e, HistoryEntry) else HistoryEntry.model_validate(e)).model_dump(mode="json")
            for e in value
        ]
    return value


_PLACEMENT_FIELDS = frozenset({"date", "time_index", "start_column", "span", "status"})


def _guard_overlap(db, booking):
    """Re-check the span against committed rows inside the write transaction."""
    if not booking.is_active:
        return
    rows = (
        db.query(BookingRow)
        .filter(
            BookingRow.date == booking.date,
            BookingRow.time_index == booking.time_index,
            BookingRow.id != booking.id,
            BookingRow.status != "deleted",
        )
        .all()
    )
    clashing = grid.overlapping(
        [booking_from_row(r) for r in rows], booking.time_index, booking.start_column, booking.span
    )
    if clashing:
        logger.warning("write of %s refused, overlaps %s", booking.id, ", ".join(clashing))
        raise Conflict(clashing)


def resource_from_row(row):
    return Resource(
        id=row.id,
        label=row.label,
        capabilities=frozenset(row.capabilities or ()),
        priority=row.priority,
    )


def request_from_row(row):
    return BookingRequest.model_validate({
        "id": row.id,
        "date": row.date,
        "time_index": row.time_index,
        "customer_name": row.customer_name,
        "email": row.email,
        "phone": row.phone,
        "number_of_people": row.number_of_people,
        "notes": row.notes,
        "status": row.status,
    })


class BookingStore:
    def __init__(self, session_factory):
        self._session_factory = session_factory
        self._listeners = []

    # -- feed --

    def subscribe(self, listener):
        """Register for full booking snapshots. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _publish(self):
        if not self._listeners:
            return
        snapshot = self.bookings()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("booking feed subscriber failed")

    # -- reads --

    def bookings(self, day=None):
        db = self._session_factory()
        try:
            q = db.query(BookingRow)
            if day is not None:
                q = q.filter(BookingRow.date == day)
            return [booking_from_row(r) for r in q.order_by(BookingRow.id).all()]
        finally:
            db.close()

    def get(self, booking_id):
        db = self._session_factory()
        try:
            row = db.get(BookingRow, booking_id)
            return booking_from_row(row) if row else None
        finally:
            db.close()

    def resources(self):
        db = self._session_factory()
        try:
            return [resource_from_row(r) for r in db.query(ResourceRow).order_by(ResourceRow.id).all()]
        finally:
            db.close()

    def availability(self, day):
        """{resource_id: {time_index, ...}} for one day."""
        db = self._session_factory()
        try:
            result = {}
            for row in db.query(AvailabilityRow).filter(AvailabilityRow.date == day).all():
                result.setdefault(row.resource_id, set()).add(row.time_index)
            return result
        finally:
            db.close()

    def day_slots(self, day):
        """(overrides, additional) for one day; overrides keyed by base row index."""
        db = self._session_factory()
        try:
            row = db.get(DaySlotsRow, day)
            if row is None:
                return {}, []
            return {int(k): v for k, v in (row.overrides or {}).items()}, list(row.additional or [])
        finally:
            db.close()

    def get_request(self, request_id):
        db = self._session_factory()
        try:
            row = db.get(BookingRequestRow, request_id)
            return request_from_row(row) if row else None
        finally:
            db.close()

    # -- writes --

    def _write(self, operation, fn):
        db = self._session_factory()
        try:
            result = fn(db)
            db.commit()
        except GridError:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("%s failed: %s", operation, e)
            raise WriteFailed(operation, e) from e
        finally:
            db.close()
        self._publish()
        return result

    def create(self, booking):
        def op(db):
            _guard_overlap(db, booking)
            row = BookingRow(id=booking.id)
            for f in _BOOKING_FIELDS:
                setattr(row, f, _column_value(f, getattr(booking, f)))
            db.add(row)
            db.flush()
            return booking.id
        return self._write("create", op)

    def update(self, booking_id, fields):
        def op(db):
            row = db.get(BookingRow, booking_id)
            if row is None:
                raise WriteFailed("update", f"booking {booking_id} does not exist")
            for f, value in fields.items():
                if f not in _BOOKING_FIELDS:
                    raise WriteFailed("update", f"unknown field {f}")
                setattr(row, f, _column_value(f, value))
            if _PLACEMENT_FIELDS.intersection(fields):
                _guard_overlap(db, booking_from_row(row))
            return booking_id
        return self._write("update", op)

    def delete(self, booking_id):
        """Hard delete. The grid itself only ever soft-deletes via status."""
        def op(db):
            row = db.get(BookingRow, booking_id)
            if row is None:
                raise WriteFailed("delete", f"booking {booking_id} does not exist")
            db.delete(row)
            return booking_id
        return self._write("delete", op)

    def set_priorities(self, priorities):
        def op(db):
            for rid, priority in priorities.items():
                row = db.get(ResourceRow, rid)
                if row is None:
                    raise WriteFailed("set_priorities", f"resource {rid} does not exist")
                row.priority = priority
        return self._write("set_priorities", op)

    def set_day_slots(self, day, overrides=None, additional=None):
        def op(db):
            row = db.get(DaySlotsRow, day)
            if row is None:
                row = DaySlotsRow(date=day, overrides={}, additional=[])
                db.add(row)
            if overrides is not None:
                row.overrides = {str(k): v for k, v in overrides.items()}
            if additional is not None:
                row.additional = list(additional)
        return self._write("set_day_slots", op)

    def create_request(self, request_fields):
        request_id = request_fields.get("id") or f"rq-{uuid.uuid4().hex[:12]}"

        def op(db):
            fields = {k: v for k, v in request_fields.items() if k != "id"}
            db.add(BookingRequestRow(id=request_id, created_at=datetime.utcnow(), **fields))
            return request_id
        return self._write("create_request", op)

    def update_request(self, request_id, status):
        def op(db):
            row = db.get(BookingRequestRow, request_id)
            if row is None:
                raise WriteFailed("update_request", f"request {request_id} does not exist")
            row.status = status
        return self._write("update_request", op)
