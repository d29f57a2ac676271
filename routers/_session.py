from contextlib import contextmanager

from fastapi import HTTPException

from schedgrid.session import GridSession

_HTTP_STATUS = {
    "conflict": 409,
    "out_of_bounds": 422,
    "invalid_span": 422,
    "rejected": 422,
    "forbidden": 403,
    "not_found": 404,
    "write_failed": 503,
}


@contextmanager
def grid_session(store, capabilities, actor, day):
    session = GridSession(store, capabilities, actor, day)
    try:
        yield session
    finally:
        session.close()


def booking_day(store, booking_id):
    booking = store.get(booking_id)
    if booking is None:
        raise HTTPException(status_code=404, detail="Booking not found.")
    return booking.date


def unwrap(result):
    if not result.ok:
        raise HTTPException(
            status_code=_HTTP_STATUS.get(result.error, 400),
            detail={
                "error": result.error,
                "message": result.message,
                "conflicting_ids": result.conflicting_ids,
            },
        )
    return result.booking.model_dump(mode="json") if result.booking else {"ok": True}
