from fastapi import Header

from schedgrid.db import SessionLocal
from schedgrid.schemas import Actor, Capabilities
from schedgrid.store import BookingStore

_store = BookingStore(SessionLocal)


def capabilities_for(role):
    """Resolve a role into what the grid lets it do. Unknown or missing roles get nothing."""
    if role == "admin":
        return Capabilities(can_manage_availability=True, can_drag_bookings=True, is_admin=True)
    if role == "pilot":
        return Capabilities(can_manage_availability=True)
    return Capabilities()


def get_store():
    return _store


def get_capabilities(x_role: str | None = Header(default=None)):
    return capabilities_for(x_role)


def get_actor(
    x_user_id: str = Header(default="anonymous"),
    x_user_name: str = Header(default="Anonymous"),
):
    return Actor(id=x_user_id, name=x_user_name)
