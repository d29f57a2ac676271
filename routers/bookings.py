from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from routers._session import booking_day, grid_session, unwrap
from schedgrid import availability
from schedgrid.deps import get_actor, get_capabilities, get_store
from schedgrid.schemas import BookingStatus

router = APIRouter()

class PlaceBody(BaseModel):
    date: date
    time_index: int
    start_column: int
    span: int = 1
    customer_name: str = ""
    number_of_people: int = Field(default=1, ge=1)
    phone: str = ""
    email: str = ""
    notes: str = ""
    booking_source: str = ""
    female_pilots_required: int = Field(default=0, ge=0)

class MoveBody(BaseModel):
    time_index: int
    start_column: int

class StatusBody(BaseModel):
    status: BookingStatus

class AssignBody(BaseModel):
    position: int
    resource_id: str | None = None

@router.get("")
def get_grid(
    day: date = Query(alias="date"),
    store=Depends(get_store),
    capabilities=Depends(get_capabilities),
    actor=Depends(get_actor),
):
    """
    Everything needed to draw one day:
      - rows: time rows sorted by displayed time (extra slots numbered from 1000)
      - columns: resources in ranked column order
      - bookings: the day's bookings, deleted ones included for the audit list
      - width: columns to draw, widened where a row is overbooked
      - overbooked: per row, {booking_id: positions past the available pilots}
    """
    with grid_session(store, capabilities, actor, day) as session:
        overbooked = {}
        for row in session.rows:
            pilots = availability.available_pilot_count(session.resources, session.availability, row.index)
            over = availability.overbooked_positions(session.bookings, row.index, pilots, day)
            if over:
                overbooked[row.index] = over
        return {
            "date": day.isoformat(),
            "rows": [r.model_dump() for r in session.rows],
            "columns": [
                {"id": r.id, "label": r.label, "capabilities": sorted(r.capabilities), "priority": r.priority}
                for r in session.ranked_columns()
            ],
            "bookings": [b.model_dump(mode="json") for b in session.day_bookings()],
            "width": session.grid_width(),
            "overbooked": overbooked,
        }

@router.post("", status_code=201)
def place_booking(
    body: PlaceBody,
    store=Depends(get_store),
    capabilities=Depends(get_capabilities),
    actor=Depends(get_actor),
):
    """
    Place a booking on the grid. Rejected with 409 if any of its columns is
    taken at that row (the detail lists the bookings in the way), 422 if the
    span leaves the grid. Overbooking is never a reason to reject.
    """
    fields = body.model_dump(exclude={"date", "time_index", "start_column", "span"})
    with grid_session(store, capabilities, actor, body.date) as session:
        return unwrap(session.place_booking(body.time_index, body.start_column, body.span, **fields))

@router.post("/{booking_id}/move")
def move_booking(
    booking_id: str,
    body: MoveBody,
    store=Depends(get_store),
    capabilities=Depends(get_capabilities),
    actor=Depends(get_actor),
):
    day = booking_day(store, booking_id)
    with grid_session(store, capabilities, actor, day) as session:
        return unwrap(session.move_booking(booking_id, body.time_index, body.start_column))

@router.post("/{booking_id}/status")
def change_status(
    booking_id: str,
    body: StatusBody,
    store=Depends(get_store),
    capabilities=Depends(get_capabilities),
    actor=Depends(get_actor),
):
    day = booking_day(store, booking_id)
    with grid_session(store, capabilities, actor, day) as session:
        return unwrap(session.change_status(booking_id, body.status))

@router.post("/{booking_id}/assign")
def assign(
    booking_id: str,
    body: AssignBody,
    store=Depends(get_store),
    capabilities=Depends(get_capabilities),
    actor=Depends(get_actor),
):
    """Put a pilot on one position of the booking, or clear it when resource_id is null."""
    day = booking_day(store, booking_id)
    with grid_session(store, capabilities, actor, day) as session:
        if body.resource_id is None:
            return unwrap(session.unassign_resource(booking_id, body.position))
        return unwrap(session.assign_resource(booking_id, body.position, body.resource_id))

@router.delete("/{booking_id}")
def delete_booking(
    booking_id: str,
    store=Depends(get_store),
    capabilities=Depends(get_capabilities),
    actor=Depends(get_actor),
):
    """Soft delete: the booking keeps its row with status 'deleted' and frees its cells."""
    if not capabilities.is_admin:
        raise HTTPException(status_code=403, detail="Only administrators can delete bookings.")
    day = booking_day(store, booking_id)
    with grid_session(store, capabilities, actor, day) as session:
        return unwrap(session.delete_booking(booking_id))

@router.post("/{booking_id}/restore")
def restore_booking(
    booking_id: str,
    store=Depends(get_store),
    capabilities=Depends(get_capabilities),
    actor=Depends(get_actor),
):
    day = booking_day(store, booking_id)
    with grid_session(store, capabilities, actor, day) as session:
        return unwrap(session.restore_booking(booking_id))
