from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from routers._session import grid_session, unwrap
from schedgrid import availability, ranking
from schedgrid.config import Config
from schedgrid.deps import get_actor, get_capabilities, get_store
from schedgrid.errors import WriteFailed

router = APIRouter()

class CreateRequestBody(BaseModel):
    date: date
    time_index: int
    customer_name: str
    email: str = ""
    phone: str = ""
    number_of_people: int = Field(default=1, ge=1)
    notes: str = ""

class ApproveBody(BaseModel):
    start_column: int
    span: int = 1
    time_index: int | None = None  # defaults to the requested row

class RequestStatusBody(BaseModel):
    status: str = Field(pattern="^(pending|rejected|waitlist|deleted)$")

def _load(store, request_id):
    req = store.get_request(request_id)
    if req is None:
        raise HTTPException(status_code=404, detail="Booking request not found.")
    return req

def _write(fn, *args):
    try:
        return fn(*args)
    except WriteFailed as e:
        raise HTTPException(status_code=503, detail=str(e))

@router.post("", status_code=201)
def create_request(body: CreateRequestBody, store=Depends(get_store)):
    """A pre-booking intent. It never touches the grid until an admin approves it."""
    request_id = _write(store.create_request, body.model_dump())
    return _load(store, request_id).model_dump(mode="json")

@router.get("/{request_id}/evaluate")
def evaluate_request(
    request_id: str,
    capacity: int = Query(default=Config.DEFAULT_COLUMN_CAPACITY, ge=0),
    store=Depends(get_store),
):
    """
    Would this request overbook its row?
      - available_spots: free capacity summed over the columns at that row, a
        column counting only if its pilot is available then
      - would_overbook: more people requested than available_spots
      - pilot_spots: available pilots minus people already booked there
    Advisory only; approval goes through regardless.
    """
    req = _load(store, request_id)
    resources = ranking.rank(store.resources())
    avail = store.availability(req.date)
    bookings = store.bookings(req.date)
    capacities = [capacity if req.time_index in avail.get(r.id, ()) else 0 for r in resources]
    result = availability.evaluate(
        req.time_index, req.number_of_people, capacities, bookings=bookings, day=req.date,
    )
    return {
        "request_id": req.id,
        "available_spots": result.available_spots,
        "would_overbook": result.would_overbook,
        "pilot_spots": availability.available_spots_for_request(req, bookings, resources, avail),
    }

@router.post("/{request_id}/approve", status_code=201)
def approve_request(
    request_id: str,
    body: ApproveBody,
    store=Depends(get_store),
    capabilities=Depends(get_capabilities),
    actor=Depends(get_actor),
):
    """
    Turn a request into a booking at the chosen cell, then mark the request
    approved. The booking id is derived from the request id, so retrying an
    approval whose second step failed reuses the booking already placed.
    """
    if not capabilities.is_admin:
        raise HTTPException(status_code=403, detail="Only administrators can approve requests.")
    req = _load(store, request_id)
    if req.status not in ("pending", "waitlist"):
        raise HTTPException(status_code=409, detail=f"Request is already {req.status}.")

    booking_id = f"bk-{req.id}"
    existing = store.get(booking_id)
    if existing is not None and existing.is_active:
        # placed by an earlier approval that failed before marking the request
        _write(store.update_request, req.id, "approved")
        return existing.model_dump(mode="json")

    time_index = req.time_index if body.time_index is None else body.time_index
    fields = {} if existing is not None else {"id": booking_id}
    with grid_session(store, capabilities, actor, req.date) as session:
        booking = unwrap(session.place_booking(
            time_index, body.start_column, body.span,
            customer_name=req.customer_name,
            number_of_people=req.number_of_people,
            phone=req.phone,
            email=req.email,
            notes=req.notes,
            booking_source="request",
            **fields,
        ))
    _write(store.update_request, req.id, "approved")
    return booking

@router.post("/{request_id}/status")
def change_request_status(
    request_id: str,
    body: RequestStatusBody,
    store=Depends(get_store),
    capabilities=Depends(get_capabilities),
):
    if not capabilities.is_admin:
        raise HTTPException(status_code=403, detail="Only administrators can manage requests.")
    req = _load(store, request_id)
    _write(store.update_request, req.id, body.status)
    return {"request_id": req.id, "status": body.status}
