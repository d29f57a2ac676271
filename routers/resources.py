from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from schedgrid import ranking
from schedgrid.deps import get_capabilities, get_store
from schedgrid.errors import WriteFailed

router = APIRouter()

class ReorderBody(BaseModel):
    day: date = Field(alias="date")
    from_index: int
    to_index: int


def _ranked(store, day):
    resources = store.resources()
    metrics = ranking.compute_metrics(resources, store.bookings(day), store.availability(day), day)
    return ranking.rank(resources, metrics), metrics

@router.get("")
def list_resources(
    day: date = Query(alias="date"),
    store=Depends(get_store),
):
    """
    Resources in column order for a day, with the metrics that ordered them:
    priority first (unset goes last), then busiest, then most availability
    left, then name.
    """
    ranked, metrics = _ranked(store, day)
    return [
        {
            "id": r.id,
            "label": r.label,
            "capabilities": sorted(r.capabilities),
            "priority": r.priority,
            "booking_count": metrics[r.id].booking_count,
            "available_slots": metrics[r.id].available_slots,
        }
        for r in ranked
    ]

@router.post("/reorder")
def reorder_resources(
    body: ReorderBody,
    store=Depends(get_store),
    capabilities=Depends(get_capabilities),
):
    """
    Drag one column to a new position; every resource gets priority 1..n in
    the new order. Indices refer to the column order shown for the given date.
    """
    if not capabilities.is_admin:
        raise HTTPException(status_code=403, detail="Only administrators can reorder pilots.")
    current, _ = _ranked(store, body.day)
    try:
        priorities = ranking.reorder(current, body.from_index, body.to_index)
    except IndexError as e:
        raise HTTPException(status_code=422, detail=str(e))
    try:
        store.set_priorities(priorities)
    except WriteFailed as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {"priorities": priorities}
