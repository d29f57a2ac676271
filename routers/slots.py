from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, field_validator

from schedgrid import timeslots
from schedgrid.deps import get_capabilities, get_store
from schedgrid.errors import WriteFailed

router = APIRouter()

class AdditionalSlotBody(BaseModel):
    date: date
    label: str

    @field_validator("label")
    @classmethod
    def _hh_mm(cls, v):
        timeslots.to_minutes(v)
        return v.strip()

class OverrideBody(BaseModel):
    date: date
    index: int
    label: str | None = None  # None clears the override

    @field_validator("label")
    @classmethod
    def _hh_mm(cls, v):
        if v is not None:
            timeslots.to_minutes(v)
            return v.strip()
        return v

def _require_admin(capabilities):
    if not capabilities.is_admin:
        raise HTTPException(status_code=403, detail="Only administrators can change time slots.")

@router.get("")
def list_slots(
    day: date = Query(alias="date"),
    store=Depends(get_store),
):
    """
    Time rows for a day, sorted by displayed time:
      - base rows keep their seasonal index, with per-day label overrides applied
      - additional rows are numbered from 1000 upwards
    """
    overrides, additional = store.day_slots(day)
    return [r.model_dump() for r in timeslots.time_rows(day, overrides, additional)]

@router.post("/additional", status_code=201)
def add_additional_slot(
    body: AdditionalSlotBody,
    store=Depends(get_store),
    capabilities=Depends(get_capabilities),
):
    _require_admin(capabilities)
    overrides, additional = store.day_slots(body.date)
    if body.label in additional or body.label in timeslots.base_slots(body.date):
        raise HTTPException(status_code=409, detail="Time slot already exists.")
    try:
        store.set_day_slots(body.date, additional=additional + [body.label])
    except WriteFailed as e:
        raise HTTPException(status_code=503, detail=str(e))
    index = timeslots.time_rows(body.date, overrides, additional + [body.label])
    return next(r.model_dump() for r in index if r.is_additional and r.label == body.label)

@router.post("/override")
def override_slot(
    body: OverrideBody,
    store=Depends(get_store),
    capabilities=Depends(get_capabilities),
):
    _require_admin(capabilities)
    if not 0 <= body.index < len(timeslots.base_slots(body.date)):
        raise HTTPException(status_code=404, detail="No such base time slot.")
    overrides, _ = store.day_slots(body.date)
    if body.label is None:
        overrides.pop(body.index, None)
    else:
        overrides[body.index] = body.label
    try:
        store.set_day_slots(body.date, overrides=overrides)
    except WriteFailed as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {"date": body.date.isoformat(), "overrides": overrides}
