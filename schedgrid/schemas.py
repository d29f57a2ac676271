from datetime import date as Date, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

BookingStatus = Literal["unconfirmed", "confirmed", "pending", "cancelled", "deleted"]
RequestStatus = Literal["pending", "approved", "rejected", "waitlist", "deleted"]
Role = Literal["admin", "pilot", "agency", "driver"]


class HistoryAction(str, Enum):
    CREATED = "created"
    EDITED = "edited"
    MOVED = "moved"
    DELETED = "deleted"
    RESTORED = "restored"
    STATUS_CHANGED = "status_changed"
    PILOT_ASSIGNED = "pilot_assigned"
    PILOT_UNASSIGNED = "pilot_unassigned"


class Actor(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str


class HistoryEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: HistoryAction
    timestamp: datetime
    actor_id: str
    actor_name: str
    detail: str | None = None


class Resource(BaseModel):
    """A schedulable column (pilot, driver or vehicle)."""
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    capabilities: frozenset[str] = frozenset()
    priority: int | None = None


class ResourceMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    booking_count: int = 0
    available_slots: int = 0


class Booking(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    date: Date
    time_index: int
    start_column: int
    span: int = 1
    customer_name: str = ""
    number_of_people: int = 1
    status: BookingStatus = "unconfirmed"
    assigned: tuple[str, ...] = ()
    phone: str = ""
    email: str = ""
    notes: str = ""
    booking_source: str = ""
    female_pilots_required: int = 0
    created_by: str | None = None
    history: tuple[HistoryEntry, ...] = ()

    @property
    def end_column(self):
        return self.start_column + self.span - 1

    @property
    def is_active(self):
        return self.status != "deleted"


class BookingRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    date: Date
    time_index: int
    customer_name: str
    email: str = ""
    phone: str = ""
    number_of_people: int = 1
    notes: str = ""
    status: RequestStatus = "pending"


class TimeRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int
    label: str
    is_additional: bool = False
    is_overridden: bool = False


class Capabilities(BaseModel):
    model_config = ConfigDict(frozen=True)

    can_manage_availability: bool = False
    can_drag_bookings: bool = False
    is_admin: bool = False


class Evaluation(BaseModel):
    model_config = ConfigDict(frozen=True)

    available_spots: int
    would_overbook: bool


class ActionResult(BaseModel):
    ok: bool
    error: str | None = None  # conflict | out_of_bounds | invalid_span | not_found | forbidden | rejected | write_failed
    message: str | None = None
    conflicting_ids: list[str] = Field(default_factory=list)
    booking: Booking | None = None
