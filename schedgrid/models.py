from sqlalchemy import Column, String, Integer, Date, DateTime, JSON, ForeignKey, CheckConstraint, UniqueConstraint
from schedgrid.db import Base


class ResourceRow(Base):
    __tablename__ = "resources"
    id = Column(String, primary_key=True)
    label = Column(String, nullable=False)
    capabilities = Column(JSON, nullable=False, default=list)
    priority = Column(Integer, nullable=True)
    role = Column(String, nullable=False, default="pilot")
    created_at = Column(DateTime)


class AvailabilityRow(Base):
    __tablename__ = "availability"
    id = Column(Integer, primary_key=True, autoincrement=True)
    resource_id = Column(String, ForeignKey("resources.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    time_index = Column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("resource_id", "date", "time_index", name="uniq_resource_slot"),
    )


class BookingRow(Base):
    __tablename__ = "bookings"
    id = Column(String, primary_key=True)
    date = Column(Date, nullable=False, index=True)
    time_index = Column(Integer, nullable=False)
    start_column = Column(Integer, nullable=False)
    span = Column(Integer, nullable=False, default=1)
    customer_name = Column(String, nullable=False, default="")
    number_of_people = Column(Integer, nullable=False, default=1)
    status = Column(String, nullable=False, default="unconfirmed")
    assigned = Column(JSON, nullable=False, default=list)
    phone = Column(String, nullable=False, default="")
    email = Column(String, nullable=False, default="")
    notes = Column(String, nullable=False, default="")
    booking_source = Column(String, nullable=False, default="")
    female_pilots_required = Column(Integer, nullable=False, default=0)
    created_by = Column(String, nullable=True)
    history = Column(JSON, nullable=False, default=list)

    __table_args__ = (
        CheckConstraint("span between 1 and 3", name="booking_span_valid"),
        CheckConstraint(
            "status in ('unconfirmed','confirmed','pending','cancelled','deleted')",
            name="booking_status_valid",
        ),
    )


class BookingRequestRow(Base):
    __tablename__ = "booking_requests"
    id = Column(String, primary_key=True)
    date = Column(Date, nullable=False)
    time_index = Column(Integer, nullable=False)
    customer_name = Column(String, nullable=False)
    email = Column(String, nullable=False, default="")
    phone = Column(String, nullable=False, default="")
    number_of_people = Column(Integer, nullable=False, default=1)
    notes = Column(String, nullable=False, default="")
    status = Column(String, nullable=False, default="pending")
    created_at = Column(DateTime)

    __table_args__ = (
        CheckConstraint(
            "status in ('pending','approved','rejected','waitlist','deleted')",
            name="request_status_valid",
        ),
    )


class DaySlotsRow(Base):
    __tablename__ = "day_slots"
    date = Column(Date, primary_key=True)
    overrides = Column(JSON, nullable=False, default=dict)  # {"<base index>": "HH:MM"}
    additional = Column(JSON, nullable=False, default=list)  # ["HH:MM", ...]
