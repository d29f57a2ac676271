# tests/conftest.py
import os
import tempfile
from datetime import date, datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from schedgrid.db import Base
from schedgrid.deps import get_store
from schedgrid.main import app
from schedgrid.models import AvailabilityRow, ResourceRow
from schedgrid.schemas import Actor, Booking, Capabilities
from schedgrid.store import BookingStore

DAY = date(2025, 7, 14)
NOW = datetime(2025, 7, 14, 9, 0, tzinfo=timezone.utc)
ADMIN = {"X-Role": "admin", "X-User-Id": "u-admin", "X-User-Name": "Admin"}
PILOT = {"X-Role": "pilot", "X-User-Id": "u-pilot", "X-User-Name": "Pilot"}


@pytest.fixture(scope="function")
def session_factory():
    os.environ["SKIP_DB_INIT"] = "1"

    # temp DB
    tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    db_url = f"sqlite:///{tmp.name}"

    # test engine / Session
    engine = create_engine(db_url, connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    try:
        yield TestingSessionLocal
    finally:
        engine.dispose()
        tmp.close()
        os.unlink(tmp.name)


@pytest.fixture
def store(session_factory):
    return BookingStore(session_factory)


@pytest.fixture(scope="function")
def client(store):
    app.dependency_overrides[get_store] = lambda: store

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def admin():
    return Capabilities(can_manage_availability=True, can_drag_bookings=True, is_admin=True)


@pytest.fixture
def actor():
    return Actor(id="u-admin", name="Admin")


# —— Factories ——
@pytest.fixture
def make_resource(session_factory):
    def _make_resource(resource_id="p-1", label="Pilot 1", capabilities=(), priority=None, available=()):
        db = session_factory()
        try:
            db.add(ResourceRow(id=resource_id, label=label, capabilities=list(capabilities), priority=priority))
            db.flush()
            db.add_all([
                AvailabilityRow(resource_id=resource_id, date=DAY, time_index=i) for i in available
            ])
            db.commit()
        finally:
            db.close()
        return resource_id
    return _make_resource


@pytest.fixture
def fleet(make_resource):
    """Three pilots, all available on every base row of DAY."""
    rows = range(8)
    make_resource("p-1", "Anna", ["female"], 1, rows)
    make_resource("p-2", "Bruno", [], 2, rows)
    make_resource("p-3", "Carla", ["female"], None, rows)
    return ["p-1", "p-2", "p-3"]


@pytest.fixture
def make_booking(store):
    def _make_booking(booking_id="b-1", time_index=0, start_column=0, span=1, **fields):
        fields.setdefault("assigned", ("",) * span)
        booking = Booking(
            id=booking_id, date=fields.pop("date", DAY), time_index=time_index,
            start_column=start_column, span=span, **fields,
        )
        store.create(booking)
        return booking
    return _make_booking


class FakeHandle:
    def __init__(self, loop, when, callback):
        self.loop = loop
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeLoop:
    """Just enough of asyncio's loop for call_later, driven by advance()."""

    def __init__(self):
        self.now = 0.0
        self.handles = []

    def call_later(self, delay, callback):
        handle = FakeHandle(self, self.now + delay, callback)
        self.handles.append(handle)
        return handle

    def clock(self):
        return self.now

    def pending(self):
        return [h for h in self.handles if not h.cancelled and h.when > self.now]

    def advance(self, seconds):
        target = self.now + seconds
        while True:
            due = [h for h in self.handles if not h.cancelled and h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self.handles.remove(handle)
            self.now = handle.when
            handle.callback()
        self.now = target


@pytest.fixture
def loop():
    return FakeLoop()
