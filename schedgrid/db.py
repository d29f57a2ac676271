from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from schedgrid.config import Config

SQLALCHEMY_DATABASE_URL = Config.DATABASE_URL

engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def init_db():
    # Import models here to create tables
    from schedgrid.models import ResourceRow, AvailabilityRow
    Base.metadata.create_all(bind=engine)

    # Seed a small fleet if empty
    from sqlalchemy.orm import Session
    db: Session = SessionLocal()
    try:
        if not db.query(ResourceRow).first():
            from datetime import date, datetime
            from schedgrid.timeslots import base_slots
            now = datetime.utcnow()
            fleet = [
                ResourceRow(id="p-1", label="Anna", capabilities=["female"], priority=1, created_at=now),
                ResourceRow(id="p-2", label="Bruno", capabilities=[], priority=2, created_at=now),
                ResourceRow(id="p-3", label="Carla", capabilities=["female"], priority=None, created_at=now),
            ]
            db.add_all(fleet)
            db.flush()
            today = date.today()
            db.add_all([
                AvailabilityRow(resource_id=p.id, date=today, time_index=i)
                for p in fleet
                for i in range(len(base_slots(today)))
            ])
        db.commit()
    finally:
        db.close()
