import uuid
from sqlalchemy import Column, Date, DateTime, Integer, Text, Time, Uuid, CheckConstraint
from sqlalchemy.sql import func
from app.core.db import Base

class RunInstance(Base):
    __tablename__ = "run_instances"
    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_run_instances_capacity_positive"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Unique across every date: the seeding engine relies on this index for
    # INSERT .. ON CONFLICT (run_number) DO NOTHING.
    run_number = Column(Integer, nullable=False, unique=True)

    source = Column(Text, nullable=False, index=True)
    destination = Column(Text, nullable=False, index=True)

    departure_date = Column(Date, nullable=False, index=True)
    departure_time = Column(Time, nullable=False)
    arrival_time = Column(Time, nullable=False)

    capacity = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
