from __future__ import annotations

import uuid
from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.catalog.store import RunStore
from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.models.run_instances import RunInstance

_UPDATABLE = (
    "run_number",
    "source",
    "destination",
    "departure_date",
    "departure_time",
    "arrival_time",
    "capacity",
)


def _check_route(source: str, destination: str) -> None:
    if source == destination:
        raise ValidationError("source and destination must differ")


def get_run(db: Session, run_id: uuid.UUID) -> RunInstance:
    with RunStore(db).guard("get_run"):
        run = db.get(RunInstance, run_id)
    if run is None:
        raise NotFoundError(f"Run not found with id {run_id}")
    return run


def list_runs(db: Session) -> list[RunInstance]:
    stmt = select(RunInstance).order_by(
        RunInstance.departure_date, RunInstance.departure_time, RunInstance.run_number
    )
    with RunStore(db).guard("list_runs"):
        return list(db.execute(stmt).scalars().all())


def create_run(db: Session, fields: dict) -> RunInstance:
    """Manual entry. Goes through the same run_number guard the seeding engine uses."""
    _check_route(fields["source"], fields["destination"])

    run_id = uuid.uuid4()
    values = {k: v for k, v in fields.items() if k != "run_number"}
    store = RunStore(db)
    if not store.insert_if_absent(fields["run_number"], {"id": run_id, **values}):
        db.rollback()
        raise ConflictError(f"run_number {fields['run_number']} already exists")
    store.commit()
    return get_run(db, run_id)


def update_run(db: Session, run_id: uuid.UUID, fields: dict) -> RunInstance:
    run = get_run(db, run_id)

    for key, value in fields.items():
        if key in _UPDATABLE:
            setattr(run, key, value)
    _check_route(run.source, run.destination)
    run_number = run.run_number

    store = RunStore(db)
    try:
        with store.guard("update_run"):
            db.commit()
    except IntegrityError:
        db.rollback()
        if "run_number" in fields:
            raise ConflictError(f"run_number {run_number} already exists")
        raise ValidationError(f"Run {run_id} update violates a table constraint")
    with store.guard("update_run"):
        db.refresh(run)
    return run


def delete_run(db: Session, run_id: uuid.UUID) -> None:
    run = get_run(db, run_id)
    with RunStore(db).guard("delete_run"):
        db.delete(run)
        db.commit()


def search_runs(
    db: Session,
    *,
    source: Optional[str] = None,
    destination: Optional[str] = None,
    departure_date: Optional[date] = None,
    run_number: Optional[int] = None,
) -> list[RunInstance]:
    stmt = select(RunInstance)
    if source is not None:
        stmt = stmt.where(RunInstance.source == source)
    if destination is not None:
        stmt = stmt.where(RunInstance.destination == destination)
    if departure_date is not None:
        stmt = stmt.where(RunInstance.departure_date == departure_date)
    if run_number is not None:
        stmt = stmt.where(RunInstance.run_number == run_number)
    stmt = stmt.order_by(RunInstance.departure_date, RunInstance.departure_time)
    with RunStore(db).guard("search_runs"):
        return list(db.execute(stmt).scalars().all())
