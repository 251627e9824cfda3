from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date
from typing import Iterator

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import InterfaceError, OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from app.core.errors import TransientStoreError
from app.models.run_instances import RunInstance

logger = logging.getLogger(__name__)

_TRANSIENT_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError)


class RunStore:
    """
    Storage operations the maintenance core needs on run_instances.

    Writes are not committed here; callers decide the transaction boundary
    (one commit per seeded date, one per prune). Driver-level connectivity
    failures are rolled back and re-raised as TransientStoreError.
    """

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def guard(self, op: str) -> Iterator[None]:
        try:
            yield
        except _TRANSIENT_ERRORS as e:
            logger.warning("Store operation %s failed: %r", op, e)
            self.rollback()
            raise TransientStoreError(f"{op} failed: {e.__class__.__name__}") from e

    def _insert(self):
        if self.db.get_bind().dialect.name == "postgresql":
            return postgresql.insert(RunInstance)
        return sqlite.insert(RunInstance)

    def insert_if_absent(self, run_number: int, values: dict) -> bool:
        """
        Compare-and-insert on the run_number unique index.
        Returns False when another row (from any date, any writer) already holds run_number.
        """
        stmt = (
            self._insert()
            .values(run_number=run_number, **values)
            .on_conflict_do_nothing(index_elements=["run_number"])
            .returning(RunInstance.id)
        )
        with self.guard("insert_if_absent"):
            row = self.db.execute(stmt).fetchone()
        return row is not None

    def bulk_delete_through(self, cutoff: date) -> int:
        stmt = delete(RunInstance).where(RunInstance.departure_date <= cutoff)
        with self.guard("bulk_delete_through"):
            res = self.db.execute(stmt)
        return max(res.rowcount or 0, 0)

    def find_by_departure_date(self, service_date: date) -> list[RunInstance]:
        stmt = (
            select(RunInstance)
            .where(RunInstance.departure_date == service_date)
            .order_by(RunInstance.run_number)
        )
        with self.guard("find_by_departure_date"):
            return list(self.db.execute(stmt).scalars().all())

    def all_run_numbers(self) -> set[int]:
        with self.guard("all_run_numbers"):
            return set(self.db.execute(select(RunInstance.run_number)).scalars().all())

    def distinct_departure_dates(self) -> set[date]:
        with self.guard("distinct_departure_dates"):
            return set(self.db.execute(select(RunInstance.departure_date).distinct()).scalars().all())

    def commit(self) -> None:
        with self.guard("commit"):
            self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
