"""Shared fixtures: file-backed SQLite store per test, A/B/C templates, API client."""
import os

# Must be set before app.core.db is imported: the module builds its engine at import time.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("MAINTENANCE_ENABLED", "0")

from datetime import time

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker

from app.catalog.store import RunStore
from app.catalog.templates import generate_route_templates
from app.core.db import Base
from app.core.deps import get_db
from app.main import app
from app.models.job_runs import JobRun  # noqa: F401 -- registers table
from app.models.run_instances import RunInstance


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'runs.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def store(db):
    return RunStore(db)


@pytest.fixture
def abc_templates():
    """A, B, C from 06:00, +5 min per run, 30 min journeys, numbers from 1000."""
    return generate_route_templates(
        ["A", "B", "C"],
        base_run_number=1000,
        base_departure=time(6, 0),
        departure_increment_minutes=5,
        journey_minutes=30,
        capacity=100,
    )


@pytest.fixture
def count_runs(session_factory):
    """Count rows in run_instances from a fresh session, optionally for one date."""
    def _count(service_date=None):
        with session_factory() as s:
            stmt = select(func.count()).select_from(RunInstance)
            if service_date is not None:
                stmt = stmt.where(RunInstance.departure_date == service_date)
            return s.execute(stmt).scalar_one()
    return _count


@pytest.fixture
def api_client(session_factory):
    """TestClient with the DB dependency pointed at the per-test SQLite file."""
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
