import uuid
from datetime import date, time
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from app.catalog.seeding import ensure_catalog_for_date
from app.catalog.store import RunStore
from app.core.deps import get_db
from app.core.errors import ConflictError, ValidationError
from app.main import app
from app.services import runs as runs_service


RUN = {
    "run_number": 501,
    "source": "Pune",
    "destination": "Delhi",
    "departure_date": "2025-02-01",
    "departure_time": "07:15:00",
    "arrival_time": "10:45:00",
    "capacity": 200,
}


def _create(client, **overrides):
    return client.post("/v1/runs", json={**RUN, **overrides})


class TestCreate:
    def test_create_and_get(self, api_client):
        resp = _create(api_client)
        assert resp.status_code == 201
        body = resp.json()
        uuid.UUID(body["id"])
        assert body["run_number"] == 501
        assert body["departure_time"] == "07:15:00"

        got = api_client.get(f"/v1/runs/{body['id']}")
        assert got.status_code == 200
        assert got.json() == body

    def test_duplicate_run_number_is_conflict(self, api_client):
        assert _create(api_client).status_code == 201
        resp = _create(api_client, departure_date="2025-03-01")
        assert resp.status_code == 409

    def test_conflicts_with_seeded_runs(self, api_client, session_factory, abc_templates):
        with session_factory() as s:
            ensure_catalog_for_date(RunStore(s), date(2025, 1, 1), abc_templates)
        assert _create(api_client, run_number=1003).status_code == 409

    def test_same_source_and_destination_is_rejected(self, api_client):
        assert _create(api_client, destination="Pune").status_code == 400

    def test_non_positive_capacity_is_unprocessable(self, api_client):
        assert _create(api_client, capacity=0).status_code == 422


class TestReadUpdateDelete:
    def test_missing_id_is_404(self, api_client):
        missing = uuid.uuid4()
        assert api_client.get(f"/v1/runs/{missing}").status_code == 404
        assert api_client.put(f"/v1/runs/{missing}", json={"capacity": 5}).status_code == 404
        assert api_client.delete(f"/v1/runs/{missing}").status_code == 404

    def test_partial_update(self, api_client):
        run_id = _create(api_client).json()["id"]
        resp = api_client.put(f"/v1/runs/{run_id}", json={"capacity": 250, "arrival_time": "11:00:00"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["capacity"] == 250
        assert body["arrival_time"] == "11:00:00"
        assert body["source"] == "Pune"

    def test_update_to_taken_run_number_is_conflict(self, api_client):
        _create(api_client)
        other = _create(api_client, run_number=502).json()["id"]
        resp = api_client.put(f"/v1/runs/{other}", json={"run_number": 501})
        assert resp.status_code == 409
        assert api_client.get(f"/v1/runs/{other}").json()["run_number"] == 502

    def test_delete(self, api_client):
        run_id = _create(api_client).json()["id"]
        assert api_client.delete(f"/v1/runs/{run_id}").status_code == 204
        assert api_client.get(f"/v1/runs/{run_id}").status_code == 404

    def test_list(self, api_client):
        _create(api_client, run_number=2, departure_date="2025-02-02")
        _create(api_client, run_number=1)
        numbers = [r["run_number"] for r in api_client.get("/v1/runs").json()]
        assert numbers == [1, 2]


class TestSearch:
    def test_exact_match_on_route_and_date(self, api_client, session_factory, abc_templates):
        with session_factory() as s:
            ensure_catalog_for_date(RunStore(s), date(2025, 1, 1), abc_templates)

        resp = api_client.get(
            "/v1/runs/search",
            params={"source": "B", "destination": "C", "departure_date": "2025-01-01"},
        )
        assert resp.status_code == 200
        assert [r["run_number"] for r in resp.json()] == [1003]

        resp = api_client.get(
            "/v1/runs/search",
            params={"source": "B", "destination": "C", "departure_date": "2025-01-02"},
        )
        assert resp.json() == []

    def test_by_run_number(self, api_client):
        _create(api_client)
        resp = api_client.get("/v1/runs/search", params={"run_number": 501})
        assert [r["destination"] for r in resp.json()] == ["Delhi"]

    def test_bad_date_is_unprocessable(self, api_client):
        assert api_client.get("/v1/runs/search", params={"departure_date": "01/02/2025"}).status_code == 422


def test_health_reports_disabled_maintenance(api_client):
    resp = api_client.get("/v1/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "maintenance": "disabled"}


@pytest.fixture
def store_down_client():
    """TestClient whose DB session fails every statement as if Postgres were unreachable."""
    session = MagicMock()
    outage = OperationalError("SELECT 1", {}, Exception("could not connect to server"))
    session.execute.side_effect = outage
    session.get.side_effect = outage

    def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


def test_store_outage_is_service_unavailable(store_down_client):
    run_id = uuid.uuid4()
    responses = {
        "list": store_down_client.get("/v1/runs"),
        "search": store_down_client.get("/v1/runs/search", params={"source": "Pune"}),
        "get": store_down_client.get(f"/v1/runs/{run_id}"),
        "create": _create(store_down_client),
        "update": store_down_client.put(f"/v1/runs/{run_id}", json={"capacity": 5}),
        "delete": store_down_client.delete(f"/v1/runs/{run_id}"),
    }
    assert {name: r.status_code for name, r in responses.items()} == dict.fromkeys(responses, 503)


class TestUpdateRunService:
    def _seed(self, db, run_number):
        return runs_service.create_run(
            db,
            {
                "run_number": run_number,
                "source": "Pune",
                "destination": "Delhi",
                "departure_date": date(2025, 2, 1),
                "departure_time": time(7, 15),
                "arrival_time": time(10, 45),
                "capacity": 200,
            },
        )

    def test_conflict_message_names_the_run_number(self, db):
        self._seed(db, 501)
        other = self._seed(db, 502)
        with pytest.raises(ConflictError, match="run_number 501 "):
            runs_service.update_run(db, other.id, {"run_number": 501})

    def test_non_run_number_constraint_is_not_a_conflict(self, db):
        run = self._seed(db, 501)
        with pytest.raises(ValidationError):
            runs_service.update_run(db, run.id, {"capacity": 0})
        assert runs_service.get_run(db, run.id).capacity == 200
