"""HTTP control surface tests using FastAPI's TestClient."""
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from vote_worker.data_models.vote_results import CycleSummary
from vote_worker.exceptions import CycleInProgressError

from ..worker_router import router


def summary(**counts):
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)
    return CycleSummary(started_at=now, finished_at=now, **counts)


@pytest.fixture
def supervisor():
    mock = MagicMock()
    mock.health = MagicMock(return_value={"status": "ok", "uptime": 5, "lastCycleAt": None, "cycleInProgress": False})
    mock.status = MagicMock(return_value={"totalCyclesRun": 0, "config": {"enabled": True}})
    mock.execute_cycle = AsyncMock(return_value=summary(executed=2, combinations_considered=4))
    mock.execute_dry_run = AsyncMock(return_value=summary(failed=3, combinations_considered=3))
    return mock


@pytest.fixture
def client(supervisor):
    app = FastAPI()
    app.include_router(router)
    app.state.supervisor = supervisor
    return TestClient(app)


class TestReadEndpoints:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_status(self, client):
        response = client.get("/status")
        assert response.status_code == 200
        assert response.json()["config"] == {"enabled": True}


class TestTrigger:

    def test_returns_summary(self, client):
        response = client.post("/trigger")

        assert response.status_code == 200
        body = response.json()
        assert body["executed"] == 2
        assert body["combinationsConsidered"] == 4
        assert "startedAt" in body

    def test_busy_returns_409(self, client, supervisor):
        supervisor.execute_cycle.side_effect = CycleInProgressError()

        response = client.post("/trigger")

        assert response.status_code == 409
        assert response.json() == {"error": "Cycle already in progress"}

    def test_failure_returns_500(self, client, supervisor):
        supervisor.execute_cycle.side_effect = RuntimeError("database unreachable")

        response = client.post("/trigger")

        assert response.status_code == 500
        assert response.json() == {"error": "database unreachable"}


class TestDryRun:

    def test_returns_summary(self, client, supervisor):
        response = client.post("/cycle/dry-run")

        assert response.status_code == 200
        assert response.json()["failed"] == 3
        assert response.json()["combinationsConsidered"] == 3
        supervisor.execute_cycle.assert_not_called()

    def test_busy_returns_409(self, client, supervisor):
        supervisor.execute_dry_run.side_effect = CycleInProgressError()

        response = client.post("/cycle/dry-run")

        assert response.status_code == 409
        assert response.json() == {"error": "Cycle already in progress"}
