"""Unit tests for the HTTP API."""

import json
import pytest
from pathlib import Path
from fastapi.testclient import TestClient
from funnel_analytics.api.app import app
from funnel_analytics.api.dependencies import cache_size_from_env, report_cache


@pytest.fixture
def client():
    report_cache.clear()
    return TestClient(app)


@pytest.fixture
def sample_body():
    """Load the sample project as a request body."""
    fixture_path = Path(__file__).parent.parent / "fixtures" / "sample_project.json"
    with open(fixture_path, 'r') as f:
        data = json.load(f)
    return {
        "contacts": data["contacts"],
        "activities": data["activities"],
        "config": {"project_id": data["project_id"]},
    }


def test_health(client):
    """Test health check endpoint."""
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_channel_report(client, sample_body):
    """Test channel report endpoint skips malformed records."""
    response = client.post("/api/v1/reports/call", json=sample_body)

    assert response.status_code == 200
    data = response.json()
    assert data["channel"] == "call"
    assert data["summary"]["totalCalls"] == 5
    assert data["metadata"]["project_id"] == "p1"


def test_channel_report_month(client, sample_body):
    """Test granularity from the request config."""
    sample_body["config"]["granularity"] = "month"

    response = client.post("/api/v1/reports/email", json=sample_body)

    assert response.status_code == 200
    assert response.json()["periods"] == ["Jan '24", "Feb '24", "Mar '25"]


def test_unknown_channel(client, sample_body):
    """Test that an unknown channel is rejected."""
    response = client.post("/api/v1/reports/fax", json=sample_body)
    assert response.status_code == 422


def test_unknown_timezone(client, sample_body):
    """Test that an unknown timezone is rejected."""
    sample_body["config"]["timezone"] = "Mars/Olympus"
    response = client.post("/api/v1/reports/call", json=sample_body)
    assert response.status_code == 422


def test_dashboard(client, sample_body):
    """Test dashboard endpoint."""
    response = client.post("/api/v1/dashboard", json=sample_body)

    assert response.status_code == 200
    data = response.json()
    assert data["overview"]["total_activities"] == 14
    assert set(data["channels"]) == {"call", "email", "linkedin"}


def test_empty_body(client):
    """Test that an empty request gives an empty report."""
    response = client.post("/api/v1/reports/linkedin", json={})

    assert response.status_code == 200
    assert response.json()["periods"] == []


def test_report_is_cached(client, sample_body):
    """Test repeated requests hit the cache and invalidation clears it."""
    hits = report_cache.hits
    client.post("/api/v1/reports/call", json=sample_body)
    client.post("/api/v1/reports/call", json=sample_body)

    assert report_cache.hits == hits + 1
    assert len(report_cache) == 1

    response = client.delete("/api/v1/cache/p1")

    assert response.status_code == 200
    assert response.json() == {"project_id": "p1", "removed": 1}
    assert len(report_cache) == 0


def test_export_csv(client, sample_body):
    """Test CSV export endpoint."""
    response = client.post("/api/v1/exports/call/csv", json=sample_body)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "call_report.csv" in response.headers["content-disposition"]
    assert response.text.splitlines()[0].startswith("Metric,Section,")


def test_export_json(client, sample_body):
    """Test JSON export endpoint."""
    response = client.post("/api/v1/exports/linkedin/json", json=sample_body)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/json")
    assert response.json()["channel"] == "linkedin"


def test_versioned_report_tracks_contacts(client):
    """Test that a changed contact set is recomputed under the same activities version."""
    body = {
        "contacts": [{"id": "1", "createdAt": "2024-01-05"}],
        "activities": [],
        "config": {"project_id": "p1"},
        "activities_version": "v1",
    }
    first = client.post("/api/v1/reports/call", json=body).json()

    body["contacts"].append({"id": "2", "createdAt": "2024-01-05"})
    second = client.post("/api/v1/reports/call", json=body).json()

    assert first["summary"]["prospectData"] == 1
    assert second["summary"]["prospectData"] == 2


def test_all_projects_report(client):
    """Test that several projects are reported together as project "all"."""
    body = {
        "projects": [
            {"project_id": "a", "contacts": [{"id": "1", "createdAt": "2024-01-05"}]},
            {
                "project_id": "b",
                "contacts": [{"id": "2", "createdAt": "2024-01-05"}],
                "activities": [{"contactId": "2", "type": "call", "callDate": "2024-01-05"}],
            },
        ],
    }

    response = client.post("/api/v1/reports/call", json=body)

    assert response.status_code == 200
    data = response.json()
    assert data["metadata"]["project_id"] == "all"
    assert data["snapshots"]["5 Jan '24"]["dataAllocated"] == 2
    assert data["summary"]["totalCalls"] == 1

    removed = client.delete("/api/v1/cache/all").json()["removed"]
    assert removed == 1


@pytest.mark.parametrize("raw, expected", [
    (None, 256),
    ("10", 10),
    ("0", 256),
    ("lots", 256),
])
def test_cache_size_from_env(monkeypatch, raw, expected):
    """Test the cache size setting falls back to the default when invalid."""
    if raw is None:
        monkeypatch.delenv("FUNNEL_CACHE_MAX_ENTRIES", raising=False)
    else:
        monkeypatch.setenv("FUNNEL_CACHE_MAX_ENTRIES", raw)

    assert cache_size_from_env() == expected
