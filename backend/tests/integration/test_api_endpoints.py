"""Integration tests for FastAPI endpoints."""

import pytest
from fastapi.testclient import TestClient

import controllers.trigger_controller as trigger_controller
from config.settings import settings
from controllers.trigger_controller import TriggerController
from helpers.notifier import LoggingNotifier
from helpers.stores import InMemoryEventStore, build_fixture_stores
from main import app


@pytest.fixture
def controller(fixture_path, monkeypatch):
    """Fixture-backed controller installed as the process-wide controller."""
    controller = TriggerController(
        event_store=InMemoryEventStore(),
        notifier=LoggingNotifier(),
        **build_fixture_stores(fixture_path),
    )
    monkeypatch.setattr(trigger_controller, "_controller", controller)
    return controller


@pytest.fixture
def client(controller):
    """Create test client."""
    return TestClient(app)


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_root_endpoint(self, client):
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["version"] == "0.1.0"

    def test_health_endpoint(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "ai_provider" in data
        assert "model" in data


class TestTriggerEndpoints:
    """Tests for POST /api/triggers/run."""

    def test_run_pass(self, client, controller):
        response = client.post("/api/triggers/run", json={"now": "2025-03-14T12:00:00Z"})

        assert response.status_code == 200
        data = response.json()
        assert data["counts"]["fired"] == 4
        assert data["counts"]["failed"] == 1
        assert data["started_at"].startswith("2025-03-14T12:00:00")
        assert len(controller.event_store.events) == 4

    def test_run_pass_without_body(self, client):
        response = client.post("/api/triggers/run")

        assert response.status_code == 200
        assert response.json()["counts"]["campaigns"] == 3

    def test_naive_time_treated_as_utc(self, client):
        first = client.post("/api/triggers/run", json={"now": "2025-03-14T12:00:00"})
        second = client.post("/api/triggers/run", json={"now": "2025-03-14T13:00:00"})

        assert first.status_code == 200
        assert second.status_code == 200
        assert second.json()["counts"]["fired"] == 0


class TestInsightEndpoints:
    """Tests for GET /api/insights."""

    def test_insights(self, client):
        response = client.get("/api/insights", params={"campaign_id": ["cmp-003"]})

        assert response.status_code == 200
        data = response.json()
        assert [i["campaign_id"] for i in data["insights"]] == ["cmp-003"]
        assert data["insights"][0]["severity"] == "warning"
        assert data["report"] is None
        assert {i["id"] for i in data["policy_insights"]} >= {"cpm-critical-cmp-003"}

    def test_insights_with_report(self, client):
        response = client.get("/api/insights", params={"report": "true"})

        assert response.status_code == 200
        assert response.json()["report"].startswith("3 campaigns evaluated:")


class TestExperimentEndpoints:
    def test_analyze_experiment(self, client):
        response = client.post(
            "/api/experiments/analyze",
            json={
                "experiment": {
                    "id": "exp-42",
                    "control_variant_id": "A",
                    "performance_data": {
                        "A": {"rate": 0.05, "revenue": 1200.0, "visitors": 2400},
                        "B": {"rate": 0.038, "revenue": 1010.0, "visitors": 2350},
                    },
                }
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["experiment_id"] == "exp-42"
        assert {i["id"] for i in data["insights"]} == {"ins_exp-42_B_conv", "ins_exp-42_B_rev"}


class TestRuleGenerationEndpoints:
    """Tests for POST /api/rules/generate."""

    def test_without_reasoning_client(self, client):
        response = client.post("/api/rules/generate", json={"description": "Pause on low ROAS"})
        assert response.status_code == 503

    def test_invalid_structure(self, client, controller, llm_factory):
        controller.reasoning_client = llm_factory(["no json here"])
        response = client.post("/api/rules/generate", json={"description": "Pause on low ROAS"})
        assert response.status_code == 422
        assert response.json()["detail"] == "Invalid automation structure generated"

    def test_generated_rule(self, client, controller, llm_factory):
        controller.reasoning_client = llm_factory([
            '{"name": "Low ROAS", "conditions": [{"metric_name": "ROAS", "operator": "less_than", '
            '"threshold": 1.5}], "action": {"action_type": "notify_team"}}'
        ])
        response = client.post("/api/rules/generate", json={"description": "Pause on low ROAS"})

        assert response.status_code == 200
        rule = response.json()["rule"]
        assert rule["name"] == "Low ROAS"
        assert rule["action"]["action_type"] == "notify_team"


class TestAuth:
    """Bearer token checks outside development."""

    @pytest.fixture
    def production(self, monkeypatch):
        monkeypatch.setattr(settings, "environment", "production")
        monkeypatch.setattr(settings, "api_token", "secret")

    def test_missing_token(self, client, production):
        assert client.post("/api/triggers/run").status_code == 401

    def test_bad_format(self, client, production):
        response = client.post("/api/triggers/run", headers={"Authorization": "Token secret"})
        assert response.status_code == 401

    def test_valid_token(self, client, production):
        response = client.post("/api/triggers/run", headers={"Authorization": "Bearer secret"})
        assert response.status_code == 200
