"""API integration tests.

Coverage:
  GET  /v1/health                       status, version, services dict
  POST /v1/workflows/{id}/execute       success log, 402 / 404 / 409
  POST /v1/workflows/{id}/trigger       ack, background run persisted
  POST /v1/webhooks/{id}                public webhook payload shape
  GET  /v1/executions/{id}              lookup, 404
  POST /v1/conditions/validate          valid / invalid configs
"""

import pytest
from fastapi.testclient import TestClient

from autoflow.api.main import create_app
from autoflow.types import WorkflowStatus
from conftest import signup_graph

PRO = {"plan": "pro", "email": "ada@example.com"}


# ── Fixtures ───────────────────────────────────────────────────────────────────

@pytest.fixture
def client(engine):
    with TestClient(create_app(engine=engine)) as c:
        yield c


# ── Health ─────────────────────────────────────────────────────────────────────

class TestHealth:

    def test_health_ok(self, client):
        data = client.get("/v1/health").json()
        assert data["status"] == "ok"
        assert data["services"] == {"api": True, "engine": True}
        assert data["version"]


# ── Execute ────────────────────────────────────────────────────────────────────

class TestExecute:

    def test_execute_returns_log(self, client, recorder):
        resp = client.post("/v1/workflows/wf-1/execute", json={"payload": PRO, "executed_by": "user-1"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "success"
        assert data["workflow_id"] == "wf-1"
        assert data["executed_by"] == "user-1"
        assert [s["node_id"] for s in data["steps"]] == ["n2", "n3"]
        assert recorder.calls == ["n3"]

    def test_execute_free_plan_skips_email(self, client, recorder):
        resp = client.post("/v1/workflows/wf-1/execute", json={"payload": {"plan": "free"}})
        assert resp.status_code == 200
        assert [s["node_id"] for s in resp.json()["steps"]] == ["n2"]
        assert recorder.calls == []

    def test_unknown_workflow_404(self, client):
        resp = client.post("/v1/workflows/nope/execute", json={})
        assert resp.status_code == 404
        assert "not found" in resp.json()["error"]

    def test_inactive_workflow_409(self, client, workflow_source):
        workflow_source.add(signup_graph(id="wf-off", status=WorkflowStatus.INACTIVE))
        resp = client.post("/v1/workflows/wf-off/execute", json={})
        assert resp.status_code == 409

    def test_out_of_credits_402(self, client, credit_store):
        credit_store.set_balance("user-1", 0)
        resp = client.post("/v1/workflows/wf-1/execute", json={"payload": PRO})
        assert resp.status_code == 402
        assert resp.json() == {"error": "Credit limit reached. Please upgrade your plan."}

    def test_unknown_owner_404(self, client, workflow_source):
        workflow_source.add(signup_graph(id="wf-orphan", user_id="ghost"))
        resp = client.post("/v1/workflows/wf-orphan/execute", json={})
        assert resp.status_code == 404

    def test_payload_must_be_object(self, client):
        resp = client.post("/v1/workflows/wf-1/execute", json={"payload": [1, 2]})
        assert resp.status_code == 422


# ── Trigger / webhook ──────────────────────────────────────────────────────────

class TestTrigger:

    def test_trigger_acknowledges_and_runs(self, engine, log_sink, recorder):
        with TestClient(create_app(engine=engine)) as client:
            resp = client.post("/v1/workflows/wf-1/trigger", json={"payload": PRO, "executed_by": "user-1"})
            assert resp.status_code == 200
            assert resp.json() == {"message": "Workflow triggered", "workflowId": "wf-1"}
        # lifespan shutdown drains background runs
        assert recorder.calls == ["n3"]
        assert len(log_sink._logs) == 1

    def test_trigger_unknown_404(self, client):
        assert client.post("/v1/workflows/nope/trigger", json={}).status_code == 404

    def test_webhook_delivery(self, engine, log_sink, recorder):
        with TestClient(create_app(engine=engine)) as client:
            resp = client.post("/v1/webhooks/wf-1", json=PRO)
            assert resp.status_code == 200
            assert resp.json()["workflowId"] == "wf-1"
        assert recorder.calls == ["n3"]
        log = next(iter(log_sink._logs.values()))
        assert log.trigger_node_id == "n1"

    def test_webhook_unknown_404(self, client):
        assert client.post("/v1/webhooks/nope", json={}).status_code == 404


# ── Execution lookup ───────────────────────────────────────────────────────────

class TestExecutionLookup:

    def test_get_execution(self, client):
        run = client.post("/v1/workflows/wf-1/execute", json={"payload": PRO}).json()
        resp = client.get(f"/v1/executions/{run['id']}")
        assert resp.status_code == 200
        assert resp.json()["id"] == run["id"]
        assert resp.json()["status"] == "success"

    def test_get_execution_404(self, client):
        assert client.get("/v1/executions/nope").status_code == 404


# ── Conditions ─────────────────────────────────────────────────────────────────

class TestConditionValidate:

    def test_valid_config(self, client):
        resp = client.post("/v1/conditions/validate", json={
            "config": {"mode": "all", "rules": [{"left": "{{trigger.plan}}", "operator": "eq", "right": "pro"}]},
        })
        assert resp.json() == {"valid": True, "error": None}

    def test_invalid_operator(self, client):
        resp = client.post("/v1/conditions/validate", json={
            "config": {"mode": "any", "rules": [{"left": "{{a}}", "operator": "like", "right": "x"}]},
        })
        assert resp.json() == {"valid": False, "error": "Rule 0: Invalid operator 'like'"}

    def test_missing_config(self, client):
        assert client.post("/v1/conditions/validate", json={}).json()["error"] == "Config is required"
