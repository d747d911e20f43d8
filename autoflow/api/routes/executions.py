"""Workflow run and execution-log API routes."""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from autoflow.api.schemas import ExecuteRequest, TriggerResponse
from autoflow.exceptions import (
    InsufficientCredits,
    UserNotFound,
    WorkflowInactive,
    WorkflowNotFound,
)
from autoflow.triggers.payloads import build_manual_payload, build_webhook_payload

logger = logging.getLogger(__name__)
router = APIRouter(tags=["executions"])


def _error(exc: Exception, status_code: int) -> JSONResponse:
    return JSONResponse({"error": str(exc)}, status_code=status_code)


@router.post("/workflows/{workflow_id}/execute")
async def execute_workflow(workflow_id: str, body: ExecuteRequest, request: Request):
    """Run synchronously and return the finalized execution log."""
    engine = request.app.state.engine
    payload = build_manual_payload(
        workflow_id, body.payload,
        triggered_by=body.executed_by, organization_id=body.organization_id,
    )
    try:
        log = await engine.run_workflow(
            workflow_id, payload,
            executed_by=body.executed_by, organization_id=body.organization_id,
        )
    except WorkflowNotFound as exc:
        return _error(exc, 404)
    except WorkflowInactive as exc:
        return _error(exc, 409)
    except InsufficientCredits as exc:
        return _error(exc, 402)
    except UserNotFound as exc:
        return _error(exc, 404)
    return JSONResponse(log.model_dump(mode="json"), status_code=200)


@router.post("/workflows/{workflow_id}/trigger", response_model=TriggerResponse)
async def trigger_workflow(workflow_id: str, body: ExecuteRequest, request: Request):
    """Fire-and-forget run; acknowledges before the run starts."""
    engine = request.app.state.engine
    payload = build_manual_payload(
        workflow_id, body.payload,
        triggered_by=body.executed_by, organization_id=body.organization_id,
    )
    try:
        ack = await engine.trigger(
            workflow_id, payload,
            executed_by=body.executed_by, organization_id=body.organization_id,
        )
    except WorkflowNotFound as exc:
        return _error(exc, 404)
    except WorkflowInactive as exc:
        return _error(exc, 409)
    return JSONResponse(ack, status_code=200)


@router.post("/webhooks/{workflow_id}", response_model=TriggerResponse)
async def receive_webhook(workflow_id: str, request: Request):
    """Webhook delivery: the JSON body becomes the trigger payload."""
    engine = request.app.state.engine
    try:
        body = await request.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {"body": body}

    try:
        ack = await engine.trigger(workflow_id, build_webhook_payload(workflow_id, body))
    except WorkflowNotFound as exc:
        return _error(exc, 404)
    except WorkflowInactive as exc:
        return _error(exc, 409)
    return JSONResponse(ack, status_code=200)


@router.get("/executions/{execution_id}")
async def get_execution(execution_id: str, request: Request):
    """Execution log by id."""
    sink = request.app.state.engine.log_sink
    log = await sink.get_execution_log(execution_id) if sink is not None else None
    if log is None:
        return JSONResponse({"error": f"Execution '{execution_id}' not found"}, status_code=404)
    return JSONResponse(log.model_dump(mode="json"), status_code=200)
