"""Builds the per-run ExecutionContext from a trigger payload."""

from typing import Any, Optional

from autoflow.types import ExecutionContext, ExecutionMeta, WorkflowGraph

# Keys that mark a payload as wrapped by a trigger source: {webhook: {...}, _source: ...}
_WRAPPER_KEYS = ("_source", "_workflowId", "_triggeredBy", "_organizationId")


def normalize_payload(payload: Any) -> Any:
    """Unwrap ``{"webhook": {...}, "_source": ...}`` envelopes to the inner payload."""
    if not isinstance(payload, dict):
        return {}
    inner = payload.get("webhook")
    if isinstance(inner, dict) and any(k in payload for k in _WRAPPER_KEYS):
        return inner
    return payload


def build_initial_context(
    trigger_payload: Any,
    graph: WorkflowGraph,
    organization_id: Optional[str] = None,
) -> ExecutionContext:
    """Fresh context: raw trigger, normalized webhook payload, empty steps, meta."""
    trigger = trigger_payload if isinstance(trigger_payload, dict) else {}
    return ExecutionContext(
        trigger=trigger,
        webhook=normalize_payload(trigger),
        steps={},
        meta=ExecutionMeta(
            workflow_id=graph.id,
            user_id=graph.user_id,
            organization_id=organization_id or graph.organization_id,
        ),
    )
