"""Trigger payload shapes.

Each trigger source merges its own ``_``-prefixed metadata into the payload
it hands to the engine; templates can read both the user data and the
metadata (``{{_source}}``, ``{{trigger._triggeredAt}}``).
"""

from datetime import datetime, timezone
from typing import Any, Optional


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_webhook_payload(workflow_id: str, body: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    """Payload for an unauthenticated (secret-matched) webhook delivery."""
    return {
        **(body or {}),
        "_workflowId": workflow_id,
        "_triggeredAt": _now_iso(),
        "_source": "public_webhook",
    }


def build_manual_payload(
    workflow_id: str,
    body: Optional[dict[str, Any]] = None,
    triggered_by: Optional[str] = None,
    organization_id: Optional[str] = None,
) -> dict[str, Any]:
    """Payload for an authenticated user pressing "run"."""
    return {
        **(body or {}),
        "_workflowId": workflow_id,
        "_triggeredBy": triggered_by,
        "_organizationId": organization_id,
        "_triggeredAt": _now_iso(),
    }


def build_schedule_payload(workflow_id: str) -> dict[str, Any]:
    """Payload for a timer firing. Carries no user data."""
    return {
        "_workflowId": workflow_id,
        "_triggeredAt": _now_iso(),
        "_source": "schedule",
    }
