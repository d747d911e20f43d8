"""Structured JSON logging callback for run lifecycle events."""

import json
import logging
from datetime import datetime, timezone
from typing import Any

from autoflow.callbacks.base import BaseCallback
from autoflow.types import ExecutionLog, ExecutionStep

logger = logging.getLogger("autoflow.audit")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class LoggingCallback(BaseCallback):
    """Emits one JSON log line per lifecycle event.

    Each line is a self-contained JSON object with ``event``, ``ts`` and the
    fields relevant to that event.  INFO for normal events, ERROR for failed
    runs.  Logger name: autoflow.audit (configure in your logging setup).

        engine = WorkflowEngine(..., callbacks=[LoggingCallback()])
    """

    async def on_run_started(self, log: ExecutionLog, **kwargs: Any) -> None:
        logger.info(json.dumps({
            "event": "run_started",
            "ts": _now(),
            "execution_id": log.id,
            "workflow_id": log.workflow_id,
            "executed_by": log.executed_by,
        }))

    async def on_step_completed(self, log: ExecutionLog, step: ExecutionStep, **kwargs: Any) -> None:
        logger.info(json.dumps({
            "event": "step_completed",
            "ts": _now(),
            "execution_id": log.id,
            "node_id": step.node_id,
            "action_type": step.action_type,
            "status": step.status.value,
            "error": step.error_message,
        }))

    async def on_run_completed(self, log: ExecutionLog, **kwargs: Any) -> None:
        logger.info(json.dumps({
            "event": "run_completed",
            "ts": _now(),
            "execution_id": log.id,
            "workflow_id": log.workflow_id,
            "status": log.status.value,
            "step_count": len(log.steps),
        }))

    async def on_run_failed(self, log: ExecutionLog, error: Exception, **kwargs: Any) -> None:
        logger.error(json.dumps({
            "event": "run_failed",
            "ts": _now(),
            "execution_id": log.id,
            "workflow_id": log.workflow_id,
            "error_type": type(error).__name__ if error is not None else None,
            "error": log.error_message,
            "step_count": len(log.steps),
        }))
