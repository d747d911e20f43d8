"""Workflow engine. Entry point for every run.

Orchestrates: allocate log → validate graph → consume credit → build context
→ walk from the trigger node → finalize and persist the log.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from autoflow.config import AutoflowConfig
from autoflow.core.context import build_initial_context
from autoflow.core.credits import CreditStore
from autoflow.core.executor import GraphWalker
from autoflow.core.sinks import LogSink
from autoflow.core.sources import WorkflowSource
from autoflow.exceptions import (
    CreditError,
    RunTimeout,
    WorkflowInactive,
    WorkflowNotFound,
    WorkflowValidationError,
)
from autoflow.handlers.registry import HandlerRegistry, build_default_registry
from autoflow.types import (
    ExecutionLog,
    ExecutionStatus,
    ExecutionStep,
    WorkflowGraph,
    WorkflowStatus,
)
from autoflow.workflows.dag import find_trigger_node
from autoflow.workflows.validator import WorkflowValidator

logger = logging.getLogger(__name__)


class WorkflowEngine:
    """Single entry point for running workflows.

    Constructor dependencies (all optional, injected):
        - registry: HandlerRegistry (default: build_default_registry(settings))
        - credit_store: CreditStore; None disables metering
        - log_sink: LogSink; None keeps logs only in the returned object
        - workflow_source: WorkflowSource, needed by run_workflow()/trigger()
        - callbacks: async callables ``cb(event, data)``
        - settings: AutoflowConfig
    """

    def __init__(
        self,
        registry: Optional[HandlerRegistry] = None,
        credit_store: Optional[CreditStore] = None,
        log_sink: Optional[LogSink] = None,
        workflow_source: Optional[WorkflowSource] = None,
        callbacks: Optional[list] = None,
        settings: Optional[AutoflowConfig] = None,
    ):
        if settings is None:
            from autoflow.config import config as settings
        self.settings = settings
        self.registry = registry or build_default_registry(settings)
        self.credit_store = credit_store
        self.log_sink = log_sink
        self.workflow_source = workflow_source
        self.callbacks = list(callbacks or [])
        self.validator = WorkflowValidator()
        self._background: set[asyncio.Task] = set()

    # ── Runs ─────────────────────────────────────────────────────────────────

    async def run(
        self,
        graph: WorkflowGraph,
        trigger_payload: Optional[dict] = None,
        executed_by: Optional[str] = None,
        organization_id: Optional[str] = None,
    ) -> ExecutionLog:
        """Run *graph* once for *trigger_payload* and return the finalized log.

        Raises:
            InsufficientCredits / UserNotFound: the owner cannot be billed;
                no node runs and no log is persisted.

        Every other failure (invalid graph, handler error, timeout) ends up
        in the returned log as ``status=failed`` with ``error_message`` set.
        """
        log = ExecutionLog(
            workflow_id=graph.id,
            organization_id=organization_id or graph.organization_id,
            executed_by=executed_by,
        )
        logger.info(f"[Engine] run() wf={graph.id} execution={log.id} nodes={len(graph.nodes)}")
        await self._fire_callbacks("run_started", {"log": log})

        errors = self.validator.validate(
            graph, registry=self.registry, max_nodes=self.settings.max_workflow_nodes,
        )
        for warning in errors:
            if warning.startswith("WARNING:"):
                logger.warning(f"[Engine] wf={graph.id} {warning}")
        hard = self.validator.hard_errors(errors)
        if hard:
            exc = WorkflowValidationError(
                f"Workflow validation failed: {'; '.join(hard)}", violations=hard,
            )
            return await self._finish(log, exc)

        if self.credit_store is not None:
            try:
                remaining = await self.credit_store.check_and_consume(graph.user_id)
            except CreditError as exc:
                logger.info(f"[Engine] wf={graph.id} not started: {exc}")
                await self._fire_callbacks("run_failed", {"log": log, "error": exc})
                raise
            logger.debug(f"[Engine] user={graph.user_id} credits remaining={remaining}")

        context = build_initial_context(trigger_payload or {}, graph, log.organization_id)
        trigger_node = find_trigger_node(graph)
        if trigger_node is None:
            return await self._finish(
                log, WorkflowValidationError("Workflow has no nodes", violations=["no nodes"]),
            )

        walker = GraphWalker(
            graph,
            self.registry,
            context,
            log,
            node_timeout=self.settings.node_timeout_seconds,
            max_visits=self.settings.max_node_visits,
            memoize=self.settings.memoize_node_visits,
            on_step=self._on_step(log),
        )

        error: Optional[Exception] = None
        try:
            await self._walk(walker, trigger_node.id)
        except Exception as exc:
            logger.error(f"[Engine] wf={graph.id} execution={log.id} failed: {exc}")
            error = exc
        return await self._finish(log, error)

    async def _walk(self, walker: GraphWalker, start_node_id: str) -> None:
        timeout = self.settings.run_timeout_seconds
        if timeout is None:
            await walker.walk(start_node_id)
            return
        try:
            await asyncio.wait_for(walker.walk(start_node_id), timeout=timeout)
        except asyncio.TimeoutError:
            raise RunTimeout(f"Run exceeded run_timeout_seconds={timeout}")

    async def _finish(self, log: ExecutionLog, error: Optional[Exception]) -> ExecutionLog:
        if error is None:
            log.status = ExecutionStatus.SUCCESS
        else:
            log.status = ExecutionStatus.FAILED
            log.error_message = str(error)
        log.finished_at = datetime.now(timezone.utc)

        if self.log_sink is not None:
            try:
                await self.log_sink.save(log)
            except Exception:
                logger.exception(f"[Engine] Saving execution log {log.id} failed")

        logger.info(
            f"[Engine] execution={log.id} finished: status={log.status.value} steps={len(log.steps)}"
        )
        if error is None:
            await self._fire_callbacks("run_completed", {"log": log})
        else:
            await self._fire_callbacks("run_failed", {"log": log, "error": error})
        return log

    def _on_step(self, log: ExecutionLog):
        async def _listener(step: ExecutionStep) -> None:
            await self._fire_callbacks("step_completed", {"log": log, "step": step})
        return _listener

    # ── Stored workflows ─────────────────────────────────────────────────────

    async def load_workflow(self, workflow_id: str) -> WorkflowGraph:
        """Fetch an ACTIVE workflow from the workflow source.

        Raises:
            WorkflowNotFound: unknown id, or no workflow source configured.
            WorkflowInactive: the workflow is not ACTIVE.
        """
        if self.workflow_source is None:
            raise WorkflowNotFound(
                "WorkflowEngine has no workflow_source configured.", workflow_id=workflow_id,
            )
        graph = await self.workflow_source.get_workflow(workflow_id)
        if graph is None:
            raise WorkflowNotFound(f"Workflow '{workflow_id}' not found", workflow_id=workflow_id)
        if graph.status != WorkflowStatus.ACTIVE:
            raise WorkflowInactive(
                f"Workflow '{workflow_id}' is not active (status={graph.status.value})",
                workflow_id=workflow_id,
            )
        return graph

    async def run_workflow(
        self,
        workflow_id: str,
        trigger_payload: Optional[dict] = None,
        executed_by: Optional[str] = None,
        organization_id: Optional[str] = None,
    ) -> ExecutionLog:
        """Load a stored workflow and run it. See run()."""
        graph = await self.load_workflow(workflow_id)
        return await self.run(graph, trigger_payload, executed_by, organization_id)

    async def trigger(
        self,
        workflow_id: str,
        trigger_payload: Optional[dict] = None,
        executed_by: Optional[str] = None,
        organization_id: Optional[str] = None,
    ) -> dict[str, Any]:
        """Fire-and-forget: check the workflow exists, schedule the run, acknowledge.

        Raises:
            WorkflowNotFound / WorkflowInactive before anything is scheduled.
        """
        graph = await self.load_workflow(workflow_id)
        task = asyncio.create_task(
            self._run_background(graph, trigger_payload, executed_by, organization_id)
        )
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return {"message": "Workflow triggered", "workflowId": workflow_id}

    async def _run_background(
        self,
        graph: WorkflowGraph,
        trigger_payload: Optional[dict],
        executed_by: Optional[str],
        organization_id: Optional[str],
    ) -> None:
        try:
            await self.run(graph, trigger_payload, executed_by, organization_id)
        except Exception as exc:
            logger.error(f"[Engine] Background run of wf={graph.id} failed: {exc}")

    async def drain(self) -> None:
        """Wait for every run scheduled by trigger() to finish."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # ── Callbacks ────────────────────────────────────────────────────────────

    async def _fire_callbacks(self, event: str, data: dict) -> None:
        """Invoke all registered callbacks for a lifecycle event."""
        for cb in self.callbacks:
            try:
                result = cb(event, data)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as cb_exc:
                logger.warning(f"[Engine] Callback error on '{event}': {cb_exc}")
