"""Graph walker: executes one node, records it, then recurses into the selected edges.

Traversal is sequential depth-first, left-to-right over the edge list.  A
node reachable over two paths runs once per path unless memoization is on.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

from autoflow.exceptions import ExecutionBudgetExceeded, NodeTimeout
from autoflow.handlers.registry import Handler, HandlerRegistry
from autoflow.types import (
    ActionConfig,
    Edge,
    ExecutionContext,
    ExecutionLog,
    ExecutionStep,
    Node,
    StepStatus,
    WorkflowGraph,
)
from autoflow.workflows.conditions import decode_condition_config, mask_sensitive_fields
from autoflow.workflows.dag import (
    get_children,
    is_condition_node,
    is_trigger_node,
    resolve_action_type,
    select_branch_edges,
    unconditional_edges,
)

logger = logging.getLogger(__name__)

StepListener = Callable[[ExecutionStep], Awaitable[None]]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class GraphWalker:
    """Walks one run's graph. Owns the visit counter; the only writer of ``context.steps``.

    Args:
        graph:         The workflow being run (read-only).
        registry:      Handler lookup by action type.
        context:       The run's ExecutionContext.
        log:           The run's ExecutionLog; steps are appended as nodes finish.
        node_timeout:  Per-handler timeout in seconds, None disables.
        max_visits:    Node-visit budget for the whole run.
        memoize:       Execute each node at most once per run.
        on_step:       Awaited after every logged step.
    """

    def __init__(
        self,
        graph: WorkflowGraph,
        registry: HandlerRegistry,
        context: ExecutionContext,
        log: ExecutionLog,
        node_timeout: Optional[float] = None,
        max_visits: int = 1000,
        memoize: bool = False,
        on_step: Optional[StepListener] = None,
    ):
        self.graph = graph
        self.registry = registry
        self.context = context
        self.log = log
        self.node_timeout = node_timeout
        self.max_visits = max_visits
        self.memoize = memoize
        self.on_step = on_step
        self.visits = 0
        self._executed: set[str] = set()

    async def walk(self, start_node_id: str) -> None:
        """Execute from the start node. Raises whatever a handler raised."""
        await self._visit(start_node_id, is_start=True)

    # ── Per-node ─────────────────────────────────────────────────────────────

    async def _visit(self, node_id: str, is_start: bool = False) -> None:
        node = self.graph.get_node(node_id)
        if node is None:
            logger.warning(f"[Walker] Edge target '{node_id}' is not a node, ignoring")
            return

        if self.memoize and node_id in self._executed:
            logger.debug(f"[Walker] Node '{node_id}' already executed, skipping revisit")
            return
        self._executed.add(node_id)

        self.visits += 1
        if self.visits > self.max_visits:
            raise ExecutionBudgetExceeded(
                f"Run exceeded max_node_visits={self.max_visits}",
                visits=self.visits,
            )

        action = self.graph.get_action(node_id)
        action_type = resolve_action_type(node, action)
        as_trigger = is_start and is_trigger_node(node, action_type)
        if as_trigger:
            self.log.trigger_node_id = node.id

        if action_type is None:
            logger.warning(f"[Walker] Node '{node.id}' has no resolvable action type, skipped")
            if not as_trigger:
                step = ExecutionStep(
                    node_id=node.id,
                    step_name=node.label,
                    status=StepStatus.SKIPPED,
                    completed_at=_now(),
                )
                await self._record(step)
            for edge in unconditional_edges(node.id, self.graph.edges):
                await self._visit(edge.target)
            return

        if action is None and not as_trigger:
            logger.warning(f"[Walker] Node '{node.id}' has no action config, running with empty config")

        merged = ActionConfig(
            node_id=node.id,
            type=action.type if action is not None and action.type else action_type,
            service=action.service if action is not None else None,
            config={**node.data.config, **(action.config if action is not None else {})},
        )

        step = ExecutionStep(node_id=node.id, step_name=node.label, action_type=action_type)
        logger.info(f"[Walker] Executing node '{node.id}' type={action_type}")
        try:
            handler = self.registry.get(action_type)
            output = await self._dispatch(handler, merged, action_type)
        except Exception as exc:
            logger.error(f"[Walker] Node '{node.id}' ({action_type}) failed: {exc}")
            step.status = StepStatus.FAILED
            step.error_message = str(exc)
            step.completed_at = _now()
            if not as_trigger:
                await self._record(step)
            raise

        self.context.steps[node.id] = output
        step.status = StepStatus.SUCCESS
        step.output = output
        step.completed_at = _now()

        condition = is_condition_node(node, action_type)
        if condition:
            step.evaluation = self._evaluation_summary(merged, output)
        if not as_trigger:
            await self._record(step)

        for edge in self._next_edges(node, condition, output):
            await self._visit(edge.target)

    async def _dispatch(self, handler: Handler, action: ActionConfig, action_type: str) -> Any:
        if self.node_timeout is None:
            return await handler(action, self.context)
        try:
            return await asyncio.wait_for(handler(action, self.context), timeout=self.node_timeout)
        except asyncio.TimeoutError:
            raise NodeTimeout(
                f"Node '{action.node_id}' ({action_type}) timed out after {self.node_timeout}s",
                action_type=action_type,
                timeout_seconds=self.node_timeout,
            )

    async def _record(self, step: ExecutionStep) -> None:
        self.log.steps.append(step)
        if self.on_step is not None:
            await self.on_step(step)

    # ── Edge selection ───────────────────────────────────────────────────────

    def _next_edges(self, node: Node, condition: bool, output: Any) -> list[Edge]:
        if not condition:
            return [e for _, e in get_children(node.id, self.graph.edges)]

        branch = output.get("branchTaken") if isinstance(output, dict) else None
        if branch is None:
            logger.warning(f"[Walker] Condition '{node.id}' produced no branchTaken, stopping branch")
            return []

        selected = select_branch_edges(node.id, str(branch), self.graph.edges)
        if not selected:
            logger.warning(f"[Walker] Condition '{node.id}' has no edge for branch '{branch}': dead end")
        return selected

    @staticmethod
    def _evaluation_summary(action: ActionConfig, output: Any) -> dict[str, Any]:
        cfg = decode_condition_config(action.config)
        return {
            "mode": cfg.mode.value,
            "rulesCount": len(cfg.rules),
            "maskedRules": [mask_sensitive_fields(r) for r in cfg.rules],
            "result": output.get("result") if isinstance(output, dict) else None,
        }
