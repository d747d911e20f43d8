"""
WorkflowValidator: load-time checker for WorkflowGraph.

Every check is a non-destructive read of the graph.  Warnings (soft issues)
are returned with a "WARNING:" prefix so callers can choose to treat them
differently from hard errors.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from pydantic import BaseModel, ValidationError

from autoflow.exceptions import WorkflowValidationError
from autoflow.types import (
    DelayConfig,
    EmailConfig,
    GoogleSheetsConfig,
    ScheduleConfig,
    WebhookConfig,
    WorkflowGraph,
)

from .conditions import validate_condition_config
from .dag import get_children, is_condition_node, is_trigger_node, resolve_action_type, topological_sort

if TYPE_CHECKING:
    from autoflow.handlers.registry import HandlerRegistry


# Action type → typed config model. Condition configs go through
# validate_condition_config() so the editor gets its rule-indexed messages.
CONFIG_MODELS: dict[str, type[BaseModel]] = {
    "email": EmailConfig,
    "google_sheets": GoogleSheetsConfig,
    "webhook": WebhookConfig,
    "schedule": ScheduleConfig,
    "delay": DelayConfig,
}


def effective_config(graph: WorkflowGraph, node_id: str) -> dict[str, Any]:
    """node.data.config overlaid with the node's ActionConfig.config (action wins)."""
    node = graph.get_node(node_id)
    action = graph.get_action(node_id)
    merged: dict[str, Any] = dict(node.data.config) if node is not None else {}
    if action is not None:
        merged.update(action.config)
    return merged


class WorkflowValidator:
    """
    Validates a WorkflowGraph before it is run.

    Usage::

        validator = WorkflowValidator()
        errors = validator.validate(graph, registry=registry)
        hard_errors = [e for e in errors if not e.startswith("WARNING:")]

    All checks are run even if earlier ones fail, so callers get the full
    error list in one shot.
    """

    def validate(
        self,
        graph: WorkflowGraph,
        registry: Optional["HandlerRegistry"] = None,
        max_nodes: int = 200,
    ) -> list[str]:
        """
        Run all checks on a WorkflowGraph.

        Args:
            graph:     The workflow to validate.
            registry:  Optional HandlerRegistry; skips the handler check if None.
            max_nodes: Maximum allowed nodes.

        Returns:
            List of error strings.  Empty list means the graph is valid.
            Items prefixed "WARNING:" are soft warnings, not hard failures.
        """
        errors: list[str] = []
        nodes = graph.nodes
        node_ids = [n.id for n in nodes]
        known = set(node_ids)

        # ── Node set ──────────────────────────────────────────────────────────
        if not nodes:
            errors.append("Workflow has no nodes.")
        seen: set[str] = set()
        for nid in node_ids:
            if nid in seen:
                errors.append(f"Duplicate node id '{nid}'.")
            seen.add(nid)
        if len(nodes) > max_nodes:
            errors.append(f"Workflow has {len(nodes)} nodes; maximum allowed is {max_nodes}.")

        # ── Edge validity ─────────────────────────────────────────────────────
        valid_edges = []
        for edge in graph.edges:
            edge_ok = True
            if edge.source not in known:
                errors.append(
                    f"Edge '{edge.id}': source '{edge.source}' references a node that does not exist."
                )
                edge_ok = False
            if edge.target not in known:
                errors.append(
                    f"Edge '{edge.id}': target '{edge.target}' references a node that does not exist."
                )
                edge_ok = False
            if edge_ok:
                valid_edges.append(edge)

        # ── Acyclicity ────────────────────────────────────────────────────────
        try:
            topological_sort(nodes, valid_edges)
        except WorkflowValidationError as exc:
            errors.extend(exc.violations)

        # ── Action configs ────────────────────────────────────────────────────
        for action in graph.actions:
            if action.node_id not in known:
                errors.append(
                    f"Action config for node '{action.node_id}' references a node that does not exist."
                )

        # ── Per-node handler + config checks ──────────────────────────────────
        for node in nodes:
            action = graph.get_action(node.id)
            action_type = resolve_action_type(node, action)
            if action_type is None:
                # Skipped at run time, nothing to check
                continue

            if registry is not None and action_type not in registry:
                errors.append(f"Node '{node.id}': No handler registered for action type: {action_type}")

            if action is None and not is_trigger_node(node, action_type):
                errors.append(
                    f"WARNING: Node '{node.id}' has no action config; it will run with an empty config."
                )

            cfg = effective_config(graph, node.id)

            if is_condition_node(node, action_type):
                result = validate_condition_config(cfg)
                if not result.valid:
                    errors.append(f"Node '{node.id}': {result.error}")
                branch_edges = [
                    e for _, e in get_children(node.id, valid_edges)
                    if e.source_handle or "-true-" in e.id or "-false-" in e.id
                ]
                if not branch_edges:
                    errors.append(
                        f"WARNING: Condition node '{node.id}' has no branch-tagged outgoing edges."
                    )
                continue

            model = CONFIG_MODELS.get(action_type)
            if model is None or (action is None and not node.data.config):
                continue
            try:
                model.model_validate(cfg)
            except ValidationError as exc:
                for err in exc.errors():
                    loc = ".".join(str(p) for p in err["loc"]) or "config"
                    errors.append(f"Node '{node.id}' ({action_type}): {loc}: {err['msg']}")

        return errors

    def hard_errors(self, errors: list[str]) -> list[str]:
        return [e for e in errors if not e.startswith("WARNING:")]

    def check(
        self,
        graph: WorkflowGraph,
        registry: Optional["HandlerRegistry"] = None,
        max_nodes: int = 200,
    ) -> list[str]:
        """validate() that raises on hard errors and returns the warnings.

        Raises:
            WorkflowValidationError: if any hard error is found.
        """
        errors = self.validate(graph, registry=registry, max_nodes=max_nodes)
        hard = self.hard_errors(errors)
        if hard:
            raise WorkflowValidationError(
                f"Workflow '{graph.id}' is invalid: " + "; ".join(hard),
                violations=hard,
            )
        return [e for e in errors if e.startswith("WARNING:")]
