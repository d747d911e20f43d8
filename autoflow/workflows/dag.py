"""
DAG utilities for workflow graph traversal.

All functions operate on Node / Edge lists (or a WorkflowGraph) and are pure
(no side effects, no I/O) so they can be called safely from the validator,
the graph walker and the CLI alike.
"""

from __future__ import annotations

import re
from collections import deque
from typing import Optional

from autoflow.exceptions import WorkflowValidationError
from autoflow.types import (
    TRIGGER_ACTION_TYPES,
    ActionConfig,
    Edge,
    Node,
    NodeKind,
    WorkflowGraph,
)

_WHITESPACE_RE = re.compile(r"\s+")


# ── Traversal helpers ─────────────────────────────────────────────────────────


def get_entry_points(nodes: list[Node], edges: list[Edge]) -> list[str]:
    """Return node IDs with no incoming edges (DAG roots)."""
    target_ids = {e.target for e in edges}
    return [n.id for n in nodes if n.id not in target_ids]


def get_children(node_id: str, edges: list[Edge]) -> list[tuple[str, Edge]]:
    """Return (target_id, edge) pairs for all outgoing edges of node_id, in list order."""
    return [(e.target, e) for e in edges if e.source == node_id]


def get_parents(node_id: str, edges: list[Edge]) -> list[tuple[str, Edge]]:
    """Return (source_id, edge) pairs for all incoming edges of node_id."""
    return [(e.source, e) for e in edges if e.target == node_id]


# ── Topological sort (Kahn's algorithm) ──────────────────────────────────────


def topological_sort(nodes: list[Node], edges: list[Edge]) -> list[str]:
    """
    Return node IDs in topological order.

    Raises:
        WorkflowValidationError: if the graph contains a cycle.
    """
    node_ids = [n.id for n in nodes]
    if not node_ids:
        return []

    in_degree: dict[str, int] = {nid: 0 for nid in node_ids}
    adjacency: dict[str, list[str]] = {nid: [] for nid in node_ids}

    for edge in edges:
        # Dangling endpoints are the validator's concern
        if edge.source in adjacency and edge.target in in_degree:
            adjacency[edge.source].append(edge.target)
            in_degree[edge.target] += 1

    queue: deque[str] = deque(nid for nid in node_ids if in_degree[nid] == 0)
    order: list[str] = []

    while queue:
        current = queue.popleft()
        order.append(current)
        for child in adjacency[current]:
            in_degree[child] -= 1
            if in_degree[child] == 0:
                queue.append(child)

    if len(order) != len(set(node_ids)):
        visited = set(order)
        cycle_nodes = [nid for nid in node_ids if nid not in visited]
        raise WorkflowValidationError(
            f"Cycle detected in workflow graph. Involved node IDs: {cycle_nodes}",
            violations=[f"Cycle includes nodes: {cycle_nodes}"],
        )

    return order


# ── Node classification ───────────────────────────────────────────────────────


def resolve_action_type(node: Node, action: Optional[ActionConfig] = None) -> Optional[str]:
    """
    Resolve the handler key for *node*.

    Precedence: ``data.action_type`` (lower-cased), then the label
    (lower-cased, whitespace → ``_``), then the legacy ``action.type``.
    Returns None when nothing resolves.
    """
    if node.data.action_type:
        return node.data.action_type.strip().lower()
    if node.data.label and node.data.label.strip():
        return _WHITESPACE_RE.sub("_", node.data.label.strip().lower())
    if action is not None and action.type:
        return action.type.strip().lower()
    return None


def node_kind(node: Node, action_type: Optional[str]) -> NodeKind:
    if node.type == NodeKind.TRIGGER.value:
        return NodeKind.TRIGGER
    if node.type == NodeKind.CONDITION.value or action_type == NodeKind.CONDITION.value:
        return NodeKind.CONDITION
    return NodeKind.ACTION


def is_trigger_node(node: Node, action_type: Optional[str]) -> bool:
    """A start node counts as the run's trigger when typed so or bound to a trigger handler."""
    return node.type == NodeKind.TRIGGER.value or action_type in TRIGGER_ACTION_TYPES


def is_condition_node(node: Node, action_type: Optional[str]) -> bool:
    return node_kind(node, action_type) == NodeKind.CONDITION


def find_trigger_node(graph: WorkflowGraph) -> Optional[Node]:
    """First node whose action type is ``webhook``, else the first node."""
    for node in graph.nodes:
        if node.data.action_type and node.data.action_type.strip().lower() == "webhook":
            return node
    return graph.nodes[0] if graph.nodes else None


# ── Edge selection ────────────────────────────────────────────────────────────


def branch_handle(node_id: str, branch: str) -> str:
    return f"{node_id}-{branch}"


def select_branch_edges(node_id: str, branch: str, edges: list[Edge]) -> list[Edge]:
    """
    Outgoing edges of a condition node for the taken *branch* ("true"/"false").

    Matches ``source_handle == "<nodeId>-<branch>"``; when nothing matches,
    falls back to edges whose id contains ``-<branch>-``.  May be empty.
    """
    outgoing = [e for _, e in get_children(node_id, edges)]
    handle = branch_handle(node_id, branch)
    selected = [e for e in outgoing if e.source_handle == handle]
    if selected:
        return selected
    marker = f"-{branch}-"
    return [e for e in outgoing if marker in e.id]


def unconditional_edges(node_id: str, edges: list[Edge]) -> list[Edge]:
    """Outgoing edges that carry no branch tag."""
    return [e for _, e in get_children(node_id, edges) if not e.source_handle]
