"""Workflow sources: where run_workflow() loads a graph from."""

from typing import Optional, Protocol, runtime_checkable

from autoflow.types import WorkflowGraph


@runtime_checkable
class WorkflowSource(Protocol):

    async def get_workflow(self, workflow_id: str) -> Optional[WorkflowGraph]:
        """Return the stored graph, or None if unknown."""
        ...


class InMemoryWorkflowSource:

    def __init__(self, graphs: Optional[list[WorkflowGraph]] = None):
        self._graphs: dict[str, WorkflowGraph] = {g.id: g for g in graphs or []}

    def add(self, graph: WorkflowGraph) -> None:
        self._graphs[graph.id] = graph

    async def get_workflow(self, workflow_id: str) -> Optional[WorkflowGraph]:
        return self._graphs.get(workflow_id)
