"""autoflow.core: Run orchestration, graph walking, credits and log sinks."""

from autoflow.core.context import build_initial_context
from autoflow.core.credits import CreditStore, InMemoryCreditStore
from autoflow.core.engine import WorkflowEngine
from autoflow.core.executor import GraphWalker
from autoflow.core.sinks import InMemoryLogSink, LogSink
from autoflow.core.sources import InMemoryWorkflowSource, WorkflowSource

__all__ = [
    "WorkflowEngine",
    "GraphWalker",
    "build_initial_context",
    "CreditStore",
    "InMemoryCreditStore",
    "LogSink",
    "InMemoryLogSink",
    "WorkflowSource",
    "InMemoryWorkflowSource",
]
