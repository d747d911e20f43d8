"""autoflow: Graph-based workflow automation engine.

Usage:
    from autoflow import WorkflowEngine, WorkflowGraph

    engine = WorkflowEngine()
    log = await engine.run(WorkflowGraph.model_validate(doc), {"plan": "pro"})
"""

from autoflow.types import (
    ActionConfig, ConditionConfig, ConditionRule, Edge, ExecutionContext,
    ExecutionLog, ExecutionStatus, ExecutionStep, MissingPathPolicy, Node,
    NodeData, Operator, StepStatus, WorkflowGraph, WorkflowStatus,
)
from autoflow.exceptions import (
    AutoflowError, WorkflowError, WorkflowNotFound, WorkflowInactive,
    WorkflowValidationError, ConditionConfigError, HandlerNotFound,
    HandlerError, NodeTimeout, ExecutionBudgetExceeded, RunTimeout,
    CreditError, InsufficientCredits, UserNotFound,
)
from autoflow.core.engine import WorkflowEngine
from autoflow.handlers.registry import HandlerRegistry, build_default_registry
from autoflow.version import __version__

__all__ = [
    "ActionConfig", "ConditionConfig", "ConditionRule", "Edge", "ExecutionContext",
    "ExecutionLog", "ExecutionStatus", "ExecutionStep", "MissingPathPolicy", "Node",
    "NodeData", "Operator", "StepStatus", "WorkflowGraph", "WorkflowStatus",
    "AutoflowError", "WorkflowError", "WorkflowNotFound", "WorkflowInactive",
    "WorkflowValidationError", "ConditionConfigError", "HandlerNotFound",
    "HandlerError", "NodeTimeout", "ExecutionBudgetExceeded", "RunTimeout",
    "CreditError", "InsufficientCredits", "UserNotFound",
    "WorkflowEngine", "HandlerRegistry", "build_default_registry",
    "__version__",
]
