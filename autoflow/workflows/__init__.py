"""autoflow.workflows: Templates, conditions, graph utilities and load-time validation."""

from .conditions import evaluate_condition, validate_condition_config
from .templates import resolve_template, resolve_value
from .validator import WorkflowValidator

__all__ = [
    "WorkflowValidator",
    "evaluate_condition",
    "validate_condition_config",
    "resolve_template",
    "resolve_value",
]
