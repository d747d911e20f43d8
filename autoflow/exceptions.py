"""Typed exception hierarchy. Every error autoflow can raise."""


class AutoflowError(Exception):
    """Base exception for all autoflow errors."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.details = details or {}


# ── Configuration errors: fatal to the run, never retried ───────────────────


class WorkflowError(AutoflowError):
    """Base exception for all workflow-related errors."""
    pass


class WorkflowNotFound(WorkflowError):
    """Requested workflow does not exist."""
    def __init__(self, message: str, workflow_id: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.workflow_id = workflow_id


class WorkflowInactive(WorkflowError):
    """Workflow exists but is not in ACTIVE status."""
    def __init__(self, message: str, workflow_id: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.workflow_id = workflow_id


class WorkflowValidationError(WorkflowError):
    """Workflow graph is structurally invalid (cycles, dangling edges, bad configs)."""
    def __init__(self, message: str, violations: list = None, **kwargs):
        super().__init__(message, **kwargs)
        self.violations = violations or []


class ConditionConfigError(WorkflowError):
    """Condition node config cannot be decoded into mode + rules."""
    pass


class HandlerNotFound(WorkflowError):
    """No handler registered for the node's action type."""
    def __init__(self, action_type: str, **kwargs):
        super().__init__(f"No handler registered for action type: {action_type}", **kwargs)
        self.action_type = action_type


# ── Handler errors: external I/O failures, fatal to the run ─────────────────


class HandlerError(AutoflowError):
    """An action handler failed."""
    def __init__(self, message: str, action_type: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.action_type = action_type


class NodeTimeout(HandlerError):
    """A handler exceeded the per-node timeout."""
    def __init__(self, message: str, action_type: str = "", timeout_seconds: float = 0, **kwargs):
        super().__init__(message, action_type=action_type, **kwargs)
        self.timeout_seconds = timeout_seconds


# ── Runaway execution ───────────────────────────────────────────────────────


class ExecutionBudgetExceeded(AutoflowError):
    """The run visited more nodes than max_node_visits allows."""
    def __init__(self, message: str, visits: int = 0, **kwargs):
        super().__init__(message, **kwargs)
        self.visits = visits


class RunTimeout(AutoflowError):
    """The whole run exceeded run_timeout_seconds."""
    pass


# ── Resource exhaustion: the run never starts ───────────────────────────────


class CreditError(AutoflowError):
    """Credit metering failed."""
    def __init__(self, message: str, user_id: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.user_id = user_id


class InsufficientCredits(CreditError):
    """Owner has no remaining credits."""
    pass


class UserNotFound(CreditError):
    """Workflow owner does not exist in the credit store."""
    pass
