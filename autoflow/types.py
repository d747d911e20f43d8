"""All shared types, enums, and type aliases. Everything imports from here."""

from enum import Enum
from typing import Any, Optional
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field, field_validator
import uuid


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Enums ──────────────────────────────────────────────────────────────

class NodeKind(str, Enum):
    TRIGGER = "trigger"
    ACTION = "action"
    CONDITION = "condition"

class WorkflowStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    INACTIVE = "inactive"

class ExecutionStatus(str, Enum):
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"

class StepStatus(str, Enum):
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"     # node had no resolvable action type

class ConditionMode(str, Enum):
    ALL = "all"     # AND
    ANY = "any"     # OR

class Operator(str, Enum):
    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    EXISTS = "exists"
    NOT_EXISTS = "not_exists"
    REGEX = "regex"

class RightType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    JSON = "json"
    NULL = "null"

class MissingPathPolicy(str, Enum):
    EMPTY = "empty"     # missing path -> ""
    KEEP = "keep"       # missing path -> original {{token}}


# Action types that mark the start node as the run's trigger
TRIGGER_ACTION_TYPES = frozenset({"webhook", "schedule"})


class _CamelModel(BaseModel):
    """Accepts the editor's camelCase keys as well as snake_case names."""
    model_config = ConfigDict(populate_by_name=True)


# ── Graph ──────────────────────────────────────────────────────────────

class NodeData(_CamelModel):
    label: Optional[str] = None
    action_type: Optional[str] = Field(default=None, alias="actionType")
    config: dict[str, Any] = Field(default_factory=dict)

class Node(_CamelModel):
    """A vertex in the workflow graph. ``type`` is the editor's node type."""
    id: str
    type: str = "custom"
    data: NodeData = Field(default_factory=NodeData)

    @property
    def label(self) -> Optional[str]:
        return self.data.label

class Edge(_CamelModel):
    id: str
    source: str
    target: str
    source_handle: Optional[str] = Field(default=None, alias="sourceHandle")

class ActionConfig(_CamelModel):
    """Durable per-node configuration, merged onto the node at execution time."""
    node_id: Optional[str] = Field(default=None, alias="nodeId")
    type: Optional[str] = None
    service: Optional[str] = None
    config: dict[str, Any] = Field(default_factory=dict)

class WorkflowGraph(_CamelModel):
    """A workflow document. Read-only for the duration of a run."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    user_id: str = Field(default="", alias="userId")
    organization_id: Optional[str] = Field(default=None, alias="organizationId")
    status: WorkflowStatus = WorkflowStatus.ACTIVE
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    actions: list[ActionConfig] = Field(default_factory=list)
    triggers: Any = None

    def get_node(self, node_id: str) -> Optional[Node]:
        return next((n for n in self.nodes if n.id == node_id), None)

    def get_action(self, node_id: str) -> Optional[ActionConfig]:
        return next((a for a in self.actions if a.node_id == node_id), None)


# ── Typed action configs ───────────────────────────────────────────────

class ConditionRule(_CamelModel):
    left: str
    operator: Operator
    right: Any = None
    right_type: RightType = Field(default=RightType.STRING, alias="rightType")

    @field_validator("right_type", mode="before")
    @classmethod
    def _blank_right_type_is_string(cls, v):
        # null and "" mean "unset", matching validate_condition_config
        return RightType.STRING if v is None or v == "" else v

class ConditionConfig(_CamelModel):
    mode: ConditionMode = ConditionMode.ALL
    rules: list[ConditionRule] = Field(default_factory=list)
    name: Optional[str] = None

class ConditionValidation(BaseModel):
    valid: bool
    error: Optional[str] = None

class EmailConfig(_CamelModel):
    to: str
    subject: str = ""
    body: str = ""

class GoogleSheetsConfig(_CamelModel):
    spreadsheet_id: str = Field(alias="spreadsheetId")
    range: str
    values: Any = ""

class WebhookConfig(_CamelModel):
    url: Optional[str] = None           # unset -> trigger echo, set -> outbound request
    method: str = "POST"
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None                    # None -> POST the trigger payload

class ScheduleConfig(_CamelModel):
    cron: Optional[str] = None
    timezone: str = "UTC"

class DelayConfig(_CamelModel):
    ms: int = Field(default=1000, ge=0)


# ── Execution ──────────────────────────────────────────────────────────

class ExecutionMeta(_CamelModel):
    workflow_id: str = Field(alias="workflowId")
    user_id: str = Field(alias="userId")
    organization_id: Optional[str] = Field(default=None, alias="organizationId")
    started_at: datetime = Field(default_factory=_utcnow, alias="startedAt")

class ExecutionContext(BaseModel):
    """Per-run mutable bag. Only the graph walker writes to ``steps``."""
    trigger: Any = Field(default_factory=dict)
    webhook: Any = None                 # normalized trigger payload
    steps: dict[str, Any] = Field(default_factory=dict)
    meta: ExecutionMeta

    def scope(self) -> dict[str, Any]:
        """Template lookup root.

        Besides ``trigger``/``steps``/``meta`` this exposes the older names
        ``webhook``, ``context.payload`` and the payload's top-level keys.
        """
        flat: dict[str, Any] = {}
        if isinstance(self.trigger, dict):
            flat.update(self.trigger)
        if isinstance(self.webhook, dict):
            flat.update(self.webhook)
        flat.update({
            "trigger": self.trigger,
            "webhook": self.webhook,
            "context": {"payload": self.webhook},
            "steps": self.steps,
            "meta": self.meta.model_dump(by_alias=True, mode="json"),
        })
        return flat


class ExecutionStep(BaseModel):
    """One node visit in the execution log."""
    node_id: str
    step_name: Optional[str] = None     # node label
    action_type: Optional[str] = None
    status: StepStatus = StepStatus.RUNNING
    started_at: datetime = Field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None
    output: Any = None
    error_message: Optional[str] = None
    evaluation: Optional[dict[str, Any]] = None   # condition nodes only

class ExecutionLog(BaseModel):
    """Durable record of one run. The only artifact that outlives the run."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    workflow_id: str
    organization_id: Optional[str] = None
    executed_by: Optional[str] = None
    trigger_node_id: Optional[str] = None
    status: ExecutionStatus = ExecutionStatus.RUNNING
    started_at: datetime = Field(default_factory=_utcnow)
    finished_at: Optional[datetime] = None
    error_message: Optional[str] = None
    steps: list[ExecutionStep] = Field(default_factory=list)
