"""Pydantic models for API request/response."""

from pydantic import BaseModel, Field
from typing import Any, Optional


# ── Requests ──

class ExecuteRequest(BaseModel):
    payload: dict[str, Any] = Field(default_factory=dict)   # trigger payload
    executed_by: Optional[str] = None
    organization_id: Optional[str] = None


class ConditionValidateRequest(BaseModel):
    config: Any = None      # raw {mode, rules} mapping as stored by the editor


# ── Responses ──

class TriggerResponse(BaseModel):
    message: str
    workflowId: str


class ConditionValidateResponse(BaseModel):
    valid: bool
    error: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    version: str
    services: dict[str, bool]
