"""POST /v1/conditions/validate: static check used by the editor before saving."""

from fastapi import APIRouter

from autoflow.api.schemas import ConditionValidateRequest, ConditionValidateResponse
from autoflow.workflows.conditions import validate_condition_config

router = APIRouter(tags=["conditions"])


@router.post("/conditions/validate", response_model=ConditionValidateResponse)
async def validate_condition(body: ConditionValidateRequest):
    result = validate_condition_config(body.config)
    return ConditionValidateResponse(valid=result.valid, error=result.error)
