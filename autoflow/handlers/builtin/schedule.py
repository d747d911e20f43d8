"""Schedule trigger handler. Firing is external; this only records the fire."""

from datetime import datetime, timezone
from typing import Any

from autoflow.types import ActionConfig, ExecutionContext, ScheduleConfig


async def schedule_handler(action: ActionConfig, context: ExecutionContext) -> dict[str, Any]:
    cfg = ScheduleConfig.model_validate(action.config)
    fired_at = None
    if isinstance(context.trigger, dict):
        fired_at = context.trigger.get("_triggeredAt")
    return {
        "cron": cfg.cron,
        "timezone": cfg.timezone,
        "firedAt": fired_at or datetime.now(timezone.utc).isoformat(),
        "source": "schedule",
    }
