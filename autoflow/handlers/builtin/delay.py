"""Delay handler: suspends the run for ``ms`` milliseconds."""

import asyncio
from typing import Any

from autoflow.types import ActionConfig, DelayConfig, ExecutionContext


async def delay_handler(action: ActionConfig, context: ExecutionContext) -> dict[str, Any]:
    cfg = DelayConfig.model_validate(action.config)
    await asyncio.sleep(cfg.ms / 1000)
    return {"delayedMs": cfg.ms}
