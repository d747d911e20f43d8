"""Condition handler: evaluates the node's rule set and reports the branch taken."""

import logging
from datetime import datetime, timezone
from typing import Any

from autoflow.types import ActionConfig, ExecutionContext, MissingPathPolicy
from autoflow.workflows.conditions import decode_condition_config, evaluate_condition

logger = logging.getLogger(__name__)


class ConditionHandler:
    """Output ``{result, branchTaken, evaluatedAt, rulesEvaluated}``.

    ``branchTaken`` ("true"/"false") is what the graph walker matches against
    the outgoing edges' source handles.
    """

    def __init__(self, missing: MissingPathPolicy = MissingPathPolicy.EMPTY):
        self.missing = missing

    async def __call__(self, action: ActionConfig, context: ExecutionContext) -> dict[str, Any]:
        cfg = decode_condition_config(action.config)
        result = evaluate_condition(cfg, context, missing=self.missing)
        branch = "true" if result else "false"
        logger.info(f"[Condition] node={action.node_id} mode={cfg.mode.value} "
                    f"rules={len(cfg.rules)} branch={branch}")
        return {
            "result": result,
            "branchTaken": branch,
            "evaluatedAt": datetime.now(timezone.utc).isoformat(),
            "rulesEvaluated": len(cfg.rules),
        }
