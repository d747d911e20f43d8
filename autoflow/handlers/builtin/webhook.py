"""Webhook handler.

Two roles, picked by config:
  - no ``url``: the node is the run's webhook trigger and echoes the
    delivered payload.
  - ``url`` set: outbound HTTP request with a templated body (default: the
    trigger payload).
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from autoflow.exceptions import HandlerError
from autoflow.types import ActionConfig, ExecutionContext, MissingPathPolicy, WebhookConfig
from autoflow.workflows.templates import resolve_template, resolve_value

logger = logging.getLogger(__name__)


class WebhookHandler:

    def __init__(self, timeout: float = 30.0, missing: MissingPathPolicy = MissingPathPolicy.EMPTY):
        self.timeout = timeout
        self.missing = missing

    async def __call__(self, action: ActionConfig, context: ExecutionContext) -> dict[str, Any]:
        cfg = WebhookConfig.model_validate(action.config)
        if not cfg.url:
            return self._echo(context)
        return await self._send(cfg, context)

    def _echo(self, context: ExecutionContext) -> dict[str, Any]:
        if context.webhook is None:
            raise HandlerError("No webhook payload found in context", action_type="webhook")
        return {
            "payload": context.webhook,
            "receivedAt": datetime.now(timezone.utc).isoformat(),
            "source": (context.trigger or {}).get("_source") or "webhook",
        }

    async def _send(self, cfg: WebhookConfig, context: ExecutionContext) -> dict[str, Any]:
        url = resolve_template(cfg.url, context, self.missing)
        headers = {k: resolve_template(v, context, self.missing) for k, v in cfg.headers.items()}
        body = context.trigger if cfg.body is None else resolve_value(cfg.body, context, self.missing)

        request_kwargs: dict[str, Any] = {"headers": headers}
        if cfg.method.upper() not in ("GET", "DELETE", "HEAD"):
            if isinstance(body, (dict, list)):
                request_kwargs["json"] = body
            elif body is not None:
                request_kwargs["content"] = str(body)

        logger.info(f"[Webhook] {cfg.method.upper()} {url}")
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(cfg.method.upper(), url, **request_kwargs)
        except httpx.HTTPError as exc:
            raise HandlerError(f"Webhook request to {url} failed: {exc}", action_type="webhook") from exc

        if response.status_code >= 400:
            raise HandlerError(
                f"Webhook request to {url} returned HTTP {response.status_code}",
                action_type="webhook",
                details={"status_code": response.status_code, "body": response.text[:500]},
            )

        try:
            payload: Any = response.json()
        except (json.JSONDecodeError, ValueError):
            payload = response.text
        return {"status_code": response.status_code, "body": payload}
