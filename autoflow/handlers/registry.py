"""Central registry of action handlers.

A handler is an async callable ``handler(action, context) -> output`` where
``action`` is the node's ActionConfig (config already merged with the node's
own data.config) and ``context`` is the run's ExecutionContext.  The output
must be JSON-serializable; it is stored under ``context.steps[node_id]``.
"""

from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional

from autoflow.exceptions import HandlerNotFound
from autoflow.types import ActionConfig, ExecutionContext

if TYPE_CHECKING:
    from autoflow.config import AutoflowConfig
    from autoflow.handlers.builtin.google_sheets import TokenProvider

Handler = Callable[[ActionConfig, ExecutionContext], Awaitable[Any]]


class HandlerRegistry:
    """Action type → handler mapping. Built once at startup, read-only afterwards."""

    def __init__(self):
        self._handlers: dict[str, Handler] = {}

    def register(self, action_type: str, handler: Handler) -> None:
        """Register *handler* for *action_type* (case-insensitive). Re-registering replaces."""
        self._handlers[action_type.strip().lower()] = handler

    def get(self, action_type: str) -> Handler:
        """Look up the handler for *action_type*.

        Raises:
            HandlerNotFound: if nothing is registered under that type.
        """
        key = (action_type or "").strip().lower()
        if key not in self._handlers:
            raise HandlerNotFound(action_type)
        return self._handlers[key]

    def list_types(self) -> list[str]:
        return sorted(self._handlers)

    def __contains__(self, action_type: object) -> bool:
        return isinstance(action_type, str) and action_type.strip().lower() in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)


def build_default_registry(
    settings: Optional["AutoflowConfig"] = None,
    token_provider: Optional["TokenProvider"] = None,
) -> HandlerRegistry:
    """Registry with every built-in handler wired from *settings*."""
    from autoflow.config import config as default_config
    from autoflow.handlers.builtin.condition import ConditionHandler
    from autoflow.handlers.builtin.delay import delay_handler
    from autoflow.handlers.builtin.email import EmailHandler
    from autoflow.handlers.builtin.google_sheets import GoogleSheetsHandler
    from autoflow.handlers.builtin.schedule import schedule_handler
    from autoflow.handlers.builtin.webhook import WebhookHandler

    settings = settings or default_config
    missing = settings.template_missing_policy

    registry = HandlerRegistry()
    registry.register("condition", ConditionHandler(missing=missing))
    registry.register("webhook", WebhookHandler(
        timeout=settings.webhook_timeout_seconds, missing=missing,
    ))
    registry.register("schedule", schedule_handler)
    registry.register("email", EmailHandler(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_user,
        password=settings.smtp_password,
        sender=settings.smtp_from or settings.smtp_user,
        sender_name=settings.smtp_from_name,
        missing=missing,
    ))
    registry.register("google_sheets", GoogleSheetsHandler(
        token_provider=token_provider,
        base_url=settings.google_sheets_base_url,
        timeout=settings.webhook_timeout_seconds,
        missing=missing,
    ))
    registry.register("delay", delay_handler)
    return registry
