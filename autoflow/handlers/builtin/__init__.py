"""Built-in action handlers. build_default_registry() wires them by action type."""

from autoflow.handlers.builtin.condition import ConditionHandler
from autoflow.handlers.builtin.delay import delay_handler
from autoflow.handlers.builtin.email import EmailHandler
from autoflow.handlers.builtin.google_sheets import GoogleSheetsHandler, TokenProvider
from autoflow.handlers.builtin.schedule import schedule_handler
from autoflow.handlers.builtin.webhook import WebhookHandler

__all__ = [
    "ConditionHandler",
    "WebhookHandler",
    "EmailHandler",
    "GoogleSheetsHandler",
    "TokenProvider",
    "schedule_handler",
    "delay_handler",
]
