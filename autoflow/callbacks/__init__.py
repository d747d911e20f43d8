"""Callback/hook system for autoflow run lifecycle events."""

from autoflow.callbacks.base import BaseCallback, ExecutionCallback
from autoflow.callbacks.logging import LoggingCallback

__all__ = ["ExecutionCallback", "BaseCallback", "LoggingCallback"]
