"""Trigger sources build the payload a run starts from."""

from autoflow.triggers.payloads import (
    build_manual_payload,
    build_schedule_payload,
    build_webhook_payload,
)

__all__ = ["build_webhook_payload", "build_manual_payload", "build_schedule_payload"]
