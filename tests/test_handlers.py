"""Tests for the built-in handlers and the handler registry."""

import json
from unittest.mock import AsyncMock

import aiosmtplib
import httpx
import pytest
import respx

from autoflow.exceptions import HandlerError, HandlerNotFound
from autoflow.handlers.builtin.condition import ConditionHandler
from autoflow.handlers.builtin.delay import delay_handler
from autoflow.handlers.builtin.email import EmailHandler
from autoflow.handlers.builtin.google_sheets import GoogleSheetsHandler, to_row
from autoflow.handlers.builtin.schedule import schedule_handler
from autoflow.handlers.builtin.webhook import WebhookHandler
from autoflow.handlers.registry import HandlerRegistry, build_default_registry
from autoflow.types import ActionConfig, ExecutionContext, ExecutionMeta
from conftest import PRO_RULE


def _ctx(trigger=None, user_id="user-1"):
    trigger = {"plan": "pro", "email": "ada@example.com"} if trigger is None else trigger
    return ExecutionContext(
        trigger=trigger,
        webhook=trigger,
        steps={},
        meta=ExecutionMeta(workflow_id="wf-1", user_id=user_id),
    )


def _action(node_id, config):
    return ActionConfig(node_id=node_id, config=config)


# ── Registry ─────────────────────────────────────────────────────────────────


class TestRegistry:
    def test_default_registry_has_builtins(self, settings):
        registry = build_default_registry(settings)
        assert registry.list_types() == [
            "condition", "delay", "email", "google_sheets", "schedule", "webhook",
        ]
        assert len(registry) == 6

    def test_lookup_is_case_insensitive(self):
        registry = HandlerRegistry()
        registry.register("Email", delay_handler)
        assert "EMAIL" in registry
        assert registry.get("email") is delay_handler

    def test_unknown_type_raises(self):
        with pytest.raises(HandlerNotFound) as exc_info:
            HandlerRegistry().get("fax")
        assert str(exc_info.value) == "No handler registered for action type: fax"
        assert exc_info.value.action_type == "fax"


# ── Condition ────────────────────────────────────────────────────────────────


async def test_condition_handler_reports_branch():
    handler = ConditionHandler()
    out = await handler(_action("c", {"mode": "all", "rules": [PRO_RULE]}), _ctx())
    assert out["result"] is True
    assert out["branchTaken"] == "true"
    assert out["rulesEvaluated"] == 1

    out = await handler(_action("c", {"mode": "all", "rules": [PRO_RULE]}), _ctx({"plan": "free"}))
    assert out["branchTaken"] == "false"


# ── Webhook ──────────────────────────────────────────────────────────────────


class TestWebhook:
    async def test_echoes_payload(self):
        ctx = _ctx({"a": 1, "_source": "public_webhook"})
        out = await WebhookHandler()(_action("w", {}), ctx)
        assert out["payload"] == {"a": 1, "_source": "public_webhook"}
        assert out["source"] == "public_webhook"
        assert "receivedAt" in out

    async def test_echo_source_defaults_to_webhook(self):
        out = await WebhookHandler()(_action("w", {}), _ctx({"a": 1}))
        assert out["source"] == "webhook"

    async def test_echo_without_payload_raises(self):
        ctx = ExecutionContext(trigger={}, webhook=None, meta=ExecutionMeta(workflow_id="w", user_id="u"))
        with pytest.raises(HandlerError, match="No webhook payload"):
            await WebhookHandler()(_action("w", {}), ctx)

    @respx.mock
    async def test_outbound_posts_trigger_by_default(self):
        route = respx.post("https://hooks.test/in").mock(
            return_value=httpx.Response(200, json={"received": True})
        )
        out = await WebhookHandler()(_action("w", {"url": "https://hooks.test/in"}), _ctx())
        assert out == {"status_code": 200, "body": {"received": True}}
        sent = json.loads(route.calls.last.request.content)
        assert sent == {"plan": "pro", "email": "ada@example.com"}

    @respx.mock
    async def test_outbound_templates_url_headers_and_body(self):
        route = respx.put("https://hooks.test/users/pro").mock(
            return_value=httpx.Response(204)
        )
        cfg = {
            "url": "https://hooks.test/users/{{trigger.plan}}",
            "method": "put",
            "headers": {"X-User": "{{trigger.email}}"},
            "body": {"who": "{{trigger.email}}"},
        }
        out = await WebhookHandler()(_action("w", cfg), _ctx())
        assert out["status_code"] == 204
        request = route.calls.last.request
        assert request.headers["X-User"] == "ada@example.com"
        assert json.loads(request.content) == {"who": "ada@example.com"}

    @respx.mock
    async def test_outbound_get_sends_no_body(self):
        route = respx.get("https://hooks.test/ping").mock(return_value=httpx.Response(200, text="pong"))
        out = await WebhookHandler()(_action("w", {"url": "https://hooks.test/ping", "method": "GET"}), _ctx())
        assert out["body"] == "pong"
        assert route.calls.last.request.content == b""

    @respx.mock
    async def test_outbound_error_status_raises(self):
        respx.post("https://hooks.test/in").mock(return_value=httpx.Response(500, text="down"))
        with pytest.raises(HandlerError) as exc_info:
            await WebhookHandler()(_action("w", {"url": "https://hooks.test/in"}), _ctx())
        assert exc_info.value.details["status_code"] == 500
        assert exc_info.value.details["body"] == "down"

    @respx.mock
    async def test_outbound_transport_error_raises(self):
        respx.post("https://hooks.test/in").mock(side_effect=httpx.ConnectError("refused"))
        with pytest.raises(HandlerError, match="failed"):
            await WebhookHandler()(_action("w", {"url": "https://hooks.test/in"}), _ctx())


# ── Google Sheets ────────────────────────────────────────────────────────────


SHEETS_BASE = "https://sheets.test/v4"


def _sheets(token_provider=None):
    return GoogleSheetsHandler(token_provider=token_provider, base_url=SHEETS_BASE)


class TestGoogleSheets:
    def test_to_row(self):
        assert to_row("a, b ,c") == ["a", "b", "c"]
        assert to_row(["x", 1]) == ["x", 1]
        assert to_row(None) == []
        assert to_row("") == []
        assert to_row(7) == [7]

    @respx.mock
    async def test_appends_row(self):
        route = respx.post(url__startswith=f"{SHEETS_BASE}/spreadsheets/sheet-123/values/").mock(
            return_value=httpx.Response(200, json={"updates": {"updatedRange": "Sheet1!A2:B2", "updatedRows": 1}})
        )
        provider = AsyncMock(return_value="tok-abc")
        cfg = {"spreadsheetId": "sheet-123", "range": "Sheet1!A1:B1", "values": "{{trigger.email}}, {{trigger.plan}}"}

        out = await _sheets(provider)(_action("s", cfg), _ctx())

        assert out == {"spreadsheetId": "sheet-123", "updatedRange": "Sheet1!A2:B2", "updatedRows": 1}
        provider.assert_awaited_once_with("user-1")
        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer tok-abc"
        assert request.url.params["valueInputOption"] == "RAW"
        assert request.url.path.endswith(":append")
        assert json.loads(request.content) == {"values": [["ada@example.com", "pro"]]}

    async def test_missing_user_raises(self):
        cfg = {"spreadsheetId": "s", "range": "A1"}
        with pytest.raises(HandlerError, match="userId is required"):
            await _sheets(AsyncMock(return_value="t"))(_action("s", cfg), _ctx(user_id=""))

    async def test_missing_token_provider_raises(self):
        cfg = {"spreadsheetId": "s", "range": "A1"}
        with pytest.raises(HandlerError, match="token provider"):
            await _sheets()(_action("s", cfg), _ctx())

    async def test_invalid_config_raises(self):
        with pytest.raises(HandlerError, match="Invalid google_sheets config"):
            await _sheets()(_action("s", {"range": "A1"}), _ctx())

    @respx.mock
    async def test_api_error_raises(self):
        respx.post(url__startswith=SHEETS_BASE).mock(return_value=httpx.Response(403))
        cfg = {"spreadsheetId": "s", "range": "A1"}
        with pytest.raises(HandlerError, match="append failed"):
            await _sheets(AsyncMock(return_value="t"))(_action("s", cfg), _ctx())

    @respx.mock
    async def test_blank_target_raises_before_token_fetch(self):
        route = respx.post(url__startswith=SHEETS_BASE).mock(return_value=httpx.Response(200, json={}))
        provider = AsyncMock(return_value="t")
        cfg = {"spreadsheetId": "{{trigger.sheet}}", "range": "{{trigger.rng}}", "values": "x"}

        with pytest.raises(HandlerError, match="missing spreadsheetId or range") as exc_info:
            await _sheets(provider)(_action("s", cfg), _ctx({}))

        assert exc_info.value.action_type == "google_sheets"
        provider.assert_not_awaited()
        assert not route.called

    @respx.mock
    async def test_non_json_response_raises(self):
        respx.post(url__startswith=SHEETS_BASE).mock(return_value=httpx.Response(200, text="<html>ok</html>"))
        cfg = {"spreadsheetId": "s", "range": "A1"}
        with pytest.raises(HandlerError, match="non-JSON response"):
            await _sheets(AsyncMock(return_value="t"))(_action("s", cfg), _ctx())


# ── Email ────────────────────────────────────────────────────────────────────


class TestEmail:
    def _handler(self, **kwargs):
        return EmailHandler(host="smtp.test", port=587, username="bot", password="pw",
                            sender="bot@example.com", **kwargs)

    async def test_sends_templated_message(self, monkeypatch):
        send = AsyncMock(return_value=({}, "OK"))
        monkeypatch.setattr(aiosmtplib, "send", send)
        cfg = {"to": "{{trigger.email}}", "subject": "Welcome, {{trigger.plan}} user", "body": "Hi {{trigger.email}}"}

        out = await self._handler()(_action("e", cfg), _ctx())

        assert out["success"] is True
        msg = send.await_args.args[0]
        assert msg["To"] == "ada@example.com"
        assert msg["Subject"] == "Welcome, pro user"
        assert msg["From"] == "AutoDesk <bot@example.com>"
        assert msg.get_content().strip() == "Hi ada@example.com"
        assert out["id"] == msg["Message-ID"]
        kwargs = send.await_args.kwargs
        assert kwargs["hostname"] == "smtp.test"
        assert kwargs["start_tls"] is True
        assert kwargs["use_tls"] is False

    async def test_no_host_raises(self):
        handler = EmailHandler(host=None)
        with pytest.raises(HandlerError, match="SMTP is not configured"):
            await handler(_action("e", {"to": "a@example.com"}), _ctx())

    async def test_empty_recipient_raises(self, monkeypatch):
        monkeypatch.setattr(aiosmtplib, "send", AsyncMock())
        with pytest.raises(HandlerError, match="empty address"):
            await self._handler()(_action("e", {"to": "{{trigger.nobody}}"}), _ctx())

    async def test_invalid_config_raises(self):
        with pytest.raises(HandlerError, match="Invalid email config"):
            await self._handler()(_action("e", {"subject": "x"}), _ctx())

    async def test_smtp_error_raises(self, monkeypatch):
        monkeypatch.setattr(aiosmtplib, "send", AsyncMock(side_effect=aiosmtplib.SMTPException("refused")))
        with pytest.raises(HandlerError, match="Email send failed"):
            await self._handler()(_action("e", {"to": "a@example.com"}), _ctx())


# ── Schedule / delay ─────────────────────────────────────────────────────────


async def test_schedule_handler_uses_trigger_time():
    ctx = _ctx({"_triggeredAt": "2024-01-01T00:00:00+00:00"})
    out = await schedule_handler(_action("s", {"cron": "0 * * * *"}), ctx)
    assert out == {
        "cron": "0 * * * *",
        "timezone": "UTC",
        "firedAt": "2024-01-01T00:00:00+00:00",
        "source": "schedule",
    }


async def test_delay_handler_zero():
    assert await delay_handler(_action("d", {"ms": 0}), _ctx()) == {"delayedMs": 0}
