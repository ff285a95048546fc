"""Unit tests for outbound HTTP logging and credential redaction."""

from __future__ import annotations

from typing import Any

import httpx
import pytest

from cfsdk import http_logging, listener as listener_module
from cfsdk.http_logging import REDACTED, event_hooks, redact_mapping
from cfsdk.listener import CallbackListener


class _CaptureLogger:
    """Capture structlog-like logger calls for assertions."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, dict[str, Any]]] = []

    def debug(self, event: str, **kwargs: Any) -> None:
        """Capture debug-level calls."""
        self.calls.append(("debug", event, kwargs))

    def info(self, event: str, **kwargs: Any) -> None:
        """Capture info-level calls."""
        self.calls.append(("info", event, kwargs))

    def warning(self, event: str, **kwargs: Any) -> None:
        """Capture warning-level calls."""
        self.calls.append(("warning", event, kwargs))


def test_redact_mapping_masks_nested_credentials() -> None:
    """Sensitive keys are masked at any depth; other values pass through."""
    payload = {
        "q": "name:my-key",
        "code": "ABC",
        "uaa": {"clientid": "sb-client", "clientsecret": "s3cret"},
        "keys": [{"refresh_token": "r-1", "kid": "key-1"}],
        "X-Auth-Token": "t-1",
    }

    redacted = redact_mapping(payload)

    assert redacted["q"] == "name:my-key"
    assert redacted["code"] == REDACTED
    assert redacted["uaa"] == {"clientid": "sb-client", "clientsecret": REDACTED}
    assert redacted["keys"] == [{"refresh_token": REDACTED, "kid": "key-1"}]
    assert redacted["X-Auth-Token"] == REDACTED


def test_redact_mapping_masks_uaa_login_parameters() -> None:
    """One-time passcodes and user names from login forms are masked."""
    redacted = redact_mapping(
        {
            "grant_type": "password",
            "username": "admin",
            "passcode": "123456",
            "binding": {"endpoints": [[{"id_token": "jwt"}]]},
        }
    )

    assert redacted == {
        "grant_type": "password",
        "username": REDACTED,
        "passcode": REDACTED,
        "binding": {"endpoints": [[{"id_token": REDACTED}]]},
    }


@pytest.mark.asyncio
async def test_response_hook_logs_redacted_request_summary(monkeypatch) -> None:
    """Every completed request produces one event without raw credentials."""
    capture = _CaptureLogger()
    monkeypatch.setattr(http_logging, "logger", capture)

    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=200, json={})

    async with httpx.AsyncClient(
        transport=httpx.MockTransport(handler), event_hooks=event_hooks()
    ) as client:
        await client.get(
            "https://login.cf.local/oauth/authorize",
            params={"client_id": "cf", "state": "state-secret", "code": "code-secret"},
        )

    assert len(capture.calls) == 1
    level, event, payload = capture.calls[0]
    assert level == "info"
    assert event == "http_request_completed"
    assert payload["host"] == "login.cf.local"
    assert payload["path"] == "/oauth/authorize"
    assert payload["query_params"] == {
        "client_id": "cf",
        "state": REDACTED,
        "code": REDACTED,
    }
    serialized = str(payload)
    assert "state-secret" not in serialized
    assert "code-secret" not in serialized


@pytest.mark.asyncio
async def test_response_hook_logs_failures_as_warnings(monkeypatch) -> None:
    """Non-success statuses are logged at warning level."""
    capture = _CaptureLogger()
    monkeypatch.setattr(http_logging, "logger", capture)

    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=404, json={"error_code": "CF-NotFound"})

    async with httpx.AsyncClient(
        transport=httpx.MockTransport(handler), event_hooks=event_hooks()
    ) as client:
        await client.delete("https://api.cf.local/v2/service_keys/key-1")

    level, event, payload = capture.calls[0]
    assert level == "warning"
    assert event == "http_request_completed"
    assert payload["method"] == "DELETE"
    assert payload["status_code"] == 404


@pytest.mark.asyncio
async def test_listener_never_logs_raw_authorization_code(monkeypatch) -> None:
    """The captured redirect is logged with its code masked."""
    capture = _CaptureLogger()
    monkeypatch.setattr(listener_module, "logger", capture)

    async with CallbackListener(host="127.0.0.1") as listener:
        async with httpx.AsyncClient(trust_env=False) as browser:
            await browser.get(listener.redirect_uri, params={"code": "code-secret"})

    received = [
        payload for _, event, payload in capture.calls if event == "login_redirect_received"
    ]
    assert received == [{"query_params": {"code": REDACTED}}]
    assert "code-secret" not in str(capture.calls)
