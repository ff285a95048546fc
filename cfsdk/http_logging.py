"""Structured HTTP logging with credential redaction."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

# OAuth2 and UAA parameters whose values are single-use or secret.
OAUTH_PARAMETERS = frozenset(
    {"assertion", "code", "code_verifier", "passcode", "password", "state", "username"}
)
# Substrings marking secrets in CF service key credentials and token payloads,
# e.g. ``clientsecret``, ``refresh_token``, ``X-Auth-Token``.
CREDENTIAL_MARKERS = ("secret", "token", "password", "authorization", "cookie")
REDACTED = "***REDACTED***"

logger = structlog.get_logger(__name__)


def _is_sensitive_key(key: str) -> bool:
    """Return True when a parameter or credential field must not be logged."""
    normalized = key.lower().replace("-", "_")
    if normalized in OAUTH_PARAMETERS:
        return True
    return any(marker in normalized for marker in CREDENTIAL_MARKERS)


def _redact_value(value: Any) -> Any:
    if isinstance(value, dict):
        return redact_mapping(value)
    if isinstance(value, (list, tuple)):
        return [_redact_value(item) for item in value]
    return value


def redact_mapping(values: dict[str, Any]) -> dict[str, Any]:
    """Mask credential values at any depth, keeping keys so the shape stays visible."""
    return {
        key: REDACTED if _is_sensitive_key(key) else _redact_value(value)
        for key, value in values.items()
    }


async def log_response(response: httpx.Response) -> None:
    """httpx response hook emitting one event per completed request."""
    request = response.request
    query_params = redact_mapping(dict(request.url.params.items()))
    event_logger = logger.warning if response.status_code >= 400 else logger.info
    event_logger(
        "http_request_completed",
        method=request.method,
        host=request.url.host,
        path=request.url.path,
        query_params=query_params,
        status_code=response.status_code,
    )


def event_hooks() -> dict[str, list[Any]]:
    """Return httpx event hooks used by every client this SDK builds."""
    return {"response": [log_response]}
