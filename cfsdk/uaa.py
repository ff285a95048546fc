"""UAA protocol operations: signing keys and the password and authorization-code grants."""

from __future__ import annotations

import webbrowser
from collections.abc import Callable
from typing import Any

import httpx
import structlog
from authlib.integrations.httpx_client import AsyncOAuth2Client

from cfsdk.exceptions import (
    AuthorizationDenied,
    InteractionTimeout,
    ProtocolError,
    TransportError,
)
from cfsdk.http_logging import event_hooks
from cfsdk.listener import CallbackListener, ListenerState
from cfsdk.schemas import Invalid, SigningKey, Token, validate

DEFAULT_TIMEOUT = httpx.Timeout(connect=5.0, read=30.0, write=10.0, pool=5.0)
# Public client of the cf CLI; it has no secret, so Basic auth encodes "cf:".
CF_CLIENT_ID = "cf"
CF_CLIENT_SECRET = ""

BrowserOpener = Callable[[str], Any]

logger = structlog.get_logger(__name__)


class UaaClient:
    """Client for the UAA login server advertised by the platform's ``login`` link."""

    def __init__(
        self,
        login_url: str,
        timeout: httpx.Timeout | float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        browser: BrowserOpener = webbrowser.open,
    ) -> None:
        """Create client; transport and browser are injectable for tests."""
        self._login_url = login_url.rstrip("/")
        self._timeout = timeout or DEFAULT_TIMEOUT
        self._transport = transport
        self._browser = browser

    @property
    def authorization_endpoint(self) -> str:
        """Return the browser-facing authorization endpoint."""
        return f"{self._login_url}/oauth/authorize"

    @property
    def token_endpoint(self) -> str:
        """Return the token endpoint used by both grants."""
        return f"{self._login_url}/oauth/token"

    async def fetch_signing_keys(self) -> list[SigningKey]:
        """Fetch the currently active token signing keys; never cached."""
        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport, event_hooks=event_hooks()
        ) as client:
            response = await client.get(
                f"{self._login_url}/token_keys", headers={"Accept": "application/json"}
            )
            try:
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                raise TransportError(
                    f"Token key request failed with status {response.status_code}.",
                    response.status_code,
                    response,
                ) from exc
            try:
                payload = response.json()
            except ValueError as exc:
                raise ProtocolError("Failed to retrieve token keys", "signing key") from exc

        keys = payload.get("keys") if isinstance(payload, dict) else None
        if not isinstance(keys, list) or not keys:
            raise ProtocolError("Failed to retrieve token keys", "signing key")
        signing_keys: list[SigningKey] = []
        for index, item in enumerate(keys):
            result = validate(SigningKey, item, prefix=f"keys[{index}]")
            if isinstance(result, Invalid):
                raise ProtocolError(
                    "Failed to retrieve token keys", "signing key", result.violations
                )
            signing_keys.append(result.value)
        return signing_keys

    async def password_grant(self, username: str, password: str) -> Token:
        """Exchange resource-owner credentials for a token via the public cf client."""
        client = self._build_client(
            client_id=CF_CLIENT_ID, client_secret=CF_CLIENT_SECRET, redirect_uri=None
        )
        try:
            payload = await client.fetch_token(
                self.token_endpoint,
                grant_type="password",
                username=username,
                password=password,
            )
        finally:
            await client.aclose()
        token = self._parse_token(payload)
        logger.info("password_grant_completed", login_url=self._login_url)
        return token

    async def build_authorization_url(
        self, client_id: str, redirect_uri: str
    ) -> tuple[str, str]:
        """Build the authorization URL and the state it carries."""
        client = AsyncOAuth2Client(client_id=client_id, redirect_uri=redirect_uri)
        try:
            url, state = client.create_authorization_url(self.authorization_endpoint)
        finally:
            await client.aclose()
        return url, state

    async def code_grant(
        self,
        client_id: str,
        client_secret: str,
        listener: CallbackListener,
        timeout: float | None = None,
    ) -> Token:
        """Run the interactive authorization-code flow through a local listener.

        With ``timeout=None`` the wait for the browser is unbounded. When a
        timeout expires the listener is closed and ``InteractionTimeout`` raised;
        a provider error closes it too. After a successful redirect the listener
        is left to close itself once it has served its confirmation page.
        """
        if listener.state is ListenerState.CREATED:
            await listener.start()
        elif listener.state is not ListenerState.LISTENING:
            raise RuntimeError(
                f"Listener cannot serve a new login in state {listener.state.value!r}."
            )
        authorization_url, state = await self.build_authorization_url(
            client_id, listener.redirect_uri
        )
        self._open_browser(authorization_url)

        try:
            callback = await listener.wait_for_callback(timeout)
        except TimeoutError as exc:
            await listener.close()
            logger.warning("code_grant_timed_out", timeout_seconds=timeout)
            raise InteractionTimeout(
                f"No authorization code received within {timeout} seconds."
            ) from exc
        except AuthorizationDenied as exc:
            await listener.close()
            logger.warning("code_grant_denied", error=exc.error)
            raise

        client = self._build_client(
            client_id=client_id, client_secret=client_secret, redirect_uri=listener.redirect_uri
        )
        try:
            payload = await client.fetch_token(
                self.token_endpoint,
                authorization_response=callback.url,
                state=state,
            )
        finally:
            await client.aclose()
        token = self._parse_token(payload)
        logger.info("code_grant_completed", login_url=self._login_url, client_id=client_id)
        return token

    def _open_browser(self, url: str) -> None:
        """Navigate the user's browser to the authorization URL; failures are not fatal."""
        try:
            opened = self._browser(url)
        except (webbrowser.Error, OSError) as exc:
            logger.warning("browser_launch_failed", error=str(exc), authorization_url=url)
            return
        if opened is False:
            logger.warning("browser_launch_failed", authorization_url=url)

    def _build_client(
        self, client_id: str, client_secret: str, redirect_uri: str | None
    ) -> AsyncOAuth2Client:
        """Build authlib OAuth2 client authenticating with HTTP Basic."""
        return AsyncOAuth2Client(
            client_id=client_id,
            client_secret=client_secret,
            redirect_uri=redirect_uri,
            token_endpoint_auth_method="client_secret_basic",
            timeout=self._timeout,
            transport=self._transport,
            event_hooks=event_hooks(),
        )

    @staticmethod
    def _parse_token(payload: dict[str, Any]) -> Token:
        """Validate the token endpoint payload."""
        result = validate(Token, dict(payload))
        if isinstance(result, Invalid):
            raise ProtocolError("Unexpected token response", "token", result.violations)
        return result.value
