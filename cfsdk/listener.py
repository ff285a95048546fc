"""Ephemeral local HTTP endpoint that captures the identity provider redirect.

The listener serves exactly one login: the provider redirects the browser to
``REDIRECT_PATH`` with an authorization code, the listener bounces the browser
to ``SUCCESS_PATH`` and resolves ``callback`` with the captured request, and
serving the success page shuts the server down.

Nothing bounds the wait for the browser. Whoever gives up on ``callback``
must call ``close()``; the bound port is only released by closing. If the
server stops before a redirect arrives, ``callback`` fails with
``ListenerClosed``.
"""

from __future__ import annotations

import asyncio
import inspect
import socket
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from urllib.parse import urlencode

import structlog
import uvicorn
from fastapi import FastAPI, Request
from starlette.background import BackgroundTask, BackgroundTasks
from starlette.responses import PlainTextResponse, RedirectResponse, Response

from cfsdk.exceptions import AuthorizationDenied, ListenerClosed
from cfsdk.http_logging import redact_mapping

REDIRECT_PATH = "/oauth/client/redirect/link"
SUCCESS_PATH = "/logon/success"
SUCCESS_MESSAGE = "Login successful, please close this window"

SuccessHandler = Callable[[Request], Response | Awaitable[Response]]

logger = structlog.get_logger(__name__)


class ListenerState(str, Enum):
    """Lifecycle of a callback listener."""

    CREATED = "created"
    LISTENING = "listening"
    REDIRECT_RECEIVED = "redirect_received"
    CONFIRMATION_SERVED = "confirmation_served"
    CLOSED = "closed"


@dataclass(frozen=True)
class CallbackRequest:
    """Provider redirect captured by the listener."""

    url: str
    code: str
    params: dict[str, str] = field(default_factory=dict)


def _default_success_handler(request: Request) -> Response:
    """Serve the plain-text confirmation page."""
    del request
    return PlainTextResponse(SUCCESS_MESSAGE)


class CallbackListener:
    """Serve the OAuth redirect URI on a local port for one authorization-code login."""

    def __init__(
        self,
        port: int = 0,
        host: str = "localhost",
        success_handler: SuccessHandler | None = None,
    ) -> None:
        """Create an unstarted listener; port 0 asks the OS for a free port."""
        self._host = host
        self._requested_port = port
        self._success_handler = success_handler or _default_success_handler
        self._state = ListenerState.CREATED
        self._port: int | None = None
        self._server: uvicorn.Server | None = None
        self._serve_task: asyncio.Task[None] | None = None
        self._callback: asyncio.Future[CallbackRequest] | None = None
        self.app = self._build_app()

    @property
    def state(self) -> ListenerState:
        """Return the current lifecycle state."""
        return self._state

    @property
    def port(self) -> int:
        """Return the bound port."""
        if self._port is None:
            raise RuntimeError("Listener is not started.")
        return self._port

    @property
    def base_url(self) -> str:
        """Return the externally reachable origin of the listener."""
        return f"http://{self._host}:{self.port}"

    @property
    def redirect_uri(self) -> str:
        """Return the OAuth redirect_uri to register with the authorization request."""
        return f"{self.base_url}{REDIRECT_PATH}"

    @property
    def callback(self) -> asyncio.Future[CallbackRequest]:
        """Return the future fulfilled by the provider redirect."""
        if self._callback is None:
            raise RuntimeError("Listener is not started.")
        return self._callback

    async def start(self) -> CallbackListener:
        """Bind the port and begin serving."""
        if self._state is not ListenerState.CREATED:
            raise RuntimeError("Listener was already started.")
        self._callback = asyncio.get_running_loop().create_future()
        sock = _bind_socket(self._host, self._requested_port)
        self._port = sock.getsockname()[1]

        config = uvicorn.Config(
            self.app,
            lifespan="off",
            access_log=False,
            log_config=None,
            timeout_graceful_shutdown=5,
        )
        self._server = uvicorn.Server(config)
        self._serve_task = asyncio.create_task(self._server.serve(sockets=[sock]))
        self._serve_task.add_done_callback(self._on_served)

        while not self._server.started:
            if self._serve_task.done():
                sock.close()
                raise RuntimeError("Failed to start login server.")
            await asyncio.sleep(0.01)

        self._state = ListenerState.LISTENING
        logger.info("login_listener_started", redirect_uri=self.redirect_uri)
        return self

    async def wait_for_callback(self, timeout: float | None = None) -> CallbackRequest:
        """Wait for the provider redirect; TimeoutError leaves the listener open."""
        return await asyncio.wait_for(asyncio.shield(self.callback), timeout)

    async def wait_closed(self) -> None:
        """Wait until the server has stopped and released its port."""
        if self._serve_task is not None:
            await asyncio.shield(self._serve_task)

    async def close(self) -> None:
        """Stop serving at any state and release the port; safe to call twice."""
        if self._callback is not None and not self._callback.done():
            self._callback.cancel()
        if self._server is None or self._serve_task is None:
            self._state = ListenerState.CLOSED
            return
        self._server.should_exit = True
        await asyncio.shield(self._serve_task)

    async def __aenter__(self) -> CallbackListener:
        """Start the listener on context entry."""
        return await self.start()

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        """Close the listener on context exit."""
        del exc_type, exc, tb
        await self.close()

    def _build_app(self) -> FastAPI:
        """Build the two-route app served by the listener."""
        app = FastAPI(openapi_url=None, docs_url=None, redoc_url=None)
        app.add_api_route(REDIRECT_PATH, self._handle_redirect, methods=["GET"])
        app.add_api_route(SUCCESS_PATH, self._handle_success, methods=["GET"])
        return app

    async def _handle_redirect(self, request: Request) -> Response:
        """Capture the authorization code and bounce the browser to the success page."""
        params = dict(request.query_params)
        logger.info("login_redirect_received", query_params=redact_mapping(params))
        callback = self.callback
        code = params.get("code")
        if not code:
            error = params.get("error")
            if error is None:
                return PlainTextResponse("Missing authorization code.", status_code=400)
            if not callback.done():
                callback.set_exception(
                    AuthorizationDenied(error, params.get("error_description"))
                )
            return PlainTextResponse(f"Login failed: {error}", status_code=400)

        if self._state is ListenerState.LISTENING:
            self._state = ListenerState.REDIRECT_RECEIVED
        if not callback.done():
            callback.set_result(CallbackRequest(url=str(request.url), code=code, params=params))
        location = f"{self.base_url}{SUCCESS_PATH}?{urlencode({'code': code, 'action': 'link'})}"
        return RedirectResponse(location, status_code=302)

    async def _handle_success(self, request: Request) -> Response:
        """Serve the confirmation page, then stop the server."""
        response = self._success_handler(request)
        if inspect.isawaitable(response):
            response = await response
        self._state = ListenerState.CONFIRMATION_SERVED

        shutdown = BackgroundTask(self._request_shutdown)
        if response.background is None:
            response.background = shutdown
        else:
            response.background = BackgroundTasks([response.background, shutdown])
        return response

    def _request_shutdown(self) -> None:
        """Ask uvicorn to exit its serve loop."""
        if self._server is not None:
            self._server.should_exit = True

    def _on_served(self, task: asyncio.Task[None]) -> None:
        """Mark the listener closed and fail a callback still waiting for a redirect."""
        self._state = ListenerState.CLOSED
        logger.info("login_listener_closed", port=self._port)
        if self._callback is None or self._callback.done():
            return
        error = ListenerClosed("Login listener closed before a redirect was received.")
        if not task.cancelled() and task.exception() is not None:
            error.__cause__ = task.exception()
        self._callback.set_exception(error)


def _bind_socket(host: str, port: int) -> socket.socket:
    """Bind a listening TCP socket; port 0 picks an ephemeral port."""
    bind_host = "127.0.0.1" if host == "localhost" else host
    return socket.create_server((bind_host, port))
