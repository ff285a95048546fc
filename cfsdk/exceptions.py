"""SDK exception hierarchy."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from cfsdk.schemas import Violation


class SDKError(Exception):
    """Base class for all SDK-specific exceptions."""


class ProtocolError(SDKError):
    """Raised when a parsed response does not match the expected shape."""

    def __init__(
        self,
        detail: str,
        kind: str | None = None,
        violations: Sequence[Violation] = (),
    ) -> None:
        """Initialize with the resource kind and the violated fields, when known."""
        message = detail
        if violations:
            message = f"{detail}: " + "; ".join(str(violation) for violation in violations)
        super().__init__(message)
        self.detail = detail
        self.kind = kind
        self.violations = tuple(violations)


class TransportError(SDKError):
    """Raised when the platform answers with a non-2xx HTTP status."""

    def __init__(self, detail: str, status_code: int, response: httpx.Response) -> None:
        """Initialize with the HTTP status and the untouched response."""
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code
        self.response = response


class ConflictError(TransportError):
    """Raised when a service key with the requested name already exists."""


class AuthorizationDenied(SDKError):
    """Raised when the identity provider redirects back with an OAuth error."""

    def __init__(self, error: str, description: str | None = None) -> None:
        """Initialize with the provider error code and optional description."""
        super().__init__(f"{error}: {description}" if description else error)
        self.error = error
        self.description = description


class ListenerClosed(SDKError):
    """Raised when the login listener stops before capturing a redirect."""


class InteractionTimeout(SDKError):
    """Raised when the browser step of the code grant is not completed in time."""
