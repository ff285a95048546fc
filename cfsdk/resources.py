"""Generic fetch-validate protocol shared by every Cloud Foundry resource endpoint."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from cfsdk.exceptions import ConflictError, ProtocolError, TransportError
from cfsdk.schemas import (
    EntityT,
    Invalid,
    PagedResult,
    PageShape,
    ResourceEnvelope,
    Violation,
    validate,
)

NAME_ORDER = {"order-by": "name", "order-direction": "asc"}
CONFLICT_ERROR_CODES = {"CF-ServiceKeyNameTaken"}

logger = structlog.get_logger(__name__)


class ResourceClient:
    """Issue authorized requests and turn their bodies into validated envelopes.

    Pages are never followed automatically: ``fetch_page`` surfaces ``next_url``
    and the caller decides whether to request it. Ordering is whatever the
    server applied through the ``order-by``/``order-direction`` parameters.
    """

    def __init__(self, http_client: httpx.AsyncClient) -> None:
        """Bind to an HTTP client whose base URL is the platform API root."""
        self._client = http_client

    async def fetch_page(
        self,
        path: str,
        token: str,
        entity_model: type[EntityT],
        kind: str,
        params: dict[str, Any] | None = None,
    ) -> PagedResult[EntityT]:
        """Fetch one page and validate its shape and every entity on it."""
        response = await self._request("GET", path, token, params=params)
        payload = self._json(response, kind)

        shape = validate(PageShape, payload)
        if isinstance(shape, Invalid):
            raise ProtocolError(
                f"Unexpected response format for {kind}", kind, shape.violations
            )
        page = shape.value
        if len(page.resources) > page.total_results:
            raise ProtocolError(
                f"Unexpected response format for {kind}",
                kind,
                (
                    Violation(
                        "resources",
                        f"{len(page.resources)} resources exceed total_results "
                        f"{page.total_results}",
                    ),
                ),
            )

        envelope_model = ResourceEnvelope[entity_model]  # type: ignore[valid-type]
        envelopes: list[ResourceEnvelope[EntityT]] = []
        for index, resource in enumerate(page.resources):
            result = validate(envelope_model, resource, prefix=f"resources[{index}]")
            if isinstance(result, Invalid):
                raise ProtocolError(f"Invalid {kind} resource", kind, result.violations)
            envelopes.append(result.value)

        logger.debug(
            "resource_page_fetched",
            kind=kind,
            path=path,
            total_results=page.total_results,
            count=len(envelopes),
            has_next=page.next_url is not None,
        )
        return PagedResult[entity_model](  # type: ignore[valid-type]
            total_results=page.total_results,
            total_pages=page.total_pages,
            prev_url=page.prev_url,
            next_url=page.next_url,
            resources=envelopes,
        )

    async def fetch_collection(
        self,
        path: str,
        token: str,
        entity_model: type[EntityT],
        kind: str,
        params: dict[str, Any] | None = None,
    ) -> list[ResourceEnvelope[EntityT]]:
        """Return the validated resources of a single page."""
        page = await self.fetch_page(path, token, entity_model, kind, params=params)
        return list(page.resources)

    async def find_by_name(
        self,
        path: str,
        token: str,
        name: str,
        entity_model: type[EntityT],
        kind: str,
    ) -> ResourceEnvelope[EntityT]:
        """Look up exactly one resource by name, failing on zero or many matches."""
        page = await self.fetch_page(
            path, token, entity_model, kind, params={"q": f"name:{name}"}
        )
        if page.total_results != 1 or len(page.resources) != 1:
            raise ProtocolError(
                f"Expected exactly one {kind} named {name!r}, found {page.total_results}",
                kind,
            )
        return page.resources[0]

    async def create(
        self,
        path: str,
        token: str,
        body: dict[str, Any],
        entity_model: type[EntityT],
        kind: str,
    ) -> ResourceEnvelope[EntityT]:
        """POST a JSON body and validate the single envelope returned."""
        response = await self._request("POST", path, token, json=body)
        payload = self._json(response, kind)
        result = validate(ResourceEnvelope[entity_model], payload)  # type: ignore[valid-type]
        if isinstance(result, Invalid):
            raise ProtocolError(f"Unexpected response format for {kind}", kind, result.violations)
        return result.value

    async def delete(self, path: str, token: str) -> None:
        """DELETE a resource; failures propagate."""
        await self._request("DELETE", path, token)

    async def _request(
        self, method: str, path: str, token: str, **kwargs: Any
    ) -> httpx.Response:
        """Execute an authorized request and raise on non-2xx statuses."""
        headers = {"Authorization": f"bearer {token}", "Accept": "application/json"}
        response = await self._client.request(method, path, headers=headers, **kwargs)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            error_class = ConflictError if _is_conflict(response) else TransportError
            raise error_class(
                f"{method} {path} failed with status {response.status_code}.",
                response.status_code,
                response,
            ) from exc
        return response

    @staticmethod
    def _json(response: httpx.Response, kind: str) -> Any:
        """Decode the response body as JSON."""
        try:
            return response.json()
        except ValueError as exc:
            raise ProtocolError(f"Invalid JSON in {kind} response", kind) from exc


def _is_conflict(response: httpx.Response) -> bool:
    """Return True for duplicate-name failures, reported as 409 or a CF error code."""
    if response.status_code == 409:
        return True
    if response.status_code != 400:
        return False
    try:
        payload = response.json()
    except ValueError:
        return False
    return isinstance(payload, dict) and payload.get("error_code") in CONFLICT_ERROR_CODES
