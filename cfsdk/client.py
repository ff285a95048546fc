"""Async HTTP client for Cloud Foundry v2 API endpoints."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from cfsdk.exceptions import ProtocolError, TransportError
from cfsdk.http_logging import event_hooks
from cfsdk.resources import NAME_ORDER, ResourceClient
from cfsdk.schemas import (
    Invalid,
    OrganizationEntity,
    PlatformInfo,
    ResourceEnvelope,
    ServiceEntity,
    ServiceInstanceEntity,
    SpaceEntity,
    validate,
)
from cfsdk.service_keys import ServiceKeyLifecycle

DEFAULT_TIMEOUT = httpx.Timeout(connect=5.0, read=30.0, write=10.0, pool=5.0)

logger = structlog.get_logger(__name__)


class CloudFoundryClient:
    """Async client for platform discovery and the organization-to-key hierarchy."""

    def __init__(
        self,
        base_url: str,
        timeout: httpx.Timeout | float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Create client with sane defaults and optional injected transport."""
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout or DEFAULT_TIMEOUT,
            event_hooks=event_hooks(),
        )
        self.resources = ResourceClient(self._client)
        self.service_keys = ServiceKeyLifecycle(self.resources)

    async def fetch_platform_info(self) -> PlatformInfo:
        """Fetch the platform root document, including the login link."""
        try:
            response = await self._client.get("/", headers={"Accept": "application/json"})
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise TransportError(
                f"Platform discovery failed with status {exc.response.status_code}.",
                exc.response.status_code,
                exc.response,
            ) from exc
        try:
            payload = response.json()
        except ValueError as exc:
            raise ProtocolError("malformed platform info", "platform info") from exc

        result = validate(PlatformInfo, payload)
        if isinstance(result, Invalid):
            raise ProtocolError("malformed platform info", "platform info", result.violations)
        logger.info("platform_info_fetched", links=sorted(result.value.links))
        return result.value

    async def organizations(self, token: str) -> list[ResourceEnvelope[OrganizationEntity]]:
        """List organizations visible to the token, ordered by name."""
        return await self.resources.fetch_collection(
            "/v2/organizations", token, OrganizationEntity, "organization", params=NAME_ORDER
        )

    async def spaces(
        self, organization: OrganizationEntity, token: str
    ) -> list[ResourceEnvelope[SpaceEntity]]:
        """List the spaces of an organization, ordered by name."""
        return await self.resources.fetch_collection(
            organization.spaces_url, token, SpaceEntity, "space", params=NAME_ORDER
        )

    async def services(self, token: str) -> list[ResourceEnvelope[ServiceEntity]]:
        """List active marketplace services."""
        params: dict[str, Any] = {"active": "true", "order-direction": "asc"}
        return await self.resources.fetch_collection(
            "/v2/services", token, ServiceEntity, "service", params=params
        )

    async def service_instances(
        self, space: SpaceEntity, token: str
    ) -> list[ResourceEnvelope[ServiceInstanceEntity]]:
        """List the service instances of a space, ordered by name."""
        return await self.resources.fetch_collection(
            space.service_instances_url,
            token,
            ServiceInstanceEntity,
            "service instance",
            params=NAME_ORDER,
        )

    async def aclose(self) -> None:
        """Close underlying HTTP client if owned by this instance."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> CloudFoundryClient:
        """Enter async context manager."""
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        """Exit async context manager and close managed resources."""
        del exc_type, exc, tb
        await self.aclose()
