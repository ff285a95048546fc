"""Create, look up and delete service keys."""

from __future__ import annotations

import structlog

from cfsdk.exceptions import ProtocolError
from cfsdk.resources import ResourceClient
from cfsdk.schemas import EntityT, ResourceEnvelope, ServiceInstanceEntity, ServiceKeyEntity

SERVICE_KEYS_PATH = "/v2/service_keys"

logger = structlog.get_logger(__name__)


class ServiceKeyLifecycle:
    """Mint or remove credentials bound to a service instance.

    ``create`` fails with ``ConflictError`` when the name is taken; callers that
    want get-or-create semantics catch it and fall back to ``find_by_name``.
    """

    def __init__(self, resources: ResourceClient) -> None:
        """Bind to the resource client of a CloudFoundryClient."""
        self._resources = resources

    async def create(
        self,
        instance: ResourceEnvelope[ServiceInstanceEntity],
        name: str,
        token: str,
        entity_model: type[EntityT] = ServiceKeyEntity,  # type: ignore[assignment]
    ) -> ResourceEnvelope[EntityT]:
        """Create a named key for a service instance."""
        key = await self._resources.create(
            SERVICE_KEYS_PATH,
            token,
            {"name": name, "service_instance_guid": instance.metadata.guid},
            entity_model,
            "service key",
        )
        logger.info(
            "service_key_created",
            service_instance_guid=instance.metadata.guid,
            service_key_guid=key.metadata.guid,
            name=name,
        )
        return key

    async def find_by_name(
        self,
        instance: ServiceInstanceEntity,
        name: str,
        token: str,
        entity_model: type[EntityT] = ServiceKeyEntity,  # type: ignore[assignment]
    ) -> ResourceEnvelope[EntityT]:
        """Return the single key of an instance with the given name."""
        if not instance.service_keys_url:
            raise ProtocolError(
                f"Service instance {instance.name!r} exposes no service_keys_url",
                "service key",
            )
        return await self._resources.find_by_name(
            instance.service_keys_url, token, name, entity_model, "service key"
        )

    async def remove(self, guid: str, token: str) -> None:
        """Delete a key by guid; a repeated call fails with the platform's not-found."""
        await self._resources.delete(f"{SERVICE_KEYS_PATH}/{guid}", token)
        logger.info("service_key_deleted", service_key_guid=guid)
