"""Public SDK exports."""

from cfsdk.client import CloudFoundryClient
from cfsdk.exceptions import (
    AuthorizationDenied,
    ConflictError,
    InteractionTimeout,
    ListenerClosed,
    ProtocolError,
    SDKError,
    TransportError,
)
from cfsdk.listener import CallbackListener, CallbackRequest, ListenerState
from cfsdk.resources import ResourceClient
from cfsdk.schemas import (
    AbapServiceKeyEntity,
    OrganizationEntity,
    PagedResult,
    PlatformInfo,
    ResourceEnvelope,
    ServiceEntity,
    ServiceInstanceEntity,
    ServiceKeyEntity,
    SigningKey,
    SpaceEntity,
    Token,
    is_abap_service_key,
    validate,
)
from cfsdk.service_keys import ServiceKeyLifecycle
from cfsdk.uaa import UaaClient

__all__ = [
    "AbapServiceKeyEntity",
    "AuthorizationDenied",
    "CallbackListener",
    "CallbackRequest",
    "CloudFoundryClient",
    "ConflictError",
    "InteractionTimeout",
    "ListenerClosed",
    "ListenerState",
    "OrganizationEntity",
    "PagedResult",
    "PlatformInfo",
    "ProtocolError",
    "ResourceClient",
    "ResourceEnvelope",
    "SDKError",
    "ServiceEntity",
    "ServiceInstanceEntity",
    "ServiceKeyEntity",
    "ServiceKeyLifecycle",
    "SigningKey",
    "SpaceEntity",
    "Token",
    "TransportError",
    "UaaClient",
    "is_abap_service_key",
    "validate",
]
