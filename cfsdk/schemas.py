"""Wire contract models and the validation layer built on them."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Annotated, Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, ValidationError

NonEmptyStr = Annotated[str, StringConstraints(min_length=1)]
Count = Annotated[int, Field(ge=0, strict=True)]

ModelT = TypeVar("ModelT", bound=BaseModel)
EntityT = TypeVar("EntityT", bound=BaseModel)


class WireModel(BaseModel):
    """Immutable record tolerant of fields the platform adds over time."""

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)


class Link(WireModel):
    """Entry of the platform root links map."""

    href: NonEmptyStr
    method: str | None = None
    meta: dict[str, Any] | None = None


class PlatformInfo(WireModel):
    """Platform root document returned by discovery."""

    guid: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    links: dict[str, Link | None]

    def link(self, name: str) -> str | None:
        """Return the href of a named link, or None when absent or null."""
        entry = self.links.get(name)
        return entry.href if entry is not None else None


class SigningKey(WireModel):
    """Public key published by UAA for verifying token signatures."""

    kid: NonEmptyStr
    alg: NonEmptyStr
    value: NonEmptyStr
    kty: NonEmptyStr
    use: str | None = None
    n: str | None = None
    e: str | None = None


class Token(WireModel):
    """Token payload returned by a grant; owned by the caller."""

    access_token: NonEmptyStr
    token_type: str = "bearer"
    refresh_token: str | None = None
    expires_in: int | None = None
    expires_at: int | None = None
    scope: str | None = None
    jti: str | None = None


class ResourceMetadata(WireModel):
    """Metadata block of every resource envelope."""

    guid: NonEmptyStr
    url: NonEmptyStr
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ResourceEnvelope(WireModel, Generic[EntityT]):
    """Metadata plus typed entity, the wrapper of every platform resource."""

    metadata: ResourceMetadata
    entity: EntityT


class PageShape(WireModel):
    """Top-level shape of a paged response, before entities are checked."""

    total_results: Count
    total_pages: Count = 0
    prev_url: str | None = None
    next_url: str | None = None
    resources: list[Any]


class PagedResult(WireModel, Generic[EntityT]):
    """One validated page of a resource collection."""

    total_results: Count
    total_pages: Count = 0
    prev_url: str | None = None
    next_url: str | None = None
    resources: list[ResourceEnvelope[EntityT]]


class OrganizationEntity(WireModel):
    """Organization entity; child spaces are reached through spaces_url."""

    name: NonEmptyStr
    spaces_url: NonEmptyStr
    app_events_url: NonEmptyStr
    auditors_url: NonEmptyStr
    billing_enabled: bool | None = None
    billing_managers_url: str | None = None
    default_isolation_segment_guid: str | None = None
    domains_url: str | None = None
    managers_url: str | None = None
    private_domains_url: str | None = None
    quota_definition_guid: str | None = None
    quota_definition_url: str | None = None
    space_quota_definitions_url: str | None = None
    status: str | None = None
    users_url: str | None = None


class SpaceEntity(WireModel):
    """Space entity; its service instances are listed at service_instances_url."""

    name: NonEmptyStr
    service_instances_url: NonEmptyStr
    app_events_url: NonEmptyStr
    auditors_url: NonEmptyStr
    allow_ssh: bool | None = None
    apps_url: str | None = None
    developers_url: str | None = None
    domains_url: str | None = None
    events_url: str | None = None
    isolation_segment_guid: str | None = None
    managers_url: str | None = None
    organization_guid: str | None = None
    organization_url: str | None = None
    routes_url: str | None = None
    security_groups_url: str | None = None
    space_quota_definition_guid: str | None = None
    staging_security_groups_url: str | None = None


class ServiceEntity(WireModel):
    """Marketplace service offered by a broker."""

    unique_id: NonEmptyStr
    service_broker_guid: NonEmptyStr
    description: NonEmptyStr
    label: str | None = None
    active: bool | None = None
    bindable: bool | None = None
    bindings_retrievable: bool | None = None
    instances_retrievable: bool | None = None
    plan_updateable: bool | None = None
    allow_context_updates: bool | None = None
    documentation_url: str | None = None
    info_url: str | None = None
    long_description: str | None = None
    provider: str | None = None
    extra: str | None = None
    requires: list[Any] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    service_broker_name: str | None = None
    service_plans_url: str | None = None
    url: str | None = None
    version: str | None = None


class LastOperation(WireModel):
    """Most recent broker operation on a service instance."""

    state: str
    type: str | None = None
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ServiceInstanceEntity(WireModel):
    """Provisioned service instance living in a space."""

    name: NonEmptyStr
    service_guid: NonEmptyStr
    service_url: NonEmptyStr
    space_guid: NonEmptyStr
    service_keys_url: str | None = None
    credentials: dict[str, Any] = Field(default_factory=dict)
    dashboard_url: str | None = None
    gateway_data: str | None = None
    last_operation: LastOperation | None = None
    maintenance_info: dict[str, Any] | None = None
    routes_url: str | None = None
    service_bindings_url: str | None = None
    service_instance_parameters_url: str | None = None
    service_plan_guid: str | None = None
    service_plan_url: str | None = None
    shared_from_url: str | None = None
    shared_to_url: str | None = None
    space_url: str | None = None
    tags: list[Any] = Field(default_factory=list)
    type: str | None = None


class ServiceKeyEntity(WireModel):
    """Generic service key; credentials are whatever the broker issued."""

    name: NonEmptyStr
    service_instance_guid: NonEmptyStr
    credentials: dict[str, Any] = Field(default_factory=dict)
    service_instance_url: str | None = None
    service_key_parameters_url: str | None = None


class UaaCredentials(WireModel):
    """UAA block of an ABAP service key."""

    url: NonEmptyStr
    clientid: NonEmptyStr
    clientsecret: NonEmptyStr
    uaadomain: str | None = None
    tenantmode: str | None = None
    sburl: str | None = None
    verificationkey: str | None = None
    apiurl: str | None = None
    xsappname: str | None = None
    identityzone: str | None = None
    identityzoneid: str | None = None
    tenantid: str | None = None


class AbapCatalog(WireModel):
    """OData catalog service exposed by an ABAP system."""

    path: str | None = None
    type: str | None = None


class AbapCatalogs(WireModel):
    """Catalog map of an ABAP key; the abap entry is mandatory."""

    abap: AbapCatalog


class AbapBinding(WireModel):
    """Binding descriptor issued with an ABAP key."""

    env: str | None = None
    version: str | None = None
    type: str | None = None
    id: str | None = None


class AbapServiceKey(WireModel):
    """Credentials of a key minted against an ABAP environment instance."""

    uaa: UaaCredentials
    catalogs: AbapCatalogs
    url: str | None = None
    sap_cloud_service: str | None = Field(default=None, alias="sap.cloud.service")
    systemid: str | None = None
    endpoints: dict[str, str] = Field(default_factory=dict)
    binding: AbapBinding | None = None


class AbapServiceKeyEntity(ServiceKeyEntity):
    """Service key whose credentials must describe an ABAP system."""

    credentials: AbapServiceKey  # type: ignore[assignment]


@dataclass(frozen=True)
class Violation:
    """One failed constraint, located by a dotted field path."""

    location: str
    message: str

    def __str__(self) -> str:
        return f"{self.location}: {self.message}"


@dataclass(frozen=True)
class Valid(Generic[ModelT]):
    """Successful validation carrying the parsed record."""

    value: ModelT


@dataclass(frozen=True)
class Invalid:
    """Failed validation carrying every violation found."""

    violations: tuple[Violation, ...]


def _location(loc: tuple[int | str, ...], prefix: str) -> str:
    """Render a pydantic error location as a dotted path."""
    parts = [prefix] if prefix else []
    for item in loc:
        if isinstance(item, int):
            parts[-1:] = [f"{parts[-1]}[{item}]"] if parts else [f"[{item}]"]
        else:
            parts.append(str(item))
    return ".".join(parts) or "<root>"


def validate(model: type[ModelT], payload: Any, prefix: str = "") -> Valid[ModelT] | Invalid:
    """Validate a decoded payload against a model without raising."""
    try:
        return Valid(model.model_validate(payload))
    except ValidationError as exc:
        return Invalid(
            tuple(
                Violation(location=_location(tuple(error["loc"]), prefix), message=error["msg"])
                for error in exc.errors()
            )
        )


def is_abap_service_key(payload: Any) -> bool:
    """Return True when service key credentials carry an ABAP catalog and UAA block."""
    return isinstance(validate(AbapServiceKey, payload), Valid)
