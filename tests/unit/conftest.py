"""Shared wire payload builders for unit tests."""

from __future__ import annotations

from typing import Any

import pytest

API_BASE_URL = "https://api.cf.local"
LOGIN_BASE_URL = "https://login.cf.local"


class Payloads:
    """Build Cloud Foundry v2 wire payloads with sensible defaults."""

    @staticmethod
    def envelope(entity: dict[str, Any], guid: str, collection: str) -> dict[str, Any]:
        """Wrap an entity in resource metadata."""
        return {
            "metadata": {
                "guid": guid,
                "url": f"/v2/{collection}/{guid}",
                "created_at": "2024-01-15T10:00:00Z",
                "updated_at": None,
            },
            "entity": entity,
        }

    @staticmethod
    def page(
        resources: list[dict[str, Any]],
        total_results: Any = None,
        next_url: str | None = None,
    ) -> dict[str, Any]:
        """Build one page of a collection."""
        return {
            "total_results": len(resources) if total_results is None else total_results,
            "total_pages": 1 if resources else 0,
            "prev_url": None,
            "next_url": next_url,
            "resources": resources,
        }

    @classmethod
    def organization(cls, name: str, guid: str | None = None) -> dict[str, Any]:
        """Build an organization envelope."""
        guid = guid or f"org-{name}"
        return cls.envelope(
            {
                "name": name,
                "billing_enabled": False,
                "status": "active",
                "spaces_url": f"/v2/organizations/{guid}/spaces",
                "app_events_url": f"/v2/organizations/{guid}/app_events",
                "auditors_url": f"/v2/organizations/{guid}/auditors",
                "quota_definition_guid": "quota-1",
            },
            guid,
            "organizations",
        )

    @classmethod
    def space(cls, name: str, guid: str | None = None) -> dict[str, Any]:
        """Build a space envelope."""
        guid = guid or f"space-{name}"
        return cls.envelope(
            {
                "name": name,
                "allow_ssh": True,
                "organization_guid": "org-1",
                "service_instances_url": f"/v2/spaces/{guid}/service_instances",
                "app_events_url": f"/v2/spaces/{guid}/app_events",
                "auditors_url": f"/v2/spaces/{guid}/auditors",
            },
            guid,
            "spaces",
        )

    @classmethod
    def service(cls, label: str, guid: str | None = None) -> dict[str, Any]:
        """Build a marketplace service envelope."""
        guid = guid or f"service-{label}"
        return cls.envelope(
            {
                "label": label,
                "active": True,
                "bindable": True,
                "description": f"{label} service",
                "unique_id": f"unique-{label}",
                "service_broker_guid": "broker-1",
                "service_plans_url": f"/v2/services/{guid}/service_plans",
                "tags": ["abap"],
                "requires": [],
            },
            guid,
            "services",
        )

    @classmethod
    def service_instance(cls, name: str, guid: str | None = None) -> dict[str, Any]:
        """Build a service instance envelope."""
        guid = guid or f"instance-{name}"
        return cls.envelope(
            {
                "name": name,
                "credentials": {},
                "service_guid": "service-abap",
                "service_url": "/v2/services/service-abap",
                "space_guid": "space-dev",
                "service_keys_url": f"/v2/service_instances/{guid}/service_keys",
                "last_operation": {"type": "create", "state": "succeeded"},
                "tags": [],
                "type": "managed_service_instance",
            },
            guid,
            "service_instances",
        )

    @staticmethod
    def abap_credentials() -> dict[str, Any]:
        """Build the credentials of an ABAP environment service key."""
        return {
            "uaa": {
                "url": "https://tenant.authentication.cf.local",
                "clientid": "sb-abap-client",
                "clientsecret": "abap-secret",
                "uaadomain": "authentication.cf.local",
                "tenantmode": "dedicated",
                "xsappname": "abap-app",
            },
            "url": "https://abap.cf.local",
            "sap.cloud.service": "com.sap.cloud.abap",
            "systemid": "H01",
            "endpoints": {"abap": "https://abap.cf.local"},
            "catalogs": {
                "abap": {
                    "path": "/sap/opu/odata/IWFND/CATALOGSERVICE;v=2",
                    "type": "sap_abap_catalog_v1",
                }
            },
            "binding": {"env": "cf", "version": "0.0.1.1", "type": "oauth", "id": "binding-1"},
        }

    @classmethod
    def service_key(
        cls,
        name: str,
        credentials: dict[str, Any] | None = None,
        guid: str | None = None,
        instance_guid: str = "instance-abap",
    ) -> dict[str, Any]:
        """Build a service key envelope."""
        guid = guid or f"key-{name}"
        return cls.envelope(
            {
                "name": name,
                "service_instance_guid": instance_guid,
                "credentials": cls.abap_credentials() if credentials is None else credentials,
                "service_instance_url": f"/v2/service_instances/{instance_guid}",
                "service_key_parameters_url": f"/v2/service_keys/{guid}/parameters",
            },
            guid,
            "service_keys",
        )

    @staticmethod
    def platform_info(login_url: str = LOGIN_BASE_URL) -> dict[str, Any]:
        """Build the platform root document."""
        return {
            "links": {
                "self": {"href": API_BASE_URL},
                "bits_service": None,
                "cloud_controller_v2": {
                    "href": f"{API_BASE_URL}/v2",
                    "meta": {"version": "2.150.0"},
                },
                "login": {"href": login_url},
                "uaa": {"href": "https://uaa.cf.local"},
                "app_ssh": {"href": "ssh.cf.local:2222", "meta": {"oauth_client": "ssh-proxy"}},
            }
        }

    @staticmethod
    def token(access_token: str = "access-1") -> dict[str, Any]:
        """Build a UAA token endpoint response."""
        return {
            "access_token": access_token,
            "token_type": "bearer",
            "refresh_token": "refresh-1",
            "expires_in": 1199,
            "scope": "cloud_controller.read cloud_controller.write openid",
            "jti": "jti-1",
        }


@pytest.fixture
def payloads() -> type[Payloads]:
    """Return the wire payload builders."""
    return Payloads
