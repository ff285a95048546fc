"""CLI entrypoints for discovery, login and listing organizations."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import getpass
import json
import sys
from collections.abc import Sequence
from typing import Any

from cfsdk.client import CloudFoundryClient
from cfsdk.config import Settings, configure_structlog, get_settings
from cfsdk.exceptions import SDKError
from cfsdk.listener import CallbackListener
from cfsdk.uaa import UaaClient


def _print_json(payload: Any) -> None:
    """Write a JSON document to stdout."""
    print(json.dumps(payload, indent=2, default=str))


def _endpoint(args: argparse.Namespace, settings: Settings) -> str:
    """Resolve the API endpoint from arguments or settings."""
    endpoint = args.endpoint or (str(settings.api.endpoint) if settings.api.endpoint else None)
    if not endpoint:
        raise SystemExit("No API endpoint: pass --endpoint or set CF_API__ENDPOINT.")
    return endpoint


async def _login_url(client: CloudFoundryClient) -> str:
    """Discover the UAA login URL from the platform root."""
    info = await client.fetch_platform_info()
    login = info.link("login")
    if login is None:
        raise SDKError("Platform info does not advertise a login link.")
    return login


async def _run_info(endpoint: str, settings: Settings) -> int:
    """Print the platform root document."""
    async with CloudFoundryClient(endpoint, timeout=settings.api.timeout_seconds) as client:
        info = await client.fetch_platform_info()
    _print_json(info.model_dump(mode="json", by_alias=True))
    return 0


async def _run_token_keys(endpoint: str, settings: Settings) -> int:
    """Print the active token signing keys."""
    async with CloudFoundryClient(endpoint, timeout=settings.api.timeout_seconds) as client:
        login = await _login_url(client)
    keys = await UaaClient(login, timeout=settings.api.timeout_seconds).fetch_signing_keys()
    _print_json([key.model_dump(mode="json") for key in keys])
    return 0


async def _run_login(endpoint: str, settings: Settings, username: str) -> int:
    """Run the password grant and print the token."""
    password = getpass.getpass(f"Password for {username}: ")
    async with CloudFoundryClient(endpoint, timeout=settings.api.timeout_seconds) as client:
        login = await _login_url(client)
    token = await UaaClient(login, timeout=settings.api.timeout_seconds).password_grant(
        username, password
    )
    _print_json(token.model_dump(mode="json", exclude_none=True))
    return 0


async def _run_sso_login(endpoint: str, settings: Settings) -> int:
    """Run the browser-based authorization-code grant and print the token."""
    async with CloudFoundryClient(endpoint, timeout=settings.api.timeout_seconds) as client:
        login = await _login_url(client)
    uaa = UaaClient(login, timeout=settings.api.timeout_seconds)
    listener = CallbackListener(
        port=settings.login.callback_port, host=settings.login.callback_host
    )
    try:
        token = await uaa.code_grant(
            settings.login.client_id,
            settings.login.client_secret.get_secret_value(),
            listener,
            timeout=settings.login.callback_timeout_seconds,
        )
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(listener.wait_closed(), timeout=10)
    finally:
        await listener.close()
    _print_json(token.model_dump(mode="json", exclude_none=True))
    return 0


async def _run_organizations(endpoint: str, settings: Settings, token: str) -> int:
    """Print the organizations visible to an access token."""
    async with CloudFoundryClient(endpoint, timeout=settings.api.timeout_seconds) as client:
        organizations = await client.organizations(token)
    _print_json(
        [
            {"guid": organization.metadata.guid, "name": organization.entity.name}
            for organization in organizations
        ]
    )
    return 0


def _build_parser() -> argparse.ArgumentParser:
    """Build command-line parser for supported commands."""
    parser = argparse.ArgumentParser(prog="cfsdk")
    parser.add_argument("--endpoint", default=None, help="Cloud Foundry API endpoint.")
    subcommands = parser.add_subparsers(dest="command", required=True)

    subcommands.add_parser("info", help="Show the platform root document.")
    subcommands.add_parser("token-keys", help="Show the UAA token signing keys.")

    login_parser = subcommands.add_parser("login", help="Log in with username and password.")
    login_parser.add_argument("--username", required=True)

    subcommands.add_parser("sso-login", help="Log in through the browser.")

    organizations_parser = subcommands.add_parser(
        "organizations", help="List organizations ordered by name."
    )
    organizations_parser.add_argument("--token", required=True, help="Access token.")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run CLI command."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    settings = get_settings()
    configure_structlog(settings)
    endpoint = _endpoint(args, settings)

    if args.command == "info":
        runner = _run_info(endpoint, settings)
    elif args.command == "token-keys":
        runner = _run_token_keys(endpoint, settings)
    elif args.command == "login":
        runner = _run_login(endpoint, settings, args.username)
    elif args.command == "sso-login":
        runner = _run_sso_login(endpoint, settings)
    elif args.command == "organizations":
        runner = _run_organizations(endpoint, settings, args.token)
    else:
        parser.error("Unsupported command")
        return 2

    try:
        return asyncio.run(runner)
    except SDKError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
