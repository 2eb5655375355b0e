"""Shared plumbing for the async CLI commands."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Coroutine, Optional, TypeVar

import typer

from clerklite.config import resolve_config
from clerklite.exceptions import ClerkAPIError, ClerkliteError, ConfigError
from clerklite.models import Organization, Profile, Session, User
from clerklite.output import debug, error, suggest
from clerklite.sdk import ClerkSDK
from clerklite.storage import DiskStorage, KeyValueStorage

T = TypeVar("T")


def resolve_profile(ctx: typer.Context) -> Profile:
    """Resolve the active profile from the root options and config files.

    Raises:
        ConfigError: If no profile or domain can be found.
    """
    obj = ctx.obj or {}
    _, profile = resolve_config(obj.get("profile"), obj.get("domain"))
    if profile is None:
        raise ConfigError(
            "No Clerk instance configured. Run 'clerklite init <name> --domain <domain>' "
            "or pass --domain."
        )
    return profile


def open_storage(profile: Profile) -> KeyValueStorage:
    return DiskStorage.for_profile(profile.name)


def build_sdk(profile: Profile, storage: KeyValueStorage) -> ClerkSDK:
    """Create the SDK used by a CLI invocation. Refresh is off: the process is short-lived."""
    return ClerkSDK(profile=profile, storage=storage, auto_refresh=False)


@asynccontextmanager
async def loaded_sdk(ctx: typer.Context) -> AsyncIterator[ClerkSDK]:
    """Yield a loaded SDK for the active profile and dispose of it afterwards."""
    profile = resolve_profile(ctx)
    storage = open_storage(profile)
    sdk = build_sdk(profile, storage)
    try:
        debug(f"Using profile '{profile.name}' ({profile.domain})")
        await sdk.load()
        yield sdk
    finally:
        await sdk.dispose()
        storage.close()


def run(coro: Coroutine[Any, Any, T]) -> T:
    """Run *coro* to completion, turning clerklite errors into a message and exit code."""
    try:
        return asyncio.run(coro)
    except ClerkAPIError as exc:
        error(exc.user_friendly_message)
        if exc.code == "dev_browser_unauthenticated":
            suggest("Open the instance's dashboard once in a browser, then retry.")
        raise typer.Exit(code=exc.exit_code) from None
    except ClerkliteError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


# --- Record helpers ---


def user_record(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "name": user.full_name or None,
        "email": user.primary_email,
        "phone": user.primary_phone,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def organization_record(organization: Optional[Organization]) -> Optional[dict[str, Any]]:
    if organization is None:
        return None
    return {"id": organization.id, "name": organization.name, "slug": organization.slug}


def session_record(session: Session) -> dict[str, Any]:
    return {
        "session_id": session.id,
        "status": session.status,
        "expires_at": session.expire_at.isoformat(),
        "user_id": session.user.id,
        "email": session.user.primary_email,
        "organization_id": (
            session.organization.id if session.organization else session.last_active_organization_id
        ),
    }
