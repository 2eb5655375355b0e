"""Init command -- create a profile for a Clerk instance.

Implements ``clerklite init``: validates the domain, writes a
:class:`~clerklite.models.Profile` to the profiles directory and, unless
told otherwise, makes it the default profile.
"""

from __future__ import annotations

import re

import typer

from clerklite.client.shaper import is_dev_instance
from clerklite.output import error, info, success, suggest

_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


def init_command(
    name: str = typer.Argument(help="Profile name."),
    domain: str = typer.Option(
        ..., "--domain", "-d", help="Frontend API domain, e.g. my-app.clerk.accounts.dev."
    ),
    default: bool = typer.Option(
        True, "--default/--no-default", help="Make this the default profile."
    ),
) -> None:
    """Create (or overwrite) a profile.

    Example::

        clerklite init dev --domain my-app.clerk.accounts.dev
        clerklite init prod --domain clerk.example.com --no-default
    """
    from clerklite.config import load_global_config, profile_exists, save_global_config, save_profile
    from clerklite.models import Profile

    if not _NAME_PATTERN.match(name):
        error(f"Invalid profile name: {name!r}")
        raise typer.Exit(code=2)

    profile = Profile(name=name, domain=domain)
    if not profile.domain or "/" in profile.domain:
        error(f"Invalid domain: {domain!r}")
        raise typer.Exit(code=2)

    if profile_exists(name):
        info(f'Profile "{name}" already exists and will be overwritten.')

    save_profile(profile)
    kind = "development" if is_dev_instance(profile.domain) else "production"
    info(f"Instance type: {kind}")

    if default:
        config = load_global_config()
        config.default_profile = name
        save_global_config(config)

    success(f'Profile "{name}" created.')
    suggest("Sign in: clerklite auth sign-in <email>")
