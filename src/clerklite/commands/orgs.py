"""Organization commands -- ``clerklite orgs``.

All three commands need a signed-in session.
"""

from __future__ import annotations

import typer

from clerklite.commands.runtime import loaded_sdk, organization_record, run
from clerklite.output import format_response, info, print_table, success

orgs_app = typer.Typer(no_args_is_help=True)


@orgs_app.command("list")
def orgs_list(ctx: typer.Context) -> None:
    """List the organizations the signed-in user belongs to."""

    async def _list() -> None:
        async with loaded_sdk(ctx) as sdk:
            organizations = await sdk.list_organizations()
            if not organizations:
                info("No organizations.")
                return
            active = sdk.session.last_active_organization_id if sdk.session else None
            rows = [
                [o.id, o.name, o.slug, str(o.members_count), "*" if o.id == active else ""]
                for o in organizations
            ]
            print_table(["id", "name", "slug", "members", "active"], rows, title="Organizations")

    run(_list())


@orgs_app.command("create")
def orgs_create(
    ctx: typer.Context,
    name: str = typer.Argument(help="Display name."),
    slug: str = typer.Argument(help="URL-safe identifier."),
) -> None:
    """Create an organization owned by the signed-in user."""

    async def _create() -> None:
        async with loaded_sdk(ctx) as sdk:
            organization = await sdk.create_organization(name, slug)
            success(f'Organization "{organization.name}" created.')
            format_response(organization_record(organization))

    run(_create())


@orgs_app.command("switch")
def orgs_switch(
    ctx: typer.Context,
    organization_id: str = typer.Argument(
        help="Organization id, or 'personal' for the personal workspace."
    ),
) -> None:
    """Make an organization active on the current session."""

    async def _switch() -> None:
        async with loaded_sdk(ctx) as sdk:
            target = None if organization_id == "personal" else organization_id
            organization = await sdk.set_active_organization(target)
            if organization is None:
                success("Switched to the personal workspace." if target is None else f"Switched to {target}.")
            else:
                success(f'Switched to "{organization.name}".')

    run(_switch())
