"""Config commands -- view and modify configuration.

Provides ``clerklite config show``, ``set`` and ``profiles``. Settings live
in :class:`~clerklite.models.GlobalConfig`; per-instance settings live in
the profiles written by ``clerklite init``.
"""

from __future__ import annotations

import typer

from clerklite.output import error, format_response, info, print_table, success

config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Show the global configuration and the resolved profile.

    Example::

        clerklite config show --json
    """
    from clerklite.config import get_config_dir, resolve_config
    from clerklite.exceptions import ConfigError

    obj = ctx.obj or {}
    try:
        config, profile = resolve_config(obj.get("profile"), obj.get("domain"))
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    info(f"Config directory: {get_config_dir()}")
    format_response(
        {
            "global": config.model_dump(mode="json"),
            "profile": profile.model_dump(mode="json") if profile else None,
        }
    )


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Config key (dot notation, e.g. 'output.format')."),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a global configuration value.

    The value is coerced to the type of the current value before the whole
    config is re-validated.

    Example::

        clerklite config set default_profile dev
        clerklite config set auto_select_single_profile false
    """
    from clerklite.config import load_global_config, save_global_config
    from clerklite.models import GlobalConfig

    data = load_global_config().model_dump(mode="json")

    *parents, leaf = key.split(".")
    target = data
    for part in parents:
        if not isinstance(target.get(part), dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=2)
        target = target[part]
    if leaf not in target:
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    current = target[leaf]
    coerced: object = value
    if isinstance(current, bool):
        coerced = value.lower() in ("true", "1", "yes")
    elif isinstance(current, int):
        try:
            coerced = int(value)
        except ValueError:
            error(f"Expected integer for {key}, got: {value}")
            raise typer.Exit(code=2) from None
    target[leaf] = coerced

    try:
        config = GlobalConfig.model_validate(data)
    except ValueError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_global_config(config)
    success(f"Set {key} = {coerced}")


@config_app.command("profiles")
def config_profiles() -> None:
    """List stored profiles. The default profile is marked with ``*``."""
    from clerklite.config import list_profiles, load_global_config, load_profile

    names = list_profiles()
    if not names:
        info("No profiles. Create one with: clerklite init <name> --domain <domain>")
        return
    default = load_global_config().default_profile
    rows = [
        [name, load_profile(name).domain, "*" if name == default else ""] for name in names
    ]
    print_table(["name", "domain", "default"], rows, title="Profiles")
