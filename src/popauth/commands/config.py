"""Config commands -- view and modify persisted settings.

Provides the ``popauth config`` sub-command group for reading, updating,
and resetting the user's settings file (:class:`~popauth.models.Settings`).
Settings control defaults such as the popup timeout and the address of the
redirect listener.
"""

from __future__ import annotations

import typer

from popauth.output import error, format_response, info, print_table, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show the effective settings and where each value comes from.

    Example::

        popauth config show
        popauth --json config show
    """
    from popauth.config import resolve_settings, settings_path, settings_sources
    from popauth.exceptions import ConfigError

    try:
        effective = resolve_settings().model_dump(mode="json")
        sources = settings_sources()
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    info(f"Settings file: {settings_path()}")
    rows = [[key, str(value), sources[key]] for key, value in effective.items()]
    print_table(["key", "value", "source"], rows, title="popauth settings")


@config_app.command("path")
def config_path() -> None:
    """Print the settings file path."""
    from popauth.config import settings_path

    format_response(str(settings_path()))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Setting name, e.g. 'popup_timeout_ms'."),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a setting value.

    The value is coerced to the type of the current value (bool or int)
    and the result is validated before saving.

    Raises:
        typer.Exit: With code 2 if the key is unknown, the value cannot be
            coerced, or validation fails.

    Example::

        popauth config set popup_timeout_ms 120000
        popauth config set new_window false
    """
    from popauth.config import load_settings, save_settings
    from popauth.exceptions import ConfigError
    from popauth.models import Settings
    from pydantic import ValidationError

    try:
        data = load_settings().model_dump(mode="json")
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    if key not in data:
        error(f"Unknown setting: {key}")
        raise typer.Exit(code=2)

    current = data[key]
    if isinstance(current, bool):
        coerced: object = value.lower() in ("true", "1", "yes")
    elif isinstance(current, int):
        try:
            coerced = int(value)
        except ValueError:
            error(f"Expected integer for {key}, got: {value}")
            raise typer.Exit(code=2) from None
    else:
        coerced = value

    data[key] = coerced
    try:
        settings = Settings.model_validate(data)
    except ValidationError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_settings(settings)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Reset settings to defaults.

    Example::

        popauth config reset --force
    """
    from popauth.config import save_settings
    from popauth.models import Settings

    if not force:
        confirmed = typer.confirm("Reset all settings to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_settings(Settings())
    success("Settings reset to defaults.")
