"""Configuration management commands."""

import typer

from ..common.exceptions import ConfigError
from ..config.settings import get_settings, reset_settings
from ..config.store import STORABLE_KEYS, ConfigStore, resolve_api_key, resolve_model
from .formatters import (
    console,
    create_table,
    mask_secret,
    print_error,
    print_info,
    print_success,
    print_warning,
)

config_app = typer.Typer(help="Manage configuration settings")


def get_store() -> ConfigStore:
    return ConfigStore(get_settings().store_path)


@config_app.command()
def show() -> None:
    """Show current configuration."""
    settings = get_settings()
    store = get_store()

    try:
        api_key = resolve_api_key(settings, store)
        model = resolve_model(settings, store)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(1)

    table = create_table(title="Configuration")
    table.add_column("Setting", style="cyan", width=24)
    table.add_column("Value", style="white")

    table.add_row("Data directory", str(settings.data_dir))
    table.add_row("Rate limit (req/s)", str(settings.rate_limit))
    table.add_row("Page size", str(settings.page_size))
    table.add_row("Max files", str(settings.max_files))
    table.add_row("Confidence threshold", str(settings.confidence_threshold))
    table.add_row("Remediation workers", str(settings.remediation_workers))
    table.add_row("Gemini model", model)
    table.add_row("Gemini API key", mask_secret(api_key))
    table.add_row("Log level", settings.log_level)
    table.add_row("Log file", str(settings.log_file) if settings.log_file else "None")

    console.print(table)


@config_app.command("set")
def set_value(
    key: str = typer.Argument(..., help=f"Setting key ({', '.join(STORABLE_KEYS)})"),
    value: str = typer.Argument(..., help="Setting value (empty to remove)"),
) -> None:
    """Save a configuration value for future runs."""
    if key not in STORABLE_KEYS:
        print_error(f"Invalid key: {key}. Valid keys: {', '.join(STORABLE_KEYS)}")
        raise typer.Exit(1)

    try:
        get_store().set(key, value)
    except (ConfigError, OSError) as e:
        print_error(f"Failed to save {key}: {e}")
        raise typer.Exit(1)

    if value.strip():
        shown = mask_secret(value) if key == "gemini_api_key" else value
        print_success(f"Saved {key} = {shown}")
    else:
        print_success(f"Removed {key}")


@config_app.command()
def unset(
    key: str = typer.Argument(..., help="Setting key to remove"),
) -> None:
    """Remove a saved configuration value."""
    try:
        removed = get_store().unset(key)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(1)

    if removed:
        print_success(f"Removed {key}")
    else:
        print_warning(f"{key} was not set")


@config_app.command()
def reset() -> None:
    """Forget all saved configuration values."""
    if typer.confirm("Remove all saved configuration?", default=False):
        get_store().clear()
        reset_settings()
        print_success("Saved configuration removed")
    else:
        print_info("Cancelled")
