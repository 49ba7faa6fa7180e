"""Main CLI application."""

import typer

from ..common.logging import setup_logging
from ..config.settings import get_settings
from .audit_cmd import audit
from .auth_cmd import auth_app
from .config_cmd import config_app

app = typer.Typer(
    name="drive-purge",
    help="Audit Google Drive with AI and move clutter to the trash",
    add_completion=False,
)

# Register subcommands
app.add_typer(auth_app, name="auth")
app.add_typer(config_app, name="config")

# Add main commands
app.command(name="audit")(audit)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Google Drive cleanup assistant."""
    settings = get_settings()
    log_level = "DEBUG" if verbose else settings.log_level
    setup_logging(level=log_level, log_file=settings.log_file)
