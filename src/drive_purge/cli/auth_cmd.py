"""Authentication commands."""

import typer

from ..auth.oauth import OAuthManager
from ..common.exceptions import AuthenticationError
from ..config.settings import get_settings
from .formatters import print_error, print_info, print_panel, print_success, print_warning

auth_app = typer.Typer(help="Manage Google Drive authentication")


def get_oauth_manager() -> OAuthManager:
    settings = get_settings()
    return OAuthManager(settings.token_path, settings.credentials_path)


@auth_app.command("login")
def login() -> None:
    """Authenticate with Google Drive."""
    oauth_manager = get_oauth_manager()

    try:
        if oauth_manager.is_authenticated():
            print_info("Already authenticated. Logging out first...")
            oauth_manager.logout()

        print_info("A browser window will open to select the Google account to audit.")
        oauth_manager.login()

        print_success("Connected to Google Drive!")
        print_info(f"Token saved to: {oauth_manager.token_path}")

    except AuthenticationError as e:
        print_error(f"Authentication failed: {e}")
        raise typer.Exit(1)


@auth_app.command("logout")
def logout() -> None:
    """Remove stored credentials."""
    oauth_manager = get_oauth_manager()

    if not oauth_manager.token_path.exists():
        print_warning("Not currently authenticated.")
        return

    oauth_manager.logout()
    print_success("Logged out.")


@auth_app.command("status")
def status() -> None:
    """Show authentication status."""
    oauth_manager = get_oauth_manager()
    creds = oauth_manager.get_credentials()

    if creds is None:
        print_warning("Not authenticated")
        print_info("Run 'drive-purge auth login' to connect your Drive.")
        return

    print_success("Connected to Google Drive")
    print_info(f"Token location: {oauth_manager.token_path}")
    scopes_text = "\n".join(f"  • {scope}" for scope in (creds.scopes or []))
    print_panel("Granted Scopes", scopes_text or "  (none reported)", style="green")
