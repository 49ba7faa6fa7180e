"""OAuth2 installed-app authentication flow."""

from pathlib import Path
from typing import Optional

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from ..common.constants import SCOPES
from ..common.exceptions import AuthenticationError
from ..common.files import write_private_file
from ..common.logging import get_logger

logger = get_logger(__name__)


class OAuthManager:
    """Manages OAuth2 login and token storage for the Drive account."""

    def __init__(self, token_path: Path, credentials_path: Path) -> None:
        """Initialize OAuth manager.

        Args:
            token_path: Path to store/load the user token
            credentials_path: Path to OAuth client credentials
        """
        self.token_path = token_path
        self.credentials_path = credentials_path
        self._creds: Optional[Credentials] = None

    def login(self) -> Credentials:
        """Run the browser consent flow and store the token.

        Returns:
            Valid credentials

        Raises:
            AuthenticationError: If the client credentials are missing or login fails
        """
        if not self.credentials_path.exists():
            raise AuthenticationError(
                f"OAuth client credentials not found at {self.credentials_path}\n"
                "1. Open https://console.cloud.google.com/apis/credentials\n"
                "2. Create an OAuth 2.0 Client ID of type 'Desktop app'\n"
                "3. Add your account to the consent screen's test users\n"
                "4. Download the JSON and save it to the path above"
            )

        try:
            flow = InstalledAppFlow.from_client_secrets_file(
                str(self.credentials_path),
                SCOPES,
            )
            creds = flow.run_local_server(port=0, prompt="select_account")
        except Exception as e:
            raise AuthenticationError(f"Login failed: {e}") from e

        self._save_token(creds)
        self._creds = creds
        logger.info("Authenticated with Google Drive")
        return creds

    def logout(self) -> None:
        """Remove stored credentials."""
        if self.token_path.exists():
            self.token_path.unlink()
            logger.info("Logged out")
        self._creds = None

    def get_credentials(self) -> Optional[Credentials]:
        """Get valid credentials, refreshing an expired token if possible.

        Returns:
            Valid credentials or None if not authenticated
        """
        if self._creds and self._creds.valid:
            return self._creds

        if not self.token_path.exists():
            return None

        try:
            creds = Credentials.from_authorized_user_file(str(self.token_path), SCOPES)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load token: {e}")
            return None

        if not set(SCOPES).issubset(set(creds.scopes or SCOPES)):
            logger.warning("Stored token lacks the required Drive scope")
            return None

        if creds.expired and creds.refresh_token:
            logger.info("Refreshing expired token...")
            try:
                creds.refresh(Request())
            except RefreshError as e:
                logger.warning(f"Token refresh rejected: {e}")
                return None
            self._save_token(creds)

        self._creds = creds if creds.valid else None
        return self._creds

    def require_credentials(self) -> Credentials:
        """Get valid credentials or fail.

        Raises:
            AuthenticationError: If not authenticated
        """
        creds = self.get_credentials()
        if creds is None:
            raise AuthenticationError(
                "Not authenticated. Please run 'drive-purge auth login' first."
            )
        return creds

    def is_authenticated(self) -> bool:
        return self.get_credentials() is not None

    def _save_token(self, creds: Credentials) -> None:
        write_private_file(self.token_path, creds.to_json())
