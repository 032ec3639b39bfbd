"""
Google Client - OAuth2 authentication and API service creation

Handles the installed-app OAuth flow once and builds both services the
assistant needs: Gmail (read messages) and Calendar (read busy times).
"""

import logging
from pathlib import Path
from typing import Optional

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build

logger = logging.getLogger(__name__)

# Read-only access to messages and calendar events
SCOPES = [
    "https://www.googleapis.com/auth/gmail.readonly",
    "https://www.googleapis.com/auth/calendar.readonly",
]

# File paths (relative to project root)
APP_DIR = Path(__file__).parent.parent.parent
CREDENTIALS_FILE = APP_DIR / "credentials.json"
TOKEN_FILE = APP_DIR / "token.json"


class GoogleClient:
    """
    Google API client with OAuth2 authentication.

    Handles:
    - Loading existing credentials from token.json
    - Refreshing expired credentials
    - Initiating OAuth flow for new credentials
    - Building the Gmail and Calendar services
    """

    def __init__(self, credentials_file: Optional[Path] = None, token_file: Optional[Path] = None):
        """
        Initialize Google client.

        Args:
            credentials_file: Path to OAuth2 credentials.json
            token_file: Path to store/load token.json
        """
        self.credentials_file = Path(credentials_file or CREDENTIALS_FILE)
        self.token_file = Path(token_file or TOKEN_FILE)
        self._creds = None
        self._gmail = None
        self._calendar = None

    def gmail(self):
        """
        Get authenticated Gmail API service.

        Raises:
            FileNotFoundError: If credentials.json is missing
        """
        if self._gmail is None:
            self._gmail = build("gmail", "v1", credentials=self._credentials())
        return self._gmail

    def calendar(self):
        """Get authenticated Calendar API service."""
        if self._calendar is None:
            self._calendar = build("calendar", "v3", credentials=self._credentials())
        return self._calendar

    def _credentials(self) -> Credentials:
        if self._creds is None or not self._creds.valid:
            self._authenticate()
        return self._creds

    def _authenticate(self):
        """Handle OAuth2 authentication flow."""
        creds = None

        if self.token_file.exists():
            creds = Credentials.from_authorized_user_file(str(self.token_file), SCOPES)

        if not creds or not creds.valid:
            if creds and creds.expired and creds.refresh_token:
                try:
                    creds.refresh(Request())
                except Exception as e:
                    logger.error(f"Failed to refresh Google credentials: {e}")
                    if self.token_file.exists():
                        self.token_file.unlink()
                    raise
            else:
                if not self.credentials_file.exists():
                    raise FileNotFoundError(
                        f"Missing {self.credentials_file}. Download from Google Cloud Console."
                    )
                flow = InstalledAppFlow.from_client_secrets_file(
                    str(self.credentials_file), SCOPES
                )
                creds = flow.run_local_server(port=0)

            with open(self.token_file, "w") as f:
                f.write(creds.to_json())

        self._creds = creds
