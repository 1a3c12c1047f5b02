"""
Gmail Service Adapter

Sends sign-off e-mails through the Gmail API using an OAuth token,
for mailboxes where SMTP relay is not available.

The token is created once, interactively, with:
    python configure.py --gmail-auth
The service itself only loads and refreshes that token.
"""

import base64
import logging
import os
import threading
from typing import List, Optional

try:
    from google.auth.exceptions import RefreshError
    from google.auth.transport.requests import Request
    from google.oauth2.credentials import Credentials
    from google_auth_oauthlib.flow import InstalledAppFlow
    from googleapiclient.discovery import build
    from googleapiclient.errors import HttpError
except ImportError:
    raise ImportError(
        "Google API libraries not installed. "
        "Install with: pip install google-auth google-auth-oauthlib google-api-python-client"
    )

from ..config_loader import config
from ..errors import DispatchFailure
from .mailer import OutgoingMail, build_mime_message

logger = logging.getLogger(__name__)


class GmailMailer:
    """
    Gmail API transport.

    One instance is shared by all request threads. The API client sits on a
    single httplib2 connection, which is not thread-safe, so sends are
    serialized.
    """

    name = "gmail"

    def __init__(
        self,
        credentials_file: Optional[str] = None,
        token_file: Optional[str] = None,
        scopes: Optional[List[str]] = None
    ):
        """
        Initialize Gmail transport.

        Args:
            credentials_file: Path to OAuth client secrets JSON
            token_file: Path to store/load access token
            scopes: Gmail API scopes (defaults to config value)
        """
        self.credentials_file = credentials_file or config.get('mail.gmail.credentials_file', 'credentials.json')
        self.token_file = token_file or config.get('mail.gmail.token_file', 'token.json')
        self.scopes = scopes or config.get('mail.gmail.scopes', ["https://www.googleapis.com/auth/gmail.send"])

        self._service = None
        self._lock = threading.Lock()

    def _save_token(self, creds) -> None:
        try:
            with open(self.token_file, "w") as token:
                token.write(creds.to_json())
            logger.info(f"Saved credentials to {self.token_file}")
        except OSError as e:
            logger.warning(f"Failed to save token: {e}")

    def load_credentials(self) -> Optional[Credentials]:
        """
        Load the stored token, refreshing it when expired.

        Never opens a browser.

        Returns:
            Valid credentials, or None if there is no usable token
        """
        if not os.path.exists(self.token_file):
            logger.debug(f"No token file at {self.token_file}")
            return None

        try:
            creds = Credentials.from_authorized_user_file(self.token_file, self.scopes)
        except (ValueError, OSError) as e:
            logger.warning(f"Failed to load token file: {e}")
            return None

        if creds.valid:
            return creds

        if creds.expired and creds.refresh_token:
            logger.info("Refreshing expired credentials")
            try:
                creds.refresh(Request())
            except RefreshError as e:
                logger.error(f"Token refresh failed: {e}")
                return None
            self._save_token(creds)
            return creds

        return None

    def authorize(self) -> Credentials:
        """
        Run the interactive OAuth flow if no usable token exists.

        Opens a browser and a local callback server; call from a terminal
        (configure.py), never from a request handler.

        Returns:
            Valid credentials

        Raises:
            FileNotFoundError: If the client secrets file is missing
        """
        creds = self.load_credentials()
        if creds:
            logger.info(f"Existing Gmail token is valid: {self.token_file}")
            return creds

        if not os.path.exists(self.credentials_file):
            raise FileNotFoundError(
                f"Credentials file not found: {self.credentials_file}\n"
                "Download from Google Cloud Console"
            )

        logger.info("Starting OAuth flow")
        flow = InstalledAppFlow.from_client_secrets_file(self.credentials_file, self.scopes)
        creds = flow.run_local_server(port=config.get('mail.gmail.oauth_port', 8765))
        self._save_token(creds)
        return creds

    def get_service(self):
        """
        Get authenticated Gmail API service.

        Returns:
            Gmail API service resource

        Raises:
            DispatchFailure: If there is no usable token
        """
        if self._service:
            return self._service

        creds = self.load_credentials()
        if creds is None:
            raise DispatchFailure(
                f"No usable Gmail token at {self.token_file}; run: python configure.py --gmail-auth"
            )

        self._service = build("gmail", "v1", credentials=creds)
        logger.info("Gmail API service initialized successfully")
        return self._service

    def send(self, mail: OutgoingMail) -> str:
        """
        Send a message as the authenticated user.

        Args:
            mail: OutgoingMail to send (empty from_address means the account itself)

        Returns:
            Gmail message ID

        Raises:
            DispatchFailure: If there is no token or the send call fails
        """
        msg = build_mime_message(mail)
        raw = base64.urlsafe_b64encode(msg.as_bytes()).decode("ascii")

        with self._lock:
            service = self.get_service()
            try:
                result = service.users().messages().send(
                    userId="me",
                    body={"raw": raw}
                ).execute()
            except HttpError as e:
                logger.error(f"Gmail send failed: {e}")
                raise DispatchFailure(f"Gmail send failed: {e}") from e

        message_id = result.get("id", "")
        logger.info(f"SUCCESS: Sent Gmail message {message_id} to {len(mail.all_recipients)} recipient(s)")
        return message_id
