"""
Service-account access tokens for the Google Drive and Sheets REST APIs.
"""

import asyncio
import logging
from typing import Optional, Sequence

from google.auth import exceptions as google_exceptions
from google.auth.transport.requests import Request
from google.oauth2 import service_account

logger = logging.getLogger(__name__)

DRIVE_READONLY_SCOPE = "https://www.googleapis.com/auth/drive.readonly"
SHEETS_READONLY_SCOPE = "https://www.googleapis.com/auth/spreadsheets.readonly"


class GoogleAuthError(Exception):
    """Could not obtain a Google access token."""
    pass


class GoogleTokenProvider:
    """Hands out bearer tokens, refreshing the credentials when they expire."""

    def __init__(self, credentials):
        self._credentials = credentials

    @classmethod
    def from_service_account_file(cls, key_file: str, scopes: Sequence[str]) -> "GoogleTokenProvider":
        try:
            credentials = service_account.Credentials.from_service_account_file(
                key_file, scopes=list(scopes)
            )
        except (OSError, ValueError) as e:
            raise GoogleAuthError(f"Cannot load service account key {key_file}: {e}") from e
        return cls(credentials)

    async def token(self) -> str:
        if not self._credentials.valid:
            try:
                # google-auth refreshes synchronously
                await asyncio.to_thread(self._credentials.refresh, Request())
            except google_exceptions.GoogleAuthError as e:
                raise GoogleAuthError(f"Token refresh failed: {e}") from e
        return self._credentials.token


def build_token_provider(key_file: Optional[str], scopes: Sequence[str]) -> Optional[GoogleTokenProvider]:
    """Token provider for a key file, or None when it is missing or unreadable."""
    if not key_file:
        return None
    try:
        return GoogleTokenProvider.from_service_account_file(key_file, scopes)
    except GoogleAuthError as e:
        logger.warning(f"{e}. Google overrides disabled.")
        return None
