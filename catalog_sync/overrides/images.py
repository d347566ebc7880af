"""
Image overrides from a Google Drive folder.

A file whose name contains the model number replaces every supplier image
for that product. Files are downloaded with the service account, so the
folder does not need to be public.
"""

import base64
import logging
import os
from dataclasses import dataclass
from typing import List, Optional

import httpx

from .google import GoogleTokenProvider, GoogleAuthError

logger = logging.getLogger(__name__)

DRIVE_FILES_URL = "https://www.googleapis.com/drive/v3/files"


@dataclass
class ImageOverride:
    """A downloaded override image."""

    mime_type: str
    base64: str
    filename: Optional[str] = None


def _quote_literal(value: str) -> str:
    """Escape a value for a Drive query string literal."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


class DriveImageOverrideResolver:
    """Finds and downloads override images. Any failure means no override."""

    def __init__(
        self,
        folder_id: Optional[str],
        token_provider: Optional[GoogleTokenProvider],
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.folder_id = folder_id
        self.token_provider = token_provider
        self._transport = transport

        if not self.enabled:
            logger.warning("Google Drive not configured. Image overrides will be skipped.")

    @property
    def enabled(self) -> bool:
        return bool(self.folder_id and self.token_provider)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(60.0, connect=10.0), transport=self._transport
        )

    async def _list_files(self, client: httpx.AsyncClient, token: str, query: str, page_size: int) -> list:
        response = await client.get(
            DRIVE_FILES_URL,
            params={"q": query, "fields": "files(id, name, mimeType)", "pageSize": page_size},
            headers={"Authorization": f"Bearer {token}"},
        )
        response.raise_for_status()
        return response.json().get("files") or []

    async def find_image_override(self, model_number: str) -> Optional[ImageOverride]:
        """
        Look up an override image for a model number.

        Returns:
            ImageOverride with base64 content, or None when there is no match,
            the store is not configured, or anything fails
        """
        if not self.enabled or not model_number:
            return None

        query = (
            f"'{_quote_literal(self.folder_id)}' in parents and "
            f"name contains '{_quote_literal(model_number)}' and trashed = false"
        )

        try:
            token = await self.token_provider.token()
            async with self._client() as client:
                files = await self._list_files(client, token, query, page_size=1)
                if not files:
                    return None

                file = files[0]
                logger.info(f"Found image override for {model_number}: {file.get('name')}")

                response = await client.get(
                    f"{DRIVE_FILES_URL}/{file['id']}",
                    params={"alt": "media"},
                    headers={"Authorization": f"Bearer {token}"},
                )
                response.raise_for_status()

        except (httpx.HTTPError, GoogleAuthError, ValueError, KeyError) as e:
            logger.error(f"Image override lookup failed for {model_number}: {e}")
            return None

        return ImageOverride(
            mime_type=file.get("mimeType") or "application/octet-stream",
            base64=base64.b64encode(response.content).decode("ascii"),
            filename=file.get("name"),
        )

    async def list_override_models(self) -> List[str]:
        """Model numbers that have an override file (file name without extension)."""
        if not self.enabled:
            return []

        query = f"'{_quote_literal(self.folder_id)}' in parents and trashed = false"
        try:
            token = await self.token_provider.token()
            async with self._client() as client:
                files = await self._list_files(client, token, query, page_size=1000)
        except (httpx.HTTPError, GoogleAuthError, ValueError) as e:
            logger.error(f"Error listing Drive files: {e}")
            return []

        models = []
        for file in files:
            name = file.get("name")
            if not name:
                continue
            model = os.path.splitext(name)[0]
            if model not in models:
                models.append(model)

        logger.info(f"Found {len(models)} image overrides in Drive.")
        return models
