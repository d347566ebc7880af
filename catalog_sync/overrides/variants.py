"""
Variant overrides from a Google Sheet.

Sheet layout (header row skipped):
    A: model number   B: option name   C: option value
    D: price modifier E: SKU suffix
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional
from urllib.parse import quote

import httpx

from .google import GoogleTokenProvider, GoogleAuthError

logger = logging.getLogger(__name__)

SHEETS_API_URL = "https://sheets.googleapis.com/v4/spreadsheets"
PRIMARY_RANGE = "Variants!A2:E"
FALLBACK_RANGE = "Sheet1!A2:E"
DEFAULT_CACHE_TTL = 300.0  # 5 minutes
DEFAULT_FAILURE_BACKOFF = 30.0


@dataclass
class VariantOverride:
    """One row of the variants sheet."""

    model_number: str
    option_name: str
    option_value: str
    price_modifier: float = 0.0
    sku_suffix: str = ""


def _cell(row: List[Any], index: int) -> str:
    return str(row[index]).strip() if len(row) > index and row[index] is not None else ""


def parse_rows(rows: List[List[Any]]) -> List[VariantOverride]:
    """Map sheet rows to overrides, dropping rows without a model number."""
    overrides = []
    for row in rows or []:
        model_number = _cell(row, 0)
        if not model_number:
            continue
        try:
            modifier = float(_cell(row, 3) or 0)
        except ValueError:
            modifier = 0.0
        overrides.append(VariantOverride(
            model_number=model_number,
            option_name=_cell(row, 1),
            option_value=_cell(row, 2),
            price_modifier=modifier,
            sku_suffix=_cell(row, 4),
        ))
    return overrides


class SheetsVariantOverrideResolver:
    """
    Looks up variant overrides by model number.

    The whole sheet is cached for `cache_ttl` seconds so a full catalog sync
    costs one API call per window. Any failure yields no overrides, and no
    new fetch is tried for `failure_backoff` seconds after it.
    """

    def __init__(
        self,
        spreadsheet_id: Optional[str],
        token_provider: Optional[GoogleTokenProvider],
        cache_ttl: float = DEFAULT_CACHE_TTL,
        failure_backoff: float = DEFAULT_FAILURE_BACKOFF,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.spreadsheet_id = spreadsheet_id
        self.token_provider = token_provider
        self.cache_ttl = cache_ttl
        self.failure_backoff = failure_backoff
        self._transport = transport
        self._clock = clock
        self._cache: Optional[List[VariantOverride]] = None
        self._fetched_at = 0.0
        self._failed_at: Optional[float] = None

        if not self.enabled:
            logger.warning("Google Sheets not configured. Variant overrides will be skipped.")

    @property
    def enabled(self) -> bool:
        return bool(self.spreadsheet_id and self.token_provider)

    async def _fetch_range(self, client: httpx.AsyncClient, token: str, cell_range: str) -> httpx.Response:
        url = f"{SHEETS_API_URL}/{self.spreadsheet_id}/values/{quote(cell_range)}"
        return await client.get(url, headers={"Authorization": f"Bearer {token}"})

    async def _fetch_rows(self) -> List[List[Any]]:
        token = await self.token_provider.token()
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(60.0, connect=10.0), transport=self._transport
        ) as client:
            logger.info("Fetching variants from Google Sheets (Variants tab)...")
            response = await self._fetch_range(client, token, PRIMARY_RANGE)

            if response.status_code == 400 and "Unable to parse range" in response.text:
                logger.warning('Tab "Variants" not found. Trying "Sheet1"...')
                response = await self._fetch_range(client, token, FALLBACK_RANGE)

            response.raise_for_status()
            return response.json().get("values") or []

    async def fetch_all(self) -> List[VariantOverride]:
        """All override rows, from cache while it is fresh."""
        if self._cache is not None and self._clock() - self._fetched_at < self.cache_ttl:
            return self._cache

        if not self.enabled:
            return []

        if self._failed_at is not None and self._clock() - self._failed_at < self.failure_backoff:
            return []

        try:
            rows = await self._fetch_rows()
        except (httpx.HTTPError, GoogleAuthError, ValueError) as e:
            logger.error(f"Failed to load variant overrides: {e}")
            self._failed_at = self._clock()
            return []

        self._failed_at = None
        self._cache = parse_rows(rows)
        self._fetched_at = self._clock()
        logger.info(f"Loaded {len(self._cache)} variant rules.")
        return self._cache

    async def get_variants(self, model_number: str) -> List[VariantOverride]:
        """Overrides for one model (case-insensitive). Empty means use the default variant."""
        wanted = (model_number or "").strip().lower()
        if not wanted:
            return []
        return [v for v in await self.fetch_all() if v.model_number.lower() == wanted]
