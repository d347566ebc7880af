"""
AutoQuotes products API client.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

from .adapters import (
    Manufacturer,
    SupplierProduct,
    normalize_manufacturers,
    normalize_products,
)

logger = logging.getLogger(__name__)


def _retry_after(response: httpx.Response) -> Optional[float]:
    """Seconds from a numeric Retry-After header. HTTP-date or missing gives None."""
    try:
        return float(response.headers["Retry-After"])
    except (KeyError, ValueError):
        return None


class SupplierClientError(Exception):
    """Base exception for supplier API errors."""
    pass


class SupplierAuthError(SupplierClientError):
    """Subscription key rejected."""
    pass


class SupplierRateLimitError(SupplierClientError):
    """Rate limit exceeded."""

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


class AQClient:
    """
    Async HTTP client for the AutoQuotes products API.

    Every method returns normalized models; raw response envelopes stay
    inside this class and `adapters`.
    """

    MAX_RETRIES = 5
    BASE_RETRY_DELAY = 1.0  # seconds

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.aq-fes.com/products-api",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize AutoQuotes client.

        Args:
            api_key: APIM subscription key
            base_url: API root
            transport: Optional httpx transport (tests)
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(60.0, connect=10.0),
                transport=self._transport,
                headers={
                    "ocp-apim-subscription-key": self.api_key,
                    "aq-languagecode": "en",
                    "Accept": "application/json",
                },
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Optional[Any]:
        """
        GET a path with retry logic.

        Returns:
            Parsed JSON body, or None for 404

        Raises:
            SupplierAuthError: If the key is rejected
            SupplierClientError: For other errors after retries
        """
        client = await self._get_client()
        last_error: Optional[Exception] = None

        for attempt in range(self.MAX_RETRIES):
            try:
                response = await client.get(path, params=params)

                if response.status_code in (401, 403):
                    raise SupplierAuthError(
                        f"AutoQuotes rejected the subscription key ({response.status_code})"
                    )

                if response.status_code == 404:
                    return None

                if response.status_code == 429:
                    raise SupplierRateLimitError(
                        "Rate limit exceeded", retry_after=_retry_after(response)
                    )

                response.raise_for_status()
                return response.json()

            except SupplierAuthError:
                raise

            except SupplierRateLimitError as e:
                last_error = e
                delay = e.retry_after or (self.BASE_RETRY_DELAY * (2 ** attempt))
                logger.warning(
                    f"AutoQuotes rate limited, waiting {delay:.1f}s "
                    f"(attempt {attempt + 1}/{self.MAX_RETRIES})"
                )
                await asyncio.sleep(delay)

            except httpx.RequestError as e:
                last_error = SupplierClientError(f"Request error: {e}")
                delay = self.BASE_RETRY_DELAY * (2 ** attempt)
                logger.warning(f"AutoQuotes request error, retrying in {delay:.1f}s: {e}")
                await asyncio.sleep(delay)

            except httpx.HTTPStatusError as e:
                raise SupplierClientError(
                    f"AutoQuotes returned {e.response.status_code} for {path}"
                ) from e

            except ValueError as e:
                raise SupplierClientError(f"Invalid JSON from AutoQuotes for {path}: {e}") from e

        raise last_error or SupplierClientError("Max retries exceeded")

    async def list_products(self, manufacturer_id: str) -> List[SupplierProduct]:
        """Fetch every product for a manufacturer."""
        body = await self._get(f"/manufacturers/{manufacturer_id}/products")
        products = normalize_products(body)
        logger.info(f"Fetched {len(products)} products for manufacturer {manufacturer_id}")
        return products

    async def get_product_detail(self, product_id: str) -> Optional[SupplierProduct]:
        """Fetch full details for one product, or None if it does not exist."""
        body = await self._get(f"/products/{product_id}")
        if body is None:
            return None
        products = normalize_products(body)
        return products[0] if products else None

    async def list_manufacturers(self) -> List[Manufacturer]:
        """Fetch all manufacturers available to this subscription."""
        body = await self._get("/manufacturers")
        manufacturers = normalize_manufacturers(body)
        logger.info(f"Fetched {len(manufacturers)} manufacturers from AutoQuotes")
        return manufacturers

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
