"""
Shopify Admin REST API client.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


def _retry_after(response: httpx.Response) -> Optional[float]:
    """Seconds from a numeric Retry-After header. HTTP-date or missing gives None."""
    try:
        return float(response.headers["Retry-After"])
    except (KeyError, ValueError):
        return None


class ShopifyClientError(Exception):
    """Base exception for Shopify client errors."""
    pass


class ShopifyAuthError(ShopifyClientError):
    """Authentication error."""
    pass


class ShopifyRateLimitError(ShopifyClientError):
    """Rate limit exceeded."""

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


class ShopifyImageRejectedError(ShopifyClientError):
    """Shopify refused the product's images (e.g. file limits on trial accounts)."""
    pass


# Substrings in a rejection body that point at the images
IMAGE_REJECTION_MARKERS = ("trial accounts",)


def normalize_shop_domain(shop: str) -> str:
    """Accept "store", "store.myshopify.com" or a full URL."""
    domain = (shop or "").strip()
    if domain.startswith("https://"):
        domain = domain[8:]
    elif domain.startswith("http://"):
        domain = domain[7:]
    domain = domain.rstrip("/")
    if domain and "." not in domain:
        domain = f"{domain}.myshopify.com"
    return domain


class ShopifyClient:
    """
    Async HTTP client for the Shopify Admin REST API.

    Handles authentication, rate limiting, and retries.
    """

    API_VERSION = "2024-10"
    MAX_RETRIES = 5
    BASE_RETRY_DELAY = 1.0  # seconds

    def __init__(
        self,
        shop_domain: str,
        access_token: str,
        api_version: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Shopify client.

        Args:
            shop_domain: Store domain (e.g., "mystore.myshopify.com")
            access_token: Admin API access token
            api_version: Admin API version, defaults to API_VERSION
            transport: Optional httpx transport (tests)
        """
        self.shop_domain = normalize_shop_domain(shop_domain)
        self.access_token = access_token
        self.api_version = api_version or self.API_VERSION
        self.base_url = f"https://{self.shop_domain}/admin/api/{self.api_version}"

        if not self.shop_domain or not self.access_token:
            logger.warning("Shopify credentials not configured; storefront pushes will fail")

        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.shop_domain and self.access_token)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(60.0, connect=10.0),
                transport=self._transport,
                headers={
                    "Content-Type": "application/json",
                    "X-Shopify-Access-Token": self.access_token,
                },
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _raise_for_rejection(self, response: httpx.Response) -> None:
        """Turn a 4xx validation response into a typed error."""
        body = response.text
        try:
            parsed = response.json()
        except ValueError:
            parsed = body
        errors = parsed.get("errors", parsed) if isinstance(parsed, dict) else parsed

        image_keys = isinstance(errors, dict) and any(
            key in ("image", "images") for key in errors
        )
        lowered = body.lower()
        if image_keys or any(marker in lowered for marker in IMAGE_REJECTION_MARKERS):
            raise ShopifyImageRejectedError(f"Images rejected: {errors}")

        raise ShopifyClientError(f"Shopify rejected request ({response.status_code}): {errors}")

    async def request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Execute a REST call with retry logic.

        Args:
            method: HTTP method
            path: Path under /admin/api/<version>, e.g. "/products.json"
            json: Optional request body
            params: Optional query parameters

        Returns:
            The parsed response body

        Raises:
            ShopifyAuthError: If authentication fails
            ShopifyImageRejectedError: If the payload's images were refused
            ShopifyRateLimitError: If rate limit exceeded after retries
            ShopifyClientError: For other errors
        """
        if not self.is_configured:
            raise ShopifyClientError("Shopify credentials not configured")

        client = await self._get_client()
        last_error: Optional[Exception] = None

        for attempt in range(self.MAX_RETRIES):
            try:
                response = await client.request(method, path, json=json, params=params)

                if response.status_code == 401:
                    raise ShopifyAuthError(
                        f"Authentication failed for {self.shop_domain}"
                    )

                if response.status_code == 429:
                    raise ShopifyRateLimitError(
                        "Rate limit exceeded", retry_after=_retry_after(response)
                    )

                if response.status_code in (400, 422):
                    self._raise_for_rejection(response)

                response.raise_for_status()

                # Log call limit status if available, e.g. "39/40"
                call_limit = response.headers.get("X-Shopify-Shop-Api-Call-Limit")
                if call_limit and "/" in call_limit:
                    used, limit = call_limit.split("/", 1)
                    if used.isdigit() and limit.isdigit() and int(limit) - int(used) < 5:
                        logger.warning(f"Low rate limit headroom: {call_limit}")

                return response.json() if response.content else {}

            except (ShopifyAuthError, ShopifyImageRejectedError):
                # Don't retry auth errors or rejected payloads
                raise

            except ShopifyRateLimitError as e:
                last_error = e
                delay = e.retry_after or (
                    self.BASE_RETRY_DELAY * (2 ** attempt)
                )
                logger.warning(
                    f"Rate limited, waiting {delay:.1f}s "
                    f"(attempt {attempt + 1}/{self.MAX_RETRIES})"
                )
                await asyncio.sleep(delay)

            except httpx.RequestError as e:
                last_error = ShopifyClientError(f"Request error: {e}")
                delay = self.BASE_RETRY_DELAY * (2 ** attempt)
                logger.warning(
                    f"Request error, retrying in {delay:.1f}s: {e}"
                )
                await asyncio.sleep(delay)

            except ShopifyClientError:
                raise

            except Exception as e:
                last_error = ShopifyClientError(f"Unexpected error: {e}")
                logger.error(f"Unexpected error: {e}")
                raise last_error from e

        # All retries exhausted
        raise last_error or ShopifyClientError("Max retries exceeded")

    async def find_by_handle(self, handle: str) -> Optional[Dict[str, Any]]:
        """Return the product with this handle, or None."""
        data = await self.request("GET", "/products.json", params={"handle": handle})
        products = data.get("products") or []
        return products[0] if products else None

    async def create(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Create a product and return it."""
        data = await self.request("POST", "/products.json", json={"product": payload})
        return data.get("product", {})

    async def update(self, product_id: Any, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Update an existing product and return it."""
        body = {"product": {**payload, "id": product_id}}
        data = await self.request("PUT", f"/products/{product_id}.json", json=body)
        return data.get("product", {})

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
