"""
Tests for the Shopify REST client.
"""

import json

import httpx
import pytest

from catalog_sync.shopify import (
    ShopifyClient,
    ShopifyAuthError,
    ShopifyClientError,
    ShopifyImageRejectedError,
    normalize_shop_domain,
)


def make_client(handler, token: str = "shpat_test") -> ShopifyClient:
    client = ShopifyClient("acme-store", token, transport=httpx.MockTransport(handler))
    client.BASE_RETRY_DELAY = 0
    return client


class TestShopDomain:
    """Tests for normalize_shop_domain."""

    def test_bare_name_gets_myshopify_suffix(self):
        assert normalize_shop_domain("acme-store") == "acme-store.myshopify.com"

    def test_url_is_stripped(self):
        assert normalize_shop_domain("https://acme-store.myshopify.com/") == "acme-store.myshopify.com"


class TestRequests:
    """Tests for product calls."""

    async def test_find_by_handle_queries_products(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["token"] = request.headers.get("X-Shopify-Access-Token")
            return httpx.Response(200, json={"products": [{"id": 7, "handle": "acme-x100"}]})

        async with make_client(handler) as client:
            product = await client.find_by_handle("acme-x100")

        assert product == {"id": 7, "handle": "acme-x100"}
        assert seen["url"] == (
            "https://acme-store.myshopify.com/admin/api/2024-10/products.json?handle=acme-x100"
        )
        assert seen["token"] == "shpat_test"

    async def test_find_by_handle_missing(self):
        async with make_client(lambda request: httpx.Response(200, json={"products": []})) as client:
            assert await client.find_by_handle("nope") is None

    async def test_update_puts_product_with_id(self):
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append((request.method, request.url.path, json.loads(request.content)))
            return httpx.Response(200, json={"product": {"id": 7}})

        async with make_client(handler) as client:
            await client.update(7, {"title": "ACME X100"})

        assert bodies == [(
            "PUT",
            "/admin/api/2024-10/products/7.json",
            {"product": {"title": "ACME X100", "id": 7}},
        )]

    async def test_unconfigured_client_raises(self):
        client = make_client(lambda request: httpx.Response(200), token="")

        with pytest.raises(ShopifyClientError):
            await client.create({"title": "x"})

    async def test_auth_error(self):
        async with make_client(lambda request: httpx.Response(401)) as client:
            with pytest.raises(ShopifyAuthError):
                await client.create({"title": "x"})

    async def test_rate_limit_with_http_date_retry_after(self):
        """A Retry-After date falls back to the exponential delay and the call is retried."""
        responses = [
            httpx.Response(429, headers={"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"}),
            httpx.Response(201, json={"product": {"id": 7, "handle": "acme-x100"}}),
        ]

        async with make_client(lambda request: responses.pop(0)) as client:
            product = await client.create({"title": "ACME X100"})

        assert product["id"] == 7


class TestImageRejection:
    """Tests for detecting refused images."""

    async def test_trial_account_message(self):
        body = {"errors": {"base": ["Trial accounts cannot upload more files"]}}

        async with make_client(lambda request: httpx.Response(422, json=body)) as client:
            with pytest.raises(ShopifyImageRejectedError):
                await client.create({"title": "x"})

    async def test_image_error_key(self):
        body = {"errors": {"images": ["src is invalid"]}}

        async with make_client(lambda request: httpx.Response(422, json=body)) as client:
            with pytest.raises(ShopifyImageRejectedError):
                await client.create({"title": "x"})

    async def test_other_validation_errors(self):
        body = {"errors": {"title": ["can't be blank"]}}

        async with make_client(lambda request: httpx.Response(422, json=body)) as client:
            with pytest.raises(ShopifyClientError) as exc:
                await client.create({"title": ""})

        assert not isinstance(exc.value, ShopifyImageRejectedError)
