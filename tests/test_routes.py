"""
Tests for the HTTP API.
"""

import httpx
import pytest

from catalog_sync import dependencies
from catalog_sync.db import ProductStatus
from catalog_sync.main import app
from catalog_sync.processor import ingest_product


@pytest.fixture
async def api(db, pipeline, monkeypatch):
    monkeypatch.setattr(dependencies, "_db", db)
    monkeypatch.setattr(dependencies, "_pipeline", pipeline)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        yield client
    await pipeline.wait_idle()


class TestTriggers:
    """Tests for background triggers."""

    async def test_trigger_starts_operation(self, api, pipeline):
        response = await api.post("/api/products/ingest")

        assert response.status_code == 200
        assert response.json() == {"status": "Ingest started"}
        await pipeline.wait_idle()
        assert "ingest" in pipeline.last_results

    async def test_busy_pipeline_returns_409(self, api, pipeline):
        pipeline._reserve("sync")
        try:
            response = await api.post("/api/sync")
        finally:
            pipeline._release()

        assert response.status_code == 409

    async def test_status(self, api):
        response = await api.get("/api/sync/status")

        assert response.json() == {"running": None, "last_results": {}}


class TestSyncProduct:
    """Tests for the synchronous single-product endpoint."""

    async def test_requires_product_id(self, api):
        response = await api.post("/api/sync/product", json={})
        assert response.status_code == 400

    async def test_not_found(self, api):
        response = await api.post(
            "/api/sync/product", json={"productId": "00000000-0000-0000-0000-000000000000"}
        )
        assert response.status_code == 404

    async def test_syncs_by_model(self, api, pipeline, supplier, make_product):
        supplier.add(make_product("X100"))
        await pipeline.set_enabled_manufacturers(["M1"])

        response = await api.post("/api/sync/product", json={"productId": "X100"})

        assert response.status_code == 200
        assert response.json()["status"] == "success"

    async def test_sync_failure_returns_500(self, api, shopify, supplier, make_product):
        sp = supplier.add(make_product("X100"))
        shopify.error = RuntimeError("connection reset")

        response = await api.post("/api/sync/product", json={"productId": sp.product_id})

        assert response.status_code == 500


class TestSettings:
    """Tests for rules and manufacturer settings."""

    async def test_save_rule(self, api, pipeline):
        response = await api.post("/api/pricing/rules", json={
            "manufacturer": "Vollrath",
            "pricingMode": "LIST_DISCOUNT",
            "discountChain": "50/10",
            "markup": 25,
        })

        assert response.status_code == 200
        rule = pipeline.pricing.resolve_rule("VOLLRATH")
        assert rule.discount_chain == "50/10"
        assert rule.markup_percentage == 25

        rules = (await api.get("/api/pricing/rules")).json()
        assert "Vollrath" in [r["manufacturer"] for r in rules]

    async def test_enabled_manufacturers_round_trip(self, api):
        response = await api.post("/api/settings", json={"enabledManufacturers": ["M1", "M2"]})
        assert response.status_code == 200

        assert (await api.get("/api/settings")).json() == {"enabledManufacturers": ["M1", "M2"]}

    async def test_settings_requires_list(self, api):
        response = await api.post("/api/settings", json={"enabledManufacturers": "M1"})
        assert response.status_code in (400, 422)

    async def test_manufacturers(self, api, supplier, make_product):
        supplier.add(make_product("X100"))

        response = await api.get("/api/manufacturers")

        assert response.json() == [{"id": "M1", "name": "ACME"}]


class TestProducts:
    """Tests for staged product endpoints."""

    async def test_pagination(self, api, db, pricing, image_resolver, make_product):
        for i in range(51):
            await ingest_product(db, pricing, image_resolver, make_product(f"M{i:03d}"))

        first = (await api.get("/api/products")).json()
        second = (await api.get("/api/products", params={"page": 2})).json()

        assert (first["total"], first["pages"], len(first["products"])) == (51, 2, 50)
        assert len(second["products"]) == 1

    async def test_variants(self, api, db, pricing, image_resolver, make_product):
        product = await ingest_product(db, pricing, image_resolver, make_product("X100"))
        url = f"/api/products/{product.supplier_product_id}/variants"

        response = await api.post(url, json={"variants": [{"option1": "Color", "value1": "Red"}]})
        assert response.status_code == 200

        variants = (await api.get(url)).json()["variants"]
        assert [v["value1"] for v in variants] == ["Red"]

    async def test_image_upload_and_delete(self, api, db, pricing, image_resolver, make_product):
        product = await ingest_product(db, pricing, image_resolver, make_product("X100"))
        base = f"/api/products/{product.supplier_product_id}"

        response = await api.post(
            f"{base}/image", files={"image": ("x100.png", b"\x89PNG", "image/png")}
        )
        assert response.status_code == 200
        stored = await db.get_product(product.supplier_product_id)
        assert stored.images[0].attachment
        assert stored.status == ProductStatus.STAGED

        response = await api.delete(f"{base}/images/0")
        assert response.json()["images"] == 0

    async def test_image_upload_rejects_pdf(self, api, db, pricing, image_resolver, make_product):
        product = await ingest_product(db, pricing, image_resolver, make_product("X100"))

        response = await api.post(
            f"/api/products/{product.supplier_product_id}/image",
            files={"image": ("spec.pdf", b"%PDF", "application/pdf")},
        )

        assert response.status_code == 400

    async def test_unknown_product(self, api):
        response = await api.get("/api/products/nope/variants")
        assert response.status_code == 404


class TestHealth:
    async def test_health(self, api):
        response = await api.get("/health")
        assert response.json() == {"status": "ok"}
