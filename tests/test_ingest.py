"""
Tests for the ingest stage.
"""

from catalog_sync.db import ProductStatus
from catalog_sync.overrides import ImageOverride
from catalog_sync.processor import ingest, set_enabled_manufacturers


class TestIngest:
    """Tests for ingest()."""

    async def test_prices_and_stages_enabled_manufacturers(
        self, db, supplier, pricing, image_resolver, make_product
    ):
        sp = supplier.add(make_product("X100", list_price=200))
        supplier.add(make_product("Z900", mfr_id="M2"))
        await set_enabled_manufacturers(db, ["M1"])

        result = await ingest(db, supplier, pricing, image_resolver)

        assert result.success
        assert result.succeeded == 1
        assert supplier.list_calls == ["M1"]

        product = await db.get_product(sp.product_id)
        assert product.status == ProductStatus.STAGED
        assert product.net_cost == 144.00
        assert product.final_price == 165.60
        assert [img.src for img in product.images] == ["https://cdn.example.com/x100.jpg"]

    async def test_reingest_is_idempotent(self, db, supplier, pricing, image_resolver, make_product):
        """The same upstream product twice gives one row with a newer ingest time."""
        sp = supplier.add(make_product("X100"))
        await set_enabled_manufacturers(db, ["M1"])

        await ingest(db, supplier, pricing, image_resolver)
        first = await db.get_product(sp.product_id)

        await ingest(db, supplier, pricing, image_resolver)
        second = await db.get_product(sp.product_id)

        assert await db.count_products() == 1
        assert second.last_ingested >= first.last_ingested
        assert second.created_at == first.created_at

    async def test_products_without_model_are_skipped(
        self, db, supplier, pricing, image_resolver, make_product
    ):
        sp = supplier.add(make_product(None))
        await set_enabled_manufacturers(db, ["M1"])

        result = await ingest(db, supplier, pricing, image_resolver)

        assert result.success
        assert result.skipped == 1
        assert result.get(sp.product_id).skipped
        assert await db.count_products() == 0

    async def test_image_override_replaces_supplier_images(
        self, db, supplier, pricing, image_resolver, make_product
    ):
        sp = supplier.add(make_product("X100", picture_urls=[
            "https://cdn.example.com/a.jpg", "https://cdn.example.com/b.jpg",
        ]))
        image_resolver.overrides["X100"] = ImageOverride("image/png", "aGVsbG8=", "X100.png")
        await set_enabled_manufacturers(db, ["M1"])

        await ingest(db, supplier, pricing, image_resolver)

        (image,) = (await db.get_product(sp.product_id)).images
        assert image.attachment == "aGVsbG8="
        assert image.src == ""

    async def test_supplier_failure_is_recorded_per_manufacturer(
        self, db, supplier, pricing, image_resolver, make_product
    ):
        supplier.add(make_product("X100", mfr_id="M1"))
        supplier.add(make_product("Y200", mfr_id="M2"))
        supplier.failing.add("M1")
        await set_enabled_manufacturers(db, ["M1", "M2"])

        result = await ingest(db, supplier, pricing, image_resolver)

        assert not result.success
        assert "manufacturer:M1" in result.errors
        assert result.succeeded == 1

    async def test_reingest_keeps_storefront_fields(
        self, db, supplier, pricing, image_resolver, make_product
    ):
        sp = supplier.add(make_product("X100"))
        await set_enabled_manufacturers(db, ["M1"])
        await ingest(db, supplier, pricing, image_resolver)
        await db.update_product(
            sp.product_id,
            status=ProductStatus.SYNCED,
            shopify_id="1001",
            shopify_handle="acme-x100",
        )

        await ingest(db, supplier, pricing, image_resolver)

        product = await db.get_product(sp.product_id)
        assert product.status == ProductStatus.SYNCED
        assert product.shopify_id == "1001"
        assert product.shopify_handle == "acme-x100"

    async def test_reingest_restages_errored_product(
        self, db, supplier, pricing, image_resolver, make_product
    ):
        sp = supplier.add(make_product("X100"))
        await set_enabled_manufacturers(db, ["M1"])
        await ingest(db, supplier, pricing, image_resolver)
        await db.update_product(sp.product_id, status=ProductStatus.ERROR, sync_error="boom")

        await ingest(db, supplier, pricing, image_resolver)

        product = await db.get_product(sp.product_id)
        assert product.status == ProductStatus.STAGED
        assert product.sync_error is None

    async def test_nothing_enabled(self, db, supplier, pricing, image_resolver):
        result = await ingest(db, supplier, pricing, image_resolver)

        assert result.items == []
        assert result.finished_at is not None
