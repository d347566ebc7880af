"""
Shared fixtures: a temp-file database and in-memory stand-ins for the
supplier, Shopify and the Google override stores.
"""

import uuid
from typing import Dict, List, Optional

import pytest

from catalog_sync.db import SQLiteDatabase, PricingRule, PricingMode
from catalog_sync.overrides import ImageOverride, VariantOverride
from catalog_sync.pricing import PricingEngine, InMemoryRuleRepository, SQLiteRuleRepository
from catalog_sync.processor import Pipeline
from catalog_sync.shopify import ShopifyImageRejectedError
from catalog_sync.supplier import Manufacturer, SupplierProduct, SupplierClientError


def make_id() -> str:
    return str(uuid.uuid4())


def make_supplier_product(
    model_number: Optional[str] = "X100",
    product_id: Optional[str] = None,
    mfr_id: str = "M1",
    mfr_name: str = "ACME",
    list_price: float = 200.0,
    net_price: float = 0.0,
    picture_urls: Optional[List[str]] = None,
) -> SupplierProduct:
    return SupplierProduct(
        product_id=product_id or make_id(),
        mfr_id=mfr_id,
        mfr_name=mfr_name,
        model_number=model_number,
        title=f"{mfr_name} {model_number}",
        description_html=f"<p>{mfr_name} {model_number}</p>",
        list_price=list_price,
        net_price=net_price,
        picture_urls=picture_urls if picture_urls is not None else ["https://cdn.example.com/x100.jpg"],
        tags=[mfr_name],
    )


class FakeSupplier:
    """Supplier catalog held in memory."""

    def __init__(self):
        self.catalog: Dict[str, List[SupplierProduct]] = {}
        self.failing: set = set()
        self.list_calls: List[str] = []

    def add(self, product: SupplierProduct, manufacturer_id: Optional[str] = None) -> SupplierProduct:
        """File the product under manufacturer_id, defaulting to its own mfr_id."""
        self.catalog.setdefault(manufacturer_id or product.mfr_id, []).append(product)
        return product

    async def list_products(self, manufacturer_id: str) -> List[SupplierProduct]:
        self.list_calls.append(manufacturer_id)
        if manufacturer_id in self.failing:
            raise SupplierClientError(f"AutoQuotes returned 500 for manufacturer {manufacturer_id}")
        return list(self.catalog.get(manufacturer_id, []))

    async def get_product_detail(self, product_id: str) -> Optional[SupplierProduct]:
        for products in self.catalog.values():
            for product in products:
                if product.product_id == product_id:
                    return product
        return None

    async def list_manufacturers(self) -> List[Manufacturer]:
        return [Manufacturer(id=mfr_id, name=products[0].mfr_name if products else mfr_id)
                for mfr_id, products in self.catalog.items()]

    async def close(self) -> None:
        pass


class FakeShopify:
    """Shopify products keyed by handle."""

    def __init__(self):
        self.products: Dict[str, dict] = {}
        self.pushes: List[dict] = []
        self.reject_images = False
        self.error: Optional[Exception] = None
        self._next_id = 1000

    async def find_by_handle(self, handle: str) -> Optional[dict]:
        return self.products.get(handle)

    def _check(self, payload: dict) -> None:
        self.pushes.append(payload)
        if self.error is not None:
            raise self.error
        if self.reject_images and payload.get("images"):
            raise ShopifyImageRejectedError("Images rejected: trial accounts cannot upload files")

    async def create(self, payload: dict) -> dict:
        self._check(payload)
        self._next_id += 1
        product = {**payload, "id": self._next_id}
        self.products[payload["handle"]] = product
        return product

    async def update(self, product_id, payload: dict) -> dict:
        self._check(payload)
        product = {**payload, "id": product_id}
        self.products[payload["handle"]] = product
        return product

    async def close(self) -> None:
        pass


class FakeImageResolver:
    def __init__(self, overrides: Optional[Dict[str, ImageOverride]] = None):
        self.overrides = overrides or {}

    async def find_image_override(self, model_number: str) -> Optional[ImageOverride]:
        return self.overrides.get(model_number)


class FakeVariantResolver:
    def __init__(self, overrides: Optional[List[VariantOverride]] = None):
        self.overrides = overrides or []

    async def get_variants(self, model_number: str) -> List[VariantOverride]:
        return [o for o in self.overrides if o.model_number.lower() == model_number.lower()]


@pytest.fixture
async def db(tmp_path):
    database = SQLiteDatabase(str(tmp_path / "catalog.db"))
    await database.initialize()
    yield database
    await database.close()


@pytest.fixture
def acme_rule():
    return PricingRule(
        manufacturer="ACME",
        pricing_mode=PricingMode.LIST_DISCOUNT,
        discount_chain="20/10",
        markup_percentage=15,
    )


@pytest.fixture
async def pricing(db, acme_rule):
    engine = PricingEngine(SQLiteRuleRepository(db))
    await engine.load_rules()
    await engine.set_rule("ACME", acme_rule)
    return engine


@pytest.fixture
def make_product():
    return make_supplier_product


@pytest.fixture
def memory_pricing():
    return PricingEngine(InMemoryRuleRepository())


@pytest.fixture
def supplier():
    return FakeSupplier()


@pytest.fixture
def shopify():
    return FakeShopify()


@pytest.fixture
def image_resolver():
    return FakeImageResolver()


@pytest.fixture
def variant_resolver():
    return FakeVariantResolver()


@pytest.fixture
def pipeline(db, supplier, shopify, pricing, image_resolver, variant_resolver):
    return Pipeline(
        db=db,
        supplier=supplier,
        shopify=shopify,
        pricing=pricing,
        image_resolver=image_resolver,
        variant_resolver=variant_resolver,
    )
