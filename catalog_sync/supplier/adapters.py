"""
Normalization of AutoQuotes responses.

The API is inconsistent: lists arrive bare or wrapped in {"data": [...]},
single products sometimes arrive as a one-element list, and manufacturer
id/name use several field names. Everything is converted here into
strict models so that nothing downstream deals with raw shapes.
"""

import logging
import math
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

from ..db import CategoryValue

logger = logging.getLogger(__name__)

SPEC_SHEET_RESOURCE_TYPE = "specsheet"


class Manufacturer(BaseModel):
    """A supplier manufacturer."""
    id: str
    name: str


class SupplierProduct(BaseModel):
    """A supplier product, normalized."""
    product_id: str
    mfr_id: str
    mfr_name: str
    model_number: Optional[str] = None
    title: str
    description_html: str = ""
    list_price: float = 0.0
    net_price: float = 0.0
    picture_urls: List[str] = Field(default_factory=list)
    spec_sheet_url: Optional[str] = None
    category_values: List[CategoryValue] = Field(default_factory=list)
    product_type: str = "General"
    tags: List[str] = Field(default_factory=list)


def unwrap_envelope(body: Any) -> List[Dict[str, Any]]:
    """Return the list of records from a bare array or a {"data": ...} envelope."""
    if isinstance(body, list):
        return [item for item in body if isinstance(item, dict)]
    if isinstance(body, dict):
        data = body.get("data")
        if isinstance(data, list):
            return [item for item in data if isinstance(item, dict)]
        if isinstance(data, dict):
            return [data]
        if "productId" in body:
            return [body]
    return []


def _first(record: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = record.get(key)
        if value not in (None, ""):
            return value
    return None


def _text(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def _number(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def normalize_manufacturer(record: Dict[str, Any]) -> Optional[Manufacturer]:
    mfr_id = _text(_first(record, "id", "mfrId", "ManufacturerID", "manufacturerId"))
    name = _text(_first(record, "name", "mfrName", "ManufacturerName", "manufacturerName"))
    if not mfr_id or not name:
        return None
    return Manufacturer(id=mfr_id, name=name)


def normalize_manufacturers(body: Any) -> List[Manufacturer]:
    manufacturers = []
    for record in unwrap_envelope(body):
        manufacturer = normalize_manufacturer(record)
        if manufacturer:
            manufacturers.append(manufacturer)
    return manufacturers


def extract_model_number(record: Dict[str, Any]) -> Optional[str]:
    models = record.get("models")
    if isinstance(models, list):
        models = models[0] if models else None
    if isinstance(models, dict):
        model = _text(models.get("mfrModel"))
        return model or None
    if isinstance(models, str) and models.strip():
        return models.strip()
    return None


def resolve_spec_sheet_url(record: Dict[str, Any]) -> Optional[str]:
    """
    Prefer a "document" media entry that links a PDF, then fall back to a
    generic resource of type SpecSheet.
    """
    for entry in _entries(record, "media", "documents"):
        media_type = _text(_first(entry, "mediaType", "type")).lower()
        url = _text(_first(entry, "url", "uri"))
        if media_type == "document" and url.lower().endswith(".pdf"):
            return url

    for entry in _entries(record, "resources"):
        resource_type = _text(_first(entry, "resourceType", "type", "name"))
        url = _text(_first(entry, "url", "uri"))
        if url and resource_type.replace(" ", "").lower() == SPEC_SHEET_RESOURCE_TYPE:
            return url

    return None


def _entries(record: Dict[str, Any], *keys: str) -> Iterable[Dict[str, Any]]:
    for key in keys:
        value = record.get(key)
        if isinstance(value, list):
            for entry in value:
                if isinstance(entry, dict):
                    yield entry


def extract_category_values(record: Dict[str, Any]) -> List[CategoryValue]:
    values = []
    for entry in _entries(record, "categoryValues", "productCategoryValues"):
        prop = _text(_first(entry, "property", "name", "propertyName"))
        value = _text(_first(entry, "value", "propertyValue"))
        if prop and value:
            values.append(CategoryValue(property=prop, value=value))
    return values


def build_description_html(record: Dict[str, Any], fallback: str) -> str:
    """Marketing copy from the supplier's specification block."""
    specs = record.get("specifications") or {}
    if not isinstance(specs, dict):
        specs = {}

    summary = _text(specs.get("shortMarketingSpecification")) or _text(specs.get("AQSpecification")) or fallback
    html = f"<p>{summary}</p>"

    long_spec = _text(specs.get("longMarketingSpecification"))
    if long_spec:
        html += f"<p>{long_spec}</p>"

    aq_spec = _text(specs.get("AQSpecification"))
    if aq_spec:
        html += f"<h3>Specifications</h3><p>{aq_spec}</p>"

    return html


def normalize_product(record: Dict[str, Any]) -> Optional[SupplierProduct]:
    """
    Convert one raw supplier record. Returns None when the record has no
    product id; a missing model number is kept as None for the caller to skip.
    """
    product_id = _text(_first(record, "productId", "id"))
    if not product_id:
        return None

    mfr_id = _text(_first(record, "mfrId", "manufacturerId", "ManufacturerID"))
    mfr_name = _text(_first(record, "mfrName", "manufacturerName", "ManufacturerName")) or "Unknown"
    model_number = extract_model_number(record)

    pricing = record.get("pricing") or {}
    if not isinstance(pricing, dict):
        pricing = {}

    pictures = []
    for picture in _entries(record, "pictures"):
        url = _text(picture.get("url"))
        if url:
            pictures.append(url)

    category = record.get("productCategory") or {}
    product_type = _text(category.get("name")) if isinstance(category, dict) else ""

    title = f"{mfr_name} {model_number}" if model_number else mfr_name
    tags = [t for t in (mfr_name, product_type) if t]

    return SupplierProduct(
        product_id=product_id,
        mfr_id=mfr_id,
        mfr_name=mfr_name,
        model_number=model_number,
        title=title,
        description_html=build_description_html(record, title),
        list_price=_number(pricing.get("listPrice")),
        net_price=_number(pricing.get("netPrice")),
        picture_urls=pictures,
        spec_sheet_url=resolve_spec_sheet_url(record),
        category_values=extract_category_values(record),
        product_type=product_type or "General",
        tags=tags,
    )


def normalize_products(body: Any) -> List[SupplierProduct]:
    products = []
    for record in unwrap_envelope(body):
        product = normalize_product(record)
        if product is None:
            logger.warning("Skipping supplier record without a product id")
            continue
        products.append(product)
    return products
