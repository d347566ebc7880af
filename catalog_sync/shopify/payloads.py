"""
Builders for Shopify product payloads from staged products.
"""

import html
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..db import Product
from ..overrides.variants import VariantOverride
from ..pricing import round_price, to_decimal

DEFAULT_VARIANT_TITLE = "Default Title"
METAFIELD_NAMESPACE = "custom"

_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]+")


def make_handle(manufacturer: str, model_number: str) -> str:
    """URL-safe handle, e.g. ("AARCO Products", "FAT/16") -> "aarco-products-fat-16"."""
    raw = f"{manufacturer}-{model_number}".lower()
    return _NON_ALPHANUMERIC.sub("-", raw).strip("-")


def format_money(value: Any) -> str:
    return str(round_price(to_decimal(value)))


def build_description_html(product: Product) -> str:
    """Stored description followed by a table of category attributes."""
    body = product.description_html or ""
    if not product.category_values:
        return body

    rows = "".join(
        f"<tr><th>{html.escape(c.property)}</th><td>{html.escape(c.value)}</td></tr>"
        for c in product.category_values
    )
    return f'{body}<table class="product-specs"><tbody>{rows}</tbody></table>'


def build_override_variants(
    product: Product,
    overrides: Sequence[VariantOverride],
) -> Tuple[List[Dict[str, Any]], List[Dict[str, str]]]:
    """
    One variant per override row. All rows for a model share one option,
    named after the first row.
    """
    base = to_decimal(product.final_price)
    variants = [
        {
            "price": format_money(base + to_decimal(o.price_modifier)),
            "sku": f"{product.model_number}{o.sku_suffix}",
            "inventory_management": None,
            "option1": o.option_value,
        }
        for o in overrides
    ]
    return variants, [{"name": overrides[0].option_name}]


def build_stored_variants(product: Product) -> Tuple[List[Dict[str, Any]], Optional[List[Dict[str, str]]]]:
    """Variants entered manually against the staged product (up to three options)."""
    first = product.variants[0]
    option_names = [
        name for name in (first.option1, first.option2, first.option3) if name
    ]

    variants = []
    for v in product.variants:
        payload: Dict[str, Any] = {
            "title": v.title,
            "price": format_money(v.price),
            "sku": v.sku or product.model_number,
            "inventory_management": None,
        }
        for index, value in enumerate((v.value1, v.value2, v.value3)[:len(option_names)], start=1):
            payload[f"option{index}"] = value or DEFAULT_VARIANT_TITLE
        if not option_names:
            payload["option1"] = v.title or DEFAULT_VARIANT_TITLE
        variants.append(payload)

    options = [{"name": name} for name in option_names] or None
    return variants, options


def build_default_variant(product: Product) -> Dict[str, Any]:
    return {
        "price": format_money(product.final_price),
        "sku": product.model_number,
        "inventory_management": None,
        "option1": DEFAULT_VARIANT_TITLE,
    }


def build_variants(
    product: Product,
    overrides: Sequence[VariantOverride],
) -> Tuple[List[Dict[str, Any]], Optional[List[Dict[str, str]]]]:
    """
    Choose the variant set for a product.

    Sheet overrides win, then variants stored on the product, then a single
    default variant priced at the final price.
    """
    if overrides:
        return build_override_variants(product, overrides)
    if product.variants:
        return build_stored_variants(product)
    return [build_default_variant(product)], None


def build_images(product: Product) -> List[Dict[str, str]]:
    images = []
    for image in product.images:
        if image.attachment:
            entry = {"attachment": image.attachment}
            if image.filename:
                entry["filename"] = image.filename
            images.append(entry)
        else:
            images.append({"src": image.src})
    return images


def build_metafields(product: Product) -> List[Dict[str, str]]:
    metafields = [
        {"namespace": METAFIELD_NAMESPACE, "key": "model_number",
         "value": product.model_number, "type": "single_line_text_field"},
        {"namespace": METAFIELD_NAMESPACE, "key": "aq_id",
         "value": product.supplier_product_id, "type": "single_line_text_field"},
    ]
    if product.spec_sheet_url:
        metafields.append(
            {"namespace": METAFIELD_NAMESPACE, "key": "spec_sheet_url",
             "value": product.spec_sheet_url, "type": "url"}
        )
    return metafields


def build_product_payload(
    product: Product,
    overrides: Sequence[VariantOverride] = (),
) -> Dict[str, Any]:
    """Full product payload for create/update."""
    variants, options = build_variants(product, overrides)

    payload: Dict[str, Any] = {
        "title": product.title,
        "body_html": build_description_html(product),
        "vendor": product.mfr_name,
        "product_type": product.product_type or "General",
        "handle": make_handle(product.mfr_name, product.model_number),
        "tags": ", ".join(product.tags),
        "variants": variants,
        "images": build_images(product),
        "metafields": build_metafields(product),
    }
    if options:
        payload["options"] = options
    return payload
