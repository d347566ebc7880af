"""
Pricing rule and manufacturer settings routes.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from ..db import PricingRule
from ..dependencies import get_pipeline
from ..supplier import Manufacturer, SupplierClientError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


class RuleRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    manufacturer: str
    pricing_mode: Optional[str] = Field(None, alias="pricingMode")
    discount_chain: Optional[str] = Field(None, alias="discountChain")
    markup_percentage: Optional[float] = Field(None, alias="markup")
    override_price: Optional[float] = Field(None, alias="overridePrice")


class SettingsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    enabled_manufacturers: Optional[List[str]] = Field(None, alias="enabledManufacturers")


@router.get("/pricing/rules", response_model=List[PricingRule])
async def get_pricing_rules():
    return await get_pipeline().get_rules()


@router.post("/pricing/rules")
async def set_pricing_rule(body: RuleRequest):
    """Create or replace the rule for one manufacturer."""
    if not body.manufacturer.strip():
        raise HTTPException(status_code=400, detail="manufacturer is required")

    rule = PricingRule(**body.model_dump(exclude_none=True))
    saved = await get_pipeline().set_rule(body.manufacturer, rule)
    return {"status": "Rule updated", "rule": saved}


@router.get("/manufacturers", response_model=List[Manufacturer])
async def list_manufacturers():
    try:
        return await get_pipeline().list_manufacturers()
    except SupplierClientError as e:
        logger.error(f"Failed to fetch manufacturers: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch manufacturers")


@router.get("/settings")
async def get_settings():
    return {"enabledManufacturers": await get_pipeline().get_enabled_manufacturers()}


@router.post("/settings")
async def save_settings(body: SettingsRequest):
    """Replace the enabled manufacturers; dropped ones have their products archived."""
    if body.enabled_manufacturers is None:
        raise HTTPException(status_code=400, detail="Invalid format")

    archived = await get_pipeline().set_enabled_manufacturers(body.enabled_manufacturers)
    return {"status": "Settings saved", "archived": archived}
