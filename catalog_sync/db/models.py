"""
Pydantic models for staging entities and pricing settings.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator
import uuid


class ProductStatus(str, Enum):
    """Lifecycle status of a staged product."""
    STAGED = "staged"
    SYNCED = "synced"
    ERROR = "error"
    ARCHIVED = "archived"


class StatusEvent(str, Enum):
    """Things that happen to a staged product."""
    INGESTED = "ingested"
    SYNC_SUCCEEDED = "sync_succeeded"
    SYNC_FAILED = "sync_failed"
    PRICING_REAPPLIED = "pricing_reapplied"
    OVERRIDE_EDITED = "override_edited"
    MANUFACTURER_DISABLED = "manufacturer_disabled"


class InvalidTransitionError(Exception):
    """A status change that the lifecycle does not allow."""

    def __init__(self, current: Optional[ProductStatus], event: StatusEvent):
        state = current.value if current else "new"
        super().__init__(f"Cannot apply '{event.value}' to a product in state '{state}'")
        self.current = current
        self.event = event


_ACTIVE = (ProductStatus.STAGED, ProductStatus.SYNCED, ProductStatus.ERROR)

# (event, current) -> next. `None` as current means the product is not stored yet.
_TRANSITIONS = {
    (StatusEvent.INGESTED, None): ProductStatus.STAGED,
    (StatusEvent.INGESTED, ProductStatus.STAGED): ProductStatus.STAGED,
    (StatusEvent.INGESTED, ProductStatus.SYNCED): ProductStatus.SYNCED,
    (StatusEvent.INGESTED, ProductStatus.ERROR): ProductStatus.STAGED,
    (StatusEvent.INGESTED, ProductStatus.ARCHIVED): ProductStatus.STAGED,
    (StatusEvent.PRICING_REAPPLIED, ProductStatus.STAGED): ProductStatus.STAGED,
    (StatusEvent.PRICING_REAPPLIED, ProductStatus.SYNCED): ProductStatus.STAGED,
}
for _status in _ACTIVE:
    _TRANSITIONS[(StatusEvent.SYNC_SUCCEEDED, _status)] = ProductStatus.SYNCED
    _TRANSITIONS[(StatusEvent.SYNC_FAILED, _status)] = ProductStatus.ERROR
    _TRANSITIONS[(StatusEvent.OVERRIDE_EDITED, _status)] = ProductStatus.STAGED
for _status in (None, *ProductStatus):
    _TRANSITIONS[(StatusEvent.MANUFACTURER_DISABLED, _status)] = ProductStatus.ARCHIVED


def transition(current: Optional[ProductStatus], event: StatusEvent) -> ProductStatus:
    """
    Return the status a product moves to when `event` happens.

    Every status write in the pipeline goes through here.

    Raises:
        InvalidTransitionError: If the event is not allowed from `current`
    """
    try:
        return _TRANSITIONS[(event, current)]
    except KeyError:
        raise InvalidTransitionError(current, event) from None


def can_transition(current: Optional[ProductStatus], event: StatusEvent) -> bool:
    return (event, current) in _TRANSITIONS


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp, the format stored in SQLite."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ProductImage(BaseModel):
    """A remote image URL or an inline base64 attachment, never both."""
    src: str = ""
    attachment: str = ""
    filename: Optional[str] = None

    @model_validator(mode="after")
    def _one_source(self) -> "ProductImage":
        if bool(self.src) == bool(self.attachment):
            raise ValueError("image needs exactly one of 'src' or 'attachment'")
        return self


class ProductVariant(BaseModel):
    """An explicit variant stored against a product."""
    id: str = Field(default_factory=generate_uuid)
    title: str = "Default"
    price: float = 0.0
    sku: str = ""
    inventory: int = 0
    option1: Optional[str] = None
    value1: Optional[str] = None
    option2: Optional[str] = None
    value2: Optional[str] = None
    option3: Optional[str] = None
    value3: Optional[str] = None


class CategoryValue(BaseModel):
    """A category attribute shown in the spec table."""
    property: str
    value: str


class Product(BaseModel):
    """A product as known to the staging store."""
    supplier_product_id: str
    mfr_id: str
    mfr_name: str
    model_number: str
    title: str
    description_html: str = ""
    spec_sheet_url: Optional[str] = None

    # Pricing
    list_price: float = 0.0
    net_price: float = 0.0  # raw supplier net price
    net_cost: float = 0.0
    final_price: float = 0.0

    images: List[ProductImage] = Field(default_factory=list)
    category_values: List[CategoryValue] = Field(default_factory=list)
    variants: List[ProductVariant] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    product_type: str = "General"

    # Status
    status: ProductStatus = ProductStatus.STAGED
    sync_error: Optional[str] = None
    last_ingested: datetime = Field(default_factory=utcnow)
    last_synced: Optional[datetime] = None

    # Shopify
    shopify_id: Optional[str] = None
    shopify_handle: Optional[str] = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class PricingMode(str, Enum):
    """How net cost is derived from supplier prices."""
    AQ_NET = "AQ_NET"
    LIST_DISCOUNT = "LIST_DISCOUNT"


DEFAULT_RULE_KEY = "DEFAULT"


class PricingRule(BaseModel):
    """Pricing policy for one manufacturer (or DEFAULT)."""
    manufacturer: str
    pricing_mode: Optional[PricingMode] = PricingMode.AQ_NET
    discount_chain: Optional[str] = None  # e.g. "50/10/5"
    markup_percentage: float = 0.0
    override_price: Optional[float] = None

    @field_validator("pricing_mode", mode="before")
    @classmethod
    def _known_mode(cls, value):
        # Unknown modes fall through to list price in the engine
        if isinstance(value, PricingMode) or value is None:
            return value
        try:
            return PricingMode(str(value).upper())
        except ValueError:
            return None

    @field_validator("markup_percentage", mode="before")
    @classmethod
    def _markup_default(cls, value):
        return 0.0 if value is None or value == "" else value

    @property
    def key(self) -> str:
        return self.manufacturer.strip().upper()
