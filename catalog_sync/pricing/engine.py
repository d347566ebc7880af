"""
Price calculation for staged products.

Net cost is derived from supplier prices according to the manufacturer's
pricing mode, then markup (or a fixed override price) gives the sell price.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from ..db import PricingMode, PricingRule, DEFAULT_RULE_KEY
from .repository import RuleRepository, normalize_key

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")


@dataclass
class PricingContext:
    """Supplier prices for one product."""

    list_price: Any
    net_price: Any
    manufacturer: str
    model_number: Optional[str] = None


@dataclass
class PricingResult:
    """Rounded net cost and final sell price."""

    net_cost: float
    final_price: float


def to_decimal(value: Any) -> Decimal:
    """Parse a price, treating anything unusable as zero."""
    if value is None or isinstance(value, bool):
        return ZERO
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return ZERO
    return parsed if parsed.is_finite() else ZERO


def round_price(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def parse_discount_chain(chain: Optional[str]) -> List[Decimal]:
    """
    Parse a discount chain such as "50/10/5" into percentages.

    Tokens that are not finite numbers are dropped.
    """
    discounts = []
    for token in (chain or "").split("/"):
        token = token.strip()
        if not token:
            continue
        try:
            discount = Decimal(token)
        except InvalidOperation:
            continue
        if discount.is_finite():
            discounts.append(discount)
    return discounts


def calculate_net_cost(context: PricingContext, rule: Optional[PricingRule]) -> Decimal:
    """
    Determine net cost (unrounded) for a product.

    Modes:
    - AQ_NET: supplier net price, or list price when net is zero
      (a zero net price from the supplier would otherwise give free items)
    - LIST_DISCOUNT: list price with each chain discount applied in order
    - anything else: list price
    """
    list_price = to_decimal(context.list_price)
    mode = rule.pricing_mode if rule else None

    if mode == PricingMode.AQ_NET:
        net_price = to_decimal(context.net_price)
        return net_price if net_price > 0 else list_price

    if mode == PricingMode.LIST_DISCOUNT:
        cost = list_price
        for discount in parse_discount_chain(rule.discount_chain):
            cost = cost * (1 - discount / HUNDRED)
        return cost

    return list_price


class PricingEngine:
    """
    Applies pricing rules, holding them in an in-memory cache.

    The cache is read-through: it is filled from the repository on first
    use and dropped by `invalidate()`. `set_rule` writes through to the
    repository before updating the cache.
    """

    def __init__(self, repository: RuleRepository):
        self.repository = repository
        self._rules: Optional[Dict[str, PricingRule]] = None

    async def load_rules(self) -> Dict[str, PricingRule]:
        """Load rules from storage, creating the DEFAULT rule if none exist."""
        rules = {r.key: r for r in await self.repository.list()}

        if not rules:
            default = PricingRule(manufacturer=DEFAULT_RULE_KEY, markup_percentage=0)
            await self.repository.set(DEFAULT_RULE_KEY, default)
            rules[DEFAULT_RULE_KEY] = default

        self._rules = rules
        logger.info(f"Loaded {len(rules)} pricing rules")
        return rules

    async def ensure_loaded(self) -> None:
        if self._rules is None:
            await self.load_rules()

    def invalidate(self) -> None:
        """Drop cached rules; the next use reloads them from storage."""
        self._rules = None

    async def reload(self) -> None:
        self.invalidate()
        await self.load_rules()

    async def set_rule(self, manufacturer: str, rule: PricingRule) -> PricingRule:
        """Replace the rule for a manufacturer and persist it."""
        key = normalize_key(manufacturer)
        if not key:
            raise ValueError("manufacturer is required")

        rule = rule.model_copy(update={"manufacturer": manufacturer.strip()})
        await self.repository.set(key, rule)

        await self.ensure_loaded()
        self._rules[key] = rule
        return rule

    async def get_rules(self) -> List[PricingRule]:
        await self.ensure_loaded()
        return list(self._rules.values())

    def resolve_rule(self, manufacturer: str) -> Optional[PricingRule]:
        rules = self._rules or {}
        return rules.get(normalize_key(manufacturer)) or rules.get(DEFAULT_RULE_KEY)

    def calculate_price(self, context: PricingContext) -> PricingResult:
        """
        Calculate net cost and final price for a product.

        Rounding to cents happens once, after the whole calculation.

        Args:
            context: Supplier list/net price and manufacturer name

        Returns:
            PricingResult with both values rounded to 2 decimals
        """
        if self._rules is None:
            logger.warning("Pricing rules not loaded; pricing at list price")

        rule = self.resolve_rule(context.manufacturer)
        net_cost = calculate_net_cost(context, rule)

        if rule is not None and rule.override_price is not None:
            final_price = to_decimal(rule.override_price)
        else:
            markup = to_decimal(rule.markup_percentage) if rule else ZERO
            final_price = net_cost * (1 + markup / HUNDRED)

        return PricingResult(
            net_cost=float(round_price(net_cost)),
            final_price=float(round_price(final_price)),
        )
