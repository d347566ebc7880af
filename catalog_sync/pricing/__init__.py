"""
Pricing package.
"""

from .engine import (
    PricingEngine,
    PricingContext,
    PricingResult,
    calculate_net_cost,
    parse_discount_chain,
    round_price,
    to_decimal,
)
from .repository import (
    RuleRepository,
    InMemoryRuleRepository,
    SQLiteRuleRepository,
    normalize_key,
)

__all__ = [
    "PricingEngine",
    "PricingContext",
    "PricingResult",
    "calculate_net_cost",
    "parse_discount_chain",
    "round_price",
    "to_decimal",
    "RuleRepository",
    "InMemoryRuleRepository",
    "SQLiteRuleRepository",
    "normalize_key",
]
