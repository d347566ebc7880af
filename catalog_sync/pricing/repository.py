"""
Storage for per-manufacturer pricing rules.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from ..db import SQLiteDatabase, PricingRule

logger = logging.getLogger(__name__)

PRICING_RULES_KEY = "pricing_rules"


def normalize_key(manufacturer: str) -> str:
    """Rule keys are manufacturer names, uppercased."""
    return (manufacturer or "").strip().upper()


class RuleRepository(ABC):
    """Keyed rule storage. Keys are normalized to uppercase."""

    @abstractmethod
    async def get(self, key: str) -> Optional[PricingRule]:
        ...

    @abstractmethod
    async def set(self, key: str, rule: PricingRule) -> None:
        ...

    @abstractmethod
    async def list(self) -> List[PricingRule]:
        ...


class InMemoryRuleRepository(RuleRepository):
    """Non-persistent repository, used by tests and one-off scripts."""

    def __init__(self, rules: Optional[List[PricingRule]] = None):
        self._rules: Dict[str, PricingRule] = {r.key: r for r in rules or []}

    async def get(self, key: str) -> Optional[PricingRule]:
        return self._rules.get(normalize_key(key))

    async def set(self, key: str, rule: PricingRule) -> None:
        self._rules[normalize_key(key)] = rule

    async def list(self) -> List[PricingRule]:
        return list(self._rules.values())


class SQLiteRuleRepository(RuleRepository):
    """
    Rules persisted as one JSON document in the settings table.

    Every `set` rewrites the full rule set, so a reload always sees
    exactly what was last written.
    """

    def __init__(self, db: SQLiteDatabase):
        self.db = db

    async def _load(self) -> Dict[str, PricingRule]:
        raw = await self.db.get_setting(PRICING_RULES_KEY, default=[])
        rules: Dict[str, PricingRule] = {}
        for item in raw:
            try:
                rule = PricingRule(**item)
            except ValueError as e:
                logger.warning(f"Ignoring malformed pricing rule {item!r}: {e}")
                continue
            rules[rule.key] = rule
        return rules

    async def get(self, key: str) -> Optional[PricingRule]:
        return (await self._load()).get(normalize_key(key))

    async def set(self, key: str, rule: PricingRule) -> None:
        rules = await self._load()
        rules[normalize_key(key)] = rule
        await self.db.set_setting(
            PRICING_RULES_KEY,
            [r.model_dump(mode="json") for r in rules.values()]
        )

    async def list(self) -> List[PricingRule]:
        return list((await self._load()).values())
