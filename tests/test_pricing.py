"""
Tests for the pricing engine (net cost, markup, overrides, rule storage).
"""

from decimal import Decimal

import pytest

from catalog_sync.db import PricingRule, PricingMode, DEFAULT_RULE_KEY
from catalog_sync.pricing import (
    PricingEngine,
    PricingContext,
    InMemoryRuleRepository,
    SQLiteRuleRepository,
    calculate_net_cost,
    parse_discount_chain,
    to_decimal,
)


async def engine_with(*rules: PricingRule) -> PricingEngine:
    engine = PricingEngine(InMemoryRuleRepository(list(rules)))
    await engine.ensure_loaded()
    return engine


class TestNetCost:
    """Tests for calculate_net_cost across pricing modes."""

    async def test_aq_net_uses_supplier_net_price(self):
        """AQ_NET with a positive net price uses it, rounded to cents."""
        rule = PricingRule(manufacturer="ACME", pricing_mode=PricingMode.AQ_NET)
        engine = await engine_with(rule)

        result = engine.calculate_price(PricingContext(100, 45.678, "ACME"))

        assert result.net_cost == 45.68
        assert result.final_price == 45.68

    def test_aq_net_falls_back_to_list_price_when_net_is_zero(self):
        """A zero supplier net price must not give a free product."""
        rule = PricingRule(manufacturer="ACME", pricing_mode=PricingMode.AQ_NET)
        cost = calculate_net_cost(PricingContext(120, 0, "ACME"), rule)
        assert cost == Decimal("120")

    async def test_list_discount_chain(self):
        """Chain 50/10 on 100 is 100 * 0.5 * 0.9 = 45.00."""
        rule = PricingRule(
            manufacturer="ACME",
            pricing_mode=PricingMode.LIST_DISCOUNT,
            discount_chain="50/10",
        )
        engine = await engine_with(rule)

        result = engine.calculate_price(PricingContext(100, 0, "ACME"))

        assert result.net_cost == 45.00

    def test_garbage_chain_tokens_are_ignored(self):
        """Tokens that are not numbers are dropped from the chain."""
        rule = PricingRule(
            manufacturer="ACME",
            pricing_mode=PricingMode.LIST_DISCOUNT,
            discount_chain="abc/10//x",
        )
        cost = calculate_net_cost(PricingContext(100, 0, "ACME"), rule)
        assert cost == Decimal("90")

    def test_unknown_mode_uses_list_price(self):
        """An unrecognized mode is stored as None and prices at list."""
        rule = PricingRule(manufacturer="ACME", pricing_mode="WHOLESALE")
        assert rule.pricing_mode is None

        cost = calculate_net_cost(PricingContext(80, 40, "ACME"), rule)
        assert cost == Decimal("80")

    def test_no_rule_uses_list_price(self):
        cost = calculate_net_cost(PricingContext(80, 40, "ACME"), None)
        assert cost == Decimal("80")


class TestFinalPrice:
    """Tests for markup and override prices."""

    async def test_markup_applied_to_net_cost(self):
        """20% markup on a net cost of 50 gives 60.00."""
        rule = PricingRule(manufacturer="ACME", markup_percentage=20)
        engine = await engine_with(rule)

        result = engine.calculate_price(PricingContext(100, 50, "ACME"))

        assert result.net_cost == 50.00
        assert result.final_price == 60.00

    async def test_override_price_wins_over_markup(self):
        rule = PricingRule(manufacturer="ACME", markup_percentage=50, override_price=99.99)
        engine = await engine_with(rule)

        result = engine.calculate_price(PricingContext(100, 50, "ACME"))

        assert result.final_price == 99.99
        assert result.net_cost == 50.00

    async def test_zero_override_price_is_applied(self):
        rule = PricingRule(manufacturer="ACME", markup_percentage=50, override_price=0)
        engine = await engine_with(rule)

        assert engine.calculate_price(PricingContext(100, 50, "ACME")).final_price == 0.0

    async def test_acme_discount_chain_with_markup(self, memory_pricing, acme_rule):
        """ACME 20/10 at 15% markup: 200 -> 144.00 -> 165.60."""
        await memory_pricing.set_rule("ACME", acme_rule)

        result = memory_pricing.calculate_price(PricingContext(200, 0, "ACME"))

        assert result.net_cost == 144.00
        assert result.final_price == 165.60

    async def test_rounds_once_at_the_end(self):
        """Intermediate chain steps are not rounded."""
        rule = PricingRule(
            manufacturer="ACME",
            pricing_mode=PricingMode.LIST_DISCOUNT,
            discount_chain="33/33",
        )
        engine = await engine_with(rule)

        # 10.01 * 0.67 * 0.67 = 4.493489
        result = engine.calculate_price(PricingContext(10.01, 0, "ACME"))

        assert result.net_cost == 4.49


class TestRuleResolution:
    """Tests for rule lookup and storage."""

    async def test_load_creates_default_rule(self, memory_pricing):
        rules = await memory_pricing.load_rules()

        assert DEFAULT_RULE_KEY in rules
        assert rules[DEFAULT_RULE_KEY].markup_percentage == 0
        assert await memory_pricing.repository.get(DEFAULT_RULE_KEY) is not None

    async def test_unknown_manufacturer_uses_default(self, memory_pricing):
        await memory_pricing.load_rules()
        await memory_pricing.set_rule(
            DEFAULT_RULE_KEY, PricingRule(manufacturer=DEFAULT_RULE_KEY, markup_percentage=10)
        )

        result = memory_pricing.calculate_price(PricingContext(100, 50, "Nobody Inc"))

        assert result.final_price == 55.00

    async def test_rule_keys_are_case_insensitive(self, memory_pricing):
        await memory_pricing.set_rule("acme ", PricingRule(manufacturer="acme", markup_percentage=20))

        rule = memory_pricing.resolve_rule("ACME")

        assert rule is not None
        assert rule.markup_percentage == 20
        assert rule.manufacturer == "acme"

    async def test_set_rule_requires_manufacturer(self, memory_pricing):
        with pytest.raises(ValueError):
            await memory_pricing.set_rule("  ", PricingRule(manufacturer="x"))

    def test_unloaded_engine_prices_at_list(self, memory_pricing):
        result = memory_pricing.calculate_price(PricingContext(100, 50, "ACME"))
        assert result.final_price == 100.00

    async def test_set_rule_persists_across_reload(self, db):
        engine = PricingEngine(SQLiteRuleRepository(db))
        await engine.load_rules()
        await engine.set_rule("Vollrath", PricingRule(manufacturer="Vollrath", markup_percentage=30))

        assert engine.resolve_rule("VOLLRATH").markup_percentage == 30

        fresh = PricingEngine(SQLiteRuleRepository(db))
        await fresh.load_rules()

        assert fresh.resolve_rule("vollrath").markup_percentage == 30
        assert {r.key for r in await fresh.get_rules()} == {DEFAULT_RULE_KEY, "VOLLRATH"}

    async def test_malformed_stored_rules_are_skipped(self, db):
        await db.set_setting("pricing_rules", [{"markup_percentage": 5}, {"manufacturer": "ACME"}])

        rules = await SQLiteRuleRepository(db).list()

        assert [r.key for r in rules] == ["ACME"]

    async def test_invalidate_reloads_from_storage(self, memory_pricing):
        await memory_pricing.load_rules()
        await memory_pricing.repository.set("ACME", PricingRule(manufacturer="ACME", markup_percentage=5))

        assert memory_pricing.resolve_rule("ACME").key == DEFAULT_RULE_KEY

        await memory_pricing.reload()

        assert memory_pricing.resolve_rule("ACME").key == "ACME"


class TestParsing:
    """Tests for price and chain parsing helpers."""

    def test_discount_chain_drops_non_finite_values(self):
        assert parse_discount_chain("NaN/10/Infinity/5") == [Decimal("10"), Decimal("5")]

    def test_empty_chain(self):
        assert parse_discount_chain(None) == []
        assert parse_discount_chain("") == []

    def test_to_decimal_treats_garbage_as_zero(self):
        assert to_decimal("abc") == 0
        assert to_decimal(None) == 0
        assert to_decimal(True) == 0
        assert to_decimal(float("nan")) == 0
        assert to_decimal("12.50") == Decimal("12.50")
