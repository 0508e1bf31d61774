"""
Tests for the pricing table.
"""

import json
import math

import pytest

from messagewise.pricing import (
    Direction,
    MessageCategory,
    PricingConfig,
    VolumeTier,
)


class TestEnums:
    def test_category_parse_is_case_insensitive(self):
        assert MessageCategory.parse("marketing") == MessageCategory.MARKETING
        assert MessageCategory.parse(" Utility ") == MessageCategory.UTILITY
        assert MessageCategory.parse(MessageCategory.AUTHENTICATION) == MessageCategory.AUTHENTICATION

    def test_unknown_category_falls_back_to_service(self):
        assert MessageCategory.parse("PROMOTIONAL") == MessageCategory.SERVICE
        assert MessageCategory.parse(None) == MessageCategory.SERVICE

    def test_direction_parse(self):
        assert Direction.parse("inbound") == Direction.INBOUND
        assert Direction.parse("sideways") == Direction.OUTBOUND


class TestRates:
    def test_country_rates(self, pricing):
        assert pricing.rate(MessageCategory.MARKETING, "ID") == 0.0411
        assert pricing.rate(MessageCategory.UTILITY, "US") == 0.004
        assert pricing.rate(MessageCategory.SERVICE, "BR") == 0.0315
        assert pricing.rate(MessageCategory.MARKETING, "IN") == 0.0107

    def test_country_lookup_is_case_insensitive(self, pricing):
        assert pricing.rate(MessageCategory.MARKETING, "id") == 0.0411

    def test_unknown_country_uses_default_rates(self, pricing):
        assert pricing.rate(MessageCategory.MARKETING, "XX") == 0.0385
        assert pricing.rate(MessageCategory.UTILITY, None) == 0.0042

    def test_authentication_is_free_everywhere(self, pricing):
        for country in ("ID", "US", "IN", "BR", "XX"):
            assert pricing.rate(MessageCategory.AUTHENTICATION, country) == 0.0

    def test_service_window_and_free_tier(self, pricing):
        assert pricing.service_window_hours == 24
        assert pricing.free_conversations_per_month == 1000


class TestVolumeTiers:
    @pytest.mark.parametrize(
        "conversations, tier, discount",
        [
            (0, "TIER_1", 0.0),
            (1000, "TIER_1", 0.0),
            (1001, "TIER_1", 0.0),
            (1002, "TIER_2", 0.1),
            (1500, "TIER_2", 0.1),
            (10002, "TIER_3", 0.2),
            (100002, "TIER_4", 0.3),
        ],
    )
    def test_volume_discount_uses_strict_minimums(self, pricing, conversations, tier, discount):
        result = pricing.volume_discount(conversations)
        assert result.tier == tier
        assert result.discount == discount

    def test_discounts_are_monotonic(self, pricing):
        discounts = [pricing.volume_discount(n).discount for n in (0, 5000, 50000, 500000)]
        assert discounts == sorted(discounts)

    def test_next_volume_tier(self, pricing):
        assert pricing.next_volume_tier(500).tier == "TIER_2"
        assert pricing.next_volume_tier(500).threshold == 1001
        assert pricing.next_volume_tier(1001).tier == "TIER_3"
        assert pricing.next_volume_tier(50000).tier == "TIER_4"
        assert pricing.next_volume_tier(200000) is None


class TestPlans:
    def test_plan_prices_and_multipliers(self, pricing):
        assert pricing.plan_price("pro") == 49.0
        assert pricing.plan_price("ENTERPRISE") == 199.0
        assert pricing.plan_multiplier("starter") == 1.15

    def test_unknown_plan(self, pricing):
        assert pricing.plan_price("GOLD") == 0.0
        assert pricing.plan_multiplier("GOLD") == 1.0


class TestOverrides:
    def test_country_override_keeps_other_countries(self, pricing):
        custom = pricing.with_overrides({"country_rates": {"sg": {"MARKETING": 0.05}}})

        assert custom.rate(MessageCategory.MARKETING, "SG") == 0.05
        assert custom.rate(MessageCategory.UTILITY, "SG") == 0.0
        assert custom.rate(MessageCategory.MARKETING, "ID") == 0.0411
        # Original config is untouched
        assert pricing.rate(MessageCategory.MARKETING, "SG") == 0.0385

    def test_volume_tier_override(self, pricing):
        custom = pricing.with_overrides(
            {
                "volume_tiers": {
                    "SMALL": {"min": 0, "max": 10, "discount": 0},
                    "LARGE": {"min": 11, "max": None, "discount": 0.5},
                }
            }
        )
        assert custom.volume_discount(12).tier == "LARGE"
        assert custom.volume_discount(12).discount == 0.5
        assert custom.volume_tiers[-1] == VolumeTier("LARGE", 11, math.inf, 0.5)

    def test_unknown_key_raises(self, pricing):
        with pytest.raises(KeyError):
            pricing.with_overrides({"surcharge": 1})

    def test_from_json(self, temp_dir):
        path = temp_dir / "pricing.json"
        path.write_text(
            json.dumps({"default_rates": {"MARKETING": 0.1}, "service_window_hours": 48}),
            encoding="utf-8",
        )

        config = PricingConfig.from_json(path)

        assert config.rate(MessageCategory.MARKETING, "XX") == 0.1
        assert config.service_window_hours == 48
        assert config.rate(MessageCategory.MARKETING, "ID") == 0.0411
