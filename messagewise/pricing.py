"""
Pricing table for messaging-channel cost analytics.

Holds per-category base rates, per-country overrides, volume discount tiers,
free-tier and service-window constants and subscription plan prices. Every
analyzer receives a PricingConfig at construction so rates can be swapped
per test or per tenant without touching module state.
"""

import json
import logging
import math
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger(__name__)


class MessageCategory(Enum):
    """Billing categories of the messaging channel."""

    AUTHENTICATION = "AUTHENTICATION"
    MARKETING = "MARKETING"
    UTILITY = "UTILITY"
    SERVICE = "SERVICE"

    @classmethod
    def parse(cls, value: Any) -> "MessageCategory":
        """Parse a category name, falling back to SERVICE."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return cls.SERVICE


class Direction(Enum):
    """Message direction relative to the business."""

    INBOUND = "INBOUND"
    OUTBOUND = "OUTBOUND"

    @classmethod
    def parse(cls, value: Any) -> "Direction":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return cls.OUTBOUND


@dataclass(frozen=True)
class VolumeDiscount:
    """Discount tier resolved for a conversation count."""

    tier: str
    discount: float
    threshold: int


@dataclass(frozen=True)
class VolumeTier:
    """Static tier definition: conversation interval and its discount."""

    name: str
    min: int
    max: float
    discount: float


def _frozen(mapping: Mapping) -> Mapping:
    return MappingProxyType(dict(mapping))


DEFAULT_RATES = {
    MessageCategory.AUTHENTICATION: 0.0,  # Free
    MessageCategory.MARKETING: 0.0385,
    MessageCategory.UTILITY: 0.0042,
    MessageCategory.SERVICE: 0.0063,
}

COUNTRY_RATES = {
    "ID": {
        MessageCategory.AUTHENTICATION: 0.0,
        MessageCategory.MARKETING: 0.0411,
        MessageCategory.UTILITY: 0.0019,
        MessageCategory.SERVICE: 0.0028,
    },
    "US": {
        MessageCategory.AUTHENTICATION: 0.0,
        MessageCategory.MARKETING: 0.025,
        MessageCategory.UTILITY: 0.004,
        MessageCategory.SERVICE: 0.006,
    },
    "IN": {
        MessageCategory.AUTHENTICATION: 0.0,
        MessageCategory.MARKETING: 0.0107,
        MessageCategory.UTILITY: 0.0014,
        MessageCategory.SERVICE: 0.0042,
    },
    "BR": {
        MessageCategory.AUTHENTICATION: 0.0,
        MessageCategory.MARKETING: 0.0625,
        MessageCategory.UTILITY: 0.0035,
        MessageCategory.SERVICE: 0.0315,
    },
}

VOLUME_TIERS = (
    VolumeTier("TIER_1", 0, 1000, 0.0),
    VolumeTier("TIER_2", 1001, 10000, 0.1),
    VolumeTier("TIER_3", 10001, 100000, 0.2),
    VolumeTier("TIER_4", 100001, math.inf, 0.3),
)

PLAN_PRICES = {"FREE": 0.0, "STARTER": 15.0, "PRO": 49.0, "ENTERPRISE": 199.0}

# Better optimization with more plan features
PLAN_SAVINGS_MULTIPLIERS = {
    "FREE": 1.0,
    "STARTER": 1.15,
    "PRO": 1.25,
    "ENTERPRISE": 1.4,
}


@dataclass(frozen=True)
class PricingConfig:
    """Immutable pricing configuration shared by all analyzers."""

    default_rates: Mapping[MessageCategory, float] = field(
        default_factory=lambda: _frozen(DEFAULT_RATES)
    )
    country_rates: Mapping[str, Mapping[MessageCategory, float]] = field(
        default_factory=lambda: _frozen(
            {code: _frozen(rates) for code, rates in COUNTRY_RATES.items()}
        )
    )
    volume_tiers: tuple = VOLUME_TIERS
    free_conversations_per_month: int = 1000
    service_window_hours: int = 24
    plan_prices: Mapping[str, float] = field(
        default_factory=lambda: _frozen(PLAN_PRICES)
    )
    plan_savings_multipliers: Mapping[str, float] = field(
        default_factory=lambda: _frozen(PLAN_SAVINGS_MULTIPLIERS)
    )
    usd_to_idr_rate: float = 15700.0

    @classmethod
    def default(cls) -> "PricingConfig":
        return cls()

    def rates_for(self, country: Optional[str]) -> Mapping[MessageCategory, float]:
        """Rate table for a country; unknown countries use the default rates."""
        code = (country or "").strip().upper()
        rates = self.country_rates.get(code)
        if rates is None:
            logger.debug(f"No rate override for country '{country}', using defaults")
            return self.default_rates
        return rates

    def rate(self, category: MessageCategory, country: Optional[str] = None) -> float:
        """Per-message rate of a category in a country."""
        return float(self.rates_for(country).get(category, 0.0))

    def volume_discount(self, conversation_count: int) -> VolumeDiscount:
        """
        Resolve the discount tier for a unique-conversation count.

        Tier minimums are compared with a strict ``>`` starting from the
        highest tier; the first tier is the fallback.
        """
        tiers = sorted(self.volume_tiers, key=lambda t: t.min)
        for tier in reversed(tiers[1:]):
            if conversation_count > tier.min:
                return VolumeDiscount(tier.name, tier.discount, tier.min)
        base = tiers[0]
        return VolumeDiscount(base.name, base.discount, base.min)

    def next_volume_tier(self, conversation_count: int) -> Optional[VolumeDiscount]:
        """Tier above the one a conversation count falls into, or None at the top."""
        tiers = sorted(self.volume_tiers, key=lambda t: t.min)
        for current, upcoming in zip(tiers, tiers[1:]):
            if conversation_count <= current.max:
                return VolumeDiscount(upcoming.name, upcoming.discount, upcoming.min)
        return None

    def plan_price(self, plan: str) -> float:
        return float(self.plan_prices.get(str(plan).upper(), 0.0))

    def plan_multiplier(self, plan: str) -> float:
        return float(self.plan_savings_multipliers.get(str(plan).upper(), 1.0))

    def with_overrides(self, overrides: Mapping[str, Any]) -> "PricingConfig":
        """
        Return a copy with selected tables replaced.

        Accepted keys: ``default_rates``, ``country_rates``, ``volume_tiers``,
        ``free_conversations_per_month``, ``service_window_hours``,
        ``plan_prices``, ``plan_savings_multipliers``, ``usd_to_idr_rate``.
        Rate tables may be keyed by category name strings.
        """
        changes: Dict[str, Any] = {}
        for key, value in overrides.items():
            if key == "default_rates":
                changes[key] = _frozen(_parse_rates(value))
            elif key == "country_rates":
                merged = dict(self.country_rates)
                for code, rates in value.items():
                    merged[code.upper()] = _frozen(_parse_rates(rates))
                changes[key] = _frozen(merged)
            elif key == "volume_tiers":
                changes[key] = tuple(_parse_tier(name, tier) for name, tier in _tier_items(value))
            elif key in ("plan_prices", "plan_savings_multipliers"):
                merged = dict(getattr(self, key))
                merged.update({k.upper(): float(v) for k, v in value.items()})
                changes[key] = _frozen(merged)
            elif key in ("free_conversations_per_month", "service_window_hours"):
                changes[key] = int(value)
            elif key == "usd_to_idr_rate":
                changes[key] = float(value)
            else:
                raise KeyError(f"Unknown pricing key: {key}")
        return replace(self, **changes)

    @classmethod
    def from_json(cls, path: Path) -> "PricingConfig":
        """Build a config from the defaults plus overrides stored in a JSON file."""
        with open(path, "r", encoding="utf-8") as f:
            overrides = json.load(f)
        logger.info(f"Loaded pricing overrides from {path}: {sorted(overrides)}")
        return cls.default().with_overrides(overrides)


def _parse_rates(rates: Mapping[Any, Any]) -> Dict[MessageCategory, float]:
    parsed = {category: 0.0 for category in MessageCategory}
    for key, value in rates.items():
        parsed[MessageCategory.parse(key)] = float(value)
    return parsed


def _tier_items(value: Any):
    if isinstance(value, Mapping):
        return list(value.items())
    return [(getattr(tier, "name", None), tier) for tier in value]


def _parse_tier(name: Optional[str], tier: Any) -> VolumeTier:
    if isinstance(tier, VolumeTier):
        return tier
    upper = tier.get("max")
    return VolumeTier(
        name=tier.get("name", name),
        min=int(tier["min"]),
        max=math.inf if upper is None else float(upper),
        discount=float(tier["discount"]),
    )
