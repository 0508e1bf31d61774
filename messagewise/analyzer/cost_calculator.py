"""
Cost calculator for messaging-channel billing.

Attributes cost per category, applies free-message rules and volume-tier
discounts, and derives daily costs, savings estimates, period comparisons
and monthly projections from the same core calculation.
"""

import logging
import time
from typing import Dict, List, Optional, Sequence

from messagewise.helpers import (
    group_by,
    percentage,
    percentage_change,
    round_int,
    round_value,
    utc_date_key,
)
from messagewise.models import (
    CategoryBreakdown,
    CostBreakdown,
    DiscountedCostBreakdown,
    Message,
    MonthlyEstimate,
    PeriodComparison,
    PotentialSavings,
    SavingsOpportunity,
    TrendData,
)
from messagewise.pricing import (
    Direction,
    MessageCategory,
    PricingConfig,
    VolumeDiscount,
)

logger = logging.getLogger(__name__)


class CostCalculator:
    """
    Computes cost breakdowns for a set of messages.

    A message is free when it is inbound, an authentication message, or sent
    inside the free service window. Paid messages cost the per-category rate
    of the configured country; the total and every category are then scaled
    by the volume discount of the unique-conversation count.
    """

    # Share of outbound marketing assumed to be reclassifiable as utility
    RECLASSIFIABLE_SHARE = 0.3
    # Minimum progress towards the next tier before it counts as an opportunity
    VOLUME_PROXIMITY_THRESHOLD = 0.7
    DAYS_PER_MONTH = 30

    def __init__(
        self,
        country: str = "ID",
        currency: str = "USD",
        pricing: Optional[PricingConfig] = None,
    ):
        self.country = country
        self.currency = currency
        self.pricing = pricing or PricingConfig.default()

    def calculate_cost(
        self,
        messages: Sequence[Message],
        country: Optional[str] = None,
        currency: Optional[str] = None,
        apply_volume_discounts: bool = True,
        include_free_tier: bool = True,
    ) -> CostBreakdown:
        """
        Calculate the cost breakdown of a set of messages.

        Args:
            messages: Message projections to attribute
            country: ISO country code for rates (defaults to the calculator's)
            currency: Currency label of the result
            apply_volume_discounts: Scale costs by the volume tier discount
            include_free_tier: Accepted for API compatibility; free-ness is
                decided by direction, category and the free window only

        Returns:
            CostBreakdown with one entry per category
        """
        start_time = time.perf_counter()
        country = country or self.country
        currency = currency or self.currency

        counts = {category: 0 for category in MessageCategory}
        costs = {category: 0.0 for category in MessageCategory}
        free_messages = 0
        paid_messages = 0
        unique_conversations = set()

        for message in messages:
            category = MessageCategory.parse(message.category)
            counts[category] += 1

            if message.conversation_id:
                unique_conversations.add(message.conversation_id)

            if self.is_message_free(message):
                free_messages += 1
            else:
                paid_messages += 1
                costs[category] += self.get_message_cost(category, country)

        total_cost = sum(costs.values())

        if apply_volume_discounts and unique_conversations:
            discount = self.get_volume_discount(len(unique_conversations))
            multiplier = 1 - discount.discount
            total_cost = total_cost * multiplier
            for category in costs:
                costs[category] = costs[category] * multiplier

        result = CostBreakdown(
            total_cost=round_value(total_cost, 4),
            message_count=len(messages),
            free_messages=free_messages,
            paid_messages=paid_messages,
            breakdown=self._build_category_breakdown(counts, costs, len(messages)),
            currency=currency,
        )

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(
            f"Cost calculation completed: {len(messages)} messages, "
            f"total {result.total_cost} {currency} in {duration_ms:.2f}ms"
        )
        return result

    def is_message_free(self, message: Message) -> bool:
        if Direction.parse(message.direction) == Direction.INBOUND:
            return True
        if MessageCategory.parse(message.category) == MessageCategory.AUTHENTICATION:
            return True
        return bool(message.is_in_free_window)

    def get_message_cost(self, category: MessageCategory, country: Optional[str] = None) -> float:
        return self.pricing.rate(MessageCategory.parse(category), country or self.country)

    def get_volume_discount(self, conversation_count: int) -> VolumeDiscount:
        return self.pricing.volume_discount(conversation_count)

    def get_next_volume_tier(self, conversation_count: int) -> Optional[VolumeDiscount]:
        return self.pricing.next_volume_tier(conversation_count)

    def calculate_with_discount_breakdown(
        self,
        messages: Sequence[Message],
        country: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> DiscountedCostBreakdown:
        """Discounted breakdown plus the tier applied and the undiscounted total."""
        without_discount = self.calculate_cost(
            messages, country=country, currency=currency, apply_volume_discounts=False
        )
        with_discount = self.calculate_cost(
            messages, country=country, currency=currency, apply_volume_discounts=True
        )
        discount = self.get_volume_discount(len(_unique_conversations(messages)))

        return DiscountedCostBreakdown(
            total_cost=with_discount.total_cost,
            message_count=with_discount.message_count,
            free_messages=with_discount.free_messages,
            paid_messages=with_discount.paid_messages,
            breakdown=with_discount.breakdown,
            currency=with_discount.currency,
            discount_applied=discount,
            original_cost=without_discount.total_cost,
        )

    def calculate_daily_costs(self, messages: Sequence[Message]) -> Dict[str, CostBreakdown]:
        """
        Independent breakdown per UTC calendar day, keyed by ISO date.

        Volume discounts are resolved per day from that day's conversations.
        """
        messages_by_day = group_by(messages, lambda m: utc_date_key(m.timestamp))
        return {
            day: self.calculate_cost(day_messages)
            for day, day_messages in sorted(messages_by_day.items())
        }

    def calculate_potential_savings(self, messages: Sequence[Message]) -> PotentialSavings:
        """
        Estimate savings from send timing, reclassification and volume tiers.

        The three estimates are independent and additive.
        """
        opportunities: List[SavingsOpportunity] = []
        total_potential_savings = 0.0

        marketing_outside_window = paid_outbound_marketing(messages)

        if marketing_outside_window:
            timing_savings = len(marketing_outside_window) * self.get_message_cost(
                MessageCategory.MARKETING
            )
            opportunities.append(
                SavingsOpportunity(
                    category="timing",
                    description=(
                        f"Send {len(marketing_outside_window)} marketing messages "
                        f"within {self.pricing.service_window_hours}h window"
                    ),
                    savings=round_value(timing_savings, 4),
                )
            )
            total_potential_savings += timing_savings

            rate_delta = self.get_message_cost(MessageCategory.MARKETING) - self.get_message_cost(
                MessageCategory.UTILITY
            )
            reclassify_savings = len(marketing_outside_window) * rate_delta * self.RECLASSIFIABLE_SHARE
            if reclassify_savings > 0:
                reclassifiable = round_int(len(marketing_outside_window) * self.RECLASSIFIABLE_SHARE)
                opportunities.append(
                    SavingsOpportunity(
                        category="classification",
                        description=f"Reclassify ~{reclassifiable} messages as utility",
                        savings=round_value(reclassify_savings, 4),
                    )
                )
                total_potential_savings += reclassify_savings

        conversation_count = len(_unique_conversations(messages))
        current_discount = self.get_volume_discount(conversation_count)
        next_tier = self.get_next_volume_tier(conversation_count)

        if (
            next_tier is not None
            and current_discount.discount < next_tier.discount
            and next_tier.threshold > 0
            and conversation_count / next_tier.threshold >= self.VOLUME_PROXIMITY_THRESHOLD
        ):
            current_cost = self.calculate_cost(messages, apply_volume_discounts=True).total_cost
            volume_savings = current_cost * (next_tier.discount - current_discount.discount)
            opportunities.append(
                SavingsOpportunity(
                    category="volume",
                    description=(
                        f"Reach {next_tier.threshold} conversations for "
                        f"{round_int(next_tier.discount * 100)}% discount"
                    ),
                    savings=round_value(volume_savings, 4),
                )
            )
            total_potential_savings += volume_savings

        return PotentialSavings(
            total_potential_savings=round_value(total_potential_savings, 4),
            breakdown=opportunities,
        )

    def compare_periods(
        self,
        current_messages: Sequence[Message],
        previous_messages: Sequence[Message],
    ) -> PeriodComparison:
        current = self.calculate_cost(current_messages)
        previous = self.calculate_cost(previous_messages)

        return PeriodComparison(
            current=current,
            previous=previous,
            cost_trend=_trend(current.total_cost, previous.total_cost, decimals=4),
            message_trend=_trend(current.message_count, previous.message_count),
        )

    def estimate_monthly_cost(
        self, messages: Sequence[Message], days_in_sample: int
    ) -> MonthlyEstimate:
        """Extrapolate a sample's daily averages (and its savings) to 30 days."""
        days = max(days_in_sample, 1)
        sample_cost = self.calculate_cost(messages)
        avg_daily_cost = sample_cost.total_cost / days
        avg_daily_messages = len(messages) / days

        potential = self.calculate_potential_savings(messages)

        return MonthlyEstimate(
            estimated_monthly_cost=round_value(avg_daily_cost * self.DAYS_PER_MONTH, 2),
            estimated_monthly_messages=round_int(avg_daily_messages * self.DAYS_PER_MONTH),
            projected_savings=round_value(
                potential.total_potential_savings / days * self.DAYS_PER_MONTH, 2
            ),
        )

    @staticmethod
    def _build_category_breakdown(
        counts: Dict[MessageCategory, int],
        costs: Dict[MessageCategory, float],
        total_messages: int,
    ) -> List[CategoryBreakdown]:
        breakdown = []
        for category in MessageCategory:
            count = counts[category]
            cost = costs[category]
            breakdown.append(
                CategoryBreakdown(
                    category=category,
                    count=count,
                    cost=round_value(cost, 4),
                    avg_cost_per_message=round_value(cost / count, 6) if count > 0 else 0.0,
                    percentage=percentage(count, total_messages),
                )
            )
        return breakdown


def _unique_conversations(messages: Sequence[Message]) -> set:
    return {m.conversation_id for m in messages if m.conversation_id}


def paid_outbound_marketing(messages: Sequence[Message]) -> List[Message]:
    """Outbound marketing messages sent outside the free window."""
    return [
        m
        for m in messages
        if MessageCategory.parse(m.category) == MessageCategory.MARKETING
        and not m.is_in_free_window
        and Direction.parse(m.direction) == Direction.OUTBOUND
    ]


def _trend(current: float, previous: float, decimals: int = 2) -> TrendData:
    change = round_value(current - previous, decimals)
    if change > 0:
        direction = "up"
    elif change < 0:
        direction = "down"
    else:
        direction = "stable"
    return TrendData(
        current=current,
        previous=previous,
        change=change,
        change_percentage=percentage_change(current, previous),
        trend=direction,
    )
