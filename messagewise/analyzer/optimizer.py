"""
Cost optimizer.

Runs a fixed list of independent heuristic analyzers over a message set and
its cost summary, each proposing at most one recommendation, and scores how
well the account uses free messaging on a 0-100 scale.
"""

import logging
import time
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from messagewise.analyzer.cost_calculator import paid_outbound_marketing
from messagewise.helpers import group_by, percentage, round_int, round_value, utc_hour
from messagewise.keywords import TRANSACTIONAL_KEYWORDS
from messagewise.models import (
    ConversationMetrics,
    Message,
    OptimizationAnalysis,
    Priority,
    Recommendation,
    RecommendationCategory,
)
from messagewise.pricing import Direction, MessageCategory, PricingConfig

logger = logging.getLogger(__name__)

Analyzer = Callable[[Sequence[Message], OptimizationAnalysis], Optional[Recommendation]]


class CostOptimizer:
    """Generates ranked cost-saving recommendations and an optimization score."""

    MIN_TOTAL_COST = 0.01
    MIN_SAVINGS = 0.01
    RECLASSIFIABLE_SHARE = 0.3
    CONVERSATION_SAVINGS_SHARE = 0.15
    TEMPLATE_SAVINGS_SHARE = 0.10
    PEAK_SAVINGS_SHARE = 0.05
    VOLUME_PROXIMITY_THRESHOLD = 0.7
    MARKETING_SHARE_THRESHOLD = 40
    PEAK_CONCENTRATION_THRESHOLD = 50
    PEAK_HOURS = 3

    def __init__(self, country: str = "ID", pricing: Optional[PricingConfig] = None):
        self.country = country
        self.pricing = pricing or PricingConfig.default()
        self.analyzers: List[Analyzer] = [
            self.analyze_marketing_timing,
            self.analyze_reclassification_opportunity,
            self.analyze_conversation_utilization,
            self.analyze_volume_discount,
            self.analyze_template_usage,
            self.analyze_peak_time_patterns,
        ]

    def generate_recommendations(
        self,
        messages: Sequence[Message],
        analysis: OptimizationAnalysis,
        now: Optional[datetime] = None,
    ) -> List[Recommendation]:
        """
        Run every analyzer and rank the resulting recommendations.

        Args:
            messages: Message projections of the analysed period
            analysis: Cost summary of the same messages
            now: Timestamp used for recommendation ids (defaults to current UTC time)

        Returns:
            Recommendations sorted by potential savings, highest first, with
            ids ``rec_{rank}_{timestamp_ms}``. Empty when there is nothing to
            optimise or an analyzer fails.
        """
        start_time = time.perf_counter()

        try:
            if not messages or analysis.total_cost < self.MIN_TOTAL_COST:
                return []

            recommendations = []
            for analyzer in self.analyzers:
                recommendation = analyzer(messages, analysis)
                if recommendation is not None and recommendation.potential_savings >= self.MIN_SAVINGS:
                    recommendations.append(recommendation)

            recommendations.sort(key=lambda r: r.potential_savings, reverse=True)

            timestamp_ms = int((now or datetime.now(timezone.utc)).timestamp() * 1000)
            ranked = [
                replace(rec, id=f"rec_{rank}_{timestamp_ms}")
                for rank, rec in enumerate(recommendations, start=1)
            ]

            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.debug(
                f"Optimization analysis completed: {len(ranked)} recommendations, "
                f"potential savings {sum(r.potential_savings for r in ranked):.2f} "
                f"in {duration_ms:.2f}ms"
            )
            return ranked

        except Exception as e:
            logger.error(f"Error generating recommendations: {str(e)}")
            return []

    def analyze_marketing_timing(
        self, messages: Sequence[Message], analysis: OptimizationAnalysis
    ) -> Optional[Recommendation]:
        marketing_outside_window = paid_outbound_marketing(messages)
        if not marketing_outside_window:
            return None

        potential_savings = len(marketing_outside_window) * self._rate(MessageCategory.MARKETING)
        savings_percentage = percentage(potential_savings, analysis.total_cost)
        window = self.pricing.service_window_hours

        return self._recommendation(
            title=f"Send Marketing Messages Within {window}h Window",
            description=(
                f"You sent {len(marketing_outside_window)} marketing messages outside the free "
                f"{window}-hour service window. These could be sent as responses to customer "
                f"inquiries instead for free."
            ),
            potential_savings=potential_savings,
            savings_percentage=savings_percentage,
            priority=_priority(savings_percentage, high=20, medium=10),
            steps=[
                f"Trigger marketing messages as responses to customer inquiries within {window} hours",
                "Use chatbots to initiate conversations naturally and then follow up with promotions",
                "Schedule marketing campaigns based on customer interaction patterns",
                "Create engagement triggers that prompt customers to message first",
            ],
            category=RecommendationCategory.TIMING,
        )

    def analyze_reclassification_opportunity(
        self, messages: Sequence[Message], analysis: OptimizationAnalysis
    ) -> Optional[Recommendation]:
        marketing_messages = paid_outbound_marketing(messages)
        estimated_reclassifiable = round_int(len(marketing_messages) * self.RECLASSIFIABLE_SHARE)
        if estimated_reclassifiable == 0:
            return None

        marketing_rate = self._rate(MessageCategory.MARKETING)
        utility_rate = self._rate(MessageCategory.UTILITY)
        potential_savings = estimated_reclassifiable * (marketing_rate - utility_rate)
        savings_percentage = percentage(potential_savings, analysis.total_cost)
        cheaper_by = round_int((1 - utility_rate / marketing_rate) * 100) if marketing_rate else 0

        description = (
            f"Approximately {estimated_reclassifiable} messages could be reclassified as utility "
            f"(transactional) messages, which cost {cheaper_by}% less than marketing messages."
        )
        transactional = sum(1 for m in marketing_messages if _has_transactional_content(m))
        if transactional:
            description += f" {transactional} of them already contain transactional wording."

        return self._recommendation(
            title="Reclassify Messages as Utility",
            description=description,
            potential_savings=potential_savings,
            savings_percentage=savings_percentage,
            priority=_priority(savings_percentage, high=15, medium=5),
            steps=[
                "Review message templates and remove promotional language from transactional messages",
                "Separate order confirmations, receipts, and tracking updates from marketing content",
                "Use dedicated utility templates for transactional communications",
                "Ensure utility messages focus on customer service, not promotion",
            ],
            category=RecommendationCategory.CLASSIFICATION,
        )

    def analyze_conversation_utilization(
        self, messages: Sequence[Message], analysis: OptimizationAnalysis
    ) -> Optional[Recommendation]:
        metrics = self.analyze_conversations(messages)
        # Fewer than 3 messages per conversation and a mostly unused free window
        if metrics.avg_messages_per_conversation >= 3 or metrics.free_window_utilization > 0.7:
            return None

        window = self.pricing.service_window_hours
        return self._recommendation(
            title=f"Maximize {window}-Hour Conversation Windows",
            description=(
                f"You're averaging only {round_value(metrics.avg_messages_per_conversation, 1)} "
                f"messages per conversation. The {window}-hour free service window allows "
                f"unlimited follow-up messages at no cost."
            ),
            potential_savings=analysis.total_cost * self.CONVERSATION_SAVINGS_SHARE,
            savings_percentage=self.CONVERSATION_SAVINGS_SHARE * 100,
            priority=Priority.MEDIUM,
            steps=[
                f"Set up automated follow-up sequences within {window} hours of customer contact",
                "Bundle multiple related messages within a single conversation window",
                "Use chatbots to maintain engagement and extend conversations naturally",
                "Create touchpoint reminders to reach out before the window closes",
            ],
            category=RecommendationCategory.CONVERSATION,
        )

    def analyze_volume_discount(
        self, messages: Sequence[Message], analysis: OptimizationAnalysis
    ) -> Optional[Recommendation]:
        unique_conversations = len({m.conversation_id for m in messages if m.conversation_id})

        tiers = sorted(self.pricing.volume_tiers, key=lambda t: t.min)
        position = None
        for current, upcoming in zip(tiers, tiers[1:]):
            if unique_conversations <= current.max:
                position = (current, upcoming)
                break
        if position is None:
            return None  # Already at max tier

        current, upcoming = position
        progress = unique_conversations / upcoming.min if upcoming.min else 0.0
        if progress < self.VOLUME_PROXIMITY_THRESHOLD:
            return None

        additional_discount = upcoming.discount - current.discount
        savings_percentage = additional_discount * 100
        conversations_needed = upcoming.min - unique_conversations

        return self._recommendation(
            title="Reach Next Volume Discount Tier",
            description=(
                f"You're {conversations_needed} conversations away from the "
                f"{round_int(upcoming.discount * 100)}% volume discount tier. Increasing your "
                f"message volume could save {round_int(savings_percentage)}% on all future messages."
            ),
            potential_savings=analysis.total_cost * additional_discount,
            savings_percentage=savings_percentage,
            priority=Priority.HIGH if progress > 0.9 else Priority.MEDIUM,
            steps=[
                "Increase customer engagement through automated welcome messages",
                "Launch re-engagement campaigns to inactive customers",
                "Enable more automation triggers for routine communications",
                "Consider promotional campaigns to boost conversation volume",
            ],
            category=RecommendationCategory.VOLUME,
        )

    def analyze_template_usage(
        self, messages: Sequence[Message], analysis: OptimizationAnalysis
    ) -> Optional[Recommendation]:
        marketing_count = sum(
            1 for m in messages if MessageCategory.parse(m.category) == MessageCategory.MARKETING
        )
        marketing_percentage = percentage(marketing_count, len(messages))
        if marketing_percentage < self.MARKETING_SHARE_THRESHOLD:
            return None

        return self._recommendation(
            title="Optimize Template Categories",
            description=(
                f"{round_int(marketing_percentage)}% of your messages are categorized as marketing. "
                f"Review your templates to ensure only promotional content uses marketing templates."
            ),
            potential_savings=analysis.total_cost * self.TEMPLATE_SAVINGS_SHARE,
            savings_percentage=self.TEMPLATE_SAVINGS_SHARE * 100,
            priority=Priority.MEDIUM,
            steps=[
                "Audit all message templates and their categories",
                "Move non-promotional templates to utility or service categories",
                "Create separate templates for different message types",
                "Work with your BSP to recategorize templates if needed",
            ],
            category=RecommendationCategory.TEMPLATE,
        )

    def analyze_peak_time_patterns(
        self, messages: Sequence[Message], analysis: OptimizationAnalysis
    ) -> Optional[Recommendation]:
        messages_by_hour = group_by(messages, lambda m: str(utc_hour(m.timestamp)))
        hour_counts = sorted(
            ((int(hour), len(msgs)) for hour, msgs in messages_by_hour.items()),
            key=lambda item: item[1],
            reverse=True,
        )
        peak_hours = hour_counts[: self.PEAK_HOURS]
        peak_percentage = percentage(sum(count for _, count in peak_hours), len(messages))

        if peak_percentage < self.PEAK_CONCENTRATION_THRESHOLD:
            return None

        hours_label = ", ".join(f"{hour}:00" for hour, _ in peak_hours)
        return self._recommendation(
            title="Spread Message Distribution",
            description=(
                f"{round_int(peak_percentage)}% of your messages are sent during peak hours "
                f"({hours_label}). Spreading messages could improve customer response rates "
                f"and enable better window utilization."
            ),
            potential_savings=analysis.total_cost * self.PEAK_SAVINGS_SHARE,
            savings_percentage=self.PEAK_SAVINGS_SHARE * 100,
            priority=Priority.LOW,
            steps=[
                "Analyze customer activity patterns to find optimal send times",
                "Implement message scheduling to spread sends throughout the day",
                "Test different time windows for marketing campaigns",
                "Consider timezone-based sending for better engagement",
            ],
            category=RecommendationCategory.TIMING,
        )

    def analyze_conversations(self, messages: Sequence[Message]) -> ConversationMetrics:
        """
        Conversation-level metrics shared by the recommendations and the score.

        Messages without a conversation id count as their own conversation.
        Free-window utilization is the share of outbound messages sent inside
        the free window.
        """
        conversations = group_by(messages, lambda m: m.conversation_id or m.id)
        sizes = [len(msgs) for msgs in conversations.values()]
        avg_messages = sum(sizes) / len(sizes) if sizes else 0.0

        outbound = [m for m in messages if Direction.parse(m.direction) == Direction.OUTBOUND]
        free_outbound = sum(1 for m in outbound if m.is_in_free_window)
        utilization = free_outbound / len(outbound) if outbound else 0.0

        started_by_customer = sum(
            1
            for msgs in conversations.values()
            if Direction.parse(msgs[0].direction) == Direction.INBOUND
        )

        return ConversationMetrics(
            avg_messages_per_conversation=avg_messages,
            free_window_utilization=utilization,
            conversations_started_by_customer=started_by_customer,
            conversations_started_by_business=len(conversations) - started_by_customer,
        )

    def calculate_optimization_score(
        self, messages: Sequence[Message], analysis: Optional[OptimizationAnalysis] = None
    ) -> int:
        """Score from 0 (poor) to 100 (optimal) for how cheaply messages are sent."""
        score = 100.0
        total = max(len(messages), 1)

        marketing_outside_ratio = len(paid_outbound_marketing(messages)) / total
        score -= marketing_outside_ratio * 30

        metrics = self.analyze_conversations(messages)
        if metrics.avg_messages_per_conversation < 2:
            score -= 15
        elif metrics.avg_messages_per_conversation < 3:
            score -= 8

        if metrics.free_window_utilization < 0.3:
            score -= 20
        elif metrics.free_window_utilization < 0.5:
            score -= 10

        # Authentication messages are free
        auth_count = sum(
            1
            for m in messages
            if MessageCategory.parse(m.category) == MessageCategory.AUTHENTICATION
        )
        if auth_count / total > 0.1:
            score += 5

        return max(0, min(100, round_int(score)))

    def _rate(self, category: MessageCategory) -> float:
        return self.pricing.rate(category, self.country)

    @staticmethod
    def _recommendation(
        title: str,
        description: str,
        potential_savings: float,
        savings_percentage: float,
        priority: Priority,
        steps: List[str],
        category: RecommendationCategory,
    ) -> Recommendation:
        return Recommendation(
            id="",
            title=title,
            description=description,
            potential_savings=round_value(potential_savings, 2),
            savings_percentage=round_value(savings_percentage, 1),
            priority=priority,
            actionable=True,
            steps=steps,
            category=category,
            implemented=False,
        )


def _priority(savings_percentage: float, high: float, medium: float) -> Priority:
    if savings_percentage > high:
        return Priority.HIGH
    if savings_percentage > medium:
        return Priority.MEDIUM
    return Priority.LOW


def _has_transactional_content(message: Message) -> bool:
    content = (message.content or "").lower()
    return any(keyword in content for keyword in TRANSACTIONAL_KEYWORDS)
