"""
Savings predictor.

Extracts cost, volume and savings trends from daily history and projects
them forward: 30-day predictions, savings tracking, recommendation impact,
subscription plan ROI and multi-month forecasts.
"""

import logging
import math
import time
from datetime import date, datetime, timezone
from typing import List, Optional, Sequence

from messagewise.helpers import (
    average,
    coefficient_of_variation,
    linear_trend,
    round_int,
    round_value,
)
from messagewise.models import (
    ForecastEntry,
    HistoricalData,
    PlanROI,
    PredictionResult,
    RecommendationImpact,
    SavingsTracking,
)
from messagewise.pricing import MessageCategory, PricingConfig

logger = logging.getLogger(__name__)

INSUFFICIENT_DATA_RECOMMENDATION = "Add more historical data for accurate predictions"

# Recommendation type -> (savings rate, time to impact, confidence)
IMPACT_ESTIMATES = {
    "timing": (0.2, "1-2 weeks", 0.8),
    "classification": (0.15, "2-4 weeks", 0.7),
    "conversation": (0.1, "1-2 weeks", 0.75),
    "volume": (0.1, "1-3 months", 0.6),
    "template": (0.08, "2-4 weeks", 0.65),
}
DEFAULT_IMPACT = (0.05, "Varies", 0.5)

# Checked in order; first type with a matching keyword wins
RECOMMENDATION_TYPE_KEYWORDS = (
    ("timing", ("timing", "24h", "window")),
    ("classification", ("reclassif", "category")),
    ("conversation", ("conversation", "follow-up")),
    ("volume", ("volume", "discount")),
    ("template", ("template",)),
)


class SavingsPredictor:
    """
    Forecasts future spend and savings from daily cost history.

    Trends are index-based least-squares slopes. Predictions start from the
    30-day extrapolation of the daily average and add the slope, dampened by
    TREND_DAMPENING, times the prediction horizon.
    """

    MIN_DATA_POINTS = 3
    MIN_CONFIDENCE_POINTS = 5
    DAYS_PER_MONTH = 30
    TREND_DAMPENING = 0.5
    TREND_THRESHOLD = 0.1
    RISING_COST_SLOPE = 0.5
    MONTHLY_IMPROVEMENT_RATE = 0.05
    DEFAULT_SAVINGS_SHARE = 0.2
    DEFAULT_CONFIDENCE = 0.3
    TIMING_RECOVERABLE_SHARE = 0.3
    RECLASSIFIABLE_SHARE = 0.2
    BASE_SAVINGS_POTENTIAL = 0.3
    NEVER_BREAKS_EVEN = 999

    def __init__(self, country: str = "ID", pricing: Optional[PricingConfig] = None):
        self.country = country
        self.pricing = pricing or PricingConfig.default()

    def predict_future(
        self, historical_data: Sequence[HistoricalData], days_to_predict: int = 30
    ) -> PredictionResult:
        """
        Predict monthly cost, volume and savings from daily history.

        Args:
            historical_data: One record per day, any order
            days_to_predict: Horizon the dampened trend is scaled by

        Returns:
            PredictionResult; a conservative average-based default with
            confidence 0.3 when fewer than three days are available
        """
        start_time = time.perf_counter()

        try:
            if len(historical_data) < self.MIN_DATA_POINTS:
                logger.warning(
                    f"Only {len(historical_data)} days of history, "
                    f"need {self.MIN_DATA_POINTS} for a trend-based prediction"
                )
                return self._default_prediction(historical_data)

            sorted_data = _sorted_by_date(historical_data)

            cost_trend = linear_trend([d.total_cost for d in sorted_data])
            message_trend = linear_trend([d.total_messages for d in sorted_data])
            savings_trend = linear_trend([d.actual_savings for d in sorted_data])

            avg_daily_cost = average(d.total_cost for d in sorted_data)
            avg_daily_messages = average(d.total_messages for d in sorted_data)
            avg_daily_savings = average(d.actual_savings for d in sorted_data)

            predicted_cost = self._apply_trend(
                avg_daily_cost * self.DAYS_PER_MONTH, cost_trend, days_to_predict
            )
            predicted_messages = round_int(
                self._apply_trend(
                    avg_daily_messages * self.DAYS_PER_MONTH, message_trend, days_to_predict
                )
            )
            predicted_savings = self._apply_trend(
                avg_daily_savings * self.DAYS_PER_MONTH, savings_trend, days_to_predict
            )

            confidence = self._calculate_confidence(sorted_data)
            recommendations = self._predictive_recommendations(sorted_data, cost_trend)

            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.debug(
                f"Savings prediction completed: {len(historical_data)} data points, "
                f"predicted cost {predicted_cost:.2f}, confidence {confidence:.2f} "
                f"in {duration_ms:.2f}ms"
            )

            return PredictionResult(
                predicted_monthly_cost=round_value(predicted_cost, 2),
                predicted_monthly_messages=predicted_messages,
                predicted_savings=round_value(max(predicted_savings, 0.0), 2),
                confidence_score=round_value(confidence, 2),
                trend=self._categorize_trend(cost_trend),
                recommendations=recommendations,
            )

        except Exception as e:
            logger.error(f"Error predicting savings: {str(e)}")
            return self._default_prediction(historical_data)

    def track_savings(
        self,
        period_data: Sequence[HistoricalData],
        implemented_recommendations: Sequence[str],
        now: Optional[datetime] = None,
    ) -> SavingsTracking:
        """Compare achieved savings with what the period could have saved."""
        if not period_data:
            now = now or datetime.now(timezone.utc)
            return SavingsTracking(
                period_start=now,
                period_end=now,
                potential_savings=0.0,
                actual_savings=0.0,
                implemented_recommendations=list(implemented_recommendations),
                savings_rate=0.0,
            )

        sorted_data = _sorted_by_date(period_data)
        potential = self._potential_savings(sorted_data)
        actual = sum(d.actual_savings for d in sorted_data)
        savings_rate = actual / potential if potential > 0 else 0.0

        return SavingsTracking(
            period_start=sorted_data[0].date,
            period_end=sorted_data[-1].date,
            potential_savings=round_value(potential, 2),
            actual_savings=round_value(actual, 2),
            implemented_recommendations=list(implemented_recommendations),
            savings_rate=round_value(savings_rate, 4),
        )

    def estimate_recommendation_impact(
        self, recommendation: str, current_data: Sequence[HistoricalData]
    ) -> RecommendationImpact:
        """Savings, time to impact and confidence for a recommendation text."""
        total_cost = sum(d.total_cost for d in current_data)
        recommendation_type = categorize_recommendation(recommendation)
        savings_rate, time_to_impact, confidence = IMPACT_ESTIMATES.get(
            recommendation_type, DEFAULT_IMPACT
        )

        return RecommendationImpact(
            estimated_savings=round_value(total_cost * savings_rate, 2),
            time_to_impact=time_to_impact,
            confidence=confidence,
        )

    def calculate_plan_roi(
        self, historical_data: Sequence[HistoricalData], current_plan: str, target_plan: str
    ) -> PlanROI:
        """
        Return on moving from one subscription plan to another.

        Projected savings assume 30% of the average monthly cost is
        recoverable, scaled by the target plan's multiplier. Break-even days
        use the savings gained over the current plan; 999 means never.
        """
        avg_monthly_cost = average(d.total_cost for d in historical_data) * self.DAYS_PER_MONTH
        current_savings = (
            average(d.actual_savings for d in historical_data)
            * self.DAYS_PER_MONTH
            * self.pricing.plan_multiplier(current_plan)
        )
        projected_savings = (
            avg_monthly_cost * self.BASE_SAVINGS_POTENTIAL * self.pricing.plan_multiplier(target_plan)
        )

        plan_cost = self.pricing.plan_price(target_plan)
        net_benefit = projected_savings - plan_cost

        additional_savings = projected_savings - current_savings
        if additional_savings > 0:
            break_even_days = math.ceil(plan_cost / additional_savings * self.DAYS_PER_MONTH)
        else:
            break_even_days = self.NEVER_BREAKS_EVEN

        return PlanROI(
            current_monthly_cost=round_value(avg_monthly_cost, 2),
            projected_savings=round_value(projected_savings, 2),
            plan_cost=plan_cost,
            net_benefit=round_value(net_benefit, 2),
            break_even_days=break_even_days,
            recommended=net_benefit > plan_cost * 0.5,
        )

    def generate_forecast(
        self,
        historical_data: Sequence[HistoricalData],
        months: int = 6,
        start_date: Optional[date] = None,
    ) -> List[ForecastEntry]:
        """
        Month-by-month forecast starting the month after ``start_date``.

        Cost falls and savings rise by MONTHLY_IMPROVEMENT_RATE per month
        relative to the 30-day prediction.
        """
        base = self.predict_future(historical_data, self.DAYS_PER_MONTH)
        start_date = start_date or datetime.now(timezone.utc).date()

        forecast = []
        cumulative_savings = 0.0
        for i in range(months):
            predicted_cost = base.predicted_monthly_cost * (1 - self.MONTHLY_IMPROVEMENT_RATE * i)
            predicted_savings = base.predicted_savings * (1 + self.MONTHLY_IMPROVEMENT_RATE * i)
            cumulative_savings += predicted_savings

            forecast.append(
                ForecastEntry(
                    month=_month_label(start_date, i + 1),
                    predicted_cost=round_value(max(predicted_cost, 0.0), 2),
                    predicted_savings=round_value(predicted_savings, 2),
                    cumulative_savings=round_value(cumulative_savings, 2),
                )
            )

        logger.debug(f"Generated {months}-month forecast from {len(historical_data)} days")
        return forecast

    def _apply_trend(self, base_value: float, trend: float, days: int) -> float:
        return base_value + trend * self.TREND_DAMPENING * days

    def _categorize_trend(self, trend: float) -> str:
        if trend > self.TREND_THRESHOLD:
            return "increasing"
        if trend < -self.TREND_THRESHOLD:
            return "decreasing"
        return "stable"

    def _calculate_confidence(self, data: Sequence[HistoricalData]) -> float:
        """Consistency of daily cost (1 - CV, clamped) plus a small data-size bonus."""
        if len(data) < self.MIN_CONFIDENCE_POINTS:
            return 0.5

        cv = coefficient_of_variation([d.total_cost for d in data])
        confidence = max(0.3, min(0.95, 1 - cv))
        data_bonus = min(len(data) * 0.01, 0.1)
        return confidence + data_bonus

    def _predictive_recommendations(
        self, data: Sequence[HistoricalData], cost_trend: float
    ) -> List[str]:
        recommendations = []

        if cost_trend > self.RISING_COST_SLOPE:
            recommendations.append(
                "Your costs are trending upward. "
                "Review message templates for reclassification opportunities."
            )

        latest = data[-1]
        marketing = latest.for_category(MessageCategory.MARKETING)
        marketing_count = marketing.count if marketing else 0
        if latest.total_messages > 0 and marketing_count / latest.total_messages > 0.5:
            recommendations.append(
                "High marketing message ratio. Consider converting some to utility messages."
            )

        avg_free_ratio = average(d.free_messages / max(d.total_messages, 1) for d in data)
        if avg_free_ratio < 0.3:
            recommendations.append(
                f"Low free window utilization. Time your outbound messages within "
                f"{self.pricing.service_window_hours}h of customer contact."
            )

        return recommendations

    def _potential_savings(self, data: Sequence[HistoricalData]) -> float:
        """Timing share of marketing cost plus reclassification of marketing volume."""
        rate_delta = self.pricing.rate(MessageCategory.MARKETING, self.country) - self.pricing.rate(
            MessageCategory.UTILITY, self.country
        )
        potential = 0.0
        for day in data:
            marketing = day.for_category(MessageCategory.MARKETING)
            if marketing is None:
                continue
            potential += marketing.cost * self.TIMING_RECOVERABLE_SHARE
            if marketing.count > 0:
                potential += marketing.count * self.RECLASSIFIABLE_SHARE * rate_delta
        return potential

    def _default_prediction(self, historical_data: Sequence[HistoricalData]) -> PredictionResult:
        avg_cost = average(d.total_cost for d in historical_data)
        avg_messages = average(d.total_messages for d in historical_data)

        return PredictionResult(
            predicted_monthly_cost=round_value(avg_cost * self.DAYS_PER_MONTH, 2),
            predicted_monthly_messages=round_int(avg_messages * self.DAYS_PER_MONTH),
            predicted_savings=round_value(
                avg_cost * self.DAYS_PER_MONTH * self.DEFAULT_SAVINGS_SHARE, 2
            ),
            confidence_score=self.DEFAULT_CONFIDENCE,
            trend="stable",
            recommendations=[INSUFFICIENT_DATA_RECOMMENDATION],
        )


def categorize_recommendation(recommendation: str) -> str:
    """Map free recommendation text to an impact type, ``general`` if none match."""
    lower = recommendation.lower()
    for recommendation_type, keywords in RECOMMENDATION_TYPE_KEYWORDS:
        if any(keyword in lower for keyword in keywords):
            return recommendation_type
    return "general"


def _as_datetime(value) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)


def _sorted_by_date(data: Sequence[HistoricalData]) -> List[HistoricalData]:
    return sorted(data, key=lambda d: _as_datetime(d.date))


def _month_label(start: date, months_ahead: int) -> str:
    """``Mon YYYY`` label of the month ``months_ahead`` after ``start``."""
    month_index = start.month - 1 + months_ahead
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, 1).strftime("%b %Y")
