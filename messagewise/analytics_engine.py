"""
Cost analytics engine: composes the calculator, optimizer and predictor
into period reports and forecasts.
"""

import json
import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from messagewise.analyzer.cost_calculator import CostCalculator
from messagewise.analyzer.message_classifier import MessageClassifier
from messagewise.analyzer.optimizer import CostOptimizer
from messagewise.analyzer.savings_predictor import SavingsPredictor
from messagewise.helpers import round_value
from messagewise.models import (
    CostBreakdown,
    HistoricalData,
    Message,
    OptimizationAnalysis,
    to_plain,
)
from messagewise.pricing import PricingConfig

logger = logging.getLogger(__name__)


class CostAnalyticsEngine:
    """Main engine for message cost analytics."""

    def __init__(
        self,
        country: str = "ID",
        currency: str = "USD",
        pricing: Optional[PricingConfig] = None,
    ):
        self.country = country
        self.currency = currency
        self.pricing = pricing or PricingConfig.default()

        self.classifier = MessageClassifier(pricing=self.pricing)
        self.calculator = CostCalculator(country, currency, pricing=self.pricing)
        self.optimizer = CostOptimizer(country, pricing=self.pricing)
        self.predictor = SavingsPredictor(country, pricing=self.pricing)

        logger.info(f"CostAnalyticsEngine initialized (country={country}, currency={currency})")

    def analyze_period(
        self,
        messages: Sequence[Message],
        previous_messages: Optional[Sequence[Message]] = None,
        include_recommendations: bool = True,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Build a cost report for one period.

        Args:
            messages: Messages of the reported period
            previous_messages: Messages of the preceding period, for trends
            include_recommendations: Run the optimizer analyzers
            now: Report timestamp (defaults to current UTC time)

        Returns:
            JSON-serializable report with summary, breakdown, daily data,
            potential savings, recommendations and trends
        """
        now = now or datetime.now(timezone.utc)
        logger.info(f"Generating cost report for {len(messages):,} messages")

        breakdown = self.calculator.calculate_cost(messages)
        daily_costs = self.calculator.calculate_daily_costs(messages)
        potential = self.calculator.calculate_potential_savings(messages)

        analysis = OptimizationAnalysis.from_cost_breakdown(breakdown)
        recommendations = (
            self.optimizer.generate_recommendations(messages, analysis, now=now)
            if include_recommendations
            else []
        )
        score = self.optimizer.calculate_optimization_score(messages, analysis)
        conversations = self.optimizer.analyze_conversations(messages)
        comparison = self.calculator.compare_periods(messages, previous_messages or [])

        report = {
            "generated_at": now,
            "country": self.country,
            "currency": self.currency,
            "summary": {
                "total_cost": breakdown.total_cost,
                "total_messages": breakdown.message_count,
                "free_messages": breakdown.free_messages,
                "paid_messages": breakdown.paid_messages,
                "potential_savings": round_value(sum(r.potential_savings for r in recommendations), 2),
                "optimization_score": score,
            },
            "breakdown": breakdown.breakdown,
            "daily_data": [
                {"date": day, **to_plain(cost)} for day, cost in daily_costs.items()
            ],
            "potential_savings": potential,
            "conversations": conversations,
            "recommendations": recommendations,
            "trends": {
                "cost": comparison.cost_trend,
                "messages": comparison.message_trend,
            },
        }

        logger.info(
            f"Report generated: total {breakdown.total_cost} {self.currency}, "
            f"{len(recommendations)} recommendations, score {score}"
        )
        return to_plain(report)

    def forecast(
        self,
        history: Sequence[HistoricalData],
        months: int = 6,
        start_date: Optional[date] = None,
    ) -> Dict[str, Any]:
        """30-day prediction plus a month-by-month forecast."""
        prediction = self.predictor.predict_future(history)
        forecast = self.predictor.generate_forecast(history, months, start_date=start_date)
        return to_plain(
            {
                "prediction": prediction,
                "forecast": forecast,
                "total_forecast_savings": forecast[-1].cumulative_savings if forecast else 0.0,
            }
        )

    def history_from_messages(self, messages: Sequence[Message]) -> List[HistoricalData]:
        """Daily history records derived from raw messages, oldest first."""
        return [
            history_from_breakdown(day, cost)
            for day, cost in self.calculator.calculate_daily_costs(messages).items()
        ]

    def save_report(self, report: Dict[str, Any], output_path: Path) -> Path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(report, f, indent=2, ensure_ascii=False, default=str)
        logger.info(f"Cost report saved: {output_path}")
        return output_path


def history_from_breakdown(day: str, cost: CostBreakdown) -> HistoricalData:
    return HistoricalData(
        date=date.fromisoformat(day),
        total_cost=cost.total_cost,
        total_messages=cost.message_count,
        free_messages=cost.free_messages,
        paid_messages=cost.paid_messages,
        breakdown=list(cost.breakdown),
    )
