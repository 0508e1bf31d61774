"""
Command-line interface for the message cost analytics engine.

Gives access to classification, cost breakdowns, savings estimates,
recommendations, predictions, forecasts and plan ROI for message exports.
"""

import argparse
import logging
import sys
from collections import Counter
from pathlib import Path
from typing import List, Optional

import pandas as pd
from tqdm import tqdm

from messagewise.analytics_engine import CostAnalyticsEngine
from messagewise.config import EngineSettings
from messagewise.data_loader import load_history, load_messages
from messagewise.helpers import format_currency, usd_to_idr
from messagewise.models import ClassificationInput, OptimizationAnalysis
from messagewise.pricing import MessageCategory


class CostCLI:
    """Main CLI for the cost analytics engine."""

    def __init__(self, settings: Optional[EngineSettings] = None):
        self.settings = settings or EngineSettings()
        self.engine: Optional[CostAnalyticsEngine] = None

    def setup_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            description="MessageWise cost analytics CLI",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:

  # Cost breakdown of a message export
  messagewise cost --messages messages.csv --country ID

  # Recommendations and optimization score
  messagewise recommend --messages messages.csv

  # Compare with the previous period
  messagewise compare --messages june.csv --previous may.csv

  # 6-month forecast from daily history
  messagewise forecast --history history.csv --months 6

  # Full report saved as JSON
  messagewise analyze --messages messages.csv --output report.json
            """,
        )
        parser.add_argument("--country", help="ISO country code for rates (default: ID)")
        parser.add_argument("--currency", choices=["USD", "IDR"], help="Display currency")
        parser.add_argument("--pricing-file", type=Path, help="JSON file with pricing overrides")
        parser.add_argument("--log-level", help="Logging level (default: INFO)")

        subparsers = parser.add_subparsers(dest="command", help="Available commands")

        self._add_message_commands(subparsers)
        self._add_history_commands(subparsers)

        return parser

    def _add_message_commands(self, subparsers):
        classify_parser = subparsers.add_parser("classify", help="Classify messages by content")
        classify_parser.add_argument("--messages", type=Path, required=True, help="Message file")
        classify_parser.add_argument("--output", type=Path, help="CSV file for per-message results")

        cost_parser = subparsers.add_parser("cost", help="Cost breakdown by category")
        cost_parser.add_argument("--messages", type=Path, required=True, help="Message file")
        cost_parser.add_argument(
            "--no-discount", action="store_true", help="Ignore volume discounts"
        )

        daily_parser = subparsers.add_parser("daily", help="Cost per UTC day")
        daily_parser.add_argument("--messages", type=Path, required=True, help="Message file")

        savings_parser = subparsers.add_parser("savings", help="Potential savings and monthly estimate")
        savings_parser.add_argument("--messages", type=Path, required=True, help="Message file")
        savings_parser.add_argument(
            "--days", type=int, default=30, help="Days covered by the sample (default: 30)"
        )

        recommend_parser = subparsers.add_parser(
            "recommend", help="Optimization recommendations and score"
        )
        recommend_parser.add_argument("--messages", type=Path, required=True, help="Message file")

        compare_parser = subparsers.add_parser("compare", help="Compare two periods")
        compare_parser.add_argument("--messages", type=Path, required=True, help="Current period")
        compare_parser.add_argument("--previous", type=Path, required=True, help="Previous period")

        analyze_parser = subparsers.add_parser("analyze", help="Full period report")
        analyze_parser.add_argument("--messages", type=Path, required=True, help="Message file")
        analyze_parser.add_argument("--previous", type=Path, help="Previous period for trends")
        analyze_parser.add_argument("--output", type=Path, help="Save report as JSON")

    def _add_history_commands(self, subparsers):
        predict_parser = subparsers.add_parser("predict", help="Predict the next 30 days")
        self._add_history_source(predict_parser)
        predict_parser.add_argument("--days", type=int, default=30, help="Days to predict")

        forecast_parser = subparsers.add_parser("forecast", help="Monthly savings forecast")
        self._add_history_source(forecast_parser)
        forecast_parser.add_argument("--months", type=int, default=6, help="Months to forecast")

        roi_parser = subparsers.add_parser("roi", help="Subscription plan ROI")
        self._add_history_source(roi_parser)
        roi_parser.add_argument("--current-plan", default="FREE", help="Current plan")
        roi_parser.add_argument("--target-plan", required=True, help="Plan to evaluate")

    @staticmethod
    def _add_history_source(parser):
        source = parser.add_mutually_exclusive_group(required=True)
        source.add_argument("--history", type=Path, help="Daily history file")
        source.add_argument("--messages", type=Path, help="Message file to derive history from")

    def configure(self, args):
        """Apply global flags on top of environment settings and build the engine."""
        if args.country:
            self.settings.country = args.country.upper()
        if args.currency:
            self.settings.currency = args.currency
        if args.pricing_file:
            self.settings.pricing_file = args.pricing_file
        if args.log_level:
            self.settings.log_level = args.log_level.upper()

        logging.basicConfig(
            level=getattr(logging, self.settings.log_level, logging.INFO),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )
        self.engine = CostAnalyticsEngine(
            country=self.settings.country,
            currency=self.settings.currency,
            pricing=self.settings.pricing(),
        )

    def run_command(self, args):
        if args.command == "classify":
            return self._cmd_classify(args)
        elif args.command == "cost":
            return self._cmd_cost(args)
        elif args.command == "daily":
            return self._cmd_daily(args)
        elif args.command == "savings":
            return self._cmd_savings(args)
        elif args.command == "recommend":
            return self._cmd_recommend(args)
        elif args.command == "compare":
            return self._cmd_compare(args)
        elif args.command == "analyze":
            return self._cmd_analyze(args)
        elif args.command == "predict":
            return self._cmd_predict(args)
        elif args.command == "forecast":
            return self._cmd_forecast(args)
        elif args.command == "roi":
            return self._cmd_roi(args)
        else:
            print("❌ Unknown command")
            return False

    def _money(self, usd: float) -> str:
        if self.settings.currency == "IDR":
            return format_currency(usd_to_idr(usd, self.engine.pricing.usd_to_idr_rate), "IDR")
        return format_currency(usd, "USD")

    def _history(self, args):
        if args.history:
            return load_history(args.history)
        return self.engine.history_from_messages(load_messages(args.messages))

    def _cmd_classify(self, args):
        """Classify every message of a file."""
        try:
            messages = load_messages(args.messages)
            classifier = self.engine.classifier

            rows = []
            for message in tqdm(messages, desc="Classifying", unit="msg"):
                result = classifier.classify(
                    ClassificationInput(
                        direction=message.direction,
                        content=message.content,
                        template_name=message.template_name,
                        template_category=message.template_category,
                    )
                )
                rows.append(
                    {
                        "id": message.id,
                        "category": result.category.value,
                        "confidence": result.confidence,
                        "reasoning": result.reasoning,
                    }
                )

            counts = Counter(row["category"] for row in rows)
            print(f"\n🏷️ CLASSIFICATION ({len(rows):,} messages):")
            for category in MessageCategory:
                name = classifier.get_category_display_name(category)
                print(f"   {name}: {counts.get(category.value, 0):,}")

            if args.output:
                pd.DataFrame(rows).to_csv(args.output, index=False)
                print(f"\n✅ Results saved: {args.output}")
            return True
        except Exception as e:
            print(f"❌ Error classifying messages: {e}")
            return False

    def _cmd_cost(self, args):
        """Show the cost breakdown."""
        try:
            messages = load_messages(args.messages)
            calculator = self.engine.calculator
            if args.no_discount:
                breakdown = calculator.calculate_cost(messages, apply_volume_discounts=False)
                discount_line = None
            else:
                breakdown = calculator.calculate_with_discount_breakdown(messages)
                discount = breakdown.discount_applied
                discount_line = (
                    f"   Volume discount: {discount.tier} ({discount.discount:.0%}), "
                    f"saved {self._money(breakdown.discount_amount)}"
                )

            print(f"\n💰 COST BREAKDOWN ({self.settings.country}):")
            print(f"   Total cost: {self._money(breakdown.total_cost)}")
            print(f"   Messages: {breakdown.message_count:,}")
            print(f"   Free: {breakdown.free_messages:,} | Paid: {breakdown.paid_messages:,}")
            if discount_line:
                print(discount_line)
            print("\n   By category:")
            for item in breakdown.breakdown:
                print(
                    f"   • {item.category.value}: {item.count:,} msgs ({item.percentage}%) "
                    f"- {self._money(item.cost)}"
                )
            return True
        except Exception as e:
            print(f"❌ Error calculating cost: {e}")
            return False

    def _cmd_daily(self, args):
        try:
            daily = self.engine.calculator.calculate_daily_costs(load_messages(args.messages))

            print(f"\n📅 DAILY COSTS ({len(daily)} days):")
            for day, breakdown in daily.items():
                print(
                    f"   {day}: {self._money(breakdown.total_cost)} "
                    f"({breakdown.message_count:,} msgs, {breakdown.free_messages:,} free)"
                )
            return True
        except Exception as e:
            print(f"❌ Error calculating daily costs: {e}")
            return False

    def _cmd_savings(self, args):
        try:
            messages = load_messages(args.messages)
            calculator = self.engine.calculator
            potential = calculator.calculate_potential_savings(messages)
            estimate = calculator.estimate_monthly_cost(messages, args.days)

            print("\n💡 POTENTIAL SAVINGS:")
            print(f"   Total: {self._money(potential.total_potential_savings)}")
            for item in potential.breakdown:
                print(f"   • [{item.category}] {item.description}: {self._money(item.savings)}")

            print("\n📈 MONTHLY ESTIMATE:")
            print(f"   Cost: {self._money(estimate.estimated_monthly_cost)}")
            print(f"   Messages: {estimate.estimated_monthly_messages:,}")
            print(f"   Projected savings: {self._money(estimate.projected_savings)}")
            return True
        except Exception as e:
            print(f"❌ Error estimating savings: {e}")
            return False

    def _cmd_recommend(self, args):
        """Show recommendations and the optimization score."""
        try:
            messages = load_messages(args.messages)
            breakdown = self.engine.calculator.calculate_cost(messages)
            analysis = OptimizationAnalysis.from_cost_breakdown(breakdown)
            optimizer = self.engine.optimizer

            recommendations = optimizer.generate_recommendations(messages, analysis)
            score = optimizer.calculate_optimization_score(messages, analysis)

            print(f"\n🎯 OPTIMIZATION SCORE: {score}/100")
            if not recommendations:
                print("\n✅ No recommendations, costs are already optimized")
                return True

            print(f"\n🚀 RECOMMENDATIONS ({len(recommendations)}):")
            for rec in recommendations:
                print(
                    f"\n   [{rec.priority.value.upper()}] {rec.title} "
                    f"- saves {self._money(rec.potential_savings)} ({rec.savings_percentage}%)"
                )
                print(f"   {rec.description}")
                for step in rec.steps:
                    print(f"      • {step}")
            return True
        except Exception as e:
            print(f"❌ Error generating recommendations: {e}")
            return False

    def _cmd_compare(self, args):
        try:
            comparison = self.engine.calculator.compare_periods(
                load_messages(args.messages), load_messages(args.previous)
            )
            icons = {"up": "📈", "down": "📉", "stable": "➡️"}
            cost, volume = comparison.cost_trend, comparison.message_trend

            print("\n📊 PERIOD COMPARISON:")
            print(
                f"   {icons[cost.trend]} Cost: {self._money(cost.previous)} → "
                f"{self._money(cost.current)} ({cost.change_percentage:+.2f}%)"
            )
            print(
                f"   {icons[volume.trend]} Messages: {volume.previous:,} → "
                f"{volume.current:,} ({volume.change_percentage:+.2f}%)"
            )
            return True
        except Exception as e:
            print(f"❌ Error comparing periods: {e}")
            return False

    def _cmd_analyze(self, args):
        try:
            messages = load_messages(args.messages)
            previous = load_messages(args.previous) if args.previous else None
            report = self.engine.analyze_period(messages, previous_messages=previous)
            summary = report["summary"]

            print("\n📋 COST REPORT:")
            print(f"   Total cost: {self._money(summary['total_cost'])}")
            print(f"   Messages: {summary['total_messages']:,}")
            print(f"   Potential savings: {self._money(summary['potential_savings'])}")
            print(f"   Optimization score: {summary['optimization_score']}/100")
            print(f"   Recommendations: {len(report['recommendations'])}")

            if args.output:
                saved = self.engine.save_report(report, args.output)
                print(f"\n✅ Report saved: {saved}")
            return True
        except Exception as e:
            print(f"❌ Error generating report: {e}")
            return False

    def _cmd_predict(self, args):
        try:
            prediction = self.engine.predictor.predict_future(self._history(args), args.days)

            print(f"\n🔮 PREDICTION (next {args.days} days):")
            print(f"   Cost: {self._money(prediction.predicted_monthly_cost)}")
            print(f"   Messages: {prediction.predicted_monthly_messages:,}")
            print(f"   Savings: {self._money(prediction.predicted_savings)}")
            print(f"   Trend: {prediction.trend}")
            print(f"   Confidence: {prediction.confidence_score:.0%}")
            for text in prediction.recommendations:
                print(f"   • {text}")
            return True
        except Exception as e:
            print(f"❌ Error predicting costs: {e}")
            return False

    def _cmd_forecast(self, args):
        try:
            forecast = self.engine.predictor.generate_forecast(self._history(args), args.months)

            print(f"\n📆 FORECAST ({args.months} months):")
            for entry in forecast:
                print(
                    f"   {entry.month}: cost {self._money(entry.predicted_cost)}, "
                    f"savings {self._money(entry.predicted_savings)} "
                    f"(cumulative {self._money(entry.cumulative_savings)})"
                )
            return True
        except Exception as e:
            print(f"❌ Error generating forecast: {e}")
            return False

    def _cmd_roi(self, args):
        try:
            roi = self.engine.predictor.calculate_plan_roi(
                self._history(args), args.current_plan, args.target_plan
            )
            break_even = (
                "never"
                if roi.break_even_days == self.engine.predictor.NEVER_BREAKS_EVEN
                else f"{roi.break_even_days} days"
            )

            print(f"\n💼 PLAN ROI ({args.current_plan.upper()} → {args.target_plan.upper()}):")
            print(f"   Current monthly cost: {self._money(roi.current_monthly_cost)}")
            print(f"   Projected savings: {self._money(roi.projected_savings)}")
            print(f"   Plan cost: {self._money(roi.plan_cost)}")
            print(f"   Net benefit: {self._money(roi.net_benefit)}")
            print(f"   Break-even: {break_even}")
            print(f"   {'✅ Recommended' if roi.recommended else '⚠️ Not recommended'}")
            return True
        except Exception as e:
            print(f"❌ Error calculating ROI: {e}")
            return False


def main(argv: Optional[List[str]] = None):
    cli = CostCLI(EngineSettings.from_env())
    parser = cli.setup_parser()

    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        parser.print_help()
        return

    args = parser.parse_args(argv)

    try:
        cli.configure(args)
        success = cli.run_command(args)
        sys.exit(0 if success else 1)
    except KeyboardInterrupt:
        print("\n\n⚠️ Operation cancelled by user")
        sys.exit(1)
    except Exception as e:
        print(f"\n❌ Unexpected error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
