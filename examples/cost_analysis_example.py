"""
Cost Analysis Example - Demonstration script.

Generates a synthetic month of WhatsApp message traffic, writes it to CSV,
loads it back and runs the full analytics pipeline: cost breakdown,
recommendations, 6-month forecast and plan ROI.
"""

import logging
import random
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pandas as pd

from messagewise.analytics_engine import CostAnalyticsEngine
from messagewise.data_loader import load_messages
from messagewise.helpers import format_currency

# Setup logging
logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

SAMPLE_CONTENT = {
    "MARKETING": ["Flash sale! 50% off today", "New promo for members", "Weekend cashback voucher"],
    "UTILITY": ["Your order #{n} has shipped", "Invoice {n} is ready", "Payment received"],
    "AUTHENTICATION": ["Your verification code is {n}", "OTP: {n}"],
    "SERVICE": ["Thanks for reaching out, how can we help?", "Your ticket was updated"],
}


def create_sample_messages(output_file: Path, days: int = 30, seed: int = 42) -> Path:
    """Create a CSV of synthetic messages for the last ``days`` days."""
    print("📊 Creating sample message data...")
    rng = random.Random(seed)
    start = datetime.now(timezone.utc).replace(minute=0, second=0, microsecond=0) - timedelta(days=days)

    rows = []
    for day in range(days):
        for n in range(rng.randint(40, 80)):
            category = rng.choices(
                ["MARKETING", "UTILITY", "AUTHENTICATION", "SERVICE"], weights=[5, 3, 1, 1]
            )[0]
            inbound = category == "SERVICE" and rng.random() < 0.5
            rows.append(
                {
                    "id": f"msg_{day}_{n}",
                    "category": category,
                    "direction": "INBOUND" if inbound else "OUTBOUND",
                    "timestamp": (start + timedelta(days=day, hours=rng.choice([9, 10, 12, 19]))).isoformat(),
                    "isInFreeWindow": rng.random() < 0.25,
                    "conversationId": f"conv_{day}_{n // 3}",
                    "content": rng.choice(SAMPLE_CONTENT[category]).format(n=rng.randint(1000, 9999)),
                }
            )

    output_file.parent.mkdir(parents=True, exist_ok=True)
    pd.DataFrame(rows).to_csv(output_file, index=False)
    print(f"✅ Sample data created: {len(rows):,} messages in {output_file}")
    return output_file


def main():
    print("🚀 MESSAGEWISE COST ANALYSIS EXAMPLE")
    print("=" * 50)

    output_dir = Path("example_output")
    messages_file = create_sample_messages(output_dir / "sample_messages.csv")

    messages = load_messages(messages_file)
    engine = CostAnalyticsEngine(country="ID", currency="USD")

    report = engine.analyze_period(messages)
    summary = report["summary"]

    print("\n💰 COST SUMMARY:")
    print(f"   Total cost: {format_currency(summary['total_cost'])}")
    print(f"   Messages: {summary['total_messages']:,} ({summary['free_messages']:,} free)")
    print(f"   Optimization score: {summary['optimization_score']}/100")

    print("\n🚀 TOP RECOMMENDATIONS:")
    for rec in report["recommendations"][:3]:
        print(f"   [{rec['priority'].upper()}] {rec['title']}: {format_currency(rec['potential_savings'])}")

    history = engine.history_from_messages(messages)
    forecast = engine.forecast(history, months=6)

    print("\n📆 6-MONTH FORECAST:")
    for entry in forecast["forecast"]:
        print(f"   {entry['month']}: {format_currency(entry['predicted_cost'])}")
    print(f"   Total savings: {format_currency(forecast['total_forecast_savings'])}")

    roi = engine.predictor.calculate_plan_roi(history, "FREE", "PRO")
    print(f"\n💼 PRO plan: net benefit {format_currency(roi.net_benefit)}, "
          f"{'recommended' if roi.recommended else 'not recommended'}")

    report_file = engine.save_report(report, output_dir / "cost_report.json")
    print(f"\n✅ Report saved: {report_file}")


if __name__ == "__main__":
    main()
