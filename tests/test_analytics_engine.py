"""
Tests for the cost analytics engine.
"""

import json
from datetime import date, timedelta

import pytest

from messagewise.analytics_engine import CostAnalyticsEngine
from messagewise.pricing import MessageCategory


@pytest.fixture
def engine():
    return CostAnalyticsEngine(country="ID", currency="USD")


@pytest.fixture
def period_messages(make_message, fixed_now):
    """Ten paid marketing messages spread over two days."""
    return [make_message() for _ in range(6)] + [
        make_message(timestamp=fixed_now + timedelta(days=1)) for _ in range(4)
    ]


class TestEngineSetup:
    def test_components_share_pricing(self, engine):
        assert engine.calculator.pricing is engine.pricing
        assert engine.optimizer.pricing is engine.pricing
        assert engine.predictor.pricing is engine.pricing
        assert engine.classifier.pricing is engine.pricing

    def test_country_is_passed_down(self):
        engine = CostAnalyticsEngine(country="US")
        assert engine.calculator.country == "US"
        assert engine.optimizer.country == "US"
        assert engine.predictor.country == "US"


class TestAnalyzePeriod:
    def test_report_structure(self, engine, period_messages, fixed_now):
        report = engine.analyze_period(period_messages, now=fixed_now)

        assert set(report) == {
            "generated_at",
            "country",
            "currency",
            "summary",
            "breakdown",
            "daily_data",
            "potential_savings",
            "conversations",
            "recommendations",
            "trends",
        }
        assert report["generated_at"] == "2026-03-15T12:00:00+00:00"
        assert report["country"] == "ID"

    def test_summary(self, engine, period_messages, fixed_now):
        report = engine.analyze_period(period_messages, now=fixed_now)
        summary = report["summary"]

        assert summary["total_cost"] == 0.411
        assert summary["total_messages"] == 10
        assert summary["paid_messages"] == 10
        assert summary["optimization_score"] == 35
        assert summary["potential_savings"] == pytest.approx(
            sum(r["potential_savings"] for r in report["recommendations"])
        )

    def test_nested_values_are_plain_data(self, engine, period_messages, fixed_now):
        report = engine.analyze_period(period_messages, now=fixed_now)

        assert report["breakdown"][0]["category"] == "AUTHENTICATION"
        assert [day["date"] for day in report["daily_data"]] == ["2026-03-15", "2026-03-16"]
        assert report["daily_data"][0]["message_count"] == 6
        assert report["recommendations"][0]["priority"] == "high"
        assert report["recommendations"][0]["id"].startswith("rec_1_")
        assert report["conversations"]["conversations_started_by_business"] == 10
        # Round-trips through the standard JSON encoder without a fallback
        assert json.loads(json.dumps(report)) == report

    def test_trends_against_previous_period(self, engine, period_messages, make_message, fixed_now):
        previous = [make_message() for _ in range(5)]

        report = engine.analyze_period(period_messages, previous_messages=previous, now=fixed_now)

        assert report["trends"]["cost"]["trend"] == "up"
        assert report["trends"]["messages"]["change_percentage"] == 100.0

    def test_without_recommendations(self, engine, period_messages, fixed_now):
        report = engine.analyze_period(period_messages, include_recommendations=False, now=fixed_now)

        assert report["recommendations"] == []
        assert report["summary"]["potential_savings"] == 0.0

    def test_empty_period(self, engine, fixed_now):
        report = engine.analyze_period([], now=fixed_now)

        assert report["summary"]["total_cost"] == 0.0
        assert report["daily_data"] == []
        assert report["recommendations"] == []


class TestForecastAndHistory:
    def test_forecast(self, engine, make_history):
        result = engine.forecast(make_history([10] * 7), months=3, start_date=date(2026, 3, 15))

        assert result["prediction"]["trend"] == "stable"
        assert [entry["month"] for entry in result["forecast"]] == [
            "Apr 2026",
            "May 2026",
            "Jun 2026",
        ]
        assert result["total_forecast_savings"] == result["forecast"][-1]["cumulative_savings"]

    def test_forecast_with_no_months(self, engine, make_history):
        result = engine.forecast(make_history([10] * 7), months=0)
        assert result["forecast"] == []
        assert result["total_forecast_savings"] == 0.0

    def test_history_from_messages(self, engine, period_messages):
        history = engine.history_from_messages(period_messages)

        assert [day.date for day in history] == [date(2026, 3, 15), date(2026, 3, 16)]
        assert history[0].total_messages == 6
        assert history[0].total_cost == pytest.approx(6 * 0.0411)
        assert history[0].for_category(MessageCategory.MARKETING).count == 6
        assert history[0].actual_savings == 0.0

    def test_save_report(self, engine, period_messages, fixed_now, temp_dir):
        report = engine.analyze_period(period_messages, now=fixed_now)

        saved = engine.save_report(report, temp_dir / "reports" / "march.json")

        assert saved.exists()
        with open(saved, encoding="utf-8") as f:
            assert json.load(f) == report
