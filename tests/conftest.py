"""Shared fixtures for all tests."""

from datetime import date, datetime, timedelta, timezone
import os
from pathlib import Path
import tempfile
from unittest.mock import patch

import pytest

from messagewise.models import CategoryBreakdown, HistoricalData, Message
from messagewise.pricing import Direction, MessageCategory, PricingConfig


@pytest.fixture
def fixed_now():
    return datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def pricing():
    return PricingConfig.default()


@pytest.fixture
def temp_dir():
    """Temporary directory for file-based tests."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture
def make_message(fixed_now):
    """Factory for outbound marketing messages with per-call overrides."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        fields = {
            "category": MessageCategory.MARKETING,
            "direction": Direction.OUTBOUND,
            "timestamp": fixed_now,
            "is_in_free_window": False,
            "conversation_id": None,
            "id": f"msg_{counter['n']}",
        }
        fields.update(overrides)
        return Message(**fields)

    return _make


@pytest.fixture
def make_history():
    """Factory for a daily history series starting 2026-03-01."""

    def _make(costs, messages=100, free=50, marketing=20, savings=1.0):
        start = date(2026, 3, 1)
        history = []
        for i, cost in enumerate(costs):
            history.append(
                HistoricalData(
                    date=start + timedelta(days=i),
                    total_cost=cost,
                    total_messages=messages,
                    free_messages=free,
                    paid_messages=messages - free,
                    breakdown=[
                        CategoryBreakdown(
                            category=MessageCategory.MARKETING,
                            count=marketing,
                            cost=marketing * 0.0411,
                        ),
                        CategoryBreakdown(
                            category=MessageCategory.UTILITY,
                            count=messages - marketing,
                            cost=(messages - marketing) * 0.0019,
                        ),
                    ],
                    actual_savings=savings,
                )
            )
        return history

    return _make


@pytest.fixture
def clean_env():
    """Environment without MESSAGEWISE_* variables, restored afterwards."""
    with patch.dict(os.environ):
        for key in [k for k in os.environ if k.startswith("MESSAGEWISE_")]:
            del os.environ[key]
        yield
