"""
Numeric and formatting helpers shared by the analyzers.
"""

from collections import defaultdict
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Dict, Iterable, List, Sequence, TypeVar

import numpy as np

T = TypeVar("T")

DEFAULT_USD_TO_IDR = 15700.0


def round_value(value: float, decimals: int = 2) -> float:
    """Round half away from zero at a fixed number of decimal places."""
    if value is None or not np.isfinite(value):
        return 0.0
    quantum = Decimal(1).scaleb(-decimals)
    return float(Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP))


def round_int(value: float) -> int:
    return int(round_value(value, 0))


def percentage(part: float, total: float) -> float:
    """Share of ``part`` in ``total`` as a percentage (0 when total is 0)."""
    if total == 0:
        return 0.0
    return round_value((part / total) * 100, 2)


def percentage_change(current: float, previous: float) -> float:
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return round_value(((current - previous) / previous) * 100, 2)


def average(values: Iterable[float]) -> float:
    values = list(values)
    if not values:
        return 0.0
    return sum(values) / len(values)


def group_by(items: Iterable[T], key_fn: Callable[[T], str]) -> Dict[str, List[T]]:
    """Group items by key, keeping first-seen key order."""
    groups: Dict[str, List[T]] = defaultdict(list)
    for item in items:
        groups[key_fn(item)].append(item)
    return dict(groups)


def linear_trend(values: Sequence[float]) -> float:
    """
    Ordinary least-squares slope of ``values`` against their index.

    Uses the closed form
    ``(n*Σxy - Σx*Σy) / (n*Σx² - (Σx)²)`` with x = 0..n-1.
    """
    n = len(values)
    if n < 2:
        return 0.0

    y = np.asarray(values, dtype=float)
    x = np.arange(n, dtype=float)

    x_sum = x.sum()
    y_sum = y.sum()
    xy_sum = float(np.dot(x, y))
    xx_sum = float(np.dot(x, x))

    denominator = n * xx_sum - x_sum * x_sum
    if denominator == 0:
        return 0.0
    return float((n * xy_sum - x_sum * y_sum) / denominator)


def coefficient_of_variation(values: Sequence[float]) -> float:
    """Population standard deviation over mean (1.0 when the mean is 0)."""
    if not values:
        return 1.0
    data = np.asarray(values, dtype=float)
    mean = data.mean()
    if mean == 0:
        return 1.0
    return float(data.std() / mean)


def utc_date_key(timestamp: datetime) -> str:
    """ISO calendar date (YYYY-MM-DD) of a timestamp in UTC."""
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc).date().isoformat()


def utc_hour(timestamp: datetime) -> int:
    if timestamp.tzinfo is None:
        return timestamp.hour
    return timestamp.astimezone(timezone.utc).hour


def usd_to_idr(usd: float, rate: float = DEFAULT_USD_TO_IDR) -> int:
    return round_int(usd * rate)


def idr_to_usd(idr: float, rate: float = DEFAULT_USD_TO_IDR) -> float:
    return round_value(idr / rate, 4)


def format_currency(amount: float, currency: str = "USD") -> str:
    """Format an amount for display: ``$1,234.56`` or ``Rp 1.234.567``."""
    if currency.upper() == "IDR":
        whole = f"{round_int(amount):,}".replace(",", ".")
        return f"Rp {whole}"
    return f"${round_value(amount, 2):,.2f}"
