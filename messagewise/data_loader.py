"""
Loading of message projections and daily cost history from CSV or JSON files.

Column names may be camelCase (as exported by the messaging API) or
snake_case. Timestamps are parsed as UTC.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd

from messagewise.models import CategoryBreakdown, HistoricalData, Message
from messagewise.pricing import Direction, MessageCategory

logger = logging.getLogger(__name__)

MESSAGE_REQUIRED_COLUMNS = ("category", "timestamp")
HISTORY_REQUIRED_COLUMNS = ("date", "total_cost", "total_messages")

CSV_CONFIGS = [
    {"encoding": "utf-8-sig", "sep": ","},
    {"encoding": "utf-8-sig", "sep": ";"},
    {"encoding": "latin-1", "sep": ","},
    {"encoding": "latin-1", "sep": ";"},
]

TRUE_VALUES = {"true", "1", "yes", "y", "t"}


class DataLoadError(ValueError):
    """Raised when an input file cannot be read or lacks required columns."""


def to_snake_case(name: str) -> str:
    name = re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", str(name).strip())
    return re.sub(r"[\s\-]+", "_", name).lower()


def read_table(path: Union[str, Path], required_columns=()) -> pd.DataFrame:
    """
    Read a CSV or JSON file into a DataFrame with snake_case columns.

    CSV files are tried with several encoding/separator combinations; the
    first one that yields every required column wins. JSON files may hold a
    list of records or an object with a ``messages``/``history``/``data`` list.
    """
    path = Path(path)
    if not path.exists():
        raise DataLoadError(f"File not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".json":
        df = _read_json(path)
    elif suffix == ".csv":
        df = _read_csv(path, required_columns)
    else:
        raise DataLoadError(f"Unsupported file type '{suffix}' (expected .csv or .json)")

    df.columns = [to_snake_case(column) for column in df.columns]
    missing = [column for column in required_columns if column not in df.columns]
    if missing:
        raise DataLoadError(f"Missing required columns in {path.name}: {', '.join(missing)}")

    logger.info(f"Loaded {len(df):,} rows from {path.name} (columns: {list(df.columns)})")
    return df


def _read_csv(path: Path, required_columns) -> pd.DataFrame:
    last_error: Optional[Exception] = None
    for config in CSV_CONFIGS:
        try:
            df = pd.read_csv(path, dtype=str, keep_default_na=False, **config)
        except (UnicodeDecodeError, pd.errors.ParserError) as e:
            logger.debug(f"CSV attempt {config} failed: {str(e)}")
            last_error = e
            continue

        columns = {to_snake_case(column) for column in df.columns}
        if all(column in columns for column in required_columns):
            logger.debug(f"CSV loaded with encoding={config['encoding']}, sep='{config['sep']}'")
            return df

    raise DataLoadError(
        f"Could not read {path.name} as CSV after {len(CSV_CONFIGS)} attempts"
        + (f": {str(last_error)}" if last_error else "")
    )


def _read_json(path: Path) -> pd.DataFrame:
    try:
        with open(path, "r", encoding="utf-8") as f:
            payload = json.load(f)
    except json.JSONDecodeError as e:
        raise DataLoadError(f"Invalid JSON in {path.name}: {str(e)}") from e

    if isinstance(payload, dict):
        for key in ("messages", "history", "data"):
            if isinstance(payload.get(key), list):
                payload = payload[key]
                break
    if not isinstance(payload, list):
        raise DataLoadError(f"Expected a list of records in {path.name}")

    return pd.DataFrame.from_records(payload)


def load_messages(path: Union[str, Path]) -> List[Message]:
    """Load message projections; rows with unparseable timestamps are skipped."""
    df = read_table(path, MESSAGE_REQUIRED_COLUMNS)
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True, errors="coerce")

    invalid = int(df["timestamp"].isna().sum())
    if invalid:
        logger.warning(f"Skipping {invalid} rows with invalid timestamps")
        df = df[df["timestamp"].notna()]

    messages = []
    for position, row in enumerate(df.to_dict(orient="records")):
        messages.append(
            Message(
                category=MessageCategory.parse(row.get("category")),
                direction=Direction.parse(_to_optional_str(row.get("direction")) or "OUTBOUND"),
                timestamp=row["timestamp"].to_pydatetime(),
                is_in_free_window=_to_bool(row.get("is_in_free_window")),
                conversation_id=_to_optional_str(row.get("conversation_id")),
                id=_to_optional_str(row.get("id")) or f"msg_{position + 1}",
                content=_to_optional_str(row.get("content")),
                template_name=_to_optional_str(row.get("template_name")),
                template_category=_to_optional_str(row.get("template_category")),
                cost=_to_float(row.get("cost")),
            )
        )
    return messages


def load_history(path: Union[str, Path]) -> List[HistoricalData]:
    """
    Load daily cost history.

    Category breakdowns come either from a ``breakdown`` list (JSON) or from
    ``<category>_count`` / ``<category>_cost`` columns (CSV).
    """
    df = read_table(path, HISTORY_REQUIRED_COLUMNS)
    df["date"] = pd.to_datetime(df["date"], utc=True, errors="coerce")

    invalid = int(df["date"].isna().sum())
    if invalid:
        logger.warning(f"Skipping {invalid} history rows with invalid dates")
        df = df[df["date"].notna()]

    history = []
    for row in df.to_dict(orient="records"):
        history.append(
            HistoricalData(
                date=row["date"].to_pydatetime().date(),
                total_cost=_to_float(row.get("total_cost")),
                total_messages=int(_to_float(row.get("total_messages"))),
                free_messages=int(_to_float(row.get("free_messages"))),
                paid_messages=int(_to_float(row.get("paid_messages"))),
                breakdown=_history_breakdown(row),
                actual_savings=_to_float(row.get("actual_savings")),
            )
        )
    return history


def _history_breakdown(row: Dict[str, Any]) -> List[CategoryBreakdown]:
    items = row.get("breakdown")
    if isinstance(items, list):
        breakdown = []
        for item in items:
            item = {to_snake_case(k): v for k, v in item.items()}
            breakdown.append(
                CategoryBreakdown(
                    category=MessageCategory.parse(item.get("category")),
                    count=int(_to_float(item.get("count"))),
                    cost=_to_float(item.get("cost")),
                )
            )
        return breakdown

    breakdown = []
    for category in MessageCategory:
        prefix = category.value.lower()
        if f"{prefix}_count" in row or f"{prefix}_cost" in row:
            breakdown.append(
                CategoryBreakdown(
                    category=category,
                    count=int(_to_float(row.get(f"{prefix}_count"))),
                    cost=_to_float(row.get(f"{prefix}_cost")),
                )
            )
    return breakdown


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in TRUE_VALUES


def _to_float(value: Any) -> float:
    if value is None or value == "":
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if pd.isna(number) else number


def _to_optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float) and pd.isna(value):
        return None
    text = str(value).strip()
    return text or None
