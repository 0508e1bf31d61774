"""
Tests for loading messages and history from CSV and JSON files.
"""

import json
from datetime import date, datetime, timezone

import pytest

from messagewise.data_loader import (
    DataLoadError,
    load_history,
    load_messages,
    read_table,
    to_snake_case,
)
from messagewise.pricing import Direction, MessageCategory


def write_text(path, text, encoding="utf-8"):
    path.write_text(text, encoding=encoding)
    return path


class TestColumnNames:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("isInFreeWindow", "is_in_free_window"),
            ("conversationId", "conversation_id"),
            ("total_cost", "total_cost"),
            ("Template Name", "template_name"),
            (" timestamp ", "timestamp"),
        ],
    )
    def test_to_snake_case(self, name, expected):
        assert to_snake_case(name) == expected


class TestReadTable:
    def test_semicolon_csv(self, temp_dir):
        path = write_text(
            temp_dir / "messages.csv",
            "category;timestamp\nMARKETING;2026-03-15T12:00:00Z\n",
        )
        df = read_table(path, ("category", "timestamp"))
        assert list(df.columns) == ["category", "timestamp"]
        assert len(df) == 1

    def test_latin1_csv(self, temp_dir):
        path = write_text(
            temp_dir / "messages.csv",
            "category,timestamp,content\nMARKETING,2026-03-15T12:00:00Z,Promoção\n",
            encoding="latin-1",
        )
        df = read_table(path, ("category", "timestamp"))
        assert df["content"].iloc[0] == "Promoção"

    def test_missing_file(self, temp_dir):
        with pytest.raises(DataLoadError, match="File not found"):
            read_table(temp_dir / "missing.csv")

    def test_unsupported_suffix(self, temp_dir):
        path = write_text(temp_dir / "messages.txt", "category,timestamp\n")
        with pytest.raises(DataLoadError, match="Unsupported file type"):
            read_table(path)

    def test_missing_columns_in_csv(self, temp_dir):
        path = write_text(temp_dir / "messages.csv", "category,content\nMARKETING,hi\n")
        with pytest.raises(DataLoadError):
            read_table(path, ("category", "timestamp"))

    def test_missing_columns_in_json(self, temp_dir):
        path = write_text(temp_dir / "messages.json", json.dumps([{"category": "MARKETING"}]))
        with pytest.raises(DataLoadError, match="Missing required columns"):
            read_table(path, ("category", "timestamp"))

    def test_invalid_json(self, temp_dir):
        path = write_text(temp_dir / "messages.json", "{not json")
        with pytest.raises(DataLoadError, match="Invalid JSON"):
            read_table(path)

    def test_json_object_must_hold_a_list(self, temp_dir):
        path = write_text(temp_dir / "messages.json", json.dumps({"total": 3}))
        with pytest.raises(DataLoadError, match="Expected a list"):
            read_table(path)


class TestLoadMessages:
    def test_csv_messages(self, temp_dir):
        path = write_text(
            temp_dir / "messages.csv",
            "id,category,direction,timestamp,isInFreeWindow,conversationId,content\n"
            "m1,marketing,OUTBOUND,2026-03-15T12:00:00Z,false,c1,Flash sale\n"
            "m2,AUTHENTICATION,outbound,2026-03-15T13:00:00Z,true,,Your code is 1234\n"
            "m3,SERVICE,INBOUND,2026-03-15T14:00:00Z,,c1,\n",
        )

        messages = load_messages(path)

        assert [m.id for m in messages] == ["m1", "m2", "m3"]
        assert messages[0].category == MessageCategory.MARKETING
        assert messages[0].timestamp == datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)
        assert messages[0].conversation_id == "c1"
        assert messages[1].is_in_free_window is True
        assert messages[1].conversation_id is None
        assert messages[2].direction == Direction.INBOUND
        assert messages[2].content is None

    def test_json_messages_with_camel_case(self, temp_dir):
        path = write_text(
            temp_dir / "messages.json",
            json.dumps(
                {
                    "messages": [
                        {
                            "category": "UTILITY",
                            "direction": "OUTBOUND",
                            "timestamp": "2026-03-15T12:00:00Z",
                            "isInFreeWindow": True,
                            "templateName": "order_update",
                            "templateCategory": "UTILITY",
                        },
                        {
                            "category": "PROMO",
                            "timestamp": "2026-03-16T12:00:00Z",
                        },
                    ]
                }
            ),
        )

        messages = load_messages(path)

        assert [m.id for m in messages] == ["msg_1", "msg_2"]
        assert messages[0].is_in_free_window is True
        assert messages[0].template_name == "order_update"
        assert messages[0].template_category == "UTILITY"
        assert messages[1].category == MessageCategory.SERVICE
        assert messages[1].direction == Direction.OUTBOUND
        assert messages[1].is_in_free_window is False

    def test_invalid_timestamps_are_skipped(self, temp_dir, caplog):
        path = write_text(
            temp_dir / "messages.csv",
            "category,timestamp\n"
            "MARKETING,2026-03-15T12:00:00Z\n"
            "MARKETING,not a date\n"
            "UTILITY,2026-03-15T13:00:00Z\n",
        )

        messages = load_messages(path)

        assert len(messages) == 2
        assert [m.category for m in messages] == [MessageCategory.MARKETING, MessageCategory.UTILITY]
        assert "Skipping 1 rows with invalid timestamps" in caplog.text


class TestLoadHistory:
    def test_csv_history_with_category_columns(self, temp_dir):
        path = write_text(
            temp_dir / "history.csv",
            "date,total_cost,total_messages,free_messages,paid_messages,actual_savings,"
            "marketing_count,marketing_cost\n"
            "2026-03-01,10.5,100,40,60,1.25,20,0.822\n"
            "2026-03-02,11,120,50,70,,25,1.0275\n",
        )

        history = load_history(path)

        assert [day.date for day in history] == [date(2026, 3, 1), date(2026, 3, 2)]
        assert history[0].total_cost == 10.5
        assert history[0].total_messages == 100
        assert history[0].actual_savings == 1.25
        assert history[1].actual_savings == 0.0
        marketing = history[0].for_category(MessageCategory.MARKETING)
        assert marketing.count == 20
        assert marketing.cost == 0.822
        assert history[0].for_category(MessageCategory.UTILITY) is None

    def test_json_history_with_breakdown_list(self, temp_dir):
        path = write_text(
            temp_dir / "history.json",
            json.dumps(
                [
                    {
                        "date": "2026-03-01",
                        "totalCost": 4.11,
                        "totalMessages": 100,
                        "freeMessages": 0,
                        "paidMessages": 100,
                        "actualSavings": 0.5,
                        "breakdown": [{"category": "MARKETING", "count": 100, "cost": 4.11}],
                    }
                ]
            ),
        )

        history = load_history(path)

        assert len(history) == 1
        assert history[0].paid_messages == 100
        assert history[0].breakdown[0].category == MessageCategory.MARKETING
        assert history[0].breakdown[0].cost == 4.11

    def test_history_requires_totals(self, temp_dir):
        path = write_text(temp_dir / "history.csv", "date,total_cost\n2026-03-01,1\n")
        with pytest.raises(DataLoadError):
            load_history(path)
