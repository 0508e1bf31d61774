"""
Tests for environment-based settings.
"""

import json
import os
from pathlib import Path

from messagewise.config import EngineSettings
from messagewise.pricing import MessageCategory


class TestEngineSettings:
    def test_defaults(self, clean_env, temp_dir):
        settings = EngineSettings.from_env(env_file=temp_dir / "missing.env")

        assert settings.country == "ID"
        assert settings.currency == "USD"
        assert settings.pricing_file is None
        assert settings.log_level == "INFO"

    def test_reads_environment(self, clean_env, temp_dir):
        os.environ["MESSAGEWISE_COUNTRY"] = "us"
        os.environ["MESSAGEWISE_CURRENCY"] = "idr"
        os.environ["MESSAGEWISE_LOG_LEVEL"] = "debug"

        settings = EngineSettings.from_env(env_file=temp_dir / "missing.env")

        assert settings.country == "US"
        assert settings.currency == "IDR"
        assert settings.log_level == "DEBUG"

    def test_reads_env_file(self, clean_env, temp_dir):
        env_file = temp_dir / ".env"
        env_file.write_text(
            "MESSAGEWISE_COUNTRY=BR\nMESSAGEWISE_PRICING_FILE=/tmp/pricing.json\n",
            encoding="utf-8",
        )

        settings = EngineSettings.from_env(env_file=env_file)

        assert settings.country == "BR"
        assert settings.pricing_file == Path("/tmp/pricing.json")

    def test_environment_wins_over_env_file(self, clean_env, temp_dir):
        env_file = temp_dir / ".env"
        env_file.write_text("MESSAGEWISE_COUNTRY=BR\n", encoding="utf-8")
        os.environ["MESSAGEWISE_COUNTRY"] = "IN"

        assert EngineSettings.from_env(env_file=env_file).country == "IN"

    def test_pricing_overrides_file(self, temp_dir):
        pricing_file = temp_dir / "pricing.json"
        pricing_file.write_text(
            json.dumps({"country_rates": {"ID": {"MARKETING": 0.05}}}), encoding="utf-8"
        )

        pricing = EngineSettings(pricing_file=pricing_file).pricing()

        assert pricing.rate(MessageCategory.MARKETING, "ID") == 0.05

    def test_default_pricing(self):
        pricing = EngineSettings().pricing()
        assert pricing.rate(MessageCategory.MARKETING, "ID") == 0.0411
