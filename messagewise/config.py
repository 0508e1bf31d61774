"""Runtime settings read from the environment and an optional ``.env`` file."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from messagewise.pricing import PricingConfig

logger = logging.getLogger(__name__)


@dataclass
class EngineSettings:
    country: str = "ID"
    currency: str = "USD"
    pricing_file: Optional[Path] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "EngineSettings":
        """
        Build settings from MESSAGEWISE_* environment variables.

        Values already present in the environment take precedence over the
        ``.env`` file.
        """
        load_dotenv(dotenv_path=env_file)

        pricing_file = os.getenv("MESSAGEWISE_PRICING_FILE")
        return cls(
            country=os.getenv("MESSAGEWISE_COUNTRY", "ID").upper(),
            currency=os.getenv("MESSAGEWISE_CURRENCY", "USD").upper(),
            pricing_file=Path(pricing_file) if pricing_file else None,
            log_level=os.getenv("MESSAGEWISE_LOG_LEVEL", "INFO").upper(),
        )

    def pricing(self) -> PricingConfig:
        if self.pricing_file is None:
            return PricingConfig.default()
        logger.info(f"Using pricing overrides from {self.pricing_file}")
        return PricingConfig.from_json(self.pricing_file)
