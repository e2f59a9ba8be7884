"""Configuration for the reporting engine."""

import os
from typing import (
    Any,
    Dict,
    Optional,
)

from dotenv import (
    find_dotenv,
    load_dotenv,
)
from pydantic import (
    BaseModel,
    Field,
    field_validator,
)


ENV_PREFIX = "RETAIL_REPORTS_"

LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class ReportingSettings(BaseModel):
    """Settings for report execution."""

    low_stock_threshold: int = Field(default=20, gt=0, description="Products with less stock are reported")
    log_level: str = Field(default="WARNING", description="Log level for the retail_reports logger")

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        """Accept log levels in any case."""
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {value}")
        return level

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "ReportingSettings":
        """Create settings from a dictionary.

        Raises:
            pydantic.ValidationError: If a value is invalid.
        """
        return cls.model_validate(config_dict)

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "ReportingSettings":
        """Create settings from environment variables.

        A ``.env`` file is loaded first (without overriding variables already set). Variables
        are named ``RETAIL_REPORTS_<SETTING>``, e.g. ``RETAIL_REPORTS_LOW_STOCK_THRESHOLD``.

        Args:
            dotenv_path: Path to the .env file. Searched from the working directory when omitted.

        Raises:
            pydantic.ValidationError: If a value is invalid.
        """
        load_dotenv(dotenv_path or find_dotenv(usecwd=True))
        values = {
            name: os.environ[f"{ENV_PREFIX}{name.upper()}"]
            for name in cls.model_fields
            if f"{ENV_PREFIX}{name.upper()}" in os.environ
        }
        return cls.from_dict(values)
