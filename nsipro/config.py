"""
Centralized environment variable management for nsipro.

This module uses `pydantic-settings` to define, validate, and access
application settings from environment variables and .env files.
None of the settings are required; the defaults reproduce the behavior of
the NSI software versions the parser was developed against.
"""

import logging
from pathlib import Path

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_DATETIME_FORMATS = [
    "%d-%b-%y %I:%M:%S %p",
    "%m/%d/%Y %I:%M:%S %p",
]
"""
Timestamp formats written by the NSI software, in the order they are tried.
Older versions write e.g. ``14-Jan-21 10:00:00 AM``, newer ones
``01/14/2021 10:00:00 AM``.
"""

DEFAULT_NULL_VALUE_TAGS = [
    "fixturing",
    "phys_filter",
    "Software",
    "radio_dir",
    "radio_series",
]
"""Tags that the NSI software sometimes writes bare, with no value and no end tag."""


class Settings(BaseSettings):
    """
    Manage application settings loaded from environment variables and `.env` files.

    This class utilizes `pydantic-settings` to provide a type-safe way to
    define, validate, and access the parser's configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra environment variables not defined here
    )

    NSIPRO_DATETIME_FORMATS: list[str] = Field(
        DEFAULT_DATETIME_FORMATS,
        description=(
            "Ordered list of strptime formats used to recognize timestamps in "
            "tag values. The first format that matches wins; values matching "
            "none of them are kept as strings."
        ),
        min_length=1,
    )
    NSIPRO_NULL_VALUE_TAGS: list[str] = Field(
        DEFAULT_NULL_VALUE_TAGS,
        description=(
            "Tags that may appear on a line of their own with no value and no "
            "closing tag. Such lines are completed to an empty element before "
            "parsing."
        ),
    )
    NSIPRO_FILE_EXTENSION: str = Field(
        ".nsipro",
        description=(
            "File extension (including the leading dot) used to find project "
            "files when a directory is given on the command line."
        ),
    )
    NSIPRO_TABULATE_SEPARATOR: str = Field(
        ".",
        description=(
            "Separator used to join nested keys into a single column name when "
            "records are flattened for CSV export."
        ),
        min_length=1,
    )
    NSIPRO_LOG_DIR: Path | None = Field(
        None,
        description=(
            "If set, the command line writes 'nsipro-parser.log' (INFO and up) "
            "and 'nsipro-parser.err.log' (ERROR and up) into this directory."
        ),
    )

    @field_validator("NSIPRO_FILE_EXTENSION")
    @classmethod
    def validate_leading_dot(cls, v: str) -> str:
        """Ensure the file extension starts with a dot."""
        if not v.startswith("."):
            msg = "NSIPRO_FILE_EXTENSION must start with a '.'"
            raise ValueError(msg)
        return v


# Instantiate the settings object to be imported throughout the application
try:
    settings = Settings()
except ValidationError:
    logger.exception("Configuration validation error")
    raise
