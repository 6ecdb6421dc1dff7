"""Job form settings.

Settings come from environment variables with the JOBFORM_ prefix (and a
``.env`` file), plus an optional ``jobform:`` section of ``.jobform.yaml``
in the project root. Environment variables win over the project file.

Example .jobform.yaml:
    jobform:
      api_base_url: http://scheduler:12345/dolphinscheduler
      lookup_timeout: 10
      disabled_types: [ORACLE]
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

__all__ = ["FormSettings", "get_settings", "PROJECT_FILE"]

PROJECT_FILE = ".jobform.yaml"
ENV_PREFIX = "JOBFORM_"


class FormSettings(BaseSettings):
    """Environment-based form settings using pydantic-settings.

    Example:
        >>> # JOBFORM_API_BASE_URL=http://scheduler:12345/dolphinscheduler
        >>> # JOBFORM_LOOKUP_TIMEOUT=5
        >>> settings = FormSettings()
        >>> settings.lookup_timeout
        5.0
    """

    api_base_url: str = Field(default="http://localhost:12345/dolphinscheduler", description="Scheduler API root")
    api_token: Optional[str] = Field(default=None, description="Scheduler API token")
    lookup_timeout: Optional[float] = Field(default=None, gt=0, description="Per-lookup timeout in seconds")
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="console", description="Log format: 'json' or 'console'")
    log_file: Optional[str] = Field(default=None, description="Optional log file path")
    disabled_types: List[str] = Field(default_factory=list, description="Datasource types to hide")

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    @field_validator("log_format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        valid_formats = ["json", "console"]
        if v.lower() not in valid_formats:
            raise ValueError(f"log_format must be one of: {valid_formats}")
        return v.lower()

    @field_validator("log_level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("disabled_types")
    @classmethod
    def upper_codes(cls, v: List[str]) -> List[str]:
        return [code.upper() for code in v]

    @classmethod
    def load(cls, project_root: Path | None = None) -> "FormSettings":
        """Load settings from the environment and .jobform.yaml.

        Args:
            project_root: Project root directory. Defaults to cwd.

        Returns:
            FormSettings; a malformed project file is ignored.
        """
        root = project_root or Path.cwd()
        config_path = root / PROJECT_FILE

        file_values: dict = {}
        if config_path.exists():
            try:
                with open(config_path, encoding="utf-8") as f:
                    config = yaml.safe_load(f) or {}
                file_values = dict(config.get("jobform") or {})
            except (OSError, yaml.YAMLError, AttributeError, TypeError) as e:
                logger.warning("Ignoring malformed %s: %s", config_path, e)
                file_values = {}

        # Environment variables take precedence over the project file
        overrides = {
            key: value
            for key, value in file_values.items()
            if key in cls.model_fields and f"{ENV_PREFIX}{key.upper()}" not in os.environ
        }
        return cls(**overrides)


# Global settings instance (loaded on first access)
_settings: FormSettings | None = None


def get_settings(reload: bool = False) -> FormSettings:
    """Get the global form settings.

    Args:
        reload: Force reload from the environment and project file.
    """
    global _settings
    if _settings is None or reload:
        _settings = FormSettings.load()
    return _settings
