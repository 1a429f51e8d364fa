"""Application Settings and Configuration.

This module provides application-wide settings that combine configuration
from the configuration manager with application-specific defaults.

Security Impact:
    - Settings are loaded from environment variables
    - Sensitive values are never logged
    - Defaults are provided for development convenience
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from wound_intake.infrastructure.config_manager import ConfigManager

# Application metadata
APP_NAME = "Wound-Intake"
APP_VERSION = "1.0.0"

DEFAULT_PROMPT_DIR = Path(__file__).resolve().parent.parent / "prompts"


class Settings:
    """Application settings loaded from configuration manager and environment.

    Security Impact:
        - Secrets stay inside ``ConfigManager`` as SecretStr values
        - Settings are validated before use
    """

    def __init__(self):
        self._config_manager: Optional[ConfigManager] = None

        self.app_name = os.getenv("WI_APP_NAME", APP_NAME)
        self.log_level = os.getenv("WI_LOG_LEVEL", "INFO")
        self.log_json = os.getenv("WI_LOG_JSON", "false").lower() == "true"
        self.prompt_dir = Path(os.getenv("WI_PROMPT_DIR", str(DEFAULT_PROMPT_DIR)))

    @property
    def config_manager(self) -> ConfigManager:
        """Configuration manager, loaded lazily on first access."""
        if self._config_manager is None:
            self._config_manager = ConfigManager.from_environment()
        return self._config_manager


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the cached process settings."""
    return Settings()
