"""
Purpose: Load environment and JSON configuration for the opener.
Constraints: Pure config I/O only; no network or browser side effects.
"""

# Imports
import os
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from vrc_world_opener.core.config_models import (
    ApiSettings,
    BrowserSettings,
    OpenerSettings,
)
from vrc_world_opener.core.errors import ConfigError

# Constants
logger = logging.getLogger(__name__)

_TRUTHY = ("true", "1", "yes", "y", "on")


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in _TRUTHY


# Public API
class ConfigManager:
    """Unified configuration for the scanner, the browser bridge and the API client"""

    def __init__(self, config_dir: Optional[Path] = None):
        if config_dir is None:
            config_dir = os.getenv("CONFIG_DIR") or Path(__file__).resolve().parents[3] / "config"
        self.config_dir = Path(config_dir)

        self.opener = OpenerSettings()
        self.browser = BrowserSettings()
        self.api = ApiSettings()
        self.settings_path = Path(os.getenv("SETTINGS_PATH", "data/settings.json"))

    def load_all(self):
        """Load all configurations"""
        self.load_env()
        self.load_settings()
        return self

    def load_env(self):
        """Load environment variables (first env file found wins)"""
        from dotenv import load_dotenv

        env_files = [
            self.config_dir / "credentials.env",
            Path.cwd() / ".env",
            Path.home() / ".vrc_world_opener.env",
        ]

        loaded_file = None
        for env_file in env_files:
            if env_file.exists():
                load_dotenv(env_file)
                loaded_file = env_file
                break

        if loaded_file:
            logger.info("Loaded environment from: %s", loaded_file)
        else:
            logger.debug("No .env file found")

        self.settings_path = Path(os.getenv("SETTINGS_PATH", str(self.settings_path)))
        return self

    def load_settings(self):
        """Load tuning from settings.json, then apply env overrides"""
        raw: Dict[str, Any] = {}
        settings_file = self.config_dir / "settings.json"
        if settings_file.exists():
            try:
                raw = json.loads(settings_file.read_text(encoding="utf-8")) or {}
            except (OSError, json.JSONDecodeError) as e:
                raise ConfigError(f"Error reading {settings_file}: {e}") from e

        opener = dict(raw.get("opener", {}) or {})
        browser = dict(raw.get("browser", {}) or {})
        api = dict(raw.get("api", {}) or {})

        if os.getenv("OPENER_DEBOUNCE_MS"):
            opener["debounce_ms"] = os.getenv("OPENER_DEBOUNCE_MS")
        if os.getenv("OPENER_RESET_DELAY_MS"):
            opener["reset_delay_ms"] = os.getenv("OPENER_RESET_DELAY_MS")
        if os.getenv("OPENER_TRIGGER_HASHTAG"):
            opener["trigger_hashtag"] = os.getenv("OPENER_TRIGGER_HASHTAG")

        if os.getenv("SELENIUM_HEADLESS"):
            browser["headless"] = _env_flag("SELENIUM_HEADLESS")
        if os.getenv("CHROME_BIN"):
            browser["chrome_binary"] = os.getenv("CHROME_BIN")

        if os.getenv("VRCHAT_USERNAME"):
            api["username"] = os.getenv("VRCHAT_USERNAME")
        if os.getenv("VRCHAT_PASSWORD"):
            api["password"] = os.getenv("VRCHAT_PASSWORD")
        if os.getenv("VRCHAT_COOKIE_PATH"):
            api["cookie_file"] = os.getenv("VRCHAT_COOKIE_PATH")

        try:
            self.opener = OpenerSettings(**opener)
            self.browser = BrowserSettings(**browser)
            self.api = ApiSettings(**api)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e
        return self
