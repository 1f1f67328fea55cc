"""
Purpose: Create the Chrome WebDriver used by the live feed bridge.
Constraints: Browser setup only; no feed logic here.
"""

# Imports
import logging
from pathlib import Path
from typing import Optional

from selenium import webdriver
from selenium.common.exceptions import WebDriverException
from selenium.webdriver.chrome.options import Options

from vrc_world_opener.core.config_models import BrowserSettings
from vrc_world_opener.core.errors import BrowserBridgeError

logger = logging.getLogger(__name__)


class BrowserManager:
    def __init__(self, settings: Optional[BrowserSettings] = None):
        self.settings = settings or BrowserSettings()

    def build_options(self) -> Options:
        options = Options()
        options.add_argument("--disable-dev-shm-usage")
        options.add_argument("--disable-gpu")
        prefs = {
            "credentials_enable_service": False,
            "profile.password_manager_enabled": False,
            "profile.default_content_setting_values.notifications": 2,
        }
        options.add_experimental_option("prefs", prefs)
        # The login notice is a window.alert; it stays up until the user closes it
        options.unhandled_prompt_behavior = "ignore"

        if self.settings.profile_dir:
            # Reusing a profile keeps the feed site's login between runs
            profile = Path(self.settings.profile_dir).expanduser().resolve()
            profile.mkdir(parents=True, exist_ok=True)
            options.add_argument(f"--user-data-dir={profile}")
        if self.settings.chrome_binary:
            options.binary_location = self.settings.chrome_binary

        if self.settings.headless:
            options.add_argument("--headless=new")
            logger.info("Creating headless browser")
        else:
            options.add_argument("--start-maximized")
        return options

    def create_driver(self):
        """Create a Chrome driver; Selenium Manager resolves chromedriver."""
        try:
            driver = webdriver.Chrome(options=self.build_options())
        except WebDriverException as e:
            raise BrowserBridgeError(f"Could not start Chrome: {e.msg or e}") from e
        logger.info("Chrome browser created")
        return driver
