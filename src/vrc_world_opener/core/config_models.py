"""
Purpose: Typed configuration models with validation.
Constraints: Pure models; no file I/O or side effects.
"""

from __future__ import annotations

from typing import Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FeedSettings(BaseModel):
    """User toggles. Changing any of them starts a new settings epoch."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)
    enabled: bool = Field(default=True, alias="extensionEnabled")
    show_open_control: bool = Field(default=True, alias="showOpenBtn")
    show_search_control: bool = Field(default=True, alias="showSearchBtn")

    def to_storage(self) -> Dict[str, bool]:
        return self.model_dump(by_alias=True)


class Selectors(BaseModel):
    model_config = ConfigDict(extra="allow")
    post: str = '[data-testid="tweet"]'
    post_text: str = '[data-testid="tweetText"]'
    action_bar: str = '[role="group"]'


class OpenerSettings(BaseModel):
    model_config = ConfigDict(extra="allow")
    trigger_hashtag: str = "#vrchat_world紹介"
    debounce_ms: int = 300
    reset_delay_ms: int = 2000
    poll_interval_ms: int = 250
    web_base: str = "https://vrchat.com/home"
    selectors: Selectors = Field(default_factory=Selectors)

    @field_validator("trigger_hashtag")
    @classmethod
    def _lower_hashtag(cls, value: str) -> str:
        value = value.strip().lower()
        if not value:
            raise ValueError("trigger_hashtag must not be empty")
        return value

    @field_validator("debounce_ms", "reset_delay_ms", "poll_interval_ms")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("delays must be >= 0")
        return value

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0

    @property
    def reset_delay_seconds(self) -> float:
        return self.reset_delay_ms / 1000.0

    @property
    def poll_interval_seconds(self) -> float:
        return self.poll_interval_ms / 1000.0


class BrowserSettings(BaseModel):
    model_config = ConfigDict(extra="allow")
    headless: bool = False
    start_url: str = "https://x.com/home"
    profile_dir: str = ""
    chrome_binary: str = ""


class ApiSettings(BaseModel):
    model_config = ConfigDict(extra="allow")
    api_base: str = "https://api.vrchat.cloud/api/1"
    username: str = ""
    password: str = ""
    user_agent: str = (
        "VRCWorldOpener/0.1.1 (Python; contact: https://github.com/Hijiki-Suzuki/vrchat-world-opener)"
    )
    cookie_file: str = "data/vrchat_cookies.json"
    timeout: float = 10.0
    search_count: int = 10
