import json

import pytest

from vrc_world_opener.core.config import ConfigManager
from vrc_world_opener.core.config_models import FeedSettings, OpenerSettings
from vrc_world_opener.core.errors import ConfigError

_ENV = (
    "OPENER_DEBOUNCE_MS",
    "OPENER_RESET_DELAY_MS",
    "OPENER_TRIGGER_HASHTAG",
    "SELENIUM_HEADLESS",
    "CHROME_BIN",
    "VRCHAT_USERNAME",
    "VRCHAT_PASSWORD",
    "VRCHAT_COOKIE_PATH",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)


def test_defaults_without_files(tmp_path):
    cfg = ConfigManager(config_dir=tmp_path).load_settings()
    assert cfg.opener.trigger_hashtag == "#vrchat_world紹介"
    assert cfg.opener.debounce_seconds == pytest.approx(0.3)
    assert cfg.opener.reset_delay_seconds == pytest.approx(2.0)
    assert cfg.opener.selectors.post == '[data-testid="tweet"]'
    assert cfg.api.api_base == "https://api.vrchat.cloud/api/1"
    assert cfg.api.search_count == 10
    assert cfg.browser.headless is False


def test_settings_file_and_env_overrides(tmp_path, monkeypatch):
    (tmp_path / "settings.json").write_text(json.dumps({
        "opener": {"debounce_ms": 500, "selectors": {"action_bar": "nav"}},
        "api": {"timeout": 3},
    }), encoding="utf-8")
    monkeypatch.setenv("OPENER_DEBOUNCE_MS", "120")
    monkeypatch.setenv("SELENIUM_HEADLESS", "yes")
    monkeypatch.setenv("VRCHAT_USERNAME", "suzu")

    cfg = ConfigManager(config_dir=tmp_path).load_settings()
    assert cfg.opener.debounce_ms == 120
    assert cfg.opener.selectors.action_bar == "nav"
    assert cfg.api.timeout == 3.0
    assert cfg.api.username == "suzu"
    assert cfg.browser.headless is True


def test_credential_env_vars_win_over_settings_file(tmp_path, monkeypatch):
    (tmp_path / "settings.json").write_text(json.dumps({
        "api": {"username": "from-file", "password": "file-pw"},
    }), encoding="utf-8")
    cfg = ConfigManager(config_dir=tmp_path).load_settings()
    assert (cfg.api.username, cfg.api.password) == ("from-file", "file-pw")

    monkeypatch.setenv("VRCHAT_USERNAME", "from-env")
    monkeypatch.setenv("VRCHAT_PASSWORD", "env-pw")
    cfg = ConfigManager(config_dir=tmp_path).load_settings()
    assert (cfg.api.username, cfg.api.password) == ("from-env", "env-pw")


def test_broken_settings_file_raises_config_error(tmp_path):
    (tmp_path / "settings.json").write_text("{oops", encoding="utf-8")
    with pytest.raises(ConfigError):
        ConfigManager(config_dir=tmp_path).load_settings()


def test_invalid_values_raise_config_error(tmp_path, monkeypatch):
    monkeypatch.setenv("OPENER_RESET_DELAY_MS", "-1")
    with pytest.raises(ConfigError):
        ConfigManager(config_dir=tmp_path).load_settings()


def test_trigger_hashtag_is_lowercased():
    assert OpenerSettings(trigger_hashtag=" #VRChat_World紹介 ").trigger_hashtag == "#vrchat_world紹介"
    with pytest.raises(ValueError):
        OpenerSettings(trigger_hashtag="  ")


def test_feed_settings_storage_keys():
    settings = FeedSettings(**{"extensionEnabled": False})
    assert settings.to_storage() == {"extensionEnabled": False, "showOpenBtn": True, "showSearchBtn": True}
    assert FeedSettings(enabled=False) == settings
