"""Tests for Settings — env loading and base URL resolution."""

from iaptic.config import DEFAULT_IAPTIC_URL, Settings, get_settings


def test_default_base_url():
    assert Settings().base_url == DEFAULT_IAPTIC_URL


def test_custom_url_trailing_slash():
    s = Settings(custom_iaptic_url="https://iaptic.example.com/")
    assert s.base_url == "https://iaptic.example.com"


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("IAPTIC_APP_NAME", "env-app")
    monkeypatch.setenv("IAPTIC_API_KEY", "env-key")
    get_settings.cache_clear()
    try:
        s = get_settings()
        assert s.app_name == "env-app"
        assert s.api_key == "env-key"
        assert s.type == "stripe"
        assert s.storage_prefix == "iaptic_"
    finally:
        get_settings.cache_clear()
