import pytest
from pydantic import ValidationError

from minispace.config import MinispaceConfig


def test_defaults():
    config = MinispaceConfig()

    assert config.cache_expiration_ms == 300_000
    assert config.preview_ttl == 1800
    assert config.session_ttl_ms == 1_209_600_000
    assert config.session_cookie_name == "session"
    assert config.cookie_samesite == "strict"
    assert config.cache_coalesce_fetches is False


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("MINISPACE_CACHE_EXPIRATION_MS", "1000")
    monkeypatch.setenv("MINISPACE_CACHE_MAX_ENTRIES", "50")
    monkeypatch.setenv("MINISPACE_CACHE_COALESCE_FETCHES", "true")
    monkeypatch.setenv("MINISPACE_DEV_MODE", "1")
    monkeypatch.setenv("UNRELATED", "x")

    config = MinispaceConfig()

    assert config.cache_expiration_ms == 1000
    assert config.cache_max_entries == 50
    assert config.cache_coalesce_fetches is True
    assert config.dev_mode is True


def test_samesite_none_from_environment(monkeypatch):
    monkeypatch.setenv("MINISPACE_COOKIE_SAMESITE", "none")

    assert MinispaceConfig().cookie_samesite == "none"


def test_keyword_arguments_override_environment(monkeypatch):
    monkeypatch.setenv("MINISPACE_PREVIEW_TTL", "60")

    assert MinispaceConfig(preview_ttl=120).preview_ttl == 120


def test_environment_is_validated(monkeypatch):
    monkeypatch.setenv("MINISPACE_CACHE_EXPIRATION_MS", "0")

    with pytest.raises(ValidationError):
        MinispaceConfig()
