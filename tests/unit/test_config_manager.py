"""Tests for configuration loading."""

from pathlib import Path

import pytest

from zhaomu.core.config_manager import (
    DEFAULT_PORT,
    DEFAULT_TIMEZONE,
    ConfigManager,
    get_config_value,
    is_supabase_configured,
    parse_env_file,
    redact_config,
)

pytestmark = pytest.mark.unit


class TestParseEnvFile:
    """Tests for parse_env_file()."""

    def test_parse_env_file_when_missing_then_empty(self, tmp_path: Path) -> None:
        assert parse_env_file(tmp_path / "absent.env") == {}

    def test_parse_env_file_when_comments_and_quotes_then_cleaned(self, tmp_path: Path) -> None:
        env = tmp_path / ".env"
        env.write_text('# comment\n\nQWEATHER_KEY="abc"\nMUSIC_REGION = \'us\'\nnoequals\n', encoding="utf-8")

        assert parse_env_file(env) == {"QWEATHER_KEY": "abc", "MUSIC_REGION": "us"}


class TestConfigManager:
    """Tests for ConfigManager."""

    def test_build_config_when_env_empty_then_defaults(self, monkeypatch) -> None:
        for name in ("ZHAOMU_TIMEZONE", "QWEATHER_KEY", "TMDB_API_KEY"):
            monkeypatch.delenv(name, raising=False)

        cfg = ConfigManager().build_config_from_env()

        assert cfg["server_port"] == DEFAULT_PORT
        assert cfg["timezone"] == DEFAULT_TIMEZONE
        assert cfg["debug_logging"] is False
        assert "supabase_url" not in cfg

    def test_build_config_when_env_set_then_mapped(self, monkeypatch) -> None:
        monkeypatch.setenv("ZHAOMU_WEB_PORT", "9000")
        monkeypatch.setenv("ZHAOMU_DEBUG", "yes")
        monkeypatch.setenv("ZHAOMU_PUBLIC_URL", "https://example.app/")
        monkeypatch.setenv("NEXT_PUBLIC_SUPABASE_URL", "https://proj.supabase.co/")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")

        cfg = ConfigManager().build_config_from_env()

        assert cfg["server_port"] == 9000
        assert cfg["debug_logging"] is True
        assert cfg["public_url"] == "https://example.app"
        assert cfg["supabase_url"] == "https://proj.supabase.co"
        assert is_supabase_configured(cfg)

    def test_build_config_when_port_invalid_then_default_kept(self, monkeypatch) -> None:
        monkeypatch.setenv("ZHAOMU_WEB_PORT", "eighty")

        assert ConfigManager().build_config_from_env()["server_port"] == DEFAULT_PORT

    def test_load_env_file_when_var_already_set_then_not_overridden(self, tmp_path: Path, monkeypatch) -> None:
        env = tmp_path / ".env"
        env.write_text("ZHAOMU_WEB_PORT=7000\nZHAOMU_TIMEZONE=UTC\n", encoding="utf-8")
        monkeypatch.setenv("ZHAOMU_WEB_PORT", "9000")
        # Registered then removed so teardown restores the original state.
        monkeypatch.setenv("ZHAOMU_TIMEZONE", "placeholder")
        monkeypatch.delenv("ZHAOMU_TIMEZONE")

        loaded = ConfigManager(env).load_env_file()

        assert loaded == ["ZHAOMU_TIMEZONE"]
        assert ConfigManager(env).build_config_from_env()["server_port"] == 9000


class TestConfigHelpers:
    """Tests for config helper functions."""

    def test_get_config_value_when_none_then_default(self) -> None:
        assert get_config_value({"public_url": None}, "public_url", "x") == "x"

    def test_get_config_value_when_object_then_attribute(self) -> None:
        class Cfg:
            timezone = "UTC"

        assert get_config_value(Cfg(), "timezone") == "UTC"

    def test_is_supabase_configured_when_key_missing_then_false(self) -> None:
        assert not is_supabase_configured({"supabase_url": "https://proj.supabase.co"})

    def test_redact_config_when_secrets_then_masked(self) -> None:
        redacted = redact_config({"qweather_key": "secret", "tmdb_api_key": "", "server_port": 1})

        assert redacted == {"qweather_key": "<redacted>", "tmdb_api_key": "", "server_port": 1}
