"""Configuration management for the zhaomu server."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "Asia/Shanghai"
DEFAULT_PORT = 8080
DEFAULT_PUBLIC_URL = "http://localhost:8080"
DEFAULT_QWEATHER_HOST = "https://mb3yfr58p2.re.qweatherapi.com"
DEFAULT_QWEATHER_LOCATION = "101010100"  # Beijing
DEFAULT_MUSIC_REGION = "cn"
DEFAULT_UPSTREAM_TIMEOUT = 12.0

# Input validation limits for user-supplied text
MAX_TODO_TITLE_LENGTH = 200
MAX_NOTE_CONTENT_LENGTH = 5000
MAX_SUMMARY_ITEMS = 500

_TRUTHY = ("1", "true", "yes", "on")


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse a .env file and return key-value pairs.

    Args:
        path: Path to .env file

    Returns:
        Dictionary of key-value pairs from the .env file.
        Empty dict if file doesn't exist or cannot be read.

    Note:
        - Skips empty lines and comments (lines starting with #)
        - Strips quotes (both single and double) from values
        - Handles KEY=VALUE format with optional whitespace
    """
    if not path.exists():
        return {}

    result: dict[str, str] = {}

    try:
        content = path.read_text(encoding="utf-8")
    except OSError:
        logger.debug("Failed to read .env file (continuing): %s", str(path), exc_info=True)
        return {}

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue

        key, val = line.split("=", 1)
        key = key.strip()
        val = val.strip().strip('"').strip("'")
        if key:
            result[key] = val

    return result


def _first_env(*names: str) -> str | None:
    for name in names:
        value = os.environ.get(name)
        if value:
            return value
    return None


class ConfigManager:
    """Manages application configuration from environment variables and .env files."""

    def __init__(self, env_file_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            env_file_path: Optional path to .env file (defaults to .env in current directory)
        """
        self.env_file_path = env_file_path or Path.cwd() / ".env"

    def load_env_file(self) -> list[str]:
        """Load .env file and set environment variables.

        Only sets variables that are not already in the environment.

        Returns:
            List of environment variable keys that were loaded from .env file
        """
        if not self.env_file_path.exists():
            logger.debug("No .env file found at %s", self.env_file_path)
            return []

        parsed = parse_env_file(self.env_file_path)

        set_keys = []
        for key, val in parsed.items():
            if key not in os.environ:
                os.environ[key] = val
                set_keys.append(key)

        if set_keys:
            # Keys only, values may be secrets.
            logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))

        return set_keys

    def build_config_from_env(self) -> dict[str, Any]:
        """Build configuration dictionary from environment variables.

        Recognizes:
        - ZHAOMU_WEB_HOST -> 'server_bind'
        - ZHAOMU_WEB_PORT -> 'server_port' (int)
        - ZHAOMU_TIMEZONE -> 'timezone'
        - ZHAOMU_PUBLIC_URL -> 'public_url'
        - ZHAOMU_FONT_PATH -> 'font_path'
        - ZHAOMU_DEBUG -> 'debug_logging' (bool)
        - ZHAOMU_UPSTREAM_TIMEOUT -> 'upstream_timeout' (float seconds)
        - SUPABASE_URL / NEXT_PUBLIC_SUPABASE_URL -> 'supabase_url'
        - SUPABASE_ANON_KEY / NEXT_PUBLIC_SUPABASE_ANON_KEY -> 'supabase_anon_key'
        - QWEATHER_KEY, QWEATHER_HOST, QWEATHER_LOCATION
        - TMDB_API_KEY, TMDB_HTTP_PROXY
        - MUSIC_REGION, MUSIC_HTTP_PROXY
        - HTTP_PROXY / HTTPS_PROXY -> 'http_proxy'

        Returns:
            Configuration dictionary compatible with start_server
        """
        cfg: dict[str, Any] = {
            "server_bind": "0.0.0.0",  # nosec B104 - default bind; override via env
            "server_port": DEFAULT_PORT,
            "timezone": DEFAULT_TIMEZONE,
            "public_url": DEFAULT_PUBLIC_URL,
            "qweather_host": DEFAULT_QWEATHER_HOST,
            "qweather_default_location": DEFAULT_QWEATHER_LOCATION,
            "music_region": DEFAULT_MUSIC_REGION,
            "upstream_timeout": DEFAULT_UPSTREAM_TIMEOUT,
            "debug_logging": False,
        }

        host = os.environ.get("ZHAOMU_WEB_HOST")
        if host:
            cfg["server_bind"] = host

        port = os.environ.get("ZHAOMU_WEB_PORT")
        if port:
            try:
                cfg["server_port"] = int(port)
            except ValueError:
                logger.warning("Invalid ZHAOMU_WEB_PORT=%r; ignoring", port)

        tz_name = os.environ.get("ZHAOMU_TIMEZONE")
        if tz_name:
            cfg["timezone"] = tz_name

        public_url = os.environ.get("ZHAOMU_PUBLIC_URL")
        if public_url:
            cfg["public_url"] = public_url.rstrip("/")

        font_path = os.environ.get("ZHAOMU_FONT_PATH")
        if font_path:
            cfg["font_path"] = font_path

        if os.environ.get("ZHAOMU_DEBUG", "").strip().lower() in _TRUTHY:
            cfg["debug_logging"] = True

        timeout = os.environ.get("ZHAOMU_UPSTREAM_TIMEOUT")
        if timeout:
            try:
                cfg["upstream_timeout"] = float(timeout)
            except ValueError:
                logger.warning("Invalid ZHAOMU_UPSTREAM_TIMEOUT=%r; ignoring", timeout)

        supabase_url = _first_env("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL")
        if supabase_url:
            cfg["supabase_url"] = supabase_url.rstrip("/")
        supabase_key = _first_env("SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY")
        if supabase_key:
            cfg["supabase_anon_key"] = supabase_key

        qweather_key = os.environ.get("QWEATHER_KEY")
        if qweather_key:
            cfg["qweather_key"] = qweather_key
        qweather_host = os.environ.get("QWEATHER_HOST")
        if qweather_host:
            cfg["qweather_host"] = qweather_host.rstrip("/")
        qweather_location = os.environ.get("QWEATHER_LOCATION")
        if qweather_location:
            cfg["qweather_default_location"] = qweather_location

        tmdb_key = os.environ.get("TMDB_API_KEY")
        if tmdb_key:
            cfg["tmdb_api_key"] = tmdb_key
        tmdb_proxy = os.environ.get("TMDB_HTTP_PROXY")
        if tmdb_proxy:
            cfg["tmdb_proxy"] = tmdb_proxy

        music_region = os.environ.get("MUSIC_REGION")
        if music_region:
            cfg["music_region"] = music_region
        music_proxy = os.environ.get("MUSIC_HTTP_PROXY")
        if music_proxy:
            cfg["music_proxy"] = music_proxy

        http_proxy = _first_env("HTTP_PROXY", "HTTPS_PROXY")
        if http_proxy:
            cfg["http_proxy"] = http_proxy

        return cfg

    def load_full_config(self) -> dict[str, Any]:
        """Load .env file and build configuration from environment.

        Returns:
            Configuration dictionary
        """
        self.load_env_file()
        return self.build_config_from_env()


def get_config_value(config: Any, key: str, default: Any = None) -> Any:
    """Get configuration value supporting both dict and attribute-style objects.

    Args:
        config: Configuration object (dict or object with attributes)
        key: Configuration key to retrieve
        default: Default value if key not found

    Returns:
        Configuration value or default
    """
    if isinstance(config, dict):
        value = config.get(key, default)
    else:
        value = getattr(config, key, default)
    return default if value is None else value


def is_supabase_configured(config: Any) -> bool:
    """Return True when both the Supabase URL and anon key are present."""
    return bool(get_config_value(config, "supabase_url") and get_config_value(config, "supabase_anon_key"))


def redact_config(config: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``config`` with secret-looking values replaced."""
    secret_markers = ("key", "token", "secret", "password")
    return {
        k: ("<redacted>" if any(m in k.lower() for m in secret_markers) and v else v)
        for k, v in config.items()
    }
