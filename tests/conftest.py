from collections.abc import AsyncIterator, Callable, Generator
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
import pytest

from zhaomu.core.config_manager import DEFAULT_QWEATHER_HOST
from zhaomu.core.http_client import close_all_clients
from zhaomu.domain.models import DailySummary, NoteItem, TodoItem, TodoStats

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def scenario_summary() -> DailySummary:
    """Two todos (one done), one note, fixed date label and share URL."""
    return DailySummary(
        date_label="2024年05月01日 星期三",
        todos=(TodoItem(title="买牛奶", done=True), TodoItem(title="写周报", done=False)),
        notes=(NoteItem(text="今天天气不错"),),
        todo_stats=TodoStats(completed=1, total=2),
        note_count=1,
        share_target_url="https://example.app/share/abc",
    )


@pytest.fixture
def fixed_now() -> datetime:
    """2024-05-01 10:00 in Asia/Shanghai."""
    return datetime(2024, 5, 1, 2, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def base_config() -> dict[str, Any]:
    """Fully populated config dict as produced by ConfigManager."""
    return {
        "server_bind": "127.0.0.1",
        "server_port": 8080,
        "timezone": "Asia/Shanghai",
        "public_url": "https://example.app",
        "supabase_url": "https://proj.supabase.co",
        "supabase_anon_key": "anon-key",
        "qweather_key": "qw-key",
        "qweather_host": DEFAULT_QWEATHER_HOST,
        "qweather_default_location": "101010100",
        "tmdb_api_key": "tmdb-key",
        "music_region": "cn",
        "upstream_timeout": 12.0,
        "debug_logging": False,
    }


@pytest.fixture
def mock_client_factory() -> Callable[[Handler], Any]:
    """Build a client factory whose clients answer through ``handler``.

    The returned factory records every proxy it was asked for in
    ``factory.proxies``.
    """

    def build(handler: Handler) -> Any:
        proxies: list[Optional[str]] = []

        async def factory(proxy: Optional[str]) -> httpx.AsyncClient:
            proxies.append(proxy)
            return httpx.AsyncClient(transport=httpx.MockTransport(handler))

        factory.proxies = proxies  # type: ignore[attr-defined]
        return factory

    return build


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Keep developer environment variables from leaking into tests."""
    for name in (
        "ZHAOMU_DEBUG",
        "ZHAOMU_LOG_LEVEL",
        "ZHAOMU_FONT_PATH",
        "ZHAOMU_WEB_PORT",
        "ZHAOMU_PUBLIC_URL",
        "SUPABASE_URL",
        "SUPABASE_ANON_KEY",
        "NEXT_PUBLIC_SUPABASE_URL",
        "NEXT_PUBLIC_SUPABASE_ANON_KEY",
        "HTTP_PROXY",
        "HTTPS_PROXY",
    ):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
async def shared_clients_cleanup() -> AsyncIterator[None]:
    """Close shared httpx clients created by the test."""
    yield
    await close_all_clients()
