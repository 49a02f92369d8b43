"""Fixtures running the full application against an in-memory backend."""

import json
from datetime import datetime, timezone
from typing import Any

import httpx
import pytest
from aiohttp.test_utils import TestClient, TestServer

from zhaomu.api.server import _make_app
from zhaomu.core.health_tracker import HealthTracker

GOOD_TOKEN = "good-token"
AUTH = {"Authorization": f"Bearer {GOOD_TOKEN}"}

WEATHER_BODY = {
    "code": "200",
    "updateTime": "2024-05-01T10:20+08:00",
    "fxLink": "https://qweather.test/link",
    "now": {"temp": "25", "feelsLike": "26", "text": "晴", "windDir": "东南风", "windScale": "3"},
}
CALENDAR_BODY = {
    "errno": 0,
    "data": {
        "year": 2024,
        "month": 5,
        "day": 1,
        "cnWeek": "星期三",
        "lunar": {"cnYear": "二零二四", "cnMonth": "三月", "cnDay": "廿三", "cyclicalYear": "甲辰"},
        "almanac": {"yi": "出行", "ji": "动土"},
        "festivals": ["劳动节"],
    },
}


class FakeBackend:
    """Stands in for Supabase and the content upstreams behind httpx.MockTransport.

    Tables live in memory; only rows of the signed-in user are returned, the
    way row-level security behaves.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.tables: dict[str, list[dict[str, Any]]] = {
            "todos": [
                {
                    "id": "t1",
                    "user_id": "u1",
                    "title": "写周报",
                    "is_complete": False,
                    "created_at": "2024-05-01T01:00:00Z",
                },
                {
                    "id": "t2",
                    "user_id": "u1",
                    "title": "买牛奶",
                    "is_complete": True,
                    "created_at": "2024-05-01T01:30:00Z",
                },
                {
                    "id": "t3",
                    "user_id": "u2",
                    "title": "别人的待办",
                    "is_complete": False,
                    "created_at": "2024-05-01T01:10:00Z",
                },
            ],
            "daily_notes": [
                {"id": "n1", "user_id": "u1", "content": "今天天气不错", "created_at": "2024-05-01T01:20:00Z"},
            ],
        }
        self.weather = (200, WEATHER_BODY)
        self.calendar = (200, CALENDAR_BODY)
        self.next_id = 100

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host, path = request.url.host, request.url.path

        if host == "qw.test":
            status, body = self.weather
            return httpx.Response(status, json=body)
        if host == "api.timelessq.com":
            status, body = self.calendar
            return httpx.Response(status, json=body)
        if host == "v1.hitokoto.cn":
            return httpx.Response(200, json={"hitokoto": "山高水长", "from": "书", "from_who": None})
        if host == "api.themoviedb.org":
            return httpx.Response(200, json={"results": [{"id": 7, "title": "电影", "poster_path": "/p.jpg"}]})
        if host == "rss.applemarketingtools.com":
            return httpx.Response(200, json={"feed": {"results": []}})

        if path.startswith("/auth/v1/"):
            return self._auth(request, path)
        if path.startswith("/rest/v1/"):
            if self._user_id(request) is None:
                return httpx.Response(401, json={"message": "JWT invalid"})
            return self._rest(request, path[len("/rest/v1/"):])
        return httpx.Response(404, json={"message": "not found"})

    @staticmethod
    def _user_id(request: httpx.Request) -> Any:
        return "u1" if request.headers.get("Authorization") == f"Bearer {GOOD_TOKEN}" else None

    def _auth(self, request: httpx.Request, path: str) -> httpx.Response:
        if path == "/auth/v1/otp":
            return httpx.Response(200, json={})
        if self._user_id(request) is None:
            return httpx.Response(401, json={"msg": "invalid JWT"})
        if path == "/auth/v1/user":
            return httpx.Response(200, json={"id": "u1", "email": "a@b.cn"})
        if path == "/auth/v1/logout":
            return httpx.Response(204)
        return httpx.Response(404, json={"msg": "not found"})

    def _matches(self, row: dict[str, Any], params: httpx.QueryParams) -> bool:
        for column, condition in params.multi_items():
            if column in ("select", "order"):
                continue
            op, _, value = condition.partition(".")
            cell = str(row.get(column))
            if op == "eq" and cell != value:
                return False
            if op == "gte" and cell < value:
                return False
            if op == "lte" and cell > value:
                return False
        return True

    def _rest(self, request: httpx.Request, table: str) -> httpx.Response:
        rows = self.tables.setdefault(table, [])
        params = request.url.params
        # Row-level security: the caller only ever sees their own rows.
        visible = [r for r in rows if r.get("user_id") == "u1"]

        if request.method == "GET":
            found = [r for r in visible if self._matches(r, params)]
            found.sort(key=lambda r: r.get("created_at", ""), reverse=True)
            return httpx.Response(200, json=found)
        if request.method == "POST":
            row = dict(json.loads(request.content))
            self.next_id += 1
            row.update(id=f"x{self.next_id}", created_at="2024-05-01T02:00:00Z")
            row.setdefault("is_complete", False)
            rows.append(row)
            return httpx.Response(201, json=[row])
        if request.method == "PATCH":
            changed = [r for r in visible if self._matches(r, params)]
            for row in changed:
                row.update(json.loads(request.content))
            return httpx.Response(200, json=changed)
        if request.method == "DELETE":
            removed = [r for r in visible if self._matches(r, params)]
            self.tables[table] = [r for r in rows if r not in removed]
            return httpx.Response(200, json=removed)
        return httpx.Response(405)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def now() -> datetime:
    """2024-05-01 10:00 in Asia/Shanghai."""
    return datetime(2024, 5, 1, 2, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def health_tracker() -> HealthTracker:
    return HealthTracker()


@pytest.fixture
def app_config(base_config) -> dict[str, Any]:
    return dict(base_config, qweather_host="https://qw.test")


@pytest.fixture
async def client(app_config, backend, now, health_tracker, mock_client_factory):
    """Test client for the full application."""
    app = await _make_app(
        app_config,
        client_factory=mock_client_factory(backend),
        health_tracker=health_tracker,
        time_provider=lambda: now,
    )
    async with TestClient(TestServer(app)) as test_client:
        yield test_client
