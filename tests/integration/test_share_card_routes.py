"""Integration tests for the share card routes."""

import base64
import io

import pytest
from PIL import Image

pytestmark = pytest.mark.integration

AUTH = {"Authorization": "Bearer good-token"}

SCENARIO = {
    "date_label": "2024年05月01日 星期三",
    "todos": [{"title": "买牛奶", "done": True}, {"title": "写周报", "done": False}],
    "notes": [{"text": "今天天气不错"}],
    "share_target_url": "https://example.app/share/abc",
}


class TestPostShareCard:
    """Tests for POST /api/share-card."""

    async def test_post_when_scenario_then_png_body(self, client, health_tracker) -> None:
        response = await client.post("/api/share-card", json=SCENARIO)

        assert response.status == 200
        assert response.headers["Content-Type"] == "image/png"
        assert response.headers["Cache-Control"] == "no-store"
        assert response.headers["X-Code-Embedded"] == "1"
        assert response.headers["X-Warning-Count"] == "0"
        assert "Content-Disposition" not in response.headers
        image = Image.open(io.BytesIO(await response.read()))
        assert image.size == (1080, 1440)
        assert health_tracker.get_last_render_ok() is True

    async def test_post_when_same_body_twice_then_identical_bytes(self, client) -> None:
        first = await (await client.post("/api/share-card", json=SCENARIO)).read()
        second = await (await client.post("/api/share-card", json=SCENARIO)).read()

        assert first == second

    async def test_post_when_datauri_format_then_json_with_uri(self, client) -> None:
        response = await client.post("/api/share-card?format=datauri", json=SCENARIO)

        assert response.status == 200
        data = await response.json()
        assert data["width"] == 1080
        assert data["height"] == 1440
        assert data["code_embedded"] is True
        assert data["warnings"] == []
        assert data["filename"] == "今朝进度_2024-05-01.png"
        prefix = "data:image/png;base64,"
        assert data["data_uri"].startswith(prefix)
        assert base64.b64decode(data["data_uri"][len(prefix):]).startswith(b"\x89PNG")

    async def test_post_when_download_then_attachment_header(self, client) -> None:
        response = await client.post("/api/share-card?download=1", json=SCENARIO)

        disposition = response.headers["Content-Disposition"]
        assert disposition.startswith("attachment;")
        assert "filename*=UTF-8''%E4%BB%8A%E6%9C%9D%E8%BF%9B%E5%BA%A6_2024-05-01.png" in disposition

    async def test_post_when_note_spans_lines_then_png_body(self, client) -> None:
        body = dict(SCENARIO, notes=[{"text": "第一行\n第二行"}], todos=[{"title": "a\r\nb", "done": False}])

        response = await client.post("/api/share-card", json=body)

        assert response.status == 200
        assert Image.open(io.BytesIO(await response.read())).size == (1080, 1440)

    async def test_post_when_unknown_format_then_400(self, client) -> None:
        response = await client.post("/api/share-card?format=gif", json=SCENARIO)

        assert response.status == 400
        assert "format" in (await response.json())["error"]

    async def test_post_when_body_not_json_then_400(self, client) -> None:
        response = await client.post(
            "/api/share-card", data=b"not json", headers={"Content-Type": "application/json"}
        )

        assert response.status == 400
        assert (await response.json()) == {"error": "invalid json"}

    async def test_post_when_counts_inconsistent_then_400(self, client) -> None:
        body = dict(SCENARIO, todo_stats={"completed": 5, "total": 2})

        response = await client.post("/api/share-card", json=body)

        assert response.status == 400

    async def test_post_when_request_id_sent_then_echoed(self, client) -> None:
        response = await client.post("/api/share-card", json=SCENARIO, headers={"X-Request-ID": "req-42"})

        assert response.headers["X-Request-ID"] == "req-42"


class TestTodayShareCard:
    """Tests for GET /api/share-card/today."""

    async def test_today_when_signed_out_then_401(self, client) -> None:
        response = await client.get("/api/share-card/today")

        assert response.status == 401
        assert (await response.json()) == {"error": "请先登录"}

    async def test_today_when_token_rejected_then_401(self, client) -> None:
        response = await client.get("/api/share-card/today", headers={"Authorization": "Bearer stale"})

        assert response.status == 401

    async def test_today_when_signed_in_then_card_from_user_rows(self, client, backend) -> None:
        response = await client.get("/api/share-card/today?format=datauri&enrich=0", headers=AUTH)

        assert response.status == 200
        data = await response.json()
        assert data["code_embedded"] is True
        assert data["warnings"] == []
        hosts = {r.url.host for r in backend.requests}
        assert "qw.test" not in hosts
        assert "api.timelessq.com" not in hosts

    async def test_today_when_stored_note_spans_lines_then_card_rendered(self, client, backend) -> None:
        backend.tables["daily_notes"][0]["content"] = "第一行\n第二行"

        response = await client.get("/api/share-card/today?enrich=0", headers=AUTH)

        assert response.status == 200
        assert response.headers["Content-Type"] == "image/png"

    async def test_today_when_enriched_then_upstreams_queried(self, client, backend) -> None:
        response = await client.get("/api/share-card/today", headers=AUTH)

        assert response.status == 200
        assert response.headers["X-Warning-Count"] == "0"
        hosts = {r.url.host for r in backend.requests}
        assert {"qw.test", "api.timelessq.com"} <= hosts

    async def test_today_when_weather_fails_then_card_with_warning(self, client, backend) -> None:
        backend.weather = (500, {})

        response = await client.get("/api/share-card/today?format=datauri", headers=AUTH)

        assert response.status == 200
        assert (await response.json())["warnings"] == ["天气信息获取失败，已省略天气"]

    async def test_today_when_store_query_then_scoped_to_today(self, client, backend) -> None:
        await client.get("/api/share-card/today?enrich=0", headers=AUTH)

        todo_queries = [r for r in backend.requests if r.url.path == "/rest/v1/todos"]
        assert todo_queries
        assert todo_queries[0].url.params.get_list("created_at") == [
            "gte.2024-04-30T16:00:00Z",
            "lte.2024-05-01T15:59:59.999999Z",
        ]
