"""Tests for health tracking."""

import time
from unittest.mock import patch

import pytest

from zhaomu.core.health_tracker import HealthTracker, get_system_diagnostics

pytestmark = pytest.mark.unit


class TestHealthTracker:
    """Tests for HealthTracker."""

    def setup_method(self) -> None:
        self.tracker = HealthTracker()

    def test_get_health_status_when_fresh_then_ok_without_renders(self) -> None:
        status = self.tracker.get_health_status("2024-05-01T02:00:00Z")

        assert status.status == "ok"
        assert status.server_time_iso == "2024-05-01T02:00:00Z"
        assert status.renders_total == 0
        assert status.last_render_age_seconds is None
        assert status.upstreams == {}

    def test_record_render_when_partial_then_notes_kept(self) -> None:
        self.tracker.record_render(ok=False, notes="二维码生成失败，已省略二维码")

        assert self.tracker.get_last_render_ok() is False
        assert self.tracker.get_last_render_notes() == "二维码生成失败，已省略二维码"
        assert self.tracker.get_health_status("now").renders_total == 1

    def test_record_upstream_when_errors_reach_threshold_then_degraded(self) -> None:
        for _ in range(HealthTracker.DEGRADED_AFTER_ERRORS):
            self.tracker.record_upstream("qweather", ok=False, error="QWeather 返回错误")

        status = self.tracker.get_health_status("now")

        assert status.status == "degraded"
        assert status.upstreams["qweather"]["status"] == "degraded"
        assert status.upstreams["qweather"]["last_error"] == "QWeather 返回错误"

    def test_record_upstream_when_success_after_errors_then_recovered(self) -> None:
        for _ in range(5):
            self.tracker.record_upstream("calendar", ok=False)
        self.tracker.record_upstream("calendar", ok=True)

        assert self.tracker.determine_overall_status() == "ok"
        assert self.tracker.get_upstream_status()["calendar"]["consecutive_errors"] == 0

    def test_get_uptime_seconds_when_time_passes_then_counts(self) -> None:
        start = time.time()
        with patch("zhaomu.core.health_tracker.time.time", return_value=start + 90):
            assert self.tracker.get_uptime_seconds() >= 89


class TestSystemDiagnostics:
    """Tests for get_system_diagnostics()."""

    def test_get_system_diagnostics_when_no_loop_then_not_running(self) -> None:
        diag = get_system_diagnostics()

        assert diag.event_loop_running is False
        assert diag.python_version.count(".") == 2
