"""Health tracking for the zhaomu server."""

from __future__ import annotations

import os
import time
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class HealthStatus:
    """Health status information for the server."""

    status: str  # "ok" or "degraded"
    server_time_iso: str
    uptime_seconds: int
    pid: int
    renders_total: int
    last_render_age_seconds: Optional[int]
    upstreams: dict[str, dict[str, Any]] = field(default_factory=dict)


@dataclass
class SystemDiagnostics:
    """System diagnostics information."""

    platform: str
    python_version: str
    event_loop_running: bool


@dataclass
class _UpstreamRecord:
    last_ok: Optional[float] = None
    last_error: Optional[float] = None
    last_error_message: Optional[str] = None
    consecutive_errors: int = 0


class HealthTracker:
    """Tracks share-card renders and upstream proxy outcomes."""

    # An upstream is reported degraded after this many consecutive failures.
    DEGRADED_AFTER_ERRORS = 3

    def __init__(self) -> None:
        self._start_time: float = time.time()
        self._renders_total: int = 0
        self._last_render: Optional[float] = None
        self._last_render_ok: bool = False
        self._last_render_notes: Optional[str] = None
        self._upstreams: dict[str, _UpstreamRecord] = {}

    def record_render(self, ok: bool, notes: Optional[str] = None) -> None:
        """Record a share-card render.

        Args:
            ok: True when the card rendered with every region present
            notes: Optional warning text for partial renders
        """
        self._renders_total += 1
        self._last_render = time.time()
        self._last_render_ok = ok
        self._last_render_notes = notes

    def record_upstream(self, name: str, ok: bool, error: Optional[str] = None) -> None:
        """Record the outcome of a call to upstream ``name``."""
        record = self._upstreams.setdefault(name, _UpstreamRecord())
        now = time.time()
        if ok:
            record.last_ok = now
            record.consecutive_errors = 0
        else:
            record.last_error = now
            record.last_error_message = error
            record.consecutive_errors += 1

    def get_uptime_seconds(self) -> int:
        """Get server uptime in seconds."""
        return int(time.time() - self._start_time)

    def get_last_render_age_seconds(self) -> Optional[int]:
        if self._last_render is None:
            return None
        return int(time.time() - self._last_render)

    def get_last_render_ok(self) -> bool:
        return self._last_render_ok

    def get_last_render_notes(self) -> Optional[str]:
        return self._last_render_notes

    def get_upstream_status(self) -> dict[str, dict[str, Any]]:
        """Return per-upstream status with ages instead of raw timestamps."""
        now = time.time()
        status: dict[str, dict[str, Any]] = {}
        for name, record in sorted(self._upstreams.items()):
            status[name] = {
                "status": "degraded"
                if record.consecutive_errors >= self.DEGRADED_AFTER_ERRORS
                else "ok",
                "last_ok_age_s": None if record.last_ok is None else int(now - record.last_ok),
                "last_error_age_s": None
                if record.last_error is None
                else int(now - record.last_error),
                "last_error": record.last_error_message,
                "consecutive_errors": record.consecutive_errors,
            }
        return status

    def determine_overall_status(self) -> str:
        """Return "degraded" when any upstream keeps failing, otherwise "ok"."""
        for record in self._upstreams.values():
            if record.consecutive_errors >= self.DEGRADED_AFTER_ERRORS:
                return "degraded"
        return "ok"

    def get_health_status(self, current_time_iso: str) -> HealthStatus:
        """Get comprehensive health status.

        Args:
            current_time_iso: Current time in ISO format
        """
        return HealthStatus(
            status=self.determine_overall_status(),
            server_time_iso=current_time_iso,
            uptime_seconds=self.get_uptime_seconds(),
            pid=os.getpid(),
            renders_total=self._renders_total,
            last_render_age_seconds=self.get_last_render_age_seconds(),
            upstreams=self.get_upstream_status(),
        )


def get_system_diagnostics() -> SystemDiagnostics:
    """Get system diagnostics information."""
    import asyncio
    import platform
    import sys

    event_loop_running = False
    try:
        asyncio.get_running_loop()
        event_loop_running = True
    except RuntimeError:
        pass

    return SystemDiagnostics(
        platform=platform.platform(),
        python_version=sys.version.split()[0],
        event_loop_running=event_loop_running,
    )
