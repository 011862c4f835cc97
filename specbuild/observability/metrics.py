"""Build pipeline metrics collection."""

import threading
from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class BuildMetrics:
    """Counters for the build pipeline.

    Collects builds_total, build_failures_total, render_warnings_total,
    output_bytes_total, rebuilds_coalesced_total and notifications_total.
    Updated from the rebuild worker and the watcher threads, hence the lock.
    """

    _builds_total: int = 0
    _build_failures_total: int = 0
    _render_warnings_total: int = 0
    _output_bytes_total: int = 0
    _last_build_ms: float = 0.0
    _rebuilds_coalesced_total: int = 0
    _notifications_total: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    _instance: ClassVar["BuildMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "BuildMetrics":
        """Get or create the singleton instance.

        Returns:
            The singleton BuildMetrics instance.
        """
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton instance for testing."""
        cls._instance = None

    def record_build(self, duration_ms: float, bytes_written: int) -> None:
        """Record a successful build.

        Args:
            duration_ms: Build duration in milliseconds.
            bytes_written: Size of the rendered document.
        """
        with self._lock:
            self._builds_total += 1
            self._last_build_ms = duration_ms
            self._output_bytes_total += bytes_written

    def record_failure(self) -> None:
        """Record a failed build."""
        with self._lock:
            self._builds_total += 1
            self._build_failures_total += 1

    def record_warning(self) -> None:
        """Record a render warning."""
        with self._lock:
            self._render_warnings_total += 1

    def record_coalesced(self) -> None:
        """Record a rebuild request folded into an already pending one."""
        with self._lock:
            self._rebuilds_coalesced_total += 1

    def record_notification(self) -> None:
        """Record a reload notification pushed to clients."""
        with self._lock:
            self._notifications_total += 1

    @property
    def builds_total(self) -> int:
        """Get total build attempts."""
        return self._builds_total

    @property
    def build_failures_total(self) -> int:
        """Get total failed builds."""
        return self._build_failures_total

    @property
    def render_warnings_total(self) -> int:
        """Get total render warnings."""
        return self._render_warnings_total

    @property
    def rebuilds_coalesced_total(self) -> int:
        """Get total coalesced rebuild requests."""
        return self._rebuilds_coalesced_total

    @property
    def notifications_total(self) -> int:
        """Get total reload notifications."""
        return self._notifications_total

    def get_summary(self) -> dict[str, object]:
        """Get metrics summary.

        Returns:
            Dictionary of metric name to value.
        """
        with self._lock:
            return {
                "builds_total": self._builds_total,
                "build_failures_total": self._build_failures_total,
                "render_warnings_total": self._render_warnings_total,
                "output_bytes_total": self._output_bytes_total,
                "last_build_ms": round(self._last_build_ms, 2),
                "rebuilds_coalesced_total": self._rebuilds_coalesced_total,
                "notifications_total": self._notifications_total,
            }
