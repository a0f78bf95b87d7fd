"""
In-memory metrics collector for PII-safe observability.
Thread-safe singleton: only counters are stored, never keys or values.
"""
import threading
import time
from dataclasses import dataclass, field
from typing import Dict


@dataclass
class MetricsData:
    """Container for all aggregated metrics."""
    projections: int = 0
    kept_keys: int = 0
    dropped_keys: int = 0
    policy_uses: Dict[str, int] = field(default_factory=dict)
    errors: int = 0
    error_codes: Dict[str, int] = field(default_factory=dict)
    started_at: float = field(default_factory=time.time)


class MetricsCollector:
    """
    Thread-safe singleton for collecting PII-safe metrics.

    Usage:
        metrics = get_metrics_collector()
        metrics.record_projection(policy="profile.self", kept=2, dropped=1)
    """
    _instance: "MetricsCollector | None" = None
    _lock = threading.Lock()

    def __new__(cls) -> "MetricsCollector":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    instance = super().__new__(cls)
                    instance._data = MetricsData()
                    instance._data_lock = threading.Lock()
                    cls._instance = instance
        return cls._instance

    def record_projection(self, policy: str, kept: int, dropped: int) -> None:
        """
        Record one payload projection.

        Args:
            policy: Name of the allowlist policy applied
            kept: Number of keys that passed the allowlist
            dropped: Number of client-supplied keys discarded
        """
        with self._data_lock:
            self._data.projections += 1
            self._data.kept_keys += kept
            self._data.dropped_keys += dropped
            self._data.policy_uses[policy] = self._data.policy_uses.get(policy, 0) + 1

    def record_error(self, error_code: str) -> None:
        """Record a failed request (PII-safe codes only)."""
        with self._data_lock:
            self._data.errors += 1
            self._data.error_codes[error_code] = (
                self._data.error_codes.get(error_code, 0) + 1
            )

    def get_snapshot(self) -> dict:
        """
        Get a snapshot of current metrics.
        Returns a plain dict suitable for JSON serialization.
        """
        with self._data_lock:
            return {
                "uptime_seconds": int(time.time() - self._data.started_at),
                "projections": self._data.projections,
                "kept_keys": self._data.kept_keys,
                "dropped_keys": self._data.dropped_keys,
                "policy_uses": dict(self._data.policy_uses),
                "errors": self._data.errors,
                "error_codes": dict(self._data.error_codes),
            }

    def reset(self) -> None:
        """Reset all metrics (useful for testing)."""
        with self._data_lock:
            self._data = MetricsData()


def get_metrics_collector() -> MetricsCollector:
    """Get the singleton metrics collector instance."""
    return MetricsCollector()
