"""
Per-turn telemetry.
Recording is gated by the settings object handed in at construction.
"""
from dataclasses import dataclass
from typing import Any


@dataclass
class TurnStats:
    """Aggregated outcome of processed turns."""
    total_turns: int = 0
    failed_turns: int = 0
    total_response_time_ms: int = 0

    @property
    def average_response_time_ms(self) -> float:
        if not self.total_turns:
            return 0.0
        return round(self.total_response_time_ms / self.total_turns, 1)

    @property
    def error_rate(self) -> float:
        if not self.total_turns:
            return 0.0
        return round(self.failed_turns / self.total_turns, 3)

    def as_dict(self) -> dict:
        return {
            "total_turns": self.total_turns,
            "failed_turns": self.failed_turns,
            "average_response_time_ms": self.average_response_time_ms,
            "error_rate": self.error_rate,
        }


class TurnTelemetry:
    """Collects turn statistics when ``settings.TELEMETRY_ENABLED`` is true."""

    def __init__(self, settings: Any):
        self._settings = settings
        self._stats = TurnStats()

    @property
    def enabled(self) -> bool:
        return bool(getattr(self._settings, "TELEMETRY_ENABLED", False))

    @property
    def stats(self) -> TurnStats:
        return self._stats

    def record_turn(self, success: bool, response_time_ms: int) -> None:
        if not self.enabled:
            return
        self._stats.total_turns += 1
        self._stats.total_response_time_ms += response_time_ms
        if not success:
            self._stats.failed_turns += 1

    def snapshot(self) -> dict:
        return {"enabled": self.enabled, **self._stats.as_dict()}
