"""Remaining-time estimate derived from the run's planned sleeps."""

from __future__ import annotations

from dataclasses import dataclass

from power_bench.core.bench_config import BenchConfig


@dataclass(frozen=True, slots=True)
class ScheduleModel:
    """Planned duration of each top-level unit (one application under test).

    Per unit: sampler startup, application launch, then for every window the
    dwell time plus the window-close delay, then quit and sampler stop. The
    automation calls themselves are not counted, so real units run slightly
    longer than planned.
    """

    config: BenchConfig
    window_count: int

    @property
    def unit_ms(self) -> float:
        cfg = self.config
        return (
            cfg.startup_delay_ms
            + cfg.launch_delay_ms
            + self.window_count * (cfg.wait_time_seconds * 1000 + cfg.window_close_delay_ms)
            + cfg.quit_delay_ms
            + cfg.stop_delay_ms
        )

    def remaining_seconds(self, units_remaining: int) -> float:
        """Planned time left when ``units_remaining`` units (current included) are to go."""
        return max(0, units_remaining) * self.unit_ms / 1000


__all__ = ["ScheduleModel"]
