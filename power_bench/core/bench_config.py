"""Typed bench configuration built from ``config.txt`` values."""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any, Mapping, Optional

from .config_manager import ConfigManager, get_config_manager
from .paths import CONFIG_PATH


@dataclass(frozen=True, slots=True)
class BenchConfig:
    """Timings and sampling settings for one experiment run.

    All ``*_ms`` values are milliseconds. The delays are the explicit sleeps
    the runner performs, so they double as the schedule the progress
    estimator recalibrates against.
    """

    sample_interval_ms: int = 500
    samplers: tuple[str, ...] = ("cpu_power",)
    disable_sudo: bool = False
    wait_time_seconds: float = 10.0
    startup_delay_ms: int = 2000
    launch_delay_ms: int = 5000
    window_close_delay_ms: int = 500
    quit_delay_ms: int = 2000
    stop_delay_ms: int = 500
    drift_warning_seconds: float = 3.0
    max_silent_skips: Optional[int] = 3
    tick_interval_seconds: float = 1.0
    stop_timeout_seconds: float = 5.0
    ready_timeout_seconds: float = 30.0

    @property
    def setup_delays_ms(self) -> tuple[int, ...]:
        """Delays between tracker start and the first window."""
        return (self.startup_delay_ms, self.launch_delay_ms)

    @classmethod
    def from_config(
        cls,
        config: Mapping[str, str],
        manager: Optional[ConfigManager] = None,
    ) -> "BenchConfig":
        cm = manager or get_config_manager()
        data = dict(config)
        defaults = cls()

        samplers_raw = cm.get_str(data, "samplers", "")
        samplers = tuple(s.strip() for s in samplers_raw.split(",") if s.strip()) or defaults.samplers

        max_skips = cm.get_int(data, "max_silent_skips", defaults.max_silent_skips or 0)
        return cls(
            sample_interval_ms=max(1, cm.get_int(data, "sample_interval_ms", defaults.sample_interval_ms)),
            samplers=samplers,
            disable_sudo=cm.get_bool(data, "disable_sudo", defaults.disable_sudo),
            wait_time_seconds=cm.get_float(data, "wait_time_seconds", defaults.wait_time_seconds),
            startup_delay_ms=cm.get_int(data, "startup_delay_ms", defaults.startup_delay_ms),
            launch_delay_ms=cm.get_int(data, "launch_delay_ms", defaults.launch_delay_ms),
            window_close_delay_ms=cm.get_int(data, "window_close_delay_ms", defaults.window_close_delay_ms),
            quit_delay_ms=cm.get_int(data, "quit_delay_ms", defaults.quit_delay_ms),
            stop_delay_ms=cm.get_int(data, "stop_delay_ms", defaults.stop_delay_ms),
            drift_warning_seconds=cm.get_float(data, "drift_warning_seconds", defaults.drift_warning_seconds),
            max_silent_skips=max_skips if max_skips > 0 else None,
            tick_interval_seconds=cm.get_float(data, "tick_interval_seconds", defaults.tick_interval_seconds),
            stop_timeout_seconds=cm.get_float(data, "stop_timeout_seconds", defaults.stop_timeout_seconds),
            ready_timeout_seconds=cm.get_float(data, "ready_timeout_seconds", defaults.ready_timeout_seconds),
        )

    def with_overrides(self, **overrides: Any) -> "BenchConfig":
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["samplers"] = list(self.samplers)
        return data


async def load_bench_config(
    config_path: Optional[Path] = None,
    manager: Optional[ConfigManager] = None,
) -> BenchConfig:
    cm = manager or get_config_manager()
    raw = await cm.read_config_async(Path(config_path) if config_path else CONFIG_PATH)
    return BenchConfig.from_config(raw, cm)


__all__ = ["BenchConfig", "load_bench_config"]
