"""Attribute a flat stream of readings to the windows they were taken in.

The tracker records one reading per sampling interval with no timestamps,
so per-window figures are reconstructed from the fixed schedule: skip the
readings taken during setup, then cut consecutive dwell-sized slices. This
assumes wall-clock dwell time and sample arrival never drift apart, which
holds on average but not exactly per run. Treat the output as approximate.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


@dataclass(frozen=True, slots=True)
class LogicalWindow:
    index: int
    label: str
    expected_samples: int

    @property
    def display_label(self) -> str:
        return self.label or f"site-{self.index}"


@dataclass(frozen=True, slots=True)
class SegmentationPlan:
    """Sample counts derived from the run's timing configuration."""

    pre_roll_samples: int
    per_window_samples: int

    @classmethod
    def from_timings(
        cls,
        sample_interval_ms: int,
        dwell_seconds: float,
        setup_delays_ms: Iterable[float] = (),
    ) -> "SegmentationPlan":
        interval = max(1, sample_interval_ms)
        pre_roll = max(0, round_half_up(sum(setup_delays_ms) / interval))
        per_window = max(1, round_half_up(dwell_seconds * 1000 / interval))
        return cls(pre_roll_samples=pre_roll, per_window_samples=per_window)

    def windows(self, labels: Sequence[str]) -> list[LogicalWindow]:
        return build_windows(labels, self.per_window_samples)


@dataclass(frozen=True, slots=True)
class WindowSamples:
    index: int
    label: str
    samples: tuple[int, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {'index': self.index, 'url': self.label, 'samples': list(self.samples)}


@dataclass(frozen=True, slots=True)
class WindowAverage:
    index: int
    label: str
    avg: float
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {'index': self.index, 'url': self.label, 'avg': self.avg, 'count': self.count}


def build_windows(labels: Sequence[str], per_window_samples: int) -> list[LogicalWindow]:
    count = max(1, per_window_samples)
    return [LogicalWindow(index=i, label=label, expected_samples=count) for i, label in enumerate(labels)]


def samples_per_window(
    samples: Sequence[int],
    windows: Sequence[LogicalWindow],
    *,
    pre_roll: int = 0,
) -> list[WindowSamples]:
    """Slice ``samples`` into consecutive per-window chunks.

    Windows past the end of the data are omitted rather than reported empty.
    """
    remaining = list(samples[max(0, pre_roll):])
    results: list[WindowSamples] = []
    start = 0
    for window in windows:
        if start >= len(remaining):
            break
        end = start + max(1, window.expected_samples)
        chunk = remaining[start:end]
        if not chunk:
            break
        results.append(WindowSamples(index=window.index, label=window.display_label, samples=tuple(chunk)))
        start = end
    return results


def averages_per_window(
    samples: Sequence[int],
    windows: Sequence[LogicalWindow],
    *,
    pre_roll: int = 0,
) -> list[WindowAverage]:
    """Mean reading per window, using the same slicing as :func:`samples_per_window`."""
    return [
        WindowAverage(
            index=chunk.index,
            label=chunk.label,
            avg=sum(chunk.samples) / len(chunk.samples),
            count=len(chunk.samples),
        )
        for chunk in samples_per_window(samples, windows, pre_roll=pre_roll)
    ]


__all__ = [
    "LogicalWindow",
    "SegmentationPlan",
    "WindowAverage",
    "WindowSamples",
    "averages_per_window",
    "build_windows",
    "round_half_up",
    "samples_per_window",
]
