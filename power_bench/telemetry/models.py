"""Data structures produced by the energy tracker."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

DEFAULT_INTERVAL_MS = 500
DEFAULT_SAMPLERS: tuple[str, ...] = ("cpu_power",)
DEFAULT_STOP_TIMEOUT = 5.0

MS_PER_HOUR = 3_600_000


@dataclass(frozen=True, slots=True)
class EnergyResult:
    """Summary of one finished tracking session."""

    average_power: float
    total_energy: float
    sample_interval: int
    sample_count: int
    samples: tuple[int, ...] = ()
    average_power_unit: str = "mW"
    total_energy_unit: str = "mWh"

    @property
    def has_data(self) -> bool:
        return self.sample_count > 0

    @property
    def max_power(self) -> int:
        return max(self.samples) if self.samples else 0

    @property
    def duration_ms(self) -> int:
        return self.sample_count * self.sample_interval

    def to_dict(self) -> dict[str, Any]:
        """Convert result to a JSON-friendly dictionary."""
        return {
            'averagePower': self.average_power,
            'averagePowerUnit': self.average_power_unit,
            'totalEnergy': self.total_energy,
            'totalEnergyUnit': self.total_energy_unit,
            'sampleInterval': self.sample_interval,
            'sampleCount': self.sample_count,
            'maxPower': self.max_power,
            'rawSamples': list(self.samples),
        }

    def __str__(self) -> str:
        return (
            f"EnergyResult("
            f"avg={self.average_power:.2f}{self.average_power_unit}, "
            f"energy={self.total_energy:.4f}{self.total_energy_unit}, "
            f"n={self.sample_count}@{self.sample_interval}ms)"
        )


def compute_energy_result(samples: Sequence[int], interval_ms: int) -> EnergyResult:
    """Integrate constant-interval mW samples into an :class:`EnergyResult`.

    energy (mWh) = sum(mW) * dt(ms) / 3_600_000. Average power is the value
    that reproduces that energy over the observed duration, which equals the
    arithmetic mean of the samples.
    """
    frozen = tuple(samples)
    count = len(frozen)
    if count == 0:
        return EnergyResult(
            average_power=0.0,
            total_energy=0.0,
            sample_interval=interval_ms,
            sample_count=0,
            samples=frozen,
        )

    total_energy = sum(frozen) * interval_ms / MS_PER_HOUR
    average_power = total_energy * MS_PER_HOUR / (count * interval_ms)
    return EnergyResult(
        average_power=average_power,
        total_energy=total_energy,
        sample_interval=interval_ms,
        sample_count=count,
        samples=frozen,
    )


@dataclass(slots=True)
class StartTrackingOptions:
    """Settings for spawning the sampling process.

    ``command`` replaces the ``powermetrics`` argv entirely (the sudo prefix
    still applies unless ``disable_sudo``); it exists for alternative
    sampling tools and for tests.
    """

    sample_interval_ms: float = DEFAULT_INTERVAL_MS
    samplers: Sequence[str] = field(default_factory=lambda: DEFAULT_SAMPLERS)
    disable_sudo: bool = False
    command: Optional[Sequence[str]] = None
    stop_timeout: float = DEFAULT_STOP_TIMEOUT

    @property
    def interval_ms(self) -> int:
        return max(1, math.floor(self.sample_interval_ms))

    @property
    def resolved_samplers(self) -> tuple[str, ...]:
        return tuple(self.samplers) if self.samplers else DEFAULT_SAMPLERS

    def build_command(self) -> list[str]:
        if self.command:
            args = list(self.command)
        else:
            args = [
                "powermetrics",
                "--samplers",
                ",".join(self.resolved_samplers),
                "-i",
                str(self.interval_ms),
            ]
        return args if self.disable_sudo else ["sudo", *args]


__all__ = [
    "DEFAULT_INTERVAL_MS",
    "DEFAULT_SAMPLERS",
    "EnergyResult",
    "StartTrackingOptions",
    "compute_energy_result",
]
