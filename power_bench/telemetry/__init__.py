"""Power telemetry: sampler process management, parsing and segmentation."""

from .errors import PrivilegeError, TrackerError, TrackerSpawnError
from .extractor import extract_all, extract_milliwatts
from .models import EnergyResult, StartTrackingOptions, compute_energy_result
from .segmentation import (
    LogicalWindow,
    SegmentationPlan,
    WindowAverage,
    WindowSamples,
    averages_per_window,
    build_windows,
    samples_per_window,
)
from .tracker import (
    EnergyTracker,
    ReadySignal,
    drain_best_effort,
    start_tracking,
    tracking_session,
    verify_sudo_access,
    wait_for_first_reading,
)

__all__ = [
    'EnergyResult',
    'EnergyTracker',
    'LogicalWindow',
    'PrivilegeError',
    'ReadySignal',
    'SegmentationPlan',
    'StartTrackingOptions',
    'TrackerError',
    'TrackerSpawnError',
    'WindowAverage',
    'WindowSamples',
    'averages_per_window',
    'build_windows',
    'compute_energy_result',
    'drain_best_effort',
    'extract_all',
    'extract_milliwatts',
    'samples_per_window',
    'start_tracking',
    'tracking_session',
    'verify_sudo_access',
    'wait_for_first_reading',
]
