"""Centralized path constants for the power bench."""

from __future__ import annotations

import os
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Configuration
_CONFIG_ENV = os.environ.get("POWER_BENCH_CONFIG")
CONFIG_PATH = Path(_CONFIG_ENV).expanduser() if _CONFIG_ENV else PROJECT_ROOT / "config.txt"


__all__ = [
    "PROJECT_ROOT",
    "CONFIG_PATH",
]
