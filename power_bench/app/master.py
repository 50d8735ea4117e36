"""Command line entry point.

``power-bench track`` runs one tracker session for a fixed duration and
reports the energy summary, optionally split into labelled windows.
``power-bench check-sudo`` primes the sudo credential cache.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Optional, Sequence

from power_bench.cli.common import add_common_cli_arguments, setup_cli_logging
from power_bench.core.bench_config import BenchConfig, load_bench_config
from power_bench.core.logging_utils import get_module_logger
from power_bench.progress.estimator import ProgressEstimator
from power_bench.progress.status_line import LiveStatusLine
from power_bench.telemetry.errors import TrackerError
from power_bench.telemetry.models import StartTrackingOptions
from power_bench.telemetry.segmentation import SegmentationPlan, averages_per_window
from power_bench.telemetry.tracker import start_tracking, verify_sudo_access, wait_for_first_reading

logger = get_module_logger("Bench")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="power-bench",
        description="Measure power draw with powermetrics",
    )
    add_common_cli_arguments(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    track = subparsers.add_parser("track", help="Record power for a fixed duration")
    track.add_argument("--duration", type=float, default=10.0, help="Seconds to record")
    track.add_argument("--interval", type=int, default=None, help="Sampling interval in ms")
    track.add_argument(
        "--sampler",
        dest="samplers",
        action="append",
        default=None,
        help="powermetrics sampler (repeatable)",
    )
    track.add_argument("--no-sudo", dest="disable_sudo", action="store_true", default=None,
                       help="Run powermetrics without sudo")
    track.add_argument(
        "--window",
        dest="windows",
        action="append",
        default=[],
        help="Label of a dwell window (repeatable, in order)",
    )
    track.add_argument("--dwell", type=float, default=None, help="Seconds per window")
    track.add_argument("--setup-delay-ms", type=int, default=0,
                       help="Time before the first window starts")
    track.add_argument("--json", dest="as_json", action="store_true", help="Print the result as JSON")

    subparsers.add_parser("check-sudo", help="Prompt for the sudo password once")
    return parser


async def run_track(
    args: argparse.Namespace,
    config: BenchConfig,
    status_line: Optional[LiveStatusLine] = None,
) -> int:
    config = config.with_overrides(
        sample_interval_ms=args.interval,
        samplers=tuple(args.samplers) if args.samplers else None,
        disable_sudo=args.disable_sudo,
        wait_time_seconds=args.dwell,
    )
    options = StartTrackingOptions(
        sample_interval_ms=config.sample_interval_ms,
        samplers=config.samplers,
        disable_sudo=config.disable_sudo,
        stop_timeout=config.stop_timeout_seconds,
    )

    estimator = ProgressEstimator(
        status_line=status_line,
        drift_threshold=config.drift_warning_seconds,
        max_silent_skips=config.max_silent_skips,
        tick_interval=config.tick_interval_seconds,
    )
    tracker = await start_tracking(options)
    try:
        await wait_for_first_reading(tracker, config.ready_timeout_seconds, logger=logger)
        logger.info("Recording for %.1fs...", args.duration)
        estimator.start(1)
        estimator.recalibrate(args.duration)
        await asyncio.sleep(args.duration)
    finally:
        estimator.stop()
        result = await tracker.stop_tracking()

    payload = {"energy": result.to_dict()}
    logger.info(
        "Average power: %.2f %s, energy: %.4f %s, samples: %d",
        result.average_power,
        result.average_power_unit,
        result.total_energy,
        result.total_energy_unit,
        result.sample_count,
    )

    if args.windows:
        plan = SegmentationPlan.from_timings(
            result.sample_interval,
            config.wait_time_seconds,
            (args.setup_delay_ms,),
        )
        per_window = averages_per_window(result.samples, plan.windows(args.windows), pre_roll=plan.pre_roll_samples)
        for window in per_window:
            logger.info("  %s: %.2f mW over %d samples", window.label, window.avg, window.count)
        payload["averagePerSite"] = [w.to_dict() for w in per_window]

    if args.as_json:
        print(json.dumps(payload, indent=2))
    return 0 if result.has_data else 1


async def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    # Without a console the status text goes to the log file instead.
    status_line = LiveStatusLine() if args.console_output else LiveStatusLine(interactive=False)
    setup_cli_logging(args, status_line=status_line)

    config = await load_bench_config(args.config)
    try:
        if args.command == "check-sudo":
            await verify_sudo_access()
            return 0
        return await run_track(args, config, status_line)
    except TrackerError as exc:
        logger.error("%s", exc)
        return 2


def cli() -> None:
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(130)


__all__ = ["build_parser", "cli", "main", "run_track"]
