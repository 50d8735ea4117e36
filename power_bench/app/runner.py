"""Drives a full experiment: every application, every URL, one tracker each.

Application control (launch, navigation, quitting) and report persistence
are collaborators injected by the caller; this module only sequences them
around the energy tracker, the progress estimator and segmentation.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Protocol, Sequence

from power_bench.core.bench_config import BenchConfig
from power_bench.core.logging_utils import get_module_logger
from power_bench.progress.estimator import ProgressEstimator
from power_bench.progress.schedule import ScheduleModel
from power_bench.progress.status_line import LiveStatusLine, format_seconds
from power_bench.telemetry.models import EnergyResult, StartTrackingOptions
from power_bench.telemetry.segmentation import (
    SegmentationPlan,
    WindowAverage,
    WindowSamples,
    averages_per_window,
    samples_per_window,
)
from power_bench.telemetry.tracker import EnergyTracker, start_tracking, wait_for_first_reading

logger = get_module_logger("Runner")
results_logger = get_module_logger("Results")


class AppController(Protocol):
    """OS automation for one desktop application."""

    async def launch(self, app: str) -> None: ...

    async def navigate(self, app: str, url: str) -> None: ...

    async def close_window(self, app: str) -> None: ...

    async def quit(self, app: str) -> None: ...


ReportSink = Callable[[Sequence["AppReport"]], Awaitable[None]]
TrackerFactory = Callable[[StartTrackingOptions], Awaitable[EnergyTracker]]
Sleep = Callable[[float], Awaitable[Any]]


@dataclass(slots=True)
class AppReport:
    app: str
    result: EnergyResult
    average_per_window: list[WindowAverage] = field(default_factory=list)
    samples_per_window: list[WindowSamples] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def has_data(self) -> bool:
        return self.result.has_data

    @property
    def avg(self) -> float:
        return self.result.average_power

    def to_dict(self) -> dict[str, Any]:
        return {
            'browser': self.app,
            'avg': self.result.average_power,
            'max': self.result.max_power,
            'count': self.result.sample_count,
            'hasData': self.has_data,
            'error': self.error,
            'energy': self.result.to_dict(),
            'averagePerSite': [w.to_dict() for w in self.average_per_window],
            'rawSamplesPerSite': [w.to_dict() for w in self.samples_per_window],
        }


def summarize_reports(reports: Sequence[AppReport]) -> Optional[AppReport]:
    """Log a ranking by average power (lower is better); return the best."""
    if not reports:
        return None

    results_logger.info("Overall summary:")
    successful = sorted((r for r in reports if r.has_data), key=lambda r: r.avg)
    missing = [r for r in reports if not r.has_data]

    best = None
    if successful:
        name_pad = max(len("Browser"), *(len(r.app) for r in successful))
        results_logger.info(
            "%s  %9s  %9s  %8s", "Browser".ljust(name_pad), "Avg (mW)", "Max (mW)", "Samples"
        )
        for r in successful:
            results_logger.info(
                "%s  %9.2f  %9d  %8d",
                r.app.ljust(name_pad),
                r.avg,
                r.result.max_power,
                r.result.sample_count,
            )
        best = successful[0]
        results_logger.info("Best (lowest avg power): %s (%.2f mW)", best.app, best.avg)

    for r in missing:
        results_logger.info("%s: no power data captured", r.app)

    return best


class ExperimentRunner:

    def __init__(
        self,
        config: BenchConfig,
        controller: AppController,
        *,
        estimator: Optional[ProgressEstimator] = None,
        status_line: Optional[LiveStatusLine] = None,
        tracker_factory: TrackerFactory = start_tracking,
        report_sink: Optional[ReportSink] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.config = config
        self.controller = controller
        # Must be the status line the console handler redraws, if any.
        self.estimator = estimator or ProgressEstimator(
            status_line=status_line,
            drift_threshold=config.drift_warning_seconds,
            max_silent_skips=config.max_silent_skips,
            tick_interval=config.tick_interval_seconds,
        )
        self._tracker_factory = tracker_factory
        self._report_sink = report_sink
        self._sleep = sleep
        self.reports: list[AppReport] = []
        self.current_step = 0

    def _tracking_options(self) -> StartTrackingOptions:
        cfg = self.config
        return StartTrackingOptions(
            sample_interval_ms=cfg.sample_interval_ms,
            samplers=cfg.samplers,
            disable_sudo=cfg.disable_sudo,
            stop_timeout=cfg.stop_timeout_seconds,
        )

    async def _pause_ms(self, delay_ms: float) -> None:
        await self._sleep(delay_ms / 1000)

    async def run(self, apps: Sequence[str], urls: Sequence[str]) -> list[AppReport]:
        total_steps = len(apps) * len(urls)
        schedule = ScheduleModel(self.config, len(urls))
        logger.info(
            "Planned sleeps - total: %s. Total steps: %d",
            format_seconds(schedule.remaining_seconds(len(apps))),
            total_steps,
        )

        self.reports = []
        self.current_step = 0
        self.estimator.start(total_steps)
        try:
            for index, app in enumerate(apps):
                self.estimator.recalibrate(schedule.remaining_seconds(len(apps) - index))
                report = await self.run_app(app, urls)
                self.reports.append(report)
                if self._report_sink is not None:
                    await self._report_sink(list(self.reports))
        finally:
            self.estimator.stop()

        logger.info("All tests finished")
        summarize_reports(self.reports)
        return self.reports

    async def run_app(self, app: str, urls: Sequence[str]) -> AppReport:
        cfg = self.config
        logger.info("--- Starting test for: %s ---", app)
        tracker = await self._tracker_factory(self._tracking_options())
        error: Optional[str] = None
        try:
            await self._pause_ms(cfg.startup_delay_ms)
            await wait_for_first_reading(tracker, cfg.ready_timeout_seconds, logger=logger)

            logger.info("Launching %s...", app)
            await self.controller.launch(app)
            await self._pause_ms(cfg.launch_delay_ms)

            for url in urls:
                logger.info("Opening %s...", url)
                await self.controller.navigate(app, url)
                await self._sleep(cfg.wait_time_seconds)

                self.current_step += 1
                self.estimator.advance(self.current_step)

                await self.controller.close_window(app)
                await self._pause_ms(cfg.window_close_delay_ms)

            logger.info("Quitting %s...", app)
            await self.controller.quit(app)
            await self._pause_ms(cfg.quit_delay_ms)
        except Exception as exc:
            logger.error("Test failed for %s: %s", app, exc, exc_info=True)
            error = str(exc)
        finally:
            result = await tracker.stop_tracking()
            await self._pause_ms(cfg.stop_delay_ms)

        plan = SegmentationPlan.from_timings(
            result.sample_interval,
            cfg.wait_time_seconds,
            cfg.setup_delays_ms,
        )
        windows = plan.windows(urls)
        report = AppReport(
            app=app,
            result=result,
            average_per_window=averages_per_window(result.samples, windows, pre_roll=plan.pre_roll_samples),
            samples_per_window=samples_per_window(result.samples, windows, pre_roll=plan.pre_roll_samples),
            error=error,
        )

        if report.has_data:
            results_logger.info(
                "%s: avg %.2f mW, max %d mW, %d samples, %.4f mWh",
                app,
                result.average_power,
                result.max_power,
                result.sample_count,
                result.total_energy,
            )
        else:
            results_logger.warning("No power data captured for %s", app)
        return report


__all__ = ["AppController", "AppReport", "ExperimentRunner", "ReportSink", "summarize_reports"]
