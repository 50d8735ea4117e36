"""Live completion estimate for a long multi-step run.

Two estimators cooperate. The pace estimate (elapsed time per completed step)
fixes a deadline once, on the first completed step, and is never silently
re-applied afterwards, so the countdown ticks down steadily instead of
jittering with every step. At checkpoints the caller supplies an independent
schedule estimate; :meth:`ProgressEstimator.recalibrate` replaces the
deadline only when the two disagree by more than the drift threshold.
"""

from __future__ import annotations

import asyncio
import time
from typing import Callable, Optional

from power_bench.core.asyncio_utils import create_logged_task
from power_bench.core.logging_utils import get_module_logger

from .status_line import LiveStatusLine, format_seconds

logger = get_module_logger("Progress")

DEFAULT_DRIFT_THRESHOLD_SECONDS = 3.0
DEFAULT_TICK_INTERVAL_SECONDS = 1.0


class ProgressEstimator:

    def __init__(
        self,
        *,
        status_line: Optional[LiveStatusLine] = None,
        drift_threshold: float = DEFAULT_DRIFT_THRESHOLD_SECONDS,
        max_silent_skips: Optional[int] = 3,
        tick_interval: float = DEFAULT_TICK_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.status_line = status_line or LiveStatusLine()
        self.drift_threshold = drift_threshold
        self.max_silent_skips = max_silent_skips
        self.tick_interval = tick_interval
        self._clock = clock

        self.completed_steps = 0
        self.total_steps = 0
        self.expected_completion: Optional[float] = None
        self.started_at: Optional[float] = None
        self.silent_skips = 0
        self._ticker: Optional[asyncio.Task[None]] = None

    # ------------------------------------------------------------------
    # Mutators

    def start(self, total_steps: int) -> None:
        """Stamp the start time that pace is measured from."""
        self.started_at = self._clock()
        self.total_steps = total_steps
        self.completed_steps = 0

    def advance(self, completed_steps: int, total_steps: Optional[int] = None) -> None:
        """Record a completed step and, the first time, fix the deadline."""
        if completed_steps <= 0:
            return
        now = self._clock()
        if self.started_at is None:
            self.started_at = now
        total = self.total_steps if total_steps is None else total_steps

        elapsed = now - self.started_at
        time_per_step = elapsed / completed_steps
        remaining = max(0, total - completed_steps) * time_per_step

        if self.expected_completion is None:
            self.expected_completion = now + remaining
            logger.debug(
                "Deadline fixed from pace: %.1fs/step, %s remaining",
                time_per_step,
                format_seconds(remaining),
            )

        self.completed_steps = completed_steps
        self.total_steps = total
        self.status_line.set(self._status_text(self.remaining_seconds()))
        self._ensure_ticker()

    def recalibrate(self, remaining_seconds: float) -> bool:
        """Compare a schedule-based estimate against the held deadline.

        The deadline is replaced when the two differ by more than
        ``drift_threshold`` seconds. In addition, once ``max_silent_skips``
        consecutive calls have disagreed by a smaller non-zero amount, the
        next such call adopts the estimate anyway (logged at info). Pass
        ``max_silent_skips=None`` for the strict rule: replace exactly when
        the drift exceeds the threshold.

        Returns True when the deadline was replaced.
        """
        now = self._clock()
        candidate = now + remaining_seconds

        if self.expected_completion is None:
            self.expected_completion = candidate
            self.silent_skips = 0
            self.status_line.set(self._status_text(self.remaining_seconds()))
            self._ensure_ticker()
            return True

        delta = candidate - self.expected_completion
        if abs(delta) > self.drift_threshold:
            logger.warning(
                "ETC drift %s%ds vs previous estimate. Recalibrating.",
                "+" if delta > 0 else "",
                round(delta),
            )
        elif (
            delta != 0
            and self.max_silent_skips is not None
            and self.silent_skips >= self.max_silent_skips
        ):
            logger.info(
                "ETC off by %.1fs for %d checkpoints; adopting schedule estimate",
                delta,
                self.silent_skips,
            )
        else:
            if delta != 0:
                self.silent_skips += 1
            return False

        self.expected_completion = candidate
        self.silent_skips = 0
        self.status_line.set(self._status_text(self.remaining_seconds()))
        self._ensure_ticker()
        return True

    def tick(self) -> Optional[float]:
        """Redraw the countdown from the held deadline; never recomputes pace."""
        remaining = self.remaining_seconds()
        if remaining is None:
            return None
        self.status_line.update(self._status_text(remaining))
        return remaining

    def stop(self) -> None:
        """Clear the deadline and cancel periodic redraws."""
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None
        self.expected_completion = None
        self.silent_skips = 0
        self.status_line.stop()

    # ------------------------------------------------------------------
    # Inspection

    def remaining_seconds(self) -> Optional[float]:
        if self.expected_completion is None:
            return None
        return max(0.0, self.expected_completion - self._clock())

    @property
    def ticking(self) -> bool:
        return self._ticker is not None and not self._ticker.done()

    # ------------------------------------------------------------------
    # Internal helpers

    def _status_text(self, remaining: Optional[float]) -> str:
        eta = format_seconds(remaining) if remaining is not None else "unknown"
        return f"[Progress] Step {self.completed_steps}/{self.total_steps} complete. ETC: {eta}"

    def _ensure_ticker(self) -> None:
        if self.ticking:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # Synchronous use: no periodic redraws, explicit tick() still works.
            return
        self._ticker = create_logged_task(self._tick_loop(), logger=logger, context="progress-ticker")

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self.tick_interval)
            if self.expected_completion is None:
                continue
            self.tick()


__all__ = ["ProgressEstimator", "DEFAULT_DRIFT_THRESHOLD_SECONDS"]
