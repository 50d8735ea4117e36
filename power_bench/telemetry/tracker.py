"""Energy tracker: runs ``powermetrics`` and integrates its power readings.

The tracker owns one sampling process. A background task reads its stdout
in chunks, reassembles lines across chunk boundaries and hands each line to
the extractor. Readings accumulate in memory until :meth:`EnergyTracker.
stop_tracking` terminates the process and summarises them.

Teardown never raises: whatever was captured before the process or the
reader misbehaved is still summarised, so one broken session cannot sink a
multi-hour run.
"""

from __future__ import annotations

import asyncio
import codecs
import contextlib
import dataclasses
from typing import Any, AsyncIterator, Iterable, Optional

from power_bench.core.asyncio_utils import create_logged_task, wait_quietly
from power_bench.core.logging_utils import LoggerLike, ensure_structured_logger, get_module_logger

from .errors import PrivilegeError, TrackerSpawnError
from .extractor import extract_milliwatts
from .models import EnergyResult, StartTrackingOptions, compute_energy_result

logger = get_module_logger("EnergyTracker")

READ_CHUNK_SIZE = 4096


class ReadySignal:
    """One-shot notification, safe to await many times or never."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def resolve(self) -> bool:
        """Resolve the signal. Returns True only for the call that did it."""
        if self._event.is_set():
            return False
        self._event.set()
        return True

    @property
    def resolved(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()

    def __await__(self):
        return self._event.wait().__await__()


class LineBuffer:
    """Reassembles text lines from arbitrarily split byte chunks."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._pending = ""

    @property
    def pending(self) -> str:
        return self._pending

    def feed(self, chunk: bytes) -> list[str]:
        """Add ``chunk`` and return every line it completed."""
        self._pending += self._decoder.decode(chunk)
        *lines, self._pending = self._pending.split("\n")
        return [line.rstrip("\r") for line in lines]

    def flush(self) -> Optional[str]:
        """Return the unterminated remainder (if any) and clear it."""
        self._pending += self._decoder.decode(b"", final=True)
        rest, self._pending = self._pending.rstrip("\r"), ""
        return rest or None


async def drain_best_effort(
    process: asyncio.subprocess.Process,
    readers: Iterable[Optional[asyncio.Task[Any]]] = (),
    *,
    timeout: float,
    logger: LoggerLike = None,
) -> bool:
    """Terminate ``process`` and wait for it and its readers to finish.

    Every failure is logged and discarded. A process that ignores SIGTERM
    for ``timeout`` seconds is killed; a reader still running after
    ``timeout`` is cancelled. Returns True when everything ended cleanly.
    """
    log = ensure_structured_logger(logger, fallback_name="EnergyTracker")
    clean = True

    if process.returncode is None:
        try:
            process.terminate()
        except ProcessLookupError:
            pass  # already exited
        except OSError as exc:
            log.debug("terminate failed: %s", exc)
            clean = False

    if not await wait_quietly(process.wait(), timeout=timeout, label="sampler exit", logger=log):
        clean = False
        with contextlib.suppress(ProcessLookupError, OSError):
            process.kill()
        await wait_quietly(process.wait(), timeout=timeout, label="sampler kill", logger=log)

    for task in readers:
        if task is None:
            continue
        if not await wait_quietly(task, timeout=timeout, label=task.get_name(), logger=log):
            clean = False

    return clean


class EnergyTracker:
    """One running sampling session. Create with :func:`start_tracking`."""

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        options: StartTrackingOptions,
    ) -> None:
        self._process = process
        self._options = options
        self._interval_ms = options.interval_ms
        self._samples: list[int] = []
        self._buffer = LineBuffer()
        self._reader_task: Optional[asyncio.Task[None]] = None
        self._stderr_task: Optional[asyncio.Task[None]] = None
        self._result: Optional[EnergyResult] = None
        self._stop_lock = asyncio.Lock()
        self.ready = ReadySignal()

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def sample_interval_ms(self) -> int:
        return self._interval_ms

    @property
    def samples(self) -> tuple[int, ...]:
        return tuple(self._samples)

    @property
    def stopped(self) -> bool:
        return self._result is not None

    def _begin_reading(self) -> None:
        if self._process.stdout is None:
            # Nothing will ever arrive; don't let callers wait on it.
            self.ready.resolve()
        else:
            self._reader_task = create_logged_task(
                self._read_stdout(),
                logger=logger,
                context=f"sampler-stdout-{self.pid}",
            )
        if self._process.stderr is not None:
            self._stderr_task = create_logged_task(
                self._read_stderr(),
                logger=logger,
                context=f"sampler-stderr-{self.pid}",
            )

    def _ingest(self, line: str) -> None:
        reading = extract_milliwatts(line)
        if reading is None:
            return
        self._samples.append(reading)
        if self.ready.resolve():
            logger.debug("First reading from PID %d: %d mW", self.pid, reading)

    def _flush_buffer(self) -> None:
        rest = self._buffer.flush()
        if rest:
            self._ingest(rest)

    async def _read_stdout(self) -> None:
        stream = self._process.stdout
        try:
            while True:
                chunk = await stream.read(READ_CHUNK_SIZE)
                if not chunk:
                    break
                for line in self._buffer.feed(chunk):
                    self._ingest(line)
            self._flush_buffer()
        finally:
            if self.ready.resolve():
                logger.warning("Sampler output ended before any power reading (PID %d)", self.pid)

    async def _read_stderr(self) -> None:
        stream = self._process.stderr
        while True:
            line = await stream.readline()
            if not line:
                break
            text = line.decode(errors="replace").strip()
            if text:
                logger.debug("Sampler stderr: %s", text)

    async def stop_tracking(self) -> EnergyResult:
        """Stop the sampler and summarise every reading captured so far.

        Safe to call more than once; later calls return the first result.
        """
        async with self._stop_lock:
            if self._result is not None:
                return self._result

            self.ready.resolve()
            logger.debug("Stopping sampler (PID %d)", self.pid)
            clean = await drain_best_effort(
                self._process,
                (self._reader_task, self._stderr_task),
                timeout=self._options.stop_timeout,
                logger=logger,
            )
            if not clean:
                logger.warning(
                    "Sampler teardown incomplete; summarising %d captured readings",
                    len(self._samples),
                )
            self._flush_buffer()

            self._result = compute_energy_result(self._samples, self._interval_ms)
            logger.info("Stopped sampler (PID %d): %s", self.pid, self._result)
            return self._result


async def start_tracking(
    options: Optional[StartTrackingOptions] = None,
    **overrides: Any,
) -> EnergyTracker:
    """Spawn the sampling process and start consuming its output.

    Keyword ``overrides`` replace fields of ``options`` (or of the defaults).
    Raises :class:`TrackerSpawnError` when the process cannot be started.
    """
    opts = options or StartTrackingOptions()
    if overrides:
        opts = dataclasses.replace(opts, **overrides)

    cmd = opts.build_command()
    logger.debug("Command: %s", " ".join(cmd))
    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise TrackerSpawnError(f"Failed to start sampler {cmd[0]!r}: {exc}") from exc

    tracker = EnergyTracker(process, opts)
    tracker._begin_reading()
    logger.info("Sampler started (PID: %d, interval %d ms)", process.pid, opts.interval_ms)
    return tracker


@contextlib.asynccontextmanager
async def tracking_session(
    options: Optional[StartTrackingOptions] = None,
    **overrides: Any,
) -> AsyncIterator[EnergyTracker]:
    """``async with`` wrapper that always stops the tracker on exit."""
    tracker = await start_tracking(options, **overrides)
    try:
        yield tracker
    finally:
        await tracker.stop_tracking()


async def wait_for_first_reading(
    tracker: EnergyTracker,
    timeout: float,
    *,
    logger: LoggerLike = None,
) -> bool:
    """Wait up to ``timeout`` seconds for the tracker's first reading.

    A sampler that stays alive but never prints a recognised power line
    would otherwise block forever. Returns False (after a warning) when the
    wait gave up; the session carries on and ends with whatever was captured.
    """
    log = ensure_structured_logger(logger, fallback_name="EnergyTracker")
    if await wait_quietly(tracker.ready.wait(), timeout=timeout, label="sampler ready", logger=log):
        return True
    log.warning("No power reading within %.0fs; continuing without one", timeout)
    return False


async def verify_sudo_access() -> None:
    """Prompt for the sudo password once, before any unattended sampling."""
    logger.info("Checking for sudo access... You may be prompted for your password.")
    try:
        process = await asyncio.create_subprocess_exec("sudo", "-v")
    except OSError as exc:
        raise PrivilegeError(f"sudo is unavailable: {exc}") from exc
    returncode = await process.wait()
    if returncode != 0:
        raise PrivilegeError(f"sudo -v exited with code {returncode}")
    logger.info("Sudo access confirmed.")


__all__ = [
    "EnergyTracker",
    "LineBuffer",
    "ReadySignal",
    "drain_best_effort",
    "start_tracking",
    "tracking_session",
    "verify_sudo_access",
    "wait_for_first_reading",
]
