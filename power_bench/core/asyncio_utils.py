"""Asyncio helpers for background tasks that must not lose their errors."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Optional

from .logging_utils import LoggerLike, ensure_structured_logger


def _task_label(task: asyncio.Task[Any], context: Optional[str]) -> str:
    if context:
        return context
    name = task.get_name()
    return name or "background task"


def add_task_exception_logger(
    task: asyncio.Task[Any],
    *,
    logger: LoggerLike = None,
    context: Optional[str] = None,
) -> asyncio.Task[Any]:
    """Ensure task exceptions are retrieved and logged.

    Without this, exceptions in fire-and-forget tasks surface as
    "Task exception was never retrieved" warnings, often long after the
    original failure.
    """
    task_logger = ensure_structured_logger(logger, fallback_name="asyncio")

    def _done(done_task: asyncio.Task[Any]) -> None:
        try:
            done_task.result()
        except asyncio.CancelledError:
            return
        except Exception:
            task_logger.exception(
                "Unhandled exception in %s",
                _task_label(done_task, context),
            )

    task.add_done_callback(_done)
    return task


def create_logged_task(
    coro: Awaitable[Any],
    *,
    logger: LoggerLike = None,
    context: Optional[str] = None,
    pending: Optional[set[asyncio.Task[Any]]] = None,
) -> asyncio.Task[Any]:
    """Create a task that won't lose exceptions, optionally tracking it."""
    loop = asyncio.get_running_loop()

    task = loop.create_task(coro)
    if context:
        task.set_name(context)

    add_task_exception_logger(task, logger=logger, context=context)

    if pending is not None:
        pending.add(task)
        task.add_done_callback(pending.discard)

    return task


async def wait_quietly(
    awaitable: Awaitable[Any],
    *,
    timeout: float,
    label: str,
    logger: LoggerLike = None,
) -> bool:
    """Await ``awaitable`` for at most ``timeout`` seconds, logging any failure.

    Returns True when it finished cleanly. Timeouts and exceptions are
    logged at debug level and reported as False; cancellation of the
    calling task still propagates.
    """
    log = ensure_structured_logger(logger, fallback_name="asyncio")
    try:
        await asyncio.wait_for(awaitable, timeout=timeout)
        return True
    except asyncio.TimeoutError:
        log.debug("%s: timed out after %.1fs", label, timeout)
    except asyncio.CancelledError:
        current = asyncio.current_task()
        if current is not None and current.cancelling():
            raise
        log.debug("%s: cancelled", label)
    except Exception as exc:
        log.debug("%s: failed: %s", label, exc)
    return False


__all__ = ["add_task_exception_logger", "create_logged_task", "wait_quietly"]
