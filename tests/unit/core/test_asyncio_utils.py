"""Unit tests for asyncio_utils."""

import asyncio
import logging

import pytest

from power_bench.core.asyncio_utils import create_logged_task, wait_quietly


class TestCreateLoggedTask:
    """Test create_logged_task function."""

    @pytest.mark.asyncio
    async def test_result_returned(self):
        async def work():
            return 42

        task = create_logged_task(work(), context="answer")

        assert await task == 42
        assert task.get_name() == "answer"

    @pytest.mark.asyncio
    async def test_exception_is_logged(self, caplog):
        async def boom():
            raise ValueError("bad sample")

        with caplog.at_level(logging.ERROR, logger="power_bench"):
            task = create_logged_task(boom(), context="reader")
            with pytest.raises(ValueError):
                await task
            await asyncio.sleep(0)

        assert "Unhandled exception in reader" in caplog.text

    @pytest.mark.asyncio
    async def test_pending_set_tracks_task(self):
        pending = set()
        gate = asyncio.Event()

        async def wait_gate():
            await gate.wait()

        task = create_logged_task(wait_gate(), pending=pending)
        assert task in pending

        gate.set()
        await task
        await asyncio.sleep(0)
        assert task not in pending

    @pytest.mark.asyncio
    async def test_cancellation_not_logged(self, caplog):
        async def forever():
            await asyncio.Event().wait()

        with caplog.at_level(logging.ERROR, logger="power_bench"):
            task = create_logged_task(forever())
            await asyncio.sleep(0)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
            await asyncio.sleep(0)

        assert caplog.records == []


class TestWaitQuietly:
    """Test wait_quietly function."""

    @pytest.mark.asyncio
    async def test_success(self):
        assert await wait_quietly(asyncio.sleep(0), timeout=1.0, label="nap") is True

    @pytest.mark.asyncio
    async def test_timeout_returns_false(self):
        assert await wait_quietly(asyncio.sleep(5), timeout=0.01, label="slow") is False

    @pytest.mark.asyncio
    async def test_failure_returns_false(self, caplog):
        async def fail():
            raise RuntimeError("pipe closed")

        with caplog.at_level(logging.DEBUG, logger="power_bench"):
            assert await wait_quietly(fail(), timeout=1.0, label="reader") is False

        assert "reader: failed: pipe closed" in caplog.text

    @pytest.mark.asyncio
    async def test_outer_cancellation_propagates(self):
        started = asyncio.Event()

        async def waiter():
            started.set()
            return await wait_quietly(asyncio.sleep(5), timeout=10, label="long")

        task = asyncio.create_task(waiter())
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
