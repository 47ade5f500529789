"""Tests for the periodic refresh driver."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.certs.exceptions import LedgerLookupError
from app.certs.poller import RefreshScheduler


class TestRunOnce:

    @pytest.mark.asyncio
    async def test_success_recorded(self):
        refresh = AsyncMock(return_value=["a"])
        on_result = MagicMock()
        scheduler = RefreshScheduler(refresh, interval_seconds=10, on_result=on_result)

        result = await scheduler.run_once()

        assert result == ["a"]
        assert scheduler.last_result == ["a"]
        assert scheduler.runs == 1
        on_result.assert_called_once_with(["a"])

    @pytest.mark.asyncio
    async def test_failure_recorded_not_raised(self):
        error = LedgerLookupError("down")
        on_error = MagicMock()
        scheduler = RefreshScheduler(AsyncMock(side_effect=error), interval_seconds=10, on_error=on_error)

        assert await scheduler.run_once() is None
        assert scheduler.failures == 1
        assert scheduler.last_error is error
        on_error.assert_called_once_with(error)

    @pytest.mark.asyncio
    async def test_success_resets_failures(self):
        refresh = AsyncMock(side_effect=[LedgerLookupError("down"), "ok"])
        scheduler = RefreshScheduler(refresh, interval_seconds=10)

        await scheduler.run_once()
        await scheduler.run_once()

        assert scheduler.failures == 0
        assert scheduler.last_error is None
        assert scheduler.last_result == "ok"

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        scheduler = RefreshScheduler(AsyncMock(side_effect=asyncio.CancelledError()), interval_seconds=10)
        with pytest.raises(asyncio.CancelledError):
            await scheduler.run_once()


class TestBackoff:

    def test_doubles_and_caps(self):
        scheduler = RefreshScheduler(AsyncMock(), interval_seconds=10, max_backoff_seconds=60)
        assert scheduler.next_delay() == 10
        scheduler.failures = 1
        assert scheduler.next_delay() == 20
        scheduler.failures = 2
        assert scheduler.next_delay() == 40
        scheduler.failures = 5
        assert scheduler.next_delay() == 60

    def test_rejects_non_positive_interval(self):
        with pytest.raises(ValueError):
            RefreshScheduler(AsyncMock(), interval_seconds=0)


class TestLoop:

    @pytest.mark.asyncio
    async def test_start_trigger_stop(self):
        refresh = AsyncMock(return_value=1)
        scheduler = RefreshScheduler(refresh, interval_seconds=60)

        scheduler.start()
        await asyncio.sleep(0.01)
        assert scheduler.running
        assert refresh.await_count == 1

        scheduler.trigger()
        await asyncio.sleep(0.01)
        assert refresh.await_count == 2

        await scheduler.stop()
        assert not scheduler.running

    @pytest.mark.asyncio
    async def test_stop_without_start(self):
        scheduler = RefreshScheduler(AsyncMock(), interval_seconds=60)
        await scheduler.stop()
        assert not scheduler.running


class TestCallbackFailures:
    """A failing callback never stops the scheduler."""

    @pytest.mark.asyncio
    async def test_on_result_error_is_logged_not_raised(self, caplog):
        scheduler = RefreshScheduler(
            AsyncMock(return_value=1),
            interval_seconds=10,
            on_result=MagicMock(side_effect=RuntimeError("render failed")),
        )

        assert await scheduler.run_once() == 1
        assert scheduler.last_result == 1
        assert scheduler.failures == 0
        assert "render failed" in caplog.text

    @pytest.mark.asyncio
    async def test_on_error_error_is_logged_not_raised(self):
        scheduler = RefreshScheduler(
            AsyncMock(side_effect=LedgerLookupError("down")),
            interval_seconds=10,
            on_error=MagicMock(side_effect=RuntimeError("toast failed")),
        )

        assert await scheduler.run_once() is None
        assert scheduler.failures == 1

    @pytest.mark.asyncio
    async def test_loop_survives_callback_error(self):
        refresh = AsyncMock(return_value=1)
        scheduler = RefreshScheduler(
            refresh,
            interval_seconds=0.01,
            max_backoff_seconds=0.01,
            on_result=MagicMock(side_effect=RuntimeError("render failed")),
        )

        scheduler.start()
        await asyncio.sleep(0.1)

        assert scheduler.running
        assert refresh.await_count > 1
        await scheduler.stop()
        assert not scheduler.running


class TestTriggerDuringRefresh:

    @pytest.mark.asyncio
    async def test_trigger_while_refreshing_runs_again(self):
        gate = asyncio.Event()
        calls = []

        async def refresh():
            calls.append(1)
            if len(calls) == 1:
                await gate.wait()
            return len(calls)

        scheduler = RefreshScheduler(refresh, interval_seconds=60)
        scheduler.start()
        await asyncio.sleep(0.01)
        assert len(calls) == 1

        scheduler.trigger()
        gate.set()
        await asyncio.sleep(0.01)

        assert len(calls) == 2
        await scheduler.stop()
