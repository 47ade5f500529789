"""Periodic refresh driver.

The engine's operations are plain request/response calls. Re-fetching on
an interval belongs to whoever presents the data; RefreshScheduler is
that driver. It owns cadence, backoff after failures, and cancellation.
Cancelling mid-refresh discards the partial result.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from app.core.config import REFRESH_INTERVAL_SECONDS, REFRESH_MAX_BACKOFF_SECONDS

log = logging.getLogger(__name__)

T = TypeVar("T")


class RefreshScheduler(Generic[T]):
    """Calls an async refresh function on an interval.

    After consecutive failures the delay doubles up to max_backoff_seconds
    and resets on the next success.
    """

    def __init__(
        self,
        refresh: Callable[[], Awaitable[T]],
        interval_seconds: float = REFRESH_INTERVAL_SECONDS,
        max_backoff_seconds: float = REFRESH_MAX_BACKOFF_SECONDS,
        on_result: Optional[Callable[[T], Any]] = None,
        on_error: Optional[Callable[[Exception], Any]] = None,
        name: str = "refresh",
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._refresh = refresh
        self._interval = interval_seconds
        self._max_backoff = max(max_backoff_seconds, interval_seconds)
        self._on_result = on_result
        self._on_error = on_error
        self._name = name
        self._task: Optional[asyncio.Task] = None
        self._wake = asyncio.Event()
        self.failures: int = 0
        self.runs: int = 0
        self.last_result: Optional[T] = None
        self.last_error: Optional[Exception] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def next_delay(self) -> float:
        """Seconds to wait before the next refresh."""
        if self.failures == 0:
            return self._interval
        return min(self._interval * (2 ** self.failures), self._max_backoff)

    async def run_once(self) -> Optional[T]:
        """Run one refresh now, recording the outcome.

        Refresh exceptions are recorded and passed to on_error; they do
        not propagate, and neither do exceptions raised by the callbacks.
        Cancellation does.
        """
        self.runs += 1
        try:
            result = await self._refresh()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.failures += 1
            self.last_error = e
            log.warning(
                f"{self._name} failed ({self.failures} consecutive): {e}; "
                f"next attempt in {self.next_delay():.1f}s"
            )
            self._notify(self._on_error, e)
            return None

        self.failures = 0
        self.last_error = None
        self.last_result = result
        self._notify(self._on_result, result)
        return result

    def _notify(self, callback: Optional[Callable[[Any], Any]], value: Any) -> None:
        if callback is None:
            return
        try:
            callback(value)
        except Exception:
            log.exception(f"{self._name} callback {getattr(callback, '__name__', callback)!r} failed")

    def trigger(self) -> None:
        """Refresh now instead of waiting out the current delay (user action)."""
        self._wake.set()

    async def _loop(self) -> None:
        while True:
            # Cleared first so a trigger() during the refresh is not lost
            self._wake.clear()
            await self.run_once()
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self.next_delay())
            except asyncio.TimeoutError:
                pass

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())
        log.info(f"{self._name} scheduler started (interval: {self._interval}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        except Exception:
            log.exception(f"{self._name} scheduler task had failed")
        self._task = None
        log.info(f"{self._name} scheduler stopped")
