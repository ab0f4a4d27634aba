"""Monitor an interactive surface until it completes, is closed, or times out.

The surface is owned by the user and by whatever renders it, so nothing
signals us; everything is polled. A session runs in two phases on the
current asyncio loop, driven by one re-armed ``loop.call_later`` timer:

1. **Same-origin gate** -- wait until the surface location is readable
   (the browser came back to our origin). This phase is not bounded by the
   timeout, so the wall-clock time to a timeout can exceed ``timeout_ms``
   when the user lingers on the authorization server.
2. **Poll loop** -- on every tick, in this order: closed means cancelled,
   a recognized hash means success, otherwise count the tick and time out
   once ``ticks > max_ticks``.

The next tick is armed only after the current one has been evaluated, so
ticks never overlap. The first terminal condition wins: the session
releases its timer (and closes the surface unless the user already did)
before the result future is resolved.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from popauth.constants import BLANK_PAGE_HREF, DEFAULT_POPUP_TIMEOUT_MS, POLL_INTERVAL_MS
from popauth.exceptions import (
    CrossOriginError,
    InvalidUsageError,
    MonitorTimeoutError,
    UserCancelledError,
)
from popauth.models import MonitorOutcome, MonitorResult
from popauth.output import debug, warning
from popauth.surface.base import Surface
from popauth.urls import hash_contains_known_properties


class MonitorSession:
    """Ephemeral state of one monitoring run.

    Each session owns its timer handle, tick counter and result future;
    nothing is shared between sessions.

    Args:
        surface: The surface being watched.
        max_ticks: Tick budget; the session times out on tick
            ``max_ticks + 1``.
        poll_interval_ms: Delay between two ticks.
        loop: The event loop that drives the timer.
    """

    def __init__(
        self,
        surface: Surface,
        max_ticks: int,
        poll_interval_ms: int,
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        self.surface = surface
        self.max_ticks = max_ticks
        self.ticks = 0
        self.same_origin = False
        self._interval = poll_interval_ms / 1000
        self._loop = loop
        self._timer: Optional[asyncio.TimerHandle] = None
        self._result: asyncio.Future[MonitorResult] = loop.create_future()

    @property
    def done(self) -> bool:
        """Whether the terminal transition has happened."""
        return self._result.done()

    @property
    def timer_active(self) -> bool:
        return self._timer is not None

    def start(self) -> None:
        if self._timer is None and not self.done:
            self._arm()

    async def wait(self) -> MonitorResult:
        """Wait for the terminal result.

        If the waiting task is cancelled, the timer is released (the
        surface is left alone) and the cancellation propagates.
        """
        try:
            return await self._result
        except asyncio.CancelledError:
            self.release()
            raise

    def release(self, surface: Optional[Surface] = None) -> None:
        """Release the session's resources. Safe to call any number of times.

        Cancels and clears the timer. Closes *surface* when it is given and
        not already closed.
        """
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if surface is not None and not surface.closed:
            surface.close()

    def check_same_origin(self) -> None:
        """One gate step: cancel on close, open the gate once readable."""
        if self.surface.closed:
            self._finish(MonitorResult.cancelled(self.ticks), close_surface=False)
            return
        try:
            href = self.surface.location_href
        except CrossOriginError:
            return
        if href and href != BLANK_PAGE_HREF:
            self.same_origin = True
            debug(f"Surface '{self.surface.name}' is back on our origin")

    def evaluate(self) -> None:
        """One poll step of the monitoring loop."""
        if self.surface.closed:
            self._finish(MonitorResult.cancelled(self.ticks), close_surface=False)
            return

        try:
            content_hash = self.surface.location_hash
        except CrossOriginError:
            # Navigated away again; keep the clock running.
            content_hash = ""

        if hash_contains_known_properties(content_hash):
            self._finish(MonitorResult.success(content_hash, self.ticks), close_surface=True)
            return

        self.ticks += 1
        if self.ticks > self.max_ticks:
            self._finish(MonitorResult.timed_out(self.ticks), close_surface=True)

    def _arm(self) -> None:
        self._timer = self._loop.call_later(self._interval, self._tick)

    def _tick(self) -> None:
        self._timer = None
        if self.done:
            return
        try:
            if self.same_origin:
                self.evaluate()
            else:
                self.check_same_origin()
        except Exception as exc:
            self.release()
            if not self.done:
                self._result.set_exception(exc)
            return
        if not self.done:
            self._arm()

    def _finish(self, result: MonitorResult, close_surface: bool) -> None:
        if self.done:
            return
        self.release(self.surface if close_surface else None)
        self._result.set_result(result)


class SurfaceMonitor:
    """Resolve a launched surface into success, cancellation, or timeout.

    Args:
        poll_interval_ms: Delay between ticks. Defaults to
            :data:`~popauth.constants.POLL_INTERVAL_MS`.

    Example::

        monitor = SurfaceMonitor()
        response_hash = await monitor.wait_for_completion(surface, 60000)
    """

    def __init__(self, poll_interval_ms: int = POLL_INTERVAL_MS) -> None:
        if poll_interval_ms <= 0:
            raise InvalidUsageError(f"poll_interval_ms must be positive, got {poll_interval_ms}")
        self.poll_interval_ms = poll_interval_ms

    def start_session(self, surface: Surface, timeout_ms: int) -> MonitorSession:
        """Create and start a session on the running event loop.

        Emits a warning when *timeout_ms* is below
        :data:`~popauth.constants.DEFAULT_POPUP_TIMEOUT_MS`; the budget is
        used as given either way.
        """
        if timeout_ms < DEFAULT_POPUP_TIMEOUT_MS:
            warning(
                f"Popup timeout set to lower ({timeout_ms}ms) than the default "
                f"({DEFAULT_POPUP_TIMEOUT_MS}ms). This may result in timeouts."
            )

        max_ticks = timeout_ms // self.poll_interval_ms
        session = MonitorSession(
            surface, max_ticks, self.poll_interval_ms, asyncio.get_running_loop()
        )
        session.start()
        return session

    async def monitor(self, surface: Surface, timeout_ms: int) -> MonitorResult:
        """Watch *surface* and return the tagged terminal result."""
        session = self.start_session(surface, timeout_ms)
        result = await session.wait()
        debug(f"Surface '{surface.name}' finished: {result.outcome.value} after {result.ticks} ticks")
        return result

    async def wait_for_completion(self, surface: Surface, timeout_ms: int) -> str:
        """Watch *surface* until it shows a recognized hash.

        Args:
            surface: The launched surface.
            timeout_ms: Monitoring budget, counted from the moment the
                surface is back on our origin.

        Returns:
            The recognized location hash, e.g. ``"#code=...&state=..."``.

        Raises:
            UserCancelledError: If the surface was closed first.
            MonitorTimeoutError: If the tick budget ran out.
        """
        result = await self.monitor(surface, timeout_ms)
        if result.outcome == MonitorOutcome.SUCCESS:
            assert result.hash is not None
            return result.hash
        if result.outcome == MonitorOutcome.CANCELLED:
            raise UserCancelledError()
        raise MonitorTimeoutError()
