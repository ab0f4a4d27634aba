"""Tests for the surface monitor: same-origin gate, poll loop, and cleanup."""

from __future__ import annotations

import asyncio
from unittest.mock import patch

import pytest

from popauth.constants import DEFAULT_POPUP_TIMEOUT_MS
from popauth.exceptions import InvalidUsageError, MonitorTimeoutError, UserCancelledError
from popauth.models import MonitorOutcome
from popauth.monitor import SurfaceMonitor

SUCCESS_HASH = "#code=auth-code-123&state=xyz"


@pytest.fixture
def monitor() -> SurfaceMonitor:
    return SurfaceMonitor(poll_interval_ms=2)


# -------------------------------------------------------------------------
# Terminal outcomes
# -------------------------------------------------------------------------


class TestTerminalOutcomes:
    @pytest.mark.asyncio
    async def test_success_returns_hash_and_closes_surface(self, monitor, make_surface) -> None:
        surface = make_surface(hashes=["", "", SUCCESS_HASH])

        result = await monitor.wait_for_completion(surface, 100)

        assert result == SUCCESS_HASH
        assert surface.closed
        assert surface.close_calls == 1

    @pytest.mark.asyncio
    async def test_user_close_raises_cancelled_without_reclosing(self, monitor, make_surface) -> None:
        surface = make_surface()
        asyncio.get_running_loop().call_later(0.01, surface.user_close)

        with pytest.raises(UserCancelledError):
            await monitor.wait_for_completion(surface, 10_000)

        assert surface.close_calls == 0

    @pytest.mark.asyncio
    async def test_unchanged_surface_times_out_and_is_closed(self, monitor, make_surface) -> None:
        surface = make_surface()

        with pytest.raises(MonitorTimeoutError):
            await monitor.wait_for_completion(surface, 10)

        assert surface.close_calls == 1

    @pytest.mark.asyncio
    async def test_closed_wins_over_recognized_hash(self, monitor, make_surface) -> None:
        surface = make_surface(hashes=[SUCCESS_HASH])
        surface.user_close()

        result = await monitor.monitor(surface, 100)

        assert result.outcome == MonitorOutcome.CANCELLED
        assert result.hash is None
        assert surface.hash_reads == 0

    @pytest.mark.asyncio
    async def test_unrecognized_hash_keeps_polling(self, monitor, make_surface) -> None:
        surface = make_surface(hashes=["#foo=bar", "#state=", SUCCESS_HASH])

        result = await monitor.monitor(surface, 100)

        assert result.outcome == MonitorOutcome.SUCCESS
        assert surface.hash_reads == 3

    @pytest.mark.asyncio
    async def test_error_hash_counts_as_success(self, monitor, make_surface) -> None:
        surface = make_surface(hashes=["#error=access_denied&error_description=nope"])

        result = await monitor.wait_for_completion(surface, 100)

        assert result.startswith("#error=access_denied")


# -------------------------------------------------------------------------
# Tick budget
# -------------------------------------------------------------------------


class TestTickBudget:
    @pytest.mark.asyncio
    async def test_hash_on_tick_two_resolves_before_tick_four(self, monitor, make_surface) -> None:
        # timeout 6 / interval 2 -> max_ticks 3
        surface = make_surface(hashes=["", SUCCESS_HASH])

        result = await monitor.monitor(surface, 6)

        assert result.outcome == MonitorOutcome.SUCCESS
        assert result.hash == SUCCESS_HASH
        assert surface.hash_reads == 2
        assert result.ticks == 1

    @pytest.mark.asyncio
    async def test_unchanged_surface_times_out_on_tick_four(self, monitor, make_surface) -> None:
        surface = make_surface()

        result = await monitor.monitor(surface, 6)

        assert result.outcome == MonitorOutcome.TIMED_OUT
        assert result.ticks == 4
        assert surface.hash_reads == 4

    @pytest.mark.asyncio
    async def test_max_ticks_is_floored(self, monitor, make_surface) -> None:
        # 7 / 2 -> 3 ticks, not 3.5
        surface = make_surface()

        session = monitor.start_session(surface, 7)
        result = await session.wait()

        assert session.max_ticks == 3
        assert result.ticks == 4

    def test_non_positive_interval_rejected(self) -> None:
        with pytest.raises(InvalidUsageError):
            SurfaceMonitor(poll_interval_ms=0)


# -------------------------------------------------------------------------
# Same-origin gate
# -------------------------------------------------------------------------


class TestSameOriginGate:
    @pytest.mark.asyncio
    async def test_cross_origin_period_does_not_consume_budget(self, monitor, make_surface) -> None:
        surface = make_surface(hrefs=[None] * 10 + ["http://127.0.0.1:8400/cb"])

        result = await monitor.monitor(surface, 4)

        assert result.outcome == MonitorOutcome.TIMED_OUT
        assert result.ticks == 3
        assert surface.href_reads == 11

    @pytest.mark.asyncio
    async def test_blank_pages_keep_the_gate_closed(self, monitor, make_surface) -> None:
        surface = make_surface(
            hrefs=["about:blank", "", "http://127.0.0.1:8400/cb"],
            hashes=[SUCCESS_HASH],
        )

        result = await monitor.monitor(surface, 100)

        assert result.outcome == MonitorOutcome.SUCCESS
        assert surface.href_reads == 3

    @pytest.mark.asyncio
    async def test_close_during_gate_is_cancelled(self, monitor, make_surface) -> None:
        surface = make_surface(hrefs=[None])
        asyncio.get_running_loop().call_later(0.02, surface.user_close)

        result = await monitor.monitor(surface, 4)

        assert result.outcome == MonitorOutcome.CANCELLED
        assert result.ticks == 0
        assert surface.hash_reads == 0
        assert surface.close_calls == 0

    @pytest.mark.asyncio
    async def test_cross_origin_read_after_gate_counts_as_no_hash(self, monitor, make_surface) -> None:
        surface = make_surface(hashes=[None, None, SUCCESS_HASH])

        result = await monitor.monitor(surface, 100)

        assert result.outcome == MonitorOutcome.SUCCESS
        assert result.ticks == 2


# -------------------------------------------------------------------------
# Low-timeout warning
# -------------------------------------------------------------------------


class TestTimeoutWarning:
    @pytest.mark.asyncio
    async def test_warns_once_below_default(self, monitor, make_surface) -> None:
        surface = make_surface()

        with patch("popauth.monitor.warning") as mock_warning:
            with pytest.raises(MonitorTimeoutError):
                await monitor.wait_for_completion(surface, 10)

        mock_warning.assert_called_once()
        assert "10ms" in mock_warning.call_args.args[0]

    @pytest.mark.asyncio
    async def test_warning_independent_of_outcome(self, monitor, make_surface) -> None:
        surface = make_surface(hashes=[SUCCESS_HASH])

        with patch("popauth.monitor.warning") as mock_warning:
            await monitor.wait_for_completion(surface, 10)

        mock_warning.assert_called_once()

    @pytest.mark.asyncio
    async def test_no_warning_at_default(self, monitor, make_surface) -> None:
        surface = make_surface()
        surface.user_close()

        with patch("popauth.monitor.warning") as mock_warning:
            with pytest.raises(UserCancelledError):
                await monitor.wait_for_completion(surface, DEFAULT_POPUP_TIMEOUT_MS)

        mock_warning.assert_not_called()


# -------------------------------------------------------------------------
# Cleanup
# -------------------------------------------------------------------------


class TestCleanup:
    @pytest.mark.asyncio
    async def test_release_twice_is_harmless(self, monitor, make_surface) -> None:
        surface = make_surface(hrefs=[None])
        session = monitor.start_session(surface, 100)
        assert session.timer_active

        session.release(surface)
        session.release(surface)
        session.release()

        assert not session.timer_active
        assert surface.close_calls == 1

    @pytest.mark.asyncio
    async def test_release_skips_already_closed_surface(self, monitor, make_surface) -> None:
        surface = make_surface()
        surface.user_close()
        session = monitor.start_session(surface, 100)

        session.release(surface)

        assert surface.close_calls == 0
        session.release()

    @pytest.mark.asyncio
    async def test_duplicate_terminal_trigger_is_ignored(self, monitor, make_surface) -> None:
        surface = make_surface(hashes=[SUCCESS_HASH])
        session = monitor.start_session(surface, 100)
        result = await session.wait()

        # The surface is closed now; another evaluation must not resolve twice
        # or close again.
        session.evaluate()
        session.check_same_origin()

        assert result.outcome == MonitorOutcome.SUCCESS
        assert (await session.wait()) == result
        assert surface.close_calls == 1

    @pytest.mark.asyncio
    async def test_timer_released_on_every_terminal_path(self, monitor, make_surface) -> None:
        success = make_surface(hashes=[SUCCESS_HASH])
        timed_out = make_surface()
        cancelled = make_surface()
        cancelled.user_close()

        sessions = [monitor.start_session(s, 6) for s in (success, timed_out, cancelled)]
        await asyncio.gather(*(s.wait() for s in sessions))

        assert not any(s.timer_active for s in sessions)

    @pytest.mark.asyncio
    async def test_cancelling_the_waiter_releases_timer_only(self, monitor, make_surface) -> None:
        surface = make_surface(hrefs=[None])
        session = monitor.start_session(surface, 100)
        waiter = asyncio.ensure_future(session.wait())
        await asyncio.sleep(0.01)

        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        assert not session.timer_active
        assert surface.close_calls == 0
        assert not surface.closed

    @pytest.mark.asyncio
    async def test_surface_failure_is_delivered_to_caller(self, monitor, make_surface) -> None:
        surface = make_surface()
        session = monitor.start_session(surface, 100)

        with patch.object(
            type(surface), "location_hash", property(lambda self: 1 / 0)
        ):
            with pytest.raises(ZeroDivisionError):
                await session.wait()

        assert not session.timer_active


# -------------------------------------------------------------------------
# Concurrency
# -------------------------------------------------------------------------


class TestConcurrentSessions:
    @pytest.mark.asyncio
    async def test_sessions_do_not_share_state(self, monitor, make_surface) -> None:
        fast = make_surface(name="fast", hashes=["", SUCCESS_HASH])
        slow = make_surface(name="slow")

        fast_result, slow_result = await asyncio.gather(
            monitor.monitor(fast, 6), monitor.monitor(slow, 10)
        )

        assert fast_result.outcome == MonitorOutcome.SUCCESS
        assert fast_result.ticks == 1
        assert slow_result.outcome == MonitorOutcome.TIMED_OUT
        assert slow_result.ticks == 6
        assert fast.close_calls == 1
        assert slow.close_calls == 1

    @pytest.mark.asyncio
    async def test_one_cancel_does_not_affect_other(self, monitor, make_surface) -> None:
        left = make_surface(name="left")
        right = make_surface(name="right", hashes=["", "", SUCCESS_HASH])
        left.user_close()

        results = await asyncio.gather(
            monitor.monitor(left, 100), monitor.monitor(right, 100)
        )

        assert [r.outcome for r in results] == [
            MonitorOutcome.CANCELLED,
            MonitorOutcome.SUCCESS,
        ]
        assert right.close_calls == 1
