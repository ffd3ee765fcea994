"""
Tests for match timers and configuration.
"""

import asyncio
import logging

import pytest

from ..config import GameConfig
from ..session.timers import TimerScope
from .conftest import settle


class TestTimerScope:
    """Tests for TimerScope."""

    def test_call_later_runs_once(self):
        calls = []

        async def scenario():
            scope = TimerScope()
            scope.call_later(0, calls.append, "fired")
            await scope.join()
            await settle()
            return scope

        scope = asyncio.run(scenario())
        assert calls == ["fired"]
        assert scope.pending == 0

    def test_async_callbacks_are_awaited(self):
        calls = []

        async def record(value):
            await asyncio.sleep(0)
            calls.append(value)

        async def scenario():
            scope = TimerScope()
            scope.call_later(0, record, 7)
            await scope.join()

        asyncio.run(scenario())
        assert calls == [7]

    def test_call_every_repeats_until_cancelled(self):
        calls = []

        async def scenario():
            scope = TimerScope()
            scope.call_every(0, lambda: calls.append(1))
            await settle(10)
            scope.cancel()
            count = len(calls)
            await settle(10)
            return count

        count = asyncio.run(scenario())
        assert count >= 2
        assert len(calls) == count

    def test_cancel_drops_pending_timers(self):
        calls = []

        async def scenario():
            scope = TimerScope()
            scope.call_later(0, calls.append, "late")
            scope.cancel()
            await settle()

        asyncio.run(scenario())
        assert calls == []

    def test_closed_scope_refuses_timers(self):
        async def scenario():
            scope = TimerScope("room X")
            scope.cancel()
            scope.call_later(0, print)

        with pytest.raises(RuntimeError, match="room X"):
            asyncio.run(scenario())

    def test_failing_callback_is_logged_and_ticker_continues(self, caplog):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise ValueError("boom")

        async def scenario():
            scope = TimerScope("ticker")
            scope.call_every(0, flaky)
            await settle(10)
            scope.cancel()

        with caplog.at_level(logging.ERROR):
            asyncio.run(scenario())

        assert len(calls) >= 2
        assert "failed in ticker" in caplog.text


class TestGameConfig:
    """Tests for GameConfig."""

    def test_defaults(self):
        config = GameConfig()

        assert config.turn_seconds == 30.0
        assert config.strike_limit == 2
        assert config.janken_delay == 3.0
        assert config.allow_self_attack

    def test_from_env_parses_types(self):
        config = GameConfig.from_env({
            "CHOPSTICKS_TURN_SECONDS": "20",
            "CHOPSTICKS_STRIKE_LIMIT": "3",
            "CHOPSTICKS_ALLOW_SELF_ATTACK": "no",
            "CHOPSTICKS_SYNC_MODE": "poll",
            "UNRELATED": "1",
        })

        assert config.turn_seconds == 20.0
        assert config.strike_limit == 3
        assert config.allow_self_attack is False
        assert config.sync_mode == "poll"

    def test_unknown_sync_mode_rejected(self):
        with pytest.raises(ValueError):
            GameConfig(sync_mode="carrier-pigeon")

    def test_strike_limit_must_be_positive(self):
        with pytest.raises(ValueError):
            GameConfig(strike_limit=0)
