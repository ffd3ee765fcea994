"""
Timers - Cooperative timers tied to a match lifecycle.

Every match owns one TimerScope. The turn clock ticker, the heartbeat,
the computer's thinking delay and the janken display delay all run in
it, so leaving or resetting a match cancels them together and no stale
callback can touch a superseded state.
"""

from __future__ import annotations
from typing import Any, Awaitable, Callable
import asyncio
import inspect
import logging


logger = logging.getLogger(__name__)

TimerCallback = Callable[..., Any | Awaitable[Any]]


class TimerHandle:
    """A scheduled timer that can be cancelled on its own."""

    def __init__(self, task: asyncio.Task, repeating: bool):
        self._task = task
        self.repeating = repeating

    def cancel(self) -> None:
        self._task.cancel()

    @property
    def done(self) -> bool:
        return self._task.done()


class TimerScope:
    """
    Owns a group of asyncio timer tasks.

    Usage:
        scope = TimerScope("room ABC123")
        scope.call_every(0.1, clock_tick)
        scope.call_later(3.0, resolve_janken, round_id)
        ...
        scope.cancel()
    """

    def __init__(self, name: str = "match"):
        self.name = name
        self._handles: set[TimerHandle] = set()
        self._closed = False

    def call_later(self, delay: float, callback: TimerCallback, *args) -> TimerHandle:
        """Run callback once after delay seconds."""
        return self._start(self._run_later(delay, callback, args), repeating=False)

    def call_every(self, interval: float, callback: TimerCallback, *args) -> TimerHandle:
        """Run callback every interval seconds until cancelled."""
        return self._start(self._run_every(interval, callback, args), repeating=True)

    def cancel(self) -> None:
        """Cancel every timer. The scope accepts no new timers afterwards."""
        self._closed = True
        for handle in list(self._handles):
            handle.cancel()
        self._handles.clear()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        return sum(1 for handle in self._handles if not handle.done)

    async def join(self) -> None:
        """Wait until no one-shot timer is pending (repeating ones keep running)."""
        while True:
            tasks = [
                handle._task for handle in self._handles
                if not handle.repeating and not handle.done
            ]
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)

    def _start(self, coro: Awaitable[None], repeating: bool) -> TimerHandle:
        if self._closed:
            coro.close()
            raise RuntimeError(f"Timer scope {self.name} is closed")
        task = asyncio.get_running_loop().create_task(coro)
        handle = TimerHandle(task, repeating)
        self._handles.add(handle)
        task.add_done_callback(lambda _: self._handles.discard(handle))
        return handle

    async def _run_later(self, delay: float, callback: TimerCallback, args: tuple) -> None:
        await asyncio.sleep(delay)
        await self._invoke(callback, args)

    async def _run_every(self, interval: float, callback: TimerCallback, args: tuple) -> None:
        while True:
            await asyncio.sleep(interval)
            await self._invoke(callback, args)

    async def _invoke(self, callback: TimerCallback, args: tuple) -> None:
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Timer callback %r failed in %s", callback, self.name)
