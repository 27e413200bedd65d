"""
Asyncio tick source for a SessionPlayer.

The timer owns at most one background task.  It follows the player through
a subscription: whenever ``player.timer_active`` becomes true a task is
created that calls ``player.tick()`` once per interval; as soon as the
player pauses, goes idle or finishes, the task is cancelled.  Leaving the
``async with`` block releases the task and the subscription, so no tick can
outlive the timer.

Usage:
    async with SessionTimer(player) as timer:
        player.resume()
        await timer.wait_stopped()
"""

import asyncio
import logging
from typing import Awaitable, Callable

from .config import TICK_SECONDS
from .player import SessionPlayer

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


class SessionTimer:
    """Scoped, cancellable one-second ticker bound to a player."""

    def __init__(
        self,
        player: SessionPlayer,
        interval: float = TICK_SECONDS,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.player = player
        self.interval = interval
        self._sleep = sleep
        self._task: asyncio.Task | None = None
        self._open = False

    @property
    def ticking(self) -> bool:
        return self._task is not None and not self._task.done()

    async def __aenter__(self) -> "SessionTimer":
        self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def open(self) -> None:
        """Attach to the player; must be called from a running event loop."""
        if self._open:
            return
        self._open = True
        self.player.subscribe(self._on_player_change)
        self._sync()

    async def close(self) -> None:
        """Detach from the player and cancel any pending tick."""
        if not self._open:
            return
        self._open = False
        self.player.unsubscribe(self._on_player_change)
        task = self._cancel()
        if task is not None:
            await asyncio.wait({task})
            _raise_task_error(task)

    async def wait_stopped(self) -> None:
        """Return once no tick task is alive (player paused, idle or done)."""
        while self._task is not None:
            task = self._task
            await asyncio.wait({task})
            if self._task is task:
                self._task = None
            _raise_task_error(task)

    def _on_player_change(self, player: SessionPlayer) -> None:
        self._sync()

    def _sync(self) -> None:
        if not self._open:
            return
        if self.player.timer_active:
            if not self.ticking:
                self._task = asyncio.get_running_loop().create_task(self._run())
                logger.debug("Tick source started")
        else:
            self._cancel()

    def _cancel(self) -> asyncio.Task | None:
        task = self._task
        self._task = None
        if task is not None and not task.done():
            # A task cancelling itself from inside tick() stops at its next await
            task.cancel()
            logger.debug("Tick source cancelled")
        return task

    async def _run(self) -> None:
        while self.player.timer_active:
            await self._sleep(self.interval)
            if not self.player.timer_active:
                break
            self.player.tick()


def _raise_task_error(task: asyncio.Task) -> None:
    """Re-raise an exception that escaped tick() inside the task."""
    if task.done() and not task.cancelled() and task.exception() is not None:
        raise task.exception()  # type: ignore[misc]
