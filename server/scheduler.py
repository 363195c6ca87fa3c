from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict

from game.constants import PHASE_RUNNING, TICK_RATE
from game.room import PongRoom


logger = logging.getLogger(__name__)

Broadcast = Callable[[PongRoom], Awaitable[None]]


class TickScheduler:
    """One tick-then-broadcast task per running room."""

    def __init__(self, broadcast: Broadcast, tick_rate: int = TICK_RATE):
        self.broadcast = broadcast
        self.tick_rate = tick_rate
        self.tasks: Dict[str, asyncio.Task] = {}

    @property
    def interval(self) -> float:
        return 1 / self.tick_rate

    def is_running(self, room_id: str) -> bool:
        task = self.tasks.get(room_id)
        return task is not None and not task.done()

    def active_count(self) -> int:
        return sum(1 for task in self.tasks.values() if not task.done())

    def start(self, room: PongRoom) -> bool:
        if self.is_running(room.room_id):
            return False
        if room.phase != PHASE_RUNNING:
            return False
        self.tasks[room.room_id] = asyncio.create_task(self._run(room), name=f"tick:{room.room_id}")
        logger.debug("tick loop started for room %s", room.room_id)
        return True

    def stop(self, room_id: str) -> bool:
        task = self.tasks.pop(room_id, None)
        if task is None:
            return False
        # Stopping from inside the loop (e.g. a broadcast callback) just drops the handle;
        # the loop notices on its next pass.
        if task is not asyncio.current_task():
            task.cancel()
        logger.debug("tick loop stopped for room %s", room_id)
        return True

    async def stop_all(self) -> None:
        tasks = list(self.tasks.values())
        self.tasks.clear()
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _run(self, room: PongRoom) -> None:
        me = asyncio.current_task()
        try:
            while self.tasks.get(room.room_id) is me:
                await asyncio.sleep(self.interval)
                try:
                    room.tick()
                    await self.broadcast(room)
                except asyncio.CancelledError:
                    raise
                except Exception:
                    logger.exception("tick failed for room %s", room.room_id)
                if room.phase != PHASE_RUNNING:
                    break
        finally:
            if self.tasks.get(room.room_id) is me:
                self.tasks.pop(room.room_id, None)
