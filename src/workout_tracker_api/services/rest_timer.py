"""Countdown timer for rest periods between sets."""
import asyncio
import logging
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from workout_tracker_api.services.observable import Observable

logger = logging.getLogger(__name__)


class RestTimerStatus(str, Enum):
    INACTIVE = "inactive"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


class RestTimerState(BaseModel):
    status: RestTimerStatus = RestTimerStatus.INACTIVE
    remaining: int = 0
    total: int = 0

    class Config:
        frozen = True


class RestTimer:
    """inactive -> active <-> paused -> completed, ticking once per second.

    Ticks are driven by an asyncio task when a loop is running; ``tick()``
    can also be called directly.
    """

    def __init__(self, tick_seconds: float = 1.0):
        self.tick_seconds = tick_seconds
        self.state: Observable[RestTimerState] = Observable(RestTimerState())
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self.state.value.status == RestTimerStatus.ACTIVE

    @property
    def is_paused(self) -> bool:
        return self.state.value.status == RestTimerStatus.PAUSED

    def start(self, duration: int) -> None:
        self.stop()
        if duration <= 0:
            return
        self.state.set(RestTimerState(status=RestTimerStatus.ACTIVE, remaining=duration, total=duration))
        self._schedule()

    def pause(self) -> None:
        current = self.state.value
        if current.status != RestTimerStatus.ACTIVE:
            return
        self._cancel_task()
        self.state.set(current.model_copy(update={"status": RestTimerStatus.PAUSED}))

    def resume(self) -> None:
        current = self.state.value
        if current.status != RestTimerStatus.PAUSED:
            return
        self.state.set(current.model_copy(update={"status": RestTimerStatus.ACTIVE}))
        self._schedule()

    def pause_resume(self) -> None:
        if self.is_running:
            self.pause()
        elif self.is_paused:
            self.resume()

    def stop(self) -> None:
        self._cancel_task()
        self.state.set(RestTimerState())

    def tick(self) -> None:
        current = self.state.value
        if current.status != RestTimerStatus.ACTIVE:
            return
        remaining = current.remaining - 1
        if remaining <= 0:
            self._cancel_task()
            self.state.set(RestTimerState(status=RestTimerStatus.COMPLETED, total=current.total))
            logger.debug("Rest timer completed")
        else:
            self.state.set(current.model_copy(update={"remaining": remaining}))

    def _schedule(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._task = loop.create_task(self._run())

    def _cancel_task(self) -> None:
        if self._task is None:
            return
        try:
            running = asyncio.current_task()
        except RuntimeError:
            running = None
        # tick() completing the countdown runs inside the task itself
        if self._task is not running:
            self._task.cancel()
        self._task = None

    async def _run(self) -> None:
        while self.is_running:
            await asyncio.sleep(self.tick_seconds)
            self.tick()
