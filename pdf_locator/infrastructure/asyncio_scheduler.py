# pdf_locator/infrastructure/asyncio_scheduler.py

import asyncio
from typing import Callable, Optional

from pdf_locator.domain.interfaces import SchedulerPort


class AsyncioScheduler(SchedulerPort):
    """
    Timer-based scheduling on an asyncio event loop. Nothing blocks:
    callbacks run on the loop after the delay and can be cancelled
    through the returned asyncio.TimerHandle.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        # Without an explicit loop, the loop running at call time is used
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)
