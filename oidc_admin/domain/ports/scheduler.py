"""Port interface for timed status transitions."""

import asyncio
from abc import ABC, abstractmethod


class Scheduler(ABC):
    """Waits between user-facing status transitions."""

    @abstractmethod
    async def sleep(self, seconds: float) -> None:
        """Suspend the current task for ``seconds``."""
        pass


class AsyncioScheduler(Scheduler):
    """Scheduler backed by the running event loop."""

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)
