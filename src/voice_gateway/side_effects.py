"""Fire-and-forget side effects.

Notifications, payment links and request-log writes run as tracked
asyncio tasks so they never delay or fail the request that triggered them.
"""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger("voice-gateway-side-effects")
deadletter = logging.getLogger("voice-gateway-deadletter")


class SideEffectDispatcher:
    """Runs background coroutines and keeps a reference to each until done.

    Failures are written to the dead-letter logger and never re-raised.
    """

    def __init__(self):
        self._tasks: set[asyncio.Task] = set()
        self._failures = 0

    def spawn(self, name: str, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        """Schedule ``coro`` on the running loop."""
        task = asyncio.create_task(self._run(name, coro), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, name: str, coro: Coroutine[Any, Any, Any]) -> None:
        try:
            await coro
        except asyncio.CancelledError:
            deadletter.warning(f"[{name}] Cancelled before completion")
            raise
        except Exception as e:
            self._failures += 1
            deadletter.error(f"[{name}] Side effect failed: {e!s}", exc_info=e)

    async def drain(self, timeout: float | None = 10.0) -> None:
        """Wait for outstanding tasks, cancelling any still running at the timeout."""
        while self._tasks:
            pending = set(self._tasks)
            done, still_running = await asyncio.wait(pending, timeout=timeout)
            if still_running:
                logger.warning(f"Cancelling {len(still_running)} unfinished side effect(s)")
                for task in still_running:
                    task.cancel()
                await asyncio.gather(*still_running, return_exceptions=True)
                return

    @property
    def pending(self) -> int:
        return len(self._tasks)

    @property
    def failures(self) -> int:
        """Total number of failed side effects."""
        return self._failures
