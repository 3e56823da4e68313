"""Fire-and-forget scheduling for the synchronous entry points.

UI-style callers invoke ``record.save_changes()`` and move on; the coroutine
runs as an independent task on the current event loop. Callers that need the
outcome await ``record.save_changes_async()`` directly instead.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

logger = logging.getLogger(__name__)

# Strong references so pending tasks are not garbage collected mid-flight
_pending: set[asyncio.Task[Any]] = set()


def spawn(
    coro_fn: Callable[[], Coroutine[Any, Any, Any]], description: str
) -> asyncio.Task[Any] | None:
    """Schedule ``coro_fn()`` on the running loop and return its task.

    If no event loop is running the work is skipped and ``None`` is returned.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.warning("No event loop available, skipping background %s", description)
        return None

    task = loop.create_task(coro_fn(), name=description)
    _pending.add(task)
    task.add_done_callback(_pending.discard)
    return task


async def drain() -> None:
    """Wait until every task scheduled through :func:`spawn` has finished.

    Tasks spawned while draining (cascaded saves) are awaited too.
    """
    while True:
        running = [task for task in _pending if not task.done()]
        if not running:
            return
        await asyncio.gather(*running, return_exceptions=True)
