"""Event Bus - shared inbound event feed.

A backend owns one bus and publishes every protocol event it receives,
whatever target it came from. Clients subscribe and filter by origin, so the
bus itself never looks at the source.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from .target import Target

logger = logging.getLogger(__name__)

# (source, qualified event name, params)
EventCallback = Callable[[Target, str, dict[str, Any]], Awaitable[None] | None]


class EventBus:
    """Broadcast channel with one producer and any number of subscribers.

    Subscribers are invoked in subscription order. A subscriber that raises
    is logged and does not stop delivery to the remaining subscribers.
    """

    def __init__(self) -> None:
        self._subscribers: list[EventCallback] = []
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: EventCallback) -> Callable[[], None]:
        """Register a callback for every published event.

        Args:
            callback: Sync or async function called with
                ``(source, method, params)``

        Returns:
            Unsubscribe function (safe to call more than once)
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def publish(self, source: Target, method: str, params: dict[str, Any] | None = None) -> None:
        """Deliver an event to all current subscribers."""
        payload = params if params is not None else {}

        # Copy so subscribers may unsubscribe while being notified
        for callback in list(self._subscribers):
            try:
                result = callback(source, method, payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Error in subscriber for {method} from {source}")

    def publish_nowait(
        self, source: Target, method: str, params: dict[str, Any] | None = None
    ) -> asyncio.Task[None]:
        """Schedule a publish on the running loop (for sync producers)."""
        task = asyncio.get_running_loop().create_task(self.publish(source, method, params))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for every publish scheduled with publish_nowait."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def clear(self) -> None:
        """Drop every subscriber."""
        self._subscribers = []
