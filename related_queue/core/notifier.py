"""
Event notifier for queue listeners.

Listeners run as background tasks: a slow or failing listener never holds up
or breaks the sweep that emitted the event.
"""

import asyncio
import inspect
import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any
from uuid import uuid4

from related_queue.constants import QueueEvent
from related_queue.exceptions import InvalidEventError

logger = logging.getLogger(__name__)

# Listener signature: (entry, assigned_id) -> None | Awaitable[None]
Listener = Callable[..., Any]


def _as_event(event: QueueEvent | str) -> QueueEvent:
    try:
        return QueueEvent(event)
    except ValueError:
        raise InvalidEventError(event) from None


class EventNotifier:
    """
    Fan-out of queue events to registered listeners.

    Listeners are keyed by a generated registration id so that each
    registration can be removed independently.
    """

    def __init__(self):
        self._listeners: dict[QueueEvent, dict[str, Listener]] = defaultdict(dict)
        self._pending: set[asyncio.Task] = set()

    def subscribe(self, event: QueueEvent | str, listener: Listener) -> Callable[[], None]:
        """
        Register a listener.

        Args:
            event: The event to listen for.
            listener: Sync or async callable invoked with the event arguments.

        Returns:
            A function that removes this registration.

        Raises:
            InvalidEventError: If the event is not one the queue emits.
        """
        queue_event = _as_event(event)
        if not callable(listener):
            raise TypeError("Listener must be callable")

        registration_id = uuid4().hex
        self._listeners[queue_event][registration_id] = listener

        def unsubscribe() -> None:
            self._listeners[queue_event].pop(registration_id, None)

        return unsubscribe

    def listener_count(self, event: QueueEvent | str) -> int:
        """Get the number of listeners registered for an event."""
        return len(self._listeners.get(_as_event(event), {}))

    def emit(self, event: QueueEvent, *args: Any) -> None:
        """
        Dispatch an event to its listeners without waiting for them.

        Must be called from within a running event loop.
        """
        listeners = list(self._listeners.get(event, {}).values())

        for listener in listeners:
            task = asyncio.create_task(self._dispatch(event, listener, args))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _dispatch(self, event: QueueEvent, listener: Listener, args: tuple) -> None:
        try:
            result = listener(*args)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(
                "Queue event listener failed",
                extra={"event": str(event)},
            )

    async def join(self) -> None:
        """Wait for all dispatched listeners to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
