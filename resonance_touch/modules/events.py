"""
Event channel owned by an orchestrator or a personalization store.

Subscribers register per event type, or for every type at once, and are
called in registration order. Each emit awaits every subscriber before
returning, so a subscriber sees the events of one sample in the order
they were published.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Type, Union

from resonance_touch.constants import EventType

logger = logging.getLogger("resonance_touch.events")

Subscriber = Callable[[Any], Union[None, Awaitable[None]]]
WildcardSubscriber = Callable[[Enum, Any], Union[None, Awaitable[None]]]


class EventChannel:
    """Typed callback registry."""

    def __init__(self, event_types: Type[Enum] = EventType) -> None:
        self.event_types = event_types
        self._subscribers: Dict[Enum, List[Subscriber]] = {
            event_type: [] for event_type in event_types
        }
        self._wildcard: List[WildcardSubscriber] = []

    def subscribe(self, event_type: Union[Enum, str], callback: Subscriber) -> None:
        """
        Register a callback for an event type.

        Args:
            event_type: Event type or its string value
            callback: Sync function or coroutine function taking the payload
        """
        callbacks = self._subscribers[self.event_types(event_type)]
        if callback not in callbacks:
            callbacks.append(callback)

    def unsubscribe(self, event_type: Union[Enum, str], callback: Subscriber) -> None:
        """Remove a previously registered callback."""
        callbacks = self._subscribers[self.event_types(event_type)]
        if callback in callbacks:
            callbacks.remove(callback)

    def subscribe_all(self, callback: WildcardSubscriber) -> None:
        """Register a callback receiving (event_type, payload) for every event."""
        if callback not in self._wildcard:
            self._wildcard.append(callback)

    def unsubscribe_all(self, callback: WildcardSubscriber) -> None:
        if callback in self._wildcard:
            self._wildcard.remove(callback)

    def clear(self) -> None:
        for callbacks in self._subscribers.values():
            callbacks.clear()
        self._wildcard.clear()

    def subscriber_count(self, event_type: Union[Enum, str]) -> int:
        return len(self._subscribers[self.event_types(event_type)]) + len(self._wildcard)

    async def emit(self, event_type: Union[Enum, str], payload: Any) -> None:
        """
        Deliver a payload to every subscriber of the event type.

        A failing subscriber is logged and does not stop delivery to the
        others or the pipeline that emitted the event.
        """
        event_type = self.event_types(event_type)

        for callback in list(self._subscribers[event_type]):
            await self._deliver(event_type, callback, (payload,))

        for callback in list(self._wildcard):
            await self._deliver(event_type, callback, (event_type, payload))

    async def _deliver(self, event_type: Enum, callback: Callable, args: tuple) -> None:
        try:
            result = callback(*args)
            if asyncio.iscoroutine(result):
                await result
        except Exception as e:
            logger.error(
                f"Error in {event_type.value} subscriber {callback!r}: {e}",
                exc_info=True,
            )
