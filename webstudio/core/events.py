"""
Event system for the webstudio console.

The state manager publishes an event for every committed change (entity
saved or deleted, translation saved, containers cleaned, data loaded).
Views, audit logs and tests subscribe to the patterns they care about.
"""

from __future__ import annotations

import fnmatch
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from webstudio.core.utils import generate_id

logger = logging.getLogger(__name__)

# Type for event handlers
EventHandler = Callable[["Event"], Awaitable[None]]


@dataclass
class Event:
    """
    An event in the system.

    Events are immutable records of something that happened. They carry
    all the context needed for handlers to process them.
    """

    event_type: str  # e.g., "news.deleted", "translation.saved"
    subject_id: str  # id of the entity (or composite row id) concerned
    payload: dict[str, Any] = field(default_factory=dict)

    id: str = field(default_factory=lambda: generate_id("evt"))

    # Timing
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        """Serialize event to dictionary."""
        return {
            "id": self.id,
            "event_type": self.event_type,
            "subject_id": self.subject_id,
            "payload": self.payload,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class Subscription:
    """A subscription to events matching a pattern."""

    pattern: str  # e.g., "*.deleted" or "translation.saved"
    handler: EventHandler

    def matches(self, event: Event) -> bool:
        return fnmatch.fnmatch(event.event_type, self.pattern)


class EventBus:
    """
    In-memory event bus.

    Handlers run in subscription order; a failing handler is logged and
    does not stop the others.
    """

    def __init__(self, max_history: int = 10000):
        self._subscriptions: list[Subscription] = []
        self._event_history: list[Event] = []
        self._max_history = max_history

    def subscribe(self, pattern: str, handler: EventHandler) -> Subscription:
        """
        Subscribe to events matching a pattern.

        Args:
            pattern: Event type pattern (supports wildcards like "*.deleted")
            handler: Async function to handle matching events

        Returns:
            The subscription object (can be used to unsubscribe)
        """
        subscription = Subscription(pattern=pattern, handler=handler)
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a subscription."""
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    async def publish(self, event: Event) -> None:
        """Record an event and dispatch it to every matching handler."""
        self._event_history.append(event)
        if len(self._event_history) > self._max_history:
            self._event_history = self._event_history[-self._max_history:]

        matching = [s for s in self._subscriptions if s.matches(event)]
        for subscription in matching:
            try:
                await subscription.handler(event)
            except Exception as e:
                # Log error but don't stop other handlers
                logger.error(f"Error in event handler for {event.event_type}: {e}")

    def get_history(
        self,
        event_type: str | None = None,
        subject_id: str | None = None,
        limit: int = 100,
    ) -> list[Event]:
        """Query event history with optional filters."""
        results = self._event_history

        if event_type:
            results = [e for e in results if fnmatch.fnmatch(e.event_type, event_type)]

        if subject_id:
            results = [e for e in results if e.subject_id == subject_id]

        return results[-limit:]
