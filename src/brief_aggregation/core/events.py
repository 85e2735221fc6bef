"""
Typed digest event channel.

The digest service publishes here after a digest is stored; consumers
(a push-notification sender, a test) subscribe and drain their own queue.
"""

import queue
import threading
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Union

from brief_aggregation.logger import get_logger
from brief_aggregation.models import utcnow

logger = get_logger(__name__)

DEFAULT_QUEUE_SIZE = 100


@dataclass(frozen=True)
class DigestAssembled:
    """A digest was assembled and stored."""

    subscriber_id: str
    digest_id: int
    digest_date: date
    total_items: int
    created_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class NotificationRequest:
    """Ask the notification collaborator to tell a subscriber about a digest."""

    subscriber_id: str
    summary: str
    type: str = "daily_digest"
    digest_id: Optional[int] = None


DigestEvent = Union[DigestAssembled, NotificationRequest]


class Subscription:
    """One consumer's view of the event bus."""

    def __init__(self, bus: "DigestEventBus", maxsize: int = DEFAULT_QUEUE_SIZE):
        if maxsize < 1:
            raise ValueError(f"Subscription queue size must be positive, got {maxsize}")
        self._bus = bus
        self._queue: "queue.Queue[DigestEvent]" = queue.Queue(maxsize=maxsize)

    def _deliver(self, event: DigestEvent) -> None:
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            logger.warning(f"Dropping {type(event).__name__}: subscriber queue is full")

    def get(self, timeout: Optional[float] = None) -> Optional[DigestEvent]:
        """Next event, or None if none arrives within ``timeout`` seconds."""
        try:
            return self._queue.get(timeout=timeout) if timeout else self._queue.get_nowait()
        except queue.Empty:
            return None

    def drain(self) -> list[DigestEvent]:
        """All events currently queued."""
        events = []
        while True:
            event = self.get()
            if event is None:
                return events
            events.append(event)

    def close(self) -> None:
        self._bus.unsubscribe(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class DigestEventBus:
    """Thread-safe fan-out of digest events to subscriptions."""

    def __init__(self):
        self._lock = threading.Lock()
        self._subscriptions: list[Subscription] = []

    def subscribe(self, maxsize: int = DEFAULT_QUEUE_SIZE) -> Subscription:
        """Open a subscription holding at most ``maxsize`` undelivered events."""
        subscription = Subscription(self, maxsize=maxsize)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def publish(self, event: DigestEvent) -> int:
        """Deliver ``event`` to every subscription.

        Returns:
            Number of subscriptions the event was offered to
        """
        with self._lock:
            targets = list(self._subscriptions)
        for subscription in targets:
            subscription._deliver(event)
        logger.debug(f"Published {type(event).__name__} to {len(targets)} subscribers")
        return len(targets)
