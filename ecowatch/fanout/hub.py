"""Realtime fanout of broadcast events to connected subscribers.

Each subscriber owns a bounded queue bound to the event loop it subscribed
from. Publishing never blocks: events are handed to each loop with
`call_soon_threadsafe`, and a subscriber whose queue is full is dropped.
Subscribers only see events published while they are registered.
"""

from __future__ import annotations

import asyncio
import threading
import uuid
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable, Dict, Optional

from ecowatch.domain import BroadcastEvent, BroadcastEventType
from ecowatch.fanout.topic import BroadcastTopic, InMemoryTopic
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="fanout")

_CLOSED = None


@dataclass
class Subscription:
    """A registered subscriber."""
    handle: str
    queue: asyncio.Queue
    loop: asyncio.AbstractEventLoop
    closed: bool = field(default=False)


def format_sse(event: BroadcastEvent) -> str:
    """Encode an event as one Server-Sent Events frame."""
    return f"data: {event.to_json()}\n\n"


class Fanout:
    """Subscriber registry plus the broadcast topic it listens on."""

    def __init__(
        self,
        topic: Optional[BroadcastTopic] = None,
        *,
        queue_size: int = 64,
        heartbeat_seconds: float = 15.0,
    ) -> None:
        self.topic = topic or InMemoryTopic()
        self.queue_size = queue_size
        self.heartbeat_seconds = heartbeat_seconds
        self._subscribers: Dict[str, Subscription] = {}
        self._lock = threading.Lock()
        self.topic.attach(self.dispatch)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self) -> Subscription:
        """Register a subscriber on the running event loop."""
        sub = Subscription(
            handle=str(uuid.uuid4()),
            queue=asyncio.Queue(maxsize=self.queue_size),
            loop=asyncio.get_running_loop(),
        )
        with self._lock:
            self._subscribers[sub.handle] = sub
        logger.debug("Subscriber registered", extra={"handle": sub.handle})
        return sub

    def unsubscribe(self, handle: str) -> None:
        """Remove a subscriber; unknown handles are ignored."""
        with self._lock:
            sub = self._subscribers.pop(handle, None)
        if sub is not None:
            sub.closed = True
            logger.debug("Subscriber removed", extra={"handle": handle})

    def publish(self, event: BroadcastEvent) -> bool:
        """Send an event through the topic; safe to call from any thread."""
        return self.topic.publish(event)

    def dispatch(self, event: BroadcastEvent) -> int:
        """Copy an event onto every registered subscriber's queue; return how many were scheduled."""
        with self._lock:
            targets = list(self._subscribers.values())
        scheduled = 0
        for sub in targets:
            try:
                sub.loop.call_soon_threadsafe(self._deliver, sub, event)
                scheduled += 1
            except RuntimeError:
                # loop already closed
                self.unsubscribe(sub.handle)
        return scheduled

    def _deliver(self, sub: Subscription, event: BroadcastEvent) -> None:
        if sub.closed:
            return
        try:
            sub.queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning("Dropping slow subscriber", extra={"handle": sub.handle, "queue_size": self.queue_size})
            self.unsubscribe(sub.handle)
            self._close_queue(sub)

    @staticmethod
    def _close_queue(sub: Subscription) -> None:
        while not sub.queue.empty():
            sub.queue.get_nowait()
        sub.queue.put_nowait(_CLOSED)

    async def stream(
        self,
        sub: Subscription,
        is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
    ) -> AsyncIterator[str]:
        """Yield SSE frames for a subscription, with heartbeats while idle."""
        try:
            while True:
                if is_disconnected is not None and await is_disconnected():
                    break
                try:
                    event = await asyncio.wait_for(sub.queue.get(), timeout=self.heartbeat_seconds)
                except asyncio.TimeoutError:
                    event = BroadcastEvent(type=BroadcastEventType.HEARTBEAT)
                if event is _CLOSED:
                    break
                yield format_sse(event)
        finally:
            self.unsubscribe(sub.handle)

    def close(self) -> None:
        """Detach from the topic and close every subscriber stream."""
        self.topic.close()
        with self._lock:
            subs = list(self._subscribers.values())
            self._subscribers.clear()
        for sub in subs:
            sub.closed = True
            try:
                sub.loop.call_soon_threadsafe(self._close_queue, sub)
            except RuntimeError:
                # loop already closed
                continue
