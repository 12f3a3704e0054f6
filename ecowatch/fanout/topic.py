"""Broadcast topics that carry events between the sweep and every server instance.

`InMemoryTopic` delivers within one process. `RedisTopic` publishes to a
shared Redis pub/sub channel so subscribers connected to any instance see the
event; a background listener relays channel messages to the local fanout.
Delivery is best-effort in both cases.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Protocol

import redis

from ecowatch.domain import BroadcastEvent
from utils.logging_utils import get_tagged_logger, mask_url

logger = get_tagged_logger(__name__, tag="fanout/topic")

Deliver = Callable[[BroadcastEvent], object]


class BroadcastTopic(Protocol):
    """Protocol for broadcast transports."""

    def attach(self, deliver: Deliver) -> None:
        """Register the callback that receives every event published on the topic."""

    def publish(self, event: BroadcastEvent) -> bool:
        """Send an event; return False when the transport dropped it."""

    def close(self) -> None:
        """Release listeners and connections."""


class InMemoryTopic(BroadcastTopic):
    """Single-process topic; publish calls every attached callback synchronously."""

    def __init__(self) -> None:
        self._callbacks: List[Deliver] = []

    def attach(self, deliver: Deliver) -> None:
        self._callbacks.append(deliver)

    def publish(self, event: BroadcastEvent) -> bool:
        for deliver in list(self._callbacks):
            deliver(event)
        return True

    def close(self) -> None:
        self._callbacks.clear()


class RedisTopic(BroadcastTopic):
    """Redis pub/sub topic shared by every server instance."""

    def __init__(self, client, channel: str = "weather-monitor-shared", *, poll_interval: float = 1.0) -> None:
        logger.debug("Initializing RedisTopic", extra={"channel": channel})
        self.client = client
        self.channel = channel
        self.poll_interval = poll_interval
        self._deliver: Optional[Deliver] = None
        self._pubsub = None
        self._listener = None

    @classmethod
    def from_url(cls, url: str, channel: str = "weather-monitor-shared") -> "RedisTopic":
        return cls(redis.Redis.from_url(url), channel)

    def attach(self, deliver: Deliver) -> None:
        """Subscribe to the channel and relay messages to `deliver` from a listener thread."""
        self._deliver = deliver
        self._pubsub = self.client.pubsub(ignore_subscribe_messages=True)
        self._pubsub.subscribe(**{self.channel: self._on_message})
        self._listener = self._pubsub.run_in_thread(sleep_time=self.poll_interval, daemon=True)

    def _on_message(self, message: dict) -> None:
        data = message.get("data")
        try:
            event = BroadcastEvent.from_json(data)
        except (TypeError, ValueError) as exc:
            logger.warning("Dropping malformed broadcast message", extra={"channel": self.channel, "error": str(exc)})
            return
        if self._deliver is not None:
            self._deliver(event)

    def publish(self, event: BroadcastEvent) -> bool:
        try:
            self.client.publish(self.channel, event.to_json())
            return True
        except redis.RedisError as exc:
            logger.warning(
                "Broadcast publish failed",
                extra={"channel": self.channel, "event_type": event.type.value, "error": str(exc)},
            )
            return False

    def close(self) -> None:
        if self._listener is not None:
            self._listener.stop()
            self._listener = None
        if self._pubsub is not None:
            self._pubsub.close()
            self._pubsub = None


def build_topic(redis_url: str | None, channel: str) -> BroadcastTopic:
    """Use Redis when a reachable URL is configured, the in-process topic otherwise."""
    if not redis_url:
        logger.info("Using in-memory broadcast topic")
        return InMemoryTopic()
    try:
        client = redis.Redis.from_url(redis_url)
        client.ping()
    except redis.RedisError as exc:
        logger.warning(
            "Redis broadcast topic unavailable; falling back to in-memory topic",
            extra={"redis_url": mask_url(redis_url), "error": str(exc)},
        )
        return InMemoryTopic()
    logger.info("Using Redis broadcast topic", extra={"redis_url": mask_url(redis_url), "channel": channel})
    return RedisTopic(client, channel)
