"""Realtime distribution of broadcast events to connected viewers."""

from .hub import Fanout, Subscription, format_sse
from .topic import BroadcastTopic, InMemoryTopic, RedisTopic, build_topic

__all__ = [
    "Fanout",
    "Subscription",
    "format_sse",
    "BroadcastTopic",
    "InMemoryTopic",
    "RedisTopic",
    "build_topic",
]
