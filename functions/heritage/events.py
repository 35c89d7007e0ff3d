"""
Settings refresh notifications.

Admin saves publish a refresh; public components that hold settings
(background music) subscribe and re-fetch. The in-memory notifier serves a
single process; the Redis notifier fans out across workers over pub/sub.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Protocol

import redis
from redis import exceptions as redis_exceptions

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class SettingsNotifier(Protocol):
    def subscribe(self, callback: Listener) -> Callable[[], None]:
        ...

    def publish(self) -> None:
        ...


def _unsubscriber(listeners: list[Listener], callback: Listener) -> Callable[[], None]:
    def unsubscribe() -> None:
        if callback in listeners:
            listeners.remove(callback)

    return unsubscribe


def _deliver(listeners: list[Listener]) -> None:
    for listener in list(listeners):
        try:
            listener()
        except Exception:
            # Remaining listeners still run.
            logger.exception("Settings listener failed")


@dataclass
class InMemorySettingsNotifier:
    listeners: list[Listener] = field(default_factory=list)
    published: int = 0

    def subscribe(self, callback: Listener) -> Callable[[], None]:
        self.listeners.append(callback)
        return _unsubscriber(self.listeners, callback)

    def publish(self) -> None:
        self.published += 1
        _deliver(self.listeners)


@dataclass
class RedisSettingsNotifier:
    """Redis pub/sub notifier; a listener thread starts with the first subscriber."""

    url: str
    channel: str = "heritage:settings"
    listeners: list[Listener] = field(default_factory=list)

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)
        self._thread = None

    def _on_message(self, message) -> None:
        _deliver(self.listeners)

    def subscribe(self, callback: Listener) -> Callable[[], None]:
        self.listeners.append(callback)
        if self._thread is None:
            pubsub = self.client.pubsub(ignore_subscribe_messages=True)
            pubsub.subscribe(**{self.channel: self._on_message})
            self._thread = pubsub.run_in_thread(sleep_time=1.0, daemon=True)
        return _unsubscriber(self.listeners, callback)

    def publish(self) -> None:
        try:
            self.client.publish(self.channel, "refresh")
        except redis_exceptions.RedisError as exc:
            # Remote workers miss this refresh; local subscribers still get it.
            logger.warning(
                "Redis publish failed (%s); refreshing local subscribers only", exc
            )
            _deliver(self.listeners)

    def close(self) -> None:
        if self._thread is not None:
            self._thread.stop()
            self._thread = None
