"""
Publish/subscribe channel for bank notifications.

Delivery is best-effort and synchronous: subscribers run in publish order,
and a failing subscriber is logged without affecting the others or the
publisher.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

from loguru import logger

E = TypeVar("E")


@dataclass(frozen=True)
class BankUpdated:
    """New questions were added to a subject's bank."""

    subject: str
    inserted_count: int


class EventChannel(Generic[E]):
    """Observer registry for one event type."""

    def __init__(self) -> None:
        self._subscribers: list[Callable[[E], None]] = []

    def subscribe(self, callback: Callable[[E], None]) -> Callable[[], None]:
        """
        Register ``callback``.

        Returns:
            A handle that removes the subscription when called (idempotent)
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, event: E) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as e:
                logger.warning(f"Subscriber {callback!r} failed on {event!r}: {e}")

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
