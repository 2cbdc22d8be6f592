# resolver/services/changes.py
"""Row change notifications.

A ``ChangeFeed`` is owned by the running application (``app.state.changes``).
Subscribers are called with a ``ChangeEvent`` after a write has been
committed; they are expected to re-fetch whatever collection the event names.
"""
import logging
import threading
from dataclasses import dataclass, asdict
from typing import Callable, Literal

from fastapi import Request

EventKind = Literal["INSERT", "UPDATE", "DELETE"]


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    event: EventKind
    id: int

    def to_payload(self) -> dict:
        return asdict(self)


Subscriber = Callable[[ChangeEvent], None]


class ChangeFeed:
    def __init__(self):
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, event: ChangeEvent) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                # one broken subscriber must not starve the rest
                logging.error(f"Change subscriber failed for {event}", exc_info=True)

    def __len__(self):
        with self._lock:
            return len(self._subscribers)


def get_change_feed(request: Request) -> ChangeFeed:
    return request.app.state.changes
