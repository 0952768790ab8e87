import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Literal

from app.models.common import utcnow

logger = logging.getLogger(__name__)

Table = Literal["students", "transactions", "savings_goals"]
Action = Literal["insert", "update", "delete", "reset"]


@dataclass(frozen=True)
class ChangeEvent:
    table: Table
    action: Action
    record_id: str | None = None
    occurred_at: object = field(default_factory=utcnow, compare=False)


Subscriber = Callable[[ChangeEvent], None]


class ChangeFeed:
    """In-process fan-out of row change notifications.

    Publishers call :meth:`publish` after their write has been committed.
    Subscribers must tolerate repeated events for the same row.
    """

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, event: ChangeEvent) -> int:
        with self._lock:
            targets = list(self._subscribers)

        delivered = 0
        for callback in targets:
            try:
                callback(event)
                delivered += 1
            except Exception as exc:
                logger.warning(
                    "Change feed subscriber %r failed for %s/%s id=%s: %s",
                    callback,
                    event.table,
                    event.action,
                    event.record_id,
                    exc,
                )
        return delivered
