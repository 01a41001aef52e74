"""In-memory change feed — synchronous in-process delivery.

Keeps a bounded history per job so late subscribers and tests can inspect
what was published.
"""

import threading
from collections import defaultdict, deque

import structlog

from packing.feed.port import ChangeFeed, ChangeNotification

logger = structlog.get_logger(__name__)


class InMemoryChangeFeed(ChangeFeed):
    def __init__(self, history_size: int = 500):
        self._lock = threading.Lock()
        self._subscribers = defaultdict(list)
        self._history = defaultdict(lambda: deque(maxlen=history_size))

    def subscribe(self, job_id, callback):
        key = str(job_id)
        with self._lock:
            self._subscribers[key].append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers[key]:
                    self._subscribers[key].remove(callback)

        return unsubscribe

    def publish(self, notification: ChangeNotification) -> int:
        key = str(notification.job_id)
        with self._lock:
            self._history[key].append(notification)
            callbacks = list(self._subscribers[key])

        delivered = 0
        for callback in callbacks:
            try:
                callback(notification)
                delivered += 1
            except Exception:
                # One broken client must not starve the others
                logger.exception(
                    "feed_subscriber_failed",
                    job_id=key,
                    kind=notification.kind,
                )
        return delivered

    def subscriber_count(self, job_id) -> int:
        with self._lock:
            return len(self._subscribers[str(job_id)])

    def history(self, job_id) -> list[ChangeNotification]:
        with self._lock:
            return list(self._history[str(job_id)])
