"""
In-process change feed for newly inserted results.

The repository publishes every committed result insert here; observers
subscribe with a session filter and get a handle they must release. There
is no replay: a subscriber only sees inserts made while it is subscribed.
"""

import itertools
import logging
import threading
from typing import Callable, Dict, Tuple

from ..models import Result

logger = logging.getLogger(__name__)

ResultCallback = Callable[[Result], None]


class Subscription:
    """Handle returned by ResultFeed.subscribe()."""

    def __init__(self, feed: 'ResultFeed', key: int, session_id: str):
        self._feed = feed
        self._key = key
        self.session_id = session_id
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self._feed._remove(self._key)
            self.active = False


class ResultFeed:
    """Publish/subscribe hub keyed by session id."""

    def __init__(self):
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._subscribers: Dict[int, Tuple[str, ResultCallback]] = {}

    def subscribe(self, session_id: str, on_insert: ResultCallback) -> Subscription:
        with self._lock:
            key = next(self._ids)
            self._subscribers[key] = (session_id, on_insert)
        logger.debug("[ResultFeed] subscribed #%s to session %s", key, session_id)
        return Subscription(self, key, session_id)

    def _remove(self, key: int) -> None:
        with self._lock:
            self._subscribers.pop(key, None)
        logger.debug("[ResultFeed] released #%s", key)

    def publish(self, result: Result) -> None:
        with self._lock:
            targets = [cb for sid, cb in self._subscribers.values() if sid == result.session_id]
        for callback in targets:
            try:
                callback(result)
            except Exception:
                # A broken observer must not fail the insert that triggered it
                logger.exception("[ResultFeed] subscriber failed for result %s", result.id)

    def subscriber_count(self, session_id: str = None) -> int:
        with self._lock:
            if session_id is None:
                return len(self._subscribers)
            return sum(1 for sid, _ in self._subscribers.values() if sid == session_id)
