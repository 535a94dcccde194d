"""
Live aggregates for host dashboards.

Every watched session has one shared AggregationPipeline. Host connections
watching the same session share it, and the pipeline is closed (its feed
subscription released) when the last of them stops watching. Each change to
a session's result set is pushed to that session's room.
"""

import logging
import threading
from typing import Callable, Dict, Optional, Set

from .aggregation import AggregationPipeline

logger = logging.getLogger(__name__)

# emit(event, data, room)
Emitter = Callable[[str, dict, str], None]


class _Watch:
    def __init__(self, pipeline: AggregationPipeline):
        self.pipeline = pipeline
        self.watchers: Set[str] = set()
        # Keeps drain-then-emit atomic so a stale snapshot never follows a newer one
        self.push_lock = threading.Lock()


class LiveAggregates:
    """Watcher registry: connection id -> session id -> shared pipeline."""

    def __init__(self, store, emit: Emitter):
        self.store = store
        self.emit = emit
        self._watches: Dict[str, _Watch] = {}
        self._watching: Dict[str, str] = {}
        # Reentrant: a feed delivery can arrive on this thread while activating
        self._lock = threading.RLock()

    def watch(self, sid: str, session_id: str) -> dict:
        """
        Start pushing session_id's aggregate to sid's room.

        A connection watches one session at a time; watching another one
        stops the previous watch. Returns the current snapshot.
        """
        if self._watching.get(sid) != session_id:
            self.unwatch(sid)

        with self._lock:
            entry = self._watches.get(session_id)
            if entry is None:
                entry = _Watch(AggregationPipeline(self.store, on_delivery=self._push))
                self._watches[session_id] = entry
                entry.pipeline.activate(session_id)
                logger.info("[LiveAggregates] observing session %s", session_id)
            elif entry.pipeline.error:
                entry.pipeline.reload()
            entry.watchers.add(sid)
            self._watching[sid] = session_id

        # Queued deliveries are drained and pushed by their own _push call
        return entry.pipeline.snapshot()

    def unwatch(self, sid: str) -> Optional[str]:
        """Stop sid's watch; returns the session it was watching, if any."""
        with self._lock:
            session_id = self._watching.pop(sid, None)
            if session_id is None:
                return None
            entry = self._watches.get(session_id)
            if entry is not None:
                entry.watchers.discard(sid)
                if not entry.watchers:
                    del self._watches[session_id]
                    entry.pipeline.close()
                    logger.info("[LiveAggregates] stopped observing session %s", session_id)
        return session_id

    def watching(self, sid: str) -> Optional[str]:
        return self._watching.get(sid)

    def watcher_count(self, session_id: str) -> int:
        with self._lock:
            entry = self._watches.get(session_id)
            return len(entry.watchers) if entry else 0

    def _push(self, pipeline: AggregationPipeline) -> None:
        session_id = pipeline.session_id
        if session_id is None:
            return
        with self._lock:
            entry = self._watches.get(session_id)
        if entry is None or entry.pipeline is not pipeline:
            return
        with entry.push_lock:
            if pipeline.drain():
                self.emit('aggregate', pipeline.snapshot(), session_id)
