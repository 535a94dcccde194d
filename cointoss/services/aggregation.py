"""
Live aggregation of the results of one observed session.

Two sources feed the result set: a bulk load of everything already stored,
and the change feed of results inserted after the subscription was made.
They race each other, so the pipeline subscribes first, loads second and
merges by result id; feed results that beat the load are kept.

Feed callbacks run on whatever thread performed the insert. They put the
result on a queue and then call on_delivery, if given; drain() applies
queued results one at a time under the pipeline lock.
"""

import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

from .. import FLIP_TARGET
from ..models import Result
from ..repository import StoreError
from ..utils.binomial import (
    binomial_p_value_two_sided,
    expected_distribution,
    heads_histogram,
    normalized_histogram,
)

logger = logging.getLogger(__name__)

MSG_LOAD_FAILED = 'Could not load results. Please try again.'


@dataclass(frozen=True)
class AggregateView:
    participant_count: int
    total_trials: int
    total_heads: int
    histogram: List[int]
    p_value: Optional[float]
    normalized_histogram: List[float] = field(default_factory=list)
    expected_distribution: List[float] = field(default_factory=list)

    @classmethod
    def from_results(cls, results: Iterable[Result], flip_target: int = FLIP_TARGET) -> 'AggregateView':
        heads_counts = [r.heads for r in results]
        participants = len(heads_counts)
        total_trials = participants * flip_target
        total_heads = sum(heads_counts)
        histogram = heads_histogram(heads_counts, flip_target)
        p_value = binomial_p_value_two_sided(total_trials, total_heads, 0.5) if total_trials > 0 else None
        return cls(
            participant_count=participants,
            total_trials=total_trials,
            total_heads=total_heads,
            histogram=histogram,
            p_value=p_value,
            normalized_histogram=normalized_histogram(histogram, participants),
            expected_distribution=expected_distribution(flip_target, 0.5),
        )

    def to_dict(self) -> dict:
        return {
            'participant_count': self.participant_count,
            'total_trials': self.total_trials,
            'total_heads': self.total_heads,
            'histogram': list(self.histogram),
            'p_value': self.p_value,
            'normalized_histogram': list(self.normalized_histogram),
            'expected_distribution': list(self.expected_distribution),
        }


class AggregationPipeline:
    """Result set and aggregate view for whichever session is active."""

    def __init__(self, store, flip_target: int = FLIP_TARGET,
                 on_delivery: Optional[Callable[['AggregationPipeline'], None]] = None):
        self.store = store
        self.flip_target = flip_target
        self.on_delivery = on_delivery
        self.session_id: Optional[str] = None
        self.realtime_ready = False
        self.loaded = False
        self.error: Optional[str] = None

        self._results: List[Result] = []
        self._ids = set()
        self._generation = 0
        self._subscription = None
        self._queue: 'queue.Queue' = queue.Queue()
        self._lock = threading.RLock()
        self._view = AggregateView.from_results([], flip_target)

    # ---- lifecycle ----

    def activate(self, session_id: Optional[str]) -> bool:
        """
        Observe session_id, dropping whatever was observed before.

        Returns True when the bulk load was applied.
        """
        with self._lock:
            self._generation += 1
            generation = self._generation
            self._release()
            self.session_id = session_id
            self._results = []
            self._ids = set()
            self.loaded = False
            self.error = None
            self._recompute()
            if session_id is None:
                return False

            def on_insert(result: Result, generation=generation):
                self._queue.put((generation, result))
                if self.on_delivery is not None:
                    self.on_delivery(self)

            self._subscription = self.store.subscribe_to_new_results(session_id, on_insert)
            self.realtime_ready = True

        return self._load(generation, session_id)

    def reload(self) -> bool:
        """Retry the bulk load for the current session without dropping feed results."""
        with self._lock:
            generation, session_id = self._generation, self.session_id
        if session_id is None:
            return False
        return self._load(generation, session_id)

    def close(self) -> None:
        with self._lock:
            self._generation += 1
            self._release()
            self.session_id = None

    def _release(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self.realtime_ready = False

    # ---- merging ----

    def _load(self, generation: int, session_id: str) -> bool:
        try:
            rows = self.store.list_results_for_session(session_id)
        except StoreError as e:
            logger.error("[AggregationPipeline] bulk load for %s failed: %s", session_id, e)
            with self._lock:
                if generation == self._generation:
                    self.error = MSG_LOAD_FAILED
            return False

        with self._lock:
            if generation != self._generation:
                logger.debug("[AggregationPipeline] dropping stale load for %s", session_id)
                return False
            rows = [r for r in rows if r.session_id == session_id]
            loaded_ids = {r.id for r in rows}
            # Feed results applied before the load finished stay in front
            early = [r for r in self._results if r.id not in loaded_ids]
            self._results = early + rows
            self._ids = loaded_ids | {r.id for r in early}
            self.loaded = True
            self.error = None
            self._recompute()
        return True

    def _apply(self, generation: int, result: Result) -> bool:
        with self._lock:
            if generation != self._generation or result.session_id != self.session_id:
                return False
            if result.id in self._ids:
                return False
            self._results.insert(0, result)
            self._ids.add(result.id)
            self._recompute()
            return True

    def drain(self, block: bool = False, timeout: Optional[float] = None) -> int:
        """
        Apply queued feed results. With block=True, waits up to timeout for the
        first one. Returns how many results changed the set.
        """
        changed = 0
        wait = block
        while True:
            try:
                generation, result = self._queue.get(block=wait, timeout=timeout if wait else None)
            except queue.Empty:
                return changed
            wait = False
            if self._apply(generation, result):
                changed += 1

    def _recompute(self) -> None:
        self._view = AggregateView.from_results(self._results, self.flip_target)

    # ---- read side ----

    @property
    def view(self) -> AggregateView:
        with self._lock:
            return self._view

    @property
    def results(self) -> List[Result]:
        with self._lock:
            return list(self._results)

    def latest(self, limit: int = 20) -> List[Result]:
        with self._lock:
            return self._results[:limit]

    def snapshot(self, latest: int = 20) -> dict:
        with self._lock:
            return {
                'session_id': self.session_id,
                'realtime_ready': self.realtime_ready,
                'loaded': self.loaded,
                'error': self.error,
                'aggregate': self._view.to_dict(),
                'latest': [r.to_dict() for r in self._results[:latest]],
            }
