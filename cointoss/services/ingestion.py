"""
Result ingestion: each device submits at most once per session.

The guarantee is advisory. The store accepts any well-formed result; what
stops a repeat is the marker kept in the device's own storage (the signed
cookie when served over HTTP), and it is only written after the store has
confirmed the insert. A different browser or device is a different
participant as far as this module can tell.
"""

import logging
import threading
import time
from typing import List, MutableMapping, Optional

from .. import FLIP_TARGET
from ..models import Result
from ..repository import StoreError
from .outcome import Outcome
from .session_state import SessionCheck, SessionState
from .trials import TrialSequence

logger = logging.getLogger(__name__)

MSG_NOT_READY = 'This session is not accepting results.'
MSG_ALREADY_SUBMITTED = 'This device has already submitted a result for this session.'
MSG_NO_NICKNAME = 'Please enter a nickname.'
MSG_INCOMPLETE = f'Please complete exactly {FLIP_TARGET} flips.'
MSG_SUBMIT_FAILED = 'Could not submit your result. Please try again.'
MSG_BUSY = 'A submission is already in progress.'


MARKER_PREFIX = 'tossed:'
# ~60 bytes each once signed and encoded; 30 stay well inside a 4 KB cookie
MAX_MARKERS = 30


def marker_key(session_id: str) -> str:
    return f'{MARKER_PREFIX}{session_id}'


class MarkerStore:
    """
    Idempotence markers in a device-scoped key/value mapping.

    Each marker records when it was set. At most `limit` markers are kept;
    marking past that forgets the oldest, which keeps a cookie-backed store
    under the browser's cookie size limit.
    """

    def __init__(self, storage: Optional[MutableMapping] = None, limit: int = MAX_MARKERS,
                 clock=time.time):
        self.storage = storage if storage is not None else {}
        self.limit = limit
        self.clock = clock

    def has(self, session_id: str) -> bool:
        return marker_key(session_id) in self.storage

    def keys(self) -> List[str]:
        return [k for k in self.storage if isinstance(k, str) and k.startswith(MARKER_PREFIX)]

    def mark(self, session_id: str) -> None:
        key = marker_key(session_id)
        self.storage.pop(key, None)
        stale = sorted(self.keys(), key=lambda k: self.storage[k])
        for old in stale[:max(0, len(stale) - self.limit + 1)]:
            del self.storage[old]
        self.storage[key] = int(self.clock())


class ResultIngestion:
    """Validate, persist once, then mark."""

    def __init__(self, store, markers: MarkerStore, flip_target: int = FLIP_TARGET):
        self.store = store
        self.markers = markers
        self.flip_target = flip_target
        self.submitting = False
        self._lock = threading.Lock()

    def already_submitted(self, session_id: Optional[str]) -> bool:
        return bool(session_id) and self.markers.has(session_id)

    def submit(self, check: SessionCheck, nickname: Optional[str], sequence: TrialSequence) -> Outcome:
        session_id = check.token
        if check.state != SessionState.READY or not session_id:
            return Outcome.fail('closed', MSG_NOT_READY)
        if self.already_submitted(session_id):
            return Outcome.fail('duplicate', MSG_ALREADY_SUBMITTED)

        label = (nickname or '').strip()
        if not label:
            return Outcome.fail('validation', MSG_NO_NICKNAME)
        if sequence.count != self.flip_target:
            return Outcome.fail('validation', MSG_INCOMPLETE)

        with self._lock:
            if self.submitting:
                return Outcome.fail('busy', MSG_BUSY)
            self.submitting = True

        try:
            result = self.store.insert_result(
                session_id=session_id,
                nickname=label,
                heads=sequence.heads,
                tails=sequence.tails,
                sequence=sequence.as_string(),
            )
        except StoreError as e:
            logger.error("[ResultIngestion] Failed to submit result to %s: %s", session_id, e)
            return Outcome.fail('store', MSG_SUBMIT_FAILED)
        finally:
            with self._lock:
                self.submitting = False

        self.markers.mark(session_id)
        logger.info("[ResultIngestion] Result %s recorded for session %s (%dH/%dT)",
                    result.id, session_id, result.heads, result.tails)
        return Outcome.ok(result)


class ParticipantFlow:
    """
    One participant's join flow: session check, local flips, one submission.

    enter() must be called with the session token before any other action;
    a token different from the previous one discards the local flips.
    """

    def __init__(self, store, markers: MarkerStore, flips=None, flips_session: Optional[str] = None, rng=None):
        self.check = SessionCheck(store)
        # Session the restored flips were made for
        self.flips_session = flips_session
        self.ingestion = ResultIngestion(store, markers)
        self.sequence = TrialSequence(flips, rng=rng)
        self.submitted = False
        self.was_submitted_locally = False
        self.recorded: Optional[Result] = None
        self.form_error: Optional[str] = None

    def enter(self, session_id: Optional[str]) -> SessionState:
        if session_id != self.flips_session:
            self.sequence.reset()
            self.form_error = None
            self.recorded = None
            self.flips_session = session_id
        state = self.check.check(session_id)
        already = self.ingestion.already_submitted(session_id)
        self.submitted = already
        self.was_submitted_locally = already
        return state

    @property
    def can_interact(self) -> bool:
        return self.check.is_ready and not self.submitted and not self.ingestion.submitting

    def flip(self) -> Optional[str]:
        if not self.can_interact:
            return None
        self.form_error = None
        return self.sequence.flip()

    def reset(self) -> bool:
        if not self.can_interact:
            return False
        self.form_error = None
        self.sequence.reset()
        return True

    def submit(self, nickname: Optional[str]) -> Outcome:
        outcome = self.ingestion.submit(self.check, nickname, self.sequence)
        if outcome.success:
            self.submitted = True
            self.was_submitted_locally = True
            self.recorded = outcome.value
            self.form_error = None
            self.sequence.reset()
        else:
            self.form_error = outcome.message
            if outcome.kind == 'duplicate':
                self.submitted = True
                self.was_submitted_locally = True
        return outcome

    def to_dict(self) -> dict:
        data = self.check.to_dict()
        data.update({
            'can_interact': self.can_interact,
            'progress': self.sequence.progress(),
            'submitted': self.submitted,
            'was_submitted_locally': self.was_submitted_locally,
            'form_error': self.form_error,
            'recorded': self.recorded.to_dict() if self.recorded else None,
        })
        return data
