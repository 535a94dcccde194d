"""
Session lifecycle: the participant's view of a session and the host's
open/close transitions.

A participant's check always restarts from LOADING and settles on READY,
CLOSED or MISSING. Only the most recent check may publish its answer; a
lookup that returns after a newer check started is dropped.
"""

import logging
import threading
from enum import Enum
from typing import Optional

from ..models import Session
from ..repository import StoreError
from .outcome import Outcome

logger = logging.getLogger(__name__)

MSG_NO_TOKEN = 'Missing session id in the URL. Use the QR code link from the host.'
MSG_LOOKUP_FAILED = 'Could not verify the session. Please try again later.'
MSG_NOT_FOUND = 'Session not found.'


class SessionState(str, Enum):
    LOADING = 'loading'
    READY = 'ready'
    CLOSED = 'closed'
    MISSING = 'missing'


class SessionCheck:
    """Participant-side session state machine."""

    def __init__(self, store):
        self.store = store
        self.token: Optional[str] = None
        self.state = SessionState.LOADING
        self.message: Optional[str] = None
        self.session: Optional[Session] = None
        self._generation = 0
        self._lock = threading.Lock()

    def check(self, token: Optional[str]) -> SessionState:
        """Look the token up and settle the state; returns the state after this call."""
        with self._lock:
            self._generation += 1
            generation = self._generation
            self.token = token
            self.state = SessionState.LOADING
            self.message = None
            self.session = None

        session = None
        if not token:
            state, message = SessionState.MISSING, MSG_NO_TOKEN
        else:
            try:
                session = self.store.get_session_by_id(token)
            except StoreError as e:
                logger.warning("[SessionCheck] lookup of %s failed: %s", token, e)
                state, message = SessionState.MISSING, MSG_LOOKUP_FAILED
            else:
                if session is None:
                    state, message = SessionState.MISSING, MSG_NOT_FOUND
                elif not session.is_open:
                    state, message = SessionState.CLOSED, None
                else:
                    state, message = SessionState.READY, None

        with self._lock:
            if generation != self._generation:
                logger.debug("[SessionCheck] dropping stale answer for %s", token)
                return self.state
            self.state = state
            self.message = message
            self.session = session
        return state

    @property
    def is_ready(self) -> bool:
        return self.state == SessionState.READY

    def to_dict(self) -> dict:
        return {
            'session_id': self.token,
            'state': self.state.value,
            'message': self.message,
        }


class HostController:
    """
    Host-side session lifecycle.

    Holds the host's current session. open_session() and close_session() only
    touch that local state once the store confirms the change.
    """

    def __init__(self, store, session: Optional[Session] = None):
        self.store = store
        self.session = session
        self.error: Optional[str] = None

    def open_session(self) -> Outcome:
        self.error = None
        try:
            session = self.store.create_session()
        except StoreError as e:
            logger.error("[HostController] Failed to open session: %s", e)
            self.error = 'Could not open a new session. Please try again.'
            return Outcome.fail('store', self.error)

        self.session = session
        return Outcome.ok(session)

    def close_session(self, session_id: Optional[str] = None) -> Outcome:
        self.error = None
        target = session_id or (self.session.id if self.session else None)
        if not target:
            return Outcome.fail('not_found', 'No session to close.')
        if self.session is not None and self.session.id == target and not self.session.is_open:
            return Outcome.fail('closed', 'This session is already closed.')

        try:
            updated = self.store.update_session_open_flag(target, False)
        except StoreError as e:
            logger.error("[HostController] Failed to close session %s: %s", target, e)
            self.error = 'Could not close the session. Please try again.'
            return Outcome.fail('store', self.error)

        if updated is None:
            self.error = MSG_NOT_FOUND
            return Outcome.fail('not_found', self.error)

        logger.info("[HostController] Session %s closed", target)
        self.session = updated
        return Outcome.ok(updated)
