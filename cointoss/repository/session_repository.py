"""
Session Repository for the coin toss experiment system.
Implements Repository pattern for session and result storage and retrieval.
"""

import logging
import os
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from ..models import Session, Result, check_result_fields
from .change_feed import ResultFeed, ResultCallback, Subscription

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """A store read or write failed; the operation may be retried in full."""


class SessionRepository:
    """Session and result repository with SQLite backend"""

    def __init__(self, db_path: str = 'data/cointoss.db', feed: Optional[ResultFeed] = None):
        self.db_path = db_path
        self.feed = feed or ResultFeed()
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute('PRAGMA foreign_keys = ON')
        return conn

    def _init_db(self):
        """Initialize the database with required tables (non-destructive)."""
        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        conn = self._connect()
        c = conn.cursor()

        c.execute('''
            CREATE TABLE IF NOT EXISTS sessions (
                id TEXT PRIMARY KEY,
                is_open INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL
            )
        ''')

        c.execute('''
            CREATE TABLE IF NOT EXISTS results (
                id TEXT PRIMARY KEY,
                session_id TEXT NOT NULL,
                nickname TEXT,
                heads INTEGER NOT NULL,
                tails INTEGER NOT NULL,
                sequence TEXT NOT NULL,
                created_at TEXT NOT NULL,
                FOREIGN KEY (session_id) REFERENCES sessions (id)
            )
        ''')
        c.execute('CREATE INDEX IF NOT EXISTS idx_results_session ON results (session_id, created_at)')

        conn.commit()
        conn.close()

    def _now_str(self) -> str:
        """Current UTC timestamp; microseconds keep insertion order sortable."""
        return datetime.now(timezone.utc).isoformat(timespec='microseconds')

    def create_session(self) -> Session:
        """
        Create a new open session

        Returns:
            Session: The stored session with its assigned id and timestamp
        """
        session = Session(id=str(uuid.uuid4()), is_open=True, created_at=self._now_str())
        try:
            conn = self._connect()
            try:
                conn.execute(
                    'INSERT INTO sessions (id, is_open, created_at) VALUES (?, 1, ?)',
                    (session.id, session.created_at),
                )
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error("[SessionRepository] Error creating session: %s", e)
            raise StoreError('could not create session') from e

        logger.info("[SessionRepository] Session %s opened", session.id)
        return session

    def update_session_open_flag(self, session_id: str, is_open: bool) -> Optional[Session]:
        """
        Set the open flag of an existing session

        Args:
            session_id: Session identifier
            is_open: New flag value

        Returns:
            Session: The updated record, or None if no such session exists
        """
        try:
            conn = self._connect()
            try:
                c = conn.cursor()
                c.execute('UPDATE sessions SET is_open = ? WHERE id = ?', (1 if is_open else 0, session_id))
                if c.rowcount == 0:
                    conn.rollback()
                    return None
                conn.commit()
                c.execute('SELECT id, is_open, created_at FROM sessions WHERE id = ?', (session_id,))
                row = c.fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error("[SessionRepository] Error updating session %s: %s", session_id, e)
            raise StoreError('could not update session') from e

        return Session.from_row(row) if row else None

    def get_session_by_id(self, session_id: str) -> Optional[Session]:
        """
        Retrieve a session

        Args:
            session_id: Session identifier

        Returns:
            Session: Session or None if not found
        """
        try:
            conn = self._connect()
            try:
                row = conn.execute(
                    'SELECT id, is_open, created_at FROM sessions WHERE id = ?', (session_id,)
                ).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error("[SessionRepository] Error retrieving session %s: %s", session_id, e)
            raise StoreError('could not load session') from e

        return Session.from_row(row) if row else None

    def list_results_for_session(self, session_id: str) -> List[Result]:
        """
        Retrieve all results of a session, newest first

        Args:
            session_id: Session identifier

        Returns:
            List[Result]: Result rows
        """
        try:
            conn = self._connect()
            try:
                rows = conn.execute('''
                    SELECT id, session_id, nickname, heads, tails, sequence, created_at
                    FROM results
                    WHERE session_id = ?
                    ORDER BY created_at DESC, rowid DESC
                ''', (session_id,)).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error("[SessionRepository] Error retrieving results for %s: %s", session_id, e)
            raise StoreError('could not load results') from e

        return [Result.from_row(row) for row in rows]

    def insert_result(self, session_id: str, nickname: Optional[str], heads: int,
                      tails: int, sequence: str) -> Result:
        """
        Save one participant's result and notify feed subscribers

        Args:
            session_id: Session the result belongs to
            nickname: Participant label
            heads: Heads count
            tails: Tails count
            sequence: Flip sequence, one H/T per flip

        Returns:
            Result: The stored result with its assigned id and timestamp
        """
        problem = check_result_fields(heads, tails, sequence)
        if problem:
            raise ValueError(problem)

        result = Result(
            id=str(uuid.uuid4()),
            session_id=session_id,
            nickname=nickname,
            heads=heads,
            tails=tails,
            sequence=sequence,
            created_at=self._now_str(),
        )
        try:
            conn = self._connect()
            try:
                conn.execute('''
                    INSERT INTO results (id, session_id, nickname, heads, tails, sequence, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                ''', (
                    result.id,
                    result.session_id,
                    result.nickname,
                    result.heads,
                    result.tails,
                    result.sequence,
                    result.created_at,
                ))
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error("[SessionRepository] Error saving result for %s: %s", session_id, e)
            raise StoreError('could not save result') from e

        self.feed.publish(result)
        return result

    def subscribe_to_new_results(self, session_id: str, on_insert: ResultCallback) -> Subscription:
        """Push every result inserted into session_id from now on to on_insert."""
        return self.feed.subscribe(session_id, on_insert)

    def list_sessions(self) -> List[Session]:
        """
        Retrieve all sessions, newest first, for admin and export purposes

        Returns:
            List[Session]: Session records
        """
        try:
            conn = self._connect()
            try:
                rows = conn.execute(
                    'SELECT id, is_open, created_at FROM sessions ORDER BY created_at DESC, rowid DESC'
                ).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error("[SessionRepository] Error retrieving all sessions: %s", e)
            raise StoreError('could not load sessions') from e

        return [Session.from_row(row) for row in rows]
