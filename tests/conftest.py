import itertools
from datetime import datetime, timezone

import pytest

from cointoss import FLIP_TARGET
from cointoss.app import create_app
from cointoss.extensions import HOST_NAMESPACE, socketio
from cointoss.models import Result, Session
from cointoss.repository import ResultFeed, SessionRepository, StoreError

_clock = itertools.count(1)


def make_result(result_id, session_id, heads, nickname='p'):
    sequence = 'H' * heads + 'T' * (FLIP_TARGET - heads)
    return Result(
        id=result_id,
        session_id=session_id,
        nickname=nickname,
        heads=heads,
        tails=FLIP_TARGET - heads,
        sequence=sequence,
        created_at=f'2026-01-01T00:00:{next(_clock):06d}',
    )


class FakeStore:
    """In-memory store contract with switchable failures and call hooks."""

    def __init__(self):
        self.feed = ResultFeed()
        self.sessions = {}
        self.results = []  # newest first
        self.fail = set()
        self.on_get = None
        self.on_list = None
        self.insert_calls = 0
        self._ids = itertools.count(1)

    def _maybe_fail(self, op):
        if op in self.fail:
            raise StoreError(f'{op} failed')

    def create_session(self):
        self._maybe_fail('create_session')
        session = Session(id=f's{next(self._ids)}', is_open=True,
                          created_at=datetime.now(timezone.utc).isoformat())
        self.sessions[session.id] = session
        return session

    def update_session_open_flag(self, session_id, is_open):
        self._maybe_fail('update_session_open_flag')
        current = self.sessions.get(session_id)
        if current is None:
            return None
        updated = Session(id=current.id, is_open=is_open, created_at=current.created_at)
        self.sessions[session_id] = updated
        return updated

    def get_session_by_id(self, session_id):
        self._maybe_fail('get_session_by_id')
        if self.on_get is not None:
            hook, self.on_get = self.on_get, None
            hook(session_id)
        return self.sessions.get(session_id)

    def list_results_for_session(self, session_id):
        self._maybe_fail('list_results_for_session')
        if self.on_list is not None:
            hook, self.on_list = self.on_list, None
            hook(session_id)
        return [r for r in self.results if r.session_id == session_id]

    def insert_result(self, session_id, nickname, heads, tails, sequence):
        self.insert_calls += 1
        self._maybe_fail('insert_result')
        result = Result(
            id=f'r{next(self._ids)}',
            session_id=session_id,
            nickname=nickname,
            heads=heads,
            tails=tails,
            sequence=sequence,
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        self.results.insert(0, result)
        self.feed.publish(result)
        return result

    def subscribe_to_new_results(self, session_id, on_insert):
        return self.feed.subscribe(session_id, on_insert)


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def repo(tmp_path):
    return SessionRepository(str(tmp_path / 'cointoss.db'))


@pytest.fixture
def app(tmp_path):
    return create_app({
        'DB_PATH': str(tmp_path / 'app.db'),
        'SECRET_KEY': 'test-secret',
        'PUBLIC_URL': 'http://coin.test',
        'TESTING': True,
    })


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    return app.extensions['cointoss_store']


@pytest.fixture
def host_socket(app, client):
    """A host dashboard connected to the /host Socket.IO namespace."""
    socket = socketio.test_client(app, namespace=HOST_NAMESPACE, flask_test_client=client)
    yield socket
    if socket.is_connected(HOST_NAMESPACE):
        socket.disconnect(namespace=HOST_NAMESPACE)
