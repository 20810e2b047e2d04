import os
import time
import uuid
import threading

import pytest
import sqlalchemy

import lynkdb
from lynkdb.context import Context
from lynkdb.exceptions import LockCancelledError
from lynkdb.exceptions import LockDeadlineExceededError
from lynkdb.exceptions import LockDoesNotExistError
from lynkdb.exceptions import LockError
from lynkdb.exceptions import LockNotOwnedError
from lynkdb.exceptions import LockTimeoutError


MYSQL_URL = os.environ.get('LYNKDB_MYSQL_URL')

pytestmark = pytest.mark.skipif(
    not MYSQL_URL, reason='LYNKDB_MYSQL_URL is not set')


@pytest.fixture(scope="module")
def engine():
    engine = sqlalchemy.create_engine(MYSQL_URL, isolation_level='AUTOCOMMIT')
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sessions(engine):
    connection_1 = engine.connect()
    connection_2 = engine.connect()
    try:
        yield (
            lynkdb.get_session('test-lock-1', connection_1),
            lynkdb.get_session('test-lock-2', connection_2),
        )
    finally:
        connection_1.close()
        connection_2.close()


@pytest.fixture
def key():
    return 'lock-%s' % str(uuid.uuid4())


class TestBasic(object):
    def test_lock_cycle(self, sessions, key):
        session, _ = sessions
        session.acquire_lock(key, 1)
        assert session.is_lock_acquired(key) is True
        assert session.is_lock_free(key) is False
        session.release_lock(key)
        assert session.is_lock_free(key) is True
        assert session.is_lock_acquired(key) is False
        assert session.release_all_locks() == 0

    def test_release_unknown_key_does_not_exist(self, sessions, key):
        session, _ = sessions
        with pytest.raises(LockDoesNotExistError):
            session.release_lock(key)

    def test_release_all_counts(self, sessions, key):
        session, _ = sessions
        session.acquire_lock(key + '-a', 0)
        session.acquire_lock(key + '-b', 0)
        assert session.release_all_locks() == 2


class TestTwoSessions(object):
    def test_sequential(self, sessions, key):
        session_1, session_2 = sessions
        session_1.acquire_lock(key, 1)
        with pytest.raises(LockError):
            session_2.acquire_lock(key, 1)
        with pytest.raises(LockNotOwnedError):
            session_2.release_lock(key)
        session_1.release_lock(key)
        session_2.acquire_lock(key, 1)
        session_2.release_lock(key)

    def test_parallel(self, sessions, key):
        count = []

        def work(session):
            try:
                session.acquire_lock(key, 1)
            except LockTimeoutError:
                return
            try:
                time.sleep(3)
                count.append(session.name)
            finally:
                session.release_lock(key)

        threads = [threading.Thread(target=work, args=(s,)) for s in sessions]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(count) == 1
        for session in sessions:
            assert session.release_all_locks() == 0


class TestTimeouts(object):
    def test_context_deadline(self, sessions, key):
        session_1, session_2 = sessions
        session_1.acquire_lock(key, 0)
        try:
            with pytest.raises(LockDeadlineExceededError):
                session_2.acquire_lock(key, -1, Context(timeout=2))
        finally:
            session_1.release_lock(key)

    def test_context_cancel(self, sessions, key):
        session_1, session_2 = sessions
        session_1.acquire_lock(key, 0)
        context = Context()
        threading.Timer(1, context.cancel).start()
        try:
            with pytest.raises(LockCancelledError):
                session_2.acquire_lock(key, -1, context)
        finally:
            session_1.release_lock(key)

    def test_wait_budget(self, sessions, key):
        session_1, session_2 = sessions
        session_1.acquire_lock(key, 0)
        try:
            start = time.monotonic()
            with pytest.raises(LockTimeoutError):
                session_2.acquire_lock(key, 1)
            assert time.monotonic() - start >= 0.9
        finally:
            session_1.release_lock(key)
        session_2.acquire_lock(key, 0)
        session_2.release_lock(key)
