import pytest
import mock

import lynkdb
from lynkdb.backends.base import LockBackend
from lynkdb.backends.mysql import MySQLBackend
from lynkdb.backends.postgresql import PostgreSQLBackend
from lynkdb.context import Context
from lynkdb.lock import Lock
from lynkdb.session import Session


def make_connection(dialect='mysql'):
    connection = mock.MagicMock()
    connection.dialect.name = dialect
    return connection


@pytest.fixture
def session_factory():
    def wrapped(name='test-session'):
        backend = mock.Mock(spec=LockBackend)
        connection = make_connection()
        session = Session(name, connection, backend)
        return session, backend, connection
    return wrapped


class TestSession(object):
    def test_can_create_session_from_lynkdb(self):
        session = lynkdb.get_session('worker', make_connection())
        assert isinstance(session, Session)
        assert isinstance(session.backend, MySQLBackend)

    def test_get_session_passes_backend_options(self):
        session = lynkdb.get_session(
            'worker', make_connection('postgresql'), poll_interval=0.2)
        assert isinstance(session.backend, PostgreSQLBackend)

    def test_picks_backend_from_dialect(self):
        session = Session('worker', make_connection('postgresql'))
        assert isinstance(session.backend, PostgreSQLBackend)

    def test_mariadb_uses_mysql_backend(self):
        session = Session('worker', make_connection('mariadb'))
        assert isinstance(session.backend, MySQLBackend)

    def test_unsupported_dialect(self):
        with pytest.raises(ValueError):
            Session('worker', make_connection('sqlite'))

    def test_has_name(self, session_factory):
        session, _, _ = session_factory(name='worker-7')
        assert session.name == 'worker-7'

    def test_can_acquire_lock(self, session_factory):
        session, backend, _ = session_factory()
        context = Context()
        session.acquire_lock('key', 3, context)
        backend.acquire_lock.assert_called_with(session, 'key', 3, context)

    def test_defaults_to_background_context(self, session_factory):
        session, backend, _ = session_factory()
        session.acquire_lock('key', 0)
        context = backend.acquire_lock.call_args[0][3]
        assert isinstance(context, Context)
        assert context.deadline is None
        assert not context.done()

    def test_can_release_lock(self, session_factory):
        session, backend, _ = session_factory()
        session.release_lock('key')
        backend.release_lock.assert_called_with(session, 'key', mock.ANY)

    def test_can_query_lock(self, session_factory):
        session, backend, _ = session_factory()
        backend.is_lock_acquired.return_value = True
        backend.is_lock_free.return_value = False
        assert session.is_lock_acquired('key') is True
        assert session.is_lock_free('key') is False

    def test_can_release_all_locks(self, session_factory):
        session, backend, _ = session_factory()
        backend.release_all_locks.return_value = 2
        assert session.release_all_locks() == 2
        backend.release_all_locks.assert_called_with(session, mock.ANY)

    def test_errors_escape(self, session_factory):
        session, backend, _ = session_factory()
        backend.acquire_lock.side_effect = RuntimeError('boom')
        with pytest.raises(RuntimeError):
            session.acquire_lock('key', 0)

    def test_can_create_lock(self, session_factory):
        session, _, _ = session_factory()
        lock = session.create_lock('key')
        assert isinstance(lock, Lock)
        assert lock.key == 'key'
        assert lock.session is session

    def test_supports_asks_backend(self, session_factory):
        session, backend, _ = session_factory()
        backend.supports.return_value = False
        assert session.supports('is_lock_free') is False
        backend.supports.assert_called_with('is_lock_free')

    def test_does_not_track_held_keys(self, session_factory):
        session, backend, _ = session_factory()
        backend.is_lock_acquired.return_value = False
        session.acquire_lock('key', 0)
        # The database is asked every time, nothing is cached.
        assert session.is_lock_acquired('key') is False
        assert backend.is_lock_acquired.call_count == 1
