"""Session-scoped named locks on MySQL and MariaDB.

See https://dev.mysql.com/doc/refman/8.0/en/locking-functions.html
"""
import logging
import math

from sqlalchemy import text

from lynkdb.backends.base import LockBackend
from lynkdb.backends.base import ACQUIRE_LOCK
from lynkdb.backends.base import IS_LOCK_ACQUIRED
from lynkdb.backends.base import IS_LOCK_FREE
from lynkdb.backends.base import OPERATIONS
from lynkdb.backends.base import RELEASE_ALL_LOCKS
from lynkdb.backends.base import RELEASE_LOCK
from lynkdb.exceptions import ErrorKind
from lynkdb.techniques import normalize_wait_budget


LOG = logging.getLogger(__name__)

GET_LOCK = text('SELECT GET_LOCK(:key, :timeout)')
RELEASE = text('SELECT RELEASE_LOCK(:key)')
IS_USED_LOCK = text('SELECT IS_USED_LOCK(:key)')
IS_FREE_LOCK = text('SELECT IS_FREE_LOCK(:key)')
RELEASE_ALL = text('SELECT RELEASE_ALL_LOCKS()')


def native_timeout(wait_budget):
    """Convert a wait budget to the whole seconds ``GET_LOCK`` expects.

    Fractions truncate toward zero. Any negative budget becomes ``-1``,
    which ``GET_LOCK`` treats as an infinite wait.
    """
    seconds = normalize_wait_budget(wait_budget)
    if seconds < 0:
        return -1
    return int(seconds)


class MySQLBackend(LockBackend):
    """Lock backend using ``GET_LOCK`` and friends.

    Locks are keyed by arbitrary strings and belong to the connection that
    took them. MySQL releases them when that connection closes, but only
    once the server notices, so callers that need a prompt release should
    call :meth:`release_all_locks` before dropping the connection.

    ``GET_LOCK`` waits on the server. A deadline on the caller's context
    shortens that wait, and cancelling the context kills the waiting
    statement from a second connection on the same engine.
    """
    name = 'mysql'
    capabilities = OPERATIONS

    def acquire_lock(self, session, key, wait_budget, context):
        timeout = native_timeout(wait_budget)
        remaining = context.remaining()
        if remaining is not None and (timeout < 0 or timeout > remaining):
            timeout = int(math.ceil(remaining))
        result = self._scalar(
            session, ACQUIRE_LOCK, GET_LOCK,
            {'key': key, 'timeout': timeout}, context,
        )
        acquired = self._decode_flag(session, ACQUIRE_LOCK, result)
        if acquired:
            LOG.debug('[%s] lock acquired on %r', session.name, key)
            return
        if context.done():
            raise self._context_error(
                session, ACQUIRE_LOCK, context,
                message='context done while waiting for lock',
            )
        if acquired is None:
            # Out of memory, or the thread was killed.
            LOG.debug('[%s] failed to acquire lock on %r', session.name, key)
            raise self._error(
                ErrorKind.ACQUISITION_FAILED, session, ACQUIRE_LOCK,
                message='failed to acquire lock on %r' % (key,),
            )
        LOG.debug('[%s] timed out after %ss waiting for %r',
                  session.name, timeout, key)
        raise self._error(
            ErrorKind.TIMEOUT, session, ACQUIRE_LOCK,
            message='timed out waiting for lock on %r' % (key,),
        )

    def release_lock(self, session, key, context):
        result = self._scalar(
            session, RELEASE_LOCK, RELEASE, {'key': key}, context)
        released = self._decode_flag(session, RELEASE_LOCK, result)
        if released is None:
            LOG.debug('[%s] lock on %r does not exist', session.name, key)
            raise self._error(
                ErrorKind.DOES_NOT_EXIST, session, RELEASE_LOCK,
                message='lock on %r does not exist' % (key,),
            )
        if not released:
            LOG.debug('[%s] lock on %r not owned', session.name, key)
            raise self._error(
                ErrorKind.NOT_OWNED, session, RELEASE_LOCK,
                message='lock on %r not owned' % (key,),
            )
        LOG.debug('[%s] lock on %r released', session.name, key)

    def is_lock_acquired(self, session, key, context):
        """Whether any connection holds ``key``, not necessarily this one."""
        holder = self._scalar(
            session, IS_LOCK_ACQUIRED, IS_USED_LOCK, {'key': key}, context)
        if holder is None:
            return False
        LOG.debug('[%s] lock on %r held by connection %s',
                  session.name, key, holder)
        return True

    def is_lock_free(self, session, key, context):
        result = self._scalar(
            session, IS_LOCK_FREE, IS_FREE_LOCK, {'key': key}, context)
        free = self._decode_flag(session, IS_LOCK_FREE, result)
        if free is None:
            raise self._error(
                ErrorKind.UNKNOWN, session, IS_LOCK_FREE,
                message='unknown error (possibly an incorrect argument)',
            )
        return free

    def release_all_locks(self, session, context):
        result = self._scalar(
            session, RELEASE_ALL_LOCKS, RELEASE_ALL, {}, context)
        if result is None:
            return 0
        try:
            count = int(result)
        except (TypeError, ValueError):
            raise self._error(
                ErrorKind.UNKNOWN, session, RELEASE_ALL_LOCKS,
                message='unexpected result %r' % (result,),
            )
        LOG.debug('[%s] released %s lock(s)', session.name, count)
        return count

    def interrupt(self, connection):
        """Kill the running statement with ``KILL QUERY``.

        MySQL drivers cannot cancel a statement from the connection running
        it, so this borrows another connection from the same engine.
        """
        dbapi_connection = connection.connection.dbapi_connection
        thread_id = dbapi_connection.thread_id()
        LOG.debug('Killing query on connection %s', thread_id)
        with connection.engine.connect() as killer:
            killer.execute(text('KILL QUERY %d' % int(thread_id)))
