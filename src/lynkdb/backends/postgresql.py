"""Session-level advisory locks on PostgreSQL.

See https://www.postgresql.org/docs/current/functions-admin.html
"""
import logging

from sqlalchemy import text

from lynkdb.backends.base import LockBackend
from lynkdb.backends.base import ACQUIRE_LOCK
from lynkdb.backends.base import RELEASE_ALL_LOCKS
from lynkdb.backends.base import RELEASE_LOCK
from lynkdb.exceptions import ErrorKind
from lynkdb.techniques import DEFAULT_POLL_INTERVAL
from lynkdb.techniques import PollTechnique
from lynkdb.techniques import WaitResult
from lynkdb.techniques import normalize_wait_budget


LOG = logging.getLogger(__name__)

LOCK = text('SELECT pg_advisory_lock(:key)')
TRY_LOCK = text('SELECT pg_try_advisory_lock(:key)')
UNLOCK = text('SELECT pg_advisory_unlock(:key)')
UNLOCK_ALL = text('SELECT pg_advisory_unlock_all()')

MIN_KEY = -2 ** 63
MAX_KEY = 2 ** 63 - 1


class PostgreSQLBackend(LockBackend):
    """Lock backend using PostgreSQL session-level advisory locks.

    Advisory locks are keyed by a signed 64-bit integer. Callers with string
    keys must hash them into that range themselves.

    PostgreSQL can either block until a lock is free or try exactly once; it
    has no way to wait for a limited time. A negative wait budget therefore
    uses the blocking ``pg_advisory_lock`` directly, and any other budget
    polls ``pg_try_advisory_lock`` with a
    :class:`lynkdb.techniques.PollTechnique`.

    There is no primitive to ask who holds a key, so
    :meth:`is_lock_acquired` and :meth:`is_lock_free` are not supported.
    ``pg_advisory_unlock_all`` does not say how many locks it released, so
    :meth:`release_all_locks` always returns 0.

    :type poll_interval: float
    :param poll_interval: Seconds between attempts while waiting for a lock
        with a non-negative wait budget.

    :type technique: :class:`lynkdb.techniques.BaseTechnique`
    :param technique: Used to wait for a lock. Built from ``poll_interval``
        when not given.
    """
    name = 'postgresql'
    capabilities = frozenset([
        ACQUIRE_LOCK,
        RELEASE_LOCK,
        RELEASE_ALL_LOCKS,
    ])

    def __init__(self, poll_interval=DEFAULT_POLL_INTERVAL, technique=None):
        if technique is None:
            technique = PollTechnique(poll_interval=poll_interval)
        self._technique = technique

    def acquire_lock(self, session, key, wait_budget, context):
        self._validate_key(session, ACQUIRE_LOCK, key)
        wait_budget = normalize_wait_budget(wait_budget)
        if wait_budget < 0:
            self._acquire_blocking(session, key, context)
            return

        def probe():
            result = self._scalar(
                session, ACQUIRE_LOCK, TRY_LOCK, {'key': key}, context)
            acquired = self._decode_flag(session, ACQUIRE_LOCK, result)
            if acquired is None:
                raise self._error(
                    ErrorKind.UNKNOWN, session, ACQUIRE_LOCK,
                    message='pg_try_advisory_lock returned NULL',
                )
            return acquired

        result = self._technique.wait(probe, wait_budget, context)
        if result is WaitResult.ACQUIRED:
            LOG.debug('[%s] lock acquired on %s', session.name, key)
            return
        if result is WaitResult.INTERRUPTED:
            raise self._context_error(
                session, ACQUIRE_LOCK, context,
                message='context done while waiting for lock',
            )
        LOG.debug('[%s] timed out after %ss waiting for %s',
                  session.name, wait_budget, key)
        raise self._error(
            ErrorKind.TIMEOUT, session, ACQUIRE_LOCK,
            message='timed out waiting for lock on %s' % key,
        )

    def _acquire_blocking(self, session, key, context):
        result = self._scalar(
            session, ACQUIRE_LOCK, LOCK, {'key': key}, context)
        # pg_advisory_lock returns void, which arrives as NULL.
        if result is not None:
            acquired = self._decode_flag(session, ACQUIRE_LOCK, result)
            if not acquired:
                raise self._error(
                    ErrorKind.ACQUISITION_FAILED, session, ACQUIRE_LOCK,
                    message='failed to acquire lock on %s' % key,
                )
        LOG.debug('[%s] lock acquired on %s', session.name, key)

    def release_lock(self, session, key, context):
        self._validate_key(session, RELEASE_LOCK, key)
        result = self._scalar(
            session, RELEASE_LOCK, UNLOCK, {'key': key}, context)
        released = self._decode_flag(session, RELEASE_LOCK, result)
        if released is False:
            LOG.debug('[%s] lock on %s not owned', session.name, key)
            raise self._error(
                ErrorKind.NOT_OWNED, session, RELEASE_LOCK,
                message='lock on %s not owned' % key,
            )
        LOG.debug('[%s] lock on %s released', session.name, key)

    def release_all_locks(self, session, context):
        self._scalar(session, RELEASE_ALL_LOCKS, UNLOCK_ALL, {}, context)
        LOG.debug('[%s] released all advisory locks', session.name)
        return 0

    def _validate_key(self, session, operation, key):
        if isinstance(key, bool) or not isinstance(key, int):
            raise self._error(
                ErrorKind.INVALID_KEY, session, operation,
                message='key must be a 64-bit integer, got %r' % (key,),
            )
        if not MIN_KEY <= key <= MAX_KEY:
            raise self._error(
                ErrorKind.INVALID_KEY, session, operation,
                message='key %r is outside the 64-bit integer range' % key,
            )
