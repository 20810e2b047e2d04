from threading import RLock

from lynkdb.backends.base import LockBackend
from lynkdb.backends.base import ACQUIRE_LOCK
from lynkdb.backends.base import IS_LOCK_ACQUIRED
from lynkdb.backends.base import IS_LOCK_FREE
from lynkdb.backends.base import OPERATIONS
from lynkdb.backends.base import RELEASE_ALL_LOCKS
from lynkdb.backends.base import RELEASE_LOCK
from lynkdb.exceptions import ErrorKind
from lynkdb.techniques import DEFAULT_POLL_INTERVAL
from lynkdb.techniques import PollTechnique
from lynkdb.techniques import WaitResult


class LocalLockTable(object):
    """In memory stand-in for a database's lock table.

    Maps each held key to the session holding it and how many times that
    session has acquired it. Share one table between backends to make their
    sessions contend with each other.
    """
    def __init__(self):
        self._owners = {}
        self._lock = RLock()

    def try_acquire(self, key, owner):
        with self._lock:
            entry = self._owners.get(key)
            if entry is None:
                self._owners[key] = [owner, 1]
                return True
            if entry[0] is not owner:
                return False
            entry[1] += 1
            return True

    def release(self, key, owner):
        """Release one acquisition of ``key``.

        The key stays held until its owner has released it as many times as
        it acquired it.

        :returns: ``None`` if nobody holds the key, ``False`` if someone
            else does, ``True`` once released.
        """
        with self._lock:
            entry = self._owners.get(key)
            if entry is None:
                return None
            if entry[0] is not owner:
                return False
            entry[1] -= 1
            if entry[1] == 0:
                del self._owners[key]
            return True

    def holder(self, key):
        with self._lock:
            entry = self._owners.get(key)
            if entry is None:
                return None
            return entry[0]

    def release_all(self, owner):
        """Drop every key ``owner`` holds.

        :returns: The number of acquisitions released, counting repeats.
        """
        with self._lock:
            keys = [k for k, v in self._owners.items() if v[0] is owner]
            count = 0
            for key in keys:
                count += self._owners.pop(key)[1]
            return count


class LocalBackend(LockBackend):
    """Local in memory backend.

    This class is for test and demonstration purposes. Sessions using it
    need no database connection. Waiting is done by polling the table with
    a :class:`lynkdb.techniques.PollTechnique`, the rest mirrors the MySQL
    backend: releasing a free key reports that it does not exist, releasing
    another session's key reports it is not owned, and acquisitions by the
    same session are counted so each needs its own release. An already
    ended context is refused before the table is touched.
    """
    name = 'local'
    capabilities = OPERATIONS

    def __init__(self, table=None, poll_interval=DEFAULT_POLL_INTERVAL,
                 technique=None):
        if table is None:
            table = LocalLockTable()
        self._table = table
        if technique is None:
            technique = PollTechnique(poll_interval=poll_interval)
        self._technique = technique

    @property
    def table(self):
        return self._table

    def acquire_lock(self, session, key, wait_budget, context):
        result = self._technique.wait(
            lambda: self._table.try_acquire(key, session),
            wait_budget,
            context,
        )
        if result is WaitResult.ACQUIRED:
            return
        if result is WaitResult.INTERRUPTED:
            raise self._context_error(session, ACQUIRE_LOCK, context)
        raise self._error(
            ErrorKind.TIMEOUT, session, ACQUIRE_LOCK,
            message='timed out waiting for lock on %r' % (key,),
        )

    def release_lock(self, session, key, context):
        self._check_context(session, RELEASE_LOCK, context)
        released = self._table.release(key, session)
        if released is None:
            raise self._error(ErrorKind.DOES_NOT_EXIST, session, RELEASE_LOCK)
        if not released:
            raise self._error(ErrorKind.NOT_OWNED, session, RELEASE_LOCK)

    def is_lock_acquired(self, session, key, context):
        self._check_context(session, IS_LOCK_ACQUIRED, context)
        return self._table.holder(key) is not None

    def is_lock_free(self, session, key, context):
        self._check_context(session, IS_LOCK_FREE, context)
        return self._table.holder(key) is None

    def release_all_locks(self, session, context):
        self._check_context(session, RELEASE_ALL_LOCKS, context)
        return self._table.release_all(session)
