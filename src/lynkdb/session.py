from lynkdb.backends import create_backend
from lynkdb.context import Context
from lynkdb.lock import Lock


class Session(object):
    """A session issues lock operations over one database connection.

    A ``Session`` is the logical binding between an agent that wants locks
    and the database connection that will own them. The database is the only
    record of which keys are held; the session keeps no such state, and it
    does not serialize its own calls. Threads sharing a session must
    coordinate between themselves, or use a session and connection each.

    :type name: str
    :param name: A label for the session. It shows up in errors and logs and
        is for debugging only; it does not need to be unique.

    :type connection: :class:`sqlalchemy.engine.Connection`
    :param connection: An open connection. Locks belong to the connection, so
        it must not be handed back to a pool while locks are held. Using an
        ``AUTOCOMMIT`` isolation level avoids leaving the connection idle in
        a transaction between calls.

    :type backend: :class:`lynkdb.backends.base.LockBackend` or None
    :param backend: The backend translating lock operations to SQL. If None
        is provided one is picked from the connection's dialect.
    """
    def __init__(self, name, connection, backend=None):
        self._name = name
        self._connection = connection
        if backend is None:
            backend = create_backend(connection.dialect.name)
        self._backend = backend

    @property
    def name(self):
        return self._name

    @property
    def connection(self):
        return self._connection

    @property
    def backend(self):
        return self._backend

    def supports(self, operation):
        """Whether the backend implements ``operation``, e.g. 'is_lock_free'.
        """
        return self._backend.supports(operation)

    def acquire_lock(self, key, wait_budget, context=None):
        """Acquire the lock on ``key``.

        Returns once the lock is held, otherwise raises a
        :class:`lynkdb.exceptions.LockError` saying why not.

        :type key: str or int
        :param key: The resource to lock. PostgreSQL needs a 64-bit integer.

        :type wait_budget: float, int or :class:`datetime.timedelta`
        :param wait_budget: How long to wait for the lock to become free.
            ``0`` tries once, a negative value waits until ``context`` ends.
            This bounds the wait only, not how long the lock is held.

        :type context: :class:`lynkdb.context.Context` or None
        :param context: Ends the wait early when cancelled or past its
            deadline.
        """
        self._backend.acquire_lock(
            self, key, wait_budget, self._context(context))

    def release_lock(self, key, context=None):
        self._backend.release_lock(self, key, self._context(context))

    def is_lock_acquired(self, key, context=None):
        """Whether any session holds ``key``, not only this one."""
        return self._backend.is_lock_acquired(
            self, key, self._context(context))

    def is_lock_free(self, key, context=None):
        return self._backend.is_lock_free(self, key, self._context(context))

    def release_all_locks(self, context=None):
        """Release every lock held by this session's connection.

        :rtype: int
        :returns: Number of locks released, if the backend reports it. The
            PostgreSQL backend always returns 0.
        """
        return self._backend.release_all_locks(self, self._context(context))

    def create_lock(self, key):
        """Create a :class:`lynkdb.lock.Lock` for ``key`` on this session."""
        return Lock(key, self)

    def _context(self, context):
        if context is None:
            context = Context.background()
        return context

    def __repr__(self):
        return '%s(name=%r, backend=%r)' % (
            self.__class__.__name__, self._name, self._backend.name)
