from contextlib import contextmanager


class Lock(object):
    """A class that provides an interface with which to use a lock.

    The Lock object is a wrapper around one key of a
    :class:`lynkdb.session.Session`; the actual work is done by the
    session's backend. It does not remember whether it was acquired, ask the
    database with :meth:`is_acquired` instead. This object should not be
    initialized directly, but created with
    :meth:`lynkdb.session.Session.create_lock`.
    """
    def __init__(self, key, session):
        self._key = key
        self._session = session

    @property
    def key(self):
        return self._key

    @property
    def session(self):
        return self._session

    def acquire(self, wait_budget=-1, context=None):
        """Try to acquire this lock.

        This call will block until the lock is held, the wait budget runs out
        or the context ends. By default it waits until the context ends.

        :type wait_budget: float
        :param wait_budget: Number of seconds to wait to acquire the lock
            before giving up and raising a
            :class:`lynkdb.exceptions.LockTimeoutError`.
        """
        self._session.acquire_lock(self._key, wait_budget, context=context)

    def release(self, context=None):
        """Release this lock."""
        self._session.release_lock(self._key, context=context)

    def is_acquired(self, context=None):
        return self._session.is_lock_acquired(self._key, context=context)

    def is_free(self, context=None):
        return self._session.is_lock_free(self._key, context=context)

    def __call__(self, wait_budget=-1, context=None):
        return self._context_manager(wait_budget, context)

    @contextmanager
    def _context_manager(self, wait_budget, context):
        self.acquire(wait_budget=wait_budget, context=context)
        try:
            yield self
        finally:
            self.release()
