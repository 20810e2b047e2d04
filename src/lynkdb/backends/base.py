import logging

from sqlalchemy.exc import DBAPIError

from lynkdb.exceptions import ErrorKind
from lynkdb.exceptions import context_error
from lynkdb.exceptions import error_for


LOG = logging.getLogger(__name__)

ACQUIRE_LOCK = 'acquire_lock'
RELEASE_LOCK = 'release_lock'
IS_LOCK_ACQUIRED = 'is_lock_acquired'
IS_LOCK_FREE = 'is_lock_free'
RELEASE_ALL_LOCKS = 'release_all_locks'

OPERATIONS = frozenset([
    ACQUIRE_LOCK,
    RELEASE_LOCK,
    IS_LOCK_ACQUIRED,
    IS_LOCK_FREE,
    RELEASE_ALL_LOCKS,
])


class LockBackend(object):
    """Translate the lock session contract onto one database's primitives.

    Backends hold no lock state. Every call receives the
    :class:`lynkdb.session.Session` it is made on behalf of, and whether a
    key is held is always answered by the database.

    Subclasses override the operations their database supports and list
    them in ``capabilities``. The rest raise
    :class:`lynkdb.exceptions.LockNotImplementedError` instead of being
    emulated.
    """
    name = None
    capabilities = frozenset()

    def supports(self, operation):
        return operation in self.capabilities

    def acquire_lock(self, session, key, wait_budget, context):
        raise self._not_implemented(session, ACQUIRE_LOCK)

    def release_lock(self, session, key, context):
        raise self._not_implemented(session, RELEASE_LOCK)

    def is_lock_acquired(self, session, key, context):
        raise self._not_implemented(session, IS_LOCK_ACQUIRED)

    def is_lock_free(self, session, key, context):
        raise self._not_implemented(session, IS_LOCK_FREE)

    def release_all_locks(self, session, context):
        raise self._not_implemented(session, RELEASE_ALL_LOCKS)

    def interrupt(self, connection):
        """Abort the statement currently running on ``connection``.

        Called from whichever thread ends the caller's context. The default
        uses the DB-API connection's ``cancel()`` method where the driver has
        one (psycopg does).
        """
        dbapi_connection = connection.connection.dbapi_connection
        cancel = getattr(dbapi_connection, 'cancel', None)
        if cancel is None:
            LOG.debug('Driver for %s cannot cancel a running statement',
                      self.name)
            return
        cancel()

    def _error(self, kind, session, operation, message=None, cause=None):
        return error_for(kind, self.name, operation, session.name,
                         message=message, cause=cause)

    def _context_error(self, session, operation, context, message=None):
        return context_error(context.error(), self.name, operation,
                             session.name, message=message)

    def _not_implemented(self, session, operation):
        return self._error(
            ErrorKind.NOT_IMPLEMENTED, session, operation,
            message='%s is not supported by the %s backend' % (
                operation, self.name),
        )

    def _check_context(self, session, operation, context, message=None):
        """Raise the context error if ``context`` has already ended."""
        if context.done():
            raise self._context_error(session, operation, context,
                                      message=message)

    def _scalar(self, session, operation, statement, params, context):
        """Execute ``statement`` and return the single value it selects.

        A context that has already ended stops the call before it reaches the
        database. While the statement runs, ending the context interrupts it.
        A driver error raised while the context is done is reported as the
        context error, whichever stage saw it; any other driver error is
        raised unchanged.
        """
        message = 'context done before executing statement'
        self._check_context(session, operation, context, message=message)
        connection = session.connection
        try:
            with context.interrupt_on_done(
                    lambda: self.interrupt(connection)):
                # Armed from here on; an end before this point never fires it.
                self._check_context(session, operation, context,
                                    message=message)
                return connection.execute(statement, params).scalar()
        except DBAPIError as e:
            if context.done():
                raise self._context_error(
                    session, operation, context,
                    message='context done while executing statement',
                ) from e
            raise

    def _decode_flag(self, session, operation, value):
        """Decode a true/false/NULL style result.

        :rtype: bool or None
        :returns: ``None`` for SQL NULL, else the truth value.
        """
        if value is None or isinstance(value, bool):
            return value
        if isinstance(value, bytes):
            value = value.decode('ascii', 'replace')
        if isinstance(value, str):
            value = value.strip()
        if value in (0, '0'):
            return False
        if value in (1, '1'):
            return True
        raise self._error(
            ErrorKind.UNKNOWN, session, operation,
            message='unexpected result %r' % (value,),
        )
