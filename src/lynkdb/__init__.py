from lynkdb.backends import create_backend
from lynkdb.context import Context
from lynkdb.session import Session

__version__ = '0.1.0'


def get_session(name, connection, backend=None, **backend_options):
    """Create a new :class:`lynkdb.session.Session` with default settings.

    This is a convenience function for getting a session whose backend is
    picked from the connection's dialect.

    :type name: str
    :param name: A label for the session, used in errors and logs.

    :type connection: :class:`sqlalchemy.engine.Connection`
    :param connection: The open connection that will own the locks.

    :type backend: :class:`lynkdb.backends.base.LockBackend` or None
    :param backend: Backend to use instead of the dialect's default.

    Any other keyword arguments configure the default backend, for example
    ``poll_interval`` for PostgreSQL.
    """
    if backend is None:
        backend = create_backend(connection.dialect.name, **backend_options)
    return Session(name, connection, backend)


__all__ = ['Context', 'Session', 'get_session']
