from lynkdb.backends.base import LockBackend
from lynkdb.backends.local import LocalBackend
from lynkdb.backends.mysql import MySQLBackend
from lynkdb.backends.postgresql import PostgreSQLBackend


BACKENDS = {
    'mysql': MySQLBackend,
    'mariadb': MySQLBackend,
    'postgresql': PostgreSQLBackend,
}


def create_backend(dialect_name, **kwargs):
    """Create the backend for a SQLAlchemy dialect name.

    :type dialect_name: str
    :param dialect_name: Name of the dialect, ``connection.dialect.name``.

    Remaining keyword arguments are passed to the backend class, for example
    ``poll_interval`` for :class:`PostgreSQLBackend`.
    """
    try:
        cls = BACKENDS[dialect_name]
    except KeyError:
        raise ValueError(
            'No lock backend for dialect %r, expected one of: %s' % (
                dialect_name, ', '.join(sorted(BACKENDS))))
    return cls(**kwargs)


__all__ = [
    'BACKENDS',
    'LockBackend',
    'LocalBackend',
    'MySQLBackend',
    'PostgreSQLBackend',
    'create_backend',
]
