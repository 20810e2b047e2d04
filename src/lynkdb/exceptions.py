from enum import Enum
from types import MappingProxyType


class ErrorKind(Enum):
    """Every kind of failure a lock operation can report."""
    TIMEOUT = 'timeout'
    ACQUISITION_FAILED = 'failed to acquire lock'
    DOES_NOT_EXIST = 'lock does not exist'
    NOT_OWNED = 'lock not owned'
    UNKNOWN = 'unknown error'
    NOT_IMPLEMENTED = 'not implemented'
    INVALID_KEY = 'invalid lock key'
    CANCELLED = 'context cancelled'
    DEADLINE_EXCEEDED = 'context deadline exceeded'


class ContextDone(Exception):
    """Base for the reasons a :class:`lynkdb.context.Context` can end."""


class Cancelled(ContextDone):
    """The context was cancelled by its owner."""
    def __str__(self):
        return 'context canceled'


class DeadlineExceeded(ContextDone):
    """The context deadline passed."""
    def __str__(self):
        return 'context deadline exceeded'


class LockError(Exception):
    """Base class for all errors raised by lock operations.

    :type backend: str
    :param backend: Name of the backend that produced the error.

    :type operation: str
    :param operation: Name of the operation that failed, for example
        ``acquire_lock``.

    :type session_name: str
    :param session_name: Diagnostic name of the session that issued the call.

    :type message: str
    :param message: Human readable description of the failure.

    :type cause: Exception or None
    :param cause: The underlying error, if any. For context errors this is
        the :class:`Cancelled` or :class:`DeadlineExceeded` signal, for
        transport errors it is the driver exception.
    """
    kind = None

    def __init__(self, backend, operation, session_name, message=None,
                 cause=None):
        if message is None:
            message = self.kind.value
        super(LockError, self).__init__(message)
        self.backend = backend
        self.operation = operation
        self.session_name = session_name
        self.message = message
        self.cause = cause

    def __str__(self):
        cause = self.cause if self.cause is not None else self.kind.value
        return '%s::%s::%s::%s::%s' % (
            self.backend, self.operation, self.session_name,
            self.message, cause,
        )


class LockTimeoutError(LockError):
    """The wait budget ran out before the lock could be acquired."""
    kind = ErrorKind.TIMEOUT


class LockAcquisitionFailedError(LockError):
    """The server refused the lock for a reason other than a timeout.

    MySQL reports this when it runs out of memory or the waiting thread is
    killed.
    """
    kind = ErrorKind.ACQUISITION_FAILED


class LockDoesNotExistError(LockError):
    """A release was attempted on a lock nobody holds."""
    kind = ErrorKind.DOES_NOT_EXIST


class LockNotOwnedError(LockError):
    """A release was attempted by a session that does not hold the lock."""
    kind = ErrorKind.NOT_OWNED


class LockUnknownError(LockError):
    """The server returned something that is not a recognized answer."""
    kind = ErrorKind.UNKNOWN


class LockNotImplementedError(LockError, NotImplementedError):
    """The backend has no primitive for the requested operation."""
    kind = ErrorKind.NOT_IMPLEMENTED


class InvalidLockKeyError(LockError, ValueError):
    """The key cannot be used with this backend."""
    kind = ErrorKind.INVALID_KEY


class LockContextError(LockError):
    """The caller's own context ended before or during a backend call."""


class LockCancelledError(LockContextError):
    """The caller cancelled the context."""
    kind = ErrorKind.CANCELLED


class LockDeadlineExceededError(LockContextError):
    """The context's deadline passed."""
    kind = ErrorKind.DEADLINE_EXCEEDED


ERROR_CLASSES = MappingProxyType({
    cls.kind: cls for cls in (
        LockTimeoutError,
        LockAcquisitionFailedError,
        LockDoesNotExistError,
        LockNotOwnedError,
        LockUnknownError,
        LockNotImplementedError,
        InvalidLockKeyError,
        LockCancelledError,
        LockDeadlineExceededError,
    )
})


def error_for(kind, backend, operation, session_name, message=None,
              cause=None):
    """Build the :class:`LockError` subclass registered for ``kind``."""
    cls = ERROR_CLASSES[kind]
    return cls(backend, operation, session_name, message=message, cause=cause)


def context_error(context_signal, backend, operation, session_name,
                  message=None):
    """Build the lock error matching a context's end signal."""
    if isinstance(context_signal, DeadlineExceeded):
        kind = ErrorKind.DEADLINE_EXCEEDED
    else:
        kind = ErrorKind.CANCELLED
    return error_for(kind, backend, operation, session_name,
                     message=message, cause=context_signal)
