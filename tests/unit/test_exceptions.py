import pytest

from lynkdb.exceptions import ERROR_CLASSES
from lynkdb.exceptions import Cancelled
from lynkdb.exceptions import DeadlineExceeded
from lynkdb.exceptions import ErrorKind
from lynkdb.exceptions import InvalidLockKeyError
from lynkdb.exceptions import LockCancelledError
from lynkdb.exceptions import LockContextError
from lynkdb.exceptions import LockDeadlineExceededError
from lynkdb.exceptions import LockError
from lynkdb.exceptions import LockNotImplementedError
from lynkdb.exceptions import LockNotOwnedError
from lynkdb.exceptions import LockTimeoutError
from lynkdb.exceptions import context_error
from lynkdb.exceptions import error_for


class TestErrorRegistry(object):
    def test_every_kind_has_a_class(self):
        assert set(ERROR_CLASSES) == set(ErrorKind)

    def test_registry_is_read_only(self):
        with pytest.raises(TypeError):
            ERROR_CLASSES[ErrorKind.TIMEOUT] = LockError

    def test_classes_report_their_kind(self):
        for kind, cls in ERROR_CLASSES.items():
            assert cls.kind is kind

    def test_classes_are_documented(self):
        for cls in ERROR_CLASSES.values():
            assert cls.__doc__

    def test_error_for_builds_registered_class(self):
        error = error_for(ErrorKind.NOT_OWNED, 'mysql', 'release_lock',
                          'worker-1')
        assert isinstance(error, LockNotOwnedError)
        assert error.kind is ErrorKind.NOT_OWNED


class TestLockError(object):
    def test_carries_call_details(self):
        cause = RuntimeError('driver exploded')
        error = LockTimeoutError('mysql', 'acquire_lock', 'worker-1',
                                 message='timed out', cause=cause)
        assert error.backend == 'mysql'
        assert error.operation == 'acquire_lock'
        assert error.session_name == 'worker-1'
        assert error.message == 'timed out'
        assert error.cause is cause

    def test_str_joins_details(self):
        error = LockTimeoutError('mysql', 'acquire_lock', 'worker-1',
                                 message='timed out')
        assert str(error) == 'mysql::acquire_lock::worker-1::timed out::timeout'

    def test_str_includes_cause(self):
        error = LockCancelledError('postgresql', 'acquire_lock', 'worker-2',
                                   message='gave up', cause=Cancelled())
        assert str(error) == (
            'postgresql::acquire_lock::worker-2::gave up::context canceled')

    def test_default_message_comes_from_kind(self):
        error = LockNotOwnedError('mysql', 'release_lock', 'worker-1')
        assert error.message == 'lock not owned'

    def test_not_implemented_is_builtin_not_implemented(self):
        error = LockNotImplementedError('postgresql', 'is_lock_free', 's')
        assert isinstance(error, NotImplementedError)
        assert isinstance(error, LockError)

    def test_invalid_key_is_value_error(self):
        error = InvalidLockKeyError('postgresql', 'acquire_lock', 's')
        assert isinstance(error, ValueError)


class TestContextError(object):
    def test_cancelled_signal_becomes_cancelled_error(self):
        signal = Cancelled()
        error = context_error(signal, 'mysql', 'acquire_lock', 's')
        assert isinstance(error, LockCancelledError)
        assert isinstance(error, LockContextError)
        assert error.cause is signal

    def test_deadline_signal_becomes_deadline_error(self):
        signal = DeadlineExceeded()
        error = context_error(signal, 'mysql', 'acquire_lock', 's')
        assert isinstance(error, LockDeadlineExceededError)
        assert isinstance(error, LockContextError)
        assert error.kind is ErrorKind.DEADLINE_EXCEEDED

    def test_context_errors_are_not_timeouts(self):
        error = context_error(DeadlineExceeded(), 'mysql', 'acquire_lock', 's')
        assert not isinstance(error, LockTimeoutError)
