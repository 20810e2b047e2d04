"""Cancellation and deadline signal passed into every lock operation."""
import logging
from contextlib import contextmanager
from threading import Event
from threading import Lock
from threading import RLock
from threading import Timer

from lynkdb.exceptions import Cancelled
from lynkdb.exceptions import DeadlineExceeded
from lynkdb.utils import TimeUtils
from lynkdb.utils import to_seconds


LOG = logging.getLogger(__name__)


class Context(object):
    """A cancellable context with an optional deadline.

    A context is owned by the caller of a lock operation. It ends either when
    :meth:`cancel` is called, typically from another thread while the
    operation is blocked, or when its deadline passes. Once ended it stays
    ended, and :meth:`error` reports which of the two happened first.

    :type timeout: float, int, :class:`datetime.timedelta` or None
    :param timeout: Number of seconds from now until the deadline. ``None``
        means the context has no deadline and only ends when cancelled.

    :type time_utils: :class:`lynkdb.utils.TimeUtils`
    :param time_utils: A set of utilities for interacting with time.
    """
    def __init__(self, timeout=None, time_utils=None):
        if time_utils is None:
            time_utils = TimeUtils()
        self._time_utils = time_utils
        self._deadline = None
        if timeout is not None:
            self._deadline = time_utils.monotonic() + to_seconds(timeout)
        self._event = Event()
        self._lock = RLock()
        self._error = None
        self._callbacks = []

    @classmethod
    def background(cls):
        """Create a context that has no deadline."""
        return cls()

    @property
    def deadline(self):
        return self._deadline

    def cancel(self):
        """End the context. Calling it more than once has no effect."""
        self._finish(Cancelled())

    def done(self):
        self._check_deadline()
        return self._event.is_set()

    def error(self):
        """Return ``None`` while live, else the signal that ended the context.
        """
        self._check_deadline()
        return self._error

    def remaining(self):
        """Seconds left until the deadline, or ``None`` without a deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._time_utils.monotonic())

    def wait(self, seconds):
        """Sleep up to ``seconds``, waking early if the context ends.

        :rtype: bool
        :returns: ``True`` if the context has ended.
        """
        remaining = self.remaining()
        if remaining is not None and remaining <= seconds:
            if not self._event.wait(remaining):
                self._expire()
            return True
        self._event.wait(seconds)
        return self.done()

    @contextmanager
    def interrupt_on_done(self, callback):
        """Run ``callback`` once if the context ends inside the with block.

        Used around a blocking database statement so the statement can be
        aborted from the thread that cancels the context, or from a timer
        when the deadline passes. The callback is registered before the block
        runs and never fires for a context that had already ended on entry,
        so callers check :meth:`done` inside the block before starting the
        statement. Leaving the block waits for a callback that is already
        running and stops any later one.
        """
        entry_lock = Lock()
        state = {'fired': False, 'closed': False}

        def fire():
            with entry_lock:
                if state['fired'] or state['closed']:
                    return
                state['fired'] = True
                try:
                    callback()
                except Exception:
                    LOG.warning('Interrupt callback failed', exc_info=True)

        with self._lock:
            self._callbacks.append(fire)
            already_done = self._error is not None
        timer = None
        if not already_done and self._deadline is not None:
            timer = Timer(self.remaining(), self._expire)
            timer.daemon = True
            timer.start()
        try:
            yield
        finally:
            if timer is not None:
                timer.cancel()
            with self._lock:
                self._callbacks.remove(fire)
            with entry_lock:
                state['closed'] = True

    def _check_deadline(self):
        if self._deadline is None or self._error is not None:
            return
        if self._time_utils.monotonic() >= self._deadline:
            self._finish(DeadlineExceeded())

    def _expire(self):
        self._finish(DeadlineExceeded())

    def _finish(self, signal):
        with self._lock:
            if self._error is not None:
                return
            self._error = signal
            self._event.set()
            callbacks = list(self._callbacks)
        for callback in callbacks:
            callback()
