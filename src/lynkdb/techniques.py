"""This module encapsulates the technique used to wait for a lock."""
import logging
from enum import Enum

from lynkdb.utils import TimeUtils
from lynkdb.utils import to_seconds


LOG = logging.getLogger(__name__)
DEFAULT_POLL_INTERVAL = 0.05


class WaitResult(Enum):
    ACQUIRED = 'acquired'
    EXHAUSTED = 'exhausted'
    INTERRUPTED = 'interrupted'


def normalize_wait_budget(wait_budget):
    """Return the wait budget in seconds.

    :type wait_budget: int, float or :class:`datetime.timedelta`
    :param wait_budget: How long a caller is willing to wait to acquire a
        lock. Zero means try once, a negative value means wait until the
        caller's context ends.
    """
    return to_seconds(wait_budget)


class BaseTechnique(object):
    def wait(self, probe, wait_budget, context):
        raise NotImplementedError('wait')


class PollTechnique(BaseTechnique):
    """Emulate a bounded wait on top of a non-blocking probe.

    Some backends can only try to take a lock once, without waiting. This
    technique turns such a probe into a wait that lasts up to a wait budget
    by calling the probe repeatedly, sleeping ``poll_interval`` seconds
    between attempts::

      budget == 0   one probe, no retries
      budget  > 0   retry until the probe succeeds or the budget elapses
      budget  < 0   retry until the probe succeeds or the context ends

    The caller's context is checked before every probe and after every
    sleep, and the sleep itself wakes up as soon as the context ends. If the
    context has ended and the budget has run out at the same check, the
    context wins, since it is a hard limit imposed from outside. A probe that
    succeeds always wins; the caller then owns the lock and is responsible
    for releasing it.

    Waiters that poll get no ordering guarantee between them, each one is
    retrying independently.

    :type poll_interval: float
    :param poll_interval: Seconds to sleep between probes.

    :type time_utils: :class:`lynkdb.utils.TimeUtils`
    :param time_utils: A set of utilities for interacting with time.
    """
    def __init__(self, poll_interval=DEFAULT_POLL_INTERVAL, time_utils=None):
        if poll_interval <= 0:
            raise ValueError('poll_interval must be positive')
        self._poll_interval = poll_interval
        if time_utils is None:
            time_utils = TimeUtils()
        self._time_utils = time_utils

    @property
    def poll_interval(self):
        return self._poll_interval

    def wait(self, probe, wait_budget, context):
        """Call ``probe`` until it returns ``True`` or waiting must stop.

        :type probe: callable
        :param probe: Zero argument callable making one non-blocking attempt.
            Returns ``True`` if the lock was taken. Exceptions it raises are
            not caught.

        :type wait_budget: float
        :param wait_budget: Seconds to wait, see the class documentation.

        :type context: :class:`lynkdb.context.Context`
        :param context: The caller's context.

        :rtype: :class:`WaitResult`
        """
        wait_budget = normalize_wait_budget(wait_budget)
        start_time = self._time_utils.monotonic()
        attempts = 0
        while True:
            if context.done():
                return WaitResult.INTERRUPTED
            attempts += 1
            if probe():
                LOG.debug('Probe succeeded after %s attempt(s)', attempts)
                return WaitResult.ACQUIRED
            if wait_budget == 0:
                return WaitResult.EXHAUSTED
            sleep_time = self._poll_interval
            if wait_budget > 0:
                time_waited = self._time_utils.monotonic() - start_time
                remaining = wait_budget - time_waited
                if remaining <= 0:
                    if context.done():
                        return WaitResult.INTERRUPTED
                    return WaitResult.EXHAUSTED
                sleep_time = min(sleep_time, remaining)
            if context.wait(sleep_time):
                return WaitResult.INTERRUPTED
