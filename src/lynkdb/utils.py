import time
from datetime import timedelta


class TimeUtils(object):
    """Thin wrapper around :mod:`time` so clocks can be faked in tests."""
    def monotonic(self):
        return time.monotonic()

    def sleep(self, seconds):
        time.sleep(seconds)


def to_seconds(value):
    """Convert a number of seconds or a :class:`datetime.timedelta`."""
    if isinstance(value, timedelta):
        return value.total_seconds()
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(
            'Expected seconds as a number or timedelta, got %r' % (value,))
    return value
