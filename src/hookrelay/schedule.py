"""Trigger scheduling aligned to the deployment sync cycle.

The deployment sync job runs every five minutes on the wall clock
(5:35 PM, 5:40 PM, ...). A test run is only useful once the sync has had
a minute to roll out the new image, so triggers fire at the next cycle
boundary plus a one minute grace offset (5:36 PM, 5:41 PM, ...).

All functions here are pure: the current time is always passed in.
Arithmetic is done in integer microseconds since the Unix epoch so the
computed instant lands exactly on the boundary.
"""

from datetime import datetime, timedelta, timezone

DEFAULT_SYNC_PERIOD = timedelta(minutes=5)
DEFAULT_SYNC_OFFSET = timedelta(minutes=1)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MICROSECOND = timedelta(microseconds=1)


def _as_utc(now: datetime) -> datetime:
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def delay_until_next_trigger(
    now: datetime,
    period: timedelta = DEFAULT_SYNC_PERIOD,
    offset: timedelta = DEFAULT_SYNC_OFFSET,
) -> timedelta:
    """Compute how long to wait before firing the next trigger.

    The trigger instant is ``ceil(now / period) * period + offset``. When
    that is not strictly after ``now`` (only possible with a zero offset on
    an exact boundary) it moves forward by one period, so the result is
    always in ``(0, period + offset]``.

    Args:
        now: The current time. Naive datetimes are treated as UTC.
        period: Length of one sync cycle.
        offset: Grace offset after each cycle boundary.

    Returns:
        Positive delay until the next trigger instant.

    Raises:
        ValueError: If period is not positive or offset is outside
            ``[0, period)``.
    """
    if period <= timedelta(0):
        raise ValueError("period must be positive")
    if not timedelta(0) <= offset < period:
        raise ValueError("offset must be >= 0 and less than period")

    now_us = (_as_utc(now) - _EPOCH) // _MICROSECOND
    period_us = period // _MICROSECOND
    offset_us = offset // _MICROSECOND

    boundary_us = -(-now_us // period_us) * period_us
    next_us = boundary_us + offset_us
    if next_us <= now_us:
        next_us += period_us

    return timedelta(microseconds=next_us - now_us)


def next_trigger_time(
    now: datetime,
    period: timedelta = DEFAULT_SYNC_PERIOD,
    offset: timedelta = DEFAULT_SYNC_OFFSET,
) -> datetime:
    """Return the absolute instant of the next trigger after ``now``."""
    return _as_utc(now) + delay_until_next_trigger(now, period, offset)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
