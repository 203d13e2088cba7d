from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta

from croniter import CroniterBadDateError, CroniterError, croniter

from proxy_cron._exceptions import CrontabParseError

__all__ = ("ADMISSION_WINDOW", "normalize_crontab", "is_admitted", "next_occurrence")

logger = logging.getLogger(__name__)

ADMISSION_WINDOW = timedelta(minutes=1)
CRONTAB_FIELDS = 5
FIELD_NAMES = ("minute", "hour", "day-of-month", "month", "day-of-week")
# a number, a three-letter name, "*" or "?"
_VALUE = re.compile(r"^(?:\*|\?|\d+|[A-Za-z]{3})$")


def normalize_crontab(raw: str) -> str:
    """Replace underscores with spaces, so ``0_0_*_*_*`` reads as ``0 0 * * *``."""
    return raw.replace("_", " ")


def _check_field(position: int, field: str, expression: str) -> None:
    """
    Reject what croniter accepts beyond standard cron: ``L``, ``W``, ``#``,
    ``H``, names outside month and day-of-week, and day-of-week ``7``.
    """
    name = FIELD_NAMES[position]
    for part in field.split(","):
        span, slash, step = part.partition("/")
        if slash and not step.isdecimal():
            raise CrontabParseError(f"failed to parse crontab: invalid {name} step {part!r}: {expression!r}")
        for value in span.split("-"):
            if (
                not _VALUE.match(value)
                or (value.isalpha() and position < 3)
                or (name == "day-of-week" and value.isdecimal() and int(value) > 6)
            ):
                raise CrontabParseError(f"failed to parse crontab: invalid {name} value {value!r}: {expression!r}")


def _parse(expression: str, now: datetime) -> croniter:
    fields = expression.split()
    if len(fields) != CRONTAB_FIELDS:
        raise CrontabParseError(
            f"failed to parse crontab: expected exactly {CRONTAB_FIELDS} fields, found {len(fields)}: {expression!r}"
        )
    for position, field in enumerate(fields):
        _check_field(position, field, expression)
    try:
        return croniter(" ".join(fields), now)
    except CroniterError as e:
        raise CrontabParseError(f"failed to parse crontab: {e}") from e


def next_occurrence(expression: str, now: datetime) -> datetime | None:
    """
    Return the earliest instant strictly after ``now`` matching ``expression``.

    Returns None for expressions that are valid but never match, such as
    ``0 0 31 2 *``.

    Raises:
        CrontabParseError: If ``expression`` is not a five-field cron expression.
    """
    schedule = _parse(expression, now)
    try:
        return schedule.get_next(datetime)
    except CroniterBadDateError:
        return None


def is_admitted(expression: str, now: datetime | None = None) -> bool:
    """
    Check whether the next scheduled occurrence is at most one minute away.

    This is not an "is it the scheduled minute right now" test. Callers are
    expected to poll at sub-minute intervals, and the one minute window
    absorbs request latency and clock skew between the caller and the proxy.

    Args:
        expression: Normalized five-field cron expression
            (minute, hour, day-of-month, month, day-of-week).
        now: The instant to evaluate at. Defaults to the current local time.
            Naive datetimes are treated as local time, aware ones are
            evaluated in their own timezone.

    Returns:
        True if ``now`` falls inside the admission window.

    Raises:
        CrontabParseError: If ``expression`` does not parse.

    Example:
        ```python
        is_admitted("* * * * *")  # True, there is always a next minute
        is_admitted("0 0 31 2 *")  # False, February 31st never happens
        ```
    """
    if now is None:
        now = datetime.now().astimezone()
    elif now.tzinfo is None:
        now = now.astimezone()

    next_time = next_occurrence(expression, now)
    if next_time is None:
        logger.debug("Crontab %r has no next occurrence", expression)
        return False

    diff = next_time - now
    admitted = now < next_time and diff <= ADMISSION_WINDOW
    logger.debug("Crontab %r: next=%s diff=%s admitted=%s", expression, next_time.isoformat(), diff, admitted)
    return admitted
