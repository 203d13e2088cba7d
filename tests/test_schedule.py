from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest
from time_machine import travel

from proxy_cron import CrontabParseError, is_admitted, normalize_crontab
from proxy_cron._schedule import next_occurrence

UTC = timezone.utc


def test_normalize_crontab():
    assert normalize_crontab("0_0_31_2_*") == "0 0 31 2 *"
    assert normalize_crontab("*/5 * * * *") == "*/5 * * * *"
    assert normalize_crontab("0_12_*_*_1-5") == "0 12 * * 1-5"


def test_every_minute_is_always_admitted():
    assert is_admitted("* * * * *") is True


@pytest.mark.parametrize(
    "now",
    [
        datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC),
        datetime(2024, 1, 1, 12, 0, 0, 1, tzinfo=UTC),
        datetime(2024, 1, 1, 12, 0, 59, 999999, tzinfo=UTC),
    ],
)
def test_every_minute_at_minute_edges(now: datetime):
    assert is_admitted("* * * * *", now) is True


def test_never_matching_expression_is_not_admitted():
    assert is_admitted("0 0 31 2 *") is False
    assert next_occurrence("0 0 31 2 *", datetime(2024, 1, 1, tzinfo=UTC)) is None


def test_underscores_are_transparent():
    now = datetime(2024, 2, 28, 23, 59, 30, tzinfo=UTC)
    for raw in ("0_0_31_2_*", "0 0 31 2 *", "0_0_*_*_*", "0 0 * * *"):
        assert is_admitted(normalize_crontab(raw), now) == is_admitted(raw.replace("_", " "), now)


@pytest.mark.parametrize(
    "now, admitted",
    [
        (datetime(2024, 1, 1, 11, 58, 59, tzinfo=UTC), False),
        (datetime(2024, 1, 1, 11, 59, 0, tzinfo=UTC), True),
        (datetime(2024, 1, 1, 11, 59, 30, tzinfo=UTC), True),
        (datetime(2024, 1, 1, 11, 59, 59, tzinfo=UTC), True),
        # the scheduled minute itself looks a day ahead
        (datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC), False),
        (datetime(2024, 1, 1, 12, 0, 30, tzinfo=UTC), False),
    ],
)
def test_admission_window(now: datetime, admitted: bool):
    assert is_admitted("0 12 * * *", now) is admitted


def test_next_occurrence_is_strictly_after_now():
    now = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)

    assert next_occurrence("0 12 * * *", now) == datetime(2024, 1, 2, 12, 0, 0, tzinfo=UTC)
    assert next_occurrence("*/15 * * * *", now) == now + timedelta(minutes=15)


def test_aware_datetimes_keep_their_timezone():
    now = datetime(2024, 6, 1, 8, 59, 30, tzinfo=ZoneInfo("Europe/Berlin"))

    assert is_admitted("0 9 * * *", now) is True
    assert is_admitted("0 7 * * *", now) is False


@travel(datetime(2024, 1, 1, 11, 59, 30, tzinfo=ZoneInfo("UTC")), tick=False)
def test_defaults_to_current_time():
    assert is_admitted("0 12 * * *") is True
    assert is_admitted("0 13 * * *") is False


@travel(datetime(2024, 1, 1, 11, 59, 30, tzinfo=ZoneInfo("UTC")), tick=False)
def test_naive_datetimes_are_local_time():
    assert is_admitted("0 12 * * *", datetime(2024, 1, 1, 11, 59, 30)) is True


@pytest.mark.parametrize(
    "expression",
    [
        "blah",
        "invalid crontab",
        "",
        "* * * *",
        "0 * * * * *",
        "@hourly",
        "60 * * * *",
        "* 24 * * *",
        "* * 32 * *",
        "* * * 13 *",
        "* * * * 8",
        "* * * * 7",
        "* * * * 5-7",
        "0 0 L * *",
        "0 0 1W * *",
        "0 0 LW * *",
        "0 0 * * 1#2",
        "0 0 * * 5L",
        "H * * * *",
        "0 0 * * mon/x",
        "jan * * * *",
        "0 0 1- * *",
        "a b c d e",
    ],
)
def test_invalid_expressions(expression: str):
    with pytest.raises(CrontabParseError, match="^failed to parse crontab: "):
        is_admitted(expression)


def test_wrong_field_count_message():
    with pytest.raises(CrontabParseError, match=r"expected exactly 5 fields, found 1: 'blah'"):
        is_admitted("blah")


def test_names_ranges_and_steps():
    monday = datetime(2024, 1, 1, 8, 59, 30, tzinfo=UTC)

    assert is_admitted("0 9 * jan mon", monday) is True
    assert is_admitted("0 9 * * mon-fri", monday) is True
    assert is_admitted("0 9 * * sat,sun", monday) is False
    assert is_admitted("0 */3 * * *", monday) is True
    assert is_admitted("0 */2 * * *", monday) is False


def test_invalid_value_message():
    with pytest.raises(CrontabParseError, match=r"invalid day-of-week value '7': '\* \* \* \* 7'"):
        is_admitted("* * * * 7")


@pytest.mark.parametrize("expression", ["0 0 ? * mon", "0 0 * * 0", "0 0 * * 6", "5/15 * * * *", "0 0 1,15 * *"])
def test_standard_syntax_is_accepted(expression: str):
    assert is_admitted(expression, datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)) is False
