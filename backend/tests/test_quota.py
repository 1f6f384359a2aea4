import uuid

import pytest

from gatekeeper.domain.grants import GrantSpec, ensure_grant_set
from gatekeeper.domain.quota import (
    UNLIMITED,
    Capped,
    LimitType,
    Unlimited,
    Window,
    most_generous,
    quota_from_fields,
    quota_to_fields,
)
from gatekeeper.errors import ValidationError


def test_no_value_and_no_window_is_unlimited() -> None:
    assert quota_from_fields(None, None, None) is UNLIMITED
    assert quota_from_fields(None, "none", None) is UNLIMITED


def test_value_with_daily_window() -> None:
    quota = quota_from_fields(500, LimitType.DAILY, 1)

    assert quota == Capped(500, Window(LimitType.DAILY, 1))
    assert quota.as_dict() == {"value": 500, "window": "1 day"}


def test_value_without_window_is_a_plain_cap() -> None:
    quota = quota_from_fields(3, None, None)

    assert quota == Capped(3)
    assert quota.as_dict() == {"value": 3, "window": None}


def test_zero_is_a_cap_not_unlimited() -> None:
    quota = quota_from_fields(0, None, None)

    assert isinstance(quota, Capped)
    assert quota.value == 0


@pytest.mark.parametrize(
    ("limit_type", "period", "expected"),
    [
        (LimitType.DAILY, 1, "1 day"),
        (LimitType.WEEKLY, 2, "2 weeks"),
        (LimitType.MONTHLY, 1, "1 month"),
        (LimitType.MONTHLY, 3, "3 months"),
    ],
)
def test_window_text(limit_type: LimitType, period: int, expected: str) -> None:
    assert str(Window(limit_type, period)) == expected


def test_window_without_value_is_rejected() -> None:
    with pytest.raises(ValidationError) as exc_info:
        quota_from_fields(None, LimitType.WEEKLY, 1)

    assert exc_info.value.field == "limit_type"


def test_window_requires_period() -> None:
    with pytest.raises(ValidationError) as exc_info:
        quota_from_fields(10, LimitType.DAILY, None)

    assert exc_info.value.field == "limit_period"


def test_period_without_window_is_rejected() -> None:
    with pytest.raises(ValidationError) as exc_info:
        quota_from_fields(10, None, 2)

    assert exc_info.value.field == "limit_period"


@pytest.mark.parametrize("period", [0, -1])
def test_period_must_be_positive(period: int) -> None:
    with pytest.raises(ValidationError):
        quota_from_fields(10, LimitType.DAILY, period)


def test_negative_value_is_rejected() -> None:
    with pytest.raises(ValidationError) as exc_info:
        quota_from_fields(-1, None, None)

    assert exc_info.value.field == "value"


def test_unknown_limit_type_is_rejected() -> None:
    with pytest.raises(ValidationError) as exc_info:
        quota_from_fields(1, "hourly", 1)

    assert exc_info.value.field == "limit_type"


def test_quota_to_fields() -> None:
    assert quota_to_fields(UNLIMITED) == (None, LimitType.NONE, None)
    assert quota_to_fields(Capped(7)) == (7, LimitType.NONE, None)
    assert quota_to_fields(Capped(7, Window(LimitType.WEEKLY, 2))) == (
        7,
        LimitType.WEEKLY,
        2,
    )


def test_most_generous_of_nothing_is_none() -> None:
    assert most_generous([]) is None


def test_unlimited_wins_over_any_cap() -> None:
    quotas = [Capped(1_000_000), UNLIMITED, Capped(5, Window(LimitType.DAILY, 1))]

    assert isinstance(most_generous(quotas), Unlimited)


def test_largest_cap_wins() -> None:
    small = Capped(100, Window(LimitType.DAILY, 1))
    large = Capped(500, Window(LimitType.MONTHLY, 1))

    assert most_generous([small, large]) == large
    assert most_generous([large, small]) == large


def test_equal_caps_prefer_shorter_window() -> None:
    daily = Capped(100, Window(LimitType.DAILY, 1))
    weekly = Capped(100, Window(LimitType.WEEKLY, 1))
    one_off = Capped(100)

    assert most_generous([weekly, one_off, daily]) == daily
    assert most_generous([one_off, weekly]) == weekly


def test_duplicate_permission_in_grant_set_is_rejected() -> None:
    permission_id = uuid.uuid4()
    grants = [GrantSpec(permission_id), GrantSpec(permission_id, Capped(3))]

    with pytest.raises(ValidationError) as exc_info:
        ensure_grant_set(grants)

    assert exc_info.value.field == "grants"


def test_empty_grant_set_is_valid() -> None:
    assert ensure_grant_set([]) == []
