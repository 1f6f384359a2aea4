"""
Grant quotas.

A grant either carries no cap (``Unlimited``) or a numeric cap, optionally
refilled every ``Window``. The wire format keeps three loose fields
(``value``, ``limit_type``, ``limit_period``); they are converted to and from
this sum type at the schema boundary and nowhere else.
"""
from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Union

from ..errors import ValidationError


class LimitType(str, enum.Enum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


_UNIT_NAMES: dict[LimitType, str] = {
    LimitType.DAILY: "day",
    LimitType.WEEKLY: "week",
    LimitType.MONTHLY: "month",
}

# Only used to order windows against each other, never for enforcement.
_APPROX_DAYS: dict[LimitType, int] = {
    LimitType.DAILY: 1,
    LimitType.WEEKLY: 7,
    LimitType.MONTHLY: 30,
}


@dataclass(frozen=True)
class Window:
    limit_type: LimitType
    limit_period: int

    def __post_init__(self) -> None:
        if self.limit_type == LimitType.NONE:
            raise ValidationError("limit_type", "a window needs daily, weekly or monthly")
        if isinstance(self.limit_period, bool) or not isinstance(self.limit_period, int):
            raise ValidationError("limit_period", "must be an integer")
        if self.limit_period < 1:
            raise ValidationError("limit_period", "must be a positive integer")

    @property
    def approx_days(self) -> int:
        return _APPROX_DAYS[self.limit_type] * self.limit_period

    def __str__(self) -> str:
        unit = _UNIT_NAMES[self.limit_type]
        if self.limit_period == 1:
            return f"1 {unit}"
        return f"{self.limit_period} {unit}s"


@dataclass(frozen=True)
class Unlimited:
    def as_dict(self) -> dict[str, Any]:
        return {"value": None, "window": None}

    def __str__(self) -> str:
        return "unlimited"


@dataclass(frozen=True)
class Capped:
    value: float
    window: Window | None = None

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, (int, float)):
            raise ValidationError("value", "must be a number")
        if self.value < 0:
            raise ValidationError("value", "must not be negative")

    def as_dict(self) -> dict[str, Any]:
        return {
            "value": self.value,
            "window": str(self.window) if self.window is not None else None,
        }

    def __str__(self) -> str:
        if self.window is None:
            return f"{self.value:g}"
        return f"{self.value:g} per {self.window}"


Quota = Union[Unlimited, Capped]

UNLIMITED = Unlimited()


def quota_from_fields(
    value: float | None,
    limit_type: LimitType | str | None,
    limit_period: int | None,
) -> Quota:
    """Build a quota from the three wire fields.

    ``limit_period`` must be present exactly when ``limit_type`` is set to a
    real window, and a window is only accepted together with a value.

    Raises:
        ValidationError: If the fields do not describe a valid quota
    """
    if limit_type is None or limit_type == LimitType.NONE or limit_type == "none":
        kind = LimitType.NONE
    else:
        try:
            kind = LimitType(limit_type)
        except ValueError as exc:
            raise ValidationError(
                "limit_type", "must be one of none, daily, weekly, monthly"
            ) from exc

    if kind == LimitType.NONE:
        if limit_period is not None:
            raise ValidationError("limit_period", "supplied without limit_type")
        if value is None:
            return UNLIMITED
        return Capped(value=value)

    if limit_period is None:
        raise ValidationError("limit_period", "required when limit_type is set")
    if value is None:
        raise ValidationError("limit_type", "a time window requires a value")
    return Capped(value=value, window=Window(kind, limit_period))


def quota_to_fields(quota: Quota) -> tuple[float | None, LimitType, int | None]:
    if isinstance(quota, Unlimited):
        return None, LimitType.NONE, None
    if quota.window is None:
        return quota.value, LimitType.NONE, None
    return quota.value, quota.window.limit_type, quota.window.limit_period


def _generosity(quota: Capped) -> tuple[float, float]:
    # Equal caps: a shorter window refills sooner; a one-off cap ranks last.
    if quota.window is None:
        return (quota.value, float("-inf"))
    return (quota.value, -quota.window.approx_days)


def most_generous(quotas: Iterable[Quota]) -> Quota | None:
    """Union of quotas held through several roles.

    Any unlimited grant wins outright, otherwise the largest cap. Returns None
    when no quota was given (the permission is not granted at all).
    """
    best: Capped | None = None
    for quota in quotas:
        if isinstance(quota, Unlimited):
            return UNLIMITED
        if best is None or _generosity(quota) > _generosity(best):
            best = quota
    return best
