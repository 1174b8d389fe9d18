"""Donor availability: active and past the post-donation recovery window."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional, Union

DONATION_RECOVERY_DAYS = 90

DateLike = Union[date, datetime]


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def days_since(last_donation_date: DateLike, today: DateLike) -> int:
    return (_as_date(today) - _as_date(last_donation_date)).days


def is_available(
    is_active: bool,
    last_donation_date: Optional[DateLike],
    today: DateLike,
    recovery_days: int = DONATION_RECOVERY_DAYS,
) -> bool:
    """True when the donor is active and has never donated or has recovered.

    The recovery boundary is inclusive: exactly ``recovery_days`` days after
    the last donation the donor is available again.
    """

    if not is_active:
        return False
    if last_donation_date is None:
        return True
    return days_since(last_donation_date, today) >= recovery_days


def next_eligible_date(
    last_donation_date: Optional[DateLike],
    recovery_days: int = DONATION_RECOVERY_DAYS,
) -> Optional[date]:
    if last_donation_date is None:
        return None
    return _as_date(last_donation_date) + timedelta(days=recovery_days)
