"""Turn a fractional time of day into the next wall-clock instant it occurs at."""

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from numbers import Real
from typing import Optional, Tuple

from .errors import InvalidOffset


def validate_offset(offset) -> float:
    """Return ``offset`` as a float, or raise InvalidOffset if it is not in [0, 24)."""
    if isinstance(offset, bool) or not isinstance(offset, Real):
        raise InvalidOffset(offset)
    value = float(offset)
    if math.isnan(value) or not 0 <= value < 24:
        raise InvalidOffset(offset)
    return value


def split_offset(offset) -> Tuple[int, int, int]:
    """
    Decompose a fractional hour into ``(day_carry, hour, minute)``.

    Minutes are rounded, so 22.999 becomes 23:00 and 23.999 becomes 00:00
    of the following day (``day_carry == 1``).
    """
    value = validate_offset(offset)
    hours = math.floor(value)
    minutes = round((value - hours) * 60)
    if minutes >= 60:
        hours += 1
        minutes = 0
    day_carry = 0
    if hours >= 24:
        hours -= 24
        day_carry = 1
    return day_carry, hours, minutes


def daily_cron_expression(hour: int, minute: int) -> str:
    """Cron expression firing every day at ``hour:minute``."""
    return f"{minute} {hour} * * *"


@dataclass(frozen=True)
class ResolvedTime:
    """The first fire instant of an occurrence plus its daily repetition rule."""
    instant: datetime
    hour: int
    minute: int

    @property
    def cron_expression(self) -> str:
        return daily_cron_expression(self.hour, self.minute)


def _wall_clock(day: date, hour: int, minute: int, tz: tzinfo) -> datetime:
    local = datetime(day.year, day.month, day.day, hour, minute, tzinfo=tz)
    # Round-trip through UTC so a time inside a DST gap lands on a real instant
    return local.astimezone(timezone.utc).astimezone(tz)


def resolve_next_fire(offset, now: datetime, tz: Optional[tzinfo] = None) -> ResolvedTime:
    """
    Resolve the next instant, strictly after ``now``, at which ``offset`` occurs.

    Args:
        offset: Time of day in fractional hours, e.g. 22.5 for 22:30
        now: Timezone-aware reference instant
        tz: Target timezone; defaults to ``now``'s own timezone

    Returns:
        ResolvedTime for today if that time is still ahead, otherwise for the
        same wall-clock time on the next calendar day
    """
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")
    if tz is None:
        tz = now.tzinfo
    else:
        now = now.astimezone(tz)

    day_carry, hour, minute = split_offset(offset)
    day = now.date() + timedelta(days=day_carry)
    candidate = _wall_clock(day, hour, minute, tz)
    # Aware datetimes sharing a tzinfo compare by wall clock, so compare in UTC
    if candidate.astimezone(timezone.utc) <= now.astimezone(timezone.utc):
        candidate = _wall_clock(day + timedelta(days=1), hour, minute, tz)

    return ResolvedTime(instant=candidate, hour=hour, minute=minute)
