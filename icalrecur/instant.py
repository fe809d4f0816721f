# icalrecur
# Copyright (C) 2024 The icalrecur authors
#
# This program is free software; you can redistribute it and/or
# modify it under the terms of the GNU General Public License
# as published by the Free Software Foundation; version 3
# of the License or (at your option) any later version of
# the License.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program; if not, write to the Free Software
# Foundation, Inc., 51 Franklin Street, Fifth Floor, Boston,
# MA  02110-1301, USA.

"""Instants, periods and calendar arithmetic.

An Instant is an aware datetime plus a flag recording whether the value
came from a DATE (all-day) property. Nominal units (years, months, weeks,
days) are added on the wall clock of the instant's zone, exact units
(hours, minutes, seconds) as elapsed time, following RFC 5545 section
3.3.6.
"""

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta
from icalendar.prop import vDate, vDatetime

UTC = ZoneInfo("UTC")

UNIT_SECOND = "second"
UNIT_MINUTE = "minute"
UNIT_HOUR = "hour"
UNIT_DAY = "day"
UNIT_WEEK = "week"
UNIT_MONTH = "month"
UNIT_YEAR = "year"

WEEKDAYS = ("MO", "TU", "WE", "TH", "FR", "SA", "SU")

# Fields cleared when truncating to the start of a unit, finest first.
_TRUNCATED_FIELDS = {
    UNIT_SECOND: {"microsecond": 0},
    UNIT_MINUTE: {"microsecond": 0, "second": 0},
    UNIT_HOUR: {"microsecond": 0, "second": 0, "minute": 0},
    UNIT_DAY: {"microsecond": 0, "second": 0, "minute": 0, "hour": 0},
    UNIT_WEEK: {"microsecond": 0, "second": 0, "minute": 0, "hour": 0},
    UNIT_MONTH: {"microsecond": 0, "second": 0, "minute": 0, "hour": 0, "day": 1},
    UNIT_YEAR: {
        "microsecond": 0,
        "second": 0,
        "minute": 0,
        "hour": 0,
        "day": 1,
        "month": 1,
    },
}


def zone_name(tz: Optional[tzinfo]) -> Optional[str]:
    """Return the IANA identifier of a zone, or None for local/fixed zones."""
    key = getattr(tz, "key", None)
    if key:
        return key
    if tz is timezone.utc:
        return "UTC"
    return None


def _normalize(dt: datetime) -> datetime:
    # Resolves wall-clock times that fall in a DST gap.
    return dt.astimezone(timezone.utc).astimezone(dt.tzinfo)


class WeekConvention:
    """Week numbering with a configurable first day of the week.

    Week 1 of a year is the first week with at least four days in that
    year, as in RFC 5545 section 3.3.10.
    """

    def __init__(self, first_weekday: int = 0) -> None:
        if not 0 <= first_weekday <= 6:
            raise ValueError(f"invalid weekday {first_weekday!r}")
        self.first_weekday = first_weekday

    def __repr__(self) -> str:
        return f"{type(self).__name__}({WEEKDAYS[self.first_weekday]!r})"

    def __eq__(self, other):
        return (
            isinstance(other, WeekConvention)
            and self.first_weekday == other.first_weekday
        )

    def __hash__(self):
        return hash(self.first_weekday)

    def weekday_index(self, d: date) -> int:
        """Position of a day within its week, starting at 0."""
        return (d.weekday() - self.first_weekday) % 7

    def week_start(self, d: date) -> date:
        return d - timedelta(days=self.weekday_index(d))

    def first_week_start(self, year: int) -> date:
        return self.week_start(date(year, 1, 4))

    def weeks_in_year(self, year: int) -> int:
        return (self.first_week_start(year + 1) - self.first_week_start(year)).days // 7

    def week_number(self, d: date) -> tuple[int, int]:
        """Return the (week-numbering year, week number) of a day."""
        year = d.year
        if d < self.first_week_start(year):
            year -= 1
        elif d >= self.first_week_start(year + 1):
            year += 1
        week = (self.week_start(d) - self.first_week_start(year)).days // 7 + 1
        return year, week


ISO_WEEKS = WeekConvention(0)


class Instant:
    """A point in time in a particular zone.

    Ordering and equality compare the absolute point in time; equality
    also requires the same date-only flag.
    """

    __slots__ = ("dt", "is_date")

    def __init__(self, dt: datetime, is_date: bool = False) -> None:
        if dt.tzinfo is None:
            raise ValueError(f"naive datetime {dt!r}")
        if is_date:
            dt = dt.replace(**_TRUNCATED_FIELDS[UNIT_DAY])
        self.dt = dt
        self.is_date = is_date

    @classmethod
    def from_date(cls, d: date) -> "Instant":
        return cls(datetime.combine(d, time(), tzinfo=UTC), is_date=True)

    @property
    def zone(self) -> Optional[str]:
        return zone_name(self.dt.tzinfo)

    def __repr__(self) -> str:
        return "{}({!r}, is_date={!r})".format(
            type(self).__name__, self.dt.isoformat(), self.is_date
        )

    def utc(self) -> datetime:
        return self.dt.astimezone(timezone.utc)

    def same_instant(self, other: "Instant") -> bool:
        return self.utc() == other.utc()

    def __eq__(self, other):
        if not isinstance(other, Instant):
            return NotImplemented
        return self.is_date == other.is_date and self.same_instant(other)

    def __hash__(self):
        return hash((self.utc(), self.is_date))

    def __lt__(self, other: "Instant") -> bool:
        return self.utc() < other.utc()

    def __le__(self, other: "Instant") -> bool:
        return self.utc() <= other.utc()

    def __gt__(self, other: "Instant") -> bool:
        return self.utc() > other.utc()

    def __ge__(self, other: "Instant") -> bool:
        return self.utc() >= other.utc()

    def __sub__(self, other: "Instant") -> timedelta:
        """Elapsed time between two instants."""
        if not isinstance(other, Instant):
            return NotImplemented
        return self.utc() - other.utc()

    def __add__(self, delta: timedelta) -> "Instant":
        """Add an exact amount of elapsed time."""
        if not isinstance(delta, timedelta):
            return NotImplemented
        return self._derive((self.utc() + delta).astimezone(self.dt.tzinfo))

    def _derive(self, dt: datetime) -> "Instant":
        ret = Instant.__new__(Instant)
        ret.dt = dt
        ret.is_date = self.is_date
        return ret

    def add_duration(self, duration: timedelta) -> "Instant":
        """Add an iCalendar duration: days nominally, the rest exactly."""
        return self.shift(
            days=duration.days,
            seconds=duration.seconds,
            microseconds=duration.microseconds,
        )

    def shift(
        self,
        years=0,
        months=0,
        weeks=0,
        days=0,
        hours=0,
        minutes=0,
        seconds=0,
        microseconds=0,
    ) -> "Instant":
        """Move by calendar units.

        Raises:
          ValueError, OverflowError: if the result is out of range
        """
        dt = self.dt
        if years or months or weeks or days:
            dt = _normalize(
                dt + relativedelta(years=years, months=months, weeks=weeks, days=days)
            )
        if hours or minutes or seconds or microseconds:
            exact = timedelta(
                hours=hours, minutes=minutes, seconds=seconds, microseconds=microseconds
            )
            dt = (dt.astimezone(timezone.utc) + exact).astimezone(dt.tzinfo)
        return self._derive(dt)

    def shift_unit(self, unit: str, amount: int) -> "Instant":
        return self.shift(**{unit + "s": amount})

    def replace(self, **fields) -> "Instant":
        """Set wall-clock fields, keeping the zone.

        Raises:
          ValueError: if the fields do not form a valid date
        """
        return self._derive(_normalize(self.dt.replace(**fields)))

    def with_fields_of(self, other: "Instant", fields) -> "Instant":
        """Copy the named wall-clock fields from another instant."""
        theirs = other.dt.astimezone(self.dt.tzinfo)
        return self.replace(**{name: getattr(theirs, name) for name in fields})

    def start_of(self, unit: str, convention: WeekConvention = ISO_WEEKS) -> "Instant":
        ret = self.replace(**_TRUNCATED_FIELDS[unit])
        if unit == UNIT_WEEK:
            offset = convention.weekday_index(ret.dt.date())
            if offset:
                ret = ret.shift(days=-offset)
        return ret

    def has_same(
        self, other: "Instant", unit: str, convention: WeekConvention = ISO_WEEKS
    ) -> bool:
        """Check whether two instants fall in the same unit-long period."""
        theirs = self._derive(other.dt.astimezone(self.dt.tzinfo))
        return self.start_of(unit, convention).same_instant(
            theirs.start_of(unit, convention)
        )

    def to_ical(self) -> str:
        if self.is_date:
            return vDate(self.dt.date()).to_ical().decode("ascii")
        ret = vDatetime(self.dt.replace(tzinfo=None)).to_ical().decode("ascii")
        if self.zone == "UTC":
            ret += "Z"
        return ret

    def to_property(self, name: str) -> str:
        """Render a property line that parses back to this instant."""
        if self.is_date:
            return f"{name};VALUE=DATE:{self.to_ical()}"
        zone = self.zone
        if zone is None or zone == "UTC":
            return f"{name}:{self.to_ical()}"
        return f"{name};TZID={zone}:{self.to_ical()}"


class Period:
    """A closed interval between two instants."""

    def __init__(self, start: Instant, end: Instant) -> None:
        if end < start:
            raise ValueError(f"period end {end!r} before start {start!r}")
        self.start = start
        self.end = end

    @classmethod
    def from_duration(cls, start: Instant, duration: timedelta) -> "Period":
        return cls(start, start.add_duration(duration))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.start!r}, {self.end!r})"

    def __eq__(self, other):
        if not isinstance(other, Period):
            return NotImplemented
        return self.start == other.start and self.end == other.end

    def __hash__(self):
        return hash((self.start, self.end))

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def contains(self, instant: Instant) -> bool:
        return self.start <= instant <= self.end

    def is_before(self, instant: Instant) -> bool:
        """Check whether the whole period lies before an instant."""
        return self.end < instant

    def to_ical(self) -> str:
        return f"{self.start.to_ical()}/{self.end.to_ical()}"
