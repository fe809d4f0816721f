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

"""Recurrence rules.

See RFC 5545, section 3.3.10.

A rule is evaluated by walking candidate instants: advance() produces the
next candidate and matches() decides whether a candidate is part of the
recurrence set.
"""

import calendar
import logging
import re
from collections.abc import Iterable
from typing import NamedTuple, Optional

from .instant import (
    ISO_WEEKS,
    UNIT_DAY,
    UNIT_HOUR,
    UNIT_MINUTE,
    UNIT_MONTH,
    UNIT_SECOND,
    UNIT_WEEK,
    UNIT_YEAR,
    WEEKDAYS,
    Instant,
    WeekConvention,
)
from .values import FormatError, parse_date_value

logger = logging.getLogger(__name__)

SECONDLY = "SECONDLY"
MINUTELY = "MINUTELY"
HOURLY = "HOURLY"
DAILY = "DAILY"
WEEKLY = "WEEKLY"
MONTHLY = "MONTHLY"
YEARLY = "YEARLY"

FREQUENCY_UNITS = {
    SECONDLY: UNIT_SECOND,
    MINUTELY: UNIT_MINUTE,
    HOURLY: UNIT_HOUR,
    DAILY: UNIT_DAY,
    WEEKLY: UNIT_WEEK,
    MONTHLY: UNIT_MONTH,
    YEARLY: UNIT_YEAR,
}

# Week starts with a supported week numbering convention.
WEEK_CONVENTIONS = {
    "MO": WeekConvention(0),
    "SU": WeekConvention(6),
    "SA": WeekConvention(5),
}

_WEEKDAY_RE = re.compile(r"^([+-]?\d{1,2})?(MO|TU|WE|TH|FR|SA|SU)$")

_SUBSECOND = ("microsecond",)
_SUBMINUTE = _SUBSECOND + ("second",)
_SUBHOUR = _SUBMINUTE + ("minute",)
_SUBDAY = _SUBHOUR + ("hour",)

# Wall-clock fields finer than the stepping unit. Stepping never changes
# them, so they are carried over when a rule moves on to a new period.
_CARRIED_FIELDS = {
    SECONDLY: _SUBSECOND,
    MINUTELY: _SUBMINUTE,
    HOURLY: _SUBHOUR,
    DAILY: _SUBDAY,
    WEEKLY: _SUBDAY,
    MONTHLY: _SUBDAY + ("day",),
    YEARLY: _SUBDAY + ("day",),
}

# Frequencies stepped by adding elapsed time rather than wall-clock fields.
_EXACT_FREQUENCIES = (SECONDLY, MINUTELY, HOURLY)


class ValidationError(Exception):
    """A recurrence rule or event is missing a required part or is invalid."""

    def __init__(self, message) -> None:
        super().__init__(message)
        self.message = message


class AdvanceError(Exception):
    """No valid candidate instant follows the given one."""

    def __init__(self, instant, reason=None) -> None:
        message = f"Unable to advance from {instant!r}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.instant = instant


class WeekdayNum(NamedTuple):
    """A BYDAY entry, e.g. -1SU for the last Sunday."""

    weekday: int
    nth: Optional[int] = None

    @classmethod
    def from_ical(cls, text: str) -> "WeekdayNum":
        m = _WEEKDAY_RE.match(text.strip().upper())
        if not m:
            raise ValidationError(f"invalid weekday {text!r}")
        nth = None
        if m.group(1) is not None:
            nth = int(m.group(1))
            if nth == 0 or abs(nth) > 53:
                raise ValidationError(f"invalid weekday ordinal {text!r}")
        return cls(WEEKDAYS.index(m.group(2)), nth)

    def to_ical(self) -> str:
        if self.nth is None:
            return WEEKDAYS[self.weekday]
        return f"{self.nth}{WEEKDAYS[self.weekday]}"


def _parse_int(name: str, text: str, minimum: int, maximum: int, signed=False) -> int:
    try:
        value = int(text)
    except ValueError as exc:
        raise ValidationError(f"{name}: {text!r} is not an integer") from exc
    if signed:
        valid = value != 0 and minimum <= abs(value) <= maximum
    else:
        valid = minimum <= value <= maximum
    if not valid:
        raise ValidationError(f"{name}: {value} out of range")
    return value


def _int_list_parser(minimum: int, maximum: int, signed=False):
    def parse(name, text):
        return [_parse_int(name, v, minimum, maximum, signed) for v in text.split(",")]

    return parse


def _parse_weekday_list(name, text):
    return [WeekdayNum.from_ical(v) for v in text.split(",")]


def _parse_positive(name, text):
    return _parse_int(name, text, 1, 2**31)


# Rule part name -> (attribute, parser)
_LIST_PARTS = {
    "BYSECOND": ("bysecond", _int_list_parser(0, 60)),
    "BYMINUTE": ("byminute", _int_list_parser(0, 59)),
    "BYHOUR": ("byhour", _int_list_parser(0, 23)),
    "BYDAY": ("byday", _parse_weekday_list),
    "BYMONTHDAY": ("bymonthday", _int_list_parser(1, 31, signed=True)),
    "BYYEARDAY": ("byyearday", _int_list_parser(1, 366, signed=True)),
    "BYWEEKNO": ("byweekno", _int_list_parser(1, 53, signed=True)),
    "BYMONTH": ("bymonth", _int_list_parser(1, 12)),
    "BYSETPOS": ("bysetpos", _int_list_parser(1, 366, signed=True)),
}


def _matches_ordinal(value: int, total: int, selectors: Iterable[int]) -> bool:
    """Check a 1-based position against positive and negative selectors."""
    for n in selectors:
        if n > 0 and value == n:
            return True
        if n < 0 and value == total + n + 1:
            return True
    return False


def _days_in_year(year: int) -> int:
    return 366 if calendar.isleap(year) else 365


def _is_repeated_wall_time(dt) -> bool:
    """Check whether dt is the second pass over a wall-clock time.

    This happens during the hour that repeats when daylight saving time
    ends.
    """
    return dt.fold == 1 and dt.replace(fold=0).utcoffset() != dt.utcoffset()


class RecurrenceRule:
    """A parsed RRULE value."""

    def __init__(
        self,
        freq: str,
        until: Optional[Instant] = None,
        count: Optional[int] = None,
        interval: int = 1,
        bysecond=(),
        byminute=(),
        byhour=(),
        byday=(),
        bymonthday=(),
        byyearday=(),
        byweekno=(),
        bymonth=(),
        bysetpos=(),
        wkst: str = "MO",
    ) -> None:
        if freq not in FREQUENCY_UNITS:
            raise ValidationError(f"invalid FREQ {freq!r}")
        if interval < 1:
            raise ValidationError(f"invalid INTERVAL {interval!r}")
        if count is not None and count < 1:
            raise ValidationError(f"invalid COUNT {count!r}")
        if wkst not in WEEKDAYS:
            raise ValidationError(f"invalid WKST {wkst!r}")
        self.freq = freq
        self.until = until
        self.count = count
        self.interval = interval
        self.bysecond = list(bysecond)
        self.byminute = list(byminute)
        self.byhour = list(byhour)
        self.byday = list(byday)
        self.bymonthday = list(bymonthday)
        self.byyearday = list(byyearday)
        self.byweekno = list(byweekno)
        self.bymonth = list(bymonth)
        self.bysetpos = list(bysetpos)
        self.wkst = wkst
        if wkst not in WEEK_CONVENTIONS:
            logger.warning("WKST=%s is not supported, using MO", wkst)
        # (period start, candidates) of the last period walked for BYSETPOS
        self._setpos_cache: Optional[tuple] = None

    @classmethod
    def from_ical(cls, text: str, config=None) -> "RecurrenceRule":
        """Parse an RRULE property line or value.

        Args:
          text: e.g. ``RRULE:FREQ=WEEKLY;BYDAY=MO,WE`` or just the value
          config: ExpansionConfig used to resolve a local UNTIL
        Raises:
          ValidationError: if FREQ is missing or a known part is malformed
        """
        if ":" in text:
            text = text.split(":", 1)[1]
        kwargs = {}
        for part in text.strip().split(";"):
            key, sep, value = part.partition("=")
            if not sep:
                continue
            key = key.strip().upper()
            value = value.strip()
            if key == "FREQ":
                kwargs["freq"] = value.upper()
            elif key == "UNTIL":
                try:
                    kwargs["until"] = parse_date_value(value, None, config)
                except FormatError as exc:
                    logger.warning("Ignoring unparseable UNTIL: %s", exc)
            elif key == "COUNT":
                kwargs["count"] = _parse_positive(key, value)
            elif key == "INTERVAL":
                kwargs["interval"] = _parse_positive(key, value)
            elif key == "WKST":
                kwargs["wkst"] = WeekdayNum.from_ical(value).to_ical()
            elif key in _LIST_PARTS:
                attr, parser = _LIST_PARTS[key]
                kwargs[attr] = parser(key, value)
            else:
                logger.warning("Unknown RRULE part %s=%s", key, value)
        if "freq" not in kwargs:
            raise ValidationError("RRULE has no FREQ")
        return cls(**kwargs)

    def to_ical(self) -> str:
        parts = [f"FREQ={self.freq}"]
        if self.until is not None:
            parts.append(f"UNTIL={self.until.to_ical()}")
        if self.count is not None:
            parts.append(f"COUNT={self.count}")
        if self.interval != 1:
            parts.append(f"INTERVAL={self.interval}")
        for key, (attr, parser) in _LIST_PARTS.items():
            values = getattr(self, attr)
            if values:
                parts.append(
                    "{}={}".format(
                        key,
                        ",".join(
                            v.to_ical() if isinstance(v, WeekdayNum) else str(v)
                            for v in values
                        ),
                    )
                )
        if self.wkst != "MO":
            parts.append(f"WKST={self.wkst}")
        return ";".join(parts)

    def __repr__(self) -> str:
        return f"{type(self).__name__}.from_ical({self.to_ical()!r})"

    @property
    def advance_frequency(self) -> str:
        """The finest unit that candidate instants have to be stepped by."""
        if self.freq == SECONDLY or self.bysecond:
            return SECONDLY
        if self.freq == MINUTELY or self.byminute:
            return MINUTELY
        if self.freq == HOURLY or self.byhour:
            return HOURLY
        if self.freq == DAILY or self.byday or self.bymonthday or self.byyearday:
            return DAILY
        if self.freq == WEEKLY or self.byweekno:
            return WEEKLY
        if self.freq == MONTHLY or self.bymonth:
            return MONTHLY
        return YEARLY

    @property
    def week_convention(self) -> WeekConvention:
        """Week numbering used for period boundaries and BYWEEKNO.

        WKST only matters for WEEKLY rules with an interval and for
        BYWEEKNO; everything else uses ISO weeks.
        """
        if (self.freq == WEEKLY and self.interval > 1) or self.byweekno:
            return WEEK_CONVENTIONS.get(self.wkst, ISO_WEEKS)
        return ISO_WEEKS

    def matches(self, instant: Instant, ignore_setpos: bool = False) -> bool:
        """Check whether an instant is part of the recurrence set.

        BYxxx parts are applied in the order of RFC 5545: BYMONTH,
        BYWEEKNO, BYYEARDAY, BYMONTHDAY, BYDAY, BYHOUR, BYMINUTE, BYSECOND
        and finally BYSETPOS.
        """
        if not self.matches_filters(instant):
            return False
        if self.bysetpos and not ignore_setpos:
            return self.matches_setpos(instant)
        return True

    def matches_filters(self, instant: Instant) -> bool:
        """Apply every BYxxx part except BYSETPOS."""
        dt = instant.dt
        if self.bymonth and dt.month not in self.bymonth:
            return False

        if self.byweekno and self.freq == YEARLY:
            convention = self.week_convention
            year, week = convention.week_number(dt.date())
            if not _matches_ordinal(
                week, convention.weeks_in_year(year), self.byweekno
            ):
                return False

        yearday = dt.timetuple().tm_yday
        if self.byyearday and self.freq not in (DAILY, WEEKLY, MONTHLY):
            if not _matches_ordinal(yearday, _days_in_year(dt.year), self.byyearday):
                return False

        days_in_month = calendar.monthrange(dt.year, dt.month)[1]
        if self.bymonthday and self.freq != WEEKLY:
            if not _matches_ordinal(dt.day, days_in_month, self.bymonthday):
                return False

        if self.byday:
            for entry in self.byday:
                if entry.weekday != dt.weekday():
                    continue
                if entry.nth is None or self.freq not in (MONTHLY, YEARLY):
                    break
                if self.freq == MONTHLY:
                    # Position among the same weekdays of the month
                    position = (dt.day - 1) // 7 + 1
                    total = position + (days_in_month - dt.day) // 7
                else:
                    position = (yearday - 1) // 7 + 1
                    total = position + (_days_in_year(dt.year) - yearday) // 7
                if _matches_ordinal(position, total, [entry.nth]):
                    break
            else:
                return False

        # Instances of DAILY and coarser rules are wall-clock times, which
        # exact stepping would visit twice when the clocks go back.
        if (
            self.freq not in _EXACT_FREQUENCIES
            and self.advance_frequency in _EXACT_FREQUENCIES
            and _is_repeated_wall_time(dt)
        ):
            return False

        if self.byhour and dt.hour not in self.byhour:
            return False
        if self.byminute and dt.minute not in self.byminute:
            return False
        if self.bysecond and dt.second not in self.bysecond:
            return False
        return True

    def matches_setpos(self, instant: Instant) -> bool:
        """Check the position of an instant within its FREQ period.

        All candidates of the period that pass matches_filters() are
        collected in order, and the 1-based (or negative) position of the
        instant is looked up in BYSETPOS.
        """
        candidates = self.period_candidates(instant)
        target = instant.utc()
        try:
            index = candidates.index(target)
        except ValueError:
            return False
        return _matches_ordinal(index + 1, len(candidates), self.bysetpos)

    def period_candidates(self, instant: Instant) -> list:
        """UTC datetimes of all filtered candidates in the instant's period."""
        unit = FREQUENCY_UNITS[self.freq]
        convention = self.week_convention
        candidate = instant.start_of(unit, convention).with_fields_of(
            instant, _CARRIED_FIELDS[self.advance_frequency]
        )
        key = candidate.utc()
        if self._setpos_cache is not None and self._setpos_cache[0] == key:
            return self._setpos_cache[1]
        ret = []
        while candidate.has_same(instant, unit, convention):
            if self.matches_filters(candidate):
                ret.append(candidate.utc())
            try:
                candidate = self.advance(candidate)
            except AdvanceError:
                break
        self._setpos_cache = (key, ret)
        return ret

    def advance(self, instant: Instant) -> Instant:
        """Find the next candidate instant after the given one.

        Raises:
          AdvanceError: if the next candidate is not a valid date
        """
        unit = FREQUENCY_UNITS[self.freq]
        convention = self.week_convention
        advance_freq = self.advance_frequency
        try:
            if advance_freq == self.freq:
                ret = instant.shift_unit(unit, self.interval)
            else:
                ret = instant.shift_unit(FREQUENCY_UNITS[advance_freq], 1)
                if not ret.has_same(instant, unit, convention):
                    period = instant.shift_unit(unit, self.interval).start_of(
                        unit, convention
                    )
                    ret = period.with_fields_of(instant, _CARRIED_FIELDS[advance_freq])
        except (ValueError, OverflowError) as exc:
            raise AdvanceError(instant, str(exc)) from exc
        if ret <= instant:
            raise AdvanceError(instant, f"{ret!r} is not later")
        return ret
