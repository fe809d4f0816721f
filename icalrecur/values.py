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

"""Parsing of DATE, DATE-TIME, PERIOD and DURATION property values.

See RFC 5545, sections 3.3.4 to 3.3.9.
"""

import re
from datetime import timedelta, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil.tz import tzlocal
from icalendar.parser import Contentline, Parameters
from icalendar.prop import vDate, vDatetime, vDuration

from .instant import UTC, Instant, Period

LOCAL_TIMEZONE = "local"

_UTC_DATETIME_RE = re.compile(r"^\d{8}T\d{6}Z$")
_DATETIME_RE = re.compile(r"^\d{8}T\d{6}$")
_DATE_RE = re.compile(r"^\d{8}$")


class FormatError(Exception):
    """A property value could not be parsed."""

    def __init__(self, value, reason=None) -> None:
        message = f"Unable to parse {value!r}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.value = value


def resolve_zone(tzid: Optional[str], config=None) -> tzinfo:
    """Find the zone for a local date-time value.

    Args:
      tzid: Explicit TZID parameter, if any
      config: ExpansionConfig providing the default zone
    Raises:
      FormatError: if the zone identifier is unknown
    """
    if tzid is None and config is not None:
        tzid = config.default_timezone
    if tzid is None or tzid == LOCAL_TIMEZONE:
        return tzlocal()
    try:
        return ZoneInfo(tzid)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise FormatError(tzid, "unknown time zone") from exc


def parse_date_value(token: str, tzid: Optional[str] = None, config=None) -> Instant:
    """Parse a single DATE or DATE-TIME value.

    Args:
      token: Value, e.g. 19970714, 19970714T133000 or 19970714T173000Z
      tzid: Zone for local date-time values
      config: ExpansionConfig providing the fallback zone
    Raises:
      FormatError: if the value has any other shape
    """
    value = token.strip().upper()
    try:
        if _UTC_DATETIME_RE.match(value):
            dt = vDatetime.from_ical(value[:-1])
            return Instant(dt.replace(tzinfo=UTC))
        if _DATETIME_RE.match(value):
            dt = vDatetime.from_ical(value)
            return Instant(dt.replace(tzinfo=resolve_zone(tzid, config)))
        if _DATE_RE.match(value):
            return Instant.from_date(vDate.from_ical(value))
    except ValueError as exc:
        raise FormatError(token, str(exc)) from exc
    raise FormatError(token, "not a DATE or DATE-TIME value")


def parse_duration(token: str) -> timedelta:
    """Parse an ISO 8601 duration such as PT1H30M."""
    try:
        return vDuration.from_ical(token.strip().upper())
    except ValueError as exc:
        raise FormatError(token, str(exc)) from exc


def parse_period_value(token: str, tzid: Optional[str] = None, config=None) -> Period:
    """Parse a single PERIOD value, either start/end or start/duration."""
    start_text, sep, end_text = token.strip().partition("/")
    if not sep:
        raise FormatError(token, "not a PERIOD value")
    start = parse_date_value(start_text, tzid, config)
    if end_text.lstrip("+-").upper().startswith("P"):
        end = start.add_duration(parse_duration(end_text))
    else:
        end = parse_date_value(end_text, tzid, config)
    try:
        return Period(start, end)
    except ValueError as exc:
        raise FormatError(token, str(exc)) from exc


def split_property(line: str) -> tuple[str, Parameters, str]:
    """Split an unfolded content line into name, parameters and value.

    Raises:
      FormatError: if the line is not a content line
    """
    try:
        name, params, value = Contentline(line.strip()).parts()
    except ValueError as exc:
        raise FormatError(line, str(exc)) from exc
    return name.upper(), params, value


def parse_date_list(
    value: str, tzid: Optional[str] = None, config=None
) -> list[Instant]:
    return [parse_date_value(v, tzid, config) for v in value.split(",")]


def parse_period_list(
    value: str, tzid: Optional[str] = None, config=None
) -> list[Period]:
    return [parse_period_value(v, tzid, config) for v in value.split(",")]


def parse_instants(line: str, config=None) -> list[Instant]:
    """Parse a DATE or DATE-TIME property line.

    Every listed value shares the TZID parameter of the line, e.g.
    ``EXDATE;TZID=Europe/Paris:20201027T163000,20201127T163000``.
    """
    name, params, value = split_property(line)
    return parse_date_list(value, params.get("TZID"), config)


def parse_periods(line: str, config=None) -> list[Period]:
    """Parse a PERIOD property line.

    For example
    ``RDATE;VALUE=PERIOD:19960403T020000Z/19960403T040000Z,19960404T010000Z/PT3H``.
    """
    name, params, value = split_property(line)
    return parse_period_list(value, params.get("TZID"), config)
