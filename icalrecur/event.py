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

"""Event records that carry a recurrence definition."""

import logging
from collections.abc import Iterable
from datetime import timedelta
from typing import NamedTuple, Optional, Union

from icalendar.prop import vText

from .instant import Instant, Period
from .rrule import RecurrenceRule, ValidationError
from .values import (
    FormatError,
    parse_date_list,
    parse_duration,
    parse_period_list,
    split_property,
)

logger = logging.getLogger(__name__)

RDATE_INSTANT = "DATE-TIME"
RDATE_PERIOD = "PERIOD"


class RecurrenceDate(NamedTuple):
    """An RDATE entry: either a single instant or an explicit period."""

    kind: str
    value: Union[Instant, Period]

    @classmethod
    def from_instant(cls, instant: Instant) -> "RecurrenceDate":
        return cls(RDATE_INSTANT, instant)

    @classmethod
    def from_period(cls, period: Period) -> "RecurrenceDate":
        return cls(RDATE_PERIOD, period)

    @property
    def start(self) -> Instant:
        if self.kind == RDATE_PERIOD:
            return self.value.start
        return self.value

    @property
    def duration(self) -> Optional[timedelta]:
        """Duration of a period entry; None for a plain instant."""
        if self.kind == RDATE_PERIOD:
            return self.value.duration
        return None


class RecurrenceSource:
    """The recurrence definition of a single VEVENT."""

    def __init__(
        self,
        dtstart: Instant,
        dtend: Optional[Instant] = None,
        duration: Optional[timedelta] = None,
        rrule: Optional[RecurrenceRule] = None,
        rdates: Iterable[RecurrenceDate] = (),
        exdates: Iterable[Instant] = (),
        uid: Optional[str] = None,
        summary: Optional[str] = None,
        location: Optional[str] = None,
        description: Optional[str] = None,
        transp: Optional[str] = None,
    ) -> None:
        if dtstart is None:
            raise ValidationError("DTSTART missing")
        self.dtstart = dtstart
        self.dtend = dtend
        self.duration = duration
        self.rrule = rrule
        self.rdates = list(rdates)
        self.exdates = list(exdates)
        self.uid = uid
        self.summary = summary
        self.location = location
        self.description = description
        self.transp = transp

    def __repr__(self) -> str:
        return "<{}(uid={!r}, dtstart={!r}, rrule={!r})>".format(
            type(self).__name__, self.uid, self.dtstart, self.rrule
        )

    @classmethod
    def from_lines(cls, lines: Iterable[str], config=None) -> "RecurrenceSource":
        """Build a source from unfolded VEVENT property lines.

        Properties that fail to parse are logged and skipped.

        Args:
          lines: Content lines, e.g. ``DTSTART;TZID=Europe/Paris:20200101T090000``
          config: ExpansionConfig providing the default zone
        Raises:
          ValidationError: if there is no usable DTSTART
        """
        fields: dict = {"rdates": [], "exdates": []}
        for line in lines:
            try:
                name, params, value = split_property(line)
            except FormatError as exc:
                logger.warning("Skipping invalid line: %s", exc)
                continue
            try:
                handler = _PROPERTY_HANDLERS[name]
            except KeyError:
                continue
            try:
                field, parsed = handler(params, value, config)
            except (FormatError, ValidationError) as exc:
                logger.warning("Skipping %s property: %s", name, exc)
                continue
            if field in ("rdates", "exdates"):
                fields[field].extend(parsed)
            else:
                fields[field] = parsed
        if "dtstart" not in fields:
            raise ValidationError("DTSTART missing or invalid")
        return cls(**fields)

    def is_excluded(self, instant: Instant) -> bool:
        return any(instant.same_instant(exdate) for exdate in self.exdates)


def _single_date(params, value, config):
    # DTSTART and DTEND take exactly one value.
    return parse_date_list(value, params.get("TZID"), config)[0]


def _text_handler(field):
    def handler(params, value, config):
        return field, str(vText.from_ical(value))

    return handler


def _rdate_handler(params, value, config):
    tzid = params.get("TZID")
    if params.get("VALUE", "").upper() == RDATE_PERIOD:
        return "rdates", [
            RecurrenceDate.from_period(p)
            for p in parse_period_list(value, tzid, config)
        ]
    return "rdates", [
        RecurrenceDate.from_instant(i) for i in parse_date_list(value, tzid, config)
    ]


# Property name -> handler returning the (field, value) to assign
_PROPERTY_HANDLERS = {
    "DTSTART": lambda params, value, config: (
        "dtstart",
        _single_date(params, value, config),
    ),
    "DTEND": lambda params, value, config: (
        "dtend",
        _single_date(params, value, config),
    ),
    "DURATION": lambda params, value, config: ("duration", parse_duration(value)),
    "RRULE": lambda params, value, config: (
        "rrule",
        RecurrenceRule.from_ical(value, config),
    ),
    "RDATE": _rdate_handler,
    "EXDATE": lambda params, value, config: (
        "exdates",
        parse_date_list(value, params.get("TZID"), config),
    ),
    "UID": _text_handler("uid"),
    "SUMMARY": _text_handler("summary"),
    "LOCATION": _text_handler("location"),
    "DESCRIPTION": _text_handler("description"),
    "TRANSP": _text_handler("transp"),
}
