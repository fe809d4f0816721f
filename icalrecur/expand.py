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

"""Expansion of recurrence sets into occurrences.

The recurrence set of an event is DTSTART, every instant generated by its
RRULE and every RDATE, minus the EXDATE instants (RFC 5545, section
3.8.5). Only the part of the set that falls in a query range is
materialized.
"""

import logging
from datetime import timedelta
from typing import NamedTuple, Optional

from .event import RecurrenceSource
from .instant import Instant, Period
from .rrule import AdvanceError, RecurrenceRule

logger = logging.getLogger(__name__)

# Length of a DATE-TIME event without DTEND or DURATION. Occurrence ends
# are exclusive and always after the start.
INSTANT_EVENT_DURATION = timedelta(milliseconds=1)


class Occurrence(NamedTuple):
    """A single materialized instance of an event.

    ``end`` is exclusive and always after ``start``.
    """

    start: Instant
    end: Instant
    uid: Optional[str] = None
    summary: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    transp: Optional[str] = None
    all_day: bool = False


def default_end(source: RecurrenceSource, start: Instant) -> Instant:
    if source.dtstart.is_date:
        return start.shift(days=1)
    return start + INSTANT_EVENT_DURATION


def occurrence_end(
    source: RecurrenceSource, start: Instant, duration: Optional[timedelta] = None
) -> Instant:
    """Find the end of an occurrence.

    Args:
      source: Event the occurrence belongs to
      start: Start of the occurrence
      duration: Explicit duration, from an RDATE period
    """
    if duration is not None:
        end = start + duration
    elif source.dtend is not None:
        end = start + (source.dtend - source.dtstart)
    elif source.duration is not None:
        end = start.add_duration(source.duration)
    else:
        return default_end(source, start)
    if end <= start:
        logger.debug("Invalid end %r for occurrence at %r", end, start)
        return default_end(source, start)
    return end


def make_occurrence(
    source: RecurrenceSource, start: Instant, duration: Optional[timedelta] = None
) -> Occurrence:
    return Occurrence(
        start=start,
        end=occurrence_end(source, start, duration),
        uid=source.uid,
        summary=source.summary,
        location=source.location,
        description=source.description,
        transp=source.transp,
        all_day=source.dtstart.is_date,
    )


def _expand_rrule(
    source: RecurrenceSource, rrule: RecurrenceRule, time_range: Period, emitted: int
) -> list[Occurrence]:
    """Walk the rule from DTSTART and collect matches inside the range.

    COUNT bounds the number of occurrences emitted for the event; instances
    before the range or removed by EXDATE do not use it up.

    Args:
      emitted: Number of occurrences already emitted for this event
    """
    ret: list[Occurrence] = []
    until = rrule.until
    count = rrule.count
    candidate = source.dtstart
    try:
        while True:
            candidate = rrule.advance(candidate)
            if time_range.is_before(candidate):
                return ret
            if until is not None and candidate > until:
                return ret
            if time_range.contains(candidate):
                break

        while (
            (until is None or candidate <= until)
            and (count is None or emitted < count)
            and time_range.contains(candidate)
        ):
            if not source.is_excluded(candidate) and rrule.matches(candidate):
                ret.append(make_occurrence(source, candidate))
                emitted += 1
            candidate = rrule.advance(candidate)
    except AdvanceError as exc:
        logger.warning("Stopping expansion of %s: %s", source.uid or "event", exc)
    return ret


def expand(
    source: RecurrenceSource, time_range: Period, include_dtstart: bool = False
) -> list[Occurrence]:
    """Expand an event into the occurrences that start inside a range.

    Args:
      source: Event to expand
      time_range: Query range; both ends are inclusive
      include_dtstart: Treat DTSTART as an occurrence even when the RRULE
        does not match it
    Returns: list of occurrences; DTSTART and RRULE instances in order,
      followed by RDATE instances
    """
    if time_range.is_before(source.dtstart):
        return []
    ret = []
    dtstart = source.dtstart
    rrule = source.rrule
    if (
        (include_dtstart or rrule is None or rrule.matches(dtstart))
        and time_range.contains(dtstart)
        and not source.is_excluded(dtstart)
    ):
        ret.append(make_occurrence(source, dtstart))

    if rrule is not None:
        ret.extend(_expand_rrule(source, rrule, time_range, len(ret)))

    for rdate in source.rdates:
        start = rdate.start
        if not time_range.contains(start) or source.is_excluded(start):
            continue
        ret.append(make_occurrence(source, start, rdate.duration))
    return ret
