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

"""Expansion of all events in an iCalendar file.

VTIMEZONE components are not interpreted; TZID parameters are looked up
as IANA zone names.
"""

import logging
from collections.abc import Iterator
from typing import Optional, Union

from icalendar.parser import Contentlines

from .config import ExpansionConfig
from .event import RecurrenceSource
from .expand import Occurrence, expand
from .rrule import ValidationError
from .values import FormatError

logger = logging.getLogger(__name__)


def iter_vevent_lines(data: Union[str, bytes]) -> Iterator[list[str]]:
    """Unfold iCalendar data and yield the property lines of each VEVENT.

    Lines of components nested inside a VEVENT (e.g. VALARM) are dropped.

    Raises:
      FormatError: if the data can not be split into content lines
    """
    try:
        lines = Contentlines.from_ical(data)
    except ValueError as exc:
        raise FormatError(data[:40], str(exc)) from exc
    current: Optional[list[str]] = None
    nested = 0
    for line in lines:
        if not line:
            continue
        key = line.strip().upper()
        if current is None:
            if key == "BEGIN:VEVENT":
                current = []
                nested = 0
            continue
        if key.startswith("BEGIN:"):
            nested += 1
        elif key.startswith("END:"):
            if nested:
                nested -= 1
            else:
                yield current
                current = None
        elif not nested:
            current.append(str(line))
    if current is not None:
        logger.warning("Ignoring unterminated VEVENT")


def parse_events(
    data: Union[str, bytes], config: Optional[ExpansionConfig] = None
) -> list[RecurrenceSource]:
    """Parse every VEVENT, skipping (and logging) the invalid ones."""
    ret = []
    for lines in iter_vevent_lines(data):
        try:
            ret.append(RecurrenceSource.from_lines(lines, config))
        except ValidationError as exc:
            logger.warning("Skipping event: %s", exc)
    return ret


def expand_calendar(
    data: Union[str, bytes], config: Optional[ExpansionConfig] = None
) -> list[Occurrence]:
    """Expand all events of a calendar over the configured range.

    Returns: occurrences of all events, ordered by start
    """
    if config is None:
        config = ExpansionConfig()
    time_range = config.time_range()
    ret = []
    for source in parse_events(data, config):
        ret.extend(expand(source, time_range, config.include_dtstart))
    ret.sort(key=lambda occurrence: occurrence.start)
    return ret
