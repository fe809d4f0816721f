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

"""Expansion configuration.

A configuration file looks like::

    [DEFAULT]
    default-timezone = Europe/Paris
    include-dtstart = yes
    start = 20240101
    end = 20241231T235959Z
"""

import configparser
from datetime import datetime, timedelta, timezone
from typing import Optional

from .instant import UTC, Instant, Period
from .values import parse_date_value


class ExpansionConfig:
    """Settings threaded through parsing and expansion."""

    def __init__(
        self,
        default_timezone: Optional[str] = None,
        include_dtstart: bool = False,
        start: Optional[Instant] = None,
        end: Optional[Instant] = None,
    ) -> None:
        self.default_timezone = default_timezone
        self.include_dtstart = include_dtstart
        self.start = start
        self.end = end

    def __repr__(self) -> str:
        return (
            "{}(default_timezone={!r}, include_dtstart={!r}, start={!r}, end={!r})"
        ).format(
            type(self).__name__,
            self.default_timezone,
            self.include_dtstart,
            self.start,
            self.end,
        )

    @classmethod
    def from_file(cls, f) -> "ExpansionConfig":
        cp = configparser.ConfigParser()
        cp.read_file(f)
        return cls.from_configparser(cp)

    @classmethod
    def from_configparser(cls, cp) -> "ExpansionConfig":
        """Read settings from the DEFAULT section.

        Raises:
          ValueError: if include-dtstart is not a boolean
          FormatError: if start or end is not a DATE or DATE-TIME
        """
        section = cp["DEFAULT"]
        ret = cls(
            default_timezone=section.get("default-timezone"),
            include_dtstart=section.getboolean("include-dtstart", fallback=False),
        )
        if "start" in section:
            ret.start = parse_date_value(section["start"], None, ret)
        if "end" in section:
            ret.end = parse_date_value(section["end"], None, ret)
        return ret

    def time_range(self, now: Optional[datetime] = None) -> Period:
        """Return the query range.

        Unset ends default to the start of the current month (in UTC) and
        the end of the eleventh month after it.
        """
        if now is None:
            now = datetime.now(timezone.utc)
        first = Instant(
            now.astimezone(UTC).replace(
                day=1, hour=0, minute=0, second=0, microsecond=0
            )
        )
        start = self.start if self.start is not None else first
        end = self.end
        if end is None:
            end = first.shift(months=12) + timedelta(microseconds=-1)
        return Period(start, end)
