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

"""Tests for icalrecur.values."""

import unittest
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from dateutil.tz import tzlocal

from icalrecur.config import ExpansionConfig
from icalrecur.instant import UTC
from icalrecur.values import (
    FormatError,
    parse_date_value,
    parse_duration,
    parse_instants,
    parse_periods,
    resolve_zone,
    split_property,
)


class ParseDateValueTests(unittest.TestCase):
    def test_utc(self):
        i = parse_date_value("19970714T173000Z")
        self.assertEqual(datetime(1997, 7, 14, 17, 30, tzinfo=UTC), i.dt)
        self.assertEqual("UTC", i.zone)
        self.assertFalse(i.is_date)

    def test_tzid(self):
        i = parse_date_value("19970714T133000", "America/New_York")
        self.assertEqual("America/New_York", i.zone)
        self.assertEqual(datetime(1997, 7, 14, 17, 30, tzinfo=UTC), i.utc())

    def test_default_timezone(self):
        config = ExpansionConfig(default_timezone="Europe/Paris")
        i = parse_date_value("20200101T090000", config=config)
        self.assertEqual("Europe/Paris", i.zone)

    def test_tzid_beats_default(self):
        config = ExpansionConfig(default_timezone="Europe/Paris")
        i = parse_date_value("20200101T090000", "Asia/Tokyo", config)
        self.assertEqual("Asia/Tokyo", i.zone)

    def test_date(self):
        i = parse_date_value("19970714")
        self.assertTrue(i.is_date)
        self.assertEqual(datetime(1997, 7, 14, tzinfo=UTC), i.dt)

    def test_lowercase(self):
        self.assertEqual(
            parse_date_value("19970714T173000Z"), parse_date_value("19970714t173000z")
        )

    def test_invalid(self):
        for token in ["1997-07-14", "19970714T1730", "", "19971314", "tomorrow"]:
            self.assertRaises(FormatError, parse_date_value, token)

    def test_error_keeps_value(self):
        with self.assertRaises(FormatError) as cm:
            parse_date_value("garbage")
        self.assertEqual("garbage", cm.exception.value)

    def test_unknown_zone(self):
        self.assertRaises(
            FormatError, parse_date_value, "20200101T090000", "Mars/Olympus_Mons"
        )


class ResolveZoneTests(unittest.TestCase):
    def test_local(self):
        self.assertIsInstance(resolve_zone(None), tzlocal)
        self.assertIsInstance(resolve_zone("local"), tzlocal)

    def test_named(self):
        self.assertEqual(ZoneInfo("Europe/Paris"), resolve_zone("Europe/Paris"))


class ParseDurationTests(unittest.TestCase):
    def test_duration(self):
        self.assertEqual(timedelta(hours=1, minutes=30), parse_duration("PT1H30M"))
        self.assertEqual(timedelta(weeks=2), parse_duration("P2W"))
        self.assertEqual(timedelta(days=1), parse_duration("P1D"))

    def test_invalid(self):
        self.assertRaises(FormatError, parse_duration, "1H")


class PropertyLineTests(unittest.TestCase):
    def test_split_property(self):
        name, params, value = split_property(
            "dtstart;TZID=Europe/Paris:20200101T090000"
        )
        self.assertEqual("DTSTART", name)
        self.assertEqual("Europe/Paris", params.get("TZID"))
        self.assertEqual("20200101T090000", value)

    def test_parse_instants_shares_tzid(self):
        instants = parse_instants(
            "EXDATE;TZID=Europe/Paris:20201027T163000,20201127T163000"
        )
        self.assertEqual(2, len(instants))
        self.assertEqual(["Europe/Paris", "Europe/Paris"], [i.zone for i in instants])
        self.assertEqual(
            [datetime(2020, 10, 27, 15, 30), datetime(2020, 11, 27, 15, 30)],
            [i.utc().replace(tzinfo=None) for i in instants],
        )

    def test_parse_instants_dates(self):
        instants = parse_instants("RDATE;VALUE=DATE:19970101,19970120")
        self.assertTrue(all(i.is_date for i in instants))

    def test_parse_periods(self):
        periods = parse_periods(
            "RDATE;VALUE=PERIOD:19960403T020000Z/19960403T040000Z,"
            "19960404T010000Z/PT3H"
        )
        self.assertEqual(
            [timedelta(hours=2), timedelta(hours=3)], [p.duration for p in periods]
        )
        self.assertEqual(datetime(1996, 4, 4, 1, tzinfo=UTC), periods[1].start.dt)

    def test_parse_periods_not_a_period(self):
        self.assertRaises(
            FormatError, parse_periods, "RDATE;VALUE=PERIOD:19960403T020000Z"
        )

    def test_parse_periods_reversed(self):
        self.assertRaises(
            FormatError,
            parse_periods,
            "RDATE;VALUE=PERIOD:19960403T040000Z/19960403T020000Z",
        )
