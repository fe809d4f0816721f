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

"""Tests for icalrecur.__main__."""

import argparse
import os
import shutil
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from io import StringIO

from icalrecur.__main__ import add_expand_parser, load_config, main

EXAMPLE_VCALENDAR = """\
BEGIN:VCALENDAR
VERSION:2.0
BEGIN:VEVENT
UID:standup@example.com
SUMMARY:Standup
DTSTART:20200101T090000
DURATION:PT15M
RRULE:FREQ=DAILY
END:VEVENT
END:VCALENDAR
"""


class MainTests(unittest.TestCase):
    def setUp(self):
        super().setUp()
        self.test_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.test_dir)
        self.path = os.path.join(self.test_dir, "calendar.ics")
        with open(self.path, "w") as f:
            f.write(EXAMPLE_VCALENDAR)

    def write_config(self, contents):
        path = os.path.join(self.test_dir, "icalrecur.conf")
        with open(path, "w") as f:
            f.write(contents)
        return path

    def run_main(self, argv):
        stdout = StringIO()
        with redirect_stdout(stdout):
            ret = main(argv)
        return ret, stdout.getvalue().splitlines()

    def test_version(self):
        stdout = StringIO()
        with redirect_stdout(stdout):
            with self.assertRaises(SystemExit) as cm:
                main(["--version"])
        self.assertEqual(0, cm.exception.code)
        self.assertTrue(stdout.getvalue().startswith("icalrecur 0."))

    def test_expand(self):
        ret, lines = self.run_main(
            [
                "expand",
                self.path,
                "--start",
                "20200101",
                "--end",
                "20200105",
                "--default-timezone",
                "UTC",
            ]
        )
        self.assertEqual(0, ret)
        self.assertEqual(4, len(lines))
        self.assertEqual(
            "2020-01-01T09:00:00+00:00\t2020-01-01T09:15:00+00:00\tStandup", lines[0]
        )

    def test_default_subcommand(self):
        ret, lines = self.run_main(
            [
                self.path,
                "--start",
                "20200101",
                "--end",
                "20200103",
                "--default-timezone",
                "Europe/Paris",
            ]
        )
        self.assertEqual(0, ret)
        self.assertEqual(
            ["2020-01-01T09:00:00+01:00", "2020-01-02T09:00:00+01:00"],
            [line.split("\t")[0] for line in lines],
        )

    def test_end_datetime_inclusive(self):
        ret, lines = self.run_main(
            [
                self.path,
                "--start",
                "20200101",
                "--end",
                "20200103T235959Z",
                "--default-timezone",
                "UTC",
            ]
        )
        self.assertEqual(0, ret)
        self.assertEqual(
            [
                "2020-01-01T09:00:00+00:00",
                "2020-01-02T09:00:00+00:00",
                "2020-01-03T09:00:00+00:00",
            ],
            [line.split("\t")[0] for line in lines],
        )

    def test_config_file(self):
        config_path = self.write_config(
            """\
[DEFAULT]
default-timezone = UTC
start = 20200110
end = 20200111
"""
        )
        ret, lines = self.run_main(["expand", self.path, "--config", config_path])
        self.assertEqual(0, ret)
        self.assertEqual(
            ["2020-01-10T09:00:00+00:00"], [line.split("\t")[0] for line in lines]
        )

    def test_invalid_start(self):
        stderr = StringIO()
        with redirect_stderr(stderr):
            with self.assertRaises(SystemExit) as cm:
                main(["expand", self.path, "--start", "soon"])
        self.assertEqual(2, cm.exception.code)

    def test_no_events(self):
        with open(self.path, "w") as f:
            f.write("BEGIN:VCALENDAR\nVERSION:2.0\nEND:VCALENDAR\n")
        ret, lines = self.run_main(
            ["expand", self.path, "--start", "20200101", "--end", "20200105"]
        )
        self.assertEqual(0, ret)
        self.assertEqual([], lines)


class LoadConfigTests(unittest.TestCase):
    def test_overrides(self):
        parser = argparse.ArgumentParser()
        add_expand_parser(parser)
        args = parser.parse_args(
            ["calendar.ics", "--include-dtstart", "--default-timezone", "Asia/Tokyo"]
        )
        config = load_config(args)
        self.assertTrue(config.include_dtstart)
        self.assertEqual("Asia/Tokyo", config.default_timezone)
        self.assertIsNone(config.start)

    def test_local_start(self):
        parser = argparse.ArgumentParser()
        add_expand_parser(parser)
        args = parser.parse_args(
            [
                "calendar.ics",
                "--default-timezone",
                "Asia/Tokyo",
                "--start",
                "20200101T090000",
            ]
        )
        self.assertEqual("Asia/Tokyo", load_config(args).start.zone)
