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

"""icalrecur command-line handling."""

import argparse
import configparser
import logging
import sys

from . import __version__
from .calendar import expand_calendar
from .config import ExpansionConfig
from .instant import Instant
from .values import FormatError, parse_date_value


# If no subparser is given, default to 'expand'
def set_default_subparser(self, argv, name):
    subparser_found = False
    for arg in argv:
        if arg in ["-h", "--help", "--version"]:
            break
    else:
        for x in self._subparsers._actions:
            if not isinstance(x, argparse._SubParsersAction):
                continue
            for sp_name in x._name_parser_map.keys():
                if sp_name in argv:
                    subparser_found = True
        if not subparser_found:
            argv.insert(0, name)


def add_expand_parser(parser):
    parser.add_argument("file", help="iCalendar file to expand ('-' for stdin).")
    parser.add_argument(
        "--start", help="Start of the range, as DATE or DATE-TIME. [start of month]"
    )
    parser.add_argument(
        "--end",
        help="Inclusive end of the range, as DATE or DATE-TIME; a DATE means "
        "midnight UTC at its start. [one year later]",
    )
    parser.add_argument(
        "--default-timezone",
        dest="default_timezone",
        help="Zone for date-times without TZID. [system zone]",
    )
    parser.add_argument(
        "--include-dtstart",
        action="store_true",
        dest="include_dtstart",
        help="Always treat DTSTART as an occurrence.",
    )
    parser.add_argument("-c", "--config", help="Configuration file.")
    parser.add_argument(
        "--debug", action="store_true", help="Print debug messages."
    )


def load_config(args) -> ExpansionConfig:
    """Combine the configuration file with command-line overrides."""
    if args.config:
        with open(args.config) as f:
            config = ExpansionConfig.from_file(f)
    else:
        config = ExpansionConfig()
    if args.default_timezone:
        config.default_timezone = args.default_timezone
    if args.include_dtstart:
        config.include_dtstart = True
    if args.start:
        config.start = parse_date_value(args.start, None, config)
    if args.end:
        config.end = parse_date_value(args.end, None, config)
    return config


def _format_instant(instant: Instant) -> str:
    if instant.is_date:
        return instant.dt.date().isoformat()
    return instant.dt.isoformat()


def expand_main(args, parser):
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO)

    try:
        config = load_config(args)
    except (OSError, ValueError, configparser.Error, FormatError) as e:
        parser.error(str(e))

    if args.file == "-":
        data = sys.stdin.read()
    else:
        with open(args.file, "rb") as f:
            data = f.read()

    try:
        occurrences = expand_calendar(data, config)
    except (FormatError, ValueError) as e:
        logging.error("Unable to expand %s: %s", args.file, e)
        return 1

    for occurrence in occurrences:
        print(
            "%s\t%s\t%s"
            % (
                _format_instant(occurrence.start),
                _format_instant(occurrence.end),
                occurrence.summary or occurrence.uid or "",
            )
        )
    return 0


def main(argv=None):
    if argv is None:
        argv = sys.argv[1:]
    else:
        argv = list(argv)

    parser = argparse.ArgumentParser(prog="icalrecur")

    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s " + ".".join(map(str, __version__)),
    )

    subparsers = parser.add_subparsers(help="Subcommands", dest="subcommand")
    expand_parser = subparsers.add_parser(
        "expand",
        usage="%(prog)s FILE [OPTIONS]",
        help="Print the occurrences of the events in a calendar",
    )
    add_expand_parser(expand_parser)

    set_default_subparser(parser, argv, "expand")
    args = parser.parse_args(argv)

    if args.subcommand == "expand":
        return expand_main(args, expand_parser)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
