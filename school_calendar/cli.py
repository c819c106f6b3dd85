"""Command line interface for the school calendar."""

from __future__ import annotations

import argparse
import logging
from datetime import date
from pathlib import Path
from typing import List

from . import api, dashboard, grouping, ics_builder, util


def parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="School calendar")
    parser.add_argument("--tz", default=util.DEFAULT_TZ)
    parser.add_argument("--base-url", help="REST API root (SCHOOL_CALENDAR_BASE_URL)")
    parser.add_argument("--day", help="Print the agenda for YYYY-MM-DD")
    parser.add_argument(
        "--today", help="Override the current date used when no academic year is set"
    )
    parser.add_argument("--ics", action="store_true", help="Write out/ics/*.ics")
    parser.add_argument("--dump-json", action="store_true")
    parser.add_argument(
        "--offline", action="store_true", help="Use saved JSON fixtures"
    )
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv: List[str] | None = None) -> None:
    args = parse_args(argv)
    util.configure_logging(args.verbose)
    tz = util.parse_timezone(args.tz)
    today = date.fromisoformat(args.today) if args.today else util.today()
    day = date.fromisoformat(args.day) if args.day else today

    client_kwargs = {"dump_json": args.dump_json, "offline": args.offline}
    if args.base_url:
        client_kwargs["base_url"] = args.base_url
    client = api.client_from_env(**client_kwargs)
    data = api.fetch_calendar_data(client)

    warnings: List[str] = []
    items = dashboard.build_calendar(
        data.slots,
        data.year,
        data.tests,
        data.assignments,
        data.events,
        tz=tz,
        today=today,
        warnings=warnings,
    )
    if warnings:
        logging.info("%d items skipped or adjusted", len(warnings))

    if args.ics:
        out_dir = Path("out/ics")
        out_dir.mkdir(parents=True, exist_ok=True)
        path = out_dir / ics_builder.output_filename(data.year)
        path.write_text(ics_builder.build_ics(items, tz=tz), encoding="utf-8")
        logging.info("Wrote %s", path)

    for row in grouping.occurrences_for_day(day, items):
        details = " ".join(filter(None, [row.subject, row.classroom, row.teacher]))
        print(f"{row.time:<13} {row.title} {details}".rstrip())


if __name__ == "__main__":  # pragma: no cover
    main()
