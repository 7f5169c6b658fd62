"""
CLI (Command Line Interface).

This module provides terminal commands for the operator, e.g.:

    skischedule add course --date 2025-12-20 --slot Morning --title "Li Wei" --venue 万龙
    skischedule list week
    skischedule edit <id> --slot FullDay
    skischedule delete <id>
    skischedule stats season
    skischedule available --days 14
    skischedule share --days 7
    skischedule export-csv --scope season
    skischedule import-csv data.csv --season-year 2025
    skischedule backup / restore <file.json>
    skischedule config show | set-slot | set-price
    skischedule migrate

Note:
- Settings (data directory, remote service) come from the environment / .env,
  see skischedule/settings.py
- Tables are rendered with rich; everything else is plain text
"""

from __future__ import annotations

import argparse
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from skischedule.availability import load_grid, render_share_text
from skischedule.backup import backup_filename, build_backup, read_backup, restore_backup, write_backup
from skischedule.config_store import with_price, with_slot
from skischedule.context import AppContext, open_context
from skischedule.csv_codec import csv_filename, encode_events
from skischedule.errors import ScheduleError
from skischedule.events import EventStore
from skischedule.migration import is_migration_done, migrate
from skischedule.model import Event, EventInput, EventType, TimeSlot, format_number
from skischedule.season import (
    format_date_zh_long,
    month_range,
    parse_date_string,
    season_range,
    season_start_year,
    to_date_string,
)
from skischedule.settings import load_settings, setup_logging
from skischedule.stats import compute_stats, format_summary

console = Console()

SLOT_CHOICES = [s.value for s in TimeSlot.ordered()]
# TrialCourse is legacy: it can be read and listed, not created or set.
EDIT_TYPE_CHOICES = [EventType.COURSE.value, EventType.PRACTICE.value, EventType.TRAINING.value]
DAY_CHOICES = [7, 14, 30]


def _date_arg(value: str) -> date:
    try:
        return parse_date_string(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}") from e


def _iso_date_arg(value: str) -> str:
    return to_date_string(_date_arg(value))


def _today() -> date:
    return datetime.now().date()


def _cell(value: Any) -> str:
    return escape("" if value is None else str(value))


def _print_events(events: List[Event], title: str) -> None:
    if not events:
        print(f"{title}: no events.")
        return

    table = Table(title=title, box=box.SIMPLE)
    for col in ("date", "slot", "time", "type", "title", "venue", "fee", "hours", "id"):
        table.add_column(col)
    for ev in events:
        table.add_row(
            _cell(ev.date),
            _cell(ev.time_slot.label),
            _cell(f"{ev.start_time}-{ev.end_time}"),
            _cell(ev.type.label),
            _cell(ev.title),
            _cell(ev.venue),
            _cell(format_number(ev.fee)),
            _cell(format_number(ev.duration)),
            _cell(ev.id),
        )
    console.print(table)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


def _cmd_add(args: argparse.Namespace, ctx: AppContext) -> int:
    """
    Create a course, practice or training event.
    """
    title = (args.title or "").strip()
    if not title:
        print("Please provide a title.")
        return 1

    data = EventInput(
        date=to_date_string(args.date or _today()),
        time_slot=TimeSlot(args.slot),
        title=title,
        venue=(args.venue or "").strip() or None,
        fee=args.fee,
        notes=(args.notes or "").strip() or None,
    )
    adders: Dict[str, Callable[[EventInput], Event]] = {
        "course": ctx.store.add_course,
        "practice": ctx.store.add_practice,
        "training": ctx.store.add_training,
    }
    ev = adders[args.kind](data)

    fee = f", fee {format_number(ev.fee)}" if ev.fee is not None else ""
    event_id = ev.id or "(id not returned)"
    print(f"Added: {event_id} {ev.date} {ev.time_slot.label} {ev.start_time}-{ev.end_time} {ev.title}{fee}")
    return 0


def _select_events(store: EventStore, scope: str, ref: date) -> List[Event]:
    fetchers: Dict[str, Callable[[], List[Event]]] = {
        "today": lambda: store.today(ref),
        "week": lambda: store.week(ref),
        "month": lambda: store.month(ref),
        "season": lambda: store.season(ref),
        "all": store.list_all,
    }
    return fetchers[scope]()


def _cmd_list(args: argparse.Namespace, ctx: AppContext) -> int:
    """
    List events by scope, by a single date, or by an explicit range.
    """
    if args.start or args.end:
        if not (args.start and args.end):
            print("Please provide both --from and --to.")
            return 1
        if args.end < args.start:
            print("--to must not be before --from.")
            return 1
        events = ctx.store.list_range(args.start, args.end)
        title = f"{to_date_string(args.start)} .. {to_date_string(args.end)}"
    elif args.on:
        events = ctx.store.list_by_date(to_date_string(args.on))
        title = format_date_zh_long(args.on)
    else:
        events = _select_events(ctx.store, args.scope, _today())
        title = args.scope

    _print_events(events, title)
    return 0


def _cmd_edit(args: argparse.Namespace, ctx: AppContext) -> int:
    """
    Change fields of one event. Start/end/hours follow the (current) slot configuration.
    """
    fields: Dict[str, Any] = {}
    if args.type is not None:
        fields["type"] = EventType(args.type)
    if args.title is not None:
        fields["title"] = args.title.strip()
    if args.date is not None:
        fields["date"] = args.date
    if args.slot is not None:
        fields["time_slot"] = TimeSlot(args.slot)
    if args.venue is not None:
        fields["venue"] = args.venue.strip() or None
    if args.notes is not None:
        fields["notes"] = args.notes.strip() or None
    if args.fee is not None:
        fields["fee"] = args.fee
    if args.clear_fee:
        fields["fee"] = None

    if not fields:
        print("Nothing to update.")
        return 0

    ev = ctx.store.update(args.event_id, **fields)
    if ev is None:
        print(f"Not found: {args.event_id}")
        return 0

    print(f"Updated: {ev.id} {ev.date} {ev.time_slot.label} {ev.start_time}-{ev.end_time} {ev.title}")
    return 0


def _cmd_delete(args: argparse.Namespace, ctx: AppContext) -> int:
    ctx.store.delete(args.event_id)
    print(f"Deleted: {args.event_id}")
    return 0


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


def _cmd_stats(args: argparse.Namespace, ctx: AppContext) -> int:
    """
    Print the summary line plus counts, student ranking and venue tally.
    """
    events = _select_events(ctx.store, args.scope, args.ref or _today())
    stats = compute_stats(events)

    print(format_summary(stats))
    print(
        f"Courses: {stats.course_count} (trial {stats.trial_count})  "
        f"Practice: {stats.practice_count}  Training: {stats.training_count}"
    )
    print(
        f"Training: {format_number(stats.training_hours)} h, cost {format_number(stats.training_cost)}"
    )

    if stats.student_ranking:
        table = Table(title="Students", box=box.SIMPLE)
        table.add_column("#", justify="right")
        table.add_column("name")
        table.add_column("sessions", justify="right")
        for i, item in enumerate(stats.student_ranking[: args.top], start=1):
            table.add_row(str(i), _cell(item.name), str(item.count))
        console.print(table)

    if stats.venue_days:
        table = Table(title="Venues", box=box.SIMPLE)
        table.add_column("venue")
        table.add_column("days", justify="right")
        for venue, count in sorted(stats.venue_days.items(), key=lambda item: item[1], reverse=True):
            table.add_row(_cell(venue), str(count))
        console.print(table)

    return 0


def _cmd_available(args: argparse.Namespace, ctx: AppContext) -> int:
    """
    Show a slots x days grid of busy/free slots.
    """
    grid = load_grid(ctx.store, args.start or _today(), args.days)

    table = Table(title=f"Availability ({args.days} days)", box=box.SIMPLE)
    table.add_column("slot")
    for day in grid:
        table.add_column(f"{day.day.month}/{day.day.day}")
    for slot in TimeSlot.ordered():
        cells = []
        for day in grid:
            info = day.slots[slot]
            if info.busy:
                cells.append("x " + _cell(info.venue or ""))
            else:
                cells.append("free")
        table.add_row(slot.label, *cells)
    console.print(table)
    return 0


def _cmd_share(args: argparse.Namespace, ctx: AppContext) -> int:
    grid = load_grid(ctx.store, args.start or _today(), args.days)
    print(render_share_text(grid))
    return 0


# ---------------------------------------------------------------------------
# Exchange
# ---------------------------------------------------------------------------


def _cmd_export_csv(args: argparse.Namespace, ctx: AppContext) -> int:
    """
    Export events of the current month, the current season or a custom range to CSV.
    """
    today = _today()
    if args.scope == "range":
        if not (args.start and args.end):
            print("Please provide --from and --to for a custom range.")
            return 1
        if args.end < args.start:
            print("--to must not be before --from.")
            return 1
        start, end = args.start, args.end
    elif args.scope == "month":
        start, end = month_range(today)
    else:
        start, end = season_range(today)

    events = ctx.store.list_range(start, end)
    out = Path(args.out or csv_filename(today))
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(encode_events(events), encoding="utf-8")
    print(f"Exported {len(events)} events to: {out}")
    return 0


def _cmd_import_csv(args: argparse.Namespace, ctx: AppContext) -> int:
    """
    Import a CSV file. Any parse error aborts the whole import.
    """
    path = Path(args.file)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        print(f"Cannot read {path}: {e}")
        return 1

    year = args.season_year if args.season_year is not None else season_start_year(_today())
    report = ctx.store.import_csv(text, year)
    result = report.result
    if result is None:
        print(f"Import aborted, {len(report.errors)} row(s) could not be parsed:")
        for msg in report.errors:
            print(f"- {msg}")
        return 1

    print(f"Imported: {result.succeeded} ok, {result.failed} failed (season {year}/{year + 1})")
    return 0 if result.failed == 0 else 1


def _cmd_backup(args: argparse.Namespace, ctx: AppContext) -> int:
    payload = build_backup(ctx.local.list_all(), ctx.config_store.get(), datetime.now().isoformat())
    out = write_backup(payload, args.out or backup_filename(_today()))
    print(f"Backup written: {out} ({len(payload['events'])} events)")
    return 0


def _cmd_restore(args: argparse.Namespace, ctx: AppContext) -> int:
    """
    Replace all local events and the configuration with a backup file.
    """
    if not args.yes:
        answer = input("Restoring overwrites ALL local events and the configuration. Continue? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("Restore cancelled.")
            return 0

    count = restore_backup(read_backup(args.file), ctx.local, ctx.config_store)
    print(f"Restored {count} events and the configuration from: {args.file}")
    return 0


# ---------------------------------------------------------------------------
# Configuration & migration
# ---------------------------------------------------------------------------


def _cmd_config(args: argparse.Namespace, ctx: AppContext) -> int:
    config = ctx.config_store.get()

    if args.config_command == "set-slot":
        config = with_slot(config, TimeSlot(args.slot), args.start_time, args.end_time, args.hours)
        ctx.config_store.save(config)
        print(f"Saved slot {args.slot}: {args.start_time}-{args.end_time} ({format_number(args.hours)} h)")
        return 0

    if args.config_command == "set-price":
        config = with_price(config, args.key, args.value)
        ctx.config_store.save(config)
        print(f"Saved price {args.key}: {format_number(args.value)}")
        return 0

    table = Table(title="Time slots", box=box.SIMPLE)
    for col in ("slot", "start", "end", "hours"):
        table.add_column(col)
    for slot in TimeSlot.ordered():
        d = config.slot(slot)
        table.add_row(f"{slot.value} ({slot.label})", d.start, d.end, format_number(d.hours))
    console.print(table)

    p = config.pricing
    print(
        f"Pricing: hourlyRate={format_number(p.hourly_rate)} standard3h={format_number(p.standard_3h)} "
        f"fullDay5h={format_number(p.full_day_5h)} trialClass={format_number(p.trial_class)}"
    )
    return 0


def _cmd_migrate(args: argparse.Namespace, ctx: AppContext) -> int:
    if ctx.session is None:
        print("Remote service is not configured. Nothing to migrate.")
        return 0
    if is_migration_done(ctx.flags):
        print("Migration already done.")
        return 0

    result = migrate(ctx)
    print(f"Migration: {result.succeeded} succeeded, {result.failed} failed")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="skischedule", description="Ski coach schedule CLI")
    parser.add_argument("--env-file", type=str, default=None, help="Read settings from this .env file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_add = sub.add_parser("add", help="Add a course, practice or training")
    p_add.add_argument("kind", choices=["course", "practice", "training"])
    p_add.add_argument("--date", type=_date_arg, default=None, help="YYYY-MM-DD (default: today)")
    p_add.add_argument("--slot", choices=SLOT_CHOICES, default=TimeSlot.MORNING.value)
    p_add.add_argument("--title", type=str, required=True, help="Student name or activity")
    p_add.add_argument("--venue", type=str, default=None)
    p_add.add_argument("--fee", type=float, default=None, help="Income (course) or cost (training)")
    p_add.add_argument("--notes", type=str, default=None)

    p_list = sub.add_parser("list", help="List events")
    p_list.add_argument("scope", nargs="?", choices=["today", "week", "month", "season", "all"], default="week")
    p_list.add_argument("--date", dest="on", type=_date_arg, default=None, help="Single date")
    p_list.add_argument("--from", dest="start", type=_date_arg, default=None)
    p_list.add_argument("--to", dest="end", type=_date_arg, default=None)

    p_edit = sub.add_parser("edit", help="Edit an event")
    p_edit.add_argument("event_id", type=str)
    p_edit.add_argument("--type", choices=EDIT_TYPE_CHOICES, default=None)
    p_edit.add_argument("--title", type=str, default=None)
    p_edit.add_argument("--date", type=_iso_date_arg, default=None)
    p_edit.add_argument("--slot", choices=SLOT_CHOICES, default=None)
    p_edit.add_argument("--venue", type=str, default=None, help="Empty string clears the venue")
    p_edit.add_argument("--notes", type=str, default=None, help="Empty string clears the notes")
    p_edit.add_argument("--fee", type=float, default=None)
    p_edit.add_argument("--clear-fee", action="store_true", help="Remove the recorded fee")

    p_delete = sub.add_parser("delete", help="Delete an event")
    p_delete.add_argument("event_id", type=str)

    p_stats = sub.add_parser("stats", help="Statistics for a period")
    p_stats.add_argument("scope", nargs="?", choices=["today", "week", "month", "season"], default="season")
    p_stats.add_argument("--date", dest="ref", type=_date_arg, default=None, help="Reference date")
    p_stats.add_argument("--top", type=int, default=10, help="Students to show")

    for name, help_text in (("available", "Show free/busy grid"), ("share", "Print shareable free-slot text")):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--days", type=int, choices=DAY_CHOICES, default=7)
        p.add_argument("--start", type=_date_arg, default=None, help="First day (default: today)")

    p_export = sub.add_parser("export-csv", help="Export events to CSV")
    p_export.add_argument("--scope", choices=["month", "season", "range"], default="season")
    p_export.add_argument("--from", dest="start", type=_date_arg, default=None)
    p_export.add_argument("--to", dest="end", type=_date_arg, default=None)
    p_export.add_argument("--out", type=str, default=None, help="Output path (default: 教学数据_<date>.csv)")

    p_import = sub.add_parser("import-csv", help="Import events from CSV")
    p_import.add_argument("file", type=str)
    p_import.add_argument("--season-year", type=int, default=None, help="Year the season starts (Nov)")

    p_backup = sub.add_parser("backup", help="Write a JSON backup of local data")
    p_backup.add_argument("--out", type=str, default=None)

    p_restore = sub.add_parser("restore", help="Restore local data from a JSON backup")
    p_restore.add_argument("file", type=str)
    p_restore.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    p_config = sub.add_parser("config", help="Show or change slot times and prices")
    config_sub = p_config.add_subparsers(dest="config_command", required=True)
    config_sub.add_parser("show", help="Show configuration")
    p_slot = config_sub.add_parser("set-slot", help="Change one time slot")
    p_slot.add_argument("slot", choices=SLOT_CHOICES)
    p_slot.add_argument("start_time", type=str, help="HH:MM")
    p_slot.add_argument("end_time", type=str, help="HH:MM")
    p_slot.add_argument("hours", type=float)
    p_price = config_sub.add_parser("set-price", help="Change one price")
    p_price.add_argument("key", type=str, help="hourlyRate / standard3h / fullDay5h / trialClass")
    p_price.add_argument("value", type=float)

    sub.add_parser("migrate", help="Copy local events to the remote service (once)")

    return parser


COMMANDS: Dict[str, Callable[[argparse.Namespace, AppContext], int]] = {
    "add": _cmd_add,
    "list": _cmd_list,
    "edit": _cmd_edit,
    "delete": _cmd_delete,
    "stats": _cmd_stats,
    "available": _cmd_available,
    "share": _cmd_share,
    "export-csv": _cmd_export_csv,
    "import-csv": _cmd_import_csv,
    "backup": _cmd_backup,
    "restore": _cmd_restore,
    "config": _cmd_config,
    "migrate": _cmd_migrate,
}


def main(argv: Optional[List[str]] = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.env_file)
        setup_logging("DEBUG" if args.verbose else settings.log_level)
        ctx = open_context(settings)
        handler = COMMANDS.get(args.command)
        if handler is None:
            raise SystemExit(2)
        raise SystemExit(handler(args, ctx))
    except ScheduleError as e:
        print(f"Error: {e}")
        raise SystemExit(1)
