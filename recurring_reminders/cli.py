"""Command line interface for managing reminders."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from .config import ConfigManager
from .errors import ReminderNotFound, ReminderSchedulingError
from .resolver import split_offset, validate_offset
from .scheduler import validate_times
from .store import ReminderStore


def parse_time_of_day(text: str) -> float:
    """Parse "HH:MM" or fractional hours ("22.5") into fractional hours."""
    text = text.strip()
    try:
        if ":" in text:
            hours, minutes = text.split(":", 1)
            hours, minutes = int(hours), int(minutes)
            if not 0 <= minutes < 60:
                raise ValueError
            value = hours + minutes / 60
        else:
            value = float(text)
        return validate_offset(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid time of day: {text!r}")


def format_time_of_day(offset: float) -> str:
    day_carry, hour, minute = split_offset(offset)
    return f"{hour:02d}:{minute:02d}" + (" (+1d)" if day_carry else "")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="recurring-reminders",
        description="Daily recurring reminders delivered as desktop notifications"
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=None,
        help="Directory holding config.toml (default: ~/.config/recurring-reminders)"
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("run", help="Run the tray application (default)")
    sub.add_parser("list", help="List stored reminders")

    add = sub.add_parser("add", help="Create a reminder")
    add.add_argument("title")
    add.add_argument("body", nargs="?", default="")
    add.add_argument(
        "--time", "-t",
        dest="times",
        action="append",
        type=parse_time_of_day,
        help="Time of day as HH:MM or fractional hours; repeatable (default: config template)"
    )

    edit = sub.add_parser("edit", help="Replace a reminder's text and, optionally, its times")
    edit.add_argument("id", type=int)
    edit.add_argument("title")
    edit.add_argument("body", nargs="?", default="")
    edit.add_argument(
        "--time", "-t",
        dest="times",
        action="append",
        type=parse_time_of_day,
        help="New time of day; repeatable (default: keep the stored times)"
    )

    remove = sub.add_parser("remove", help="Delete a reminder")
    remove.add_argument("id", type=int)

    return parser


def run_command(args: argparse.Namespace, store: ReminderStore, default_times: Sequence[float]) -> int:
    """
    Execute a store sub-command.

    Only the store is edited. A running tray application schedules the
    change on its next refresh.
    """
    if args.command == "list":
        reminders = store.list_all()
        if not reminders:
            print("No reminders stored.")
        for reminder in reminders:
            times = ", ".join(format_time_of_day(t) for t in reminder.times) or "no times"
            print(f"[{reminder.id}] {reminder.title}: {times}")
            if reminder.body:
                print(f"    {reminder.body}")
        return 0

    if args.command == "add":
        times = list(default_times if args.times is None else args.times)
        validate_times(times)
        reminder_id = store.insert(args.title, args.body, times)
        print(f"Created reminder {reminder_id} with {len(times)} daily times")
        return 0

    if args.command == "edit":
        current = store.get(args.id)
        if current is None:
            raise ReminderNotFound(args.id)
        times = current.times if args.times is None else args.times
        validate_times(times)
        store.update(args.id, args.title, args.body, times)
        print(f"Updated reminder {args.id} ({len(times)} daily times)")
        return 0

    if args.command == "remove":
        if store.get(args.id) is None:
            raise ReminderNotFound(args.id)
        store.remove(args.id)
        print(f"Removed reminder {args.id}")
        return 0

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command in (None, "run"):
        from .app import run_app
        return run_app(args.config_dir)

    config_manager = ConfigManager(args.config_dir)
    try:
        config_manager.load_config()
    except FileNotFoundError as e:
        print(f"Error: {e}")
        print("\nCreating example configuration...")
        config_manager.create_example_config()
        print(f"Please edit {config_manager.config_file} and run again.")
        return 1
    except ValueError as e:
        print(f"Error in configuration: {e}")
        return 1

    general = config_manager.general
    logging.basicConfig(level=general.log_level, format="%(levelname)s %(name)s: %(message)s")

    store = ReminderStore(config_manager.database_path)
    try:
        return run_command(args, store, general.default_times)
    except (ReminderNotFound, ReminderSchedulingError, ValueError) as e:
        print(f"Error: {e}")
        return 1
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
