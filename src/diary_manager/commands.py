from __future__ import annotations

import re
from datetime import date, datetime, timedelta, tzinfo
from pathlib import Path
from typing import Callable, Iterable, TextIO

from diary_manager.date_logic import format_timestamp, start_of_day
from diary_manager.diary import Diary
from diary_manager.models import Person
from diary_manager.report import export_snapshot, print_events, print_snapshot
from diary_manager.store import validate_birthday

EXIT_COMMANDS = {"quit", "exit"}

RELATIVE_UNITS = {
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
}

CommandHandler = Callable[[str, TextIO], None]


def parse_timestamp_text(raw_text: str, now: datetime, tz: tzinfo) -> datetime:
    value = raw_text.strip()

    relative_match = re.fullmatch(r"\+(\d+)([mhd])", value)
    if relative_match:
        amount = int(relative_match.group(1))
        return now + amount * RELATIVE_UNITS[relative_match.group(2)]

    date_match = re.fullmatch(r"\d{4}-\d{2}-\d{2}", value)
    if date_match:
        return start_of_day(date.fromisoformat(value), tz)

    for pattern in ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M"):
        try:
            return datetime.strptime(value, pattern).replace(tzinfo=tz)
        except ValueError:
            continue

    raise ValueError("Time must use YYYY-MM-DD, YYYY-MM-DD HH:MM[:SS] or +N[m|h|d]")


def parse_person_text(raw_text: str) -> Person:
    pieces = raw_text.split()
    if len(pieces) != 3:
        raise ValueError("Person must be given as: name surname fatherland")
    return Person(name=pieces[0], surname=pieces[1], fatherland=pieces[2])


def parse_age_text(raw_text: str) -> int:
    cleaned = raw_text.strip()
    if not cleaned.isdigit():
        raise ValueError("Age must be a non-negative whole number")
    return int(cleaned)


def _split_fields(raw_text: str, expected: int, usage: str) -> list[str]:
    fields = [field.strip() for field in raw_text.split("|", expected - 1)]
    if len(fields) != expected:
        raise ValueError(f"Usage: {usage}")
    return fields


def _render_help() -> str:
    return (
        "Commands:\n"
        "event <when> | <description> - Add an event that expires at <when>\n"
        "birthday <date> | <name surname fatherland> | <age> - Track a birthday\n"
        "list - Show all events and birthdays\n"
        "today - Show events created today\n"
        "export - Append everything to the export file\n"
        "help - Show this help message\n"
        "quit - Stop the diary\n\n"
        "Time examples:\n"
        "- 2026-03-14\n"
        "- 2026-03-14 18:30\n"
        "- +48h (also +30m, +2d)"
    )


class CommandShell:
    def __init__(self, diary: Diary, *, export_path: Path) -> None:
        self._diary = diary
        self._export_path = export_path
        self._handlers: dict[str, CommandHandler] = {
            "event": self._add_event,
            "birthday": self._add_birthday,
            "list": self._list,
            "today": self._today,
            "export": self._export,
            "help": self._help,
        }

    @property
    def _tz(self) -> tzinfo:
        return self._diary.timezone

    def handle(self, line: str, stream: TextIO) -> None:
        command, _, rest = line.strip().partition(" ")
        command = command.lower()
        if not command:
            return

        handler = self._handlers.get(command)
        if handler is None:
            stream.write(f"Unknown command: {command}. Send help for the list.\n")
            return

        try:
            handler(rest.strip(), stream)
        except ValueError as exc:
            stream.write(f"Error: {exc}\n")

    def run(self, lines: Iterable[str], stream: TextIO) -> None:
        stream.write(_render_help() + "\n")
        stream.flush()
        for line in lines:
            if line.strip().lower() in EXIT_COMMANDS:
                break
            self.handle(line, stream)
            stream.flush()

    def _add_event(self, args: str, stream: TextIO) -> None:
        when, _, description = args.partition("|")
        if not when.strip():
            raise ValueError("Usage: event <when> | <description>")

        expires = parse_timestamp_text(when, self._diary.clock.now(), self._tz)
        event = self._diary.store.add_event(expires, description.strip())
        stream.write(f"Added event expiring {format_timestamp(event.expires, self._tz)}\n")

    def _add_birthday(self, args: str, stream: TextIO) -> None:
        when, person_text, age_text = _split_fields(
            args, 3, "birthday <date> | <name surname fatherland> | <age>"
        )
        birth = parse_timestamp_text(when, self._diary.clock.now(), self._tz)
        person = parse_person_text(person_text)
        age = parse_age_text(age_text)
        validate_birthday(person, age)

        if not self._diary.store.add_birthday(birth, person, age):
            stream.write(f"A birthday is already tracked for {format_timestamp(birth, self._tz)}\n")
            return
        stream.write(f"Tracking {person.full_name}, age {age}\n")

    def _list(self, args: str, stream: TextIO) -> None:
        print_snapshot(self._diary.store.snapshot(), stream, self._tz)

    def _today(self, args: str, stream: TextIO) -> None:
        events = self._diary.store.events_today()
        if not events:
            stream.write("No events created today.\n")
            return
        print_events(events, stream, self._tz)

    def _export(self, args: str, stream: TextIO) -> None:
        if export_snapshot(self._export_path, self._diary.store.snapshot(), self._tz):
            stream.write(f"Exported to {self._export_path}\n")
        else:
            stream.write(f"Export to {self._export_path} failed\n")

    def _help(self, args: str, stream: TextIO) -> None:
        stream.write(_render_help() + "\n")
