from __future__ import annotations

import logging
from datetime import timezone, tzinfo
from pathlib import Path
from typing import Iterable, TextIO

from diary_manager.date_logic import format_timestamp
from diary_manager.models import Birthday, Event, Snapshot

LOGGER = logging.getLogger(__name__)


def render_event_line(event: Event, tz: tzinfo = timezone.utc) -> str:
    return " | ".join(
        (
            "event",
            format_timestamp(event.created, tz),
            format_timestamp(event.expires, tz),
            event.description,
        )
    )


def render_birthday_line(birthday: Birthday, tz: tzinfo = timezone.utc) -> str:
    return " | ".join(
        (
            "birthday",
            birthday.person.full_name,
            format_timestamp(birthday.date, tz),
            str(birthday.age),
        )
    )


def render_export(snapshot: Snapshot, tz: tzinfo = timezone.utc) -> str:
    lines = [render_event_line(event, tz) for event in snapshot.events]
    lines.extend(render_birthday_line(birthday, tz) for birthday in snapshot.birthdays)
    if not lines:
        return ""
    return "\n".join(lines) + "\n"


def render_listing(snapshot: Snapshot, tz: tzinfo = timezone.utc) -> str:
    lines = [f"Events ({len(snapshot.events)})"]
    for index, event in enumerate(snapshot.events, start=1):
        lines.append(
            f"{index}. {event.description or '(no description)'}\n"
            f"   Created {format_timestamp(event.created, tz)} | Expires {format_timestamp(event.expires, tz)}"
        )

    lines.append(f"Birthdays ({len(snapshot.birthdays)})")
    for index, birthday in enumerate(snapshot.birthdays, start=1):
        lines.append(
            f"{index}. {birthday.person.full_name}\n"
            f"   Date {format_timestamp(birthday.date, tz)} | Age {birthday.age}"
        )
    return "\n".join(lines)


def print_events(events: Iterable[Event], stream: TextIO, tz: tzinfo = timezone.utc) -> bool:
    try:
        for event in events:
            stream.write(render_event_line(event, tz) + "\n")
        stream.flush()
    except (OSError, ValueError):
        LOGGER.warning("Failed to print events", exc_info=True)
        return False
    return True


def print_snapshot(snapshot: Snapshot, stream: TextIO, tz: tzinfo = timezone.utc) -> bool:
    try:
        stream.write(render_listing(snapshot, tz) + "\n")
        stream.flush()
    except (OSError, ValueError):
        LOGGER.warning("Failed to print diary listing", exc_info=True)
        return False
    return True


def export_snapshot(path: Path, snapshot: Snapshot, tz: tzinfo = timezone.utc) -> bool:
    rendered = render_export(snapshot, tz)
    try:
        with path.open("a", encoding="utf-8") as file_obj:
            file_obj.write(rendered)
    except OSError:
        LOGGER.error("Failed to export diary to %s", path, exc_info=True)
        return False

    LOGGER.info("Exported %s events and %s birthdays to %s", len(snapshot.events), len(snapshot.birthdays), path)
    return True
