from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime


DEFAULT_EVENT_SWEEP_INTERVAL = 60
DEFAULT_BIRTHDAY_CHECK_INTERVAL = 24 * 60 * 60


@dataclass(frozen=True)
class Person:
    name: str
    surname: str
    fatherland: str

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.name, self.surname, self.fatherland) if part)


@dataclass(frozen=True)
class Event:
    created: datetime
    expires: datetime
    description: str


@dataclass
class Birthday:
    date: datetime
    person: Person
    age: int
    last_celebrated: date | None = None


@dataclass(frozen=True)
class Snapshot:
    events: tuple[Event, ...]
    birthdays: tuple[Birthday, ...]


@dataclass(frozen=True)
class AppConfig:
    timezone: str
    event_sweep_interval: int
    birthday_check_interval: int
    leap_day_rule: str
