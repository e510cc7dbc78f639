from __future__ import annotations

import bisect
import logging
import threading
from dataclasses import replace
from datetime import date, datetime, timezone, tzinfo

from diary_manager.clock import Clock, SystemClock
from diary_manager.date_logic import (
    InvalidBirthdayError,
    advance_one_year,
    day_window,
    ensure_aware,
    is_birthday_due,
    local_date,
)
from diary_manager.models import Birthday, Event, Person, Snapshot

LOGGER = logging.getLogger(__name__)


class DuplicateBirthdayError(ValueError):
    pass


def validate_birthday(person: Person, age: int) -> None:
    if age < 0:
        raise InvalidBirthdayError(f"Age must not be negative: {age}")

    for label, value in (("name", person.name), ("surname", person.surname), ("fatherland", person.fatherland)):
        if not value.strip():
            raise InvalidBirthdayError(f"Person {label} must not be empty")


def _event_key(event: Event) -> datetime:
    return event.expires


def _birthday_key(birthday: Birthday) -> datetime:
    return birthday.date


class EntryStore:
    """Events ordered by expiry and birthdays ordered by date.

    Each collection has its own lock so event and birthday operations never
    wait on each other. Readers only ever see copies taken under the lock.
    When both locks are needed they are taken one after the other, events
    first, never nested.
    """

    def __init__(
        self,
        *,
        clock: Clock | None = None,
        tz: tzinfo = timezone.utc,
        leap_day_rule: str = "feb28",
    ) -> None:
        self._clock = clock or SystemClock()
        self._tz = tz
        self._leap_day_rule = leap_day_rule
        self._events: list[Event] = []
        self._birthdays: list[Birthday] = []
        self._events_lock = threading.Lock()
        self._birthdays_lock = threading.Lock()

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def timezone(self) -> tzinfo:
        return self._tz

    def add_event(self, expires: datetime, description: str) -> Event:
        event = Event(
            created=self._clock.now(),
            expires=ensure_aware(expires, self._tz),
            description=description,
        )
        with self._events_lock:
            bisect.insort_right(self._events, event, key=_event_key)
        return event

    def add_birthday(self, birth: datetime, person: Person, age: int) -> bool:
        birthday = Birthday(date=ensure_aware(birth, self._tz), person=person, age=age)
        try:
            self._insert_birthday(birthday)
        except (InvalidBirthdayError, DuplicateBirthdayError) as exc:
            LOGGER.warning("Rejected birthday for %s: %s", person.full_name or "<unnamed>", exc)
            return False
        return True

    def _insert_birthday(self, birthday: Birthday) -> None:
        validate_birthday(birthday.person, birthday.age)

        with self._birthdays_lock:
            index = bisect.bisect_left(self._birthdays, birthday.date, key=_birthday_key)
            if index < len(self._birthdays) and self._birthdays[index].date == birthday.date:
                raise DuplicateBirthdayError(f"A birthday already exists for {birthday.date.isoformat()}")
            self._birthdays.insert(index, birthday)

    def remove_expired_events(self, now: datetime) -> int:
        now = ensure_aware(now, self._tz)
        with self._events_lock:
            cutoff = bisect.bisect_left(self._events, now, key=_event_key)
            del self._events[:cutoff]
        if cutoff:
            LOGGER.info("Removed %s expired events", cutoff)
        return cutoff

    def advance_birthdays(self, today: date) -> list[Birthday]:
        reached: list[Birthday] = []

        with self._birthdays_lock:
            taken = {birthday.date for birthday in self._birthdays}
            # Latest first, so a shifted entry never lands on one that is about to move.
            for birthday in reversed(self._birthdays):
                if not is_birthday_due(birthday.date, birthday.last_celebrated, today, self._tz, self._leap_day_rule):
                    continue

                birthday.age += 1
                birthday.last_celebrated = today

                advanced = advance_one_year(birthday.date, self._tz, self._leap_day_rule)
                if advanced in taken:
                    LOGGER.warning(
                        "Keeping date %s for %s, next year's date is already taken",
                        birthday.date.isoformat(),
                        birthday.person.full_name,
                    )
                else:
                    taken.discard(birthday.date)
                    taken.add(advanced)
                    birthday.date = advanced

                reached.append(replace(birthday))

            if reached:
                self._birthdays.sort(key=_birthday_key)

        reached.reverse()
        return reached

    def snapshot(self) -> Snapshot:
        with self._events_lock:
            events = tuple(self._events)
        with self._birthdays_lock:
            birthdays = tuple(replace(birthday) for birthday in self._birthdays)
        return Snapshot(events=events, birthdays=birthdays)

    def events_on(self, day: date | None = None, now: datetime | None = None) -> list[Event]:
        if day is None:
            day = local_date(now or self._clock.now(), self._tz)
        elif isinstance(day, datetime):
            day = local_date(day, self._tz)

        start, end = day_window(day, self._tz)
        with self._events_lock:
            events = list(self._events)
        return [event for event in events if start <= event.created < end]

    def events_today(self) -> list[Event]:
        return self.events_on()

    def event_count(self) -> int:
        with self._events_lock:
            return len(self._events)

    def birthday_count(self) -> int:
        with self._birthdays_lock:
            return len(self._birthdays)
