from __future__ import annotations

import threading
from datetime import date, datetime, timedelta, timezone

import pytest

from diary_manager.clock import ManualClock
from diary_manager.date_logic import InvalidBirthdayError
from diary_manager.models import Event, Person
from diary_manager.store import EntryStore, validate_birthday

UTC = timezone.utc
NOW = datetime(2026, 3, 14, 10, 0, tzinfo=UTC)
JOHN = Person(name="John", surname="Doe", fatherland="Sr")


def _store(now: datetime = NOW) -> tuple[EntryStore, ManualClock]:
    clock = ManualClock(now)
    return EntryStore(clock=clock, tz=UTC), clock


def test_add_event_stamps_creation_time() -> None:
    store, _ = _store()

    event = store.add_event(NOW + timedelta(hours=48), "Meeting with friends")

    assert event.created == NOW
    assert event.expires == NOW + timedelta(hours=48)
    assert store.event_count() == 1


def test_events_ordered_by_expiry_and_stable_for_ties() -> None:
    store, _ = _store()
    later = NOW + timedelta(days=2)
    sooner = NOW + timedelta(days=1)

    store.add_event(later, "first at later")
    store.add_event(sooner, "sooner")
    store.add_event(later, "second at later")

    descriptions = [event.description for event in store.snapshot().events]
    assert descriptions == ["sooner", "first at later", "second at later"]


def test_event_with_past_expiry_and_empty_description_is_accepted() -> None:
    store, _ = _store()

    event = store.add_event(NOW - timedelta(hours=1), "")

    assert event.description == ""
    assert store.event_count() == 1


def test_remove_expired_events_is_idempotent() -> None:
    store, _ = _store()
    store.add_event(NOW - timedelta(minutes=1), "gone")
    store.add_event(NOW, "expires exactly now")
    store.add_event(NOW + timedelta(minutes=1), "still here")

    assert store.remove_expired_events(NOW) == 1
    assert store.remove_expired_events(NOW) == 0
    assert [event.description for event in store.snapshot().events] == ["expires exactly now", "still here"]


def test_end_to_end_event_expires_after_clock_advance() -> None:
    store, clock = _store()
    store.add_event(NOW + timedelta(hours=48), "Meeting with friends")

    todays = store.events_on(NOW.date(), NOW)
    assert [event.description for event in todays] == ["Meeting with friends"]

    later = clock.advance(timedelta(hours=49))
    assert store.remove_expired_events(later) == 1
    assert store.event_count() == 0


def test_events_on_filters_by_creation_day() -> None:
    store, clock = _store()
    store.add_event(NOW + timedelta(days=5), "today")
    clock.advance(timedelta(days=1))
    store.add_event(NOW + timedelta(days=5), "tomorrow")

    assert [event.description for event in store.events_on(date(2026, 3, 14))] == ["today"]
    assert [event.description for event in store.events_today()] == ["tomorrow"]


def test_add_birthday_rejects_duplicate_date() -> None:
    store, _ = _store()
    birth = NOW.replace(year=2016)

    assert store.add_birthday(birth, JOHN, 30) is True
    assert store.add_birthday(birth, Person("Jane", "Roe", "Jr"), 12) is False
    assert store.birthday_count() == 1
    assert store.snapshot().birthdays[0].person == JOHN


def test_add_birthday_rejects_negative_age_and_empty_names() -> None:
    store, _ = _store()

    assert store.add_birthday(NOW, JOHN, -1) is False
    assert store.add_birthday(NOW, Person("John", " ", "Sr"), 3) is False
    assert store.birthday_count() == 0


def test_validate_birthday_names_the_problem() -> None:
    with pytest.raises(InvalidBirthdayError, match="fatherland"):
        validate_birthday(Person("John", "Doe", ""), 1)


def test_birthdays_kept_in_date_order() -> None:
    store, _ = _store()
    store.add_birthday(datetime(1995, 6, 1, tzinfo=UTC), Person("B", "B", "B"), 30)
    store.add_birthday(datetime(1980, 1, 1, tzinfo=UTC), Person("A", "A", "A"), 46)

    assert [birthday.person.name for birthday in store.snapshot().birthdays] == ["A", "B"]


def test_snapshot_is_independent_of_store() -> None:
    store, _ = _store()
    store.add_birthday(datetime(1990, 3, 14, tzinfo=UTC), JOHN, 35)

    snapshot = store.snapshot()
    snapshot.birthdays[0].age = 99
    store.advance_birthdays(date(2026, 3, 14))

    assert snapshot.birthdays[0].age == 99
    assert store.snapshot().birthdays[0].age == 36


def test_advance_birthdays_increments_once_and_moves_date() -> None:
    store, _ = _store()
    store.add_birthday(datetime(1990, 3, 14, tzinfo=UTC), JOHN, 35)

    reached = store.advance_birthdays(date(2026, 3, 14))
    again = store.advance_birthdays(date(2026, 3, 14))

    assert [birthday.age for birthday in reached] == [36]
    assert again == []
    stored = store.snapshot().birthdays[0]
    assert stored.age == 36
    assert stored.date == datetime(1991, 3, 14, tzinfo=UTC)


def test_advance_birthdays_ignores_other_days() -> None:
    store, _ = _store()
    store.add_birthday(datetime(1990, 3, 15, tzinfo=UTC), JOHN, 35)

    assert store.advance_birthdays(date(2026, 3, 14)) == []
    assert store.snapshot().birthdays[0].age == 35


def test_advance_birthdays_keeps_dates_unique() -> None:
    store, _ = _store()
    store.add_birthday(datetime(1990, 3, 14, tzinfo=UTC), Person("Older", "A", "A"), 36)
    store.add_birthday(datetime(1991, 3, 14, tzinfo=UTC), Person("Younger", "B", "B"), 35)

    reached = store.advance_birthdays(date(2026, 3, 14))

    assert [birthday.person.name for birthday in reached] == ["Older", "Younger"]
    dates = [birthday.date for birthday in store.snapshot().birthdays]
    assert dates == [datetime(1991, 3, 14, tzinfo=UTC), datetime(1992, 3, 14, tzinfo=UTC)]


def test_snapshot_never_sees_partial_events() -> None:
    store, _ = _store()
    writers_done = threading.Event()
    seen_counts: list[int] = []

    def writer(prefix: str) -> None:
        for index in range(500):
            store.add_event(NOW + timedelta(seconds=index), f"{prefix}-{index}")

    threads = [threading.Thread(target=writer, args=(name,)) for name in ("a", "b")]
    for thread in threads:
        thread.start()

    while not writers_done.is_set():
        snapshot = store.snapshot()
        for event in snapshot.events:
            assert isinstance(event, Event)
            assert event.created == NOW
            assert event.description
        seen_counts.append(len(snapshot.events))
        if not any(thread.is_alive() for thread in threads):
            writers_done.set()

    for thread in threads:
        thread.join()

    assert seen_counts == sorted(seen_counts)
    assert store.event_count() == 1000
