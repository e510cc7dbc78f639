from __future__ import annotations

import enum
import hashlib
import logging
import sys
import threading
from datetime import datetime, timedelta
from typing import Callable

from diary_manager.clock import Clock
from diary_manager.date_logic import local_date
from diary_manager.models import DEFAULT_BIRTHDAY_CHECK_INTERVAL, DEFAULT_EVENT_SWEEP_INTERVAL, Birthday
from diary_manager.store import EntryStore

LOGGER = logging.getLogger(__name__)

BIRTHDAY_TEMPLATES = (
    "🎉 It's {name}'s birthday, turning {age} today!",
    "🎈 {name} officially turns {age} today.",
    "🎂 {name} hits {age} today.",
    "🥳 Today marks {age} years of {name}.",
    "🌟 {name} unlocks level {age} today.",
    "🎊 {age} looks good on {name}.",
)

Notifier = Callable[[str], None]


class WorkerState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


def console_notifier(message: str) -> None:
    sys.stdout.write(message + "\n")
    sys.stdout.flush()


def format_birthday_message(birthday: Birthday) -> str:
    seed = "|".join((birthday.person.full_name, birthday.date.isoformat(), str(birthday.age)))
    digest = hashlib.sha256(seed.encode("utf-8")).digest()
    template = BIRTHDAY_TEMPLATES[int.from_bytes(digest[:4], "big") % len(BIRTHDAY_TEMPLATES)]
    return template.format(name=birthday.person.name, age=birthday.age)


class MaintenanceWorker:
    """Background thread that expires events and ages birthdays.

    Event sweeps and birthday checks run on their own cadences, both measured
    against the injected clock. Between cycles the thread waits on a stop
    signal, so ``stop()`` is observed immediately instead of after a full
    interval. The worker is single use: once stopped it cannot be restarted.
    """

    def __init__(
        self,
        store: EntryStore,
        *,
        clock: Clock | None = None,
        event_sweep_interval: float = DEFAULT_EVENT_SWEEP_INTERVAL,
        birthday_check_interval: float = DEFAULT_BIRTHDAY_CHECK_INTERVAL,
        notifier: Notifier = console_notifier,
    ) -> None:
        if event_sweep_interval <= 0 or birthday_check_interval <= 0:
            raise ValueError("Maintenance intervals must be positive")

        self._store = store
        self._clock = clock or store.clock
        self._sweep_interval = timedelta(seconds=event_sweep_interval)
        self._birthday_interval = timedelta(seconds=birthday_check_interval)
        self._notifier = notifier

        self._stop_event = threading.Event()
        self._state_lock = threading.Lock()
        self._state = WorkerState.IDLE
        self._thread = threading.Thread(target=self._run, name="diary-maintenance", daemon=True)

        self._next_sweep: datetime | None = None
        self._next_birthday_check: datetime | None = None

    @property
    def state(self) -> WorkerState:
        with self._state_lock:
            return self._state

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def start(self) -> None:
        with self._state_lock:
            if self._state is not WorkerState.IDLE:
                raise RuntimeError(f"Maintenance worker cannot be started from state {self._state.value}")
            self._state = WorkerState.RUNNING
        self._thread.start()
        LOGGER.info(
            "Maintenance worker started (sweep every %ss, birthdays every %ss)",
            int(self._sweep_interval.total_seconds()),
            int(self._birthday_interval.total_seconds()),
        )

    def stop(self) -> None:
        with self._state_lock:
            self._state = WorkerState.STOPPED
        self._stop_event.set()

    def join(self, timeout: float | None = None) -> bool:
        if self._thread.ident is not None:
            self._thread.join(timeout)
        return not self._thread.is_alive()

    def stop_and_join(self, timeout: float | None = None) -> bool:
        self.stop()
        return self.join(timeout)

    def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.run_pending(self._clock.now())
                delay = self._seconds_until_next(self._clock.now())
            except Exception:
                LOGGER.exception("Maintenance cycle failed, retrying next cycle")
                delay = self._sweep_interval.total_seconds()
            self._stop_event.wait(delay)
        LOGGER.info("Maintenance worker stopped")

    def run_pending(self, now: datetime) -> None:
        if self._next_sweep is None or now >= self._next_sweep:
            self.sweep_events(now)
            self._next_sweep = now + self._sweep_interval

        if self._stop_event.is_set():
            return

        if self._next_birthday_check is None or now >= self._next_birthday_check:
            self.check_birthdays(now)
            self._next_birthday_check = now + self._birthday_interval

    def _seconds_until_next(self, now: datetime) -> float:
        pending = [moment for moment in (self._next_sweep, self._next_birthday_check) if moment is not None]
        if not pending:
            return 0.0
        return max((min(pending) - now).total_seconds(), 0.0)

    def sweep_events(self, now: datetime) -> int:
        try:
            return self._store.remove_expired_events(now)
        except Exception:
            LOGGER.exception("Event sweep failed, retrying next cycle")
            return 0

    def check_birthdays(self, now: datetime) -> list[Birthday]:
        try:
            today = local_date(now, self._store.timezone)
            reached = self._store.advance_birthdays(today)
        except Exception:
            LOGGER.exception("Birthday check failed, retrying next cycle")
            return []

        for birthday in reached:
            self._notify(format_birthday_message(birthday))

        if reached:
            LOGGER.info("Advanced %s birthdays for %s", len(reached), today.isoformat())
        return reached

    def _notify(self, message: str) -> None:
        try:
            self._notifier(message)
        except Exception:
            LOGGER.exception("Could not deliver birthday notification: %s", message)
