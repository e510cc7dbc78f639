from __future__ import annotations

import logging
from types import TracebackType
from zoneinfo import ZoneInfo

from diary_manager.clock import Clock, SystemClock
from diary_manager.config_store import default_config
from diary_manager.maintenance import MaintenanceWorker, Notifier, console_notifier
from diary_manager.models import AppConfig
from diary_manager.store import EntryStore

LOGGER = logging.getLogger(__name__)


class Diary:
    """Owns the entry store and its maintenance worker.

    The worker starts when the diary is built and is stopped and joined by
    ``close()``. Use the diary as a context manager to get that for free.
    """

    def __init__(
        self,
        *,
        config: AppConfig | None = None,
        clock: Clock | None = None,
        notifier: Notifier = console_notifier,
    ) -> None:
        self.config = config or default_config()
        self.timezone = ZoneInfo(self.config.timezone)
        self.clock = clock or SystemClock()
        self.store = EntryStore(clock=self.clock, tz=self.timezone, leap_day_rule=self.config.leap_day_rule)
        self.worker = MaintenanceWorker(
            self.store,
            clock=self.clock,
            event_sweep_interval=self.config.event_sweep_interval,
            birthday_check_interval=self.config.birthday_check_interval,
            notifier=notifier,
        )
        self.worker.start()

    def close(self, timeout: float | None = None) -> bool:
        stopped = self.worker.stop_and_join(timeout)
        if not stopped:
            LOGGER.warning("Maintenance worker did not stop within %ss", timeout)
        return stopped

    def __enter__(self) -> Diary:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()
