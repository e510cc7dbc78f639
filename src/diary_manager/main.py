from __future__ import annotations

import logging
import sys
from pathlib import Path

from diary_manager.commands import CommandShell
from diary_manager.config_store import ensure_default_config, load_config
from diary_manager.diary import Diary
from diary_manager.settings import load_settings


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def main() -> None:
    configure_logging()

    settings = load_settings()
    _ensure_parent(settings.config_path)
    _ensure_parent(settings.export_path)

    ensure_default_config(settings.config_path)
    config = load_config(settings.config_path)

    with Diary(config=config) as diary:
        shell = CommandShell(diary, export_path=settings.export_path)
        try:
            shell.run(sys.stdin, sys.stdout)
        except KeyboardInterrupt:
            logging.getLogger(__name__).info("Interrupted, shutting down")


if __name__ == "__main__":
    main()
