from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Settings:
    config_path: Path
    export_path: Path


def _optional_env(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def load_settings() -> Settings:
    root = Path.cwd()

    config_path = Path(_optional_env("DIARY_CONFIG_PATH") or root / "config" / "diary.toml")
    export_path = Path(_optional_env("DIARY_EXPORT_PATH") or root / "output.txt")

    return Settings(
        config_path=config_path,
        export_path=export_path,
    )
