from __future__ import annotations

import os
import tempfile
import tomllib
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from diary_manager.date_logic import ALLOWED_LEAP_DAY_RULES
from diary_manager.models import DEFAULT_BIRTHDAY_CHECK_INTERVAL, DEFAULT_EVENT_SWEEP_INTERVAL, AppConfig


def _toml_escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _validate_interval(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be a whole number of seconds")
    if value <= 0:
        raise ValueError(f"{name} must be positive")
    return value


def validate_config(config: AppConfig) -> AppConfig:
    timezone = config.timezone.strip()
    if not timezone:
        raise ValueError("timezone must not be empty")
    try:
        ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone: {timezone}") from exc

    leap_day_rule = config.leap_day_rule.strip().lower()
    if leap_day_rule not in ALLOWED_LEAP_DAY_RULES:
        raise ValueError(f"leap_day_rule must be one of {sorted(ALLOWED_LEAP_DAY_RULES)}")

    return AppConfig(
        timezone=timezone,
        event_sweep_interval=_validate_interval("event_sweep_interval", config.event_sweep_interval),
        birthday_check_interval=_validate_interval("birthday_check_interval", config.birthday_check_interval),
        leap_day_rule=leap_day_rule,
    )


def default_config() -> AppConfig:
    return AppConfig(
        timezone="UTC",
        event_sweep_interval=DEFAULT_EVENT_SWEEP_INTERVAL,
        birthday_check_interval=DEFAULT_BIRTHDAY_CHECK_INTERVAL,
        leap_day_rule="feb28",
    )


def load_config(path: Path) -> AppConfig:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with path.open("rb") as file_obj:
        data = tomllib.load(file_obj)

    config = AppConfig(
        timezone=str(data.get("timezone", "UTC")),
        event_sweep_interval=data.get("event_sweep_interval", DEFAULT_EVENT_SWEEP_INTERVAL),
        birthday_check_interval=data.get("birthday_check_interval", DEFAULT_BIRTHDAY_CHECK_INTERVAL),
        leap_day_rule=str(data.get("leap_day_rule", "feb28")),
    )
    return validate_config(config)


def render_config(config: AppConfig) -> str:
    validated = validate_config(config)

    lines: list[str] = [
        f'timezone = "{_toml_escape(validated.timezone)}"',
        f'leap_day_rule = "{validated.leap_day_rule}"',
        "",
        "# Seconds between sweeps of expired events.",
        f"event_sweep_interval = {validated.event_sweep_interval}",
        "# Seconds between birthday checks.",
        f"birthday_check_interval = {validated.birthday_check_interval}",
    ]
    return "\n".join(lines) + "\n"


def save_config_atomic(path: Path, config: AppConfig) -> None:
    rendered = render_config(config)
    path.parent.mkdir(parents=True, exist_ok=True)

    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=path.parent,
        prefix=f".{path.name}.",
        delete=False,
    ) as temp_file:
        temp_file.write(rendered)
        temp_name = temp_file.name

    os.replace(temp_name, path)


def ensure_default_config(path: Path) -> None:
    if path.exists():
        return
    save_config_atomic(path, default_config())
