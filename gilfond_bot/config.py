"""Settings for one bot run: defaults, optional config.toml, then GF_* env vars."""
from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from .errors import ConfigError
from .models import Credentials

DEFAULT_SEEN_TTL_HOURS = 72
DEFAULT_PRIORITY_MAX_ROUNDS = 20
DEFAULT_MAX_DELAY = 3.0

# config.toml key -> environment variable
ENV_KEYS = {
    "program": "GF_RTY_NAME",
    "numfile": "GF_NUMFILE",
    "password": "GF_PASSWORD",
    "rooms": "GF_NROOMS",
    "telegram_token": "GF_TG_TOKEN",
    "telegram_chat_id": "GF_TG_CHAT_ID",
    "seen_ttl_hours": "GF_SEEN_TTL_HOURS",
    "state_dir": "GF_STATE_DIR",
    "screens_dir": "GF_SCREENS_DIR",
    "headless": "GF_HEADLESS",
    "priority_max_rounds": "GF_PRIORITY_MAX_ROUNDS",
    "max_delay": "GF_MAX_DELAY",
}

REQUIRED = ("program", "numfile", "password", "rooms")


@dataclass(frozen=True)
class Settings:
    program: str
    numfile: str
    password: str
    rooms: frozenset[int]
    telegram_token: str = ""
    telegram_chat_id: str = ""
    seen_ttl: timedelta | None = timedelta(hours=DEFAULT_SEEN_TTL_HOURS)
    state_dir: Path = Path("state")
    screens_dir: Path = Path("screens")
    headless: bool = True
    priority_max_rounds: int = DEFAULT_PRIORITY_MAX_ROUNDS
    max_delay: float = DEFAULT_MAX_DELAY

    @property
    def credentials(self) -> Credentials:
        return Credentials(numfile=self.numfile, password=self.password)

    @property
    def seen_path(self) -> Path:
        return self.state_dir / "seen.json"

    @property
    def session_path(self) -> Path:
        return self.state_dir / "session.json"


def parse_rooms(value) -> frozenset[int]:
    """Turn "1, 2,3" (or a TOML list) into {1, 2, 3}."""
    parts = value if isinstance(value, (list, tuple)) else str(value).split(",")
    rooms = set()
    for part in parts:
        text = str(part).strip()
        if not text:
            continue
        try:
            n = int(text)
        except ValueError:
            raise ConfigError(f"room count is not an integer: {text!r}") from None
        if n <= 0:
            raise ConfigError(f"room count must be positive: {n}")
        rooms.add(n)
    return frozenset(rooms)


def parse_ttl(value) -> timedelta | None:
    """Hours -> timedelta; empty or zero means no TTL (every row is new)."""
    text = str(value).strip() if value is not None else ""
    if not text:
        return None
    try:
        hours = float(text)
    except ValueError:
        raise ConfigError(f"seen TTL is not a number of hours: {text!r}") from None
    if hours < 0:
        raise ConfigError(f"seen TTL must not be negative: {hours}")
    return timedelta(hours=hours) if hours else None


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _parse_number(key, value, kind):
    try:
        return kind(str(value).strip())
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {value!r}") from None


def load_config(path: str | Path) -> dict:
    """Load config.toml; the [gilfond] table if present, else the top level."""
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Config not found: {p}")
    try:
        with open(p, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid config {p}: {e}") from e
    return data.get("gilfond", data)


def load_settings(path: str | Path | None = None, environ=None) -> Settings:
    environ = os.environ if environ is None else environ
    raw = dict(load_config(path)) if path else {}
    for key, env_name in ENV_KEYS.items():
        if env_name in environ:
            raw[key] = environ[env_name]

    missing = [ENV_KEYS[k] for k in REQUIRED if not str(raw.get(k, "")).strip()]
    if missing:
        raise ConfigError(f"missing required settings: {', '.join(missing)}")

    rooms = parse_rooms(raw["rooms"])
    if not rooms:
        raise ConfigError("no room counts configured")

    max_rounds = _parse_number("priority_max_rounds", raw.get("priority_max_rounds", DEFAULT_PRIORITY_MAX_ROUNDS), int)
    if max_rounds < 1:
        raise ConfigError("priority_max_rounds must be at least 1")

    return Settings(
        program=str(raw["program"]).strip(),
        numfile=str(raw["numfile"]).strip(),
        password=str(raw["password"]),
        rooms=rooms,
        telegram_token=str(raw.get("telegram_token") or "").strip(),
        telegram_chat_id=str(raw.get("telegram_chat_id") or "").strip(),
        seen_ttl=parse_ttl(raw.get("seen_ttl_hours", DEFAULT_SEEN_TTL_HOURS)),
        state_dir=Path(raw.get("state_dir") or "state"),
        screens_dir=Path(raw.get("screens_dir") or "screens"),
        headless=_parse_bool(raw.get("headless", True)),
        priority_max_rounds=max_rounds,
        max_delay=_parse_number("max_delay", raw.get("max_delay", DEFAULT_MAX_DELAY), float),
    )
