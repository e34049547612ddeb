"""
Configuration.

Everything is read from environment variables at call time, with defaults that keep
all state inside the package directory:

    GHOSTGUIDE_DATA_DIR       directory holding schedule.json   (default: <package>/data)
    GHOSTGUIDE_CHANNELS_FILE  JSON roster [{"name": ..., "color": ...}, ...]
    GHOSTGUIDE_IMPORT_DELAY   seconds to wait before each imported row (default: 0.05)
    GHOSTGUIDE_LOG_LEVEL      logging level name (default: WARNING)
    OMDB_API_KEY              key for the OMDb title lookup
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import List, Optional

from ghostguide.errors import ConfigError
from ghostguide.model import DEFAULT_CHANNELS, Channel

logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).resolve().parent

HEX_COLOR_RE = re.compile(r"^#[0-9a-fA-F]{6}$")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def default_data_dir() -> Path:
    value = os.environ.get("GHOSTGUIDE_DATA_DIR", "").strip()
    return Path(value) if value else PACKAGE_DIR / "data"


def import_delay() -> float:
    value = os.environ.get("GHOSTGUIDE_IMPORT_DELAY", "").strip()
    if not value:
        return 0.05
    try:
        delay = float(value)
    except ValueError as exc:
        raise ConfigError(f"GHOSTGUIDE_IMPORT_DELAY must be a number, got {value!r}") from exc
    if delay < 0:
        raise ConfigError("GHOSTGUIDE_IMPORT_DELAY must be >= 0")
    return delay


def omdb_api_key() -> Optional[str]:
    return os.environ.get("OMDB_API_KEY", "").strip() or None


def load_channels(path: str | Path | None = None) -> List[Channel]:
    """
    Load the channel roster.

    Uses `path`, else GHOSTGUIDE_CHANNELS_FILE, else the built-in roster.
    Raises ConfigError if the file is unreadable or not a list of {name, color}.
    """
    if path is None:
        env = os.environ.get("GHOSTGUIDE_CHANNELS_FILE", "").strip()
        if not env:
            return list(DEFAULT_CHANNELS)
        path = env

    roster_path = Path(path)
    try:
        data = json.loads(roster_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Cannot read channel roster {roster_path}: {exc}") from exc

    if not isinstance(data, list) or not data:
        raise ConfigError(f"Channel roster {roster_path} must be a non-empty JSON list")

    channels: List[Channel] = []
    seen: set[str] = set()
    for item in data:
        if not isinstance(item, dict):
            raise ConfigError(f"Invalid roster item {item!r}: expected an object")
        name = str(item.get("name", "")).strip()
        color = str(item.get("color", "")).strip()
        if not name or not color:
            raise ConfigError(f"Invalid roster item {item!r}: name and color are required")
        if not HEX_COLOR_RE.match(color):
            raise ConfigError(f"Invalid color for channel {name}: {color!r} (expected #rrggbb)")
        if name.lower() in seen:
            raise ConfigError(f"Duplicate channel in roster: {name}")
        seen.add(name.lower())
        channels.append(Channel(name=name, color=color))

    logger.debug("Loaded %d channels from %s", len(channels), roster_path)
    return channels


def configure_logging(level: Optional[str] = None) -> None:
    """
    Set up root logging once for CLI use. Library modules only create loggers.
    """
    name = (level or os.environ.get("GHOSTGUIDE_LOG_LEVEL", "") or "WARNING").strip().upper()
    numeric = logging.getLevelName(name)
    if not isinstance(numeric, int):
        raise ConfigError(f"Unknown log level: {name}")
    logging.basicConfig(level=numeric, format=LOG_FORMAT)
