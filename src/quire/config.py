"""Configuration management via .env file."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from quire.content.paginator import DEFAULT_PAGE_WORDS

log = logging.getLogger(__name__)

VIEW_MODES = ("paginated", "continuous")


def _xdg_data_home() -> Path:
    return Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))


def _xdg_config_home() -> Path:
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


@dataclass
class AppConfig:
    # Paths
    data_dir: Path = field(default_factory=lambda: _xdg_data_home() / "quire")
    config_dir: Path = field(default_factory=lambda: _xdg_config_home() / "quire")
    db_path: Path = field(init=False)
    log_path: Path = field(init=False)

    # Reading defaults
    page_word_budget: int = DEFAULT_PAGE_WORDS
    view_mode: str = "paginated"  # paginated, continuous

    # Persistence
    storage_key: str = "reader_state"

    def __post_init__(self) -> None:
        self.db_path = self.data_dir / "quire.db"
        self.log_path = self.data_dir / "quire.log"
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.config_dir.mkdir(parents=True, exist_ok=True)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        log.warning("Ignoring %s=%r: not an integer", name, raw)
        return default
    if value < 1:
        log.warning("Ignoring %s=%r: must be positive", name, raw)
        return default
    return value


def load_config(env_path: Optional[Path] = None) -> AppConfig:
    """Load config from .env file. Searches CWD then config dir."""
    search_paths = [
        env_path,
        Path.cwd() / ".env",
        _xdg_config_home() / "quire" / ".env",
        Path.home() / ".env",
    ]
    for p in search_paths:
        if p and p.exists():
            load_dotenv(p)
            break

    kwargs = {}
    data_dir = os.getenv("QUIRE_DATA_DIR")
    if data_dir:
        kwargs["data_dir"] = Path(data_dir).expanduser()

    view_mode = os.getenv("QUIRE_VIEW_MODE", "paginated").strip().lower()
    if view_mode not in VIEW_MODES:
        log.warning("Ignoring QUIRE_VIEW_MODE=%r", view_mode)
        view_mode = "paginated"

    return AppConfig(
        page_word_budget=_int_env("QUIRE_PAGE_WORDS", DEFAULT_PAGE_WORDS),
        view_mode=view_mode,
        storage_key=os.getenv("QUIRE_STORAGE_KEY", "reader_state"),
        **kwargs,
    )
