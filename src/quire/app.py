"""Quire - e-book content pipeline.

Hosting entry point: builds the configuration, the state store and the
library state that a presentation shell drives.
"""

from __future__ import annotations

import logging
from typing import Optional

from quire.config import AppConfig, load_config
from quire.library.database import Database
from quire.library.state import LibraryState


def setup_logging(config: AppConfig) -> None:
    handler = logging.FileHandler(config.log_path, encoding="utf-8")
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    root = logging.getLogger("quire")
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)


def open_library(config: Optional[AppConfig] = None, load: bool = True) -> LibraryState:
    """Create a library bound to the configured state database."""
    config = config or load_config()
    state = LibraryState(config=config, db=Database(config.db_path))
    if load:
        state.load()
    return state


def close_library(state: LibraryState) -> None:
    state.save()
    if state.db is not None:
        state.db.close()
