"""Utility helpers for familycanvas."""

from __future__ import annotations

import datetime
import logging
import uuid
from typing import Tuple, TypeVar

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "familycanvas"

T = TypeVar("T")


def get_logger() -> logging.Logger:
    """Return a module-level logger configured with rich if not already."""
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        handler = RichHandler(rich_tracebacks=True, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.setLevel(logging.INFO)
        logger.addHandler(handler)
    return logger


logger = get_logger()


def set_log_level(level: str) -> None:
    """Allow callers (e.g. CLI) to adjust logging verbosity at runtime."""

    level_value = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(level_value)


console = Console()


def new_member_id() -> str:
    """Default id factory: short, collision-resistant member ids."""
    return f"user_{uuid.uuid4().hex[:8]}"


def current_year() -> int:
    return datetime.date.today().year


def parse_year(value: object) -> int | None:
    """Return the integer held by a 4-digit year string, or ``None``."""
    if value is None:
        return None
    text = str(value).strip()
    if len(text) != 4 or not text.isdigit():
        return None
    return int(text)


def append_unique(items: Tuple[T, ...], item: T) -> Tuple[T, ...]:
    if item in items:
        return items
    return items + (item,)

