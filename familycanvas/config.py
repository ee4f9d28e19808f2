"""Runtime settings resolved from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from .storage import STORAGE_KEY


def _default_db_path() -> str:
    return os.path.join(os.getcwd(), ".familycanvas", "tree.sqlite")


@dataclass
class Settings:
    db_path: str = field(default_factory=_default_db_path)
    storage_key: str = STORAGE_KEY
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            db_path=os.getenv("FAMILYCANVAS_DB") or _default_db_path(),
            storage_key=os.getenv("FAMILYCANVAS_STORAGE_KEY", STORAGE_KEY),
            log_level=os.getenv("FAMILYCANVAS_LOG_LEVEL", "INFO"),
        )


__all__ = ["Settings"]
