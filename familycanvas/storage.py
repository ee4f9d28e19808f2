"""Host-side persistence of registry snapshots."""

from __future__ import annotations

import json
import os
import sqlite3
from contextlib import closing
from typing import Any, Dict, List, Optional

from .errors import StorageError
from .schemas import Member
from .utils import logger

STORAGE_KEY = "family-canvas-data"
LAYOUT_KEY = "family-canvas-layout"

SCHEMA = """
CREATE TABLE IF NOT EXISTS snapshots (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""


class SQLiteStore:
    """SQLite-backed key/value store holding one JSON document per key."""

    def __init__(self, path: str) -> None:
        self.path = path
        directory = os.path.dirname(path)
        try:
            if directory:
                os.makedirs(directory, exist_ok=True)
            with closing(sqlite3.connect(self.path)) as conn:
                conn.execute("PRAGMA journal_mode=WAL;")
                conn.execute(SCHEMA)
                conn.commit()
        except (OSError, sqlite3.Error) as exc:
            raise StorageError(f"Cannot open snapshot database {path}: {exc}") from exc

    def get(self, key: str) -> Optional[str]:
        try:
            with closing(sqlite3.connect(self.path)) as conn:
                cur = conn.execute("SELECT value FROM snapshots WHERE key = ?", (key,))
                row = cur.fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot read '{key}': {exc}") from exc
        if row:
            return row[0]
        return None

    def set(self, key: str, value: str) -> None:
        try:
            with closing(sqlite3.connect(self.path)) as conn:
                conn.execute(
                    "INSERT OR REPLACE INTO snapshots(key, value, updated_at) VALUES(?, ?, CURRENT_TIMESTAMP)",
                    (key, value),
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot write '{key}': {exc}") from exc


class JSONFileStore:
    """One ``<key>.json`` file per key inside a directory."""

    def __init__(self, directory: str) -> None:
        self.directory = directory
        os.makedirs(directory, exist_ok=True)

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, f"{key}.json")

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as fh:
                return fh.read()
        except OSError as exc:
            raise StorageError(f"Cannot read {path}: {exc}") from exc

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp_path = f"{path}.tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as fh:
                fh.write(value)
            os.replace(tmp_path, path)
        except OSError as exc:
            raise StorageError(f"Cannot write {path}: {exc}") from exc


class MemoryStore:
    """In-memory store useful for testing."""

    def __init__(self) -> None:
        self._store: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._store.get(key)

    def set(self, key: str, value: str) -> None:
        self._store[key] = value


def _read_json(store: Any, key: str) -> Any:
    raw = store.get(key)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise StorageError(f"Snapshot '{key}' is not valid JSON: {exc}") from exc


def load_members(store: Any, key: str = STORAGE_KEY) -> List[Member]:
    """Load the member list; any failure degrades to an empty list."""
    try:
        payload = _read_json(store, key)
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise StorageError(f"Snapshot '{key}' should hold a list of members")
        return [Member.from_record(record) for record in payload]
    except (StorageError, KeyError, TypeError, AttributeError) as exc:
        logger.warning("Could not load family snapshot, starting empty: %s", exc)
        return []


def save_members(store: Any, members: List[Member], key: str = STORAGE_KEY) -> None:
    payload = json.dumps([member.to_record() for member in members], ensure_ascii=False)
    store.set(key, payload)


def load_positions(store: Any, key: str = LAYOUT_KEY) -> Dict[str, Dict[str, float]]:
    try:
        payload = _read_json(store, key)
    except StorageError as exc:
        logger.warning("Ignoring stored layout: %s", exc)
        return {}
    if not isinstance(payload, dict):
        return {}
    positions: Dict[str, Dict[str, float]] = {}
    for node_id, position in payload.items():
        if not isinstance(position, dict):
            continue
        try:
            positions[node_id] = {"x": float(position["x"]), "y": float(position["y"])}
        except (KeyError, TypeError, ValueError):
            logger.debug("Skipping malformed stored position for %s", node_id)
    return positions


def save_positions(store: Any, positions: Dict[str, Dict[str, float]], key: str = LAYOUT_KEY) -> None:
    store.set(key, json.dumps(positions, sort_keys=True))


__all__ = [
    "STORAGE_KEY",
    "LAYOUT_KEY",
    "SQLiteStore",
    "JSONFileStore",
    "MemoryStore",
    "load_members",
    "save_members",
    "load_positions",
    "save_positions",
]
