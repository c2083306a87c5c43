"""
db.py
SQLite-backed key/value blob store. One JSON blob per collection
(professores, eventos, alunos, config).
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import replace
from enum import Enum

from config import Config
from errors import StorageReadError, StorageWriteError
from models import AppConfig, Event, Student, Teacher

logger = logging.getLogger(__name__)

DB_FILE = Config.DB_PATH

# Serializes read-modify-write cycles between the UI and the scheduler thread
_write_lock = threading.RLock()


class StorageKey(str, Enum):
    TEACHERS = "professores"
    EVENTS = "eventos"
    STUDENTS = "alunos"
    CONFIG = "config"


@contextmanager
def get_conn():
    conn = sqlite3.connect(DB_FILE, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def init_db() -> None:
    with get_conn() as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS storage (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
            """
        )
    if get_item(StorageKey.CONFIG) is None:
        set_config(AppConfig())


def _read_blob(key: StorageKey):
    try:
        with get_conn() as conn:
            row = conn.execute("SELECT value FROM storage WHERE key = ?", (key.value,)).fetchone()
    except sqlite3.Error as e:
        raise StorageReadError(f"cannot read {key.value}: {e}") from e
    if row is None:
        return None
    try:
        return json.loads(row["value"])
    except (TypeError, ValueError) as e:
        raise StorageReadError(f"malformed blob for {key.value}: {e}") from e


def _write_blob(key: StorageKey, value) -> None:
    try:
        payload = json.dumps(value, ensure_ascii=False)
        with get_conn() as conn:
            conn.execute(
                """
                INSERT INTO storage(key, value) VALUES(?, ?)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value
                """,
                (key.value, payload),
            )
    except (sqlite3.Error, TypeError, ValueError) as e:
        raise StorageWriteError(f"cannot write {key.value}: {e}") from e


def get_item(key: StorageKey):
    """Stored JSON value for `key`, or None when absent or unreadable."""
    try:
        return _read_blob(key)
    except StorageReadError:
        logger.warning("Error getting item from storage: %s", key.value, exc_info=True)
        return None


def set_item(key: StorageKey, value) -> None:
    """Store `value` as JSON. Failures are logged, never raised."""
    try:
        _write_blob(key, value)
    except StorageWriteError:
        logger.exception("Error setting item to storage: %s", key.value)


def remove_item(key: StorageKey) -> None:
    try:
        with get_conn() as conn:
            conn.execute("DELETE FROM storage WHERE key = ?", (key.value,))
    except sqlite3.Error:
        logger.exception("Error removing item from storage: %s", key.value)


def _get_list(key: StorageKey) -> list[dict]:
    value = get_item(key)
    if not isinstance(value, list):
        if value is not None:
            logger.warning("Expected a list for %s, got %s", key.value, type(value).__name__)
        return []
    return [v for v in value if isinstance(v, dict)]


# ---------- Collections ----------

def _build(key: StorageKey, from_dict) -> list:
    """Records of a collection. A record that cannot be built is logged and skipped."""
    records = []
    for row in _get_list(key):
        try:
            records.append(from_dict(row))
        except (TypeError, ValueError, AttributeError):
            logger.warning("Skipping malformed record in %s: %r", key.value, row.get("id"), exc_info=True)
    return records


def get_teachers() -> list[Teacher]:
    return _build(StorageKey.TEACHERS, Teacher.from_dict)


def set_teachers(teachers: list[Teacher]) -> None:
    set_item(StorageKey.TEACHERS, [t.to_dict() for t in teachers])


def get_events() -> list[Event]:
    return _build(StorageKey.EVENTS, Event.from_dict)


def set_events(events: list[Event]) -> None:
    set_item(StorageKey.EVENTS, [e.to_dict() for e in events])


def get_students() -> list[Student]:
    return _build(StorageKey.STUDENTS, Student.from_dict)


def set_students(students: list[Student]) -> None:
    set_item(StorageKey.STUDENTS, [s.to_dict() for s in students])


def get_config() -> AppConfig:
    value = get_item(StorageKey.CONFIG)
    if not isinstance(value, dict):
        return AppConfig()
    return AppConfig.from_dict(value)


def set_config(config: AppConfig) -> None:
    set_item(StorageKey.CONFIG, config.to_dict())


# ---------- Per-record updates ----------

def upsert_record(key: StorageKey, record) -> None:
    """Replace the record with the same id, or append it, re-reading the collection first."""
    with _write_lock:
        rows = _get_list(key)
        data = record.to_dict()
        for i, row in enumerate(rows):
            if str(row.get("id")) == record.id:
                rows[i] = data
                break
        else:
            rows.append(data)
        set_item(key, rows)


def delete_record(key: StorageKey, record_id: str) -> None:
    with _write_lock:
        rows = [r for r in _get_list(key) if str(r.get("id")) != record_id]
        set_item(key, rows)


def claim_notification(event_id: str) -> bool:
    """
    Flip `notified` on a stored event that has not been notified yet.
    Returns True only for the caller that made the flip, so concurrent
    scans in the same process alert at most once per event.
    """
    with _write_lock:
        rows = _get_list(StorageKey.EVENTS)
        for i, row in enumerate(rows):
            if str(row.get("id")) != event_id:
                continue
            event = Event.from_dict(row)
            if event.notified:
                return False
            rows[i] = replace(event, notified=True).to_dict()
            set_item(StorageKey.EVENTS, rows)
            return True
    logger.info("Event %s was removed before it could be marked as notified", event_id)
    return False


def reset_data() -> None:
    """Remove teachers, events and students. The app config is kept."""
    with _write_lock:
        for key in (StorageKey.TEACHERS, StorageKey.EVENTS, StorageKey.STUDENTS):
            remove_item(key)
