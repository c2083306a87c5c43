"""
backup.py
JSON backup export/import (edusys_backup_<date>.json).
"""

from __future__ import annotations

import json
import logging
from datetime import date

import db
from db import StorageKey
from errors import ImportFormatError

logger = logging.getLogger(__name__)

COLLECTION_KEYS = (StorageKey.TEACHERS, StorageKey.EVENTS, StorageKey.STUDENTS)

# Record lists nested inside each collection's records
NESTED_KEYS = {StorageKey.TEACHERS: "materias", StorageKey.STUDENTS: "notas"}


def export_backup() -> dict:
    data = {key.value: db.get_item(key) or [] for key in COLLECTION_KEYS}
    data[StorageKey.CONFIG.value] = db.get_config().to_dict()
    return data


def dump_backup() -> bytes:
    return json.dumps(export_backup(), indent=2, ensure_ascii=False).encode("utf-8")


def backup_filename(today: date | None = None) -> str:
    today = today or date.today()
    return f"edusys_backup_{today.isoformat()}.json"


def _is_record_list(value) -> bool:
    # a missing nested list is allowed
    return value is None or (isinstance(value, list) and all(isinstance(v, dict) for v in value))


def parse_backup(raw: bytes | str) -> dict:
    """
    Parse and validate a backup document. Raises ImportFormatError; nothing is written here.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError, UnicodeDecodeError) as e:
        raise ImportFormatError(f"O arquivo não é um JSON válido: {e}") from e

    if not isinstance(data, dict):
        raise ImportFormatError("O arquivo selecionado não é um backup válido.")

    found = {}
    for key in COLLECTION_KEYS:
        if data.get(key.value) is None:
            continue
        value = data[key.value]
        if not isinstance(value, list) or not all(isinstance(v, dict) for v in value):
            raise ImportFormatError(f"'{key.value}' deve ser uma lista de registros.")
        nested = NESTED_KEYS.get(key)
        if nested and not all(_is_record_list(v.get(nested)) for v in value):
            raise ImportFormatError(f"'{nested}' em '{key.value}' deve ser uma lista de registros.")
        found[key] = value

    config = data.get(StorageKey.CONFIG.value)
    if config is not None:
        if not isinstance(config, dict):
            raise ImportFormatError("'config' deve ser um objeto.")
        found[StorageKey.CONFIG] = config

    if not found:
        raise ImportFormatError("O arquivo selecionado não é um backup válido.")
    return found


def import_backup(raw: bytes | str) -> list[StorageKey]:
    """
    Overwrite the collections present in the backup; absent keys are left untouched.
    Returns the keys that were written.
    """
    found = parse_backup(raw)
    for key, value in found.items():
        db.set_item(key, value)
    logger.info("Backup imported: %s", ", ".join(k.value for k in found))
    return list(found)
