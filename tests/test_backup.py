from __future__ import annotations

import json
from datetime import date

import pytest

import backup
import db
from db import StorageKey
from errors import ImportFormatError
from models import AppConfig, Event, Grade, Student, SubjectSession, Teacher


@pytest.fixture
def populated():
    db.set_teachers([Teacher("t1", "Ana", "Mestre", (SubjectSession("s1", "Mat", "2026-10-01", "08:00", "Sala", 4),),
                             50.0, True, "Contato 11987654321")])
    db.set_events([Event("e1", "Reunião", "Pais", "2026-10-20", "19:00", lead_days=2, notified=True)])
    db.set_students([Student("a1", "João", (Grade("g1", 8, 2, "Prova"),), 20, 2, 25)])
    db.set_config(AppConfig(dark_mode=True, whatsapp_integration=False))


def store_state():
    return {key: db.get_item(key) for key in StorageKey}


def test_backup_filename():
    assert backup.backup_filename(date(2026, 10, 19)) == "edusys_backup_2026-10-19.json"


def test_export_has_all_keys(populated):
    data = backup.export_backup()
    assert set(data) == {"professores", "eventos", "alunos", "config"}
    assert data["config"] == {"darkMode": True, "whatsappIntegration": False}


def test_round_trip_restores_state(populated):
    before = store_state()
    raw = backup.dump_backup()

    db.reset_data()
    db.set_config(AppConfig())
    backup.import_backup(raw)

    assert store_state() == before


def test_partial_import_leaves_absent_keys(populated):
    teachers_before = db.get_teachers()
    backup.import_backup(json.dumps({"eventos": []}))
    assert db.get_events() == []
    assert db.get_teachers() == teachers_before


@pytest.mark.parametrize(
    "raw",
    [
        b"not json",
        "[1, 2, 3]",
        json.dumps({"unrelated": 1}),
        json.dumps({"eventos": [], "alunos": "oops"}),
        json.dumps({"professores": [1, 2]}),
        json.dumps({"eventos": [], "config": []}),
        json.dumps({"alunos": [{"id": "1", "nome": "Ana", "notas": "x"}]}),
        json.dumps({"professores": [{"id": "1", "nome": "Ana", "materias": [1]}]}),
    ],
)
def test_invalid_backup_is_rejected_without_changes(populated, raw):
    before = store_state()
    with pytest.raises(ImportFormatError):
        backup.import_backup(raw)
    assert store_state() == before


def test_records_without_nested_lists_are_accepted():
    backup.import_backup(json.dumps({"professores": [{"id": "t9", "nome": "Bia"}], "alunos": [{"id": "a9", "nome": "Caio"}]}))
    assert db.get_teachers()[0].sessions == ()
    assert db.get_students()[0].grades == ()
