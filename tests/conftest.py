from __future__ import annotations

import pytest

import db


@pytest.fixture(autouse=True)
def store(tmp_path, monkeypatch):
    """Fresh SQLite store for every test."""
    monkeypatch.setattr(db, "DB_FILE", tmp_path / "edusys-test.db")
    db.init_db()
    return db
