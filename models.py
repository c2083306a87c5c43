"""
models.py
Domain records (dataclasses) and their mapping to the stored JSON shape.

Stored field names follow the EduSys backup format (Portuguese keys), so
backups produced by earlier EduSys versions import unchanged.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, replace
from datetime import date, timedelta
from enum import Enum


class Priority(str, Enum):
    HIGH = "alta"
    MEDIUM = "media"
    LOW = "baixa"

    @classmethod
    def parse(cls, value) -> "Priority":
        try:
            return cls(value)
        except (TypeError, ValueError):
            return cls.MEDIUM


# Sort order used by the agenda (high first)
PRIORITY_ORDER = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}

PRIORITY_LABELS = {Priority.HIGH: "Alta", Priority.MEDIUM: "Média", Priority.LOW: "Baixa"}


class StudentStatus(str, Enum):
    UNDEFINED = "undefined"
    APPROVED = "approved"
    FAILED_BY_ABSENCE = "failed_by_absence"
    FAILED_BY_GRADE = "failed_by_grade"


_id_lock = threading.Lock()
_last_id = 0


def new_id() -> str:
    """
    Millisecond timestamp as a string (the EduSys id format).
    Bumped by one when two ids are requested within the same millisecond.
    """
    global _last_id
    with _id_lock:
        candidate = int(time.time() * 1000)
        if candidate <= _last_id:
            candidate = _last_id + 1
        _last_id = candidate
        return str(candidate)


def _int(value, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _float(value, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _text(value) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _records(value) -> list[dict]:
    """Nested record list; anything that is not a list of objects is dropped."""
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, dict)]


@dataclass(frozen=True)
class SubjectSession:
    id: str
    name: str
    date: str  # ISO date
    time: str  # HH:MM
    location: str
    hours: int

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "nome": self.name,
            "data": self.date,
            "horario": self.time,
            "local": self.location,
            "horasAula": self.hours,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "SubjectSession":
        return cls(
            id=str(d.get("id") or new_id()),
            name=_text(d.get("nome")),
            date=_text(d.get("data")),
            time=_text(d.get("horario")),
            location=_text(d.get("local")),
            hours=_int(d.get("horasAula")),
        )


@dataclass(frozen=True)
class Teacher:
    id: str
    name: str
    title: str
    sessions: tuple[SubjectSession, ...] = ()
    hourly_rate: float = 0.0
    tenured: bool = False
    notes: str = ""
    whatsapp: str = ""

    def to_dict(self) -> dict:
        d = {
            "id": self.id,
            "nome": self.name,
            "titulo": self.title,
            "materias": [s.to_dict() for s in self.sessions],
            "valorHoraAula": self.hourly_rate,
            "estatutario": self.tenured,
            "observacoes": self.notes,
        }
        if self.whatsapp:
            d["whatsapp"] = self.whatsapp
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "Teacher":
        return cls(
            id=str(d.get("id") or new_id()),
            name=_text(d.get("nome")),
            title=_text(d.get("titulo")),
            sessions=tuple(SubjectSession.from_dict(s) for s in _records(d.get("materias"))),
            hourly_rate=_float(d.get("valorHoraAula")),
            tenured=bool(d.get("estatutario", False)),
            notes=_text(d.get("observacoes")),
            whatsapp=_text(d.get("whatsapp")),
        )


@dataclass(frozen=True)
class Event:
    id: str
    title: str
    description: str
    date: str  # ISO date
    time: str  # HH:MM
    whatsapp: str = ""
    priority: Priority = Priority.MEDIUM
    lead_days: int = 1
    notified: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "titulo": self.title,
            "descricao": self.description,
            "data": self.date,
            "hora": self.time,
            "whatsapp": self.whatsapp,
            "prioridade": self.priority.value,
            "notificacaoAntecipada": self.lead_days,
            "notificado": self.notified,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Event":
        return cls(
            id=str(d.get("id") or new_id()),
            title=_text(d.get("titulo")),
            description=_text(d.get("descricao")),
            date=_text(d.get("data")),
            time=_text(d.get("hora")),
            whatsapp=_text(d.get("whatsapp")),
            priority=Priority.parse(d.get("prioridade")),
            lead_days=max(0, _int(d.get("notificacaoAntecipada"), 1)),
            notified=bool(d.get("notificado", False)),
        )


# Changing any of these re-arms the event's one-time alert
REARM_FIELDS = ("date", "time", "lead_days")


def new_event(today: date | None = None) -> Event:
    """Blank event for the add form: tomorrow at 08:00, medium priority, 1 day lead."""
    today = today or date.today()
    return Event(
        id=new_id(),
        title="",
        description="",
        date=(today + timedelta(days=1)).isoformat(),
        time="08:00",
    )


def edit_event(original: Event, **changes) -> Event:
    """Apply changes to an event, resetting `notified` when date, time or lead changes."""
    updated = replace(original, **changes)
    if any(getattr(updated, f) != getattr(original, f) for f in REARM_FIELDS):
        updated = replace(updated, notified=False)
    return updated


@dataclass(frozen=True)
class Grade:
    id: str
    value: float
    weight: float = 1.0
    description: str = ""

    def to_dict(self) -> dict:
        return {"id": self.id, "valor": self.value, "peso": self.weight, "descricao": self.description}

    @classmethod
    def from_dict(cls, d: dict) -> "Grade":
        return cls(
            id=str(d.get("id") or new_id()),
            value=_float(d.get("valor")),
            weight=_float(d.get("peso"), 1.0),
            description=_text(d.get("descricao")),
        )


@dataclass(frozen=True)
class Student:
    id: str
    name: str
    grades: tuple[Grade, ...] = ()
    total_classes: int = 0
    absences: int = 0
    absence_limit: float = 25.0  # percent
    whatsapp: str = ""

    def to_dict(self) -> dict:
        d = {
            "id": self.id,
            "nome": self.name,
            "notas": [g.to_dict() for g in self.grades],
            "totalAulas": self.total_classes,
            "faltas": self.absences,
            "limiteFaltas": self.absence_limit,
        }
        if self.whatsapp:
            d["whatsapp"] = self.whatsapp
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "Student":
        return cls(
            id=str(d.get("id") or new_id()),
            name=_text(d.get("nome")),
            grades=tuple(Grade.from_dict(g) for g in _records(d.get("notas"))),
            total_classes=max(0, _int(d.get("totalAulas"))),
            absences=max(0, _int(d.get("faltas"))),
            absence_limit=_float(d.get("limiteFaltas"), 25.0),
            whatsapp=_text(d.get("whatsapp")),
        )


@dataclass(frozen=True)
class AppConfig:
    dark_mode: bool = False
    whatsapp_integration: bool = True

    def to_dict(self) -> dict:
        return {"darkMode": self.dark_mode, "whatsappIntegration": self.whatsapp_integration}

    @classmethod
    def from_dict(cls, d: dict) -> "AppConfig":
        return cls(
            dark_mode=bool(d.get("darkMode", False)),
            whatsapp_integration=bool(d.get("whatsappIntegration", True)),
        )


@dataclass
class DashboardStats:
    teachers: int = 0
    events: int = 0
    pending_events: int = 0
    students: int = 0
