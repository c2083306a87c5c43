"""
rules.py
Grade, attendance and payment rules, plus agenda filters and sorting.
All functions are pure and return fallback values instead of raising.
"""

from __future__ import annotations

import unicodedata
from datetime import date, timedelta
from typing import Iterable

from config import Config
from models import (
    PRIORITY_ORDER,
    DashboardStats,
    Event,
    Grade,
    Priority,
    Student,
    StudentStatus,
    Teacher,
)
from utils import parse_iso_or_none

STATUS_LABELS = {
    StudentStatus.UNDEFINED: "Indefinido",
    StudentStatus.APPROVED: "Aprovado",
    StudentStatus.FAILED_BY_ABSENCE: "Reprovado por Faltas",
    StudentStatus.FAILED_BY_GRADE: "Reprovado por Nota",
}


# ---------- Students ----------

def weighted_average(grades: Iterable[Grade]) -> float:
    grades = list(grades)
    total_weight = sum(g.weight for g in grades)
    if not grades or total_weight == 0:
        return 0.0
    return sum(g.value * g.weight for g in grades) / total_weight


def attendance_percentage(student: Student) -> float:
    """Share of classes missed, in percent. 0 when no classes were held."""
    if student.total_classes == 0:
        return 0.0
    return 100.0 * student.absences / student.total_classes


def student_status(student: Student) -> StudentStatus:
    # Absences are checked before grades
    if student.total_classes == 0:
        return StudentStatus.UNDEFINED
    if attendance_percentage(student) > student.absence_limit:
        return StudentStatus.FAILED_BY_ABSENCE
    if weighted_average(student.grades) >= Config.PASS_MARK:
        return StudentStatus.APPROVED
    return StudentStatus.FAILED_BY_GRADE


def status_label(status: StudentStatus) -> str:
    return STATUS_LABELS[status]


# ---------- Teachers ----------

def total_hours_taught(teacher: Teacher) -> int:
    return sum(s.hours for s in teacher.sessions)


def total_payment_owed(teacher: Teacher) -> float:
    return total_hours_taught(teacher) * teacher.hourly_rate


# ---------- Agenda ----------

def _in_range(event: Event, start: date, end: date | None = None) -> bool:
    d = parse_iso_or_none(event.date)
    if d is None:
        return False
    return d >= start and (end is None or d <= end)


def _is_past(event: Event, today: date) -> bool:
    d = parse_iso_or_none(event.date)
    return d is not None and d < today


FILTERS = {
    "todos": lambda e, today: True,
    "hoje": lambda e, today: _in_range(e, today, today),
    "amanha": lambda e, today: _in_range(e, today + timedelta(days=1), today + timedelta(days=1)),
    "semana": lambda e, today: _in_range(e, today, today + timedelta(days=7)),
    "futuros": lambda e, today: _in_range(e, today),
    "passados": _is_past,
    "alta": lambda e, today: e.priority is Priority.HIGH,
    "media": lambda e, today: e.priority is Priority.MEDIUM,
    "baixa": lambda e, today: e.priority is Priority.LOW,
}

FILTER_LABELS = {
    "todos": "Todos",
    "hoje": "Hoje",
    "amanha": "Amanhã",
    "semana": "Próximos 7 dias",
    "futuros": "Futuros",
    "passados": "Passados",
    "alta": "Prioridade alta",
    "media": "Prioridade média",
    "baixa": "Prioridade baixa",
}


def filter_events(events: Iterable[Event], name: str = "todos", today: date | None = None) -> list[Event]:
    today = today or date.today()
    predicate = FILTERS.get(name, FILTERS["todos"])
    return [e for e in events if predicate(e, today)]


def _title_key(title: str) -> tuple[str, str]:
    """Case- and accent-insensitive collation key ('Ética' sorts between 'beta' and 'Gama')."""
    title = title or ""
    decomposed = unicodedata.normalize("NFKD", title)
    folded = "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()
    return folded, title


SORTS = {
    "data": lambda e: (e.date, e.time),
    "prioridade": lambda e: PRIORITY_ORDER[e.priority],
    "titulo": lambda e: _title_key(e.title),
}


def sort_events(events: Iterable[Event], key: str = "data") -> list[Event]:
    # sorted() is stable, so ties keep their stored order
    return sorted(events, key=SORTS.get(key, SORTS["data"]))


# ---------- Dashboard ----------

def dashboard_stats(
    teachers: list[Teacher], events: list[Event], students: list[Student], today: date | None = None
) -> DashboardStats:
    today = today or date.today()
    return DashboardStats(
        teachers=len(teachers),
        events=len(events),
        pending_events=len(filter_events(events, "futuros", today)),
        students=len(students),
    )
