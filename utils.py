"""
utils.py
Validation, dates, sample data.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

import db
from models import Event, Grade, Priority, Student, SubjectSession, Teacher, new_id


def today_iso() -> str:
    return date.today().isoformat()


def parse_iso(d: str) -> date:
    return date.fromisoformat(d)


def parse_iso_or_none(d: str) -> date | None:
    try:
        return date.fromisoformat(d)
    except (TypeError, ValueError):
        return None


def format_br_date(d: str) -> str:
    """ISO date -> DD/MM/YYYY. Unparseable values are returned as-is."""
    parsed = parse_iso_or_none(d)
    return parsed.strftime("%d/%m/%Y") if parsed else d


def format_currency(value: float) -> str:
    """R$ 1.234,50"""
    s = f"{value:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    return f"R$ {s}"


def _valid_time(t: str) -> bool:
    try:
        datetime.strptime(t, "%H:%M")
        return True
    except (TypeError, ValueError):
        return False


def validate_teacher_inputs(name: str, title: str, hourly_rate) -> list[str]:
    errors: list[str] = []
    if not name.strip():
        errors.append("Nome é obrigatório.")
    if not title.strip():
        errors.append("Título é obrigatório.")
    try:
        if float(hourly_rate) < 0:
            errors.append("Valor da hora/aula não pode ser negativo.")
    except (TypeError, ValueError):
        errors.append("Valor da hora/aula deve ser numérico.")
    return errors


def validate_session_inputs(name: str, session_date: str, hours) -> list[str]:
    errors: list[str] = []
    if not name.strip():
        errors.append("Nome da matéria é obrigatório.")
    if parse_iso_or_none(session_date) is None:
        errors.append("Data deve ser uma data ISO válida (AAAA-MM-DD).")
    try:
        if int(hours) <= 0:
            errors.append("Horas aula deve ser um inteiro positivo.")
    except (TypeError, ValueError):
        errors.append("Horas aula deve ser um inteiro positivo.")
    return errors


def validate_event_inputs(title: str, event_date: str, event_time: str, lead_days) -> list[str]:
    errors: list[str] = []
    if not title.strip():
        errors.append("Título é obrigatório.")
    if parse_iso_or_none(event_date) is None:
        errors.append("Data deve ser uma data ISO válida (AAAA-MM-DD).")
    if not _valid_time(event_time):
        errors.append("Hora deve estar no formato HH:MM.")
    try:
        if int(lead_days) < 0:
            errors.append("Notificação antecipada não pode ser negativa.")
    except (TypeError, ValueError):
        errors.append("Notificação antecipada deve ser um número inteiro de dias.")
    return errors


def validate_student_inputs(name: str, total_classes, absences, absence_limit) -> list[str]:
    errors: list[str] = []
    if not name.strip():
        errors.append("Nome é obrigatório.")
    try:
        total = int(total_classes)
        missed = int(absences)
        if total < 0 or missed < 0:
            errors.append("Total de aulas e faltas não podem ser negativos.")
        elif missed > total:
            errors.append("Faltas não podem exceder o total de aulas.")
    except (TypeError, ValueError):
        errors.append("Total de aulas e faltas devem ser inteiros.")
    try:
        if not 0 <= float(absence_limit) <= 100:
            errors.append("Limite de faltas deve estar entre 0 e 100%.")
    except (TypeError, ValueError):
        errors.append("Limite de faltas deve ser numérico.")
    return errors


def validate_grade_inputs(value, weight) -> list[str]:
    errors: list[str] = []
    try:
        if not 0 <= float(value) <= 10:
            errors.append("Nota deve estar entre 0 e 10.")
    except (TypeError, ValueError):
        errors.append("Nota deve ser numérica.")
    try:
        if float(weight) <= 0:
            errors.append("Peso deve ser positivo.")
    except (TypeError, ValueError):
        errors.append("Peso deve ser numérico.")
    return errors


def insert_sample_data() -> None:
    """
    Insert 2 teachers, 3 events and 3 students (adds new records each run).
    """
    today = date.today()

    teachers = [
        Teacher(
            id=new_id(),
            name="Ana Souza",
            title="Mestre",
            sessions=(
                SubjectSession(new_id(), "Matemática", today.isoformat(), "08:00", "Sala 1", 4),
                SubjectSession(new_id(), "Física", (today + timedelta(days=2)).isoformat(), "10:00", "Lab 2", 6),
            ),
            hourly_rate=50.0,
            tenured=True,
            notes="Contato: 11987654321",
        ),
        Teacher(id=new_id(), name="Carlos Lima", title="Doutor", hourly_rate=80.0),
    ]

    events = [
        Event(new_id(), "Reunião de pais", "Auditório principal", today.isoformat(), "19:00",
              priority=Priority.HIGH, lead_days=0),
        Event(new_id(), "Conselho de classe", "Fechamento do bimestre",
              (today + timedelta(days=2)).isoformat(), "14:00", lead_days=2),
        Event(new_id(), "Feira de ciências", "Montagem dos estandes",
              (today + timedelta(days=10)).isoformat(), "08:00", priority=Priority.LOW, lead_days=3),
    ]

    students = [
        Student(new_id(), "João Pereira - 11912345678",
                grades=(Grade(new_id(), 8, 1, "Prova 1"), Grade(new_id(), 6, 1, "Prova 2")),
                total_classes=20, absences=2, absence_limit=25),
        Student(new_id(), "Maria Silva",
                grades=(Grade(new_id(), 4, 1, "Prova 1"), Grade(new_id(), 5, 1, "Prova 2")),
                total_classes=20, absences=2, absence_limit=25),
        Student(new_id(), "Pedro Santos", grades=(Grade(new_id(), 9, 2, "Trabalho"),),
                total_classes=20, absences=6, absence_limit=25),
    ]

    for t in teachers:
        db.upsert_record(db.StorageKey.TEACHERS, t)
    for e in events:
        db.upsert_record(db.StorageKey.EVENTS, e)
    for s in students:
        db.upsert_record(db.StorageKey.STUDENTS, s)
