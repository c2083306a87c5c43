"""
reports.py
Report tables (pandas) and PDF rendering (HTML -> WeasyPrint).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from html import escape

import pandas as pd

import rules
from models import PRIORITY_LABELS, Event, Student, Teacher
from utils import format_br_date, format_currency


@dataclass
class Section:
    heading: str
    lines: list[str] = field(default_factory=list)
    table: pd.DataFrame | None = None
    empty_text: str = ""


# ---------- Tables ----------

def teachers_frame(teachers: list[Teacher]) -> pd.DataFrame:
    rows = [
        {
            "Nome": t.name,
            "Título": t.title,
            "Estatutário": "Sim" if t.tenured else "Não",
            "Valor Hora/Aula": t.hourly_rate,
            "Total de Horas": rules.total_hours_taught(t),
            "Total a Receber": rules.total_payment_owed(t),
        }
        for t in teachers
    ]
    return pd.DataFrame(rows, columns=["Nome", "Título", "Estatutário", "Valor Hora/Aula",
                                       "Total de Horas", "Total a Receber"])


def sessions_frame(teacher: Teacher) -> pd.DataFrame:
    rows = [
        {"Matéria": s.name, "Data": format_br_date(s.date), "Horário": s.time,
         "Local": s.location, "Horas Aula": s.hours}
        for s in teacher.sessions
    ]
    return pd.DataFrame(rows, columns=["Matéria", "Data", "Horário", "Local", "Horas Aula"])


def events_frame(events: list[Event]) -> pd.DataFrame:
    rows = [
        {
            "Data": format_br_date(e.date),
            "Hora": e.time,
            "Título": e.title,
            "Prioridade": PRIORITY_LABELS[e.priority],
            "Antecedência (dias)": e.lead_days,
            "Notificado": "Sim" if e.notified else "Não",
        }
        for e in rules.sort_events(events, "data")
    ]
    return pd.DataFrame(rows, columns=["Data", "Hora", "Título", "Prioridade",
                                       "Antecedência (dias)", "Notificado"])


def students_frame(students: list[Student]) -> pd.DataFrame:
    rows = [
        {
            "Nome": s.name,
            "Média": round(rules.weighted_average(s.grades), 2),
            "Faltas": s.absences,
            "Total de Aulas": s.total_classes,
            "Faltas (%)": round(rules.attendance_percentage(s), 2),
            "Limite (%)": s.absence_limit,
            "Situação": rules.status_label(rules.student_status(s)),
        }
        for s in students
    ]
    return pd.DataFrame(rows, columns=["Nome", "Média", "Faltas", "Total de Aulas",
                                       "Faltas (%)", "Limite (%)", "Situação"])


def grades_frame(student: Student) -> pd.DataFrame:
    rows = [{"Descrição": g.description, "Nota": f"{g.value:.2f}", "Peso": g.weight} for g in student.grades]
    return pd.DataFrame(rows, columns=["Descrição", "Nota", "Peso"])


def frame_to_csv_bytes(df: pd.DataFrame) -> bytes:
    return df.to_csv(index=False).encode("utf-8")


# ---------- Sections ----------

def teacher_section(t: Teacher) -> Section:
    lines = [
        f"Título: {t.title}",
        f"Estatutário: {'Sim' if t.tenured else 'Não'}",
        f"Valor da Hora/Aula: {format_currency(t.hourly_rate)}",
    ]
    if t.notes:
        lines.append(f"Observações: {t.notes}")
    if t.sessions:
        lines.append(f"Total de Horas: {rules.total_hours_taught(t)}")
        lines.append(f"Total a Receber: {format_currency(rules.total_payment_owed(t))}")
    return Section(f"Professor: {t.name}", lines, sessions_frame(t) if t.sessions else None,
                   empty_text="Nenhuma matéria registrada.")


def event_section(e: Event) -> Section:
    return Section(
        f"Evento: {e.title}",
        [
            f"Data: {format_br_date(e.date)} - Hora: {e.time}",
            f"Prioridade: {PRIORITY_LABELS[e.priority]}",
            f"WhatsApp: {e.whatsapp}",
            f"Notificação Antecipada: {e.lead_days} dia(s)",
            f"Descrição: {e.description}",
        ],
    )


def student_section(s: Student) -> Section:
    lines = [
        f"Total de Aulas: {s.total_classes}",
        f"Faltas: {s.absences} ({rules.attendance_percentage(s):.2f}%)",
        f"Limite de Faltas: {s.absence_limit:g}%",
        f"Média Ponderada: {rules.weighted_average(s.grades):.2f}",
        f"Situação: {rules.status_label(rules.student_status(s))}",
    ]
    return Section(f"Aluno: {s.name}", lines, grades_frame(s) if s.grades else None,
                   empty_text="Nenhuma nota registrada.")


def collection_sections(teachers: list[Teacher], events: list[Event], students: list[Student]) -> list[Section]:
    """Tabular summary of every non-empty collection (the complete report)."""
    sections = []
    if teachers:
        sections.append(Section("Professores", table=teachers_frame(teachers)))
    if events:
        sections.append(Section("Agenda", table=events_frame(events)))
    if students:
        sections.append(Section("Alunos", table=students_frame(students)))
    return sections


# ---------- Rendering ----------

CSS = """
body { font-family: sans-serif; font-size: 10pt; }
h1 { font-size: 16pt; margin-bottom: 0; }
.generated { color: #666; margin-top: 2pt; }
h2 { font-size: 13pt; border-top: 1px solid #ccc; padding-top: 6pt; }
table { border-collapse: collapse; width: 100%; margin: 6pt 0; }
th, td { border: 1px solid #ccc; padding: 3pt 5pt; text-align: left; }
th { background: #2980b9; color: white; }
"""


def render_report_html(title: str, sections: list[Section], generated_at: datetime | None = None) -> str:
    generated_at = generated_at or datetime.now()
    parts = [
        "<!DOCTYPE html><html><head><meta charset='utf-8'>",
        f"<title>{escape(title)}</title><style>{CSS}</style></head><body>",
        f"<h1>{escape(title)}</h1>",
        f"<p class='generated'>Gerado em: {generated_at.strftime('%d/%m/%Y %H:%M')}</p>",
    ]
    for section in sections:
        parts.append(f"<h2>{escape(section.heading)}</h2>")
        for line in section.lines:
            parts.append(f"<p>{escape(line)}</p>")
        if section.table is not None and not section.table.empty:
            parts.append(section.table.to_html(index=False, border=0))
        elif section.empty_text:
            parts.append(f"<p><em>{escape(section.empty_text)}</em></p>")
    if not sections:
        parts.append("<p><em>Nenhum registro.</em></p>")
    parts.append("</body></html>")
    return "\n".join(parts)


def html_to_pdf(html: str) -> bytes:
    from weasyprint import HTML

    return HTML(string=html).write_pdf()


def teachers_pdf(teachers: list[Teacher]) -> bytes:
    return html_to_pdf(render_report_html("Relatório de Professores", [teacher_section(t) for t in teachers]))


def events_pdf(events: list[Event]) -> bytes:
    return html_to_pdf(render_report_html("Relatório de Agenda", [event_section(e) for e in events]))


def students_pdf(students: list[Student]) -> bytes:
    return html_to_pdf(render_report_html("Relatório de Alunos", [student_section(s) for s in students]))


def full_report_pdf(teachers: list[Teacher], events: list[Event], students: list[Student]) -> bytes:
    return html_to_pdf(render_report_html("Relatório Completo do Sistema",
                                          collection_sections(teachers, events, students)))
