from __future__ import annotations

from datetime import datetime

import reports
from models import Event, Grade, Student, SubjectSession, Teacher

ANA = Teacher(
    "1", "Ana", "Mestre",
    sessions=(
        SubjectSession("a", "Mat", "2026-10-01", "08:00", "Sala 1", 4),
        SubjectSession("b", "Fis", "2026-10-02", "10:00", "Sala 2", 6),
    ),
    hourly_rate=50.0,
)
JOAO = Student("1", "João", grades=(Grade("g", 8, 1), Grade("h", 6, 1)), total_classes=20, absences=2,
               absence_limit=25)


def test_teachers_frame_has_totals():
    df = reports.teachers_frame([ANA])
    row = df.iloc[0]
    assert row["Total de Horas"] == 10
    assert row["Total a Receber"] == 500.0


def test_students_frame_has_status():
    row = reports.students_frame([JOAO]).iloc[0]
    assert row["Média"] == 7.0
    assert row["Faltas (%)"] == 10.0
    assert row["Situação"] == "Aprovado"


def test_empty_frames_keep_columns():
    assert list(reports.events_frame([]).columns)[:3] == ["Data", "Hora", "Título"]
    assert reports.students_frame([]).empty


def test_events_frame_sorted_by_date():
    evs = [Event("b", "B", "", "2026-10-21", "08:00"), Event("a", "A", "", "2026-10-20", "08:00")]
    assert list(reports.events_frame(evs)["Título"]) == ["A", "B"]


def test_csv_export():
    csv = reports.frame_to_csv_bytes(reports.teachers_frame([ANA])).decode("utf-8")
    assert csv.splitlines()[0].startswith("Nome,Título")


def test_detail_report_html():
    html = reports.render_report_html(
        "Relatório de Professores", [reports.teacher_section(ANA)], generated_at=datetime(2026, 10, 19, 9, 5)
    )
    assert "<h1>Relatório de Professores</h1>" in html
    assert "Gerado em: 19/10/2026 09:05" in html
    assert "Total a Receber: R$ 500,00" in html
    assert "<table" in html


def test_detail_without_rows_shows_empty_text():
    html = reports.render_report_html("Relatório de Alunos", [reports.student_section(Student("2", "Bia"))])
    assert "Nenhuma nota registrada." in html


def test_summary_report_escapes_text():
    evil = Event("1", "<script>", "", "2026-10-20", "08:00")
    html = reports.render_report_html("Relatório Completo do Sistema",
                                      reports.collection_sections([ANA], [evil], [JOAO]))
    assert "<script>" not in html
    assert html.count("<table") == 3
