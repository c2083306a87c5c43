from __future__ import annotations

import db
import rules
import utils
from models import StudentStatus


def test_format_helpers():
    assert utils.format_br_date("2026-10-19") == "19/10/2026"
    assert utils.format_br_date("ontem") == "ontem"
    assert utils.format_currency(1234.5) == "R$ 1.234,50"


def test_event_validation():
    assert utils.validate_event_inputs("Reunião", "2026-10-20", "08:00", "1") == []
    errors = utils.validate_event_inputs(" ", "20/10/2026", "8h", "-1")
    assert len(errors) == 4


def test_student_validation():
    assert utils.validate_student_inputs("Ana", "20", "2", "25") == []
    assert "Faltas não podem exceder o total de aulas." in utils.validate_student_inputs("Ana", "2", "3", "25")
    assert "Limite de faltas deve estar entre 0 e 100%." in utils.validate_student_inputs("Ana", "2", "1", "150")


def test_grade_and_session_validation():
    assert utils.validate_grade_inputs("7.5", "2") == []
    assert len(utils.validate_grade_inputs("11", "0")) == 2
    assert utils.validate_session_inputs("Mat", "2026-10-01", "4") == []
    assert utils.validate_session_inputs("Mat", "2026-10-01", "0") == ["Horas aula deve ser um inteiro positivo."]


def test_teacher_validation():
    assert utils.validate_teacher_inputs("Ana", "Mestre", "50") == []
    assert utils.validate_teacher_inputs("Ana", "Mestre", "abc") == ["Valor da hora/aula deve ser numérico."]


def test_sample_data_covers_every_status():
    utils.insert_sample_data()
    assert len(db.get_teachers()) == 2
    assert len(db.get_events()) == 3
    statuses = {rules.student_status(s) for s in db.get_students()}
    assert statuses == {StudentStatus.APPROVED, StudentStatus.FAILED_BY_GRADE, StudentStatus.FAILED_BY_ABSENCE}
