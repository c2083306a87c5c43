from __future__ import annotations

import whatsapp


def test_number_normalization():
    assert whatsapp.format_whatsapp_number("(11) 98765-4321") == "5511987654321"
    assert whatsapp.format_whatsapp_number("55 11 98765-4321") == "5511987654321"
    assert whatsapp.format_whatsapp_number("") == ""


def test_url_encodes_message():
    url = whatsapp.whatsapp_url("(11) 98765-4321", "Olá, mundo! *negrito*\nfim")
    assert url == "https://wa.me/5511987654321?text=Ol%C3%A1%2C%20mundo!%20*negrito*%0Afim"


def test_url_without_number():
    assert whatsapp.whatsapp_url("", "oi") is None


def test_extract_phone_from_free_text():
    assert whatsapp.extract_phone("João Pereira - 11912345678") == "11912345678"
    assert whatsapp.extract_phone("Ligar para 1133334444 depois") == "1133334444"
    assert whatsapp.extract_phone("sem telefone 1234") is None
    assert whatsapp.strip_phone("João Pereira - 11912345678") == "João Pereira"


def test_explicit_number_wins():
    assert whatsapp.contact_number("21 99999-0000", "Ana 11912345678") == "21 99999-0000"
    assert whatsapp.contact_number("", "Ana 11912345678") == "11912345678"
    assert whatsapp.contact_number("", "Ana") is None


def test_messages():
    msg = whatsapp.event_reminder_message("Reunião", "2026-10-20", "19:00", "Auditório")
    assert "*Reunião*" in msg
    assert "Data: 20/10/2026" in msg

    msg = whatsapp.teacher_payment_message("Ana", 10, 50.0, 500.0)
    assert "Total de Horas: 10" in msg
    assert "Total a Receber: R$ 500.00" in msg

    msg = whatsapp.student_report_message("João", 7.0, 2, 20, 10.0, "Aprovado")
    assert "Faltas: 2/20 (10.00%)" in msg
    assert "Situação: Aprovado" in msg
