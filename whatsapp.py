"""
whatsapp.py
WhatsApp deep links (https://wa.me/...) and the EduSys message templates.
"""

from __future__ import annotations

import re
from urllib.parse import quote

from config import Config
from utils import format_br_date

PHONE_RE = re.compile(r"(\d{10,11})")
NON_DIGITS_RE = re.compile(r"\D")

# Characters encodeURIComponent leaves unescaped
URI_SAFE = "-_.!~*'()"


def format_whatsapp_number(number: str, country_code: str = Config.COUNTRY_CODE) -> str:
    """
    Strip everything but digits and prefix the country code unless already there.
    "(11) 98765-4321" -> "5511987654321"
    """
    if not number:
        return ""
    cleaned = NON_DIGITS_RE.sub("", number)
    if cleaned.startswith(country_code):
        return cleaned
    return f"{country_code}{cleaned}"


def whatsapp_url(number: str, message: str = "") -> str | None:
    formatted = format_whatsapp_number(number)
    if not formatted:
        return None
    return f"https://wa.me/{formatted}?text={quote(message, safe=URI_SAFE)}"


def extract_phone(text: str) -> str | None:
    """First run of 10 or 11 digits in free text (e.g. "Name - 11999999999")."""
    if not text:
        return None
    match = PHONE_RE.search(text)
    return match.group(1) if match else None


def strip_phone(text: str) -> str:
    return PHONE_RE.sub("", text).strip(" -")


def contact_number(explicit: str, fallback_text: str) -> str | None:
    """Explicit WhatsApp field when set, otherwise a number found in the fallback text."""
    return explicit.strip() or extract_phone(fallback_text)


def event_reminder_message(title: str, event_date: str, event_time: str, description: str) -> str:
    return (
        f"🔔 *Lembrete de Evento*\n\n*{title}*\nData: {format_br_date(event_date)}\n"
        f"Hora: {event_time}\n\n{description}\n\nEste é um lembrete automático do EduSys."
    )


def teacher_payment_message(name: str, total_hours: int, hourly_rate: float, total_payment: float) -> str:
    return (
        f"💰 *Relatório de Pagamento*\n\nProfessor: {name}\nTotal de Horas: {total_hours}\n"
        f"Valor da Hora/Aula: R$ {hourly_rate:.2f}\nTotal a Receber: R$ {total_payment:.2f}\n\n"
        "Mensagem automática do EduSys."
    )


def student_report_message(name: str, average: float, absences: int, total_classes: int,
                           absence_pct: float, status: str) -> str:
    return (
        f"📚 *Relatório de Aluno*\n\nAluno: {name}\nMédia: {average:.2f}\n"
        f"Faltas: {absences}/{total_classes} ({absence_pct:.2f}%)\nSituação: {status}\n\n"
        "Mensagem automática do EduSys."
    )
