"""
app.py
Streamlit school administration tool (EduSys): teachers, agenda, students.
Run: streamlit run app.py
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime

import pandas as pd
import streamlit as st

import backup
import db
import reports
import rules
import utils
import whatsapp
from config import Config
from db import StorageKey
from errors import ImportFormatError
from models import (
    PRIORITY_LABELS,
    AppConfig,
    Grade,
    Priority,
    Student,
    SubjectSession,
    Teacher,
    edit_event,
    new_event,
    new_id,
)
from notifier import EventScheduler, QueuedTone, QueueSurface

logging.basicConfig(level=Config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

st.set_page_config(page_title="EduSys", layout="wide")

DARK_CSS = """
<style>
.stApp { background-color: #0e1117; color: #fafafa; }
[data-testid="stSidebar"] { background-color: #262730; }
</style>
"""


def init_once():
    db.init_db()


def apply_theme(config: AppConfig):
    if config.dark_mode:
        st.markdown(DARK_CSS, unsafe_allow_html=True)


def whatsapp_button(label: str, number: str | None, message: str):
    config = db.get_config()
    if not config.whatsapp_integration:
        return
    url = whatsapp.whatsapp_url(number or "", message)
    if url:
        st.link_button(label, url)
    else:
        st.caption("Nenhum número de WhatsApp encontrado.")


def pdf_button(label: str, data: bytes, file_name: str, key: str):
    st.download_button(label, data=data, file_name=file_name, mime="application/pdf", key=key)


# ---------- Notifications ----------

def get_scheduler() -> EventScheduler:
    if "scheduler" not in st.session_state:
        surface = QueueSurface(granted=st.session_state.get("notifications_granted", True))
        st.session_state.alert_surface = surface
        st.session_state.scheduler = EventScheduler(surface, QueuedTone(surface))
    return st.session_state.scheduler


@st.fragment(run_every=5)
def alert_feed():
    surface: QueueSurface = st.session_state.alert_surface
    for alert in surface.drain():
        if alert.sound:
            st.audio(alert.sound, format="audio/wav", autoplay=True)
        else:
            st.toast(f"**{alert.title}**\n\n{alert.body}", icon="🚨" if alert.urgent else "🔔")
    # The scheduler stops itself when this feed goes quiet (e.g. a hidden tab)
    get_scheduler().start()


def notification_banner(scheduler: EventScheduler):
    if scheduler.unavailable and not st.session_state.get("banner_shown"):
        st.info("Notificações desativadas. Ative-as em Configurações para receber alertas de eventos.")
        st.session_state.banner_shown = True


# ---------- Pages ----------

def home_page():
    st.header("🏫 EduSys")

    stats = rules.dashboard_stats(db.get_teachers(), db.get_events(), db.get_students())

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Professores", stats.teachers)
    c2.metric("Eventos", stats.events)
    c3.metric("Eventos pendentes", stats.pending_events)
    c4.metric("Alunos", stats.students)

    st.divider()

    st.subheader("Próximos 7 dias")
    upcoming = rules.sort_events(rules.filter_events(db.get_events(), "semana"), "data")
    if upcoming:
        st.dataframe(reports.events_frame(upcoming), width="stretch", hide_index=True)
    else:
        st.caption("Nenhum evento nos próximos 7 dias.")


def teacher_form(existing: Teacher | None = None):
    if existing:
        st.subheader(f"✏️ Editar Professor - {existing.name}")
    else:
        st.subheader("➕ Adicionar Professor")

    prefix = existing.id if existing else "new"
    col1, col2 = st.columns(2)
    with col1:
        name = st.text_input("Nome", value=existing.name if existing else "", key=f"t_name_{prefix}")
        title = st.text_input("Título", value=existing.title if existing else "", key=f"t_title_{prefix}")
        hourly_rate = st.text_input(
            "Valor da hora/aula (R$)", value=str(existing.hourly_rate) if existing else "0", key=f"t_rate_{prefix}"
        )
    with col2:
        tenured = st.checkbox("Estatutário", value=existing.tenured if existing else False, key=f"t_ten_{prefix}")
        phone = st.text_input("WhatsApp", value=existing.whatsapp if existing else "", key=f"t_wa_{prefix}")
        notes = st.text_area("Observações", value=existing.notes if existing else "", key=f"t_notes_{prefix}")

    errors = utils.validate_teacher_inputs(name, title, hourly_rate)
    for e in errors:
        st.error(e)

    if st.button("Salvar", type="primary", disabled=bool(errors), key=f"t_save_{prefix}"):
        fields = dict(name=name.strip(), title=title.strip(), hourly_rate=float(hourly_rate),
                      tenured=tenured, notes=notes.strip(), whatsapp=phone.strip())
        teacher = replace(existing, **fields) if existing else Teacher(id=new_id(), **fields)
        db.upsert_record(StorageKey.TEACHERS, teacher)
        st.success("Professor atualizado." if existing else "Professor adicionado.")
        st.session_state.edit_teacher_id = None
        st.rerun()


def sessions_editor(teacher: Teacher):
    st.subheader(f"📚 Matérias - {teacher.name}")

    df = reports.sessions_frame(teacher)
    if df.empty:
        st.caption("Nenhuma matéria registrada.")
    else:
        st.dataframe(df, width="stretch", hide_index=True)
        st.write(
            f"Total de horas: **{rules.total_hours_taught(teacher)}** | "
            f"Total a receber: **{utils.format_currency(rules.total_payment_owed(teacher))}**"
        )

    c1, c2, c3, c4, c5 = st.columns([2, 1, 1, 2, 1])
    with c1:
        subject = st.text_input("Matéria", key=f"s_name_{teacher.id}")
    with c2:
        session_date = st.date_input("Data", value=date.today(), key=f"s_date_{teacher.id}").isoformat()
    with c3:
        session_time = st.time_input("Horário", key=f"s_time_{teacher.id}").strftime("%H:%M")
    with c4:
        location = st.text_input("Local", key=f"s_loc_{teacher.id}")
    with c5:
        hours = st.text_input("Horas aula", value="1", key=f"s_hours_{teacher.id}")

    if st.button("Adicionar matéria", key=f"s_add_{teacher.id}"):
        errors = utils.validate_session_inputs(subject, session_date, hours)
        if errors:
            for e in errors:
                st.error(e)
        else:
            session = SubjectSession(new_id(), subject.strip(), session_date, session_time, location.strip(), int(hours))
            db.upsert_record(StorageKey.TEACHERS, replace(teacher, sessions=teacher.sessions + (session,)))
            st.rerun()

    if teacher.sessions:
        options = {f"{s.name} ({utils.format_br_date(s.date)} {s.time})": s.id for s in teacher.sessions}
        label = st.selectbox("Remover matéria", ["(nenhuma)"] + list(options), key=f"s_del_sel_{teacher.id}")
        if label != "(nenhuma)" and st.button("Remover", key=f"s_del_{teacher.id}"):
            sessions = tuple(s for s in teacher.sessions if s.id != options[label])
            db.upsert_record(StorageKey.TEACHERS, replace(teacher, sessions=sessions))
            st.rerun()


def teachers_page():
    st.header("👩‍🏫 Professores")

    teachers = db.get_teachers()
    with st.sidebar:
        st.subheader("Busca")
        search = st.text_input("Nome ou título")
    if search.strip():
        needle = search.strip().casefold()
        teachers = [t for t in teachers if needle in t.name.casefold() or needle in t.title.casefold()]

    st.dataframe(reports.teachers_frame(teachers), width="stretch", hide_index=True)
    if teachers:
        pdf_button("Exportar PDF", reports.teachers_pdf(teachers), "professores.pdf", key="t_pdf_all")

    st.divider()

    options = {f"{t.name} - {t.title}": t.id for t in teachers}
    colA, colB = st.columns([1, 2])
    with colA:
        st.subheader("Selecionar professor")
        label = st.selectbox("Professor", ["(nenhum)"] + list(options))

    selected = next((t for t in teachers if label != "(nenhum)" and t.id == options[label]), None)
    with colB:
        if selected:
            st.subheader("Ações")
            c1, c2, c3, c4 = st.columns(4)
            with c1:
                if st.button("Editar"):
                    st.session_state.edit_teacher_id = selected.id
                    st.rerun()
            with c2:
                pdf_button("PDF", reports.teachers_pdf([selected]), f"professor_{selected.name}.pdf", key="t_pdf_one")
            with c3:
                message = whatsapp.teacher_payment_message(
                    selected.name, rules.total_hours_taught(selected), selected.hourly_rate,
                    rules.total_payment_owed(selected),
                )
                whatsapp_button("WhatsApp", whatsapp.contact_number(selected.whatsapp, selected.notes),
                                message)
            with c4:
                confirm = st.checkbox("Confirmar exclusão", value=False, key="t_del_confirm")
                if st.button("Excluir", disabled=not confirm):
                    db.delete_record(StorageKey.TEACHERS, selected.id)
                    st.success("Professor removido.")
                    st.rerun()

    if selected:
        st.divider()
        sessions_editor(selected)

    st.divider()

    editing = next((t for t in db.get_teachers() if t.id == st.session_state.get("edit_teacher_id")), None)
    if editing:
        teacher_form(existing=editing)
        if st.button("Cancelar edição"):
            st.session_state.edit_teacher_id = None
            st.rerun()
    else:
        teacher_form()


def event_form(existing=None):
    is_editing = existing is not None
    event = existing or st.session_state.setdefault("draft_event", new_event())
    st.subheader(f"✏️ Editar Evento - {event.title}" if is_editing else "➕ Adicionar Evento")

    prefix = event.id
    col1, col2, col3 = st.columns(3)
    with col1:
        title = st.text_input("Título", value=event.title, key=f"e_title_{prefix}")
        description = st.text_area("Descrição", value=event.description, key=f"e_desc_{prefix}")
    with col2:
        event_date = st.date_input(
            "Data", value=utils.parse_iso_or_none(event.date) or date.today(), key=f"e_date_{prefix}"
        ).isoformat()
        event_time = st.time_input(
            "Hora", value=datetime.strptime(event.time or "08:00", "%H:%M").time(), key=f"e_time_{prefix}"
        ).strftime("%H:%M")
        phone = st.text_input("WhatsApp", value=event.whatsapp, key=f"e_wa_{prefix}")
    with col3:
        priorities = list(Priority)
        priority = st.selectbox(
            "Prioridade", priorities, index=priorities.index(event.priority),
            format_func=lambda p: PRIORITY_LABELS[p], key=f"e_prio_{prefix}",
        )
        lead_days = st.text_input("Notificação antecipada (dias)", value=str(event.lead_days), key=f"e_lead_{prefix}")

    errors = utils.validate_event_inputs(title, event_date, event_time, lead_days)
    for e in errors:
        st.error(e)

    if st.button("Salvar", type="primary", disabled=bool(errors), key=f"e_save_{prefix}"):
        updated = edit_event(
            event, title=title.strip(), description=description.strip(), date=event_date, time=event_time,
            whatsapp=phone.strip(), priority=priority, lead_days=int(lead_days),
        )
        db.upsert_record(StorageKey.EVENTS, updated)
        st.success(f"{updated.title} foi {'atualizado' if is_editing else 'adicionado'} com sucesso.")
        st.session_state.pop("draft_event", None)
        st.session_state.edit_event_id = None
        st.rerun()


def agenda_page():
    st.header("📅 Agenda")

    scheduler = get_scheduler()
    notification_banner(scheduler)
    alert_feed()

    with st.sidebar:
        st.subheader("Filtros")
        filter_name = st.selectbox("Mostrar", list(rules.FILTER_LABELS), format_func=rules.FILTER_LABELS.get)
        sort_key = st.selectbox(
            "Ordenar por", list(rules.SORTS),
            format_func={"data": "Data", "prioridade": "Prioridade", "titulo": "Título"}.get,
        )

    events = rules.sort_events(rules.filter_events(db.get_events(), filter_name), sort_key)
    if events:
        df = pd.DataFrame(
            [{"Data": utils.format_br_date(e.date), "Hora": e.time, "Título": e.title,
              "Prioridade": PRIORITY_LABELS[e.priority], "Descrição": e.description,
              "Notificado": "Sim" if e.notified else "Não"} for e in events]
        )
        st.dataframe(df, width="stretch", hide_index=True)
        pdf_button("Exportar PDF", reports.events_pdf(events), "agenda.pdf", key="e_pdf_all")
    else:
        st.caption("Nenhum evento encontrado.")

    st.divider()

    options = {f"{utils.format_br_date(e.date)} {e.time} - {e.title}": e.id for e in events}
    colA, colB = st.columns([1, 2])
    with colA:
        st.subheader("Selecionar evento")
        label = st.selectbox("Evento", ["(nenhum)"] + list(options))

    selected = next((e for e in events if label != "(nenhum)" and e.id == options[label]), None)
    with colB:
        if selected:
            st.subheader("Ações")
            c1, c2, c3, c4 = st.columns(4)
            with c1:
                if st.button("Editar"):
                    st.session_state.edit_event_id = selected.id
                    st.rerun()
            with c2:
                pdf_button("PDF", reports.events_pdf([selected]), f"evento_{selected.title}.pdf", key="e_pdf_one")
            with c3:
                message = whatsapp.event_reminder_message(selected.title, selected.date, selected.time,
                                                          selected.description)
                whatsapp_button("WhatsApp", selected.whatsapp, message)
            with c4:
                confirm = st.checkbox("Confirmar exclusão", value=False, key="e_del_confirm")
                if st.button("Excluir", disabled=not confirm):
                    db.delete_record(StorageKey.EVENTS, selected.id)
                    st.success("Evento removido.")
                    st.rerun()

    st.divider()

    editing = next((e for e in db.get_events() if e.id == st.session_state.get("edit_event_id")), None)
    if editing:
        event_form(existing=editing)
        if st.button("Cancelar edição"):
            st.session_state.edit_event_id = None
            st.rerun()
    else:
        event_form()


def student_form(existing: Student | None = None):
    if existing:
        st.subheader(f"✏️ Editar Aluno - {existing.name}")
    else:
        st.subheader("➕ Adicionar Aluno")

    prefix = existing.id if existing else "new"
    col1, col2 = st.columns(2)
    with col1:
        name = st.text_input("Nome", value=existing.name if existing else "", key=f"a_name_{prefix}")
        phone = st.text_input("WhatsApp", value=existing.whatsapp if existing else "", key=f"a_wa_{prefix}")
    with col2:
        total_classes = st.text_input(
            "Total de aulas", value=str(existing.total_classes) if existing else "0", key=f"a_total_{prefix}"
        )
        absences = st.text_input("Faltas", value=str(existing.absences) if existing else "0", key=f"a_abs_{prefix}")
        absence_limit = st.text_input(
            "Limite de faltas (%)", value=f"{existing.absence_limit:g}" if existing else "25", key=f"a_lim_{prefix}"
        )

    errors = utils.validate_student_inputs(name, total_classes, absences, absence_limit)
    for e in errors:
        st.error(e)

    if st.button("Salvar", type="primary", disabled=bool(errors), key=f"a_save_{prefix}"):
        fields = dict(name=name.strip(), whatsapp=phone.strip(), total_classes=int(total_classes),
                      absences=int(absences), absence_limit=float(absence_limit))
        student = replace(existing, **fields) if existing else Student(id=new_id(), **fields)
        db.upsert_record(StorageKey.STUDENTS, student)
        st.success("Aluno atualizado." if existing else "Aluno adicionado.")
        st.session_state.edit_student_id = None
        st.rerun()


def grades_editor(student: Student):
    st.subheader(f"📝 Notas - {student.name}")

    df = reports.grades_frame(student)
    if df.empty:
        st.caption("Nenhuma nota registrada.")
    else:
        st.dataframe(df, width="stretch", hide_index=True)

    status = rules.student_status(student)
    st.write(
        f"Média ponderada: **{rules.weighted_average(student.grades):.2f}** | "
        f"Faltas: **{rules.attendance_percentage(student):.2f}%** | "
        f"Situação: **{rules.status_label(status)}**"
    )

    c1, c2, c3 = st.columns([2, 1, 1])
    with c1:
        description = st.text_input("Descrição", key=f"g_desc_{student.id}")
    with c2:
        value = st.text_input("Nota (0-10)", value="0", key=f"g_val_{student.id}")
    with c3:
        weight = st.text_input("Peso", value="1", key=f"g_w_{student.id}")

    if st.button("Adicionar nota", key=f"g_add_{student.id}"):
        errors = utils.validate_grade_inputs(value, weight)
        if errors:
            for e in errors:
                st.error(e)
        else:
            grade = Grade(new_id(), float(value), float(weight), description.strip())
            db.upsert_record(StorageKey.STUDENTS, replace(student, grades=student.grades + (grade,)))
            st.rerun()

    if student.grades:
        options = {f"{g.description or 'Nota'} ({g.value:g} x {g.weight:g})": g.id for g in student.grades}
        label = st.selectbox("Remover nota", ["(nenhuma)"] + list(options), key=f"g_del_sel_{student.id}")
        if label != "(nenhuma)" and st.button("Remover", key=f"g_del_{student.id}"):
            grades = tuple(g for g in student.grades if g.id != options[label])
            db.upsert_record(StorageKey.STUDENTS, replace(student, grades=grades))
            st.rerun()


def students_page():
    st.header("🎓 Alunos")

    students = db.get_students()
    with st.sidebar:
        st.subheader("Busca & Filtros")
        search = st.text_input("Nome")
        status_filter = st.selectbox("Situação", ["Todas"] + list(rules.STATUS_LABELS.values()))
    if search.strip():
        students = [s for s in students if search.strip().casefold() in s.name.casefold()]
    if status_filter != "Todas":
        students = [s for s in students if rules.status_label(rules.student_status(s)) == status_filter]

    st.dataframe(reports.students_frame(students), width="stretch", hide_index=True)
    if students:
        pdf_button("Exportar PDF", reports.students_pdf(students), "alunos.pdf", key="a_pdf_all")
        st.download_button("Exportar CSV", data=reports.frame_to_csv_bytes(reports.students_frame(students)),
                           file_name="alunos.csv", mime="text/csv")

    st.divider()

    options = {s.name: s.id for s in students}
    colA, colB = st.columns([1, 2])
    with colA:
        st.subheader("Selecionar aluno")
        label = st.selectbox("Aluno", ["(nenhum)"] + list(options))

    selected = next((s for s in students if label != "(nenhum)" and s.id == options[label]), None)
    with colB:
        if selected:
            st.subheader("Ações")
            c1, c2, c3, c4 = st.columns(4)
            with c1:
                if st.button("Editar"):
                    st.session_state.edit_student_id = selected.id
                    st.rerun()
            with c2:
                pdf_button("PDF", reports.students_pdf([selected]), f"aluno_{selected.name}.pdf", key="a_pdf_one")
            with c3:
                message = whatsapp.student_report_message(
                    whatsapp.strip_phone(selected.name),
                    rules.weighted_average(selected.grades),
                    selected.absences,
                    selected.total_classes,
                    rules.attendance_percentage(selected),
                    rules.status_label(rules.student_status(selected)),
                )
                whatsapp_button("WhatsApp", whatsapp.contact_number(selected.whatsapp, selected.name),
                                message)
            with c4:
                confirm = st.checkbox("Confirmar exclusão", value=False, key="a_del_confirm")
                if st.button("Excluir", disabled=not confirm):
                    db.delete_record(StorageKey.STUDENTS, selected.id)
                    st.success("Aluno removido.")
                    st.rerun()

    if selected:
        st.divider()
        grades_editor(selected)

    st.divider()

    editing = next((s for s in db.get_students() if s.id == st.session_state.get("edit_student_id")), None)
    if editing:
        student_form(existing=editing)
        if st.button("Cancelar edição"):
            st.session_state.edit_student_id = None
            st.rerun()
    else:
        student_form()


def settings_page():
    st.header("⚙️ Configurações")

    config = db.get_config()

    st.subheader("Aparência e integrações")
    dark_mode = st.toggle("Modo escuro", value=config.dark_mode)
    whatsapp_integration = st.toggle("Integração com WhatsApp", value=config.whatsapp_integration)
    if st.button("Salvar configurações", type="primary"):
        db.set_config(AppConfig(dark_mode=dark_mode, whatsapp_integration=whatsapp_integration))
        st.success("Configurações salvas.")
        st.rerun()

    st.divider()

    st.subheader("Notificações")
    scheduler = get_scheduler()
    surface: QueueSurface = st.session_state.alert_surface
    if surface.permission_granted():
        st.caption("Notificações de eventos ativadas.")
        if st.button("Desativar notificações"):
            surface.revoke_permission()
            st.session_state.notifications_granted = False
            st.rerun()
    else:
        st.caption("Notificações de eventos desativadas.")
        if st.button("Permitir notificações"):
            surface.request_permission()
            scheduler.unavailable = False
            st.session_state.notifications_granted = True
            st.session_state.banner_shown = False
            st.rerun()

    st.divider()

    st.subheader("Relatórios e backup")
    teachers, events, students = db.get_teachers(), db.get_events(), db.get_students()
    pdf_button("Relatório completo (PDF)", reports.full_report_pdf(teachers, events, students),
               "relatorio_completo.pdf", key="full_pdf")
    st.download_button(
        "Fazer backup (JSON)",
        data=backup.dump_backup(),
        file_name=backup.backup_filename(),
        mime="application/json",
    )

    uploaded = st.file_uploader("Restaurar backup", type=["json"])
    if uploaded is not None and st.button("Importar backup"):
        try:
            keys = backup.import_backup(uploaded.getvalue())
        except ImportFormatError as e:
            logger.warning("Backup import rejected: %s", e)
            st.error(f"Erro na importação: {e}")
        else:
            st.success(f"Dados importados: {', '.join(k.value for k in keys)}.")
            st.rerun()

    st.divider()

    st.subheader("Dados de exemplo")
    st.caption("Insere 2 professores, 3 eventos e 3 alunos (adiciona novos registros a cada execução).")
    if st.button("Inserir dados de exemplo"):
        utils.insert_sample_data()
        st.success("Dados de exemplo inseridos.")
        st.rerun()

    st.divider()

    st.subheader("Zona de perigo")
    st.warning("Recomendamos fazer um backup antes de prosseguir.")
    confirm = st.checkbox("Confirmo que desejo apagar todos os dados", value=False)
    if st.button("Resetar dados", disabled=not confirm):
        db.reset_data()
        st.success("Todos os dados foram apagados.")
        st.rerun()


def main_app():
    apply_theme(db.get_config())

    st.sidebar.title("🏫 EduSys")

    pages = ["Início", "Professores", "Agenda", "Alunos", "Configurações"]
    if "page" not in st.session_state:
        st.session_state.page = "Início"
    st.session_state.page = st.sidebar.radio("Navegar", pages, index=pages.index(st.session_state.page))

    # The event scan runs only while the agenda is open
    scheduler = get_scheduler()
    if st.session_state.page == "Agenda":
        scheduler.start()
    else:
        scheduler.stop()

    if st.session_state.page == "Início":
        home_page()
    elif st.session_state.page == "Professores":
        teachers_page()
    elif st.session_state.page == "Agenda":
        agenda_page()
    elif st.session_state.page == "Alunos":
        students_page()
    elif st.session_state.page == "Configurações":
        settings_page()


# --------- App entry ---------

def run():
    init_once()
    main_app()


if __name__ == "__main__":
    run()
