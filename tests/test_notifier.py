from __future__ import annotations

import io
import wave
from datetime import date, datetime

import pytest

import db
import notifier
from db import StorageKey
from models import Event, Priority, edit_event
from notifier import (
    AlertSound,
    EventScheduler,
    NotificationSurface,
    QueuedTone,
    QueueSurface,
    days_until,
    due_events,
    happening_now,
    notification_title,
    synth_tone,
)


class RecordingSurface(NotificationSurface):
    def __init__(self, supported=True):
        self.supported = supported
        self.shown = []

    def is_supported(self):
        return self.supported

    def show(self, title, body="", tag="", urgent=False):
        self.shown.append((title, tag, urgent))


class RecordingSound(AlertSound):
    def __init__(self):
        self.played = []

    def play(self, urgent=False):
        self.played.append(urgent)


NOW = datetime(2026, 10, 19, 10, 30)


@pytest.fixture
def surface():
    return RecordingSurface()


@pytest.fixture
def sound():
    return RecordingSound()


@pytest.fixture
def scheduler(surface, sound):
    return EventScheduler(surface, sound, interval=60)


def test_days_until_ignores_time_of_day():
    e = Event("1", "A", "", "2026-10-21", "23:59")
    assert days_until(e, NOW.date()) == 2
    assert days_until(Event("2", "B", "", "garbage", "08:00"), NOW.date()) is None


def test_due_on_event_day_or_exact_lead():
    today = date(2026, 10, 19)
    evs = [
        Event("today", "", "", "2026-10-19", "08:00", lead_days=3),
        Event("lead", "", "", "2026-10-21", "08:00", lead_days=2),
        Event("early", "", "", "2026-10-22", "08:00", lead_days=2),
        Event("between", "", "", "2026-10-20", "08:00", lead_days=2),
        Event("done", "", "", "2026-10-19", "08:00", notified=True),
        Event("past", "", "", "2026-10-18", "08:00", lead_days=0),
    ]
    assert [e.id for e in due_events(evs, today)] == ["today", "lead"]


def test_titles():
    e = Event("1", "Reunião", "", "2026-10-21", "08:00")
    assert notification_title(e, 0) == "Evento hoje: Reunião"
    assert notification_title(e, 2) == "Evento em 2 dias: Reunião"


def test_happening_now_matches_exact_minute():
    evs = [
        Event("now", "", "", "2026-10-19", "10:30"),
        Event("later", "", "", "2026-10-19", "10:31"),
        Event("other-day", "", "", "2026-10-20", "10:30"),
    ]
    assert [e.id for e in happening_now(evs, NOW)] == ["now"]


def test_scan_fires_once(scheduler, surface, sound):
    db.set_events([Event("1", "Conselho", "Fechamento", "2026-10-21", "14:00", lead_days=2)])

    first = scheduler.scan(NOW)
    assert [e.id for e in first.fired] == ["1"]
    assert surface.shown == [("Evento em 2 dias: Conselho", "evento-1", False)]
    assert sound.played == [False]
    assert db.get_events()[0].notified is True

    second = scheduler.scan(NOW)
    assert second.fired == []
    assert len(surface.shown) == 1


def test_high_priority_uses_urgent_sound(scheduler, sound):
    db.set_events([Event("1", "Prova", "", "2026-10-19", "18:00", priority=Priority.HIGH)])
    scheduler.scan(NOW)
    assert sound.played == [True]


def test_edit_rearms_alert(scheduler, surface):
    db.set_events([Event("1", "Reunião", "", "2026-10-19", "18:00", lead_days=0)])
    scheduler.scan(NOW)
    fired = db.get_events()[0]
    assert fired.notified is True

    db.upsert_record(StorageKey.EVENTS, edit_event(fired, description="Nova sala"))
    scheduler.scan(NOW)
    assert len(surface.shown) == 1

    db.upsert_record(StorageKey.EVENTS, edit_event(db.get_events()[0], time="19:00"))
    assert db.get_events()[0].notified is False
    scheduler.scan(NOW)
    assert len(surface.shown) == 2


def test_scan_reads_store_each_time(scheduler):
    assert scheduler.scan(NOW).fired == []
    db.upsert_record(StorageKey.EVENTS, Event("1", "Novo", "", "2026-10-19", "18:00"))
    assert [e.id for e in scheduler.scan(NOW).fired] == ["1"]


def test_happening_now_ignores_notified_flag(scheduler, surface):
    db.set_events([Event("1", "Aula", "Sala 3", "2026-10-19", "10:30", notified=True)])
    result = scheduler.scan(NOW)
    assert [e.id for e in result.now] == ["1"]
    assert surface.shown == [("📅 Evento Agora: Aula", "agora-1", False)]

    scheduler.scan(NOW)
    assert len(surface.shown) == 2


def test_unsupported_notifications_are_no_ops(sound):
    surface = RecordingSurface(supported=False)
    scheduler = EventScheduler(surface, sound)
    db.set_events([Event("1", "Reunião", "", "2026-10-19", "18:00")])

    result = scheduler.scan(NOW)
    assert scheduler.unavailable is True
    assert surface.shown == []
    assert sound.played == []
    assert [e.id for e in result.fired] == ["1"]


def test_queue_surface_denied_permission_drops_alerts():
    surface = QueueSurface(granted=False)
    scheduler = EventScheduler(surface, QueuedTone(surface))
    db.set_events([Event("1", "Reunião", "", "2026-10-19", "18:00")])

    scheduler.scan(NOW)
    assert scheduler.unavailable is True
    assert surface.drain() == []

    surface.request_permission()
    db.set_events([Event("2", "Outra", "", "2026-10-19", "18:00", priority=Priority.HIGH)])
    scheduler.scan(NOW)
    alerts = surface.drain()
    assert [a.title for a in alerts if not a.sound] == ["Evento hoje: Outra"]
    assert [a.urgent for a in alerts if a.sound] == [True]
    assert scheduler.unavailable is False


def test_start_scans_immediately_and_stop_cancels(surface, sound):
    db.set_events([Event("1", "Reunião", "", date.today().isoformat(), "23:59")])
    scheduler = EventScheduler(surface, sound, interval=60)
    scheduler.start()
    try:
        assert scheduler.running
        assert surface.shown[0][0] == "Evento hoje: Reunião"
        scheduler.start()
        assert len(surface.shown) == 1
    finally:
        scheduler.stop()
    assert not scheduler.running
    assert scheduler._scheduler.jobs == []


def test_two_schedulers_on_one_store_alert_once(sound):
    db.set_events([Event("1", "Conselho", "", "2026-10-19", "18:00")])
    first, second = RecordingSurface(), RecordingSurface()
    a = EventScheduler(first, sound)
    b = EventScheduler(second, sound)
    # Both sessions loaded the event before either scan wrote the flag back
    loaded = db.get_events()
    a.load_events = b.load_events = lambda: loaded

    fired = a.scan(NOW).fired + b.scan(NOW).fired
    assert [e.id for e in fired] == ["1"]
    assert len(first.shown) + len(second.shown) == 1
    assert sound.played == [False]


def test_start_raises_happening_now_on_first_scan(monkeypatch, surface, sound):
    class FrozenDatetime(datetime):
        @classmethod
        def now(cls, tz=None):
            return NOW

    monkeypatch.setattr(notifier, "datetime", FrozenDatetime)
    db.set_events([Event("1", "Aula", "Sala 3", "2026-10-19", "10:30", notified=True)])
    scheduler = EventScheduler(surface, sound, interval=60)
    scheduler.start()
    try:
        assert surface.shown == [("📅 Evento Agora: Aula", "agora-1", False)]
    finally:
        scheduler.stop()


def test_queue_surface_drops_oldest_when_full():
    surface = QueueSurface(maxsize=3)
    for i in range(5):
        surface.show(f"alerta {i}")
    assert [a.title for a in surface.drain()] == ["alerta 2", "alerta 3", "alerta 4"]


def test_queue_surface_detaches_when_not_drained():
    assert QueueSurface().is_attached() is True
    stale = QueueSurface(stale_after=0)
    assert stale.is_attached() is False


def test_scheduler_stops_itself_when_notifier_detached():
    surface = QueueSurface(stale_after=0)
    scheduler = EventScheduler(surface, QueuedTone(surface), interval=60)
    scheduler.start()
    try:
        assert scheduler.running
        scheduler._poll()
        assert not scheduler.running
        assert scheduler._scheduler.jobs == []
        scheduler._thread.join(timeout=5)
        assert not scheduler._thread.is_alive()

        scheduler.start()
        assert scheduler.running
    finally:
        scheduler.stop()


def test_synth_tone_is_one_second_wav():
    with wave.open(io.BytesIO(synth_tone(urgent=True)), "rb") as w:
        assert w.getnchannels() == 1
        assert w.getnframes() == w.getframerate()
