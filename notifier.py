"""
notifier.py
Event notification scheduler.

Every scan (once on start, then every Config.SCAN_INTERVAL_SECONDS):
- events not yet notified whose date is today, or exactly `lead_days` days
  ahead, get one notification + one alert sound and are marked notified;
- events happening at the current minute get a transient "now" alert,
  regardless of the notified flag.

Events are re-read from the store on every scan and the notified flag is
claimed per event id before alerting, so edits made in the UI between scans
are kept and two schedulers on one store never alert twice.
"""

from __future__ import annotations

import io
import logging
import queue
import threading
import time
import wave
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Iterable

import numpy as np
import schedule

import db
from config import Config
from errors import NotificationUnavailable
from models import Event, Priority
from utils import format_br_date, parse_iso_or_none

logger = logging.getLogger(__name__)


# ---------- Scan rules ----------

def days_until(event: Event, today: date) -> int | None:
    """Whole days from today to the event date (time of day ignored). None if the date is invalid."""
    event_date = parse_iso_or_none(event.date)
    if event_date is None:
        return None
    return (event_date - today).days


def is_due(event: Event, today: date) -> bool:
    if event.notified:
        return False
    days = days_until(event, today)
    return days is not None and (days == 0 or days == event.lead_days)


def due_events(events: Iterable[Event], today: date) -> list[Event]:
    return [e for e in events if is_due(e, today)]


def happening_now(events: Iterable[Event], now: datetime) -> list[Event]:
    today = now.date().isoformat()
    minute = now.strftime("%H:%M")
    return [e for e in events if e.date == today and e.time == minute]


def notification_title(event: Event, days: int) -> str:
    if days == 0:
        return f"Evento hoje: {event.title}"
    return f"Evento em {days} dias: {event.title}"


def notification_body(event: Event) -> str:
    return f"{event.description}\nData: {format_br_date(event.date)}\nHora: {event.time}"


# ---------- Notification surfaces ----------

@dataclass
class Alert:
    title: str
    body: str = ""
    tag: str = ""
    urgent: bool = False
    sound: bytes | None = None


class NotificationSurface:
    """Where notifications go. Subclasses decide how they reach the user."""

    def is_supported(self) -> bool:
        return True

    def request_permission(self) -> bool:
        return self.is_supported()

    def permission_granted(self) -> bool:
        return self.is_supported()

    def is_attached(self) -> bool:
        """False once nobody is reading this surface any more."""
        return True

    def show(self, title: str, body: str = "", tag: str = "", urgent: bool = False) -> None:
        raise NotImplementedError


class AlertSound:
    def play(self, urgent: bool = False) -> None:
        raise NotImplementedError


class QueueSurface(NotificationSurface):
    """
    Thread-safe queue of alerts. The scheduler thread pushes, the UI drains
    and displays on its own rerun.

    The queue is bounded (oldest alerts are dropped first), and the surface
    counts as detached when nothing has drained it for `stale_after` seconds,
    e.g. after the browser tab was closed.
    """

    def __init__(self, granted: bool = True, maxsize: int = 50, stale_after: float = 300.0):
        self._queue: queue.Queue[Alert] = queue.Queue(maxsize=maxsize)
        self._granted = granted
        self.stale_after = stale_after
        self._last_drained = time.monotonic()

    def request_permission(self) -> bool:
        self._granted = True
        return True

    def revoke_permission(self) -> None:
        self._granted = False

    def permission_granted(self) -> bool:
        return self._granted

    def show(self, title: str, body: str = "", tag: str = "", urgent: bool = False) -> None:
        if not self._granted:
            raise NotificationUnavailable("notification permission not granted")
        self.push(Alert(title=title, body=body, tag=tag, urgent=urgent))

    def is_attached(self) -> bool:
        return time.monotonic() - self._last_drained < self.stale_after

    def push(self, alert: Alert) -> None:
        while True:
            try:
                self._queue.put_nowait(alert)
                return
            except queue.Full:
                try:
                    dropped = self._queue.get_nowait()
                except queue.Empty:
                    continue
                logger.debug("Alert queue full, dropping %r", dropped.title)

    def drain(self) -> list[Alert]:
        self._last_drained = time.monotonic()
        alerts = []
        while True:
            try:
                alerts.append(self._queue.get_nowait())
            except queue.Empty:
                return alerts


def synth_tone(urgent: bool = False, seconds: float = 1.0, rate: int = 22050) -> bytes:
    """
    WAV bytes for the alert beep: 440 Hz sine, or 880 Hz sawtooth when urgent,
    fading out exponentially from 0.1 to 0.01 gain.
    """
    t = np.linspace(0, seconds, int(rate * seconds), endpoint=False)
    freq = 880.0 if urgent else 440.0
    if urgent:
        wave_form = 2.0 * (t * freq - np.floor(0.5 + t * freq))
    else:
        wave_form = np.sin(2 * np.pi * freq * t)
    gain = 0.1 * np.power(0.1, t / seconds)
    samples = (wave_form * gain * 32767).astype(np.int16)

    buf = io.BytesIO()
    with wave.open(buf, "wb") as w:
        w.setnchannels(1)
        w.setsampwidth(2)
        w.setframerate(rate)
        w.writeframes(samples.tobytes())
    return buf.getvalue()


class QueuedTone(AlertSound):
    """Queues a synthesized tone on a QueueSurface for the UI to play."""

    def __init__(self, surface: QueueSurface):
        self.surface = surface
        self._tones = {False: synth_tone(False), True: synth_tone(True)}

    def play(self, urgent: bool = False) -> None:
        self.surface.push(Alert(title="", sound=self._tones[urgent], urgent=urgent))


# ---------- Scheduler ----------

@dataclass
class ScanResult:
    fired: list[Event] = field(default_factory=list)
    now: list[Event] = field(default_factory=list)


class EventScheduler:
    """
    Periodic event scan with an explicit start/stop lifecycle.
    Owned by the agenda page: started when it is shown, stopped when the user
    leaves, and stopped by itself once its notifier is detached.

    Several schedulers may scan the same store (one per browser session).
    `claim` flips the stored `notified` flag atomically and only the scan
    whose claim succeeds raises the alert.
    """

    def __init__(
        self,
        notifier: NotificationSurface,
        sound: AlertSound,
        load_events: Callable[[], list[Event]] = db.get_events,
        claim: Callable[[str], bool] = db.claim_notification,
        interval: int = Config.SCAN_INTERVAL_SECONDS,
    ):
        self.notifier = notifier
        self.sound = sound
        self.load_events = load_events
        self.claim = claim
        self.interval = interval
        self.unavailable = False

        self._scheduler = schedule.Scheduler()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop.is_set()

    def alerts_enabled(self) -> bool:
        enabled = self.notifier.is_supported() and self.notifier.permission_granted()
        if not enabled and not self.unavailable:
            logger.info("Notifications unavailable; event alerts are disabled")
        self.unavailable = not enabled
        return enabled

    def _notify(self, title: str, body: str, tag: str, urgent: bool) -> None:
        try:
            self.notifier.show(title, body, tag=tag, urgent=urgent)
            self.sound.play(urgent)
        except NotificationUnavailable:
            self.unavailable = True
            logger.info("Notification dropped: %s", title)

    def scan(self, now: datetime | None = None) -> ScanResult:
        now = now or datetime.now()
        today = now.date()
        result = ScanResult()

        with self._lock:
            events = self.load_events()
            enabled = self.alerts_enabled()

            for event in due_events(events, today):
                if not self.claim(event.id):
                    continue
                days = days_until(event, today)
                urgent = event.priority is Priority.HIGH
                if enabled:
                    self._notify(notification_title(event, days), notification_body(event),
                                 tag=f"evento-{event.id}", urgent=urgent)
                result.fired.append(event)
                logger.info("Event %s notified (%s day(s) ahead)", event.id, days)

            for event in happening_now(events, now):
                if enabled:
                    self._notify(f"📅 Evento Agora: {event.title}", event.description,
                                 tag=f"agora-{event.id}", urgent=event.priority is Priority.HIGH)
                result.now.append(event)

        return result

    def _tick(self) -> None:
        try:
            self.scan()
        except Exception:
            logger.exception("Event scan failed")

    def _poll(self) -> None:
        if not self.notifier.is_attached():
            # Runs on the scheduler thread, so it cannot join itself
            self._scheduler.clear()
            self._stop.set()
            logger.info("Notifier detached; event scheduler stopped")
            return
        self._tick()

    def _run(self) -> None:
        while not self._stop.wait(1):
            self._scheduler.run_pending()

    def start(self) -> None:
        """
        Scan once right away, then every `interval` seconds on a daemon thread.

        The immediate scan also raises the "happening now" alert for an event
        whose time is the current minute, not only the fire-once alerts.
        Does nothing if the scheduler is already running.
        """
        if self.running:
            return
        if self._thread is not None:
            # A detached run may still be winding down
            self._thread.join(timeout=5)
        self._tick()
        self._stop.clear()
        self._scheduler.clear()
        self._scheduler.every(self.interval).seconds.do(self._poll)
        self._thread = threading.Thread(target=self._run, name="event-scheduler", daemon=True)
        self._thread.start()
        logger.info("Event scheduler started (every %ss)", self.interval)

    def stop(self) -> None:
        self._scheduler.clear()
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None
            logger.info("Event scheduler stopped")
