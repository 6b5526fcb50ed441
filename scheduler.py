"""Timers driving the display: the per-second tick and the daily refresh."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, time as time_module, timedelta
from typing import Callable, Optional

import pytz
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger
from tzlocal import get_localzone_name

try:  # Prefer PyQt5, fall back to Qt for Python
    from PyQt5 import QtCore  # type: ignore
except Exception:  # pragma: no cover - fallback path
    try:
        from PySide2 import QtCore  # type: ignore
    except Exception:
        from PySide6 import QtCore  # type: ignore

LOGGER = logging.getLogger(__name__)


class CancelHandle:
    """Stops a scheduled callback. Cancelling more than once is a no-op."""

    def __init__(self, cancel: Callable[[], None]) -> None:
        self._cancel: Optional[Callable[[], None]] = cancel

    @property
    def cancelled(self) -> bool:
        return self._cancel is None

    def cancel(self) -> None:
        cancel, self._cancel = self._cancel, None
        if cancel is not None:
            cancel()


class RepeatingScheduler(ABC):
    @abstractmethod
    def schedule_repeating(self, interval_ms: int, callback: Callable[[], None]) -> CancelHandle:
        """Invoke *callback* every *interval_ms* until the handle is cancelled."""


class QtTimerScheduler(RepeatingScheduler):
    """Repeating callbacks on the Qt event loop of the calling thread."""

    def __init__(self, parent: Optional[QtCore.QObject] = None) -> None:
        self._parent = parent

    def schedule_repeating(self, interval_ms: int, callback: Callable[[], None]) -> CancelHandle:
        timer = QtCore.QTimer(self._parent)
        timer.timeout.connect(callback)  # type: ignore
        timer.start(interval_ms)
        LOGGER.debug("Started repeating timer every %d ms", interval_ms)

        def _stop() -> None:
            timer.stop()
            timer.deleteLater()
            LOGGER.debug("Stopped repeating timer")

        return CancelHandle(_stop)


def local_timezone_name() -> str:
    """Name of the zone behind the process's naive wall clock, or ``UTC``."""
    try:
        timezone_name = get_localzone_name()
        LOGGER.debug("Resolved system timezone: %s", timezone_name)
    except Exception:  # pragma: no cover - platform specific
        LOGGER.warning("Falling back to UTC for system timezone resolution", exc_info=True)
        return "UTC"
    if not timezone_name:
        return "UTC"
    try:
        pytz.timezone(timezone_name)
    except pytz.UnknownTimeZoneError:
        LOGGER.warning("Unknown timezone '%s'; falling back to UTC", timezone_name)
        return "UTC"
    return timezone_name


class RefreshScheduler:
    """Wrap APScheduler to re-fetch the day's data once per day.

    The refresh runs in the local zone by default, the same wall clock the
    display controller classifies periods against.
    """

    def __init__(self, timezone: Optional[str] = None, hour: int = 0, minute: int = 5) -> None:
        timezone = timezone or local_timezone_name()
        self._scheduler = BackgroundScheduler(timezone=timezone)
        self._tzinfo = pytz.timezone(timezone)
        self._refresh_time = time_module(hour=hour, minute=minute)
        self._refresh_job_id: Optional[str] = None

    def start(self) -> None:
        if not self._scheduler.running:
            LOGGER.info("Starting refresh scheduler")
            self._scheduler.start()

    def shutdown(self) -> None:
        if self._scheduler.running:
            LOGGER.info("Stopping refresh scheduler")
            self._scheduler.shutdown(wait=False)

    @property
    def timezone(self) -> str:
        return str(self._tzinfo.zone)

    @property
    def refresh_job_id(self) -> Optional[str]:
        return self._refresh_job_id

    def next_refresh_time(self, reference: Optional[datetime] = None) -> datetime:
        """Next occurrence of the configured refresh time strictly after *reference*."""
        if reference is None:
            reference = datetime.now(self._tzinfo)
        elif reference.tzinfo is None:
            reference = self._tzinfo.localize(reference)
        else:
            reference = reference.astimezone(self._tzinfo)

        candidate = self._tzinfo.localize(datetime.combine(reference.date(), self._refresh_time))
        if candidate <= reference:
            next_day = reference.date() + timedelta(days=1)
            candidate = self._tzinfo.localize(datetime.combine(next_day, self._refresh_time))
        return candidate

    def schedule_refresh(self, refresh_callback: Callable[[], None], reference: Optional[datetime] = None) -> datetime:
        """Schedule a single refresh job, replacing any existing one."""
        if self._refresh_job_id:
            LOGGER.debug("Removing existing refresh job %s", self._refresh_job_id)
            with suppress_not_found():
                self._scheduler.remove_job(self._refresh_job_id)
            self._refresh_job_id = None

        next_run = self.next_refresh_time(reference)
        job = self._scheduler.add_job(refresh_callback, trigger=DateTrigger(run_date=next_run))
        LOGGER.debug("Scheduled refresh job %s at %s", job.id, next_run)
        self._refresh_job_id = job.id
        return next_run


class suppress_not_found:
    """Context manager that suppresses APScheduler job lookup errors."""

    def __enter__(self) -> None:  # pragma: no cover - trivial
        return None

    def __exit__(self, exc_type, exc, tb) -> bool:  # pragma: no cover - trivial
        from apscheduler.jobstores.base import JobLookupError

        if exc_type is None:
            return False
        return isinstance(exc, JobLookupError)
