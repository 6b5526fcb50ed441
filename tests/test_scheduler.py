import time
from datetime import datetime

try:
    from PyQt5 import QtCore
except Exception:  # pragma: no cover - fallback path
    try:
        from PySide2 import QtCore
    except Exception:  # pragma: no cover - fallback path
        from PySide6 import QtCore

import pytest
import pytz

import scheduler as scheduler_module
from scheduler import CancelHandle, QtTimerScheduler, RefreshScheduler, local_timezone_name


def _spin(milliseconds: int) -> None:
    loop = QtCore.QEventLoop()
    QtCore.QTimer.singleShot(milliseconds, loop.quit)
    loop.exec_()


def test_cancel_handle_runs_cancel_once():
    calls = []
    handle = CancelHandle(lambda: calls.append("cancel"))

    handle.cancel()
    handle.cancel()

    assert calls == ["cancel"]
    assert handle.cancelled


def test_qt_timer_scheduler_repeats_until_cancelled(qt_app):
    ticks = []
    scheduler = QtTimerScheduler()

    handle = scheduler.schedule_repeating(10, lambda: ticks.append(1))
    _spin(120)
    assert len(ticks) >= 2

    handle.cancel()
    handle.cancel()
    seen = len(ticks)
    _spin(60)
    assert len(ticks) == seen


def test_next_refresh_time_rolls_to_tomorrow():
    scheduler = RefreshScheduler("America/Toronto", hour=0, minute=5)

    next_run = scheduler.next_refresh_time(datetime(2026, 3, 1, 10, 0))

    tz = pytz.timezone("America/Toronto")
    assert next_run == tz.localize(datetime(2026, 3, 2, 0, 5))
    assert scheduler.timezone == "America/Toronto"


def test_next_refresh_time_same_day_when_still_ahead():
    scheduler = RefreshScheduler("UTC", hour=0, minute=5)

    next_run = scheduler.next_refresh_time(datetime(2026, 3, 1, 0, 1))

    assert next_run == pytz.utc.localize(datetime(2026, 3, 1, 0, 5))


def test_next_refresh_time_converts_aware_reference():
    scheduler = RefreshScheduler("Asia/Tokyo", hour=0, minute=5)
    reference = pytz.utc.localize(datetime(2026, 3, 1, 16, 0))  # 01:00 on 2 March in Tokyo

    next_run = scheduler.next_refresh_time(reference)

    assert next_run == pytz.timezone("Asia/Tokyo").localize(datetime(2026, 3, 3, 0, 5))


def test_schedule_refresh_replaces_previous_job():
    scheduler = RefreshScheduler("UTC")

    scheduler.schedule_refresh(lambda: None, reference=datetime(2030, 1, 1, 12, 0))
    first_job = scheduler.refresh_job_id
    next_run = scheduler.schedule_refresh(lambda: None, reference=datetime(2030, 1, 2, 12, 0))

    jobs = scheduler._scheduler.get_jobs()
    assert len(jobs) == 1
    assert jobs[0].id == scheduler.refresh_job_id != first_job
    assert next_run == pytz.utc.localize(datetime(2030, 1, 3, 0, 5))


def test_shutdown_without_start_is_a_no_op():
    scheduler = RefreshScheduler("UTC")
    scheduler.shutdown()


@pytest.fixture
def toronto_local_clock(monkeypatch):
    if not hasattr(time, "tzset"):
        pytest.skip("process timezone can only be switched on POSIX")
    monkeypatch.setenv("TZ", "America/Toronto")
    monkeypatch.setattr(scheduler_module, "get_localzone_name", lambda: "America/Toronto")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


def test_refresh_defaults_to_the_local_zone(toronto_local_clock):
    scheduler = RefreshScheduler()

    assert scheduler.timezone == "America/Toronto"


def test_refresh_lands_at_local_five_past_midnight(toronto_local_clock):
    scheduler = RefreshScheduler(hour=0, minute=5)

    next_run = scheduler.next_refresh_time(datetime(2026, 3, 1, 22, 0))
    upcoming = scheduler.next_refresh_time()

    assert datetime.fromtimestamp(next_run.timestamp()) == datetime(2026, 3, 2, 0, 5)
    local_upcoming = datetime.fromtimestamp(upcoming.timestamp())
    assert (local_upcoming.hour, local_upcoming.minute) == (0, 5)
    assert local_upcoming > datetime.now()


def test_unknown_local_zone_falls_back_to_utc(monkeypatch):
    monkeypatch.setattr(scheduler_module, "get_localzone_name", lambda: "Mars/Olympus_Mons")

    assert local_timezone_name() == "UTC"
