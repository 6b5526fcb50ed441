import os
from datetime import datetime
from typing import Callable, List

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

try:
    from PyQt5 import QtWidgets
except Exception:  # pragma: no cover - fallback path
    try:
        from PySide2 import QtWidgets
    except Exception:  # pragma: no cover - fallback path
        from PySide6 import QtWidgets

import pytest

from scheduler import CancelHandle, RepeatingScheduler


class FakeScheduler(RepeatingScheduler):
    """Fires repeating callbacks only when told to advance."""

    def __init__(self) -> None:
        self.jobs: List[dict] = []

    def schedule_repeating(self, interval_ms: int, callback: Callable[[], None]) -> CancelHandle:
        job = {"interval_ms": interval_ms, "callback": callback, "active": True}
        self.jobs.append(job)

        def _cancel() -> None:
            job["active"] = False

        return CancelHandle(_cancel)

    @property
    def active_jobs(self) -> List[dict]:
        return [job for job in self.jobs if job["active"]]

    def advance(self, elapsed_ms: int) -> None:
        for job in list(self.jobs):
            for _ in range(elapsed_ms // job["interval_ms"]):
                if not job["active"]:
                    break
                job["callback"]()


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def fake_scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 1, 13, 0))


@pytest.fixture(scope="session")
def qt_app():
    app = QtWidgets.QApplication.instance()
    if app is None:
        app = QtWidgets.QApplication([])
    yield app
