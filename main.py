"""Entry point for the prayer times display application."""
from __future__ import annotations

import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Optional, Set

try:  # Prefer PyQt5, fall back to Qt for Python if available
    from PyQt5 import QtCore, QtWidgets  # type: ignore
except Exception:  # pragma: no cover - fallback only used when PyQt5 missing
    try:
        from PySide2 import QtCore, QtWidgets  # type: ignore
    except Exception:
        from PySide6 import QtCore, QtWidgets  # type: ignore

try:  # Compatibility alias for Qt signal and slot decorators
    Signal = QtCore.pyqtSignal  # type: ignore[attr-defined]
    Slot = QtCore.pyqtSlot  # type: ignore[attr-defined]
except AttributeError:  # pragma: no cover - PySide compatibility
    Signal = QtCore.Signal  # type: ignore[attr-defined]
    Slot = QtCore.Slot  # type: ignore[attr-defined]

from app_config import DEFAULT_LOG_LEVEL, AppConfig, find_config_path, load_config
from display_controller import PrayerDisplayController
from scheduler import QtTimerScheduler, RefreshScheduler
from timings_client import TimingsClient
from ui import PrayerDisplayWindow

APP_ROOT = Path(__file__).parent
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

LOGGER = logging.getLogger(__name__)


class _AsyncDispatcher(QtCore.QObject):
    """Provide main-thread delivery for background task callbacks."""

    success = Signal(object)
    error = Signal(object)

    def __init__(
        self,
        owner: "PrayerDisplay",
        on_success: Callable[[Any], None],
        on_error: Callable[[Exception], None],
    ) -> None:
        super().__init__()
        self._owner = owner
        self._on_success = on_success
        self._on_error = on_error
        self.success.connect(self._handle_success)  # type: ignore[attr-defined]
        self.error.connect(self._handle_error)  # type: ignore[attr-defined]

    @Slot(object)
    def _handle_success(self, result: Any) -> None:
        LOGGER.debug("Dispatcher invoking success handler %s", getattr(self._on_success, "__name__", self._on_success))
        try:
            self._on_success(result)
        finally:
            self._owner._async_dispatchers.discard(self)
            self.deleteLater()

    @Slot(object)
    def _handle_error(self, exc: Exception) -> None:
        LOGGER.debug("Dispatcher invoking error handler %s", getattr(self._on_error, "__name__", self._on_error))
        try:
            self._on_error(exc)
        finally:
            self._owner._async_dispatchers.discard(self)
            self.deleteLater()


class _MainThreadInvoker(QtCore.QObject):
    """Run callables posted from scheduler threads on the Qt main thread."""

    invoke = Signal(object)

    def __init__(self, parent: Optional[QtCore.QObject] = None) -> None:
        super().__init__(parent)
        self.invoke.connect(self._run)  # type: ignore[attr-defined]

    @Slot(object)
    def _run(self, func: Callable[[], None]) -> None:
        func()


class PrayerDisplay(QtCore.QObject):
    """Wires the backend client, display controller, refresh job and window together."""

    def __init__(
        self,
        config: AppConfig,
        client: Optional[TimingsClient] = None,
        parent: Optional[QtCore.QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._config = config
        self._executor = ThreadPoolExecutor(max_workers=2)
        self._async_dispatchers: Set[_AsyncDispatcher] = set()
        self._invoker = _MainThreadInvoker(self)
        LOGGER.debug("Using config: %s", self._config)

        self.client = client or TimingsClient(self._config.base_url)
        self.controller = PrayerDisplayController(
            self.client,
            QtTimerScheduler(self),
            task_runner=self._run_async,
            city=self._config.city,
            country=self._config.country,
            tick_interval_ms=self._config.tick_interval_ms,
        )

        self.refresh_scheduler: Optional[RefreshScheduler] = None
        if self._config.refresh_enabled:
            self.refresh_scheduler = RefreshScheduler(
                hour=self._config.refresh_hour,
                minute=self._config.refresh_minute,
            )

        self.window = PrayerDisplayWindow()
        self.controller.add_listener(self.window.render_state)
        self.window.render_state(self.controller.display_state())

    def start(self) -> None:
        self.window.show()
        self.controller.initialize()
        if self.refresh_scheduler is not None:
            self.refresh_scheduler.start()
            self._schedule_next_refresh()

    # ------------------------------------------------------------------
    def _schedule_next_refresh(self) -> None:
        assert self.refresh_scheduler is not None
        next_run = self.refresh_scheduler.schedule_refresh(
            lambda: self._invoker.invoke.emit(self._on_daily_refresh)  # type: ignore[attr-defined]
        )
        LOGGER.info("Next prayer data refresh at %s", next_run)

    def _on_daily_refresh(self) -> None:
        LOGGER.info("Refreshing prayer data for the new day")
        self.controller.refresh()
        if self.refresh_scheduler is not None:
            self._schedule_next_refresh()

    def _run_async(self, func, on_success, on_error) -> None:
        LOGGER.debug("Submitting background task %s", getattr(func, "__name__", func))
        dispatcher = _AsyncDispatcher(self, on_success, on_error)
        self._async_dispatchers.add(dispatcher)
        future = self._executor.submit(func)

        def _done(future_result) -> None:
            try:
                result = future_result.result()
                LOGGER.debug("Background task %s completed successfully", getattr(func, "__name__", func))
            except Exception as exc:  # pragma: no cover - UI glue
                LOGGER.debug("Background task %s raised %r", getattr(func, "__name__", func), exc)
                dispatcher.error.emit(exc)
            else:
                dispatcher.success.emit(result)

        future.add_done_callback(_done)

    def shutdown(self) -> None:
        self.controller.teardown()
        if self.refresh_scheduler:
            self.refresh_scheduler.shutdown()
        self._executor.shutdown(wait=False)
        self.window.close()


class PrayerDisplayApp(QtWidgets.QApplication):
    """Qt application hosting a single :class:`PrayerDisplay`."""

    def __init__(self, argv: list[str], config: Optional[AppConfig] = None) -> None:
        super().__init__(argv)
        self.setApplicationName("Prayer Times")

        self.display = PrayerDisplay(config or load_config(default_config_path()), parent=self)
        self.aboutToQuit.connect(self.display.shutdown)  # type: ignore
        self.display.start()


def default_config_path() -> Path:
    """``config.json`` from the working directory, else the one beside this module."""
    return find_config_path([Path.cwd(), APP_ROOT])


def configure_logging(level_name: str) -> None:
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger().setLevel(level)


def main() -> int:
    configure_logging(DEFAULT_LOG_LEVEL)
    config = load_config(default_config_path())
    configure_logging(config.log_level)
    app = PrayerDisplayApp(sys.argv, config)
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
