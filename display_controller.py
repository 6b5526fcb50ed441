"""State behind the prayer display: fetch outcomes, current period and status text."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from prayer_clock import PRAYER_ORDER, FormatError, compute_current_period, is_fasting, parse_time
from scheduler import CancelHandle, RepeatingScheduler
from timings_client import DEFAULT_CITY, DEFAULT_COUNTRY, Timings, TimingsClient

LOGGER = logging.getLogger(__name__)

LOADING_STATUS = "Loading..."
NO_PERIOD = "—"
DEFAULT_MESSAGE = "Awaiting the next prayer."
DEFAULT_COLOR = "#000000"
UNEXPECTED = "unexpected"

PERIOD_COLORS = {
    "Fajr": "#5f5cfa",
    "Dhuhr": "#ffbb00",
    "Asr": "#eb4640",
    "Maghrib": "#6bff4d",
}

PERIOD_MESSAGES = {
    "Fajr": "May your prayer be accepted.",
    "Dhuhr": "There is no god but Allah. Muhammad is the messenger of God.",
    "Asr": (
        "O Allah, send blessings upon Muhammad, the unlettered Prophet, and upon his family, "
        "and grant them best of peace."
    ),
    "Maghrib": "Recite Astaghfirullah  .",
    "Isha": "To Allah, we belong, and to him, we will return.",
}

TaskRunner = Callable[[Callable[[], Any], Callable[[Any], None], Callable[[Exception], None]], None]
Listener = Callable[["DisplayState"], None]


def run_inline(func: Callable[[], Any], on_success: Callable[[Any], None], on_error: Callable[[Exception], None]) -> None:
    """Task runner that executes *func* immediately on the calling thread."""
    try:
        result = func()
    except Exception as exc:
        on_error(exc)
    else:
        on_success(result)


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one backend call."""

    ok: bool
    value: Any = None
    error_kind: Optional[str] = None
    error_message: Optional[str] = None

    @classmethod
    def success(cls, value: Any) -> "FetchResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, kind: str, message: str) -> "FetchResult":
        return cls(ok=False, error_kind=kind, error_message=message)

    @classmethod
    def from_exception(cls, exc: Exception) -> "FetchResult":
        return cls.failure(getattr(exc, "kind", UNEXPECTED), str(exc))


@dataclass(frozen=True)
class DisplayState:
    current_time: datetime
    tick_count: int
    current_prayer: str
    is_fasting: bool
    loading: bool
    day_label_loading: bool
    day_label: Optional[str]
    timings_result: Optional[FetchResult]
    day_label_result: Optional[FetchResult]
    parse_error: Optional[str]
    status: str
    background_color: str


class PrayerDisplayController:
    """Owns the clock tick and derives what the prayer display should show.

    Fetches go through *task_runner*, which must deliver ``on_success`` and
    ``on_error`` on the same thread that drives the tick. Before timings are
    parsed every tick is a no-op apart from refreshing the clock.
    """

    def __init__(
        self,
        client: TimingsClient,
        scheduler: RepeatingScheduler,
        task_runner: TaskRunner = run_inline,
        city: str = DEFAULT_CITY,
        country: str = DEFAULT_COUNTRY,
        tick_interval_ms: int = 1000,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._client = client
        self._scheduler = scheduler
        self._task_runner = task_runner
        self._clock = clock
        self.city = city
        self.country = country
        self.tick_interval_ms = tick_interval_ms

        self.current_time = clock()
        self.tick_count = 0
        self.timings: Optional[Timings] = None
        self.period_starts: Dict[str, datetime] = {}
        self.day_label: Optional[str] = None
        self.loading = True
        self.day_label_loading = True
        self.current_prayer = NO_PERIOD
        self.is_fasting = False
        self.timings_result: Optional[FetchResult] = None
        self.day_label_result: Optional[FetchResult] = None
        self.parse_error: Optional[str] = None

        self._fajr_tomorrow: Optional[datetime] = None
        self._timer: Optional[CancelHandle] = None
        self._listeners: List[Listener] = []

    # ------------------------------------------------------------------
    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.cancelled

    def initialize(self) -> None:
        self.refresh()
        if not self.running:
            self._timer = self._scheduler.schedule_repeating(self.tick_interval_ms, self.on_tick)
            LOGGER.info("Display clock started (every %d ms)", self.tick_interval_ms)

    def refresh(self) -> None:
        """Request today's timings and day label; neither waits for the other."""
        LOGGER.info("Fetching prayer data for %s, %s", self.city, self.country)
        self.loading = True
        self.day_label_loading = True
        self._task_runner(
            lambda: self._client.fetch_timings(self.city, self.country),
            self.on_timings_loaded,
            self._on_timings_error,
        )
        self._task_runner(
            lambda: self._client.fetch_day_label(self.city, self.country),
            self.on_day_label_loaded,
            self._on_day_label_error,
        )

    def teardown(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
            LOGGER.info("Display clock stopped")

    # -- fetch completions -----------------------------------------------
    def on_timings_loaded(self, timings: Timings) -> None:
        LOGGER.info("Prayer timings received: %s", timings.as_dict())
        self.timings = timings
        self.timings_result = FetchResult.success(timings)
        try:
            self._update_prayer_times_from_timings(timings)
        except FormatError as exc:
            LOGGER.error("Error parsing prayer times %s", timings.as_dict(), exc_info=exc)
            self.parse_error = str(exc)
        finally:
            self.loading = False
        self._update_prayer_state()
        self._notify()

    def _on_timings_error(self, error: Exception) -> None:
        LOGGER.error("Prayer timings request failed", exc_info=error)
        self.timings_result = FetchResult.from_exception(error)
        self.loading = False
        self._notify()

    def on_day_label_loaded(self, label: str) -> None:
        LOGGER.info("Day label received: %r", label)
        self.day_label = label
        self.day_label_result = FetchResult.success(label)
        self.day_label_loading = False
        self._notify()

    def _on_day_label_error(self, error: Exception) -> None:
        LOGGER.error("Day label request failed", exc_info=error)
        self.day_label_result = FetchResult.from_exception(error)
        self.day_label_loading = False
        self._notify()

    # -- clock -------------------------------------------------------------
    def on_tick(self) -> None:
        self.current_time = self._clock()
        self.tick_count += 1
        LOGGER.debug("tick %d %s", self.tick_count, self.current_time.isoformat())
        self._update_prayer_state()
        self._notify()

    def _update_prayer_times_from_timings(self, timings: Timings) -> None:
        # All five parse or none of the stored starts change.
        reference = self._clock().date()
        parsed = {name: parse_time(timings.get(name), today=reference) for name in PRAYER_ORDER}
        fajr_tomorrow = parse_time(timings.fajr, 1, today=reference)
        self.period_starts = parsed
        self._fajr_tomorrow = fajr_tomorrow
        self.parse_error = None

    def _update_prayer_state(self) -> None:
        if self._fajr_tomorrow is None or len(self.period_starts) < len(PRAYER_ORDER):
            return

        now = self.current_time
        self.current_prayer = compute_current_period(now, self.period_starts, self._fajr_tomorrow)
        self.is_fasting = is_fasting(now, self.period_starts["Fajr"], self.period_starts["Maghrib"])

    # -- presentation ------------------------------------------------------
    def get_background_color(self) -> str:
        return PERIOD_COLORS.get(self.current_prayer, DEFAULT_COLOR)

    def get_status(self) -> str:
        if self.loading or self.day_label_loading:
            return LOADING_STATUS
        message = PERIOD_MESSAGES.get(self.current_prayer, DEFAULT_MESSAGE)
        return f"{message} — current prayer: {self.current_prayer}"

    def display_state(self) -> DisplayState:
        return DisplayState(
            current_time=self.current_time,
            tick_count=self.tick_count,
            current_prayer=self.current_prayer,
            is_fasting=self.is_fasting,
            loading=self.loading,
            day_label_loading=self.day_label_loading,
            day_label=self.day_label,
            timings_result=self.timings_result,
            day_label_result=self.day_label_result,
            parse_error=self.parse_error,
            status=self.get_status(),
            background_color=self.get_background_color(),
        )

    def _notify(self) -> None:
        if not self._listeners:
            return
        state = self.display_state()
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                LOGGER.exception("Display listener %r failed", listener)
