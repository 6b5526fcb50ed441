"""Main window showing the clock, current prayer status and day label."""
from __future__ import annotations

import textwrap
from typing import Optional

try:  # Prefer PyQt5, fall back to Qt for Python
    from PyQt5 import QtCore, QtGui, QtWidgets  # type: ignore
except Exception:  # pragma: no cover - fallback path
    try:
        from PySide2 import QtCore, QtGui, QtWidgets  # type: ignore
    except Exception:
        from PySide6 import QtCore, QtGui, QtWidgets  # type: ignore

from display_controller import DEFAULT_COLOR, DisplayState, FetchResult

LIGHT_TEXT = "#f8fafc"
DARK_TEXT = "#0f172a"
DAY_LABEL_PLACEHOLDER = "Loading day..."
DAY_LABEL_UNAVAILABLE = "Day unavailable"
FASTING_TEXT = "Fasting"
NOT_FASTING_TEXT = "Not fasting"


def text_color_for(background: str) -> str:
    """Pick a readable foreground for a ``#rrggbb`` background."""
    color = QtGui.QColor(background)
    if not color.isValid():
        return LIGHT_TEXT
    luminance = 0.299 * color.red() + 0.587 * color.green() + 0.114 * color.blue()
    return DARK_TEXT if luminance > 150 else LIGHT_TEXT


class PrayerDisplayWindow(QtWidgets.QWidget):
    """Full-window colour panel with the clock, status line and day label."""

    def __init__(self, parent: Optional[QtWidgets.QWidget] = None) -> None:
        super().__init__(parent)
        self._background = ""

        self.setObjectName("DisplayWindow")
        self.setWindowTitle("Prayer Times")
        self.setAttribute(QtCore.Qt.WA_StyledBackground, True)
        self.resize(720, 420)

        layout = QtWidgets.QVBoxLayout(self)
        layout.setContentsMargins(32, 32, 32, 32)
        layout.setSpacing(16)

        self.day_label = QtWidgets.QLabel(DAY_LABEL_PLACEHOLDER)
        self.day_label.setObjectName("dayLabel")
        self.day_label.setAlignment(QtCore.Qt.AlignCenter)

        self.clock_label = QtWidgets.QLabel("--:--:--")
        self.clock_label.setObjectName("clockLabel")
        self.clock_label.setAlignment(QtCore.Qt.AlignCenter)

        self.status_label = QtWidgets.QLabel()
        self.status_label.setObjectName("statusLabel")
        self.status_label.setAlignment(QtCore.Qt.AlignCenter)
        self.status_label.setWordWrap(True)

        self.fasting_label = QtWidgets.QLabel()
        self.fasting_label.setObjectName("fastingLabel")
        self.fasting_label.setAlignment(QtCore.Qt.AlignCenter)

        self.error_label = QtWidgets.QLabel()
        self.error_label.setObjectName("errorLabel")
        self.error_label.setAlignment(QtCore.Qt.AlignCenter)
        self.error_label.setWordWrap(True)
        self.error_label.hide()

        layout.addStretch(1)
        layout.addWidget(self.day_label)
        layout.addWidget(self.clock_label)
        layout.addWidget(self.status_label)
        layout.addWidget(self.fasting_label)
        layout.addWidget(self.error_label)
        layout.addStretch(1)

        self._apply_background(DEFAULT_COLOR)

    @property
    def background_color(self) -> str:
        return self._background

    def set_status(self, text: str) -> None:
        self.status_label.setText(text)

    def render_state(self, state: DisplayState) -> None:
        self.clock_label.setText(state.current_time.strftime("%H:%M:%S"))
        self.set_status(state.status)

        if state.day_label_loading:
            self.day_label.setText(DAY_LABEL_PLACEHOLDER)
        elif state.day_label is not None:
            self.day_label.setText(state.day_label)
        else:
            self.day_label.setText(DAY_LABEL_UNAVAILABLE)

        if state.loading:
            self.fasting_label.clear()
        else:
            self.fasting_label.setText(FASTING_TEXT if state.is_fasting else NOT_FASTING_TEXT)

        errors = [
            _describe_failure("Prayer times", state.timings_result),
            _describe_failure("Day label", state.day_label_result),
        ]
        if state.parse_error:
            errors.append(f"Prayer times could not be read: {state.parse_error}")
        errors = [error for error in errors if error]
        self.error_label.setText("\n".join(errors))
        self.error_label.setVisible(bool(errors))

        self._apply_background(state.background_color)

    def _apply_background(self, background: str) -> None:
        if background == self._background:
            return
        self._background = background
        self.setStyleSheet(
            textwrap.dedent(
                f"""
                #DisplayWindow {{
                    background-color: {background};
                }}

                QLabel {{
                    color: {text_color_for(background)};
                    font-family: 'Ubuntu', 'Segoe UI', sans-serif;
                    font-size: 16px;
                }}

                QLabel#clockLabel {{
                    font-size: 56px;
                    font-weight: 700;
                }}

                QLabel#errorLabel {{
                    font-size: 12px;
                }}
                """
            )
        )


def _describe_failure(source: str, result: Optional[FetchResult]) -> Optional[str]:
    if result is None or result.ok:
        return None
    return f"{source} unavailable ({result.error_kind}): {result.error_message}"
