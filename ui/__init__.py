"""UI components for the prayer display application."""

from .window import PrayerDisplayWindow

__all__ = ["PrayerDisplayWindow"]
