"""Theme preference store and colour palettes."""
import logging
import os
from enum import StrEnum
from typing import Callable

from progress_tracker.errors import InvalidPreferenceError
from progress_tracker.models import Status
from progress_tracker.storage import THEME_KEY, Storage

logger = logging.getLogger(__name__)

APPEARANCE_ENV = "PROGRESS_TRACKER_APPEARANCE"

PRIMARY = "#6C63FF"

STATUS_COLORS = {
    Status.NOT_GIVEN: {"light": "#9E9E9E", "dark": "#616161"},
    Status.INCOMPLETE: {"light": "#FF9800", "dark": "#FFB74D"},
    Status.COMPLETE: {"light": "#2196F3", "dark": "#4DD0E1"},
    Status.CHECKED: {"light": "#4CAF50", "dark": "#81C784"},
}

COLORS = {
    "light": {
        "text": "#1A1A2E",
        "text_secondary": "#6B7280",
        "text_tertiary": "#9CA3AF",
        "border": "#E5E7EB",
        "danger": "#EF4444",
    },
    "dark": {
        "text": "#F1F1F6",
        "text_secondary": "#9CA3AF",
        "text_tertiary": "#6B7280",
        "border": "#2D2D44",
        "danger": "#F87171",
    },
}


class ThemePreference(StrEnum):
    SYSTEM = "system"
    LIGHT = "light"
    DARK = "dark"


def detect_system_appearance() -> str:
    """Return "dark" or "light" for the host terminal.

    PROGRESS_TRACKER_APPEARANCE wins if set; otherwise the COLORFGBG convention
    ("fg;bg", bg 0-6 or 8 is a dark background) is used; light by default.
    """
    forced = os.environ.get(APPEARANCE_ENV, "").strip().lower()
    if forced in ("dark", "light"):
        return forced
    colorfgbg = os.environ.get("COLORFGBG", "")
    if colorfgbg:
        bg = colorfgbg.split(";")[-1]
        if bg.isdigit() and (int(bg) <= 6 or int(bg) == 8):
            return "dark"
    return "light"


class PreferenceStore:
    def __init__(self, storage: Storage, appearance: Callable[[], str] = detect_system_appearance):
        self.storage = storage
        self.appearance = appearance
        self.preference = ThemePreference.SYSTEM

    def load(self) -> ThemePreference:
        raw = self.storage.get(THEME_KEY)
        try:
            self.preference = ThemePreference(raw) if raw else ThemePreference.SYSTEM
        except ValueError:
            logger.warning("Unknown theme preference %r, using system", raw)
            self.preference = ThemePreference.SYSTEM
        return self.preference

    def set_preference(self, pref) -> None:
        try:
            pref = ThemePreference(pref)
        except ValueError:
            raise InvalidPreferenceError(
                f"Theme must be one of {', '.join(p.value for p in ThemePreference)}, got {pref!r}"
            ) from None
        self.preference = pref
        self.storage.set(THEME_KEY, pref.value)

    def clear(self) -> None:
        self.preference = ThemePreference.SYSTEM
        self.storage.remove([THEME_KEY])

    @property
    def effective_is_dark(self) -> bool:
        if self.preference == ThemePreference.SYSTEM:
            return self.appearance() == "dark"
        return self.preference == ThemePreference.DARK

    @property
    def palette(self) -> dict:
        key = "dark" if self.effective_is_dark else "light"
        return {
            **COLORS[key],
            "primary": PRIMARY,
            "status": {status: colors[key] for status, colors in STATUS_COLORS.items()},
        }
