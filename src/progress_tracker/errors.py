"""Exceptions raised by the subject and preference stores."""


class ValidationError(ValueError):
    """User input rejected before any state change."""


class StoreNotLoadedError(RuntimeError):
    """A store operation was called before load()."""


class InvalidPreferenceError(ValueError):
    """Theme preference outside system/light/dark."""
