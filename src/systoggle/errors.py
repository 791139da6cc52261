from __future__ import annotations


class SystoggleError(RuntimeError):
    pass


class QueryError(SystoggleError):
    """Listing units from the service manager failed."""


class ApplyError(SystoggleError):
    """A single unit action failed."""

    def __init__(self, unit: str, reason: str) -> None:
        super().__init__(f"{unit}: {reason}")
        self.unit = unit
        self.reason = reason


class PrivilegeCancelled(ApplyError):
    """The privilege prompt was dismissed or authorization was denied."""
