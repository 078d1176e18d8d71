"""Error kinds surfaced by the planner stores and plan mutations."""

from __future__ import annotations


class PlannerError(Exception):
    """Base class for planner failures."""


class ProgressNotFoundError(PlannerError, LookupError):
    def __init__(self, student_id: str) -> None:
        super().__init__(f"No progress history recorded for '{student_id}'.")
        self.student_id = student_id


class PlanNotFoundError(PlannerError, LookupError):
    def __init__(self, student_id: str) -> None:
        super().__init__(f"No study plan stored for '{student_id}'.")
        self.student_id = student_id


class SlotOutOfRangeError(PlannerError, IndexError):
    """Raised when a day or slot index does not address an existing slot."""

    def __init__(self, day_index: int, slot_index: int, detail: str) -> None:
        super().__init__(detail)
        self.day_index = day_index
        self.slot_index = slot_index


class StoreError(PlannerError, RuntimeError):
    """I/O failure while talking to the progress or plan store."""


__all__ = [
    "PlanNotFoundError",
    "PlannerError",
    "ProgressNotFoundError",
    "SlotOutOfRangeError",
    "StoreError",
]
