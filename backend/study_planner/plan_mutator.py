"""Idempotent updates applied to an already generated plan."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from .errors import SlotOutOfRangeError
from .progress import ensure_utc
from .study_plan import StudyPlan, recompute_total_expected_xp


def set_slot_completion(
    plan: StudyPlan,
    day_index: int,
    slot_index: int,
    completed: bool,
    *,
    now: Optional[datetime] = None,
) -> StudyPlan:
    """Return a copy of ``plan`` with one slot's completion flag set.

    The input plan is never modified; on invalid indices it is left as-is
    and ``SlotOutOfRangeError`` is raised.
    """
    if not 0 <= day_index < len(plan.days):
        raise SlotOutOfRangeError(
            day_index,
            slot_index,
            f"Day index {day_index} is outside the plan week (0-{len(plan.days) - 1}).",
        )
    slots = plan.days[day_index].slots
    if not 0 <= slot_index < len(slots):
        raise SlotOutOfRangeError(
            day_index,
            slot_index,
            f"Slot index {slot_index} does not exist on day {day_index} ({len(slots)} slots scheduled).",
        )
    updated = plan.model_copy(deep=True)
    updated.days[day_index].slots[slot_index].completed = completed
    updated.last_modified_at = ensure_utc(now or datetime.now(timezone.utc))
    updated.total_expected_xp = recompute_total_expected_xp(updated)
    return updated


def refresh_derived_fields(plan: StudyPlan, *, now: Optional[datetime] = None) -> StudyPlan:
    """Copy with recomputed totals and a fresh modification time."""
    updated = plan.model_copy(deep=True)
    updated.total_expected_xp = recompute_total_expected_xp(updated)
    updated.last_modified_at = ensure_utc(now or datetime.now(timezone.utc))
    return updated


__all__ = ["refresh_derived_fields", "set_slot_completion"]
