"""Simple in-memory cache for generated study plans."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from threading import RLock
from typing import Dict, Optional

from ..study_plan import StudyPlan


def _normalize_student_id(student_id: str) -> str:
    normalized = student_id.strip()
    if not normalized:
        raise ValueError("Student id cannot be empty when caching plans.")
    return normalized


@dataclass
class _PlanEntry:
    plan: StudyPlan
    cached_at: datetime


class PlanCache:
    """Process-local cache for the latest plan of each student."""

    def __init__(self) -> None:
        self._entries: Dict[str, _PlanEntry] = {}
        self._lock = RLock()

    def get(self, student_id: str) -> Optional[StudyPlan]:
        key = _normalize_student_id(student_id)
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        return entry.plan.model_copy(deep=True)

    def set(self, student_id: str, plan: StudyPlan) -> None:
        key = _normalize_student_id(student_id)
        entry = _PlanEntry(plan=plan.model_copy(deep=True), cached_at=datetime.now(timezone.utc))
        with self._lock:
            self._entries[key] = entry

    def invalidate(self, student_id: str) -> None:
        key = _normalize_student_id(student_id)
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


plan_cache = PlanCache()

__all__ = ["PlanCache", "plan_cache"]
