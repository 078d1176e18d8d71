"""Plan generation and plan/progress updates wired to the stores."""

from __future__ import annotations

import logging
import threading
import time
import weakref
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional

from pydantic import BaseModel, Field

from .catalog import Catalog
from .config import get_settings
from .errors import ProgressNotFoundError
from .plan_generator import plan_from_snapshot
from .plan_mutator import refresh_derived_fields
from .progress import CompletedQuestionRecord, ProgressHistory, ReflectionRecord
from .progress_aggregator import empty_snapshot
from .stores import plan_store, progress_store
from .study_plan import PlannerOptions, StudyPlan, default_planner_options
from .telemetry import emit_event

logger = logging.getLogger(__name__)

# Entries disappear once no caller holds the lock.
_student_locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()
_student_locks_guard = threading.Lock()


def _lock_for(student_id: str) -> threading.Lock:
    """Per-student lock keyed like the stores key their records."""
    key = student_id.strip()
    with _student_locks_guard:
        lock = _student_locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _student_locks[key] = lock
        return lock


def _slot_count(plan: StudyPlan) -> int:
    return sum(len(day.slots) for day in plan.days)


def _slot_state(plan: Optional[StudyPlan], day_index: int, slot_index: int) -> Optional[bool]:
    if plan is None or not 0 <= day_index < len(plan.days):
        return None
    slots = plan.days[day_index].slots
    if not 0 <= slot_index < len(slots):
        return None
    return slots[slot_index].completed


class BatchPlanResult(BaseModel):
    """Outcome of regenerating plans for several students."""

    plans: Dict[str, StudyPlan] = Field(default_factory=dict)
    failures: Dict[str, str] = Field(default_factory=dict)


def generate_plan_for_student(
    student_id: str,
    options: Optional[PlannerOptions] = None,
    now: Optional[datetime] = None,
    *,
    bootstrap_missing: bool = False,
    catalog: Optional[Catalog] = None,
) -> StudyPlan:
    """Regenerate and persist the weekly plan for ``student_id``.

    Raises ``ProgressNotFoundError`` when the learner has no history, unless
    ``bootstrap_missing`` is set, in which case an empty snapshot is planned.
    """
    reference = now or datetime.now(timezone.utc)
    resolved = options or default_planner_options()
    start = time.perf_counter()
    with _lock_for(student_id):
        bootstrapped = False
        try:
            try:
                snapshot = progress_store.load_snapshot(student_id, now=reference)
            except ProgressNotFoundError:
                if not bootstrap_missing:
                    raise
                logger.info("No progress recorded for %s; bootstrapping an empty snapshot", student_id)
                snapshot = empty_snapshot(student_id, now=reference)
                bootstrapped = True
            plan = plan_from_snapshot(snapshot, options=resolved, catalog=catalog, now=reference)
            stored = plan_store.save(plan)
        except Exception as exc:  # noqa: BLE001
            duration_ms = (time.perf_counter() - start) * 1000.0
            emit_event(
                "plan_generation",
                student_id=student_id,
                status="error",
                duration_ms=round(duration_ms, 2),
                slot_count=0,
                error=str(exc),
                exception_type=exc.__class__.__name__,
            )
            logger.exception("Failed to generate study plan for %s", student_id)
            raise
    duration_ms = (time.perf_counter() - start) * 1000.0
    emit_event(
        "plan_generation",
        student_id=student_id,
        status="success",
        duration_ms=round(duration_ms, 2),
        slot_count=_slot_count(stored),
        total_expected_xp=stored.total_expected_xp,
        weak_subject_count=len(snapshot.subject_weaknesses),
        rest_day_count=sum(1 for day in stored.days if not day.slots),
        week_start=stored.week_start,
        bootstrapped=bootstrapped,
    )
    return stored


def generate_plans_for_students(
    student_ids: Iterable[str],
    options: Optional[PlannerOptions] = None,
    now: Optional[datetime] = None,
    *,
    bootstrap_missing: bool = False,
    max_workers: Optional[int] = None,
) -> BatchPlanResult:
    """Regenerate plans for many students in parallel.

    One student's failure is recorded in ``failures`` and never affects the
    other students' plans.
    """
    unique_ids = list(dict.fromkeys(student_ids))
    result = BatchPlanResult()
    if not unique_ids:
        return result
    workers = max_workers or get_settings().batch_max_workers
    start = time.perf_counter()
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="planner") as executor:
        futures = {
            student_id: executor.submit(
                generate_plan_for_student,
                student_id,
                options,
                now,
                bootstrap_missing=bootstrap_missing,
            )
            for student_id in unique_ids
        }
        for student_id, future in futures.items():
            try:
                result.plans[student_id] = future.result()
            except Exception as exc:  # noqa: BLE001
                result.failures[student_id] = f"{exc.__class__.__name__}: {exc}"
    duration_ms = (time.perf_counter() - start) * 1000.0
    emit_event(
        "plan_batch_generation",
        requested=len(unique_ids),
        succeeded=len(result.plans),
        failed=len(result.failures),
        duration_ms=round(duration_ms, 2),
    )
    if result.failures:
        logger.warning("Plan generation failed for %d of %d students", len(result.failures), len(unique_ids))
    return result


def mark_slot_complete(
    student_id: str,
    day_index: int,
    slot_index: int,
    completed: bool,
    now: Optional[datetime] = None,
) -> StudyPlan:
    """Set one slot's completion flag in the stored plan."""
    previous = _slot_state(plan_store.get(student_id), day_index, slot_index)
    plan = plan_store.update_slot(student_id, day_index, slot_index, completed, now=now)
    emit_event(
        "slot_completion",
        student_id=student_id,
        status="unchanged" if previous == completed else "updated",
        day_index=day_index,
        slot_index=slot_index,
        completed=completed,
    )
    return plan


def log_reflection(student_id: str, reflection: ReflectionRecord) -> ProgressHistory:
    history = progress_store.log_reflection(student_id, reflection)
    emit_event(
        "reflection_logged",
        student_id=student_id,
        mood=reflection.mood,
        fatigue_level=reflection.fatigue_level,
        time_of_day=reflection.time_of_day,
    )
    return history


def record_question(student_id: str, question: CompletedQuestionRecord) -> ProgressHistory:
    history = progress_store.record_question(student_id, question)
    emit_event(
        "question_recorded",
        student_id=student_id,
        subject=question.subject,
        correct=question.correct,
        xp_awarded=question.xp_awarded,
    )
    return history


def replace_plan(plan: StudyPlan, now: Optional[datetime] = None) -> StudyPlan:
    """Persist an externally edited plan, refreshing its derived fields."""
    with _lock_for(plan.student_id):
        return plan_store.save(refresh_derived_fields(plan, now=now))


__all__ = [
    "BatchPlanResult",
    "generate_plan_for_student",
    "generate_plans_for_students",
    "log_reflection",
    "mark_slot_complete",
    "record_question",
    "replace_plan",
]
