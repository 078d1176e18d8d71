"""REST endpoints for learner progress and weekly study plans."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Annotated, Optional

from fastapi import APIRouter, Body, HTTPException, Path, Query, status
from pydantic import BaseModel, Field

from .catalog import CognitiveLevel
from .errors import PlanNotFoundError, ProgressNotFoundError, SlotOutOfRangeError, StoreError
from .planner_service import (
    generate_plan_for_student,
    log_reflection,
    mark_slot_complete,
    record_question,
    replace_plan,
)
from .progress import (
    CompletedQuestionRecord,
    MoodLabel,
    ProgressHistory,
    ReflectionRecord,
    StudentProgressSnapshot,
    TimeOfDay,
)
from .stores import plan_store, progress_store
from .study_plan import PlannerOptions, StudyPlan

router = APIRouter(prefix="/api/planner", tags=["planner"])
logger = logging.getLogger(__name__)

StudentId = Annotated[str, Path(pattern=r"^.*\S.*$", description="Student identifier; must not be blank.")]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class QuestionRequest(BaseModel):
    subject: str = Field(..., min_length=1)
    topic: str = Field(..., min_length=1)
    correct: bool
    cognitive_level: Optional[CognitiveLevel] = None
    xp_awarded: int = Field(default=0, ge=0)
    occurred_at: datetime = Field(default_factory=_now)
    time_spent_seconds: Optional[float] = Field(default=None, ge=0.0)


class ReflectionRequest(BaseModel):
    mood: MoodLabel
    fatigue_level: int = Field(..., ge=1, le=5)
    time_of_day: TimeOfDay
    note: Optional[str] = None
    occurred_at: datetime = Field(default_factory=_now)


class SlotCompletionRequest(BaseModel):
    completed: bool


def _store_unavailable(exc: StoreError) -> HTTPException:
    logger.warning("Planner store unavailable: %s", exc)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Planner storage is temporarily unavailable.",
    )


@router.get("/{student_id}/progress", response_model=StudentProgressSnapshot)
def get_progress(student_id: StudentId) -> StudentProgressSnapshot:
    try:
        return progress_store.load_snapshot(student_id)
    except ProgressNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except StoreError as exc:
        raise _store_unavailable(exc) from exc


@router.post("/{student_id}/questions", response_model=ProgressHistory, status_code=status.HTTP_201_CREATED)
def post_question(student_id: StudentId, payload: QuestionRequest) -> ProgressHistory:
    question = CompletedQuestionRecord(
        subject=payload.subject,
        topic=payload.topic,
        correct=payload.correct,
        cognitive_level=payload.cognitive_level,
        xp_awarded=payload.xp_awarded,
        occurred_at=payload.occurred_at,
        time_spent=(
            timedelta(seconds=payload.time_spent_seconds) if payload.time_spent_seconds is not None else None
        ),
    )
    try:
        return record_question(student_id, question)
    except StoreError as exc:
        raise _store_unavailable(exc) from exc


@router.post("/{student_id}/reflections", response_model=ProgressHistory, status_code=status.HTTP_201_CREATED)
def post_reflection(student_id: StudentId, payload: ReflectionRequest) -> ProgressHistory:
    reflection = ReflectionRecord(**payload.model_dump())
    try:
        return log_reflection(student_id, reflection)
    except StoreError as exc:
        raise _store_unavailable(exc) from exc


@router.get("/{student_id}/plan", response_model=StudyPlan)
def get_plan(student_id: StudentId) -> StudyPlan:
    try:
        return plan_store.load(student_id)
    except PlanNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except StoreError as exc:
        raise _store_unavailable(exc) from exc


@router.post("/{student_id}/plan", response_model=StudyPlan)
def regenerate_plan(
    student_id: StudentId,
    options: Optional[PlannerOptions] = Body(default=None),
    bootstrap: bool = Query(default=False, description="Plan from an empty history when none is recorded."),
) -> StudyPlan:
    try:
        return generate_plan_for_student(student_id, options, bootstrap_missing=bootstrap)
    except ProgressNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except StoreError as exc:
        raise _store_unavailable(exc) from exc


@router.put("/{student_id}/plan", response_model=StudyPlan)
def put_plan(student_id: StudentId, plan: StudyPlan) -> StudyPlan:
    if plan.student_id != student_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Plan belongs to '{plan.student_id}', not '{student_id}'.",
        )
    try:
        return replace_plan(plan)
    except StoreError as exc:
        raise _store_unavailable(exc) from exc


@router.post("/{student_id}/plan/days/{day_index}/slots/{slot_index}", response_model=StudyPlan)
def update_slot_completion(
    student_id: StudentId,
    day_index: int,
    slot_index: int,
    payload: SlotCompletionRequest,
) -> StudyPlan:
    try:
        return mark_slot_complete(student_id, day_index, slot_index, payload.completed)
    except (PlanNotFoundError, SlotOutOfRangeError) as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except StoreError as exc:
        raise _store_unavailable(exc) from exc


__all__ = ["router"]
