"""Weekly study plan models."""

from __future__ import annotations

from datetime import date as calendar_date
from datetime import datetime, time, timedelta, timezone
from typing import List, Literal, Union

from pydantic import BaseModel, Field, model_validator

from .catalog import DIFFICULTY_BY_COGNITIVE_LEVEL, XP_BY_COGNITIVE_LEVEL, CognitiveLevel
from .config import get_settings
from .progress import TimeOfDay, parse_time_of_day

DAYS_PER_WEEK = 7
WEEKEND_START_INDEX = 5


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _default_preferred_times() -> List[time]:
    return [time(16, 0), time(19, 0), time(20, 0)]


def week_start_for(reference: Union[datetime, calendar_date]) -> calendar_date:
    """Monday on or before the reference day (ISO weeks, Monday first)."""
    day = reference.date() if isinstance(reference, datetime) else reference
    return day - timedelta(days=day.weekday())


class PlannerOptions(BaseModel):
    target_sessions_per_week: int = Field(default=12, ge=0)
    max_sessions_per_day: int = Field(default=3, ge=1)
    preferred_times: List[TimeOfDay] = Field(default_factory=_default_preferred_times, min_length=1)
    avoid_weekends: bool = False


def default_planner_options() -> PlannerOptions:
    settings = get_settings()
    return PlannerOptions(
        target_sessions_per_week=settings.target_sessions_per_week,
        max_sessions_per_day=settings.max_sessions_per_day,
        preferred_times=[parse_time_of_day(value) for value in settings.preferred_study_times],
        avoid_weekends=settings.avoid_weekends,
    )


class StudySlot(BaseModel):
    """One scheduled session; only ``completed`` changes after generation."""

    subject: str
    topic: str
    time: TimeOfDay
    cognitive_level: CognitiveLevel
    expected_xp: int = Field(ge=0)
    difficulty: Literal["easy", "medium", "hard"]
    completed: bool = False

    @model_validator(mode="after")
    def _check_level_rewards(self) -> "StudySlot":
        expected_xp = XP_BY_COGNITIVE_LEVEL[self.cognitive_level]
        if self.expected_xp != expected_xp:
            raise ValueError(
                f"{self.cognitive_level.value} slots award {expected_xp} XP, not {self.expected_xp}."
            )
        difficulty = DIFFICULTY_BY_COGNITIVE_LEVEL[self.cognitive_level]
        if self.difficulty != difficulty:
            raise ValueError(f"{self.cognitive_level.value} slots are '{difficulty}', not '{self.difficulty}'.")
        return self


class DayPlan(BaseModel):
    date: calendar_date
    slots: List[StudySlot] = Field(default_factory=list)


class StudyPlan(BaseModel):
    """Seven-day plan, Monday first. Regeneration replaces it wholesale."""

    student_id: str
    week_start: calendar_date
    days: List[DayPlan]
    total_expected_xp: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=_now)
    last_modified_at: datetime = Field(default_factory=_now)

    @model_validator(mode="after")
    def _check_week_shape(self) -> "StudyPlan":
        if self.week_start.weekday() != 0:
            raise ValueError(f"Plan week must start on a Monday, got {self.week_start.isoformat()}.")
        if len(self.days) != DAYS_PER_WEEK:
            raise ValueError(f"Plan must contain exactly {DAYS_PER_WEEK} days, got {len(self.days)}.")
        for index, day in enumerate(self.days):
            expected = self.week_start + timedelta(days=index)
            if day.date != expected:
                raise ValueError(f"Day {index} should fall on {expected.isoformat()}, got {day.date.isoformat()}.")
        return self


def recompute_total_expected_xp(plan: StudyPlan) -> int:
    return sum(slot.expected_xp for day in plan.days for slot in day.slots)


def is_weekend(day_index: int) -> bool:
    return day_index >= WEEKEND_START_INDEX


__all__ = [
    "DAYS_PER_WEEK",
    "DayPlan",
    "PlannerOptions",
    "StudyPlan",
    "StudySlot",
    "default_planner_options",
    "is_weekend",
    "recompute_total_expected_xp",
    "week_start_for",
]
