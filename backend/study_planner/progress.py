"""Learner activity records and the weekly progress snapshot built from them."""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer, field_validator

from .catalog import CognitiveLevel

MoodLabel = Literal["excellent", "good", "neutral", "poor", "struggling"]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Normalize to an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_time_of_day(value: Any) -> Any:
    if isinstance(value, str):
        text = value.strip()
        hour, separator, minute = text.partition(":")
        if not separator:
            raise ValueError(f"Invalid time of day '{value}'; expected HH:MM.")
        try:
            return time(int(hour), int(minute))
        except ValueError as exc:
            raise ValueError(f"Invalid time of day '{value}'; expected HH:MM.") from exc
    return value


def format_time_of_day(value: time) -> str:
    return value.strftime("%H:%M")


# Local time-of-day held as datetime.time, exchanged as "HH:MM".
TimeOfDay = Annotated[
    time,
    BeforeValidator(parse_time_of_day),
    PlainSerializer(format_time_of_day, return_type=str),
]


class CompletedQuestionRecord(BaseModel):
    """One answered question appended to a learner's history."""

    model_config = ConfigDict(frozen=True)

    subject: str
    topic: str
    correct: bool
    cognitive_level: Optional[CognitiveLevel] = None
    xp_awarded: int = Field(default=0, ge=0)
    occurred_at: datetime = Field(default_factory=_now)
    time_spent: Optional[timedelta] = None

    @field_validator("occurred_at")
    @classmethod
    def _normalize_occurred_at(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class ReflectionRecord(BaseModel):
    """Self-reported mood and fatigue check-in."""

    model_config = ConfigDict(frozen=True)

    mood: MoodLabel
    fatigue_level: int = Field(ge=1, le=5)
    time_of_day: TimeOfDay
    note: Optional[str] = None
    occurred_at: datetime = Field(default_factory=_now)

    @field_validator("occurred_at")
    @classmethod
    def _normalize_occurred_at(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class ProgressHistory(BaseModel):
    """Raw, append-only activity history persisted by the progress store."""

    student_id: str
    total_xp: int = Field(default=0, ge=0)
    completed_questions: List[CompletedQuestionRecord] = Field(default_factory=list)
    reflections: List[ReflectionRecord] = Field(default_factory=list)
    last_activity_at: Optional[datetime] = None


class WeeklyStatsSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    questions_answered: int = Field(default=0, ge=0)
    correct_answers: int = Field(default=0, ge=0)
    total_xp: int = Field(default=0, ge=0)
    average_mood: float = 3.0
    peak_focus_time: Optional[TimeOfDay] = None


class StudentProgressSnapshot(BaseModel):
    """Point-in-time view of a learner used as the planning input."""

    model_config = ConfigDict(frozen=True)

    student_id: str
    total_xp: int = Field(default=0, ge=0)
    completed_questions: List[CompletedQuestionRecord] = Field(default_factory=list)
    reflections: List[ReflectionRecord] = Field(default_factory=list)
    weekly_stats: WeeklyStatsSnapshot = Field(default_factory=WeeklyStatsSnapshot)
    subject_weaknesses: List[str] = Field(default_factory=list)
    cognitive_level_coverage: Dict[CognitiveLevel, int] = Field(default_factory=dict)
    generated_at: datetime = Field(default_factory=_now)


__all__ = [
    "CompletedQuestionRecord",
    "MoodLabel",
    "ProgressHistory",
    "ReflectionRecord",
    "StudentProgressSnapshot",
    "TimeOfDay",
    "WeeklyStatsSnapshot",
    "ensure_utc",
    "format_time_of_day",
    "parse_time_of_day",
]
