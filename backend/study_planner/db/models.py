"""ORM models backing the progress and plan stores."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from .base import Base, TimestampMixin

JSONType = JSON


class StudentProgressModel(TimestampMixin, Base):
    __tablename__ = "student_progress"
    __table_args__ = (Index("ix_student_progress_student_id", "student_id", unique=True),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    student_id: Mapped[str] = mapped_column(String(128), nullable=False)
    total_xp: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_activity_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    questions: Mapped[list["CompletedQuestionModel"]] = relationship(
        back_populates="progress", cascade="all, delete-orphan"
    )
    reflections: Mapped[list["ReflectionModel"]] = relationship(
        back_populates="progress", cascade="all, delete-orphan"
    )


class CompletedQuestionModel(Base):
    __tablename__ = "completed_questions"
    __table_args__ = (Index("ix_completed_questions_progress_occurred", "progress_id", "occurred_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    progress_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("student_progress.id", ondelete="CASCADE"), nullable=False
    )
    subject: Mapped[str] = mapped_column(String(128), nullable=False)
    topic: Mapped[str] = mapped_column(String(128), nullable=False)
    correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    cognitive_level: Mapped[str | None] = mapped_column(String(16), nullable=True)
    xp_awarded: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    time_spent_seconds: Mapped[float | None] = mapped_column(nullable=True)

    progress: Mapped[StudentProgressModel] = relationship(back_populates="questions")


class ReflectionModel(Base):
    __tablename__ = "reflections"
    __table_args__ = (Index("ix_reflections_progress_occurred", "progress_id", "occurred_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    progress_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("student_progress.id", ondelete="CASCADE"), nullable=False
    )
    mood: Mapped[str] = mapped_column(String(16), nullable=False)
    fatigue_level: Mapped[int] = mapped_column(Integer, nullable=False)
    time_of_day: Mapped[str] = mapped_column(String(5), nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    progress: Mapped[StudentProgressModel] = relationship(back_populates="reflections")


class StudyPlanModel(Base):
    __tablename__ = "study_plans"
    __table_args__ = (Index("ix_study_plans_student_id", "student_id", unique=True),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    student_id: Mapped[str] = mapped_column(String(128), nullable=False)
    week_start: Mapped[date] = mapped_column(Date, nullable=False)
    total_expected_xp: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    last_modified_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    slots: Mapped[list["StudyPlanSlotModel"]] = relationship(
        back_populates="plan", cascade="all, delete-orphan"
    )


class StudyPlanSlotModel(Base):
    __tablename__ = "study_plan_slots"
    __table_args__ = (
        UniqueConstraint("plan_id", "day_index", "slot_index", name="uq_study_plan_slot_position"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    plan_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("study_plans.id", ondelete="CASCADE"), nullable=False, index=True
    )
    day_index: Mapped[int] = mapped_column(Integer, nullable=False)
    slot_index: Mapped[int] = mapped_column(Integer, nullable=False)
    subject: Mapped[str] = mapped_column(String(128), nullable=False)
    topic: Mapped[str] = mapped_column(String(128), nullable=False)
    time_of_day: Mapped[str] = mapped_column(String(5), nullable=False)
    cognitive_level: Mapped[str] = mapped_column(String(16), nullable=False)
    expected_xp: Mapped[int] = mapped_column(Integer, nullable=False)
    difficulty: Mapped[str] = mapped_column(String(16), nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    plan: Mapped[StudyPlanModel] = relationship(back_populates="slots")


class PersistenceAuditEventModel(Base):
    __tablename__ = "persistence_audit_events"
    __table_args__ = (Index("ix_persistence_audit_events_student", "student_id", "created_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    student_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    event_type: Mapped[str] = mapped_column(String(64), nullable=False)
    payload: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    actor: Mapped[str | None] = mapped_column(String(128))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )


__all__ = [
    "CompletedQuestionModel",
    "PersistenceAuditEventModel",
    "ReflectionModel",
    "StudentProgressModel",
    "StudyPlanModel",
    "StudyPlanSlotModel",
]
