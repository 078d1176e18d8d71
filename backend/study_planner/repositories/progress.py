"""Database-backed progress history repository."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.models import CompletedQuestionModel, ReflectionModel, StudentProgressModel
from ..progress import (
    CompletedQuestionRecord,
    ProgressHistory,
    ReflectionRecord,
    ensure_utc,
    format_time_of_day,
)


def _normalize_student_id(student_id: str) -> str:
    normalized = student_id.strip()
    if not normalized:
        raise ValueError("Student id cannot be empty.")
    return normalized


class ProgressRepository:
    """Persistence helper for append-only learner activity."""

    def get(self, session: Session, student_id: str) -> ProgressHistory | None:
        model = self._get_model(session, student_id)
        if model is None:
            return None
        return self._to_domain(session, model)

    def upsert(self, session: Session, history: ProgressHistory) -> ProgressHistory:
        """Replace the stored history for the student with ``history``."""
        model = self._get_model(session, history.student_id)
        if model is None:
            model = StudentProgressModel(student_id=_normalize_student_id(history.student_id))
            session.add(model)
            session.flush([model])
        model.total_xp = history.total_xp
        model.last_activity_at = ensure_utc(history.last_activity_at) if history.last_activity_at else None
        model.questions.clear()
        model.reflections.clear()
        session.flush()
        for question in history.completed_questions:
            model.questions.append(self._question_model(question))
        for reflection in history.reflections:
            model.reflections.append(self._reflection_model(reflection))
        session.flush()
        return self._to_domain(session, model)

    def append_question(
        self,
        session: Session,
        student_id: str,
        question: CompletedQuestionRecord,
    ) -> ProgressHistory:
        model = self._require_model(session, student_id)
        model.questions.append(self._question_model(question))
        model.total_xp = (model.total_xp or 0) + question.xp_awarded
        model.last_activity_at = datetime.now(timezone.utc)
        session.flush()
        return self._to_domain(session, model)

    def append_reflection(
        self,
        session: Session,
        student_id: str,
        reflection: ReflectionRecord,
    ) -> ProgressHistory:
        model = self._require_model(session, student_id)
        model.reflections.append(self._reflection_model(reflection))
        model.last_activity_at = datetime.now(timezone.utc)
        session.flush()
        return self._to_domain(session, model)

    def delete(self, session: Session, student_id: str) -> bool:
        model = self._get_model(session, student_id)
        if model is None:
            return False
        session.delete(model)
        session.flush()
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_model(self, session: Session, student_id: str) -> Optional[StudentProgressModel]:
        normalized = _normalize_student_id(student_id)
        stmt = select(StudentProgressModel).where(StudentProgressModel.student_id == normalized)
        return session.execute(stmt).scalar_one_or_none()

    def _require_model(self, session: Session, student_id: str) -> StudentProgressModel:
        model = self._get_model(session, student_id)
        if model is None:
            model = StudentProgressModel(student_id=_normalize_student_id(student_id), total_xp=0)
            session.add(model)
            session.flush([model])
        return model

    @staticmethod
    def _question_model(question: CompletedQuestionRecord) -> CompletedQuestionModel:
        return CompletedQuestionModel(
            subject=question.subject,
            topic=question.topic,
            correct=question.correct,
            cognitive_level=question.cognitive_level.value if question.cognitive_level else None,
            xp_awarded=question.xp_awarded,
            occurred_at=ensure_utc(question.occurred_at),
            time_spent_seconds=question.time_spent.total_seconds() if question.time_spent is not None else None,
        )

    @staticmethod
    def _reflection_model(reflection: ReflectionRecord) -> ReflectionModel:
        return ReflectionModel(
            mood=reflection.mood,
            fatigue_level=reflection.fatigue_level,
            time_of_day=format_time_of_day(reflection.time_of_day),
            note=reflection.note,
            occurred_at=ensure_utc(reflection.occurred_at),
        )

    def _to_domain(self, session: Session, model: StudentProgressModel) -> ProgressHistory:
        questions = session.execute(
            select(CompletedQuestionModel)
            .where(CompletedQuestionModel.progress_id == model.id)
            .order_by(CompletedQuestionModel.id.asc())
        ).scalars().all()
        reflections = session.execute(
            select(ReflectionModel)
            .where(ReflectionModel.progress_id == model.id)
            .order_by(ReflectionModel.id.asc())
        ).scalars().all()
        return ProgressHistory(
            student_id=model.student_id,
            total_xp=model.total_xp or 0,
            completed_questions=[
                CompletedQuestionRecord(
                    subject=record.subject,
                    topic=record.topic,
                    correct=record.correct,
                    cognitive_level=record.cognitive_level,
                    xp_awarded=record.xp_awarded,
                    occurred_at=record.occurred_at,
                    time_spent=(
                        timedelta(seconds=record.time_spent_seconds)
                        if record.time_spent_seconds is not None
                        else None
                    ),
                )
                for record in questions
            ],
            reflections=[
                ReflectionRecord(
                    mood=record.mood,
                    fatigue_level=record.fatigue_level,
                    time_of_day=record.time_of_day,
                    note=record.note,
                    occurred_at=record.occurred_at,
                )
                for record in reflections
            ],
            last_activity_at=ensure_utc(model.last_activity_at) if model.last_activity_at else None,
        )


progress_repository = ProgressRepository()

__all__ = ["ProgressRepository", "progress_repository"]
