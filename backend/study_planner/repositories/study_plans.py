"""Database-backed study plan repository."""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..db.models import PersistenceAuditEventModel, StudyPlanModel, StudyPlanSlotModel
from ..progress import ensure_utc, format_time_of_day
from ..study_plan import DAYS_PER_WEEK, StudyPlan, recompute_total_expected_xp


def _normalize_student_id(student_id: str) -> str:
    normalized = student_id.strip()
    if not normalized:
        raise ValueError("Student id cannot be empty.")
    return normalized


class StudyPlanRepository:
    """Stores one plan per student; every save is a full replace."""

    def get(self, session: Session, student_id: str) -> StudyPlan | None:
        model = self._get_model(session, student_id)
        if model is None:
            return None
        return self._to_domain(session, model)

    def save(self, session: Session, plan: StudyPlan) -> StudyPlan:
        normalized = _normalize_student_id(plan.student_id)
        model = self._get_model(session, normalized)
        if model is None:
            model = StudyPlanModel(student_id=normalized)
            session.add(model)

        model.week_start = plan.week_start
        model.total_expected_xp = recompute_total_expected_xp(plan)
        model.created_at = ensure_utc(plan.created_at)
        model.last_modified_at = ensure_utc(plan.last_modified_at)
        session.flush([model])

        session.execute(delete(StudyPlanSlotModel).where(StudyPlanSlotModel.plan_id == model.id))
        for day_index, day in enumerate(plan.days):
            for slot_index, slot in enumerate(day.slots):
                session.add(
                    StudyPlanSlotModel(
                        plan_id=model.id,
                        day_index=day_index,
                        slot_index=slot_index,
                        subject=slot.subject,
                        topic=slot.topic,
                        time_of_day=format_time_of_day(slot.time),
                        cognitive_level=slot.cognitive_level.value,
                        expected_xp=slot.expected_xp,
                        difficulty=slot.difficulty,
                        completed=slot.completed,
                    )
                )
        session.flush()
        self.record_audit(
            session,
            normalized,
            "study_plan_saved",
            {"week_start": plan.week_start.isoformat(), "total_expected_xp": model.total_expected_xp},
        )
        return self._to_domain(session, model)

    def delete(self, session: Session, student_id: str) -> bool:
        model = self._get_model(session, student_id)
        if model is None:
            return False
        session.delete(model)
        session.flush()
        self.record_audit(session, model.student_id, "study_plan_deleted", {})
        return True

    def record_audit(
        self,
        session: Session,
        student_id: Optional[str],
        event_type: str,
        payload: Dict[str, Any],
        *,
        actor: str = "system",
    ) -> None:
        session.add(
            PersistenceAuditEventModel(
                student_id=student_id,
                event_type=event_type,
                payload=payload,
                actor=actor,
            )
        )

    def recent_audit_events(self, session: Session, student_id: str, limit: int = 50):
        stmt = (
            select(PersistenceAuditEventModel)
            .where(PersistenceAuditEventModel.student_id == _normalize_student_id(student_id))
            .order_by(PersistenceAuditEventModel.created_at.desc())
            .limit(limit)
        )
        return list(session.execute(stmt).scalars().all())

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_model(self, session: Session, student_id: str) -> Optional[StudyPlanModel]:
        normalized = _normalize_student_id(student_id)
        stmt = select(StudyPlanModel).where(StudyPlanModel.student_id == normalized)
        return session.execute(stmt).scalar_one_or_none()

    def _to_domain(self, session: Session, model: StudyPlanModel) -> StudyPlan:
        slots = session.execute(
            select(StudyPlanSlotModel)
            .where(StudyPlanSlotModel.plan_id == model.id)
            .order_by(StudyPlanSlotModel.day_index.asc(), StudyPlanSlotModel.slot_index.asc())
        ).scalars().all()
        days: list[dict[str, Any]] = [
            {"date": model.week_start + timedelta(days=index), "slots": []} for index in range(DAYS_PER_WEEK)
        ]
        for slot in slots:
            days[slot.day_index]["slots"].append(
                {
                    "subject": slot.subject,
                    "topic": slot.topic,
                    "time": slot.time_of_day,
                    "cognitive_level": slot.cognitive_level,
                    "expected_xp": slot.expected_xp,
                    "difficulty": slot.difficulty,
                    "completed": slot.completed,
                }
            )
        return StudyPlan.model_validate(
            {
                "student_id": model.student_id,
                "week_start": model.week_start,
                "days": days,
                "total_expected_xp": model.total_expected_xp,
                "created_at": ensure_utc(model.created_at),
                "last_modified_at": ensure_utc(model.last_modified_at),
            }
        )


study_plans = StudyPlanRepository()

__all__ = ["StudyPlanRepository", "study_plans"]
