from __future__ import annotations

from study_planner.config import get_settings
from study_planner.db.session import session_scope
from study_planner.repositories.study_plans import study_plans
from study_planner.telemetry import emit_event
from study_planner.telemetry_pipeline import _MONITORED_EVENTS  # ensure module loads listener


def _audited(student_id: str) -> list[str]:
    with session_scope(commit=False) as session:
        return [event.event_type for event in study_plans.recent_audit_events(session, student_id)]


def test_monitored_events_persist(planner_db) -> None:
    assert "slot_completion" in _MONITORED_EVENTS

    emit_event("slot_completion", student_id="telemetry-student", day_index=0, slot_index=1, completed=True)

    with session_scope(commit=False) as session:
        events = study_plans.recent_audit_events(session, "telemetry-student")
    assert events, "Expected telemetry events to be persisted"
    assert events[0].event_type == "slot_completion"
    assert events[0].payload["slot_index"] == 1
    assert events[0].actor == "telemetry"


def test_unmonitored_and_anonymous_events_are_ignored(planner_db) -> None:
    emit_event("question_recorded", student_id="telemetry-student", subject="Science")
    emit_event("plan_generation", status="success")

    assert _audited("telemetry-student") == []


def test_legacy_mode_skips_persistence(planner_db, monkeypatch) -> None:
    monkeypatch.setenv("STUDY_PLANNER_PERSISTENCE_MODE", "legacy")
    get_settings.cache_clear()

    emit_event("reflection_logged", student_id="telemetry-student", mood="good")

    monkeypatch.setenv("STUDY_PLANNER_PERSISTENCE_MODE", "database")
    get_settings.cache_clear()
    assert _audited("telemetry-student") == []
