"""Telemetry listener that persists planner activity to the audit table."""

from __future__ import annotations

import logging
from typing import Set

from .config import get_settings
from .db.session import session_scope
from .repositories.study_plans import study_plans
from .telemetry import TelemetryEvent, register_listener

logger = logging.getLogger(__name__)

_MONITORED_EVENTS: Set[str] = {
    "plan_generation",
    "slot_completion",
    "reflection_logged",
}


def _persist_event(event: TelemetryEvent) -> None:
    if event.name not in _MONITORED_EVENTS:
        return
    if get_settings().persistence_mode != "database":
        return
    student_id = event.payload.get("student_id")
    if not isinstance(student_id, str) or not student_id.strip():
        return
    try:
        with session_scope() as session:
            study_plans.record_audit(session, student_id.strip(), event.name, event.payload, actor="telemetry")
    except Exception:  # noqa: BLE001
        logger.exception("Failed to persist telemetry event for student_id=%s", student_id)


register_listener(_persist_event)

__all__ = ["_MONITORED_EVENTS"]
