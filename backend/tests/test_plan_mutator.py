from __future__ import annotations

from datetime import timedelta

import pytest
from pydantic import ValidationError

from study_planner.catalog import CognitiveLevel
from study_planner.errors import SlotOutOfRangeError
from study_planner.plan_generator import plan_from_snapshot
from study_planner.plan_mutator import refresh_derived_fields, set_slot_completion
from study_planner.progress_aggregator import empty_snapshot
from study_planner.study_plan import PlannerOptions, StudyPlan, StudySlot, recompute_total_expected_xp

from conftest import NOW


def _plan(target: int = 12) -> StudyPlan:
    return plan_from_snapshot(
        empty_snapshot("student-1", now=NOW),
        options=PlannerOptions(target_sessions_per_week=target),
        now=NOW,
    )


def test_set_slot_completion_returns_updated_copy() -> None:
    plan = _plan()
    later = NOW + timedelta(hours=2)

    updated = set_slot_completion(plan, 0, 1, True, now=later)

    assert updated.days[0].slots[1].completed is True
    assert plan.days[0].slots[1].completed is False
    assert updated.last_modified_at == later
    assert updated.created_at == plan.created_at
    assert updated.total_expected_xp == recompute_total_expected_xp(updated)


def test_set_slot_completion_is_idempotent() -> None:
    plan = _plan()

    once = set_slot_completion(plan, 2, 0, True, now=NOW + timedelta(minutes=1))
    twice = set_slot_completion(once, 2, 0, True, now=NOW + timedelta(minutes=5))

    exclude = {"last_modified_at"}
    assert once.model_dump(exclude=exclude) == twice.model_dump(exclude=exclude)


def test_empty_day_reports_out_of_range() -> None:
    plan = _plan(target=0)
    before = plan.model_dump()

    with pytest.raises(SlotOutOfRangeError) as excinfo:
        set_slot_completion(plan, 0, 0, True)

    assert excinfo.value.day_index == 0
    assert plan.model_dump() == before


@pytest.mark.parametrize("day_index, slot_index", [(-1, 0), (7, 0), (0, -1), (0, 2)])
def test_invalid_indices_are_rejected(day_index: int, slot_index: int) -> None:
    with pytest.raises(SlotOutOfRangeError):
        set_slot_completion(_plan(), day_index, slot_index, True)


def test_refresh_derived_fields_recomputes_total() -> None:
    plan = _plan()
    plan.total_expected_xp = 1

    refreshed = refresh_derived_fields(plan, now=NOW + timedelta(days=1))

    assert refreshed.total_expected_xp == 12 * 15
    assert refreshed.last_modified_at == NOW + timedelta(days=1)


def test_plan_must_start_on_monday() -> None:
    payload = _plan().model_dump()
    payload["week_start"] = payload["week_start"] + timedelta(days=1)

    with pytest.raises(ValidationError):
        StudyPlan.model_validate(payload)


def test_slot_rewards_must_match_level() -> None:
    with pytest.raises(ValidationError):
        StudySlot(
            subject="Science",
            topic="Physics",
            time="16:00",
            cognitive_level=CognitiveLevel.ANALYZE,
            expected_xp=15,
            difficulty="hard",
        )
