from __future__ import annotations

from datetime import date, time, timedelta

import pytest

from study_planner.catalog import XP_BY_COGNITIVE_LEVEL, CognitiveLevel
from study_planner.plan_generator import StudyPlanGenerator, generator, plan_from_snapshot
from study_planner.progress import CompletedQuestionRecord, ProgressHistory, ReflectionRecord
from study_planner.progress_aggregator import build_progress_snapshot, empty_snapshot
from study_planner.study_plan import PlannerOptions, recompute_total_expected_xp, week_start_for

from conftest import NOW, days_ago


def _busy_snapshot():
    history = ProgressHistory(
        student_id="student-7",
        completed_questions=[
            CompletedQuestionRecord(
                subject="Science",
                topic="Physics",
                correct=index % 4 == 0,
                cognitive_level=CognitiveLevel.RECALL,
                xp_awarded=15,
                occurred_at=days_ago(index % 6),
            )
            for index in range(8)
        ],
        reflections=[
            ReflectionRecord(mood="good", fatigue_level=2, time_of_day="07:30", occurred_at=days_ago(1)),
            ReflectionRecord(mood="poor", fatigue_level=4, time_of_day="21:00", occurred_at=days_ago(2)),
        ],
    )
    return build_progress_snapshot(history, now=NOW)


def test_empty_snapshot_default_plan_shape() -> None:
    plan = plan_from_snapshot(empty_snapshot("student-1", now=NOW), options=PlannerOptions(), now=NOW)

    assert plan.week_start == date(2024, 3, 11)
    assert plan.week_start.weekday() == 0
    assert [day.date for day in plan.days] == [date(2024, 3, 11) + timedelta(days=i) for i in range(7)]
    monday = plan.days[0].slots
    assert len(monday) == 2
    assert [slot.time for slot in monday] == [time(16, 0), time(19, 0)]
    assert all(slot.cognitive_level is CognitiveLevel.RECALL for slot in monday)
    assert sum(len(day.slots) for day in plan.days) == 12
    assert plan.total_expected_xp == recompute_total_expected_xp(plan) == 12 * 15
    assert plan.created_at == plan.last_modified_at == NOW


def test_sunday_belongs_to_the_week_that_started_monday() -> None:
    assert week_start_for(date(2024, 3, 17)) == date(2024, 3, 11)
    assert week_start_for(date(2024, 3, 11)) == date(2024, 3, 11)


def test_avoid_weekends_caps_weekend_days_at_one() -> None:
    options = PlannerOptions(target_sessions_per_week=14, max_sessions_per_day=3, avoid_weekends=True)

    plan = plan_from_snapshot(empty_snapshot("student-1", now=NOW), options=options, now=NOW)

    assert len(plan.days[5].slots) <= 1
    assert len(plan.days[6].slots) <= 1
    assert all(len(day.slots) <= 3 for day in plan.days)


@pytest.mark.parametrize("max_per_day", [1, 2, 5])
def test_weekend_days_capped_at_two(max_per_day: int) -> None:
    options = PlannerOptions(target_sessions_per_week=30, max_sessions_per_day=max_per_day)

    plan = plan_from_snapshot(empty_snapshot("student-1", now=NOW), options=options, now=NOW)

    for day in plan.days[5:]:
        assert len(day.slots) <= min(2, max_per_day)
    for day in plan.days[:5]:
        assert len(day.slots) <= max_per_day


def test_zero_target_yields_empty_week() -> None:
    options = PlannerOptions(target_sessions_per_week=0)

    plan = plan_from_snapshot(empty_snapshot("student-1", now=NOW), options=options, now=NOW)

    assert len(plan.days) == 7
    assert all(not day.slots for day in plan.days)
    assert plan.total_expected_xp == 0


def test_exhausted_candidates_stop_scheduling() -> None:
    options = PlannerOptions(target_sessions_per_week=12)

    plan = generator.build_plan("student-1", [], options=options, now=NOW)

    assert sum(len(day.slots) for day in plan.days) == 0


def test_best_times_override_preferred_times() -> None:
    plan = plan_from_snapshot(_busy_snapshot(), options=PlannerOptions(), now=NOW)

    assert [slot.time for slot in plan.days[0].slots] == [time(7, 0), time(21, 0)]


def test_slot_rewards_follow_cognitive_level() -> None:
    plan = plan_from_snapshot(_busy_snapshot(), options=PlannerOptions(target_sessions_per_week=20), now=NOW)

    levels = set()
    for day in plan.days:
        for slot in day.slots:
            levels.add(slot.cognitive_level)
            assert slot.expected_xp == XP_BY_COGNITIVE_LEVEL[slot.cognitive_level]
            assert slot.completed is False
    assert levels


def test_generation_is_deterministic() -> None:
    snapshot = _busy_snapshot()
    options = PlannerOptions(target_sessions_per_week=9, preferred_times=["06:45"])

    first = plan_from_snapshot(snapshot, options=options, now=NOW)
    second = plan_from_snapshot(snapshot, options=options, now=NOW)

    assert first.model_dump_json() == second.model_dump_json()


def test_sessions_for_day_spreads_remaining_target() -> None:
    planner = StudyPlanGenerator()
    options = PlannerOptions(target_sessions_per_week=12, max_sessions_per_day=3)

    assert planner.sessions_for_day(0, 0, options) == 2
    assert planner.sessions_for_day(5, 10, options) == 1
    assert planner.sessions_for_day(6, 12, options) == 0
