from __future__ import annotations

from datetime import time, timedelta

from study_planner.catalog import CognitiveLevel
from study_planner.progress import CompletedQuestionRecord, ProgressHistory, ReflectionRecord
from study_planner.progress_aggregator import (
    build_progress_snapshot,
    empty_snapshot,
    focus_score,
    peak_focus_time,
    weak_subjects,
    within_trailing_window,
)

from conftest import NOW, days_ago


def _question(subject: str, correct: bool, *, level=None, xp: int = 10, when=None) -> CompletedQuestionRecord:
    return CompletedQuestionRecord(
        subject=subject,
        topic="Algebra",
        correct=correct,
        cognitive_level=level,
        xp_awarded=xp,
        occurred_at=when or days_ago(1),
    )


def _reflection(mood: str, fatigue: int, clock: str, *, when=None) -> ReflectionRecord:
    return ReflectionRecord(mood=mood, fatigue_level=fatigue, time_of_day=clock, occurred_at=when or days_ago(1))


def test_empty_history_produces_defaulted_snapshot() -> None:
    snapshot = empty_snapshot("student-1", now=NOW)

    assert snapshot.weekly_stats.questions_answered == 0
    assert snapshot.weekly_stats.average_mood == 3.0
    assert snapshot.weekly_stats.peak_focus_time is None
    assert snapshot.subject_weaknesses == []
    assert snapshot.cognitive_level_coverage == {
        CognitiveLevel.RECALL: 0,
        CognitiveLevel.APPLY: 0,
        CognitiveLevel.ANALYZE: 0,
    }
    assert snapshot.generated_at == NOW


def test_trailing_window_bounds() -> None:
    inside_edge = _question("Science", True, when=NOW - timedelta(days=7))
    too_old = _question("Science", True, when=NOW - timedelta(days=7, seconds=1))
    future = _question("Science", True, when=NOW + timedelta(minutes=5))
    recent = _question("Science", True, when=NOW)

    kept = within_trailing_window([inside_edge, too_old, future, recent], NOW)

    assert kept == [inside_edge, recent]


def test_naive_timestamps_are_treated_as_utc() -> None:
    naive = _question("Science", True, when=days_ago(2).replace(tzinfo=None))

    assert naive.occurred_at.tzinfo is not None
    assert within_trailing_window([naive], NOW) == [naive]


def test_weak_subjects_need_three_attempts_below_sixty_percent() -> None:
    questions = [
        *[_question("Mathematics", index == 0) for index in range(5)],
        _question("History", False),
        _question("History", False),
        _question("English", True),
        _question("English", True),
        _question("English", False),
    ]

    assert weak_subjects(questions) == ["Mathematics"]


def test_weekly_stats_only_count_recent_activity() -> None:
    history = ProgressHistory(
        student_id="student-1",
        total_xp=500,
        completed_questions=[
            _question("Science", True, xp=25),
            _question("Science", False, xp=0),
            _question("Science", True, xp=40, when=days_ago(10)),
        ],
    )

    snapshot = build_progress_snapshot(history, now=NOW)

    assert snapshot.total_xp == 500
    assert snapshot.weekly_stats.questions_answered == 2
    assert snapshot.weekly_stats.correct_answers == 1
    assert snapshot.weekly_stats.total_xp == 25
    assert len(snapshot.completed_questions) == 3


def test_cognitive_coverage_counts_correct_answers_with_levels() -> None:
    history = ProgressHistory(
        student_id="student-1",
        completed_questions=[
            _question("Science", True, level=CognitiveLevel.RECALL),
            _question("Science", True, level=CognitiveLevel.RECALL),
            _question("Science", False, level=CognitiveLevel.APPLY),
            _question("Science", True),
            _question("Science", True, level=CognitiveLevel.ANALYZE),
        ],
    )

    coverage = build_progress_snapshot(history, now=NOW).cognitive_level_coverage

    assert coverage[CognitiveLevel.RECALL] == 2
    assert coverage[CognitiveLevel.APPLY] == 0
    assert coverage[CognitiveLevel.ANALYZE] == 1


def test_focus_score_combines_mood_and_inverted_fatigue() -> None:
    assert focus_score(_reflection("excellent", 1, "09:00")) == 10
    assert focus_score(_reflection("struggling", 5, "09:00")) == 2


def test_peak_focus_time_and_average_mood() -> None:
    history = ProgressHistory(
        student_id="student-1",
        reflections=[
            _reflection("poor", 4, "20:30"),
            _reflection("excellent", 1, "09:15"),
            _reflection("good", 2, "09:45"),
        ],
    )

    stats = build_progress_snapshot(history, now=NOW).weekly_stats

    assert stats.peak_focus_time == time(9, 0)
    assert stats.average_mood == (2 + 5 + 4) / 3


def test_peak_focus_ties_keep_first_bucket() -> None:
    reflections = [_reflection("good", 2, "18:00"), _reflection("good", 2, "07:10")]

    assert peak_focus_time(reflections) == time(18, 0)
