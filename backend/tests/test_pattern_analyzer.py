from __future__ import annotations

from datetime import time

from study_planner.catalog import CognitiveLevel
from study_planner.pattern_analyzer import BOOTSTRAP_COGNITIVE_NEED, analyze_patterns, cognitive_level_need
from study_planner.progress import CompletedQuestionRecord, ProgressHistory, ReflectionRecord
from study_planner.progress_aggregator import build_progress_snapshot, empty_snapshot

from conftest import NOW, days_ago


def _reflection(mood: str, fatigue: int, clock: str, *, days: float = 1) -> ReflectionRecord:
    return ReflectionRecord(mood=mood, fatigue_level=fatigue, time_of_day=clock, occurred_at=days_ago(days))


def test_empty_snapshot_uses_bootstrap_needs() -> None:
    patterns = analyze_patterns(empty_snapshot("student-1", now=NOW))

    assert patterns.cognitive_level_need == {
        CognitiveLevel.RECALL: 3,
        CognitiveLevel.APPLY: 2,
        CognitiveLevel.ANALYZE: 1,
    }
    assert patterns.best_times == []
    assert patterns.weak_subjects == []


def test_cognitive_level_need_boosts_neglected_levels() -> None:
    needs = cognitive_level_need(
        {CognitiveLevel.RECALL: 10, CognitiveLevel.APPLY: 2, CognitiveLevel.ANALYZE: 0}
    )

    assert needs == {
        CognitiveLevel.RECALL: 1,
        CognitiveLevel.APPLY: 2,
        CognitiveLevel.ANALYZE: 4,
    }


def test_cognitive_level_need_balanced_coverage() -> None:
    needs = cognitive_level_need(
        {CognitiveLevel.RECALL: 4, CognitiveLevel.APPLY: 3, CognitiveLevel.ANALYZE: 3}
    )

    assert needs == {level: 1 for level in BOOTSTRAP_COGNITIVE_NEED}


def test_best_times_ranked_by_average_focus() -> None:
    history = ProgressHistory(
        student_id="student-1",
        reflections=[
            _reflection("poor", 4, "20:10"),
            _reflection("excellent", 1, "09:00"),
            _reflection("neutral", 2, "14:30"),
            _reflection("excellent", 1, "06:00", days=9),
        ],
    )

    patterns = analyze_patterns(build_progress_snapshot(history, now=NOW))

    assert patterns.best_times == [time(9, 0), time(14, 0), time(20, 0)]
    assert patterns.peak_focus_time == time(9, 0)


def test_weak_subjects_come_from_recent_questions() -> None:
    questions = [
        CompletedQuestionRecord(subject="History", topic="World History", correct=False, occurred_at=days_ago(2))
        for _ in range(4)
    ]
    questions += [
        CompletedQuestionRecord(subject="English", topic="Grammar", correct=False, occurred_at=days_ago(12))
        for _ in range(4)
    ]
    snapshot = build_progress_snapshot(
        ProgressHistory(student_id="student-1", completed_questions=questions),
        now=NOW,
    )

    patterns = analyze_patterns(snapshot)

    assert patterns.weak_subjects == ["History"]
