"""Turns raw activity history into the weekly progress snapshot."""

from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import datetime, time, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

from .catalog import COGNITIVE_LEVEL_ORDER, MOOD_SCORES, NEUTRAL_MOOD_SCORE, CognitiveLevel
from .progress import (
    CompletedQuestionRecord,
    ProgressHistory,
    ReflectionRecord,
    StudentProgressSnapshot,
    WeeklyStatsSnapshot,
    ensure_utc,
)

logger = logging.getLogger(__name__)

TRAILING_WINDOW = timedelta(days=7)
WEAKNESS_MIN_ATTEMPTS = 3
WEAKNESS_ACCURACY_THRESHOLD = 0.6
MAX_FATIGUE_LEVEL = 5

_Record = TypeVar("_Record", CompletedQuestionRecord, ReflectionRecord)


def mood_score(mood: str) -> int:
    return MOOD_SCORES.get(mood, NEUTRAL_MOOD_SCORE)


def focus_score(reflection: ReflectionRecord) -> int:
    """Combined alertness score: mood plus inverted fatigue."""
    return mood_score(reflection.mood) + (MAX_FATIGUE_LEVEL + 1 - reflection.fatigue_level)


def within_trailing_window(records: Iterable[_Record], now: datetime) -> List[_Record]:
    """Keep records that occurred in the seven days ending at ``now``."""
    reference = ensure_utc(now)
    cutoff = reference - TRAILING_WINDOW
    return [record for record in records if cutoff <= record.occurred_at <= reference]


def focus_by_hour(reflections: Sequence[ReflectionRecord]) -> List[Tuple[time, float]]:
    """Average focus score per hour bucket, in order of first appearance."""
    buckets: "OrderedDict[time, List[int]]" = OrderedDict()
    for reflection in reflections:
        bucket = time(reflection.time_of_day.hour, 0)
        buckets.setdefault(bucket, []).append(focus_score(reflection))
    return [(bucket, sum(scores) / len(scores)) for bucket, scores in buckets.items()]


def peak_focus_time(reflections: Sequence[ReflectionRecord]) -> Optional[time]:
    best_time: Optional[time] = None
    best_score = float("-inf")
    for bucket, average in focus_by_hour(reflections):
        if average > best_score:
            best_time = bucket
            best_score = average
    return best_time


def weak_subjects(questions: Iterable[CompletedQuestionRecord]) -> List[str]:
    """Subjects with enough attempts whose accuracy sits below the threshold."""
    attempts: Dict[str, List[int]] = {}
    for question in questions:
        stats = attempts.setdefault(question.subject, [0, 0])
        stats[1] += 1
        if question.correct:
            stats[0] += 1
    return [
        subject
        for subject, (correct, total) in attempts.items()
        if total >= WEAKNESS_MIN_ATTEMPTS and (correct / total) < WEAKNESS_ACCURACY_THRESHOLD
    ]


def cognitive_level_coverage(questions: Iterable[CompletedQuestionRecord]) -> Dict[CognitiveLevel, int]:
    coverage: Dict[CognitiveLevel, int] = {level: 0 for level in COGNITIVE_LEVEL_ORDER}
    for question in questions:
        if question.correct and question.cognitive_level is not None:
            coverage[question.cognitive_level] = coverage.get(question.cognitive_level, 0) + 1
    return coverage


def build_weekly_stats(
    questions: Sequence[CompletedQuestionRecord],
    reflections: Sequence[ReflectionRecord],
) -> WeeklyStatsSnapshot:
    if reflections:
        average_mood = sum(mood_score(reflection.mood) for reflection in reflections) / len(reflections)
    else:
        average_mood = float(NEUTRAL_MOOD_SCORE)
    return WeeklyStatsSnapshot(
        questions_answered=len(questions),
        correct_answers=sum(1 for question in questions if question.correct),
        total_xp=sum(question.xp_awarded for question in questions),
        average_mood=average_mood,
        peak_focus_time=peak_focus_time(reflections),
    )


def build_progress_snapshot(
    history: ProgressHistory,
    now: Optional[datetime] = None,
) -> StudentProgressSnapshot:
    """Aggregate a learner history into the snapshot consumed by the planner.

    Only the trailing seven days feed the weekly statistics, weaknesses and
    cognitive-level coverage; the full history is carried along untouched.
    Empty histories produce a defaulted snapshot rather than an error.
    """
    reference = ensure_utc(now or datetime.now(timezone.utc))
    recent_questions = within_trailing_window(history.completed_questions, reference)
    recent_reflections = within_trailing_window(history.reflections, reference)

    snapshot = StudentProgressSnapshot(
        student_id=history.student_id,
        total_xp=history.total_xp,
        completed_questions=list(history.completed_questions),
        reflections=list(history.reflections),
        weekly_stats=build_weekly_stats(recent_questions, recent_reflections),
        subject_weaknesses=weak_subjects(recent_questions),
        cognitive_level_coverage=cognitive_level_coverage(recent_questions),
        generated_at=reference,
    )
    logger.debug(
        "Aggregated progress for %s: %d recent questions, %d recent reflections, weaknesses=%s",
        history.student_id,
        len(recent_questions),
        len(recent_reflections),
        snapshot.subject_weaknesses,
    )
    return snapshot


def empty_snapshot(student_id: str, now: Optional[datetime] = None) -> StudentProgressSnapshot:
    """Snapshot used to bootstrap a plan for a learner with no recorded history."""
    return build_progress_snapshot(ProgressHistory(student_id=student_id), now=now)


__all__ = [
    "TRAILING_WINDOW",
    "WEAKNESS_ACCURACY_THRESHOLD",
    "WEAKNESS_MIN_ATTEMPTS",
    "build_progress_snapshot",
    "build_weekly_stats",
    "cognitive_level_coverage",
    "empty_snapshot",
    "focus_by_hour",
    "focus_score",
    "mood_score",
    "peak_focus_time",
    "weak_subjects",
    "within_trailing_window",
]
