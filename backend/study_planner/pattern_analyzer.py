"""Derives scheduling signals from a learner's progress snapshot."""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from .catalog import COGNITIVE_LEVEL_ORDER, CognitiveLevel
from .progress import StudentProgressSnapshot, TimeOfDay
from .progress_aggregator import focus_by_hour, weak_subjects, within_trailing_window

logger = logging.getLogger(__name__)

BOOTSTRAP_COGNITIVE_NEED: Dict[CognitiveLevel, int] = {
    CognitiveLevel.RECALL: 3,
    CognitiveLevel.APPLY: 2,
    CognitiveLevel.ANALYZE: 1,
}
UNDERPRACTICED_SHARE = 0.30
NEGLECTED_SHARE = 0.15


class LearningPatterns(BaseModel):
    """Scheduling inputs inferred from recent activity."""

    model_config = ConfigDict(frozen=True)

    best_times: List[TimeOfDay] = Field(default_factory=list)
    weak_subjects: List[str] = Field(default_factory=list)
    cognitive_level_need: Dict[CognitiveLevel, int] = Field(default_factory=dict)
    average_mood: float = 3.0
    peak_focus_time: Optional[TimeOfDay] = None


def cognitive_level_need(coverage: Mapping[CognitiveLevel, int]) -> Dict[CognitiveLevel, int]:
    """Multiplier per level; proportionally neglected levels are boosted up to x4."""
    total = sum(coverage.values())
    if total == 0:
        return dict(BOOTSTRAP_COGNITIVE_NEED)

    needs: Dict[CognitiveLevel, int] = {}
    for level in COGNITIVE_LEVEL_ORDER:
        share = coverage.get(level, 0) / total
        multiplier = 1
        if share < UNDERPRACTICED_SHARE:
            multiplier *= 2
        if share < NEGLECTED_SHARE:
            multiplier *= 2
        needs[level] = multiplier
    return needs


def analyze_patterns(snapshot: StudentProgressSnapshot) -> LearningPatterns:
    """Rank focus times, collect weak subjects and weight cognitive levels.

    The trailing window is anchored at ``snapshot.generated_at`` so the
    analysis uses exactly the same week as the aggregated statistics.
    An empty ``best_times`` list means no reflections were logged; the plan
    generator substitutes the configured preferred times in that case.
    """
    recent_reflections = within_trailing_window(snapshot.reflections, snapshot.generated_at)
    recent_questions = within_trailing_window(snapshot.completed_questions, snapshot.generated_at)

    # sorted() is stable, so equal scores keep first-appearance order.
    ranked = sorted(focus_by_hour(recent_reflections), key=lambda entry: entry[1], reverse=True)
    best_times = [bucket for bucket, _ in ranked]

    combined = list(dict.fromkeys([*snapshot.subject_weaknesses, *weak_subjects(recent_questions)]))

    patterns = LearningPatterns(
        best_times=best_times,
        weak_subjects=combined,
        cognitive_level_need=cognitive_level_need(snapshot.cognitive_level_coverage),
        average_mood=snapshot.weekly_stats.average_mood,
        peak_focus_time=snapshot.weekly_stats.peak_focus_time,
    )
    logger.debug(
        "Patterns for %s: best_times=%s weak=%s needs=%s",
        snapshot.student_id,
        [slot.strftime("%H:%M") for slot in patterns.best_times],
        patterns.weak_subjects,
        {level.value: need for level, need in patterns.cognitive_level_need.items()},
    )
    return patterns


__all__ = [
    "BOOTSTRAP_COGNITIVE_NEED",
    "LearningPatterns",
    "NEGLECTED_SHARE",
    "UNDERPRACTICED_SHARE",
    "analyze_patterns",
    "cognitive_level_need",
]
