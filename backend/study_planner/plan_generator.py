"""Greedy weekly scheduler that turns prioritized topics into a study plan."""

from __future__ import annotations

import logging
import math
from datetime import datetime, time, timedelta, timezone
from typing import List, Optional, Sequence

from .catalog import XP_BY_COGNITIVE_LEVEL, Catalog
from .pattern_analyzer import LearningPatterns, analyze_patterns
from .progress import StudentProgressSnapshot, ensure_utc
from .study_plan import (
    DAYS_PER_WEEK,
    DayPlan,
    PlannerOptions,
    StudyPlan,
    StudySlot,
    default_planner_options,
    is_weekend,
    week_start_for,
)
from .topic_prioritizer import TopicCandidate, prioritize_topics

logger = logging.getLogger(__name__)

WEEKEND_SESSION_CAP = 2
AVOIDED_WEEKEND_SESSION_CAP = 1


class StudyPlanGenerator:
    """Allocates prioritized study items across a Monday-first week."""

    def day_capacity(self, day_index: int, options: PlannerOptions) -> int:
        if not is_weekend(day_index):
            return options.max_sessions_per_day
        if options.avoid_weekends:
            return min(AVOIDED_WEEKEND_SESSION_CAP, options.max_sessions_per_day)
        return min(WEEKEND_SESSION_CAP, options.max_sessions_per_day)

    def sessions_for_day(self, day_index: int, scheduled_so_far: int, options: PlannerOptions) -> int:
        remaining_days = DAYS_PER_WEEK - day_index
        remaining_sessions = max(options.target_sessions_per_week - scheduled_so_far, 0)
        return min(self.day_capacity(day_index, options), math.ceil(remaining_sessions / remaining_days))

    def build_plan(
        self,
        student_id: str,
        candidates: Sequence[TopicCandidate],
        *,
        options: Optional[PlannerOptions] = None,
        best_times: Sequence[time] = (),
        now: Optional[datetime] = None,
    ) -> StudyPlan:
        options = options or default_planner_options()
        reference = ensure_utc(now or datetime.now(timezone.utc))
        week_start = week_start_for(reference)
        time_rotation: List[time] = list(best_times) or list(options.preferred_times)

        days: List[DayPlan] = []
        next_candidate = 0
        scheduled = 0
        for day_index in range(DAYS_PER_WEEK):
            day = DayPlan(date=week_start + timedelta(days=day_index))
            quota = self.sessions_for_day(day_index, scheduled, options)
            for slot_index in range(quota):
                if next_candidate >= len(candidates):
                    break
                candidate = candidates[next_candidate]
                next_candidate += 1
                day.slots.append(
                    StudySlot(
                        subject=candidate.subject,
                        topic=candidate.topic,
                        time=time_rotation[slot_index % len(time_rotation)],
                        cognitive_level=candidate.cognitive_level,
                        expected_xp=XP_BY_COGNITIVE_LEVEL[candidate.cognitive_level],
                        difficulty=candidate.difficulty,
                    )
                )
                scheduled += 1
            days.append(day)

        total_expected_xp = sum(slot.expected_xp for day in days for slot in day.slots)
        if scheduled < options.target_sessions_per_week:
            logger.info(
                "Scheduled %d of %d target sessions for %s; candidate list exhausted.",
                scheduled,
                options.target_sessions_per_week,
                student_id,
            )
        return StudyPlan(
            student_id=student_id,
            week_start=week_start,
            days=days,
            total_expected_xp=total_expected_xp,
            created_at=reference,
            last_modified_at=reference,
        )


generator = StudyPlanGenerator()


def plan_from_snapshot(
    snapshot: StudentProgressSnapshot,
    *,
    options: Optional[PlannerOptions] = None,
    catalog: Optional[Catalog] = None,
    now: Optional[datetime] = None,
) -> StudyPlan:
    """Run analysis, prioritization and allocation for one snapshot.

    Pure: identical snapshot, options, catalog and ``now`` yield identical plans.
    """
    patterns: LearningPatterns = analyze_patterns(snapshot)
    candidates = prioritize_topics(patterns, catalog)
    return generator.build_plan(
        snapshot.student_id,
        candidates,
        options=options,
        best_times=patterns.best_times,
        now=now or snapshot.generated_at,
    )


__all__ = ["StudyPlanGenerator", "generator", "plan_from_snapshot"]
