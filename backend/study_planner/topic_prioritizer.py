"""Ranks catalog study items against the learner's inferred needs."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict

from .catalog import DIFFICULTY_BY_COGNITIVE_LEVEL, Catalog, CognitiveLevel, get_catalog
from .pattern_analyzer import LearningPatterns

BASE_SUBJECT_PRIORITY = 1
WEAK_SUBJECT_BONUS = 2
MAX_CANDIDATES = 20


class TopicCandidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    subject: str
    topic: str
    cognitive_level: CognitiveLevel
    priority_score: int
    difficulty: Literal["easy", "medium", "hard"]


def prioritize_topics(
    patterns: LearningPatterns,
    catalog: Optional[Catalog] = None,
    *,
    limit: int = MAX_CANDIDATES,
) -> List[TopicCandidate]:
    """Cross the catalog with weak subjects and level needs, best first.

    Ties keep catalog order (subject, then topic, then cognitive level).
    """
    catalog = catalog or get_catalog()
    weak = set(patterns.weak_subjects)
    candidates: List[TopicCandidate] = []
    for subject, entry in catalog.subjects.items():
        subject_priority = BASE_SUBJECT_PRIORITY + (WEAK_SUBJECT_BONUS if subject in weak else 0)
        for topic in entry.topics:
            for level in entry.cognitive_levels:
                candidates.append(
                    TopicCandidate(
                        subject=subject,
                        topic=topic,
                        cognitive_level=level,
                        priority_score=subject_priority * patterns.cognitive_level_need.get(level, 1),
                        difficulty=DIFFICULTY_BY_COGNITIVE_LEVEL[level],
                    )
                )
    candidates.sort(key=lambda candidate: candidate.priority_score, reverse=True)
    return candidates[: max(limit, 0)]


__all__ = ["MAX_CANDIDATES", "TopicCandidate", "WEAK_SUBJECT_BONUS", "prioritize_topics"]
