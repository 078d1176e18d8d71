from __future__ import annotations

from study_planner.catalog import DEFAULT_CATALOG, Catalog, CatalogSubject, CognitiveLevel
from study_planner.pattern_analyzer import LearningPatterns
from study_planner.topic_prioritizer import MAX_CANDIDATES, prioritize_topics

_FLAT_NEEDS = {level: 1 for level in CognitiveLevel}


def _catalog() -> Catalog:
    return Catalog(
        version="test",
        subjects={
            "Mathematics": CatalogSubject(topics=["Algebra", "Geometry"]),
            "Science": CatalogSubject(topics=["Physics"]),
        },
    )


def test_weak_subject_candidates_score_three_times_higher() -> None:
    patterns = LearningPatterns(weak_subjects=["Mathematics"], cognitive_level_need=_FLAT_NEEDS)

    candidates = prioritize_topics(patterns, _catalog())
    scores = {(c.subject, c.topic, c.cognitive_level): c.priority_score for c in candidates}

    weak = scores[("Mathematics", "Algebra", CognitiveLevel.APPLY)]
    regular = scores[("Science", "Physics", CognitiveLevel.APPLY)]
    assert weak == 3 * regular


def test_candidates_sorted_with_catalog_order_on_ties() -> None:
    needs = {CognitiveLevel.RECALL: 1, CognitiveLevel.APPLY: 1, CognitiveLevel.ANALYZE: 4}
    patterns = LearningPatterns(cognitive_level_need=needs)

    candidates = prioritize_topics(patterns, _catalog())

    assert [(c.subject, c.topic) for c in candidates[:3]] == [
        ("Mathematics", "Algebra"),
        ("Mathematics", "Geometry"),
        ("Science", "Physics"),
    ]
    assert all(c.cognitive_level is CognitiveLevel.ANALYZE for c in candidates[:3])
    assert candidates[3].subject == "Mathematics"
    assert candidates[3].cognitive_level is CognitiveLevel.RECALL
    scores = [c.priority_score for c in candidates]
    assert scores == sorted(scores, reverse=True)


def test_difficulty_follows_cognitive_level() -> None:
    candidates = prioritize_topics(LearningPatterns(cognitive_level_need=_FLAT_NEEDS), _catalog())

    difficulty = {c.cognitive_level: c.difficulty for c in candidates}
    assert difficulty == {
        CognitiveLevel.RECALL: "easy",
        CognitiveLevel.APPLY: "medium",
        CognitiveLevel.ANALYZE: "hard",
    }


def test_default_catalog_is_truncated_to_twenty() -> None:
    patterns = LearningPatterns(
        cognitive_level_need={CognitiveLevel.RECALL: 3, CognitiveLevel.APPLY: 2, CognitiveLevel.ANALYZE: 1}
    )

    candidates = prioritize_topics(patterns, DEFAULT_CATALOG)

    assert len(candidates) == MAX_CANDIDATES
    assert all(c.cognitive_level is CognitiveLevel.RECALL for c in candidates)


def test_unknown_weak_subject_is_ignored() -> None:
    patterns = LearningPatterns(weak_subjects=["Art"], cognitive_level_need=_FLAT_NEEDS)

    candidates = prioritize_topics(patterns, _catalog())

    assert {c.priority_score for c in candidates} == {1}
