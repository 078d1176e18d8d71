"""Static subject/topic catalog and the fixed lookup tables used for planning."""

from __future__ import annotations

import json
import logging
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import get_settings

logger = logging.getLogger(__name__)

CATALOG_VERSION = "2024.1"


class CognitiveLevel(str, Enum):
    """Cognitive tiers ordered by increasing difficulty."""

    RECALL = "Recall"
    APPLY = "Apply"
    ANALYZE = "Analyze"


COGNITIVE_LEVEL_ORDER: List[CognitiveLevel] = [
    CognitiveLevel.RECALL,
    CognitiveLevel.APPLY,
    CognitiveLevel.ANALYZE,
]

XP_BY_COGNITIVE_LEVEL: Dict[CognitiveLevel, int] = {
    CognitiveLevel.RECALL: 15,
    CognitiveLevel.APPLY: 25,
    CognitiveLevel.ANALYZE: 40,
}

DIFFICULTY_BY_COGNITIVE_LEVEL: Dict[CognitiveLevel, str] = {
    CognitiveLevel.RECALL: "easy",
    CognitiveLevel.APPLY: "medium",
    CognitiveLevel.ANALYZE: "hard",
}

MOOD_SCORES: Dict[str, int] = {
    "excellent": 5,
    "good": 4,
    "neutral": 3,
    "poor": 2,
    "struggling": 1,
}

NEUTRAL_MOOD_SCORE = MOOD_SCORES["neutral"]


class CatalogSubject(BaseModel):
    """Topics and applicable cognitive levels for one subject."""

    model_config = ConfigDict(frozen=True)

    topics: List[str] = Field(default_factory=list)
    cognitive_levels: List[CognitiveLevel] = Field(default_factory=lambda: list(COGNITIVE_LEVEL_ORDER))


class Catalog(BaseModel):
    model_config = ConfigDict(frozen=True)

    version: str = CATALOG_VERSION
    subjects: Dict[str, CatalogSubject] = Field(default_factory=dict)


DEFAULT_CATALOG = Catalog(
    version=CATALOG_VERSION,
    subjects={
        "Mathematics": CatalogSubject(
            topics=["Algebra", "Geometry", "Calculus", "Statistics", "Trigonometry"],
        ),
        "Science": CatalogSubject(
            topics=["Biology", "Chemistry", "Physics", "Environmental Science"],
        ),
        "English": CatalogSubject(
            topics=["Grammar", "Literature", "Writing", "Reading Comprehension"],
        ),
        "History": CatalogSubject(
            topics=["Ancient History", "Modern History", "Malaysian History", "World History"],
        ),
        "Bahasa Malaysia": CatalogSubject(
            topics=["Tatabahasa", "Karangan", "Kesusasteraan", "Pemahaman"],
        ),
    },
)


def load_catalog(path: Path) -> Catalog:
    """Read a versioned catalog table from a JSON file."""
    with path.open("r", encoding="utf-8") as handle:
        raw = json.load(handle)
    try:
        catalog = Catalog.model_validate(raw)
    except ValidationError as exc:
        raise ValueError(f"Catalog at {path} is invalid: {exc}") from exc
    logger.info("Loaded catalog version %s with %d subjects from %s", catalog.version, len(catalog.subjects), path)
    return catalog


@lru_cache
def get_catalog() -> Catalog:
    path: Optional[Path] = get_settings().catalog_path
    if path is None:
        return DEFAULT_CATALOG
    return load_catalog(path)


__all__ = [
    "CATALOG_VERSION",
    "COGNITIVE_LEVEL_ORDER",
    "Catalog",
    "CatalogSubject",
    "CognitiveLevel",
    "DEFAULT_CATALOG",
    "DIFFICULTY_BY_COGNITIVE_LEVEL",
    "MOOD_SCORES",
    "NEUTRAL_MOOD_SCORE",
    "XP_BY_COGNITIVE_LEVEL",
    "get_catalog",
    "load_catalog",
]
