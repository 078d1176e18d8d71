"""Progress and study plan stores with database and legacy JSON backends."""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Literal, Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from .cache import plan_cache
from .config import get_settings
from .db.session import session_scope
from .errors import PlanNotFoundError, PlannerError, ProgressNotFoundError, StoreError
from .plan_mutator import set_slot_completion
from .progress import CompletedQuestionRecord, ProgressHistory, ReflectionRecord, StudentProgressSnapshot
from .progress_aggregator import build_progress_snapshot
from .study_plan import StudyPlan, recompute_total_expected_xp

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent / "data"
PROGRESS_FILENAME = "progress.json"
PLANS_FILENAME = "study_plans.json"

PersistenceMode = Literal["database", "legacy"]


if TYPE_CHECKING:
    from .repositories.progress import ProgressRepository
    from .repositories.study_plans import StudyPlanRepository


def _progress_repo() -> "ProgressRepository":
    from .repositories.progress import progress_repository

    return progress_repository


def _plan_repo() -> "StudyPlanRepository":
    from .repositories.study_plans import study_plans

    return study_plans


def _normalize_student_id(student_id: str) -> str:
    normalized = student_id.strip()
    if not normalized:
        raise ValueError("Student id cannot be empty.")
    return normalized


def _legacy_dir() -> Path:
    return get_settings().legacy_data_dir or DATA_DIR


def _with_recomputed_total(plan: StudyPlan) -> StudyPlan:
    copy = plan.model_copy(deep=True)
    copy.total_expected_xp = recompute_total_expected_xp(copy)
    return copy


class _JsonFile:
    """Whole-file JSON document keyed by student id."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        with self.path.open("r", encoding="utf-8") as handle:
            raw = json.load(handle)
        if not isinstance(raw, dict):
            raise StoreError(f"Legacy store {self.path} does not contain a JSON object.")
        return raw

    def write(self, payload: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2)
        tmp_path.replace(self.path)


# ----------------------------------------------------------------------
# Progress
# ----------------------------------------------------------------------


class _DatabaseProgressStore:
    """Database-backed progress persistence."""

    def get_history(self, student_id: str) -> Optional[ProgressHistory]:
        with session_scope(commit=False) as session:
            return _progress_repo().get(session, student_id)

    def upsert_history(self, history: ProgressHistory) -> ProgressHistory:
        with session_scope() as session:
            return _progress_repo().upsert(session, history)

    def record_question(self, student_id: str, question: CompletedQuestionRecord) -> ProgressHistory:
        with session_scope() as session:
            return _progress_repo().append_question(session, student_id, question)

    def log_reflection(self, student_id: str, reflection: ReflectionRecord) -> ProgressHistory:
        with session_scope() as session:
            return _progress_repo().append_reflection(session, student_id, reflection)

    def delete(self, student_id: str) -> bool:
        with session_scope() as session:
            return _progress_repo().delete(session, student_id)


class _LegacyProgressStore:
    """JSON-backed progress persistence used for offline and rollback modes."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self._file = _JsonFile(path or _legacy_dir() / PROGRESS_FILENAME)
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._file.path

    def _load_unlocked(self) -> Dict[str, ProgressHistory]:
        histories: Dict[str, ProgressHistory] = {}
        for key, payload in self._file.read().items():
            try:
                histories[key] = ProgressHistory.model_validate(payload)
            except ValidationError as exc:
                logger.error("Failed to parse legacy progress history %s: %s", key, exc)
                raise StoreError(f"Legacy progress history for '{key}' in {self.path} is invalid.") from exc
        return histories

    def _write_unlocked(self, histories: Dict[str, ProgressHistory]) -> None:
        self._file.write({key: history.model_dump(mode="json") for key, history in histories.items()})

    @staticmethod
    def _ensure_history(histories: Dict[str, ProgressHistory], student_id: str) -> ProgressHistory:
        normalized = _normalize_student_id(student_id)
        history = histories.get(normalized)
        if history is None:
            history = ProgressHistory(student_id=normalized)
            histories[normalized] = history
        return history

    def get_history(self, student_id: str) -> Optional[ProgressHistory]:
        normalized = _normalize_student_id(student_id)
        with self._lock:
            history = self._load_unlocked().get(normalized)
        return history.model_copy(deep=True) if history else None

    def upsert_history(self, history: ProgressHistory) -> ProgressHistory:
        clone = history.model_copy(deep=True)
        clone.student_id = _normalize_student_id(clone.student_id)
        with self._lock:
            histories = self._load_unlocked()
            histories[clone.student_id] = clone
            self._write_unlocked(histories)
        return clone.model_copy(deep=True)

    def record_question(self, student_id: str, question: CompletedQuestionRecord) -> ProgressHistory:
        with self._lock:
            histories = self._load_unlocked()
            history = self._ensure_history(histories, student_id)
            history.completed_questions.append(question)
            history.total_xp += question.xp_awarded
            history.last_activity_at = datetime.now(timezone.utc)
            self._write_unlocked(histories)
            return history.model_copy(deep=True)

    def log_reflection(self, student_id: str, reflection: ReflectionRecord) -> ProgressHistory:
        with self._lock:
            histories = self._load_unlocked()
            history = self._ensure_history(histories, student_id)
            history.reflections.append(reflection)
            history.last_activity_at = datetime.now(timezone.utc)
            self._write_unlocked(histories)
            return history.model_copy(deep=True)

    def delete(self, student_id: str) -> bool:
        normalized = _normalize_student_id(student_id)
        with self._lock:
            histories = self._load_unlocked()
            if histories.pop(normalized, None) is None:
                return False
            self._write_unlocked(histories)
            return True


class _StoreFacade:
    """Delegates each call to the backend selected by the persistence mode."""

    _label = "store"

    def __init__(self, mode: Optional[PersistenceMode] = None) -> None:
        self._mode: PersistenceMode = mode or get_settings().persistence_mode
        self._db_store: Any = None
        self._legacy_store: Any = None

    @property
    def mode(self) -> PersistenceMode:
        return self._mode

    def _call(self, method: str, *args, **kwargs):
        store = self._legacy_store if self._mode == "legacy" else self._db_store
        try:
            return getattr(store, method)(*args, **kwargs)
        except PlannerError:
            raise
        except (SQLAlchemyError, OSError, RuntimeError, json.JSONDecodeError) as exc:
            logger.warning("%s %s failed in %s mode: %s", self._label, method, self._mode, exc)
            raise StoreError(f"{self._label} {method} failed: {exc}") from exc


class ProgressStore(_StoreFacade):
    """Facade over the progress history backends."""

    _label = "Progress store"

    def __init__(self, mode: Optional[PersistenceMode] = None, legacy_path: Path | None = None) -> None:
        super().__init__(mode)
        self._db_store = _DatabaseProgressStore()
        self._legacy_store = _LegacyProgressStore(path=legacy_path)

    def get_history(self, student_id: str) -> Optional[ProgressHistory]:
        return self._call("get_history", student_id)

    def load_snapshot(self, student_id: str, now: Optional[datetime] = None) -> StudentProgressSnapshot:
        """Aggregate the stored history for ``student_id`` as of ``now``."""
        history = self.get_history(student_id)
        if history is None:
            raise ProgressNotFoundError(student_id)
        return build_progress_snapshot(history, now=now)

    def upsert_history(self, history: ProgressHistory) -> ProgressHistory:
        return self._call("upsert_history", history)

    def record_question(self, student_id: str, question: CompletedQuestionRecord) -> ProgressHistory:
        return self._call("record_question", student_id, question)

    def log_reflection(self, student_id: str, reflection: ReflectionRecord) -> ProgressHistory:
        return self._call("log_reflection", student_id, reflection)

    def delete(self, student_id: str) -> bool:
        return self._call("delete", student_id)


# ----------------------------------------------------------------------
# Study plans
# ----------------------------------------------------------------------


class _DatabasePlanStore:
    """Database-backed study plan persistence."""

    def get(self, student_id: str) -> Optional[StudyPlan]:
        with session_scope(commit=False) as session:
            return _plan_repo().get(session, student_id)

    def save(self, plan: StudyPlan) -> StudyPlan:
        with session_scope() as session:
            return _plan_repo().save(session, plan)

    def update_slot(
        self,
        student_id: str,
        day_index: int,
        slot_index: int,
        completed: bool,
        now: Optional[datetime] = None,
    ) -> StudyPlan:
        with session_scope() as session:
            plan = _plan_repo().get(session, student_id)
            if plan is None:
                raise PlanNotFoundError(student_id)
            updated = set_slot_completion(plan, day_index, slot_index, completed, now=now)
            return _plan_repo().save(session, updated)

    def delete(self, student_id: str) -> bool:
        with session_scope() as session:
            return _plan_repo().delete(session, student_id)


class _LegacyPlanStore:
    """JSON-backed study plan persistence."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self._file = _JsonFile(path or _legacy_dir() / PLANS_FILENAME)
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._file.path

    def _load_unlocked(self) -> Dict[str, StudyPlan]:
        plans: Dict[str, StudyPlan] = {}
        for key, payload in self._file.read().items():
            try:
                plans[key] = StudyPlan.model_validate(payload)
            except ValidationError as exc:
                logger.error("Failed to parse legacy study plan %s: %s", key, exc)
                raise StoreError(f"Legacy study plan for '{key}' in {self.path} is invalid.") from exc
        return plans

    def _write_unlocked(self, plans: Dict[str, StudyPlan]) -> None:
        self._file.write({key: plan.model_dump(mode="json") for key, plan in plans.items()})

    def get(self, student_id: str) -> Optional[StudyPlan]:
        normalized = _normalize_student_id(student_id)
        with self._lock:
            plan = self._load_unlocked().get(normalized)
        return plan.model_copy(deep=True) if plan else None

    def save(self, plan: StudyPlan) -> StudyPlan:
        stored = _with_recomputed_total(plan)
        stored.student_id = _normalize_student_id(stored.student_id)
        with self._lock:
            plans = self._load_unlocked()
            plans[stored.student_id] = stored
            self._write_unlocked(plans)
        return stored.model_copy(deep=True)

    def update_slot(
        self,
        student_id: str,
        day_index: int,
        slot_index: int,
        completed: bool,
        now: Optional[datetime] = None,
    ) -> StudyPlan:
        normalized = _normalize_student_id(student_id)
        with self._lock:
            plans = self._load_unlocked()
            plan = plans.get(normalized)
            if plan is None:
                raise PlanNotFoundError(student_id)
            updated = set_slot_completion(plan, day_index, slot_index, completed, now=now)
            plans[normalized] = updated
            self._write_unlocked(plans)
        return updated.model_copy(deep=True)

    def delete(self, student_id: str) -> bool:
        normalized = _normalize_student_id(student_id)
        with self._lock:
            plans = self._load_unlocked()
            if plans.pop(normalized, None) is None:
                return False
            self._write_unlocked(plans)
            return True


class PlanStore(_StoreFacade):
    """Facade over the study plan backends, fronted by the plan cache."""

    _label = "Plan store"

    def __init__(self, mode: Optional[PersistenceMode] = None, legacy_path: Path | None = None) -> None:
        super().__init__(mode)
        self._db_store = _DatabasePlanStore()
        self._legacy_store = _LegacyPlanStore(path=legacy_path)

    def get(self, student_id: str) -> Optional[StudyPlan]:
        cached = plan_cache.get(student_id)
        if cached is not None:
            return cached
        plan = self._call("get", student_id)
        if plan is not None:
            plan_cache.set(student_id, plan)
        return plan

    def load(self, student_id: str) -> StudyPlan:
        plan = self.get(student_id)
        if plan is None:
            raise PlanNotFoundError(student_id)
        return plan

    def save(self, plan: StudyPlan) -> StudyPlan:
        """Overwrite the student's plan with ``plan``; totals are recomputed."""
        stored = self._call("save", _with_recomputed_total(plan))
        plan_cache.set(stored.student_id, stored)
        return stored

    def update_slot(
        self,
        student_id: str,
        day_index: int,
        slot_index: int,
        completed: bool,
        now: Optional[datetime] = None,
    ) -> StudyPlan:
        updated = self._call("update_slot", student_id, day_index, slot_index, completed, now=now)
        plan_cache.set(student_id, updated)
        return updated

    def delete(self, student_id: str) -> bool:
        plan_cache.invalidate(student_id)
        return self._call("delete", student_id)


progress_store = ProgressStore()
plan_store = PlanStore()

__all__ = [
    "DATA_DIR",
    "PlanStore",
    "ProgressStore",
    "plan_store",
    "progress_store",
]
