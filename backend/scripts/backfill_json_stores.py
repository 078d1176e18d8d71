from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Dict

from pydantic import ValidationError

from study_planner.db.session import init_db, session_scope
from study_planner.progress import ProgressHistory
from study_planner.repositories.progress import progress_repository
from study_planner.repositories.study_plans import study_plans
from study_planner.stores import DATA_DIR, PLANS_FILENAME, PROGRESS_FILENAME
from study_planner.study_plan import StudyPlan


logger = logging.getLogger("backfill")


def _load_json(path: Path) -> Dict[str, object] | list[object]:
    with path.open(encoding="utf-8") as handle:
        return json.load(handle)


def backfill_progress(path: Path) -> int:
    if not path.exists():
        logger.info("No legacy progress found at %s", path)
        return 0
    payload = _load_json(path)
    records = payload.values() if isinstance(payload, dict) else payload
    imported = 0
    with session_scope() as session:
        for entry in records:
            try:
                history = ProgressHistory.model_validate(entry)
            except ValidationError as exc:
                logger.warning("Skipping invalid progress payload: %s", exc)
                continue
            progress_repository.upsert(session, history)
            imported += 1
    logger.info("Imported %d progress histories", imported)
    return imported


def backfill_plans(path: Path) -> int:
    if not path.exists():
        logger.info("No legacy study plans found at %s", path)
        return 0
    payload = _load_json(path)
    records = payload.values() if isinstance(payload, dict) else payload
    imported = 0
    with session_scope() as session:
        for entry in records:
            try:
                plan = StudyPlan.model_validate(entry)
            except ValidationError as exc:
                logger.warning("Skipping invalid study plan payload: %s", exc)
                continue
            study_plans.save(session, plan)
            imported += 1
    logger.info("Imported %d study plans", imported)
    return imported


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Backfill legacy JSON planner stores into the database.")
    parser.add_argument("--progress", type=Path, default=DATA_DIR / PROGRESS_FILENAME)
    parser.add_argument("--plans", type=Path, default=DATA_DIR / PLANS_FILENAME)
    return parser.parse_args()


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    args = parse_args()
    init_db()
    total_progress = backfill_progress(args.progress)
    total_plans = backfill_plans(args.plans)
    logger.info("Backfill completed: %d progress histories, %d study plans", total_progress, total_plans)


if __name__ == "__main__":
    main()
