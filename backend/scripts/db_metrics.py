"""Emit a one-off JSON snapshot of planner database health.

The payload carries the connection pool counters, row counts for every
planner table, and audit-event totals grouped by event type.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import func, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from study_planner.db.base import Base
from study_planner.db.models import PersistenceAuditEventModel
from study_planner.db.monitoring import get_pool_snapshot
from study_planner.db.session import get_engine

LOGGER = logging.getLogger("study_planner.db_metrics")


def collect_metrics(engine: Engine) -> Dict[str, Any]:
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))
    with Session(engine) as session:
        table_counts = {
            table.name: session.execute(select(func.count()).select_from(table)).scalar_one()
            for table in Base.metadata.sorted_tables
        }
        audit_rows = session.execute(
            select(PersistenceAuditEventModel.event_type, func.count())
            .group_by(PersistenceAuditEventModel.event_type)
            .order_by(PersistenceAuditEventModel.event_type)
        ).all()
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "pool": get_pool_snapshot(engine),
        "tables": table_counts,
        "audit_events": {event_type: count for event_type, count in audit_rows},
    }


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    try:
        payload = collect_metrics(get_engine())
    except (SQLAlchemyError, RuntimeError) as exc:
        LOGGER.exception("Failed to collect database metrics: %s", exc)
        return 1
    print(json.dumps(payload))
    return 0


if __name__ == "__main__":
    sys.exit(main())
