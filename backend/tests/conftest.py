from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Iterator, List

import pytest

os.environ.setdefault("STUDY_PLANNER_DATABASE_URL", "sqlite://")
os.environ.setdefault("STUDY_PLANNER_PERSISTENCE_MODE", "database")

from study_planner.cache import plan_cache  # noqa: E402
from study_planner.config import get_settings  # noqa: E402
from study_planner.db.session import dispose_engine, get_engine, init_db  # noqa: E402
from study_planner.telemetry import TelemetryEvent, register_listener, unregister_listener  # noqa: E402

# Wednesday; the plan week starts on 2024-03-11.
NOW = datetime(2024, 3, 13, 12, 0, tzinfo=timezone.utc)


def days_ago(days: float, *, hour: int | None = None) -> datetime:
    moment = NOW - timedelta(days=days)
    if hour is not None:
        moment = moment.replace(hour=hour, minute=0)
    return moment


@pytest.fixture
def planner_db(tmp_path, monkeypatch):
    monkeypatch.setenv("STUDY_PLANNER_DATABASE_URL", f"sqlite:///{tmp_path / 'planner.db'}")
    get_settings.cache_clear()
    dispose_engine()
    init_db()
    plan_cache.clear()
    yield get_engine()
    dispose_engine()
    plan_cache.clear()
    get_settings.cache_clear()


@pytest.fixture
def telemetry_events() -> Iterator[List[TelemetryEvent]]:
    events: List[TelemetryEvent] = []
    register_listener(events.append)
    yield events
    unregister_listener(events.append)
