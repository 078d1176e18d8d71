from __future__ import annotations

import json

from scripts import db_metrics
from scripts.db_metrics import collect_metrics
from study_planner.planner_service import generate_plan_for_student, mark_slot_complete

from conftest import NOW


def test_collect_metrics_counts_rows_and_audit_events(planner_db) -> None:
    generate_plan_for_student("student-1", now=NOW, bootstrap_missing=True)
    mark_slot_complete("student-1", 0, 0, True)

    metrics = collect_metrics(planner_db)

    assert metrics["tables"]["study_plans"] == 1
    assert metrics["tables"]["study_plan_slots"] == 12
    assert metrics["tables"]["student_progress"] == 0
    assert metrics["audit_events"]["study_plan_saved"] == 2
    assert sum(metrics["audit_events"].values()) == metrics["tables"]["persistence_audit_events"]
    assert metrics["pool"]["connects"] >= 1


def test_main_prints_json_snapshot(planner_db, capsys) -> None:
    assert db_metrics.main() == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["tables"]["reflections"] == 0
    assert payload["audit_events"] == {}


def test_main_reports_failure(monkeypatch) -> None:
    def raise_runtime_error():
        raise RuntimeError("missing database url")

    monkeypatch.setattr(db_metrics, "get_engine", raise_runtime_error)

    assert db_metrics.main() == 1
