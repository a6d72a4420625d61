"""Tests for the metrics and session logging modules."""

from __future__ import annotations

import json
import os
import time
from unittest.mock import patch

import pytest

from llm_edit import logging as edit_logging
from llm_edit.metrics import (
    MAX_EVENTS,
    THRESHOLDS,
    MetricEvent,
    clear_metrics,
    get_health_indicator,
    get_metrics,
    get_summary,
    log_metric,
)


@pytest.fixture
def temp_metrics_file(tmp_path):
    """Use a temporary metrics file for testing."""
    metrics_file = tmp_path / "metrics.json"
    with patch("llm_edit.metrics.METRICS_FILE", metrics_file):
        yield metrics_file


@pytest.fixture
def temp_log_dir(tmp_path):
    """Use a temporary directory for the failure log and sessions."""
    base = tmp_path / "logs"
    with patch.object(edit_logging, "LLM_EDIT_DIR", base), patch.object(
        edit_logging, "FAILURES_LOG", base / "failures.log"
    ), patch.object(edit_logging, "SESSIONS_DIR", base / "sessions"):
        yield base


# ─────────────────────────────────────────────────────────────
# Metrics Tests
# ─────────────────────────────────────────────────────────────


class TestMetricEvent:
    """Test MetricEvent dataclass."""

    def test_default_values(self):
        """Test that MetricEvent has sensible defaults."""
        event = MetricEvent()
        assert event.task_type == "literal"
        assert event.success is True
        assert event.applied_edits == 0
        assert event.match_stage is None
        assert event.id is not None
        assert event.timestamp is not None

    def test_custom_values(self):
        """Test MetricEvent with custom values."""
        event = MetricEvent(
            task_type="sketch",
            file="src/app.py",
            duration_ms=15,
            success=False,
            total_edits=3,
            error_kind="ambiguous_match",
        )
        assert event.task_type == "sketch"
        assert event.file == "src/app.py"
        assert event.total_edits == 3
        assert event.error_kind == "ambiguous_match"


class TestLogMetric:
    """Test log_metric function."""

    def test_log_metric_creates_file(self, temp_metrics_file):
        """Test that log_metric creates the metrics file."""
        log_metric(task_type="literal", duration_ms=10)
        assert temp_metrics_file.exists()

    def test_log_metric_appends_event(self, temp_metrics_file):
        """Test that log_metric appends events."""
        log_metric(task_type="literal")
        log_metric(task_type="sketch")

        events = json.loads(temp_metrics_file.read_text())
        assert len(events) == 2
        assert events[0]["task_type"] == "literal"
        assert events[1]["task_type"] == "sketch"

    def test_log_metric_truncates_file(self, temp_metrics_file):
        """Test that long file paths are truncated."""
        log_metric(file="x" * 300)

        events = json.loads(temp_metrics_file.read_text())
        assert len(events[0]["file"]) == 200

    def test_log_metric_truncates_error(self, temp_metrics_file):
        """Test that long errors are truncated."""
        log_metric(error="e" * 600)

        events = json.loads(temp_metrics_file.read_text())
        assert len(events[0]["error"]) == 500

    def test_log_metric_prunes(self, temp_metrics_file):
        """Test that old events are pruned past MAX_EVENTS."""
        temp_metrics_file.write_text(json.dumps([{"file": str(i)} for i in range(MAX_EVENTS)]))
        log_metric(file="newest")

        events = json.loads(temp_metrics_file.read_text())
        assert len(events) < MAX_EVENTS
        assert events[-1]["file"] == "newest"

    def test_corrupt_file_ignored(self, temp_metrics_file):
        temp_metrics_file.write_text("{not json")
        assert get_metrics() == []


class TestGetMetrics:
    """Test get_metrics function."""

    def test_get_metrics_empty(self, temp_metrics_file):
        assert get_metrics() == []

    def test_get_metrics_newest_first(self, temp_metrics_file):
        """Test that events are returned newest first."""
        log_metric(file="first")
        log_metric(file="second")

        events = get_metrics()
        assert events[0]["file"] == "second"
        assert events[1]["file"] == "first"

    def test_filter_by_task_type(self, temp_metrics_file):
        log_metric(task_type="literal")
        log_metric(task_type="sketch")
        log_metric(task_type="literal")

        events = get_metrics(task_type="literal")
        assert len(events) == 2
        assert all(e["task_type"] == "literal" for e in events)

    def test_filter_by_stage_and_kind(self, temp_metrics_file):
        log_metric(match_stage="exact")
        log_metric(match_stage="fuzzy")
        log_metric(success=False, error_kind="no_match")

        assert len(get_metrics(match_stage="fuzzy")) == 1
        assert len(get_metrics(error_kind="no_match")) == 1

    def test_filter_by_outcome(self, temp_metrics_file):
        log_metric(success=True)
        log_metric(success=False)
        log_metric(success=True)

        assert len(get_metrics(failures_only=True)) == 1
        assert len(get_metrics(success_only=True)) == 2

    def test_get_metrics_limit(self, temp_metrics_file):
        for i in range(10):
            log_metric(file=f"f{i}.py")

        assert len(get_metrics(limit=3)) == 3


class TestGetSummary:
    """Test get_summary function."""

    def test_summary_empty(self, temp_metrics_file):
        summary = get_summary()
        assert summary["total"] == 0
        assert summary["success_rate"] == 0.0
        assert summary["non_exact_rate"] is None

    def test_summary_success_rate(self, temp_metrics_file):
        log_metric(success=True)
        log_metric(success=True)
        log_metric(success=False)
        log_metric(success=True)

        summary = get_summary()
        assert summary["success_rate"] == 0.75
        assert summary["success_count"] == 3
        assert summary["today_count"] == 4

    def test_summary_by_task_type(self, temp_metrics_file):
        log_metric(task_type="literal", success=True)
        log_metric(task_type="literal", success=True)
        log_metric(task_type="sketch", success=False)

        summary = get_summary()
        assert summary["by_task_type"]["literal"]["total"] == 2
        assert summary["by_task_type"]["literal"]["success_rate"] == 1.0
        assert summary["by_task_type"]["sketch"]["success_rate"] == 0.0

    def test_summary_avg_duration(self, temp_metrics_file):
        log_metric(duration_ms=10)
        log_metric(duration_ms=20)
        log_metric(duration_ms=30)

        assert get_summary()["avg_duration_ms"] == 20

    def test_summary_stages_and_errors(self, temp_metrics_file):
        log_metric(match_stage="exact")
        log_metric(match_stage="exact")
        log_metric(match_stage="exact")
        log_metric(match_stage="trimmed")
        log_metric(success=False, error_kind="ambiguous_match")

        summary = get_summary()
        assert summary["by_stage"] == {"exact": 3, "trimmed": 1}
        assert summary["by_error_kind"] == {"ambiguous_match": 1}
        assert summary["non_exact_rate"] == 0.25


class TestGetHealthIndicator:
    """Test get_health_indicator function."""

    def test_success_rate(self):
        assert get_health_indicator("success_rate", 0.95) == "good"
        assert get_health_indicator("success_rate", 0.80) == "okay"
        assert get_health_indicator("success_rate", 0.50) == "bad"

    def test_duration_lower_is_better(self):
        assert get_health_indicator("avg_duration_ms", 20) == "good"
        assert get_health_indicator("avg_duration_ms", 100) == "okay"
        assert get_health_indicator("avg_duration_ms", 1000) == "bad"

    def test_non_exact_rate_lower_is_better(self):
        assert get_health_indicator("non_exact_rate", 0.05) == "good"
        assert get_health_indicator("non_exact_rate", 0.5) == "bad"

    def test_none_value(self):
        assert get_health_indicator("success_rate", None) == "unknown"

    def test_unknown_metric(self):
        assert get_health_indicator("unknown_metric", 0.5) == "unknown"

    def test_thresholds_defined(self):
        for metric in ("success_rate", "avg_duration_ms", "non_exact_rate"):
            assert {"good", "okay"} <= set(THRESHOLDS[metric])

    def test_clear_metrics(self, temp_metrics_file):
        log_metric()
        assert temp_metrics_file.exists()

        clear_metrics()
        assert not temp_metrics_file.exists()


# ─────────────────────────────────────────────────────────────
# Session Log Tests
# ─────────────────────────────────────────────────────────────


class TestSessionLog:
    """Test failure and success session logging."""

    def test_log_failure(self, temp_log_dir):
        session = edit_logging.log_failure(
            "src/app.py",
            "Edit 1: Found 2 matches\nat lines 1-1, 3-3",
            error_kind="ambiguous_match",
            mode="literal",
            original="x = 1\n",
            hunk_index=1,
        )

        line = edit_logging.get_recent_failures()[-1]
        assert "| src/app.py | FAIL | ambiguous_match | Edit 1: Found 2 matches at lines" in line

        data = edit_logging.get_session(session.stem)
        assert data["status"] == "failed"
        assert data["error_kind"] == "ambiguous_match"
        assert data["hunk_index"] == 1
        assert data["original"] == "x = 1\n"

    def test_failure_without_kind(self, temp_log_dir):
        edit_logging.log_failure("a.py", "Failed to read file")
        assert "| FAIL | error |" in edit_logging.get_recent_failures()[0]

    def test_log_success(self, temp_log_dir):
        session = edit_logging.log_success("a.py", mode="sketch", extra={"match_stage": "exact"})
        data = edit_logging.get_session(session.stem)
        assert data["status"] == "success"
        assert data["mode"] == "sketch"
        assert data["match_stage"] == "exact"

    def test_missing_session(self, temp_log_dir):
        assert edit_logging.get_session("nope") is None
        assert edit_logging.get_recent_failures() == []

    def test_clear_old_sessions(self, temp_log_dir):
        old = edit_logging.log_success("old.py")
        edit_logging.log_success("new.py")
        week_ago = time.time() - 8 * 24 * 60 * 60
        os.utime(old, (week_ago, week_ago))

        assert edit_logging.clear_old_sessions(days=7) == 1
        assert not old.exists()
