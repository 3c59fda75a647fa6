"""Unit tests for job status records and their sinks."""
# AssetGen - Asset Generation Gateway
# Copyright (C) 2026 AssetGen Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from assetgen.exceptions import StatusStoreError, StatusTransitionError
from assetgen.generation.status import (
    FileStatusSink,
    JobStatus,
    MemoryStatusSink,
    read_status,
)


# ── Transitions ──────────────────────────────────────────────


class TestTransitions:
    def test_begin_writes_pending_record(self):
        sink = MemoryStatusSink("cube_status")
        record = sink.begin("Initializing...")
        assert record["id"] == "cube_status"
        assert record["status"] == "pending"
        assert record["progress"] == 0
        assert record["message"] == "Initializing..."
        assert record["startTime"].endswith("Z")
        assert record["logs"] == []
        assert "endTime" not in record
        assert "error" not in record

    def test_forward_path(self):
        sink = MemoryStatusSink()
        sink.begin("start")
        sink.update(status=JobStatus.PROCESSING, progress=10, message="a")
        sink.update(status=JobStatus.PROCESSING, progress=50, message="b")
        record = sink.update(status=JobStatus.COMPLETED, progress=100, result={"ok": True})
        assert record["status"] == "completed"
        assert record["result"] == {"ok": True}

    def test_progress_may_not_decrease(self):
        sink = MemoryStatusSink()
        sink.begin("start")
        sink.update(status=JobStatus.PROCESSING, progress=40)
        with pytest.raises(StatusTransitionError, match="progress may not decrease"):
            sink.update(progress=30)
        assert sink.read()["progress"] == 40

    def test_failed_resets_progress(self):
        sink = MemoryStatusSink()
        sink.begin("start")
        sink.update(status=JobStatus.PROCESSING, progress=50)
        record = sink.update(status=JobStatus.FAILED, progress=0, error="boom")
        assert record["status"] == "failed"
        assert record["progress"] == 0

    def test_pending_can_fail_directly(self):
        sink = MemoryStatusSink()
        sink.begin("start")
        assert sink.update(status="failed", progress=0)["status"] == "failed"

    def test_processing_cannot_return_to_pending(self):
        sink = MemoryStatusSink()
        sink.begin("start")
        sink.update(status=JobStatus.PROCESSING, progress=5)
        with pytest.raises(StatusTransitionError, match="not allowed"):
            sink.update(status=JobStatus.PENDING)

    def test_pending_cannot_complete_directly(self):
        sink = MemoryStatusSink()
        sink.begin("start")
        with pytest.raises(StatusTransitionError):
            sink.update(status=JobStatus.COMPLETED, progress=100)

    @pytest.mark.parametrize("terminal", [JobStatus.COMPLETED, JobStatus.FAILED])
    def test_terminal_record_rejects_updates(self, terminal):
        sink = MemoryStatusSink()
        sink.begin("start")
        sink.update(status=JobStatus.PROCESSING, progress=10)
        sink.update(status=terminal, progress=100 if terminal == JobStatus.COMPLETED else 0)
        with pytest.raises(StatusTransitionError, match="already"):
            sink.update(message="late")

    def test_transition_error_is_store_error(self):
        assert issubclass(StatusTransitionError, StatusStoreError)

    def test_logs_allowed_after_terminal(self):
        sink = MemoryStatusSink()
        sink.begin("start")
        sink.update(status=JobStatus.FAILED, progress=0)
        sink.append_log("Cleaned up: ref.png")
        logs = sink.read()["logs"]
        assert len(logs) == 1
        assert logs[0].startswith("[") and logs[0].endswith("] Cleaned up: ref.png")

    def test_none_fields_stay_absent(self):
        sink = MemoryStatusSink()
        sink.begin("start")
        record = sink.update(status=JobStatus.PROCESSING, progress=5, error=None)
        assert "error" not in record


# ── MemoryStatusSink ─────────────────────────────────────────


class TestMemoryStatusSink:
    def test_history_snapshots(self):
        sink = MemoryStatusSink()
        sink.begin("start")
        sink.update(status=JobStatus.PROCESSING, progress=5)
        sink.update(status=JobStatus.PROCESSING, progress=10)
        assert [h["progress"] for h in sink.history] == [0, 5, 10]

    def test_read_returns_copy(self):
        sink = MemoryStatusSink()
        sink.begin("start")
        sink.read()["logs"].append("tampered")
        assert sink.read()["logs"] == []


# ── FileStatusSink ───────────────────────────────────────────


class TestFileStatusSink:
    def test_job_id_is_file_stem(self, tmp_path):
        assert FileStatusSink(tmp_path / "cube_status.json").job_id == "cube_status"

    def test_writes_json_document(self, tmp_path):
        path = tmp_path / "jobs" / "cube_status.json"
        sink = FileStatusSink(path)
        sink.begin("Initializing...")
        sink.update(status=JobStatus.PROCESSING, progress=10, message="Checking input images...")

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["status"] == "processing"
        assert data["progress"] == 10
        assert data["id"] == "cube_status"

    def test_no_temp_files_left(self, tmp_path):
        jobs = tmp_path / "jobs"
        path = jobs / "cube_status.json"
        sink = FileStatusSink(path)
        sink.begin("start")
        for progress in (5, 10, 20, 30):
            sink.update(status=JobStatus.PROCESSING, progress=progress)
        assert sorted(p.name for p in jobs.iterdir()) == ["cube_status.json"]

    def test_begin_replaces_existing_file(self, tmp_path):
        path = tmp_path / "cube_status.json"
        path.write_text(json.dumps({"status": "completed", "progress": 100}), encoding="utf-8")
        sink = FileStatusSink(path)
        sink.begin("again")
        assert read_status(path)["status"] == "pending"

    def test_write_failure_is_logged_not_raised(self, tmp_path, caplog):
        sink = FileStatusSink(tmp_path / "cube_status.json")
        with patch(
            "assetgen.generation.status._atomic_write_json",
            side_effect=OSError("disk full"),
        ):
            sink.begin("start")
            record = sink.update(status=JobStatus.PROCESSING, progress=5)
        assert record["progress"] == 5
        assert "disk full" in caplog.text

    def test_temp_file_removed_on_failure(self, tmp_path):
        jobs = tmp_path / "jobs"
        sink = FileStatusSink(jobs / "cube_status.json")
        with patch("assetgen.generation.status.os.replace", side_effect=OSError("nope")):
            sink.begin("start")
        assert list(jobs.iterdir()) == []


# ── read_status ──────────────────────────────────────────────


class TestReadStatus:
    def test_missing_file(self, tmp_path):
        assert read_status(tmp_path / "absent.json") is None

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "s.json"
        path.write_text("{not json", encoding="utf-8")
        assert read_status(path) is None

    def test_non_object_json(self, tmp_path):
        path = tmp_path / "s.json"
        path.write_text("[1, 2]", encoding="utf-8")
        assert read_status(path) is None

    def test_valid_record(self, tmp_path):
        path = tmp_path / "s.json"
        path.write_text('{"status": "pending", "progress": 0}', encoding="utf-8")
        assert read_status(path) == {"status": "pending", "progress": 0}
