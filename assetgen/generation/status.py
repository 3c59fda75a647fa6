# AssetGen - Asset Generation Gateway
# Copyright (C) 2026 AssetGen Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of AssetGen, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Job status records.

One record per generation job, shaped for external pollers::

    {
      "id": "cube_status",
      "status": "processing",
      "progress": 40,
      "message": "Calling hunyuan3d single API...",
      "startTime": "2026-01-01T00:00:00.000Z",
      "logs": ["[2026-01-01T00:00:00.000Z] Starting 3D generation ..."]
    }

``endTime``, ``result`` and ``error`` are added when the job ends.  Keys
that were never set are absent rather than ``null``.

A record only moves forward: ``pending -> processing -> completed|failed``
with non-decreasing progress, except that entering ``failed`` resets
progress to 0.  :class:`JobStatusSink` enforces this on every update.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Any

from assetgen.exceptions import StatusTransitionError
from assetgen.time_utils import now_iso

logger = logging.getLogger("assetgen.status")


# ── JobStatus ────────────────────────────────────────────────


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


_ALLOWED_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.PENDING, JobStatus.PROCESSING, JobStatus.FAILED}),
    JobStatus.PROCESSING: frozenset(
        {JobStatus.PROCESSING, JobStatus.COMPLETED, JobStatus.FAILED},
    ),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}


def check_transition(record: dict[str, Any], fields: dict[str, Any]) -> None:
    """Raise :class:`StatusTransitionError` if applying *fields* to *record* moves it backwards."""
    if not record:
        return
    current = JobStatus(record.get("status", JobStatus.PENDING.value))
    target = JobStatus(fields.get("status", current.value))

    if current.is_terminal:
        raise StatusTransitionError(
            f"Job {record.get('id')} is already {current.value}; refusing update"
        )
    if target not in _ALLOWED_TRANSITIONS[current]:
        raise StatusTransitionError(
            f"Job {record.get('id')}: {current.value} -> {target.value} is not allowed"
        )

    if "progress" in fields and target != JobStatus.FAILED:
        old = int(record.get("progress", 0))
        new = int(fields["progress"])
        if new < old:
            raise StatusTransitionError(
                f"Job {record.get('id')}: progress may not decrease ({old} -> {new})"
            )


def format_log_line(message: str) -> str:
    return f"[{now_iso()}] {message}"


# ── JobStatusSink ────────────────────────────────────────────


class JobStatusSink(ABC):
    """Where a job publishes its status record.

    Subclasses only provide whole-record load and store; merging,
    transition checks and log formatting live here.
    """

    @property
    @abstractmethod
    def job_id(self) -> str: ...

    @abstractmethod
    def _load(self) -> dict[str, Any]: ...

    @abstractmethod
    def _store(self, record: dict[str, Any]) -> None: ...

    def read(self) -> dict[str, Any]:
        """Return a copy of the current record (empty dict before :meth:`begin`)."""
        return copy.deepcopy(self._load())

    def begin(self, message: str) -> dict[str, Any]:
        """Write a fresh ``pending`` record, replacing whatever was there."""
        record = {
            "id": self.job_id,
            "status": JobStatus.PENDING.value,
            "progress": 0,
            "message": message,
            "startTime": now_iso(),
            "logs": [],
        }
        self._store(record)
        return copy.deepcopy(record)

    def update(self, **fields: Any) -> dict[str, Any]:
        """Merge *fields* into the record.

        ``None`` values are skipped so absent keys stay absent.

        Raises:
            StatusTransitionError: Status regression, update of a terminal
                record, or decreasing progress.
        """
        fields = {k: v for k, v in fields.items() if v is not None}
        if isinstance(fields.get("status"), JobStatus):
            fields["status"] = fields["status"].value

        record = self._load()
        check_transition(record, fields)
        record.update(fields)
        self._store(record)
        return copy.deepcopy(record)

    def append_log(self, message: str) -> None:
        """Append a timestamped line; allowed in any state, including terminal ones."""
        record = self._load()
        record.setdefault("logs", []).append(format_log_line(message))
        self._store(record)


class FileStatusSink(JobStatusSink):
    """Status record stored as a JSON file; the record id is the file stem.

    Each store replaces the file via a temp file and ``os.replace`` so a
    concurrent reader sees either the previous or the new document.
    Write failures are logged and the last good record is kept in memory,
    so a full disk cannot abort the job that is reporting into it.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._cached: dict[str, Any] = {}

    @property
    def job_id(self) -> str:
        return self.path.stem

    def _load(self) -> dict[str, Any]:
        record = read_status(self.path)
        if record is None:
            return copy.deepcopy(self._cached)
        return record

    def _store(self, record: dict[str, Any]) -> None:
        self._cached = copy.deepcopy(record)
        try:
            _atomic_write_json(self.path, record)
        except OSError as exc:
            logger.error("Failed to write status file %s: %s", self.path, exc)


class MemoryStatusSink(JobStatusSink):
    """In-memory status record; keeps every stored snapshot in ``history``."""

    def __init__(self, job_id: str = "job") -> None:
        self._job_id = job_id
        self._record: dict[str, Any] = {}
        self.history: list[dict[str, Any]] = []

    @property
    def job_id(self) -> str:
        return self._job_id

    def _load(self) -> dict[str, Any]:
        return copy.deepcopy(self._record)

    def _store(self, record: dict[str, Any]) -> None:
        self._record = copy.deepcopy(record)
        self.history.append(copy.deepcopy(record))


# ── File helpers ─────────────────────────────────────────────


def _atomic_write_json(path: Path, data: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(
        dir=path.parent, suffix=".tmp", prefix=f".{path.name}.",
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(json.dumps(data, ensure_ascii=False, indent=2) + "\n")
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            logger.debug("Failed to unlink temp file %s", tmp_path, exc_info=True)
        raise


def read_status(path: str | Path) -> dict[str, Any] | None:
    """Read a status file; ``None`` when it is missing or not a JSON object."""
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as exc:
        logger.debug("Unreadable status file %s: %s", p, exc)
        return None
    return data if isinstance(data, dict) else None
