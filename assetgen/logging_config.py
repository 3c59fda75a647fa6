# AssetGen - Asset Generation Gateway
# Copyright (C) 2026 AssetGen Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of AssetGen, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Logging setup for AssetGen processes.

Modules log through ``logging.getLogger("assetgen.xxx")``; structlog
renders every record, whether it came from stdlib or structlog, so the
job id bound with :func:`job_context` shows up on all of them.

Console output is written to stderr.  Under the MCP stdio transport,
stdout belongs to the JSON-RPC stream.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import orjson
import structlog

LOG_FILE_NAME = "assetgen.log"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

_QUIET_LOGGERS = ("httpx", "httpcore", "mcp")


# ── Job context ────────────────────────────────────────────────


@contextmanager
def job_context(job_id: str) -> Iterator[None]:
    """Tag every record emitted inside the block with *job_id*."""
    with structlog.contextvars.bound_contextvars(job_id=job_id):
        yield


def get_job_id() -> str:
    return structlog.contextvars.get_contextvars().get("job_id", "-")


# ── Formatters ─────────────────────────────────────────────────


def _pre_chain() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def _dumps(obj: object, **_kw: Any) -> str:
    return orjson.dumps(obj, default=str).decode("utf-8")


def _formatter(*, as_json: bool) -> structlog.stdlib.ProcessorFormatter:
    renderer = (
        structlog.processors.JSONRenderer(serializer=_dumps)
        if as_json
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    return structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        foreign_pre_chain=_pre_chain(),
    )


def _file_handler(log_dir: Path, *, as_json: bool) -> RotatingFileHandler:
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_dir / LOG_FILE_NAME,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    handler.setFormatter(_formatter(as_json=as_json))
    return handler


# ── Setup ──────────────────────────────────────────────────────


def setup_logging(
    level: str = "INFO",
    log_dir: Path | None = None,
    json_file: bool = True,
) -> None:
    """Route all logging through structlog; replaces existing root handlers.

    Args:
        level: Root level name.  Unknown names fall back to INFO.
        log_dir: Where ``assetgen.log`` rotates.  ``None`` logs to stderr only.
        json_file: Write the file as JSON lines instead of console text.
    """
    structlog.configure(
        processors=[*_pre_chain(), structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(_formatter(as_json=False))
    root.addHandler(console)

    if log_dir is not None:
        root.addHandler(_file_handler(log_dir, as_json=json_file))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
