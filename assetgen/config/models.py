# AssetGen - Asset Generation Gateway
# Copyright (C) 2026 AssetGen Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of AssetGen, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""``config.json`` schema and its cached loader.

The file lives in the data directory and every section is optional.
:func:`load_config` re-reads it only when its mtime moves, so a running
MCP server picks up edits without a restart.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ValidationError as PydanticValidationError, field_validator

from assetgen.exceptions import ConfigValidationError

logger = logging.getLogger("assetgen.config")

CONFIG_FILE_NAME = "config.json"


# ── Sections ─────────────────────────────────────────────────


class SystemConfig(BaseModel):
    log_level: str = "INFO"
    json_log_file: bool = True


class CredentialConfig(BaseModel):
    """One provider's secrets: the primary ``api_key`` plus named extras."""

    api_key: str = ""
    keys: dict[str, str] = {}


class Model3DConfig(BaseModel):
    """Defaults for asynchronous 3D generation jobs."""

    default_model: str = "hunyuan3d"
    reference_model: str = "gemini"
    poll_interval: float = 5.0  # seconds between create-task-then-poll checks
    max_poll_attempts: int = 120

    @field_validator("poll_interval")
    @classmethod
    def _positive_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("poll_interval must be positive")
        return v

    @field_validator("max_poll_attempts")
    @classmethod
    def _positive_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_poll_attempts must be at least 1")
        return v


class ImageDefaultsConfig(BaseModel):
    """Provider defaults for the standalone image tools."""

    openai_size: str = "1024x1024"
    gemini_model: str = "gemini-2.5-flash-image"
    falai_image_size: str = "square_hd"
    falai_num_inference_steps: int = 20
    falai_guidance_scale: float = 7.5


class AssetGenConfig(BaseModel):
    system: SystemConfig = SystemConfig()
    credentials: dict[str, CredentialConfig] = {}
    model3d: Model3DConfig = Model3DConfig()
    images: ImageDefaultsConfig = ImageDefaultsConfig()
    allowed_tools: list[str] = []  # empty = every tool exposed


# ── Cache ────────────────────────────────────────────────────


@dataclass
class _Cached:
    path: Path
    mtime: float
    config: AssetGenConfig


_cache: _Cached | None = None


def invalidate_cache() -> None:
    global _cache
    _cache = None


def _mtime(path: Path) -> float:
    try:
        return path.stat().st_mtime
    except OSError:
        return 0.0


def get_config_path(data_dir: Path | None = None) -> Path:
    if data_dir is None:
        from assetgen.paths import get_data_dir

        data_dir = get_data_dir()
    return data_dir / CONFIG_FILE_NAME


# ── Load / Save ──────────────────────────────────────────────


def _parse(path: Path) -> AssetGenConfig:
    if not path.is_file():
        logger.debug("No config at %s; using defaults", path)
        return AssetGenConfig()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigValidationError(f"Invalid JSON in {path}: {exc}") from exc
    try:
        return AssetGenConfig.model_validate(data)
    except PydanticValidationError as exc:
        raise ConfigValidationError(f"Invalid config in {path}: {exc}") from exc


def load_config(path: Path | None = None) -> AssetGenConfig:
    """Return the configuration at *path* (default: data dir ``config.json``).

    A missing file yields defaults.  The parsed result is reused while the
    file's mtime is unchanged.

    Raises:
        ConfigValidationError: The file is not JSON or fails the schema.
    """
    global _cache
    path = path or get_config_path()
    mtime = _mtime(path)
    if _cache is not None and _cache.path == path and _cache.mtime == mtime:
        return _cache.config

    if _cache is not None and _cache.path == path:
        logger.debug("Config %s changed on disk; reloading", path)
    try:
        config = _parse(path)
    except ConfigValidationError as exc:
        logger.error("%s", exc)
        raise

    _cache = _Cached(path, mtime, config)
    return config


def save_config(config: AssetGenConfig, path: Path | None = None) -> None:
    """Write *config* atomically as indented JSON, readable by the owner only."""
    global _cache
    path = path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    text = json.dumps(config.model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n"

    # mkstemp creates the file with mode 0600.
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".config-", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise

    logger.debug("Config saved to %s", path)
    _cache = _Cached(path, _mtime(path), config)
