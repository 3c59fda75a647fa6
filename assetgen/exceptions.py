from __future__ import annotations
# AssetGen - Asset Generation Gateway
# Copyright (C) 2026 AssetGen Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of AssetGen, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Unified exception hierarchy for AssetGen.

All domain-specific exceptions derive from :class:`AssetGenError`,
enabling callers to catch the entire family with a single clause::

    try:
        ...
    except AssetGenError as e:
        logger.error("Domain error: %s", e)
"""


class AssetGenError(Exception):
    """Base exception for all AssetGen errors."""


# ── Validation ───────────────────────────────────────────────


class ValidationError(AssetGenError):
    """Malformed or incompatible generation options."""


class ConfigurationError(ValidationError):
    """Model/variant combination rejected by the compatibility table."""

    def __init__(self, message: str, *, model: str | None = None) -> None:
        super().__init__(message)
        self.model = model


# ── Backend ──────────────────────────────────────────────────


class BackendError(AssetGenError):
    """A generation provider returned an error or an unexpected response.

    Carries the provider name and the raw error detail so the failure
    can be diagnosed from the status file alone.
    """

    def __init__(self, provider: str, detail: str) -> None:
        super().__init__(f"{provider} error: {detail}")
        self.provider = provider
        self.detail = detail


class GenerationTimeoutError(AssetGenError, TimeoutError):
    """A create-task-then-poll backend never reached a terminal state."""


# ── Status Store ─────────────────────────────────────────────


class StatusStoreError(AssetGenError):
    """Job status record errors."""


class StatusTransitionError(StatusStoreError):
    """Update would move a job backwards (status regression or progress decrease)."""


# ── Tool ─────────────────────────────────────────────────────


class ToolError(AssetGenError):
    """Tool execution errors."""


class ToolConfigError(ToolError):
    """Tool configuration incomplete (missing env var / credential)."""


class ToolNotFoundError(ToolError):
    """Requested tool not found or not available."""


# ── Configuration ────────────────────────────────────────────


class ConfigError(AssetGenError):
    """Configuration errors."""


class ConfigValidationError(ConfigError):
    """Configuration validation failure."""
