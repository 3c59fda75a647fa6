from __future__ import annotations
# AssetGen - Asset Generation Gateway
# Copyright (C) 2026 AssetGen Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of AssetGen, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Timezone-aware datetime helpers.

Status files are read by pollers in arbitrary timezones, so every
timestamp is UTC with a trailing ``Z``.
"""

from datetime import datetime, timezone


def now_utc() -> datetime:
    """Return current time as timezone-aware UTC datetime."""
    return datetime.now(tz=timezone.utc)


def now_iso() -> str:
    """Return current time as ISO8601 string, e.g. ``2026-01-08T13:20:00.000Z``."""
    return now_utc().isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: str) -> datetime:
    """Parse an ISO8601 string (``Z`` suffix accepted) into an aware datetime."""
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt
