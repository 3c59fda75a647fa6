# AssetGen - Asset Generation Gateway
# Copyright (C) 2026 AssetGen Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of AssetGen, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Async compatibility helpers for the synchronous provider clients."""
from __future__ import annotations

import asyncio
import contextvars
from functools import partial
from typing import Any, Callable, TypeVar

T = TypeVar("T")


async def run_sync(fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a synchronous function in the default thread-pool executor.

    Provider clients use blocking ``httpx`` calls and ``time.sleep``
    polling; running them here keeps one job from stalling the event
    loop for every other job and for the MCP server itself.

    The caller's contextvars (including the bound ``job_id``) are copied
    into the worker thread.
    """
    loop = asyncio.get_running_loop()
    ctx = contextvars.copy_context()
    return await loop.run_in_executor(None, ctx.run, partial(fn, *args, **kwargs))
