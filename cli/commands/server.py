# AssetGen - Asset Generation Gateway
# Copyright (C) 2026 AssetGen Authors
# SPDX-License-Identifier: Apache-2.0

"""CLI subcommand running the MCP stdio server."""

from __future__ import annotations

import argparse
import asyncio
import logging

logger = logging.getLogger("assetgen")


def cmd_serve(args: argparse.Namespace) -> None:
    """Serve MCP over stdio until the client disconnects."""
    from assetgen.mcp.server import main

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("MCP server interrupted")
