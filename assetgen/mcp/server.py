# AssetGen - Asset Generation Gateway
# Copyright (C) 2026 AssetGen Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of AssetGen, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Stdio MCP server exposing the AssetGen tools.

Launched as ``assetgen serve`` or ``python -m assetgen.mcp.server``.

Image tools run synchronously in a worker thread.  ``image_to_3d_async``
only starts a background job and answers with the path of its status
file, because 3D generation takes far longer than an MCP client waits
for a tool result.

``ALLOWED_TOOLS`` (comma separated) or ``allowed_tools`` in config.json
restricts which tools are listed and callable.
"""

from __future__ import annotations

import asyncio
import importlib
import json
import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import (
    GetPromptResult,
    Prompt,
    PromptArgument,
    PromptMessage,
    TextContent,
    Tool,
)

from assetgen.exceptions import AssetGenError, ToolNotFoundError, ValidationError
from assetgen.generation.options import GenerationRequest
from assetgen.generation.orchestrator import default_status_path, get_default_manager
from assetgen.tools import TOOL_MODULES

logger = logging.getLogger("assetgen.mcp")

# ── MCP server instance ─────────────────────────────────
server = Server("assetgen")

ASYNC_MODEL3D_TOOL = "image_to_3d_async"


# ── Tool selection ───────────────────────────────────────


def _all_schemas() -> list[dict[str, Any]]:
    schemas: list[dict[str, Any]] = []
    for module_path in TOOL_MODULES.values():
        module = importlib.import_module(module_path)
        schemas.extend(module.get_tool_schemas())
    return schemas


def _find_dispatch(name: str) -> Callable[[str, dict[str, Any]], Any]:
    """Return the ``dispatch`` of the tool module whose schemas list *name*."""
    for module_path in TOOL_MODULES.values():
        module = importlib.import_module(module_path)
        if not hasattr(module, "dispatch"):
            continue
        if name in (s["name"] for s in module.get_tool_schemas()):
            return module.dispatch
    raise ToolNotFoundError(f"Unknown tool: {name}")


def allowed_tool_names() -> set[str] | None:
    """Names permitted by ``ALLOWED_TOOLS`` or config; ``None`` means no restriction."""
    env = os.environ.get("ALLOWED_TOOLS", "")
    if env.strip():
        return {t.strip() for t in env.split(",") if t.strip()}

    from assetgen.config import load_config

    configured = load_config().allowed_tools
    return set(configured) if configured else None


def build_mcp_tools() -> list[Tool]:
    """Convert provider tool schemas to MCP Tool objects, honouring the allow list."""
    allowed = allowed_tool_names()
    tools: list[Tool] = []
    for schema in _all_schemas():
        name = schema["name"]
        if allowed is not None and name not in allowed:
            continue
        tools.append(
            Tool(
                name=name,
                description=schema.get("description", ""),
                inputSchema=schema.get("input_schema", {"type": "object", "properties": {}}),
            )
        )
    if allowed:
        missing = allowed - {t.name for t in tools}
        if missing:
            logger.warning("ALLOWED_TOOLS names unknown tools: %s", ", ".join(sorted(missing)))
    return tools


def _error_payload(error_type: str, message: str) -> list[TextContent]:
    return [
        TextContent(
            type="text",
            text=json.dumps(
                {"status": "error", "error_type": error_type, "message": message},
                ensure_ascii=False,
            ),
        )
    ]


# ── Async 3D tool ────────────────────────────────────────


def async_started_message(status_path: str | Path) -> str:
    """Tool response telling the caller where and how to follow the job."""
    return f"""3D model generation started in background. Status file: {status_path}

STATUS FILE FORMAT:
The status file is a JSON file that updates in real-time with:
{{
  "id": "task_id",
  "status": "pending" | "processing" | "completed" | "failed",
  "progress": 0-100,
  "message": "Current status description",
  "startTime": "2026-01-08T13:20:00.000Z",
  "endTime": "2026-01-08T13:25:30.000Z",
  "result": {{ /* generation result when completed */ }},
  "error": "Error message (if failed)",
  "logs": [
    "[2026-01-08T13:20:00.000Z] Starting 3D generation...",
    "[2026-01-08T13:20:05.000Z] Generated 3 reference images",
    "..."
  ]
}}

MONITORING USAGE:
1. Read the status file periodically and parse it as JSON: {status_path}
2. Check status field for completion state
3. When status == "completed": use result.savedPaths for generated model files
4. When status == "failed": check error field for failure details
5. Use logs array for detailed progress information

PROGRESS STAGES:
- 5%: Validating options and preparing inputs
- 10%: Checking input images
- 20%: Generating reference images (if needed)
- 30%: Preparing 3D generation request
- 40%: Calling API
- 50%: Processing with model
- 90%: Finalizing result
- 100%: Completed"""


def start_model3d_job(args: dict[str, Any]) -> Path:
    """Build a request from tool arguments and start it on the default manager.

    Raises:
        ValidationError: Missing ``outputPath`` or an invalid request.
    """
    if not args.get("outputPath"):
        raise ValidationError(f"outputPath is required for {ASYNC_MODEL3D_TOOL}")

    from assetgen.config import load_config

    cfg = load_config().model3d
    request = GenerationRequest.from_args(
        args,
        default_model=cfg.default_model,
        default_reference_model=cfg.reference_model,
    )
    status_path = args.get("statusFile") or default_status_path(request.output_path)
    return get_default_manager().start(request, status_path)


# ── MCP handlers ─────────────────────────────────────────


@server.list_tools()
async def list_tools() -> list[Tool]:
    return build_mcp_tools()


@server.call_tool()
async def call_tool(name: str, arguments: dict[str, Any] | None) -> list[TextContent]:
    """Run an image tool in a thread, or start an async 3D job."""
    args = arguments or {}
    allowed = allowed_tool_names()
    if allowed is not None and name not in allowed:
        return _error_payload("ToolNotFound", f"Tool '{name}' is not exposed via MCP")

    try:
        if name == ASYNC_MODEL3D_TOOL:
            status_path = start_model3d_job(args)
            return [TextContent(type="text", text=async_started_message(status_path))]

        result = await asyncio.to_thread(_find_dispatch(name), name, args)
        return [TextContent(type="text", text=json.dumps(result, ensure_ascii=False, indent=2))]
    except ToolNotFoundError as exc:
        return _error_payload("ToolNotFound", str(exc))
    except AssetGenError as exc:
        logger.warning("Tool '%s' failed: %s", name, exc)
        return _error_payload(type(exc).__name__, str(exc))
    except Exception as exc:
        logger.exception("Unhandled error calling tool '%s'", name)
        return _error_payload("UnhandledError", f"Tool execution failed: {name}: {exc}")


# ── Prompts ──────────────────────────────────────────────

ASSET_PROMPT = Prompt(
    name="asset_generation",
    description="Generate various types of assets for game development",
    arguments=[
        PromptArgument(
            name="asset_type",
            description="Type of asset to generate (image, video, audio, 3d)",
            required=True,
        ),
        PromptArgument(
            name="style",
            description="Art style or theme for the asset",
            required=False,
        ),
    ],
)


@server.list_prompts()
async def list_prompts() -> list[Prompt]:
    return [ASSET_PROMPT]


@server.get_prompt()
async def get_prompt(name: str, arguments: dict[str, str] | None) -> GetPromptResult:
    if name != ASSET_PROMPT.name:
        raise ValueError(f"Unknown prompt: {name}")
    args = arguments or {}
    asset_type = args.get("asset_type")
    if not asset_type:
        raise ValueError("asset_type is required for the asset_generation prompt")

    style = args.get("style")
    style_text = f" in {style} style" if style else ""
    return GetPromptResult(
        description=f"Generate a {asset_type} asset{style_text} for game development",
        messages=[
            PromptMessage(
                role="user",
                content=TextContent(
                    type="text",
                    text=(
                        f"Create a {asset_type} asset{style_text} suitable for game "
                        "development. Please provide detailed specifications and requirements."
                    ),
                ),
            )
        ],
    )


# ── Entry point ──────────────────────────────────────────


async def main() -> None:
    """Run the MCP stdio server until the client disconnects."""
    logger.info("AssetGen MCP server starting (name=assetgen)")
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options(),
            )
    finally:
        await get_default_manager().shutdown()


if __name__ == "__main__":
    from assetgen.logging_config import setup_logging
    from assetgen.paths import get_log_dir

    setup_logging(level=os.environ.get("ASSETGEN_LOG_LEVEL", "INFO"), log_dir=get_log_dir())
    asyncio.run(main())
