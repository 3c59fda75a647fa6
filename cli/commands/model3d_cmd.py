# AssetGen - Asset Generation Gateway
# Copyright (C) 2026 AssetGen Authors
# SPDX-License-Identifier: Apache-2.0

"""CLI subcommand running one 3D generation job in the foreground.

The job is the same background job the MCP tool starts; the command
prints its progress from the status file and exits when it ends.

Usage:
    assetgen model3d out/cube.glb --prompt "a red cube" --model seed3d
    assetgen model3d out/chair.glb -i front.png -i back.png -i left.png -j
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any


def _tool_args(args: argparse.Namespace) -> dict[str, Any]:
    """Translate CLI options into ``image_to_3d_async`` tool arguments."""
    tool_args: dict[str, Any] = {
        "outputPath": args.output,
        "prompt": args.prompt,
        "inputImagePaths": list(args.image),
        "model": args.model,
        "variant": args.variant,
        "format": args.format,
        "referenceModel": args.reference_model,
        "referenceViews": args.view,
    }
    if args.no_auto_references:
        tool_args["autoGenerateReferences"] = False
    if args.keep_references:
        tool_args["cleanupReferences"] = False
    return {k: v for k, v in tool_args.items() if v is not None}


async def _run_job(tool_args: dict[str, Any], status_path: Path) -> dict[str, Any]:
    from assetgen.config import load_config
    from assetgen.generation import GenerationJobManager, GenerationRequest, read_status

    cfg = load_config().model3d
    request = GenerationRequest.from_args(
        tool_args,
        default_model=cfg.default_model,
        default_reference_model=cfg.reference_model,
    )
    manager = GenerationJobManager()
    manager.start(request, status_path)
    waiter = asyncio.ensure_future(manager.wait(status_path))

    last: tuple[Any, Any] | None = None
    while not waiter.done():
        record = read_status(status_path) or {}
        current = (record.get("progress"), record.get("message"))
        if record and current != last:
            print(f"[{record.get('progress', 0):>3}%] {record.get('message', '')}", file=sys.stderr)
            last = current
        await asyncio.wait({waiter}, timeout=1.0)
    return waiter.result()


def cmd_model3d(args: argparse.Namespace) -> None:
    from assetgen.exceptions import ValidationError
    from assetgen.generation import default_status_path

    tool_args = _tool_args(args)
    status_path = Path(args.status_file) if args.status_file else default_status_path(args.output)

    try:
        record = asyncio.run(_run_job(tool_args, status_path))
    except ValidationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    if args.json:
        print(json.dumps(record, ensure_ascii=False, indent=2))
    elif record.get("status") == "completed":
        for p in (record.get("result") or {}).get("savedPaths", []):
            print(f"Saved: {p}")
    else:
        print(f"Failed: {record.get('error', 'unknown error')}", file=sys.stderr)

    if record.get("status") != "completed":
        sys.exit(1)
