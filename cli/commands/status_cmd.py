# AssetGen - Asset Generation Gateway
# Copyright (C) 2026 AssetGen Authors
# SPDX-License-Identifier: Apache-2.0

"""CLI subcommand for reading 3D job status files."""

from __future__ import annotations

import argparse
import json
import sys
import time
from typing import Any

_TERMINAL = ("completed", "failed")


def _format_record(record: dict[str, Any]) -> str:
    lines = [
        f"Job:      {record.get('id', '?')}",
        f"Status:   {record.get('status', '?')} ({record.get('progress', 0)}%)",
        f"Message:  {record.get('message', '')}",
        f"Started:  {record.get('startTime', '-')}",
    ]
    if record.get("endTime"):
        lines.append(f"Ended:    {record['endTime']}")
    if record.get("error"):
        lines.append(f"Error:    {record['error']}")
    result = record.get("result") or {}
    for p in result.get("savedPaths", []):
        lines.append(f"Saved:    {p}")
    return "\n".join(lines)


def cmd_status(args: argparse.Namespace) -> None:
    """Print a status file, optionally polling until the job ends."""
    from assetgen.generation import read_status

    record = read_status(args.status_file)
    if record is None:
        print(f"Error: no readable status file at {args.status_file}", file=sys.stderr)
        sys.exit(1)

    if args.follow:
        last_progress = None
        while record.get("status") not in _TERMINAL:
            if record.get("progress") != last_progress:
                print(f"[{record.get('progress', 0):>3}%] {record.get('message', '')}")
                last_progress = record.get("progress")
            time.sleep(args.interval)
            # keep the last good record if the file is briefly unreadable
            record = read_status(args.status_file) or record

    if args.json:
        print(json.dumps(record, ensure_ascii=False, indent=2))
    else:
        print(_format_record(record))
