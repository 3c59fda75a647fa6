# AssetGen - Asset Generation Gateway
# Copyright (C) 2026 AssetGen Authors
# SPDX-License-Identifier: Apache-2.0

"""CLI subcommand for one-off image generation.

Usage:
    assetgen image gemini "a red cube" -o cube.png
    assetgen image falai "same cube, rear view" -o back.png -i cube.png -j
"""

from __future__ import annotations

import argparse
import json
import sys


def cmd_image(args: argparse.Namespace) -> None:
    from assetgen.exceptions import AssetGenError
    from assetgen.tools.image_gen import generate_image, validate_image_options

    try:
        validate_image_options(
            args.provider, prompt=args.prompt, output_path=args.output,
            size=args.size, image_size=args.image_size,
        )
        result = generate_image(
            args.provider, args.prompt, args.output, args.image,
            size=args.size, image_size=args.image_size,
        )
    except (AssetGenError, FileNotFoundError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    if args.json:
        print(json.dumps(result, ensure_ascii=False, indent=2))
    else:
        for p in result.get("savedPaths", []):
            print(f"Saved: {p}")
