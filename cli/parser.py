# AssetGen - Asset Generation Gateway
# Copyright (C) 2026 AssetGen Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import argparse
import os


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="AssetGen - Asset Generation Gateway"
    )
    parser.add_argument(
        "--data-dir",
        default=None,
        help="Override runtime data directory (default: ~/.assetgen or ASSETGEN_DATA_DIR)",
    )
    sub = parser.add_subparsers(dest="command")

    # ── Serve ─────────────────────────────────────────────
    p_serve = sub.add_parser("serve", help="Run the MCP server on stdio")
    p_serve.set_defaults(func=_lazy_serve)

    # ── Image ─────────────────────────────────────────────
    p_image = sub.add_parser("image", help="Generate an image with one provider")
    p_image.add_argument("provider", choices=["openai", "gemini", "falai"])
    p_image.add_argument("prompt", help="Image description")
    p_image.add_argument("-o", "--output", required=True, help="Output image path")
    p_image.add_argument(
        "-i", "--image", action="append", default=[],
        help="Conditioning image (repeatable)",
    )
    p_image.add_argument("--size", default=None, help="OpenAI size, e.g. 1024x1024")
    p_image.add_argument("--image-size", default=None, help="FAL.ai size preset")
    p_image.add_argument("-j", "--json", action="store_true", help="JSON output")
    p_image.set_defaults(func=_lazy_image)

    # ── Model3D ───────────────────────────────────────────
    p_model = sub.add_parser(
        "model3d", help="Generate a 3D model and follow its status until it ends",
    )
    p_model.add_argument("output", help="Output model path (.glb or .gltf)")
    p_model.add_argument("--prompt", default=None, help="Object description")
    p_model.add_argument(
        "-i", "--image", action="append", default=[],
        help="Input image path, URL or data URI (repeatable)",
    )
    p_model.add_argument(
        "--model", default=None,
        choices=["trellis", "hunyuan3d", "hunyuan-world", "seed3d", "meshy"],
    )
    p_model.add_argument(
        "--variant", default=None,
        choices=["single", "multi", "single-turbo", "multi-turbo"],
    )
    p_model.add_argument("--format", default=None, choices=["glb", "gltf"])
    p_model.add_argument(
        "--reference-model", default=None, choices=["openai", "gemini", "falai"],
    )
    p_model.add_argument(
        "--view", action="append", default=None,
        choices=["front", "back", "top", "left", "right"],
        help="Reference view (repeatable)",
    )
    p_model.add_argument(
        "--no-auto-references", action="store_true",
        help="Do not generate reference images from the prompt",
    )
    p_model.add_argument(
        "--keep-references", action="store_true",
        help="Keep generated reference images",
    )
    p_model.add_argument("--status-file", default=None, help="Status file path")
    p_model.add_argument("-j", "--json", action="store_true", help="Print the final record as JSON")
    p_model.set_defaults(func=_lazy_model3d)

    # ── Status ────────────────────────────────────────────
    p_status = sub.add_parser("status", help="Show a 3D job status file")
    p_status.add_argument("status_file", help="Path to the status JSON file")
    p_status.add_argument(
        "-f", "--follow", action="store_true",
        help="Keep polling until the job completes or fails",
    )
    p_status.add_argument(
        "--interval", type=float, default=2.0,
        help="Polling interval in seconds for --follow (default: 2)",
    )
    p_status.add_argument("-j", "--json", action="store_true", help="JSON output")
    p_status.set_defaults(func=_lazy_status)

    return parser


def cli_main(argv: list[str] | None = None) -> None:
    from dotenv import load_dotenv

    load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)

    # Apply --data-dir override before any command
    if args.data_dir:
        os.environ["ASSETGEN_DATA_DIR"] = args.data_dir

    from assetgen.config import load_config
    from assetgen.logging_config import setup_logging
    from assetgen.paths import get_log_dir

    system = load_config().system
    setup_logging(
        level=os.environ.get("ASSETGEN_LOG_LEVEL") or system.log_level,
        log_dir=get_log_dir(),
        json_file=system.json_log_file,
    )

    if hasattr(args, "func"):
        args.func(args)
    else:
        parser.print_help()


# ── Lazy import wrappers ──────────────────────────────────


def _lazy_serve(args: argparse.Namespace) -> None:
    from cli.commands.server import cmd_serve

    cmd_serve(args)


def _lazy_image(args: argparse.Namespace) -> None:
    from cli.commands.image_cmd import cmd_image

    cmd_image(args)


def _lazy_model3d(args: argparse.Namespace) -> None:
    from cli.commands.model3d_cmd import cmd_model3d

    cmd_model3d(args)


def _lazy_status(args: argparse.Namespace) -> None:
    from cli.commands.status_cmd import cmd_status

    cmd_status(args)
