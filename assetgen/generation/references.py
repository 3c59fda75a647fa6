# AssetGen - Asset Generation Gateway
# Copyright (C) 2026 AssetGen Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of AssetGen, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Reference image generation for prompt-only 3D jobs.

Views are rendered one after another.  The front view is always first
and comes from the text prompt alone; each later view is conditioned on
every image produced so far so the set stays visually consistent.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path
from typing import Any

from assetgen.exceptions import ToolConfigError, ValidationError
from assetgen.generation.options import ReferenceProvider, ReferenceView, coerce_enum
from assetgen.tools._async_compat import run_sync

logger = logging.getLogger("assetgen.generation.references")

# (provider, prompt, output_path, input_image_paths) -> provider result dict with "savedPaths"
GenerateImageFn = Callable[[str, str, str, list[str]], Awaitable[dict[str, Any]]]

_REFERENCE_QUALITIES = (
    "sharp technical reference image, clean white background, "
    "professional 3D modeling reference, consistent lighting, "
    "highly detailed, crisp details, sharp focus, "
    "shot on Sony A7R IV with 85mm f/1.4 lens, "
    "professional product photography, suitable for 3D reconstruction"
)

_VIEW_DETAILS: dict[ReferenceView, str] = {
    ReferenceView.FRONT: "front-facing view showing main features and proportions",
    ReferenceView.BACK: "rear view showing back details and construction",
    ReferenceView.TOP: "overhead view showing top layout and proportions",
    ReferenceView.LEFT: "left side profile showing side details and proportions",
    ReferenceView.RIGHT: "right side profile showing opposite side details",
}


def _view_suffix(view: ReferenceView) -> str:
    return f", {_VIEW_DETAILS[view]}, sharp edges, fine details"


def anchor_view_prompt(prompt: str, view: ReferenceView) -> str:
    """Text-only prompt for the first view of a reference set."""
    return f"{prompt}, {view.value} view, {_REFERENCE_QUALITIES}{_view_suffix(view)}"


def consistent_view_prompt(view: ReferenceView) -> str:
    """Prompt for a view rendered from the images generated before it."""
    qualities = _REFERENCE_QUALITIES[0].upper() + _REFERENCE_QUALITIES[1:]
    return (
        f"Create a {view.value} view of the same object, maintaining exact "
        f"consistency with the provided image(s). {qualities}{_view_suffix(view)}"
    )


def order_views(views: Sequence[ReferenceView | str]) -> list[ReferenceView]:
    """Move ``front`` to the head; the remaining views keep their relative order."""
    resolved = [coerce_enum(ReferenceView, v, "Reference view") for v in views]
    return sorted(resolved, key=lambda v: v != ReferenceView.FRONT)


def reference_path(output_base_path: str | Path, view: ReferenceView) -> Path:
    """``<base>_ref_<view>.png`` next to *output_base_path* (its extension, if any, dropped)."""
    base = Path(output_base_path)
    if base.suffix:
        base = base.with_suffix("")
    return base.with_name(f"{base.name}_ref_{view.value}.png")


async def _default_generate_image(
    provider: str,
    prompt: str,
    output_path: str,
    input_image_paths: list[str],
) -> dict[str, Any]:
    from assetgen.tools.image_gen import generate_image

    return await run_sync(
        generate_image,
        provider,
        prompt,
        output_path,
        input_image_paths or None,
        size="1024x1024" if provider == ReferenceProvider.OPENAI.value else None,
        image_size="square_hd" if provider == ReferenceProvider.FALAI.value else None,
    )


async def generate_reference_images(
    prompt: str,
    output_base_path: str | Path,
    views: Sequence[ReferenceView | str] = (
        ReferenceView.FRONT, ReferenceView.BACK, ReferenceView.TOP,
    ),
    provider: ReferenceProvider | str = ReferenceProvider.GEMINI,
    *,
    generate_image: GenerateImageFn | None = None,
    into: list[str] | None = None,
) -> list[str]:
    """Generate one reference image per view and return the saved paths.

    A view that fails is logged and skipped; later views are conditioned
    on whatever succeeded.  The result may therefore be shorter than
    *views*, or empty.

    Each path is also appended to *into* as soon as its file exists, so a
    caller that is cancelled mid-set still knows what to clean up.

    Raises:
        ValidationError: Unknown provider or view.
        ToolConfigError: The provider has no credential and nothing has
            been generated yet.
    """
    provider = coerce_enum(ReferenceProvider, provider, "Reference model")
    if not prompt or not prompt.strip():
        raise ValidationError("A prompt is required to generate reference images")
    generate = generate_image or _default_generate_image
    ordered = order_views(views)

    saved: list[str] = []
    for view in ordered:
        out = str(reference_path(output_base_path, view))
        conditioning = list(saved)
        view_prompt = (
            consistent_view_prompt(view) if conditioning
            else anchor_view_prompt(prompt, view)
        )
        try:
            result = await generate(provider.value, view_prompt, out, conditioning)
        except ToolConfigError:
            if not saved:
                raise
            logger.warning("Failed to generate %s reference image: missing credential", view.value)
            continue
        except Exception as exc:
            logger.warning("Failed to generate %s reference image: %s", view.value, exc)
            continue
        paths = [str(p) for p in (result or {}).get("savedPaths") or []]
        saved.extend(paths)
        if into is not None:
            into.extend(paths)

    if len(saved) < len(ordered):
        logger.warning(
            "Partial reference generation: %d of %d views produced",
            len(saved), len(ordered),
        )
    return saved
