# AssetGen - Asset Generation Gateway
# Copyright (C) 2026 AssetGen Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of AssetGen, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Game-asset image tools built on prompt templates.

Each tool turns a few structured arguments into a prompt and hands it to
:func:`assetgen.tools.image_gen.generate_image`:

  - ``generate_character_sheet``: one reference sheet of a character
  - ``generate_character_variation``: a character recombined from references
  - ``generate_pixel_art_character``: retro sprite art
  - ``generate_texture``: texture maps for 3D materials
  - ``generate_object_sheet``: one image per viewpoint of an object

Results are the provider result dict extended with the tool's own
fields; ``generate_object_sheet`` returns a summary of every viewpoint.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any

from assetgen.exceptions import ToolConfigError, ToolNotFoundError, ValidationError
from assetgen.tools._base import logger
from assetgen.tools.image_gen import IMAGE_PROVIDERS, generate_image

# ── Constants ──────────────────────────────────────────────

PIXEL_DIMENSIONS = ("8x8", "16x16", "32x32", "48x48", "64x64", "96x96")
PIXEL_GENERATION_SIZE = 256
TEXTURE_SIZES = ("512x512", "1024x1024", "2048x2048")
MATERIAL_TYPES = ("diffuse", "normal", "roughness", "displacement")
OBJECT_VIEWPOINTS = ("front", "back", "left", "right", "top", "bottom", "perspective")
DEFAULT_OBJECT_VIEWPOINTS = ("front", "back", "left", "right", "top", "perspective")

_MATERIAL_HINTS = {
    "normal": "normal map, purple/blue surface detail information, height variation data",
    "roughness": "roughness map, grayscale surface roughness information, white=rough, black=smooth",
    "displacement": (
        "displacement/height map, grayscale height information for 3D surface displacement"
    ),
}

_VIEWPOINT_HINTS = {
    "front": "front-facing view, showing main features and details",
    "back": "rear view, showing back details and construction",
    "left": "left side profile view, showing side details and proportions",
    "right": "right side profile view, showing opposite side details",
    "top": "top-down view, showing overhead layout and proportions",
    "bottom": "bottom-up view, showing underside construction",
    "perspective": "3/4 perspective view, showing depth and three-dimensional form",
}


# ── Argument checks ────────────────────────────────────────


def _required(args: dict[str, Any], key: str) -> str:
    value = args.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{key} is required and cannot be empty")
    return value


def _choice(value: Any, allowed: tuple[str, ...], label: str, default: str) -> str:
    if value is None or value == "":
        return default
    if value not in allowed:
        raise ValidationError(f"{label} must be one of: {', '.join(allowed)}")
    return value


def _provider(args: dict[str, Any], default: str) -> str:
    return _choice(args.get("model"), IMAGE_PROVIDERS, "model", default)


def _path_list(args: dict[str, Any], key: str) -> list[str]:
    value = args.get(key) or []
    if isinstance(value, str) or not all(isinstance(p, str) for p in value):
        raise ValidationError(f"{key} must be an array of strings")
    return list(value)


# ── Prompt templates ───────────────────────────────────────


def character_sheet_prompt(
    description: str,
    style: str,
    *,
    expressions: bool = False,
    poses: bool = False,
    with_references: bool = False,
) -> str:
    prompt = f"Create a detailed character sheet for: {description}. Art style: {style}. "
    if expressions:
        prompt += "Include multiple facial expressions (happy, sad, angry, surprised, neutral). "
    if poses:
        prompt += "Show the character from multiple angles (front view, side view, back view). "
    prompt += (
        "Character sheet format with clean white background, professional reference sheet "
        "layout, consistent character design, high quality digital artwork suitable for "
        "animation or game development."
    )
    if with_references:
        prompt += (
            " Base the character on the provided reference images, maintaining consistency "
            "with the visual style and features shown."
        )
    return prompt


def character_variation_prompt(prompt: str) -> str:
    return (
        f"{prompt} Maintain consistency with the character design from the reference images. "
        "High quality digital artwork with consistent lighting and style."
    )


def pixel_art_prompt(
    description: str,
    dimensions: str,
    *,
    colors: int | None = None,
    sprite_sheet: bool = False,
    transparent: bool = False,
) -> str:
    prompt = f"Pixel art character: {description}. Retro game pixel art style, limited color palette"
    if colors:
        prompt += f" with {colors} colors"
    prompt += ", clean pixels, no anti-aliasing, 8-bit/16-bit game style. "
    if transparent:
        prompt += "Character isolated on solid background, clean edges, no background details, "
    if sprite_sheet:
        prompt += (
            "Generate as sprite sheet with multiple poses: idle, walking animation frames "
            "(4 frames), facing front, back, left, right. Grid layout on single image. "
        )
    prompt += f"Target final size will be {dimensions} pixels. "
    prompt += "Sharp pixel boundaries, retro gaming aesthetic, solid colors."
    return prompt


def texture_prompt(
    description: str,
    size: str,
    material: str,
    *,
    seamless: bool = False,
    transparent: bool = False,
) -> str:
    prompt = f"{material} texture map: {description}. High quality {size} texture, "
    if seamless:
        prompt += "seamless tileable pattern, repeating texture, no visible seams when tiled, "
    if transparent:
        prompt += "sprite/decal style, "
        if material == "diffuse":
            prompt += "isolated object with transparent background, clean edges, no shadows, "

    if material == "diffuse":
        prompt += (
            "color/albedo map with alpha transparency, object isolated on solid background"
            if transparent
            else "color/albedo map, realistic material colors and details"
        )
    else:
        prompt += _MATERIAL_HINTS[material]

    prompt += ", professional game/3D development quality, uniform lighting"
    if not transparent:
        prompt += ", no shadows"
    return prompt + "."


def object_view_prompt(description: str, viewpoint: str, style: str) -> str:
    return (
        f"{description}, {viewpoint} view, {style} style, technical reference sheet, "
        f"clean white background, object centered, {_VIEWPOINT_HINTS[viewpoint]}. "
        "Consistent object design, professional 3D reference quality."
    )


def object_view_path(output_base_path: str, viewpoint: str) -> str:
    """``<base>_<viewpoint>.png``, the base's extension (if any) dropped."""
    base = Path(output_base_path)
    if base.suffix:
        base = base.with_suffix("")
    return str(base.with_name(f"{base.name}_{viewpoint}.png"))


# ── Tools ──────────────────────────────────────────────────


def generate_character_sheet(args: dict[str, Any]) -> dict[str, Any]:
    description = _required(args, "characterDescription")
    output_path = _required(args, "outputPath")
    provider = _provider(args, "gemini")
    style = args.get("style") or "detailed digital art"
    references = _path_list(args, "referenceImagePaths")
    expressions = bool(args.get("includeExpressions"))
    poses = bool(args.get("includePoses"))

    prompt = character_sheet_prompt(
        description, style,
        expressions=expressions, poses=poses, with_references=bool(references),
    )
    result = generate_image(provider, prompt, output_path, references)
    return {
        **result,
        "operation": "character_sheet_generation",
        "character_description": description,
        "style": style,
        "features": {"expressions": expressions, "poses": poses},
        "reference_images": references,
    }


def generate_character_variation(args: dict[str, Any]) -> dict[str, Any]:
    variation = _required(args, "prompt")
    output_path = _required(args, "outputPath")
    provider = _provider(args, "gemini")
    references = _path_list(args, "referenceImagePaths")
    if not references:
        raise ValidationError("At least one reference image is required for character variation")

    result = generate_image(
        provider, character_variation_prompt(variation), output_path, references,
    )
    return {
        **result,
        "operation": "character_variation",
        "variation_prompt": variation,
        "reference_images": references,
    }


def generate_pixel_art_character(args: dict[str, Any]) -> dict[str, Any]:
    description = _required(args, "characterDescription")
    output_path = _required(args, "outputPath")
    dimensions = args.get("pixelDimensions")
    if dimensions not in PIXEL_DIMENSIONS:
        raise ValidationError(f"pixelDimensions must be one of: {', '.join(PIXEL_DIMENSIONS)}")
    provider = _provider(args, "falai")
    colors = args.get("colors")
    if colors is not None and not 4 <= int(colors) <= 256:
        raise ValidationError("colors must be between 4 and 256")
    sprite_sheet = bool(args.get("spriteSheet"))
    transparent = bool(args.get("transparentBackground"))

    prompt = pixel_art_prompt(
        description, dimensions,
        colors=int(colors) if colors else None,
        sprite_sheet=sprite_sheet, transparent=transparent,
    )
    result = generate_image(provider, prompt, output_path)

    target = int(dimensions.split("x")[0])
    note = (
        f"Generated at {PIXEL_GENERATION_SIZE}x{PIXEL_GENERATION_SIZE}px. Recommend scaling "
        f"down to {target}x{target}px and applying pixel-perfect scaling for final use."
    )
    return {
        **result,
        "operation": "pixel_art_generation",
        "character_description": description,
        "pixel_dimensions": dimensions,
        "target_size": target,
        "generation_size": PIXEL_GENERATION_SIZE,
        "sprite_sheet": sprite_sheet,
        "colors": int(colors) if colors else "auto",
        "transparent_background": transparent,
        "note": note,
    }


def generate_texture(args: dict[str, Any]) -> dict[str, Any]:
    description = _required(args, "textureDescription")
    output_path = _required(args, "outputPath")
    provider = _provider(args, "falai")
    size = _choice(args.get("textureSize"), TEXTURE_SIZES, "textureSize", "1024x1024")
    material = _choice(args.get("materialType"), MATERIAL_TYPES, "materialType", "diffuse")
    seamless = bool(args.get("seamless"))
    transparent = bool(args.get("transparentBackground"))

    prompt = texture_prompt(description, size, material, seamless=seamless, transparent=transparent)
    result = generate_image(provider, prompt, output_path)

    usage = (
        "Ready for use in 3D engines (Unity, Unreal, Blender). "
        f"Apply to materials as {material} map."
    )
    if transparent:
        usage += " Texture has alpha transparency for sprites/decals."
    return {
        **result,
        "operation": "texture_generation",
        "texture_description": description,
        "texture_size": size,
        "material_type": material,
        "seamless": seamless,
        "transparent_background": transparent,
        "usage_note": usage,
    }


def generate_object_sheet(args: dict[str, Any]) -> dict[str, Any]:
    """Generate one image per viewpoint; a failed viewpoint is reported and skipped.

    A missing credential before anything was saved is raised instead.
    """
    description = _required(args, "objectDescription")
    base = _required(args, "outputBasePath")
    provider = _provider(args, "gemini")
    style = args.get("style") or "clean concept art"
    viewpoints = _path_list(args, "viewpoints") or list(DEFAULT_OBJECT_VIEWPOINTS)
    if any(v not in OBJECT_VIEWPOINTS for v in viewpoints):
        raise ValidationError(f"viewpoints must be among: {', '.join(OBJECT_VIEWPOINTS)}")

    results: list[dict[str, Any]] = []
    saved: list[str] = []
    for viewpoint in viewpoints:
        out = object_view_path(base, viewpoint)
        try:
            result = generate_image(provider, object_view_prompt(description, viewpoint, style), out)
        except ToolConfigError:
            if not saved:
                raise
            logger.warning("Failed to generate %s view: missing credential", viewpoint)
            results.append({"viewpoint": viewpoint, "error": "missing credential"})
            continue
        except Exception as exc:
            logger.warning("Failed to generate %s view: %s", viewpoint, exc)
            results.append({"viewpoint": viewpoint, "error": str(exc)})
            continue
        results.append({"viewpoint": viewpoint, "result": result})
        saved.extend(result.get("savedPaths") or [out])

    return {
        "operation": "object_sheet_generation",
        "object_description": description,
        "viewpoints_requested": list(viewpoints),
        "viewpoints_generated": sum(1 for r in results if "error" not in r),
        "savedPaths": saved,
        "style": style,
        "provider": provider,
        "results": results,
        "usage_note": (
            "Use these reference images for 3D modeling. "
            "Import into Blender/Maya as reference planes."
        ),
    }


# ── Tool schemas ───────────────────────────────────────────


def _model_prop(default: str) -> dict[str, Any]:
    return {
        "type": "string",
        "enum": list(IMAGE_PROVIDERS),
        "description": f"Model to use for generation (default: {default})",
    }


def get_tool_schemas() -> list[dict]:
    """Return tool schemas for the game-asset image tools."""
    return [
        {
            "name": "generate_character_sheet",
            "description": (
                "Generate a character sheet from a text description or reference images, "
                "on a plain white background."
            ),
            "input_schema": {
                "type": "object",
                "properties": {
                    "characterDescription": {
                        "type": "string",
                        "description": "Detailed description of the character",
                    },
                    "outputPath": {
                        "type": "string",
                        "description": "Path where the character sheet should be saved",
                    },
                    "referenceImagePaths": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Reference image paths (character, outfit, etc.)",
                    },
                    "model": _model_prop("gemini"),
                    "style": {
                        "type": "string",
                        "description": "Art style (e.g., anime, realistic, cartoon)",
                    },
                    "includeExpressions": {
                        "type": "boolean",
                        "description": "Include multiple facial expressions",
                    },
                    "includePoses": {
                        "type": "boolean",
                        "description": "Include multiple poses/angles",
                    },
                },
                "required": ["characterDescription", "outputPath"],
            },
        },
        {
            "name": "generate_character_variation",
            "description": (
                "Generate a character variation by combining reference images "
                "(e.g., character + outfit)."
            ),
            "input_schema": {
                "type": "object",
                "properties": {
                    "prompt": {
                        "type": "string",
                        "description": "Description of the variation to create",
                    },
                    "outputPath": {
                        "type": "string",
                        "description": "Path where the variation should be saved",
                    },
                    "referenceImagePaths": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Reference image paths to combine",
                    },
                    "model": _model_prop("gemini"),
                },
                "required": ["prompt", "outputPath", "referenceImagePaths"],
            },
        },
        {
            "name": "generate_pixel_art_character",
            "description": (
                "Generate a pixel art character for retro games. The image is generated "
                f"at {PIXEL_GENERATION_SIZE}px in pixel art style for downscaling."
            ),
            "input_schema": {
                "type": "object",
                "properties": {
                    "characterDescription": {
                        "type": "string",
                        "description": "Description of the pixel art character",
                    },
                    "outputPath": {
                        "type": "string",
                        "description": "Path where the pixel art should be saved",
                    },
                    "pixelDimensions": {
                        "type": "string",
                        "enum": list(PIXEL_DIMENSIONS),
                        "description": "Target pixel dimensions (SNES: 8x8-32x32, RPG Maker: 48x48)",
                    },
                    "spriteSheet": {
                        "type": "boolean",
                        "description": "Generate sprite sheet with animations",
                    },
                    "model": _model_prop("falai"),
                    "colors": {
                        "type": "number",
                        "minimum": 4,
                        "maximum": 256,
                        "description": "Color palette size (4-256 colors)",
                    },
                    "transparentBackground": {
                        "type": "boolean",
                        "description": "Isolate the character on a solid background",
                    },
                },
                "required": ["characterDescription", "outputPath", "pixelDimensions"],
            },
        },
        {
            "name": "generate_texture",
            "description": "Generate textures for 3D environments and materials.",
            "input_schema": {
                "type": "object",
                "properties": {
                    "textureDescription": {
                        "type": "string",
                        "description": "Description of the texture (e.g., grass field, brick wall)",
                    },
                    "outputPath": {
                        "type": "string",
                        "description": "Path where the texture should be saved",
                    },
                    "textureSize": {
                        "type": "string",
                        "enum": list(TEXTURE_SIZES),
                        "description": "Texture resolution (default: 1024x1024)",
                    },
                    "seamless": {
                        "type": "boolean",
                        "description": "Generate seamless/tileable texture",
                    },
                    "model": _model_prop("falai"),
                    "materialType": {
                        "type": "string",
                        "enum": list(MATERIAL_TYPES),
                        "description": "Type of texture map (default: diffuse)",
                    },
                    "transparentBackground": {
                        "type": "boolean",
                        "description": "Sprite/decal style with the object isolated",
                    },
                },
                "required": ["textureDescription", "outputPath"],
            },
        },
        {
            "name": "generate_object_sheet",
            "description": "Generate multi-viewpoint reference images of an object for 3D modeling.",
            "input_schema": {
                "type": "object",
                "properties": {
                    "objectDescription": {
                        "type": "string",
                        "description": "Description of the 3D object",
                    },
                    "outputBasePath": {
                        "type": "string",
                        "description": "Base path; each view is saved as <base>_<viewpoint>.png",
                    },
                    "viewpoints": {
                        "type": "array",
                        "items": {"type": "string", "enum": list(OBJECT_VIEWPOINTS)},
                        "description": "Viewpoints to generate",
                    },
                    "model": _model_prop("gemini"),
                    "style": {
                        "type": "string",
                        "description": "Art style (e.g., technical drawing, concept art)",
                    },
                },
                "required": ["objectDescription", "outputBasePath"],
            },
        },
    ]


# ── Dispatch ───────────────────────────────────────────────

_TOOLS = {
    "generate_character_sheet": generate_character_sheet,
    "generate_character_variation": generate_character_variation,
    "generate_pixel_art_character": generate_pixel_art_character,
    "generate_texture": generate_texture,
    "generate_object_sheet": generate_object_sheet,
}


def dispatch(tool_name: str, args: dict[str, Any]) -> dict[str, Any]:
    """Dispatch a game-asset tool call."""
    tool = _TOOLS.get(tool_name)
    if tool is None:
        raise ToolNotFoundError(f"Unknown tool: {tool_name}")
    return tool(args)
