# AssetGen - Asset Generation Gateway
# Copyright (C) 2026 AssetGen Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of AssetGen, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Image generation tools for AssetGen.

Providers:
  - OpenAI ``gpt-image-1`` (generate, or edit with one input image)
  - Google Gemini native image generation (any number of input images)
  - FAL.ai Qwen image / Qwen image edit

All clients are synchronous; the 3D reference generator runs them in a
worker thread.  Every operation returns a JSON-serializable dict with a
``savedPaths`` list.
"""
from __future__ import annotations

import base64
from pathlib import Path
from typing import Any

from assetgen.exceptions import BackendError, ToolNotFoundError, ValidationError
from assetgen.tools._base import (
    get_credential,
    image_ref_to_url,
    logger,
    read_image_ref,
    redact_inline_images,
)
from assetgen.tools._http import download_file, post_json

# ── Constants ──────────────────────────────────────────────

OPENAI_GENERATE_URL = "https://api.openai.com/v1/images/generations"
OPENAI_EDIT_URL = "https://api.openai.com/v1/images/edits"
OPENAI_IMAGE_MODEL = "gpt-image-1"

GEMINI_URL_TPL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
GEMINI_DEFAULT_MODEL = "gemini-2.5-flash-image"

FAL_QWEN_IMAGE_URL = "https://fal.run/fal-ai/qwen-image"
FAL_QWEN_EDIT_URL = "https://fal.run/fal-ai/qwen-image-edit"

IMAGE_PROVIDERS = ("openai", "gemini", "falai")

OPENAI_SIZES = ("1024x1024", "1792x1024", "1024x1792")
OPENAI_QUALITIES = ("standard", "hd")
OPENAI_STYLES = ("vivid", "natural")
FAL_IMAGE_SIZES = (
    "square_hd", "square", "portrait_4_3", "portrait_16_9",
    "landscape_4_3", "landscape_16_9",
)


# ── Helpers ────────────────────────────────────────────────


def _indexed_path(output_path: str, index: int, total: int) -> str:
    """``out.png`` → ``out_2.png`` when a call yields several images."""
    if total <= 1:
        return output_path
    path = Path(output_path)
    suffix = path.suffix or ".png"
    return str(path.with_name(f"{path.stem}_{index + 1}{suffix}"))


def _save_b64(data: str, output_path: str) -> None:
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(base64.b64decode(data))


def validate_image_options(
    provider: str,
    *,
    prompt: str | None,
    output_path: str | None,
    size: str | None = None,
    quality: str | None = None,
    style: str | None = None,
    n: int | None = None,
    image_size: str | None = None,
    num_inference_steps: int | None = None,
    guidance_scale: float | None = None,
) -> None:
    """Check provider-specific option ranges.

    Raises:
        ValidationError: On the first offending option.
    """
    if not prompt or not prompt.strip():
        raise ValidationError("Prompt is required and cannot be empty")
    if not output_path or not output_path.strip():
        raise ValidationError("Output path is required and cannot be empty")
    if provider not in IMAGE_PROVIDERS:
        raise ValidationError(f"Provider must be one of: {', '.join(IMAGE_PROVIDERS)}")

    if provider == "openai":
        if size is not None and size not in OPENAI_SIZES:
            raise ValidationError(f"OpenAI size must be one of: {', '.join(OPENAI_SIZES)}")
        if quality is not None and quality not in OPENAI_QUALITIES:
            raise ValidationError("OpenAI quality must be one of: standard, hd")
        if style is not None and style not in OPENAI_STYLES:
            raise ValidationError("OpenAI style must be one of: vivid, natural")
        if n is not None and not 1 <= n <= 10:
            raise ValidationError("OpenAI n must be between 1 and 10")
    elif provider == "falai":
        if image_size is not None and image_size not in FAL_IMAGE_SIZES:
            raise ValidationError(
                f"FAL.ai image_size must be one of: {', '.join(FAL_IMAGE_SIZES)}"
            )
        if num_inference_steps is not None and not 1 <= num_inference_steps <= 50:
            raise ValidationError("FAL.ai num_inference_steps must be between 1 and 50")
        if guidance_scale is not None and not 1 <= guidance_scale <= 20:
            raise ValidationError("FAL.ai guidance_scale must be between 1 and 20")


# ── OpenAIImageClient ──────────────────────────────────────


class OpenAIImageClient:
    """OpenAI image generation / edit client."""

    PROVIDER = "OpenAI"

    def __init__(self) -> None:
        self._key = get_credential("openai", "image_gen", env_var="OPENAI_API_KEY")

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._key}"}

    def generate(
        self,
        prompt: str,
        output_path: str,
        *,
        input_image_path: str | None = None,
        size: str = "1024x1024",
        n: int = 1,
    ) -> dict[str, Any]:
        """Generate (or edit, when *input_image_path* is given) images.

        Returns:
            Result dict with ``savedPaths``; several images are saved as
            ``<stem>_1.png``, ``<stem>_2.png``, ...
        """
        body: dict[str, Any] = {
            "model": OPENAI_IMAGE_MODEL,
            "prompt": prompt,
            "n": n,
            "size": size,
        }
        if input_image_path:
            mime, raw = read_image_ref(input_image_path)
            files = {"image": (Path(input_image_path).name or "image.png", raw, mime)}
            data = {k: str(v) for k, v in body.items()}
            response = post_json(
                self.PROVIDER, OPENAI_EDIT_URL,
                headers=self._headers(), files=files, data=data,
            )
        else:
            response = post_json(
                self.PROVIDER, OPENAI_GENERATE_URL,
                headers=self._headers(), body=body,
            )

        images = response.get("data") or []
        saved: list[str] = []
        for i, image in enumerate(images):
            target = _indexed_path(output_path, i, len(images))
            if image.get("url"):
                download_file(image["url"], target)
                saved.append(target)
            elif image.get("b64_json"):
                _save_b64(image["b64_json"], target)
                saved.append(target)
        if not saved:
            raise BackendError(self.PROVIDER, "no image data in response")

        return {
            "provider": self.PROVIDER,
            "operation": "edit" if input_image_path else "generate",
            "savedPaths": saved,
            "prompt_used": prompt,
            "parameters": body,
        }


# ── GeminiImageClient ──────────────────────────────────────


class GeminiImageClient:
    """Gemini native image generation with multi-image conditioning."""

    PROVIDER = "Google Gemini"

    def __init__(self) -> None:
        self._key = get_credential("gemini", "image_gen", env_var="GEMINI_API_KEY")

    def generate(
        self,
        prompt: str,
        output_path: str,
        *,
        input_image_paths: list[str] | None = None,
        model: str = GEMINI_DEFAULT_MODEL,
    ) -> dict[str, Any]:
        parts: list[dict[str, Any]] = [{"text": prompt}]
        for ref in input_image_paths or []:
            mime, raw = read_image_ref(ref)
            parts.append({
                "inlineData": {
                    "mimeType": mime,
                    "data": base64.b64encode(raw).decode(),
                },
            })
        body = {"contents": [{"parts": parts}]}

        response = post_json(
            self.PROVIDER,
            GEMINI_URL_TPL.format(model=model),
            headers={"x-goog-api-key": self._key},
            body=body,
        )

        saved: list[str] = []
        for candidate in (response.get("candidates") or [])[:1]:
            for part in (candidate.get("content") or {}).get("parts") or []:
                inline = part.get("inlineData") or part.get("inline_data")
                if inline and inline.get("data"):
                    _save_b64(inline["data"], output_path)
                    saved.append(output_path)
                    break  # first image only
        if not saved:
            raise BackendError(self.PROVIDER, "No image data received from Gemini API")

        return {
            "provider": self.PROVIDER,
            "model": model,
            "savedPaths": saved,
            "prompt_used": prompt,
            "input_images": list(input_image_paths or []),
            "parameters": {"model": model, "input_image_count": len(parts) - 1},
        }


# ── FalImageClient ─────────────────────────────────────────


class FalImageClient:
    """FAL.ai Qwen image generation and editing (synchronous ``fal.run``)."""

    PROVIDER = "FAL.ai"

    def __init__(self) -> None:
        self._key = get_credential("fal", "image_gen", env_var="FAL_KEY")

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Key {self._key}"}

    def _run(self, url: str, body: dict[str, Any], output_path: str) -> dict[str, Any]:
        response = post_json(self.PROVIDER, url, headers=self._headers(), body=body)
        images = response.get("images") or []
        if not images:
            raise BackendError(self.PROVIDER, "No images array in FAL.ai response")
        image_url = images[0].get("url")
        if not image_url:
            raise BackendError(self.PROVIDER, "No image URL in FAL.ai response")
        download_file(image_url, output_path)
        return response

    def generate(
        self,
        prompt: str,
        output_path: str,
        *,
        image_size: str = "square_hd",
        num_inference_steps: int = 20,
        guidance_scale: float = 7.5,
    ) -> dict[str, Any]:
        body = {
            "prompt": prompt,
            "image_size": image_size,
            "num_inference_steps": num_inference_steps,
            "guidance_scale": guidance_scale,
            "enable_safety_checker": True,
        }
        response = self._run(FAL_QWEN_IMAGE_URL, body, output_path)
        return {
            "provider": self.PROVIDER,
            "model": "qwen-image",
            "savedPaths": [output_path],
            "prompt_used": prompt,
            "seed": response.get("seed"),
            "inference_time": (response.get("timings") or {}).get("inference"),
            "parameters": body,
        }

    def edit(
        self,
        prompt: str,
        input_image_path: str,
        output_path: str,
        *,
        image_size: str = "square_hd",
        num_inference_steps: int = 20,
        guidance_scale: float = 7.5,
    ) -> dict[str, Any]:
        body = {
            "prompt": prompt,
            "image_url": image_ref_to_url(input_image_path),
            "image_size": image_size,
            "num_inference_steps": num_inference_steps,
            "guidance_scale": guidance_scale,
            "enable_safety_checker": True,
        }
        response = self._run(FAL_QWEN_EDIT_URL, body, output_path)
        return {
            "provider": self.PROVIDER,
            "model": "qwen-image-edit",
            "operation": "edit",
            "savedPaths": [output_path],
            "prompt_used": prompt,
            "input_image": input_image_path,
            "seed": response.get("seed"),
            "inference_time": (response.get("timings") or {}).get("inference"),
            "parameters": redact_inline_images(body),
        }


# ── Unified entry point ────────────────────────────────────


def generate_image(
    provider: str,
    prompt: str,
    output_path: str,
    input_image_paths: list[str] | None = None,
    *,
    size: str | None = None,
    image_size: str | None = None,
) -> dict[str, Any]:
    """Generate one image with *provider*, optionally conditioned on inputs.

    OpenAI and FAL.ai editing accept a single conditioning image, so only
    the first of *input_image_paths* is used for them; Gemini uses all.

    Raises:
        ValidationError: Unknown provider.
        ToolConfigError: Provider credential is missing.
        BackendError: Provider rejected the request.
    """
    inputs = list(input_image_paths or [])
    logger.info(
        "Generating image with %s (%d conditioning images) -> %s",
        provider, len(inputs), output_path,
    )
    if provider == "openai":
        return OpenAIImageClient().generate(
            prompt, output_path,
            input_image_path=inputs[0] if inputs else None,
            size=size or "1024x1024",
        )
    if provider == "gemini":
        return GeminiImageClient().generate(
            prompt, output_path, input_image_paths=inputs,
        )
    if provider == "falai":
        client = FalImageClient()
        if inputs:
            return client.edit(
                prompt, inputs[0], output_path,
                image_size=image_size or "square_hd",
            )
        return client.generate(prompt, output_path, image_size=image_size or "square_hd")
    raise ValidationError(f"Unsupported provider: {provider}")


# ── Tool schemas ───────────────────────────────────────────


_OUTPUT_PATH_PROP = {
    "type": "string",
    "description": "Path where the generated image should be saved",
}
_FAL_PROPS: dict[str, Any] = {
    "image_size": {
        "type": "string",
        "enum": list(FAL_IMAGE_SIZES),
        "description": "Image size preset",
    },
    "num_inference_steps": {
        "type": "number",
        "minimum": 1,
        "maximum": 50,
        "description": "Number of inference steps (1-50)",
    },
    "guidance_scale": {
        "type": "number",
        "minimum": 1,
        "maximum": 20,
        "description": "How closely to follow the prompt (1-20)",
    },
}


def get_tool_schemas() -> list[dict]:
    """Return tool schemas for the standalone image tools."""
    return [
        {
            "name": "openai_generate_image",
            "description": (
                "Generate images using OpenAI's image generation API. "
                "Pass inputImagePath to edit an existing image instead."
            ),
            "input_schema": {
                "type": "object",
                "properties": {
                    "prompt": {
                        "type": "string",
                        "description": "Detailed description of the image to generate.",
                    },
                    "outputPath": _OUTPUT_PATH_PROP,
                    "inputImagePath": {
                        "type": "string",
                        "description": "Path to input image for editing/variation (optional)",
                    },
                    "size": {
                        "type": "string",
                        "enum": list(OPENAI_SIZES),
                        "description": "Image dimensions",
                    },
                    "quality": {
                        "type": "string",
                        "enum": list(OPENAI_QUALITIES),
                        "description": "Image quality level",
                    },
                    "style": {
                        "type": "string",
                        "enum": list(OPENAI_STYLES),
                        "description": "Image style preference",
                    },
                    "n": {
                        "type": "number",
                        "minimum": 1,
                        "maximum": 10,
                        "description": "Number of images to generate (1-10)",
                    },
                },
                "required": ["prompt", "outputPath"],
            },
        },
        {
            "name": "gemini_generate_image",
            "description": (
                "Generate images using Google's Gemini native image generation; "
                "supports multiple input images for variations."
            ),
            "input_schema": {
                "type": "object",
                "properties": {
                    "prompt": {
                        "type": "string",
                        "description": "Description of the image to generate.",
                    },
                    "outputPath": _OUTPUT_PATH_PROP,
                    "inputImagePaths": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Array of paths to input images for variation/combination",
                    },
                    "model": {
                        "type": "string",
                        "description": f"Gemini model to use (default: {GEMINI_DEFAULT_MODEL})",
                    },
                },
                "required": ["prompt", "outputPath"],
            },
        },
        {
            "name": "falai_generate_image",
            "description": "Generate high-quality images using FAL.ai's Qwen image model.",
            "input_schema": {
                "type": "object",
                "properties": {
                    "prompt": {
                        "type": "string",
                        "description": "Detailed prompt for image generation.",
                    },
                    "outputPath": _OUTPUT_PATH_PROP,
                    **_FAL_PROPS,
                },
                "required": ["prompt", "outputPath"],
            },
        },
        {
            "name": "falai_edit_image",
            "description": "Edit images using FAL.ai's Qwen image editing model.",
            "input_schema": {
                "type": "object",
                "properties": {
                    "prompt": {
                        "type": "string",
                        "description": "Detailed prompt describing the desired edits",
                    },
                    "inputImagePath": {
                        "type": "string",
                        "description": "Path to input image to be edited",
                    },
                    "outputPath": {
                        "type": "string",
                        "description": "Path where the edited image should be saved",
                    },
                    **_FAL_PROPS,
                },
                "required": ["prompt", "inputImagePath", "outputPath"],
            },
        },
    ]


# ── Dispatch ───────────────────────────────────────────────


def dispatch(tool_name: str, args: dict[str, Any]) -> dict[str, Any]:
    """Dispatch an image tool call to the appropriate client."""
    from assetgen.config import load_config

    defaults = load_config().images

    if tool_name == "openai_generate_image":
        validate_image_options(
            "openai",
            prompt=args.get("prompt"),
            output_path=args.get("outputPath"),
            size=args.get("size"),
            quality=args.get("quality"),
            style=args.get("style"),
            n=args.get("n"),
        )
        return OpenAIImageClient().generate(
            args["prompt"], args["outputPath"],
            input_image_path=args.get("inputImagePath"),
            size=args.get("size") or defaults.openai_size,
            n=int(args.get("n") or 1),
        )

    if tool_name == "gemini_generate_image":
        validate_image_options(
            "gemini", prompt=args.get("prompt"), output_path=args.get("outputPath"),
        )
        return GeminiImageClient().generate(
            args["prompt"], args["outputPath"],
            input_image_paths=args.get("inputImagePaths"),
            model=args.get("model") or defaults.gemini_model,
        )

    if tool_name in ("falai_generate_image", "falai_edit_image"):
        validate_image_options(
            "falai",
            prompt=args.get("prompt"),
            output_path=args.get("outputPath"),
            image_size=args.get("image_size"),
            num_inference_steps=args.get("num_inference_steps"),
            guidance_scale=args.get("guidance_scale"),
        )
        options = {
            "image_size": args.get("image_size") or defaults.falai_image_size,
            "num_inference_steps": int(
                args.get("num_inference_steps") or defaults.falai_num_inference_steps
            ),
            "guidance_scale": float(args.get("guidance_scale") or defaults.falai_guidance_scale),
        }
        client = FalImageClient()
        if tool_name == "falai_edit_image":
            if not args.get("inputImagePath"):
                raise ValidationError("inputImagePath is required for falai_edit_image")
            return client.edit(
                args["prompt"], args["inputImagePath"], args["outputPath"], **options,
            )
        return client.generate(args["prompt"], args["outputPath"], **options)

    raise ToolNotFoundError(f"Unknown tool: {tool_name}")
