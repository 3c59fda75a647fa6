# AssetGen - Asset Generation Gateway
# Copyright (C) 2026 AssetGen Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of AssetGen, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""3-D model generation provider clients.

Backends:
  - FAL.ai (synchronous ``fal.run`` endpoints): Trellis, Hunyuan3D v2
    (single / multi-view / turbo), Hunyuan World, Seed3D
  - Meshy Image-to-3D (create task, then poll until terminal)

Every generation call returns a :class:`MeshArtifact` so that callers
never deal with ``model_mesh.url`` vs ``model_url`` vs ``model_urls``.
"""
from __future__ import annotations

import json
import struct
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from assetgen.exceptions import BackendError, GenerationTimeoutError, ValidationError
from assetgen.time_utils import parse_iso
from assetgen.tools._base import (
    get_credential,
    image_ref_to_url,
    logger,
    redact_inline_images,
)
from assetgen.tools._http import download_file, get_json, post_json

# ── Constants ──────────────────────────────────────────────

FAL_BASE_URL = "https://fal.run/fal-ai"
FAL_TRELLIS_URL = f"{FAL_BASE_URL}/trellis"
FAL_TRELLIS_MULTI_URL = f"{FAL_BASE_URL}/trellis/multi"
FAL_HUNYUAN3D_URL = f"{FAL_BASE_URL}/hunyuan3d/v2"
FAL_HUNYUAN3D_TURBO_URL = f"{FAL_BASE_URL}/hunyuan3d/v2/turbo"
FAL_HUNYUAN3D_MULTI_URL = f"{FAL_BASE_URL}/hunyuan3d/v2/multi-view"
FAL_HUNYUAN3D_MULTI_TURBO_URL = f"{FAL_BASE_URL}/hunyuan3d/v2/multi-view/turbo"
FAL_HUNYUAN_WORLD_URL = f"{FAL_BASE_URL}/hunyuan_world/image-to-world"
FAL_SEED3D_URL = f"{FAL_BASE_URL}/bytedance/seed3d/image-to-3d"

MESHY_BASE_URL = "https://api.meshy.ai/openapi/v1"
MESHY_SINGLE_PATH = "image-to-3d"
MESHY_MULTI_PATH = "image-to-3d/multi-view"
MESHY_MAX_IMAGES = 4

_GLB_MAGIC = 0x46546C67  # b"glTF" little-endian
_GLB_JSON_CHUNK = 0x4E4F534A  # b"JSON" little-endian


# ── MeshArtifact ───────────────────────────────────────────


@dataclass
class MeshArtifact:
    """Normalized output of any 3-D backend: where to fetch the mesh, and how it was made."""

    url: str
    provider: str
    model_id: str
    parameters: dict[str, Any] = field(default_factory=dict)
    generation_time: float | None = None
    has_pbr_textures: bool | None = None


# ── FalModel3DClient ───────────────────────────────────────


class FalModel3DClient:
    """FAL.ai 3-D endpoints (synchronous ``fal.run`` calls)."""

    PROVIDER = "FAL.ai"

    def __init__(self) -> None:
        self._key = get_credential("fal", "model3d", env_var="FAL_KEY")

    def _call(self, url: str, body: dict[str, Any]) -> dict[str, Any]:
        return post_json(
            self.PROVIDER, url,
            headers={"Authorization": f"Key {self._key}"},
            body=body,
        )

    def _artifact(
        self,
        response: dict[str, Any],
        *,
        model_id: str,
        body: dict[str, Any],
        has_pbr: bool | None = None,
    ) -> MeshArtifact:
        mesh = response.get("model_mesh") or {}
        url = mesh.get("url") or response.get("model_url")
        if not url:
            raise BackendError(self.PROVIDER, f"No model mesh in {model_id} response")
        timings = response.get("timings") or {}
        return MeshArtifact(
            url=url,
            provider=self.PROVIDER,
            model_id=model_id,
            parameters=redact_inline_images(body),
            generation_time=timings.get("inference"),
            has_pbr_textures=has_pbr,
        )

    # -- Trellis --

    def trellis_single(self, image: str, *, texture_size: int = 1024) -> MeshArtifact:
        body = {
            "image_url": image_ref_to_url(image),
            "texture_size": texture_size,
            "ss_guidance_strength": 7.5,
            "ss_sampling_steps": 12,
            "slat_guidance_strength": 3,
            "slat_sampling_steps": 12,
            "mesh_simplify": 0.95,
        }
        return self._artifact(self._call(FAL_TRELLIS_URL, body), model_id="trellis", body=body)

    def trellis_multi(self, images: list[str], *, texture_size: int = 1024) -> MeshArtifact:
        body = {
            "image_urls": [image_ref_to_url(i) for i in images],
            "texture_size": texture_size,
            "ss_guidance_strength": 7.5,
            "ss_sampling_steps": 12,
            "slat_guidance_strength": 3,
            "slat_sampling_steps": 12,
            "mesh_simplify": 0.95,
            "multiimage_algo": "stochastic",
        }
        return self._artifact(
            self._call(FAL_TRELLIS_MULTI_URL, body), model_id="trellis", body=body,
        )

    # -- Hunyuan3D v2 --

    def hunyuan3d_single(self, image: str, *, textured_mesh: bool = True) -> MeshArtifact:
        body = {
            "input_image_url": image_ref_to_url(image),
            "num_inference_steps": 50,
            "guidance_scale": 7.5,
            "octree_resolution": 256,
            "textured_mesh": textured_mesh,
        }
        return self._artifact(
            self._call(FAL_HUNYUAN3D_URL, body),
            model_id="hunyuan3d-2.0", body=body, has_pbr=textured_mesh,
        )

    def hunyuan3d_single_turbo(self, image: str, *, fmt: str = "glb") -> MeshArtifact:
        body = {"image_url": image_ref_to_url(image), "format": fmt}
        return self._artifact(
            self._call(FAL_HUNYUAN3D_TURBO_URL, body), model_id="hunyuan3d-2.0", body=body,
        )

    def hunyuan3d_multi(
        self, images: list[str], *, fmt: str = "glb", turbo: bool = False,
    ) -> MeshArtifact:
        """Multi-view generation; images are taken as front, back, left in that order."""
        if len(images) < 3:
            raise ValidationError(
                "Hunyuan3D Multi requires at least 3 images (front, back, left views). "
                f"Only {len(images)} images provided."
            )
        front, back, left = (image_ref_to_url(i) for i in images[:3])
        body = {
            "front_image_url": front,
            "back_image_url": back,
            "left_image_url": left,
            "format": fmt,
        }
        url = FAL_HUNYUAN3D_MULTI_TURBO_URL if turbo else FAL_HUNYUAN3D_MULTI_URL
        return self._artifact(self._call(url, body), model_id="hunyuan3d-2.0", body=body)

    # -- Hunyuan World / Seed3D --

    def hunyuan_world(self, image: str) -> MeshArtifact:
        body = {
            "image_url": image_ref_to_url(image),
            "camera_distance": 2.5,
            "fov": 40,
            "num_inference_steps": 50,
            "guidance_scale": 7.5,
        }
        return self._artifact(
            self._call(FAL_HUNYUAN_WORLD_URL, body), model_id="hunyuan-world", body=body,
        )

    def seed3d(self, image: str) -> MeshArtifact:
        body = {"image_url": image_ref_to_url(image)}
        return self._artifact(
            self._call(FAL_SEED3D_URL, body), model_id="seed3d", body=body, has_pbr=True,
        )


# ── MeshyClient ────────────────────────────────────────────


class MeshyClient:
    """Meshy Image-to-3D API client (create task, then poll)."""

    PROVIDER = "Meshy"

    def __init__(self, poll_interval: float = 5.0, max_attempts: int = 120) -> None:
        self._key = get_credential("meshy", "model3d", env_var="MESHY_API_KEY")
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._key}"}

    def create_task(self, base_path: str, body: dict[str, Any]) -> str:
        """Submit a task and return its ID."""
        response = post_json(
            self.PROVIDER, f"{MESHY_BASE_URL}/{base_path}",
            headers=self._headers(), body=body,
        )
        task_id = response.get("result")
        if not task_id:
            raise BackendError(self.PROVIDER, "No task ID returned from Meshy API")
        logger.info("Meshy task created: %s (%s)", task_id, base_path)
        return task_id

    def poll_task(self, base_path: str, task_id: str) -> dict[str, Any]:
        """Poll until the task succeeds.

        Returns:
            Completed task dict with ``model_urls``.

        Raises:
            BackendError: Task reached FAILED, EXPIRED or CANCELED.
            GenerationTimeoutError: ``max_attempts`` polls without a
                terminal status.
        """
        url = f"{MESHY_BASE_URL}/{base_path}/{task_id}"
        for attempt in range(self.max_attempts):
            task = get_json(self.PROVIDER, url, headers=self._headers())
            status = task.get("status", "")
            if status == "SUCCEEDED":
                return task
            if status in ("FAILED", "EXPIRED", "CANCELED"):
                err = (task.get("task_error") or {}).get("message") or "Unknown error"
                raise BackendError(self.PROVIDER, f"task {task_id} {status}: {err}")
            logger.debug(
                "Meshy task %s: %s (%s%%) attempt %d/%d",
                task_id, status, task.get("progress", 0), attempt + 1, self.max_attempts,
            )
            time.sleep(self.poll_interval)

        raise GenerationTimeoutError(
            f"Meshy task {task_id} timed out after {self.max_attempts} polling attempts"
        )

    def _run(
        self, base_path: str, body: dict[str, Any], *, fmt: str, model_id: str,
    ) -> MeshArtifact:
        task_id = self.create_task(base_path, body)
        task = self.poll_task(base_path, task_id)

        model_urls = task.get("model_urls") or {}
        url = model_urls.get(fmt) or model_urls.get("glb")
        if not url:
            raise BackendError(
                self.PROVIDER, f"No model URL in Meshy response; got {list(model_urls)}",
            )
        return MeshArtifact(
            url=url,
            provider=self.PROVIDER,
            model_id=model_id,
            parameters=redact_inline_images(body),
            generation_time=_elapsed_seconds(task.get("created_at"), task.get("finished_at")),
            has_pbr_textures=body.get("should_texture", True) is not False,
        )

    def generate_single(self, image: str, *, fmt: str = "glb") -> MeshArtifact:
        body = {"image_url": image_ref_to_url(image), "enable_pbr": True}
        return self._run(MESHY_SINGLE_PATH, body, fmt=fmt, model_id="meshy-6")

    def generate_multi(self, images: list[str], *, fmt: str = "glb") -> MeshArtifact:
        if not images:
            raise ValidationError("Meshy multi-view requires at least 1 image")
        if len(images) > MESHY_MAX_IMAGES:
            logger.warning(
                "Meshy multi-view accepts at most %d images; using the first %d of %d",
                MESHY_MAX_IMAGES, MESHY_MAX_IMAGES, len(images),
            )
        body = {
            "image_urls": [image_ref_to_url(i) for i in images[:MESHY_MAX_IMAGES]],
            "enable_pbr": True,
        }
        return self._run(MESHY_MULTI_PATH, body, fmt=fmt, model_id="meshy-5")


def _elapsed_seconds(started: Any, finished: Any) -> float | None:
    """Seconds between two Meshy timestamps (epoch milliseconds or ISO strings)."""
    if not started or not finished:
        return None
    if isinstance(started, (int, float)) and isinstance(finished, (int, float)):
        return (finished - started) / 1000
    try:
        return (parse_iso(str(finished)) - parse_iso(str(started))).total_seconds()
    except ValueError:
        return None


# ── Model files ────────────────────────────────────────────


def download_model(url: str, output_path: str | Path) -> Path:
    """Download a generated model to *output_path*."""
    download_file(url, output_path)
    return Path(output_path)


def _count_geometry(gltf: dict[str, Any]) -> tuple[int, int]:
    """Sum vertex and triangle counts over every mesh primitive."""
    accessors = gltf.get("accessors") or []
    vertices = 0
    faces = 0
    for mesh in gltf.get("meshes") or []:
        for prim in mesh.get("primitives") or []:
            pos = (prim.get("attributes") or {}).get("POSITION")
            count = accessors[pos].get("count", 0) if pos is not None else 0
            vertices += count
            idx = prim.get("indices")
            if idx is not None:
                faces += accessors[idx].get("count", 0) // 3
            else:
                faces += count // 3
    return vertices, faces


def _read_gltf_json(path: Path) -> dict[str, Any] | None:
    data = path.read_bytes()
    if path.suffix.lower() == ".gltf":
        return json.loads(data.decode("utf-8"))
    if len(data) < 20:
        return None
    magic, _version, _length = struct.unpack_from("<III", data, 0)
    if magic != _GLB_MAGIC:
        return None
    chunk_len, chunk_type = struct.unpack_from("<II", data, 12)
    if chunk_type != _GLB_JSON_CHUNK:
        return None
    return json.loads(data[20:20 + chunk_len].decode("utf-8"))


def describe_model_file(path: str | Path) -> dict[str, Any]:
    """File size and format of a model; vertex/face counts when the glTF JSON is readable."""
    p = Path(path)
    info: dict[str, Any] = {
        "file_size": p.stat().st_size,
        "format": p.suffix.lstrip(".").upper(),
    }
    try:
        gltf = _read_gltf_json(p)
        if gltf is not None:
            info["vertices"], info["faces"] = _count_geometry(gltf)
    except (ValueError, IndexError, KeyError, AttributeError, TypeError, struct.error) as exc:
        logger.debug("Could not read geometry from %s: %s", p, exc)
    return info


# ── Tool schemas ───────────────────────────────────────────


def get_tool_schemas() -> list[dict]:
    """Return the schema for the asynchronous 3-D generation tool."""
    return [
        {
            "name": "image_to_3d_async",
            "description": (
                "Generate 3D models from images using Trellis, Hunyuan3D 2.0, "
                "Hunyuan World, Seed3D or Meshy, with automatic reference image "
                "generation. Runs in the background and returns a status file "
                "path immediately for progress tracking."
            ),
            "input_schema": {
                "type": "object",
                "properties": {
                    "prompt": {
                        "type": "string",
                        "description": (
                            "Description of the 3D model to generate "
                            "(used for automatic reference image generation)"
                        ),
                    },
                    "outputPath": {
                        "type": "string",
                        "description": "Path where the generated 3D model should be saved (.glb or .gltf)",
                    },
                    "inputImagePaths": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": (
                            "Paths to input images, http(s) URLs or base64 URIs "
                            "(data:image/png;base64,...). If not provided, reference "
                            "images are generated automatically."
                        ),
                    },
                    "model": {
                        "type": "string",
                        "enum": ["trellis", "hunyuan3d", "hunyuan-world", "seed3d", "meshy"],
                        "description": (
                            "3D generation model: hunyuan3d (best quality, supports "
                            "textures), trellis (good for objects), hunyuan-world "
                            "(scenes), seed3d (PBR), meshy. Default: hunyuan3d"
                        ),
                    },
                    "variant": {
                        "type": "string",
                        "enum": ["single", "multi", "single-turbo", "multi-turbo"],
                        "description": (
                            "Model variant: single (1 image), multi (multiple images), "
                            "or turbo versions. Default: auto-selected from the input count"
                        ),
                    },
                    "format": {
                        "type": "string",
                        "enum": ["glb", "gltf"],
                        "description": "Output format (default: glb)",
                    },
                    "textured_mesh": {
                        "type": "boolean",
                        "description": "Generate textured mesh (Hunyuan3D only). Default: true",
                    },
                    "autoGenerateReferences": {
                        "type": "boolean",
                        "description": (
                            "Generate reference images from the prompt when no input "
                            "images are provided (default: true)"
                        ),
                    },
                    "referenceModel": {
                        "type": "string",
                        "enum": ["openai", "gemini", "falai"],
                        "description": "Provider for reference image generation (default: gemini)",
                    },
                    "referenceViews": {
                        "type": "array",
                        "items": {
                            "type": "string",
                            "enum": ["front", "back", "top", "left", "right"],
                        },
                        "description": 'Views to generate (default: ["front", "back", "top"])',
                    },
                    "cleanupReferences": {
                        "type": "boolean",
                        "description": "Delete generated reference images afterwards (default: true)",
                    },
                    "statusFile": {
                        "type": "string",
                        "description": (
                            "Path of the status JSON file "
                            "(default: <outputPath stem>_status.json)"
                        ),
                    },
                },
                "required": ["outputPath"],
            },
        },
    ]
