# AssetGen - Asset Generation Gateway
# Copyright (C) 2026 AssetGen Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of AssetGen, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Route a resolved 3D request to its backend and normalize the result.

Which HTTP pattern a backend uses (one synchronous call, or create task
then poll) is hidden inside the provider clients of
:mod:`assetgen.tools.model3d`; every route here gets back a
:class:`~assetgen.tools.model3d.MeshArtifact`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from assetgen.exceptions import (
    BackendError,
    ConfigurationError,
    GenerationTimeoutError,
    ValidationError,
)
from assetgen.generation.options import (
    GenerationRequest,
    Model3DFormat,
    Model3DModel,
    Model3DVariant,
    check_variant_compatible,
)
from assetgen.tools._async_compat import run_sync
from assetgen.tools._base import shorten_inline_image

logger = logging.getLogger("assetgen.generation.dispatcher")

MODEL_DISPLAY_NAMES: dict[Model3DModel, str] = {
    Model3DModel.TRELLIS: "Trellis",
    Model3DModel.HUNYUAN3D: "Hunyuan3D",
    Model3DModel.HUNYUAN_WORLD: "Hunyuan World",
    Model3DModel.SEED3D: "ByteDance Seed3D",
    Model3DModel.MESHY: "Meshy",
}


# ── GenerationResult ─────────────────────────────────────────


@dataclass
class GenerationResult:
    """Outcome of one successful 3D generation, serialized with the status-file keys."""

    provider: str
    model: str
    variant: str
    saved_paths: list[str]
    prompt_used: str | None
    input_images: list[str]
    generation_time: float | None = None
    model_info: dict[str, Any] = field(default_factory=dict)
    parameters: dict[str, Any] = field(default_factory=dict)
    auto_generated_references: list[str] | None = None
    reference_model_used: str | None = None
    reference_views_generated: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "provider": self.provider,
            "model": self.model,
            "variant": self.variant,
            "savedPaths": list(self.saved_paths),
            "prompt_used": self.prompt_used,
            "input_images": list(self.input_images),
            "generation_time": self.generation_time,
            "model_info": dict(self.model_info),
            "parameters": dict(self.parameters),
        }
        if self.auto_generated_references is not None:
            data["auto_generated_references"] = list(self.auto_generated_references)
            data["reference_model_used"] = self.reference_model_used
            data["reference_views_generated"] = list(self.reference_views_generated or [])
        return data


# ── Routing table ────────────────────────────────────────────

_FAL = "fal"
_MESHY = "meshy"


@dataclass(frozen=True)
class Route:
    """How one (model, variant) pair is served.

    ``invoke(client, request, images)`` runs synchronously in a worker
    thread and returns a ``MeshArtifact``.
    """

    client: str
    provider: str
    invoke: Callable[[Any, GenerationRequest, list[str]], Any]


def _fmt(request: GenerationRequest) -> str:
    return (request.format or Model3DFormat.GLB).value


ROUTES: dict[tuple[Model3DModel, Model3DVariant], Route] = {
    (Model3DModel.TRELLIS, Model3DVariant.SINGLE): Route(
        _FAL, "FAL.ai", lambda c, r, imgs: c.trellis_single(imgs[0]),
    ),
    (Model3DModel.TRELLIS, Model3DVariant.MULTI): Route(
        _FAL, "FAL.ai", lambda c, r, imgs: c.trellis_multi(imgs),
    ),
    (Model3DModel.HUNYUAN3D, Model3DVariant.SINGLE): Route(
        _FAL, "FAL.ai",
        lambda c, r, imgs: c.hunyuan3d_single(
            imgs[0], textured_mesh=r.textured_mesh is not False,
        ),
    ),
    (Model3DModel.HUNYUAN3D, Model3DVariant.SINGLE_TURBO): Route(
        _FAL, "FAL.ai", lambda c, r, imgs: c.hunyuan3d_single_turbo(imgs[0], fmt=_fmt(r)),
    ),
    (Model3DModel.HUNYUAN3D, Model3DVariant.MULTI): Route(
        _FAL, "FAL.ai", lambda c, r, imgs: c.hunyuan3d_multi(imgs, fmt=_fmt(r)),
    ),
    (Model3DModel.HUNYUAN3D, Model3DVariant.MULTI_TURBO): Route(
        _FAL, "FAL.ai", lambda c, r, imgs: c.hunyuan3d_multi(imgs, fmt=_fmt(r), turbo=True),
    ),
    (Model3DModel.HUNYUAN_WORLD, Model3DVariant.SINGLE): Route(
        _FAL, "FAL.ai", lambda c, r, imgs: c.hunyuan_world(imgs[0]),
    ),
    (Model3DModel.SEED3D, Model3DVariant.SINGLE): Route(
        _FAL, "FAL.ai", lambda c, r, imgs: c.seed3d(imgs[0]),
    ),
    (Model3DModel.MESHY, Model3DVariant.SINGLE): Route(
        _MESHY, "Meshy", lambda c, r, imgs: c.generate_single(imgs[0], fmt=_fmt(r)),
    ),
    (Model3DModel.MESHY, Model3DVariant.MULTI): Route(
        _MESHY, "Meshy", lambda c, r, imgs: c.generate_multi(imgs, fmt=_fmt(r)),
    ),
}


def get_route(model: Model3DModel, variant: Model3DVariant) -> Route:
    """Look up the route for a pair.

    Raises:
        ConfigurationError: The model does not offer *variant*.
    """
    check_variant_compatible(model, variant)
    return ROUTES[(model, variant)]


# ── BackendDispatcher ────────────────────────────────────────


class BackendDispatcher:
    """Call the backend for a (model, variant) pair and build a :class:`GenerationResult`.

    Clients are created on first use so that a missing credential for
    one provider does not affect jobs routed to another.  Tests inject
    fakes through *clients* and *downloader*.
    """

    def __init__(
        self,
        clients: dict[str, Any] | None = None,
        downloader: Callable[[str, str], Any] | None = None,
    ) -> None:
        self._clients: dict[str, Any] = dict(clients or {})
        self._downloader = downloader

    def _client(self, name: str) -> Any:
        client = self._clients.get(name)
        if client is not None:
            return client
        if name == _FAL:
            from assetgen.tools.model3d import FalModel3DClient

            client = FalModel3DClient()
        else:
            from assetgen.config import load_config
            from assetgen.tools.model3d import MeshyClient

            cfg = load_config().model3d
            client = MeshyClient(
                poll_interval=cfg.poll_interval,
                max_attempts=cfg.max_poll_attempts,
            )
        self._clients[name] = client
        return client

    def _download(self, url: str, output_path: str) -> None:
        if self._downloader is not None:
            self._downloader(url, output_path)
            return
        from assetgen.tools.model3d import download_model

        download_model(url, output_path)

    async def dispatch(
        self,
        request: GenerationRequest,
        variant: Model3DVariant,
        input_images: Sequence[str],
    ) -> GenerationResult:
        """Generate, download to ``request.output_path`` and describe the model.

        Raises:
            ConfigurationError: No route for the pair.
            ValidationError: The backend needs more input images than given.
            GenerationTimeoutError: A polled task never finished.
            BackendError: Anything else that went wrong on the provider side.
        """
        route = get_route(request.model, variant)
        images = list(input_images)
        if not images:
            raise ValidationError("At least one input image is required for 3D model generation")

        logger.info(
            "Dispatching %s/%s with %d input images",
            request.model.value, variant.value, len(images),
        )
        try:
            client = self._client(route.client)
            artifact = await run_sync(route.invoke, client, request, images)
            await run_sync(self._download, artifact.url, request.output_path)
            model_info = await run_sync(_describe, request.output_path)
        except (BackendError, GenerationTimeoutError, ValidationError):
            raise
        except Exception as exc:
            raise BackendError(route.provider, str(exc) or type(exc).__name__) from exc

        if artifact.has_pbr_textures is not None:
            model_info["has_pbr_textures"] = artifact.has_pbr_textures

        logger.info("Saved %s model to %s", artifact.model_id, request.output_path)
        return GenerationResult(
            provider=artifact.provider,
            model=artifact.model_id,
            variant=variant.value,
            saved_paths=[str(request.output_path)],
            prompt_used=request.prompt,
            input_images=[shorten_inline_image(i) for i in images],
            generation_time=artifact.generation_time,
            model_info=model_info,
            parameters=artifact.parameters,
        )


def _describe(path: str | Path) -> dict[str, Any]:
    from assetgen.tools.model3d import describe_model_file

    return describe_model_file(path)
