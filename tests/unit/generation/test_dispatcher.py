"""Tests for backend routing and result normalization in BackendDispatcher."""
# AssetGen - Asset Generation Gateway
# Copyright (C) 2026 AssetGen Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from assetgen.exceptions import (
    BackendError,
    ConfigurationError,
    GenerationTimeoutError,
    ValidationError,
)
from assetgen.generation.dispatcher import (
    ROUTES,
    BackendDispatcher,
    GenerationResult,
    get_route,
)
from assetgen.generation.options import (
    AVAILABLE_VARIANTS,
    GenerationRequest,
    Model3DFormat,
    Model3DModel,
    Model3DVariant,
)
from assetgen.tools.model3d import MeshArtifact


# ── Helpers ──────────────────────────────────────────────────


def _artifact(provider: str = "FAL.ai", model_id: str = "trellis", **kw) -> MeshArtifact:
    return MeshArtifact(
        url="https://cdn.example.com/model.glb",
        provider=provider,
        model_id=model_id,
        parameters={"seed": 1},
        generation_time=kw.get("generation_time", 12.5),
        has_pbr_textures=kw.get("has_pbr_textures"),
    )


@pytest.fixture
def writer(fake_mesh_bytes):
    """Downloader that writes the fake GLB and records its calls."""
    calls: list[tuple[str, str]] = []

    def _download(url: str, output_path: str) -> None:
        calls.append((url, output_path))
        Path(output_path).write_bytes(fake_mesh_bytes)

    _download.calls = calls
    return _download


def _request(tmp_path, model, **kw) -> GenerationRequest:
    return GenerationRequest(
        output_path=str(tmp_path / "model.glb"), model=model, prompt="a cube", **kw,
    )


# ── Routing table ────────────────────────────────────────────


class TestRoutes:
    def test_every_permitted_pair_has_a_route(self):
        expected = {(m, v) for m, variants in AVAILABLE_VARIANTS.items() for v in variants}
        assert set(ROUTES) == expected

    def test_meshy_routes_use_meshy_client(self):
        assert get_route(Model3DModel.MESHY, Model3DVariant.MULTI).client == "meshy"
        assert get_route(Model3DModel.TRELLIS, Model3DVariant.SINGLE).client == "fal"

    def test_unsupported_pair(self):
        with pytest.raises(ConfigurationError, match="seed3d"):
            get_route(Model3DModel.SEED3D, Model3DVariant.MULTI)


# ── dispatch ─────────────────────────────────────────────────


class TestDispatch:
    async def test_trellis_multi_routes_to_multi_endpoint(self, tmp_path, writer):
        fal = MagicMock()
        fal.trellis_multi.return_value = _artifact()
        dispatcher = BackendDispatcher(clients={"fal": fal}, downloader=writer)

        result = await dispatcher.dispatch(
            _request(tmp_path, Model3DModel.TRELLIS), Model3DVariant.MULTI, ["a.png", "b.png"],
        )

        fal.trellis_multi.assert_called_once_with(["a.png", "b.png"])
        fal.trellis_single.assert_not_called()
        assert writer.calls == [("https://cdn.example.com/model.glb", str(tmp_path / "model.glb"))]
        assert result.variant == "multi"
        assert result.saved_paths == [str(tmp_path / "model.glb")]

    async def test_hunyuan_single_passes_textured_flag(self, tmp_path, writer):
        fal = MagicMock()
        fal.hunyuan3d_single.return_value = _artifact(model_id="hunyuan3d-2.0", has_pbr_textures=False)
        dispatcher = BackendDispatcher(clients={"fal": fal}, downloader=writer)

        result = await dispatcher.dispatch(
            _request(tmp_path, Model3DModel.HUNYUAN3D, textured_mesh=False),
            Model3DVariant.SINGLE, ["a.png"],
        )

        fal.hunyuan3d_single.assert_called_once_with("a.png", textured_mesh=False)
        assert result.model_info["has_pbr_textures"] is False

    async def test_hunyuan_multi_turbo(self, tmp_path, writer):
        fal = MagicMock()
        fal.hunyuan3d_multi.return_value = _artifact(model_id="hunyuan3d-2.0")
        dispatcher = BackendDispatcher(clients={"fal": fal}, downloader=writer)

        await dispatcher.dispatch(
            _request(tmp_path, Model3DModel.HUNYUAN3D, format=Model3DFormat.GLTF),
            Model3DVariant.MULTI_TURBO, ["a.png", "b.png", "c.png"],
        )

        fal.hunyuan3d_multi.assert_called_once_with(
            ["a.png", "b.png", "c.png"], fmt="gltf", turbo=True,
        )

    async def test_meshy_single(self, tmp_path, writer):
        meshy = MagicMock()
        meshy.generate_single.return_value = _artifact(provider="Meshy", model_id="meshy-6")
        dispatcher = BackendDispatcher(clients={"meshy": meshy}, downloader=writer)

        result = await dispatcher.dispatch(
            _request(tmp_path, Model3DModel.MESHY), Model3DVariant.SINGLE, ["a.png"],
        )

        meshy.generate_single.assert_called_once_with("a.png", fmt="glb")
        assert result.provider == "Meshy"
        assert result.model == "meshy-6"

    async def test_model_info_from_downloaded_file(self, tmp_path, writer, fake_mesh_bytes):
        fal = MagicMock()
        fal.seed3d.return_value = _artifact(model_id="seed3d", has_pbr_textures=True)
        dispatcher = BackendDispatcher(clients={"fal": fal}, downloader=writer)

        result = await dispatcher.dispatch(
            _request(tmp_path, Model3DModel.SEED3D), Model3DVariant.SINGLE, ["a.png"],
        )

        assert result.model_info == {
            "file_size": len(fake_mesh_bytes),
            "format": "GLB",
            "vertices": 3,
            "faces": 1,
            "has_pbr_textures": True,
        }
        assert result.generation_time == 12.5
        assert result.parameters == {"seed": 1}

    async def test_inline_images_shortened_in_result(self, tmp_path, writer):
        fal = MagicMock()
        fal.trellis_single.return_value = _artifact()
        dispatcher = BackendDispatcher(clients={"fal": fal}, downloader=writer)
        data_uri = "data:image/png;base64," + "A" * 500

        result = await dispatcher.dispatch(
            _request(tmp_path, Model3DModel.TRELLIS), Model3DVariant.SINGLE, [data_uri],
        )

        fal.trellis_single.assert_called_once_with(data_uri)
        assert len(result.input_images[0]) < 100
        assert result.input_images[0].endswith("...")

    async def test_no_images(self, tmp_path, writer):
        dispatcher = BackendDispatcher(clients={"fal": MagicMock()}, downloader=writer)
        with pytest.raises(ValidationError, match="At least one input image"):
            await dispatcher.dispatch(
                _request(tmp_path, Model3DModel.TRELLIS), Model3DVariant.SINGLE, [],
            )

    async def test_invalid_pair_raises_configuration_error(self, tmp_path, writer):
        dispatcher = BackendDispatcher(clients={"fal": MagicMock()}, downloader=writer)
        with pytest.raises(ConfigurationError):
            await dispatcher.dispatch(
                _request(tmp_path, Model3DModel.HUNYUAN_WORLD), Model3DVariant.MULTI, ["a.png"],
            )


# ── Error mapping ────────────────────────────────────────────


class TestDispatchErrors:
    async def test_unexpected_error_wrapped_with_provider(self, tmp_path, writer):
        fal = MagicMock()
        fal.trellis_single.side_effect = RuntimeError("HTTP 503 upstream unavailable")
        dispatcher = BackendDispatcher(clients={"fal": fal}, downloader=writer)

        with pytest.raises(BackendError) as exc_info:
            await dispatcher.dispatch(
                _request(tmp_path, Model3DModel.TRELLIS), Model3DVariant.SINGLE, ["a.png"],
            )
        assert exc_info.value.provider == "FAL.ai"
        assert "HTTP 503 upstream unavailable" in str(exc_info.value)

    async def test_download_failure_wrapped(self, tmp_path):
        fal = MagicMock()
        fal.trellis_single.return_value = _artifact()

        def broken(url, path):
            raise OSError("connection reset")

        dispatcher = BackendDispatcher(clients={"fal": fal}, downloader=broken)
        with pytest.raises(BackendError, match="connection reset"):
            await dispatcher.dispatch(
                _request(tmp_path, Model3DModel.TRELLIS), Model3DVariant.SINGLE, ["a.png"],
            )

    async def test_timeout_passes_through(self, tmp_path, writer):
        meshy = MagicMock()
        meshy.generate_single.side_effect = GenerationTimeoutError("Meshy task t1 timed out")
        dispatcher = BackendDispatcher(clients={"meshy": meshy}, downloader=writer)

        with pytest.raises(GenerationTimeoutError):
            await dispatcher.dispatch(
                _request(tmp_path, Model3DModel.MESHY), Model3DVariant.SINGLE, ["a.png"],
            )

    async def test_backend_error_not_rewrapped(self, tmp_path, writer):
        fal = MagicMock()
        fal.trellis_single.side_effect = BackendError("FAL.ai", "bad request")
        dispatcher = BackendDispatcher(clients={"fal": fal}, downloader=writer)

        with pytest.raises(BackendError) as exc_info:
            await dispatcher.dispatch(
                _request(tmp_path, Model3DModel.TRELLIS), Model3DVariant.SINGLE, ["a.png"],
            )
        assert str(exc_info.value) == "FAL.ai error: bad request"


# ── GenerationResult ─────────────────────────────────────────


class TestGenerationResult:
    def _result(self, **kw) -> GenerationResult:
        return GenerationResult(
            provider="FAL.ai",
            model="trellis",
            variant="multi",
            saved_paths=["/tmp/m.glb"],
            prompt_used="a cube",
            input_images=["a.png"],
            **kw,
        )

    def test_keys_without_references(self):
        data = self._result().to_dict()
        assert data["savedPaths"] == ["/tmp/m.glb"]
        assert "auto_generated_references" not in data
        assert "reference_model_used" not in data

    def test_keys_with_references(self):
        data = self._result(
            auto_generated_references=["/tmp/m_ref_front.png"],
            reference_model_used="gemini",
            reference_views_generated=["front"],
        ).to_dict()
        assert data["auto_generated_references"] == ["/tmp/m_ref_front.png"]
        assert data["reference_model_used"] == "gemini"
        assert data["reference_views_generated"] == ["front"]
