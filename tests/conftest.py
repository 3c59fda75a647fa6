# AssetGen - Asset Generation Gateway
# Copyright (C) 2026 AssetGen Authors
# SPDX-License-Identifier: Apache-2.0
"""Global test fixtures for AssetGen.

Provides filesystem isolation, config cache management and fakes for
the provider boundary so no test talks to a real API.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

_CREDENTIAL_ENV_VARS = (
    "OPENAI_API_KEY",
    "GEMINI_API_KEY",
    "FAL_KEY",
    "MESHY_API_KEY",
    "ALLOWED_TOOLS",
)


# ── Fixtures ──────────────────────────────────────────────


@pytest.fixture(autouse=True)
def data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolated AssetGen runtime data directory.

    - Redirects ``ASSETGEN_DATA_DIR`` to a temp directory
    - Clears provider credentials and ``ALLOWED_TOOLS`` from the environment
    - Invalidates the config cache before and after the test
    """
    from assetgen.config import invalidate_cache

    d = tmp_path / "assetgen-data"
    d.mkdir()
    monkeypatch.setenv("ASSETGEN_DATA_DIR", str(d))
    for var in _CREDENTIAL_ENV_VARS:
        monkeypatch.delenv(var, raising=False)

    invalidate_cache()
    yield d
    invalidate_cache()


@pytest.fixture
def fake_mesh_bytes() -> bytes:
    """A minimal GLB: one triangle mesh with 3 vertices and 3 indices."""
    import json
    import struct

    gltf = {
        "asset": {"version": "2.0"},
        "accessors": [{"count": 3}, {"count": 3}],
        "meshes": [{"primitives": [{"attributes": {"POSITION": 0}, "indices": 1}]}],
    }
    chunk = json.dumps(gltf).encode("utf-8")
    chunk += b" " * (-len(chunk) % 4)
    total = 12 + 8 + len(chunk)
    header = struct.pack("<III", 0x46546C67, 2, total)
    chunk_header = struct.pack("<II", len(chunk), 0x4E4F534A)
    return header + chunk_header + chunk


class FakeDispatcher:
    """Stands in for BackendDispatcher; records calls and writes the output file."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls: list[dict[str, Any]] = []

    async def dispatch(self, request, variant, input_images):
        from assetgen.generation.dispatcher import GenerationResult

        self.calls.append({
            "model": request.model,
            "variant": variant,
            "input_images": list(input_images),
            "output_path": request.output_path,
        })
        if self.error is not None:
            raise self.error
        out = Path(request.output_path)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_bytes(b"glTF-fake")
        return GenerationResult(
            provider="FAL.ai",
            model=request.model.value,
            variant=variant.value,
            saved_paths=[str(out)],
            prompt_used=request.prompt,
            input_images=list(input_images),
            model_info={"file_size": 9, "format": "GLB"},
        )


class FakeImageGenerator:
    """Async stand-in for the reference image provider call.

    Writes a small PNG-ish file per call; ``fail_on`` lists 1-based call
    numbers that raise instead.
    """

    def __init__(self, fail_on: tuple[int, ...] = ()) -> None:
        self.fail_on = fail_on
        self.calls: list[dict[str, Any]] = []

    async def __call__(self, provider, prompt, output_path, input_image_paths):
        self.calls.append({
            "provider": provider,
            "prompt": prompt,
            "output_path": output_path,
            "input_image_paths": list(input_image_paths),
        })
        if len(self.calls) in self.fail_on:
            raise RuntimeError(f"simulated failure on call {len(self.calls)}")
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        Path(output_path).write_bytes(b"\x89PNG fake")
        return {"provider": provider, "savedPaths": [output_path]}


@pytest.fixture
def fake_dispatcher() -> FakeDispatcher:
    return FakeDispatcher()


@pytest.fixture
def fake_image_generator() -> FakeImageGenerator:
    return FakeImageGenerator()


@pytest.fixture
def failing_dispatcher():
    """Factory: ``failing_dispatcher(exc)`` returns a FakeDispatcher raising *exc*."""
    return FakeDispatcher


@pytest.fixture
def flaky_image_generator():
    """Factory: ``flaky_image_generator(fail_on=(2,))`` returns a FakeImageGenerator."""
    return FakeImageGenerator
