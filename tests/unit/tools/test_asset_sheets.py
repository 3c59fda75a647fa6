"""Tests for assetgen/tools/asset_sheets.py — prompt templates and game-asset tools."""
# AssetGen - Asset Generation Gateway
# Copyright (C) 2026 AssetGen Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from unittest.mock import patch

import pytest

from assetgen.exceptions import BackendError, ToolConfigError, ToolNotFoundError, ValidationError
from assetgen.tools.asset_sheets import (
    character_sheet_prompt,
    dispatch,
    get_tool_schemas,
    object_view_path,
    pixel_art_prompt,
    texture_prompt,
)


def _saved(provider, prompt, output_path, input_image_paths=None, **_kw):
    return {"provider": provider, "savedPaths": [output_path], "prompt_used": prompt}


@pytest.fixture
def mock_generate():
    with patch("assetgen.tools.asset_sheets.generate_image", side_effect=_saved) as mock_gen:
        yield mock_gen


# ── Prompt templates ──────────────────────────────────────────────


class TestPrompts:
    def test_character_sheet_optional_sections(self):
        plain = character_sheet_prompt("a knight", "anime")
        assert plain.startswith("Create a detailed character sheet for: a knight. Art style: anime. ")
        assert "facial expressions" not in plain
        assert "reference images" not in plain

        full = character_sheet_prompt(
            "a knight", "anime", expressions=True, poses=True, with_references=True,
        )
        assert "(happy, sad, angry, surprised, neutral)" in full
        assert "(front view, side view, back view)" in full
        assert full.endswith("maintaining consistency with the visual style and features shown.")

    def test_pixel_art_colors_and_sprite_sheet(self):
        text = pixel_art_prompt("a slime", "32x32", colors=16, sprite_sheet=True)
        assert text.startswith(
            "Pixel art character: a slime. Retro game pixel art style, "
            "limited color palette with 16 colors, clean pixels"
        )
        assert "walking animation frames (4 frames)" in text
        assert "Target final size will be 32x32 pixels." in text

    def test_texture_material_hints(self):
        diffuse = texture_prompt("grass", "1024x1024", "diffuse", seamless=True)
        assert diffuse.startswith("diffuse texture map: grass. High quality 1024x1024 texture, ")
        assert "seamless tileable pattern" in diffuse
        assert diffuse.endswith("uniform lighting, no shadows.")

        normal = texture_prompt("bricks", "512x512", "normal")
        assert "normal map, purple/blue surface detail information" in normal

    def test_transparent_texture_keeps_shadow_clause_off(self):
        text = texture_prompt("a coin", "512x512", "diffuse", transparent=True)
        assert "sprite/decal style, isolated object with transparent background" in text
        assert text.endswith("uniform lighting.")

    def test_object_view_path(self):
        assert object_view_path("/out/chair.png", "left") == "/out/chair_left.png"
        assert object_view_path("/out/chair", "top") == "/out/chair_top.png"


# ── Tools ─────────────────────────────────────────────────────────


class TestCharacterTools:
    def test_character_sheet(self, mock_generate):
        result = dispatch("generate_character_sheet", {
            "characterDescription": "a knight",
            "outputPath": "sheet.png",
            "referenceImagePaths": ["ref.png"],
            "includePoses": True,
        })
        provider, prompt, output, refs = mock_generate.call_args.args
        assert (provider, output, refs) == ("gemini", "sheet.png", ["ref.png"])
        assert "Art style: detailed digital art." in prompt
        assert result["operation"] == "character_sheet_generation"
        assert result["features"] == {"expressions": False, "poses": True}
        assert result["savedPaths"] == ["sheet.png"]

    def test_character_sheet_requires_description(self, mock_generate):
        with pytest.raises(ValidationError, match="characterDescription"):
            dispatch("generate_character_sheet", {"outputPath": "s.png"})
        mock_generate.assert_not_called()

    def test_variation_requires_references(self, mock_generate):
        with pytest.raises(ValidationError, match="At least one reference image"):
            dispatch("generate_character_variation", {
                "prompt": "in winter gear", "outputPath": "v.png", "referenceImagePaths": [],
            })
        mock_generate.assert_not_called()

    def test_variation_uses_all_references(self, mock_generate):
        result = dispatch("generate_character_variation", {
            "prompt": "in winter gear",
            "outputPath": "v.png",
            "referenceImagePaths": ["hero.png", "coat.png"],
            "model": "openai",
        })
        provider, prompt, _, refs = mock_generate.call_args.args
        assert provider == "openai"
        assert refs == ["hero.png", "coat.png"]
        assert prompt.startswith("in winter gear Maintain consistency")
        assert result["variation_prompt"] == "in winter gear"

    def test_unknown_model(self, mock_generate):
        with pytest.raises(ValidationError, match="model must be one of"):
            dispatch("generate_character_sheet", {
                "characterDescription": "a knight", "outputPath": "s.png", "model": "dalle",
            })


class TestPixelArtAndTexture:
    def test_pixel_art_defaults_to_falai(self, mock_generate):
        result = dispatch("generate_pixel_art_character", {
            "characterDescription": "a slime",
            "outputPath": "slime.png",
            "pixelDimensions": "48x48",
        })
        assert mock_generate.call_args.args[0] == "falai"
        assert result["target_size"] == 48
        assert result["generation_size"] == 256
        assert result["colors"] == "auto"
        assert "scaling down to 48x48px" in result["note"]

    def test_pixel_art_rejects_dimensions(self, mock_generate):
        with pytest.raises(ValidationError, match="pixelDimensions"):
            dispatch("generate_pixel_art_character", {
                "characterDescription": "a slime", "outputPath": "s.png", "pixelDimensions": "10x10",
            })

    def test_pixel_art_rejects_palette(self, mock_generate):
        with pytest.raises(ValidationError, match="colors"):
            dispatch("generate_pixel_art_character", {
                "characterDescription": "a slime", "outputPath": "s.png",
                "pixelDimensions": "16x16", "colors": 2,
            })

    def test_texture_defaults(self, mock_generate):
        result = dispatch("generate_texture", {
            "textureDescription": "brick wall", "outputPath": "brick.png",
        })
        _, prompt, output = mock_generate.call_args.args
        assert output == "brick.png"
        assert prompt.startswith("diffuse texture map: brick wall. High quality 1024x1024")
        assert result["material_type"] == "diffuse"
        assert result["usage_note"].endswith("Apply to materials as diffuse map.")

    def test_texture_rejects_material(self, mock_generate):
        with pytest.raises(ValidationError, match="materialType"):
            dispatch("generate_texture", {
                "textureDescription": "x", "outputPath": "x.png", "materialType": "specular",
            })


class TestObjectSheet:
    def test_one_image_per_viewpoint(self, tmp_path, mock_generate):
        base = str(tmp_path / "chair.png")
        result = dispatch("generate_object_sheet", {
            "objectDescription": "a wooden chair",
            "outputBasePath": base,
            "viewpoints": ["front", "perspective"],
        })
        outputs = [c.args[2] for c in mock_generate.call_args_list]
        assert outputs == [str(tmp_path / "chair_front.png"), str(tmp_path / "chair_perspective.png")]
        assert "3/4 perspective view" in mock_generate.call_args_list[1].args[1]
        assert result["viewpoints_generated"] == 2
        assert result["savedPaths"] == outputs
        assert result["provider"] == "gemini"

    def test_default_viewpoints(self, mock_generate):
        result = dispatch("generate_object_sheet", {
            "objectDescription": "a chair", "outputBasePath": "chair",
        })
        assert result["viewpoints_requested"] == [
            "front", "back", "left", "right", "top", "perspective",
        ]
        assert mock_generate.call_count == 6

    def test_failed_viewpoint_skipped(self, mock_generate):
        mock_generate.side_effect = [
            _saved("gemini", "p", "c_front.png"),
            BackendError("Google Gemini", "No image data received from Gemini API"),
            _saved("gemini", "p", "c_top.png"),
        ]
        result = dispatch("generate_object_sheet", {
            "objectDescription": "a chair",
            "outputBasePath": "c.png",
            "viewpoints": ["front", "back", "top"],
        })
        assert result["viewpoints_generated"] == 2
        assert result["savedPaths"] == ["c_front.png", "c_top.png"]
        assert "No image data" in result["results"][1]["error"]

    def test_missing_credential_before_any_view_propagates(self, mock_generate):
        mock_generate.side_effect = ToolConfigError("Tool 'image_gen' requires credential 'gemini'")
        with pytest.raises(ToolConfigError):
            dispatch("generate_object_sheet", {
                "objectDescription": "a chair", "outputBasePath": "c.png",
            })
        assert mock_generate.call_count == 1

    def test_unknown_viewpoint(self, mock_generate):
        with pytest.raises(ValidationError, match="viewpoints"):
            dispatch("generate_object_sheet", {
                "objectDescription": "a chair", "outputBasePath": "c.png", "viewpoints": ["side"],
            })
        mock_generate.assert_not_called()


# ── Schemas / dispatch ────────────────────────────────────────────


class TestSchemas:
    def test_schema_names(self):
        assert [s["name"] for s in get_tool_schemas()] == [
            "generate_character_sheet",
            "generate_character_variation",
            "generate_pixel_art_character",
            "generate_texture",
            "generate_object_sheet",
        ]
        for schema in get_tool_schemas():
            assert schema["input_schema"]["type"] == "object"
            assert set(schema["input_schema"]["required"]) <= set(
                schema["input_schema"]["properties"]
            )

    def test_unknown_tool(self):
        with pytest.raises(ToolNotFoundError):
            dispatch("generate_music", {})
