# AssetGen - Asset Generation Gateway
# Copyright (C) 2026 AssetGen Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of AssetGen, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Generation options: enums, the variant compatibility table, defaults and validation.

Two validation styles exist side by side:

- :func:`validate_options` is strict and raises.  The async job
  orchestrator uses it before any background work starts.
- :func:`validate_and_get_variant` is lenient: an incompatible variant
  is replaced by the model's default with a warning.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

from assetgen.exceptions import ConfigurationError, ValidationError

logger = logging.getLogger("assetgen.generation")


# ── Enums ────────────────────────────────────────────────────


class Model3DModel(str, Enum):
    TRELLIS = "trellis"
    HUNYUAN3D = "hunyuan3d"
    HUNYUAN_WORLD = "hunyuan-world"
    SEED3D = "seed3d"
    MESHY = "meshy"


class Model3DVariant(str, Enum):
    SINGLE = "single"
    MULTI = "multi"
    SINGLE_TURBO = "single-turbo"
    MULTI_TURBO = "multi-turbo"

    @property
    def is_multi(self) -> bool:
        return self in (Model3DVariant.MULTI, Model3DVariant.MULTI_TURBO)


class Model3DFormat(str, Enum):
    GLB = "glb"
    GLTF = "gltf"


class ReferenceProvider(str, Enum):
    OPENAI = "openai"
    GEMINI = "gemini"
    FALAI = "falai"


class ReferenceView(str, Enum):
    FRONT = "front"
    BACK = "back"
    TOP = "top"
    LEFT = "left"
    RIGHT = "right"


# ── Compatibility table ──────────────────────────────────────

AVAILABLE_VARIANTS: dict[Model3DModel, tuple[Model3DVariant, ...]] = {
    Model3DModel.TRELLIS: (Model3DVariant.SINGLE, Model3DVariant.MULTI),
    Model3DModel.HUNYUAN3D: (
        Model3DVariant.SINGLE,
        Model3DVariant.MULTI,
        Model3DVariant.SINGLE_TURBO,
        Model3DVariant.MULTI_TURBO,
    ),
    Model3DModel.HUNYUAN_WORLD: (Model3DVariant.SINGLE,),
    Model3DModel.SEED3D: (Model3DVariant.SINGLE,),
    Model3DModel.MESHY: (Model3DVariant.SINGLE, Model3DVariant.MULTI),
}

# Fallback when no variant is given or the given one is incompatible
DEFAULT_VARIANTS: dict[Model3DModel, Model3DVariant] = {
    Model3DModel.TRELLIS: Model3DVariant.SINGLE,
    Model3DModel.HUNYUAN3D: Model3DVariant.SINGLE,
    Model3DModel.HUNYUAN_WORLD: Model3DVariant.SINGLE,
    Model3DModel.SEED3D: Model3DVariant.SINGLE,
    Model3DModel.MESHY: Model3DVariant.SINGLE,
}

# Variant filled in by get_default_options()
PREFERRED_VARIANTS: dict[Model3DModel, Model3DVariant] = {
    Model3DModel.TRELLIS: Model3DVariant.MULTI,
    Model3DModel.HUNYUAN3D: Model3DVariant.MULTI,
    Model3DModel.HUNYUAN_WORLD: Model3DVariant.SINGLE,
    Model3DModel.SEED3D: Model3DVariant.SINGLE,
    Model3DModel.MESHY: Model3DVariant.SINGLE,
}

_TURBO_FORM: dict[Model3DVariant, Model3DVariant] = {
    Model3DVariant.SINGLE: Model3DVariant.SINGLE_TURBO,
    Model3DVariant.MULTI: Model3DVariant.MULTI_TURBO,
}

for _model in Model3DModel:
    assert DEFAULT_VARIANTS[_model] in AVAILABLE_VARIANTS[_model], _model
    assert PREFERRED_VARIANTS[_model] in AVAILABLE_VARIANTS[_model], _model
del _model

DEFAULT_REFERENCE_VIEWS: tuple[ReferenceView, ...] = (
    ReferenceView.FRONT,
    ReferenceView.BACK,
    ReferenceView.TOP,
)


# ── GenerationRequest ────────────────────────────────────────


@dataclass(frozen=True)
class GenerationRequest:
    """One 3D generation invocation.

    Option fields left as ``None`` are filled by :func:`merge_with_defaults`.
    The image-or-prompt requirement is checked by :func:`validate_options`,
    not here: images may still come from reference generation.
    """

    output_path: str
    model: Model3DModel = Model3DModel.HUNYUAN3D
    prompt: str | None = None
    input_images: tuple[str, ...] = ()
    variant: Model3DVariant | None = None
    format: Model3DFormat | None = None
    auto_generate_references: bool | None = None
    reference_model: ReferenceProvider | None = None
    reference_views: tuple[ReferenceView, ...] | None = None
    cleanup_references: bool | None = None
    textured_mesh: bool | None = None

    @classmethod
    def from_args(
        cls,
        args: dict[str, Any],
        *,
        default_model: str = Model3DModel.HUNYUAN3D.value,
        default_reference_model: str | None = None,
    ) -> GenerationRequest:
        """Build a request from tool arguments (camelCase keys).

        *default_model* and *default_reference_model* apply when the
        arguments leave those fields out (usually the configured defaults).

        Raises:
            ValidationError: An enum-valued argument is not recognized.
        """
        views = args.get("referenceViews")
        return cls(
            output_path=args.get("outputPath") or "",
            model=coerce_enum(Model3DModel, args.get("model") or default_model, "Model"),
            prompt=args.get("prompt") or None,
            input_images=tuple(args.get("inputImagePaths") or ()),
            variant=_coerce_optional(Model3DVariant, args.get("variant"), "Variant"),
            format=_coerce_optional(Model3DFormat, args.get("format"), "Format"),
            auto_generate_references=args.get("autoGenerateReferences"),
            reference_model=_coerce_optional(
                ReferenceProvider,
                args.get("referenceModel") or default_reference_model,
                "Reference model",
            ),
            reference_views=(
                tuple(coerce_enum(ReferenceView, v, "Reference view") for v in views)
                if views is not None else None
            ),
            cleanup_references=args.get("cleanupReferences"),
            textured_mesh=args.get("textured_mesh"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "outputPath": self.output_path,
            "model": _value(self.model),
            "prompt": self.prompt,
            "inputImagePaths": list(self.input_images),
            "variant": _value(self.variant),
            "format": _value(self.format),
            "autoGenerateReferences": self.auto_generate_references,
            "referenceModel": _value(self.reference_model),
            "referenceViews": (
                [_value(v) for v in self.reference_views]
                if self.reference_views is not None else None
            ),
            "cleanupReferences": self.cleanup_references,
            "textured_mesh": self.textured_mesh,
        }


E = TypeVar("E", bound=Enum)


def _value(member: Any) -> Any:
    return member.value if isinstance(member, Enum) else member


def coerce_enum(enum_cls: type[E], value: Any, label: str) -> E:
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{label} must be one of: {allowed} (got {value!r})") from None


def _coerce_optional(enum_cls: type[E], value: Any, label: str) -> E | None:
    if value is None or value == "":
        return None
    return coerce_enum(enum_cls, value, label)


# ── Defaults ─────────────────────────────────────────────────


def get_default_options(model: Model3DModel | str) -> dict[str, Any]:
    """Defaults layered under user options for *model*, keyed by request field name."""
    model = coerce_enum(Model3DModel, model, "Model")
    return {
        "variant": PREFERRED_VARIANTS[model],
        "format": Model3DFormat.GLB,
        "auto_generate_references": True,
        "reference_model": ReferenceProvider.GEMINI,
        "reference_views": DEFAULT_REFERENCE_VIEWS,
        "cleanup_references": True,
    }


def merge_with_defaults(
    request: GenerationRequest,
    *,
    include_variant: bool = True,
) -> GenerationRequest:
    """Fill every unset option of *request* from its model's defaults.

    Shallow and per-field: a value the caller supplied is never replaced.
    With ``include_variant=False`` the variant is left unset so that
    :func:`select_variant` can pick it from the effective image count.
    """
    defaults = get_default_options(request.model)
    if not include_variant:
        defaults.pop("variant")
    updates = {
        name: value
        for name, value in defaults.items()
        if getattr(request, name) is None
    }
    if not updates:
        return request
    return dataclasses.replace(request, **updates)


# ── Validation ───────────────────────────────────────────────


def check_variant_compatible(model: Model3DModel, variant: Model3DVariant) -> None:
    """Raise :class:`ConfigurationError` naming *model* if it does not offer *variant*."""
    available = AVAILABLE_VARIANTS[model]
    if variant not in available:
        raise ConfigurationError(
            f"Variant '{variant.value}' is not supported by model '{model.value}'. "
            f"Supported variants: {', '.join(v.value for v in available)}",
            model=model.value,
        )


def validate_options(request: GenerationRequest) -> None:
    """Strict validation of a (merged or raw) request.

    Raises:
        ValidationError: Empty output path, unknown enum value, or
            neither prompt nor input images.
        ConfigurationError: Variant not offered by the model.
    """
    if not request.output_path or not str(request.output_path).strip():
        raise ValidationError("Output path is required and cannot be empty")

    model = coerce_enum(Model3DModel, request.model, "Model")
    variant = _coerce_optional(Model3DVariant, request.variant, "Variant")
    _coerce_optional(Model3DFormat, request.format, "Format")
    _coerce_optional(ReferenceProvider, request.reference_model, "Reference model")
    for view in request.reference_views or ():
        coerce_enum(ReferenceView, view, "Reference view")

    if variant is not None:
        check_variant_compatible(model, variant)

    has_prompt = bool(request.prompt and request.prompt.strip())
    if not request.input_images and not has_prompt:
        raise ValidationError(
            "Either input images or a prompt is required. "
            "Provide inputImagePaths, or a prompt to generate reference images from."
        )


def validate_and_get_variant(
    model: Model3DModel | str,
    variant: Model3DVariant | str | None = None,
) -> Model3DVariant:
    """Return *variant* if *model* offers it, else the model's default (with a warning)."""
    model = coerce_enum(Model3DModel, model, "Model")
    if variant is None or variant == "":
        return DEFAULT_VARIANTS[model]
    try:
        resolved = Model3DVariant(variant)
    except ValueError:
        resolved = None
    if resolved is None or resolved not in AVAILABLE_VARIANTS[model]:
        logger.warning(
            "Variant %s not available for model %s. Using default: %s",
            _value(variant), model.value, DEFAULT_VARIANTS[model].value,
        )
        return DEFAULT_VARIANTS[model]
    return resolved


def select_variant(
    model: Model3DModel | str,
    input_image_count: int,
    prefer_fast: bool = False,
) -> Model3DVariant:
    """Pick a variant from the number of input images.

    Single-variant models always get that variant.  Otherwise ``multi``
    when more than one image is available, else ``single``; with
    *prefer_fast* the turbo form is used where the model offers it.
    """
    model = coerce_enum(Model3DModel, model, "Model")
    available = AVAILABLE_VARIANTS[model]
    if len(available) == 1:
        return available[0]

    base = Model3DVariant.MULTI if input_image_count > 1 else Model3DVariant.SINGLE
    if prefer_fast and _TURBO_FORM[base] in available:
        return _TURBO_FORM[base]
    if base in available:
        return base
    return DEFAULT_VARIANTS[model]
