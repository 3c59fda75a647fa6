# AssetGen - Asset Generation Gateway
# Copyright (C) 2026 AssetGen Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from assetgen.generation.dispatcher import BackendDispatcher, GenerationResult
from assetgen.generation.options import (
    GenerationRequest,
    Model3DFormat,
    Model3DModel,
    Model3DVariant,
    ReferenceProvider,
    ReferenceView,
    get_default_options,
    merge_with_defaults,
    select_variant,
    validate_and_get_variant,
    validate_options,
)
from assetgen.generation.orchestrator import (
    GenerationJobManager,
    default_status_path,
    generate_3d_model,
    generate_3d_model_smart,
    get_default_manager,
    start_async_generation,
)
from assetgen.generation.references import generate_reference_images
from assetgen.generation.status import (
    FileStatusSink,
    JobStatus,
    JobStatusSink,
    MemoryStatusSink,
    read_status,
)

__all__ = [
    "BackendDispatcher",
    "FileStatusSink",
    "GenerationJobManager",
    "GenerationRequest",
    "GenerationResult",
    "JobStatus",
    "JobStatusSink",
    "MemoryStatusSink",
    "Model3DFormat",
    "Model3DModel",
    "Model3DVariant",
    "ReferenceProvider",
    "ReferenceView",
    "default_status_path",
    "generate_3d_model",
    "generate_3d_model_smart",
    "generate_reference_images",
    "get_default_manager",
    "get_default_options",
    "merge_with_defaults",
    "read_status",
    "select_variant",
    "start_async_generation",
    "validate_and_get_variant",
    "validate_options",
]
