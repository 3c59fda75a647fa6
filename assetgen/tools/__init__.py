# AssetGen - Asset Generation Gateway
# Copyright (C) 2026 AssetGen Authors
# SPDX-License-Identifier: Apache-2.0

"""Provider adapters exposed as tools.

Each module provides ``get_tool_schemas()`` and, where its tools run
synchronously, ``dispatch(tool_name, args)``.
"""

from __future__ import annotations

TOOL_MODULES: dict[str, str] = {
    "image_gen": "assetgen.tools.image_gen",
    "asset_sheets": "assetgen.tools.asset_sheets",
    "model3d": "assetgen.tools.model3d",
}
