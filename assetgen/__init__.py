# AssetGen - Asset Generation Gateway
# Copyright (C) 2026 AssetGen Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of AssetGen, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""AssetGen: MCP tools for image and 3D model generation."""

__version__ = "1.0.0"
