# AssetGen - Asset Generation Gateway
# Copyright (C) 2026 AssetGen Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from assetgen.config.models import (
    AssetGenConfig,
    CredentialConfig,
    ImageDefaultsConfig,
    Model3DConfig,
    SystemConfig,
    get_config_path,
    invalidate_cache,
    load_config,
    save_config,
)
