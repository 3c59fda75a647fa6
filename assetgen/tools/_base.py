# AssetGen - Asset Generation Gateway
# Copyright (C) 2026 AssetGen Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of AssetGen, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Credential lookup and image-reference helpers shared by provider clients."""

from __future__ import annotations

import base64
import json
import logging
import mimetypes
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

from assetgen.exceptions import ToolConfigError

logger = logging.getLogger("assetgen.tools")

SHARED_CREDENTIALS_FILE = "credentials.json"


# ── Credentials ──────────────────────────────────────────────


def _from_config(credential_name: str, key_name: str) -> str | None:
    from assetgen.config.models import load_config

    cred = load_config().credentials.get(credential_name)
    if cred is None:
        return None
    if key_name == "api_key":
        return cred.api_key or None
    return cred.keys.get(key_name) or None


def _from_shared_file(env_var: str) -> str | None:
    """Read *env_var* from ``{data_dir}/shared/credentials.json``, a flat name-to-secret map."""
    from assetgen.paths import get_shared_dir

    path = get_shared_dir() / SHARED_CREDENTIALS_FILE
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Ignoring unreadable %s: %s", path, exc)
        return None
    return data.get(env_var) or None


def _mask(value: str) -> str:
    return f"{value[:4]}****" if len(value) > 4 else "****"


def get_credential(
    credential_name: str,
    tool_name: str,
    key_name: str = "api_key",
    env_var: str | None = None,
) -> str:
    """Resolve a secret: config.json, then shared/credentials.json, then the environment.

    The last two sources are consulted only when *env_var* is given; the
    shared file is keyed by that same variable name.

    Args:
        credential_name: Entry in the config ``credentials`` section (``"fal"``).
        tool_name: Tool asking for it, quoted in the error message.
        key_name: ``"api_key"`` or a name under the entry's ``keys``.
        env_var: Environment variable holding the secret (``"FAL_KEY"``).

    Raises:
        ToolConfigError: No source has a non-empty value.
    """
    sources: list[tuple[str, Callable[[], str | None]]] = [
        (
            f"config.json credentials.{credential_name}.{key_name}",
            lambda: _from_config(credential_name, key_name),
        ),
    ]
    if env_var:
        sources.append(("shared/credentials.json", lambda: _from_shared_file(env_var)))
        sources.append((f"environment variable {env_var}", lambda: os.environ.get(env_var)))

    for label, lookup in sources:
        value = lookup()
        if value:
            logger.debug(
                "Credential %s.%s from %s: %s", credential_name, key_name, label, _mask(value),
            )
            return value

    raise ToolConfigError(
        f"Tool '{tool_name}' requires credential '{credential_name}'. "
        f"Set it in: {' or '.join(label for label, _ in sources)}"
    )


# ── Image payload helpers ────────────────────────────────────


def image_to_data_uri(image_bytes: bytes, mime: str = "image/png") -> str:
    """Encode raw image bytes as a ``data:`` URI."""
    b64 = base64.b64encode(image_bytes).decode()
    return f"data:{mime};base64,{b64}"


def guess_mime(path: str | Path) -> str:
    mime, _ = mimetypes.guess_type(str(path))
    return mime or "image/png"


def is_remote_or_inline(ref: str) -> bool:
    """True for ``http(s)://`` URLs and ``data:`` URIs, which providers accept as-is."""
    return ref.startswith(("http://", "https://", "data:"))


def image_ref_to_url(ref: str) -> str:
    """Turn an image reference into something a provider accepts as ``image_url``.

    URLs and data URIs pass through unchanged; local files are inlined
    as data URIs.

    Raises:
        FileNotFoundError: *ref* is a local path that does not exist.
    """
    if is_remote_or_inline(ref):
        return ref
    path = Path(ref)
    if not path.is_file():
        raise FileNotFoundError(f"Input image not found: {ref}")
    return image_to_data_uri(path.read_bytes(), guess_mime(path))


def split_data_uri(ref: str) -> tuple[str, bytes]:
    """Return ``(mime, raw_bytes)`` for a ``data:<mime>;base64,...`` URI."""
    header, _, payload = ref.partition(",")
    mime = header[len("data:"):].split(";", 1)[0] or "image/png"
    return mime, base64.b64decode(payload)


def read_image_ref(ref: str) -> tuple[str, bytes]:
    """Load an image reference as ``(mime, raw_bytes)``; remote URLs are not fetched here."""
    if ref.startswith("data:"):
        return split_data_uri(ref)
    path = Path(ref)
    if not path.is_file():
        raise FileNotFoundError(f"Input image not found: {ref}")
    return guess_mime(path), path.read_bytes()


def shorten_inline_image(value: Any) -> Any:
    """Truncate a ``data:`` URI to a recognizable prefix; other values pass through."""
    if isinstance(value, str) and value.startswith("data:"):
        return value[:40] + "..."
    return value


def redact_inline_images(body: dict[str, Any]) -> dict[str, Any]:
    """Copy of a request body with ``data:`` payloads shortened for status files and logs."""
    out: dict[str, Any] = {}
    for key, value in body.items():
        if isinstance(value, list):
            out[key] = [shorten_inline_image(v) for v in value]
        else:
            out[key] = shorten_inline_image(value)
    return out
