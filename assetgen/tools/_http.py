# AssetGen - Asset Generation Gateway
# Copyright (C) 2026 AssetGen Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of AssetGen, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Shared synchronous HTTP helpers for provider clients.

Providers disagree on how they report failure: some use HTTP status
codes, some return 200 with an ``error`` or ``detail`` field.  Both
shapes are normalized to :class:`BackendError` here so that callers
only ever see one failure type per provider.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import httpx

from assetgen.exceptions import BackendError

logger = logging.getLogger("assetgen.tools")

HTTP_TIMEOUT = httpx.Timeout(30.0, read=300.0)
DOWNLOAD_TIMEOUT = httpx.Timeout(60.0, read=300.0)


def error_detail(payload: Any) -> str | None:
    """Extract a provider error message from a decoded JSON body, if any."""
    if not isinstance(payload, dict):
        return None
    err = payload.get("error")
    if err:
        if isinstance(err, dict):
            return str(err.get("message") or json.dumps(err, ensure_ascii=False))
        return str(err)
    detail = payload.get("detail")
    if detail:
        if isinstance(detail, str):
            return detail
        return json.dumps(detail, ensure_ascii=False)
    return None


def _decode(resp: httpx.Response, provider: str) -> Any:
    try:
        payload = resp.json()
    except ValueError:
        payload = None

    if resp.status_code >= 400:
        detail = error_detail(payload) or resp.text[:500] or resp.reason_phrase
        raise BackendError(provider, f"HTTP {resp.status_code}: {detail}")
    if payload is None:
        raise BackendError(provider, "response body is not JSON")

    detail = error_detail(payload)
    if detail:
        raise BackendError(provider, detail)
    return payload


def post_json(
    provider: str,
    url: str,
    *,
    headers: dict[str, str],
    body: dict[str, Any] | None = None,
    files: dict[str, Any] | None = None,
    data: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """POST and return the decoded JSON body.

    Raises:
        BackendError: Non-2xx status, non-JSON body, or an error field
            in the payload.
    """
    logger.debug("%s POST %s", provider, url)
    if files is not None:
        resp = httpx.post(url, headers=headers, files=files, data=data, timeout=HTTP_TIMEOUT)
    else:
        resp = httpx.post(url, headers=headers, json=body, timeout=HTTP_TIMEOUT)
    return _decode(resp, provider)


def get_json(provider: str, url: str, *, headers: dict[str, str]) -> dict[str, Any]:
    """GET and return the decoded JSON body (same failure rules as :func:`post_json`)."""
    resp = httpx.get(url, headers=headers, timeout=HTTP_TIMEOUT)
    return _decode(resp, provider)


def download_file(url: str, output_path: str | Path) -> int:
    """Download *url* to *output_path*, creating parent directories.

    Returns:
        Number of bytes written.
    """
    resp = httpx.get(url, timeout=DOWNLOAD_TIMEOUT, follow_redirects=True)
    resp.raise_for_status()
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(resp.content)
    logger.debug("Downloaded %s -> %s (%d bytes)", url, path, len(resp.content))
    return len(resp.content)
