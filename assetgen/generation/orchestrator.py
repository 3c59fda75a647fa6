# AssetGen - Asset Generation Gateway
# Copyright (C) 2026 AssetGen Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of AssetGen, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Asynchronous 3D generation jobs.

:meth:`GenerationJobManager.start` writes a ``pending`` status record,
validates the request and returns the status file path at once; the
pipeline itself runs in an ``asyncio`` task owned by the manager::

    manager = GenerationJobManager()
    path = manager.start(request, "out/cube_status.json")
    # ... poll ``path`` or ``await manager.wait(path)``

Pipeline stages and their fixed progress checkpoints:

====  ==================================================
  5   validate options
 10   inspect input images
 20   generate reference images (prompt-only requests)
 30   resolve variant
 40   call the backend
 50   backend processing
 90   attach reference metadata
100   completed
====  ==================================================

Any failure ends the job as ``failed`` with progress 0.  Generated
reference images are removed afterwards on every exit path unless the
request opts out.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from assetgen.exceptions import BackendError, StatusStoreError, ValidationError
from assetgen.generation.dispatcher import (
    MODEL_DISPLAY_NAMES,
    BackendDispatcher,
    GenerationResult,
)
from assetgen.generation.options import (
    GenerationRequest,
    ReferenceView,
    merge_with_defaults,
    select_variant,
    validate_and_get_variant,
    validate_options,
)
from assetgen.generation.references import (
    GenerateImageFn,
    generate_reference_images,
    order_views,
)
from assetgen.generation.status import FileStatusSink, JobStatus, JobStatusSink
from assetgen.logging_config import job_context
from assetgen.time_utils import now_iso

logger = logging.getLogger("assetgen.generation.orchestrator")

ProgressFn = Callable[[int, str], None]
LogFn = Callable[[str], None]

INITIAL_MESSAGE = "Initializing 3D model generation..."
COMPLETED_MESSAGE = "3D model generation completed successfully!"


def default_status_path(output_path: str | Path) -> Path:
    """``<output stem>_status.json`` next to the output file."""
    out = Path(output_path)
    return out.with_name(f"{out.stem}_status.json")


# ── Pipeline ─────────────────────────────────────────────────


async def _execute(
    request: GenerationRequest,
    *,
    dispatcher: BackendDispatcher,
    generate_image: GenerateImageFn | None,
    progress: ProgressFn,
    log: LogFn,
    references: list[str],
) -> GenerationResult:
    """Run every stage of one generation; reference paths are appended to *references*."""
    progress(5, "Validating options and preparing inputs...")
    merged = merge_with_defaults(request, include_variant=False)
    validate_options(merged)
    log(
        f"Starting 3D generation with model: {merged.model.value}, "
        f"variant: {merged.variant.value if merged.variant else 'auto'}"
    )

    progress(10, "Checking input images...")
    images = list(merged.input_images)
    views: list[ReferenceView] = []
    if not images and merged.auto_generate_references and merged.prompt:
        log("No input images provided, generating reference images automatically...")
        progress(20, "Generating reference images...")
        if merged.variant is not None and merged.variant.is_multi:
            views = order_views(merged.reference_views or ())
        else:
            views = [ReferenceView.FRONT]
        await generate_reference_images(
            merged.prompt,
            merged.output_path,
            views,
            merged.reference_model,
            generate_image=generate_image,
            into=references,
        )
        log(f"Generated {len(references)} reference images")
        if not references:
            raise BackendError(
                merged.reference_model.value,
                "Failed to generate reference images automatically",
            )
        images = list(references)

    if not images:
        raise ValidationError("At least one input image is required for 3D model generation")

    progress(30, "Preparing 3D generation request...")
    variant = merged.variant or select_variant(merged.model, len(images))
    log(f"Using variant: {variant.value} with {len(images)} input images")

    progress(40, f"Calling {merged.model.value} {variant.value} API...")
    progress(50, f"Processing with {MODEL_DISPLAY_NAMES[merged.model]}...")
    result = await dispatcher.dispatch(merged, variant, images)

    progress(90, "Finalizing result...")
    if references:
        result.auto_generated_references = list(references)
        result.reference_model_used = merged.reference_model.value
        result.reference_views_generated = [v.value for v in views]
    return result


def _cleanup_references(paths: list[str], log: LogFn) -> None:
    log("Cleaning up reference images...")
    for p in paths:
        try:
            Path(p).unlink()
            log(f"Cleaned up: {p}")
        except OSError as exc:
            log(f"Failed to cleanup {p}: {exc}")


# ── GenerationJobManager ─────────────────────────────────────


class GenerationJobManager:
    """Owns the background tasks of asynchronous 3D generation jobs.

    Jobs are keyed by status file path.  Nothing prevents two jobs from
    sharing a path; callers are expected to pass unique ones.
    """

    def __init__(
        self,
        dispatcher: BackendDispatcher | None = None,
        *,
        generate_image: GenerateImageFn | None = None,
        sink_factory: Callable[[Path], JobStatusSink] = FileStatusSink,
    ) -> None:
        self._dispatcher = dispatcher or BackendDispatcher()
        self._generate_image = generate_image
        self._sink_factory = sink_factory
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._sinks: dict[str, JobStatusSink] = {}

    # ── Public API ───────────────────────────────────────────

    def start(self, request: GenerationRequest, status_path: str | Path) -> Path:
        """Record a ``pending`` job and schedule it; returns *status_path*.

        Must be called with a running event loop.

        Raises:
            ValidationError: The request is invalid.  The record is
                already ``failed`` and no task was scheduled.
        """
        path = Path(status_path)
        sink = self._sink_factory(path)
        sink.begin(INITIAL_MESSAGE)

        try:
            validate_options(merge_with_defaults(request, include_variant=False))
        except ValidationError as exc:
            logger.warning("Rejected 3D generation request %s: %s", sink.job_id, exc)
            _record_failure(sink, str(exc))
            raise

        key = str(path)
        task = asyncio.create_task(self._run(request, sink), name=f"model3d-{sink.job_id}")
        self._tasks[key] = task
        self._sinks[key] = sink
        task.add_done_callback(lambda t, k=key: self._forget(k, t))
        logger.info(
            "3D generation job started: id=%s model=%s status=%s",
            sink.job_id, request.model.value, path,
        )
        return path

    async def wait(self, status_path: str | Path) -> dict[str, Any]:
        """Wait for the job writing *status_path* to finish; return its final record."""
        key = str(Path(status_path))
        task = self._tasks.get(key)
        sink = self._sinks.get(key) or self._sink_factory(Path(status_path))
        if task is not None:
            await task
        return sink.read()

    def active_count(self) -> int:
        return sum(1 for t in self._tasks.values() if not t.done())

    async def shutdown(self) -> None:
        """Cancel every in-flight job and wait for them to record their end."""
        tasks = [t for t in self._tasks.values() if not t.done()]
        if not tasks:
            return
        logger.info("Cancelling %d running 3D generation job(s)", len(tasks))
        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    # ── Internal execution ───────────────────────────────────

    def _forget(self, key: str, task: asyncio.Task[None]) -> None:
        # A waiter already holds the sink; later readers go through the factory.
        if self._tasks.get(key) is task:
            del self._tasks[key]
            self._sinks.pop(key, None)

    async def _run(self, request: GenerationRequest, sink: JobStatusSink) -> None:
        with job_context(sink.job_id):
            await self._run_job(request, sink)

    async def _run_job(self, request: GenerationRequest, sink: JobStatusSink) -> None:
        references: list[str] = []

        def progress(pct: int, message: str) -> None:
            sink.update(status=JobStatus.PROCESSING, progress=pct, message=message)

        def log(message: str) -> None:
            logger.info(message)
            sink.append_log(message)

        try:
            result = await _execute(
                request,
                dispatcher=self._dispatcher,
                generate_image=self._generate_image,
                progress=progress,
                log=log,
                references=references,
            )
            sink.update(
                status=JobStatus.COMPLETED,
                progress=100,
                message=COMPLETED_MESSAGE,
                endTime=now_iso(),
                result=result.to_dict(),
            )
            log("3D model generation completed successfully")
        except asyncio.CancelledError:
            logger.warning("3D generation job %s cancelled", sink.job_id)
            _record_failure(sink, "Generation cancelled")
            raise
        except Exception as exc:
            logger.error("3D generation job %s failed: %s", sink.job_id, exc)
            _record_failure(sink, str(exc) or type(exc).__name__)
        finally:
            if references and request.cleanup_references is not False:
                _cleanup_references(references, log)


def _record_failure(sink: JobStatusSink, message: str) -> None:
    try:
        sink.update(
            status=JobStatus.FAILED,
            progress=0,
            message=f"Generation failed: {message}",
            error=message,
            endTime=now_iso(),
        )
        sink.append_log(f"ERROR: {message}")
    except StatusStoreError as exc:
        logger.error("Could not record failure for job %s: %s", sink.job_id, exc)


# ── Module-level helpers ─────────────────────────────────────

_default_manager: GenerationJobManager | None = None


def get_default_manager() -> GenerationJobManager:
    """Process-wide manager used by the MCP server and CLI."""
    global _default_manager
    if _default_manager is None:
        _default_manager = GenerationJobManager()
    return _default_manager


def start_async_generation(
    request: GenerationRequest,
    status_path: str | Path | None = None,
) -> Path:
    """Start a job on the default manager; see :meth:`GenerationJobManager.start`."""
    path = status_path or default_status_path(request.output_path)
    return get_default_manager().start(request, path)


async def generate_3d_model(
    request: GenerationRequest,
    *,
    dispatcher: BackendDispatcher | None = None,
    generate_image: GenerateImageFn | None = None,
) -> GenerationResult:
    """Run the full pipeline in the caller's task, without a status record.

    Errors propagate; reference images are still cleaned up.
    """
    references: list[str] = []

    def log(message: str) -> None:
        logger.info(message)

    try:
        return await _execute(
            request,
            dispatcher=dispatcher or BackendDispatcher(),
            generate_image=generate_image,
            progress=lambda pct, message: logger.debug("%d%% %s", pct, message),
            log=log,
            references=references,
        )
    finally:
        if references and request.cleanup_references is not False:
            _cleanup_references(references, log)


async def generate_3d_model_smart(
    request: GenerationRequest,
    *,
    dispatcher: BackendDispatcher | None = None,
    generate_image: GenerateImageFn | None = None,
) -> GenerationResult:
    """Like :func:`generate_3d_model`, but fills the model's preferred variant.

    An explicit variant the model does not offer is replaced by the
    model's default with a warning instead of failing.
    """
    merged = merge_with_defaults(request)
    variant = validate_and_get_variant(merged.model, merged.variant)
    if variant != merged.variant:
        merged = dataclasses.replace(merged, variant=variant)
    return await generate_3d_model(
        merged, dispatcher=dispatcher, generate_image=generate_image,
    )
