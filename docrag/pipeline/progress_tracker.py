"""Ingestion progress tracking with callback-based listener notification.

Keeps the latest phase and progress percentage for each document being
ingested and broadcasts updates to listeners registered for that
document.  Listeners are keyed by document id so concurrent jobs never
see each other's updates.

    RAGPipeline --update()--> ProgressTracker --callback()--> job-queue sink
                                              --callback()--> (any other listener)

Listener errors are caught and logged so a broken listener can never
fail an ingestion job.  Both sync and async callbacks are supported.

Statuses of finished jobs (DONE or FAILED) move to a bounded LRU so a
long-running worker only remembers the most recent outcomes.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass

import structlog
from cachetools import LRUCache

from docrag.models.pipeline import IngestionPhase
from docrag.utils.logging import get_logger


@dataclass
class _DocumentStatus:
    """Latest progress snapshot for one document (internal only)."""

    phase: IngestionPhase = IngestionPhase.QUEUED
    progress: int = 0
    message: str = ""


_FINISHED_PHASES = frozenset({IngestionPhase.DONE, IngestionPhase.FAILED})


class ProgressTracker:
    """Tracks and broadcasts ingestion progress per document.

    Parameters
    ----------
    max_finished:
        How many finished-job statuses to keep; the least recently
        updated are dropped first.
    """

    def __init__(self, max_finished: int = 1024) -> None:
        self._statuses: dict[str, _DocumentStatus] = {}
        self._finished: LRUCache[str, _DocumentStatus] = LRUCache(maxsize=max_finished)
        self._listeners: dict[str, list[Callable]] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def update(
        self,
        document_id: str,
        phase: IngestionPhase,
        progress: int,
        message: str = "",
    ) -> None:
        """Record a progress update and notify the document's listeners.

        Parameters
        ----------
        document_id:
            The document being ingested.
        phase:
            The phase just entered.
        progress:
            Completion percentage, clamped to 0..100.
        message:
            Human-readable status message.
        """
        progress = max(0, min(100, int(progress)))
        status = _DocumentStatus(phase=phase, progress=progress, message=message)
        if phase in _FINISHED_PHASES:
            self._statuses.pop(document_id, None)
            self._finished[document_id] = status
        else:
            self._finished.pop(document_id, None)
            self._statuses[document_id] = status
        self._logger.debug(
            "progress_update",
            document_id=document_id,
            phase=phase.value,
            progress=progress,
            message=message,
        )
        await self._notify_listeners(document_id, phase, progress, message)

    def register_listener(self, document_id: str, callback: Callable) -> None:
        """Register a sync or async ``(document_id, phase, progress, message)`` callback."""
        listeners = self._listeners.setdefault(document_id, [])
        if callback not in listeners:
            listeners.append(callback)
            self._logger.debug(
                "listener_registered",
                document_id=document_id,
                total_listeners=len(listeners),
            )

    def unregister_listener(self, document_id: str, callback: Callable) -> None:
        listeners = self._listeners.get(document_id, [])
        if callback in listeners:
            listeners.remove(callback)
            if not listeners:
                del self._listeners[document_id]

    def get_status(self, document_id: str) -> dict:
        """Return ``{"phase", "progress", "message"}`` for a document.

        Untracked documents report ``QUEUED`` at 0.
        """
        status = (
            self._statuses.get(document_id)
            or self._finished.get(document_id)
            or _DocumentStatus()
        )
        return {
            "phase": status.phase.value,
            "progress": status.progress,
            "message": status.message,
        }

    def forget(self, document_id: str) -> None:
        """Drop the stored status and listeners for a document."""
        self._statuses.pop(document_id, None)
        self._finished.pop(document_id, None)
        self._listeners.pop(document_id, None)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _notify_listeners(
        self,
        document_id: str,
        phase: IngestionPhase,
        progress: int,
        message: str,
    ) -> None:
        for callback in list(self._listeners.get(document_id, [])):
            try:
                result = callback(document_id, phase, progress, message)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                self._logger.warning(
                    "listener_callback_error",
                    document_id=document_id,
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )
