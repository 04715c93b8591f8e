"""
In-memory singleton that tracks background pipeline runs per kind.

Usage
-----
    from skillsmatrix.services.pipeline_manager import pipeline_manager, PipelineStatus

    status = PipelineStatus(kind="steps")
    pipeline_manager.start("steps", some_coroutine(status), status)
    # ... later ...
    current = pipeline_manager.get_status("steps")
"""
from __future__ import annotations

import asyncio
import dataclasses
import enum
import logging
import time
from typing import Any, Coroutine, Dict, List, Optional

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pipeline phase enum
# ---------------------------------------------------------------------------

class PipelinePhase(str, enum.Enum):
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Pipeline status (mutable dataclass shared between task and poller)
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class PipelineStatus:
    kind: str
    phase: PipelinePhase = PipelinePhase.QUEUED
    total_items: int = 0
    items_processed: int = 0
    items_skipped: int = 0
    items_failed: int = 0
    current_item: Optional[str] = None
    errors: List[str] = dataclasses.field(default_factory=list)
    started_at: float = dataclasses.field(default_factory=time.monotonic)
    completed_at: Optional[float] = None

    @property
    def elapsed_seconds(self) -> float:
        end = self.completed_at if self.completed_at else time.monotonic()
        return round(end - self.started_at, 2)


# ---------------------------------------------------------------------------
# Pipeline manager (class-level state, acts as a singleton)
# ---------------------------------------------------------------------------

class PipelineManager:
    """Manages one background asyncio.Task per pipeline kind."""

    _tasks: Dict[str, asyncio.Task] = {}
    _status: Dict[str, PipelineStatus] = {}

    @classmethod
    def is_running(cls, kind: str) -> bool:
        task = cls._tasks.get(kind)
        return task is not None and not task.done()

    @classmethod
    def get_status(cls, kind: str) -> Optional[PipelineStatus]:
        return cls._status.get(kind)

    @classmethod
    def start(
        cls,
        kind: str,
        coro: Coroutine[Any, Any, Any],
        status: Optional[PipelineStatus] = None,
    ) -> PipelineStatus:
        """
        Launch a background run of *kind*.

        If *status* is provided (pre-created by the caller so it could be
        passed into the coroutine before this method is called), it is
        registered as-is.  Otherwise a fresh PipelineStatus is created.

        Raises RuntimeError if a run of the same kind is still active.
        """
        if cls.is_running(kind):
            coro.close()
            raise RuntimeError(f"A {kind} run is already in progress")

        if status is None:
            status = PipelineStatus(kind=kind)
        cls._status[kind] = status

        async def _wrapper() -> None:
            status.phase = PipelinePhase.RUNNING
            try:
                await coro
                status.phase = PipelinePhase.COMPLETED
            except Exception as exc:
                logger.error("Pipeline %s run failed: %s", kind, exc, exc_info=True)
                status.phase = PipelinePhase.FAILED
                status.errors.append(f"pipeline crash: {str(exc)[:200]}")
            finally:
                status.completed_at = time.monotonic()
                if status.phase not in (PipelinePhase.COMPLETED, PipelinePhase.FAILED):
                    status.phase = PipelinePhase.FAILED

        task = asyncio.create_task(_wrapper())
        cls._tasks[kind] = task

        # Cleanup reference when done
        task.add_done_callback(lambda _t: cls._cleanup(kind))

        logger.info("Pipeline %s run started", kind)
        return status

    @classmethod
    def _cleanup(cls, kind: str) -> None:
        """Remove the task reference (status is kept for polling)."""
        cls._tasks.pop(kind, None)


# Module-level singleton instance
pipeline_manager = PipelineManager
