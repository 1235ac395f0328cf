"""Progress reporting for import jobs."""

import asyncio
import inspect
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

from .models.job import ImportProgress

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ImportProgress], Union[None, Awaitable[None]]]


class ImportPhase(str, Enum):
    """Ordered phases of an import job."""
    EXTRACTION = "extraction"
    TRANSFORMATION = "transformation"
    DUPLICATE_DETECTION = "duplicate_detection"
    IMPORT = "import"
    LEDGER = "ledger"


# Percentage band of the whole run covered by each phase
PHASE_BANDS: Dict[ImportPhase, Tuple[float, float]] = {
    ImportPhase.EXTRACTION: (0.0, 10.0),
    ImportPhase.TRANSFORMATION: (10.0, 45.0),
    ImportPhase.DUPLICATE_DETECTION: (45.0, 60.0),
    ImportPhase.IMPORT: (60.0, 95.0),
    ImportPhase.LEDGER: (95.0, 100.0),
}


def phase_percentage(phase: ImportPhase, completed: int, total: int) -> float:
    """Overall percentage for progress within a phase."""
    start, end = PHASE_BANDS[phase]
    if total <= 0:
        return end
    fraction = min(max(completed / total, 0.0), 1.0)
    return round(start + (end - start) * fraction, 2)


class ProgressReporter:
    """
    Delivers progress events to an observer without blocking the pipeline.

    Events are queued and dispatched by a separate task; synchronous
    callbacks run in a worker thread. The reported percentage never
    decreases. Call close() to drain the queue.
    """

    def __init__(self, job_id: str, callback: Optional[ProgressCallback] = None):
        self.job_id = job_id
        self.callback = callback
        self.events: List[ImportProgress] = []
        self._last_percentage = 0.0
        self._queue: Optional[asyncio.Queue] = None
        self._task: Optional[asyncio.Task] = None

    def start(self) -> None:
        """Start the dispatcher task; must be called from a running loop."""
        if self.callback is None or self._task is not None:
            return
        self._queue = asyncio.Queue()
        self._task = asyncio.create_task(self._dispatch())

    def report(self, phase: ImportPhase, completed: int, total: int, message: str) -> ImportProgress:
        """Record a progress event and queue it for the observer."""
        percentage = max(self._last_percentage, phase_percentage(phase, completed, total))
        self._last_percentage = percentage

        event = ImportProgress(
            job_id=self.job_id,
            phase=phase.value,
            completed=completed,
            total=total,
            percentage=percentage,
            message=message,
        )
        self.events.append(event)
        logger.debug(f"[{self.job_id}] {phase.value} {completed}/{total} ({percentage}%): {message}")

        if self._queue is not None:
            self._queue.put_nowait(event)
        return event

    async def close(self) -> None:
        """Drain queued events and stop the dispatcher."""
        if self._task is None:
            return
        self._queue.put_nowait(None)
        await self._task
        self._task = None
        self._queue = None

    async def _dispatch(self) -> None:
        while True:
            event = await self._queue.get()
            if event is None:
                return
            await self._deliver(event)

    async def _deliver(self, event: ImportProgress) -> None:
        try:
            if inspect.iscoroutinefunction(self.callback):
                await self.callback(event)
            else:
                result: Any = await asyncio.to_thread(self.callback, event)
                if inspect.isawaitable(result):
                    await result
        except Exception as e:
            logger.warning(f"Progress callback failed for job {self.job_id}: {e}")
