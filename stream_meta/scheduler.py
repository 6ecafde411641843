from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from threading import Event, Lock
from typing import Iterable, Optional

from .models import Batch, BatchReport
from .pipeline import EnrichmentPipeline

logger = logging.getLogger(__name__)


class BatchScheduler:
    """Runs enrichment batches on background threads.

    Batches run concurrently with each other (up to ``max_workers``); items
    inside a batch stay sequential. ``shutdown`` lets each running batch finish
    its current item and drops the rest.
    """

    def __init__(self, pipeline: EnrichmentPipeline, max_workers: int = 2) -> None:
        self.pipeline = pipeline
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="stream-meta")
        self._stop = Event()
        self._lock = Lock()
        self._pending: set[Future[BatchReport]] = set()

    def enrich(self, ids: Iterable[int], active_index: Optional[int] = None) -> Future[BatchReport]:
        return self.submit(Batch(ids=tuple(ids), active_index=active_index))

    def submit(self, batch: Batch) -> Future[BatchReport]:
        with self._lock:
            if self._stop.is_set():
                raise RuntimeError("BatchScheduler has been shut down")
            future = self._executor.submit(self._run, batch)
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    async def run(self, ids: Iterable[int], active_index: Optional[int] = None) -> BatchReport:
        return await asyncio.wrap_future(self.enrich(ids, active_index))

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            self._stop.set()
            pending = list(self._pending)
        for future in pending:
            future.cancel()
        self._executor.shutdown(wait=wait)

    def _run(self, batch: Batch) -> BatchReport:
        try:
            report = self.pipeline.run(batch, stop_event=self._stop)
        except Exception:
            logger.exception("Enrichment batch of %d item(s) failed", len(batch))
            raise
        logger.info(
            "Enrichment batch %s: %d written, %d skipped, %d failed",
            report.status.value,
            len(report.written),
            len(report.skipped),
            len(report.failed),
        )
        return report

    def _forget(self, future: Future[BatchReport]) -> None:
        with self._lock:
            self._pending.discard(future)
