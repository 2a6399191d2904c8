"""Background ingestion worker fed by a bounded job queue.

Producers :meth:`~IngestionWorker.enqueue` jobs; a single consumer task
running :meth:`~IngestionWorker.run` feeds them to the pipeline one at a
time.  A failing job is logged and counted, never fatal to the loop.

Typical use::

    worker = IngestionWorker(pipeline)
    task = asyncio.create_task(worker.run())
    await worker.enqueue(IngestionJob(source_uri="docs/a.md", options=opts))
    await worker.join()
    await worker.stop()
    await task
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from tenantrag.models.ingestion import ChunkOptions, IndexOptions, IndexResult

if TYPE_CHECKING:
    from tenantrag.services.ingestion.ingestion_pipeline import IngestionPipeline

logger = structlog.get_logger(logger_name=__name__)


@dataclass(frozen=True)
class IngestionJob:
    """One document waiting to be ingested."""

    source_uri: str
    options: IndexOptions
    chunk_options: ChunkOptions | None = None


class IngestionWorker:
    """Consume :class:`IngestionJob` items and run them through a pipeline.

    Parameters
    ----------
    pipeline:
        Pipeline each job is handed to.
    queue_size:
        Queue capacity; :meth:`enqueue` waits while the queue is full.
    """

    def __init__(self, pipeline: IngestionPipeline, queue_size: int = 100) -> None:
        self._pipeline = pipeline
        # ``None`` is the stop sentinel.
        self._queue: asyncio.Queue[IngestionJob | None] = asyncio.Queue(maxsize=queue_size)
        self._processed = 0
        self._failed = 0
        self._running = False

    @property
    def processed(self) -> int:
        """Jobs that finished without raising (index errors included)."""
        return self._processed

    @property
    def failed(self) -> int:
        """Jobs whose ingestion raised."""
        return self._failed

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        return self._running

    async def enqueue(self, job: IngestionJob) -> None:
        await self._queue.put(job)
        logger.debug("ingestion_job_enqueued", source_uri=job.source_uri, pending=self.pending)

    async def run(self) -> None:
        """Process jobs until :meth:`stop` is called.

        Jobs enqueued before :meth:`stop` are still processed.
        """
        self._running = True
        logger.info("ingestion_worker_started")
        try:
            while True:
                job = await self._queue.get()
                try:
                    if job is None:
                        break
                    await self._handle(job)
                finally:
                    self._queue.task_done()
        finally:
            self._running = False
            logger.info(
                "ingestion_worker_stopped",
                processed=self._processed,
                failed=self._failed,
            )

    async def stop(self) -> None:
        """Ask :meth:`run` to exit once the jobs already queued are done."""
        await self._queue.put(None)

    async def join(self) -> None:
        """Wait until every queued job has been processed."""
        await self._queue.join()

    async def _handle(self, job: IngestionJob) -> IndexResult | None:
        try:
            result = await self._pipeline.ingest(job.source_uri, job.options, job.chunk_options)
        except Exception as exc:
            self._failed += 1
            logger.error(
                "ingestion_job_failed",
                source_uri=job.source_uri,
                tenant_id=job.options.tenant_id,
                error=str(exc),
            )
            return None
        self._processed += 1
        logger.info(
            "ingestion_job_completed",
            source_uri=job.source_uri,
            tenant_id=job.options.tenant_id,
            vectors=result.vectors_created,
        )
        return result
