"""
PURPOSE: Standalone generation worker.

Pops GenerationJob messages from the Redis queue and runs them through
TemplateService. Retryable backend failures are re-queued with exponential
backoff until MAX_GENERATION_ATTEMPTS; every retry restarts the pipeline
from extraction. The template stays generating while a retry is pending.

CALLED BY:
    - Docker: python -m template_engine.worker
    - CLI: python -m template_engine.worker
"""

import asyncio
import random
import signal
from typing import Awaitable, Callable, Dict, Optional, Set

from template_engine.catalog.repository import get_indicator_catalog
from template_engine.config.settings import Settings
from template_engine.dispatch.generation_queue import GenerationQueue
from template_engine.schemas.template import GenerationJob
from template_engine.services.template_service import TemplateService
from template_engine.template_builder.backends.factory import build_backends
from template_engine.template_builder.pipeline import build_pipeline
from template_engine.template_builder.result import PipelineFailure, PipelineOutcome
from template_engine.utils.logger import get_logger, setup_logging

logger = get_logger("worker")


def retry_delay(attempt: int) -> float:
    """Backoff before re-running a job that failed on the given attempt."""
    return (3 ** attempt) * 2 + random.uniform(0, 2)


class GenerationWorker:
    """
    PURPOSE: Consume the generation queue until stopped.

    Retries wait out their backoff in background tasks so the consumer keeps
    taking other jobs meanwhile.

    Attributes:
        _service: TemplateService that runs and persists jobs
        _queue: Connected GenerationQueue
        _max_attempts: Pipeline runs allowed per job
        _sleep: Awaitable sleep (replaceable in tests)
        _retries: Delayed re-enqueue tasks not yet finished
        _waiting: Retry jobs whose backoff has not elapsed, by task
    """

    def __init__(
        self,
        service: TemplateService,
        queue: GenerationQueue,
        max_attempts: int = 3,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        poll_timeout: int = 5,
    ) -> None:
        self._service = service
        self._queue = queue
        self._max_attempts = max(1, max_attempts)
        self._sleep = sleep
        self._poll_timeout = poll_timeout
        self._stopping = asyncio.Event()
        self._retries: Set[asyncio.Task] = set()
        self._waiting: Dict[asyncio.Task, GenerationJob] = {}

    def stop(self) -> None:
        self._stopping.set()

    @property
    def pending_retries(self) -> int:
        return len(self._retries)

    async def run(self) -> None:
        """
        PURPOSE: Dequeue and process jobs until stop() is called.

        Retries still waiting when the loop stops are re-enqueued at once.

        CALLED BY: main()
        """
        logger.info("generation_worker_started", queue=self._queue.name, max_attempts=self._max_attempts)
        try:
            while not self._stopping.is_set():
                job = await self._queue.dequeue(timeout=self._poll_timeout)
                if job is None:
                    continue
                try:
                    await self.process(job)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.error("generation_job_crashed", template_id=job.template_id, error=str(e))
        finally:
            await self._flush_retries()
        logger.info("generation_worker_stopped")

    async def process(self, job: GenerationJob) -> PipelineOutcome:
        """
        PURPOSE: Run one job and schedule a retry when the failure is retryable.

        Args:
            job: Dequeued job

        Returns:
            PipelineOutcome: Outcome of this attempt.
        """
        final_attempt = job.attempt >= self._max_attempts
        outcome = await self._service.run_generation_job(job, final_attempt=final_attempt)
        if not isinstance(outcome, PipelineFailure) or not outcome.retryable:
            return outcome

        if final_attempt:
            logger.warning(
                "generation_retries_exhausted",
                template_id=job.template_id,
                attempts=job.attempt,
                error=outcome.message,
            )
            return outcome

        wait = retry_delay(job.attempt)
        logger.warning(
            "generation_retry_scheduled",
            template_id=job.template_id,
            attempt=job.attempt,
            wait_seconds=round(wait, 1),
            error=outcome.message,
        )
        retry = job.model_copy(update={"attempt": job.attempt + 1})
        task = asyncio.create_task(self._requeue_later(retry, wait, outcome.message))
        self._retries.add(task)
        self._waiting[task] = retry
        task.add_done_callback(self._retries.discard)
        return outcome

    async def wait_for_retries(self) -> None:
        """Wait until every scheduled retry has been re-enqueued."""
        if self._retries:
            await asyncio.gather(*list(self._retries))

    async def _flush_retries(self) -> None:
        """Cancel retries still in backoff and enqueue their jobs immediately."""
        waiting = dict(self._waiting)
        self._waiting.clear()
        for task in waiting:
            task.cancel()
        if self._retries:
            await asyncio.gather(*list(self._retries), return_exceptions=True)
        for job in waiting.values():
            await self._requeue(job, "retry could not be queued during shutdown")
        if waiting:
            logger.info("generation_retries_flushed", count=len(waiting))

    async def _requeue_later(self, job: GenerationJob, wait: float, reason: str) -> None:
        await self._sleep(wait)
        self._waiting.pop(asyncio.current_task(), None)
        await self._requeue(job, reason)

    async def _requeue(self, job: GenerationJob, reason: str) -> None:
        try:
            await self._queue.enqueue(job)
        except Exception as e:
            logger.error("generation_requeue_failed", template_id=job.template_id, error=str(e))
            await self._service.mark_failed(job.template_id, reason)


async def run_worker(settings: Optional[Settings] = None) -> None:
    """
    PURPOSE: Build the worker's collaborators and run it until SIGINT/SIGTERM.

    CALLED BY: main()
    """
    from template_engine.db.engine import AsyncSessionLocal, dispose_engine

    settings = settings or Settings()
    backends = build_backends(settings)
    queue = GenerationQueue(settings.REDIS_URL, settings.GENERATION_QUEUE_NAME)
    await queue.connect()

    service = TemplateService(
        AsyncSessionLocal,
        build_pipeline(backends, get_indicator_catalog(), settings),
        queue=queue,
    )
    worker = GenerationWorker(service, queue, max_attempts=settings.MAX_GENERATION_ATTEMPTS)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, worker.stop)

    try:
        await worker.run()
    finally:
        await queue.disconnect()
        await backends.close()
        await dispose_engine()
        logger.info("generation_worker_shutdown_complete")


def main() -> None:
    """
    PURPOSE: Main entry point for the generation worker.

    CALLED BY: python -m template_engine.worker
    """
    settings = Settings()
    setup_logging(log_level=settings.LOG_LEVEL)
    settings.validate_credentials()
    logger.info("generation_worker_initialized", provider=settings.AI_PROVIDER, app_env=settings.APP_ENV)
    asyncio.run(run_worker(settings))


if __name__ == "__main__":
    main()
