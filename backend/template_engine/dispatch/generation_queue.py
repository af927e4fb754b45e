"""
Redis-backed generation job queue for the template engine.

Producers LPUSH GenerationJob JSON onto a Redis list; the worker BRPOPs from
the other end, so jobs are consumed in arrival order.
"""

from typing import Optional

import redis.asyncio as redis
from pydantic import ValidationError

from template_engine.schemas.template import GenerationJob
from template_engine.utils.logger import get_logger


class GenerationQueue:
    """
    Redis list queue of pending template generations.

    PURPOSE: Decouple the HTTP request that accepts a generation from the
    worker that runs the (slow) pipeline.

    CALLED BY: services/template_service.py (enqueue), worker.py (dequeue)

    Attributes:
        name: Redis list key holding pending jobs.
        _redis: Async Redis client instance.
        _redis_url: Redis connection URL.
    """

    def __init__(self, redis_url: str, name: str, client: Optional[redis.Redis] = None) -> None:
        """
        Initialize the queue.

        Args:
            redis_url: Redis connection URL (e.g., 'redis://localhost:6379').
            name: Redis list key.
            client: Pre-built client (tests); connect() is then a ping only.
        """
        self.name = name
        self._redis_url = redis_url
        self._redis: Optional[redis.Redis] = client
        self._logger = get_logger("dispatch.generation_queue")

    async def connect(self) -> None:
        """
        Establish the Redis connection.

        Should be called during application and worker startup.
        """
        try:
            if self._redis is None:
                self._redis = redis.from_url(self._redis_url, decode_responses=True)
            await self._redis.ping()
            self._logger.info("redis_connected", redis_url=self._redis_url, queue=self.name)
        except Exception as e:
            self._logger.error("redis_connection_failed", error=str(e))
            raise

    async def disconnect(self) -> None:
        """Close the Redis connection."""
        if self._redis:
            try:
                await self._redis.aclose()
                self._logger.info("redis_disconnected", queue=self.name)
            except Exception as e:
                self._logger.error("redis_disconnection_failed", error=str(e))
            self._redis = None

    def _client(self) -> redis.Redis:
        if self._redis is None:
            raise RuntimeError("GenerationQueue is not connected")
        return self._redis

    async def enqueue(self, job: GenerationJob) -> None:
        """
        Push a job onto the queue.

        Args:
            job: Generation job to run.

        Raises:
            RuntimeError: If the queue is not connected.
        """
        await self._client().lpush(self.name, job.model_dump_json())
        self._logger.info(
            "generation_job_enqueued",
            template_id=job.template_id,
            attempt=job.attempt,
            queue=self.name,
        )

    async def dequeue(self, timeout: int = 5) -> Optional[GenerationJob]:
        """
        Block up to timeout seconds for the next job.

        Returns:
            GenerationJob, or None when the wait timed out. Messages that fail
            validation are logged and dropped (None is returned).
        """
        item = await self._client().brpop([self.name], timeout=timeout)
        if item is None:
            return None

        _, raw = item
        try:
            return GenerationJob.model_validate_json(raw)
        except ValidationError as e:
            self._logger.error("generation_job_invalid", error=str(e), raw_preview=str(raw)[:200])
            return None

    async def size(self) -> int:
        """Number of jobs waiting."""
        return int(await self._client().llen(self.name))
