"""
Template service for the template engine.

PURPOSE: Own the template lifecycle: accept generation requests, dispatch
them (queue or inline), run the pipeline for a job and persist the outcome,
and enforce ownership on every read and write.

Lifecycle:
    accepted -> generating -> active   (pipeline success)
                           -> failed   (pipeline failure, cancellation, crash)
    regenerate re-enters generating.

CALLED BY: api/routes_templates.py, worker.py
"""

import asyncio
from typing import List, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from template_engine.config.constants import GLOBAL_OWNER, TemplateStatus, TemplateType
from template_engine.dispatch.generation_queue import GenerationQueue
from template_engine.models.template import Template
from template_engine.repositories.templates import SqlTemplateRepository
from template_engine.schemas.template import (
    GenerateTemplateRequest,
    GenerationJob,
    RegenerateTemplateRequest,
    TemplateUpdate,
)
from template_engine.template_builder.conversation import build_conversation_summary
from template_engine.template_builder.pipeline import TemplatePipeline
from template_engine.template_builder.result import (
    GenerationRequest,
    PipelineOutcome,
    PipelineSuccess,
)
from template_engine.utils.logger import get_logger

logger = get_logger("services.template")

CANCELLED_MESSAGE = "generation cancelled"


class TemplateAccessError(Exception):
    """Caller may see the template but not change it (HTTP 403)."""

    status_code = 403


class TemplateNotFoundError(TemplateAccessError):
    """Template does not exist or belongs to another user (HTTP 404)."""

    status_code = 404


class TemplateService:
    """
    Service for generating and managing strategy templates.

    PURPOSE: Business logic between the API / worker and the database.
    Every database operation opens its own session so no session is held
    across a (slow) generation call.

    CALLED BY: API routes, generation worker
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        pipeline: TemplatePipeline,
        queue: Optional[GenerationQueue] = None,
        inline: bool = False,
    ) -> None:
        self._session_factory = session_factory
        self._pipeline = pipeline
        self._queue = queue
        self._inline = inline or queue is None

    # ------------------------------------------------------------------ #
    #  Generation
    # ------------------------------------------------------------------ #

    async def accept_generation(self, owner: str, request: GenerateTemplateRequest) -> Template:
        """
        Create a template in 'generating' state and dispatch its job.

        CALLED BY: POST /api/templates/generate

        Args:
            owner: Authenticated user
            request: Validated generation request

        Returns:
            Template: The template as stored after dispatch (already
                active/failed when generation runs inline).
        """
        logger.info("accept_generation_started", owner=owner, template_type=request.template_type.value)

        template = Template(
            owner=owner,
            name=request.name,
            description=request.description,
            category=request.category,
            template_type=request.template_type.value,
            direction=request.direction.value if request.direction else None,
            timeframe=request.timeframe,
            status=TemplateStatus.GENERATING.value,
            is_stepwise=request.template_type == TemplateType.EXECUTION,
            conversation_id=request.conversation_id,
        )
        async with self._session_factory() as session:
            template = await SqlTemplateRepository(session).create(template)

        job = GenerationJob(
            template_id=template.id,
            conversation_id=request.conversation_id,
            owner=owner,
            name=request.name,
            description=request.description,
            category=request.category,
            template_type=request.template_type,
            direction=request.direction,
            timeframe=request.timeframe,
            messages=request.messages,
        )
        return await self._dispatch(job)

    async def regenerate(
        self,
        owner: str,
        template_id: str,
        request: RegenerateTemplateRequest,
    ) -> Template:
        """
        Re-run generation for an existing template with a new conversation.

        Raises:
            TemplateNotFoundError: Unknown id or another user's template
            TemplateAccessError: GLOBAL template
        """
        async with self._session_factory() as session:
            repo = SqlTemplateRepository(session)
            template = await self._get_mutable(repo, owner, template_id)
            if request.description is not None:
                template.description = request.description
            template.status = TemplateStatus.GENERATING.value
            template.error_message = None
            template = await repo.update(template)

            job = GenerationJob(
                template_id=template.id,
                conversation_id=template.conversation_id,
                owner=owner,
                name=template.name,
                description=template.description or "",
                category=template.category,
                template_type=template.template_type,
                direction=template.direction,
                timeframe=template.timeframe,
                messages=request.messages,
            )

        logger.info("template_regeneration_requested", template_id=template_id, owner=owner)
        return await self._dispatch(job)

    async def run_generation_job(self, job: GenerationJob, final_attempt: bool = True) -> PipelineOutcome:
        """
        Run the pipeline for one job and persist the outcome.

        Success stores the rules and marks the template active; any failure
        marks it failed with the reason, except a retryable failure on a
        non-final attempt, which leaves it generating. Cancellation marks it
        failed under asyncio.shield and re-raises.

        CALLED BY: worker.py, _dispatch() when running inline

        Args:
            job: Queued generation job
            final_attempt: False when the worker will retry a retryable failure

        Returns:
            PipelineOutcome: The pipeline's tagged result.
        """
        log = logger.bind(template_id=job.template_id, attempt=job.attempt)
        await self._set_status(job.template_id, TemplateStatus.GENERATING)

        request = GenerationRequest(
            conversation=build_conversation_summary(job.messages),
            name=job.name,
            description=job.description,
            category=job.category,
            template_type=job.template_type,
            direction=job.direction.value if job.direction else None,
            timeframe=job.timeframe,
        )

        try:
            outcome = await self._pipeline.run(request)
        except asyncio.CancelledError:
            log.warning("generation_cancelled")
            await asyncio.shield(self._set_status(job.template_id, TemplateStatus.FAILED, CANCELLED_MESSAGE))
            raise
        except Exception as e:
            log.error("generation_crashed", error=str(e), exc_info=True)
            await self._set_status(job.template_id, TemplateStatus.FAILED, f"generation error: {e}"[:500])
            raise

        if isinstance(outcome, PipelineSuccess):
            await self._store_rules(job.template_id, outcome)
            log.info("generation_completed", corrections=len(outcome.corrections))
        elif outcome.retryable and not final_attempt:
            await self._set_status(job.template_id, TemplateStatus.GENERATING, f"retrying: {outcome.message}"[:500])
            log.warning("generation_attempt_failed", stage=outcome.stage.value, error=outcome.message)
        else:
            await self._set_status(job.template_id, TemplateStatus.FAILED, outcome.message)
            log.warning(
                "generation_failed",
                kind=outcome.kind.value,
                stage=outcome.stage.value,
                error=outcome.message,
            )
        return outcome

    async def _dispatch(self, job: GenerationJob) -> Template:
        """Run inline or enqueue, then return the template's current state."""
        if self._inline:
            await self.run_generation_job(job)
        else:
            try:
                await self._queue.enqueue(job)
            except Exception as e:
                logger.error("generation_enqueue_failed", template_id=job.template_id, error=str(e))
                await self._set_status(job.template_id, TemplateStatus.FAILED, "could not queue generation")
                raise

        async with self._session_factory() as session:
            return await SqlTemplateRepository(session).get(job.template_id)

    async def mark_failed(self, template_id: str, message: str) -> None:
        """Mark a template failed outside a pipeline run (e.g. a lost retry)."""
        await self._set_status(template_id, TemplateStatus.FAILED, message[:500])

    async def _store_rules(self, template_id: str, outcome: PipelineSuccess) -> None:
        async with self._session_factory() as session:
            repo = SqlTemplateRepository(session)
            template = await repo.get(template_id)
            if template is None:
                logger.warning("generated_template_missing", template_id=template_id)
                return
            template.rules = outcome.rules.to_payload()
            template.status = TemplateStatus.ACTIVE.value
            template.error_message = None
            await repo.update(template)

    async def _set_status(self, template_id: str, status: TemplateStatus, error_message: Optional[str] = None) -> None:
        async with self._session_factory() as session:
            repo = SqlTemplateRepository(session)
            template = await repo.get(template_id)
            if template is None:
                logger.warning("template_status_target_missing", template_id=template_id, status=status.value)
                return
            template.status = status.value
            template.error_message = error_message
            await repo.update(template)

    # ------------------------------------------------------------------ #
    #  CRUD
    # ------------------------------------------------------------------ #

    async def list_templates(self, owner: str) -> List[Template]:
        """Own templates plus GLOBAL ones."""
        async with self._session_factory() as session:
            templates = await SqlTemplateRepository(session).list_visible(owner)
        logger.info("templates_listed", owner=owner, count=len(templates))
        return templates

    async def get_template(self, owner: str, template_id: str) -> Template:
        """
        Fetch one readable template.

        Raises:
            TemplateNotFoundError: Unknown id or another user's template
        """
        async with self._session_factory() as session:
            template = await SqlTemplateRepository(session).get(template_id)
        if template is None or template.owner not in (owner, GLOBAL_OWNER):
            raise TemplateNotFoundError(f"Template '{template_id}' not found")
        return template

    async def update_template(self, owner: str, template_id: str, update: TemplateUpdate) -> Template:
        """
        Apply a metadata update.

        Raises:
            TemplateNotFoundError: Unknown id or another user's template
            TemplateAccessError: GLOBAL template
            ValueError: Activating a template that has no generated rules
        """
        async with self._session_factory() as session:
            repo = SqlTemplateRepository(session)
            template = await self._get_mutable(repo, owner, template_id)

            changes = update.model_dump(exclude_unset=True)
            if changes.get("status") == TemplateStatus.ACTIVE and not template.rules:
                raise ValueError("Template has no generated rules and cannot be activated")
            for field, value in changes.items():
                if isinstance(value, TemplateStatus):
                    value = value.value
                setattr(template, field, value)
            template = await repo.update(template)

        logger.info("template_metadata_updated", template_id=template_id, fields=sorted(changes))
        return template

    async def delete_template(self, owner: str, template_id: str) -> None:
        """
        Delete an owned template.

        Raises:
            TemplateNotFoundError: Unknown id or another user's template
            TemplateAccessError: GLOBAL template
        """
        async with self._session_factory() as session:
            repo = SqlTemplateRepository(session)
            await self._get_mutable(repo, owner, template_id)
            await repo.delete(template_id)

    @staticmethod
    async def _get_mutable(repo: SqlTemplateRepository, owner: str, template_id: str) -> Template:
        """Load a template the caller is allowed to change."""
        template = await repo.get(template_id)
        if template is None or template.owner not in (owner, GLOBAL_OWNER):
            raise TemplateNotFoundError(f"Template '{template_id}' not found")
        if template.owner != owner:
            raise TemplateAccessError(f"Template '{template_id}' is shared and cannot be modified")
        return template
