"""
PURPOSE: Template generation and management API routes.

Provides endpoints for requesting generation from a strategy conversation,
re-running generation, and listing, reading, updating and deleting
templates. Ownership is enforced by TemplateService.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from template_engine.api.auth import get_current_user
from template_engine.api.deps import get_template_service
from template_engine.core.rate_limit import GENERATE_LIMIT, READ_LIMIT, WRITE_LIMIT, limiter
from template_engine.schemas.template import (
    GenerateTemplateRequest,
    GenerationAccepted,
    RegenerateTemplateRequest,
    TemplateResponse,
    TemplateUpdate,
)
from template_engine.services.template_service import TemplateAccessError, TemplateService
from template_engine.utils.logger import get_logger


logger = get_logger("api.templates")
router = APIRouter(prefix="/templates", tags=["templates"])


def _raise_route_error(action: str, error: Exception) -> None:
    """Raise a consistent 500 response for template route failures."""
    logger.error(
        "template_route_failed",
        action=action,
        error=str(error),
        exception_type=type(error).__name__,
    )
    raise HTTPException(status_code=500, detail=f"Failed to {action}")


def _raise_access_error(error: TemplateAccessError) -> None:
    """Map ownership errors to 403 / 404."""
    raise HTTPException(status_code=error.status_code, detail=str(error))


# ════════════════════════════════════════════════════════════════
# Generation Routes
# ════════════════════════════════════════════════════════════════


@router.post("/generate", response_model=GenerationAccepted, status_code=status.HTTP_202_ACCEPTED)
@limiter.limit(GENERATE_LIMIT)
async def generate_template(
    request: Request,
    payload: GenerateTemplateRequest,
    current_user: str = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
) -> GenerationAccepted:
    """
    PURPOSE: Accept a conversation and start template generation.

    CALLED BY: Strategy chat "create template" action

    Args:
        payload: Conversation messages and template metadata
        current_user: Authenticated owner

    Returns:
        GenerationAccepted: Template id and status ("generating" when queued)
    """
    try:
        template = await service.accept_generation(current_user, payload)
        logger.info("template_generation_accepted", template_id=template.id, owner=current_user)
        return GenerationAccepted(template_id=template.id, status=template.status)
    except HTTPException:
        raise
    except Exception as e:
        _raise_route_error("start template generation", e)


@router.post("/{template_id}/regenerate", response_model=GenerationAccepted, status_code=status.HTTP_202_ACCEPTED)
@limiter.limit(GENERATE_LIMIT)
async def regenerate_template(
    request: Request,
    template_id: str,
    payload: RegenerateTemplateRequest,
    current_user: str = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
) -> GenerationAccepted:
    """
    PURPOSE: Re-run generation for an owned template.

    Raises:
        HTTPException: 404 unknown/foreign template, 403 shared template
    """
    try:
        template = await service.regenerate(current_user, template_id, payload)
        return GenerationAccepted(template_id=template.id, status=template.status)
    except TemplateAccessError as e:
        _raise_access_error(e)
    except HTTPException:
        raise
    except Exception as e:
        _raise_route_error("regenerate template", e)


# ════════════════════════════════════════════════════════════════
# Template CRUD Routes
# ════════════════════════════════════════════════════════════════


@router.get("", response_model=list[TemplateResponse])
@limiter.limit(READ_LIMIT)
async def list_templates(
    request: Request,
    current_user: str = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
) -> list[TemplateResponse]:
    """
    PURPOSE: List the caller's templates plus shared (GLOBAL) ones.

    CALLED BY: Template library page
    """
    try:
        templates = await service.list_templates(current_user)
        return [TemplateResponse.model_validate(t) for t in templates]
    except HTTPException:
        raise
    except Exception as e:
        _raise_route_error("list templates", e)


@router.get("/{template_id}", response_model=TemplateResponse)
@limiter.limit(READ_LIMIT)
async def get_template(
    request: Request,
    template_id: str,
    current_user: str = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
) -> TemplateResponse:
    """
    PURPOSE: Read one template (status polling after generate).

    Raises:
        HTTPException: 404 if the template is unknown or not visible
    """
    try:
        template = await service.get_template(current_user, template_id)
        return TemplateResponse.model_validate(template)
    except TemplateAccessError as e:
        _raise_access_error(e)
    except HTTPException:
        raise
    except Exception as e:
        _raise_route_error("get template", e)


@router.patch("/{template_id}", response_model=TemplateResponse)
@limiter.limit(WRITE_LIMIT)
async def update_template(
    request: Request,
    template_id: str,
    update: TemplateUpdate,
    current_user: str = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
) -> TemplateResponse:
    """
    PURPOSE: Update name, description, category or status of an owned template.

    Raises:
        HTTPException: 400 activating without rules, 403 shared, 404 unknown
    """
    try:
        template = await service.update_template(current_user, template_id, update)
        return TemplateResponse.model_validate(template)
    except TemplateAccessError as e:
        _raise_access_error(e)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        _raise_route_error("update template", e)


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(WRITE_LIMIT)
async def delete_template(
    request: Request,
    template_id: str,
    current_user: str = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
) -> Response:
    """
    PURPOSE: Delete an owned template.

    Raises:
        HTTPException: 403 shared template, 404 unknown
    """
    try:
        await service.delete_template(current_user, template_id)
        logger.info("template_deleted_via_api", template_id=template_id, owner=current_user)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except TemplateAccessError as e:
        _raise_access_error(e)
    except HTTPException:
        raise
    except Exception as e:
        _raise_route_error("delete template", e)
