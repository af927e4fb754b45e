"""
PURPOSE: Indicator catalog API routes.

Lists active definitions and lets catalog admins (CATALOG_ADMINS) create, replace or
remove definitions. Every write invalidates the catalog cache, so the next
generation run sees the change.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from template_engine.api.auth import get_current_user, require_catalog_admin
from template_engine.api.deps import get_catalog
from template_engine.catalog.repository import IndicatorCatalog
from template_engine.core.rate_limit import READ_LIMIT, WRITE_LIMIT, limiter
from template_engine.schemas.indicator import IndicatorDefinition, IndicatorDefinitionUpsert
from template_engine.utils.logger import get_logger


logger = get_logger("api.indicators")
router = APIRouter(prefix="/indicators", tags=["indicators"])


def _raise_route_error(action: str, error: Exception) -> None:
    """Raise a consistent 500 response for catalog route failures."""
    logger.error(
        "indicator_route_failed",
        action=action,
        error=str(error),
        exception_type=type(error).__name__,
    )
    raise HTTPException(status_code=500, detail=f"Failed to {action}")


@router.get("", response_model=list[IndicatorDefinition])
@limiter.limit(READ_LIMIT)
async def list_indicators(
    request: Request,
    _current_user: str = Depends(get_current_user),
    catalog: IndicatorCatalog = Depends(get_catalog),
) -> list[IndicatorDefinition]:
    """
    PURPOSE: List active indicator definitions ordered by sort_order.

    CALLED BY: Template editor indicator picker, catalog admin page
    """
    try:
        return await catalog.get_all_active()
    except HTTPException:
        raise
    except Exception as e:
        _raise_route_error("list indicators", e)


@router.put("/{indicator_type}", response_model=IndicatorDefinition)
@limiter.limit(WRITE_LIMIT)
async def upsert_indicator(
    request: Request,
    indicator_type: str,
    body: IndicatorDefinitionUpsert,
    current_user: str = Depends(require_catalog_admin),
    catalog: IndicatorCatalog = Depends(get_catalog),
) -> IndicatorDefinition:
    """
    PURPOSE: Create or replace the definition for one indicator type.

    Args:
        indicator_type: Catalog key (lowercased on store)
        body: Definition fields

    Returns:
        IndicatorDefinition: Stored definition with timestamps
    """
    try:
        definition = body.to_definition(indicator_type)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    try:
        stored = await catalog.upsert(definition)
        logger.info("indicator_definition_saved", type=stored.type, user=current_user)
        return stored
    except HTTPException:
        raise
    except Exception as e:
        _raise_route_error("save indicator definition", e)


@router.delete("/{indicator_type}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(WRITE_LIMIT)
async def delete_indicator(
    request: Request,
    indicator_type: str,
    current_user: str = Depends(require_catalog_admin),
    catalog: IndicatorCatalog = Depends(get_catalog),
) -> Response:
    """
    PURPOSE: Remove a definition from the catalog.

    Raises:
        HTTPException: 404 if the type is not in the catalog
    """
    try:
        deleted = await catalog.delete(indicator_type)
    except Exception as e:
        _raise_route_error("delete indicator definition", e)

    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Indicator '{indicator_type}' not found",
        )
    logger.info("indicator_definition_removed", type=indicator_type, user=current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
