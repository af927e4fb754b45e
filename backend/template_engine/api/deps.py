"""
PURPOSE: FastAPI dependencies for objects built once in the application lifespan.
"""

from fastapi import HTTPException, Request, status

from template_engine.catalog.repository import IndicatorCatalog
from template_engine.services.template_service import TemplateService


def get_template_service(request: Request) -> TemplateService:
    """Return the TemplateService stored on app.state at startup."""
    service = getattr(request.app.state, "template_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Template service not initialized",
        )
    return service


def get_catalog(request: Request) -> IndicatorCatalog:
    """Return the indicator catalog stored on app.state at startup."""
    catalog = getattr(request.app.state, "indicator_catalog", None)
    if catalog is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Indicator catalog not initialized",
        )
    return catalog
