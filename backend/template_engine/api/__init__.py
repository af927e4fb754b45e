"""
PURPOSE: API router initialization and exports for the template engine.

Aggregates the template and indicator routers into a single api_router that
is included in the FastAPI application.
"""

from fastapi import APIRouter

from template_engine.api.routes_indicators import router as indicators_router
from template_engine.api.routes_templates import router as templates_router

# Create the main API router
api_router = APIRouter(prefix="/api", tags=["api"])

# Include all sub-routers
api_router.include_router(templates_router, tags=["templates"])
api_router.include_router(indicators_router, tags=["indicators"])

__all__ = ["api_router"]
