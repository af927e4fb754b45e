"""
PURPOSE: Process-wide async engine and session factory for templates and the catalog.

Sessions are opened per operation by TemplateService and SqlIndicatorCatalog;
nothing here hands sessions to routes directly.

CALLED BY:
    - main.py lifespan (service wiring and shutdown)
    - worker.py run_worker()
    - catalog/repository.py get_indicator_catalog()
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from template_engine.config.settings import settings
from template_engine.utils.logger import get_logger

logger = get_logger("db.engine")

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)

# expire_on_commit=False: rows are read after the session that saved them closes
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def dispose_engine() -> None:
    """Close pooled connections on shutdown."""
    await engine.dispose()
    logger.info("database_engine_disposed")
