"""
PURPOSE: Seed the indicator catalog from the built-in definition table.

Idempotent: definitions already present in the catalog (active or not) are
left untouched so operator edits survive re-seeding.

Usage:
    python -m template_engine.catalog.seed
"""

import asyncio
from typing import List

from template_engine.catalog.fallback import FALLBACK_DEFINITIONS
from template_engine.catalog.repository import IndicatorCatalog
from template_engine.utils.logger import get_logger, setup_logging

logger = get_logger("catalog.seed")


async def seed_indicator_catalog(catalog: IndicatorCatalog) -> List[str]:
    """
    PURPOSE: Insert every built-in definition the catalog does not have yet.

    Args:
        catalog: Target catalog

    Returns:
        List[str]: Keys that were inserted.
    """
    inserted: List[str] = []
    for key, definition in FALLBACK_DEFINITIONS.items():
        if await catalog.get_by_type(key) is not None:
            continue
        await catalog.upsert(definition)
        inserted.append(key)

    logger.info("indicator_catalog_seeded", inserted=len(inserted), total=len(FALLBACK_DEFINITIONS))
    return inserted


async def run_seed() -> None:
    """Seed the application database catalog."""
    from template_engine.catalog.repository import get_indicator_catalog

    try:
        await seed_indicator_catalog(get_indicator_catalog())
    except Exception as e:
        logger.error("indicator_catalog_seed_failed", error=str(e), exc_info=True)
        raise


def main() -> None:
    """CLI entry point."""
    from template_engine.config.settings import settings

    setup_logging(settings.LOG_LEVEL)
    asyncio.run(run_seed())


if __name__ == "__main__":
    main()
