"""
PURPOSE: Phase 2 of generation. Map extracted keys to catalog definitions.

One batch catalog lookup; every key the catalog lacks is filled from the
built-in fallback table, and keys with neither are dropped.

CALLED BY: template_builder/pipeline.py
"""

from typing import Dict, Iterable, List, Optional

from template_engine.catalog.fallback import get_fallback
from template_engine.catalog.repository import IndicatorCatalog, normalise_keys
from template_engine.schemas.indicator import IndicatorDefinition
from template_engine.utils.logger import get_logger

logger = get_logger("template_builder.resolver")


class IndicatorResolver:
    """
    PURPOSE: Resolve indicator keys to definitions, catalog first.

    CALLED BY: TemplatePipeline (RESOLVING stage)
    """

    def __init__(self, catalog: Optional[IndicatorCatalog]) -> None:
        self._catalog = catalog

    async def resolve(self, keys: Iterable[str]) -> List[IndicatorDefinition]:
        """
        PURPOSE: Return one definition per resolvable key.

        Args:
            keys: Indicator keys from the extractor

        Returns:
            List[IndicatorDefinition]: Ordered by sort_order then type, no duplicates.
        """
        wanted = normalise_keys(keys)
        if not wanted:
            return []

        from_catalog: Dict[str, IndicatorDefinition] = {}
        if self._catalog is not None:
            try:
                for definition in await self._catalog.get_by_types(wanted):
                    from_catalog.setdefault(definition.type, definition)
            except Exception as e:
                logger.warning("indicator_catalog_lookup_failed", error=str(e), keys=wanted)
                from_catalog = {}

        resolved: List[IndicatorDefinition] = []
        fallback_used: List[str] = []
        for key in wanted:
            definition = from_catalog.get(key)
            if definition is None:
                definition = get_fallback(key)
                if definition is None:
                    logger.debug("indicator_unresolved", type=key)
                    continue
                fallback_used.append(key)
            resolved.append(definition)

        resolved.sort(key=lambda d: (d.sort_order, d.type))
        logger.info(
            "indicators_resolved",
            resolved=[d.type for d in resolved],
            from_fallback=fallback_used,
        )
        return resolved
