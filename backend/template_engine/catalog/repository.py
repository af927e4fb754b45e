"""
PURPOSE: Durable indicator catalog backed by SQLAlchemy with a TTL read cache.

IndicatorCatalog is the contract the pipeline depends on; SqlIndicatorCatalog
stores definitions in the indicator_definitions table. Reads are served from
a process-owned IndicatorCache; upsert and delete invalidate it.

CALLED BY:
    - template_builder/resolver.py (batch lookup)
    - template_builder/extractor.py (keyword mappings)
    - api/routes_indicators.py (catalog CRUD)
    - catalog/seed.py
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from template_engine.catalog.cache import IndicatorCache
from template_engine.models.indicator import IndicatorDefinitionRecord
from template_engine.schemas.indicator import IndicatorDefinition
from template_engine.utils.logger import get_logger

logger = get_logger("catalog.repository")

_ALL_ACTIVE_KEY = "all_active"


def normalise_keys(keys: Iterable[str]) -> List[str]:
    """Lowercase, strip and de-duplicate keys, preserving first-seen order."""
    seen: List[str] = []
    for key in keys:
        if not isinstance(key, str):
            continue
        norm = key.strip().lower()
        if norm and norm not in seen:
            seen.append(norm)
    return seen


class IndicatorCatalog(ABC):
    """
    PURPOSE: Contract for reading and writing indicator definitions.

    Implementations own their cache and must invalidate it on every write.
    """

    @abstractmethod
    async def get_all_active(self) -> List[IndicatorDefinition]:
        """Return every active definition ordered by sort_order."""

    @abstractmethod
    async def get_by_types(self, keys: Iterable[str]) -> List[IndicatorDefinition]:
        """Batch lookup of active definitions for the given keys."""

    @abstractmethod
    async def get_by_type(self, key: str) -> Optional[IndicatorDefinition]:
        """Return one definition (active or not), or None."""

    @abstractmethod
    async def upsert(self, definition: IndicatorDefinition) -> IndicatorDefinition:
        """Create or replace a definition."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete a definition. Returns False when it did not exist."""

    async def get_keyword_mappings(self) -> Dict[str, str]:
        """
        PURPOSE: Map every known name of an active indicator to its type key.

        Includes the type itself, the display name, aliases and keywords, all
        lowercased. Used by the extractor's text-detection fallback.

        Returns:
            Dict[str, str]: phrase -> indicator type
        """
        mappings: Dict[str, str] = {}
        for definition in await self.get_all_active():
            phrases = [definition.type, definition.display_name]
            phrases.extend(definition.aliases)
            phrases.extend(definition.keywords)
            for phrase in phrases:
                norm = str(phrase or "").strip().lower()
                if norm:
                    mappings.setdefault(norm, definition.type)
        return mappings


class SqlIndicatorCatalog(IndicatorCatalog):
    """
    PURPOSE: SQLAlchemy-backed catalog with an explicit TTL cache.

    A warm cache holds the full active snapshot; batch lookups of active
    definitions are answered from it without a query.

    CALLED BY: Application startup (get_indicator_catalog), tests
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        cache: Optional[IndicatorCache] = None,
    ) -> None:
        self._session_factory = session_factory
        self._cache = cache or IndicatorCache()

    @property
    def cache(self) -> IndicatorCache:
        return self._cache

    async def get_all_active(self) -> List[IndicatorDefinition]:
        cached = self._cache.get(_ALL_ACTIVE_KEY)
        if cached is not None:
            return list(cached)

        async with self._session_factory() as session:
            stmt = (
                select(IndicatorDefinitionRecord)
                .where(IndicatorDefinitionRecord.is_active.is_(True))
                .order_by(IndicatorDefinitionRecord.sort_order, IndicatorDefinitionRecord.indicator_type)
            )
            result = await session.execute(stmt)
            definitions = [_to_definition(row) for row in result.scalars().all()]

        self._cache.put(_ALL_ACTIVE_KEY, tuple(definitions))
        logger.info("indicator_catalog_loaded", count=len(definitions))
        return definitions

    async def get_by_types(self, keys: Iterable[str]) -> List[IndicatorDefinition]:
        wanted = normalise_keys(keys)
        if not wanted:
            return []

        cached = self._cache.get(_ALL_ACTIVE_KEY)
        if cached is not None:
            return [d for d in cached if d.type in wanted]

        async with self._session_factory() as session:
            stmt = (
                select(IndicatorDefinitionRecord)
                .where(
                    IndicatorDefinitionRecord.indicator_type.in_(wanted),
                    IndicatorDefinitionRecord.is_active.is_(True),
                )
                .order_by(IndicatorDefinitionRecord.sort_order, IndicatorDefinitionRecord.indicator_type)
            )
            result = await session.execute(stmt)
            definitions = [_to_definition(row) for row in result.scalars().all()]

        logger.debug("indicator_batch_lookup", requested=len(wanted), found=len(definitions))
        return definitions

    async def get_by_type(self, key: str) -> Optional[IndicatorDefinition]:
        norm = key.strip().lower()
        async with self._session_factory() as session:
            record = await session.get(IndicatorDefinitionRecord, norm)
            return _to_definition(record) if record else None

    async def upsert(self, definition: IndicatorDefinition) -> IndicatorDefinition:
        """
        PURPOSE: Insert or update one definition and invalidate the cache.

        Args:
            definition: Definition to store (type is already lowercase)

        Returns:
            IndicatorDefinition: The stored definition with timestamps.
        """
        now = datetime.now(timezone.utc)
        async with self._session_factory() as session:
            try:
                record = await session.get(IndicatorDefinitionRecord, definition.type)
                if record is None:
                    record = IndicatorDefinitionRecord(indicator_type=definition.type, created_at=now)
                    session.add(record)
                _apply(record, definition)
                record.updated_at = now
                await session.commit()
                await session.refresh(record)
                stored = _to_definition(record)
            except Exception as e:
                await session.rollback()
                logger.error("indicator_upsert_failed", type=definition.type, error=str(e))
                raise

        self._cache.invalidate()
        logger.info("indicator_upserted", type=stored.type, active=stored.active)
        return stored

    async def delete(self, key: str) -> bool:
        norm = key.strip().lower()
        async with self._session_factory() as session:
            record = await session.get(IndicatorDefinitionRecord, norm)
            if record is None:
                return False
            try:
                await session.delete(record)
                await session.commit()
            except Exception as e:
                await session.rollback()
                logger.error("indicator_delete_failed", type=norm, error=str(e))
                raise

        self._cache.invalidate()
        logger.info("indicator_deleted", type=norm)
        return True


# ------------------------------------------------------------------ #
#  Record <-> definition mapping
# ------------------------------------------------------------------ #


def _to_definition(record: IndicatorDefinitionRecord) -> IndicatorDefinition:
    """Convert an ORM row into the immutable definition value."""
    return IndicatorDefinition(
        type=record.indicator_type,
        display_name=record.display_name,
        category=record.category or "",
        description=record.description,
        example_id=record.example_id or "",
        parameter_schema=record.parameters or {},
        prompt_snippet=record.prompt_snippet or "",
        aliases=tuple(record.aliases or ()),
        keywords=tuple(record.keywords or ()),
        active=bool(record.is_active),
        sort_order=record.sort_order or 0,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _apply(record: IndicatorDefinitionRecord, definition: IndicatorDefinition) -> None:
    """Copy definition fields onto an ORM row."""
    record.display_name = definition.display_name
    record.category = definition.category
    record.description = definition.description
    record.example_id = definition.example_id
    record.parameters = {
        name: param.to_payload() for name, param in definition.parameter_schema.items()
    }
    record.prompt_snippet = definition.prompt_snippet
    record.aliases = list(definition.aliases)
    record.keywords = list(definition.keywords)
    record.is_active = definition.active
    record.sort_order = definition.sort_order


_catalog: Optional[SqlIndicatorCatalog] = None


def get_indicator_catalog() -> SqlIndicatorCatalog:
    """
    PURPOSE: Return the process-wide catalog bound to the application database.

    CALLED BY: main.py startup, API dependencies, worker
    """
    global _catalog
    if _catalog is None:
        from template_engine.config.settings import settings
        from template_engine.db.engine import AsyncSessionLocal

        _catalog = SqlIndicatorCatalog(
            AsyncSessionLocal,
            IndicatorCache(ttl_seconds=settings.INDICATOR_CACHE_TTL_SECONDS),
        )
    return _catalog
