"""
PURPOSE: Persistence of templates and their generated rules.

Thin SQLAlchemy wrapper over the templates table bound to one AsyncSession.
Ownership rules live in the service layer, not here.

CALLED BY: services/template_service.py
"""

from typing import List, Optional

from sqlalchemy import desc, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from template_engine.config.constants import GLOBAL_OWNER
from template_engine.models.template import Template
from template_engine.utils.logger import get_logger

logger = get_logger("repositories.templates")


class SqlTemplateRepository:
    """
    PURPOSE: CRUD over the templates table.

    CALLED BY: TemplateService
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, template: Template) -> Template:
        """
        Insert a new template and return it refreshed from the database.

        Args:
            template: Unsaved ORM instance

        Returns:
            Template: Stored template with id and timestamps populated.
        """
        owner = template.owner
        try:
            self._session.add(template)
            await self._session.commit()
            await self._session.refresh(template)
        except Exception as e:
            await self._session.rollback()
            logger.error("template_create_failed", owner=owner, error=str(e))
            raise
        logger.info("template_created", template_id=template.id, owner=template.owner, status=template.status)
        return template

    async def update(self, template: Template) -> Template:
        """Commit pending changes on a template loaded through this session."""
        template_id = template.id
        try:
            template = await self._session.merge(template)
            await self._session.commit()
            await self._session.refresh(template)
        except Exception as e:
            await self._session.rollback()
            logger.error("template_update_failed", template_id=template_id, error=str(e))
            raise
        logger.debug("template_updated", template_id=template.id, status=template.status)
        return template

    async def get(self, template_id: str) -> Optional[Template]:
        return await self._session.get(Template, template_id)

    async def get_by_owner(self, owner: str) -> List[Template]:
        """Templates owned by one user, newest first."""
        stmt = (
            select(Template)
            .where(Template.owner == owner)
            .order_by(desc(Template.created_at))
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def list_visible(self, owner: str) -> List[Template]:
        """Templates owned by the user plus every GLOBAL template, newest first."""
        stmt = (
            select(Template)
            .where(or_(Template.owner == owner, Template.owner == GLOBAL_OWNER))
            .order_by(desc(Template.created_at))
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def delete(self, template_id: str) -> bool:
        """Delete by id. Returns False when the template did not exist."""
        template = await self.get(template_id)
        if template is None:
            return False
        try:
            await self._session.delete(template)
            await self._session.commit()
        except Exception as e:
            await self._session.rollback()
            logger.error("template_delete_failed", template_id=template_id, error=str(e))
            raise
        logger.info("template_deleted", template_id=template_id)
        return True
