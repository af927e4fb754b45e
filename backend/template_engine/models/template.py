from uuid import uuid4
from typing import Optional
from sqlalchemy import Boolean, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from template_engine.config.constants import DEFAULT_CATEGORY, TemplateStatus, TemplateType
from template_engine.db.base import Base, TimestampMixin


def _new_template_id() -> str:
    return str(uuid4())


class Template(Base, TimestampMixin):
    """Strategy template owned by a user (or GLOBAL) with its generated rules."""

    __tablename__ = "templates"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=_new_template_id
    )
    owner: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(50), default=DEFAULT_CATEGORY)
    template_type: Mapped[str] = mapped_column(String(20), default=TemplateType.EXECUTION.value)
    direction: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    timeframe: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=TemplateStatus.DRAFT.value, index=True)
    is_stepwise: Mapped[bool] = mapped_column(Boolean, default=True)
    # Serialized TemplateRules / SignalTemplateRules, stored verbatim
    rules: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    conversation_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Template id={self.id} owner={self.owner} status={self.status}>"
