from typing import List, Optional
from sqlalchemy import Boolean, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from template_engine.db.base import Base, TimestampMixin


class IndicatorDefinitionRecord(Base, TimestampMixin):
    """Catalog row describing one indicator type and how to prompt for it."""

    __tablename__ = "indicator_definitions"

    indicator_type: Mapped[str] = mapped_column(String(50), primary_key=True)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    category: Mapped[str] = mapped_column(String(50), default="")
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    example_id: Mapped[str] = mapped_column(String(100), default="")
    parameters: Mapped[dict] = mapped_column(JSON, default=dict)
    prompt_snippet: Mapped[str] = mapped_column(Text, default="")
    aliases: Mapped[List[str]] = mapped_column(JSON, default=list)
    keywords: Mapped[List[str]] = mapped_column(JSON, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)

    def __repr__(self) -> str:
        return f"<IndicatorDefinitionRecord type={self.indicator_type} active={self.is_active}>"
