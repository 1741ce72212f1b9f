from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from database.base import Base


class SummaryLevel(Base):
    __tablename__ = "summary_levels"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    get_variable: Mapped[str] = mapped_column(String, nullable=False)
    query_name: Mapped[str] = mapped_column(String, nullable=False)
    on_spine: Mapped[bool] = mapped_column(Boolean, nullable=False)
    code: Mapped[str] = mapped_column(String(3), nullable=False, unique=True)
    parent_summary_level: Mapped[str | None] = mapped_column(String(3), nullable=True)
    parent_summary_level_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("summary_levels.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
