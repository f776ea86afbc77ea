"""Persistence model for narrative writeup sections."""

from __future__ import annotations

import typing as typ

from sqlalchemy import Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine


class Base(DeclarativeBase):
    """Base declarative class for writeup models."""


class WriteupSectionRecord(Base):
    """A titled narrative section attached to a report identifier."""

    __tablename__ = "writeup_sections"
    __table_args__ = (Index("ix_writeup_sections_report", "report_id", "position"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    report_id: Mapped[int] = mapped_column(Integer, nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str | None] = mapped_column(Text(), nullable=True)


async def init_writeup_storage(engine: AsyncEngine) -> None:
    """Create the writeup tables if absent."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
