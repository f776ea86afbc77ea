"""Relational lookup of narrative writeup sections.

Usage
-----
Fetch the sections for two report identifiers:

>>> from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
>>> engine = create_async_engine("sqlite+aiosqlite:///writeups.db")
>>> client = SqlWriteupClient(async_sessionmaker(engine, expire_on_commit=False))
>>> writeup = await client.get_writeup([7, 9])

"""

from __future__ import annotations

import typing as typ

from sqlalchemy import bindparam, case, select, text

from .models import Writeup, WriteupSection
from .sanitize import escape_latex
from .storage import WriteupSectionRecord

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from sqlalchemy import ColumnElement
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


class WriteupClient(typ.Protocol):
    """Interface for fetching narrative sections keyed by report id."""

    async def get_writeup(self, ids: cabc.Sequence[int]) -> Writeup:
        """Return the ordered sections for ``ids``."""
        ...


class SqlWriteupClient:
    """Fetch writeup sections through SQLAlchemy.

    Parameters
    ----------
    session_factory
        Async session factory bound to the writeup database.
    query
        Optional raw SQL returning ``(title, content)`` rows. It must use an
        ``:ids`` placeholder, which is expanded to the requested identifiers,
        and is responsible for its own ordering. When omitted, rows of
        :class:`WriteupSectionRecord` are read grouped by report in request
        order, then by position.

    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        query: str | None = None,
    ) -> None:
        """Configure the client with a session factory and optional query."""
        self._session_factory = session_factory
        self._query = query

    async def get_writeup(self, ids: cabc.Sequence[int]) -> Writeup:
        """Return the sanitised sections for ``ids``.

        An empty ``ids`` sequence returns an empty writeup without opening a
        database session.
        """
        if not ids:
            return Writeup()

        async with self._session_factory() as session:
            rows = await self._fetch_rows(session, list(ids))

        return Writeup(
            sections=tuple(
                WriteupSection(
                    title=escape_latex(str(title)),
                    content=escape_latex(str(content or "")),
                )
                for title, content in rows
            )
        )

    async def _fetch_rows(
        self, session: AsyncSession, ids: list[int]
    ) -> list[tuple[str, str | None]]:
        if self._query is not None:
            stmt = text(self._query).bindparams(bindparam("ids", expanding=True))
            result = await session.execute(stmt, {"ids": ids})
        else:
            result = await session.execute(
                select(WriteupSectionRecord.title, WriteupSectionRecord.content)
                .where(WriteupSectionRecord.report_id.in_(ids))
                .order_by(
                    _request_order(ids),
                    WriteupSectionRecord.position,
                    WriteupSectionRecord.id,
                )
            )
        return [(row[0], row[1]) for row in result.all()]


def _request_order(ids: list[int]) -> ColumnElement[int]:
    """Rank each report id by its first appearance in ``ids``."""
    ranks: dict[int, int] = {}
    for report_id in ids:
        ranks.setdefault(report_id, len(ranks))
    return case(ranks, value=WriteupSectionRecord.report_id, else_=len(ranks))
