"""Unit tests for writeup sanitising and the SQL writeup client."""

from __future__ import annotations

import typing as typ

import pytest

from grafana_reporter.writeup import (
    SqlWriteupClient,
    Writeup,
    WriteupSectionRecord,
    escape_latex,
)

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("plain words", "plain words"),
        ("50% & rising", r"50\% \& rising"),
        ("$cost_total #1", r"\$cost\_total \#1"),
        ("{x}", r"\{x\}"),
        ("a~b^c", r"a\textasciitilde{}b\textasciicircum{}c"),
        ("C:\\tmp", r"C:\textbackslash{}tmp"),
    ],
)
def test_escape_latex(raw: str, expected: str) -> None:
    """Characters special to LaTeX are neutralised in a single pass."""
    assert escape_latex(raw) == expected


async def _seed(
    session_factory: async_sessionmaker[AsyncSession],
    rows: list[tuple[int, int, str, str | None]],
) -> None:
    async with session_factory() as session:
        session.add_all(
            WriteupSectionRecord(
                report_id=report_id, position=position, title=title, content=content
            )
            for report_id, position, title, content in rows
        )
        await session.commit()


class TestSqlWriteupClient:
    """Tests for SqlWriteupClient."""

    @pytest.mark.asyncio
    async def test_orders_by_position_and_escapes(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """Sections come back in position order with LaTeX escaped."""
        await _seed(
            session_factory,
            [
                (7, 2, "Next steps", "Ship it"),
                (7, 1, "Summary", "Error rate < 1% & falling"),
                (8, 1, "Other report", "ignored"),
                (9, 3, "Appendix", None),
            ],
        )
        client = SqlWriteupClient(session_factory)

        writeup = await client.get_writeup([7, 9])

        assert [section.title for section in writeup.sections] == [
            "Summary",
            "Next steps",
            "Appendix",
        ]
        assert writeup.sections[0].content == r"Error rate < 1\% \& falling"
        assert writeup.sections[2].content == ""
        assert len(writeup) == 3

    @pytest.mark.asyncio
    async def test_reports_follow_requested_id_order(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """Each report's sections stay together, in the order ids were given."""
        await _seed(
            session_factory,
            [
                (3, 1, "Three first", "a"),
                (5, 1, "Five first", "b"),
                (3, 2, "Three second", "c"),
                (5, 2, "Five second", "d"),
            ],
        )
        client = SqlWriteupClient(session_factory)

        writeup = await client.get_writeup([5, 3])

        assert [section.title for section in writeup.sections] == [
            "Five first",
            "Five second",
            "Three first",
            "Three second",
        ]

    @pytest.mark.asyncio
    async def test_custom_query(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """A raw query with an expanding :ids parameter is honoured."""
        await _seed(
            session_factory,
            [(1, 1, "First", "a"), (2, 1, "Second", "b"), (3, 1, "Third", "c")],
        )
        client = SqlWriteupClient(
            session_factory,
            query=(
                "SELECT title, content FROM writeup_sections "
                "WHERE report_id IN :ids ORDER BY report_id DESC"
            ),
        )

        writeup = await client.get_writeup([1, 3])

        assert [section.title for section in writeup.sections] == ["Third", "First"]

    @pytest.mark.asyncio
    async def test_empty_ids_never_open_a_session(self) -> None:
        """No ids returns an empty writeup without touching the database."""

        def explode() -> typ.NoReturn:
            msg = "session opened"
            raise AssertionError(msg)

        client = SqlWriteupClient(explode)  # type: ignore[arg-type]

        assert await client.get_writeup([]) == Writeup()
