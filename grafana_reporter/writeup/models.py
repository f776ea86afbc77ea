"""Narrative sections merged into generated reports."""

from __future__ import annotations

import dataclasses as dc


@dc.dataclass(frozen=True, slots=True)
class WriteupSection:
    """One titled block of narrative text, already escaped for LaTeX."""

    title: str
    content: str


@dc.dataclass(frozen=True, slots=True)
class Writeup:
    """Ordered narrative sections for one report."""

    sections: tuple[WriteupSection, ...] = ()

    def __len__(self) -> int:
        """Return the number of sections."""
        return len(self.sections)
