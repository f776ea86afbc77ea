"""Dashboard, panel and time-range models shared by the reporter.

Dashboards and panels are decoded from Grafana's JSON with ``msgspec``; the
layout helpers on :class:`Panel` are what templates use to size snapshots
on the page.
"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import re

import msgspec

from grafana_reporter.common.time import format_timestamp, utcnow

# Grafana lays panels out on a 24-column grid; legacy (v4) rows use 12 spans.
GRID_COLUMNS = 24
_SPAN_TO_GRID = 2
# Fraction of \textwidth (or page height) per grid unit.
_GRID_UNIT_SCALE = 0.04

SINGLE_STAT_TYPES = frozenset({"singlestat", "stat"})
TEXT_TYPE = "text"
ROW_TYPE = "row"

DEFAULT_FROM = "now-1h"
DEFAULT_TO = "now"


class GridPos(msgspec.Struct, frozen=True):
    """Position and size of a panel on the dashboard grid."""

    x: float = 0
    y: float = 0
    w: float = 0
    h: float = 0


class Panel(msgspec.Struct, frozen=True, kw_only=True):
    """A single chart within a dashboard.

    Attributes
    ----------
    id
        Numeric panel identifier, unique within the dashboard.
    type
        Grafana panel plugin type (``graph``, ``singlestat``, ``text``...).
    title
        Display title.
    grid_pos
        Grid layout for dashboards using the v5+ schema.
    span
        Column span for legacy (v4) row-based dashboards.

    """

    id: int
    type: str = ""
    title: str = ""
    grid_pos: GridPos = msgspec.field(default_factory=GridPos, name="gridPos")
    span: float = 0

    def is_single_stat(self) -> bool:
        """Return True for single-value stat panels."""
        return self.type in SINGLE_STAT_TYPES

    def is_text(self) -> bool:
        """Return True for free-text panels."""
        return self.type == TEXT_TYPE

    def grid_width(self) -> float:
        """Width in 24-column grid units, whichever schema the panel uses."""
        if self.grid_pos.w:
            return self.grid_pos.w
        if self.span:
            return self.span * _SPAN_TO_GRID
        return GRID_COLUMNS

    def is_partial_width(self) -> bool:
        """Return True when the panel does not span the full dashboard width."""
        return self.grid_width() < GRID_COLUMNS

    def width(self) -> float:
        """Return the panel width as a fraction of the text width."""
        return round(self.grid_width() * _GRID_UNIT_SCALE, 4)

    def height(self) -> float:
        """Return the panel height as a fraction of the page height."""
        return round(self.grid_pos.h * _GRID_UNIT_SCALE, 4)


class Dashboard(msgspec.Struct, frozen=True, kw_only=True):
    """A dashboard's structure at the time of the request."""

    title: str
    description: str = ""
    variable_values: str = ""
    panels: tuple[Panel, ...] = ()


_RELATIVE_TIME = re.compile(r"^now(?:-(?P<amount>\d+)(?P<unit>[smhdw]))?$")
_UNIT_SECONDS = {
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
    "w": 604800,
}


def _resolve_time(expression: str, now: dt.datetime) -> dt.datetime | None:
    """Resolve a Grafana time expression to a datetime, if it is one we know.

    Epoch milliseconds and ``now`` / ``now-<n><unit>`` are understood; rounding
    expressions such as ``now/d`` are left for Grafana to interpret.
    """
    if expression.isdigit():
        return dt.datetime.fromtimestamp(int(expression) / 1000, tz=dt.UTC)
    match = _RELATIVE_TIME.match(expression)
    if match is None:
        return None
    amount = match.group("amount")
    if amount is None:
        return now
    seconds = int(amount) * _UNIT_SECONDS[match.group("unit")]
    return now - dt.timedelta(seconds=seconds)


@dc.dataclass(frozen=True, slots=True)
class TimeRange:
    """Bounds shared by every snapshot query of one report.

    Attributes
    ----------
    from_time
        Grafana ``from`` expression (epoch ms, ``now-6h``, ...).
    to_time
        Grafana ``to`` expression.

    """

    from_time: str = DEFAULT_FROM
    to_time: str = DEFAULT_TO

    @classmethod
    def create(cls, from_time: str | None, to_time: str | None) -> TimeRange:
        """Build a range, substituting defaults for empty bounds."""
        return cls(
            from_time=(from_time or "").strip() or DEFAULT_FROM,
            to_time=(to_time or "").strip() or DEFAULT_TO,
        )

    def from_formatted(self, now: dt.datetime | None = None) -> str:
        """Return the lower bound as a readable timestamp."""
        return self._format(self.from_time, now)

    def to_formatted(self, now: dt.datetime | None = None) -> str:
        """Return the upper bound as a readable timestamp."""
        return self._format(self.to_time, now)

    @staticmethod
    def _format(expression: str, now: dt.datetime | None) -> str:
        resolved = _resolve_time(expression, now or utcnow())
        if resolved is None:
            return expression
        return format_timestamp(resolved)


__all__ = [
    "DEFAULT_FROM",
    "DEFAULT_TO",
    "Dashboard",
    "GridPos",
    "Panel",
    "TimeRange",
]
