"""Grafana HTTP API clients used to fetch dashboards and panel snapshots.

Two API generations are supported. Grafana v4 (and older) addresses
dashboards by slug and nests panels under ``rows``; Grafana v5+ addresses
them by UID and lays panels out on a flat grid where ``row`` panels group
their children.
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses
import os
import typing as typ
from urllib.parse import quote

import httpx
import msgspec

from .errors import GrafanaAPIError, GrafanaConfigError, GrafanaResponseShapeError
from .models import ROW_TYPE, Dashboard, Panel, TimeRange

_HTTP_ERROR_STATUS_THRESHOLD = 400
VARIABLE_PREFIX = "var-"

# Render sizes in pixels, by panel kind.
_SINGLE_STAT_SIZE = (300, 150)
_TEXT_SIZE = (1000, 100)
_DEFAULT_SIZE = (1000, 500)


class GrafanaClient(typ.Protocol):
    """Interface the report pipeline uses to talk to Grafana."""

    async def get_dashboard(self, name: str) -> Dashboard:
        """Return the dashboard identified by ``name``."""
        ...

    async def get_panel_png(
        self, panel: Panel, dash_name: str, time_range: TimeRange
    ) -> bytes:
        """Return the rendered PNG for one panel over ``time_range``."""
        ...


@dataclasses.dataclass(frozen=True, slots=True)
class GrafanaClientConfig:
    """Connection settings for a Grafana instance.

    ``variables`` holds template variables as ``(name, value)`` pairs where
    ``name`` keeps Grafana's ``var-`` prefix; a variable may repeat.
    """

    base_url: str
    api_token: str = ""
    variables: tuple[tuple[str, str], ...] = ()
    timeout_s: float = 30.0
    user_agent: str = "grafana-reporter/0.1"

    @classmethod
    def from_env(
        cls,
        *,
        api_token: str = "",
        variables: cabc.Iterable[tuple[str, str]] = (),
    ) -> GrafanaClientConfig:
        """Build configuration from ``GRAFANA_REPORTER_GRAFANA_URL``."""
        base_url = os.environ.get(
            "GRAFANA_REPORTER_GRAFANA_URL", "http://localhost:3000"
        ).strip()
        return cls(base_url=base_url, api_token=api_token, variables=tuple(variables))

    def variable_values(self) -> str:
        """Return the template variable values joined for display."""
        return ", ".join(value for _, value in self.variables)


def _panel_size(panel: Panel) -> tuple[int, int]:
    if panel.is_single_stat():
        return _SINGLE_STAT_SIZE
    if panel.is_text():
        return _TEXT_SIZE
    return _DEFAULT_SIZE


def panel_render_params(
    panel: Panel,
    time_range: TimeRange,
    variables: cabc.Iterable[tuple[str, str]],
) -> list[tuple[str, str]]:
    """Build the render endpoint query string for one panel."""
    width, height = _panel_size(panel)
    params = [
        ("theme", "light"),
        ("panelId", str(panel.id)),
        ("from", time_range.from_time),
        ("to", time_range.to_time),
        ("width", str(width)),
        ("height", str(height)),
    ]
    params.extend(variables)
    return params


def _as_mapping(value: object, field: str) -> dict[str, typ.Any]:
    if not isinstance(value, dict):
        raise GrafanaResponseShapeError.missing(field)
    return typ.cast("dict[str, typ.Any]", value)


def _as_list(value: object, field: str) -> list[typ.Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise GrafanaResponseShapeError.invalid(field, "expected a list")
    return value


def _decode_panel(raw: object, field: str) -> Panel:
    try:
        return msgspec.convert(raw, type=Panel)
    except msgspec.ValidationError as exc:
        raise GrafanaResponseShapeError.invalid(field, str(exc)) from exc


class _GrafanaHTTPClient:
    """Shared plumbing for the versioned Grafana clients."""

    def __init__(
        self,
        config: GrafanaClientConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the client with the provided API configuration."""
        if not config.base_url.strip():
            raise GrafanaConfigError.empty_base_url()

        self._config = config
        self._base_url = config.base_url.strip().rstrip("/")
        headers = {"User-Agent": config.user_agent}
        if config.api_token:
            headers["Authorization"] = f"Bearer {config.api_token}"
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=config.timeout_s)
        self._headers = headers

    @property
    def config(self) -> GrafanaClientConfig:
        """Return the configuration used by this client."""
        return self._config

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def get_dashboard(self, name: str) -> Dashboard:
        """Fetch and decode the dashboard identified by ``name``."""
        response = await self._get(self._dashboard_url(name))
        try:
            payload = msgspec.json.decode(response.content)
        except msgspec.DecodeError as exc:
            raise GrafanaResponseShapeError.invalid("response", str(exc)) from exc

        envelope = _as_mapping(payload, "response")
        raw = _as_mapping(envelope.get("dashboard"), "dashboard")
        title = raw.get("title")
        return Dashboard(
            title=title if isinstance(title, str) else name,
            description=str(raw.get("description") or ""),
            variable_values=self._config.variable_values(),
            panels=tuple(self._extract_panels(raw)),
        )

    async def get_panel_png(
        self, panel: Panel, dash_name: str, time_range: TimeRange
    ) -> bytes:
        """Render one panel through Grafana's image renderer."""
        params = panel_render_params(panel, time_range, self._config.variables)
        response = await self._get(self._panel_url(dash_name), params=params)
        return response.content

    async def _get(
        self,
        url: str,
        *,
        params: list[tuple[str, str]] | None = None,
    ) -> httpx.Response:
        try:
            response = await self._client.get(
                url, params=params, headers=self._headers
            )
        except httpx.HTTPError as exc:
            raise GrafanaAPIError.transport_error(url, exc) from exc
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise GrafanaAPIError.http_error(response.status_code, url)
        return response

    def _dashboard_url(self, name: str) -> str:
        raise NotImplementedError

    def _panel_url(self, name: str) -> str:
        raise NotImplementedError

    def _extract_panels(self, dashboard: dict[str, typ.Any]) -> cabc.Iterator[Panel]:
        raise NotImplementedError


class GrafanaV4Client(_GrafanaHTTPClient):
    """Client for Grafana v4 and older, addressing dashboards by slug."""

    def _dashboard_url(self, name: str) -> str:
        return f"{self._base_url}/api/dashboards/db/{quote(name, safe='')}"

    def _panel_url(self, name: str) -> str:
        return f"{self._base_url}/render/dashboard-solo/db/{quote(name, safe='')}"

    def _extract_panels(self, dashboard: dict[str, typ.Any]) -> cabc.Iterator[Panel]:
        rows = _as_list(dashboard.get("rows"), "dashboard.rows")
        for row_index, row in enumerate(rows):
            row_map = _as_mapping(row, f"dashboard.rows[{row_index}]")
            field = f"dashboard.rows[{row_index}].panels"
            for raw in _as_list(row_map.get("panels"), field):
                yield _decode_panel(raw, field)


class GrafanaV5Client(_GrafanaHTTPClient):
    """Client for Grafana v5+, addressing dashboards by UID."""

    def _dashboard_url(self, name: str) -> str:
        return f"{self._base_url}/api/dashboards/uid/{quote(name, safe='')}"

    def _panel_url(self, name: str) -> str:
        return f"{self._base_url}/render/d-solo/{quote(name, safe='')}/_"

    def _extract_panels(self, dashboard: dict[str, typ.Any]) -> cabc.Iterator[Panel]:
        for raw in _as_list(dashboard.get("panels"), "dashboard.panels"):
            raw_map = _as_mapping(raw, "dashboard.panels[]")
            if raw_map.get("type") != ROW_TYPE:
                yield _decode_panel(raw_map, "dashboard.panels")
                continue
            # Collapsed rows carry their children inline.
            for child in _as_list(raw_map.get("panels"), "dashboard.panels[].panels"):
                yield _decode_panel(child, "dashboard.panels[].panels")


def variables_from_query(
    params: cabc.Iterable[tuple[str, str]],
) -> tuple[tuple[str, str], ...]:
    """Select Grafana template variables (``var-*``) from query parameters."""
    return tuple(
        (key, value) for key, value in params if key.startswith(VARIABLE_PREFIX)
    )


__all__ = [
    "VARIABLE_PREFIX",
    "GrafanaClient",
    "GrafanaClientConfig",
    "GrafanaV4Client",
    "GrafanaV5Client",
    "panel_render_params",
    "variables_from_query",
]
