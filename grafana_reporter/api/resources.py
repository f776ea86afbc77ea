"""Report endpoint resources.

``GET /api/report/{dash_id}`` (Grafana v4 API) and
``GET /api/v5/report/{dash_id}`` (Grafana v5 API) build a PDF for one
dashboard and stream it back as ``application/pdf``.

Query parameters:

``from`` / ``to``
    Grafana time expressions; default ``now-1h`` to ``now``.
``apitoken``
    Grafana API token, sent as a bearer token.
``var-<name>``
    Dashboard template variables, repeatable, forwarded to every panel.
``template``
    Name of ``<templates_dir>/<name>.tex``. An unreadable file falls back
    to the built-in template.
``ids``
    Writeup report identifiers, repeatable, in section order.

Usage
-----
Register the resource on the Falcon app::

    app.add_route(
        "/api/v5/report/{dash_id}",
        ReportResource(dependencies, grafana_factory=GrafanaV5Client),
    )

"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import typing as typ

import falcon

from grafana_reporter.api.errors import InvalidInputError
from grafana_reporter.grafana.client import (
    GrafanaClient,
    GrafanaClientConfig,
    variables_from_query,
)
from grafana_reporter.grafana.models import TimeRange
from grafana_reporter.logging import get_logger, log_debug, log_info, log_warning
from grafana_reporter.report.service import (
    Report,
    ReportDependencies,
    ReportRequest,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

    from falcon.asgi import Request, Response

    from grafana_reporter.report.compiler import Toolchain
    from grafana_reporter.report.config import ReporterConfig
    from grafana_reporter.writeup.client import WriteupClient

__all__ = [
    "ClosableGrafanaClient",
    "GrafanaFactory",
    "ReportResource",
    "ReportResourceDependencies",
]

logger = get_logger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
TEMPLATE_SUFFIX = ".tex"


class ClosableGrafanaClient(GrafanaClient, typ.Protocol):
    """Grafana client owning HTTP resources released per request."""

    async def aclose(self) -> None:
        """Release the client's HTTP resources."""
        ...


type GrafanaFactory = cabc.Callable[[GrafanaClientConfig], ClosableGrafanaClient]


@dc.dataclass(frozen=True, slots=True)
class ReportResourceDependencies:
    """Dependencies shared by the report resources.

    Attributes
    ----------
    config
        Reporter settings (Grafana URL, directories, worker bound).
    toolchain
        LaTeX toolchain selected at startup.
    writeups
        Optional writeup store; ``ids`` are ignored when ``None``.

    """

    config: ReporterConfig
    toolchain: Toolchain
    writeups: WriteupClient | None = None


def _query_pairs(req: Request) -> list[tuple[str, str]]:
    """Flatten Falcon's query params into ``(key, value)`` pairs."""
    pairs: list[tuple[str, str]] = []
    for key, value in req.params.items():
        if isinstance(value, list):
            pairs.extend((key, item) for item in value)
        else:
            pairs.append((key, value))
    return pairs


def _parse_ids(req: Request) -> tuple[int, ...]:
    raw_ids = req.get_param_as_list("ids") or []
    ids: list[int] = []
    for raw in raw_ids:
        try:
            ids.append(int(raw))
        except ValueError as exc:
            msg = f"expected an integer report id, got: {raw!r}"
            raise InvalidInputError(msg, field="ids") from exc
    return tuple(ids)


def _template_path(templates_dir: Path, name: str) -> Path:
    if "/" in name or "\\" in name or name.startswith("."):
        msg = f"template name must be a plain file name, got: {name!r}"
        raise InvalidInputError(msg, field="template")
    return templates_dir / f"{name}{TEMPLATE_SUFFIX}"


async def _read_template(path: Path) -> str | None:
    try:
        return await asyncio.to_thread(path.read_text, encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        log_warning(
            logger,
            "Error reading template file %s, using default template: %s",
            path,
            exc,
        )
        return None


class ReportResource:
    """Generate a dashboard report on demand.

    Parameters
    ----------
    dependencies
        Shared reporter collaborators.
    grafana_factory
        Builds a per-request Grafana client for the API generation this
        route serves.

    """

    def __init__(
        self,
        dependencies: ReportResourceDependencies,
        *,
        grafana_factory: GrafanaFactory,
    ) -> None:
        """Configure the resource with its dependencies."""
        self._config = dependencies.config
        self._toolchain = dependencies.toolchain
        self._writeups = dependencies.writeups
        self._grafana_factory = grafana_factory

    async def on_get(self, req: Request, resp: Response, *, dash_id: str) -> None:
        """Handle GET requests by returning the compiled PDF."""
        pairs = _query_pairs(req)
        time_range = TimeRange.create(req.get_param("from"), req.get_param("to"))
        request = ReportRequest(
            dashboard=dash_id,
            time_range=time_range,
            template=await self._load_template(req.get_param("template")),
            writeup_ids=_parse_ids(req),
        )
        log_info(
            logger,
            "Report requested for dashboard %s (%s to %s, %d writeup ids)",
            dash_id,
            time_range.from_time,
            time_range.to_time,
            len(request.writeup_ids),
        )

        variables = variables_from_query(pairs)
        log_debug(logger, "Dashboard variables: %s", list(variables) or "none")
        grafana = self._grafana_factory(
            GrafanaClientConfig(
                base_url=self._config.grafana_url,
                api_token=req.get_param("apitoken") or "",
                variables=variables,
                timeout_s=float(self._config.grafana_timeout_s),
            )
        )
        report = Report(
            request,
            ReportDependencies(
                grafana=grafana,
                toolchain=self._toolchain,
                writeups=self._writeups,
            ),
            self._config,
        )
        try:
            handle = await report.generate()
            with handle:
                body = await asyncio.to_thread(handle.read)
        finally:
            report.clean()
            await grafana.aclose()

        resp.content_type = PDF_CONTENT_TYPE
        resp.data = body
        resp.status = falcon.HTTP_200
        log_info(logger, "Report for dashboard %s sent (%d bytes)", dash_id, len(body))

    async def _load_template(self, name: str | None) -> str | None:
        if not name:
            return None
        path = _template_path(self._config.templates_dir, name)
        log_info(logger, "Using template %s", path)
        return await _read_template(path)
