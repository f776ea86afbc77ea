"""Report generation orchestrator.

A :class:`Report` drives one request through the pipeline:

1. fetch the dashboard definition from Grafana,
2. fetch the writeup sections (skipped when no ids were requested),
3. render every panel snapshot into the workspace,
4. assemble ``report.tex`` from the template,
5. compile it with the configured toolchain and open the PDF.

Each stage either completes or raises a :class:`ReportError` subclass with
the underlying cause chained, leaving the report in the ``failed`` state.
The workspace is never removed by :meth:`Report.generate`; the caller must
call :meth:`Report.clean` once it has consumed the returned handle.

Usage
-----
>>> report = Report(request, dependencies, config)
>>> try:
...     pdf = await report.generate()
...     body = pdf.read()
...     pdf.close()
... finally:
...     report.clean()

"""

from __future__ import annotations

import dataclasses as dc
import enum
import time
import typing as typ

from grafana_reporter.grafana.models import TimeRange
from grafana_reporter.logging import get_logger, log_info, log_warning
from grafana_reporter.writeup.models import Writeup

from .compiler import CompilerDriver
from .config import ReporterConfig
from .errors import MetadataFetchError, NarrativeFetchError
from .snapshots import SnapshotFetcherPool
from .template import DocumentAssembler, DocumentContext, SnapshotResolver
from .workspace import Workspace

if typ.TYPE_CHECKING:
    from grafana_reporter.grafana.client import GrafanaClient
    from grafana_reporter.grafana.models import Dashboard, Panel
    from grafana_reporter.writeup.client import WriteupClient

    from .compiler import Toolchain

logger = get_logger(__name__)


class ReportState(enum.StrEnum):
    """Lifecycle states of a :class:`Report`."""

    CREATED = "created"
    METADATA_FETCHED = "metadata_fetched"
    NARRATIVE_FETCHED = "narrative_fetched"
    IMAGES_RENDERED = "images_rendered"
    SOURCE_ASSEMBLED = "source_assembled"
    COMPILED = "compiled"
    READABLE = "readable"
    CLEANED = "cleaned"
    FAILED = "failed"


@dc.dataclass(frozen=True, slots=True)
class ReportRequest:
    """What to report on.

    Attributes
    ----------
    dashboard
        Dashboard name (v4) or uid (v5).
    time_range
        Time window applied to every panel snapshot.
    template
        Template text; ``None`` selects the built-in template.
    writeup_ids
        Report identifiers whose writeup sections are included, in order.

    """

    dashboard: str
    time_range: TimeRange = dc.field(default_factory=TimeRange)
    template: str | None = None
    writeup_ids: tuple[int, ...] = ()


@dc.dataclass(frozen=True, slots=True)
class ReportDependencies:
    """Collaborators used by a :class:`Report`.

    Attributes
    ----------
    grafana
        Client for dashboard metadata and panel snapshots.
    toolchain
        LaTeX toolchain, selected once when the service is configured.
    writeups
        Optional writeup source; required only when writeup ids are given.

    """

    grafana: GrafanaClient
    toolchain: Toolchain
    writeups: WriteupClient | None = None


class Report:
    """One report request and its workspace.

    Parameters
    ----------
    request
        The dashboard, time range, template and writeup ids to report on.
    dependencies
        Grafana client, toolchain and optional writeup client.
    config
        Shared settings; defaults apply when omitted.
    workspace
        Pre-allocated workspace; a fresh one below ``config.tmp_dir`` when
        omitted.

    """

    def __init__(
        self,
        request: ReportRequest,
        dependencies: ReportDependencies,
        config: ReporterConfig | None = None,
        *,
        workspace: Workspace | None = None,
    ) -> None:
        """Allocate the workspace and bind collaborators."""
        self._request = request
        self._dependencies = dependencies
        self._config = config or ReporterConfig()
        self._workspace = workspace or Workspace(self._config.tmp_dir)
        self._state = ReportState.CREATED

    @property
    def state(self) -> ReportState:
        """Return the current lifecycle state."""
        return self._state

    @property
    def workspace(self) -> Workspace:
        """Return the workspace owned by this report."""
        return self._workspace

    async def generate(self) -> typ.BinaryIO:
        """Run the pipeline and return a readable handle on the PDF.

        Returns
        -------
        BinaryIO
            Open binary handle on ``report.pdf``; the caller closes it.

        Raises
        ------
        ReportError
            The first stage failure, with its cause chained.
        RuntimeError
            If the report has already been generated or cleaned.

        """
        if self._state is not ReportState.CREATED:
            msg = f"report cannot be generated from state {self._state}"
            raise RuntimeError(msg)

        started = time.monotonic()
        log_info(
            logger,
            "Generating report for dashboard %s in %s",
            self._request.dashboard,
            self._workspace.root,
        )
        try:
            handle = await self._run_stages()
        except BaseException:
            self._state = ReportState.FAILED
            raise
        log_info(
            logger,
            "Report for dashboard %s produced in %.2fs",
            self._request.dashboard,
            time.monotonic() - started,
        )
        return handle

    def clean(self) -> None:
        """Remove the workspace; safe to call repeatedly and from any state."""
        if self._state is ReportState.CLEANED:
            return
        self._workspace.clean()
        self._state = ReportState.CLEANED

    async def _run_stages(self) -> typ.BinaryIO:
        dashboard = await self._fetch_dashboard()
        self._state = ReportState.METADATA_FETCHED

        writeup = await self._fetch_writeup()
        self._state = ReportState.NARRATIVE_FETCHED

        await self._render_panels(dashboard)
        self._state = ReportState.IMAGES_RENDERED

        context = DocumentContext(
            dashboard=dashboard,
            time_range=self._request.time_range,
            writeup=writeup,
            snapshots=SnapshotResolver(self._workspace),
        )
        await DocumentAssembler(self._request.template).assemble(
            context, self._workspace
        )
        self._state = ReportState.SOURCE_ASSEMBLED

        driver = CompilerDriver(self._dependencies.toolchain)
        artifact = await driver.compile(self._workspace)
        self._state = ReportState.COMPILED

        handle = driver.open(artifact)
        self._state = ReportState.READABLE
        return handle

    async def _fetch_dashboard(self) -> Dashboard:
        name = self._request.dashboard
        try:
            dashboard = await self._dependencies.grafana.get_dashboard(name)
        except Exception as exc:
            raise MetadataFetchError(name, exc) from exc
        log_info(
            logger,
            "Fetched dashboard %s (%d panels)",
            name,
            len(dashboard.panels),
        )
        return dashboard

    async def _fetch_writeup(self) -> Writeup:
        ids = self._request.writeup_ids
        if not ids:
            return Writeup()

        writeups = self._dependencies.writeups
        if writeups is None:
            log_warning(
                logger,
                "Writeup ids %s requested but no writeup store is configured",
                list(ids),
            )
            return Writeup()

        try:
            writeup = await writeups.get_writeup(ids)
        except Exception as exc:
            raise NarrativeFetchError(ids, exc) from exc
        log_info(logger, "Fetched %d writeup sections", len(writeup))
        return writeup

    async def _render_panels(self, dashboard: Dashboard) -> None:
        grafana = self._dependencies.grafana
        name = self._request.dashboard
        time_range = self._request.time_range

        async def fetch(panel: Panel) -> bytes:
            return await grafana.get_panel_png(panel, name, time_range)

        pool = SnapshotFetcherPool(fetch, workers=self._config.workers)
        await pool.render(dashboard.panels, self._workspace)


__all__ = ["Report", "ReportDependencies", "ReportRequest", "ReportState"]
