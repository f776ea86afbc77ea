"""Bounded concurrent retrieval of panel snapshots.

All render jobs are queued up front; a fixed number of worker tasks then
drain the queue so Grafana's renderer never sees more than ``workers``
requests from one report, however many panels the dashboard has. A failing
panel does not stop its siblings, but any failure fails the whole batch once
every job has finished.

Usage
-----
>>> pool = SnapshotFetcherPool(fetch_png, workers=5)
>>> paths = await pool.render(dashboard.panels, workspace)

"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import typing as typ

from grafana_reporter.logging import get_logger, log_info, log_warning

from .errors import PanelRenderError

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

    from grafana_reporter.grafana.models import Panel

    from .workspace import Workspace

logger = get_logger(__name__)

DEFAULT_WORKERS = 5

type FetchPanel = cabc.Callable[[Panel], cabc.Awaitable[bytes]]


@dc.dataclass(frozen=True, slots=True)
class RenderJob:
    """One panel to fetch and the file its snapshot is written to."""

    panel: Panel
    destination: Path


@dc.dataclass(frozen=True, slots=True)
class RenderResult:
    """Terminal outcome of a :class:`RenderJob`."""

    job: RenderJob
    error: PanelRenderError | None = None

    @property
    def ok(self) -> bool:
        """Return True when the snapshot was written."""
        return self.error is None


class SnapshotFetcherPool:
    """Fetch one snapshot per panel through a fixed pool of workers.

    Parameters
    ----------
    fetch
        Coroutine function returning the PNG bytes for a panel.
    workers
        Number of concurrent worker tasks; must be at least 1.

    """

    def __init__(self, fetch: FetchPanel, *, workers: int = DEFAULT_WORKERS) -> None:
        """Configure the pool with a fetch capability and worker bound."""
        if workers < 1:
            msg = f"workers must be positive, got: {workers}"
            raise ValueError(msg)
        self._fetch = fetch
        self._workers = workers

    @property
    def workers(self) -> int:
        """Return the worker bound."""
        return self._workers

    async def render(
        self, panels: cabc.Sequence[Panel], workspace: Workspace
    ) -> tuple[Path, ...]:
        """Write ``image<panelId>.png`` for every panel into ``workspace``.

        Returns
        -------
        tuple[Path, ...]
            Snapshot paths in panel order.

        Raises
        ------
        PanelRenderError
            The first failure collected once all workers have finished.

        """
        if not panels:
            return ()

        jobs: asyncio.Queue[RenderJob] = asyncio.Queue(maxsize=len(panels))
        for panel in panels:
            jobs.put_nowait(RenderJob(panel, workspace.image_path(panel.id)))
        errors: asyncio.Queue[PanelRenderError] = asyncio.Queue(maxsize=len(panels))

        log_info(
            logger,
            "Rendering %d panel snapshots with %d workers",
            len(panels),
            self._workers,
        )
        await asyncio.gather(
            *(self._work(jobs, errors, workspace) for _ in range(self._workers))
        )

        failures: list[PanelRenderError] = []
        while not errors.empty():
            failures.append(errors.get_nowait())
        if failures:
            log_warning(
                logger,
                "%d of %d panel snapshots failed",
                len(failures),
                len(panels),
            )
            raise failures[0]
        return tuple(workspace.image_path(panel.id) for panel in panels)

    async def _work(
        self,
        jobs: asyncio.Queue[RenderJob],
        errors: asyncio.Queue[PanelRenderError],
        workspace: Workspace,
    ) -> None:
        while True:
            try:
                job = jobs.get_nowait()
            except asyncio.QueueEmpty:
                return
            result = await self._render(job, workspace)
            if result.error is not None:
                errors.put_nowait(result.error)

    async def _render(self, job: RenderJob, workspace: Workspace) -> RenderResult:
        try:
            data = await self._fetch(job.panel)
        except Exception as exc:  # noqa: BLE001 - one panel must not stop its siblings
            error = PanelRenderError.fetch_failed(job.panel, exc)
            log_warning(logger, "Error creating image for %s", error)
            return RenderResult(job, error)

        try:
            await asyncio.to_thread(_write_snapshot, workspace, job.destination, data)
        except OSError as exc:
            error = PanelRenderError.write_failed(job.panel, exc)
            log_warning(logger, "Error creating image for %s", error)
            return RenderResult(job, error)
        return RenderResult(job)


def _write_snapshot(workspace: Workspace, destination: Path, data: bytes) -> None:
    workspace.ensure(destination.parent)
    destination.write_bytes(data)


__all__ = [
    "DEFAULT_WORKERS",
    "FetchPanel",
    "RenderJob",
    "RenderResult",
    "SnapshotFetcherPool",
]
