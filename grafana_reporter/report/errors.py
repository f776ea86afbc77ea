"""Errors raised by the report generation pipeline.

Each stage raises its own error type so callers can tell which step failed;
the underlying cause is always chained with ``raise ... from``.
"""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

    from grafana_reporter.grafana.models import Panel


class ReportError(Exception):
    """Base class for report pipeline errors."""


class MetadataFetchError(ReportError):
    """Raised when the dashboard definition cannot be fetched."""

    def __init__(self, dashboard: str, cause: BaseException) -> None:
        """Initialise with the dashboard name and the underlying failure."""
        self.dashboard = dashboard
        super().__init__(f"error fetching dashboard {dashboard}: {cause}")


class NarrativeFetchError(ReportError):
    """Raised when writeup sections cannot be fetched."""

    def __init__(self, ids: cabc.Sequence[int], cause: BaseException) -> None:
        """Initialise with the requested writeup ids and the failure."""
        self.ids = tuple(ids)
        super().__init__(f"error fetching writeups {list(self.ids)}: {cause}")


class PanelRenderError(ReportError):
    """Raised when a panel snapshot cannot be fetched or stored.

    Attributes
    ----------
    panel_id
        Identifier of the panel that failed.
    panel_title
        Display title of the panel, for diagnostics.

    """

    def __init__(self, panel: Panel, message: str) -> None:
        """Initialise with the failing panel and a description."""
        self.panel_id = panel.id
        self.panel_title = panel.title
        super().__init__(f"panel {panel.id} ({panel.title!r}): {message}")

    @classmethod
    def fetch_failed(cls, panel: Panel, cause: BaseException) -> PanelRenderError:
        """Return an error for a snapshot that could not be fetched."""
        return cls(panel, f"error fetching snapshot: {cause}")

    @classmethod
    def write_failed(cls, panel: Panel, cause: BaseException) -> PanelRenderError:
        """Return an error for a snapshot that could not be written."""
        return cls(panel, f"error writing snapshot: {cause}")


class WorkspaceIOError(ReportError, OSError):
    """Raised when the report workspace cannot be created or written."""

    @classmethod
    def for_path(cls, action: str, path: Path, cause: OSError) -> WorkspaceIOError:
        """Return an error describing a failed filesystem ``action``."""
        return cls(f"error {action} {path}: {cause}")

    @classmethod
    def missing_artifact(cls, path: Path, cause: OSError) -> WorkspaceIOError:
        """Return an error for a compiled artifact that cannot be opened."""
        return cls(
            f"compiler reported success but {path} cannot be opened: {cause}"
        )


class TemplateError(ReportError):
    """Raised when the document template cannot be parsed or rendered.

    Attributes
    ----------
    detail
        The template engine's own diagnostic.

    """

    def __init__(self, message: str, *, detail: str) -> None:
        """Initialise with a summary and the engine diagnostic."""
        self.detail = detail
        super().__init__(f"{message}: {detail}")

    @classmethod
    def parse_failure(cls, detail: str) -> TemplateError:
        """Return an error for malformed template syntax."""
        return cls("error parsing template", detail=detail)

    @classmethod
    def execution_failure(cls, detail: str) -> TemplateError:
        """Return an error for a template that failed while rendering."""
        return cls("error executing template", detail=detail)


class CompilerError(ReportError):
    """Raised when an external compiler pass fails.

    Attributes
    ----------
    toolchain
        Name of the toolchain that was running.
    command
        The command line of the failing pass.
    exit_status
        Process exit status, or ``None`` when the process never started.
    output
        Combined stdout and stderr of the failing pass.

    """

    def __init__(
        self,
        toolchain: str,
        command: cabc.Sequence[str],
        *,
        exit_status: int | None,
        output: str,
    ) -> None:
        """Initialise with the failing pass and its captured output."""
        self.toolchain = toolchain
        self.command = tuple(command)
        self.exit_status = exit_status
        self.output = output
        status = "did not start" if exit_status is None else f"exit {exit_status}"
        super().__init__(
            f"{toolchain} failed running {' '.join(self.command)!r} ({status}); "
            f"output:\n{output}"
        )

    @classmethod
    def not_runnable(
        cls, toolchain: str, command: cabc.Sequence[str], cause: OSError
    ) -> CompilerError:
        """Return an error for an executable that could not be started."""
        return cls(toolchain, command, exit_status=None, output=str(cause))


__all__ = [
    "CompilerError",
    "MetadataFetchError",
    "NarrativeFetchError",
    "PanelRenderError",
    "ReportError",
    "TemplateError",
    "WorkspaceIOError",
]
