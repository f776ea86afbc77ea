"""Report generation: workspace, snapshots, assembly and compilation."""

from __future__ import annotations

from .compiler import (
    CompilerDriver,
    PdfLatexToolchain,
    Toolchain,
    XeLatexToolchain,
    select_toolchain,
)
from .config import ReporterConfig
from .errors import (
    CompilerError,
    MetadataFetchError,
    NarrativeFetchError,
    PanelRenderError,
    ReportError,
    TemplateError,
    WorkspaceIOError,
)
from .service import Report, ReportDependencies, ReportRequest, ReportState
from .snapshots import SnapshotFetcherPool
from .template import DEFAULT_TEMPLATE, DocumentAssembler, DocumentContext
from .workspace import Workspace

__all__ = [
    "DEFAULT_TEMPLATE",
    "CompilerDriver",
    "CompilerError",
    "DocumentAssembler",
    "DocumentContext",
    "MetadataFetchError",
    "NarrativeFetchError",
    "PanelRenderError",
    "PdfLatexToolchain",
    "Report",
    "ReportDependencies",
    "ReportError",
    "ReportRequest",
    "ReportState",
    "ReporterConfig",
    "SnapshotFetcherPool",
    "TemplateError",
    "Toolchain",
    "WorkspaceIOError",
    "XeLatexToolchain",
    "select_toolchain",
]
