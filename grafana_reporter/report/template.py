r"""LaTeX document assembly from a Jinja2 template.

Templates use delimiters that do not collide with LaTeX syntax:

- ``[[ expression ]]`` prints a value,
- ``[% statement %]`` for control flow,
- ``[# comment #]`` for template comments.

The template sees a read-only context: ``dashboard``, ``title``,
``description``, ``variable_values``, ``panels``, ``time_range``,
``from_formatted``, ``to_formatted``, ``sections`` and ``snapshots``. The
``latex`` filter escapes free text. Rendering runs in a sandboxed
environment with no loader, so templates cannot reach the filesystem or
network.

Usage
-----
>>> assembler = DocumentAssembler(custom_template_text)
>>> await assembler.assemble(context, workspace)

"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import typing as typ

import jinja2
from jinja2.sandbox import SandboxedEnvironment

from grafana_reporter.logging import get_logger, log_info
from grafana_reporter.writeup.sanitize import escape_latex

from .errors import TemplateError, WorkspaceIOError

if typ.TYPE_CHECKING:
    from pathlib import Path

    from grafana_reporter.grafana.models import Dashboard, Panel, TimeRange
    from grafana_reporter.writeup.models import Writeup

    from .workspace import Workspace

logger = get_logger(__name__)

DEFAULT_TEMPLATE = r"""[# Default report layout: title page, writeup sections, then panels. #]
\documentclass{article}
\usepackage{graphicx}
\usepackage[margin=1in]{geometry}

\graphicspath{ {images/} }
\begin{document}
\title{[[ title | latex ]][% if variable_values %] \\ \large [[ variable_values | latex ]][% endif %][% if description %] \\ \small [[ description | latex ]][% endif %]}
\date{[[ from_formatted ]]\\to\\[[ to_formatted ]]}
\maketitle
[% for section in sections %]
\section*{[[ section.title ]]}
[[ section.content ]]

[% endfor %]
\begin{center}
[% for panel in panels %][% if panel.is_single_stat() %]\begin{minipage}{0.3\textwidth}
\includegraphics[width=\textwidth]{[[ snapshots.image(panel) ]]}
\end{minipage}
[% else %]\par
\vspace{0.5cm}
\includegraphics[width=\textwidth]{[[ snapshots.image(panel) ]]}
\par
\vspace{0.5cm}
[% endif %][% endfor %]
\end{center}
\end{document}
"""


class SnapshotResolver:
    """Panel rendering helpers exposed to templates.

    Only path arithmetic happens here; the snapshots themselves have already
    been written by the time a template is rendered.
    """

    def __init__(self, workspace: Workspace) -> None:
        """Bind the resolver to the workspace holding the snapshots."""
        self._workspace = workspace

    def image(self, panel: Panel) -> str:
        """Return the graphic name for ``\\includegraphics`` (images/ on path)."""
        return self._workspace.image_path(panel.id).stem

    def path(self, panel: Panel) -> str:
        """Return the absolute on-disk path of the panel snapshot."""
        return str(self._workspace.image_path(panel.id).absolute())

    def width(self, panel: Panel) -> float:
        """Return the panel width as a fraction of ``\\textwidth``."""
        return panel.width()

    def height(self, panel: Panel) -> float:
        """Return the panel height as a fraction of the page height."""
        return panel.height()


@dc.dataclass(frozen=True, slots=True)
class DocumentContext:
    """Everything a template may read."""

    dashboard: Dashboard
    time_range: TimeRange
    writeup: Writeup
    snapshots: SnapshotResolver

    def template_vars(self) -> dict[str, object]:
        """Return the variables passed to the template."""
        return {
            "dashboard": self.dashboard,
            "title": self.dashboard.title,
            "description": self.dashboard.description,
            "variable_values": self.dashboard.variable_values,
            "panels": self.dashboard.panels,
            "time_range": self.time_range,
            "from_formatted": self.time_range.from_formatted(),
            "to_formatted": self.time_range.to_formatted(),
            "sections": self.writeup.sections,
            "snapshots": self.snapshots,
        }


def _build_environment() -> SandboxedEnvironment:
    environment = SandboxedEnvironment(
        block_start_string="[%",
        block_end_string="%]",
        variable_start_string="[[",
        variable_end_string="]]",
        comment_start_string="[#",
        comment_end_string="#]",
        undefined=jinja2.StrictUndefined,
        autoescape=False,
        keep_trailing_newline=True,
    )
    environment.filters["latex"] = escape_latex
    return environment


class DocumentAssembler:
    """Render the report's LaTeX source into a workspace.

    Parameters
    ----------
    template
        Template text; the built-in :data:`DEFAULT_TEMPLATE` when empty.

    """

    def __init__(self, template: str | None = None) -> None:
        """Store the template text; parsing happens at assembly time."""
        self._source = template or DEFAULT_TEMPLATE
        self._environment = _build_environment()

    @property
    def uses_default_template(self) -> bool:
        """Return True when the built-in template is in use."""
        return self._source is DEFAULT_TEMPLATE

    def render(self, context: DocumentContext) -> str:
        """Render the template against ``context``.

        Raises
        ------
        TemplateError
            If the template cannot be parsed or fails while rendering.

        """
        try:
            template = self._environment.from_string(self._source)
        except jinja2.TemplateSyntaxError as exc:
            detail = f"line {exc.lineno}: {exc.message}"
            raise TemplateError.parse_failure(detail) from exc

        try:
            return template.render(context.template_vars())
        except Exception as exc:  # noqa: BLE001 - template code can raise anything
            raise TemplateError.execution_failure(str(exc)) from exc

    async def assemble(self, context: DocumentContext, workspace: Workspace) -> Path:
        """Render the template and write ``report.tex`` into ``workspace``.

        Raises
        ------
        TemplateError
            If the template cannot be parsed or rendered.
        WorkspaceIOError
            If the source file cannot be written.

        """
        rendered = self.render(context)
        await asyncio.to_thread(_write_source, workspace, rendered)
        log_info(
            logger,
            "Wrote %s (%d bytes, %s template)",
            workspace.source_path,
            len(rendered),
            "default" if self.uses_default_template else "custom",
        )
        return workspace.source_path


def _write_source(workspace: Workspace, rendered: str) -> None:
    workspace.ensure()
    try:
        workspace.source_path.write_text(rendered, encoding="utf-8")
    except OSError as exc:
        raise WorkspaceIOError.for_path(
            "writing", workspace.source_path, exc
        ) from exc


__all__ = [
    "DEFAULT_TEMPLATE",
    "DocumentAssembler",
    "DocumentContext",
    "SnapshotResolver",
]
