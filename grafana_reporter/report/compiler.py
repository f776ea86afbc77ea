"""Two-pass LaTeX compilation of an assembled report.

Two toolchains are supported, selected once by name:

``pdflatex``
    ``pdflatex -halt-on-error -draftmode report.tex`` resolves references,
    then ``pdflatex -halt-on-error report.tex`` writes ``report.pdf``.
``xelatex``
    ``xelatex -halt-on-error -no-pdf report.tex`` writes ``report.xdv``,
    then ``xdvipdfmx -vv report.xdv`` converts it to ``report.pdf``.

Every pass runs inside the workspace root with stdin closed and stdout and
stderr captured together. The external processes are started through a
:class:`CommandRunner` so they can be replaced in tests.

Usage
-----
>>> driver = CompilerDriver(select_toolchain("xelatex"))
>>> with await driver.build(workspace) as pdf:
...     data = pdf.read()

"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import subprocess
import typing as typ

from grafana_reporter.logging import get_logger, log_error, log_info

from .errors import CompilerError, WorkspaceIOError

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

    from .workspace import Workspace

logger = get_logger(__name__)

DEFAULT_TOOLCHAIN = "pdflatex"


@dc.dataclass(frozen=True, slots=True)
class CommandResult:
    """Exit status and combined output of one external command."""

    returncode: int
    output: str


class CommandRunner(typ.Protocol):
    """Callable that runs a command to completion in ``cwd``."""

    async def __call__(
        self, command: cabc.Sequence[str], *, cwd: Path
    ) -> CommandResult:
        """Run ``command`` and return its result."""
        ...


async def run_command(command: cabc.Sequence[str], *, cwd: Path) -> CommandResult:
    """Run ``command`` in a worker thread and capture its output.

    Raises
    ------
    OSError
        If the executable cannot be started.

    """
    completed = await asyncio.to_thread(
        subprocess.run,  # noqa: S603 - fixed argument vectors, never a shell
        list(command),
        cwd=cwd,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        check=False,
    )
    return CommandResult(
        returncode=completed.returncode,
        output=completed.stdout.decode("utf-8", errors="replace"),
    )


class Toolchain(typ.Protocol):
    """A named procedure turning ``report.tex`` into ``report.pdf``."""

    name: str

    async def compile(self, workspace: Workspace) -> Path:
        """Compile the workspace source and return the artifact path."""
        ...


class _TwoPassToolchain:
    name: str = ""

    def __init__(self, runner: CommandRunner = run_command) -> None:
        self._runner = runner

    def passes(self, workspace: Workspace) -> tuple[tuple[str, ...], ...]:
        raise NotImplementedError

    async def compile(self, workspace: Workspace) -> Path:
        """Run both passes in order, stopping at the first failure.

        Raises
        ------
        CompilerError
            If a pass cannot start or exits with a non-zero status.

        """
        for command in self.passes(workspace):
            await self._run_pass(command, workspace)
        return workspace.output_path

    async def _run_pass(self, command: tuple[str, ...], workspace: Workspace) -> None:
        log_info(logger, "Calling %s in %s", " ".join(command), workspace.root)
        try:
            result = await self._runner(command, cwd=workspace.root)
        except OSError as exc:
            log_error(logger, "Could not start %s: %s", command[0], exc)
            raise CompilerError.not_runnable(self.name, command, exc) from exc

        if result.returncode != 0:
            log_error(
                logger,
                "%s exited with status %d",
                command[0],
                result.returncode,
            )
            raise CompilerError(
                self.name,
                command,
                exit_status=result.returncode,
                output=result.output,
            )


class PdfLatexToolchain(_TwoPassToolchain):
    """Draft-mode ``pdflatex`` pass followed by a final ``pdflatex`` pass."""

    name = "pdflatex"

    def passes(self, workspace: Workspace) -> tuple[tuple[str, ...], ...]:
        """Return the command vectors for both passes."""
        source = workspace.source_path.name
        return (
            ("pdflatex", "-halt-on-error", "-draftmode", source),
            ("pdflatex", "-halt-on-error", source),
        )


class XeLatexToolchain(_TwoPassToolchain):
    """``xelatex`` to an intermediate ``.xdv`` then ``xdvipdfmx`` to PDF."""

    name = "xelatex"

    def passes(self, workspace: Workspace) -> tuple[tuple[str, ...], ...]:
        """Return the command vectors for both passes."""
        return (
            ("xelatex", "-halt-on-error", "-no-pdf", workspace.source_path.name),
            ("xdvipdfmx", "-vv", workspace.intermediate_path.name),
        )


TOOLCHAINS: dict[str, type[_TwoPassToolchain]] = {
    PdfLatexToolchain.name: PdfLatexToolchain,
    XeLatexToolchain.name: XeLatexToolchain,
}


def select_toolchain(name: str, *, runner: CommandRunner = run_command) -> Toolchain:
    """Return the toolchain registered under ``name``.

    Raises
    ------
    ValueError
        If ``name`` is not a known toolchain.

    """
    try:
        toolchain_cls = TOOLCHAINS[name.strip().lower()]
    except KeyError:
        known = ", ".join(sorted(TOOLCHAINS))
        msg = f"unknown toolchain {name!r}; expected one of: {known}"
        raise ValueError(msg) from None
    return toolchain_cls(runner)


class CompilerDriver:
    """Compile a workspace and hand back a readable PDF handle."""

    def __init__(self, toolchain: Toolchain) -> None:
        """Bind the driver to a toolchain."""
        self._toolchain = toolchain

    @property
    def toolchain(self) -> Toolchain:
        """Return the bound toolchain."""
        return self._toolchain

    async def compile(self, workspace: Workspace) -> Path:
        """Run the toolchain and return the artifact path."""
        return await self._toolchain.compile(workspace)

    def open(self, artifact: Path) -> typ.BinaryIO:
        """Open ``artifact`` for binary reading.

        Raises
        ------
        WorkspaceIOError
            If the artifact is missing or unreadable.

        """
        try:
            return artifact.open("rb")
        except OSError as exc:
            raise WorkspaceIOError.missing_artifact(artifact, exc) from exc

    async def build(self, workspace: Workspace) -> typ.BinaryIO:
        """Compile ``workspace`` and open the resulting PDF."""
        artifact = await self.compile(workspace)
        handle = self.open(artifact)
        log_info(logger, "Compiled %s with %s", artifact, self._toolchain.name)
        return handle


__all__ = [
    "DEFAULT_TOOLCHAIN",
    "TOOLCHAINS",
    "CommandResult",
    "CommandRunner",
    "CompilerDriver",
    "PdfLatexToolchain",
    "Toolchain",
    "XeLatexToolchain",
    "run_command",
    "select_toolchain",
]
