"""Unit tests for the LaTeX compiler driver and toolchains."""

from __future__ import annotations

import typing as typ

import pytest

from grafana_reporter.report.compiler import (
    CompilerDriver,
    PdfLatexToolchain,
    XeLatexToolchain,
    run_command,
    select_toolchain,
)
from grafana_reporter.report.errors import CompilerError, WorkspaceIOError
from grafana_reporter.report.workspace import Workspace
from tests.unit.report_test_helpers import PDF_BYTES, StubRunner

if typ.TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def workspace(tmp_path: Path) -> Workspace:
    """Return a workspace holding a minimal report.tex."""
    workspace = Workspace(tmp_path)
    workspace.ensure()
    workspace.source_path.write_text(r"\documentclass{article}")
    return workspace


class TestSelectToolchain:
    """Tests for select_toolchain."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("pdflatex", PdfLatexToolchain),
            ("xelatex", XeLatexToolchain),
            (" XeLaTeX ", XeLatexToolchain),
        ],
    )
    def test_known_names(self, name: str, expected: type) -> None:
        """Known names map to their toolchain class."""
        assert isinstance(select_toolchain(name), expected)

    def test_unknown_name(self) -> None:
        """Unknown toolchains are rejected up front."""
        with pytest.raises(ValueError, match="unknown toolchain 'lualatex'"):
            select_toolchain("lualatex")


class TestPdfLatexToolchain:
    """Tests for the pdflatex two-pass toolchain."""

    @pytest.mark.asyncio
    async def test_runs_draft_then_final_pass(self, workspace: Workspace) -> None:
        """Both passes run in the workspace root, draft mode first."""
        runner = StubRunner()

        artifact = await PdfLatexToolchain(runner).compile(workspace)

        assert runner.commands == [
            ("pdflatex", "-halt-on-error", "-draftmode", "report.tex"),
            ("pdflatex", "-halt-on-error", "report.tex"),
        ]
        assert runner.cwds == [workspace.root, workspace.root]
        assert artifact == workspace.output_path

    @pytest.mark.asyncio
    async def test_first_pass_failure_skips_second(
        self, workspace: Workspace
    ) -> None:
        """A failing first pass raises and never starts the second."""
        runner = StubRunner(fail_on="pdflatex")

        with pytest.raises(CompilerError) as excinfo:
            await PdfLatexToolchain(runner).compile(workspace)

        error = excinfo.value
        assert len(runner.commands) == 1, "Expected the second pass skipped."
        assert error.toolchain == "pdflatex"
        assert error.exit_status == 1
        assert error.command == runner.commands[0]
        assert "! Undefined control sequence." in error.output
        assert "! Undefined control sequence." in str(error), (
            "Expected the full compiler output in the message."
        )


class TestXeLatexToolchain:
    """Tests for the xelatex + xdvipdfmx toolchain."""

    @pytest.mark.asyncio
    async def test_runs_xelatex_then_xdvipdfmx(self, workspace: Workspace) -> None:
        """The intermediate .xdv is converted in the second pass."""
        runner = StubRunner()

        await XeLatexToolchain(runner).compile(workspace)

        assert runner.commands == [
            ("xelatex", "-halt-on-error", "-no-pdf", "report.tex"),
            ("xdvipdfmx", "-vv", "report.xdv"),
        ]

    @pytest.mark.asyncio
    async def test_second_pass_failure(self, workspace: Workspace) -> None:
        """A failing converter reports the converter command."""
        runner = StubRunner(fail_on="xdvipdfmx")

        with pytest.raises(CompilerError) as excinfo:
            await XeLatexToolchain(runner).compile(workspace)

        assert excinfo.value.command[0] == "xdvipdfmx"
        assert len(runner.commands) == 2

    @pytest.mark.asyncio
    async def test_missing_executable(self, workspace: Workspace) -> None:
        """An executable that cannot start is a CompilerError without status."""
        runner = StubRunner(missing="xelatex")

        with pytest.raises(CompilerError, match="did not start") as excinfo:
            await XeLatexToolchain(runner).compile(workspace)

        assert excinfo.value.exit_status is None
        assert isinstance(excinfo.value.__cause__, FileNotFoundError)


class TestCompilerDriver:
    """Tests for CompilerDriver."""

    @pytest.mark.asyncio
    async def test_build_returns_readable_pdf(self, workspace: Workspace) -> None:
        """build() compiles and opens the artifact for reading."""
        driver = CompilerDriver(select_toolchain("pdflatex", runner=StubRunner()))

        with await driver.build(workspace) as handle:
            assert handle.read() == PDF_BYTES

    @pytest.mark.asyncio
    async def test_missing_artifact(self, workspace: Workspace) -> None:
        """Success without a PDF on disk raises WorkspaceIOError."""
        runner = StubRunner(write_pdf=False)
        driver = CompilerDriver(select_toolchain("pdflatex", runner=runner))

        with pytest.raises(WorkspaceIOError, match="cannot be opened"):
            await driver.build(workspace)


class TestRunCommand:
    """Tests for the subprocess-backed command runner."""

    @pytest.mark.asyncio
    async def test_captures_combined_output(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """stdout is decoded and the exit status returned."""
        captured: dict[str, object] = {}

        class _Completed:
            returncode = 3
            stdout = "café log\n".encode()

        def fake_run(argv: list[str], **kwargs: object) -> _Completed:
            captured["argv"] = argv
            captured.update(kwargs)
            return _Completed()

        monkeypatch.setattr(
            "grafana_reporter.report.compiler.subprocess.run", fake_run
        )

        result = await run_command(("pdflatex", "report.tex"), cwd=tmp_path)

        assert result.returncode == 3
        assert result.output == "café log\n"
        assert captured["argv"] == ["pdflatex", "report.tex"]
        assert captured["cwd"] == tmp_path
        assert captured["check"] is False
