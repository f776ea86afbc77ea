"""Behavioural coverage for the report generation lifecycle."""

from __future__ import annotations

import asyncio
import typing as typ

from pytest_bdd import given, parsers, scenario, then, when

from grafana_reporter.grafana.models import TimeRange
from grafana_reporter.report import (
    PanelRenderError,
    Report,
    ReportDependencies,
    ReporterConfig,
    ReportRequest,
    ReportState,
    select_toolchain,
)
from tests.unit.report_test_helpers import (
    PDF_BYTES,
    FakeGrafanaClient,
    StubRunner,
    make_dashboard,
)

if typ.TYPE_CHECKING:
    from pathlib import Path


class ReportContext(typ.TypedDict, total=False):
    """Mutable context shared between steps."""

    tmp_path: Path
    grafana: FakeGrafanaClient
    runner: StubRunner
    toolchain: str
    report: Report
    pdf: bytes
    error: Exception


@scenario("../report_generation.feature", "A three panel dashboard becomes a PDF")
def test_report_success_scenario() -> None:
    """Wrapper for pytest-bdd scenario."""


@scenario(
    "../report_generation.feature",
    "A failing panel stops the report before compilation",
)
def test_report_failure_scenario() -> None:
    """Wrapper for pytest-bdd scenario."""


@given(
    "a Grafana dashboard with panels 1, 2 and 3",
    target_fixture="report_context",
)
def given_dashboard(tmp_path: Path) -> ReportContext:
    """Provision an in-memory Grafana with a three panel dashboard."""
    return {
        "tmp_path": tmp_path,
        "grafana": FakeGrafanaClient(make_dashboard(1, 2, 3)),
        "runner": StubRunner(),
    }


@given(parsers.parse("panel {panel_id:d} cannot be rendered"))
def given_failing_panel(report_context: ReportContext, panel_id: int) -> None:
    """Make the renderer refuse one panel."""
    report_context["grafana"].failing_panels = {panel_id}


@given(parsers.parse("the {toolchain} toolchain"))
def given_toolchain(report_context: ReportContext, toolchain: str) -> None:
    """Select the LaTeX toolchain by name."""
    report_context["toolchain"] = toolchain


@when(parsers.parse("I generate a report for the last {hours:d} hours"))
def when_generate(report_context: ReportContext, hours: int) -> None:
    """Run the report pipeline and capture the PDF or the failure."""
    report = Report(
        ReportRequest(
            dashboard="ops",
            time_range=TimeRange.create(f"now-{hours}h", None),
        ),
        ReportDependencies(
            grafana=report_context["grafana"],
            toolchain=select_toolchain(
                report_context["toolchain"], runner=report_context["runner"]
            ),
        ),
        ReporterConfig(tmp_dir=report_context["tmp_path"], workers=2),
    )
    report_context["report"] = report

    async def _run() -> None:
        try:
            handle = await report.generate()
        except PanelRenderError as exc:
            report_context["error"] = exc
            return
        with handle:
            report_context["pdf"] = handle.read()

    asyncio.run(_run())


@then("the workspace holds a snapshot for each panel")
def then_snapshots_exist(report_context: ReportContext) -> None:
    """Each panel has an image file in the workspace."""
    workspace = report_context["report"].workspace
    for panel_id in (1, 2, 3):
        assert workspace.image_path(panel_id).exists(), (
            f"Expected a snapshot for panel {panel_id}."
        )


@then("the xelatex passes ran in order")
def then_xelatex_passes(report_context: ReportContext) -> None:
    """xelatex ran before xdvipdfmx."""
    commands = report_context["runner"].commands
    assert [command[0] for command in commands] == ["xelatex", "xdvipdfmx"]


@then("the returned document is the compiled PDF")
def then_pdf_returned(report_context: ReportContext) -> None:
    """The handle yielded the artifact the compiler produced."""
    assert report_context["pdf"] == PDF_BYTES
    assert report_context["report"].state is ReportState.READABLE


@then(parsers.parse("the report fails blaming panel {panel_id:d}"))
def then_fails_for_panel(report_context: ReportContext, panel_id: int) -> None:
    """The raised error names the failing panel."""
    error = report_context["error"]
    assert isinstance(error, PanelRenderError)
    assert error.panel_id == panel_id
    assert report_context["report"].state is ReportState.FAILED


@then("no LaTeX source was written")
def then_no_source(report_context: ReportContext) -> None:
    """Assembly and compilation never ran."""
    assert not report_context["report"].workspace.source_path.exists()
    assert report_context["runner"].commands == []


@then("cleaning the report removes its workspace")
def then_clean_removes(report_context: ReportContext) -> None:
    """clean() deletes the workspace root."""
    report = report_context["report"]
    report.clean()
    assert not report.workspace.root.exists()
    assert report.state is ReportState.CLEANED
