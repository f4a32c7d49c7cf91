from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer
from rich.markup import escape

from ops_common.errors import OpsError, ToolNotFoundError
from ops_runner.api import AnalysisReport
from ops_runner.models import SEVERITY_ORDER
from ops_ui.tui.core import theme
from ops_ui.tui.system.models import TableModel
from ops_ui.wiring.dependencies import UIContext


def _findings_table(report: AnalysisReport) -> TableModel:
    rows = [
        [
            theme.severity_text(finding.severity),
            escape(finding.rule),
            escape(f"{finding.path}:{finding.line}" if finding.line is not None else finding.path),
            escape(finding.message),
        ]
        for finding in report.findings
    ]
    return TableModel(title="PSScriptAnalyzer Findings", columns=["Severity", "Rule", "Location", "Message"], rows=rows)


def register_lint_command(app: typer.Typer, ctx: UIContext) -> None:
    """Attach `ops lint` to the root app."""

    @app.command("lint")
    def lint(
        paths: List[Path] = typer.Argument(
            None,
            help="Scripts or directories to analyze (default: current directory).",
        ),
        severity: List[str] = typer.Option(
            [],
            "--severity",
            "-s",
            help=f"Only report these severities ({', '.join(SEVERITY_ORDER)}).",
        ),
        settings: Optional[Path] = typer.Option(
            None,
            "--settings",
            help="PSScriptAnalyzer settings file.",
        ),
    ) -> None:
        """Run PSScriptAnalyzer and fail on Error findings."""
        unknown = [value for value in severity if value not in SEVERITY_ORDER]
        if unknown:
            ctx.ui.present.error(f"Unknown severity: {', '.join(unknown)}")
            raise typer.Exit(1)

        targets = list(paths or [Path(".")])
        if settings is not None:
            ctx.analyzer.settings = settings
        try:
            with ctx.ui.progress.status("Running PSScriptAnalyzer"):
                report = ctx.analyzer.analyze(targets, severities=severity or None)
        except ToolNotFoundError as exc:
            ctx.ui.present.error(str(exc))
            raise typer.Exit(1)
        except OpsError as exc:
            ctx.ui.present.error(f"Analysis failed: {exc}")
            raise typer.Exit(1)

        if not report.files:
            ctx.ui.present.warning("No PowerShell files to analyze.")
            return
        if report.findings:
            ctx.ui.tables.show(_findings_table(report))
        counts = ", ".join(f"{name}: {count}" for name, count in report.counts().items())
        ctx.ui.present.info(f"{report.files} file(s) analyzed. {counts}")
        if report.has_errors:
            ctx.ui.present.error("Analysis reported errors.")
            raise typer.Exit(1)
        ctx.ui.present.success("No errors reported.")
