"""Run Pester through pwsh and collect the pass/fail/skip counts."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from ops_common.errors import OpsError
from ops_runner.models import TestRunSummary, TestSelection
from ops_runner.pwsh import PwshExecutor, ps_array, ps_quote

logger = logging.getLogger(__name__)

SUMMARY_MARKER = "##OPS-SUMMARY##"
PESTER_MODULE = "Pester"
PESTER_MIN_VERSION = "5.0.0"
VERBOSITY_LEVELS = ("None", "Normal", "Detailed", "Diagnostic")


def build_pester_script(
    selection: TestSelection,
    *,
    verbosity: str = "Detailed",
    result_path: Path | None = None,
) -> str:
    """Return the PowerShell script that runs Pester and prints a JSON summary."""
    if verbosity not in VERBOSITY_LEVELS:
        raise ValueError(f"Unsupported Pester verbosity: {verbosity}")
    lines = [
        "$ErrorActionPreference = 'Stop'",
        f"Import-Module {PESTER_MODULE} -MinimumVersion {PESTER_MIN_VERSION}",
        "$config = New-PesterConfiguration",
        f"$config.Run.Path = {ps_array([str(p) for p in selection.paths])}",
        "$config.Run.PassThru = $true",
        f"$config.Output.Verbosity = {ps_quote(verbosity)}",
    ]
    if selection.tags:
        lines.append(f"$config.Filter.Tag = {ps_array(list(selection.tags))}")
    if selection.exclude_tags:
        lines.append(f"$config.Filter.ExcludeTag = {ps_array(list(selection.exclude_tags))}")
    if result_path is not None:
        lines += [
            "$config.TestResult.Enabled = $true",
            "$config.TestResult.OutputFormat = 'NUnitXml'",
            f"$config.TestResult.OutputPath = {ps_quote(result_path)}",
        ]
    lines += [
        "$result = Invoke-Pester -Configuration $config",
        "$summary = [ordered]@{",
        "    Result = $result.Result",
        "    PassedCount = $result.PassedCount",
        "    FailedCount = $result.FailedCount",
        "    SkippedCount = $result.SkippedCount",
        "    NotRunCount = $result.NotRunCount",
        "    TotalCount = $result.TotalCount",
        "    DurationSeconds = $result.Duration.TotalSeconds",
        "    FailedTests = @($result.Failed | ForEach-Object { $_.ExpandedPath })",
        "}",
        f"Write-Output ('{SUMMARY_MARKER}' + ($summary | ConvertTo-Json -Compress -Depth 4))",
    ]
    return "\n".join(lines)


def parse_summary(lines: list[str], returncode: int) -> TestRunSummary:
    """Find the summary marker in pwsh output and decode it."""
    for line in reversed(lines):
        marker_at = line.find(SUMMARY_MARKER)
        if marker_at < 0:
            continue
        raw = line[marker_at + len(SUMMARY_MARKER):]
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise OpsError(
                "Pester summary is not valid JSON.",
                context={"line": raw[:200]},
                cause=exc,
            ) from exc
        return TestRunSummary.from_payload(payload, returncode)
    raise OpsError(
        "Pester did not report a summary; see the output above.",
        context={"returncode": returncode},
    )


@dataclass
class PesterRunner:
    """Invoke Pester for a selection of files and tags."""

    executor: PwshExecutor = field(default_factory=PwshExecutor)
    verbosity: str = "Detailed"

    def run(
        self,
        selection: TestSelection,
        *,
        result_path: Path | None = None,
        on_output: Callable[[str], None] | None = None,
    ) -> TestRunSummary:
        if selection.is_empty:
            raise OpsError("No test files selected.")
        script = build_pester_script(selection, verbosity=self.verbosity, result_path=result_path)
        logger.info("Running Pester: %s", selection.describe())

        captured: list[str] = []

        def _forward(line: str) -> None:
            captured.append(line)
            if on_output is not None and SUMMARY_MARKER not in line:
                on_output(line)

        returncode = self.executor.stream(script, _forward)
        summary = parse_summary(captured, returncode)
        logger.info(
            "Pester finished: passed=%d failed=%d skipped=%d total=%d",
            summary.passed,
            summary.failed,
            summary.skipped,
            summary.total,
        )
        return summary
