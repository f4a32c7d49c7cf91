"""Value objects shared by the Pester and ScriptAnalyzer runners."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping


@dataclass(frozen=True)
class TestSelection:
    """Which test files to run and which tags to filter by."""

    __test__ = False

    paths: tuple[Path, ...] = ()
    tags: tuple[str, ...] = ()
    exclude_tags: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.paths

    def describe(self) -> str:
        parts = [f"{len(self.paths)} file(s)"]
        if self.tags:
            parts.append("tags: " + ", ".join(self.tags))
        if self.exclude_tags:
            parts.append("excluding: " + ", ".join(self.exclude_tags))
        return "; ".join(parts)


@dataclass(frozen=True)
class TestRunSummary:
    __test__ = False

    passed: int = 0
    failed: int = 0
    skipped: int = 0
    not_run: int = 0
    total: int = 0
    duration_seconds: float = 0.0
    result: str = ""
    returncode: int = 0
    failed_tests: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.failed == 0 and self.returncode == 0

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], returncode: int) -> "TestRunSummary":
        failed_tests = payload.get("FailedTests") or []
        if isinstance(failed_tests, str):
            failed_tests = [failed_tests]
        return cls(
            passed=int(payload.get("PassedCount") or 0),
            failed=int(payload.get("FailedCount") or 0),
            skipped=int(payload.get("SkippedCount") or 0),
            not_run=int(payload.get("NotRunCount") or 0),
            total=int(payload.get("TotalCount") or 0),
            duration_seconds=float(payload.get("DurationSeconds") or 0.0),
            result=str(payload.get("Result") or ""),
            returncode=returncode,
            failed_tests=tuple(str(name) for name in failed_tests),
        )


@dataclass(frozen=True)
class AnalysisFinding:
    rule: str
    severity: str
    path: str
    line: int | None = None
    message: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "AnalysisFinding":
        severity = payload.get("Severity")
        # ConvertTo-Json emits enum values as integers unless stringified.
        if isinstance(severity, int):
            severity = SEVERITY_BY_CODE.get(severity, str(severity))
        line = payload.get("Line")
        return cls(
            rule=str(payload.get("RuleName") or ""),
            severity=str(severity or "Information"),
            path=str(payload.get("ScriptPath") or payload.get("ScriptName") or ""),
            line=int(line) if line is not None else None,
            message=str(payload.get("Message") or "").strip(),
        )


SEVERITY_BY_CODE = {0: "Information", 1: "Warning", 2: "Error", 3: "ParseError"}
SEVERITY_ORDER = ("ParseError", "Error", "Warning", "Information")


def summarize(findings: Iterable[AnalysisFinding]) -> dict[str, int]:
    """Count findings per severity, known severities first."""
    totals = {severity: 0 for severity in SEVERITY_ORDER}
    for finding in findings:
        totals[finding.severity] = totals.get(finding.severity, 0) + 1
    return totals


@dataclass
class AnalysisReport:
    findings: list[AnalysisFinding] = field(default_factory=list)
    files: int = 0

    def counts(self) -> dict[str, int]:
        return summarize(self.findings)

    @property
    def has_errors(self) -> bool:
        counts = self.counts()
        return counts.get("Error", 0) > 0 or counts.get("ParseError", 0) > 0
