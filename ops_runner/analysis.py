"""PSScriptAnalyzer invocation and findings parsing."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from ops_common.errors import OpsError
from ops_runner.models import SEVERITY_ORDER, AnalysisFinding, AnalysisReport, summarize
from ops_runner.pwsh import PwshExecutor, ps_array, ps_quote

logger = logging.getLogger(__name__)

ANALYZER_MODULE = "PSScriptAnalyzer"
SCRIPT_SUFFIXES = (".ps1", ".psm1", ".psd1")


def collect_scripts(paths: Iterable[Path]) -> list[Path]:
    """Expand directories into the PowerShell sources they contain."""
    scripts: list[Path] = []
    for path in paths:
        path = path.expanduser()
        if path.is_dir():
            scripts.extend(
                sorted(p for p in path.rglob("*") if p.is_file() and p.suffix.lower() in SCRIPT_SUFFIXES)
            )
        elif path.is_file():
            scripts.append(path)
        else:
            logger.warning("Skipping missing path %s", path)
    return list(dict.fromkeys(scripts))


def build_analyzer_script(
    scripts: list[Path],
    *,
    severities: Iterable[str] | None = None,
    settings: Path | None = None,
) -> str:
    args = ["-Path $path"]
    if severities:
        args.append(f"-Severity {ps_array(list(severities))}")
    if settings is not None:
        args.append(f"-Settings {ps_quote(settings)}")
    return "\n".join(
        [
            "$ErrorActionPreference = 'Stop'",
            f"Import-Module {ANALYZER_MODULE}",
            "$findings = @()",
            f"foreach ($path in {ps_array([str(s) for s in scripts])}) {{",
            f"    $findings += @(Invoke-ScriptAnalyzer {' '.join(args)})",
            "}",
            "$rows = @($findings | ForEach-Object {",
            "    [ordered]@{",
            "        RuleName = $_.RuleName",
            "        Severity = $_.Severity.ToString()",
            "        ScriptPath = $_.ScriptPath",
            "        Line = $_.Line",
            "        Message = $_.Message",
            "    }",
            "})",
            "ConvertTo-Json -InputObject $rows -Depth 4 -Compress",
        ]
    )


def parse_findings(output: str) -> list[AnalysisFinding]:
    text = output.strip()
    if not text:
        return []
    try:
        payload: Any = json.loads(text)
    except json.JSONDecodeError as exc:
        raise OpsError(
            "ScriptAnalyzer output is not valid JSON.",
            context={"output": text[:200]},
            cause=exc,
        ) from exc
    if isinstance(payload, dict):
        payload = [payload]
    return [AnalysisFinding.from_payload(row) for row in payload or []]


def sort_findings(findings: list[AnalysisFinding]) -> list[AnalysisFinding]:
    rank = {severity: idx for idx, severity in enumerate(SEVERITY_ORDER)}
    return sorted(
        findings,
        key=lambda f: (rank.get(f.severity, len(rank)), f.path, f.line or 0, f.rule),
    )


@dataclass
class ScriptAnalyzer:
    executor: PwshExecutor = field(default_factory=PwshExecutor)
    settings: Path | None = None

    def analyze(
        self,
        paths: Iterable[Path],
        *,
        severities: Iterable[str] | None = None,
    ) -> AnalysisReport:
        scripts = collect_scripts(paths)
        if not scripts:
            return AnalysisReport()
        self.executor.require_module(ANALYZER_MODULE)
        script = build_analyzer_script(scripts, severities=severities, settings=self.settings)
        result = self.executor.run(script)
        if result.returncode != 0:
            raise OpsError(
                "Invoke-ScriptAnalyzer failed.",
                context={"returncode": result.returncode, "stderr": (result.stderr or "")[-500:]},
            )
        findings = sort_findings(parse_findings(result.stdout or ""))
        logger.info("Analyzed %d files: %s", len(scripts), summarize(findings))
        return AnalysisReport(findings=findings, files=len(scripts))
