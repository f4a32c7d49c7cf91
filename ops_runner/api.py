"""Public API surface for ops_runner."""

from ops_runner.analysis import ScriptAnalyzer, summarize
from ops_runner.discovery import TestCatalog, build_catalog, discover_test_files, extract_tags
from ops_runner.models import AnalysisFinding, AnalysisReport, TestRunSummary, TestSelection
from ops_runner.pester import PesterRunner
from ops_runner.pwsh import PwshExecutor
from ops_runner.workspace import cleanup_patterns, cleanup_workspace

__all__ = [
    "AnalysisFinding",
    "AnalysisReport",
    "PesterRunner",
    "PwshExecutor",
    "ScriptAnalyzer",
    "TestCatalog",
    "TestRunSummary",
    "TestSelection",
    "build_catalog",
    "cleanup_patterns",
    "cleanup_workspace",
    "discover_test_files",
    "extract_tags",
    "summarize",
]
