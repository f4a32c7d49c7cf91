"""PowerShell test and analysis runners."""

from ops_runner.api import (
    PesterRunner,
    ScriptAnalyzer,
    TestCatalog,
    TestRunSummary,
    TestSelection,
    build_catalog,
)

__all__ = [
    "PesterRunner",
    "ScriptAnalyzer",
    "TestCatalog",
    "TestRunSummary",
    "TestSelection",
    "build_catalog",
]
