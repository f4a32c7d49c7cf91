"""CLI tests for `ops test`, `ops lint` and `ops subscription`."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from typer.testing import CliRunner

import importlib

cli_main = importlib.import_module("ops_ui.cli.main")
from ops_common.errors import AuthenticationFailure, GraphApiError, ToolNotFoundError
from ops_graph.api import SubscriptionLifecycleManager, SubscriptionResource
from ops_runner.api import AnalysisFinding, AnalysisReport, TestRunSummary
from ops_ui.cli import app, ctx_store
from ops_ui.tui.system.headless import HeadlessUI


pytestmark = pytest.mark.unit_ui

runner = CliRunner()
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakePester:
    def __init__(self, summary=None, error=None):
        self.summary = summary or TestRunSummary(passed=3, total=3, result="Passed")
        self.error = error
        self.verbosity = "Detailed"
        self.selections = []

    def run(self, selection, *, result_path=None, on_output=None):
        self.selections.append(selection)
        if on_output is not None:
            on_output("Describing Settings")
        if self.error is not None:
            raise self.error
        return self.summary


class FakeAnalyzer:
    def __init__(self, report):
        self.report = report
        self.settings = None
        self.calls = []

    def analyze(self, paths, *, severities=None):
        self.calls.append((list(paths), severities))
        return self.report


class FakeGraph:
    def __init__(self, subscriptions=(), auth_error=None, list_error=None, patch_error=None):
        self.subscriptions = list(subscriptions)
        self.auth_error = auth_error
        self.list_error = list_error
        self.patch_error = patch_error
        self.patched = []

    def authenticate(self):
        if self.auth_error is not None:
            raise self.auth_error

    def list_subscriptions(self):
        if self.list_error is not None:
            raise self.list_error
        return list(self.subscriptions)

    def get_subscription(self, subscription_id):
        return next((s for s in self.subscriptions if s.id == subscription_id), None)

    def create_subscription(self, payload):
        return SubscriptionResource.model_validate({"id": "new-sub", **payload})

    def update_expiration(self, subscription_id, expiration):
        if self.patch_error is not None:
            raise self.patch_error
        self.patched.append((subscription_id, expiration))
        return SubscriptionResource(
            id=subscription_id,
            resource="groups",
            notificationUrl="EventGrid:?partnertopic=default",
            expirationDateTime=expiration,
        )


def _subscription(hours_left: float) -> SubscriptionResource:
    return SubscriptionResource(
        id="sub-1",
        resource="groups",
        changeType="updated,deleted",
        notificationUrl=(
            "EventGrid:?azuresubscriptionid=target&resourcegroup=groupchangefunction"
            "&partnertopic=default&location=centralus"
        ),
        expirationDateTime=NOW + timedelta(hours=hours_left),
    )


@pytest.fixture
def ui(monkeypatch) -> HeadlessUI:
    headless = HeadlessUI()
    monkeypatch.setattr(ctx_store, "_ui", headless)
    monkeypatch.setattr(ctx_store, "headless", False)
    monkeypatch.setattr(cli_main, "configure_logging", lambda **_: None)
    return headless


@pytest.fixture
def tests_root(tmp_path: Path) -> Path:
    (tmp_path / "Settings.Tests.ps1").write_text("Describe 'Settings' -Tag 'Unit' {\n}\n")
    (tmp_path / "Graph.Tests.ps1").write_text("Describe 'Graph' -Tag 'Graph','Slow' {\n}\n")
    (tmp_path / "TestResults").mkdir()
    return tmp_path


@pytest.fixture
def graph_env(monkeypatch):
    for name in ("AUTOMATION_ASSET_ACCOUNTID", "IDENTITY_ENDPOINT", "GRAPH_SUBSCRIPTION_ID", "RENEWAL_THRESHOLD_HOURS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("TARGET_SUBSCRIPTION_ID", "target")


def _use_graph(monkeypatch, graph: FakeGraph) -> None:
    def factory(environment, settings):
        return SubscriptionLifecycleManager(graph, settings, clock=lambda: NOW, token_factory=lambda: "token")

    monkeypatch.setattr(ctx_store, "lifecycle_factory", factory)


def test_test_run_all_reports_summary_and_cleans(monkeypatch, ui, tests_root) -> None:
    pester = FakePester()
    monkeypatch.setattr(ctx_store, "_pester", pester)
    result = runner.invoke(app, ["test", "run", "--all", "--root", str(tests_root)])
    assert result.exit_code == 0, result.output
    assert len(pester.selections[0].paths) == 2
    assert "Describing Settings" in result.output
    assert ui.recorded_tables[-1].title == "Pester Summary"
    assert not (tests_root / "TestResults").exists()
    assert any(m.startswith("SUCCESS:") for m in ui.recorded_messages)


def test_test_run_no_cleanup_keeps_folders(monkeypatch, ui, tests_root) -> None:
    monkeypatch.setattr(ctx_store, "_pester", FakePester())
    result = runner.invoke(app, ["test", "run", "--all", "--no-cleanup", "--root", str(tests_root)])
    assert result.exit_code == 0, result.output
    assert (tests_root / "TestResults").exists()


def test_test_run_failures_exit_non_zero(monkeypatch, ui, tests_root) -> None:
    summary = TestRunSummary(passed=1, failed=2, total=3, result="Failed", returncode=2, failed_tests=("a.b",))
    monkeypatch.setattr(ctx_store, "_pester", FakePester(summary=summary))
    result = runner.invoke(app, ["test", "run", "--tag", "Unit", "--root", str(tests_root)])
    assert result.exit_code == 2
    assert "ERROR: FAILED: a.b" in ui.recorded_messages
    assert "ERROR: 2 test(s) failed." in ui.recorded_messages


def test_test_run_without_selection_hint_fails(monkeypatch, ui, tests_root) -> None:
    pester = FakePester()
    monkeypatch.setattr(ctx_store, "_pester", pester)
    result = runner.invoke(app, ["--headless", "test", "run", "--interactive", "--root", str(tests_root)])
    assert result.exit_code == 1
    assert pester.selections == []
    assert any("--path" in m for m in ui.recorded_messages if m.startswith("ERROR:"))


def test_test_run_unmatched_path_exits_zero(monkeypatch, ui, tests_root) -> None:
    pester = FakePester()
    monkeypatch.setattr(ctx_store, "_pester", pester)
    result = runner.invoke(app, ["test", "run", "--path", "qqqqqqqqqq", "--root", str(tests_root)])
    assert result.exit_code == 0
    assert pester.selections == []
    assert "WARNING: No test file matches 'qqqqqqqqqq'." in ui.recorded_messages


def test_test_run_missing_pwsh_exits_one(monkeypatch, ui, tests_root) -> None:
    monkeypatch.setattr(ctx_store, "_pester", FakePester(error=ToolNotFoundError("pwsh not found in PATH")))
    result = runner.invoke(app, ["test", "run", "--path", "Settings.Tests.ps1", "--root", str(tests_root)])
    assert result.exit_code == 1
    assert "ERROR: pwsh not found in PATH" in ui.recorded_messages


def test_test_list_shows_tags(ui, tests_root) -> None:
    result = runner.invoke(app, ["test", "list", "--root", str(tests_root)])
    assert result.exit_code == 0, result.output
    table = ui.recorded_tables[-1]
    assert [row[0] for row in table.rows] == ["Graph.Tests.ps1", "Settings.Tests.ps1"]
    assert "INFO: Tags: Graph, Slow, Unit" in ui.recorded_messages


def test_lint_fails_on_error_findings(monkeypatch, ui, tmp_path) -> None:
    report = AnalysisReport(
        findings=[AnalysisFinding(rule="PSAvoidUsingPlainTextForPassword", severity="Error", path="a.ps1", line=3)],
        files=1,
    )
    analyzer = FakeAnalyzer(report)
    monkeypatch.setattr(ctx_store, "_analyzer", analyzer)
    result = runner.invoke(app, ["lint", str(tmp_path)])
    assert result.exit_code == 1
    assert analyzer.calls == [([tmp_path], None)]
    assert ui.recorded_tables[-1].rows[0][2] == "a.ps1:3"


def test_lint_warnings_only_pass(monkeypatch, ui, tmp_path) -> None:
    report = AnalysisReport(
        findings=[AnalysisFinding(rule="PSUseApprovedVerbs", severity="Warning", path="a.ps1")],
        files=2,
    )
    monkeypatch.setattr(ctx_store, "_analyzer", FakeAnalyzer(report))
    result = runner.invoke(app, ["lint", str(tmp_path), "--severity", "Warning"])
    assert result.exit_code == 0, result.output
    assert any("Warning: 1" in m for m in ui.recorded_messages)


def test_lint_rejects_unknown_severity(ui) -> None:
    result = runner.invoke(app, ["lint", "--severity", "Fatal"])
    assert result.exit_code == 1


def test_subscription_renew_within_threshold(monkeypatch, ui, graph_env) -> None:
    graph = FakeGraph(subscriptions=[_subscription(hours_left=23)])
    _use_graph(monkeypatch, graph)
    result = runner.invoke(app, ["subscription", "renew"])
    assert result.exit_code == 0, result.output
    assert graph.patched == [("sub-1", NOW + timedelta(minutes=4230))]
    assert "SUCCESS: Renewed" in ui.recorded_messages


def test_subscription_renew_dry_run_makes_no_changes(monkeypatch, ui, graph_env) -> None:
    graph = FakeGraph(subscriptions=[_subscription(hours_left=2)])
    _use_graph(monkeypatch, graph)
    result = runner.invoke(app, ["subscription", "renew", "--dry-run"])
    assert result.exit_code == 0, result.output
    assert graph.patched == []
    assert "INFO: Dry run: no changes were made." in ui.recorded_messages


def test_subscription_renew_auth_failure_exits_two(monkeypatch, ui, graph_env) -> None:
    _use_graph(monkeypatch, FakeGraph(auth_error=AuthenticationFailure("token denied")))
    result = runner.invoke(app, ["subscription", "renew"])
    assert result.exit_code == 2
    assert "ERROR: token denied" in ui.recorded_messages


def test_subscription_renew_discovery_failure_exits_one(monkeypatch, ui, graph_env) -> None:
    _use_graph(monkeypatch, FakeGraph(list_error=GraphApiError("boom", status=500)))
    result = runner.invoke(app, ["subscription", "renew"])
    assert result.exit_code == 1


def test_subscription_renew_failure_is_reported_not_fatal(monkeypatch, ui, graph_env) -> None:
    graph = FakeGraph(
        subscriptions=[_subscription(hours_left=1)],
        patch_error=GraphApiError("gone", status=404, code="ResourceNotFound"),
    )
    _use_graph(monkeypatch, graph)
    result = runner.invoke(app, ["subscription", "renew"])
    assert result.exit_code == 0, result.output
    assert any(m.startswith("WARNING: RenewalFailed") for m in ui.recorded_messages)
    rows = dict(ui.recorded_tables[-1].rows)
    assert rows["Failure"] == "ResourceNotFoundOrForeign"


def test_subscription_renew_missing_target_exits_one(monkeypatch, ui, graph_env) -> None:
    monkeypatch.delenv("TARGET_SUBSCRIPTION_ID")
    _use_graph(monkeypatch, FakeGraph())
    result = runner.invoke(app, ["subscription", "renew"])
    assert result.exit_code == 1
    assert any("TARGET_SUBSCRIPTION_ID" in m for m in ui.recorded_messages)


def test_subscription_renew_rejects_non_positive_threshold(ui, graph_env) -> None:
    result = runner.invoke(app, ["subscription", "renew", "--threshold", "0"])
    assert result.exit_code == 1


def test_subscription_status_shows_renewal_due(monkeypatch, ui, graph_env) -> None:
    _use_graph(monkeypatch, FakeGraph(subscriptions=[_subscription(hours_left=10)]))
    result = runner.invoke(app, ["subscription", "status"])
    assert result.exit_code == 0, result.output
    rows = dict(ui.recorded_tables[-1].rows)
    assert rows["Id"] == "sub-1"
    assert rows["Renewal due"] == "yes"


def test_test_run_ambiguous_path_without_terminal_names_candidates(monkeypatch, ui, tests_root) -> None:
    pester = FakePester()
    monkeypatch.setattr(ctx_store, "_pester", pester)
    result = runner.invoke(app, ["test", "run", "--path", "Tests", "--root", str(tests_root)])
    assert result.exit_code == 1
    assert pester.selections == []
    assert ui.recorded_picks == []
    errors = [m for m in ui.recorded_messages if m.startswith("ERROR:")]
    assert len(errors) == 1
    assert "Settings.Tests.ps1" in errors[0] and "Graph.Tests.ps1" in errors[0]
    assert "--path" in errors[0]
    assert not any("canceled" in m for m in ui.recorded_messages)
