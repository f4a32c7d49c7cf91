"""Tests for the test-selection workflow."""

from __future__ import annotations

from pathlib import Path

import pytest

from ops_common.errors import NoCandidatesFound, UserCanceled
from ops_runner.api import TestCatalog
from ops_ui.flows.errors import UIFlowError
from ops_ui.flows.selection import MODE_FILES_AND_TAGS, MODES, select_tests
from ops_ui.tui.system.headless import HeadlessUI


pytestmark = pytest.mark.unit_ui


def _mode_index(mode_id: str) -> int:
    return [item.id for item in MODES].index(mode_id)


@pytest.fixture
def catalog(tmp_path: Path) -> TestCatalog:
    files = [
        tmp_path / "Graph" / "Renewal.Tests.ps1",
        tmp_path / "Logging.Tests.ps1",
        tmp_path / "Settings.Tests.ps1",
    ]
    for path in files:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("Describe 'x' { }\n")
    return TestCatalog(
        root=tmp_path,
        files=files,
        tags_by_file={
            files[0]: ["Graph", "Slow"],
            files[1]: ["Unit"],
            files[2]: ["Unit", "Config"],
        },
    )


def test_run_all_selects_every_file(catalog: TestCatalog) -> None:
    ui = HeadlessUI()
    selection = select_tests(ui, catalog, run_all=True, tags=["Unit"], exclude_tags=["Slow"])
    assert list(selection.paths) == catalog.files
    assert selection.tags == ("Unit",)
    assert selection.exclude_tags == ("Slow",)
    assert ui.recorded_picks == []


def test_search_resolves_exact_name(catalog: TestCatalog) -> None:
    ui = HeadlessUI()
    selection = select_tests(ui, catalog, search="Graph/renewal.tests.ps1")
    assert selection.paths == (catalog.files[0],)
    assert ui.recorded_picks == []


def test_search_accepts_existing_path(catalog: TestCatalog) -> None:
    selection = select_tests(HeadlessUI(), catalog, search=str(catalog.files[1]))
    assert selection.paths == (catalog.files[1],)


def test_search_fuzzy_uses_picker(catalog: TestCatalog) -> None:
    ui = HeadlessUI(pick_script=[[0]])
    selection = select_tests(ui, catalog, search="Sett")
    assert selection.paths == (catalog.files[2],)
    assert ui.recorded_picks[0].allow_multiple is True


def test_search_without_match_raises(catalog: TestCatalog) -> None:
    with pytest.raises(NoCandidatesFound):
        select_tests(HeadlessUI(), catalog, search="zzzzzzzzzz")


def test_tags_only_narrow_files(catalog: TestCatalog) -> None:
    selection = select_tests(HeadlessUI(), catalog, tags=["unit"])
    assert list(selection.paths) == catalog.files[1:]
    assert selection.tags == ("unit",)


def test_unknown_tags_warn_but_pass_through(catalog: TestCatalog) -> None:
    ui = HeadlessUI()
    selection = select_tests(ui, catalog, tags=["Nightly"], exclude_tags=["Flaky"])
    assert selection.tags == ("Nightly",)
    assert selection.exclude_tags == ("Flaky",)
    assert list(selection.paths) == catalog.files
    warnings = [m for m in ui.recorded_messages if m.startswith("WARNING:")]
    assert len(warnings) == 2
    assert "Nightly" in warnings[0]


def test_no_hint_and_not_interactive_raises_flow_error(catalog: TestCatalog) -> None:
    with pytest.raises(UIFlowError) as excinfo:
        select_tests(HeadlessUI(), catalog)
    assert "--path" in str(excinfo.value)
    assert excinfo.value.exit_code == 1


def test_empty_catalog_raises_flow_error(tmp_path: Path) -> None:
    with pytest.raises(UIFlowError):
        select_tests(HeadlessUI(), TestCatalog(root=tmp_path), run_all=True)


def test_interactive_files_then_tags_from_those_files(catalog: TestCatalog) -> None:
    ui = HeadlessUI(pick_script=[[_mode_index(MODE_FILES_AND_TAGS)], [1, 2], [1]])
    selection = select_tests(ui, catalog, interactive=True, exclude_tags=["Slow"])
    assert selection.paths == (catalog.files[1], catalog.files[2])
    # tags offered only from the chosen files, sorted case-insensitively
    assert ui.recorded_picks[2].offered == ["Config", "Unit"]
    assert selection.tags == ("Unit",)
    assert selection.exclude_tags == ("Slow",)


def test_interactive_tags_mode(catalog: TestCatalog) -> None:
    ui = HeadlessUI(pick_script=[[_mode_index("tags")], [2]])
    selection = select_tests(ui, catalog, interactive=True)
    assert ui.recorded_picks[1].offered == ["Config", "Graph", "Slow", "Unit"]
    assert selection.tags == ("Slow",)
    assert selection.paths == (catalog.files[0],)


def test_interactive_all_mode(catalog: TestCatalog) -> None:
    ui = HeadlessUI(pick_script=[[_mode_index("all")]])
    selection = select_tests(ui, catalog, interactive=True)
    assert list(selection.paths) == catalog.files


def test_interactive_cancel_at_mode_menu(catalog: TestCatalog) -> None:
    with pytest.raises(UserCanceled):
        select_tests(HeadlessUI(), catalog, interactive=True)


def test_interactive_cancel_at_file_menu(catalog: TestCatalog) -> None:
    ui = HeadlessUI(pick_script=[[_mode_index("files")], []])
    with pytest.raises(UserCanceled):
        select_tests(ui, catalog, interactive=True)


def test_ambiguous_search_without_prompt_lists_candidates(catalog: TestCatalog) -> None:
    ui = HeadlessUI()
    with pytest.raises(UIFlowError) as excinfo:
        select_tests(ui, catalog, search="Tests", can_prompt=False)
    assert excinfo.value.exit_code == 1
    message = str(excinfo.value)
    assert "Logging.Tests.ps1" in message and "Settings.Tests.ps1" in message
    assert ui.recorded_picks == []


def test_single_fuzzy_survivor_is_taken_without_prompt(catalog: TestCatalog) -> None:
    ui = HeadlessUI()
    selection = select_tests(ui, catalog, search="Sett", can_prompt=False)
    assert selection.paths == (catalog.files[2],)
    assert ui.recorded_picks == []
