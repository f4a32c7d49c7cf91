"""Workflows for choosing which Pester tests to run."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from rich.markup import escape

from ops_common.errors import UserCanceled
from ops_runner.api import TestCatalog, TestSelection
from ops_ui.flows.errors import UIFlowError
from ops_ui.flows.fuzzy import ResolutionKind, resolve
from ops_ui.tui.system.models import PickItem
from ops_ui.tui.system.protocols import UI

logger = logging.getLogger(__name__)

MODE_ALL = "all"
MODE_FILES = "files"
MODE_TAGS = "tags"
MODE_FILES_AND_TAGS = "files+tags"

MODES = [
    PickItem(id=MODE_ALL, title="All tests", description="Run every discovered test file"),
    PickItem(id=MODE_FILES, title="Files", description="Pick test files"),
    PickItem(id=MODE_TAGS, title="Tags", description="Pick tags across all files"),
    PickItem(
        id=MODE_FILES_AND_TAGS,
        title="Files + Tags",
        description="Pick files, then tags declared in them",
    ),
]

NO_SELECTION_HINT = (
    "No tests selected. Pass --path, --tag or --all, "
    "or use --interactive from a terminal."
)


def _item_label(item: PickItem) -> str:
    if item.description:
        return f"{escape(item.title)} [dim]- {escape(item.description)}[/dim]"
    return escape(item.title)


def warn_unknown_tags(ui: UI, catalog: TestCatalog, tags: Sequence[str]) -> None:
    """Tell the user about tags no test declares; they are still passed on."""
    known = {tag.lower() for tag in catalog.tags}
    for tag in tags:
        if tag.lower() not in known:
            ui.present.warning(f"Tag '{tag}' is not declared by any discovered test.")


def _resolve_paths(ui: UI, catalog: TestCatalog, search: str, can_prompt: bool) -> list[Path]:
    direct = Path(search).expanduser()
    if direct.is_file():
        return [direct]
    resolved = resolve(search, catalog.files, picker=ui.picker, allow_multiple=True, interactive=can_prompt)
    if resolved.kind is ResolutionKind.AMBIGUOUS:
        names = ", ".join(catalog.display_path(path) for path in resolved.items)
        raise UIFlowError(f"'{search}' matches several test files: {names}. Pass a more specific --path.")
    return list(resolved.require())


def _pick_files(ui: UI, catalog: TestCatalog) -> list[Path]:
    files = ui.picker.pick_many(
        catalog.files,
        title="Select test files",
        display=lambda path: escape(catalog.display_path(path)),
    )
    if not files:
        raise UserCanceled("No test files picked.")
    return files


def _pick_tags(ui: UI, tags: list[str], title: str) -> list[str]:
    picked = ui.picker.pick_many(tags, title=title, display=escape)
    if not picked:
        raise UserCanceled("No tags picked.")
    return picked


def _interactive_selection(
    ui: UI,
    catalog: TestCatalog,
    exclude_tags: tuple[str, ...],
) -> TestSelection:
    mode = ui.picker.pick_one(MODES, title="What do you want to run?", display=_item_label)
    if mode is None:
        raise UserCanceled("Test selection canceled.")

    if mode.id == MODE_ALL:
        return TestSelection(paths=tuple(catalog.files), exclude_tags=exclude_tags)

    if mode.id == MODE_FILES:
        return TestSelection(paths=tuple(_pick_files(ui, catalog)), exclude_tags=exclude_tags)

    if mode.id == MODE_TAGS:
        if not catalog.tags:
            raise UIFlowError("No tags are declared by the discovered tests.")
        tags = _pick_tags(ui, catalog.tags, "Select tags")
        return TestSelection(
            paths=tuple(catalog.files_with_tags(tags)),
            tags=tuple(tags),
            exclude_tags=exclude_tags,
        )

    files = _pick_files(ui, catalog)
    available = catalog.tags_for(files)
    if not available:
        ui.present.info("The selected files declare no tags; running them unfiltered.")
        return TestSelection(paths=tuple(files), exclude_tags=exclude_tags)
    tags = _pick_tags(ui, available, "Select tags from the chosen files")
    return TestSelection(paths=tuple(files), tags=tuple(tags), exclude_tags=exclude_tags)


def select_tests(
    ui: UI,
    catalog: TestCatalog,
    *,
    search: str | None = None,
    tags: Sequence[str] = (),
    exclude_tags: Sequence[str] = (),
    interactive: bool = False,
    run_all: bool = False,
    can_prompt: bool = True,
) -> TestSelection:
    """Turn command-line hints and, when allowed, menus into a ``TestSelection``.

    ``UserCanceled`` and ``NoCandidatesFound`` propagate to the caller so it
    can report them; ``UIFlowError`` marks a selection that cannot be made,
    including a ``search`` that stays ambiguous when ``can_prompt`` is off.
    """
    if not catalog.files:
        raise UIFlowError(f"No test files found under {catalog.root}.")

    include = tuple(tags)
    exclude = tuple(exclude_tags)
    warn_unknown_tags(ui, catalog, include + exclude)

    if run_all:
        return TestSelection(paths=tuple(catalog.files), tags=include, exclude_tags=exclude)

    if search:
        paths = _resolve_paths(ui, catalog, search, can_prompt)
        logger.info("Resolved '%s' to %d file(s)", search, len(paths))
        return TestSelection(paths=tuple(paths), tags=include, exclude_tags=exclude)

    if include:
        paths = catalog.files_with_tags(include) or list(catalog.files)
        return TestSelection(paths=tuple(paths), tags=include, exclude_tags=exclude)

    if interactive:
        return _interactive_selection(ui, catalog, exclude)

    raise UIFlowError(NO_SELECTION_HINT)
