"""Stable UI API surface."""

from __future__ import annotations

from ops_ui.cli import app, ctx_store, main
from ops_ui.flows.errors import UIFlowError
from ops_ui.flows.fuzzy import ResolutionKind, ResolvedSelection, resolve, score_candidate
from ops_ui.flows.selection import select_tests
from ops_ui.tui.system.components.paged_picker import PagedPicker, PageState, apply_command
from ops_ui.tui.system.headless import HeadlessUI
from ops_ui.tui.system.models import PickItem, TableModel

__all__ = [
    "app",
    "main",
    "ctx_store",
    "HeadlessUI",
    "PagedPicker",
    "PageState",
    "PickItem",
    "ResolutionKind",
    "ResolvedSelection",
    "TableModel",
    "UIFlowError",
    "apply_command",
    "resolve",
    "score_candidate",
    "select_tests",
]
