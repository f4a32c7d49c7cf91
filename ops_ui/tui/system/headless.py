from contextlib import nullcontext
from dataclasses import dataclass, field
from typing import Any, Callable, ContextManager, Sequence, TypeVar

from ops_ui.tui.system.models import TableModel
from ops_ui.tui.system.protocols import (
    DEFAULT_PAGE_SIZE,
    UI,
    Form,
    Picker,
    Presenter,
    Progress,
    TablePresenter,
)

T = TypeVar("T")


@dataclass
class RecordedPick:
    title: str
    offered: list[Any]
    allow_multiple: bool
    picked: list[Any]


@dataclass
class HeadlessUI(UI):
    recorded_tables: list[TableModel] = field(default_factory=list)
    recorded_messages: list[str] = field(default_factory=list)
    recorded_picks: list[RecordedPick] = field(default_factory=list)

    # Scripted answers: each pick consumes the next list of 0-based indices.
    pick_script: list[Sequence[int]] = field(default_factory=list)
    next_confirm_response: bool = True

    def __post_init__(self) -> None:
        self.picker = _HeadlessPicker(self)
        self.tables = _HeadlessTablePresenter(self)
        self.present = _HeadlessPresenter(self)
        self.form = _HeadlessForm(self)
        self.progress = _HeadlessProgress(self)


class _HeadlessPicker(Picker):
    def __init__(self, ui: HeadlessUI):
        self._ui = ui

    def select(
        self,
        items: Sequence[T],
        *,
        title: str,
        display: Callable[[T], str] | None = None,
        allow_multiple: bool = False,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> list[T]:
        offered = list(items)
        picked: list[T] = []
        if offered and self._ui.pick_script:
            indices = [i for i in self._ui.pick_script.pop(0) if 0 <= i < len(offered)]
            if not allow_multiple:
                indices = indices[:1]
            picked = [offered[i] for i in sorted(set(indices))]
        self._ui.recorded_picks.append(RecordedPick(title, offered, allow_multiple, picked))
        return picked

    def pick_one(
        self,
        items: Sequence[T],
        *,
        title: str,
        display: Callable[[T], str] | None = None,
    ) -> T | None:
        picked = self.select(items, title=title, display=display)
        return picked[0] if picked else None

    def pick_many(
        self,
        items: Sequence[T],
        *,
        title: str,
        display: Callable[[T], str] | None = None,
    ) -> list[T]:
        return self.select(items, title=title, display=display, allow_multiple=True)


class _HeadlessTablePresenter(TablePresenter):
    def __init__(self, ui: HeadlessUI):
        self._ui = ui

    def show(self, table: TableModel) -> None:
        self._ui.recorded_tables.append(table)


class _HeadlessPresenter(Presenter):
    def __init__(self, ui: HeadlessUI):
        self._ui = ui

    def info(self, message: str) -> None:
        self._ui.recorded_messages.append(f"INFO: {message}")

    def warning(self, message: str) -> None:
        self._ui.recorded_messages.append(f"WARNING: {message}")

    def error(self, message: str) -> None:
        self._ui.recorded_messages.append(f"ERROR: {message}")

    def success(self, message: str) -> None:
        self._ui.recorded_messages.append(f"SUCCESS: {message}")

    def panel(self, message: str, title: str | None = None, border_style: str | None = None) -> None:
        self._ui.recorded_messages.append(f"PANEL: {title} - {message}")

    def rule(self, title: str) -> None:
        self._ui.recorded_messages.append(f"RULE: {title}")


class _HeadlessForm(Form):
    def __init__(self, ui: HeadlessUI):
        self._ui = ui

    def confirm(self, prompt: str, default: bool = True) -> bool:
        return self._ui.next_confirm_response


class _HeadlessProgress(Progress):
    def __init__(self, ui: HeadlessUI):
        self._ui = ui

    def status(self, message: str) -> ContextManager[None]:
        self._ui.recorded_messages.append(f"STATUS: {message}")
        return nullcontext()
