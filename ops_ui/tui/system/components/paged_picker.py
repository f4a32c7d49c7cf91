"""Line-oriented paged picker.

The picker renders one page of items at a time and reads a command per
line. Command handling is kept in ``apply_command`` so the selection state
machine can be driven without a console.
"""

from __future__ import annotations

import math
import sys
from dataclasses import dataclass, field, replace
from typing import Callable, Sequence, TypeVar

from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt
from rich.table import Table

from ops_common.errors import InvalidInput
from ops_ui.tui.core import theme
from ops_ui.tui.system.protocols import DEFAULT_PAGE_SIZE, Picker

T = TypeVar("T")

_NAVIGATION = {"p", "f", "n", "l"}
_MULTI_ONLY = {"a", "c", "d"}


@dataclass(frozen=True)
class PageState:
    """Current page and selected indices for one picker invocation."""

    total: int
    page_size: int
    page_index: int = 0
    selected: frozenset[int] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if self.page_size < 1:
            raise ValueError("page_size must be >= 1")

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self.total / self.page_size))

    @property
    def page_range(self) -> range:
        start = self.page_index * self.page_size
        return range(start, min(start + self.page_size, self.total))

    @property
    def is_first_page(self) -> bool:
        return self.page_index == 0

    @property
    def is_last_page(self) -> bool:
        return self.page_index >= self.total_pages - 1

    def goto(self, page_index: int) -> "PageState":
        if not 0 <= page_index < self.total_pages:
            return self
        return replace(self, page_index=page_index)

    def toggle(self, index: int) -> "PageState":
        if index in self.selected:
            return replace(self, selected=self.selected - {index})
        return replace(self, selected=self.selected | {index})

    def select_page(self) -> "PageState":
        return replace(self, selected=self.selected | frozenset(self.page_range))

    def clear(self) -> "PageState":
        return replace(self, selected=frozenset())


@dataclass
class CommandResult:
    state: PageState
    finished: bool = False
    canceled: bool = False
    picked: list[int] = field(default_factory=list)
    messages: list[tuple[str, str]] = field(default_factory=list)


def _navigate(state: PageState, command: str) -> tuple[PageState, str | None]:
    if command in {"p", "f"}:
        if state.is_first_page:
            return state, "Already on the first page."
        target = state.page_index - 1 if command == "p" else 0
    else:
        if state.is_last_page:
            return state, "Already on the last page."
        target = state.page_index + 1 if command == "n" else state.total_pages - 1
    return state.goto(target), None


def _parse_indices(raw: str, total: int) -> tuple[list[int], list[str]]:
    """Split a comma list into 0-based indices and rejected tokens."""
    valid: list[int] = []
    invalid: list[str] = []
    for token in raw.split(","):
        token = token.strip()
        if not token.isdecimal():
            invalid.append(token or "<empty>")
            continue
        number = int(token)
        if 1 <= number <= total:
            valid.append(number - 1)
        else:
            invalid.append(token)
    return valid, invalid


def _classify(command: str, allow_multiple: bool) -> str:
    if command in {"q", "0"}:
        return "cancel"
    if command in _NAVIGATION:
        return "navigate"
    if command in _MULTI_ONLY and allow_multiple:
        return command
    if command and (command[0].isdecimal() or "," in command):
        return "indices"
    raise InvalidInput(f"Unrecognized command: {command!r}", context={"command": command})


def apply_command(state: PageState, raw: str, *, allow_multiple: bool) -> CommandResult:
    """Apply one typed command to the picker state and report the effect."""
    command = raw.strip().lower()
    try:
        kind = _classify(command, allow_multiple)
    except InvalidInput as exc:
        return CommandResult(state=state, messages=[("warning", str(exc))])

    if kind == "cancel":
        return CommandResult(state=state, canceled=True)

    if kind == "navigate":
        new_state, note = _navigate(state, command)
        messages = [("info", note)] if note else []
        return CommandResult(state=new_state, messages=messages)

    if kind == "a":
        return CommandResult(state=state.select_page())

    if kind == "c":
        return CommandResult(state=state.clear(), messages=[("info", "Selection cleared.")])

    if kind == "d":
        if not state.selected:
            return CommandResult(
                state=state,
                messages=[("warning", "Nothing selected yet; pick at least one item.")],
            )
        return CommandResult(state=state, finished=True, picked=sorted(state.selected))

    indices, rejected = _parse_indices(command, state.total)
    messages = [("warning", f"Invalid selection: {token}") for token in rejected]
    if not allow_multiple:
        if indices:
            return CommandResult(
                state=state, finished=True, picked=[indices[0]], messages=messages
            )
        return CommandResult(state=state, messages=messages)

    new_state = state
    for index in indices:
        new_state = new_state.toggle(index)
    return CommandResult(state=new_state, messages=messages)


def _help_line(state: PageState, allow_multiple: bool) -> str:
    parts = ["[b]<n>[,<n>][/b] pick" if not allow_multiple else "[b]<n>[,<n>][/b] toggle"]
    if allow_multiple:
        parts += ["[b]a[/b] page", "[b]c[/b] clear", "[b]d[/b] done"]
    if state.total_pages > 1:
        parts += ["[b]f/p[/b] first/prev", "[b]n/l[/b] next/last"]
    parts.append("[b]q[/b] cancel")
    return "  ".join(parts)


class _PagedPickerApp:
    def __init__(
        self,
        items: Sequence[T],
        *,
        title: str,
        display: Callable[[T], str],
        allow_multiple: bool,
        page_size: int,
        console: Console,
        read_line: Callable[[str], str],
    ) -> None:
        self.items = list(items)
        self.title = title
        self.display = display
        self.allow_multiple = allow_multiple
        self.console = console
        self.read_line = read_line
        self.state = PageState(total=len(self.items), page_size=page_size)

    def render(self) -> None:
        state = self.state
        title = theme.panel_title(self.title)
        if state.total_pages > 1:
            title += f" [dim](page {state.page_index + 1}/{state.total_pages})[/dim]"
        table = Table(title=title, border_style=theme.RICH_BORDER_STYLE, show_header=False)
        table.add_column("#", justify="right", style="bold")
        if self.allow_multiple:
            table.add_column("", no_wrap=True)
        table.add_column("Item", overflow="fold")
        for index in state.page_range:
            row = [str(index + 1)]
            if self.allow_multiple:
                checked = index in state.selected
                row.append(theme.PICKER_CHECKED if checked else theme.PICKER_UNCHECKED)
            row.append(self.display(self.items[index]))
            table.add_row(*row)
        self.console.print(table)
        if self.allow_multiple:
            self.console.print(f"[dim]{len(state.selected)} selected[/dim]")
        self.console.print(_help_line(state, self.allow_multiple))

    def run(self) -> list[T]:
        while True:
            self.render()
            raw = self.read_line("Selection")
            result = apply_command(self.state, raw, allow_multiple=self.allow_multiple)
            for level, message in result.messages:
                self.console.print(theme.presenter_message(level, message))
            self.state = result.state
            if result.canceled:
                return []
            if result.finished:
                return [self.items[index] for index in result.picked]


def _default_display(item: object) -> str:
    title = getattr(item, "title", None)
    return escape(str(title) if title is not None else str(item))


class PagedPicker(Picker):
    """Rich console picker that pages through items and reads typed commands."""

    def __init__(
        self,
        console: Console | None = None,
        read_line: Callable[[str], str] | None = None,
    ) -> None:
        self._console = console or Console()
        self._read_line = read_line

    def _interactive(self) -> bool:
        if self._read_line is not None:
            return True
        return sys.stdin.isatty() and sys.stdout.isatty()

    def _prompt(self, label: str) -> str:
        return Prompt.ask(label, console=self._console, default="", show_default=False)

    def select(
        self,
        items: Sequence[T],
        *,
        title: str,
        display: Callable[[T], str] | None = None,
        allow_multiple: bool = False,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> list[T]:
        if not items:
            return []
        if not self._interactive():
            return []
        app = _PagedPickerApp(
            items,
            title=title,
            display=display or _default_display,
            allow_multiple=allow_multiple,
            page_size=page_size,
            console=self._console,
            read_line=self._read_line or self._prompt,
        )
        return app.run()

    def pick_one(
        self,
        items: Sequence[T],
        *,
        title: str,
        display: Callable[[T], str] | None = None,
    ) -> T | None:
        picked = self.select(items, title=title, display=display, allow_multiple=False)
        return picked[0] if picked else None

    def pick_many(
        self,
        items: Sequence[T],
        *,
        title: str,
        display: Callable[[T], str] | None = None,
    ) -> list[T]:
        return self.select(items, title=title, display=display, allow_multiple=True)
