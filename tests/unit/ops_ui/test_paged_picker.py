"""Tests for the line-oriented paged picker."""

from __future__ import annotations

import io
import math
from types import SimpleNamespace

import pytest
from rich.console import Console

from ops_ui.tui.system.components import paged_picker
from ops_ui.tui.system.components.paged_picker import PagedPicker, PageState, apply_command


pytestmark = pytest.mark.unit_ui


def _scripted(*lines: str):
    answers = list(lines)
    prompts: list[str] = []

    def read_line(label: str) -> str:
        prompts.append(label)
        return answers.pop(0)

    read_line.prompts = prompts  # type: ignore[attr-defined]
    return read_line


def _picker(*lines: str) -> PagedPicker:
    console = Console(file=io.StringIO(), width=100, force_terminal=False)
    return PagedPicker(console=console, read_line=_scripted(*lines))


@pytest.mark.parametrize("total, page_size", [(1, 20), (20, 20), (21, 20), (45, 10), (7, 3)])
def test_total_pages_is_ceiling(total: int, page_size: int) -> None:
    state = PageState(total=total, page_size=page_size)
    assert state.total_pages == math.ceil(total / page_size)


def test_first_and_last_reach_bounds() -> None:
    state = PageState(total=45, page_size=10)
    last = apply_command(state, "l", allow_multiple=True).state
    assert last.page_index == 4
    assert list(last.page_range) == list(range(40, 45))
    first = apply_command(last, "F", allow_multiple=True).state
    assert first.page_index == 0


def test_prev_and_next_stay_in_bounds() -> None:
    state = PageState(total=25, page_size=10)
    result = apply_command(state, "p", allow_multiple=False)
    assert result.state.page_index == 0
    assert result.messages == [("info", "Already on the first page.")]

    for _ in range(5):
        state = apply_command(state, " n ", allow_multiple=False).state
    assert state.page_index == 2
    assert apply_command(state, "n", allow_multiple=False).messages == [("info", "Already on the last page.")]


def test_goto_out_of_range_is_noop() -> None:
    state = PageState(total=5, page_size=2)
    assert state.goto(3) is state
    assert state.goto(-1) is state


def test_toggle_twice_is_involution() -> None:
    state = PageState(total=30, page_size=10, selected=frozenset({4}))
    once = apply_command(state, "3", allow_multiple=True).state
    assert once.selected == {2, 4}
    twice = apply_command(once, "3", allow_multiple=True).state
    assert twice.selected == state.selected


def test_duplicate_index_in_one_command_is_noop() -> None:
    state = PageState(total=5, page_size=5)
    assert apply_command(state, "2,2", allow_multiple=True).state.selected == frozenset()


def test_select_all_touches_only_current_page() -> None:
    state = PageState(total=25, page_size=10)
    state = apply_command(state, "n", allow_multiple=True).state
    state = apply_command(state, "a", allow_multiple=True).state
    assert state.selected == frozenset(range(10, 20))


def test_clear_removes_selections_on_every_page() -> None:
    state = PageState(total=25, page_size=10, selected=frozenset({1, 15, 24}))
    result = apply_command(state, "c", allow_multiple=True)
    assert result.state.selected == frozenset()
    assert result.messages == [("info", "Selection cleared.")]


def test_invalid_tokens_are_reported_and_ignored() -> None:
    state = PageState(total=5, page_size=5)
    result = apply_command(state, "2,9,x", allow_multiple=True)
    assert result.state.selected == {1}
    assert ("warning", "Invalid selection: 9") in result.messages
    assert ("warning", "Invalid selection: x") in result.messages


@pytest.mark.parametrize("raw", ["\u00b2", "1,\u00b2", "\u00b2,3"])
def test_non_ascii_digits_are_invalid_not_fatal(raw: str) -> None:
    state = PageState(total=5, page_size=5, selected=frozenset({4}))
    result = apply_command(state, raw, allow_multiple=True)
    assert any(level == "warning" for level, _ in result.messages)
    assert 4 in result.state.selected
    assert not result.finished and not result.canceled


def test_unknown_command_keeps_state() -> None:
    state = PageState(total=5, page_size=5, selected=frozenset({0}))
    result = apply_command(state, "zzz", allow_multiple=True)
    assert result.state == state
    assert not result.finished and not result.canceled
    assert result.messages[0][0] == "warning"


def test_multi_only_commands_rejected_in_single_mode() -> None:
    state = PageState(total=5, page_size=5)
    for command in ("a", "c", "d"):
        result = apply_command(state, command, allow_multiple=False)
        assert result.state == state
        assert not result.finished
        assert result.messages[0][0] == "warning"


def test_done_without_selection_warns_and_continues() -> None:
    state = PageState(total=5, page_size=5)
    result = apply_command(state, "d", allow_multiple=True)
    assert not result.finished
    assert result.messages[0][0] == "warning"


def test_cancel_commands() -> None:
    state = PageState(total=5, page_size=5, selected=frozenset({1}))
    for command in ("q", "Q", "0", " 0 "):
        assert apply_command(state, command, allow_multiple=True).canceled


def test_single_select_returns_first_valid_index() -> None:
    state = PageState(total=5, page_size=5)
    result = apply_command(state, "9,4,2", allow_multiple=False)
    assert result.finished
    assert result.picked == [3]


def test_picker_returns_items_in_ascending_order() -> None:
    items = [f"item-{i}" for i in range(30)]
    picker = _picker("25", "n", "12", "3", "d")
    picked = picker.select(items, title="Pick", allow_multiple=True, page_size=10)
    assert picked == ["item-2", "item-11", "item-24"]


def test_picker_cancel_discards_selection() -> None:
    picker = _picker("1,2", "q")
    assert picker.pick_many(["a", "b", "c"], title="Pick") == []


def test_picker_pick_one_recovers_from_bad_input() -> None:
    picker = _picker("huh", "7", "2")
    assert picker.pick_one(["a", "b", "c"], title="Pick") == "b"


def test_empty_items_never_prompt() -> None:
    read_line = _scripted()
    picker = PagedPicker(console=Console(file=io.StringIO()), read_line=read_line)
    assert picker.select([], title="Pick") == []
    assert read_line.prompts == []  # type: ignore[attr-defined]


def test_non_tty_returns_empty_without_prompting(monkeypatch) -> None:
    fake_sys = SimpleNamespace(
        stdin=SimpleNamespace(isatty=lambda: False),
        stdout=SimpleNamespace(isatty=lambda: True),
    )
    monkeypatch.setattr(paged_picker, "sys", fake_sys)
    picker = PagedPicker(console=Console(file=io.StringIO()))
    assert picker.select(["a"], title="Pick") == []


def test_display_callable_is_used_for_rendering() -> None:
    buffer = io.StringIO()
    picker = PagedPicker(console=Console(file=buffer, width=100), read_line=_scripted("1"))
    picker.pick_one([{"name": "alpha"}], title="Pick", display=lambda item: item["name"].upper())
    assert "ALPHA" in buffer.getvalue()


def test_markup_like_input_is_reported_as_text() -> None:
    buffer = io.StringIO()
    picker = PagedPicker(
        console=Console(file=buffer, width=100),
        read_line=_scripted("[/x]", "[bold]2", "q"),
    )
    assert picker.pick_many(["a", "b"], title="Pick") == []
    output = buffer.getvalue()
    assert "[/x]" in output
    assert "[bold]2" in output


def test_bracketed_item_names_render_verbatim() -> None:
    buffer = io.StringIO()
    picker = PagedPicker(console=Console(file=buffer, width=100), read_line=_scripted("1"))
    picked = picker.pick_one(["[slow]Deploy.Tests.ps1", "Other.Tests.ps1"], title="Files [v2]")
    assert picked == "[slow]Deploy.Tests.ps1"
    output = buffer.getvalue()
    assert "[slow]Deploy.Tests.ps1" in output
    assert "Files [v2]" in output
