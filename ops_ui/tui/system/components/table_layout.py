from __future__ import annotations

import shutil

from rich import box
from rich.console import Console
from rich.table import Table

from ops_ui.tui.system.models import TableModel

_MIN_TABLE_WIDTH = 60


def _console_width(console: Console) -> int:
    width = getattr(console.size, "width", 0) or 0
    if width > 0:
        return int(width)
    return shutil.get_terminal_size(fallback=(100, 24)).columns


def build_rich_table(
    model: TableModel,
    *,
    console: Console,
    show_lines: bool = False,
    border_style: str = "blue",
    header_style: str = "bold blue",
    title_style: str = "bold blue",
    box_style: box.Box = box.ROUNDED,
) -> Table:
    """
    Build a Rich Table from a TableModel bounded by the console width.

    The last column folds long values (paths, messages); the others are
    kept on one line.
    """
    width = max(_MIN_TABLE_WIDTH, _console_width(console) - 2)
    rich_table = Table(
        title=model.title,
        show_lines=show_lines,
        width=width,
        box=box_style,
        border_style=border_style,
        header_style=header_style,
        title_style=title_style,
    )
    last = len(model.columns) - 1
    for idx, column in enumerate(model.columns):
        if idx == last:
            rich_table.add_column(column, overflow="fold", ratio=1)
        else:
            rich_table.add_column(column, no_wrap=True, overflow="ellipsis")
    for row in model.rows:
        rich_table.add_row(*[str(cell) for cell in row])
    return rich_table
