from typing import Any, Callable, ContextManager, Protocol, Sequence, TypeVar

from ops_ui.tui.system.models import TableModel

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 20


class TablePresenter(Protocol):
    def show(self, table: TableModel) -> None: ...


class Picker(Protocol):
    """Choose items from a list. ``display`` returns rich markup; callers escape raw text."""

    def select(
        self,
        items: Sequence[T],
        *,
        title: str,
        display: Callable[[T], str] | None = None,
        allow_multiple: bool = False,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> list[T]: ...

    def pick_one(
        self,
        items: Sequence[T],
        *,
        title: str,
        display: Callable[[T], str] | None = None,
    ) -> T | None: ...

    def pick_many(
        self,
        items: Sequence[T],
        *,
        title: str,
        display: Callable[[T], str] | None = None,
    ) -> list[T]: ...


class Presenter(Protocol):
    def info(self, message: str) -> None: ...
    def warning(self, message: str) -> None: ...
    def error(self, message: str) -> None: ...
    def success(self, message: str) -> None: ...
    def panel(self, message: str, title: str | None = None, border_style: str | None = None) -> None: ...
    def rule(self, title: str) -> None: ...


class Form(Protocol):
    def confirm(self, prompt: str, default: bool = True) -> bool: ...


class Progress(Protocol):
    def status(self, message: str) -> ContextManager[Any]: ...


class UI(Protocol):
    picker: Picker
    tables: TablePresenter
    present: Presenter
    form: Form
    progress: Progress
