from rich.console import Console

from ops_ui.tui.system.components.form import RichForm
from ops_ui.tui.system.components.paged_picker import PagedPicker
from ops_ui.tui.system.components.presenter import RichPresenter
from ops_ui.tui.system.components.progress import RichProgress
from ops_ui.tui.system.components.table import RichTablePresenter
from ops_ui.tui.system.protocols import UI, Form, Picker, Presenter, Progress, TablePresenter


class TUI(UI):
    def __init__(self, console: Console | None = None):
        self._console = console or Console()
        self.picker: Picker = PagedPicker(self._console)
        self.tables: TablePresenter = RichTablePresenter(self._console)
        self.present: Presenter = RichPresenter(self._console)
        self.form: Form = RichForm(self._console)
        self.progress: Progress = RichProgress(self._console)
