"""
UI package providing Rich-based and headless renderers.
"""

from ops_ui.tui.system.facade import TUI
from ops_ui.tui.system.headless import HeadlessUI
from ops_ui.tui.system.protocols import UI, Form, Picker, Presenter, Progress, TablePresenter

__all__ = [
    "UI",
    "TUI",
    "HeadlessUI",
    "Picker",
    "TablePresenter",
    "Presenter",
    "Form",
    "Progress",
]
