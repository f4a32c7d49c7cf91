from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Callable, Optional

from ops_common.api import configure_logging
from ops_graph.api import (
    EnvironmentContext,
    GraphClient,
    RenewalSettings,
    SubscriptionLifecycleManager,
    build_credential,
)
from ops_runner.api import PesterRunner, PwshExecutor, ScriptAnalyzer
from ops_ui.tui.system.facade import TUI
from ops_ui.tui.system.protocols import UI

LifecycleFactory = Callable[[EnvironmentContext, RenewalSettings], SubscriptionLifecycleManager]


def default_lifecycle_factory(
    context: EnvironmentContext, settings: RenewalSettings
) -> SubscriptionLifecycleManager:
    client = GraphClient(credential=build_credential(context, settings))
    return SubscriptionLifecycleManager(client, settings)


@dataclass
class UIContext:
    """Container for UI services and state, initialized lazily."""
    headless: bool = False

    # Lazily initialized services
    _ui: Optional[UI] = None
    _executor: Optional[PwshExecutor] = None
    _pester: Optional[PesterRunner] = None
    _analyzer: Optional[ScriptAnalyzer] = None
    lifecycle_factory: LifecycleFactory = default_lifecycle_factory

    @property
    def ui(self) -> UI:
        if self._ui is None:
            if self.headless:
                from ops_ui.tui.system.headless import HeadlessUI
                self._ui = HeadlessUI()
            else:
                self._ui = TUI()
        return self._ui

    @ui.setter
    def ui(self, value: UI):
        self._ui = value

    @property
    def can_prompt(self) -> bool:
        """Menus need a real terminal on both ends and no --headless."""
        return not self.headless and sys.stdin.isatty() and sys.stdout.isatty()

    @property
    def executor(self) -> PwshExecutor:
        if self._executor is None:
            self._executor = PwshExecutor()
        return self._executor

    @executor.setter
    def executor(self, value: PwshExecutor):
        self._executor = value

    @property
    def pester(self) -> PesterRunner:
        if self._pester is None:
            self._pester = PesterRunner(executor=self.executor)
        return self._pester

    @pester.setter
    def pester(self, value: PesterRunner):
        self._pester = value

    @property
    def analyzer(self) -> ScriptAnalyzer:
        if self._analyzer is None:
            self._analyzer = ScriptAnalyzer(executor=self.executor)
        return self._analyzer

    @analyzer.setter
    def analyzer(self, value: ScriptAnalyzer):
        self._analyzer = value


__all__ = [
    "UIContext",
    "configure_logging",
    "default_lifecycle_factory",
]
