"""Errors raised by selection flows and turned into exit codes by the CLI."""

from __future__ import annotations


class UIFlowError(RuntimeError):
    """A flow that cannot continue, e.g. nothing to select or no selection given.

    The CLI prints the message as an error and exits with ``exit_code``.
    """

    def __init__(self, message: str, exit_code: int = 1) -> None:
        super().__init__(message)
        self.exit_code = exit_code

    def __repr__(self) -> str:
        return f"UIFlowError({str(self)!r}, exit_code={self.exit_code})"
