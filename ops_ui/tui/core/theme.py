from __future__ import annotations

from rich.markup import escape

RICH_ACCENT = "blue"
RICH_ACCENT_BOLD = f"bold {RICH_ACCENT}"
RICH_BORDER_STYLE = RICH_ACCENT

RICH_STATUS_COLORS: dict[str, str] = {
    "Failed": "red",
    "Passed": "green",
    "Skipped": "yellow",
    "NotRun": "dim",
}

SEVERITY_COLORS: dict[str, str] = {
    "Error": "red",
    "ParseError": "red",
    "Warning": "yellow",
    "Information": "cyan",
}

PRESENTER_TEMPLATES: dict[str, str] = {
    "info": "[blue]ℹ[/blue] {message}",
    "warning": "[yellow]⚠ {message}[/yellow]",
    "error": "[red]✖ {message}[/red]",
    "success": "[green]✔ {message}[/green]",
}

PICKER_CHECKED = r"[green]\[x][/green]"
PICKER_UNCHECKED = "[dim][ ][/dim]"


def panel_title(text: str) -> str:
    return f"[{RICH_ACCENT_BOLD}]{escape(text)}[/{RICH_ACCENT_BOLD}]"


def status_text(status: str) -> str:
    color = RICH_STATUS_COLORS.get(status)
    if not color:
        return escape(status)
    return f"[{color}]{status}[/{color}]"


def severity_text(severity: str) -> str:
    color = SEVERITY_COLORS.get(severity)
    if not color:
        return escape(severity)
    return f"[{color}]{severity}[/{color}]"


def presenter_message(level: str, message: str) -> str:
    """Wrap plain message text in the level template; the text is never markup."""
    template = PRESENTER_TEMPLATES.get(level, "{message}")
    return template.format(message=escape(message))
