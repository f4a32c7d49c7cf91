"""
Command-line interface for ops-runbooks.

Runs Pester suites and PSScriptAnalyzer over PowerShell sources and keeps the
Graph change-notification subscription for the Event Grid partner topic alive.
"""

from __future__ import annotations

import typer

from ops_ui.cli.commands.lint import register_lint_command
from ops_ui.cli.commands.subscription import create_subscription_app
from ops_ui.cli.commands.test import create_test_app
from ops_ui.wiring.dependencies import UIContext, configure_logging

# Initialize global context (lazy)
ctx_store = UIContext()

test_app = create_test_app(ctx_store)
subscription_app = create_subscription_app(ctx_store)

app = typer.Typer(help="Operational runbooks: Pester tests, script analysis, Graph subscriptions.", no_args_is_help=True)


@app.callback(invoke_without_command=True)
def entry(
    ctx: typer.Context,
    headless: bool = typer.Option(
        False,
        "--headless",
        help="Force headless output and never prompt (useful in CI).",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug logging.",
    ),
) -> None:
    """Global entry point handling interactive vs headless modes."""
    configure_logging(debug=debug, force=True)
    ctx_store.headless = headless

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


register_lint_command(app, ctx_store)

app.add_typer(test_app, name="test")
app.add_typer(subscription_app, name="subscription")


def main() -> None:
    """Console script entrypoint (Typer app)."""
    app()


if __name__ == "__main__":
    main()
