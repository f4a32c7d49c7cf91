from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Optional

import typer

from ops_common.errors import AuthenticationFailure, ConfigurationError, DiscoveryError
from ops_graph.api import (
    EnvironmentContext,
    LifecycleState,
    RenewalOutcome,
    RenewalSettings,
    SubscriptionLifecycleManager,
    load_renewal_settings,
)
from ops_graph.models import format_graph_datetime
from ops_ui.tui.system.models import TableModel
from ops_ui.wiring.dependencies import UIContext

EXIT_FATAL = 1
EXIT_AUTH = 2

_SETTINGS_OPTION_HELP = "TOML file with a [renewal] table (local runs only)."


def _fmt(value: datetime | None) -> str:
    return format_graph_datetime(value) if value is not None else "-"


def _outcome_table(outcome: RenewalOutcome) -> TableModel:
    hours = outcome.hours_until_expiration
    rows = [
        ["State", outcome.state.value],
        ["Planned action", outcome.action.value],
        ["Dry run", "yes" if outcome.dry_run else "no"],
        ["Subscription", outcome.subscription_id or "-"],
        ["Previous expiration", _fmt(outcome.previous_expiration)],
        ["New expiration", _fmt(outcome.new_expiration)],
        ["Hours left", f"{hours:.2f}" if hours is not None else "-"],
    ]
    if outcome.failure is not None:
        rows.append(["Failure", outcome.failure.error_type])
    return TableModel(title="Subscription Renewal", columns=["Field", "Value"], rows=rows)


def _load(ctx: UIContext, settings_file: Optional[Path]) -> tuple[EnvironmentContext, RenewalSettings]:
    try:
        environment = EnvironmentContext.detect(settings_file=settings_file)
        return environment, load_renewal_settings(environment)
    except ConfigurationError as exc:
        ctx.ui.present.error(str(exc))
        raise typer.Exit(EXIT_FATAL)


def _manager(ctx: UIContext, settings_file: Optional[Path]) -> SubscriptionLifecycleManager:
    environment, settings = _load(ctx, settings_file)
    ctx.ui.present.info(f"Environment: {environment.kind.value}")
    return ctx.lifecycle_factory(environment, settings)


def create_subscription_app(ctx: UIContext) -> typer.Typer:
    """Build the subscription Typer app, wired to the given context."""
    app = typer.Typer(
        help="Keep the Graph change-notification subscription alive.",
        no_args_is_help=True,
    )

    @app.command("renew")
    def subscription_renew(
        dry_run: bool = typer.Option(
            False,
            "--dry-run",
            help="Report the planned action without creating or renewing.",
        ),
        settings_file: Optional[Path] = typer.Option(
            None,
            "--settings",
            envvar="OPS_RENEWAL_SETTINGS",
            help=_SETTINGS_OPTION_HELP,
        ),
        direct_id: Optional[str] = typer.Option(
            None,
            "--direct-id",
            help="Graph subscription id; skips discovery (overrides GRAPH_SUBSCRIPTION_ID).",
        ),
        threshold: Optional[float] = typer.Option(
            None,
            "--threshold",
            help="Renew when fewer hours than this remain (overrides RENEWAL_THRESHOLD_HOURS).",
        ),
    ) -> None:
        """Create the subscription if missing, renew it if close to expiring."""
        if threshold is not None and threshold <= 0:
            ctx.ui.present.error("--threshold must be greater than zero.")
            raise typer.Exit(EXIT_FATAL)

        manager = _manager(ctx, settings_file)
        try:
            outcome = manager.ensure_subscription_fresh(
                direct_id=direct_id,
                renewal_threshold_hours=threshold,
                dry_run=dry_run,
            )
        except AuthenticationFailure as exc:
            ctx.ui.present.error(str(exc))
            raise typer.Exit(EXIT_AUTH)
        except DiscoveryError as exc:
            ctx.ui.present.error(str(exc))
            raise typer.Exit(EXIT_FATAL)

        ctx.ui.present.panel("\n".join(outcome.report), title="Renewal report")
        ctx.ui.tables.show(_outcome_table(outcome))

        if outcome.state in (LifecycleState.RENEWAL_FAILED, LifecycleState.CREATION_FAILED):
            ctx.ui.present.warning(f"{outcome.state.value}: {outcome.failure}")
        elif outcome.dry_run:
            ctx.ui.present.info("Dry run: no changes were made.")
        else:
            ctx.ui.present.success(outcome.state.value)

    @app.command("status")
    def subscription_status(
        settings_file: Optional[Path] = typer.Option(
            None,
            "--settings",
            envvar="OPS_RENEWAL_SETTINGS",
            help=_SETTINGS_OPTION_HELP,
        ),
        direct_id: Optional[str] = typer.Option(
            None,
            "--direct-id",
            help="Graph subscription id; skips discovery.",
        ),
    ) -> None:
        """Show the current subscription without changing it."""
        manager = _manager(ctx, settings_file)
        try:
            manager.api.authenticate()
            subscription = manager.discover(direct_id or manager.settings.graph_subscription_id)
        except AuthenticationFailure as exc:
            ctx.ui.present.error(str(exc))
            raise typer.Exit(EXIT_AUTH)
        except DiscoveryError as exc:
            ctx.ui.present.error(str(exc))
            raise typer.Exit(EXIT_FATAL)

        if subscription is None:
            ctx.ui.present.warning("No matching subscription found.")
            return

        hours = (subscription.expiration - manager.clock()).total_seconds() / 3600
        threshold = manager.settings.renewal_threshold_hours
        rows = [
            ["Id", subscription.id],
            ["Resource", subscription.resource],
            ["Change type", subscription.change_type or "-"],
            ["Notification URL", subscription.notification_url],
            ["Expiration", _fmt(subscription.expiration)],
            ["Hours left", f"{hours:.2f}"],
            ["Renewal due", "yes" if hours < threshold else "no"],
        ]
        ctx.ui.tables.show(TableModel(title="Graph Subscription", columns=["Field", "Value"], rows=rows))

    return app
