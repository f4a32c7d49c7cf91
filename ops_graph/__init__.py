"""Graph change-notification subscription lifecycle."""

from ops_graph.api import (
    EnvironmentContext,
    GraphClient,
    LifecycleState,
    RenewalOutcome,
    RenewalSettings,
    SubscriptionLifecycleManager,
)

__all__ = [
    "EnvironmentContext",
    "GraphClient",
    "LifecycleState",
    "RenewalOutcome",
    "RenewalSettings",
    "SubscriptionLifecycleManager",
]
