"""Public API surface for ops_graph."""

from ops_graph.auth import build_credential
from ops_graph.client import GraphClient
from ops_graph.lifecycle import (
    MAX_SUBSCRIPTION_LIFETIME,
    SubscriptionLifecycleManager,
    classify_renewal_failure,
)
from ops_graph.models import LifecycleState, PlannedAction, RenewalOutcome, SubscriptionResource
from ops_graph.settings import (
    EnvironmentContext,
    EnvironmentKind,
    RenewalSettings,
    load_renewal_settings,
)

__all__ = [
    "EnvironmentContext",
    "EnvironmentKind",
    "GraphClient",
    "LifecycleState",
    "MAX_SUBSCRIPTION_LIFETIME",
    "PlannedAction",
    "RenewalOutcome",
    "RenewalSettings",
    "SubscriptionLifecycleManager",
    "SubscriptionResource",
    "build_credential",
    "classify_renewal_failure",
    "load_renewal_settings",
]
