"""Keep the Graph change-notification subscription for the partner topic alive.

One invocation authenticates, finds the existing subscription (by id or by
scanning), then creates it, renews it, or leaves it alone depending on how
close it is to expiring. Dry runs report the decision without mutating.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Protocol

from ops_common.errors import (
    DiscoveryError,
    GraphApiError,
    OpsError,
    ResourceNotFoundOrForeign,
    TransientCallFailure,
    error_to_payload,
    wrap_error,
)
from ops_graph.models import (
    LifecycleState,
    PlannedAction,
    RenewalOutcome,
    SubscriptionResource,
    format_graph_datetime,
)
from ops_graph.settings import RenewalSettings

logger = logging.getLogger(__name__)

# Graph caps directory-resource subscriptions at just under three days.
MAX_SUBSCRIPTION_LIFETIME = timedelta(minutes=4230)
EVENT_GRID_SCHEME = "eventgrid:"

_GONE_OR_FOREIGN_CODES = frozenset(
    {
        "resourcenotfound",
        "itemnotfound",
        "request_resourcenotfound",
        "forbidden",
        "accessdenied",
        "authorization_requestdenied",
    }
)
_GONE_OR_FOREIGN_STATUSES = frozenset({403, 404})
_GONE_OR_FOREIGN_PHRASES = (
    "not found",
    "does not exist",
    "expired",
    "different",
    "owner",
    "belongs to",
)


class SubscriptionApi(Protocol):
    def authenticate(self) -> None: ...
    def list_subscriptions(self) -> list[SubscriptionResource]: ...
    def get_subscription(self, subscription_id: str) -> SubscriptionResource | None: ...
    def create_subscription(self, payload: dict[str, Any]) -> SubscriptionResource: ...
    def update_expiration(self, subscription_id: str, expiration: datetime) -> SubscriptionResource: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def classify_renewal_failure(exc: Exception, subscription_id: str | None) -> OpsError:
    """Decide whether a failed mutation means the resource is gone/foreign.

    The structured Graph error code is trusted first, then the HTTP status,
    and only then the wording of the message.
    """
    context = {"subscription_id": subscription_id}
    if isinstance(exc, GraphApiError):
        code = (exc.code or "").lower()
        context.update({"code": exc.code, "status": exc.status})
        if code in _GONE_OR_FOREIGN_CODES or exc.status in _GONE_OR_FOREIGN_STATUSES:
            return ResourceNotFoundOrForeign(str(exc), context=context, cause=exc)
    message = str(exc).lower()
    if any(phrase in message for phrase in _GONE_OR_FOREIGN_PHRASES):
        return ResourceNotFoundOrForeign(str(exc), context=context, cause=exc)
    return TransientCallFailure(str(exc), context=context, cause=exc)


class SubscriptionLifecycleManager:
    """Decide and apply create / renew / skip for one subscription."""

    def __init__(
        self,
        api: SubscriptionApi,
        settings: RenewalSettings,
        *,
        clock: Callable[[], datetime] = _utcnow,
        token_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        self.api = api
        self.settings = settings
        self.clock = clock
        self.token_factory = token_factory

    def matches(self, subscription: SubscriptionResource) -> bool:
        """True when the subscription delivers to our partner topic for our resource."""
        url = subscription.notification_url.lower()
        if not url.startswith(EVENT_GRID_SCHEME):
            return False
        topic = f"partnertopic={self.settings.partner_topic_name}".lower()
        if topic not in url:
            return False
        return subscription.resource.strip("/").lower() == self.settings.graph_resource.strip("/").lower()

    def discover(self, direct_id: str | None = None) -> SubscriptionResource | None:
        try:
            if direct_id:
                logger.info("Looking up subscription %s", direct_id)
                return self.api.get_subscription(direct_id)
            logger.info("Scanning subscriptions for partner topic %s", self.settings.partner_topic_name)
            for subscription in self.api.list_subscriptions():
                if self.matches(subscription):
                    return subscription
            return None
        except GraphApiError as exc:
            raise DiscoveryError(
                f"Subscription discovery failed: {exc}",
                context={"direct_id": direct_id, **exc.context},
                cause=exc,
            ) from exc

    def build_creation_payload(self, now: datetime) -> dict[str, Any]:
        expiration = now + MAX_SUBSCRIPTION_LIFETIME
        return {
            "changeType": self.settings.change_type,
            "notificationUrl": self.settings.notification_url,
            "lifecycleNotificationUrl": self.settings.notification_url,
            "resource": self.settings.graph_resource,
            "expirationDateTime": format_graph_datetime(expiration),
            "clientState": self.token_factory(),
        }

    def ensure_subscription_fresh(
        self,
        direct_id: str | None = None,
        renewal_threshold_hours: float | None = None,
        dry_run: bool = False,
    ) -> RenewalOutcome:
        direct_id = direct_id or self.settings.graph_subscription_id
        threshold = (
            renewal_threshold_hours
            if renewal_threshold_hours is not None
            else self.settings.renewal_threshold_hours
        )

        self.api.authenticate()
        existing = self.discover(direct_id)
        now = self.clock()

        if existing is None:
            outcome = RenewalOutcome(state=LifecycleState.NO_MATCH_FOUND, dry_run=dry_run)
            self._note(outcome, "No matching subscription found.")
            return self._create(outcome, now)

        outcome = RenewalOutcome(
            state=LifecycleState.MATCH_FOUND,
            dry_run=dry_run,
            subscription_id=existing.id,
            previous_expiration=existing.expiration,
        )
        hours = (existing.expiration - now).total_seconds() / 3600
        outcome.hours_until_expiration = hours
        self._note(
            outcome,
            f"Found subscription {existing.id} for '{existing.resource}' "
            f"expiring {format_graph_datetime(existing.expiration)} ({hours:.2f}h left).",
        )
        if hours >= threshold:
            outcome.state = LifecycleState.RENEWAL_SKIPPED
            self._note(outcome, f"{hours:.2f}h >= {threshold:g}h threshold; renewal not needed.")
            return outcome
        return self._renew(outcome, existing, now, threshold)

    def _create(self, outcome: RenewalOutcome, now: datetime) -> RenewalOutcome:
        payload = self.build_creation_payload(now)
        outcome.action = PlannedAction.CREATE
        outcome.new_expiration = now + MAX_SUBSCRIPTION_LIFETIME
        if outcome.dry_run:
            self._note(
                outcome,
                f"Dry run: would create subscription on '{payload['resource']}' "
                f"-> {payload['notificationUrl']} expiring {payload['expirationDateTime']}.",
            )
            return outcome
        try:
            created = self.api.create_subscription(payload)
        except GraphApiError as exc:
            outcome.state = LifecycleState.CREATION_FAILED
            outcome.failure = wrap_error(
                TransientCallFailure,
                f"Subscription creation failed: {exc}",
                context=exc.context,
                cause=exc,
            )
            self._note(outcome, str(outcome.failure), level=logging.ERROR)
            return outcome
        outcome.state = LifecycleState.CREATED
        outcome.subscription_id = created.id
        outcome.new_expiration = created.expiration
        self._note(
            outcome,
            f"Created subscription {created.id} expiring {format_graph_datetime(created.expiration)}.",
        )
        return outcome

    def _renew(
        self,
        outcome: RenewalOutcome,
        existing: SubscriptionResource,
        now: datetime,
        threshold: float,
    ) -> RenewalOutcome:
        target = now + MAX_SUBSCRIPTION_LIFETIME
        outcome.action = PlannedAction.RENEW
        outcome.new_expiration = target
        if outcome.dry_run:
            self._note(
                outcome,
                f"Dry run: would renew {existing.id} ({outcome.hours_until_expiration:.2f}h < "
                f"{threshold:g}h) to {format_graph_datetime(target)}.",
            )
            return outcome
        try:
            renewed = self.api.update_expiration(existing.id, target)
        except GraphApiError as exc:
            failure = classify_renewal_failure(exc, existing.id)
            outcome.state = LifecycleState.RENEWAL_FAILED
            outcome.failure = failure
            logger.debug("Renewal failure: %s", error_to_payload(failure))
            if isinstance(failure, ResourceNotFoundOrForeign):
                self._note(
                    outcome,
                    f"Renewal rejected: subscription {existing.id} no longer exists, has expired, "
                    f"or belongs to another principal ({exc}).",
                    level=logging.ERROR,
                )
            else:
                self._note(outcome, f"Renewal call failed: {exc}", level=logging.ERROR)
            return outcome
        outcome.state = LifecycleState.RENEWED
        outcome.new_expiration = renewed.expiration
        self._note(
            outcome,
            f"Renewed {existing.id}; new expiration {format_graph_datetime(renewed.expiration)}.",
        )
        return outcome

    @staticmethod
    def _note(outcome: RenewalOutcome, message: str, level: int = logging.INFO) -> None:
        outcome.report.append(message)
        logger.log(level, message)
