"""Graph subscription resource and lifecycle outcome types."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ops_common.errors import OpsError

_FRACTION = re.compile(r"(\.\d{6})\d+")


def parse_graph_datetime(value: Any) -> datetime:
    """Parse Graph timestamps; they may carry 7 fractional digits and a ``Z``."""
    if isinstance(value, datetime):
        parsed = value
    else:
        text = _FRACTION.sub(r"\1", str(value).strip())
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_graph_datetime(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class SubscriptionResource(BaseModel):
    """A Microsoft Graph change-notification subscription."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    resource: str = ""
    change_type: str = Field(default="", alias="changeType")
    notification_url: str = Field(default="", alias="notificationUrl")
    lifecycle_notification_url: str | None = Field(default=None, alias="lifecycleNotificationUrl")
    expiration: datetime = Field(alias="expirationDateTime")
    client_state: str | None = Field(default=None, alias="clientState")

    @field_validator("expiration", mode="before")
    @classmethod
    def _parse_expiration(cls, value: Any) -> datetime:
        return parse_graph_datetime(value)


class LifecycleState(str, Enum):
    NO_MATCH_FOUND = "NoMatchFound"
    MATCH_FOUND = "MatchFound"
    CREATED = "Created"
    CREATION_FAILED = "CreationFailed"
    RENEWED = "Renewed"
    RENEWAL_SKIPPED = "RenewalSkipped"
    RENEWAL_FAILED = "RenewalFailed"


TERMINAL_STATES = frozenset(
    {
        LifecycleState.CREATED,
        LifecycleState.CREATION_FAILED,
        LifecycleState.RENEWED,
        LifecycleState.RENEWAL_SKIPPED,
        LifecycleState.RENEWAL_FAILED,
    }
)


class PlannedAction(str, Enum):
    NONE = "none"
    CREATE = "create"
    RENEW = "renew"


@dataclass
class RenewalOutcome:
    state: LifecycleState
    action: PlannedAction = PlannedAction.NONE
    dry_run: bool = False
    subscription_id: str | None = None
    previous_expiration: datetime | None = None
    new_expiration: datetime | None = None
    hours_until_expiration: float | None = None
    failure: OpsError | None = None
    report: list[str] = field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def failed(self) -> bool:
        return self.failure is not None
