"""Execution environment detection and typed renewal settings."""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ops_common.errors import ConfigurationError

logger = logging.getLogger(__name__)

AUTOMATION_MARKERS = ("AUTOMATION_ASSET_ACCOUNTID", "IDENTITY_ENDPOINT")
SETTINGS_TABLE = "renewal"


class EnvironmentKind(str, Enum):
    LOCAL = "local"
    AUTOMATION = "automation"


@dataclass(frozen=True)
class EnvironmentContext:
    """Where we run and how named variables are looked up.

    Under an automation host only process variables are used. Locally an
    optional TOML file supplies values that process variables override.
    """

    kind: EnvironmentKind
    variables: Mapping[str, str] = field(default_factory=dict)

    @property
    def is_automation(self) -> bool:
        return self.kind is EnvironmentKind.AUTOMATION

    def get_variable(self, name: str, default: str | None = None) -> str | None:
        value = self.variables.get(name)
        if value is None or str(value).strip() == "":
            return default
        return str(value).strip()

    @classmethod
    def detect(
        cls,
        environ: Mapping[str, str] | None = None,
        settings_file: Path | None = None,
    ) -> "EnvironmentContext":
        env = dict(os.environ if environ is None else environ)
        if any(env.get(marker) for marker in AUTOMATION_MARKERS):
            if settings_file is not None:
                logger.warning("Ignoring %s under the automation host", settings_file)
            return cls(EnvironmentKind.AUTOMATION, env)
        merged = load_settings_file(settings_file) if settings_file else {}
        merged.update(env)
        return cls(EnvironmentKind.LOCAL, merged)


def load_settings_file(path: Path) -> dict[str, str]:
    """Read the ``[renewal]`` table of a TOML file as upper-cased variables."""
    path = path.expanduser()
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Settings file not found: {path}", cause=exc) from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Invalid TOML in {path}: {exc}", cause=exc) from exc
    table = data.get(SETTINGS_TABLE, {})
    if not isinstance(table, dict):
        raise ConfigurationError(f"[{SETTINGS_TABLE}] in {path} must be a table")
    return {str(key).upper(): str(value) for key, value in table.items()}


class RenewalSettings(BaseModel):
    """Settings for keeping the Graph change-notification subscription alive."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    target_subscription_id: str = Field(..., min_length=1)
    renewal_threshold_hours: float = Field(default=24, gt=0)
    resource_group_name: str = "groupchangefunction"
    partner_topic_name: str = "default"
    graph_subscription_id: str | None = None
    location: str = "centralus"
    managed_identity_client_id: str | None = None
    graph_resource: str = "groups"
    change_type: str = "updated,deleted"

    @property
    def notification_url(self) -> str:
        return (
            "EventGrid:?azuresubscriptionid={sub}&resourcegroup={rg}"
            "&partnertopic={topic}&location={location}"
        ).format(
            sub=self.target_subscription_id,
            rg=self.resource_group_name,
            topic=self.partner_topic_name,
            location=self.location,
        )


# Variable name -> settings field.
SETTING_VARIABLES: dict[str, str] = {
    "TARGET_SUBSCRIPTION_ID": "target_subscription_id",
    "RENEWAL_THRESHOLD_HOURS": "renewal_threshold_hours",
    "RESOURCE_GROUP_NAME": "resource_group_name",
    "PARTNER_TOPIC_NAME": "partner_topic_name",
    "GRAPH_SUBSCRIPTION_ID": "graph_subscription_id",
    "LOCATION": "location",
    "MANAGED_IDENTITY_CLIENT_ID": "managed_identity_client_id",
    "GRAPH_RESOURCE": "graph_resource",
}


def load_renewal_settings(context: EnvironmentContext, **overrides: object) -> RenewalSettings:
    """Resolve every renewal variable once into a validated settings object."""
    values: dict[str, object] = {}
    for variable, field_name in SETTING_VARIABLES.items():
        value = context.get_variable(variable)
        if value is not None:
            values[field_name] = value
    values.update({key: val for key, val in overrides.items() if val is not None})

    if "target_subscription_id" not in values:
        raise ConfigurationError(
            "TARGET_SUBSCRIPTION_ID is required.",
            context={"environment": context.kind.value},
        )
    try:
        settings = RenewalSettings(**values)
    except ValidationError as exc:
        raise ConfigurationError(
            f"Invalid renewal settings: {exc.errors()[0].get('msg', exc)}",
            context={"fields": [".".join(map(str, err["loc"])) for err in exc.errors()]},
            cause=exc,
        ) from exc

    if context.is_automation and not settings.managed_identity_client_id:
        raise ConfigurationError(
            "MANAGED_IDENTITY_CLIENT_ID is required under the automation host.",
            context={"environment": context.kind.value},
        )
    return settings
