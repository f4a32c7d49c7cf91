"""Credential selection for the current execution environment."""

from __future__ import annotations

import logging

from azure.core.credentials import TokenCredential
from azure.identity import DefaultAzureCredential, ManagedIdentityCredential

from ops_graph.settings import EnvironmentContext, RenewalSettings

logger = logging.getLogger(__name__)


def build_credential(context: EnvironmentContext, settings: RenewalSettings) -> TokenCredential:
    """Managed identity under the automation host, developer credentials locally."""
    if context.is_automation:
        logger.info("Using managed identity %s", settings.managed_identity_client_id)
        return ManagedIdentityCredential(client_id=settings.managed_identity_client_id)
    logger.info("Using default Azure credential chain")
    return DefaultAzureCredential(exclude_interactive_browser_credential=True)
