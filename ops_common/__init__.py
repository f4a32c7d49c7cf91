"""Shared helpers for ops-runbooks."""

from ops_common.api import OpsError, configure_logging

__all__ = ["configure_logging", "OpsError"]
