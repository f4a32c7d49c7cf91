"""Public API surface for ops_common."""

from ops_common.errors import OpsError, error_to_payload, wrap_error
from ops_common.logging import configure_logging

__all__ = ["configure_logging", "OpsError", "error_to_payload", "wrap_error"]
