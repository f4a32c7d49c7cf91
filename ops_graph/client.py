"""Microsoft Graph client for change-notification subscriptions."""

from __future__ import annotations

import http.client
import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping
from urllib import error, parse, request

from azure.core.credentials import AccessToken, TokenCredential
from azure.core.exceptions import ClientAuthenticationError
from pydantic import ValidationError

from ops_common.errors import AuthenticationFailure, GraphApiError
from ops_graph.models import SubscriptionResource, format_graph_datetime

logger = logging.getLogger(__name__)

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
GRAPH_SCOPE = "https://graph.microsoft.com/.default"
TOKEN_REFRESH_MARGIN_SECONDS = 120


def _validate_http_url(url: str, label: str) -> str:
    parsed = parse.urlparse(url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(f"{label} must be an http(s) URL, got: {url}")
    return url


def _error_details(data: Mapping[str, Any] | None) -> tuple[str | None, str]:
    """Extract ``(code, message)`` from a Graph error body."""
    if not isinstance(data, Mapping):
        return None, ""
    err = data.get("error")
    if not isinstance(err, Mapping):
        return None, str(data.get("message") or "")
    code = err.get("code")
    message = str(err.get("message") or "")
    inner = err.get("innerError") or err.get("innererror")
    if isinstance(inner, Mapping) and inner.get("code") and not code:
        code = inner.get("code")
    return (str(code) if code else None), message


def _to_subscription(raw: Any, method: str, path: str) -> SubscriptionResource:
    """Validate one subscription body; malformed bodies become ``GraphApiError``."""
    try:
        return SubscriptionResource.model_validate(raw)
    except ValidationError as exc:
        fields = [".".join(map(str, err["loc"])) for err in exc.errors()]
        raise GraphApiError(
            f"Unexpected subscription payload from {method} {path}: invalid {', '.join(fields)}",
            code="InvalidResponse",
            context={"method": method, "path": path, "fields": fields},
            cause=exc,
        ) from exc


@dataclass
class GraphClient:
    """Small JSON client for the Graph ``/subscriptions`` endpoints.

    Calls are not retried; callers decide how a failure is reported.
    """

    credential: TokenCredential
    base_url: str = GRAPH_BASE_URL
    scope: str = GRAPH_SCOPE
    timeout_seconds: float = 30.0
    _token: AccessToken | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self.base_url = _validate_http_url(self.base_url.rstrip("/"), "Graph base_url")

    def authenticate(self) -> None:
        """Acquire a token now so auth problems surface before any lookup."""
        try:
            self._token = self.credential.get_token(self.scope)
        except ClientAuthenticationError as exc:
            raise AuthenticationFailure(
                f"Could not authenticate to Microsoft Graph: {exc.message or exc}",
                context={"scope": self.scope, "credential": type(self.credential).__name__},
                cause=exc,
            ) from exc

    def list_subscriptions(self) -> list[SubscriptionResource]:
        subscriptions: list[SubscriptionResource] = []
        url: str | None = "/subscriptions"
        while url:
            _, data = self._request("GET", url)
            data = data or {}
            for raw in data.get("value") or []:
                subscriptions.append(_to_subscription(raw, "GET", "/subscriptions"))
            url = data.get("@odata.nextLink")
        logger.debug("Listed %d Graph subscriptions", len(subscriptions))
        return subscriptions

    def get_subscription(self, subscription_id: str) -> SubscriptionResource | None:
        safe_id = parse.quote(subscription_id, safe="")
        status, data = self._request(
            "GET",
            f"/subscriptions/{safe_id}",
            expected_statuses={200, 404},
        )
        if status == 404 or not data:
            return None
        return _to_subscription(data, "GET", f"/subscriptions/{safe_id}")

    def create_subscription(self, payload: Mapping[str, Any]) -> SubscriptionResource:
        _, data = self._request(
            "POST",
            "/subscriptions",
            payload=payload,
            expected_statuses={200, 201},
        )
        return _to_subscription(data or {}, "POST", "/subscriptions")

    def update_expiration(self, subscription_id: str, expiration: datetime) -> SubscriptionResource:
        safe_id = parse.quote(subscription_id, safe="")
        _, data = self._request(
            "PATCH",
            f"/subscriptions/{safe_id}",
            payload={"expirationDateTime": format_graph_datetime(expiration)},
            expected_statuses={200},
        )
        return _to_subscription(data or {}, "PATCH", f"/subscriptions/{safe_id}")

    def _bearer(self) -> str:
        token = self._token
        if token is None or token.expires_on - TOKEN_REFRESH_MARGIN_SECONDS <= time.time():
            self.authenticate()
            token = self._token
        if token is None:
            raise AuthenticationFailure("Credential returned no Graph token.")
        return token.token

    def _request(
        self,
        method: str,
        path: str,
        payload: Mapping[str, Any] | None = None,
        expected_statuses: set[int] | None = None,
    ) -> tuple[int, dict[str, Any] | None]:
        expected = expected_statuses or {200}
        url = path if path.startswith("http") else f"{self.base_url}{path}"
        headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {self._bearer()}",
        }
        data = None
        if payload is not None:
            data = json.dumps(payload).encode("utf-8")
            headers["Content-Type"] = "application/json"

        req = request.Request(url, data=data, headers=headers, method=method)
        try:
            with request.urlopen(req, timeout=self.timeout_seconds) as resp:  # nosec B310
                status = resp.status
                body = resp.read().decode("utf-8")
        except error.HTTPError as exc:
            status = exc.code
            body = exc.read().decode("utf-8") if exc.fp else ""
            parsed = self._parse_json(body)
            if status in expected:
                return status, parsed
            code, message = _error_details(parsed)
            raise GraphApiError(
                f"Graph API error {status} on {method} {path}: {message or body[:200]}",
                status=status,
                code=code,
                context={"method": method, "path": path},
                cause=exc,
            ) from exc
        except error.URLError as exc:
            raise GraphApiError(
                f"Graph API request failed: {exc.reason}",
                code="ConnectionError",
                context={"method": method, "path": path},
                cause=exc,
            ) from exc
        except (OSError, http.client.HTTPException) as exc:
            raise GraphApiError(
                f"Graph API connection failed on {method} {path}: {exc or type(exc).__name__}",
                code="ConnectionError",
                context={"method": method, "path": path},
                cause=exc,
            ) from exc

        parsed = self._parse_json(body)
        if status not in expected:
            code, message = _error_details(parsed)
            raise GraphApiError(
                f"Graph API error {status} on {method} {path}: {message or body[:200]}",
                status=status,
                code=code,
                context={"method": method, "path": path},
            )
        return status, parsed

    @staticmethod
    def _parse_json(body: str) -> dict[str, Any] | None:
        if not body:
            return None
        try:
            parsed = json.loads(body)
            return parsed if isinstance(parsed, dict) else None
        except json.JSONDecodeError:
            return None
