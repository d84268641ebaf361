"""Remote policy service client."""

from __future__ import annotations

import logging
from typing import Any, Protocol
from urllib.parse import quote

import requests

from engage_feature_access.access.session import SessionManager
from engage_feature_access.errors import (
    RemoteServiceError,
    SessionConnectionError,
    TenantPolicyConflictError,
)

logger = logging.getLogger(__name__)

TENANT_CONFLICT_MARKER = "already a tenant level policy"


class FeatureAccessClient(Protocol):
    """Remote operations consumed by the resolver and upserter."""

    def list_features(self, module_id: str) -> list[dict[str, Any]]:
        """List every feature of a module."""
        ...

    def list_policies(self, module_id: str, feature_id: str) -> list[dict[str, Any]]:
        """List every policy bound to one feature."""
        ...

    def create_policy(
        self,
        module_id: str,
        feature_id: str,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        """Create a policy; raises TenantPolicyConflictError on tenant-level duplicates."""
        ...

    def update_policy(
        self,
        module_id: str,
        feature_id: str,
        policy_id: str,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        """Update enablement fields of an existing policy."""
        ...


def _error_message(response: requests.Response) -> str:
    """Extract the most specific error text from a failed response."""
    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or response.reason or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
        if body.get("message"):
            return str(body["message"])
    return response.text.strip() or f"HTTP {response.status_code}"


def _collection(payload: Any, what: str) -> list[dict[str, Any]]:
    """Unwrap a bare list or a ``value`` envelope into object items."""
    items = payload.get("value") if isinstance(payload, dict) else payload
    if not isinstance(items, list):
        raise RemoteServiceError(f"Unexpected {what} listing shape from the policy service.")
    return [item for item in items if isinstance(item, dict)]


class HttpFeatureAccessClient:
    """JSON-over-HTTPS implementation of :class:`FeatureAccessClient`."""

    def __init__(
        self,
        sessions: SessionManager,
        *,
        api_url: str | None = None,
        timeout_seconds: int | None = None,
    ) -> None:
        self._sessions = sessions
        self.api_url = (api_url or sessions.config.api_url or "").rstrip("/")
        self.timeout_seconds = timeout_seconds or sessions.config.timeout_seconds

    def list_features(self, module_id: str) -> list[dict[str, Any]]:
        payload = self._request("GET", self._features_path(module_id))
        return _collection(payload, "feature")

    def list_policies(self, module_id: str, feature_id: str) -> list[dict[str, Any]]:
        payload = self._request("GET", self._policies_path(module_id, feature_id))
        return _collection(payload, "policy")

    def create_policy(
        self,
        module_id: str,
        feature_id: str,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        result = self._request("POST", self._policies_path(module_id, feature_id), json=payload)
        return result if isinstance(result, dict) else {}

    def update_policy(
        self,
        module_id: str,
        feature_id: str,
        policy_id: str,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        path = f"{self._policies_path(module_id, feature_id)}/{quote(policy_id, safe='')}"
        result = self._request("PATCH", path, json=payload)
        return result if isinstance(result, dict) else {}

    def _features_path(self, module_id: str) -> str:
        return f"/modules/{quote(module_id, safe='')}/features"

    def _policies_path(self, module_id: str, feature_id: str) -> str:
        return f"{self._features_path(module_id)}/{quote(feature_id, safe='')}/policies"

    def _request(self, method: str, path: str, *, json: dict[str, Any] | None = None) -> Any:
        if not self.api_url:
            raise SessionConnectionError("No policy service URL is configured.")
        session = self._sessions.ensure_connected()
        url = f"{self.api_url}{path}"
        logger.debug("%s %s", method, url)
        try:
            response = session.request(method, url, json=json, timeout=self.timeout_seconds)
        except requests.RequestException as exc:
            raise SessionConnectionError(f"{method} {url} failed: {exc}") from exc

        if not response.ok:
            message = _error_message(response)
            if method == "POST" and TENANT_CONFLICT_MARKER in message.lower():
                raise TenantPolicyConflictError(message, status_code=response.status_code)
            raise RemoteServiceError(
                f"{method} {path} returned {response.status_code}: {message}",
                status_code=response.status_code,
            )
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteServiceError(f"{method} {path} returned invalid JSON.") from exc
