"""In-memory policy service used by tests and local rehearsals."""

from __future__ import annotations

from collections.abc import Iterable
from copy import deepcopy
from typing import Any

from engage_feature_access.access.client import TENANT_CONFLICT_MARKER
from engage_feature_access.errors import RemoteServiceError, TenantPolicyConflictError

_MUTATING_CALLS = {"create_policy", "update_policy"}


class MockFeatureAccessClient:
    """A deterministic policy service holding features and policies in memory."""

    def __init__(
        self,
        features: Iterable[dict[str, Any]] = (),
        policies: Iterable[dict[str, Any]] = (),
    ) -> None:
        """Initialize with seeded feature catalog and existing policies."""
        self.features = [deepcopy(item) for item in features]
        self.policies = [deepcopy(item) for item in policies]
        self.calls: list[tuple[str, ...]] = []
        self.create_error: Exception | None = None
        self._next_id = len(self.policies) + 1

    @property
    def mutations(self) -> list[tuple[str, ...]]:
        """Return recorded create and update calls."""
        return [call for call in self.calls if call[0] in _MUTATING_CALLS]

    def list_features(self, module_id: str) -> list[dict[str, Any]]:
        self.calls.append(("list_features", module_id))
        return [
            deepcopy(item)
            for item in self.features
            if item.get("moduleId", module_id) == module_id
        ]

    def list_policies(self, module_id: str, feature_id: str) -> list[dict[str, Any]]:
        self.calls.append(("list_policies", module_id, feature_id))
        return [deepcopy(item) for item in self.policies if item.get("featureId") == feature_id]

    def create_policy(
        self,
        module_id: str,
        feature_id: str,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        self.calls.append(("create_policy", module_id, feature_id))
        if self.create_error is not None:
            raise self.create_error
        if payload.get("everyone") and any(
            item.get("featureId") == feature_id and "Everyone" in item.get("accessControlList", [])
            for item in self.policies
        ):
            raise TenantPolicyConflictError(
                f"There is {TENANT_CONFLICT_MARKER} for feature {feature_id}.",
                status_code=409,
            )
        if payload.get("everyone"):
            access = ["Everyone"]
        else:
            access = list(payload.get("groupIds") or payload.get("userIds") or [])
        record = {
            "policyId": f"policy-{self._next_id}",
            "name": payload["name"],
            "featureId": feature_id,
            "isFeatureEnabled": bool(payload.get("isFeatureEnabled")),
            "accessControlList": access,
        }
        for key in ("isUserControlEnabled", "isUserOptedInByDefault"):
            if key in payload:
                record[key] = payload[key]
        self._next_id += 1
        self.policies.append(record)
        return deepcopy(record)

    def update_policy(
        self,
        module_id: str,
        feature_id: str,
        policy_id: str,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        self.calls.append(("update_policy", module_id, feature_id, policy_id))
        for item in self.policies:
            if item.get("policyId") == policy_id and item.get("featureId") == feature_id:
                item.update(deepcopy(payload))
                return deepcopy(item)
        raise RemoteServiceError(f"Policy {policy_id} was not found.", status_code=404)
