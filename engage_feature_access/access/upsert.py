"""Create-or-update of feature access policies keyed by display name."""

from __future__ import annotations

import logging
from typing import Any

from engage_feature_access.access.client import FeatureAccessClient
from engage_feature_access.access.confirm import ConfirmationGate
from engage_feature_access.access.models import (
    MODULE_ID,
    ExecutionMode,
    PolicyRecord,
    PolicyScope,
    UpsertAction,
    UpsertResult,
)
from engage_feature_access.access.naming import normalize_policy_name
from engage_feature_access.errors import (
    InvalidArgumentError,
    RemoteServiceError,
    TenantPolicyConflictError,
)

logger = logging.getLogger(__name__)


def match_by_name(records: list[PolicyRecord], name: str) -> PolicyRecord | None:
    """Return the first record whose name equals ``name`` exactly."""
    for record in records:
        if record.name == name:
            return record
    return None


class PolicyUpserter:
    """Finds a policy by normalized name, then updates it or creates it.

    Updates only touch enablement fields; scope is fixed when the policy is
    created. In dry-run mode no mutating call is issued and the result holds
    the record that would be written.
    """

    def __init__(
        self,
        client: FeatureAccessClient,
        *,
        module_id: str = MODULE_ID,
        execution_mode: ExecutionMode = ExecutionMode.APPLY,
        gate: ConfirmationGate | None = None,
    ) -> None:
        self._client = client
        self.module_id = module_id
        self.execution_mode = execution_mode
        self.gate = gate or ConfirmationGate()

    def list_policies(self, feature_id: str) -> list[PolicyRecord]:
        """Return every policy bound to one feature as record views."""
        items = self._client.list_policies(self.module_id, feature_id)
        return [PolicyRecord(raw=item) for item in items]

    def find(self, feature_id: str, policy_name: str) -> PolicyRecord | None:
        """Look up an existing policy by its normalized name."""
        return match_by_name(self.list_policies(feature_id), normalize_policy_name(policy_name))

    def upsert(
        self,
        feature_id: str,
        policy_name: str,
        is_enabled: bool,
        scope: PolicyScope,
        user_opt_in_by_default: bool | None = None,
    ) -> UpsertResult:
        """Create the named policy, or update enablement on an existing one.

        Opt-in by default only applies when enabling; otherwise it is ignored
        with a warning. The returned record reflects the service after the call.
        """
        name = normalize_policy_name(policy_name)
        if not name:
            raise InvalidArgumentError(f"Policy name '{policy_name}' has no usable characters.")
        existing = match_by_name(self.list_policies(feature_id), name)

        opt_in = user_opt_in_by_default
        if opt_in is not None and not is_enabled:
            logger.warning(
                "Ignoring opt-in-by-default for policy '%s' because the feature is being disabled.",
                name,
            )
            opt_in = None

        if existing is not None:
            return self._update(feature_id, name, existing, is_enabled, opt_in)
        return self._create(feature_id, name, is_enabled, scope, opt_in)

    def _update(
        self,
        feature_id: str,
        name: str,
        existing: PolicyRecord,
        is_enabled: bool,
        opt_in: bool | None,
    ) -> UpsertResult:
        payload: dict[str, Any] = {"isFeatureEnabled": is_enabled}
        if opt_in is not None:
            payload["isUserControlEnabled"] = True
            payload["isUserOptedInByDefault"] = opt_in
        policy_id = existing.policy_id
        if policy_id is None:
            raise RemoteServiceError(f"Policy '{name}' was listed without an identifier.")

        if self.execution_mode is ExecutionMode.DRY_RUN:
            logger.info("Dry run: would update policy '%s' (%s)", name, policy_id)
            return UpsertResult(action=UpsertAction.PLANNED_UPDATE, policy=existing.merged(payload))
        if not self.gate.should_process(name, f"Set enabled={is_enabled} for policy {policy_id}"):
            return UpsertResult(action=UpsertAction.EXISTING, policy=existing)

        response = self._client.update_policy(self.module_id, feature_id, policy_id, payload)
        logger.info("Updated policy '%s' (%s)", name, policy_id)
        refreshed = match_by_name(self.list_policies(feature_id), name)
        if refreshed is None:
            refreshed = PolicyRecord(raw=response) if response else existing.merged(payload)
        return UpsertResult(action=UpsertAction.UPDATED, policy=refreshed)

    def _create(
        self,
        feature_id: str,
        name: str,
        is_enabled: bool,
        scope: PolicyScope,
        opt_in: bool | None,
    ) -> UpsertResult:
        payload: dict[str, Any] = {
            "name": name,
            "featureId": feature_id,
            "isFeatureEnabled": is_enabled,
            **scope.to_payload(),
        }
        if opt_in is not None:
            payload["isUserControlEnabled"] = True
            payload["isUserOptedInByDefault"] = opt_in

        if self.execution_mode is ExecutionMode.DRY_RUN:
            logger.info("Dry run: would create policy '%s' for %s", name, scope.describe())
            return UpsertResult(action=UpsertAction.PLANNED_CREATE, policy=PolicyRecord(raw=payload))
        if not self.gate.should_process(name, f"Create policy for {scope.describe()}"):
            return UpsertResult(action=UpsertAction.SKIPPED, policy=None)

        response: dict[str, Any] = {}
        conflict = False
        try:
            response = self._client.create_policy(self.module_id, feature_id, payload)
            logger.info("Created policy '%s'", name)
        except TenantPolicyConflictError as exc:
            logger.info("Keeping existing tenant-wide policy for %s: %s", feature_id, exc.message)
            conflict = True

        records = self.list_policies(feature_id)
        record = match_by_name(records, name)
        if record is None and conflict:
            record = next((item for item in records if item.is_tenant_wide), None)
        if record is None and response:
            record = PolicyRecord(raw=response)
        action = UpsertAction.EXISTING if conflict else UpsertAction.CREATED
        return UpsertResult(action=action, policy=record)
