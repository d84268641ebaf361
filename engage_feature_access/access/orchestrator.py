"""Public entry point driving dependency, session, lookup and upsert steps."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from engage_feature_access.access.client import FeatureAccessClient
from engage_feature_access.access.confirm import ConfirmationGate
from engage_feature_access.access.dependency import (
    DEFAULT_MIN_VERSION,
    DependencyGatekeeper,
    DependencyReport,
)
from engage_feature_access.access.features import FeatureResolver, ResolvedFeatures
from engage_feature_access.access.models import (
    FEATURE_DEFINITIONS,
    MODULE_ID,
    AccessMode,
    ExecutionMode,
    Feature,
    FeatureKind,
    PolicyScope,
    PolicySummary,
)
from engage_feature_access.access.naming import normalize_policy_name
from engage_feature_access.access.upsert import PolicyUpserter
from engage_feature_access.config import DEFAULT_PACKAGE_INDEX
from engage_feature_access.errors import InvalidArgumentError, ObjectNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_POLICY_PREFIX = "Engage"


class SessionEstablisher(Protocol):
    """Anything that can make sure an authenticated session exists."""

    def ensure_connected(self) -> Any: ...


@dataclass(frozen=True)
class DependencyOptions:
    """How the client library check may fix what it finds."""

    auto_install: bool = False
    auto_update: bool = False
    min_version: str = DEFAULT_MIN_VERSION
    repository: str = DEFAULT_PACKAGE_INDEX


@dataclass(frozen=True)
class AccessRequest:
    """One enable/disable request for one or both features."""

    mode: AccessMode = AccessMode.DISABLE
    assistant: bool = False
    summarization: bool = False
    scope: PolicyScope | None = None
    policy_name_prefix: str = DEFAULT_POLICY_PREFIX
    user_opt_in_by_default: bool | None = None
    dependency: DependencyOptions = field(default_factory=DependencyOptions)

    def requested_kinds(self) -> list[FeatureKind]:
        """Return the selected features in processing order."""
        return _requested_kinds(self.assistant, self.summarization)


def _requested_kinds(assistant: bool, summarization: bool) -> list[FeatureKind]:
    kinds: list[FeatureKind] = []
    if assistant:
        kinds.append(FeatureKind.ASSISTANT)
    if summarization:
        kinds.append(FeatureKind.SUMMARIZATION)
    if not kinds:
        raise InvalidArgumentError("Select at least one feature: assistant or summarization.")
    return kinds


class FeatureAccessOrchestrator:
    """Runs Gatekeeper, Establisher, Resolver and Upserter in order."""

    def __init__(
        self,
        *,
        gatekeeper: DependencyGatekeeper,
        sessions: SessionEstablisher,
        client: FeatureAccessClient,
        resolver: FeatureResolver | None = None,
        execution_mode: ExecutionMode = ExecutionMode.APPLY,
        gate: ConfirmationGate | None = None,
        module_id: str = MODULE_ID,
    ) -> None:
        self.gatekeeper = gatekeeper
        self.sessions = sessions
        self.client = client
        self.module_id = module_id
        self.resolver = resolver or FeatureResolver(client, module_id=module_id)
        self.execution_mode = execution_mode
        self.gate = gate or ConfirmationGate()
        self.dependency_report: DependencyReport | None = None

    def run(self, request: AccessRequest) -> list[PolicySummary]:
        """Apply the requested enablement state and return one summary per policy."""
        kinds = request.requested_kinds()
        if request.scope is None:
            raise InvalidArgumentError("Select a scope: everyone, group ids or user ids.")
        if not request.policy_name_prefix.strip():
            raise InvalidArgumentError("Policy name prefix must be a non-empty string.")

        resolved = self._prepare(request.dependency)

        is_enabled = request.mode is AccessMode.ENABLE
        labels = ", ".join(FEATURE_DEFINITIONS[kind].label for kind in kinds)
        if self.execution_mode is ExecutionMode.APPLY and not self.gate.should_process(
            labels,
            f"{request.mode} feature access for {request.scope.describe()}",
        ):
            return []

        upserter = PolicyUpserter(
            self.client,
            module_id=self.module_id,
            execution_mode=self.execution_mode,
            gate=self.gate,
        )
        summaries: list[PolicySummary] = []
        for kind in kinds:
            feature = self._require_feature(resolved, kind)
            name = normalize_policy_name(f"{request.policy_name_prefix}, {feature.label}")
            result = upserter.upsert(
                feature.feature_id,
                name,
                is_enabled,
                request.scope,
                request.user_opt_in_by_default,
            )
            if result.policy is None:
                logger.info("No policy recorded for %s (%s)", feature.label, result.action)
                continue
            summaries.append(
                PolicySummary.from_record(
                    result.policy,
                    feature_id=feature.feature_id,
                    action=result.action,
                )
            )
        return summaries

    def inspect(
        self,
        *,
        assistant: bool,
        summarization: bool,
        dependency: DependencyOptions | None = None,
    ) -> list[PolicySummary]:
        """List existing policies for the selected features without changing them."""
        kinds = _requested_kinds(assistant, summarization)
        resolved = self._prepare(dependency or DependencyOptions())
        upserter = PolicyUpserter(self.client, module_id=self.module_id)
        summaries: list[PolicySummary] = []
        for kind in kinds:
            feature = self._require_feature(resolved, kind)
            for record in upserter.list_policies(feature.feature_id):
                summaries.append(
                    PolicySummary.from_record(
                        record,
                        feature_id=feature.feature_id,
                        action="listed",
                    )
                )
        return summaries

    def _prepare(self, options: DependencyOptions) -> ResolvedFeatures:
        """Run the dependency check, connect, and resolve the feature catalog."""
        self.dependency_report = self.gatekeeper.ensure(
            options.min_version,
            auto_install=options.auto_install,
            auto_update=options.auto_update,
            repository=options.repository,
            dry_run=self.execution_mode is ExecutionMode.DRY_RUN,
        )
        self.sessions.ensure_connected()
        return self.resolver.resolve()

    def _require_feature(self, resolved: ResolvedFeatures, kind: FeatureKind) -> Feature:
        feature = resolved.get(kind)
        if feature is None:
            definition = FEATURE_DEFINITIONS[kind]
            raise ObjectNotFoundError(
                f"Feature '{definition.label}' ({definition.feature_id}) was not found "
                f"in module {self.module_id}."
            )
        return feature
