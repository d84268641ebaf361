"""Feature access policy management exports."""

from engage_feature_access.access.client import FeatureAccessClient, HttpFeatureAccessClient
from engage_feature_access.access.confirm import ConfirmationGate
from engage_feature_access.access.dependency import DependencyGatekeeper, DependencyReport
from engage_feature_access.access.features import FeatureResolver, ResolvedFeatures
from engage_feature_access.access.mock_client import MockFeatureAccessClient
from engage_feature_access.access.models import (
    AccessMode,
    ExecutionMode,
    Feature,
    FeatureKind,
    PolicyRecord,
    PolicyScope,
    PolicySummary,
    UpsertAction,
    UpsertResult,
)
from engage_feature_access.access.naming import normalize_policy_name
from engage_feature_access.access.orchestrator import (
    AccessRequest,
    DependencyOptions,
    FeatureAccessOrchestrator,
)
from engage_feature_access.access.session import SessionManager
from engage_feature_access.access.upsert import PolicyUpserter

__all__ = [
    "AccessMode",
    "AccessRequest",
    "ConfirmationGate",
    "DependencyGatekeeper",
    "DependencyOptions",
    "DependencyReport",
    "ExecutionMode",
    "Feature",
    "FeatureAccessClient",
    "FeatureAccessOrchestrator",
    "FeatureKind",
    "FeatureResolver",
    "HttpFeatureAccessClient",
    "MockFeatureAccessClient",
    "PolicyRecord",
    "PolicyScope",
    "PolicySummary",
    "PolicyUpserter",
    "ResolvedFeatures",
    "SessionManager",
    "UpsertAction",
    "UpsertResult",
    "normalize_policy_name",
]
