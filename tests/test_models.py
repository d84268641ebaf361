"""Tests for scope construction and policy record views."""

from __future__ import annotations

import pytest

from engage_feature_access.access.models import (
    NAME_FIELD_ACCESSORS,
    PolicyRecord,
    PolicyScope,
    PolicySummary,
    ScopeKind,
    UpsertAction,
    record_name,
)
from engage_feature_access.errors import InvalidArgumentError


def test_scope_from_options_builds_each_kind() -> None:
    assert PolicyScope.from_options(everyone=True) == PolicyScope.everyone()
    groups = PolicyScope.from_options(group_ids=["G1", "G2"])
    assert groups.kind is ScopeKind.GROUPS
    assert groups.members == ("G1", "G2")
    users = PolicyScope.from_options(user_ids=["ada@contoso.com"])
    assert users.to_payload() == {"userIds": ["ada@contoso.com"]}


@pytest.mark.parametrize(
    "options",
    [
        {"everyone": True, "group_ids": ["G1"]},
        {"everyone": True, "user_ids": ["u@contoso.com"]},
        {"group_ids": ["G1"], "user_ids": ["u@contoso.com"]},
        {"everyone": True, "group_ids": ["G1"], "user_ids": ["u@contoso.com"]},
    ],
)
def test_scope_kinds_are_mutually_exclusive(options: dict[str, object]) -> None:
    with pytest.raises(InvalidArgumentError, match="mutually exclusive"):
        PolicyScope.from_options(**options)  # type: ignore[arg-type]


def test_scope_is_required() -> None:
    with pytest.raises(InvalidArgumentError):
        PolicyScope.from_options()


def test_scope_members_must_be_non_empty() -> None:
    with pytest.raises(InvalidArgumentError):
        PolicyScope.groups(["G1", "  "])


def test_scope_drops_duplicate_members() -> None:
    scope = PolicyScope.groups(["G1", "G2", "G1"])
    assert scope.members == ("G1", "G2")
    assert scope.describe() == "G1, G2"
    assert PolicyScope.everyone().to_payload() == {"everyone": True}


def test_record_name_follows_accessor_priority() -> None:
    assert len(NAME_FIELD_ACCESSORS) == 3
    assert record_name({"displayName": "Shown", "policyName": "Internal"}) == "Shown"
    assert record_name({"name": "", "policyName": "Internal"}) == "Internal"
    assert record_name({"policyId": "p-1"}) is None


def test_policy_record_access_list_falls_back_to_scope_fields() -> None:
    assert PolicyRecord(raw={"accessControlList": ["Everyone"]}).is_tenant_wide
    record = PolicyRecord(raw={"groupIds": ["G1", "G2"]})
    assert record.access_control_list == ["G1", "G2"]
    assert not record.is_tenant_wide
    assert PolicyRecord(raw={"everyone": True}).access_control_list == ["Everyone"]


def test_summary_joins_access_list() -> None:
    record = PolicyRecord(
        raw={
            "policyId": "p-7",
            "name": "Engage, Copilot",
            "isFeatureEnabled": True,
            "isUserOptedInByDefault": False,
            "accessControlList": ["G1", "G2"],
        }
    )
    summary = PolicySummary.from_record(
        record,
        feature_id="CopilotInVivaEngage",
        action=UpsertAction.CREATED,
    )
    assert summary.to_dict() == {
        "name": "Engage, Copilot",
        "feature_id": "CopilotInVivaEngage",
        "is_enabled": True,
        "user_opt_in_by_default": False,
        "access": "G1, G2",
        "policy_id": "p-7",
        "action": "created",
    }


@pytest.mark.parametrize("kind", [ScopeKind.GROUPS, ScopeKind.USERS])
def test_member_scopes_require_members(kind: ScopeKind) -> None:
    with pytest.raises(InvalidArgumentError, match="at least one identifier"):
        PolicyScope(kind=kind)


def test_tenant_wide_scope_rejects_members() -> None:
    with pytest.raises(InvalidArgumentError, match="tenant-wide"):
        PolicyScope(kind=ScopeKind.EVERYONE, members=("G1",))


def test_direct_construction_cleans_members() -> None:
    scope = PolicyScope(kind=ScopeKind.USERS, members=(" ada@contoso.com ", "ada@contoso.com"))
    assert scope.members == ("ada@contoso.com",)
