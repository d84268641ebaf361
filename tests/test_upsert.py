"""Tests for name-keyed policy create-or-update."""

from __future__ import annotations

import logging

import pytest

from engage_feature_access.access.confirm import ConfirmationGate
from engage_feature_access.access.mock_client import MockFeatureAccessClient
from engage_feature_access.access.models import ExecutionMode, PolicyScope, UpsertAction
from engage_feature_access.access.upsert import PolicyUpserter
from engage_feature_access.errors import InvalidArgumentError, RemoteServiceError

FEATURE = "CopilotInVivaEngage"


def _existing(**overrides: object) -> dict[str, object]:
    record: dict[str, object] = {
        "policyId": "policy-42",
        "name": "Engage, Copilot",
        "featureId": FEATURE,
        "isFeatureEnabled": False,
        "accessControlList": ["G1"],
    }
    record.update(overrides)
    return record


def test_creates_when_no_name_matches(make_client) -> None:
    client: MockFeatureAccessClient = make_client()
    result = PolicyUpserter(client).upsert(
        FEATURE,
        "Engage - Copilot!",
        True,
        PolicyScope.groups(["G1"]),
    )
    assert result.action is UpsertAction.CREATED
    assert result.policy is not None
    assert result.policy.name == "Engage Copilot"
    assert result.policy.access_control_list == ["G1"]
    assert client.mutations == [("create_policy", "VivaEngage", FEATURE)]


def test_second_upsert_updates_the_same_policy(make_client) -> None:
    client: MockFeatureAccessClient = make_client()
    upserter = PolicyUpserter(client)
    scope = PolicyScope.users(["ada@contoso.com"])

    first = upserter.upsert(FEATURE, "Engage, Copilot", True, scope)
    second = upserter.upsert(FEATURE, "Engage, Copilot", True, scope)

    assert first.policy is not None and second.policy is not None
    assert second.action is UpsertAction.UPDATED
    assert second.policy.policy_id == first.policy.policy_id
    assert second.policy.is_enabled
    assert len(client.policies) == 1


def test_update_matches_alternate_name_field(make_client) -> None:
    stored = _existing(name=None, displayName="Engage, Copilot")
    client: MockFeatureAccessClient = make_client(policies=[stored])
    result = PolicyUpserter(client).upsert(FEATURE, "Engage, Copilot", True, PolicyScope.everyone())
    assert result.action is UpsertAction.UPDATED
    assert client.mutations == [("update_policy", "VivaEngage", FEATURE, "policy-42")]


def test_update_does_not_change_scope(make_client) -> None:
    client: MockFeatureAccessClient = make_client(policies=[_existing()])
    result = PolicyUpserter(client).upsert(FEATURE, "Engage, Copilot", True, PolicyScope.everyone())
    assert result.policy is not None
    assert result.policy.access_control_list == ["G1"]


def test_opt_in_turns_on_user_control_when_enabling(make_client) -> None:
    client: MockFeatureAccessClient = make_client(policies=[_existing()])
    result = PolicyUpserter(client).upsert(
        FEATURE,
        "Engage, Copilot",
        True,
        PolicyScope.groups(["G1"]),
        user_opt_in_by_default=False,
    )
    assert result.policy is not None
    assert result.policy.raw["isUserControlEnabled"] is True
    assert result.policy.user_opt_in_by_default is False


def test_opt_in_is_ignored_when_disabling(make_client, caplog: pytest.LogCaptureFixture) -> None:
    client: MockFeatureAccessClient = make_client()
    with caplog.at_level(logging.WARNING):
        result = PolicyUpserter(client).upsert(
            FEATURE,
            "Engage, Copilot",
            False,
            PolicyScope.groups(["G1"]),
            user_opt_in_by_default=True,
        )
    assert result.policy is not None
    assert result.policy.is_enabled is False
    assert "isUserOptedInByDefault" not in result.policy.raw
    assert "Ignoring opt-in-by-default" in caplog.text


def test_tenant_conflict_returns_existing_tenant_policy(make_client) -> None:
    tenant_policy = _existing(
        policyId="policy-1",
        name="Org wide Copilot",
        isFeatureEnabled=True,
        accessControlList=["Everyone"],
    )
    client: MockFeatureAccessClient = make_client(policies=[tenant_policy])
    result = PolicyUpserter(client).upsert(FEATURE, "Engage, Copilot", True, PolicyScope.everyone())
    assert result.action is UpsertAction.EXISTING
    assert result.policy is not None
    assert result.policy.policy_id == "policy-1"
    assert len(client.policies) == 1


def test_other_create_failures_propagate(make_client) -> None:
    client: MockFeatureAccessClient = make_client()
    client.create_error = RemoteServiceError("quota exceeded", status_code=400)
    with pytest.raises(RemoteServiceError, match="quota exceeded"):
        PolicyUpserter(client).upsert(FEATURE, "Engage, Copilot", True, PolicyScope.everyone())


def test_dry_run_plans_without_mutating(make_client) -> None:
    client: MockFeatureAccessClient = make_client(policies=[_existing()])
    upserter = PolicyUpserter(client, execution_mode=ExecutionMode.DRY_RUN)

    update = upserter.upsert(FEATURE, "Engage, Copilot", True, PolicyScope.groups(["G1"]))
    create = upserter.upsert(FEATURE, "Pilot, Copilot", True, PolicyScope.groups(["G2"]))

    assert update.action is UpsertAction.PLANNED_UPDATE
    assert update.policy is not None and update.policy.is_enabled
    assert create.action is UpsertAction.PLANNED_CREATE
    assert create.policy is not None and create.policy.policy_id is None
    assert client.mutations == []


def test_declined_confirmation_skips_mutation(make_client) -> None:
    client: MockFeatureAccessClient = make_client(policies=[_existing()])
    prompts: list[str] = []

    def decline(prompt: str) -> bool:
        prompts.append(prompt)
        return False

    upserter = PolicyUpserter(client, gate=ConfirmationGate(decline))
    matched = upserter.upsert(FEATURE, "Engage, Copilot", True, PolicyScope.groups(["G1"]))
    unmatched = upserter.upsert(FEATURE, "Other, Copilot", True, PolicyScope.groups(["G1"]))

    assert matched.action is UpsertAction.EXISTING
    assert matched.policy is not None and matched.policy.is_enabled is False
    assert unmatched.action is UpsertAction.SKIPPED
    assert unmatched.policy is None
    assert len(prompts) == 2
    assert upserter.gate.declined == prompts
    assert client.mutations == []


def test_assume_yes_bypasses_confirmer(make_client) -> None:
    client: MockFeatureAccessClient = make_client()

    def never_called(prompt: str) -> bool:
        raise AssertionError(prompt)

    gate = ConfirmationGate(never_called, assume_yes=True)
    result = PolicyUpserter(client, gate=gate).upsert(
        FEATURE,
        "Engage, Copilot",
        True,
        PolicyScope.everyone(),
    )
    assert result.action is UpsertAction.CREATED


def test_name_without_usable_characters_is_rejected(make_client) -> None:
    client: MockFeatureAccessClient = make_client()
    with pytest.raises(InvalidArgumentError):
        PolicyUpserter(client).upsert(FEATURE, "!!!", True, PolicyScope.everyone())
    assert client.calls == []


def test_empty_group_scope_never_reaches_the_service(make_client) -> None:
    client: MockFeatureAccessClient = make_client()
    with pytest.raises(InvalidArgumentError):
        PolicyUpserter(client).upsert(FEATURE, "Engage, Copilot", True, PolicyScope.groups([]))
    assert client.mutations == []
