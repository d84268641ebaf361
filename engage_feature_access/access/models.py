"""Data models for feature access policies."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from engage_feature_access.errors import InvalidArgumentError

MODULE_ID = "VivaEngage"


class AccessMode(StrEnum):
    """Requested enablement state."""

    ENABLE = "Enable"
    DISABLE = "Disable"


class ExecutionMode(StrEnum):
    """Whether mutating calls are issued or only planned."""

    APPLY = "apply"
    DRY_RUN = "dry-run"


class ScopeKind(StrEnum):
    """Population a policy applies to."""

    EVERYONE = "everyone"
    GROUPS = "groups"
    USERS = "users"


class FeatureKind(StrEnum):
    """Features managed by this tool."""

    ASSISTANT = "assistant"
    SUMMARIZATION = "summarization"


@dataclass(frozen=True)
class FeatureDefinition:
    """Static identity of a supported feature."""

    kind: FeatureKind
    feature_id: str
    label: str


FEATURE_DEFINITIONS: dict[FeatureKind, FeatureDefinition] = {
    FeatureKind.ASSISTANT: FeatureDefinition(
        kind=FeatureKind.ASSISTANT,
        feature_id="CopilotInVivaEngage",
        label="Copilot",
    ),
    FeatureKind.SUMMARIZATION: FeatureDefinition(
        kind=FeatureKind.SUMMARIZATION,
        feature_id="AISummarization",
        label="AI Summarization",
    ),
}


@dataclass(frozen=True)
class Feature:
    """Feature descriptor returned by the remote catalog."""

    kind: FeatureKind
    feature_id: str
    label: str
    raw: dict[str, Any] = field(default_factory=dict, compare=False)


def _clean_members(values: Iterable[str], field_name: str) -> tuple[str, ...]:
    """Validate identifiers, dropping duplicates while keeping order."""
    members: list[str] = []
    for index, value in enumerate(values):
        cleaned = value.strip() if isinstance(value, str) else ""
        if not cleaned:
            raise InvalidArgumentError(f"{field_name}[{index}] must be a non-empty identifier.")
        if cleaned not in members:
            members.append(cleaned)
    if not members:
        raise InvalidArgumentError(f"{field_name} must contain at least one identifier.")
    return tuple(members)


@dataclass(frozen=True)
class PolicyScope:
    """Exactly one of tenant-wide, a group set or a user set."""

    kind: ScopeKind
    members: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.kind is ScopeKind.EVERYONE:
            if self.members:
                raise InvalidArgumentError("A tenant-wide scope cannot list members.")
            return
        field_name = "group_ids" if self.kind is ScopeKind.GROUPS else "user_ids"
        object.__setattr__(self, "members", _clean_members(self.members, field_name))

    @classmethod
    def everyone(cls) -> PolicyScope:
        """Return the tenant-wide scope."""
        return cls(kind=ScopeKind.EVERYONE)

    @classmethod
    def groups(cls, group_ids: Iterable[str]) -> PolicyScope:
        """Return a scope for the given group identifiers or emails."""
        return cls(kind=ScopeKind.GROUPS, members=tuple(group_ids))

    @classmethod
    def users(cls, user_ids: Iterable[str]) -> PolicyScope:
        """Return a scope for the given user principal names."""
        return cls(kind=ScopeKind.USERS, members=tuple(user_ids))

    @classmethod
    def from_options(
        cls,
        *,
        everyone: bool = False,
        group_ids: Iterable[str] | None = None,
        user_ids: Iterable[str] | None = None,
    ) -> PolicyScope:
        """Build a scope from CLI-style options, rejecting zero or several kinds."""
        groups = list(group_ids or [])
        users = list(user_ids or [])
        candidates = (
            ("everyone", everyone),
            ("group ids", bool(groups)),
            ("user ids", bool(users)),
        )
        selected = [name for name, chosen in candidates if chosen]
        if not selected:
            raise InvalidArgumentError("Select a scope: everyone, group ids or user ids.")
        if len(selected) > 1:
            joined = ", ".join(selected)
            raise InvalidArgumentError(f"Scopes are mutually exclusive; got {joined}.")
        if everyone:
            return cls.everyone()
        if groups:
            return cls.groups(groups)
        return cls.users(users)

    def to_payload(self) -> dict[str, Any]:
        """Return the scope fields sent when creating a policy."""
        if self.kind is ScopeKind.EVERYONE:
            return {"everyone": True}
        if self.kind is ScopeKind.GROUPS:
            return {"groupIds": list(self.members)}
        return {"userIds": list(self.members)}

    def describe(self) -> str:
        """Return a human-readable population label for prompts and logs."""
        if self.kind is ScopeKind.EVERYONE:
            return "Everyone"
        return ", ".join(self.members)


def _field(name: str) -> Callable[[dict[str, Any]], Any]:
    return lambda raw: raw.get(name)


# Tried in order; the first non-empty value is the record's name.
NAME_FIELD_ACCESSORS: tuple[Callable[[dict[str, Any]], Any], ...] = (
    _field("name"),
    _field("displayName"),
    _field("policyName"),
)


def record_name(raw: dict[str, Any]) -> str | None:
    """Return the name of a remote policy object using the accessor priority."""
    for accessor in NAME_FIELD_ACCESSORS:
        value = accessor(raw)
        if isinstance(value, str) and value:
            return value
    return None


@dataclass(frozen=True)
class PolicyRecord:
    """Read-only view over a remote policy object."""

    raw: dict[str, Any]

    @property
    def name(self) -> str | None:
        return record_name(self.raw)

    @property
    def policy_id(self) -> str | None:
        value = self.raw.get("policyId") or self.raw.get("id")
        return str(value) if value is not None else None

    @property
    def feature_id(self) -> str | None:
        value = self.raw.get("featureId")
        return str(value) if value is not None else None

    @property
    def is_enabled(self) -> bool:
        return bool(self.raw.get("isFeatureEnabled", False))

    @property
    def user_opt_in_by_default(self) -> bool | None:
        value = self.raw.get("isUserOptedInByDefault")
        return None if value is None else bool(value)

    @property
    def access_control_list(self) -> list[str]:
        """Return the population entries, derived from scope fields when absent."""
        entries = self.raw.get("accessControlList")
        if isinstance(entries, list):
            return [str(item) for item in entries]
        if self.raw.get("everyone"):
            return ["Everyone"]
        for key in ("groupIds", "userIds"):
            members = self.raw.get(key)
            if isinstance(members, list) and members:
                return [str(item) for item in members]
        return []

    @property
    def is_tenant_wide(self) -> bool:
        return any(entry.lower() == "everyone" for entry in self.access_control_list)

    def merged(self, updates: dict[str, Any]) -> PolicyRecord:
        """Return a copy with ``updates`` applied on top of the raw object."""
        return PolicyRecord(raw={**self.raw, **updates})


class UpsertAction(StrEnum):
    """Outcome of one create-or-update pass."""

    CREATED = "created"
    UPDATED = "updated"
    EXISTING = "existing"
    PLANNED_CREATE = "planned-create"
    PLANNED_UPDATE = "planned-update"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class UpsertResult:
    """Record returned by the upserter and the action that produced it."""

    action: UpsertAction
    policy: PolicyRecord | None


@dataclass(frozen=True)
class PolicySummary:
    """Compact per-policy result row."""

    name: str
    feature_id: str
    is_enabled: bool
    user_opt_in_by_default: bool | None
    access: str
    policy_id: str | None
    action: str

    @classmethod
    def from_record(
        cls,
        record: PolicyRecord,
        *,
        feature_id: str,
        action: UpsertAction | str,
    ) -> PolicySummary:
        return cls(
            name=record.name or "",
            feature_id=record.feature_id or feature_id,
            is_enabled=record.is_enabled,
            user_opt_in_by_default=record.user_opt_in_by_default,
            access=", ".join(record.access_control_list),
            policy_id=record.policy_id,
            action=str(action),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "feature_id": self.feature_id,
            "is_enabled": self.is_enabled,
            "user_opt_in_by_default": self.user_opt_in_by_default,
            "access": self.access,
            "policy_id": self.policy_id,
            "action": self.action,
        }
