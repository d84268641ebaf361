"""Policy display name normalization."""

from __future__ import annotations

import re

from engage_feature_access.errors import InvalidArgumentError

_DISALLOWED = re.compile(r"[^A-Za-z0-9,.\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_policy_name(value: str | None) -> str:
    """Reduce a label to letters, digits, commas, periods and single spaces.

    Hyphens become spaces, other disallowed characters are dropped and
    whitespace runs collapse before the ends are trimmed.
    """
    if value is None or not value.strip():
        raise InvalidArgumentError("Policy name must be a non-empty string.")
    text = value.replace("-", " ")
    text = _DISALLOWED.sub("", text)
    return _WHITESPACE.sub(" ", text).strip()
