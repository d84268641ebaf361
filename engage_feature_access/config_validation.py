"""Shared configuration validation helpers."""

from __future__ import annotations


def require_positive_int(value: int, field_name: str) -> int:
    """Validate a positive integer input and return it."""
    if value <= 0:
        raise ValueError(f"{field_name} must be greater than zero.")
    return value


def require_http_url(value: str, field_name: str) -> str:
    """Validate an http(s) URL and return it without a trailing slash."""
    cleaned = value.strip()
    if not cleaned.startswith(("https://", "http://")):
        raise ValueError(f"{field_name} must be an http(s) URL.")
    return cleaned.rstrip("/")


def parse_optional_bool(value: str | None, field_name: str) -> bool | None:
    """Parse a tri-state boolean option: true, false or unset."""
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered in {"true", "yes", "1", "on"}:
        return True
    if lowered in {"false", "no", "0", "off"}:
        return False
    raise ValueError(f"{field_name} must be one of: true, false.")
