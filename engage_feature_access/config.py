"""Environment-backed configuration for the policy service and package index."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from engage_feature_access.config_validation import require_http_url, require_positive_int

ENV_PREFIX = "ENGAGE_ACCESS_"
DEFAULT_AUTHORITY = "https://login.microsoftonline.com"
DEFAULT_PACKAGE_INDEX = "https://pypi.org"
DEFAULT_TIMEOUT_SECONDS = 30


@dataclass(frozen=True)
class ServiceConfig:
    """Connection settings for the remote policy service.

    Credentials are optional here and checked when a session is
    established, so a missing value surfaces as a connection error.
    """

    tenant_id: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    api_url: str | None = None
    authority: str = DEFAULT_AUTHORITY
    scope: str | None = None
    package_index: str = DEFAULT_PACKAGE_INDEX
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        require_positive_int(self.timeout_seconds, "timeout_seconds")
        require_http_url(self.authority, "authority")
        require_http_url(self.package_index, "package_index")
        if self.api_url is not None:
            require_http_url(self.api_url, "api_url")

    @property
    def token_scope(self) -> str | None:
        """Return the OAuth scope requested for the service token."""
        if self.scope:
            return self.scope
        if self.api_url is None:
            return None
        return f"{self.api_url.rstrip('/')}/.default"

    def missing_credentials(self) -> list[str]:
        """Return environment variable names required for a session but unset."""
        required = {
            "TENANT_ID": self.tenant_id,
            "CLIENT_ID": self.client_id,
            "CLIENT_SECRET": self.client_secret,
            "API_URL": self.api_url,
        }
        return [f"{ENV_PREFIX}{key}" for key, value in required.items() if not value]

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ServiceConfig:
        """Build configuration from ``ENGAGE_ACCESS_*`` environment variables."""
        env = os.environ if environ is None else environ

        def read(key: str) -> str | None:
            value = env.get(f"{ENV_PREFIX}{key}", "").strip()
            return value or None

        raw_timeout = read("TIMEOUT_SECONDS")
        try:
            timeout = int(raw_timeout) if raw_timeout is not None else DEFAULT_TIMEOUT_SECONDS
        except ValueError as exc:
            raise ValueError(f"{ENV_PREFIX}TIMEOUT_SECONDS must be an integer.") from exc
        return cls(
            tenant_id=read("TENANT_ID"),
            client_id=read("CLIENT_ID"),
            client_secret=read("CLIENT_SECRET"),
            api_url=read("API_URL"),
            authority=read("AUTHORITY") or DEFAULT_AUTHORITY,
            scope=read("SCOPE"),
            package_index=read("PACKAGE_INDEX") or DEFAULT_PACKAGE_INDEX,
            timeout_seconds=timeout,
        )
