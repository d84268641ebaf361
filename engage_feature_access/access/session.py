"""Authenticated session management for the policy service."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

import requests

from engage_feature_access import __version__
from engage_feature_access.config import ServiceConfig
from engage_feature_access.errors import SessionConnectionError

logger = logging.getLogger(__name__)

# Tokens this close to expiry are treated as expired.
_EXPIRY_SKEW_SECONDS = 60


def _default_app_factory(**kwargs: Any) -> Any:
    import msal

    return msal.ConfidentialClientApplication(**kwargs)


class SessionManager:
    """Holds one client-credentials session and reuses it while valid."""

    def __init__(
        self,
        config: ServiceConfig,
        *,
        app_factory: Callable[..., Any] | None = None,
        session_factory: Callable[[], requests.Session] = requests.Session,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config
        self._app_factory = app_factory or _default_app_factory
        self._session_factory = session_factory
        self._clock = clock
        self._app: Any | None = None
        self._session: requests.Session | None = None
        self._expires_at = 0.0

    @property
    def is_connected(self) -> bool:
        """Return whether a session exists and its token is not about to expire."""
        return (
            self._session is not None
            and self._clock() < self._expires_at - _EXPIRY_SKEW_SECONDS
        )

    def ensure_connected(self) -> requests.Session:
        """Return the current session, establishing a new one when needed."""
        if self.is_connected and self._session is not None:
            return self._session

        missing = self.config.missing_credentials()
        if missing:
            raise SessionConnectionError(
                f"Cannot connect to the policy service; missing {', '.join(missing)}."
            )
        scope = self.config.token_scope
        if scope is None:
            raise SessionConnectionError("Cannot connect to the policy service; no token scope.")

        try:
            if self._app is None:
                self._app = self._app_factory(
                    client_id=self.config.client_id,
                    client_credential=self.config.client_secret,
                    authority=f"{self.config.authority.rstrip('/')}/{self.config.tenant_id}",
                )
            result = self._app.acquire_token_for_client(scopes=[scope])
        except Exception as exc:  # noqa: BLE001
            raise SessionConnectionError(f"Unable to acquire an access token: {exc}") from exc

        if not isinstance(result, dict) or "access_token" not in result:
            detail = "no token returned"
            if isinstance(result, dict):
                detail = str(result.get("error_description") or result.get("error") or detail)
            raise SessionConnectionError(f"Unable to acquire an access token: {detail}")

        session = self._session_factory()
        session.headers.update(
            {
                "Authorization": f"Bearer {result['access_token']}",
                "Accept": "application/json",
                "User-Agent": f"engage-access/{__version__}",
            }
        )
        self._close_session()
        self._session = session
        self._expires_at = self._clock() + float(result.get("expires_in", 3600))
        logger.debug("Connected to tenant %s", self.config.tenant_id)
        return session

    def disconnect(self) -> None:
        """Close the current session so the next call authenticates again."""
        self._close_session()
        self._expires_at = 0.0

    def _close_session(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None
