"""Shared fixtures for feature access tests."""

from __future__ import annotations

import logging
import types
from collections.abc import Callable, Iterator
from typing import Any

import pytest

from engage_feature_access.access.dependency import DependencyGatekeeper
from engage_feature_access.access.mock_client import MockFeatureAccessClient
from engage_feature_access.access.models import MODULE_ID

ASSISTANT_ID = "CopilotInVivaEngage"
SUMMARIZATION_ID = "AISummarization"


class FakeDistribution:
    """Installed distribution stand-in exposing name metadata and version."""

    def __init__(self, name: str, version: str) -> None:
        self.metadata = {"Name": name}
        self.version = version


class FakeIndexResponse:
    def __init__(self, payload: Any) -> None:
        self._payload = payload

    def raise_for_status(self) -> None:
        return None

    def json(self) -> Any:
        return self._payload


class FakeIndex:
    """Package index returning a fixed latest version."""

    def __init__(self, latest: str | None) -> None:
        self.latest = latest
        self.urls: list[str] = []

    def get(self, url: str, timeout: float) -> FakeIndexResponse:
        self.urls.append(url)
        return FakeIndexResponse({"info": {"version": self.latest}})


class FakeSessions:
    """Session establisher that only counts connection attempts."""

    def __init__(self) -> None:
        self.calls = 0

    def ensure_connected(self) -> object:
        self.calls += 1
        return object()


def feature_catalog(*feature_ids: str) -> list[dict[str, Any]]:
    return [
        {"featureId": feature_id, "moduleId": MODULE_ID, "name": feature_id}
        for feature_id in feature_ids
    ]


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Iterator[None]:
    yield
    logger = logging.getLogger("engage_feature_access")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def make_client() -> Callable[..., MockFeatureAccessClient]:
    def factory(
        features: tuple[str, ...] = (ASSISTANT_ID, SUMMARIZATION_ID),
        policies: list[dict[str, Any]] | None = None,
    ) -> MockFeatureAccessClient:
        return MockFeatureAccessClient(features=feature_catalog(*features), policies=policies or [])

    return factory


@pytest.fixture
def gatekeeper() -> DependencyGatekeeper:
    installed = [FakeDistribution("msal", "1.31.0")]
    return DependencyGatekeeper(
        http=FakeIndex("1.31.0"),
        distributions=lambda: installed,
        importer=types.ModuleType,
    )


@pytest.fixture
def sessions() -> FakeSessions:
    return FakeSessions()
