"""Feature catalog lookup with a per-instance cache."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from engage_feature_access.access.client import FeatureAccessClient
from engage_feature_access.access.models import (
    FEATURE_DEFINITIONS,
    MODULE_ID,
    Feature,
    FeatureDefinition,
    FeatureKind,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedFeatures:
    """Remote descriptors of the supported features; ``None`` when absent."""

    assistant: Feature | None
    summarization: Feature | None

    def get(self, kind: FeatureKind) -> Feature | None:
        """Return the descriptor for one feature kind."""
        if kind is FeatureKind.ASSISTANT:
            return self.assistant
        return self.summarization


class FeatureResolver:
    """Resolves feature identifiers once and serves later calls from memory.

    One resolver is built per invocation; the catalog is assumed not to
    change during its lifetime.
    """

    def __init__(
        self,
        client: FeatureAccessClient,
        *,
        module_id: str = MODULE_ID,
        definitions: Mapping[FeatureKind, FeatureDefinition] = FEATURE_DEFINITIONS,
    ) -> None:
        self._client = client
        self.module_id = module_id
        self._definitions = definitions
        self._cache: ResolvedFeatures | None = None

    def resolve(self) -> ResolvedFeatures:
        """Return the supported features, listing the catalog on first use only."""
        if self._cache is not None:
            return self._cache
        catalog = {}
        for item in self._client.list_features(self.module_id):
            feature_id = item.get("featureId") or item.get("id")
            if isinstance(feature_id, str):
                catalog[feature_id] = item
        logger.debug("Module %s exposes features: %s", self.module_id, sorted(catalog))

        found: dict[FeatureKind, Feature | None] = {}
        for kind, definition in self._definitions.items():
            raw = catalog.get(definition.feature_id)
            found[kind] = (
                None
                if raw is None
                else Feature(
                    kind=kind,
                    feature_id=definition.feature_id,
                    label=definition.label,
                    raw=raw,
                )
            )
        self._cache = ResolvedFeatures(
            assistant=found.get(FeatureKind.ASSISTANT),
            summarization=found.get(FeatureKind.SUMMARIZATION),
        )
        return self._cache
