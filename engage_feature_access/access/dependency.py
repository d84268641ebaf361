"""Presence, version and import checks for the remote-API client library."""

from __future__ import annotations

import importlib
import importlib.metadata
import logging
import subprocess  # nosec B404
import sys
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from types import ModuleType
from typing import Any, Protocol

import requests
from packaging.utils import canonicalize_name
from packaging.version import InvalidVersion, Version

from engage_feature_access.config import DEFAULT_PACKAGE_INDEX
from engage_feature_access.errors import InvalidArgumentError, ResourceUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_PACKAGE = "msal"
DEFAULT_MIN_VERSION = "1.24.0"
RECOMMENDED_VERSION = "1.28.0"


class Installer(Protocol):
    """Installs or upgrades a distribution from a package index."""

    def install(self, requirement: str, *, upgrade: bool, index_url: str) -> None: ...


class PipInstaller:
    """Runs ``pip install`` in the current interpreter."""

    def __init__(self, timeout_seconds: int = 600) -> None:
        """Initialize installer with a per-command timeout in seconds."""
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be greater than zero.")
        self.timeout_seconds = timeout_seconds

    def install(self, requirement: str, *, upgrade: bool, index_url: str) -> None:
        """Install ``requirement``, raising when pip exits non-zero."""
        args = [sys.executable, "-m", "pip", "install", "--disable-pip-version-check"]
        if upgrade:
            args.append("--upgrade")
        args.extend(["--index-url", index_url, requirement])
        logger.debug("Running %s", " ".join(args))
        try:
            completed = subprocess.run(  # nosec B603
                args,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise ResourceUnavailableError(f"Unable to run pip for '{requirement}': {exc}") from exc
        if completed.returncode != 0:
            stderr = completed.stderr.strip() or "pip install failed"
            raise ResourceUnavailableError(f"Unable to install '{requirement}': {stderr}")


@dataclass(frozen=True)
class DependencyReport:
    """Outcome of one dependency check."""

    package: str
    installed_version: Version
    minimum_version: Version
    latest_version: Version | None
    installed: bool = False
    updated: bool = False
    module: ModuleType | None = field(default=None, compare=False, repr=False)

    @property
    def below_minimum(self) -> bool:
        return self.installed_version < self.minimum_version


def _parse_version(value: str, field_name: str) -> Version:
    try:
        return Version(value)
    except InvalidVersion as exc:
        raise InvalidArgumentError(f"{field_name} '{value}' is not a valid version.") from exc


class DependencyGatekeeper:
    """Ensures the client library is installed, current enough and importable."""

    def __init__(
        self,
        package: str = DEFAULT_PACKAGE,
        *,
        import_name: str | None = None,
        recommended_version: str = RECOMMENDED_VERSION,
        http: Any | None = None,
        installer: Installer | None = None,
        distributions: Callable[[], Iterable[Any]] = importlib.metadata.distributions,
        importer: Callable[[str], ModuleType] = importlib.import_module,
        timeout_seconds: int = 10,
    ) -> None:
        self.package = package
        self.import_name = import_name or package
        self.recommended_version = _parse_version(recommended_version, "recommended_version")
        self.timeout_seconds = timeout_seconds
        self._http = http
        self._installer = installer or PipInstaller()
        self._distributions = distributions
        self._importer = importer

    def installed_versions(self) -> list[Version]:
        """Return versions of every installed copy of the package, highest first."""
        wanted = canonicalize_name(self.package)
        versions: list[Version] = []
        for dist in self._distributions():
            name = dist.metadata.get("Name") if dist.metadata is not None else None
            if not name or canonicalize_name(name) != wanted:
                continue
            try:
                versions.append(Version(dist.version))
            except InvalidVersion:
                logger.debug("Ignoring %s with unparseable version %r", name, dist.version)
        return sorted(versions, reverse=True)

    def installed_version(self) -> Version | None:
        """Return the highest installed version, or ``None`` when absent."""
        versions = self.installed_versions()
        return versions[0] if versions else None

    def latest_version(self, repository: str) -> Version | None:
        """Query the package index for the newest release; ``None`` when unavailable."""
        url = f"{repository.rstrip('/')}/pypi/{self.package}/json"
        http = self._http if self._http is not None else requests
        try:
            response = http.get(url, timeout=self.timeout_seconds)
            response.raise_for_status()
            return Version(response.json()["info"]["version"])
        except (requests.RequestException, KeyError, TypeError, ValueError) as exc:
            logger.debug("Unable to query %s for the latest %s: %s", repository, self.package, exc)
            return None

    def ensure(
        self,
        min_version: str = DEFAULT_MIN_VERSION,
        *,
        auto_install: bool = False,
        auto_update: bool = False,
        repository: str = DEFAULT_PACKAGE_INDEX,
        dry_run: bool = False,
    ) -> DependencyReport:
        """Install, update and import the client library as permitted.

        A missing library without ``auto_install`` and any import failure are
        fatal. Stale versions only produce warnings. With ``dry_run`` pip is
        never invoked: a planned update is logged and the installed copy is
        loaded, while a planned install fails because nothing can be loaded.
        """
        minimum = _parse_version(min_version, "min_version")
        index_url = f"{repository.rstrip('/')}/simple"
        installed = self.installed_version()
        latest = self.latest_version(repository)
        did_install = False
        did_update = False

        if installed is None:
            if not auto_install:
                raise ResourceUnavailableError(
                    f"Required package '{self.package}' is not installed. "
                    "Re-run with auto-install enabled to install it."
                )
            if dry_run:
                logger.info(
                    "Dry run: would install %s>=%s from %s", self.package, minimum, repository
                )
                raise ResourceUnavailableError(
                    f"Required package '{self.package}' is not installed and a dry run "
                    "does not install packages. Re-run without dry run to install it."
                )
            logger.info("Installing %s>=%s from %s", self.package, minimum, repository)
            self._installer.install(f"{self.package}>={minimum}", upgrade=False, index_url=index_url)
            installed = self._refreshed_version()
            did_install = True
        elif latest is not None and latest > installed:
            if auto_update and dry_run:
                logger.info(
                    "Dry run: would update %s from %s to %s", self.package, installed, latest
                )
            elif auto_update:
                logger.info("Updating %s from %s to %s", self.package, installed, latest)
                self._installer.install(self.package, upgrade=True, index_url=index_url)
                installed = self._refreshed_version()
                did_update = True
            else:
                logger.warning(
                    "%s %s is installed but %s is available; enable auto-update to update it.",
                    self.package,
                    installed,
                    latest,
                )

        if installed < self.recommended_version:
            logger.warning(
                "%s %s is older than the recommended %s.",
                self.package,
                installed,
                self.recommended_version,
            )
        if installed < minimum:
            logger.warning(
                "%s %s is below the requested minimum %s; loading it anyway.",
                self.package,
                installed,
                minimum,
            )

        try:
            module = self._importer(self.import_name)
        except ImportError as exc:
            raise ResourceUnavailableError(
                f"Unable to import '{self.import_name}' from package '{self.package}': {exc}"
            ) from exc
        logger.debug("Loaded %s %s", self.package, installed)
        return DependencyReport(
            package=self.package,
            installed_version=installed,
            minimum_version=minimum,
            latest_version=latest,
            installed=did_install,
            updated=did_update,
            module=module,
        )

    def _refreshed_version(self) -> Version:
        importlib.invalidate_caches()
        version = self.installed_version()
        if version is None:
            raise ResourceUnavailableError(
                f"Package '{self.package}' is still missing after installation."
            )
        return version
