"""
protopack.integrations.registry.memory - In-Memory Registry for Testing
=========================================================================

A deterministic registry that keeps artifacts in a dict. It satisfies the
same contract as the HTTP registry and is what the test suite runs
install/publish flows against.

Features:
    - **Seeding**: ``add_artifact()`` puts archives in place before a test.
    - **Call History**: every download/publish is recorded for assertions.
    - **Failure Injection**: ``fail_download()`` / ``fail_publish()`` make
      specific artifacts answer like a non-2xx response would.
    - **Auth Simulation**: ``require_login()`` makes every call raise
      AuthUnavailableError, like a registry with no stored credentials.

Usage:
    >>> registry = InMemoryRegistry()
    >>> registry.add_artifact("org-proto-stable", "foo", "1.0.0", archive_bytes)
    >>> package = await registry.download(Dependency.parse("org-proto-stable/foo@1.0.0"))
    >>> registry.downloads
    ['org-proto-stable/foo@1.0.0']
"""

from __future__ import annotations

import asyncio
from typing import Optional

import structlog

from protopack.core.exceptions import (
    AuthUnavailableError,
    FetchFailedError,
    PublishFailedError,
)
from protopack.core.models import Dependency, Package
from protopack.integrations.registry.base import Registry, artifact_path


logger = structlog.get_logger()


class InMemoryRegistry(Registry):
    """Dict-backed registry for tests and development.

    Attributes:
        artifacts: Archives keyed by artifact path
            (``<repository>/<package>/<package>-<version>.tgz``).
        downloads: Dependency specs passed to download(), in call order.
        publishes: ``(repository, package@version)`` pairs passed to publish().
    """

    def __init__(self, delay_seconds: float = 0.0) -> None:
        """Initialize an empty registry.

        Args:
            delay_seconds: Artificial latency per call, lets tests observe
                concurrent downloads overlapping.
        """
        self.artifacts: dict[str, bytes] = {}
        self.downloads: list[str] = []
        self.publishes: list[tuple[str, str]] = []
        self._delay = delay_seconds
        self._failing_downloads: set[str] = set()
        self._failing_publishes: set[str] = set()
        self._auth_error: Optional[AuthUnavailableError] = None
        self._logger = logger.bind(component="in_memory_registry")

    # =========================================================================
    # Test Controls
    # =========================================================================

    def add_artifact(self, repository: str, package: str, version: str, archive: bytes) -> None:
        self.artifacts[artifact_path(repository, package, version)] = archive

    def get_artifact(self, repository: str, package: str, version: str) -> Optional[bytes]:
        return self.artifacts.get(artifact_path(repository, package, version))

    def fail_download(self, repository: str, package: str, version: str) -> None:
        self._failing_downloads.add(artifact_path(repository, package, version))

    def fail_publish(self, package: str) -> None:
        self._failing_publishes.add(package)

    def require_login(self, error: Optional[AuthUnavailableError] = None) -> None:
        self._auth_error = error or AuthUnavailableError()

    # =========================================================================
    # Registry Interface
    # =========================================================================

    async def download(self, dependency: Dependency) -> Package:
        if self._auth_error is not None:
            raise self._auth_error
        self.downloads.append(str(dependency))
        if self._delay:
            await asyncio.sleep(self._delay)

        key = artifact_path(dependency.repository, dependency.package, dependency.version)
        if key in self._failing_downloads:
            raise FetchFailedError(str(dependency), status=500)
        archive = self.artifacts.get(key)
        if archive is None:
            raise FetchFailedError(str(dependency), status=404)

        return Package(name=dependency.package, version=dependency.version, archive=archive)

    async def publish(self, package: Package, repository: str) -> None:
        if self._auth_error is not None:
            raise self._auth_error
        self.publishes.append((repository, str(package)))
        if self._delay:
            await asyncio.sleep(self._delay)

        if package.name in self._failing_publishes:
            raise PublishFailedError(str(package.name), status=500)

        self.add_artifact(repository, package.name, package.version, package.archive)
        self._logger.debug("package_published", repository=repository, package=str(package))
