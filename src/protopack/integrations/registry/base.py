"""
protopack.integrations.registry.base - Abstract Registry Interface
====================================================================

A registry serves and accepts versioned package archives. The interface is
deliberately narrow, two operations, so a different artifact host or a
plain directory can stand in without touching the manifest or the store.

    ┌──────────────┐   download(dependency)   ┌──────────────────┐
    │  Facade      │ ───────────────────────→ │  Registry (ABC)  │
    │              │ ←──────── Package ────── │                  │
    │              │   publish(package, repo) │                  │
    └──────────────┘ ───────────────────────→ └────────┬─────────┘
                                                       │
                                  ┌────────────────────┼──────────────┐
                                  │                    │              │
                            ┌─────▼──────┐    ┌────────▼─────┐  ┌─────▼──────┐
                            │ Artifactory│    │ LocalRegistry│  │ InMemory   │
                            │  (HTTP)    │    │ (directory)  │  │ (tests)    │
                            └────────────┘    └──────────────┘  └────────────┘

Artifact Address:
    Every implementation lays artifacts out the same way:

        <repository>/<package>/<package>-<version>.tgz
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from protopack.core.models import ARCHIVE_EXTENSION, Dependency, Package


def artifact_path(repository: str, package: str, version: str) -> str:
    """Relative address of a package artifact inside a registry.

    Example:
        >>> artifact_path("org-proto-stable", "foo", "1.0.0")
        'org-proto-stable/foo/foo-1.0.0.tgz'
    """
    return f"{repository}/{package}/{package}-{version}.{ARCHIVE_EXTENSION}"


class Registry(ABC):
    """Abstract interface every registry transport implements."""

    @abstractmethod
    async def download(self, dependency: Dependency) -> Package:
        """Fetch the archive for a pinned dependency.

        The archive bytes are returned untouched; unpacking is the package
        store's job.

        Raises:
            FetchFailedError: If the artifact cannot be fetched.
            AuthUnavailableError: If the transport needs credentials and
                none are available.
        """

    @abstractmethod
    async def publish(self, package: Package, repository: str) -> None:
        """Upload a package archive to a repository.

        Raises:
            PublishFailedError: If the upload does not succeed.
            AuthUnavailableError: If the transport needs credentials and
                none are available.
        """
