"""
protopack.integrations.registry.local - Filesystem Registry
=============================================================

A registry that is just a directory, laid out exactly like the HTTP one:

    <root>/org-proto-stable/foo/foo-1.0.0.tgz

Useful for air-gapped setups, shared network drives and local testing of
the publish/install round trip. No credentials involved.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import structlog

from protopack.core.exceptions import FetchFailedError, PublishFailedError
from protopack.core.models import Dependency, Package
from protopack.integrations.registry.base import Registry, artifact_path


logger = structlog.get_logger()


class LocalRegistry(Registry):
    """Registry stored in a local directory."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self._logger = logger.bind(component="local_registry", root=str(self.root))

    def artifact_file(self, repository: str, package: str, version: str) -> Path:
        return self.root / artifact_path(repository, package, version)

    async def download(self, dependency: Dependency) -> Package:
        path = self.artifact_file(dependency.repository, dependency.package, dependency.version)
        try:
            archive = await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as e:
            raise FetchFailedError(str(dependency), reason=f"no artifact at {path}") from e
        except OSError as e:
            raise FetchFailedError(str(dependency), reason=str(e)) from e

        self._logger.debug("dependency_downloaded", dependency=str(dependency), size=len(archive))
        return Package(name=dependency.package, version=dependency.version, archive=archive)

    async def publish(self, package: Package, repository: str) -> None:
        path = self.artifact_file(repository, package.name, package.version)
        try:
            await asyncio.to_thread(_write_bytes, path, package.archive)
        except OSError as e:
            raise PublishFailedError(str(package.name), reason=str(e)) from e

        self._logger.info(
            "package_published",
            repository=repository,
            package=str(package.name),
            version=package.version,
        )


def _write_bytes(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.tmp")
    tmp.write_bytes(data)
    tmp.replace(path)
