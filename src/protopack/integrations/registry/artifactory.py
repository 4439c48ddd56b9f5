"""
protopack.integrations.registry.artifactory - Artifactory Registry
====================================================================

HTTP registry client for JFrog Artifactory style generic repositories.

Wire Contract:
    GET  {url}/{repository}/{package}/{package}-{version}.tgz   download
    PUT  {url}/{repository}/{package}/{package}-{version}.tgz   publish (raw body)

    Both use HTTP basic auth. Any 2xx status is success; everything else
    becomes FetchFailedError / PublishFailedError. Nothing is retried.

Credentials:
    The username comes from the ArtifactoryConfig. The secret is resolved
    through the CredentialStore on every request and dropped afterwards.
"""

from __future__ import annotations

import asyncio

import aiohttp
import structlog

from protopack.core.config import ArtifactoryConfig
from protopack.core.exceptions import FetchFailedError, PublishFailedError
from protopack.core.models import Dependency, Package
from protopack.infrastructure.credential_store import CredentialStore
from protopack.integrations.registry.base import Registry, artifact_path


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


def _is_success(status: int) -> bool:
    return 200 <= status < 300


class Artifactory(Registry):
    """Registry backed by an Artifactory server.

    Attributes:
        config: Connection metadata (url, username).

    Example:
        >>> registry = Artifactory(config.artifactory, credentials)
        >>> package = await registry.download(Dependency.parse("org-proto-stable/foo@1.0.0"))
        >>> await registry.publish(package, "org-proto-stable")
    """

    def __init__(
        self,
        config: ArtifactoryConfig,
        credentials: CredentialStore,
        timeout_seconds: float = 30.0,
    ) -> None:
        self.config = config
        self._credentials = credentials
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._logger = logger.bind(component="artifactory", url=config.url)

    def artifact_url(self, repository: str, package: str, version: str) -> str:
        """Absolute URL of an artifact on this server."""
        return f"{self.config.url}/{artifact_path(repository, package, version)}"

    async def _auth(self) -> aiohttp.BasicAuth:
        # Keyring backends can block (D-Bus, Keychain prompts)
        secret = await asyncio.to_thread(
            self._credentials.resolve_secret,
            self.config.url,
            self.config.username,
        )
        return aiohttp.BasicAuth(self.config.username, secret)

    async def download(self, dependency: Dependency) -> Package:
        """Download a dependency's archive.

        Raises:
            LoginRequiredError: If no secret is stored for this connection.
            FetchFailedError: On a non-2xx response or a transport error.
        """
        url = self.artifact_url(dependency.repository, dependency.package, dependency.version)
        auth = await self._auth()

        try:
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                async with session.get(url, auth=auth) as response:
                    if not _is_success(response.status):
                        raise FetchFailedError(str(dependency), status=response.status)
                    archive = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FetchFailedError(str(dependency), reason=str(e) or type(e).__name__) from e

        self._logger.debug("dependency_downloaded", dependency=str(dependency), size=len(archive))
        return Package(name=dependency.package, version=dependency.version, archive=archive)

    async def publish(self, package: Package, repository: str) -> None:
        """Upload a package archive.

        Raises:
            LoginRequiredError: If no secret is stored for this connection.
            PublishFailedError: On a non-2xx response or a transport error.
        """
        url = self.artifact_url(repository, package.name, package.version)
        auth = await self._auth()

        try:
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                async with session.put(
                    url,
                    data=package.archive,
                    auth=auth,
                    headers={"Content-Type": "application/gzip"},
                ) as response:
                    if not _is_success(response.status):
                        raise PublishFailedError(str(package.name), status=response.status)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise PublishFailedError(str(package.name), reason=str(e) or type(e).__name__) from e

        self._logger.info(
            "package_published",
            repository=repository,
            package=str(package.name),
            version=package.version,
        )
