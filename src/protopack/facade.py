"""
protopack.facade - Protopack Command Facade
=============================================

The Protopack facade is the single entry point the CLI (and embedding
tools) drive. Each public coroutine is one command:

    init(api)              Create Proto.yaml, optionally declaring an api
    add(spec)              Pin a dependency <repository>/<package>@<version>
    remove(package)        Unpin a dependency and uninstall it
    install()              Download every dependency, then install them all
    uninstall()            Remove every installed package
    publish(repository)    Release the project's api and upload it
    login(url, user, tok)  Store registry credentials
    logout()               Forget registry credentials

Architecture Context:

    ┌──────────────────────────────────────────────────┐
    │                Protopack (Facade)                 │
    │                                                   │
    │   Manifest ─── dependencies ──┐                   │
    │                               ▼                   │
    │   Registry.download ×N  (concurrent, fail-fast)   │
    │                               │ all succeeded     │
    │                               ▼                   │
    │   PackageStore.install ×N (concurrent, fail-fast) │
    │                                                   │
    │   PackageStore.release ──→ Registry.publish       │
    │   CredentialStore ←── login / logout              │
    └──────────────────────────────────────────────────┘

Process Model:
    One command per process. Every command loads the manifest and config
    fresh from disk and writes back what it changed; nothing is kept in
    memory between commands.

Usage:
    >>> protopack = Protopack(ProtopackSettings())
    >>> await protopack.add("org-proto-stable/foo@1.0.0")
    >>> await protopack.install()
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Iterable
from typing import Optional, TypeVar

import structlog

from protopack.core.config import Config, ProtopackSettings
from protopack.core.exceptions import ProjectExistsError
from protopack.core.manifest import Manifest
from protopack.core.models import (
    ApiManifest,
    Dependency,
    Package,
    PackageId,
    validate_repository,
)
from protopack.infrastructure.credential_store import CredentialStore, SecretStore
from protopack.infrastructure.package_store import PackageStore
from protopack.integrations.registry.base import Registry
from protopack.integrations.registry.factory import create_registry


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()

T = TypeVar("T")

INITIAL_API_VERSION = "0.0.1"


class Protopack:
    """Top-level facade running protopack commands.

    Collaborators are injected so tests can swap in fakes; anything not
    given is built from the settings.

    Attributes:
        settings: Process settings (paths, timeouts, concurrency).
        store: The local package store.
        credentials: Login/logout and secret resolution.

    Example:
        >>> protopack = Protopack(
        ...     settings,
        ...     registry=InMemoryRegistry(),
        ...     secret_store=InMemorySecretStore(),
        ... )
        >>> await protopack.init(api="my-api")
        >>> await protopack.publish("org-proto-stable")
    """

    def __init__(
        self,
        settings: Optional[ProtopackSettings] = None,
        *,
        registry: Optional[Registry] = None,
        secret_store: Optional[SecretStore] = None,
        store: Optional[PackageStore] = None,
    ) -> None:
        """Initialize the facade.

        Args:
            settings: Process settings. Defaults to ProtopackSettings(),
                which reads PROTOPACK_* environment variables.
            registry: Registry to use for every command. Defaults to the
                one create_registry() picks from settings and config.
            secret_store: Secret store for credentials. Defaults to the OS
                keyring.
            store: Package store. Defaults to one rooted at
                settings.store_dir.
        """
        self.settings = settings or ProtopackSettings()
        self.store = store or PackageStore(self.settings.store_dir, self.settings.proto_dir)
        self.credentials = CredentialStore(secret_store, self.settings.config_path)
        self._registry = registry
        self._logger = logger.bind(component="protopack")

    # =========================================================================
    # Helpers
    # =========================================================================

    def load_config(self) -> Config:
        return Config.load(self.settings.config_path)

    def registry(self, config: Optional[Config] = None) -> Registry:
        """The registry for this command, injected or built from config."""
        if self._registry is not None:
            return self._registry
        return create_registry(self.settings, config or self.load_config(), self.credentials)

    async def _gather_bounded(self, awaitables: Iterable[Awaitable[T]]) -> list[T]:
        """Run awaitables concurrently, at most max_concurrent_transfers at once.

        The first failure propagates. Siblings already running are not
        cancelled; their results are discarded.
        """
        semaphore = asyncio.Semaphore(self.settings.max_concurrent_transfers)

        async def bounded(awaitable: Awaitable[T]) -> T:
            async with semaphore:
                return await awaitable

        return list(await asyncio.gather(*(bounded(a) for a in awaitables)))

    # =========================================================================
    # Project Commands
    # =========================================================================

    async def init(self, api: Optional[str] = None) -> Manifest:
        """Create a fresh manifest for this project.

        Args:
            api: Package id to declare this project as an api under. The
                api starts at version 0.0.1.

        Raises:
            ValidationError: If ``api`` is not a valid package id.
            ProjectExistsError: If a manifest already exists.
        """
        manifest = Manifest()
        if api is not None:
            manifest.api = ApiManifest(name=PackageId(api), version=INITIAL_API_VERSION)

        path = self.settings.manifest_path
        if Manifest.exists(path):
            raise ProjectExistsError(
                message=f"Cannot initialize an existing project, {path} already exists",
                details={"path": str(path)},
            )

        manifest.write(path)
        self._logger.info("project_initialized", path=str(path), api=api)
        return manifest

    async def add(self, spec: str) -> Dependency:
        """Pin a dependency in the manifest.

        The spec is fully validated before the manifest is read, so a bad
        spec never touches the file.

        Raises:
            InvalidSpecError: If the spec is malformed.
            NotFoundError: If there is no manifest.
        """
        dependency = Dependency.parse(spec)

        path = self.settings.manifest_path
        manifest = Manifest.read(path)
        replaced = manifest.add_dependency(dependency)
        manifest.write(path)

        if replaced is not None:
            self._logger.info("dependency_updated", old=str(replaced), new=str(dependency))
        else:
            self._logger.info("dependency_added", dependency=str(dependency))
        return dependency

    async def remove(self, package: str) -> Dependency:
        """Unpin a dependency and uninstall its package.

        The manifest is only written after the uninstall succeeded, so a
        failed uninstall leaves both the manifest and the store as they
        were.

        Raises:
            ValidationError: If ``package`` is not a valid package id.
            NotFoundError: If there is no manifest or no such dependency.
            StoreError: If the installed package cannot be removed.
        """
        package_id = PackageId(package)

        path = self.settings.manifest_path
        manifest = Manifest.read(path)
        dependency = manifest.remove_dependency(package_id)

        await self.store.uninstall(dependency.package)
        manifest.write(path)

        self._logger.info("dependency_removed", dependency=str(dependency))
        return dependency

    # =========================================================================
    # Package Commands
    # =========================================================================

    async def install(self) -> list[Package]:
        """Download all dependencies, then install them all.

        Installation starts only once every download has succeeded; a
        failed download installs nothing.

        Raises:
            NotFoundError: If there is no manifest.
            AuthUnavailableError: If no registry is configured.
            FetchFailedError: If any download fails.
            StoreError: If any install fails.
        """
        manifest = Manifest.read(self.settings.manifest_path)
        if not manifest.dependencies:
            self._logger.info("nothing_to_install")
            return []

        registry = self.registry()
        packages = await self._gather_bounded(
            registry.download(dep) for dep in manifest.dependencies
        )
        self._logger.debug("dependencies_downloaded", count=len(packages))

        await self._gather_bounded(self.store.install(package) for package in packages)

        self._logger.info(
            "dependencies_installed",
            packages=[str(p) for p in packages],
        )
        return packages

    async def uninstall(self) -> int:
        """Remove every installed package.

        Raises:
            StoreClearError: If some packages could not be removed (the
                rest are removed regardless).
        """
        removed = await self.store.clear()
        self._logger.info("dependencies_uninstalled", removed=removed)
        return removed

    async def publish(self, repository: str) -> Package:
        """Release this project's api and upload it to ``repository``.

        Raises:
            ValidationError: If the repository name is invalid.
            NotFoundError: If there is no manifest.
            AuthUnavailableError: If no registry is configured.
            NotAnApiError: If the manifest declares no api.
            PublishFailedError: If the upload fails.
        """
        validate_repository(repository)

        registry = self.registry()
        manifest = Manifest.read(self.settings.manifest_path)
        package = await self.store.release(manifest)
        await registry.publish(package, repository)

        self._logger.info(
            "package_published",
            repository=repository,
            package=str(package.name),
            version=package.version,
        )
        return package

    # =========================================================================
    # Credential Commands
    # =========================================================================

    async def login(self, url: str, username: str, secret: str) -> None:
        """Store registry credentials.

        Raises:
            ValidationError: If the url, username or secret is unusable.
            SecretStoreError: If the OS secret store fails.
        """
        config = self.load_config()
        await asyncio.to_thread(self.credentials.login, config, url, username, secret)

    async def logout(self) -> None:
        """Remove registry credentials and the connection record.

        Raises:
            SecretStoreError: If the secret could not be deleted.
            StoreError: If the config could not be written.
        """
        config = self.load_config()
        await asyncio.to_thread(self.credentials.logout, config)
