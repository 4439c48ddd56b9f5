"""
protopack.infrastructure.package_store - Local Package Store
==============================================================

The package store is the project's on-disk cache of installed packages.
Every installed package occupies one directory keyed by its identifier:

    proto/
    ├── my_service.proto          ← the project's own definitions
    └── vendor/                   ← PackageStore root
        ├── foo/                  ← contents of foo-1.0.0.tgz
        │   └── foo.proto
        └── bar/
            └── bar.proto

Operations:
    install(package)     Unpack a package archive into vendor/<name>
    uninstall(id)        Remove vendor/<name>, a no-op when absent
    clear()              Remove every installed package (best effort)
    release(manifest)    Pack the project's own .proto sources into a Package

Consistency:
    install() unpacks into a private staging directory inside the store
    root and only then swaps it into place. A corrupt archive or a crash
    mid-extraction never leaves a half-written vendor/<name>, and two
    packages installed concurrently never touch each other's files.

    Blocking tar and filesystem work runs in ``asyncio.to_thread`` so
    concurrent installs actually overlap.
"""

from __future__ import annotations

import asyncio
import gzip
import io
import os
import shutil
import tarfile
import tempfile
import zlib
from pathlib import Path

import structlog
import yaml

from protopack.core.exceptions import (
    ArchiveError,
    NotAnApiError,
    StoreClearError,
    StoreError,
    ValidationError,
)
from protopack.core.manifest import MANIFEST_FILE, Manifest
from protopack.core.models import Package, PackageId


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


DEFAULT_PROTO_DIR = Path("proto")
DEFAULT_STORE_DIR = DEFAULT_PROTO_DIR / "vendor"


class PackageStore:
    """Manages the directory of installed packages.

    Attributes:
        root: Store root, one subdirectory per installed package.
        proto_dir: Directory with the project's own definitions, used by
            release(). The store root is skipped when it lives inside it.

    Example:
        >>> store = PackageStore(Path("proto/vendor"))
        >>> await store.install(package)
        >>> store.installed()
        [PackageId('foo')]
        >>> await store.uninstall(PackageId("foo"))
    """

    def __init__(
        self,
        root: Path = DEFAULT_STORE_DIR,
        proto_dir: Path = DEFAULT_PROTO_DIR,
    ) -> None:
        self.root = Path(root)
        self.proto_dir = Path(proto_dir)
        self._logger = logger.bind(component="package_store")

    def location(self, package: str) -> Path:
        """Directory a package is (or would be) installed at."""
        return self.root / PackageId(package)

    def installed(self) -> list[PackageId]:
        """Identifiers of all installed packages, sorted by name."""
        if not self.root.is_dir():
            return []
        packages = []
        for entry in self.root.iterdir():
            # Staging directories are dot-prefixed and never valid ids
            if not entry.is_dir() or entry.name.startswith("."):
                continue
            try:
                packages.append(PackageId(entry.name))
            except ValidationError:
                self._logger.debug("foreign_store_entry", path=str(entry))
        return sorted(packages)

    # =========================================================================
    # Install / Uninstall
    # =========================================================================

    async def install(self, package: Package) -> Path:
        """Unpack a package into the store, replacing any previous install.

        Args:
            package: The package whose gzip tarball should be unpacked.

        Returns:
            The package's install location.

        Raises:
            ArchiveError: If the archive is corrupt or unsafe to extract.
            StoreError: On filesystem failures.
        """
        destination = await asyncio.to_thread(self._unpack, package)
        self._logger.info(
            "package_installed",
            package=str(package.name),
            version=package.version,
            location=str(destination),
        )
        return destination

    def _unpack(self, package: Package) -> Path:
        destination = self.location(package.name)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            staging = Path(tempfile.mkdtemp(prefix=f".{package.name}.", dir=self.root))
        except OSError as e:
            raise StoreError(
                message=f"Failed to prepare store directory {self.root}: {e}",
                path=str(self.root),
            ) from e

        try:
            with tarfile.open(fileobj=io.BytesIO(package.archive), mode="r:gz") as tar:
                tar.extractall(path=staging, filter="data")
            if destination.exists():
                _remove_path(destination)
            os.replace(staging, destination)
        except (tarfile.TarError, EOFError, zlib.error, gzip.BadGzipFile) as e:
            raise ArchiveError(
                message=f"Corrupt archive for {package}: {e}",
                path=str(destination),
                details={"package": str(package.name), "version": package.version},
            ) from e
        except OSError as e:
            raise StoreError(
                message=f"Failed to install {package} into {destination}: {e}",
                path=str(destination),
            ) from e
        finally:
            if staging.exists():
                shutil.rmtree(staging, ignore_errors=True)

        return destination

    async def uninstall(self, package: str) -> bool:
        """Remove an installed package.

        Uninstalling a package that is not installed succeeds.

        Returns:
            True if something was removed, False if it was already absent.

        Raises:
            StoreError: If the package location cannot be removed.
        """
        location = self.location(package)
        if not location.exists():
            self._logger.debug("package_not_installed", package=str(package))
            return False

        try:
            await asyncio.to_thread(_remove_path, location)
        except OSError as e:
            raise StoreError(
                message=f"Failed to uninstall {package} from {location}: {e}",
                path=str(location),
            ) from e

        self._logger.info("package_uninstalled", package=str(package))
        return True

    async def clear(self) -> int:
        """Remove every installed package.

        Removal continues past individual failures. When anything could not
        be removed, a single StoreClearError listing every failure is raised
        after the remaining entries have been deleted.

        Returns:
            Number of entries removed.

        Raises:
            StoreClearError: If one or more entries could not be removed.
        """
        return await asyncio.to_thread(self._clear)

    def _clear(self) -> int:
        if not self.root.exists():
            return 0

        removed = 0
        failures: dict[str, str] = {}
        for entry in sorted(self.root.iterdir()):
            try:
                _remove_path(entry)
                removed += 1
            except OSError as e:
                failures[str(entry)] = str(e)
                self._logger.warning("package_remove_failed", path=str(entry), error=str(e))

        if failures:
            raise StoreClearError(failures)

        try:
            self.root.rmdir()
        except OSError as e:
            raise StoreError(
                message=f"Failed to remove store directory {self.root}: {e}",
                path=str(self.root),
            ) from e

        self._logger.info("store_cleared", removed=removed)
        return removed

    # =========================================================================
    # Release
    # =========================================================================

    async def release(self, manifest: Manifest) -> Package:
        """Package the project's own definitions for publishing.

        The archive holds the manifest plus every ``*.proto`` file below
        ``proto_dir`` (installed dependencies excluded), with fixed
        timestamps and ownership so the same sources give the same bytes.

        Raises:
            NotAnApiError: If the manifest has no api section.
            StoreError: If the sources cannot be read.
        """
        if manifest.api is None:
            raise NotAnApiError()

        archive = await asyncio.to_thread(self._pack, manifest)
        package = Package(
            name=manifest.api.name,
            version=manifest.api.version,
            archive=archive,
        )
        self._logger.info(
            "package_released",
            package=str(package.name),
            version=package.version,
            size=len(archive),
        )
        return package

    def _pack(self, manifest: Manifest) -> bytes:
        if not self.proto_dir.is_dir():
            raise StoreError(
                message=f"No proto source directory at {self.proto_dir}",
                path=str(self.proto_dir),
            )

        sources = self._collect_sources()
        if not sources:
            self._logger.warning("release_without_sources", proto_dir=str(self.proto_dir))

        manifest_bytes = yaml.safe_dump(
            manifest.model_dump(mode="json", exclude_none=True),
            sort_keys=False,
        ).encode()

        buffer = io.BytesIO()
        try:
            with gzip.GzipFile(fileobj=buffer, mode="wb", mtime=0) as gz:
                with tarfile.open(fileobj=gz, mode="w", format=tarfile.PAX_FORMAT) as tar:
                    _add_bytes(tar, MANIFEST_FILE.name, manifest_bytes)
                    for path in sources:
                        arcname = path.relative_to(self.proto_dir).as_posix()
                        _add_bytes(tar, arcname, path.read_bytes())
        except OSError as e:
            raise StoreError(
                message=f"Failed to read proto sources in {self.proto_dir}: {e}",
                path=str(self.proto_dir),
            ) from e

        return buffer.getvalue()

    def _collect_sources(self) -> list[Path]:
        store_root = self.root.resolve()
        return sorted(
            path
            for path in self.proto_dir.rglob("*.proto")
            if path.is_file() and not path.resolve().is_relative_to(store_root)
        )


# =============================================================================
# Helpers
# =============================================================================
def _remove_path(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


def _add_bytes(tar: tarfile.TarFile, name: str, data: bytes) -> None:
    info = tarfile.TarInfo(name=name)
    info.size = len(data)
    info.mode = 0o644
    info.mtime = 0
    info.uid = info.gid = 0
    info.uname = info.gname = ""
    tar.addfile(info, io.BytesIO(data))
