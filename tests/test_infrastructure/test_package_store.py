"""
Tests for PackageStore
=======================

Tests install/uninstall/clear against a real directory under tmp_path and
release() against real .proto sources.
"""

import asyncio
import io
import shutil
import tarfile
from pathlib import Path

import pytest
import yaml

from protopack.core.exceptions import (
    ArchiveError,
    NotAnApiError,
    StoreClearError,
    StoreError,
)
from protopack.core.manifest import Manifest
from protopack.core.models import ApiManifest, Dependency, Package
from protopack.infrastructure.package_store import PackageStore
from tests.conftest import build_archive


def _package(name: str, version: str = "1.0.0", files: dict[str, bytes] | None = None) -> Package:
    files = files if files is not None else {f"{name}.proto": f"package {name};".encode()}
    return Package(name=name, version=version, archive=build_archive(files))


def _api_manifest() -> Manifest:
    return Manifest(
        api=ApiManifest(name="my-api", version="0.1.0"),
        dependencies=[Dependency.parse("org-proto-stable/foo@1.0.0")],
    )


def _archive_names(archive: bytes) -> list[str]:
    with tarfile.open(fileobj=io.BytesIO(archive), mode="r:gz") as tar:
        return tar.getnames()


# =============================================================================
# Install
# =============================================================================
class TestInstall:
    """Tests for unpacking packages into the store."""

    async def test_install_unpacks_into_location(self, package_store: PackageStore) -> None:
        location = await package_store.install(_package("foo", files={
            "foo.proto": b"syntax = \"proto3\";",
            "nested/types.proto": b"message T {}",
        }))

        assert location == package_store.location("foo")
        assert (location / "foo.proto").read_bytes() == b"syntax = \"proto3\";"
        assert (location / "nested" / "types.proto").read_bytes() == b"message T {}"
        assert package_store.installed() == ["foo"]

    async def test_reinstall_replaces_previous_contents(self, package_store: PackageStore) -> None:
        await package_store.install(_package("foo", files={"old.proto": b"old"}))
        location = await package_store.install(_package("foo", "2.0.0", files={"new.proto": b"new"}))

        assert (location / "new.proto").exists()
        assert not (location / "old.proto").exists()

    async def test_corrupt_archive(self, package_store: PackageStore) -> None:
        package = Package(name="foo", version="1.0.0", archive=b"definitely not gzip")
        with pytest.raises(ArchiveError) as exc_info:
            await package_store.install(package)

        assert exc_info.value.details["package"] == "foo"
        assert not package_store.location("foo").exists()
        assert list(package_store.root.iterdir()) == []

    async def test_corrupt_archive_keeps_previous_install(self, package_store: PackageStore) -> None:
        await package_store.install(_package("foo", files={"foo.proto": b"v1"}))
        with pytest.raises(ArchiveError):
            await package_store.install(Package(name="foo", version="2.0.0", archive=b"\x1f\x8bbroken"))

        assert (package_store.location("foo") / "foo.proto").read_bytes() == b"v1"

    async def test_rejects_paths_outside_destination(self, package_store: PackageStore) -> None:
        package = _package("foo", files={"../escape.proto": b"x"})
        with pytest.raises(ArchiveError):
            await package_store.install(package)
        assert not (package_store.root / "escape.proto").exists()

    async def test_concurrent_installs_do_not_interfere(self, package_store: PackageStore) -> None:
        names = ["alpha", "beta", "gamma", "delta", "epsilon"]
        await asyncio.gather(*(package_store.install(_package(n)) for n in names))

        assert package_store.installed() == sorted(names)
        for name in names:
            assert (package_store.location(name) / f"{name}.proto").read_bytes() == f"package {name};".encode()

    def test_installed_skips_foreign_entries(self, package_store: PackageStore) -> None:
        package_store.root.mkdir(parents=True)
        (package_store.root / "Not_A_Package").mkdir()
        (package_store.root / ".staging").mkdir()
        (package_store.root / "stray.txt").write_text("")
        (package_store.root / "ok").mkdir()

        assert package_store.installed() == ["ok"]

    def test_installed_without_root(self, package_store: PackageStore) -> None:
        assert package_store.installed() == []


# =============================================================================
# Uninstall / Clear
# =============================================================================
class TestUninstall:
    """Tests for removing installed packages."""

    async def test_uninstall_removes_location(self, package_store: PackageStore) -> None:
        await package_store.install(_package("foo"))
        assert await package_store.uninstall("foo") is True
        assert not package_store.location("foo").exists()

    async def test_uninstall_missing_is_noop(self, package_store: PackageStore) -> None:
        assert await package_store.uninstall("foo") is False

    async def test_uninstall_failure_is_store_error(
        self, package_store: PackageStore, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        await package_store.install(_package("foo"))

        def failing_rmtree(path, *args, **kwargs):
            raise PermissionError("denied")

        monkeypatch.setattr("protopack.infrastructure.package_store.shutil.rmtree", failing_rmtree)
        with pytest.raises(StoreError, match="denied"):
            await package_store.uninstall("foo")


class TestClear:
    """Tests for removing every installed package."""

    async def test_clear_removes_everything(self, package_store: PackageStore) -> None:
        for name in ("a", "b", "c"):
            await package_store.install(_package(name))

        assert await package_store.clear() == 3
        assert not package_store.root.exists()

    async def test_clear_empty_store(self, package_store: PackageStore) -> None:
        assert await package_store.clear() == 0

    async def test_clear_continues_past_failures(
        self, package_store: PackageStore, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """One stuck entry must not stop the others from being removed."""
        for name in ("a", "b", "c", "d"):
            await package_store.install(_package(name))

        real_rmtree = shutil.rmtree
        stuck = package_store.location("b")

        def flaky_rmtree(path, *args, **kwargs):
            if Path(path) == stuck:
                raise PermissionError("resource busy")
            return real_rmtree(path, *args, **kwargs)

        monkeypatch.setattr("protopack.infrastructure.package_store.shutil.rmtree", flaky_rmtree)

        with pytest.raises(StoreClearError) as exc_info:
            await package_store.clear()

        assert list(exc_info.value.failures) == [str(stuck)]
        assert "resource busy" in exc_info.value.message
        assert package_store.installed() == ["b"]


# =============================================================================
# Release
# =============================================================================
class TestRelease:
    """Tests for packing the project's own definitions."""

    def _write_sources(self, package_store: PackageStore) -> None:
        proto_dir = package_store.proto_dir
        (proto_dir / "sub").mkdir(parents=True)
        (proto_dir / "service.proto").write_text("service S {}")
        (proto_dir / "sub" / "types.proto").write_text("message T {}")
        (proto_dir / "README.md").write_text("not a proto")

    async def test_release_requires_api(self, package_store: PackageStore) -> None:
        with pytest.raises(NotAnApiError):
            await package_store.release(Manifest())

    async def test_release_requires_proto_dir(self, package_store: PackageStore) -> None:
        with pytest.raises(StoreError):
            await package_store.release(_api_manifest())

    async def test_release_contents(self, package_store: PackageStore) -> None:
        self._write_sources(package_store)
        package = await package_store.release(_api_manifest())

        assert package.name == "my-api"
        assert package.version == "0.1.0"
        assert _archive_names(package.archive) == ["Proto.yaml", "service.proto", "sub/types.proto"]

        with tarfile.open(fileobj=io.BytesIO(package.archive), mode="r:gz") as tar:
            manifest_data = yaml.safe_load(tar.extractfile("Proto.yaml").read())
        assert manifest_data["api"]["name"] == "my-api"

    async def test_release_excludes_installed_packages(self, package_store: PackageStore) -> None:
        self._write_sources(package_store)
        await package_store.install(_package("foo"))

        package = await package_store.release(_api_manifest())
        assert not any(name.startswith("vendor") for name in _archive_names(package.archive))

    async def test_release_is_deterministic(self, package_store: PackageStore) -> None:
        self._write_sources(package_store)
        first = await package_store.release(_api_manifest())
        second = await package_store.release(_api_manifest())
        assert first.archive == second.archive

    async def test_released_package_installs(self, tmp_path: Path, package_store: PackageStore) -> None:
        self._write_sources(package_store)
        package = await package_store.release(_api_manifest())

        other = PackageStore(tmp_path / "other" / "vendor", tmp_path / "other")
        location = await other.install(package)
        assert (location / "sub" / "types.proto").read_text() == "message T {}"
