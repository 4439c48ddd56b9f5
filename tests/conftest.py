"""
Shared Test Fixtures for protopack
====================================

This module provides reusable pytest fixtures used across the entire
test suite. Fixtures are organized by layer:

    1. Logging (structlog reset between tests)
    2. Settings (every path points into tmp_path)
    3. Archives (building .tgz payloads in memory)
    4. Infrastructure (PackageStore, secret store, CredentialStore)
    5. Registry (InMemoryRegistry)
    6. Facade (Protopack wired to the fakes above)
"""

from __future__ import annotations

import io
import tarfile
from pathlib import Path

import pytest
import structlog

from protopack.core.config import ProtopackSettings
from protopack.facade import Protopack
from protopack.infrastructure.credential_store import CredentialStore, InMemorySecretStore
from protopack.infrastructure.package_store import PackageStore
from protopack.integrations.registry.memory import InMemoryRegistry


# =============================================================================
# Logging
# =============================================================================

@pytest.fixture(autouse=True)
def reset_logging():
    """Undo setup_logging() calls made by CLI tests.

    setup_logging() binds the renderer to the stderr stream current at the
    time, which CliRunner closes after each invoke.
    """
    yield
    structlog.reset_defaults()


# =============================================================================
# Settings
# =============================================================================

@pytest.fixture
def settings(tmp_path: Path) -> ProtopackSettings:
    """Settings with manifest, store, proto sources and config under tmp_path."""
    return ProtopackSettings(
        manifest_path=tmp_path / "Proto.yaml",
        proto_dir=tmp_path / "proto",
        store_dir=tmp_path / "proto" / "vendor",
        config_path=tmp_path / "home" / "config.yaml",
    )


# =============================================================================
# Archives
# =============================================================================

def build_archive(files: dict[str, bytes]) -> bytes:
    """Build a gzip tarball holding ``files`` (archive name → content)."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for name, data in files.items():
            info = tarfile.TarInfo(name=name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


@pytest.fixture
def make_archive():
    """Factory fixture for in-memory .tgz archives."""
    return build_archive


# =============================================================================
# Infrastructure
# =============================================================================

@pytest.fixture
def package_store(settings: ProtopackSettings) -> PackageStore:
    """PackageStore rooted in tmp_path."""
    return PackageStore(settings.store_dir, settings.proto_dir)


@pytest.fixture
def secret_store() -> InMemorySecretStore:
    """Fresh InMemorySecretStore."""
    return InMemorySecretStore()


@pytest.fixture
def credentials(secret_store: InMemorySecretStore, settings: ProtopackSettings) -> CredentialStore:
    """CredentialStore over the in-memory secret store."""
    return CredentialStore(secret_store, settings.config_path)


# =============================================================================
# Registry
# =============================================================================

@pytest.fixture
def registry() -> InMemoryRegistry:
    """Fresh InMemoryRegistry with no artifacts."""
    return InMemoryRegistry()


# =============================================================================
# Facade
# =============================================================================

@pytest.fixture
def protopack(
    settings: ProtopackSettings,
    registry: InMemoryRegistry,
    secret_store: InMemorySecretStore,
    package_store: PackageStore,
) -> Protopack:
    """Protopack facade wired to in-memory registry and secret store."""
    return Protopack(
        settings,
        registry=registry,
        secret_store=secret_store,
        store=package_store,
    )
