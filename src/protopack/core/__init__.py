"""
protopack.core - Foundation Layer
===================================

The building blocks every other protopack module depends on:

    - config:      ProtopackSettings, Config, ArtifactoryConfig
    - models:      PackageId, ApiManifest, Dependency, Package
    - manifest:    Manifest (Proto.yaml read/write and dependency edits)
    - exceptions:  The ProtopackError hierarchy

Dependency Rule:
    core/ depends on nothing else in the protopack package. infrastructure/,
    integrations/ and the facade all depend on core/.
"""

from protopack.core.config import ArtifactoryConfig, Config, ProtopackSettings
from protopack.core.exceptions import (
    ArchiveError,
    AuthUnavailableError,
    ConfigurationError,
    FetchFailedError,
    InvalidSpecError,
    LoginRequiredError,
    ManifestParseError,
    NotAnApiError,
    NotFoundError,
    ProjectExistsError,
    ProtopackError,
    PublishFailedError,
    RegistryError,
    SecretStoreError,
    StoreClearError,
    StoreError,
    ValidationError,
)
from protopack.core.manifest import Manifest
from protopack.core.models import ApiManifest, Dependency, Package, PackageId

__all__ = [
    # Config
    "ProtopackSettings",
    "Config",
    "ArtifactoryConfig",
    # Models
    "PackageId",
    "ApiManifest",
    "Dependency",
    "Package",
    "Manifest",
    # Exceptions
    "ProtopackError",
    "ValidationError",
    "InvalidSpecError",
    "NotFoundError",
    "ProjectExistsError",
    "ManifestParseError",
    "ConfigurationError",
    "StoreError",
    "ArchiveError",
    "StoreClearError",
    "NotAnApiError",
    "AuthUnavailableError",
    "LoginRequiredError",
    "RegistryError",
    "FetchFailedError",
    "PublishFailedError",
    "SecretStoreError",
]
