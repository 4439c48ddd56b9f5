"""
protopack.core.config - Configuration Management
==================================================

This module holds the two kinds of configuration protopack works with:

    ProtopackSettings  - Process settings: file locations, log level, network
                         timeouts. Loaded from PROTOPACK_* environment
                         variables with defaults for everything.
    Config             - The user's persisted registry connection
                         (~/.protopack/config.yaml). Loaded once per command,
                         mutated by login/logout, written back.

Secrets Policy:
    Config never holds a password or token. An ArtifactoryConfig only names
    the endpoint and username; the secret is looked up in the OS secret
    store (see protopack.infrastructure.credential_store) at the moment it
    is needed, keyed by (url, username).

Usage:
    >>> settings = ProtopackSettings()
    >>> config = Config.load(settings.config_path)
    >>> config.artifactory
    ArtifactoryConfig(url='https://example.com/artifactory', username='me')

Environment Variables:
    PROTOPACK_MANIFEST_PATH=Proto.yaml
    PROTOPACK_STORE_DIR=proto/vendor
    PROTOPACK_CONFIG_PATH=~/.protopack/config.yaml
    PROTOPACK_LOG_LEVEL=DEBUG
    PROTOPACK_LOCAL_REGISTRY=/srv/proto-registry
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import AnyHttpUrl, BaseModel, Field, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings

from protopack.core.exceptions import ConfigurationError, StoreError


DEFAULT_CONFIG_PATH = Path.home() / ".protopack" / "config.yaml"

_HTTP_URL = TypeAdapter(AnyHttpUrl)


# =============================================================================
# Process Settings
# =============================================================================
class ProtopackSettings(BaseSettings):
    """Process-wide settings for a protopack invocation.

    Attributes:
        manifest_path: Location of the project manifest.
        proto_dir: Directory holding the project's own definitions.
        store_dir: Directory installed packages are unpacked into.
        config_path: Location of the persisted registry connection.
        log_level: Logging level for the structlog console output.
        request_timeout_seconds: Total timeout per registry request.
        max_concurrent_transfers: Upper bound on parallel downloads/installs.
        local_registry: When set, a filesystem directory used as the
            registry instead of the configured Artifactory connection.
    """

    manifest_path: Path = Field(
        default=Path("Proto.yaml"),
        description="Project manifest file",
    )
    proto_dir: Path = Field(
        default=Path("proto"),
        description="Directory with the project's own .proto sources",
    )
    store_dir: Path = Field(
        default=Path("proto/vendor"),
        description="Package store root, one directory per installed package",
    )
    config_path: Path = Field(
        default=DEFAULT_CONFIG_PATH,
        description="User configuration with the registry connection",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR",
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Total timeout in seconds for a single registry request",
    )
    max_concurrent_transfers: int = Field(
        default=8,
        ge=1,
        le=64,
        description="Maximum number of downloads or installs in flight",
    )
    local_registry: Optional[Path] = Field(
        default=None,
        description="Use a filesystem directory as the registry",
    )

    model_config = {
        "env_prefix": "PROTOPACK_",
        "case_sensitive": False,
    }


# =============================================================================
# Registry Connection
# =============================================================================
class ArtifactoryConfig(BaseModel):
    """Connection metadata for an Artifactory registry.

    Attributes:
        url: Base URL, e.g. https://<domain>/artifactory (no trailing '/').
        username: Username for basic authentication.
    """

    url: str = Field(description="Artifactory base URL")
    username: str = Field(min_length=1, description="Artifactory username")

    @field_validator("url")
    @classmethod
    def check_url(cls, value: str) -> str:
        try:
            parsed = _HTTP_URL.validate_python(value.strip())
        except PydanticValidationError as e:
            raise ValueError(
                f"Registry url must be an absolute http(s) url, got {value!r}: "
                f"{e.errors()[0]['msg']}"
            ) from e
        return str(parsed).rstrip("/")


class Config(BaseModel):
    """Persisted user configuration: at most one registry connection."""

    artifactory: Optional[ArtifactoryConfig] = None

    @classmethod
    def load(cls, path: Optional[Path] = None) -> Config:
        """Load the configuration document.

        A missing file is not an error, it yields an empty Config.

        Raises:
            ConfigurationError: If the file exists but is not a valid document.
        """
        config_path = Path(path or DEFAULT_CONFIG_PATH).expanduser()
        if not config_path.exists():
            return cls()

        try:
            with open(config_path, encoding="utf-8") as f:
                raw_data = yaml.safe_load(f)
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(
                message=f"Failed to read configuration {config_path}: {e}",
                details={"path": str(config_path)},
            ) from e

        data: dict[str, Any] = raw_data if isinstance(raw_data, dict) else {}
        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            raise ConfigurationError(
                message=f"Invalid configuration {config_path}: {e}",
                details={"path": str(config_path)},
            ) from e

    def write(self, path: Optional[Path] = None) -> None:
        """Persist the configuration, replacing the previous document.

        Raises:
            StoreError: If the file cannot be written.
        """
        config_path = Path(path or DEFAULT_CONFIG_PATH).expanduser()
        text = yaml.safe_dump(
            self.model_dump(mode="json", exclude_none=True),
            sort_keys=False,
        )
        write_text_atomic(config_path, text)


# =============================================================================
# Helpers
# =============================================================================
def write_text_atomic(path: Path, text: str) -> None:
    """Write ``text`` to ``path`` through a temp file and ``os.replace``.

    Readers see either the old document or the new one, never a
    truncated file.

    Raises:
        StoreError: On any filesystem failure.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=path.parent,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as e:
        raise StoreError(message=f"Failed to write {path}: {e}", path=str(path)) from e
