"""
protopack.infrastructure.credential_store - Registry Credentials
==================================================================

Registry credentials are split in two:

    Config (~/.protopack/config.yaml)     url + username, no secrets
    SecretStore (OS keyring)              the password / token

    ┌──────────────┐  login(url, user, secret)  ┌─────────────────┐
    │  Facade      │ ─────────────────────────→ │ CredentialStore │
    │              │                            │                 │
    │  Artifactory │ ── resolve_secret() ─────→ │   ┌─────────┐   │
    └──────────────┘                            │   │ Secret  │   │
                                                │   │ Store   │   │
                                                │   └─────────┘   │
                                                └─────────────────┘

Secret Store Implementations:
    - KeyringSecretStore:  The OS keyring via the ``keyring`` library
    - InMemorySecretStore: Dict-based, for tests

Secrets are addressed by (service, username) where the service is the
registry URL. They are resolved on every use and never cached.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import keyring
import structlog
from keyring.errors import KeyringError, PasswordDeleteError
from pydantic import ValidationError as PydanticValidationError

from protopack.core.config import ArtifactoryConfig, Config
from protopack.core.exceptions import (
    LoginRequiredError,
    ProtopackError,
    SecretStoreError,
    StoreError,
    ValidationError,
)


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


# =============================================================================
# Secret Store Interface
# =============================================================================
class SecretStore(ABC):
    """Abstract key/value store for secrets, keyed by (service, username)."""

    @abstractmethod
    def get(self, service: str, username: str) -> Optional[str]:
        """Return the stored secret, or None if there is none.

        Raises:
            SecretStoreError: If the backend cannot be queried.
        """

    @abstractmethod
    def set(self, service: str, username: str, secret: str) -> None:
        """Store a secret, replacing any existing one.

        Raises:
            SecretStoreError: If the backend cannot store the secret.
        """

    @abstractmethod
    def delete(self, service: str, username: str) -> None:
        """Delete a secret. Deleting a missing secret is not an error.

        Raises:
            SecretStoreError: If the backend fails.
        """


class KeyringSecretStore(SecretStore):
    """Secret store backed by the platform keyring.

    Uses whatever backend ``keyring`` selects: macOS Keychain, Windows
    Credential Locker, Secret Service / KWallet on Linux.
    """

    def get(self, service: str, username: str) -> Optional[str]:
        try:
            return keyring.get_password(service, username)
        except KeyringError as e:
            raise SecretStoreError(
                message=f"Failed to load secret from keyring: {e}",
                details={"service": service, "username": username},
            ) from e

    def set(self, service: str, username: str, secret: str) -> None:
        try:
            keyring.set_password(service, username, secret)
        except KeyringError as e:
            raise SecretStoreError(
                message=f"Failed to store secret in keyring: {e}",
                details={"service": service, "username": username},
            ) from e

    def delete(self, service: str, username: str) -> None:
        try:
            keyring.delete_password(service, username)
        except PasswordDeleteError:
            return
        except KeyringError as e:
            raise SecretStoreError(
                message=f"Failed to delete secret from keyring: {e}",
                details={"service": service, "username": username},
            ) from e


class InMemorySecretStore(SecretStore):
    """Dict-backed secret store for tests and development.

    Example:
        >>> secrets = InMemorySecretStore()
        >>> secrets.set("https://registry", "me", "token")
        >>> secrets.get("https://registry", "me")
        'token'
    """

    def __init__(self) -> None:
        self._secrets: dict[tuple[str, str], str] = {}
        self._lock = threading.Lock()

    def get(self, service: str, username: str) -> Optional[str]:
        with self._lock:
            return self._secrets.get((service, username))

    def set(self, service: str, username: str, secret: str) -> None:
        with self._lock:
            self._secrets[(service, username)] = secret

    def delete(self, service: str, username: str) -> None:
        with self._lock:
            self._secrets.pop((service, username), None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._secrets)


# =============================================================================
# Credential Store
# =============================================================================
class CredentialStore:
    """Login / logout lifecycle for the registry connection.

    Attributes:
        secrets: The secret store holding registry passwords/tokens.
        config_path: Where login/logout persist the Config document.

    Example:
        >>> credentials = CredentialStore(InMemorySecretStore(), config_path)
        >>> config = Config()
        >>> credentials.login(config, "https://example.com/artifactory", "me", "token")
        >>> credentials.resolve_secret(config.artifactory.url, "me")
        'token'
        >>> credentials.logout(config)
    """

    def __init__(
        self,
        secrets: Optional[SecretStore] = None,
        config_path: Optional[Path] = None,
    ) -> None:
        self.secrets = secrets or KeyringSecretStore()
        self.config_path = config_path
        self._logger = logger.bind(component="credential_store")

    def login(self, config: Config, url: str, username: str, secret: str) -> ArtifactoryConfig:
        """Store a registry secret and record the connection in the config.

        The secret goes to the secret store first; the config is only
        updated and written once that succeeded. A previous connection to a
        different registry or user has its secret removed.

        Args:
            config: The loaded user configuration, updated in place.
            url: Registry base URL.
            username: Registry username.
            secret: Password or token. Never logged.

        Returns:
            The new connection record.

        Raises:
            ValidationError: If the url, username or secret is unusable.
            SecretStoreError: If the secret store fails.
            StoreError: If the config cannot be written.
        """
        try:
            connection = ArtifactoryConfig(url=url, username=username)
        except PydanticValidationError as e:
            raise ValidationError(
                message=f"Invalid registry connection: {e.errors()[0]['msg']}",
                offending=url,
            ) from e
        if not secret:
            raise ValidationError(message="Registry token must not be empty")

        self.secrets.set(connection.url, connection.username, secret)

        previous = config.artifactory
        if previous is not None and previous != connection:
            try:
                self.secrets.delete(previous.url, previous.username)
            except SecretStoreError as e:
                self._logger.warning(
                    "stale_secret_not_removed",
                    url=previous.url,
                    username=previous.username,
                    error=e.message,
                )

        config.artifactory = connection
        config.write(self.config_path)

        self._logger.info("logged_in", url=connection.url, username=connection.username)
        return connection

    def logout(self, config: Config) -> None:
        """Forget the registry connection and its secret.

        Both the secret deletion and the config write are always attempted,
        and the in-memory config is cleared regardless. The first error
        encountered is raised once both steps have run.

        Raises:
            SecretStoreError: If the secret could not be deleted.
            StoreError: If the config could not be written.
        """
        first_error: Optional[ProtopackError] = None
        connection = config.artifactory

        if connection is not None:
            try:
                self.secrets.delete(connection.url, connection.username)
            except SecretStoreError as e:
                first_error = e

        config.artifactory = None
        try:
            config.write(self.config_path)
        except StoreError as e:
            first_error = first_error or e

        if first_error is not None:
            self._logger.error("logout_incomplete", **first_error.to_dict())
            raise first_error

        self._logger.info("logged_out")

    def resolve_secret(self, url: str, username: str) -> str:
        """Look up the secret for a registry connection.

        Raises:
            LoginRequiredError: If no secret is stored.
            SecretStoreError: If the secret store fails.
        """
        secret = self.secrets.get(url, username)
        if not secret:
            raise LoginRequiredError(url=url, username=username)
        return secret
