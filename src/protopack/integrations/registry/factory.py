"""
protopack.integrations.registry.factory - Registry Factory
============================================================

Picks the registry implementation for a command from the settings and the
user's configuration:

    - settings.local_registry set  → LocalRegistry (no credentials)
    - config.artifactory present   → Artifactory
    - neither                      → AuthUnavailableError (login first)
"""

from __future__ import annotations

from protopack.core.config import Config, ProtopackSettings
from protopack.core.exceptions import AuthUnavailableError
from protopack.infrastructure.credential_store import CredentialStore
from protopack.integrations.registry.base import Registry


def create_registry(
    settings: ProtopackSettings,
    config: Config,
    credentials: CredentialStore,
) -> Registry:
    """Create the registry a command should talk to.

    Args:
        settings: Process settings (local registry override, timeouts).
        config: The loaded user configuration.
        credentials: Credential store used by authenticated transports.

    Returns:
        A concrete Registry instance.

    Raises:
        AuthUnavailableError: If no registry connection is configured.
    """
    if settings.local_registry is not None:
        from protopack.integrations.registry.local import LocalRegistry
        return LocalRegistry(settings.local_registry)

    if config.artifactory is not None:
        from protopack.integrations.registry.artifactory import Artifactory
        return Artifactory(
            config.artifactory,
            credentials,
            timeout_seconds=settings.request_timeout_seconds,
        )

    raise AuthUnavailableError()
