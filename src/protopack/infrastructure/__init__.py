"""
protopack.infrastructure - Local State Layer
==============================================

Everything protopack keeps on the local machine:

    ┌─────────────── FACADE (commands) ───────────────────┐
    │  init, add, remove, install, publish, login, ...     │
    └───────────────┬──────────────────────┬──────────────┘
                    │                      │
    ┌───────────────▼──────────┐ ┌─────────▼──────────────┐
    │  PackageStore            │ │  CredentialStore       │
    │   proto/vendor/<name>/   │ │   Config + SecretStore │
    └──────────────────────────┘ └────────────────────────┘

Components:
    - PackageStore:        install / uninstall / clear / release
    - CredentialStore:     login / logout / resolve_secret
    - SecretStore (ABC):   KeyringSecretStore, InMemorySecretStore
"""

from protopack.infrastructure.credential_store import (
    CredentialStore,
    InMemorySecretStore,
    KeyringSecretStore,
    SecretStore,
)
from protopack.infrastructure.package_store import PackageStore

__all__ = [
    "PackageStore",
    "CredentialStore",
    "SecretStore",
    "KeyringSecretStore",
    "InMemorySecretStore",
]
