"""
protopack.integrations - External Service Integrations
========================================================

Adapters for the remote services protopack talks to. Currently the package
registry (see protopack.integrations.registry).
"""

from protopack.integrations.registry import (
    Artifactory,
    InMemoryRegistry,
    LocalRegistry,
    Registry,
    create_registry,
)

__all__ = [
    "Registry",
    "Artifactory",
    "LocalRegistry",
    "InMemoryRegistry",
    "create_registry",
]
