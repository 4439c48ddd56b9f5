"""
protopack.integrations.registry - Registry Transports
=======================================================

Components:
    - Registry (ABC):    download(dependency) / publish(package, repository)
    - Artifactory:       HTTP basic-auth transport (aiohttp)
    - LocalRegistry:     A directory with the same artifact layout
    - InMemoryRegistry:  Deterministic fake for tests
    - create_registry(): Chooses a transport from settings and config

Usage:
    from protopack.integrations.registry import create_registry
"""

from protopack.integrations.registry.artifactory import Artifactory
from protopack.integrations.registry.base import Registry, artifact_path
from protopack.integrations.registry.factory import create_registry
from protopack.integrations.registry.local import LocalRegistry
from protopack.integrations.registry.memory import InMemoryRegistry

__all__ = [
    "Registry",
    "artifact_path",
    "Artifactory",
    "LocalRegistry",
    "InMemoryRegistry",
    "create_registry",
]
