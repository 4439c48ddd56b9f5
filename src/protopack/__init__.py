"""
protopack - Package Manager for Protobuf APIs
===============================================

protopack resolves a project's pinned api dependencies, downloads their
archives from a registry and unpacks them into ``proto/vendor`` so that
compilers and code generators can consume them. It also packages and
publishes the project's own definitions as a versioned artifact.

Layers (top to bottom):
    1. Facade          - Protopack: one coroutine per command
    2. Infrastructure  - PackageStore, CredentialStore
    3. Integrations    - Registry transports (Artifactory, local, in-memory)
    4. Core            - Models, manifest, config, exceptions

Quick Start:
    >>> from protopack import Protopack
    >>> protopack = Protopack()
    >>> await protopack.add("org-proto-stable/foo@1.0.0")
    >>> await protopack.install()
"""

__version__ = "0.1.0"

from protopack.facade import Protopack

__all__ = ["Protopack", "__version__"]
