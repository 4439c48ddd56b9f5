"""
protopack.core.manifest - Project Manifest
============================================

The manifest (``Proto.yaml``) declares the project's own api, if it is one,
and the ordered list of pinned dependencies:

    api:
      name: my-api
      version: 0.0.1
      description: Shared definitions for my service
    dependencies:
      - repository: org-proto-stable
        package: foo
        version: 1.0.0

Lifecycle:
    Each command reads the manifest, mutates it in memory and writes it
    back. Nothing is held across invocations.

Invariants:
    - Dependencies keep insertion order, so output is reproducible.
    - A package appears at most once. Adding a dependency on a package that
      is already listed replaces that entry in place.
    - Writes go through a temp file, so a failed write leaves the previous
      manifest untouched.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from protopack.core.config import write_text_atomic
from protopack.core.exceptions import ManifestParseError, NotFoundError
from protopack.core.models import ApiManifest, Dependency, PackageId


MANIFEST_FILE = Path("Proto.yaml")


class Manifest(BaseModel):
    """In-memory representation of the project manifest.

    Attributes:
        api: The project's own api declaration, if it publishes one.
        dependencies: Pinned dependencies in insertion order.
    """

    api: Optional[ApiManifest] = None
    dependencies: list[Dependency] = Field(default_factory=list)

    @field_validator("dependencies")
    @classmethod
    def check_unique_packages(cls, value: list[Dependency]) -> list[Dependency]:
        seen: set[str] = set()
        for dep in value:
            if dep.package in seen:
                raise ValueError(f"duplicate dependency on package {dep.package!r}")
            seen.add(dep.package)
        return value

    # =========================================================================
    # Persistence
    # =========================================================================

    @staticmethod
    def exists(path: Path = MANIFEST_FILE) -> bool:
        return Path(path).is_file()

    @classmethod
    def read(cls, path: Path = MANIFEST_FILE) -> Manifest:
        """Load the manifest from disk.

        Args:
            path: Manifest location, defaults to ``Proto.yaml``.

        Returns:
            The validated Manifest.

        Raises:
            NotFoundError: If there is no manifest at ``path``.
            ManifestParseError: If the document is malformed or invalid.
        """
        manifest_path = Path(path)
        try:
            text = manifest_path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise NotFoundError(
                message=f"No manifest found at {manifest_path}, run `protopack init` first",
                details={"path": str(manifest_path)},
            ) from e
        except UnicodeDecodeError as e:
            raise ManifestParseError(
                message=f"Malformed manifest {manifest_path}: not valid UTF-8 ({e.reason})",
                path=str(manifest_path),
            ) from e
        except OSError as e:
            raise ManifestParseError(
                message=f"Failed to read manifest {manifest_path}: {e}",
                path=str(manifest_path),
            ) from e

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ManifestParseError(
                message=f"Malformed manifest {manifest_path}: {e}",
                path=str(manifest_path),
            ) from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ManifestParseError(
                message=f"Malformed manifest {manifest_path}: expected a mapping",
                path=str(manifest_path),
            )
        # An empty `dependencies:` key parses as None
        if data.get("dependencies") is None:
            data.pop("dependencies", None)

        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            raise ManifestParseError(
                message=f"Invalid manifest {manifest_path}: {e}",
                path=str(manifest_path),
            ) from e

    def write(self, path: Path = MANIFEST_FILE) -> None:
        """Serialize the manifest and replace the file at ``path``.

        Raises:
            StoreError: If the file cannot be written.
        """
        document = self.model_dump(mode="json", exclude_none=True)
        write_text_atomic(Path(path), yaml.safe_dump(document, sort_keys=False, allow_unicode=True))

    # =========================================================================
    # Dependencies
    # =========================================================================

    def get_dependency(self, package: str) -> Optional[Dependency]:
        for dep in self.dependencies:
            if dep.package == package:
                return dep
        return None

    def add_dependency(self, dependency: Dependency) -> Optional[Dependency]:
        """Add a dependency, replacing any entry for the same package.

        Returns:
            The entry that was replaced, or None if the package was new.
        """
        for index, dep in enumerate(self.dependencies):
            if dep.package == dependency.package:
                self.dependencies[index] = dependency
                return dep
        self.dependencies.append(dependency)
        return None

    def remove_dependency(self, package: str) -> Dependency:
        """Remove the dependency whose package equals ``package``.

        Only the matching entry is removed, all others keep their order.

        Raises:
            NotFoundError: If no dependency has that package.
        """
        package_id = PackageId(package)
        for index, dep in enumerate(self.dependencies):
            if dep.package == package_id:
                return self.dependencies.pop(index)
        raise NotFoundError(
            message=f"Unable to remove unknown dependency {package_id!s}",
            details={"package": str(package_id)},
        )
