"""
protopack.core.models - Core Data Models
==========================================

This module defines the value types every other protopack component works
with. They are plain data structures: no I/O, no logging.

    PackageId    - Validated lowercase-kebab-case package identifier (str)
    ApiManifest  - The project's own api declaration (name, version, description)
    Dependency   - A pinned (repository, package, version) reference
    Package      - A named, versioned gzip tarball, downloaded or released

Validation Rules:
    package ids    lowercase ASCII letters and '-' only
    repositories   lowercase ASCII letters and '-' only, containing "-proto-"
    versions       alphanumerics, '.' and '-' only

Usage:
    >>> dep = Dependency.parse("org-proto-stable/foo@1.0.0")
    >>> dep.repository, dep.package, dep.version
    ('org-proto-stable', 'foo', '1.0.0')
    >>> str(dep)
    'org-proto-stable/foo@1.0.0'
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import core_schema

from protopack.core.exceptions import InvalidSpecError, ValidationError


ARCHIVE_EXTENSION = "tgz"
PROTO_INFIX = "-proto-"


# =============================================================================
# Character Rules
# =============================================================================
def _is_lower_kebab(value: str) -> bool:
    return all(c == "-" or ("a" <= c <= "z") for c in value)


def _is_version_char(c: str) -> bool:
    # ASCII only: versions become part of artifact URLs and file names
    return c.isascii() and (c.isalnum() or c in ".-")


def validate_repository(repository: str) -> str:
    """Check a repository name against the ``<group>-proto-<stability>`` rule.

    Args:
        repository: The repository name to check.

    Returns:
        The repository name unchanged.

    Raises:
        ValidationError: If the charset or the "-proto-" infix is wrong.
    """
    if not repository or not _is_lower_kebab(repository):
        raise ValidationError(
            message=(
                f"Repositories must be in the format <group>-proto-<stability>, "
                f"got {repository!r}"
            ),
            offending=repository,
        )
    if PROTO_INFIX not in repository:
        raise ValidationError(
            message=f"Only proto repositories are allowed, got {repository!r}",
            offending=repository,
        )
    return repository


def validate_version(version: str) -> str:
    """Check a version string: alphanumerics, '.' and '-' only.

    Alphanumerics are restricted to ASCII letters and digits. Non-ASCII
    letters and digits (e.g. ``"1.0.0-β"`` or ``"١.٠"``) are rejected, so
    every accepted version can be embedded verbatim in an artifact URL.

    Raises:
        ValidationError: If the version is empty or contains other characters.
    """
    if not version or not all(_is_version_char(c) for c in version):
        raise ValidationError(
            message=(
                f"Version specifications must be in the format "
                f"<major>.<minor>.<patch>-<tag>, got {version!r}"
            ),
            offending=version,
        )
    return version


# =============================================================================
# PackageId
# =============================================================================
class PackageId(str):
    """A validated package identifier.

    PackageId is a ``str`` so it compares, hashes and formats like the plain
    name, but it can only be constructed from a valid lowercase-kebab-case
    string. It also works as a pydantic field type and serializes back to a
    plain string.

    Example:
        >>> PackageId("my-api")
        PackageId('my-api')
        >>> PackageId("My_Api")
        Traceback (most recent call last):
        ...
        protopack.core.exceptions.ValidationError: ...
    """

    __slots__ = ()

    def __new__(cls, value: str) -> PackageId:
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValidationError(
                message=f"Package ids must be strings, got {type(value).__name__}",
                offending=repr(value),
            )
        if not value or not _is_lower_kebab(value):
            raise ValidationError(
                message=(
                    f"Package ids must be lowercase kebab-case "
                    f"(a-z and '-'), got {value!r}"
                ),
                offending=value,
            )
        return super().__new__(cls, value)

    def __repr__(self) -> str:
        return f"PackageId({str.__repr__(self)})"

    @classmethod
    def __get_pydantic_core_schema__(cls, source: Any, handler: Any) -> core_schema.CoreSchema:
        return core_schema.no_info_after_validator_function(
            cls,
            core_schema.str_schema(),
            serialization=core_schema.plain_serializer_function_ser_schema(str),
        )


# =============================================================================
# ApiManifest
# =============================================================================
class ApiManifest(BaseModel):
    """The project's own api declaration.

    Present only when the project publishes its definitions as a package.

    Attributes:
        name: Package identifier the api is published under.
        version: Version string of the next release.
        description: Optional free-text description.
    """

    name: PackageId = Field(description="Package id this api is published as")
    version: str = Field(description="Version of the api package")
    description: Optional[str] = Field(
        default=None,
        description="Optional human-readable description",
    )

    @field_validator("version")
    @classmethod
    def check_version(cls, value: str) -> str:
        return validate_version(value)


# =============================================================================
# Dependency
# =============================================================================
class Dependency(BaseModel):
    """A pinned reference to a remote package artifact.

    Equality is field-wise over (repository, package, version).

    Attributes:
        repository: Registry repository, ``<group>-proto-<stability>``.
        package: The package identifier.
        version: The exact version to install.
    """

    model_config = ConfigDict(frozen=True)

    repository: str = Field(description="Repository the package lives in")
    package: PackageId = Field(description="Package identifier")
    version: str = Field(description="Exact pinned version")

    @field_validator("repository")
    @classmethod
    def check_repository(cls, value: str) -> str:
        return validate_repository(value)

    @field_validator("version")
    @classmethod
    def check_version(cls, value: str) -> str:
        return validate_version(value)

    def __str__(self) -> str:
        return f"{self.repository}/{self.package}@{self.version}"

    @classmethod
    def parse(cls, spec: str) -> Dependency:
        """Parse a ``<repository>/<package>@<version>`` dependency spec.

        The checks run in a fixed order so the first problem is the one
        reported: repository separator, repository charset and infix,
        version separator, package id, version charset.

        Args:
            spec: The dependency spec, surrounding whitespace is ignored.

        Returns:
            The parsed Dependency.

        Raises:
            InvalidSpecError: On a missing separator or any failed check.
        """
        text = spec.strip()

        repository, sep, remainder = text.partition("/")
        if not sep:
            raise InvalidSpecError(
                message=(
                    f"Invalid dependency specification {text!r}: "
                    f"expected <repository>/<package>@<version>"
                ),
                spec=text,
                offending=text,
            )

        try:
            validate_repository(repository)
        except ValidationError as e:
            raise InvalidSpecError(message=e.message, spec=text, offending=e.offending) from e

        package, sep, version = remainder.partition("@")
        if not sep:
            raise InvalidSpecError(
                message=(
                    f"Invalid dependency specification {text!r}: "
                    f"missing '@<version>' after {remainder!r}"
                ),
                spec=text,
                offending=remainder,
            )

        try:
            package_id = PackageId(package)
            validate_version(version)
        except ValidationError as e:
            raise InvalidSpecError(message=e.message, spec=text, offending=e.offending) from e

        return cls(repository=repository, package=package_id, version=version)


# =============================================================================
# Package
# =============================================================================
class Package(BaseModel):
    """An installable / publishable unit: a named, versioned tarball.

    The archive is opaque gzip-compressed tar bytes. Registries hand it over
    untouched, the package store unpacks it.
    """

    name: PackageId
    version: str
    archive: bytes = Field(repr=False)

    @field_validator("version")
    @classmethod
    def check_version(cls, value: str) -> str:
        return validate_version(value)

    @property
    def filename(self) -> str:
        return f"{self.name}-{self.version}.{ARCHIVE_EXTENSION}"

    def __str__(self) -> str:
        return f"{self.name}@{self.version}"
