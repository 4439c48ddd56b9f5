"""
protopack.core.exceptions - Custom Exception Hierarchy
========================================================

This module defines the structured exception hierarchy for protopack.
Every failure a command can run into is raised as a specific subclass of
ProtopackError carrying an error code and a details dict, so the CLI can
report it verbatim and exit with a non-zero status.

Exception Hierarchy:
    ProtopackError (base)
        ├── ValidationError        - Malformed package id, repository, version
        │     └── InvalidSpecError - Malformed <repository>/<package>@<version>
        ├── NotFoundError          - Manifest missing, unknown dependency
        ├── ProjectExistsError     - init on an already initialized project
        ├── ManifestParseError     - Manifest document is malformed
        ├── ConfigurationError     - Config document is malformed
        ├── StoreError             - Filesystem failure in the package store
        │     ├── ArchiveError     - Corrupt package archive
        │     └── StoreClearError  - One or more entries could not be removed
        ├── NotAnApiError          - release/publish without an api section
        ├── AuthUnavailableError   - No registry credentials available
        │     └── LoginRequiredError - Connection known, secret missing
        ├── RegistryError
        │     ├── FetchFailedError   - Download returned a non-success status
        │     └── PublishFailedError - Upload returned a non-success status
        └── SecretStoreError       - The OS secret store failed

Retry Policy:
    Nothing in protopack retries. Transient network failures surface as
    FetchFailedError / PublishFailedError and the user re-runs the command.

Usage:
    >>> from protopack.core.exceptions import InvalidSpecError
    >>> raise InvalidSpecError(
    ...     message="Repositories must be in the format <group>-proto-<stability>",
    ...     spec="org_proto_stable/foo@1.0.0",
    ...     offending="org_proto_stable",
    ... )
"""

from __future__ import annotations

from typing import Any, Optional


# =============================================================================
# Base Exception
# =============================================================================
class ProtopackError(Exception):
    """Base exception for all protopack errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code (UPPER_SNAKE_CASE).
        details: Additional context (paths, package names, status codes).
    """

    def __init__(
        self,
        message: str,
        error_code: str = "UNKNOWN_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)

        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize this exception to a dictionary for structured logging.

        Returns:
            Dictionary with error_type, message, error_code, and details.
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


# =============================================================================
# Validation Errors
# =============================================================================
# User input problems. Never retried, reported with the offending substring.
# ValidationError also derives from ValueError so pydantic validators can
# raise it and have it folded into a model validation failure.
# =============================================================================
class ValidationError(ProtopackError, ValueError):
    """Raised when a package id, repository name, or version is malformed.

    Attributes:
        offending: The exact substring that failed validation.
    """

    def __init__(
        self,
        message: str,
        offending: str = "",
        error_code: str = "VALIDATION_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["offending"] = offending

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.offending = offending


class InvalidSpecError(ValidationError):
    """Raised when a ``<repository>/<package>@<version>`` spec is malformed.

    Example:
        >>> raise InvalidSpecError(
        ...     message="Invalid dependency specification: missing '@'",
        ...     spec="org-proto-stable/foo",
        ...     offending="foo",
        ... )
    """

    def __init__(
        self,
        message: str,
        spec: str,
        offending: str = "",
        error_code: str = "INVALID_SPEC",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["spec"] = spec

        super().__init__(
            message=message,
            offending=offending,
            error_code=error_code,
            details=enriched_details,
        )

        self.spec = spec


# =============================================================================
# Project / Document Errors
# =============================================================================
class NotFoundError(ProtopackError):
    """Raised when the manifest or a requested dependency does not exist."""

    def __init__(
        self,
        message: str,
        error_code: str = "NOT_FOUND",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


class ProjectExistsError(ProtopackError):
    """Raised when initializing a project that already has a manifest."""

    def __init__(
        self,
        message: str,
        error_code: str = "PROJECT_EXISTS",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


class ManifestParseError(ProtopackError):
    """Raised when the manifest document cannot be parsed or validated."""

    def __init__(
        self,
        message: str,
        path: str,
        error_code: str = "MANIFEST_PARSE_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["path"] = path

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.path = path


class ConfigurationError(ProtopackError):
    """Raised when the user configuration document is invalid."""

    def __init__(
        self,
        message: str,
        error_code: str = "CONFIG_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


# =============================================================================
# Package Store Errors
# =============================================================================
class StoreError(ProtopackError):
    """Raised when the package store hits a filesystem failure.

    Attributes:
        path: The path the failing operation was working on.
    """

    def __init__(
        self,
        message: str,
        path: str = "",
        error_code: str = "STORE_IO_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        if path:
            enriched_details["path"] = path

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.path = path


class ArchiveError(StoreError):
    """Raised when a package archive is corrupt or cannot be unpacked."""

    def __init__(
        self,
        message: str,
        path: str = "",
        error_code: str = "ARCHIVE_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, path=path, error_code=error_code, details=details)


class StoreClearError(StoreError):
    """Raised after a bulk clear when some entries could not be removed.

    The clear keeps going past individual failures; this error is raised
    once at the end and lists every entry that is still on disk.

    Attributes:
        failures: Mapping of entry path to the failure description.
    """

    def __init__(
        self,
        failures: dict[str, str],
        error_code: str = "STORE_CLEAR_FAILED",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["failures"] = dict(failures)

        message = f"Failed to remove {len(failures)} installed package(s): " + ", ".join(
            f"{path} ({reason})" for path, reason in failures.items()
        )
        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.failures = dict(failures)


class NotAnApiError(ProtopackError):
    """Raised when releasing a project whose manifest declares no api."""

    def __init__(
        self,
        message: str = "Unable to release a project without an api section, run `protopack init --api <name>`",
        error_code: str = "NOT_AN_API",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


# =============================================================================
# Authentication Errors
# =============================================================================
# Both carry a remediation hint: the fix is always `protopack login`.
# =============================================================================
class AuthUnavailableError(ProtopackError):
    """Raised when no registry credentials are available."""

    def __init__(
        self,
        message: str = "No registry credentials available, please login using `protopack login`",
        error_code: str = "AUTH_UNAVAILABLE",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


class LoginRequiredError(AuthUnavailableError):
    """Raised when a registry connection has no secret in the secret store."""

    def __init__(
        self,
        url: str,
        username: str,
        message: str = "",
        error_code: str = "LOGIN_REQUIRED",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["url"] = url
        enriched_details["username"] = username

        super().__init__(
            message=message
            or f"No stored secret for {username} at {url}, please login using `protopack login`",
            error_code=error_code,
            details=enriched_details,
        )

        self.url = url
        self.username = username


class SecretStoreError(ProtopackError):
    """Raised when the platform secret store cannot be used."""

    def __init__(
        self,
        message: str,
        error_code: str = "SECRET_STORE_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


# =============================================================================
# Registry Errors
# =============================================================================
class RegistryError(ProtopackError):
    """Base class for registry transport failures."""

    def __init__(
        self,
        message: str,
        error_code: str = "REGISTRY_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


class FetchFailedError(RegistryError):
    """Raised when downloading a dependency does not succeed.

    Attributes:
        dependency: The dependency spec string that failed to download.
        status: The HTTP status returned, when there was a response.
    """

    def __init__(
        self,
        dependency: str,
        status: Optional[int] = None,
        reason: str = "",
        error_code: str = "FETCH_FAILED",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["dependency"] = dependency
        if status is not None:
            enriched_details["status"] = status
        if reason:
            enriched_details["reason"] = reason

        message = f"Failed to fetch {dependency}"
        if status is not None:
            message += f" (status {status})"
        elif reason:
            message += f": {reason}"

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.dependency = dependency
        self.status = status


class PublishFailedError(RegistryError):
    """Raised when uploading a package does not succeed.

    Attributes:
        package: Name of the package that failed to publish.
        status: The HTTP status returned, when there was a response.
    """

    def __init__(
        self,
        package: str,
        status: Optional[int] = None,
        reason: str = "",
        error_code: str = "PUBLISH_FAILED",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["package"] = package
        if status is not None:
            enriched_details["status"] = status
        if reason:
            enriched_details["reason"] = reason

        message = f"Failed to publish {package}"
        if status is not None:
            message += f" (status {status})"
        elif reason:
            message += f": {reason}"

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.package = package
        self.status = status
