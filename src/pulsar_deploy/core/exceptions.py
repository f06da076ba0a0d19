"""
pulsar_deploy.core.exceptions - Custom Exception Hierarchy
============================================================

This module defines the structured exception hierarchy for pulsar-deploy.
Components raise and catch specific exception types that carry contextual
information instead of generic Exception.

Exception Hierarchy:
    DeployError (base)
        ├── ConfigurationError         - Invalid config, bad manifest, no token
        ├── StoreUnavailableError      - State file unreadable, corrupt or unwritable
        ├── ExecutionError             - A deploy/invoke call did not succeed
        │     ├── TransportFailureError  - Network unreachable / unparsable response
        │     └── RemoteRejectedError    - The network refused the call
        ├── UnresolvedDependencyError  - Init param references an undeployed artifact
        ├── CycleDetectedError         - Init param references form a cycle
        ├── StateError                 - Illegal per-run state transition
        └── BuildError                 - Contract build step failed

Severity in a Run:
    Fatal (abort before/without mutating anything else):
        StoreUnavailableError, CycleDetectedError, ConfigurationError, BuildError
    Artifact-level (mark that artifact failed, continue with the others):
        TransportFailureError, RemoteRejectedError, UnresolvedDependencyError

Usage:
    >>> from pulsar_deploy.core.exceptions import RemoteRejectedError
    >>> raise RemoteRejectedError(
    ...     message="Error(Contract, #1): already initialized",
    ...     operation="invoke",
    ...     details={"address": "CABC..."},
    ... )
"""

from __future__ import annotations

from typing import Any, Optional


# =============================================================================
# Base Exception
# =============================================================================
# All pulsar-deploy exceptions inherit from this base class, so a caller can
# catch every tool-specific error with a single except clause:
#
#   try:
#       report = await pipeline.run()
#   except DeployError as e:
#       logger.error(e.message, error_code=e.error_code, details=e.details)
# =============================================================================
class DeployError(Exception):
    """Base exception for all pulsar-deploy errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code for programmatic handling.
            Convention: UPPER_SNAKE_CASE (e.g., "STORE_CORRUPT").
        details: Arbitrary dict with additional debugging context.
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
        """Serialize this exception to a dictionary (for JSON logs and output).

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
# Configuration Error
# =============================================================================
# Raised when configuration is invalid or inconsistent: unknown artifact
# references, duplicate names in a manifest, no token address for a network
# that needs one. Fail fast, before any network call.
# =============================================================================
class ConfigurationError(DeployError):
    """Raised when the tool's configuration or artifact catalog is invalid.

    Example:
        >>> raise ConfigurationError(
        ...     message="No token address known for network 'futurenet'",
        ...     error_code="MISSING_TOKEN_ADDRESS",
        ...     details={"network": "futurenet"},
        ... )
    """

    def __init__(
        self,
        message: str,
        error_code: str = "CONFIG_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


# =============================================================================
# Store Unavailable Error
# =============================================================================
# The State Store is the single durable owner of deployment records. If it
# cannot be read or written, or holds malformed data, the run must abort: a
# corrupt store is never silently treated as empty, otherwise a re-run
# would redeploy everything and overwrite the record of prior deployments.
# =============================================================================
class StoreUnavailableError(DeployError):
    """Raised when the State Store is unreachable, unwritable or corrupt.

    Attributes:
        network: The network whose record could not be accessed.
    """

    def __init__(
        self,
        message: str,
        network: str,
        error_code: str = "STORE_UNAVAILABLE",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["network"] = network

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.network = network


# =============================================================================
# Execution Errors
# =============================================================================
# Raised by execution clients (the stellar CLI wrapper, the mock client) when
# a deploy or invoke call does not succeed. The ExecutionClientAdapter turns
# them into classified CallResults; they never escape a planner.
# =============================================================================
class ExecutionError(DeployError):
    """Base class for failed remote calls.

    Attributes:
        operation: Which call failed ("deploy", "invoke", "keys").
    """

    def __init__(
        self,
        message: str,
        operation: str,
        error_code: str = "EXECUTION_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["operation"] = operation

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.operation = operation


class TransportFailureError(ExecutionError):
    """The network could not be reached, the call timed out, or the
    response could not be parsed. Eligible for retry by a wrapping caller."""

    def __init__(
        self,
        message: str,
        operation: str,
        error_code: str = "TRANSPORT_FAILURE",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message, operation=operation, error_code=error_code, details=details
        )


class RemoteRejectedError(ExecutionError):
    """The call reached the network and was refused (already initialized,
    insufficient funds, contract panic, ...). Terminal for the call within
    the run; the message carries the rejection payload."""

    def __init__(
        self,
        message: str,
        operation: str,
        error_code: str = "REMOTE_REJECTED",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message, operation=operation, error_code=error_code, details=details
        )


# =============================================================================
# Unresolved Dependency Error
# =============================================================================
# An init parameter references another artifact that is not at least
# DEPLOYED. This is an ordering/configuration defect for that artifact only:
# it is marked failed and the run continues.
# =============================================================================
class UnresolvedDependencyError(DeployError):
    """Raised when an artifact reference cannot be resolved to an address.

    Attributes:
        artifact_name: The artifact whose parameters were being resolved.
        dependency: The referenced artifact that has no usable address.

    Example:
        >>> raise UnresolvedDependencyError(
        ...     message="campaign_orchestrator needs ad_registry, which is not deployed",
        ...     artifact_name="campaign_orchestrator",
        ...     dependency="ad_registry",
        ... )
    """

    def __init__(
        self,
        message: str,
        artifact_name: str,
        dependency: str,
        error_code: str = "UNRESOLVED_DEPENDENCY",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["artifact_name"] = artifact_name
        enriched_details["dependency"] = dependency

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.artifact_name = artifact_name
        self.dependency = dependency


class CycleDetectedError(DeployError):
    """Raised at plan construction when artifact references form a cycle.

    Attributes:
        cycle: The artifact names on the cycle, first name repeated at the end
            (e.g. ["a", "b", "a"]).
    """

    def __init__(
        self,
        message: str,
        cycle: list[str],
        error_code: str = "CYCLE_DETECTED",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["cycle"] = cycle

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.cycle = cycle


class StateError(DeployError):
    """Raised on an illegal transition of per-run state, or when a completed
    RunReport is modified."""

    def __init__(
        self,
        message: str,
        error_code: str = "STATE_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


class BuildError(DeployError):
    """Raised when the contract build command fails or cannot be started."""

    def __init__(
        self,
        message: str,
        error_code: str = "BUILD_FAILED",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)
