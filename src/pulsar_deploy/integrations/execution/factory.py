"""
pulsar_deploy.integrations.execution.factory - Execution Backend Factory
==========================================================================

Maps the configured execution backend name to concrete collaborators.

Usage:
    >>> from pulsar_deploy.integrations.execution import create_execution_client
    >>> client = create_execution_client(DeployConfig(execution_backend="mock"))
    >>> client.backend_name
    'mock'
"""

from __future__ import annotations

from pulsar_deploy.core.config import DeployConfig
from pulsar_deploy.core.exceptions import ConfigurationError
from pulsar_deploy.integrations.execution.base import (
    BaseExecutionClient,
    BaseIdentityProvider,
)


def create_execution_client(config: DeployConfig) -> BaseExecutionClient:
    """Create the execution client for ``config.execution_backend``.

    Backends:
        - "stellar" → StellarCliClient (shells out to the stellar CLI)
        - "mock"    → MockExecutionClient (in-memory simulation)

    Raises:
        ConfigurationError: If the backend name is not recognized.
    """
    backend = config.execution_backend.lower()

    if backend == "stellar":
        from pulsar_deploy.integrations.execution.stellar_cli import StellarCliClient
        return StellarCliClient(config.stellar)

    if backend == "mock":
        from pulsar_deploy.integrations.execution.mock import MockExecutionClient
        return MockExecutionClient()

    raise ConfigurationError(
        message=f"Unknown execution backend: '{backend}'. Available: 'stellar', 'mock'.",
        error_code="UNKNOWN_BACKEND",
        details={"backend": backend},
    )


def create_identity_provider(config: DeployConfig) -> BaseIdentityProvider:
    """Create the identity provider matching ``config.execution_backend``."""
    backend = config.execution_backend.lower()

    if backend == "stellar":
        from pulsar_deploy.integrations.execution.stellar_cli import (
            StellarIdentityProvider,
        )
        return StellarIdentityProvider(config.stellar, config.network)

    if backend == "mock":
        from pulsar_deploy.integrations.execution.mock import MockIdentityProvider
        return MockIdentityProvider()

    raise ConfigurationError(
        message=f"Unknown execution backend: '{backend}'. Available: 'stellar', 'mock'.",
        error_code="UNKNOWN_BACKEND",
        details={"backend": backend},
    )
