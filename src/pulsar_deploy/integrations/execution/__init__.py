"""
pulsar_deploy.integrations.execution - Remote Execution Collaborators
=======================================================================

Components:
    - BaseExecutionClient:     deploy a binary / invoke an entrypoint
    - BaseIdentityProvider:    identity name → address
    - StellarCliClient:        stellar CLI backed client
    - StellarIdentityProvider: stellar keys backed provider
    - MockExecutionClient:     in-memory client for tests and rehearsals
    - MockIdentityProvider:    deterministic identity addresses
    - create_execution_client / create_identity_provider: backend factory
"""

from pulsar_deploy.integrations.execution.base import (
    BaseExecutionClient,
    BaseIdentityProvider,
)
from pulsar_deploy.integrations.execution.factory import (
    create_execution_client,
    create_identity_provider,
)
from pulsar_deploy.integrations.execution.mock import (
    MockExecutionClient,
    MockIdentityProvider,
)
from pulsar_deploy.integrations.execution.stellar_cli import (
    StellarCliClient,
    StellarIdentityProvider,
)

__all__ = [
    "BaseExecutionClient",
    "BaseIdentityProvider",
    "StellarCliClient",
    "StellarIdentityProvider",
    "MockExecutionClient",
    "MockIdentityProvider",
    "create_execution_client",
    "create_identity_provider",
]
