"""
pulsar_deploy.integrations - External Tools
=============================================

Everything that talks to a process outside pulsar-deploy: the stellar CLI
(execution/), the contract build (build.py), and the subprocess runner they
share (process.py).
"""

from pulsar_deploy.integrations.build import CargoBuilder
from pulsar_deploy.integrations.execution import (
    BaseExecutionClient,
    BaseIdentityProvider,
    MockExecutionClient,
    MockIdentityProvider,
    StellarCliClient,
    StellarIdentityProvider,
    create_execution_client,
    create_identity_provider,
)

__all__ = [
    "CargoBuilder",
    "BaseExecutionClient",
    "BaseIdentityProvider",
    "StellarCliClient",
    "StellarIdentityProvider",
    "MockExecutionClient",
    "MockIdentityProvider",
    "create_execution_client",
    "create_identity_provider",
]
