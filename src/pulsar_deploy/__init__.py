"""
pulsar-deploy: idempotent deployment and initialization of the PulsarTrack
Soroban contract suite.

    >>> from pulsar_deploy import PulsarDeployer, load_config
    >>> report = await PulsarDeployer(load_config(network="testnet")).setup()
"""

__version__ = "0.1.0"

from pulsar_deploy.core.config import DeployConfig, load_config  # noqa: E402
from pulsar_deploy.core.models import RunConfig, RunReport  # noqa: E402
from pulsar_deploy.facade import PulsarDeployer  # noqa: E402

__all__ = [
    "__version__",
    "DeployConfig",
    "load_config",
    "RunConfig",
    "RunReport",
    "PulsarDeployer",
]
