"""
pulsar_deploy.core - Foundation Layer
=======================================

This module contains the foundational building blocks that every other module
in pulsar-deploy depends on:

    - config:      Configuration management (DeployConfig, StellarCliConfig)
    - enums:       Type-safe enumerations (DeploymentStatus, Phase, Outcome, ...)
    - models:      Pydantic data models (ArtifactSpec, InitParam, RunReport, ...)
    - exceptions:  Exception hierarchy for structured error handling
    - state:       Per-run deployment state (DeploymentState)

Dependency Rule:
    core/ depends on NOTHING else in the pulsar_deploy package.
"""

from pulsar_deploy.core.config import DeployConfig, StellarCliConfig, load_config
from pulsar_deploy.core.enums import (
    CallStatus,
    DeploymentStatus,
    Outcome,
    ParamKind,
    Phase,
)
from pulsar_deploy.core.exceptions import (
    BuildError,
    ConfigurationError,
    CycleDetectedError,
    DeployError,
    ExecutionError,
    RemoteRejectedError,
    StateError,
    StoreUnavailableError,
    TransportFailureError,
    UnresolvedDependencyError,
)
from pulsar_deploy.core.models import (
    ArtifactSpec,
    DeploymentRecord,
    InitParam,
    InvokeArg,
    ReportEntry,
    RunConfig,
    RunReport,
)
from pulsar_deploy.core.state import ArtifactState, DeploymentState

__all__ = [
    # Config
    "DeployConfig",
    "StellarCliConfig",
    "load_config",
    # Enums
    "CallStatus",
    "DeploymentStatus",
    "Outcome",
    "ParamKind",
    "Phase",
    # Models
    "ArtifactSpec",
    "DeploymentRecord",
    "InitParam",
    "InvokeArg",
    "ReportEntry",
    "RunConfig",
    "RunReport",
    # State
    "ArtifactState",
    "DeploymentState",
    # Exceptions
    "DeployError",
    "ConfigurationError",
    "StoreUnavailableError",
    "ExecutionError",
    "TransportFailureError",
    "RemoteRejectedError",
    "UnresolvedDependencyError",
    "CycleDetectedError",
    "StateError",
    "BuildError",
]
