"""
pulsar_deploy.orchestration - Run Coordination
================================================

Components:
    - ExecutionClientAdapter:    timeout + classification of remote calls
    - plan_initialization_order: dependency-ordered init plan, cycle check
    - DeploymentPlanner:         deploy phase
    - InitializationPlanner:     init phase (with ParameterResolver)
    - DeploymentPipeline:        sequences both phases for one run
"""

from pulsar_deploy.orchestration.adapter import CallResult, ExecutionClientAdapter
from pulsar_deploy.orchestration.dependency_graph import (
    find_cycle,
    plan_initialization_order,
)
from pulsar_deploy.orchestration.deployment_planner import (
    DeploymentPlanner,
    dry_run_address,
)
from pulsar_deploy.orchestration.initialization_planner import (
    InitializationPlanner,
    ParameterResolver,
)
from pulsar_deploy.orchestration.pipeline import DeploymentPipeline

__all__ = [
    "CallResult",
    "ExecutionClientAdapter",
    "find_cycle",
    "plan_initialization_order",
    "DeploymentPlanner",
    "dry_run_address",
    "InitializationPlanner",
    "ParameterResolver",
    "DeploymentPipeline",
]
