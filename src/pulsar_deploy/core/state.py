"""
pulsar_deploy.core.state - Per-Run Deployment State
=====================================================

This module defines the process-local state that tracks what happens to each
artifact during one run. It is distinct from the durable State Store:

    StateStore:       WHERE each artifact lives (survives the process)
    DeploymentState:  WHAT happened to each artifact in THIS run

State Architecture:
    The DeploymentPipeline creates a DeploymentState from a State Store probe
    and owns it for the duration of the run. The planners mutate it through
    the transition methods below; nothing else writes to it.

    ┌─────────────────────┐   probe    ┌──────────────────────────────┐
    │     StateStore       │ ────────→ │       DeploymentState         │
    │ {name: address}      │           │ {name: ArtifactState}         │
    └─────────────────────┘           │   status / address / reason   │
                                       └──────────────────────────────┘
                                          ↑ mark_deployed / mark_failed
                                          │ mark_initialized
                                   DeploymentPlanner, InitializationPlanner

Transition Rules:
    NOT_DEPLOYED → DEPLOYED | FAILED
    DEPLOYED     → DEPLOYED (forced redeploy) | INITIALIZED | FAILED
    INITIALIZED, FAILED: terminal, any transition raises StateError.
"""

from __future__ import annotations

from typing import Iterable, Iterator, Optional

from pydantic import BaseModel, Field

from pulsar_deploy.core.enums import DeploymentStatus
from pulsar_deploy.core.exceptions import StateError


# =============================================================================
# Artifact State
# =============================================================================
class ArtifactState(BaseModel):
    """Runtime state of a single artifact during a run.

    Attributes:
        name: Artifact name (matches ArtifactSpec.name).
        status: Current lifecycle state.
        address: Known address (recorded, freshly deployed, or a dry-run
            placeholder). None while NOT_DEPLOYED.
        reason: Why the artifact is FAILED, None otherwise.
    """

    name: str = Field(description="Artifact name")
    status: DeploymentStatus = Field(
        default=DeploymentStatus.NOT_DEPLOYED,
        description="Current per-run lifecycle state",
    )
    address: Optional[str] = Field(default=None, description="Known contract address")
    reason: Optional[str] = Field(default=None, description="Failure reason")

    @property
    def is_at_least_deployed(self) -> bool:
        """True for DEPLOYED and INITIALIZED: the artifact has a usable address."""
        return self.status in (DeploymentStatus.DEPLOYED, DeploymentStatus.INITIALIZED)


# =============================================================================
# Deployment State
# =============================================================================
class DeploymentState:
    """Map of artifact name → ArtifactState, owned by the pipeline for one run.

    Example:
        >>> state = DeploymentState.from_records(["a", "b"], {"a": "CAAA..."})
        >>> state.get("a").status
        <DeploymentStatus.DEPLOYED: 'deployed'>
        >>> state.mark_deployed("b", "CBBB...")
        >>> state.address_of("b")
        'CBBB...'
    """

    def __init__(self, names: Iterable[str]) -> None:
        self._artifacts: dict[str, ArtifactState] = {
            name: ArtifactState(name=name) for name in names
        }

    @classmethod
    def from_records(
        cls, names: Iterable[str], records: dict[str, str]
    ) -> "DeploymentState":
        """Derive the initial state from a State Store probe.

        Args:
            names: All artifact names of the catalog, in configured order.
            records: name → address as loaded from the State Store.

        Returns:
            A state where recorded artifacts are DEPLOYED, others NOT_DEPLOYED.
        """
        state = cls(names)
        for name, artifact in state._artifacts.items():
            address = records.get(name)
            if address:
                artifact.status = DeploymentStatus.DEPLOYED
                artifact.address = address
        return state

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------
    def get(self, name: str) -> ArtifactState:
        try:
            return self._artifacts[name]
        except KeyError:
            raise StateError(
                message=f"Unknown artifact: {name}",
                error_code="UNKNOWN_ARTIFACT",
                details={"artifact_name": name},
            ) from None

    def status_of(self, name: str) -> DeploymentStatus:
        return self.get(name).status

    def address_of(self, name: str) -> Optional[str]:
        return self.get(name).address

    def __contains__(self, name: object) -> bool:
        return name in self._artifacts

    def __iter__(self) -> Iterator[ArtifactState]:
        return iter(self._artifacts.values())

    def __len__(self) -> int:
        return len(self._artifacts)

    def names_with_status(self, status: DeploymentStatus) -> list[str]:
        return [a.name for a in self._artifacts.values() if a.status == status]

    def snapshot(self) -> dict[str, ArtifactState]:
        """Copies of every ArtifactState, safe to hand out."""
        return {name: a.model_copy() for name, a in self._artifacts.items()}

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------
    def mark_deployed(self, name: str, address: str) -> None:
        artifact = self._transition(name, DeploymentStatus.DEPLOYED)
        artifact.status = DeploymentStatus.DEPLOYED
        artifact.address = address

    def mark_initialized(self, name: str) -> None:
        artifact = self._transition(name, DeploymentStatus.INITIALIZED)
        if artifact.status != DeploymentStatus.DEPLOYED:
            raise StateError(
                message=f"Cannot initialize {name}: status is {artifact.status.value}",
                error_code="INVALID_TRANSITION",
                details={"artifact_name": name, "from": artifact.status.value},
            )
        artifact.status = DeploymentStatus.INITIALIZED

    def mark_failed(self, name: str, reason: str) -> None:
        artifact = self._transition(name, DeploymentStatus.FAILED)
        artifact.status = DeploymentStatus.FAILED
        artifact.reason = reason

    def _transition(self, name: str, target: DeploymentStatus) -> ArtifactState:
        artifact = self.get(name)
        if artifact.status.is_terminal:
            raise StateError(
                message=(
                    f"Cannot move {name} to {target.value}: "
                    f"{artifact.status.value} is terminal"
                ),
                error_code="INVALID_TRANSITION",
                details={
                    "artifact_name": name,
                    "from": artifact.status.value,
                    "to": target.value,
                },
            )
        return artifact
