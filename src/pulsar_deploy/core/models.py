"""
pulsar_deploy.core.models - Core Data Models
==============================================

This module defines the Pydantic data models that flow through every layer
of pulsar-deploy.

Model Hierarchy:
    InitParam        → How one initialize() argument gets its value
    ArtifactSpec     → One deployable contract (binary + init parameters)
    InvokeArg        → A resolved (name, value) argument for invoke()
    DeploymentRecord → A persisted row of the State Store
    RunConfig        → The explicit per-run settings handed to the pipeline
    ReportEntry      → One (artifact, phase, outcome) line of a run
    RunReport        → The immutable result of a run

Data Flow:
    ┌──────────────┐  ArtifactSpec[]   ┌──────────────────┐  InvokeArg[]  ┌──────────┐
    │   Catalog     │ ───────────────→ │  Planners         │ ───────────→ │  Adapter  │
    └──────────────┘                   │                   │              └──────────┘
                                       │  ReportEntry ──→ RunReport
    ┌──────────────┐  DeploymentRecord │                   │
    │  StateStore   │ ←──────────────→ │                   │
    └──────────────┘                   └──────────────────┘
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pulsar_deploy.core.enums import Outcome, ParamKind, Phase
from pulsar_deploy.core.exceptions import StateError


def _now() -> datetime:
    """Get the current UTC timestamp."""
    return datetime.now(timezone.utc)


# =============================================================================
# Init Parameter Descriptor
# =============================================================================
# A descriptor, not a value: the actual value is resolved by the
# Initialization Planner at call time, after the deploy phase is over.
#
#   InitParam.admin("admin")                      → --admin <deployer address>
#   InitParam.token("token")                      → --token <token contract>
#   InitParam.artifact("registry", "ad_registry") → --registry <ad_registry address>
#   InitParam.literal("required", "2")            → --required 2
# =============================================================================
class InitParam(BaseModel):
    """Descriptor for one argument of an artifact's init entrypoint.

    Attributes:
        name: Argument name as the entrypoint declares it (e.g. "admin").
        kind: How the value is resolved (see ParamKind).
        value: The literal value for LITERAL, the referenced artifact name
            for ARTIFACT, unused for ADMIN and TOKEN.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, description="Entrypoint argument name")
    kind: ParamKind = Field(description="How the value is resolved at call time")
    value: Optional[str] = Field(
        default=None,
        description="Literal value, or referenced artifact name for ARTIFACT params",
    )

    @model_validator(mode="after")
    def _check_value(self) -> "InitParam":
        if self.kind in (ParamKind.LITERAL, ParamKind.ARTIFACT) and not self.value:
            raise ValueError(f"{self.kind.value} parameter '{self.name}' requires a value")
        return self

    @classmethod
    def literal(cls, name: str, value: str) -> "InitParam":
        return cls(name=name, kind=ParamKind.LITERAL, value=value)

    @classmethod
    def admin(cls, name: str = "admin") -> "InitParam":
        return cls(name=name, kind=ParamKind.ADMIN)

    @classmethod
    def token(cls, name: str = "token") -> "InitParam":
        return cls(name=name, kind=ParamKind.TOKEN)

    @classmethod
    def artifact(cls, name: str, artifact_name: str) -> "InitParam":
        return cls(name=name, kind=ParamKind.ARTIFACT, value=artifact_name)


# =============================================================================
# Artifact Specification
# =============================================================================
class ArtifactSpec(BaseModel):
    """Identity of one deployable unit (a Soroban contract).

    Attributes:
        name: Unique, stable key. Used as the key in the State Store.
        binary_locator: Path of the compiled WASM for this artifact.
        init_entrypoint: Name of the one-time setup entrypoint, or None when
            the artifact needs no initialization.
        init_params: Ordered parameter descriptors for the init entrypoint.

    Example:
        >>> spec = ArtifactSpec(
        ...     name="campaign_orchestrator",
        ...     binary_locator="target/.../pulsar_campaign_orchestrator.wasm",
        ...     init_entrypoint="initialize",
        ...     init_params=[InitParam.admin(), InitParam.token()],
        ... )
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, description="Unique, stable artifact name")
    binary_locator: str = Field(description="Path of the artifact's build output")
    init_entrypoint: Optional[str] = Field(
        default=None,
        description="One-time setup entrypoint (None = no init step)",
    )
    init_params: tuple[InitParam, ...] = Field(
        default=(),
        description="Ordered init parameter descriptors",
    )

    @property
    def needs_init(self) -> bool:
        return self.init_entrypoint is not None

    @property
    def dependencies(self) -> list[str]:
        """Names of other artifacts referenced by the init parameters, in order."""
        names: list[str] = []
        for param in self.init_params:
            if param.kind == ParamKind.ARTIFACT and param.value not in names:
                names.append(param.value)  # type: ignore[arg-type]
        return names

    @property
    def needs_token(self) -> bool:
        return any(p.kind == ParamKind.TOKEN for p in self.init_params)


class InvokeArg(BaseModel):
    """A resolved entrypoint argument: rendered as ``--<name> <value>``."""

    model_config = ConfigDict(frozen=True)

    name: str
    value: str


# =============================================================================
# Deployment Record
# =============================================================================
# The persisted row. Created on the first successful deploy, overwritten only
# by a forced redeploy, never deleted automatically.
# =============================================================================
class DeploymentRecord(BaseModel):
    """One artifact address persisted in the State Store.

    Attributes:
        network: Network the artifact lives on ("testnet", "mainnet", ...).
        artifact_name: The ArtifactSpec name.
        address: Opaque contract address handle.
        deployed_at: When the deploy happened. None for records written by
            tooling that did not store timestamps.
    """

    network: str
    artifact_name: str
    address: str
    deployed_at: Optional[datetime] = None


class RunConfig(BaseModel):
    """Explicit settings for one pipeline run.

    Everything a run needs to know, passed explicitly to the pipeline.
    Built from DeployConfig (see DeployConfig.to_run_config).

    Attributes:
        network: Target network name.
        identity: Name of the signing identity.
        force: Redeploy artifacts that already have a record.
        dry_run: Report what would happen without touching the network or store.
        token_address: Run-wide override of the payment token address.
        phases: Which phases to execute, in order.
    """

    model_config = ConfigDict(frozen=True)

    network: str = "testnet"
    identity: str = "pulsartrack-deployer"
    force: bool = False
    dry_run: bool = False
    token_address: Optional[str] = None
    phases: tuple[Phase, ...] = (Phase.DEPLOY, Phase.INIT)


# =============================================================================
# Run Report
# =============================================================================
# The sole user-facing artifact of a run besides the updated State Store.
# Immutable snapshots: each step produces a new report via with_entry(), and
# complete() seals it. A sealed report refuses further entries.
# =============================================================================
class ReportEntry(BaseModel):
    """One step of a run: what happened to an artifact in a phase."""

    model_config = ConfigDict(frozen=True)

    artifact_name: str
    phase: Phase
    outcome: Outcome
    note: str = ""


class RunReport(BaseModel):
    """Ordered, immutable record of a pipeline run.

    Attributes:
        network: Network the run targeted.
        dry_run: Whether this was a dry run.
        entries: (artifact, phase, outcome) triples in execution order.
        started_at: Run start (UTC).
        completed_at: Set by complete(); None while the run is in progress.

    Example:
        >>> report = RunReport(network="testnet")
        >>> report = report.with_entry(ReportEntry(
        ...     artifact_name="ad_registry", phase=Phase.DEPLOY, outcome=Outcome.OK,
        ... ))
        >>> report = report.complete()
        >>> report.exit_code
        0
    """

    model_config = ConfigDict(frozen=True)

    network: str
    dry_run: bool = False
    entries: tuple[ReportEntry, ...] = ()
    started_at: datetime = Field(default_factory=_now)
    completed_at: Optional[datetime] = None

    @property
    def is_complete(self) -> bool:
        return self.completed_at is not None

    def with_entry(self, entry: ReportEntry) -> "RunReport":
        """Return a new report with ``entry`` appended.

        Raises:
            StateError: If the report has already been completed.
        """
        if self.is_complete:
            raise StateError(
                message="Cannot add entries to a completed run report",
                error_code="REPORT_COMPLETED",
                details={"artifact_name": entry.artifact_name, "phase": entry.phase.value},
            )
        return self.model_copy(update={"entries": self.entries + (entry,)})

    def complete(self) -> "RunReport":
        """Seal the report and stamp completed_at."""
        if self.is_complete:
            return self
        return self.model_copy(update={"completed_at": _now()})

    def entries_for(self, phase: Phase) -> list[ReportEntry]:
        return [e for e in self.entries if e.phase == phase]

    def outcome_of(self, artifact_name: str, phase: Phase) -> Optional[Outcome]:
        for entry in self.entries:
            if entry.artifact_name == artifact_name and entry.phase == phase:
                return entry.outcome
        return None

    def counts(self) -> dict[str, int]:
        """Summary counts: deployed, skipped, failed, initialized."""
        return {
            "deployed": sum(
                1 for e in self.entries if e.phase == Phase.DEPLOY and e.outcome == Outcome.OK
            ),
            "skipped": sum(1 for e in self.entries if e.outcome == Outcome.SKIPPED),
            "failed": sum(1 for e in self.entries if e.outcome == Outcome.FAILED),
            "initialized": sum(
                1 for e in self.entries if e.phase == Phase.INIT and e.outcome == Outcome.OK
            ),
        }

    @property
    def has_failures(self) -> bool:
        return any(e.outcome == Outcome.FAILED for e in self.entries)

    @property
    def succeeded(self) -> bool:
        """Overall success: no artifact ended failed. Skips do not count."""
        return not self.has_failures

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()
