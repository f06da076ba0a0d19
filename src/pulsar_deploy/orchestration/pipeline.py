"""
pulsar_deploy.orchestration.pipeline - Run Driver
===================================================

The DeploymentPipeline sequences one run end to end:

    ┌────────────────────────────────────────────────────────────────────┐
    │ 1. plan    init order (cycle check) + token availability            │  fatal
    │ 2. probe   StateStore.load_all → DeploymentState                    │  fatal
    │ 3. build   contracts compiled (deploy phase, real runs only)        │  fatal
    │ 4. signer  identity → address (real runs only)                      │  fatal
    │ 5. deploy  DeploymentPlanner, configured order                      │  per artifact
    │ 6. reload  StateStore.load_all → sync addresses (real runs only)    │  fatal
    │ 7. init    InitializationPlanner, dependency order                  │  per artifact
    │ 8. seal    RunReport.complete()                                     │
    └────────────────────────────────────────────────────────────────────┘

Steps 1-4 happen before the first deploy or invoke call. Any DeployError
raised outside the planners' per-artifact handling aborts the run.

Usage:
    >>> pipeline = DeploymentPipeline(
    ...     store=InMemoryStateStore(),
    ...     adapter=ExecutionClientAdapter(MockExecutionClient()),
    ...     identity_provider=MockIdentityProvider(),
    ...     artifacts=default_catalog(Path("target/wasm32-unknown-unknown/release")),
    ...     run_config=RunConfig(network="testnet"),
    ... )
    >>> report = await pipeline.run()
    >>> report.exit_code
    0
"""

from __future__ import annotations

from typing import Optional, Sequence

import structlog

from pulsar_deploy.core.enums import DeploymentStatus, Phase
from pulsar_deploy.core.exceptions import ConfigurationError
from pulsar_deploy.core.models import ArtifactSpec, RunConfig, RunReport
from pulsar_deploy.core.state import DeploymentState
from pulsar_deploy.infrastructure.state_store import StateStore
from pulsar_deploy.integrations.build import CargoBuilder
from pulsar_deploy.integrations.execution.base import BaseIdentityProvider
from pulsar_deploy.orchestration.adapter import ExecutionClientAdapter
from pulsar_deploy.orchestration.dependency_graph import plan_initialization_order
from pulsar_deploy.orchestration.deployment_planner import (
    DeploymentPlanner,
    dry_run_address,
)
from pulsar_deploy.orchestration.initialization_planner import InitializationPlanner


logger = structlog.get_logger()


class DeploymentPipeline:
    """Drives the deploy and init phases for one network.

    Args:
        store: Durable deployment records.
        adapter: Classifying execution adapter.
        identity_provider: Resolves the signing identity's address.
        artifacts: The catalog, in configured order.
        run_config: Explicit per-run settings.
        builder: Optional contract builder run before the deploy phase.

    Attributes:
        state: The DeploymentState of the last run (None before run()).
    """

    def __init__(
        self,
        store: StateStore,
        adapter: ExecutionClientAdapter,
        identity_provider: BaseIdentityProvider,
        artifacts: Sequence[ArtifactSpec],
        run_config: RunConfig,
        builder: Optional[CargoBuilder] = None,
    ) -> None:
        self._store = store
        self._adapter = adapter
        self._identity_provider = identity_provider
        self._artifacts = list(artifacts)
        self._run = run_config
        self._builder = builder
        self.state: Optional[DeploymentState] = None
        self._logger = logger.bind(component="deployment_pipeline", network=run_config.network)

    @property
    def run_config(self) -> RunConfig:
        return self._run

    @property
    def builder(self) -> Optional[CargoBuilder]:
        return self._builder

    async def run(self) -> RunReport:
        """Execute the configured phases and return the sealed report.

        Raises:
            CycleDetectedError: Init references form a cycle.
            ConfigurationError: Unknown references, or no token address.
            StoreUnavailableError: The State Store cannot be read or written.
            BuildError: The contract build failed.
            ExecutionError: The signing identity could not be resolved.
        """
        run = self._run
        deploy_phase = Phase.DEPLOY in run.phases
        init_phase = Phase.INIT in run.phases

        init_order = plan_initialization_order(self._artifacts)
        if init_phase:
            self._check_token_available()

        names = [spec.name for spec in self._artifacts]
        records = await self._store.load_all(run.network)
        state = DeploymentState.from_records(names, records)
        self.state = state

        self._logger.info(
            "run_started",
            identity=run.identity,
            phases=[p.value for p in run.phases],
            artifacts=len(names),
            recorded=len(records),
            force=run.force,
            dry_run=run.dry_run,
        )

        if deploy_phase and self._builder is not None and not run.dry_run:
            await self._builder.build()

        signer = await self._resolve_signer()
        report = RunReport(network=run.network, dry_run=run.dry_run)

        if deploy_phase:
            planner = DeploymentPlanner(
                self._store,
                self._adapter,
                run,
                deployer_address=None if run.dry_run else signer,
            )
            report = await planner.execute(self._artifacts, state, report)

        if init_phase:
            if not run.dry_run:
                await self._sync_from_store(state)
            initializer = InitializationPlanner(self._adapter, run, admin_address=signer)
            report = await initializer.execute(init_order, state, report)

        report = report.complete()
        self._logger.info(
            "run_completed",
            succeeded=report.succeeded,
            duration_seconds=report.duration_seconds,
            **report.counts(),
        )
        return report

    def _check_token_available(self) -> None:
        if self._run.token_address:
            return
        needing = [s.name for s in self._artifacts if s.needs_init and s.needs_token]
        if needing:
            raise ConfigurationError(
                message=(
                    f"No token address for network '{self._run.network}'; "
                    f"pass --token (needed by {', '.join(needing)})"
                ),
                error_code="MISSING_TOKEN_ADDRESS",
                details={"network": self._run.network, "artifacts": needing},
            )

    async def _resolve_signer(self) -> str:
        if self._run.dry_run:
            return dry_run_address(self._run.identity)
        address = await self._identity_provider.resolve_address(self._run.identity)
        self._logger.info("identity_resolved", identity=self._run.identity, address=address)
        return address

    async def _sync_from_store(self, state: DeploymentState) -> None:
        records = await self._store.load_all(self._run.network)
        for name, address in records.items():
            if name not in state:
                continue
            if state.status_of(name) in (DeploymentStatus.NOT_DEPLOYED, DeploymentStatus.DEPLOYED):
                if state.address_of(name) != address:
                    state.mark_deployed(name, address)
