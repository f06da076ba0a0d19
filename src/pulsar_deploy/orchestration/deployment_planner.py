"""
pulsar_deploy.orchestration.deployment_planner - Deploy Phase
===============================================================

The Deployment Planner walks the catalog in configured order and makes sure
every artifact has an address on the target network:

    for each ArtifactSpec:
        record exists, no --force  → skipped   (keep the recorded address)
        --dry-run                  → ok        (placeholder "dry-run:<name>")
        deploy succeeded           → ok        (address persisted immediately)
        deploy rejected / failed   → failed    (continue with the next one)

Persisting after every successful deploy means an interrupted run loses at
most the address of the call in flight. A StoreUnavailableError from the
store aborts the run.
"""

from __future__ import annotations

from typing import Optional, Sequence

import structlog

from pulsar_deploy.core.enums import Outcome, Phase
from pulsar_deploy.core.models import ArtifactSpec, ReportEntry, RunConfig, RunReport
from pulsar_deploy.core.state import DeploymentState
from pulsar_deploy.infrastructure.state_store import StateStore
from pulsar_deploy.orchestration.adapter import ExecutionClientAdapter


logger = structlog.get_logger()

DRY_RUN_PREFIX = "dry-run:"


def dry_run_address(name: str) -> str:
    """Placeholder address used in place of a real one during dry runs."""
    return f"{DRY_RUN_PREFIX}{name}"


class DeploymentPlanner:
    """Runs the deploy phase over an artifact catalog.

    Args:
        store: Durable deployment records.
        adapter: Classifying wrapper around the execution client.
        run_config: Network, identity, force and dry-run settings.
        deployer_address: Address of the signing identity, recorded in the
            store document. None on dry runs.
    """

    def __init__(
        self,
        store: StateStore,
        adapter: ExecutionClientAdapter,
        run_config: RunConfig,
        deployer_address: Optional[str] = None,
    ) -> None:
        self._store = store
        self._adapter = adapter
        self._run = run_config
        self._deployer = deployer_address
        self._logger = logger.bind(component="deployment_planner", network=run_config.network)

    async def execute(
        self,
        specs: Sequence[ArtifactSpec],
        state: DeploymentState,
        report: RunReport,
    ) -> RunReport:
        """Deploy every artifact in ``specs`` and return the extended report."""
        self._logger.info(
            "deploy_phase_started",
            artifacts=len(specs),
            force=self._run.force,
            dry_run=self._run.dry_run,
        )
        for spec in specs:
            entry = await self._deploy_one(spec, state)
            report = report.with_entry(entry)

        self._logger.info("deploy_phase_completed", **report.counts())
        return report

    async def _deploy_one(self, spec: ArtifactSpec, state: DeploymentState) -> ReportEntry:
        existing = await self._store.get(self._run.network, spec.name)

        if existing and not self._run.force:
            if state.address_of(spec.name) != existing:
                state.mark_deployed(spec.name, existing)
            self._logger.info("artifact_deploy_skipped", artifact=spec.name, address=existing)
            return self._entry(spec.name, Outcome.SKIPPED, "already deployed")

        if self._run.dry_run:
            placeholder = dry_run_address(spec.name)
            state.mark_deployed(spec.name, placeholder)
            note = "dry run: would redeploy" if existing else "dry run: would deploy"
            self._logger.info("artifact_deploy_dry_run", artifact=spec.name)
            return self._entry(spec.name, Outcome.OK, note)

        self._logger.info(
            "artifact_deploying",
            artifact=spec.name,
            binary=spec.binary_locator,
            redeploy=bool(existing),
        )
        result = await self._adapter.deploy(
            spec.binary_locator, self._run.identity, self._run.network
        )

        if not result.ok or not result.address:
            reason = result.message or "deploy returned no address"
            state.mark_failed(spec.name, reason)
            self._logger.error(
                "artifact_deploy_failed",
                artifact=spec.name,
                status=result.status.value,
                reason=reason,
            )
            return self._entry(spec.name, Outcome.FAILED, reason)

        await self._store.put(
            self._run.network, spec.name, result.address, deployer=self._deployer
        )
        state.mark_deployed(spec.name, result.address)
        self._logger.info("artifact_deployed", artifact=spec.name, address=result.address)
        return self._entry(spec.name, Outcome.OK, result.address)

    @staticmethod
    def _entry(name: str, outcome: Outcome, note: str) -> ReportEntry:
        return ReportEntry(artifact_name=name, phase=Phase.DEPLOY, outcome=outcome, note=note)
