"""
pulsar_deploy.orchestration.initialization_planner - Init Phase
=================================================================

After the deploy phase, every artifact that declares an init entrypoint is
initialized once, in dependency order.

Per-artifact decision:
    status NOT_DEPLOYED          → skipped ("not deployed")
    status FAILED                → skipped ("deploy failed")
    a referenced artifact FAILED → skipped ("dependency failed")
    parameter resolution fails   → failed  (UnresolvedDependencyError)
    dry run                      → ok      (no invoke)
    invoke succeeded             → ok      → INITIALIZED
    rejected as "already
      initialized"               → ok      → INITIALIZED
    any other rejection or a
      transport failure          → failed  (the remaining artifacts still run)

Parameter Resolution (ParameterResolver):
    literal  → the literal value
    admin    → the deployer identity's address
    token    → the run's token address (override or network default)
    artifact → the current address of the referenced artifact
"""

from __future__ import annotations

from typing import Optional, Sequence

import structlog

from pulsar_deploy.core.enums import DeploymentStatus, Outcome, ParamKind, Phase
from pulsar_deploy.core.exceptions import ConfigurationError, UnresolvedDependencyError
from pulsar_deploy.core.models import (
    ArtifactSpec,
    InitParam,
    InvokeArg,
    ReportEntry,
    RunConfig,
    RunReport,
)
from pulsar_deploy.core.state import DeploymentState
from pulsar_deploy.orchestration.adapter import ExecutionClientAdapter


logger = structlog.get_logger()


class ParameterResolver:
    """Turns InitParam descriptors into concrete invoke arguments."""

    def __init__(
        self,
        state: DeploymentState,
        admin_address: str,
        token_address: Optional[str],
    ) -> None:
        self._state = state
        self._admin = admin_address
        self._token = token_address

    def resolve(self, spec: ArtifactSpec) -> list[InvokeArg]:
        """Resolve every init parameter of ``spec``, in declared order.

        Raises:
            UnresolvedDependencyError: A referenced artifact has no usable address.
            ConfigurationError: A token parameter has no token address.
        """
        return [InvokeArg(name=p.name, value=self._value_of(spec, p)) for p in spec.init_params]

    def _value_of(self, spec: ArtifactSpec, param: InitParam) -> str:
        if param.kind == ParamKind.LITERAL:
            return param.value  # type: ignore[return-value]

        if param.kind == ParamKind.ADMIN:
            return self._admin

        if param.kind == ParamKind.TOKEN:
            if not self._token:
                raise ConfigurationError(
                    message=f"No token address available for '{spec.name}'",
                    error_code="MISSING_TOKEN_ADDRESS",
                    details={"artifact_name": spec.name},
                )
            return self._token

        dependency = param.value or ""
        if dependency not in self._state:
            raise UnresolvedDependencyError(
                message=f"{spec.name} references unknown artifact {dependency}",
                artifact_name=spec.name,
                dependency=dependency,
            )
        target = self._state.get(dependency)
        if not target.is_at_least_deployed or not target.address:
            raise UnresolvedDependencyError(
                message=(
                    f"{spec.name} needs {dependency}, which is "
                    f"{target.status.value.replace('_', ' ')}"
                ),
                artifact_name=spec.name,
                dependency=dependency,
            )
        return target.address


class InitializationPlanner:
    """Runs the init phase.

    Args:
        adapter: Classifying wrapper around the execution client.
        run_config: Network, identity, token and dry-run settings.
        admin_address: Address substituted for admin parameters.
    """

    def __init__(
        self,
        adapter: ExecutionClientAdapter,
        run_config: RunConfig,
        admin_address: str,
    ) -> None:
        self._adapter = adapter
        self._run = run_config
        self._admin = admin_address
        self._logger = logger.bind(
            component="initialization_planner", network=run_config.network
        )

    async def execute(
        self,
        ordered_specs: Sequence[ArtifactSpec],
        state: DeploymentState,
        report: RunReport,
    ) -> RunReport:
        """Initialize ``ordered_specs`` (dependencies first) and extend ``report``.

        Artifacts without an init entrypoint produce no entry.
        """
        resolver = ParameterResolver(state, self._admin, self._run.token_address)
        targets = [spec for spec in ordered_specs if spec.needs_init]
        self._logger.info("init_phase_started", artifacts=len(targets), dry_run=self._run.dry_run)

        for spec in targets:
            entry = await self._initialize_one(spec, state, resolver)
            report = report.with_entry(entry)

        self._logger.info(
            "init_phase_completed",
            initialized=len(state.names_with_status(DeploymentStatus.INITIALIZED)),
        )
        return report

    async def _initialize_one(
        self,
        spec: ArtifactSpec,
        state: DeploymentState,
        resolver: ParameterResolver,
    ) -> ReportEntry:
        status = state.status_of(spec.name)
        if status == DeploymentStatus.NOT_DEPLOYED:
            self._logger.info("initialization_skipped", artifact=spec.name, reason="not deployed")
            return self._entry(spec.name, Outcome.SKIPPED, "not deployed")
        if status == DeploymentStatus.FAILED:
            self._logger.info("initialization_skipped", artifact=spec.name, reason="deploy failed")
            return self._entry(spec.name, Outcome.SKIPPED, "deploy failed")

        failed = [
            d for d in spec.dependencies
            if d in state and state.status_of(d) == DeploymentStatus.FAILED
        ]
        if failed:
            self._logger.info(
                "initialization_skipped",
                artifact=spec.name,
                reason="dependency failed",
                dependencies=failed,
            )
            return self._entry(spec.name, Outcome.SKIPPED, "dependency failed")

        try:
            args = resolver.resolve(spec)
        except UnresolvedDependencyError as e:
            state.mark_failed(spec.name, e.message)
            self._logger.error(
                "initialization_unresolved_dependency",
                artifact=spec.name,
                dependency=e.dependency,
            )
            return self._entry(spec.name, Outcome.FAILED, e.message)

        entrypoint = spec.init_entrypoint or ""
        if self._run.dry_run:
            state.mark_initialized(spec.name)
            rendered = ", ".join(f"{a.name}={a.value}" for a in args)
            self._logger.info("initialization_dry_run", artifact=spec.name, args=rendered)
            return self._entry(
                spec.name, Outcome.OK, f"dry run: would invoke {entrypoint}({rendered})"
            )

        address = state.address_of(spec.name) or ""
        self._logger.info("artifact_initializing", artifact=spec.name, address=address)
        result = await self._adapter.invoke(
            address, self._run.identity, self._run.network, entrypoint, args
        )

        if result.ok:
            state.mark_initialized(spec.name)
            self._logger.info("artifact_initialized", artifact=spec.name)
            return self._entry(spec.name, Outcome.OK, "initialized")

        if result.benign:
            state.mark_initialized(spec.name)
            self._logger.info("initialization_benign_rejection", artifact=spec.name)
            return self._entry(spec.name, Outcome.OK, "already initialized")

        state.mark_failed(spec.name, result.message)
        self._logger.error(
            "initialization_failed",
            artifact=spec.name,
            status=result.status.value,
            reason=result.message,
        )
        return self._entry(spec.name, Outcome.FAILED, result.message)

    @staticmethod
    def _entry(name: str, outcome: Outcome, note: str) -> ReportEntry:
        return ReportEntry(artifact_name=name, phase=Phase.INIT, outcome=outcome, note=note)
