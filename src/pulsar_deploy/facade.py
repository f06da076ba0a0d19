"""
pulsar_deploy.facade - PulsarDeployer Top-Level Facade
========================================================

The single entry point that wires configuration into a ready-to-run
pipeline. The CLI is a thin layer over this class; tests use it with
in-memory collaborators.

    ┌──────────────────────────────────────────────────┐
    │              PulsarDeployer (Facade)              │
    │                                                   │
    │  DeployConfig ──→ RunConfig ──→ DeploymentPipeline│
    │                                   │               │
    │   catalog (built-in / manifest) ──┤               │
    │   StateStore (JSON file) ─────────┤               │
    │   ExecutionClientAdapter ─────────┤               │
    │     └ execution client (stellar / mock)           │
    │   identity provider ──────────────┤               │
    │   CargoBuilder (optional) ────────┘               │
    └──────────────────────────────────────────────────┘

Usage:
    >>> deployer = PulsarDeployer(load_config(network="testnet"))
    >>> report = await deployer.setup()
    >>> report.exit_code
    0
"""

from __future__ import annotations

from typing import Optional, Sequence

import structlog

from pulsar_deploy.catalog import load_catalog
from pulsar_deploy.core.config import DeployConfig
from pulsar_deploy.core.enums import Phase
from pulsar_deploy.core.models import ArtifactSpec, RunReport
from pulsar_deploy.infrastructure.state_store import JsonFileStateStore, StateStore
from pulsar_deploy.integrations.build import CargoBuilder
from pulsar_deploy.integrations.execution.base import (
    BaseExecutionClient,
    BaseIdentityProvider,
)
from pulsar_deploy.integrations.execution.factory import (
    create_execution_client,
    create_identity_provider,
)
from pulsar_deploy.orchestration.adapter import (
    CLIENT_TIMEOUT_MARGIN_SECONDS,
    ExecutionClientAdapter,
)
from pulsar_deploy.orchestration.pipeline import DeploymentPipeline


logger = structlog.get_logger()


class PulsarDeployer:
    """Top-level facade for deploying and initializing a contract suite.

    Every collaborator can be injected; anything not given is built from
    the configuration.

    Args:
        config: Tool configuration. Defaults to DeployConfig() (env + defaults).
        store: State Store. Defaults to a JsonFileStateStore at config.state_path().
        client: Execution client. Defaults to the configured backend.
        identity_provider: Defaults to the configured backend's provider.
        artifacts: Catalog. Defaults to the manifest, else the built-in catalog.
        builder: Contract builder. Defaults to a CargoBuilder when config.build
            is set and the stellar backend is used; pass one explicitly to
            build with other backends.
    """

    def __init__(
        self,
        config: Optional[DeployConfig] = None,
        *,
        store: Optional[StateStore] = None,
        client: Optional[BaseExecutionClient] = None,
        identity_provider: Optional[BaseIdentityProvider] = None,
        artifacts: Optional[Sequence[ArtifactSpec]] = None,
        builder: Optional[CargoBuilder] = None,
    ) -> None:
        self._config = config or DeployConfig()

        self._store = store or JsonFileStateStore(
            self._config.state_dir, self._config.state_file
        )
        self._client = client or create_execution_client(self._config)
        self._identity_provider = identity_provider or create_identity_provider(self._config)
        self._artifacts = (
            list(artifacts)
            if artifacts is not None
            else load_catalog(self._config.wasm_dir, self._config.manifest)
        )

        if builder is None and self._config.build and self._config.execution_backend == "stellar":
            builder = CargoBuilder(self._config.stellar)
        self._builder = builder if self._config.build else None

        # The client enforces its own timeout first; the adapter's is a backstop
        adapter_timeout = self._config.stellar.timeout_seconds + CLIENT_TIMEOUT_MARGIN_SECONDS
        self._adapter = ExecutionClientAdapter(
            self._client,
            timeout_seconds=adapter_timeout,
            benign_patterns=self._config.benign_rejection_patterns,
        )
        self._logger = logger.bind(component="pulsar_deployer")

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def config(self) -> DeployConfig:
        return self._config

    @property
    def store(self) -> StateStore:
        return self._store

    @property
    def client(self) -> BaseExecutionClient:
        return self._client

    @property
    def adapter(self) -> ExecutionClientAdapter:
        return self._adapter

    @property
    def artifacts(self) -> list[ArtifactSpec]:
        return list(self._artifacts)

    # =========================================================================
    # Runs
    # =========================================================================

    def create_pipeline(self, phases: Sequence[Phase]) -> DeploymentPipeline:
        """Build a pipeline for one run of ``phases``."""
        return DeploymentPipeline(
            store=self._store,
            adapter=self._adapter,
            identity_provider=self._identity_provider,
            artifacts=self._artifacts,
            run_config=self._config.to_run_config(tuple(phases)),
            builder=self._builder,
        )

    async def run(self, phases: Sequence[Phase] = (Phase.DEPLOY, Phase.INIT)) -> RunReport:
        """Run ``phases`` against the configured network."""
        self._logger.info(
            "deployer_run",
            network=self._config.network,
            phases=[p.value for p in phases],
            backend=self._client.backend_name,
        )
        return await self.create_pipeline(phases).run()

    async def setup(self) -> RunReport:
        """Deploy, then initialize."""
        return await self.run((Phase.DEPLOY, Phase.INIT))

    async def deploy(self) -> RunReport:
        return await self.run((Phase.DEPLOY,))

    async def initialize(self) -> RunReport:
        return await self.run((Phase.INIT,))

    async def status(self) -> dict[str, Optional[str]]:
        """Recorded address per artifact: catalog order first (None when
        not deployed), then records for names outside the catalog."""
        records = await self._store.load_all(self._config.network)
        result: dict[str, Optional[str]] = {
            spec.name: records.get(spec.name) for spec in self._artifacts
        }
        for name, address in records.items():
            result.setdefault(name, address)
        return result

    def __repr__(self) -> str:
        return (
            f"PulsarDeployer(network={self._config.network!r}, "
            f"backend={self._client.backend_name!r}, "
            f"artifacts={len(self._artifacts)})"
        )
