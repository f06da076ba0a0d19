"""
pulsar_deploy.core.config - Configuration Management
======================================================

This module provides the configuration system for pulsar-deploy.
Configuration can be loaded from multiple sources with the following priority
(highest first):

    1. Explicit constructor arguments (the CLI passes its flags this way)
    2. YAML configuration file (pulsar-deploy.yaml), read by load_config and
       handed to the constructor
    3. Environment variables (prefixed with PULSAR_DEPLOY_; network and
       identity also honour STELLAR_NETWORK / STELLAR_IDENTITY)
    4. Default values defined in the models below

Architecture Context:
    DeployConfig is created once by the CLI (or a test) and handed to the
    PulsarDeployer facade, which derives everything else from it:

        DeployConfig
            ├── StellarCliConfig   → StellarCliClient, StellarIdentityProvider, CargoBuilder
            ├── state_dir/state_file → JsonFileStateStore
            ├── wasm_dir/manifest  → artifact catalog
            └── to_run_config()    → RunConfig → DeploymentPipeline

Usage:
    # Load from environment variables:
    config = DeployConfig()

    # Load from YAML file:
    config = load_config("pulsar-deploy.yaml")

    # Explicit overrides:
    config = DeployConfig(network="mainnet", dry_run=True)

Environment Variables:
    STELLAR_NETWORK=mainnet                  (or PULSAR_DEPLOY_NETWORK)
    STELLAR_IDENTITY=pulsartrack-deployer    (or PULSAR_DEPLOY_IDENTITY)
    PULSAR_DEPLOY_TOKEN_ADDRESS=C...
    PULSAR_DEPLOY_STATE_DIR=deployments
    PULSAR_DEPLOY_STELLAR__BINARY=/usr/local/bin/stellar
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings

from pulsar_deploy.core.enums import Phase
from pulsar_deploy.core.exceptions import ConfigurationError
from pulsar_deploy.core.models import RunConfig


# =============================================================================
# Network Defaults
# =============================================================================
# The Stellar Asset Contract of native XLM on each public network. Payment
# token parameters resolve to this address unless a token override is given.
# =============================================================================
NATIVE_TOKEN_ADDRESSES: dict[str, str] = {
    "testnet": "CDLZFC3SYJYDZT7K67VZ75HPJVIEUVNIXF47ZG2FB2RMQQVU2HHGCYSC",
    "mainnet": "CAS3J7GYLGXMF6TDJBBYYSE3HQ6BBSMLNUQ34T6TZMYMW2EVH34XOWMA",
}

DEFAULT_BENIGN_REJECTION_PATTERNS: list[str] = [
    r"already[ _]?(been[ _])?initiali[sz]ed",
    r"AlreadyInitialized",
]

DEFAULT_CONFIG_FILE = "pulsar-deploy.yaml"

# stellar CLI environment conventions, used when no PULSAR_DEPLOY_ value is set
STELLAR_ENV_FALLBACKS: dict[str, str] = {
    "network": "STELLAR_NETWORK",
    "identity": "STELLAR_IDENTITY",
}


# =============================================================================
# Stellar CLI Configuration
# =============================================================================
class StellarCliConfig(BaseModel):
    """How to run the `stellar` CLI and the contract build.

    Attributes:
        binary: Executable name or path of the stellar CLI.
        timeout_seconds: Upper bound for a single deploy/invoke call. The
            execution adapter surfaces a transport failure when exceeded.
        build_command: Command that compiles every contract to WASM.
        build_timeout_seconds: Upper bound for the build.
        project_dir: Working directory of the build (the cargo workspace).
    """

    binary: str = Field(default="stellar", description="stellar CLI executable")
    timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Timeout in seconds for one deploy/invoke call",
    )
    build_command: list[str] = Field(
        default_factory=lambda: [
            "cargo", "build", "--release", "--target", "wasm32-unknown-unknown",
        ],
        description="Command that builds all contracts",
    )
    build_timeout_seconds: float = Field(
        default=1800.0,
        gt=0,
        description="Timeout in seconds for the build command",
    )
    project_dir: Path = Field(
        default=Path("."),
        description="Cargo workspace directory the build runs in",
    )


# =============================================================================
# Main Configuration
# =============================================================================
class DeployConfig(BaseSettings):
    """Top-level configuration for pulsar-deploy.

    Attributes:
        network: Target network ("testnet", "mainnet", or a configured name).
        identity: Name of the stellar keys identity that signs every call.
        force: Redeploy artifacts that already have a recorded address.
        dry_run: Show what would happen; never touches the network or store.
        token_address: Override for the payment token parameter.
        state_dir: Directory holding deployed-<network>.json files.
        state_file: Explicit state file, overrides state_dir.
        wasm_dir: Directory of the compiled contract binaries.
        manifest: Optional YAML artifact catalog replacing the built-in one.
        build: Run the build command before deploying (skipped on dry runs).
        execution_backend: "stellar" for the real CLI, "mock" for an
            in-memory simulation.
        benign_rejection_patterns: Regexes (case-insensitive) that identify
            an "already initialized" rejection.
        log_level: Logging level.
        log_format: "console" for humans, "json" for log pipelines.
        stellar: stellar CLI / build settings.
    """

    network: str = Field(
        default="testnet",
        description="Target network",
    )
    identity: str = Field(
        default="pulsartrack-deployer",
        description="Signing identity name",
    )
    force: bool = Field(default=False, description="Redeploy already deployed artifacts")
    dry_run: bool = Field(default=False, description="Report only, mutate nothing")
    token_address: Optional[str] = Field(
        default=None,
        description="Payment token address override",
    )
    state_dir: Path = Field(
        default=Path("deployments"),
        description="Directory of per-network state files",
    )
    state_file: Optional[Path] = Field(
        default=None,
        description="Explicit state file location (overrides state_dir)",
    )
    wasm_dir: Path = Field(
        default=Path("target/wasm32-unknown-unknown/release"),
        description="Directory of compiled WASM binaries",
    )
    manifest: Optional[Path] = Field(
        default=None,
        description="YAML artifact catalog (None = built-in catalog)",
    )
    build: bool = Field(default=True, description="Build contracts before deploying")
    execution_backend: Literal["stellar", "mock"] = Field(
        default="stellar",
        description="Execution client implementation",
    )
    benign_rejection_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_BENIGN_REJECTION_PATTERNS),
        description="Regexes marking a rejection as 'already initialized'",
    )
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["console", "json"] = Field(
        default="console",
        description="Log renderer",
    )
    stellar: StellarCliConfig = Field(
        default_factory=StellarCliConfig,
        description="stellar CLI and build settings",
    )

    # -------------------------------------------------------------------------
    # Pydantic Settings Configuration
    # -------------------------------------------------------------------------
    #   - env_prefix: env vars start with "PULSAR_DEPLOY_"
    #   - env_nested_delimiter: PULSAR_DEPLOY_STELLAR__BINARY → stellar.binary
    # -------------------------------------------------------------------------
    model_config = {
        "env_prefix": "PULSAR_DEPLOY_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
    }

    @model_validator(mode="before")
    @classmethod
    def _stellar_env_fallback(cls, data: Any) -> Any:
        """Honour STELLAR_NETWORK / STELLAR_IDENTITY when nothing more
        specific set network / identity."""
        if isinstance(data, dict):
            for field_name, env_name in STELLAR_ENV_FALLBACKS.items():
                if data.get(field_name) is None and os.environ.get(env_name):
                    data[field_name] = os.environ[env_name]
        return data

    # -------------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------------
    def state_path(self) -> Path:
        """Location of the state file for the configured network."""
        if self.state_file is not None:
            return self.state_file
        return self.state_dir / f"deployed-{self.network}.json"

    def resolve_token_address(self) -> Optional[str]:
        """The token address for this network: the override, else the
        network's native token contract, else None."""
        if self.token_address:
            return self.token_address
        return NATIVE_TOKEN_ADDRESSES.get(self.network)

    def to_run_config(
        self, phases: tuple[Phase, ...] = (Phase.DEPLOY, Phase.INIT)
    ) -> RunConfig:
        """Build the explicit RunConfig handed to the pipeline."""
        return RunConfig(
            network=self.network,
            identity=self.identity,
            force=self.force,
            dry_run=self.dry_run,
            token_address=self.resolve_token_address(),
            phases=phases,
        )


# =============================================================================
# Configuration Loader
# =============================================================================
def load_config(path: Optional[str] = None, **overrides: Any) -> DeployConfig:
    """Load configuration from a YAML file, environment variables and overrides.

    The loading process:
        1. If a path is provided, read and parse the YAML file; otherwise use
           ./pulsar-deploy.yaml when it exists.
        2. Apply ``overrides`` (non-None values only) on top of the YAML data.
        3. Environment variables fill in anything neither gives.
        4. Validate all values through Pydantic.

    Args:
        path: Path to a YAML configuration file.
        **overrides: Explicit values (typically CLI flags). None is ignored
            so unset flags do not mask env vars or the YAML file.

    Returns:
        A fully validated DeployConfig instance.

    Raises:
        ConfigurationError: If the YAML file is malformed.
        FileNotFoundError: If an explicit path is provided but doesn't exist.
    """
    if path is None:
        default_path = Path(DEFAULT_CONFIG_FILE)
        if default_path.exists():
            path = str(default_path)

    yaml_data: dict[str, Any] = {}
    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(config_path) as f:
            try:
                raw_data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(
                    message=f"Invalid YAML in configuration file {path}: {e}",
                    error_code="INVALID_CONFIG_FILE",
                    details={"path": str(path)},
                ) from e
        if raw_data is not None and not isinstance(raw_data, dict):
            raise ConfigurationError(
                message=f"Configuration file {path} must contain a mapping",
                error_code="INVALID_CONFIG_FILE",
                details={"path": str(path)},
            )
        yaml_data = raw_data or {}

    yaml_data.update({k: v for k, v in overrides.items() if v is not None})
    return DeployConfig(**yaml_data)
