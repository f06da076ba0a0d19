"""
pulsar_deploy.catalog - Artifact Catalog
==========================================

The catalog is the ordered list of ArtifactSpecs a run works on. The
built-in catalog describes the PulsarTrack contract suite: 39 Soroban
contracts, built as ``pulsar_<name>.wasm``, nine of which take an
``initialize`` call.

A YAML manifest can replace the built-in catalog:

    artifacts:
      - name: ad_registry
        binary: pulsar_ad_registry          # optional, relative to wasm_dir
        init:
          entrypoint: initialize            # optional, defaults to "initialize"
          params:
            - {name: admin, kind: admin}
            - {name: token, kind: token}
      - name: campaign_orchestrator
        init:
          params:
            - {name: admin, kind: admin}
            - {name: registry, artifact: ad_registry}
            - {name: fee_bps, value: "250"}

Parameter forms:
    {kind: admin} / {kind: token}       → resolved by the init planner
    {artifact: <name>}                  → address of another artifact
    {value: <literal>}                  → passed through unchanged
    {kind: literal|artifact, value: ..} → explicit form of the two above
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import structlog
import yaml
from pydantic import ValidationError

from pulsar_deploy.core.enums import ParamKind
from pulsar_deploy.core.exceptions import ConfigurationError
from pulsar_deploy.core.models import ArtifactSpec, InitParam


logger = structlog.get_logger()

BINARY_PREFIX = "pulsar_"
DEFAULT_INIT_ENTRYPOINT = "initialize"


# =============================================================================
# Built-in Catalog
# =============================================================================
# Deploy order of the contract suite, grouped as the contracts are.
# =============================================================================
DEFAULT_ARTIFACTS: tuple[str, ...] = (
    # Core
    "ad_registry",
    "campaign_orchestrator",
    "escrow_vault",
    "fraud_prevention",
    "payment_processor",
    # Governance
    "governance_token",
    "governance_dao",
    "governance_core",
    "timelock_executor",
    # Publisher
    "publisher_verification",
    "publisher_network",
    "publisher_reputation",
    # Analytics
    "analytics_aggregator",
    "campaign_analytics",
    "campaign_lifecycle",
    # Privacy & targeting
    "privacy_layer",
    "targeting_engine",
    "audience_segments",
    "identity_registry",
    "kyc_registry",
    # Marketplace
    "auction_engine",
    "creative_marketplace",
    # Financial
    "subscription_manager",
    "subscription_benefits",
    "liquidity_pool",
    "milestone_tracker",
    "multisig_treasury",
    "oracle_integration",
    "payout_automation",
    "performance_oracle",
    "recurring_payment",
    "refund_processor",
    "revenue_settlement",
    "rewards_distributor",
    # Bridge & utility
    "token_bridge",
    "wrapped_token",
    "dispute_resolution",
    "budget_optimizer",
    "anomaly_detector",
)

# initialize() arguments of the contracts that need one. The oracle and
# treasury roles are held by the deployer on a fresh network.
DEFAULT_INIT_PARAMS: dict[str, tuple[InitParam, ...]] = {
    "ad_registry": (InitParam.admin(),),
    "campaign_orchestrator": (InitParam.admin(), InitParam.token()),
    "governance_token": (InitParam.admin(),),
    "publisher_reputation": (
        InitParam.admin(),
        InitParam(name="oracle", kind=ParamKind.ADMIN),
    ),
    "privacy_layer": (InitParam.admin(),),
    "targeting_engine": (InitParam.admin(),),
    "subscription_manager": (
        InitParam.admin(),
        InitParam.token(),
        InitParam(name="treasury", kind=ParamKind.ADMIN),
    ),
    "auction_engine": (InitParam.admin(), InitParam.token()),
    "identity_registry": (InitParam.admin(),),
}


def binary_path(wasm_dir: Path, binary: str) -> str:
    """Locate a binary: absolute paths as given, others under ``wasm_dir``,
    with ``.wasm`` appended when missing."""
    if not binary.endswith(".wasm"):
        binary = f"{binary}.wasm"
    path = Path(binary)
    if path.is_absolute():
        return str(path)
    return str(wasm_dir / path)


def default_catalog(wasm_dir: Path) -> list[ArtifactSpec]:
    """The built-in PulsarTrack catalog, binaries resolved under ``wasm_dir``."""
    specs = []
    for name in DEFAULT_ARTIFACTS:
        params = DEFAULT_INIT_PARAMS.get(name)
        specs.append(
            ArtifactSpec(
                name=name,
                binary_locator=binary_path(wasm_dir, f"{BINARY_PREFIX}{name}"),
                init_entrypoint=DEFAULT_INIT_ENTRYPOINT if params is not None else None,
                init_params=params or (),
            )
        )
    return specs


# =============================================================================
# YAML Manifest
# =============================================================================
def _invalid(path: Path, message: str, **details: Any) -> ConfigurationError:
    return ConfigurationError(
        message=f"Invalid manifest {path}: {message}",
        error_code="INVALID_MANIFEST",
        details={"path": str(path), **details},
    )


def _render_literal(value: Any) -> str:
    """CLI argument text of a YAML scalar; booleans as the CLI spells them."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _parse_param(path: Path, artifact: str, raw: Any) -> InitParam:
    if not isinstance(raw, dict) or "name" not in raw:
        raise _invalid(path, f"parameter of '{artifact}' needs a name", artifact_name=artifact)

    name = str(raw["name"])
    if "artifact" in raw:
        return InitParam.artifact(name, str(raw["artifact"]))

    kind = raw.get("kind")
    value = raw.get("value")
    if kind is None:
        if value is None:
            raise _invalid(
                path,
                f"parameter '{name}' of '{artifact}' needs a kind, value or artifact",
                artifact_name=artifact,
            )
        kind = ParamKind.LITERAL.value

    try:
        return InitParam(
            name=name,
            kind=ParamKind(str(kind).lower()),
            value=None if value is None else _render_literal(value),
        )
    except ValueError as e:
        # ValidationError is a ValueError too
        raise _invalid(
            path, f"parameter '{name}' of '{artifact}': {e}", artifact_name=artifact
        ) from e


def _parse_artifact(path: Path, wasm_dir: Path, raw: Any) -> ArtifactSpec:
    if not isinstance(raw, dict) or not raw.get("name"):
        raise _invalid(path, "every artifact needs a name")

    name = str(raw["name"])
    binary = str(raw.get("binary") or f"{BINARY_PREFIX}{name}")

    entrypoint: Optional[str] = None
    params: list[InitParam] = []
    init = raw.get("init")
    if init is not None:
        if not isinstance(init, dict):
            raise _invalid(path, f"init of '{name}' must be a mapping", artifact_name=name)
        entrypoint = str(init.get("entrypoint") or DEFAULT_INIT_ENTRYPOINT)
        raw_params = init.get("params") or []
        if not isinstance(raw_params, list):
            raise _invalid(path, f"init params of '{name}' must be a list", artifact_name=name)
        params = [_parse_param(path, name, p) for p in raw_params]

    try:
        return ArtifactSpec(
            name=name,
            binary_locator=binary_path(wasm_dir, binary),
            init_entrypoint=entrypoint,
            init_params=tuple(params),
        )
    except ValidationError as e:
        raise _invalid(path, f"artifact '{name}': {e}", artifact_name=name) from e


def load_manifest(path: Path, wasm_dir: Path) -> list[ArtifactSpec]:
    """Load an artifact catalog from a YAML manifest.

    Args:
        path: Manifest file.
        wasm_dir: Directory relative binary names are resolved against.

    Returns:
        The artifacts in manifest order.

    Raises:
        FileNotFoundError: If the manifest does not exist.
        ConfigurationError: If the manifest is malformed or names an
            artifact twice.
    """
    if not path.exists():
        raise FileNotFoundError(f"Manifest not found: {path}")

    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise _invalid(path, f"invalid YAML: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("artifacts"), list):
        raise _invalid(path, "expected a mapping with an 'artifacts' list")

    specs: list[ArtifactSpec] = []
    seen: set[str] = set()
    for raw in data["artifacts"]:
        spec = _parse_artifact(path, wasm_dir, raw)
        if spec.name in seen:
            raise _invalid(path, f"duplicate artifact '{spec.name}'", artifact_name=spec.name)
        seen.add(spec.name)
        specs.append(spec)

    logger.info("manifest_loaded", path=str(path), artifacts=len(specs))
    return specs


def load_catalog(wasm_dir: Path, manifest: Optional[Path] = None) -> list[ArtifactSpec]:
    """The manifest's catalog when one is given, else the built-in one."""
    if manifest is not None:
        return load_manifest(manifest, wasm_dir)
    return default_catalog(wasm_dir)
