"""
pulsar_deploy.infrastructure.state_store - Deployment State Persistence
=========================================================================

This module implements the State Store: the durable mapping from artifact name
to deployed address, keyed by network. It is the only component in
pulsar-deploy that writes to disk.

Architecture:

    ┌────────────────────┐   get / put     ┌──────────────────────────┐
    │ DeploymentPlanner   │ ─────────────→ │                          │
    └────────────────────┘                 │       StateStore         │
    ┌────────────────────┐   load_all      │                          │
    │ DeploymentPipeline  │ ─────────────→ │                          │
    └────────────────────┘                 └──────────────────────────┘
                                                      │
                               deployments/deployed-<network>.json

Document Layout (one JSON document per network):
    {
        "network": "testnet",
        "deployer": "GABC...",
        "contracts": {"ad_registry": "CABC...", ...},
        "deployed_at": {"ad_registry": "2025-01-01T00:00:00+00:00", ...}
    }

    Unknown top-level keys are preserved on every rewrite, so a wrapping tool
    can keep its own metadata in the same file.

Guarantees:
    - put() writes a complete replacement document to a temp file in the same
      directory, fsyncs it and swaps it in with os.replace(): a reader sees
      either the old or the new document, never a partial one.
    - Malformed existing data raises StoreUnavailableError. It is never
      treated as an empty store.
    - No cross-process locking. Running two deployments against the same
      network at once is a precondition violation.

Implementations:
    - StateStore (ABC):      Abstract interface
    - InMemoryStateStore:    Dict-based for dev/testing
    - JsonFileStateStore:    JSON file per network (production)
"""

from __future__ import annotations

import copy
import json
import os
import tempfile
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import structlog

from pulsar_deploy.core.exceptions import StoreUnavailableError
from pulsar_deploy.core.models import DeploymentRecord


logger = structlog.get_logger()


# =============================================================================
# Document helpers
# =============================================================================
# Both implementations store the same document shape, so the validation and
# update rules live here and are shared.
# =============================================================================
def _new_document(network: str, deployer: Optional[str]) -> dict[str, Any]:
    return {
        "network": network,
        "deployer": deployer,
        "contracts": {},
        "deployed_at": {},
    }


def _validate_document(document: Any, network: str, source: str) -> dict[str, Any]:
    """Check a loaded document and return it.

    Raises:
        StoreUnavailableError: If the document is not a well-formed record
            for ``network``.
    """
    if not isinstance(document, dict):
        raise StoreUnavailableError(
            message=f"State record {source} is not a JSON object",
            network=network,
            error_code="STORE_CORRUPT",
            details={"source": source},
        )

    recorded_network = document.get("network")
    if recorded_network is not None and recorded_network != network:
        raise StoreUnavailableError(
            message=(
                f"State record {source} belongs to network "
                f"'{recorded_network}', not '{network}'"
            ),
            network=network,
            error_code="STORE_NETWORK_MISMATCH",
            details={"source": source, "recorded_network": recorded_network},
        )

    contracts = document.get("contracts", {})
    if not isinstance(contracts, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in contracts.items()
    ):
        raise StoreUnavailableError(
            message=f"State record {source} has a malformed 'contracts' mapping",
            network=network,
            error_code="STORE_CORRUPT",
            details={"source": source},
        )

    deployed_at = document.get("deployed_at", {})
    if not isinstance(deployed_at, dict):
        raise StoreUnavailableError(
            message=f"State record {source} has a malformed 'deployed_at' mapping",
            network=network,
            error_code="STORE_CORRUPT",
            details={"source": source},
        )

    return document


def _with_address(
    document: dict[str, Any],
    name: str,
    address: str,
    deployer: Optional[str],
    deployed_at: datetime,
) -> dict[str, Any]:
    """Return a full replacement document with ``name`` set to ``address``."""
    updated = copy.deepcopy(document)
    updated.setdefault("contracts", {})[name] = address
    updated.setdefault("deployed_at", {})[name] = deployed_at.isoformat()
    if deployer and not updated.get("deployer"):
        updated["deployer"] = deployer
    return updated


def _record_from(
    document: dict[str, Any], network: str, name: str
) -> Optional[DeploymentRecord]:
    address = document.get("contracts", {}).get(name)
    if not address:
        return None

    deployed_at: Optional[datetime] = None
    raw_timestamp = document.get("deployed_at", {}).get(name)
    if isinstance(raw_timestamp, str):
        try:
            deployed_at = datetime.fromisoformat(raw_timestamp)
        except ValueError:
            deployed_at = None

    return DeploymentRecord(
        network=network,
        artifact_name=name,
        address=address,
        deployed_at=deployed_at,
    )


# =============================================================================
# Abstract Base Class: StateStore
# =============================================================================
class StateStore(ABC):
    """Abstract base class for deployment state persistence.

    Components should type-hint against this ABC.

    Example:
        >>> async def record(store: StateStore):
        ...     await store.put("testnet", "ad_registry", "CABC...")
        ...     assert await store.get("testnet", "ad_registry") == "CABC..."
    """

    @abstractmethod
    async def load_document(self, network: str) -> Optional[dict[str, Any]]:
        """Load the full record for a network.

        Returns:
            The validated document, or None if no record exists yet.

        Raises:
            StoreUnavailableError: If the record is unreadable or malformed.
        """

    @abstractmethod
    async def put(
        self,
        network: str,
        name: str,
        address: str,
        deployer: Optional[str] = None,
    ) -> None:
        """Record (or replace) the address of an artifact.

        Args:
            network: Network the artifact was deployed to.
            name: Artifact name.
            address: The deployed address.
            deployer: Deployer address, stored if the record has none yet.

        Raises:
            StoreUnavailableError: If the record cannot be read or written.
        """

    async def get(self, network: str, name: str) -> Optional[str]:
        """Address of an artifact, or None if it has no record."""
        document = await self.load_document(network)
        if document is None:
            return None
        return document.get("contracts", {}).get(name) or None

    async def get_record(self, network: str, name: str) -> Optional[DeploymentRecord]:
        """Full DeploymentRecord of an artifact, or None if it has no record."""
        document = await self.load_document(network)
        if document is None:
            return None
        return _record_from(document, network, name)

    async def load_all(self, network: str) -> dict[str, str]:
        """Mapping of artifact name → address for a network (empty if none)."""
        document = await self.load_document(network)
        if document is None:
            return {}
        return dict(document.get("contracts", {}))


# =============================================================================
# InMemoryStateStore Implementation
# =============================================================================
class InMemoryStateStore(StateStore):
    """In-memory state store for development and testing.

    Documents are deep-copied in and out so callers can never mutate the
    stored record, matching the replace-not-patch semantics of the file store.

    Example:
        >>> store = InMemoryStateStore()
        >>> await store.put("testnet", "ad_registry", "CABC...")
        >>> await store.load_all("testnet")
        {'ad_registry': 'CABC...'}
    """

    def __init__(self, documents: Optional[dict[str, dict[str, Any]]] = None) -> None:
        self._documents: dict[str, dict[str, Any]] = copy.deepcopy(documents or {})
        self._write_count = 0
        self._logger = logger.bind(component="in_memory_state_store")

    @property
    def write_count(self) -> int:
        """Number of put() calls that reached the store."""
        return self._write_count

    async def load_document(self, network: str) -> Optional[dict[str, Any]]:
        document = self._documents.get(network)
        if document is None:
            return None
        return copy.deepcopy(_validate_document(document, network, f"memory:{network}"))

    async def put(
        self,
        network: str,
        name: str,
        address: str,
        deployer: Optional[str] = None,
    ) -> None:
        current = await self.load_document(network) or _new_document(network, deployer)
        self._documents[network] = _with_address(
            current, name, address, deployer, datetime.now(timezone.utc)
        )
        self._write_count += 1
        self._logger.debug("state_record_saved", network=network, artifact=name)


# =============================================================================
# JsonFileStateStore Implementation
# =============================================================================
class JsonFileStateStore(StateStore):
    """JSON-file state store: one ``deployed-<network>.json`` per network.

    Attributes:
        state_dir: Directory holding the per-network files.
        state_file: Optional explicit file used for every network. The
            document's "network" field still guards against mixing networks.

    Example:
        >>> store = JsonFileStateStore(Path("deployments"))
        >>> await store.put("testnet", "ad_registry", "CABC...")
        >>> store.path_for("testnet")
        PosixPath('deployments/deployed-testnet.json')
    """

    def __init__(self, state_dir: Path, state_file: Optional[Path] = None) -> None:
        self._state_dir = Path(state_dir)
        self._state_file = Path(state_file) if state_file is not None else None
        self._logger = logger.bind(component="json_file_state_store")

    def path_for(self, network: str) -> Path:
        """The file backing ``network``'s record."""
        if self._state_file is not None:
            return self._state_file
        return self._state_dir / f"deployed-{network}.json"

    async def load_document(self, network: str) -> Optional[dict[str, Any]]:
        path = self.path_for(network)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StoreUnavailableError(
                message=f"Cannot read state file {path}: {e}",
                network=network,
                details={"path": str(path)},
            ) from e

        try:
            document = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StoreUnavailableError(
                message=f"State file {path} is not valid JSON: {e}",
                network=network,
                error_code="STORE_CORRUPT",
                details={"path": str(path)},
            ) from e

        return _validate_document(document, network, str(path))

    async def put(
        self,
        network: str,
        name: str,
        address: str,
        deployer: Optional[str] = None,
    ) -> None:
        current = await self.load_document(network) or _new_document(network, deployer)
        updated = _with_address(current, name, address, deployer, datetime.now(timezone.utc))

        path = self.path_for(network)
        self._atomic_write(path, json.dumps(updated, indent=2) + "\n", network)

        self._logger.debug(
            "state_record_saved",
            network=network,
            artifact=name,
            address=address,
            path=str(path),
        )

    @staticmethod
    def _atomic_write(path: Path, text: str, network: str) -> None:
        """Write ``text`` to ``path`` via temp file + fsync + os.replace."""
        tmp_path: Optional[Path] = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
            tmp_path = Path(tmp)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
            tmp_path = None
        except OSError as e:
            raise StoreUnavailableError(
                message=f"Cannot write state file {path}: {e}",
                network=network,
                error_code="STORE_WRITE_FAILED",
                details={"path": str(path)},
            ) from e
        finally:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()
