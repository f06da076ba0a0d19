"""
pulsar_deploy.integrations.execution.mock - In-Memory Execution Collaborators
===============================================================================

This module provides a mock execution client and identity provider that
simulate a Soroban network in memory. They are the backend for tests and for
`--backend mock` rehearsals.

Why a Mock Client?
    1. **No network, no keys**: tests run without the stellar CLI.
    2. **Deterministic addresses**: the n-th deploy always yields the same id.
    3. **Realistic re-runs**: a contract rejects a second initialize() with
       "already initialized", exactly like the real contracts do.
    4. **Failure injection**: tests can make any deploy/invoke fail with a
       remote rejection or a transport failure.
    5. **Call tracking**: every call is recorded for assertions.

Usage:
    >>> client = MockExecutionClient()
    >>> client.fail_deploy("pulsar_escrow_vault.wasm", TransportFailureError(
    ...     message="connection refused", operation="deploy"))
    >>> address = await client.deploy("pulsar_ad_registry.wasm", "me", "testnet")
    >>> await client.invoke(address, "me", "testnet", "initialize", [])
    >>> client.invoke_calls[0].entrypoint
    'initialize'
"""

from __future__ import annotations

import base64
import hashlib
from typing import Optional, Sequence

import structlog
from pydantic import BaseModel, Field

from pulsar_deploy.core.exceptions import ExecutionError, RemoteRejectedError
from pulsar_deploy.core.models import InvokeArg
from pulsar_deploy.integrations.execution.base import (
    BaseExecutionClient,
    BaseIdentityProvider,
)


logger = structlog.get_logger()


def _strkey(prefix: str, seed: str) -> str:
    """Build a 56-character, strkey-shaped id from a seed (not checksummed)."""
    digest = hashlib.sha512(seed.encode("utf-8")).digest()[:35]
    encoded = base64.b32encode(digest).decode("ascii")
    return prefix + encoded[:55]


class DeployCall(BaseModel):
    """One recorded deploy() call."""

    binary_locator: str
    identity: str
    network: str
    address: Optional[str] = None


class InvokeCall(BaseModel):
    """One recorded invoke() call."""

    address: str
    identity: str
    network: str
    entrypoint: str
    args: list[InvokeArg] = Field(default_factory=list)


class MockExecutionClient(BaseExecutionClient):
    """In-memory execution client for testing and rehearsals.

    Attributes:
        deploy_calls: Every deploy() call, in order.
        invoke_calls: Every invoke() call, in order.
        initialized: Addresses whose init entrypoint already succeeded.
    """

    def __init__(self, *, address_seed: str = "mock") -> None:
        self._address_seed = address_seed
        self._deploy_counter = 0
        self.deploy_calls: list[DeployCall] = []
        self.invoke_calls: list[InvokeCall] = []
        self.initialized: set[str] = set()

        # Errors raised on the next matching call (consumed once)
        self._deploy_failures: dict[str, list[ExecutionError]] = {}
        self._invoke_failures: dict[str, list[ExecutionError]] = {}

        self._logger = logger.bind(component="mock_execution_client")

    @property
    def backend_name(self) -> str:
        return "mock"

    # =========================================================================
    # Failure injection
    # =========================================================================

    def fail_deploy(self, binary_locator: str, error: ExecutionError) -> None:
        """Make the next deploy of ``binary_locator`` raise ``error``."""
        self._deploy_failures.setdefault(binary_locator, []).append(error)

    def fail_invoke(self, address: str, error: ExecutionError) -> None:
        """Make the next invoke on ``address`` raise ``error``."""
        self._invoke_failures.setdefault(address, []).append(error)

    # =========================================================================
    # Call tracking helpers
    # =========================================================================

    def deploy_count(self, binary_locator: str) -> int:
        return sum(1 for c in self.deploy_calls if c.binary_locator == binary_locator)

    def invokes_on(self, address: str) -> list[InvokeCall]:
        return [c for c in self.invoke_calls if c.address == address]

    def mark_initialized(self, address: str) -> None:
        """Pretend ``address`` was initialized by an earlier run."""
        self.initialized.add(address)

    # =========================================================================
    # BaseExecutionClient implementation
    # =========================================================================

    async def deploy(self, binary_locator: str, identity: str, network: str) -> str:
        call = DeployCall(binary_locator=binary_locator, identity=identity, network=network)
        self.deploy_calls.append(call)

        queued = self._deploy_failures.get(binary_locator)
        if queued:
            raise queued.pop(0)

        self._deploy_counter += 1
        address = _strkey(
            "C", f"{self._address_seed}:{network}:{binary_locator}:{self._deploy_counter}"
        )
        call.address = address
        self._logger.debug("mock_deploy", binary_locator=binary_locator, address=address)
        return address

    async def invoke(
        self,
        address: str,
        identity: str,
        network: str,
        entrypoint: str,
        args: Sequence[InvokeArg],
    ) -> None:
        self.invoke_calls.append(
            InvokeCall(
                address=address,
                identity=identity,
                network=network,
                entrypoint=entrypoint,
                args=list(args),
            )
        )

        queued = self._invoke_failures.get(address)
        if queued:
            raise queued.pop(0)

        if entrypoint == "initialize":
            if address in self.initialized:
                raise RemoteRejectedError(
                    message="HostError: Error(WasmVm, InvalidAction): panicked: already initialized",
                    operation="invoke",
                    details={"address": address},
                )
            self.initialized.add(address)

        self._logger.debug("mock_invoke", address=address, entrypoint=entrypoint)


class MockIdentityProvider(BaseIdentityProvider):
    """Identity provider returning deterministic addresses.

    Args:
        addresses: Fixed identity → address mapping. Unknown identities get
            a generated address ("created if absent").
    """

    def __init__(self, addresses: Optional[dict[str, str]] = None) -> None:
        self._addresses = dict(addresses or {})
        self.resolve_calls: list[str] = []

    async def resolve_address(self, identity: str) -> str:
        self.resolve_calls.append(identity)
        if identity not in self._addresses:
            self._addresses[identity] = _strkey("G", f"identity:{identity}")
        return self._addresses[identity]
