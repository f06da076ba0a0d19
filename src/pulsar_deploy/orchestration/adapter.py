"""
pulsar_deploy.orchestration.adapter - Execution Client Adapter
================================================================

This module implements the Execution Client Adapter: the one place where a
remote call's outcome is classified. Planners never see an exception from
an execution client; they get a CallResult.

Architecture Context:
    ┌──────────────────────┐  deploy/invoke  ┌─────────────────────────┐
    │  DeploymentPlanner    │ ─────────────→ │  ExecutionClientAdapter  │
    │  InitializationPlanner│ ←───────────── │   timeout + classify     │
    └──────────────────────┘   CallResult    └────────────┬────────────┘
                                                          │
                                                          v
                                              ┌──────────────────────┐
                                              │  BaseExecutionClient  │
                                              │  (stellar CLI, mock)  │
                                              └──────────────────────┘

Classification:
    returned normally               → SUCCESS
    RemoteRejectedError             → REMOTE_REJECTED (benign if the payload
                                      matches an "already initialized" pattern)
    TransportFailureError           → TRANSPORT_FAILURE
    asyncio.TimeoutError / OSError  → TRANSPORT_FAILURE

    Any other exception is a bug in the client and propagates.

Retry Policy:
    None inside a run. CallResult.retryable tells a wrapping caller which
    failures are worth another attempt (transport failures only).
"""

from __future__ import annotations

import asyncio
import re
from typing import Iterable, Optional, Sequence

import structlog
from pydantic import BaseModel

from pulsar_deploy.core.config import DEFAULT_BENIGN_REJECTION_PATTERNS
from pulsar_deploy.core.enums import CallStatus
from pulsar_deploy.core.exceptions import RemoteRejectedError, TransportFailureError
from pulsar_deploy.core.models import InvokeArg
from pulsar_deploy.integrations.execution.base import BaseExecutionClient


logger = structlog.get_logger()

DEFAULT_CALL_TIMEOUT_SECONDS = 120.0

# Added to a client's own call timeout when deriving the adapter's, so the
# client times out (and reaps its subprocess) first
CLIENT_TIMEOUT_MARGIN_SECONDS = 10.0


class CallResult(BaseModel):
    """Classified outcome of one remote call.

    Attributes:
        status: SUCCESS, REMOTE_REJECTED or TRANSPORT_FAILURE.
        address: The new contract address (successful deploys only).
        message: Failure payload, empty on success.
        benign: The rejection means "already initialized".
    """

    status: CallStatus
    address: Optional[str] = None
    message: str = ""
    benign: bool = False

    @property
    def ok(self) -> bool:
        return self.status == CallStatus.SUCCESS

    @property
    def retryable(self) -> bool:
        return self.status == CallStatus.TRANSPORT_FAILURE


class ExecutionClientAdapter:
    """Wraps a BaseExecutionClient with a timeout and outcome classification.

    Args:
        client: The execution client to call.
        timeout_seconds: Upper bound for one call.
        benign_patterns: Regexes (case-insensitive) that mark a rejection
            payload as an "already initialized" rejection.

    Example:
        >>> adapter = ExecutionClientAdapter(MockExecutionClient())
        >>> result = await adapter.deploy("pulsar_ad_registry.wasm", "me", "testnet")
        >>> result.status
        <CallStatus.SUCCESS: 'success'>
    """

    def __init__(
        self,
        client: BaseExecutionClient,
        timeout_seconds: float = DEFAULT_CALL_TIMEOUT_SECONDS,
        benign_patterns: Optional[Iterable[str]] = None,
    ) -> None:
        self._client = client
        self._timeout = timeout_seconds
        patterns = (
            DEFAULT_BENIGN_REJECTION_PATTERNS if benign_patterns is None else benign_patterns
        )
        self._benign = [re.compile(p, re.IGNORECASE) for p in patterns]
        self._logger = logger.bind(component="execution_adapter", backend=client.backend_name)

    @property
    def client(self) -> BaseExecutionClient:
        return self._client

    @property
    def timeout_seconds(self) -> float:
        return self._timeout

    def is_benign(self, message: str) -> bool:
        """Whether a rejection payload means the call's effect already exists."""
        return any(p.search(message) for p in self._benign)

    def is_benign_rejection(self, error: RemoteRejectedError) -> bool:
        """Check the message and the full payload (``details["stderr"]``) of
        a rejection; panic messages often sit outside the summary."""
        payload = error.details.get("stderr") or ""
        return self.is_benign(error.message) or self.is_benign(str(payload))

    async def deploy(self, binary_locator: str, identity: str, network: str) -> CallResult:
        """Deploy a binary and classify the outcome."""
        return await self._call(
            "deploy",
            self._client.deploy(binary_locator, identity, network),
            target=binary_locator,
        )

    async def invoke(
        self,
        address: str,
        identity: str,
        network: str,
        entrypoint: str,
        args: Sequence[InvokeArg],
    ) -> CallResult:
        """Invoke an entrypoint and classify the outcome."""
        return await self._call(
            "invoke",
            self._client.invoke(address, identity, network, entrypoint, args),
            target=address,
        )

    async def _call(self, operation: str, awaitable, target: str) -> CallResult:
        try:
            value = await asyncio.wait_for(awaitable, timeout=self._timeout)
        except RemoteRejectedError as e:
            benign = self.is_benign_rejection(e)
            self._logger.debug(
                "call_rejected",
                operation=operation,
                target=target,
                benign=benign,
                error_code=e.error_code,
            )
            return CallResult(
                status=CallStatus.REMOTE_REJECTED, message=e.message, benign=benign
            )
        except TransportFailureError as e:
            self._logger.debug(
                "call_transport_failure",
                operation=operation,
                target=target,
                error_code=e.error_code,
            )
            return CallResult(status=CallStatus.TRANSPORT_FAILURE, message=e.message)
        except asyncio.TimeoutError:
            self._logger.warning("call_timed_out", operation=operation, target=target)
            return CallResult(
                status=CallStatus.TRANSPORT_FAILURE,
                message=f"{operation} timed out after {self._timeout}s",
            )
        except OSError as e:
            self._logger.warning(
                "call_os_error", operation=operation, target=target, error=str(e)
            )
            return CallResult(status=CallStatus.TRANSPORT_FAILURE, message=str(e))

        if operation == "deploy":
            return CallResult(status=CallStatus.SUCCESS, address=value)
        return CallResult(status=CallStatus.SUCCESS)
