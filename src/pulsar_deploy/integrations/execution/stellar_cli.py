"""
pulsar_deploy.integrations.execution.stellar_cli - stellar CLI Collaborators
==============================================================================

Execution client and identity provider backed by the `stellar` command line
tool. Every call is one subprocess:

    deploy   → stellar contract deploy --wasm <path> --source <id> --network <net>
    invoke   → stellar contract invoke --id <addr> --source <id> --network <net>
                   -- <entrypoint> --<arg> <value> ...
    identity → stellar keys address <id>
               (stellar keys generate --network <net> <id> when missing)

Failure Classification:
    A non-zero exit is inspected through its stderr payload:

        an error line reports connection / DNS / timeout problems → TransportFailureError
        anything else (contract panic, auth, fees, ...)            → RemoteRejectedError

    Error lines reporting a host error (HostError, panics) never count as
    transport problems.

    A deploy that exits 0 without printing a contract id is a transport
    failure too: the response could not be parsed.

    The rejection message is the CLI's error lines; the complete stderr
    (including the diagnostic event log, where panic messages such as
    "already initialized" appear) travels in details["stderr"].
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import Sequence

import structlog

from pulsar_deploy.core.config import StellarCliConfig
from pulsar_deploy.core.exceptions import (
    ExecutionError,
    RemoteRejectedError,
    TransportFailureError,
)
from pulsar_deploy.core.models import InvokeArg
from pulsar_deploy.integrations.execution.base import (
    BaseExecutionClient,
    BaseIdentityProvider,
)
from pulsar_deploy.integrations.process import ProcessResult, run_process


logger = structlog.get_logger()


CONTRACT_ID_RE = re.compile(r"^C[A-Z2-7]{55}$")
ACCOUNT_ID_RE = re.compile(r"^G[A-Z2-7]{55}$")

# The CLI's own error report, e.g. "error: ..." or "❌ error: ..."
ERROR_LINE_RE = re.compile(r"^\W*error\b", re.IGNORECASE)

# Error lines raised by the contract host, never by the transport
HOST_ERROR_RE = re.compile(r"HostError|panicked|caught panic", re.IGNORECASE)

# Error-line fragments that mean the network was never reached
TRANSPORT_ERROR_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"error sending request",
        r"connection (refused|reset|closed)",
        r"tcp connect error",
        r"dns error",
        r"failed to lookup address",
        r"network is unreachable",
        r"\btimed out\b|\btimeout\b",
        r"networking or low-level protocol error",
        r"bad gateway|service unavailable|gateway timeout",
        r"too many requests",
    )
)

MAX_STDERR_DETAIL = 4000


def error_lines(stderr: str) -> list[str]:
    """The lines of ``stderr`` that belong to the CLI's error report."""
    return [
        line.strip() for line in stderr.splitlines() if ERROR_LINE_RE.match(line.strip())
    ]


def is_transport_error(stderr: str) -> bool:
    """Whether a CLI error payload describes a transport-level failure.

    Only the CLI's error lines are inspected, and lines reporting a host
    error are skipped: a contract panic that mentions a timeout is still a
    rejection. Without any error line the whole payload is inspected.
    """
    lines = error_lines(stderr) or [line.strip() for line in stderr.splitlines()]
    return any(
        p.search(line)
        for line in lines
        if not HOST_ERROR_RE.search(line)
        for p in TRANSPORT_ERROR_PATTERNS
    )


def summarize_stderr(stderr: str) -> str:
    """Condense CLI stderr into a one-line message.

    Prefers the CLI's error lines; falls back to the last non-empty line.
    The full payload travels in the error's ``details["stderr"]``.
    """
    lines = [line.strip() for line in stderr.splitlines() if line.strip()]
    if not lines:
        return "no error output"
    errors = error_lines(stderr)
    return " | ".join(errors) if errors else lines[-1]


class StellarCliClient(BaseExecutionClient):
    """Execution client that shells out to the `stellar` CLI.

    Attributes:
        _config: Binary name and per-call timeout.

    Example:
        >>> client = StellarCliClient(StellarCliConfig())
        >>> address = await client.deploy(
        ...     "target/wasm32-unknown-unknown/release/pulsar_ad_registry.wasm",
        ...     "pulsartrack-deployer",
        ...     "testnet",
        ... )
    """

    def __init__(self, config: StellarCliConfig) -> None:
        self._config = config
        self._logger = logger.bind(component="stellar_cli_client")

    @property
    def backend_name(self) -> str:
        return "stellar"

    # =========================================================================
    # Command construction
    # =========================================================================

    def deploy_argv(self, binary_locator: str, identity: str, network: str) -> list[str]:
        return [
            self._config.binary, "contract", "deploy",
            "--wasm", binary_locator,
            "--source", identity,
            "--network", network,
        ]

    def invoke_argv(
        self,
        address: str,
        identity: str,
        network: str,
        entrypoint: str,
        args: Sequence[InvokeArg],
    ) -> list[str]:
        argv = [
            self._config.binary, "contract", "invoke",
            "--id", address,
            "--source", identity,
            "--network", network,
            "--", entrypoint,
        ]
        for arg in args:
            argv.extend([f"--{arg.name}", arg.value])
        return argv

    # =========================================================================
    # BaseExecutionClient implementation
    # =========================================================================

    async def deploy(self, binary_locator: str, identity: str, network: str) -> str:
        if not Path(binary_locator).is_file():
            raise RemoteRejectedError(
                message=f"WASM not found: {binary_locator}",
                operation="deploy",
                error_code="BINARY_NOT_FOUND",
                details={"binary_locator": binary_locator},
            )

        result = await self._run(self.deploy_argv(binary_locator, identity, network), "deploy")
        self._raise_for_failure(result, "deploy")

        lines = [line.strip() for line in result.stdout.splitlines() if line.strip()]
        address = lines[-1] if lines else ""
        if not CONTRACT_ID_RE.match(address):
            raise TransportFailureError(
                message="Deploy succeeded but no contract id could be parsed from the output",
                operation="deploy",
                error_code="UNPARSABLE_RESPONSE",
                details={"stdout": result.stdout[-MAX_STDERR_DETAIL:]},
            )
        return address

    async def invoke(
        self,
        address: str,
        identity: str,
        network: str,
        entrypoint: str,
        args: Sequence[InvokeArg],
    ) -> None:
        argv = self.invoke_argv(address, identity, network, entrypoint, args)
        result = await self._run(argv, "invoke")
        self._raise_for_failure(result, "invoke")

    # =========================================================================
    # Internal helpers
    # =========================================================================

    async def _run(self, argv: list[str], operation: str) -> ProcessResult:
        self._logger.debug("stellar_cli_call", operation=operation, argv=argv)
        try:
            return await run_process(argv, timeout=self._config.timeout_seconds)
        except FileNotFoundError as e:
            raise TransportFailureError(
                message=f"stellar CLI not found: {self._config.binary}",
                operation=operation,
                error_code="CLI_NOT_FOUND",
                details={"binary": self._config.binary},
            ) from e
        except asyncio.TimeoutError as e:
            raise TransportFailureError(
                message=f"stellar {operation} timed out after {self._config.timeout_seconds}s",
                operation=operation,
                error_code="CALL_TIMEOUT",
            ) from e

    @staticmethod
    def _raise_for_failure(result: ProcessResult, operation: str) -> None:
        if result.ok:
            return

        message = summarize_stderr(result.stderr)
        details = {
            "returncode": result.returncode,
            "stderr": result.stderr,
        }
        if is_transport_error(result.stderr):
            raise TransportFailureError(message=message, operation=operation, details=details)
        raise RemoteRejectedError(message=message, operation=operation, details=details)


class StellarIdentityProvider(BaseIdentityProvider):
    """Identity provider backed by `stellar keys`.

    A missing identity is generated on the configured network.
    """

    def __init__(self, config: StellarCliConfig, network: str) -> None:
        self._config = config
        self._network = network
        self._logger = logger.bind(component="stellar_identity_provider")

    async def resolve_address(self, identity: str) -> str:
        result = await self._keys(["address", identity])
        if not result.ok:
            self._logger.info("identity_generating", identity=identity, network=self._network)
            generated = await self._keys(["generate", "--network", self._network, identity])
            if not generated.ok:
                raise ExecutionError(
                    message=(
                        f"Cannot generate identity {identity}: "
                        f"{summarize_stderr(generated.stderr)}"
                    ),
                    operation="keys",
                    error_code="IDENTITY_UNAVAILABLE",
                    details={"identity": identity},
                )
            result = await self._keys(["address", identity])

        address = result.stdout.strip()
        if not result.ok or not ACCOUNT_ID_RE.match(address):
            raise ExecutionError(
                message=f"Cannot resolve address of identity {identity}",
                operation="keys",
                error_code="IDENTITY_UNAVAILABLE",
                details={"identity": identity, "stderr": result.stderr[-MAX_STDERR_DETAIL:]},
            )
        return address

    async def _keys(self, args: list[str]) -> ProcessResult:
        argv = [self._config.binary, "keys", *args]
        try:
            return await run_process(argv, timeout=self._config.timeout_seconds)
        except FileNotFoundError as e:
            raise TransportFailureError(
                message=f"stellar CLI not found: {self._config.binary}",
                operation="keys",
                error_code="CLI_NOT_FOUND",
            ) from e
        except asyncio.TimeoutError as e:
            raise TransportFailureError(
                message="stellar keys timed out",
                operation="keys",
                error_code="CALL_TIMEOUT",
            ) from e
