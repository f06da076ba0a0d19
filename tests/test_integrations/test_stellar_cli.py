"""
Tests for pulsar_deploy.integrations.execution.stellar_cli
============================================================

Command construction and failure classification. Subprocesses are replaced
by a stub of run_process; the real stellar CLI is never called.
"""

import asyncio

import pytest

from pulsar_deploy.core.config import StellarCliConfig
from pulsar_deploy.core.exceptions import (
    ExecutionError,
    RemoteRejectedError,
    TransportFailureError,
)
from pulsar_deploy.core.models import InvokeArg
from pulsar_deploy.integrations.execution import stellar_cli
from pulsar_deploy.integrations.execution.stellar_cli import (
    StellarCliClient,
    StellarIdentityProvider,
    is_transport_error,
    summarize_stderr,
)
from pulsar_deploy.integrations.process import ProcessResult


CONTRACT_ID = "C" + "A" * 55
ACCOUNT_ID = "G" + "B" * 55


def _make_result(returncode: int = 0, stdout: str = "", stderr: str = "") -> ProcessResult:
    return ProcessResult(argv=["stellar"], returncode=returncode, stdout=stdout, stderr=stderr)


def _stub_process(monkeypatch, *results):
    """Replace run_process with a stub returning ``results`` in order.

    Returns the list the stub records every argv into.
    """
    calls: list[list[str]] = []
    queue = list(results)

    async def fake_run_process(argv, *, timeout, cwd=None):
        calls.append(list(argv))
        outcome = queue.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    monkeypatch.setattr(stellar_cli, "run_process", fake_run_process)
    return calls


@pytest.fixture
def wasm(tmp_path):
    path = tmp_path / "pulsar_ad_registry.wasm"
    path.write_bytes(b"\0asm")
    return path


# =============================================================================
# Test: stderr helpers
# =============================================================================
class TestStderrClassification:
    @pytest.mark.parametrize(
        "stderr",
        [
            "error: error sending request for url (https://soroban-testnet.stellar.org/)",
            "Error: tcp connect error: Connection refused (os error 111)",
            "error: dns error: failed to lookup address information",
            "error: request timed out",
            "error: 503 Service Unavailable",
            "❌ error: error sending request for url (https://soroban-testnet.stellar.org/)",
        ],
    )
    def test_transport_errors(self, stderr) -> None:
        assert is_transport_error(stderr) is True

    @pytest.mark.parametrize(
        "stderr",
        [
            "error: HostError: Error(WasmVm, InvalidAction)\n panicked: already initialized",
            "error: transaction simulation failed: insufficient balance",
            "error: Contract, #3",
            "error: HostError: Error(Contract, #7)\n panicked: auction timeout exceeded",
            "❌ error: transaction simulation failed: HostError: Error(WasmVm, InvalidAction)\n"
            "   1: [Diagnostic Event] topics:[log], data:[\"caught panic 'timeout'\"]",
        ],
    )
    def test_rejections(self, stderr) -> None:
        assert is_transport_error(stderr) is False

    def test_summarize_prefers_error_lines(self) -> None:
        stderr = "ℹ️ Simulating\nerror: boom\nextra detail\n"
        assert summarize_stderr(stderr) == "error: boom"

    def test_summarize_recognises_prefixed_error_lines(self) -> None:
        stderr = "ℹ️ Simulating\n❌ error: boom\n   0: [Diagnostic Event] topics:[fn_call]\n"
        assert summarize_stderr(stderr) == "❌ error: boom"

    def test_summarize_falls_back_to_last_line(self) -> None:
        assert summarize_stderr("first\nlast\n") == "last"
        assert summarize_stderr("") == "no error output"


# =============================================================================
# Test: StellarCliClient
# =============================================================================
class TestStellarCliClient:
    def test_deploy_argv(self) -> None:
        client = StellarCliClient(StellarCliConfig(binary="stellar"))
        assert client.deploy_argv("x.wasm", "me", "testnet") == [
            "stellar", "contract", "deploy",
            "--wasm", "x.wasm",
            "--source", "me",
            "--network", "testnet",
        ]

    def test_invoke_argv(self) -> None:
        client = StellarCliClient(StellarCliConfig(binary="/opt/stellar"))
        argv = client.invoke_argv(
            CONTRACT_ID,
            "me",
            "mainnet",
            "initialize",
            [InvokeArg(name="admin", value=ACCOUNT_ID), InvokeArg(name="token", value="CTOK")],
        )
        assert argv == [
            "/opt/stellar", "contract", "invoke",
            "--id", CONTRACT_ID,
            "--source", "me",
            "--network", "mainnet",
            "--", "initialize",
            "--admin", ACCOUNT_ID,
            "--token", "CTOK",
        ]

    async def test_deploy_parses_contract_id(self, monkeypatch, wasm) -> None:
        calls = _stub_process(monkeypatch, _make_result(stdout=f"Deploying...\n{CONTRACT_ID}\n"))
        client = StellarCliClient(StellarCliConfig())

        address = await client.deploy(str(wasm), "me", "testnet")

        assert address == CONTRACT_ID
        assert calls[0][:3] == ["stellar", "contract", "deploy"]

    async def test_deploy_missing_binary_is_rejected(self, monkeypatch, tmp_path) -> None:
        calls = _stub_process(monkeypatch)
        client = StellarCliClient(StellarCliConfig())

        with pytest.raises(RemoteRejectedError) as exc_info:
            await client.deploy(str(tmp_path / "missing.wasm"), "me", "testnet")
        assert exc_info.value.error_code == "BINARY_NOT_FOUND"
        assert calls == []

    async def test_deploy_unparsable_output(self, monkeypatch, wasm) -> None:
        _stub_process(monkeypatch, _make_result(stdout="something unexpected\n"))
        with pytest.raises(TransportFailureError) as exc_info:
            await StellarCliClient(StellarCliConfig()).deploy(str(wasm), "me", "testnet")
        assert exc_info.value.error_code == "UNPARSABLE_RESPONSE"

    async def test_invoke_rejection_keeps_payload(self, monkeypatch) -> None:
        _stub_process(
            monkeypatch,
            _make_result(returncode=1, stderr="error: HostError: panicked: already initialized\n"),
        )
        with pytest.raises(RemoteRejectedError) as exc_info:
            await StellarCliClient(StellarCliConfig()).invoke(
                CONTRACT_ID, "me", "testnet", "initialize", []
            )
        assert "already initialized" in exc_info.value.message

    async def test_rejection_details_keep_full_stderr(self, monkeypatch) -> None:
        stderr = (
            "❌ error: HostError: Error(WasmVm, InvalidAction)\n"
            "Event log (newest first):\n"
            "   1: [Diagnostic Event] topics:[log], data:[\"caught panic 'already initialized'\"]\n"
        )
        _stub_process(monkeypatch, _make_result(returncode=1, stderr=stderr))

        with pytest.raises(RemoteRejectedError) as exc_info:
            await StellarCliClient(StellarCliConfig()).invoke(
                CONTRACT_ID, "me", "testnet", "initialize", []
            )
        assert exc_info.value.message == "❌ error: HostError: Error(WasmVm, InvalidAction)"
        assert exc_info.value.details["stderr"] == stderr

    async def test_invoke_transport_failure(self, monkeypatch) -> None:
        _stub_process(
            monkeypatch,
            _make_result(returncode=1, stderr="error: error sending request for url\n"),
        )
        with pytest.raises(TransportFailureError):
            await StellarCliClient(StellarCliConfig()).invoke(
                CONTRACT_ID, "me", "testnet", "initialize", []
            )

    async def test_cli_not_installed(self, monkeypatch) -> None:
        _stub_process(monkeypatch, FileNotFoundError("stellar"))
        with pytest.raises(TransportFailureError) as exc_info:
            await StellarCliClient(StellarCliConfig()).invoke(
                CONTRACT_ID, "me", "testnet", "initialize", []
            )
        assert exc_info.value.error_code == "CLI_NOT_FOUND"

    async def test_subprocess_timeout(self, monkeypatch) -> None:
        _stub_process(monkeypatch, asyncio.TimeoutError())
        with pytest.raises(TransportFailureError) as exc_info:
            await StellarCliClient(StellarCliConfig()).invoke(
                CONTRACT_ID, "me", "testnet", "initialize", []
            )
        assert exc_info.value.error_code == "CALL_TIMEOUT"


# =============================================================================
# Test: StellarIdentityProvider
# =============================================================================
class TestStellarIdentityProvider:
    async def test_existing_identity(self, monkeypatch) -> None:
        calls = _stub_process(monkeypatch, _make_result(stdout=f"{ACCOUNT_ID}\n"))
        provider = StellarIdentityProvider(StellarCliConfig(), "testnet")

        assert await provider.resolve_address("deployer") == ACCOUNT_ID
        assert calls == [["stellar", "keys", "address", "deployer"]]

    async def test_missing_identity_is_generated(self, monkeypatch) -> None:
        calls = _stub_process(
            monkeypatch,
            _make_result(returncode=1, stderr="error: identity not found"),
            _make_result(),
            _make_result(stdout=f"{ACCOUNT_ID}\n"),
        )
        provider = StellarIdentityProvider(StellarCliConfig(), "testnet")

        assert await provider.resolve_address("deployer") == ACCOUNT_ID
        assert calls[1] == ["stellar", "keys", "generate", "--network", "testnet", "deployer"]

    async def test_generation_failure(self, monkeypatch) -> None:
        _stub_process(
            monkeypatch,
            _make_result(returncode=1, stderr="error: identity not found"),
            _make_result(returncode=1, stderr="error: cannot write key"),
        )
        provider = StellarIdentityProvider(StellarCliConfig(), "testnet")

        with pytest.raises(ExecutionError) as exc_info:
            await provider.resolve_address("deployer")
        assert exc_info.value.error_code == "IDENTITY_UNAVAILABLE"
