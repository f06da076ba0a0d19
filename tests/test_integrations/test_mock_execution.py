"""
Tests for pulsar_deploy.integrations.execution.mock and factory
=================================================================
"""

import pytest

from pulsar_deploy.core.config import DeployConfig
from pulsar_deploy.core.exceptions import (
    ConfigurationError,
    RemoteRejectedError,
    TransportFailureError,
)
from pulsar_deploy.core.models import InvokeArg
from pulsar_deploy.integrations.execution import (
    MockExecutionClient,
    MockIdentityProvider,
    StellarCliClient,
    StellarIdentityProvider,
    create_execution_client,
    create_identity_provider,
)
from pulsar_deploy.integrations.execution.stellar_cli import ACCOUNT_ID_RE, CONTRACT_ID_RE


class TestMockExecutionClient:
    async def test_deploy_returns_contract_shaped_address(self) -> None:
        client = MockExecutionClient()
        address = await client.deploy("a.wasm", "me", "testnet")
        assert CONTRACT_ID_RE.match(address)
        assert client.deploy_count("a.wasm") == 1
        assert client.deploy_calls[0].address == address

    async def test_addresses_are_deterministic(self) -> None:
        first = await MockExecutionClient().deploy("a.wasm", "me", "testnet")
        second = await MockExecutionClient().deploy("a.wasm", "me", "testnet")
        assert first == second

    async def test_each_deploy_gets_a_new_address(self) -> None:
        client = MockExecutionClient()
        first = await client.deploy("a.wasm", "me", "testnet")
        second = await client.deploy("a.wasm", "me", "testnet")
        assert first != second

    async def test_second_initialize_is_rejected(self) -> None:
        client = MockExecutionClient()
        address = await client.deploy("a.wasm", "me", "testnet")
        await client.invoke(address, "me", "testnet", "initialize", [])

        with pytest.raises(RemoteRejectedError) as exc_info:
            await client.invoke(address, "me", "testnet", "initialize", [])
        assert "already initialized" in exc_info.value.message

    async def test_invoke_records_args(self) -> None:
        client = MockExecutionClient()
        args = [InvokeArg(name="admin", value="GADMIN")]
        await client.invoke("CADDR", "me", "testnet", "initialize", args)
        assert client.invokes_on("CADDR")[0].args == args

    async def test_injected_failures_are_consumed_once(self) -> None:
        client = MockExecutionClient()
        client.fail_deploy(
            "a.wasm", TransportFailureError(message="connection refused", operation="deploy")
        )

        with pytest.raises(TransportFailureError):
            await client.deploy("a.wasm", "me", "testnet")
        assert await client.deploy("a.wasm", "me", "testnet")


class TestMockIdentityProvider:
    async def test_fixed_and_generated_addresses(self) -> None:
        provider = MockIdentityProvider({"deployer": "GFIXED"})
        assert await provider.resolve_address("deployer") == "GFIXED"

        generated = await provider.resolve_address("other")
        assert ACCOUNT_ID_RE.match(generated)
        assert await provider.resolve_address("other") == generated
        assert provider.resolve_calls == ["deployer", "other", "other"]


class TestFactory:
    def test_stellar_backend(self) -> None:
        config = DeployConfig(execution_backend="stellar")
        assert isinstance(create_execution_client(config), StellarCliClient)
        assert isinstance(create_identity_provider(config), StellarIdentityProvider)

    def test_mock_backend(self) -> None:
        config = DeployConfig(execution_backend="mock")
        assert isinstance(create_execution_client(config), MockExecutionClient)
        assert isinstance(create_identity_provider(config), MockIdentityProvider)

    def test_unknown_backend(self) -> None:
        config = DeployConfig().model_copy(update={"execution_backend": "horizon"})
        with pytest.raises(ConfigurationError):
            create_execution_client(config)
