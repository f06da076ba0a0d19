"""
Shared Test Fixtures for pulsar-deploy
========================================

Fixtures are organized by layer:

    1. Environment isolation
    2. Configuration
    3. Infrastructure (StateStore)
    4. Integrations (mock execution collaborators)
    5. Orchestration (adapter)
"""

from __future__ import annotations

import os

import pytest

from pulsar_deploy.core.config import DeployConfig
from pulsar_deploy.core.models import RunConfig
from pulsar_deploy.infrastructure.state_store import InMemoryStateStore
from pulsar_deploy.integrations.execution.mock import (
    MockExecutionClient,
    MockIdentityProvider,
)
from pulsar_deploy.orchestration.adapter import ExecutionClientAdapter


ADMIN_ADDRESS = "GADMIN" + "A" * 50
TOKEN_ADDRESS = "CTOKEN" + "A" * 50


# =============================================================================
# Environment isolation
# =============================================================================

@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Strip settings env vars and run from an empty directory, so neither the
    developer's shell nor a pulsar-deploy.yaml leaks into a test."""
    for key in list(os.environ):
        if key.upper().startswith("PULSAR_DEPLOY_") or key.upper() in (
            "STELLAR_NETWORK",
            "STELLAR_IDENTITY",
        ):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


# =============================================================================
# Configuration
# =============================================================================

@pytest.fixture
def run_config():
    """RunConfig for a full testnet run signed by 'deployer'."""
    return RunConfig(network="testnet", identity="deployer", token_address=TOKEN_ADDRESS)


@pytest.fixture
def deploy_config(tmp_path):
    """DeployConfig using the mock backend and a temp state directory."""
    return DeployConfig(
        network="testnet",
        identity="deployer",
        state_dir=tmp_path / "deployments",
        wasm_dir=tmp_path / "wasm",
        execution_backend="mock",
        build=False,
    )


# =============================================================================
# Infrastructure
# =============================================================================

@pytest.fixture
def store():
    """Fresh InMemoryStateStore."""
    return InMemoryStateStore()


# =============================================================================
# Integrations
# =============================================================================

@pytest.fixture
def client():
    """Fresh MockExecutionClient."""
    return MockExecutionClient()


@pytest.fixture
def identity_provider():
    """MockIdentityProvider resolving 'deployer' to ADMIN_ADDRESS."""
    return MockIdentityProvider({"deployer": ADMIN_ADDRESS})


# =============================================================================
# Orchestration
# =============================================================================

@pytest.fixture
def adapter(client):
    """ExecutionClientAdapter around the mock client."""
    return ExecutionClientAdapter(client, timeout_seconds=5.0)
