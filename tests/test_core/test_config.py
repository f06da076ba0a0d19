"""
Tests for pulsar_deploy.core.config
=====================================

Defaults, environment loading (including the STELLAR_NETWORK /
STELLAR_IDENTITY fallbacks), YAML loading and derived values.
"""

from pathlib import Path

import pytest

from pulsar_deploy.core.config import (
    NATIVE_TOKEN_ADDRESSES,
    DeployConfig,
    load_config,
)
from pulsar_deploy.core.enums import Phase
from pulsar_deploy.core.exceptions import ConfigurationError


class TestDeployConfigDefaults:
    def test_defaults(self) -> None:
        config = DeployConfig()
        assert config.network == "testnet"
        assert config.identity == "pulsartrack-deployer"
        assert config.force is False
        assert config.dry_run is False
        assert config.build is True
        assert config.execution_backend == "stellar"
        assert config.state_dir == Path("deployments")
        assert config.stellar.binary == "stellar"
        assert config.stellar.timeout_seconds == 120.0

    def test_state_path_per_network(self) -> None:
        config = DeployConfig(network="mainnet")
        assert config.state_path() == Path("deployments/deployed-mainnet.json")

    def test_state_file_override(self, tmp_path) -> None:
        config = DeployConfig(state_file=tmp_path / "custom.json")
        assert config.state_path() == tmp_path / "custom.json"


class TestTokenResolution:
    def test_network_default(self) -> None:
        assert DeployConfig(network="testnet").resolve_token_address() == (
            NATIVE_TOKEN_ADDRESSES["testnet"]
        )
        assert DeployConfig(network="mainnet").resolve_token_address() == (
            NATIVE_TOKEN_ADDRESSES["mainnet"]
        )

    def test_override_wins(self) -> None:
        config = DeployConfig(network="testnet", token_address="COVERRIDE")
        assert config.resolve_token_address() == "COVERRIDE"

    def test_unknown_network_has_no_default(self) -> None:
        assert DeployConfig(network="futurenet").resolve_token_address() is None

    def test_to_run_config(self) -> None:
        config = DeployConfig(network="mainnet", identity="ops", force=True)
        run = config.to_run_config((Phase.INIT,))
        assert run.network == "mainnet"
        assert run.identity == "ops"
        assert run.force is True
        assert run.phases == (Phase.INIT,)
        assert run.token_address == NATIVE_TOKEN_ADDRESSES["mainnet"]


class TestEnvironmentLoading:
    def test_stellar_network_env(self, monkeypatch) -> None:
        monkeypatch.setenv("STELLAR_NETWORK", "mainnet")
        monkeypatch.setenv("STELLAR_IDENTITY", "ops")
        config = DeployConfig()
        assert config.network == "mainnet"
        assert config.identity == "ops"

    def test_prefixed_env(self, monkeypatch) -> None:
        monkeypatch.setenv("PULSAR_DEPLOY_NETWORK", "futurenet")
        monkeypatch.setenv("PULSAR_DEPLOY_DRY_RUN", "true")
        config = DeployConfig()
        assert config.network == "futurenet"
        assert config.dry_run is True

    def test_nested_env(self, monkeypatch) -> None:
        monkeypatch.setenv("PULSAR_DEPLOY_STELLAR__BINARY", "/opt/stellar")
        assert DeployConfig().stellar.binary == "/opt/stellar"

    def test_explicit_argument_beats_env(self, monkeypatch) -> None:
        monkeypatch.setenv("STELLAR_NETWORK", "mainnet")
        assert DeployConfig(network="testnet").network == "testnet"


class TestLoadConfig:
    def test_without_file_uses_defaults(self) -> None:
        config = load_config()
        assert config.network == "testnet"

    def test_yaml_file(self, tmp_path) -> None:
        path = tmp_path / "deploy.yaml"
        path.write_text(
            "network: mainnet\n"
            "identity: ops\n"
            "stellar:\n"
            "  timeout_seconds: 30\n",
            encoding="utf-8",
        )
        config = load_config(str(path))
        assert config.network == "mainnet"
        assert config.identity == "ops"
        assert config.stellar.timeout_seconds == 30

    def test_auto_detects_default_file(self, tmp_path) -> None:
        # clean_env chdirs into tmp_path
        (tmp_path / "pulsar-deploy.yaml").write_text("identity: from-file\n", encoding="utf-8")
        assert load_config().identity == "from-file"

    def test_overrides_beat_yaml_and_none_is_ignored(self, tmp_path) -> None:
        path = tmp_path / "deploy.yaml"
        path.write_text("network: mainnet\nidentity: ops\n", encoding="utf-8")
        config = load_config(str(path), network="testnet", identity=None)
        assert config.network == "testnet"
        assert config.identity == "ops"

    def test_missing_explicit_file(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "nope.yaml"))

    def test_invalid_yaml(self, tmp_path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("network: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(str(path))
        assert exc_info.value.error_code == "INVALID_CONFIG_FILE"

    def test_non_mapping_yaml(self, tmp_path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_config(str(path))


class TestEnvironmentPrecedence:
    def test_prefixed_env_beats_stellar_env(self, monkeypatch) -> None:
        monkeypatch.setenv("STELLAR_NETWORK", "mainnet")
        monkeypatch.setenv("PULSAR_DEPLOY_NETWORK", "futurenet")
        assert DeployConfig().network == "futurenet"

    def test_yaml_beats_stellar_env(self, monkeypatch, tmp_path) -> None:
        monkeypatch.setenv("STELLAR_IDENTITY", "from-env")
        path = tmp_path / "deploy.yaml"
        path.write_text("identity: from-file\n", encoding="utf-8")
        assert load_config(str(path)).identity == "from-file"
