"""
Tests for the deploy and init phase planners
==============================================

    DeploymentPlanner:     skip / dry run / deploy / failure per artifact
    ParameterResolver:     literal, admin, token and artifact parameters
    InitializationPlanner: skip reasons, benign rejections, failures
"""

import pytest

from pulsar_deploy.core.enums import DeploymentStatus, Outcome, Phase
from pulsar_deploy.core.exceptions import (
    ConfigurationError,
    RemoteRejectedError,
    StoreUnavailableError,
    TransportFailureError,
    UnresolvedDependencyError,
)
from pulsar_deploy.core.models import ArtifactSpec, InitParam, RunConfig, RunReport
from pulsar_deploy.core.state import DeploymentState
from pulsar_deploy.infrastructure.state_store import InMemoryStateStore
from pulsar_deploy.orchestration.deployment_planner import DeploymentPlanner
from pulsar_deploy.orchestration.initialization_planner import (
    InitializationPlanner,
    ParameterResolver,
)


ADMIN = "G" + "A" * 55
TOKEN = "C" + "T" * 55


def _make_spec(name: str, *params: InitParam, init: bool = True) -> ArtifactSpec:
    return ArtifactSpec(
        name=name,
        binary_locator=f"{name}.wasm",
        init_entrypoint="initialize" if init else None,
        init_params=params,
    )


def _make_run(**overrides) -> RunConfig:
    values = {"network": "testnet", "identity": "deployer", "token_address": TOKEN}
    values.update(overrides)
    return RunConfig(**values)


# =============================================================================
# Test: DeploymentPlanner
# =============================================================================
class TestDeploymentPlanner:
    async def test_deploys_and_persists(self, store, adapter, client) -> None:
        specs = [_make_spec("a"), _make_spec("b")]
        state = DeploymentState(["a", "b"])
        planner = DeploymentPlanner(store, adapter, _make_run(), deployer_address=ADMIN)

        report = await planner.execute(specs, state, RunReport(network="testnet"))

        assert [e.outcome for e in report.entries] == [Outcome.OK, Outcome.OK]
        recorded = await store.load_all("testnet")
        assert recorded["a"] == state.address_of("a")
        assert recorded["b"] == state.address_of("b")
        assert (await store.load_document("testnet"))["deployer"] == ADMIN
        assert [c.binary_locator for c in client.deploy_calls] == ["a.wasm", "b.wasm"]

    async def test_skips_recorded_artifacts(self, adapter, client) -> None:
        store = InMemoryStateStore({"testnet": {"contracts": {"a": "CREC"}}})
        state = DeploymentState.from_records(["a"], {"a": "CREC"})
        planner = DeploymentPlanner(store, adapter, _make_run())

        report = await planner.execute([_make_spec("a")], state, RunReport(network="testnet"))

        assert report.entries[0].outcome == Outcome.SKIPPED
        assert client.deploy_calls == []
        assert state.address_of("a") == "CREC"

    async def test_force_redeploys(self, adapter, client) -> None:
        store = InMemoryStateStore({"testnet": {"contracts": {"a": "COLD"}}})
        state = DeploymentState.from_records(["a"], {"a": "COLD"})
        planner = DeploymentPlanner(store, adapter, _make_run(force=True))

        report = await planner.execute([_make_spec("a")], state, RunReport(network="testnet"))

        assert report.entries[0].outcome == Outcome.OK
        assert client.deploy_count("a.wasm") == 1
        assert await store.get("testnet", "a") == state.address_of("a") != "COLD"

    async def test_dry_run_uses_placeholder(self, store, adapter, client) -> None:
        state = DeploymentState(["a"])
        planner = DeploymentPlanner(store, adapter, _make_run(dry_run=True))

        report = await planner.execute([_make_spec("a")], state, RunReport(network="testnet"))

        assert report.entries[0].outcome == Outcome.OK
        assert state.address_of("a") == "dry-run:a"
        assert client.deploy_calls == []
        assert store.write_count == 0

    async def test_failure_continues_with_next(self, store, adapter, client) -> None:
        client.fail_deploy(
            "a.wasm", RemoteRejectedError(message="insufficient balance", operation="deploy")
        )
        state = DeploymentState(["a", "b"])
        planner = DeploymentPlanner(store, adapter, _make_run())

        report = await planner.execute(
            [_make_spec("a"), _make_spec("b")], state, RunReport(network="testnet")
        )

        assert report.outcome_of("a", Phase.DEPLOY) == Outcome.FAILED
        assert report.outcome_of("b", Phase.DEPLOY) == Outcome.OK
        assert state.status_of("a") == DeploymentStatus.FAILED
        assert "insufficient balance" in state.get("a").reason
        assert await store.get("testnet", "a") is None

    async def test_store_failure_aborts(self, adapter) -> None:
        store = InMemoryStateStore({"testnet": "not a document"})
        planner = DeploymentPlanner(store, adapter, _make_run())
        with pytest.raises(StoreUnavailableError):
            await planner.execute(
                [_make_spec("a")], DeploymentState(["a"]), RunReport(network="testnet")
            )


# =============================================================================
# Test: ParameterResolver
# =============================================================================
class TestParameterResolver:
    def test_resolves_every_kind(self) -> None:
        state = DeploymentState.from_records(["reg", "x"], {"reg": "CREG"})
        spec = _make_spec(
            "x",
            InitParam.admin(),
            InitParam.token(),
            InitParam.artifact("registry", "reg"),
            InitParam.literal("fee_bps", "250"),
            InitParam(name="oracle", kind="admin"),
        )
        args = ParameterResolver(state, ADMIN, TOKEN).resolve(spec)
        assert [(a.name, a.value) for a in args] == [
            ("admin", ADMIN),
            ("token", TOKEN),
            ("registry", "CREG"),
            ("fee_bps", "250"),
            ("oracle", ADMIN),
        ]

    def test_undeployed_reference(self) -> None:
        state = DeploymentState(["reg", "x"])
        spec = _make_spec("x", InitParam.artifact("registry", "reg"))
        with pytest.raises(UnresolvedDependencyError) as exc_info:
            ParameterResolver(state, ADMIN, TOKEN).resolve(spec)
        assert exc_info.value.dependency == "reg"

    def test_missing_token(self) -> None:
        state = DeploymentState(["x"])
        with pytest.raises(ConfigurationError):
            ParameterResolver(state, ADMIN, None).resolve(_make_spec("x", InitParam.token()))


# =============================================================================
# Test: InitializationPlanner
# =============================================================================
class TestInitializationPlanner:
    async def test_initializes_with_resolved_args(self, adapter, client) -> None:
        state = DeploymentState.from_records(["a"], {"a": "CAAA"})
        planner = InitializationPlanner(adapter, _make_run(), admin_address=ADMIN)

        report = await planner.execute(
            [_make_spec("a", InitParam.admin(), InitParam.token())],
            state,
            RunReport(network="testnet"),
        )

        assert report.entries[0].outcome == Outcome.OK
        assert state.status_of("a") == DeploymentStatus.INITIALIZED
        call = client.invoke_calls[0]
        assert call.address == "CAAA"
        assert call.entrypoint == "initialize"
        assert [(a.name, a.value) for a in call.args] == [("admin", ADMIN), ("token", TOKEN)]

    async def test_artifacts_without_init_have_no_entry(self, adapter, client) -> None:
        state = DeploymentState.from_records(["a"], {"a": "CAAA"})
        planner = InitializationPlanner(adapter, _make_run(), admin_address=ADMIN)

        report = await planner.execute(
            [_make_spec("a", init=False)], state, RunReport(network="testnet")
        )

        assert report.entries == ()
        assert client.invoke_calls == []

    async def test_skip_reasons(self, adapter, client) -> None:
        state = DeploymentState.from_records(["missing", "broken", "dep"], {"dep": "CDEP"})
        state.mark_failed("broken", "deploy rejected")
        specs = [
            _make_spec("missing", InitParam.admin()),
            _make_spec("broken", InitParam.admin()),
            _make_spec("dep", InitParam.artifact("other", "broken")),
        ]
        planner = InitializationPlanner(adapter, _make_run(), admin_address=ADMIN)

        report = await planner.execute(specs, state, RunReport(network="testnet"))

        notes = {e.artifact_name: (e.outcome, e.note) for e in report.entries}
        assert notes == {
            "missing": (Outcome.SKIPPED, "not deployed"),
            "broken": (Outcome.SKIPPED, "deploy failed"),
            "dep": (Outcome.SKIPPED, "dependency failed"),
        }
        assert client.invoke_calls == []

    async def test_benign_rejection_is_ok(self, adapter, client) -> None:
        client.mark_initialized("CAAA")
        state = DeploymentState.from_records(["a"], {"a": "CAAA"})
        planner = InitializationPlanner(adapter, _make_run(), admin_address=ADMIN)

        report = await planner.execute(
            [_make_spec("a", InitParam.admin())], state, RunReport(network="testnet")
        )

        assert report.entries[0].outcome == Outcome.OK
        assert report.entries[0].note == "already initialized"
        assert state.status_of("a") == DeploymentStatus.INITIALIZED

    async def test_failure_does_not_stop_the_phase(self, adapter, client) -> None:
        client.fail_invoke(
            "CAAA", TransportFailureError(message="connection reset", operation="invoke")
        )
        state = DeploymentState.from_records(["a", "b"], {"a": "CAAA", "b": "CBBB"})
        planner = InitializationPlanner(adapter, _make_run(), admin_address=ADMIN)

        report = await planner.execute(
            [_make_spec("a", InitParam.admin()), _make_spec("b", InitParam.admin())],
            state,
            RunReport(network="testnet"),
        )

        assert report.outcome_of("a", Phase.INIT) == Outcome.FAILED
        assert report.outcome_of("b", Phase.INIT) == Outcome.OK
        assert state.status_of("a") == DeploymentStatus.FAILED

    async def test_unresolved_dependency_fails_artifact(self, adapter, client) -> None:
        state = DeploymentState.from_records(["reg", "b"], {"b": "CBBB"})
        planner = InitializationPlanner(adapter, _make_run(), admin_address=ADMIN)

        report = await planner.execute(
            [_make_spec("b", InitParam.artifact("registry", "reg"))],
            state,
            RunReport(network="testnet"),
        )

        assert report.entries[0].outcome == Outcome.FAILED
        assert state.status_of("b") == DeploymentStatus.FAILED
        assert client.invoke_calls == []

    async def test_dry_run_does_not_invoke(self, adapter, client) -> None:
        state = DeploymentState.from_records(["a"], {"a": "CAAA"})
        planner = InitializationPlanner(
            adapter, _make_run(dry_run=True), admin_address="dry-run:deployer"
        )

        report = await planner.execute(
            [_make_spec("a", InitParam.admin())], state, RunReport(network="testnet")
        )

        assert report.entries[0].outcome == Outcome.OK
        assert "admin=dry-run:deployer" in report.entries[0].note
        assert client.invoke_calls == []
