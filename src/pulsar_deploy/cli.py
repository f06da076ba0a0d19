"""
pulsar_deploy.cli - Command Line Interface
============================================

    pulsar-deploy [--config PATH] [--log-level LEVEL] [--log-format console|json]
        setup       deploy every contract, then initialize
        deploy      deploy phase only
        initialize  init phase only (uses the recorded addresses)
        status      list the recorded addresses of a network

Exit status:
    0  no artifact ended failed
    1  at least one artifact failed
    2  the run could not be carried out (bad configuration, unreadable
       state file, dependency cycle, failed build, unknown identity)
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Optional

import click
import structlog
from pydantic import ValidationError

from pulsar_deploy import __version__
from pulsar_deploy.core.config import DeployConfig, load_config
from pulsar_deploy.core.enums import Phase
from pulsar_deploy.core.exceptions import DeployError
from pulsar_deploy.facade import PulsarDeployer
from pulsar_deploy.observability import configure_logging
from pulsar_deploy.reporting import format_report, format_status


logger = structlog.get_logger()

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_FATAL = 2


class CliState:
    """Options of the top-level group, shared by every command."""

    def __init__(
        self,
        config_path: Optional[str],
        log_level: Optional[str],
        log_format: Optional[str],
    ) -> None:
        self.config_path = config_path
        self.log_level = log_level
        self.log_format = log_format

    def load(self, **overrides: Any) -> DeployConfig:
        """Load the configuration with ``overrides`` (None = not given) and
        set up logging from it."""
        config = load_config(
            self.config_path,
            log_level=self.log_level,
            log_format=self.log_format,
            **overrides,
        )
        configure_logging(config.log_level, config.log_format)
        return config


def _fail(message: str) -> None:
    click.echo(click.style(f"Error: {message}", fg="red"), err=True)


def _common_options(func: Callable) -> Callable:
    options = [
        click.option("--network", default=None, help="Target network (default: testnet)."),
        click.option("--identity", default=None, help="Signing identity name."),
        click.option(
            "--state-file",
            type=click.Path(dir_okay=False, path_type=Path),
            default=None,
            help="State file (default: deployments/deployed-<network>.json).",
        ),
        click.option(
            "--manifest",
            type=click.Path(dir_okay=False, path_type=Path),
            default=None,
            help="YAML artifact catalog replacing the built-in one.",
        ),
        click.option(
            "--backend",
            type=click.Choice(["stellar", "mock"]),
            default=None,
            help="Execution backend.",
        ),
        click.option("--json", "as_json", is_flag=True, help="Print JSON instead of a table."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _run_options(func: Callable) -> Callable:
    options = [
        click.option("--dry-run", is_flag=True, help="Show what would happen; change nothing."),
        click.option("--token", default=None, help="Payment token contract address override."),
        click.option(
            "--build/--no-build",
            default=None,
            help="Build contracts before deploying (default: on).",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return _common_options(func)


def _execute(
    state: CliState,
    phases: tuple[Phase, ...],
    *,
    force: bool,
    dry_run: bool,
    token: Optional[str],
    build: Optional[bool],
    network: Optional[str],
    identity: Optional[str],
    state_file: Optional[Path],
    manifest: Optional[Path],
    backend: Optional[str],
    as_json: bool,
) -> int:
    try:
        config = state.load(
            network=network,
            identity=identity,
            force=force or None,
            dry_run=dry_run or None,
            token_address=token,
            state_file=state_file,
            manifest=manifest,
            build=build,
            execution_backend=backend,
        )
        deployer = PulsarDeployer(config)
        report = asyncio.run(deployer.run(phases))
    except DeployError as e:
        logger.error("run_aborted", **e.to_dict())
        _fail(e.message)
        return EXIT_FATAL
    except (FileNotFoundError, ValidationError) as e:
        _fail(str(e))
        return EXIT_FATAL

    click.echo(format_report(report, as_json=as_json))
    return report.exit_code


# =============================================================================
# Commands
# =============================================================================
@click.group(context_settings=CONTEXT_SETTINGS)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="YAML configuration file (default: ./pulsar-deploy.yaml if present).",
)
@click.option("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR.")
@click.option(
    "--log-format",
    type=click.Choice(["console", "json"]),
    default=None,
    help="Log rendering on stderr.",
)
@click.version_option(__version__, prog_name="pulsar-deploy")
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Optional[str],
    log_level: Optional[str],
    log_format: Optional[str],
) -> None:
    """Deploy and initialize the PulsarTrack Soroban contracts."""
    ctx.obj = CliState(config_path, log_level, log_format)


@cli.command("setup")
@click.option("--force", is_flag=True, help="Redeploy contracts that are already recorded.")
@_run_options
@click.pass_obj
def setup_cmd(state: CliState, **options: Any) -> None:
    """Deploy every contract, then initialize them."""
    code = _execute(state, (Phase.DEPLOY, Phase.INIT), **options)
    raise SystemExit(code)


@cli.command("deploy")
@click.option("--force", is_flag=True, help="Redeploy contracts that are already recorded.")
@_run_options
@click.pass_obj
def deploy_cmd(state: CliState, **options: Any) -> None:
    """Deploy every contract that has no recorded address."""
    code = _execute(state, (Phase.DEPLOY,), **options)
    raise SystemExit(code)


@cli.command("initialize")
@_run_options
@click.pass_obj
def initialize_cmd(state: CliState, **options: Any) -> None:
    """Initialize the recorded contracts."""
    code = _execute(state, (Phase.INIT,), force=False, **options)
    raise SystemExit(code)


@cli.command("status")
@_common_options
@click.pass_obj
def status_cmd(
    state: CliState,
    network: Optional[str],
    identity: Optional[str],
    state_file: Optional[Path],
    manifest: Optional[Path],
    backend: Optional[str],
    as_json: bool,
) -> None:
    """List the recorded address of every contract."""
    try:
        config = state.load(
            network=network,
            identity=identity,
            state_file=state_file,
            manifest=manifest,
            execution_backend=backend,
        )
        deployer = PulsarDeployer(config)
        addresses = asyncio.run(deployer.status())
    except DeployError as e:
        _fail(e.message)
        raise SystemExit(EXIT_FATAL)
    except (FileNotFoundError, ValidationError) as e:
        _fail(str(e))
        raise SystemExit(EXIT_FATAL)

    click.echo(format_status(config.network, addresses, as_json=as_json))


def main() -> None:
    cli(prog_name="pulsar-deploy")
