"""
pulsar_deploy.integrations.build - Contract Builder
=====================================================

Compiles every contract of the workspace to WASM before the deploy phase
(``cargo build --release --target wasm32-unknown-unknown`` by default).
"""

from __future__ import annotations

import asyncio

import structlog

from pulsar_deploy.core.config import StellarCliConfig
from pulsar_deploy.core.exceptions import BuildError
from pulsar_deploy.integrations.process import run_process


logger = structlog.get_logger()

MAX_OUTPUT_DETAIL = 4000


class CargoBuilder:
    """Runs the configured build command in the contract workspace."""

    def __init__(self, config: StellarCliConfig) -> None:
        self._config = config
        self._logger = logger.bind(component="cargo_builder")

    @property
    def command(self) -> list[str]:
        return list(self._config.build_command)

    async def build(self) -> None:
        """Run the build to completion.

        Raises:
            BuildError: If the command is missing, times out or exits non-zero.
        """
        argv = self.command
        self._logger.info("build_started", argv=argv, cwd=str(self._config.project_dir))
        try:
            result = await run_process(
                argv,
                timeout=self._config.build_timeout_seconds,
                cwd=self._config.project_dir,
            )
        except FileNotFoundError as e:
            raise BuildError(
                message=f"Build command not found: {argv[0]}",
                error_code="BUILD_TOOL_NOT_FOUND",
                details={"argv": argv},
            ) from e
        except asyncio.TimeoutError as e:
            raise BuildError(
                message=f"Build timed out after {self._config.build_timeout_seconds}s",
                error_code="BUILD_TIMEOUT",
                details={"argv": argv},
            ) from e

        if not result.ok:
            raise BuildError(
                message=f"Build failed with exit code {result.returncode}",
                details={"argv": argv, "stderr": result.stderr[-MAX_OUTPUT_DETAIL:]},
            )
        self._logger.info("build_completed")
