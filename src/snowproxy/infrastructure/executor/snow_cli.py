"""snow CLI executor implementation."""

import asyncio
import logging
from typing import Optional

from snowproxy.core.config import SnowCLIConfig

from .interface import (
    NOT_FOUND_EXIT_CODE,
    TIMEOUT_EXIT_CODE,
    CommandExecutorInterface,
    CommandResult,
    ExecutionOptions,
)

logger = logging.getLogger(__name__)


class SnowCLIExecutor(CommandExecutorInterface):
    """
    Executor that runs the snow CLI as a subprocess.

    Calls are awaited one at a time by the services; each carries a
    timeout after which the child is killed and reaped, and a synthetic
    result with exit code 124 is returned. Nothing is retried.
    """

    def __init__(
        self,
        command: str = "snow",
        connection: Optional[str] = None,
        warehouse: Optional[str] = None,
        role: Optional[str] = None,
        timeout: float = 30.0,
    ):
        """
        Initialize the executor.

        Args:
            command: Executable name or path
            connection: Default connection used when a call does not name one
            warehouse: Default warehouse
            role: Default role
            timeout: Default timeout in seconds
        """
        if timeout <= 0:
            raise ValueError("timeout must be positive")

        self._command = command
        self._defaults = ExecutionOptions(connection=connection, warehouse=warehouse, role=role)
        self._timeout = timeout

    @property
    def timeout(self) -> float:
        return self._timeout

    def build_args(self, args: list[str], options: Optional[ExecutionOptions] = None) -> list[str]:
        """Prepend the global connection flags to ``args``."""
        options = options or ExecutionOptions()
        flags: list[str] = []

        connection = options.connection or self._defaults.connection
        warehouse = options.warehouse or self._defaults.warehouse
        role = options.role or self._defaults.role

        if connection:
            flags.extend(["--connection", connection])
        if warehouse:
            flags.extend(["--warehouse", warehouse])
        if role:
            flags.extend(["--role", role])

        return flags + list(args)

    async def execute(
        self,
        args: list[str],
        options: Optional[ExecutionOptions] = None,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        full_args = self.build_args(args, options)
        effective_timeout = timeout if timeout is not None else self._timeout

        logger.debug(
            f"Running {self._command} {args[0] if args else ''}",
            extra={"arg_count": len(full_args), "timeout": effective_timeout},
        )

        try:
            proc = await asyncio.create_subprocess_exec(
                self._command,
                *full_args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error(f"Failed to start {self._command}: {e}")
            return CommandResult(stdout="", stderr=str(e), exit_code=NOT_FOUND_EXIT_CODE)

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=effective_timeout)
        except asyncio.TimeoutError:
            await self._kill(proc)
            logger.warning(f"{self._command} timed out after {effective_timeout}s")
            return CommandResult(
                stdout="",
                stderr=f"Command timed out after {effective_timeout} seconds",
                exit_code=TIMEOUT_EXIT_CODE,
            )
        except asyncio.CancelledError:
            await self._kill(proc)
            raise

        exit_code = proc.returncode if proc.returncode is not None else 1
        return CommandResult(
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            exit_code=exit_code,
        )

    @staticmethod
    async def _kill(proc: asyncio.subprocess.Process) -> None:
        """Kill the child and wait for it so no zombie is left behind."""
        if proc.returncode is None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
        await proc.wait()


def create_executor(config: SnowCLIConfig) -> SnowCLIExecutor:
    """Create a SnowCLIExecutor from the snowcli configuration section."""
    return SnowCLIExecutor(
        command=config.command,
        connection=config.connection,
        warehouse=config.warehouse,
        role=config.role,
        timeout=config.timeout,
    )
