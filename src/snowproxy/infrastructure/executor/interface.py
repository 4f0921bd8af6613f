"""Abstract interface for command executors."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

# Exit code reserved for a command killed after its timeout expired
TIMEOUT_EXIT_CODE = 124

# Exit code reported when the executable could not be started
NOT_FOUND_EXIT_CODE = 127


@dataclass(frozen=True)
class CommandResult:
    """Captured output of one CLI invocation."""

    stdout: str
    stderr: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def timed_out(self) -> bool:
        return self.exit_code == TIMEOUT_EXIT_CODE


@dataclass(frozen=True)
class ExecutionOptions:
    """Per-call connection settings passed to the CLI as global flags."""

    connection: Optional[str] = None
    warehouse: Optional[str] = None
    role: Optional[str] = None


class CommandExecutorInterface(ABC):
    """Abstract interface for running warehouse CLI commands."""

    @abstractmethod
    async def execute(
        self,
        args: list[str],
        options: Optional[ExecutionOptions] = None,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        """
        Run the CLI with the given arguments.

        Args:
            args: Arguments following the executable and global flags
            options: Connection, warehouse and role for this call
            timeout: Seconds before the process is killed; None uses the default

        Returns:
            CommandResult. Process failures are reported through the exit
            code, never raised.
        """
        pass
