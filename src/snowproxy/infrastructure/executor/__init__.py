"""
Command executor module for snowproxy.

Runs the snow CLI as an asyncio subprocess with a per-call timeout.
"""

from .interface import (
    NOT_FOUND_EXIT_CODE,
    TIMEOUT_EXIT_CODE,
    CommandExecutorInterface,
    CommandResult,
    ExecutionOptions,
)
from .snow_cli import SnowCLIExecutor, create_executor

__all__ = [
    "CommandExecutorInterface",
    "CommandResult",
    "ExecutionOptions",
    "SnowCLIExecutor",
    "create_executor",
    "TIMEOUT_EXIT_CODE",
    "NOT_FOUND_EXIT_CODE",
]
