"""
Fake implementations for testing.

Provides in-memory implementations of the executor interface for use in
unit and integration tests without the snow CLI.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional

from snowproxy.infrastructure.executor import (
    CommandExecutorInterface,
    CommandResult,
    ExecutionOptions,
)

ArgsPredicate = Callable[[list[str]], bool]


@dataclass
class RecordedCall:
    """One call received by a fake executor."""

    args: list[str]
    options: Optional[ExecutionOptions]
    timeout: Optional[float]

    @property
    def query(self) -> Optional[str]:
        """The ``-q`` text of a ``sql`` call, if any."""
        if len(self.args) >= 3 and self.args[0] == "sql" and self.args[1] == "-q":
            return self.args[2]
        return None


class FakeCommandExecutor(CommandExecutorInterface):
    """
    Scripted executor for testing.

    Responses are registered with ``when``/``when_query`` and matched in
    registration order; unmatched calls return the default result. Every
    call is recorded in ``calls``.
    """

    def __init__(self, default: Optional[CommandResult] = None):
        self._default = default or CommandResult(stdout="", stderr="", exit_code=0)
        self._rules: list[tuple[ArgsPredicate, CommandResult]] = []
        self.calls: list[RecordedCall] = []

    def when(
        self,
        *prefix: str,
        stdout: str = "",
        stderr: str = "",
        exit_code: int = 0,
    ) -> "FakeCommandExecutor":
        """Answer calls whose arguments start with ``prefix``."""
        expected = list(prefix)
        self._rules.append(
            (
                lambda args: args[: len(expected)] == expected,
                CommandResult(stdout=stdout, stderr=stderr, exit_code=exit_code),
            )
        )
        return self

    def when_query(
        self,
        pattern: str,
        stdout: str = "",
        stderr: str = "",
        exit_code: int = 0,
    ) -> "FakeCommandExecutor":
        """Answer ``sql -q`` calls whose query matches ``pattern`` (case-insensitive)."""
        compiled = re.compile(pattern, re.IGNORECASE)

        def matches(args: list[str]) -> bool:
            query = RecordedCall(args, None, None).query
            return query is not None and compiled.search(query) is not None

        self._rules.append(
            (matches, CommandResult(stdout=stdout, stderr=stderr, exit_code=exit_code))
        )
        return self

    @property
    def queries(self) -> list[str]:
        """The ``-q`` text of every recorded ``sql`` call."""
        return [call.query for call in self.calls if call.query is not None]

    async def execute(
        self,
        args: list[str],
        options: Optional[ExecutionOptions] = None,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        args = list(args)
        self.calls.append(RecordedCall(args=args, options=options, timeout=timeout))
        for predicate, result in self._rules:
            if predicate(args):
                return result
        return self._respond(args)

    def _respond(self, args: list[str]) -> CommandResult:
        return self._default


_SHOW_CREATE = re.compile(r"^\s*SHOW\s+CREATE\s+(\w+)\s+(.+?)\s*$", re.IGNORECASE)


class InMemoryWarehouse(FakeCommandExecutor):
    """
    In-memory object hierarchy that answers listings and SHOW CREATE.

    Objects are registered by category and fully-qualified name; databases
    have one part, schemas two and leaf objects three. Listings are
    rendered in the tab-separated format of the snow CLI; DDL fetches as
    JSON rows when ``--format`` is requested, as text otherwise.
    Scripted ``when`` rules still take precedence.
    """

    def __init__(self) -> None:
        super().__init__()
        # (category, fully-qualified name) -> DDL
        self._objects: dict[tuple[str, str], str] = {}
        self._failing_listings: set[tuple[str, str]] = set()

    def add(self, category: str, full_name: str, ddl: Optional[str] = None) -> "InMemoryWarehouse":
        """Register an object. ``ddl`` defaults to a CREATE statement for it."""
        if ddl is None:
            ddl = f"create or replace {category.replace('_', ' ')} {full_name};"
        self._objects[(category.lower(), full_name)] = ddl
        return self

    def fail_listing(self, category: str, scope: str = "") -> "InMemoryWarehouse":
        """Make the listing of ``category`` within ``scope`` exit non-zero."""
        self._failing_listings.add((category.lower(), scope))
        return self

    def listed_scopes(self, category: str) -> list[str]:
        """Scopes in which ``category`` was listed, in call order."""
        scopes = []
        for call in self.calls:
            if call.args[:3] == ["object", "list", category]:
                scopes.append(self._scope_of(call.args))
        return scopes

    @staticmethod
    def _scope_of(args: list[str]) -> str:
        if "--in" in args:
            idx = args.index("--in")
            if idx + 1 < len(args):
                return args[idx + 1]
        return ""

    def _respond(self, args: list[str]) -> CommandResult:
        if args[:2] == ["object", "list"] and len(args) >= 3:
            return self._list(args[2].lower(), self._scope_of(args))

        query = RecordedCall(args, None, None).query
        if query is not None:
            match = _SHOW_CREATE.match(query)
            if match:
                return self._show_create(match.group(1).lower(), match.group(2), args)

        return super()._respond(args)

    def _list(self, category: str, scope: str) -> CommandResult:
        if (category, scope) in self._failing_listings:
            return CommandResult(stdout="", stderr="listing failed", exit_code=1)

        depth = len(scope.split(".")) if scope else 0
        names = []
        for (cat, full_name), _ in self._objects.items():
            if cat != category:
                continue
            parts = full_name.split(".")
            if len(parts) != depth + 1:
                continue
            if ".".join(parts[:-1]) != scope:
                continue
            names.append(parts[-1])

        lines = ["name\tcreated_on"] + [f"{name}\t2024-01-01" for name in names]
        return CommandResult(stdout="\n".join(lines) + "\n", stderr="", exit_code=0)

    def _show_create(self, category: str, full_name: str, args: list[str]) -> CommandResult:
        ddl = self._objects.get((category, full_name))
        if ddl is None:
            return CommandResult(
                stdout="",
                stderr=f"Object '{full_name}' does not exist or not authorized.",
                exit_code=1,
            )
        if "--format" in args:
            stdout = json.dumps([{"NAME": full_name, "DDL": ddl}])
        else:
            stdout = f"name\tddl\n{full_name}\t{ddl}\n"
        return CommandResult(stdout=stdout, stderr="", exit_code=0)
