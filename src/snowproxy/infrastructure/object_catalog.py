"""
Object catalog for snowproxy.

Builds the snow CLI invocations used to list, describe and fetch DDL for
warehouse objects, and turns their output into names and DDL text.
"""

import logging
from typing import Optional

from snowproxy.infrastructure.executor import (
    CommandExecutorInterface,
    CommandResult,
    ExecutionOptions,
)
from snowproxy.infrastructure.output_parser import extract_ddl, parse_tabular

logger = logging.getLogger(__name__)

# Object types accepted by ``snow object list`` / ``snow object describe``
OBJECT_TYPES: tuple[str, ...] = (
    "database",
    "schema",
    "table",
    "view",
    "materialized_view",
    "function",
    "procedure",
    "stage",
    "file_format",
    "task",
    "stream",
    "warehouse",
    "compute_pool",
    "role",
    "user",
    "network_rule",
    "integration",
    "secret",
    "tag",
)


def qualified_name(*parts: Optional[str]) -> str:
    """Join the non-empty name parts with dots."""
    return ".".join(part for part in parts if part)


def build_scope(database: Optional[str] = None, schema: Optional[str] = None) -> str:
    """Return the ``--in`` scope for a listing, or an empty string for account scope."""
    return qualified_name(database, schema)


def normalize_object_type(object_type: str) -> str:
    """``materialized view`` -> ``MATERIALIZED_VIEW``."""
    return "_".join(object_type.strip().upper().split())


class ObjectCatalog:
    """
    Read-only access to warehouse object metadata through the executor.

    Methods returning CommandResult leave error interpretation to the
    caller; ``list_names`` and ``fetch_ddl`` degrade to empty values and
    log instead, for callers that treat a failure as "nothing there".
    """

    def __init__(self, executor: CommandExecutorInterface, timeout: Optional[float] = None):
        self._executor = executor
        self._timeout = timeout

    @property
    def executor(self) -> CommandExecutorInterface:
        return self._executor

    async def run_sql(
        self,
        query: str,
        options: Optional[ExecutionOptions] = None,
        output_format: Optional[str] = None,
    ) -> CommandResult:
        """Run a statement with ``snow sql -q``."""
        args = ["sql", "-q", query]
        if output_format:
            args.extend(["--format", output_format])
        return await self._executor.execute(args, options, timeout=self._timeout)

    async def list_objects(
        self,
        object_type: str,
        database: Optional[str] = None,
        schema: Optional[str] = None,
        like: Optional[str] = None,
        options: Optional[ExecutionOptions] = None,
    ) -> CommandResult:
        """Run ``snow object list`` in terse mode."""
        args = ["object", "list", object_type, "--terse"]
        scope = build_scope(database, schema)
        if scope:
            args.extend(["--in", scope])
        if like:
            args.extend(["--like", like])
        return await self._executor.execute(args, options, timeout=self._timeout)

    async def list_names(
        self,
        object_type: str,
        database: Optional[str] = None,
        schema: Optional[str] = None,
        options: Optional[ExecutionOptions] = None,
    ) -> list[str]:
        """
        Return the names in a listing, skipping rows without a name.

        A failed listing is logged and treated as empty.
        """
        result = await self.list_objects(object_type, database, schema, options=options)
        if not result.ok:
            logger.warning(
                f"Listing {object_type} objects failed",
                extra={
                    "scope": build_scope(database, schema),
                    "exit_code": result.exit_code,
                },
            )
            return []

        return [row["name"] for row in parse_tabular(result.stdout).rows if row.get("name")]

    async def describe(
        self,
        object_type: str,
        object_name: str,
        database: Optional[str] = None,
        schema: Optional[str] = None,
        options: Optional[ExecutionOptions] = None,
    ) -> CommandResult:
        """Run ``snow object describe``."""
        args = ["object", "describe", object_type, object_name]
        scope = build_scope(database, schema)
        if scope:
            args.extend(["--in", scope])
        return await self._executor.execute(args, options, timeout=self._timeout)

    async def show_create(
        self,
        object_type: str,
        full_name: str,
        options: Optional[ExecutionOptions] = None,
    ) -> CommandResult:
        """
        Run ``SHOW CREATE <TYPE> <full_name>`` with JSON output.

        JSON keeps a multi-line DDL body in one field, where the text
        format splits it across lines.
        """
        query = f"SHOW CREATE {normalize_object_type(object_type)} {full_name}"
        return await self.run_sql(query, options, output_format="JSON")

    async def fetch_ddl(
        self,
        object_type: str,
        full_name: str,
        options: Optional[ExecutionOptions] = None,
    ) -> str:
        """
        Fetch the DDL of one object.

        Returns:
            DDL text, or an empty string when the call failed or returned
            nothing.
        """
        result = await self.show_create(object_type, full_name, options)
        if not result.ok:
            logger.warning(
                f"DDL fetch failed for {object_type} {full_name}",
                extra={"exit_code": result.exit_code, "timed_out": result.timed_out},
            )
            return ""
        return extract_ddl(result.stdout)
