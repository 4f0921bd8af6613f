"""
Lineage Service for snowproxy.

Reports object dependencies through SNOWFLAKE.CORE.OBJECT_DEPENDENCIES
and OBJECT_REFERENCES, dropping any entry that names an excluded object.
"""

import logging
import re
from typing import Any, Optional

from snowproxy.core.exclusion import ExclusionChecker
from snowproxy.infrastructure.executor import ExecutionOptions
from snowproxy.infrastructure.object_catalog import (
    ObjectCatalog,
    normalize_object_type,
    qualified_name,
)
from snowproxy.infrastructure.output_parser import parse_tabular
from snowproxy.services.errors import ErrorKind, ToolError, cli_failure, excluded_error

logger = logging.getLogger(__name__)

LINEAGE_OBJECT_TYPES = ("table", "view", "materialized_view")
DEPENDENCY_OBJECT_TYPES = ("view", "materialized_view", "function", "procedure")
DIRECTIONS = ("upstream", "downstream", "both")

# Bare or double-quoted identifier accepted for database and schema
_IDENTIFIER = re.compile(r'[A-Za-z_][A-Za-z0-9_$]*|"[^"]+"')

# Columns of a lineage row that name another object
_NAME_COLUMNS = (
    "referenced_object_name",
    "referencing_object_name",
    "reference_object_name",
    "object_name",
)


def quote_literal(value: str) -> str:
    """Render ``value`` as a single-quoted SQL string literal."""
    return "'" + value.replace("'", "''") + "'"


def build_lineage_query(object_name: str, object_type: str, direction: str) -> str:
    return (
        "SELECT * FROM TABLE(SNOWFLAKE.CORE.OBJECT_DEPENDENCIES("
        f"OBJECT_NAME => {quote_literal(object_name)}, "
        f"OBJECT_TYPE => {quote_literal(normalize_object_type(object_type))}, "
        f"DIRECTION => {quote_literal(direction.upper())}))"
    )


def build_dependencies_query(
    object_name: str, database: Optional[str] = None, schema: Optional[str] = None
) -> str:
    source = database or "INFORMATION_SCHEMA"
    if schema:
        source = f"{source}.{schema}"
    return (
        "SELECT REFERENCE_OBJECT_NAME, REFERENCE_OBJECT_TYPE, REFERENCE_SCHEMA_NAME, "
        "REFERENCE_DATABASE_NAME, OBJECT_NAME, OBJECT_SCHEMA, OBJECT_DATABASE "
        f"FROM {source}.OBJECT_REFERENCES "
        f"WHERE OBJECT_NAME = {quote_literal(object_name)} "
        f"OR OBJECT_NAME = UPPER({quote_literal(object_name)})"
    )


def _row_direction(row: dict[str, str], object_name: str) -> str:
    """
    Direction of one dependency row relative to ``object_name``.

    An explicit ``direction`` column wins. Otherwise the row is upstream
    when the object is the referencing side and downstream when it is the
    referenced side.
    """
    explicit = row.get("direction", "").lower()
    if explicit in ("upstream", "downstream"):
        return explicit
    name = object_name.upper()
    if row.get("referencing_object_name", "").upper() == name:
        return "upstream"
    if row.get("referenced_object_name", "").upper() == name:
        return "downstream"
    return ""


def _validate_choice(value: str, choices: tuple[str, ...], field_name: str) -> str:
    normalized = (value or "").strip().lower()
    if normalized not in choices:
        raise ToolError(
            ErrorKind.INVALID_INPUT,
            f"{field_name} must be one of: {', '.join(choices)}",
            "E3000",
        )
    return normalized


def _validate_identifier(value: Optional[str], field_name: str) -> Optional[str]:
    """Reject a database or schema that is not a single identifier."""
    if not value:
        return None
    if not _IDENTIFIER.fullmatch(value):
        raise ToolError(
            ErrorKind.INVALID_INPUT, f"{field_name} must be a single identifier", "E3000"
        )
    return value


class LineageService:
    """Service for object lineage and dependency lookups."""

    def __init__(self, catalog: ObjectCatalog, checker: ExclusionChecker):
        self._catalog = catalog
        self._checker = checker

    def _reject_excluded(self, object_name: str) -> None:
        exclusion = self._checker.check_reference(object_name)
        if exclusion.is_excluded:
            logger.info(
                f"Blocked lineage lookup for excluded object {object_name}",
                extra={"matched_pattern": exclusion.matched_pattern},
            )
            raise excluded_error(object_name, exclusion.matched_pattern, "E3001")

    def _names_excluded(self, row: dict[str, str]) -> bool:
        return any(
            row.get(column) and self._checker.check_reference(row[column]).is_excluded
            for column in _NAME_COLUMNS
        )

    async def get_lineage(
        self,
        object_name: str,
        object_type: str,
        direction: str = "both",
        database: Optional[str] = None,
        schema: Optional[str] = None,
        execution: Optional[ExecutionOptions] = None,
    ) -> dict[str, Any]:
        """
        Fetch upstream and/or downstream dependencies of an object.

        Raises:
            ToolError: INVALID_INPUT, EXCLUDED_OBJECT, CLI_ERROR or
                PERMISSION_DENIED.
        """
        if not object_name or not object_name.strip():
            raise ToolError(ErrorKind.INVALID_INPUT, "objectName must not be empty", "E3000")
        object_type = _validate_choice(object_type, LINEAGE_OBJECT_TYPES, "objectType")
        direction = _validate_choice(direction, DIRECTIONS, "direction")
        database = _validate_identifier(database, "database")
        schema = _validate_identifier(schema, "schema")
        self._reject_excluded(qualified_name(database, schema, object_name))

        query = build_lineage_query(object_name, object_type, direction)
        result = await self._catalog.run_sql(query, execution)
        if not result.ok:
            raise cli_failure(
                result, "E3002", "Unknown error - make sure SNOWFLAKE.CORE is available"
            )

        rows = [row for row in parse_tabular(result.stdout).rows if not self._names_excluded(row)]

        upstream = [r for r in rows if _row_direction(r, object_name) == "upstream"]
        downstream = [r for r in rows if _row_direction(r, object_name) == "downstream"]

        return {
            "objectName": object_name,
            "objectType": normalize_object_type(object_type),
            "direction": direction,
            "totalCount": len(rows),
            "upstream": upstream if direction in ("upstream", "both") else [],
            "downstream": downstream if direction in ("downstream", "both") else [],
            "all": rows,
            "_meta": {"database": database, "schema": schema},
        }

    async def get_dependencies(
        self,
        object_name: str,
        object_type: str,
        database: Optional[str] = None,
        schema: Optional[str] = None,
        execution: Optional[ExecutionOptions] = None,
    ) -> dict[str, Any]:
        """List the objects a view, function or procedure references."""
        if not object_name or not object_name.strip():
            raise ToolError(ErrorKind.INVALID_INPUT, "objectName must not be empty", "E3000")
        object_type = _validate_choice(object_type, DEPENDENCY_OBJECT_TYPES, "objectType")
        database = _validate_identifier(database, "database")
        schema = _validate_identifier(schema, "schema")
        self._reject_excluded(qualified_name(database, schema, object_name))

        query = build_dependencies_query(object_name, database, schema)
        result = await self._catalog.run_sql(query, execution)
        if not result.ok:
            raise cli_failure(result, "E3003")

        dependencies = []
        for row in parse_tabular(result.stdout).rows:
            name = row.get("reference_object_name")
            if not name:
                continue
            if self._checker.check_reference(name).is_excluded:
                logger.info("Dropped excluded dependency from result")
                continue
            dependencies.append(
                {
                    "name": name,
                    "type": row.get("reference_object_type") or row.get("referenced_object_type"),
                    "schema": row.get("reference_schema_name") or row.get("object_schema"),
                    "database": row.get("reference_database_name") or row.get("object_database"),
                }
            )

        return {
            "objectName": object_name,
            "objectType": normalize_object_type(object_type),
            "totalCount": len(dependencies),
            "dependencies": dependencies,
            "_meta": {"database": database, "schema": schema},
        }
