"""
Discovery Service for snowproxy.

Lists, describes and fetches DDL for warehouse objects, hiding excluded
objects from listings and refusing to describe them.
"""

import logging
from typing import Any, Optional

from snowproxy.core.exclusion import ExclusionChecker
from snowproxy.infrastructure.executor import ExecutionOptions
from snowproxy.infrastructure.object_catalog import (
    OBJECT_TYPES,
    ObjectCatalog,
    build_scope,
    normalize_object_type,
    qualified_name,
)
from snowproxy.infrastructure.output_parser import extract_ddl, parse_tabular
from snowproxy.services.errors import ErrorKind, ToolError, cli_failure, excluded_error

logger = logging.getLogger(__name__)


def _validate_object_type(object_type: str) -> str:
    normalized = (object_type or "").strip().lower()
    if normalized not in OBJECT_TYPES:
        raise ToolError(
            ErrorKind.INVALID_INPUT,
            f"objectType must be one of: {', '.join(OBJECT_TYPES)}",
            "E2000",
        )
    return normalized


def _require(value: Optional[str], field_name: str) -> str:
    if not value or not value.strip():
        raise ToolError(ErrorKind.INVALID_INPUT, f"{field_name} must not be empty", "E2000")
    return value


class DiscoveryService:
    """Service for browsing warehouse object metadata."""

    def __init__(self, catalog: ObjectCatalog, checker: ExclusionChecker):
        self._catalog = catalog
        self._checker = checker

    def _reject_excluded(self, object_name: str) -> None:
        exclusion = self._checker.check_reference(object_name)
        if exclusion.is_excluded:
            logger.info(
                f"Blocked access to excluded object {object_name}",
                extra={"matched_pattern": exclusion.matched_pattern},
            )
            raise excluded_error(object_name, exclusion.matched_pattern, "E2002")

    def _row_excluded(self, row: dict[str, str]) -> bool:
        if not row.get("name"):
            return False
        full_name = qualified_name(row.get("database_name"), row.get("schema_name"), row["name"])
        return self._checker.check_reference(full_name).is_excluded

    async def list_objects(
        self,
        object_type: str,
        database: Optional[str] = None,
        schema: Optional[str] = None,
        like: Optional[str] = None,
        execution: Optional[ExecutionOptions] = None,
    ) -> dict[str, Any]:
        """
        List objects of one type, without the excluded ones.

        A listing scoped to an excluded database or schema is refused, and
        rows are checked with their database and schema columns when the
        listing carries them.

        Returns:
            ``{"objects": [...], "totalCount": n, "_meta": {...}}`` where each
            object is a row of the listing keyed by lower-cased header.
        """
        object_type = _validate_object_type(object_type)
        scope = build_scope(database, schema)
        if scope:
            self._reject_excluded(scope)

        result = await self._catalog.list_objects(object_type, database, schema, like, execution)
        if not result.ok:
            raise cli_failure(result, "E2001")

        rows = parse_tabular(result.stdout).rows
        visible = [row for row in rows if not self._row_excluded(row)]
        hidden = len(rows) - len(visible)
        if hidden:
            logger.info(f"Filtered {hidden} excluded {object_type} object(s) from listing")

        return {
            "objects": visible,
            "totalCount": len(visible),
            "_meta": {"objectType": object_type, "scope": scope, "like": like},
        }

    async def describe_object(
        self,
        object_type: str,
        object_name: str,
        database: Optional[str] = None,
        schema: Optional[str] = None,
        execution: Optional[ExecutionOptions] = None,
    ) -> dict[str, Any]:
        """Describe an object's columns or properties."""
        object_type = _validate_object_type(object_type)
        object_name = _require(object_name, "objectName")
        self._reject_excluded(qualified_name(database, schema, object_name))

        result = await self._catalog.describe(object_type, object_name, database, schema, execution)
        if not result.ok:
            raise cli_failure(result, "E2003")

        return {
            "metadata": {"columns": parse_tabular(result.stdout).rows},
            "objectType": object_type,
            "objectName": object_name,
            "database": database,
            "schema": schema,
        }

    async def get_ddl(
        self,
        object_type: str,
        object_name: str,
        database: Optional[str] = None,
        schema: Optional[str] = None,
        execution: Optional[ExecutionOptions] = None,
    ) -> dict[str, Any]:
        """
        Fetch an object's DDL with ``SHOW CREATE``.

        Raises:
            ToolError: EXCLUDED_OBJECT, CLI_ERROR/PERMISSION_DENIED, or
                OBJECT_NOT_FOUND when no DDL text comes back.
        """
        object_type = _require(object_type, "objectType")
        object_name = _require(object_name, "objectName")
        full_name = qualified_name(database, schema, object_name)
        self._reject_excluded(full_name)

        result = await self._catalog.show_create(object_type, full_name, execution)
        if not result.ok:
            raise cli_failure(result, "E2004")

        ddl = extract_ddl(result.stdout)
        if not ddl:
            raise ToolError(
                ErrorKind.OBJECT_NOT_FOUND,
                f"Could not retrieve DDL for {object_type} {object_name}",
                "E2005",
            )

        return {
            "objectType": normalize_object_type(object_type),
            "objectName": object_name,
            "ddl": ddl,
            "database": database,
            "schema": schema,
        }
