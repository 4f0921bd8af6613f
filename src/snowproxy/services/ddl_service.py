"""
DDL Service for snowproxy.

Executes a single CREATE, ALTER or DROP statement after checking every
object it names or reads from against the exclusion policy.
"""

import logging
import re
from typing import Any, Optional

from snowproxy.core.ddl_classifier import (
    UNKNOWN_DDL,
    classify_ddl,
    extract_ddl_targets,
    is_destructive,
)
from snowproxy.core.exclusion import ExclusionChecker, extract_object_names
from snowproxy.infrastructure.executor import ExecutionOptions
from snowproxy.infrastructure.object_catalog import ObjectCatalog
from snowproxy.services.errors import (
    ErrorKind,
    ToolError,
    excluded_error,
    is_not_found,
    is_permission_denied,
)

logger = logging.getLogger(__name__)

DESTRUCTIVE_WARNING = (
    "DDL contained potentially dangerous operations (DROP/TRUNCATE/DELETE/ALTER/MERGE)"
)

_DOLLAR_BODY = re.compile(r"\$\$.*?\$\$", re.DOTALL)
_STRING_LITERAL = re.compile(r"'(?:[^']|'')*'")


def has_multiple_statements(sql: str) -> bool:
    """True if ``sql`` has a statement separator outside bodies and literals."""
    stripped = _STRING_LITERAL.sub("''", _DOLLAR_BODY.sub("$$$$", sql))
    return ";" in stripped.strip().rstrip(";")


class DDLService:
    """Service for executing DDL statements behind the exclusion policy."""

    def __init__(self, catalog: ObjectCatalog, checker: ExclusionChecker):
        self._catalog = catalog
        self._checker = checker

    def referenced_objects(self, ddl: str) -> list[str]:
        """Objects the statement creates, alters, drops or reads from."""
        names = extract_ddl_targets(ddl)
        for name in extract_object_names(ddl):
            if name not in names:
                names.append(name)
        return names

    async def execute_ddl(
        self, ddl: str, execution: Optional[ExecutionOptions] = None
    ) -> dict[str, Any]:
        """
        Execute one DDL statement.

        Returns:
            ``{"success", "ddlType", "objectNames", "message"}`` plus
            ``output`` and ``warning`` when present.

        Raises:
            ToolError: INVALID_INPUT for empty, unrecognized or multi-statement
                input; EXCLUDED_OBJECT; OBJECT_NOT_FOUND; PERMISSION_DENIED;
                DDL_EXECUTION_ERROR for any other failure.
        """
        if not ddl or not ddl.strip():
            raise ToolError(ErrorKind.INVALID_INPUT, "ddl must not be empty", "E6000")

        ddl_type = classify_ddl(ddl)
        if ddl_type == UNKNOWN_DDL:
            raise ToolError(
                ErrorKind.INVALID_INPUT,
                "Statement is not a supported CREATE, ALTER or DROP statement",
                "E6000",
            )
        if has_multiple_statements(ddl):
            raise ToolError(
                ErrorKind.INVALID_INPUT, "Only one DDL statement may be executed per call", "E6000"
            )

        object_names = self.referenced_objects(ddl)
        for name in object_names:
            exclusion = self._checker.check_reference(name)
            if exclusion.is_excluded:
                logger.info(
                    f"Blocked {ddl_type} referencing excluded object {name}",
                    extra={"matched_pattern": exclusion.matched_pattern},
                )
                raise excluded_error(name, exclusion.matched_pattern, "E6001")

        destructive = is_destructive(ddl)
        if destructive:
            logger.warning(f"Executing destructive DDL {ddl_type}", extra={"objects": object_names})

        result = await self._catalog.run_sql(ddl, execution)
        if not result.ok:
            message = (result.stderr or result.stdout).strip() or "Unknown error"
            if is_not_found(result):
                raise ToolError(ErrorKind.OBJECT_NOT_FOUND, message, "E6002")
            if is_permission_denied(result):
                raise ToolError(ErrorKind.PERMISSION_DENIED, message, "E6003")
            if result.timed_out:
                raise ToolError(ErrorKind.DDL_EXECUTION_ERROR, message, "E6005")
            raise ToolError(ErrorKind.DDL_EXECUTION_ERROR, message, "E6004")

        logger.info(f"Executed {ddl_type}", extra={"objects": object_names})

        response: dict[str, Any] = {
            "success": True,
            "ddlType": ddl_type,
            "objectNames": object_names,
            "message": "DDL executed successfully",
        }
        output = result.stdout.strip()
        if output:
            response["output"] = output
        if destructive:
            response["warning"] = DESTRUCTIVE_WARNING
        return response
