"""
Query Service for snowproxy.

Gates SQL statements through the exclusion checker and the query
classifier before execution, and redacts row data from what comes back.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from snowproxy.core.exclusion import ExclusionChecker, find_excluded_reference
from snowproxy.core.models import QueryType
from snowproxy.core.query_classifier import QueryClassifier
from snowproxy.core.result_redactor import redact_json_result
from snowproxy.infrastructure.executor import ExecutionOptions
from snowproxy.infrastructure.object_catalog import ObjectCatalog
from snowproxy.infrastructure.output_parser import count_result_rows
from snowproxy.services.errors import (
    ErrorKind,
    ToolError,
    cli_failure,
    excluded_error,
)

logger = logging.getLogger(__name__)

_LIMIT_CLAUSE = re.compile(r"\bLIMIT\s+\d+", re.IGNORECASE)

JSON_FORMAT = "JSON"


def add_limit_if_needed(query: str, limit: int) -> str:
    """Append ``LIMIT n`` unless the statement already has a LIMIT clause."""
    if _LIMIT_CLAUSE.search(query):
        return query
    stripped = query.rstrip().rstrip(";").rstrip()
    return f"{stripped} LIMIT {limit}"


@dataclass(frozen=True)
class QueryOutcome:
    """Response of ``execute_sql``/``execute_scalar``."""

    result: Any
    query_type: QueryType
    row_count: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"result": self.result, "queryType": self.query_type.value}
        if self.row_count is not None:
            payload["rowCount"] = self.row_count
        return payload


class QueryService:
    """Service for executing SQL through the metadata-only guardrail."""

    def __init__(
        self,
        catalog: ObjectCatalog,
        checker: ExclusionChecker,
        classifier: Optional[QueryClassifier] = None,
        max_scalar_rows: int = 1000,
    ):
        self._catalog = catalog
        self._checker = checker
        self._classifier = classifier or QueryClassifier()
        self._max_scalar_rows = max_scalar_rows

    def _check_references(self, query: str) -> None:
        blocked = find_excluded_reference(query, self._checker)
        if blocked is not None:
            name, result = blocked
            raise excluded_error(name, result.matched_pattern, "E1001")

    async def execute_sql(
        self, query: str, execution: Optional[ExecutionOptions] = None
    ) -> QueryOutcome:
        """
        Execute a statement and return its redacted result.

        Metadata and data results are reduced to column metadata and a
        row count; scalar results are returned as the CLI printed them.

        Raises:
            ToolError: INVALID_INPUT for an empty query, EXCLUDED_OBJECT if
                any referenced object is excluded, CLI_ERROR or
                PERMISSION_DENIED if the CLI fails.
        """
        if not query or not query.strip():
            raise ToolError(ErrorKind.INVALID_INPUT, "query must not be empty", "E1000")

        self._check_references(query)
        classification = self._classifier.classify(query)

        result = await self._catalog.run_sql(query, execution, output_format=JSON_FORMAT)
        if not result.ok:
            raise cli_failure(result, "E1002")

        logger.info(
            "Executed query",
            extra={"query_type": classification.type.value},
        )

        if classification.type is QueryType.SCALAR:
            return QueryOutcome(result=result.stdout, query_type=classification.type)

        return QueryOutcome(
            result=redact_json_result(result.stdout), query_type=classification.type
        )

    async def execute_scalar(
        self,
        query: str,
        limit: int = 100,
        execution: Optional[ExecutionOptions] = None,
    ) -> QueryOutcome:
        """
        Execute an aggregate or session-function query.

        The statement must classify as scalar. A LIMIT of
        ``min(limit, max_scalar_rows)`` is appended when absent.

        Raises:
            ToolError: INVALID_INPUT for an empty or non-scalar query or a
                limit below 1, EXCLUDED_OBJECT, CLI_ERROR, PERMISSION_DENIED.
        """
        if not query or not query.strip():
            raise ToolError(ErrorKind.INVALID_INPUT, "query must not be empty", "E1000")
        if limit < 1:
            raise ToolError(ErrorKind.INVALID_INPUT, "limit must be at least 1", "E1000")

        self._check_references(query)

        classification = self._classifier.classify(query)
        if classification.type is not QueryType.SCALAR:
            logger.info(
                "Rejected non-scalar query on scalar path",
                extra={"query_type": classification.type.value},
            )
            raise ToolError(
                ErrorKind.INVALID_INPUT,
                f"Query is classified as {classification.type.value}, not scalar; "
                "use execute_sql instead",
                "E1003",
            )

        limited = add_limit_if_needed(query, min(limit, self._max_scalar_rows))
        result = await self._catalog.run_sql(limited, execution, output_format=JSON_FORMAT)
        if not result.ok:
            raise cli_failure(result, "E1002")

        return QueryOutcome(
            result=result.stdout,
            query_type=QueryType.SCALAR,
            row_count=count_result_rows(result.stdout),
        )
