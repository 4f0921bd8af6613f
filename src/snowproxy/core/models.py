"""
Guardrail data models.

Value objects produced by the query classifier, the exclusion checker and
the result redactor. All of them are created per call and never persisted.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class QueryType(str, Enum):
    """
    Classification of a SQL statement.

    Inherits from str to enable JSON serialization and string comparison.
    """

    METADATA = "metadata"
    SCALAR = "scalar"
    DATA = "data"


@dataclass(frozen=True)
class QueryClassification:
    """Result of classifying a SQL statement."""

    type: QueryType
    reason: str

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type.value, "reason": self.reason}


@dataclass(frozen=True)
class ExclusionResult:
    """
    Outcome of an exclusion check.

    Attributes:
        is_excluded: True if the name is forbidden by policy.
        matched_pattern: Regex source that matched, or ``objectType:<name>``
            when the name matched a literal excluded object type.
    """

    is_excluded: bool
    matched_pattern: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"isExcluded": self.is_excluded}
        if self.matched_pattern is not None:
            result["matchedPattern"] = self.matched_pattern
        return result


@dataclass(frozen=True)
class ColumnInfo:
    """Name and type of one result column."""

    name: str
    type: str
    nullable: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": self.type, "nullable": self.nullable}


@dataclass(frozen=True)
class RedactedResult:
    """
    Metadata-only view of a query result.

    ``data`` is not a field: it is always the empty list, so no code path
    can construct a RedactedResult that carries rows.
    """

    columns: tuple[ColumnInfo, ...] = field(default_factory=tuple)
    row_count: int = 0

    @property
    def data(self) -> list:
        return []

    def to_dict(self) -> dict[str, Any]:
        return {
            "metadata": {
                "columns": [col.to_dict() for col in self.columns],
                "rowCount": self.row_count,
            },
            "data": [],
        }
