"""
Query classifier for the metadata-only proxy.

Labels every SQL statement as metadata, scalar or data. Rules are kept in
an ordered table: the first rule whose pattern matches the trimmed query
decides the label, and anything unmatched is treated as a data query.
"""

import re
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Pattern

from snowproxy.core.models import QueryClassification, QueryType

_FLAGS = re.IGNORECASE | re.DOTALL


@dataclass(frozen=True)
class ClassificationRule:
    """
    A pattern and the query type it assigns.

    An optional ``guard`` must also accept the query for the rule to match.
    """

    pattern: Pattern[str]
    query_type: QueryType
    guard: Optional[Callable[[str], bool]] = None

    @classmethod
    def compile(
        cls,
        source: str,
        query_type: QueryType,
        guard: Optional[Callable[[str], bool]] = None,
    ) -> "ClassificationRule":
        return cls(pattern=re.compile(source, _FLAGS), query_type=query_type, guard=guard)

    def matches(self, query: str) -> bool:
        if self.pattern.search(query) is None:
            return False
        return self.guard is None or self.guard(query)


_SELECT_PREFIX = re.compile(r"^SELECT\s+(?:DISTINCT\s+)?", re.IGNORECASE)
_SELECT_LIST_END = re.compile(
    r"\s(?:FROM|WHERE|GROUP|HAVING|ORDER|LIMIT|QUALIFY|UNION|EXCEPT|MINUS|INTERSECT)\b|;",
    re.IGNORECASE,
)
_AGGREGATE_CALL = re.compile(
    r"(?:COUNT_DISTINCT|COUNT|SUM|AVG|MIN|MAX|SYSTEM\$\w+|CURRENT_\w+|SESSION_\w+)\s*\(",
    re.IGNORECASE,
)
_SESSION_NAME = re.compile(r"(?:CURRENT_|SESSION_)\w+", re.IGNORECASE)
_COLUMN_ALIAS = re.compile(r'\s+(?:AS\s+)?(?:"[^"]+"|[A-Za-z_]\w*)$', re.IGNORECASE)
_ARITHMETIC_ONLY = re.compile(r"^[\s\d.+\-*/()]*$")


def select_list_items(query: str) -> list[str]:
    """
    Split the select list of a ``SELECT`` statement into its items.

    Commas inside parentheses or quotes do not split. Returns an empty list
    when the statement does not start with ``SELECT``.
    """
    match = _SELECT_PREFIX.match(query)
    if match is None:
        return []

    items: list[str] = []
    current: list[str] = []
    depth = 0
    quote: Optional[str] = None
    for pos in range(match.end(), len(query)):
        char = query[pos]
        if quote is not None:
            if char == quote:
                quote = None
        elif char in "'\"":
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif depth == 0 and char == ",":
            items.append("".join(current).strip())
            current = []
            continue
        elif depth == 0 and _SELECT_LIST_END.match(query, pos):
            break
        current.append(char)
    items.append("".join(current).strip())
    return [item for item in items if item]


def _skip_call(item: str, open_paren: int) -> int:
    """Index just past the parenthesis closing the one at ``open_paren``."""
    depth = 0
    quote: Optional[str] = None
    for pos in range(open_paren, len(item)):
        char = item[pos]
        if quote is not None:
            if char == quote:
                quote = None
        elif char in "'\"":
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return pos + 1
    return len(item)


def _is_name_char(char: str) -> bool:
    return char.isalnum() or char in "_$"


def _strip_alias(item: str) -> str:
    """Drop a trailing column alias that follows a complete expression."""
    stripped = item.strip()
    match = _COLUMN_ALIAS.search(stripped)
    if match is None:
        return stripped
    head = stripped[: match.start()].rstrip()
    if head.endswith(")") or _SESSION_NAME.fullmatch(head):
        return head
    return stripped


def is_aggregate_item(item: str) -> bool:
    """
    True if a select item yields no column value.

    The item may combine aggregate or session-function calls with numeric
    literals and arithmetic, and may carry an alias.
    """
    expression = _strip_alias(item)
    if _SESSION_NAME.fullmatch(expression.strip()):
        return True

    remainder: list[str] = []
    pos = 0
    found_call = False
    while pos < len(expression):
        call = _AGGREGATE_CALL.match(expression, pos)
        if call is not None and (pos == 0 or not _is_name_char(expression[pos - 1])):
            pos = _skip_call(expression, call.end() - 1)
            found_call = True
            continue
        remainder.append(expression[pos])
        pos += 1
    return found_call and _ARITHMETIC_ONLY.match("".join(remainder)) is not None


def selects_only_aggregates(query: str) -> bool:
    """True if every item in the select list is an aggregate or session value."""
    items = select_list_items(query)
    return bool(items) and all(is_aggregate_item(item) for item in items)


# Metadata rules come first: a statement that matches both a metadata and a
# scalar rule (SELECT COUNT(*) FROM INFORMATION_SCHEMA.TABLES) is metadata.
METADATA_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule.compile(r"^DESC(?:RIBE)?\s+", QueryType.METADATA),
    ClassificationRule.compile(r"^SHOW\s+", QueryType.METADATA),
    ClassificationRule.compile(r"^LIST\s+", QueryType.METADATA),
    ClassificationRule.compile(r"^SELECT\s+GET_DDL\s*\(", QueryType.METADATA),
    ClassificationRule.compile(
        r'^SELECT\s+.*\s+FROM\s+(?:"?\w+"?\.)?INFORMATION_SCHEMA\b', QueryType.METADATA
    ),
    ClassificationRule.compile(r"^SELECT\s+.*\s+FROM\s+DATA_", QueryType.METADATA),
)

# Scalar rules also require every select item to be an aggregate, so
# ``SELECT COUNT(*), email ... GROUP BY email`` falls through to data.
SCALAR_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule.compile(
        r"^SELECT\s+(?:COUNT|SUM|AVG|MIN|MAX|COUNT_DISTINCT)\s*\(",
        QueryType.SCALAR,
        guard=selects_only_aggregates,
    ),
    ClassificationRule.compile(
        r"^SELECT\s+(?:CURRENT_|SESSION_|SYSTEM\$)",
        QueryType.SCALAR,
        guard=selects_only_aggregates,
    ),
)

DEFAULT_RULES: tuple[ClassificationRule, ...] = METADATA_RULES + SCALAR_RULES


class QueryClassifier:
    """Classifies SQL statements against an ordered rule table."""

    def __init__(self, rules: Iterable[ClassificationRule] = DEFAULT_RULES):
        self._rules = tuple(rules)

    @property
    def rules(self) -> tuple[ClassificationRule, ...]:
        return self._rules

    def classify(self, query: str) -> QueryClassification:
        trimmed = query.strip()

        for rule in self._rules:
            if rule.matches(trimmed):
                return QueryClassification(
                    type=rule.query_type,
                    reason=(
                        f"Query matches {rule.query_type.value} pattern: "
                        f"{rule.pattern.pattern}"
                    ),
                )

        return QueryClassification(
            type=QueryType.DATA,
            reason="Query does not match any known patterns, treating as data query",
        )


_default_classifier = QueryClassifier()


def classify_query(query: str) -> QueryClassification:
    """Classify a query with the default rule table."""
    return _default_classifier.classify(query)


def is_metadata_query(query: str) -> bool:
    return classify_query(query).type is QueryType.METADATA


def is_scalar_query(query: str) -> bool:
    return classify_query(query).type is QueryType.SCALAR


def is_data_query(query: str) -> bool:
    return classify_query(query).type is QueryType.DATA
