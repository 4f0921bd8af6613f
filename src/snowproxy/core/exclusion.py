"""
Exclusion checker and object name extraction.

The exclusion checker decides whether an object name is forbidden by
policy. The extractor pulls every object reference out of a SQL statement
so that each one can be checked before the statement is executed; a clause
it does not cover is a clause through which an excluded object can be read.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Pattern

from snowproxy.core.config import ExclusionConfig
from snowproxy.core.models import ExclusionResult

logger = logging.getLogger(__name__)

_QUOTE_CHARS = "\"`'"


class ExclusionChecker:
    """
    Matches object names against exclusion patterns and object types.

    Patterns are tried in configuration order, case-insensitively, and the
    first match is reported. Names that match no pattern are then compared
    (upper-cased) against the literal excluded object types.
    """

    def __init__(self, patterns: Iterable[str | Pattern[str]], object_types: Iterable[str] = ()):
        """
        Args:
            patterns: Regex sources (compiled case-insensitive) or precompiled patterns.
            object_types: Literal object type tokens, compared case-insensitively.

        Raises:
            ValueError: If a pattern source is not a valid regular expression.
        """
        compiled: list[Pattern[str]] = []
        for pattern in patterns:
            if isinstance(pattern, re.Pattern):
                compiled.append(pattern)
                continue
            try:
                compiled.append(re.compile(pattern, re.IGNORECASE))
            except re.error as e:
                raise ValueError(f"Invalid exclusion pattern {pattern!r}: {e}") from e
        self._patterns: tuple[Pattern[str], ...] = tuple(compiled)
        self._object_types = frozenset(t.upper() for t in object_types)

    @classmethod
    def from_config(cls, config: ExclusionConfig) -> "ExclusionChecker":
        return cls(config.patterns, config.object_types)

    @property
    def patterns(self) -> tuple[str, ...]:
        return tuple(p.pattern for p in self._patterns)

    def check(self, object_name: str) -> ExclusionResult:
        for pattern in self._patterns:
            if pattern.search(object_name):
                return ExclusionResult(is_excluded=True, matched_pattern=pattern.pattern)

        if object_name.upper() in self._object_types:
            return ExclusionResult(is_excluded=True, matched_pattern=f"objectType:{object_name}")

        return ExclusionResult(is_excluded=False)

    def is_excluded(self, object_name: str) -> bool:
        return self.check(object_name).is_excluded

    def check_reference(self, reference: str) -> ExclusionResult:
        """
        Check a possibly qualified reference and each of its name parts.

        ``analytics.public.PROD_ORDERS`` is excluded by ``^PROD_`` through
        its last part even though the full string does not start with it.
        """
        result = self.check(reference)
        if result.is_excluded:
            return result

        parts = [p for p in reference.split(".") if p]
        if len(parts) > 1:
            for part in parts:
                result = self.check(part)
                if result.is_excluded:
                    return result

        return ExclusionResult(is_excluded=False)

    def filter_allowed(self, names: Iterable[str]) -> list[str]:
        """Return the names that are not excluded, in input order."""
        return [name for name in names if not self.is_excluded(name)]


# Identifier: bare word or quoted segment, optionally dotted (db.schema.table)
_SEGMENT = r'(?:"[^"]+"|`[^`]+`|[A-Za-z0-9_$]+)'
_IDENTIFIER = rf"({_SEGMENT}(?:\s*\.\s*{_SEGMENT})*)"


@dataclass(frozen=True)
class ClauseExtractor:
    """
    A named clause pattern whose first group is an object reference.

    When ``takes_list`` is set the clause accepts a comma-separated list
    (``FROM a x, b y``) and every reference in the list is extracted.
    """

    clause: str
    pattern: Pattern[str]
    takes_list: bool = False


def _extractor(clause: str, prefix: str, takes_list: bool = False) -> ClauseExtractor:
    return ClauseExtractor(
        clause=clause,
        pattern=re.compile(rf"\b{prefix}\s+{_IDENTIFIER}", re.IGNORECASE),
        takes_list=takes_list,
    )


# Optional alias of the previous list item, a comma, then the next reference
_LIST_CONTINUATION = re.compile(
    rf"(?:\s+(?:AS\s+)?(?!(?:AS|ON|USING|WHERE|JOIN)\b)[A-Za-z_][A-Za-z0-9_$]*)?\s*,\s*"
    rf"(?!(?:LATERAL|TABLE)\b){_IDENTIFIER}",
    re.IGNORECASE,
)


CLAUSE_EXTRACTORS: tuple[ClauseExtractor, ...] = (
    _extractor("from", r"FROM", takes_list=True),
    _extractor(
        "join",
        r"(?:(?:INNER|CROSS|NATURAL|(?:LEFT|RIGHT|FULL)(?:\s+OUTER)?)\s+)?JOIN",
    ),
    _extractor("into", r"INTO"),
    _extractor(
        "create_table",
        r"CREATE\s+(?:OR\s+REPLACE\s+)?(?:(?:LOCAL\s+|GLOBAL\s+)?(?:TEMPORARY|TEMP|TRANSIENT|VOLATILE)\s+)?"
        r"TABLE(?:\s+IF\s+NOT\s+EXISTS)?",
    ),
    _extractor("alter_table", r"ALTER\s+TABLE(?:\s+IF\s+EXISTS)?"),
    _extractor("drop_table", r"DROP\s+TABLE(?:\s+IF\s+EXISTS)?"),
    _extractor("update", r"UPDATE"),
)


def normalize_object_name(raw: str) -> str:
    """Strip quoting characters and whitespace around dots."""
    parts = [part.strip().strip(_QUOTE_CHARS) for part in raw.split(".")]
    return ".".join(part for part in parts if part)


def extract_object_names(
    sql: str, extractors: Iterable[ClauseExtractor] = CLAUSE_EXTRACTORS
) -> list[str]:
    """
    Extract referenced object names from a SQL statement.

    Matches from every clause extractor are merged in order of appearance
    in the text, unquoted, and deduplicated keeping the first occurrence.

    Args:
        sql: One or more SQL statements.
        extractors: Clause extractors to apply.

    Returns:
        Ordered list of distinct object names.
    """
    found: list[tuple[int, str]] = []
    for extractor in extractors:
        for match in extractor.pattern.finditer(sql):
            name = normalize_object_name(match.group(1))
            if name:
                found.append((match.start(1), name))
            if not extractor.takes_list:
                continue
            more = _LIST_CONTINUATION.match(sql, match.end())
            while more is not None:
                name = normalize_object_name(more.group(1))
                if name:
                    found.append((more.start(1), name))
                more = _LIST_CONTINUATION.match(sql, more.end())

    found.sort(key=lambda item: item[0])

    names: list[str] = []
    seen: set[str] = set()
    for _, name in found:
        if name not in seen:
            seen.add(name)
            names.append(name)
    return names


def find_excluded_reference(
    sql: str, checker: ExclusionChecker
) -> tuple[str, ExclusionResult] | None:
    """
    Return the first object referenced by ``sql`` that is excluded.

    Returns:
        ``(object_name, result)`` for the first excluded reference, or None.
    """
    for name in extract_object_names(sql):
        result = checker.check_reference(name)
        if result.is_excluded:
            logger.info(
                "Blocked reference to excluded object",
                extra={"object_name": name, "matched_pattern": result.matched_pattern},
            )
            return name, result
    return None
