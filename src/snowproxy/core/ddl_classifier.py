"""
DDL statement classification.

Identifies the kind of CREATE/ALTER/DROP statement, the objects it
targets, and whether it is destructive.
"""

import re
from dataclasses import dataclass
from typing import Pattern

from snowproxy.core.exclusion import normalize_object_name

UNKNOWN_DDL = "UNKNOWN"

_OR_REPLACE = r"(?:OR\s+REPLACE\s+)?"
_TABLE_KIND = r"(?:(?:LOCAL\s+|GLOBAL\s+)?(?:TEMPORARY|TEMP|TRANSIENT|VOLATILE)\s+)?"
_SECURE = r"(?:SECURE\s+)?"


@dataclass(frozen=True)
class DDLRule:
    ddl_type: str
    pattern: Pattern[str]


def _rule(ddl_type: str, source: str) -> DDLRule:
    return DDLRule(ddl_type=ddl_type, pattern=re.compile(rf"^\s*{source}\b", re.IGNORECASE))


# Anchored at the start of the statement, checked in order.
DDL_RULES: tuple[DDLRule, ...] = (
    _rule("CREATE_TABLE", rf"CREATE\s+{_OR_REPLACE}{_TABLE_KIND}TABLE"),
    _rule("CREATE_VIEW", rf"CREATE\s+{_OR_REPLACE}{_SECURE}(?:RECURSIVE\s+)?VIEW"),
    _rule("CREATE_MATERIALIZED_VIEW", rf"CREATE\s+{_OR_REPLACE}{_SECURE}MATERIALIZED\s+VIEW"),
    _rule("CREATE_FUNCTION", rf"CREATE\s+{_OR_REPLACE}{_SECURE}FUNCTION"),
    _rule("CREATE_PROCEDURE", rf"CREATE\s+{_OR_REPLACE}PROCEDURE"),
    _rule("CREATE_SCHEMA", rf"CREATE\s+{_OR_REPLACE}(?:TRANSIENT\s+)?SCHEMA"),
    _rule("CREATE_DATABASE", rf"CREATE\s+{_OR_REPLACE}(?:TRANSIENT\s+)?DATABASE"),
    _rule("CREATE_TASK", rf"CREATE\s+{_OR_REPLACE}TASK"),
    _rule("CREATE_STAGE", rf"CREATE\s+{_OR_REPLACE}(?:TEMPORARY\s+)?STAGE"),
    _rule("ALTER_TABLE", r"ALTER\s+TABLE"),
    _rule("ALTER_VIEW", r"ALTER\s+(?:MATERIALIZED\s+)?VIEW"),
    _rule("ALTER_SCHEMA", r"ALTER\s+SCHEMA"),
    _rule("ALTER_TASK", r"ALTER\s+TASK"),
    _rule("DROP_TABLE", r"DROP\s+TABLE"),
    _rule("DROP_VIEW", r"DROP\s+(?:MATERIALIZED\s+)?VIEW"),
    _rule("DROP_FUNCTION", r"DROP\s+FUNCTION"),
    _rule("DROP_PROCEDURE", r"DROP\s+PROCEDURE"),
    _rule("DROP_SCHEMA", r"DROP\s+SCHEMA"),
    _rule("DROP_DATABASE", r"DROP\s+DATABASE"),
    _rule("DROP_TASK", r"DROP\s+TASK"),
    _rule("DROP_STAGE", r"DROP\s+STAGE"),
)

_OBJECT_KEYWORDS = (
    r"(?:TABLE|(?:MATERIALIZED\s+)?VIEW|FUNCTION|PROCEDURE|SCHEMA|DATABASE|TASK|STAGE)"
)
_NAME = r'((?:"[^"]+"|`[^`]+`|[A-Za-z0-9_$]+)(?:\.(?:"[^"]+"|`[^`]+`|[A-Za-z0-9_$]+)){0,2})'

_DDL_TARGET = re.compile(
    rf"\b(?:CREATE|ALTER|DROP)\s+{_OR_REPLACE}{_TABLE_KIND}{_SECURE}(?:RECURSIVE\s+)?"
    rf"{_OBJECT_KEYWORDS}\s+(?:IF\s+(?:NOT\s+)?EXISTS\s+)?{_NAME}",
    re.IGNORECASE,
)

DESTRUCTIVE_PATTERNS: tuple[Pattern[str], ...] = (
    re.compile(
        r"\bDROP\s+(?:TABLE|VIEW|DATABASE|SCHEMA|WAREHOUSE|ROLE|USER|STAGE|FUNCTION|PROCEDURE|TASK)\b",
        re.IGNORECASE,
    ),
    re.compile(r"\bTRUNCATE\s+TABLE\b", re.IGNORECASE),
    re.compile(r"\bDELETE\s+FROM\b", re.IGNORECASE),
    re.compile(r"\bALTER\s+TABLE\b", re.IGNORECASE),
    re.compile(r"\bMERGE\s+INTO\b", re.IGNORECASE),
)


def classify_ddl(ddl: str) -> str:
    """Return the DDL type (e.g. ``CREATE_TABLE``) or ``UNKNOWN``."""
    for rule in DDL_RULES:
        if rule.pattern.search(ddl):
            return rule.ddl_type
    return UNKNOWN_DDL


def extract_ddl_targets(ddl: str) -> list[str]:
    """Return the objects created, altered or dropped by ``ddl``."""
    targets: list[str] = []
    for match in _DDL_TARGET.finditer(ddl):
        name = normalize_object_name(match.group(1))
        if name and name not in targets:
            targets.append(name)
    return targets


def is_destructive(sql: str) -> bool:
    """True if the statement drops, truncates, deletes, alters or merges."""
    return any(pattern.search(sql) for pattern in DESTRUCTIVE_PATTERNS)
