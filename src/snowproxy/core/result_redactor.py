"""
Result redactor for the metadata-only proxy.

Turns a raw query result into column metadata and a row count. Row values
never survive redaction: every path returns an envelope whose ``data`` is
empty, and malformed input degrades to a redacted placeholder instead of
raising.
"""

import json
from collections.abc import Mapping, Sequence
from typing import Any

from snowproxy.core.models import ColumnInfo, RedactedResult

REDACTED = "[REDACTED]"

PARSE_FAILURE = {"error": "Failed to parse result", "raw": REDACTED}

_ROW_KEYS = ("rows", "data")
_COLUMN_KEYS = ("columns", "schema")


def json_type_name(value: Any) -> str:
    """Return the JSON type name of a decoded value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    return "object"


def infer_columns(row: Any) -> tuple[ColumnInfo, ...]:
    """Infer column metadata from the keys and value types of one row."""
    if not isinstance(row, Mapping):
        return ()
    return tuple(
        ColumnInfo(name=str(name), type=json_type_name(value), nullable=True)
        for name, value in row.items()
    )


def _explicit_columns(raw: Mapping) -> tuple[ColumnInfo, ...] | None:
    for key in _COLUMN_KEYS:
        columns = raw.get(key)
        if isinstance(columns, Sequence) and not isinstance(columns, (str, bytes)):
            return tuple(
                ColumnInfo(
                    name=str(col.get("name", "")),
                    type=str(col.get("type", "unknown")),
                    nullable=bool(col.get("nullable", True)),
                )
                for col in columns
                if isinstance(col, Mapping)
            )
    return None


def _row_source(raw: Mapping) -> list | None:
    for key in _ROW_KEYS:
        rows = raw.get(key)
        if isinstance(rows, list):
            return rows
    return None


def _is_result_envelope(raw: Mapping) -> bool:
    return any(key in raw for key in _COLUMN_KEYS + _ROW_KEYS)


def redact_result(raw: Any) -> RedactedResult:
    """
    Reduce a decoded result to its metadata.

    Args:
        raw: A list of rows, a result envelope with ``columns``/``schema``
            and ``rows``/``data``, a single row mapping, or None.

    Returns:
        RedactedResult whose ``data`` is always empty.
    """
    if isinstance(raw, list):
        first = raw[0] if raw else None
        return RedactedResult(columns=infer_columns(first), row_count=len(raw))

    if isinstance(raw, Mapping):
        if not _is_result_envelope(raw):
            return RedactedResult(columns=infer_columns(raw), row_count=1)

        rows = _row_source(raw)
        columns = _explicit_columns(raw)
        if columns is None:
            columns = infer_columns(rows[0]) if rows else ()

        if rows is not None:
            row_count = len(rows)
        else:
            declared = raw.get("rowCount")
            row_count = declared if isinstance(declared, int) and not isinstance(declared, bool) else 0

        return RedactedResult(columns=columns, row_count=row_count)

    return RedactedResult()


def redact_json_result(text: str) -> dict[str, Any]:
    """
    Parse JSON query output and return its redacted envelope.

    Never raises: unparseable text yields a parse-failure placeholder and a
    JSON primitive yields ``{"value": "[REDACTED]"}``.
    """
    try:
        parsed = json.loads(text)
    except (TypeError, ValueError, RecursionError):
        return dict(PARSE_FAILURE)

    if isinstance(parsed, (list, dict)):
        return redact_result(parsed).to_dict()

    return {"value": REDACTED}
