"""Parsing of snow CLI text output."""

import json
from dataclasses import dataclass, field
from typing import Optional

_DDL_COLUMNS = ("body", "ddl", "statement")


@dataclass
class TabularOutput:
    """Tab-separated CLI output split into lower-cased headers and row dicts."""

    headers: list[str] = field(default_factory=list)
    rows: list[dict[str, str]] = field(default_factory=list)


def _lines(stdout: str) -> list[str]:
    return [line for line in stdout.strip().split("\n") if line]


def parse_tabular(stdout: str) -> TabularOutput:
    """
    Parse tab-separated output whose first line is the header.

    Missing trailing values become empty strings.
    """
    lines = _lines(stdout)
    if not lines:
        return TabularOutput()

    headers = [h.strip().lower() for h in lines[0].split("\t")]
    rows = []
    for line in lines[1:]:
        values = line.split("\t")
        rows.append(
            {
                header: values[i].strip() if i < len(values) else ""
                for i, header in enumerate(headers)
            }
        )
    return TabularOutput(headers=headers, rows=rows)


def _ddl_from_json(stdout: str) -> Optional[str]:
    """DDL text from ``--format JSON`` output, or None when it is not JSON rows."""
    try:
        parsed = json.loads(stdout)
    except (TypeError, ValueError, RecursionError):
        return None
    if isinstance(parsed, dict):
        parsed = [parsed]
    if not isinstance(parsed, list):
        return None
    if not parsed or not isinstance(parsed[0], dict) or not parsed[0]:
        return ""

    row = parsed[0]
    value = next((v for k, v in row.items() if str(k).lower() in _DDL_COLUMNS), None)
    if value is None:
        value = list(row.values())[-1]
    return "" if value is None else str(value).strip()


def extract_ddl(stdout: str) -> str:
    """
    Extract DDL text from ``SHOW CREATE`` output.

    JSON output yields the ``body``, ``ddl`` or ``statement`` field of the
    first row, else its last field. For text output a single line yields
    its last column; otherwise the ``body``, ``ddl`` or ``statement`` column
    of the first tab-separated data row is used, and when no such header
    exists all lines after the header are joined. A DDL column that is the
    last column keeps the continuation lines that follow it, up to the next
    tab-separated row.

    Returns:
        The DDL text, or an empty string when nothing could be extracted.
    """
    from_json = _ddl_from_json(stdout)
    if from_json is not None:
        return from_json

    lines = _lines(stdout)
    if not lines:
        return ""

    if len(lines) == 1:
        return lines[0].split("\t")[-1].strip()

    headers = [h.strip().lower() for h in lines[0].split("\t")]
    body_idx = next((i for i, h in enumerate(headers) if h in _DDL_COLUMNS), -1)

    if body_idx < 0:
        return "\n".join(lines[1:]).strip()

    # Blank lines inside a multi-line body are kept
    raw = stdout.strip().split("\n")
    start = next((i for i in range(1, len(raw)) if "\t" in raw[i]), None)
    if start is None:
        return ""
    values = raw[start].split("\t", len(headers) - 1)
    if body_idx >= len(values):
        return ""

    body = [values[body_idx]]
    if body_idx == len(headers) - 1:
        for line in raw[start + 1 :]:
            if "\t" in line:
                break
            body.append(line)
    return "\n".join(body).strip()


def count_result_rows(stdout: str) -> int:
    """
    Count rows in CLI output.

    A JSON array counts its elements and any other JSON value counts as
    one row; unparseable output counts its non-empty lines.
    """
    try:
        parsed = json.loads(stdout)
    except (TypeError, ValueError, RecursionError):
        return len(_lines(stdout))
    if isinstance(parsed, list):
        return len(parsed)
    return 1
