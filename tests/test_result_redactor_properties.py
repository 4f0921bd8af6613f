"""
Property-based tests for the result redactor.

**Feature: snow-cli-proxy, Property 5: Row Data Never Returned**
**Validates: Requirements 4.1, 4.2, 4.3**
"""

import json

from hypothesis import given, settings
from hypothesis import strategies as st

from snowproxy.core.models import ColumnInfo, RedactedResult
from snowproxy.core.result_redactor import (
    PARSE_FAILURE,
    REDACTED,
    json_type_name,
    redact_json_result,
    redact_result,
)

# A marker that must never leak through redaction
SECRET = "s3cr3t-row-value"

column_name = st.from_regex(r"[A-Z][A-Z_]{0,10}", fullmatch=True)

cell_value = st.one_of(
    st.just(SECRET),
    st.integers(),
    st.booleans(),
    st.none(),
    st.text(max_size=20).map(lambda s: SECRET + s),
)


@st.composite
def row_strategy(draw, columns):
    return {column: draw(cell_value) for column in columns}


@st.composite
def rows_strategy(draw):
    columns = draw(st.lists(column_name, min_size=1, max_size=5, unique=True))
    return draw(st.lists(row_strategy(columns), min_size=0, max_size=20))


@st.composite
def envelope_strategy(draw):
    rows = draw(rows_strategy())
    row_key = draw(st.sampled_from(["rows", "data"]))
    envelope = {row_key: rows}
    if draw(st.booleans()) and rows:
        envelope[draw(st.sampled_from(["columns", "schema"]))] = [
            {"name": name, "type": "VARCHAR", "nullable": False} for name in rows[0]
        ]
    return envelope


@given(rows=rows_strategy())
@settings(max_examples=100, deadline=None)
def test_row_list_is_reduced_to_metadata(rows: list[dict]):
    """
    **Feature: snow-cli-proxy, Property 5: Row Data Never Returned**
    **Validates: Requirements 4.1**

    For any list of rows, the redacted envelope SHALL carry the row count
    and the column names of the first row, and an empty data list.
    """
    redacted = redact_json_result(json.dumps(rows))

    assert redacted["data"] == []
    assert redacted["metadata"]["rowCount"] == len(rows)
    expected_names = list(rows[0]) if rows else []
    assert [c["name"] for c in redacted["metadata"]["columns"]] == expected_names
    assert SECRET not in json.dumps(redacted)


@given(envelope=envelope_strategy())
@settings(max_examples=100, deadline=None)
def test_result_envelope_is_reduced_to_metadata(envelope: dict):
    """
    **Feature: snow-cli-proxy, Property 5: Row Data Never Returned**
    **Validates: Requirements 4.2**
    """
    redacted = redact_json_result(json.dumps(envelope))
    rows = envelope.get("rows", envelope.get("data"))

    assert redacted["data"] == []
    assert redacted["metadata"]["rowCount"] == len(rows)
    assert SECRET not in json.dumps(redacted)


@given(text=st.text(max_size=200))
@settings(max_examples=100, deadline=None)
def test_arbitrary_text_never_raises(text: str):
    """
    **Feature: snow-cli-proxy, Property 5: Row Data Never Returned**
    **Validates: Requirements 4.3**

    For any text, redaction SHALL return a dict and never echo the input.
    """
    redacted = redact_json_result(SECRET + text)

    assert isinstance(redacted, dict)
    assert SECRET not in json.dumps(redacted)


class TestRedactResult:
    """Unit tests for redact_result."""

    def test_unparseable_text_gives_placeholder(self):
        assert redact_json_result("not json {") == PARSE_FAILURE

    def test_primitive_gives_redacted_value(self):
        assert redact_json_result('"secret"') == {"value": REDACTED}
        assert redact_json_result("42") == {"value": REDACTED}

    def test_single_row_mapping(self):
        result = redact_result({"ID": 1, "NAME": "x", "ACTIVE": True, "NOTE": None})

        assert result.row_count == 1
        assert [(c.name, c.type) for c in result.columns] == [
            ("ID", "number"),
            ("NAME", "string"),
            ("ACTIVE", "boolean"),
            ("NOTE", "null"),
        ]

    def test_explicit_columns_take_precedence(self):
        raw = {
            "columns": [{"name": "ID", "type": "NUMBER", "nullable": False}],
            "rows": [{"ID": 1}, {"ID": 2}],
        }

        result = redact_result(raw)

        assert result.columns == (ColumnInfo(name="ID", type="NUMBER", nullable=False),)
        assert result.row_count == 2

    def test_declared_row_count_without_rows(self):
        result = redact_result({"columns": [], "rowCount": 12})

        assert result.row_count == 12

    def test_none_gives_empty_result(self):
        assert redact_result(None) == RedactedResult()

    def test_data_is_always_empty(self):
        result = RedactedResult(columns=(ColumnInfo("A", "string"),), row_count=3)

        assert result.data == []
        assert result.to_dict()["data"] == []

    def test_json_type_names(self):
        assert json_type_name([1]) == "array"
        assert json_type_name({"a": 1}) == "object"
        assert json_type_name(1.5) == "number"
