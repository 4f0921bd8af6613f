"""
Property-based tests for the exclusion checker and object name extraction.

**Feature: snow-cli-proxy, Property 3: Exclusion Enforcement**
**Validates: Requirements 3.1, 3.2, 3.3**

**Feature: snow-cli-proxy, Property 4: Reference Extraction Coverage**
**Validates: Requirements 3.4**
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from snowproxy.core.config import ExclusionConfig
from snowproxy.core.exclusion import (
    ExclusionChecker,
    extract_object_names,
    find_excluded_reference,
    normalize_object_name,
)
from tests.sql_strategies import (
    allowed_identifier,
    excluded_identifier,
    keyword_case,
    qualified_name,
)


@pytest.fixture
def checker() -> ExclusionChecker:
    return ExclusionChecker.from_config(ExclusionConfig())


_DEFAULT_CHECKER = ExclusionChecker.from_config(ExclusionConfig())


@given(name=excluded_identifier)
@settings(max_examples=100, deadline=None)
def test_excluded_names_are_reported(name: str):
    """
    **Feature: snow-cli-proxy, Property 3: Exclusion Enforcement**
    **Validates: Requirements 3.1**

    For any name matching a default pattern, check() SHALL report it as
    excluded together with the matching pattern, regardless of case.
    """
    for variant in (name, name.lower()):
        result = _DEFAULT_CHECKER.check(variant)
        assert result.is_excluded
        assert result.matched_pattern in _DEFAULT_CHECKER.patterns


@given(name=allowed_identifier)
@settings(max_examples=100, deadline=None)
def test_allowed_names_pass(name: str):
    """
    **Feature: snow-cli-proxy, Property 3: Exclusion Enforcement**
    **Validates: Requirements 3.1**
    """
    result = _DEFAULT_CHECKER.check(name)

    assert not result.is_excluded
    assert result.matched_pattern is None


@given(
    prefix=st.lists(allowed_identifier, min_size=1, max_size=2),
    name=excluded_identifier,
)
@settings(max_examples=100, deadline=None)
def test_qualified_reference_checks_each_part(prefix: list[str], name: str):
    """
    **Feature: snow-cli-proxy, Property 3: Exclusion Enforcement**
    **Validates: Requirements 3.2**

    A qualified reference whose last part is excluded SHALL be excluded
    even when the full string does not match the anchored pattern.
    """
    reference = ".".join(prefix + [name])

    assert _DEFAULT_CHECKER.check_reference(reference).is_excluded


@given(
    table=excluded_identifier,
    template=st.sampled_from(
        [
            "select * from {t}",
            "select * from allowed, {t}",
            "select * from allowed a, {t} b where a.id = b.id",
            "select count(*) from allowed as a, other o, {t}",
            "select a.id from allowed a join {t} b on a.id = b.id",
            "select * from allowed left outer join {t} on true",
            "insert into {t} values (1)",
            "update {t} set x = 1",
            "create table {t} (id int)",
            "create or replace transient table if not exists {t} as select 1",
            "alter table {t} add column y int",
            "drop table if exists {t}",
            "with q as (select * from {t}) select count(*) from q",
        ]
    ),
    case=keyword_case,
)
@settings(max_examples=100, deadline=None)
def test_excluded_reference_in_any_clause_is_found(table: str, template: str, case):
    """
    **Feature: snow-cli-proxy, Property 4: Reference Extraction Coverage**
    **Validates: Requirements 3.4**

    For any statement referencing an excluded table in a FROM clause or
    comma-separated FROM list, or a JOIN, INTO, UPDATE or CREATE/ALTER/DROP
    TABLE clause, find_excluded_reference SHALL return that table.
    """
    sql = case(template.replace("{t}", "@@")).replace("@@", table)

    blocked = find_excluded_reference(sql, _DEFAULT_CHECKER)

    assert blocked is not None
    assert blocked[0].upper() == table.upper()
    assert blocked[1].is_excluded


@given(tables=st.lists(qualified_name(), min_size=1, max_size=4, unique=True))
@settings(max_examples=100, deadline=None)
def test_extraction_preserves_order_and_dedupes(tables: list[str]):
    """
    **Feature: snow-cli-proxy, Property 4: Reference Extraction Coverage**
    **Validates: Requirements 3.4**

    Names are returned in order of appearance, each once.
    """
    joins = " ".join(f"join {t} on 1 = 1" for t in tables[1:])
    sql = f"select * from {tables[0]} {joins} union all select * from {tables[0]}"

    assert extract_object_names(sql) == tables


class TestExclusionChecker:
    """Unit tests for ExclusionChecker."""

    def test_first_matching_pattern_is_reported(self):
        checker = ExclusionChecker(["_PROD$", "^ORDERS"])

        assert checker.check("ORDERS_PROD").matched_pattern == "_PROD$"

    def test_object_type_literal(self, checker):
        result = checker.check("snapshot")

        assert result.is_excluded
        assert result.matched_pattern == "objectType:snapshot"

    def test_object_type_is_not_a_substring_match(self, checker):
        assert not checker.is_excluded("SNAPSHOTS")

    def test_invalid_pattern_raises_value_error(self):
        with pytest.raises(ValueError, match="Invalid exclusion pattern"):
            ExclusionChecker(["(unclosed"])

    def test_filter_allowed_keeps_order(self, checker):
        names = ["ORDERS", "PROD_USERS", "CUSTOMERS", "LOG_ARCHIVE"]

        assert checker.filter_allowed(names) == ["ORDERS", "CUSTOMERS"]

    def test_empty_configuration_allows_everything(self):
        checker = ExclusionChecker([])

        assert not checker.check_reference("PROD_DB.SYSTEM_SCHEMA.X_BACKUP").is_excluded

    def test_excluded_database_part(self, checker):
        result = checker.check_reference("PROD_DB.PUBLIC.ORDERS")

        assert result.is_excluded
        assert result.matched_pattern == "^PROD_"

    def test_to_dict(self, checker):
        assert checker.check("PROD_X").to_dict() == {
            "isExcluded": True,
            "matchedPattern": "^PROD_",
        }
        assert checker.check("ORDERS").to_dict() == {"isExcluded": False}


class TestExtraction:
    """Unit tests for extract_object_names."""

    def test_quoted_and_spaced_names_are_normalized(self):
        sql = 'SELECT * FROM "ANALYTICS" . "PUBLIC"."ORDERS"'

        assert extract_object_names(sql) == ["ANALYTICS.PUBLIC.ORDERS"]

    def test_backtick_names(self):
        assert extract_object_names("select * from `db`.`t`") == ["db.t"]

    def test_no_references(self):
        assert extract_object_names("SELECT CURRENT_USER()") == []

    def test_multiple_clauses(self):
        sql = (
            "INSERT INTO audit SELECT o.id FROM orders o "
            "INNER JOIN customers c ON c.id = o.cid"
        )

        assert extract_object_names(sql) == ["audit", "orders", "customers"]

    def test_normalize_object_name(self):
        assert normalize_object_name(' "DB" .  schema . `T` ') == "DB.schema.T"
        assert normalize_object_name('""') == ""

    def test_find_excluded_reference_none_when_clean(self, checker):
        assert find_excluded_reference("SELECT * FROM orders", checker) is None

    def test_comma_separated_from_list(self):
        sql = "SELECT * FROM orders o, db.s.customers AS c, PROD_USERS u WHERE o.id = u.id"

        assert extract_object_names(sql) == ["orders", "db.s.customers", "PROD_USERS"]

    def test_from_list_stops_at_clause_keywords(self):
        sql = "SELECT * FROM orders WHERE id IN (1, 2) GROUP BY a, b ORDER BY a, b"

        assert extract_object_names(sql) == ["orders"]

    def test_lateral_flatten_is_not_a_reference(self):
        sql = "SELECT f.value FROM orders o, LATERAL FLATTEN(input => o.items) f"

        assert extract_object_names(sql) == ["orders"]
