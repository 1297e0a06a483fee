"""Tests for the CQL subset translator."""

import uuid
from datetime import datetime

import pytest

from sqlalchemy.sql.elements import True_

from batch_print.core.exceptions import QueryError
from batch_print.db.cql import tokenize, translate
from batch_print.db.repositories.print_repository import print_entry_definition


@pytest.fixture
def definition():
    return print_entry_definition()


def sql(clause) -> str:
    return str(clause.compile())


def params(clause) -> dict:
    return clause.compile().params


class TestTokenize:
    def test_relations_without_spaces(self):
        tokens = tokenize("created>=2024-01-01T10:00:00")
        assert [t.kind for t in tokens] == ["word", "relation", "word"]
        assert tokens[1].text == ">="

    def test_quoted_value_keeps_escapes(self):
        tokens = tokenize(r'sortingField="a \"b\""')
        assert tokens[2].kind == "quoted"
        assert tokens[2].text == r'a \"b\"'

    def test_unterminated_quote(self):
        with pytest.raises(QueryError):
            tokenize('type="SINGLE')


class TestFilter:
    def test_no_query_matches_everything(self, definition):
        assert isinstance(translate(None, definition).where, True_)
        assert isinstance(translate("   ", definition).where, True_)

    def test_all_records(self, definition):
        translated = translate("cql.allRecords=1", definition)
        assert isinstance(translated.where, True_)
        assert translated.order_by == []

    def test_type_exact(self, definition):
        where = translate('type="SINGLE"', definition).where
        assert sql(where) == "printing.type = :type_1"
        assert params(where) == {"type_1": "SINGLE"}

    def test_type_is_case_sensitive_literal(self, definition):
        where = translate("type==single", definition).where
        assert params(where) == {"type_1": "single"}

    def test_type_ignores_masks(self, definition):
        where = translate("type=SING*", definition).where
        assert sql(where) == "printing.type = :type_1"
        assert params(where) == {"type_1": "SING*"}

        where = translate('type<>"B?TCH"', definition).where
        assert sql(where) == "printing.type != :type_1"
        assert params(where) == {"type_1": "B?TCH"}

    def test_sorting_field_maps_to_column(self, definition):
        where = translate('sortingField="Last,User"', definition).where
        assert sql(where) == "printing.sorting_field = :sorting_field_1"
        assert params(where) == {"sorting_field_1": "Last,User"}

    def test_sorting_field_substring(self, definition):
        where = translate('sortingField="*Smith*"', definition).where
        assert "LIKE" in sql(where)
        assert params(where) == {"sorting_field_1": "%Smith%"}

    def test_sorting_field_escaped_wildcard_is_literal(self, definition):
        where = translate(r'sortingField="100\*"', definition).where
        assert "LIKE" not in sql(where)
        assert params(where) == {"sorting_field_1": "100*"}

    def test_like_metacharacters_are_escaped(self, definition):
        where = translate('sortingField="50%_*"', definition).where
        assert params(where) == {"sorting_field_1": "50\\%\\_%"}

    def test_not_equal(self, definition):
        where = translate("type<>BATCH", definition).where
        assert sql(where) == "printing.type != :type_1"

    def test_id(self, definition):
        entry_id = uuid.uuid4()
        where = translate(f"id=={entry_id}", definition).where
        assert params(where) == {"id_1": entry_id}

    def test_invalid_uuid(self, definition):
        with pytest.raises(QueryError, match="Invalid UUID"):
            translate("id=not-a-uuid", definition)

    @pytest.mark.parametrize("relation, operator", [
        ("<", "<"), (">", ">"), ("<=", "<="), (">=", ">="), ("==", "="), ("<>", "!="),
    ])
    def test_created_comparisons(self, definition, relation, operator):
        where = translate(f"created {relation} 2024-03-01T10:15:00", definition).where
        assert sql(where) == f"printing.created {operator} :created_1"
        assert params(where) == {"created_1": datetime(2024, 3, 1, 10, 15)}

    def test_created_with_offset_is_converted_to_utc(self, definition):
        where = translate('created > "2024-03-01T12:00:00+02:00"', definition).where
        assert params(where) == {"created_1": datetime(2024, 3, 1, 10, 0)}

    def test_created_zulu(self, definition):
        where = translate("created > 2024-03-01T12:00:00Z", definition).where
        assert params(where) == {"created_1": datetime(2024, 3, 1, 12, 0)}

    def test_created_date_equality_is_whole_day(self, definition):
        where = translate("created=2024-03-01", definition).where
        assert params(where) == {
            "created_1": datetime(2024, 3, 1),
            "created_2": datetime(2024, 3, 2),
        }

    def test_created_date_comparison_is_midnight(self, definition):
        where = translate("created<2024-03-01", definition).where
        assert params(where) == {"created_1": datetime(2024, 3, 1)}

    def test_invalid_timestamp(self, definition):
        with pytest.raises(QueryError, match="Invalid timestamp"):
            translate("created > yesterday", definition)

    def test_unknown_field(self, definition):
        with pytest.raises(QueryError, match="Unsupported CQL index: content"):
            translate('content="AA"', definition)

    def test_unsupported_operator_for_field_type(self, definition):
        with pytest.raises(QueryError, match="Unsupported operator"):
            translate('type > "SINGLE"', definition)
        with pytest.raises(QueryError, match="Unsupported operator"):
            translate(f"id < {uuid.uuid4()}", definition)


class TestBoolean:
    def test_and(self, definition):
        where = translate('type="SINGLE" and created > 2024-01-01T00:00:00', definition).where
        assert sql(where) == "printing.type = :type_1 AND printing.created > :created_1"

    def test_or_is_case_insensitive(self, definition):
        where = translate("type=SINGLE OR type=BATCH", definition).where
        assert sql(where) == "printing.type = :type_1 OR printing.type = :type_2"

    def test_not_is_and_not(self, definition):
        where = translate("cql.allRecords=1 not type=BATCH", definition).where
        assert "NOT" in sql(where) or "!=" in sql(where)

    def test_parentheses(self, definition):
        where = translate("(type=SINGLE or type=BATCH) and sortingField=A1", definition).where
        assert sql(where) == (
            "(printing.type = :type_1 OR printing.type = :type_2) "
            "AND printing.sorting_field = :sorting_field_1"
        )

    @pytest.mark.parametrize("expression", [
        "type=SINGLE and",
        "type=SINGLE type=BATCH",
        "(type=SINGLE",
        "type=SINGLE)",
        "type",
        "type=",
        "and type=SINGLE",
    ])
    def test_syntax_errors(self, definition, expression):
        with pytest.raises(QueryError):
            translate(expression, definition)


class TestSortBy:
    def test_sort_keys_in_order(self, definition):
        translated = translate('type="SINGLE" sortby sortingField created', definition)
        assert [str(key) for key in translated.order_by] == [
            "printing.sorting_field ASC",
            "printing.created ASC",
        ]

    def test_sort_only(self, definition):
        translated = translate("sortby created/sort.descending", definition)
        assert isinstance(translated.where, True_)
        assert [str(key) for key in translated.order_by] == ["printing.created DESC"]

    def test_sort_ascending_modifier(self, definition):
        translated = translate("cql.allRecords=1 SORTBY sortingField/sort.ascending", definition)
        assert [str(key) for key in translated.order_by] == ["printing.sorting_field ASC"]

    def test_unknown_sort_field(self, definition):
        with pytest.raises(QueryError, match="Unsupported CQL index"):
            translate("sortby content", definition)

    def test_unknown_sort_modifier(self, definition):
        with pytest.raises(QueryError, match="sort modifier"):
            translate("sortby created/sort.random", definition)

    def test_sortby_needs_a_key(self, definition):
        with pytest.raises(QueryError):
            translate("type=SINGLE sortby", definition)
