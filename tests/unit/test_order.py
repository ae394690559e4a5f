"""
Unit tests for OrderDefinition.

Tests sort spec normalization, column resolution, tie-breaker handling,
generated ORDER BY/SELECT SQL and the order state fingerprint.
"""

from enum import Enum

import pytest

from seekset.column import NullsOrder, SortDirection
from seekset.config import ColumnInfo, TableOptions
from seekset.dialects import MySQL, PostgreSQL, SQLite
from seekset.exceptions import InvalidColumn, MissingTiebreaker
from seekset.order import OrderDefinition
from tests.models import User, UserLog


class Field(Enum):
    LAST_NAME = "last_name"


@pytest.mark.unit
class TestOrderColumns:
    """Test normalization of sort specs into columns."""

    def test_empty_spec_orders_by_primary_key(self) -> None:
        """Test None and {} order by the primary key only."""
        for spec in (None, {}):
            order = OrderDefinition(User, spec)

            assert order.prefixed_column_names == ["users.id"]
            assert order.sql(SQLite()) == "users.id ASC"

    def test_primary_key_appended_as_tiebreaker(self) -> None:
        """Test the primary key is added when no distinct column is given."""
        order = OrderDefinition(User, {"last_name": "desc", "first_name": "asc"})

        assert order.prefixed_column_names == ["users.last_name", "users.first_name", "users.id"]
        tiebreaker = order.tiebreaker
        assert tiebreaker.distinct is True
        assert tiebreaker.nullable is False
        assert tiebreaker.direction is SortDirection.ASC

    def test_explicit_primary_key_keeps_direction(self) -> None:
        """Test a listed primary key is used as-is."""
        order = OrderDefinition(User, {"first_name": "asc", "id": "desc"})

        assert order.prefixed_column_names == ["users.first_name", "users.id"]
        assert order.tiebreaker.direction is SortDirection.DESC

    def test_columns_after_distinct_column_are_dropped(self) -> None:
        """Test the list ends at the first distinct, non-nullable column."""
        order = OrderDefinition(
            User,
            {
                "first_name": "asc",
                "email": {"direction": "asc", "distinct": True},
                "last_name": "desc",
            },
        )

        assert order.prefixed_column_names == ["users.first_name", "users.email"]

    def test_distinct_nullable_column_is_not_a_tiebreaker(self) -> None:
        """Test a distinct but nullable column still gets the primary key appended."""
        order = OrderDefinition(User, {"ssn": {"distinct": True}})

        assert order.prefixed_column_names == ["users.ssn", "users.id"]

    def test_distinct_non_nullable_override(self) -> None:
        """Test nullable/distinct overrides make a column the tie-breaker."""
        order = OrderDefinition(User, {"ssn": {"distinct": True, "nullable": False}})

        assert order.prefixed_column_names == ["users.ssn"]

    def test_exactly_one_distinct_non_nullable_column(self) -> None:
        """Test only the last column is a distinct, non-nullable tie-breaker."""
        order = OrderDefinition(
            User, {"last_name": "desc", "first_name": {"distinct": False}, "email": "asc"}
        )
        tiebreakers = [c for c in order.columns if c.distinct and not c.nullable]

        assert tiebreakers == [order.columns[-1]]

    def test_non_distinct_primary_key_raises(self) -> None:
        """Test a listed primary key marked non-distinct cannot break ties."""
        with pytest.raises(MissingTiebreaker):
            OrderDefinition(User, {"first_name": "asc", "id": {"distinct": False}})

    def test_leftmost_is_first_column(self) -> None:
        """Test only the first column is marked leftmost."""
        order = OrderDefinition(User, {"last_name": "desc", "first_name": "asc"})

        assert [c.leftmost for c in order.columns] == [True, False, False]

    def test_duplicate_columns_keep_first(self) -> None:
        """Test repeated references to the same column keep the first one."""
        order = OrderDefinition(User, {"last_name": "desc", "users.last_name": "asc"})

        assert order.prefixed_column_names == ["users.last_name", "users.id"]
        assert order.columns[0].direction is SortDirection.DESC

    def test_expanded_options(self) -> None:
        """Test expanded options in any case and as Enums."""
        order = OrderDefinition(
            User,
            {"last_name": {"Direction": "DESC", "NULLS": NullsOrder.FIRST}},
        )
        column = order.columns[0]

        assert column.direction is SortDirection.DESC
        assert column.nulls is NullsOrder.FIRST
        assert column.nullable is True

    def test_column_attribute_keys(self) -> None:
        """Test SQLAlchemy column attributes and Enum keys."""
        order = OrderDefinition(User, {User.last_name: "desc", Field.LAST_NAME: "asc"})

        assert order.prefixed_column_names == ["users.last_name", "users.id"]

    def test_build_classmethod(self) -> None:
        """Test OrderDefinition.build is an alias of the constructor."""
        assert OrderDefinition.build(User, {"last_name": "desc"}) == OrderDefinition(
            User, {"last_name": "desc"}
        )


@pytest.mark.unit
class TestOrderColumnResolution:
    """Test resolving columns to their tables."""

    def test_unknown_column_raises(self) -> None:
        """Test a column missing from the source table."""
        with pytest.raises(InvalidColumn) as exc_info:
            OrderDefinition(User, {"age": "asc"})

        assert exc_info.value.column == "age"
        assert "age" in str(exc_info.value)

    def test_prefix_must_match_source_table(self) -> None:
        """Test a prefixed column of another table needs a model override."""
        with pytest.raises(InvalidColumn):
            OrderDefinition(User, {"user_logs.details": "asc"})

    def test_prefixed_source_column(self) -> None:
        """Test the source table prefix is accepted."""
        order = OrderDefinition(User, {"users.last_name": "asc"})

        assert order.prefixed_column_names == ["users.last_name", "users.id"]

    def test_model_override(self) -> None:
        """Test joined table columns with a model override."""
        order = OrderDefinition(
            User, {"u_l.details": {"direction": "desc", "model": UserLog}, "email": "asc"}
        )
        details = order.columns[0]

        assert details.prefixed_name == "u_l.details"
        assert details.table.name == "user_logs"
        assert details.nullable is True
        assert details.distinct is False
        assert order.tiebreaker.prefixed_name == "users.id"

    def test_model_override_primary_key_is_distinct(self) -> None:
        """Test a joined table's primary key defaults to distinct."""
        order = OrderDefinition(User, {"user_logs.id": {"model": UserLog}})

        assert order.prefixed_column_names == ["user_logs.id"]

    def test_model_override_missing_column_raises(self) -> None:
        """Test an override that does not have the column."""
        with pytest.raises(InvalidColumn) as exc_info:
            OrderDefinition(User, {"u_l.first_name": {"model": UserLog}})

        assert "user_logs" in str(exc_info.value)

    def test_columns_after_tiebreaker_are_validated(self) -> None:
        """Test every listed column must resolve, even those after the tie-breaker."""
        with pytest.raises(InvalidColumn) as exc_info:
            OrderDefinition(User, {"id": "asc", "no_such_column": "desc"})

        assert exc_info.value.column == "no_such_column"

    def test_table_option_when_model_is_none(self) -> None:
        """Test an empty model option falls back to the table option."""
        order = OrderDefinition(
            User, {"u_l.details": {"direction": "desc", "model": None, "table": UserLog}}
        )

        assert order.columns[0].table.name == "user_logs"
        assert order.prefixed_column_names == ["u_l.details", "users.id"]

    def test_joined_table_prefix_is_canonical(self) -> None:
        """Test a joined column keeps its alias, or drops a prefix equal to its table."""
        aliased = OrderDefinition(User, {"u_l.details": {"model": UserLog}})
        named = OrderDefinition(User, {"user_logs.details": {"model": UserLog}})

        assert aliased.column_names == ["u_l.details", "id"]
        assert named.column_names == ["details", "id"]
        assert named.prefixed_column_names == ["user_logs.details", "users.id"]

    def test_column_attribute_of_other_table(self) -> None:
        """Test column attributes resolve to their own table."""
        order = OrderDefinition(User, {UserLog.details: "desc"})

        assert order.prefixed_column_names == ["user_logs.details", "users.id"]

    def test_table_options_source(self) -> None:
        """Test a hand-written descriptor works without SQLAlchemy metadata."""
        table = TableOptions(
            name="items", primary_key="id", columns={"id": ColumnInfo(), "name": ColumnInfo()}
        )
        order = OrderDefinition(table, {"name": "desc"})

        assert order.sql(PostgreSQL()) == "items.name DESC, items.id ASC"


@pytest.mark.unit
class TestOrderSql:
    """Test generated SQL."""

    def test_sql_and_reversed_sql(self) -> None:
        """Test ORDER BY with flipped directions and nulls."""
        order = OrderDefinition(
            User,
            {"last_name": {"direction": "desc", "nulls": "first"}, "first_name": "asc"},
        )

        assert order.sql(SQLite()) == (
            "users.last_name DESC NULLS FIRST, users.first_name ASC, users.id ASC"
        )
        assert order.reversed_sql(SQLite()) == (
            "users.last_name ASC NULLS LAST, users.first_name DESC, users.id DESC"
        )

    def test_sql_per_dialect(self) -> None:
        """Test the same order renders per dialect."""
        order = OrderDefinition(User, {"last_name": {"direction": "asc", "nulls": "last"}})

        assert order.sql(SQLite()) == "users.last_name ASC NULLS LAST, users.id ASC"
        assert order.sql(PostgreSQL()) == "users.last_name ASC, users.id ASC"
        assert order.sql(MySQL()) == "users.last_name IS NULL, users.last_name ASC, users.id ASC"

    def test_select_sql(self) -> None:
        """Test sort columns are selected under their aliases."""
        order = OrderDefinition(User, {"last_name": "desc"})

        assert order.select_sql == (
            "users.last_name AS cursor___users__last_name, users.id AS cursor___users__id"
        )
        assert [label.name for label in order.select_columns()] == [
            "cursor___users__last_name",
            "cursor___users__id",
        ]

    def test_selected_values(self) -> None:
        """Test reading sort values back from a row mapping."""
        order = OrderDefinition(User, {"last_name": "desc"})
        row = {"cursor___users__last_name": "Doe", "cursor___users__id": 2, "email": "x"}

        assert order.selected_values(row) == {"users.last_name": "Doe", "users.id": 2}

    def test_selected_values_from_object(self) -> None:
        """Test reading sort values from attribute access."""

        class Row:
            cursor___users__last_name = None
            cursor___users__id = 7

        order = OrderDefinition(User, {"last_name": "desc"})

        assert order.selected_values(Row()) == {"users.last_name": None, "users.id": 7}

    def test_selected_values_empty(self) -> None:
        """Test missing rows give an empty mapping."""
        order = OrderDefinition(User)

        assert order.selected_values(None) == {}
        assert order.selected_values({}) == {}


@pytest.mark.unit
class TestOrderState:
    """Test the order fingerprint."""

    def test_equivalent_specs_share_state(self) -> None:
        """Test spelling differences do not change state or SQL."""
        compact = OrderDefinition(User, {"last_name": "desc", "first_name": "asc"})
        expanded = OrderDefinition(
            User,
            {
                "users.last_name": {"direction": SortDirection.DESC},
                User.first_name: {"DIRECTION": "ASC"},
                "id": "asc",
            },
        )

        assert compact.state == expanded.state
        assert compact.sql(SQLite()) == expanded.sql(SQLite())
        assert compact == expanded
        assert compact.column_names == expanded.column_names == ["last_name", "first_name", "id"]

    @pytest.mark.parametrize(
        "changed",
        [
            {"last_name": "asc"},
            {"last_name": {"direction": "desc", "nulls": "first"}},
            {"last_name": {"direction": "desc", "nullable": False}},
            {"last_name": {"direction": "desc", "distinct": True}},
            {"first_name": "desc"},
        ],
    )
    def test_state_changes_with_any_flag(self, changed) -> None:
        """Test direction, nulls, nullable and distinct all affect state."""
        base = OrderDefinition(User, {"last_name": "desc"})

        assert OrderDefinition(User, changed).state != base.state

    def test_to_dict(self) -> None:
        """Test the canonical form."""
        order = OrderDefinition(User, {"last_name": "desc"})

        assert order.to_dict() == {
            "users.last_name": {
                "direction": "desc",
                "nullable": True,
                "distinct": False,
                "nulls": None,
            },
            "users.id": {"direction": "asc", "nullable": False, "distinct": True},
        }
        assert order.column_names == ["last_name", "id"]
