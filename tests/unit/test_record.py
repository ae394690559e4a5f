"""
Unit tests for Record anchors and seek predicate construction.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy.dialects import sqlite

from seekset.conditions import SeekConditionBuilder, build_seek_condition
from seekset.dialects import SQLite
from seekset.order import OrderDefinition
from seekset.record import Record
from tests.models import User


def compile_sql(clause) -> str:
    return str(clause.compile(dialect=sqlite.dialect(), compile_kwargs={"literal_binds": True}))


@pytest.fixture
def order() -> OrderDefinition:
    return OrderDefinition(User, {"first_name": "asc"})


@pytest.mark.unit
class TestRecord:
    """Test Record values and equality."""

    def test_values_are_normalized(self, order) -> None:
        """Test values are stored in their token-safe form."""
        record = Record(
            order,
            {
                "users.first_name": "Jane",
                "users.member_since": datetime(2024, 1, 1, tzinfo=timezone.utc),
                "users.balance": Decimal("1.10"),
            },
        )

        assert record.values["users.member_since"] == "2024-01-01T00:00:00+00:00"
        assert record.values["users.balance"] == "1.10"

    def test_values_are_read_only(self, order) -> None:
        """Test the values mapping cannot be modified."""
        source = {"users.first_name": "Jane", "users.id": 2}
        record = Record(order, source)

        with pytest.raises(TypeError):
            record.values["users.id"] = 3  # type: ignore[index]

        source["users.id"] = 3
        assert record.values["users.id"] == 2

    def test_equality_by_value(self, order) -> None:
        """Test records with equal values are equal."""
        first = Record(order, {"users.first_name": "Jane", "users.id": 2})
        second = Record(order, {"users.id": 2, "users.first_name": "Jane"})
        third = Record(order, {"users.first_name": "Jane", "users.id": 3})

        assert first == second
        assert hash(first) == hash(second)
        assert first != third

    def test_state(self, order) -> None:
        """Test state is stable and value dependent."""
        first = Record(order, {"users.first_name": "Jane", "users.id": 2})
        second = Record(order, {"users.id": 2, "users.first_name": "Jane"})
        third = Record(order, {"users.first_name": None, "users.id": 2})

        assert first.state == second.state
        assert first.state != third.state

    def test_from_row(self, order) -> None:
        """Test building from a row with alias columns."""
        row = {"cursor___users__first_name": "Paul", "cursor___users__id": 6}

        assert Record.from_row(order, row).to_dict() == {
            "users.first_name": "Paul",
            "users.id": 6,
        }


@pytest.mark.unit
class TestSeekConditionBuilder:
    """Test predicate shapes for single columns."""

    def test_distinct_column_is_strict_comparison(self) -> None:
        """Test a tie-breaker compares strictly."""
        order = OrderDefinition(User)

        next_sql = compile_sql(build_seek_condition(order.columns, {"users.id": 4}, "next", SQLite()))
        prev_sql = compile_sql(build_seek_condition(order.columns, {"users.id": 4}, "prev", SQLite()))

        assert next_sql == "users.id > 4"
        assert prev_sql == "users.id < 4"

    def test_descending_flips_comparison(self) -> None:
        """Test descending columns seek with < going forward."""
        order = OrderDefinition(User, {"id": "desc"})

        sql = compile_sql(build_seek_condition(order.columns, {"users.id": 4}, "next", SQLite()))

        assert sql == "users.id < 4"

    def test_leftmost_column_gets_prefilter(self, order) -> None:
        """Test the leftmost non-distinct column gets an inclusive pre-filter."""
        sql = compile_sql(
            build_seek_condition(
                order.columns, {"users.first_name": "Jane", "users.id": 2}, "next", SQLite()
            )
        )

        assert sql == (
            "users.first_name >= 'Jane' AND (users.first_name > 'Jane' "
            "OR users.first_name = 'Jane' AND users.id > 2)"
        )

    def test_null_anchor_moving_away_from_nulls(self) -> None:
        """Test a NULL anchor selects non-NULLs, then NULLs past the tie-breaker."""
        order = OrderDefinition(User, {"last_name": "asc"})

        sql = compile_sql(
            build_seek_condition(
                order.columns, {"users.last_name": None, "users.id": 6}, "next", SQLite()
            )
        )

        assert sql == (
            "users.last_name IS NOT NULL OR users.last_name IS NULL AND users.id > 6"
        )

    def test_null_anchor_moving_toward_nulls(self) -> None:
        """Test a NULL anchor only selects the remaining NULLs."""
        order = OrderDefinition(User, {"last_name": "desc"})

        sql = compile_sql(
            build_seek_condition(
                order.columns, {"users.last_name": None, "users.id": 6}, "next", SQLite()
            )
        )

        assert sql == "users.last_name IS NULL AND users.id > 6"

    def test_builder_without_tie_breaker(self) -> None:
        """Test the last column builds a bare comparison."""
        order = OrderDefinition(User)

        builder = SeekConditionBuilder(order.columns[0], 1, "prev")

        assert compile_sql(builder.build()) == "users.id < 1"
