"""
Seek predicates for keyset pagination.

Given the sort columns of a page and the values of an anchor record, this
module builds the WHERE clause that selects the rows strictly after (or
before) the anchor in the page's order. Predicates are composed from
SQLAlchemy ``and_``/``or_`` expressions, so values are always bound
parameters and the SQL is rendered by the target dialect.

For a non-nullable column ``c`` sorted ascending with anchor value ``v``:

    c > v OR (c = v AND <tie-breaker>)

where ``<tie-breaker>`` is the predicate built for the next column. The
leftmost column also gets an inclusive prefilter (``c >= v AND (...)``) so
the database can use an index range scan.

Nullable columns need extra care: NULL never compares equal to anything, so
``IS NULL`` / ``IS NOT NULL`` terms take the place of the comparisons on the
side of the order where NULLs sit.

Usage:
    from seekset.conditions import build_seek_condition

    condition = build_seek_condition(order.columns, record.values, "next", dialect)
    stmt = select(users).where(condition)
"""

from __future__ import annotations

import operator
from functools import reduce
from typing import TYPE_CHECKING, Any, Callable

from sqlalchemy import and_, or_

from .column import NullsOrder
from .serializer import ValueSerializer

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from sqlalchemy.sql.elements import ColumnElement

    from .column import Column
    from .dialects import Dialect

Comparison = Callable[[Any, Any], Any]

NEXT = "next"
PREV = "prev"

# (direction, paging direction) -> (strict, inclusive) comparison
_SEEK_OPERATORS: dict[tuple[bool, str], tuple[Comparison, Comparison]] = {
    (True, NEXT): (operator.gt, operator.ge),
    (False, NEXT): (operator.lt, operator.le),
    (True, PREV): (operator.lt, operator.le),
    (False, PREV): (operator.gt, operator.ge),
}


class SeekConditionBuilder:
    """
    Builds the seek predicate contributed by a single sort column.

    Attributes:
        column: Sort column
        value: Anchor value for the column, already restored to its Python type
        direction: "next" or "prev"
        nulls: Effective NULL position of the column under the current dialect
        tie_breaker: Predicate of the next sort column, None for the last column
    """

    def __init__(
        self,
        column: Column,
        value: Any,
        direction: str,
        nulls: NullsOrder | None = None,
        tie_breaker: ColumnElement[bool] | None = None,
    ) -> None:
        self.column = column
        self.value = value
        self.direction = str(getattr(direction, "value", direction))
        self.nulls = nulls
        self.tie_breaker = tie_breaker
        self._seek_op, self._inclusive_op = _SEEK_OPERATORS[(column.is_asc, self.direction)]

    @property
    def expression(self) -> ColumnElement[Any]:
        return self.column.expression

    def build(self) -> ColumnElement[bool]:
        if not self.column.nullable:
            return self._filter_condition()
        return self._nullable_filter_condition()

    # --- HELPERS ---

    def _seek(self) -> ColumnElement[bool]:
        return self._seek_op(self.expression, self.value)

    def _seek_inclusive(self) -> ColumnElement[bool]:
        return self._inclusive_op(self.expression, self.value)

    def _identity(self) -> ColumnElement[bool]:
        return self.expression == self.value

    def _is_null(self) -> ColumnElement[bool]:
        return self.expression.is_(None)

    def _is_not_null(self) -> ColumnElement[bool]:
        return self.expression.is_not(None)

    def _tie_break(self, condition: ColumnElement[bool]) -> ColumnElement[bool]:
        if self.tie_breaker is None:
            return condition
        return and_(condition, self.tie_breaker)

    def _seeks_toward_nulls(self) -> bool:
        """True if moving in the paging direction walks toward the NULL end of the column."""
        if self.nulls is NullsOrder.FIRST:
            return self.direction == PREV
        if self.nulls is NullsOrder.LAST:
            return self.direction == NEXT
        return False

    def _prefilter(self, condition: ColumnElement[bool]) -> ColumnElement[bool]:
        if not self.column.leftmost:
            return condition

        if self.column.nullable and self._seeks_toward_nulls():
            return and_(or_(self._seek_inclusive(), self._is_null()), condition)
        return and_(self._seek_inclusive(), condition)

    # --- CONDITIONS ---

    def _filter_condition(self) -> ColumnElement[bool]:
        if self.column.distinct:
            return self._seek()
        return self._prefilter(or_(self._seek(), self._tie_break(self._identity())))

    def _nullable_filter_condition(self) -> ColumnElement[bool]:
        if self._seeks_toward_nulls():
            return self._toward_nulls_condition()
        if self.value is not None:
            return self._filter_condition()
        # Anchor is NULL and every non-NULL value lies ahead.
        return or_(self._is_not_null(), self._tie_break(self._is_null()))

    def _toward_nulls_condition(self) -> ColumnElement[bool]:
        if self.value is None:
            # Only the remaining NULLs lie ahead.
            return self._tie_break(self._is_null())

        condition = or_(self._seek(), self._is_null())
        if self.column.distinct:
            return condition
        return self._prefilter(or_(condition, self._tie_break(self._identity())))


def build_seek_condition(
    columns: Iterable[Column],
    values: Mapping[str, Any],
    direction: str,
    dialect: Dialect,
) -> ColumnElement[bool]:
    """
    Builds the predicate selecting the rows after (``next``) or before
    (``prev``) the anchor record.

    Args:
        columns: Sort columns in priority order, ending with the tie-breaker
        values: Anchor values keyed by prefixed column name
        direction: "next" or "prev"
        dialect: Dialect used to resolve default NULL positions

    Returns:
        Composite SQLAlchemy boolean expression
    """
    serializer = ValueSerializer()

    def fold(tie_breaker: ColumnElement[bool] | None, column: Column) -> ColumnElement[bool]:
        info = column.table.get_column(column.unprefixed_name)
        value = serializer.restore(
            values.get(column.prefixed_name), info.type if info is not None else None
        )
        return SeekConditionBuilder(
            column,
            value,
            direction,
            nulls=column.resolved_nulls(dialect),
            tie_breaker=tie_breaker,
        ).build()

    return reduce(fold, reversed(list(columns)), None)
