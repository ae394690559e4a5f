"""
Dialect-specific ORDER BY rendering.

Databases disagree on where NULLs sort by default and on whether they accept
``NULLS FIRST`` / ``NULLS LAST``:

- SQLite and MySQL treat NULL as smaller than any value.
- PostgreSQL treats NULL as larger than any value.
- MySQL has no NULLS FIRST/LAST syntax, so a boolean ``IS NULL`` /
  ``IS NOT NULL`` term is sorted ahead of the column instead.

A Dialect only emits extra null ordering when the requested position differs
from the database's natural one, so the generated ORDER BY stays index friendly.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import nulls_first, nulls_last
from sqlalchemy.engine import Dialect as SQLAlchemyDialect

from ._logging import logger
from .column import NullsOrder, SortDirection

if TYPE_CHECKING:
    from sqlalchemy.sql.elements import ColumnElement


class Dialect:
    """
    Null ordering rules for one database family.

    Attributes:
        name: Dialect name as reported by SQLAlchemy
        nulls_are_smallest: True if NULL sorts before every value in ascending order
        native_nulls: True if NULLS FIRST/LAST is supported
    """

    name = "sqlite"
    nulls_are_smallest = True
    native_nulls = True

    def default_nulls(self, direction: SortDirection) -> NullsOrder:
        """Where NULLs land when the ORDER BY term says nothing about them."""
        if self.nulls_are_smallest:
            return NullsOrder.FIRST if direction is SortDirection.ASC else NullsOrder.LAST
        return NullsOrder.LAST if direction is SortDirection.ASC else NullsOrder.FIRST

    def resolve_nulls(self, direction: SortDirection, nulls: NullsOrder | None) -> NullsOrder:
        return nulls if nulls is not None else self.default_nulls(direction)

    def nulls_in_default_order(self, direction: SortDirection, nulls: NullsOrder) -> bool:
        return nulls is self.default_nulls(direction)

    def order_by(
        self,
        expression: ColumnElement[Any],
        direction: SortDirection,
        nulls: NullsOrder | None = None,
    ) -> list[ColumnElement[Any]]:
        """
        Builds the ORDER BY term(s) for one column.

        Args:
            expression: Column expression to sort by
            direction: Sort direction
            nulls: Requested null position, or None if the column is not nullable

        Returns:
            One term, or two when null ordering has to be emulated
        """
        sorted_expr = expression.asc() if direction is SortDirection.ASC else expression.desc()
        if nulls is None or self.nulls_in_default_order(direction, nulls):
            return [sorted_expr]

        if self.native_nulls:
            if nulls is NullsOrder.FIRST:
                return [nulls_first(sorted_expr)]
            return [nulls_last(sorted_expr)]

        # FALSE sorts before TRUE, so the rows we want first must yield FALSE.
        null_term = expression.is_not(None) if nulls is NullsOrder.FIRST else expression.is_(None)
        return [null_term, sorted_expr]

    def reversed_order_by(
        self,
        expression: ColumnElement[Any],
        direction: SortDirection,
        nulls: NullsOrder | None = None,
    ) -> list[ColumnElement[Any]]:
        """Same as order_by() with both the direction and the null position flipped."""
        return self.order_by(
            expression, direction.reversed(), nulls.reversed() if nulls is not None else None
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class SQLite(Dialect):
    """SQLite: NULL is the smallest value, NULLS FIRST/LAST supported (3.30+)."""


class MySQL(Dialect):
    """MySQL/MariaDB: NULL is the smallest value, no NULLS FIRST/LAST syntax."""

    name = "mysql"
    native_nulls = False


class PostgreSQL(Dialect):
    """PostgreSQL: NULL is the largest value, NULLS FIRST/LAST supported."""

    name = "postgresql"
    nulls_are_smallest = False


_DIALECTS: dict[str, type[Dialect]] = {
    "sqlite": SQLite,
    "mysql": MySQL,
    "mariadb": MySQL,
    "postgresql": PostgreSQL,
    "postgres": PostgreSQL,
}


def get_dialect(target: Any = None) -> Dialect:
    """
    Resolves a Dialect from a name, a SQLAlchemy dialect, or anything bound to one.

    Accepts a Dialect instance, a string such as "postgresql", a SQLAlchemy
    Dialect, an Engine/Connection (``.dialect``) or a Session (``.get_bind()``).
    Unknown databases fall back to SQLite rules, which use standard syntax.
    """
    if isinstance(target, Dialect):
        return target
    if target is None:
        return SQLite()

    if isinstance(target, str):
        name = target
    elif isinstance(target, SQLAlchemyDialect):
        name = target.name
    elif hasattr(target, "dialect"):
        name = target.dialect.name
    elif hasattr(target, "get_bind"):
        name = target.get_bind().dialect.name
    else:
        raise TypeError(f"Cannot determine a SQL dialect from {type(target).__name__}")

    dialect_cls = _DIALECTS.get(name.lower(), SQLite)
    logger.debug("Resolved dialect", extra={"requested": name, "dialect": dialect_cls.__name__})
    return dialect_cls()
