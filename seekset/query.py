from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import Select

from ._logging import logger

if TYPE_CHECKING:
    from sqlalchemy.sql.elements import ColumnElement

    from .cursor import Cursor
    from .dialects import Dialect
    from .order import OrderDefinition


class PageQueryBuilder:
    """
    Implements the Builder Pattern for page queries.
    Allows chaining methods (e.g., .after(cursor).reverse().limit(10))
    before building the final SELECT from the caller's source statement.

    The source statement is never modified: its filters are kept, any ORDER BY
    or LIMIT it carries is replaced, and the sort columns are added under their
    cursor aliases so the boundary rows can be turned into cursors.
    """

    def __init__(self, source: Select[Any], order: OrderDefinition, dialect: Dialect):
        if not isinstance(source, Select):
            raise TypeError(f"Expected a SQLAlchemy Select, got {type(source).__name__}")

        self.source = source
        self.order = order
        self.dialect = dialect

        # Internal state of the query
        self.cursor: Cursor | None = None
        self.limit_val: int | None = None
        self.reversed_order = False
        self.extra_conditions: list[ColumnElement[bool]] = []

    def after(self, cursor: Cursor | None) -> PageQueryBuilder:
        """Restricts the query to the rows on the cursor's side of its anchor."""
        self.cursor = cursor
        return self

    def where(self, *conditions: ColumnElement[bool]) -> PageQueryBuilder:
        self.extra_conditions.extend(conditions)
        return self

    def reverse(self, reversed_order: bool = True) -> PageQueryBuilder:
        """Sorts in the reversed order, used to walk back from a cursor."""
        self.reversed_order = reversed_order
        return self

    def limit(self, count: int) -> PageQueryBuilder:
        self.limit_val = count
        return self

    def build(self) -> Select[Any]:
        stmt = self.source

        if self.cursor is not None:
            stmt = stmt.where(self.cursor.sql(self.dialect))
        if self.extra_conditions:
            stmt = stmt.where(*self.extra_conditions)

        if self.reversed_order:
            order_by = self.order.reversed_order_by(self.dialect)
        else:
            order_by = self.order.order_by(self.dialect)
        stmt = stmt.order_by(None).order_by(*order_by)

        if self.limit_val is not None:
            stmt = stmt.limit(self.limit_val)

        stmt = stmt.add_columns(*self.order.select_columns())

        logger.debug(
            "Page query built",
            extra={
                "table": self.order.table.name,
                "dialect": self.dialect.name,
                "reversed": self.reversed_order,
                "has_cursor": self.cursor is not None,
                "limit": self.limit_val,
            },
        )
        return stmt
