from __future__ import annotations

import re
from dataclasses import dataclass, replace
from enum import Enum
from functools import cached_property
from typing import TYPE_CHECKING, Any

from sqlalchemy import literal_column

from .config import TableOptions
from .exceptions import InvalidColumn

if TYPE_CHECKING:
    from sqlalchemy.sql.elements import ColumnElement, Label

    from .dialects import Dialect

SELECT_ALIAS_PREFIX = "cursor___"

# Only alphanumeric names with underscores, optionally prefixed by a table/alias name.
_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: Any) -> SortDirection:
        """Anything that reads as 'desc' (any case) is DESC, everything else ASC."""
        if isinstance(value, Enum):
            value = value.value
        if str(value or "").strip().lower() == "desc":
            return cls.DESC
        return cls.ASC

    def reversed(self) -> SortDirection:
        return SortDirection.DESC if self is SortDirection.ASC else SortDirection.ASC


class NullsOrder(str, Enum):
    FIRST = "first"
    LAST = "last"

    @classmethod
    def parse(cls, value: Any) -> NullsOrder | None:
        """Returns FIRST/LAST for a recognised value (any case), otherwise None."""
        if isinstance(value, Enum):
            value = value.value
        normalized = str(value or "").strip().lower()
        if normalized == "first":
            return cls.FIRST
        if normalized == "last":
            return cls.LAST
        return None

    def reversed(self) -> NullsOrder:
        return NullsOrder.LAST if self is NullsOrder.FIRST else NullsOrder.FIRST


def select_alias(prefixed_name: str) -> str:
    """SELECT alias used to read a sort column back from a fetched row."""
    return f"{SELECT_ALIAS_PREFIX}{prefixed_name.replace('.', '__')}"


@dataclass(frozen=True)
class Column:
    """
    One sort key of an ORDER BY expression.

    Use Column.build() to apply schema defaults; the raw constructor takes
    every attribute as given.

    Attributes:
        table: Table the column belongs to
        name: Canonical column name. Bare for columns of the owning table;
            joined aliases keep their prefix (``u_l.details``)
        direction: Sort direction
        nullable: Whether NULLs can appear in the result for this column
        nulls: Requested NULL position, None for the dialect default.
            Only meaningful for nullable columns
        distinct: Whether values are unique in the result (the tie-breaker)
        leftmost: True for the column with the highest sort priority
    """

    table: TableOptions
    name: str
    direction: SortDirection = SortDirection.ASC
    nullable: bool = False
    nulls: NullsOrder | None = None
    distinct: bool = False
    leftmost: bool = False

    def __post_init__(self) -> None:
        if not self.name or not _NAME_PATTERN.match(self.name):
            raise InvalidColumn(
                "Column/table name must contain letters, digits (0-9), or underscores "
                f"and must begin with a letter or underscore, got {self.name!r}",
                column=self.name,
            )
        if not self.nullable and self.nulls is not None:
            object.__setattr__(self, "nulls", None)

    @classmethod
    def build(
        cls,
        table: TableOptions,
        name: str,
        direction: Any = SortDirection.ASC,
        nullable: bool | None = None,
        nulls: Any = None,
        distinct: bool | None = None,
    ) -> Column:
        """
        Creates a Column, filling unset options from the table schema.

        Args:
            table: Table the column belongs to
            name: Column name, optionally prefixed
            direction: "asc"/"desc" in any case, or a SortDirection
            nullable: Defaults to the schema nullability of the column
            nulls: "first"/"last" in any case, or a NullsOrder. Ignored unless nullable
            distinct: Defaults to True only for the table's primary key
        """
        name = str(name)
        unprefixed = name.split(".")[-1]
        if nullable is None:
            nullable = table.is_nullable(unprefixed)
        if distinct is None:
            distinct = unprefixed == table.primary_key

        return cls(
            table=table,
            name=name,
            direction=SortDirection.parse(direction),
            nullable=bool(nullable),
            nulls=NullsOrder.parse(nulls) if nullable else None,
            distinct=bool(distinct),
        )

    def as_leftmost(self) -> Column:
        """Returns a copy marked as the column with the highest sort priority."""
        return replace(self, leftmost=True)

    @property
    def is_asc(self) -> bool:
        return self.direction is SortDirection.ASC

    @property
    def is_desc(self) -> bool:
        return not self.is_asc

    @property
    def unprefixed_name(self) -> str:
        return self.name.split(".")[-1]

    @property
    def prefixed_name(self) -> str:
        if "." in self.name:
            return self.name
        return f"{self.table.name}.{self.name}"

    @property
    def select_alias(self) -> str:
        return select_alias(self.prefixed_name)

    @cached_property
    def expression(self) -> ColumnElement[Any]:
        """Typed SQL expression for the column; the name was validated on construction."""
        info = self.table.get_column(self.unprefixed_name)
        if info is None:
            return literal_column(self.prefixed_name)
        return literal_column(self.prefixed_name, type_=info.type)

    def resolved_nulls(self, dialect: Dialect) -> NullsOrder | None:
        """Effective NULL position under a dialect, None if the column is not nullable."""
        if not self.nullable:
            return None
        return dialect.resolve_nulls(self.direction, self.nulls)

    def order_by(self, dialect: Dialect) -> list[ColumnElement[Any]]:
        return dialect.order_by(self.expression, self.direction, self.resolved_nulls(dialect))

    def reversed_order_by(self, dialect: Dialect) -> list[ColumnElement[Any]]:
        return dialect.reversed_order_by(
            self.expression, self.direction, self.resolved_nulls(dialect)
        )

    def select_expression(self) -> Label[Any]:
        return self.expression.label(self.select_alias)

    @property
    def select_sql(self) -> str:
        return f"{self.prefixed_name} AS {self.select_alias}"

    def to_dict(self) -> dict[str, dict[str, Any]]:
        """Canonical representation used for the order state fingerprint."""
        h: dict[str, Any] = {
            "direction": self.direction.value,
            "nullable": self.nullable,
            "distinct": self.distinct,
        }
        if self.nullable:
            h["nulls"] = self.nulls.value if self.nulls is not None else None
        return {self.prefixed_name: h}
