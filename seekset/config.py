from dataclasses import dataclass, field
from typing import Any

import sqlalchemy as sa
from sqlalchemy.exc import NoInspectionAvailable
from sqlalchemy.types import NullType, TypeEngine

from .exceptions import ConfigurationError


@dataclass(frozen=True)
class ColumnInfo:
    """
    Schema facts about one table column.

    Attributes:
        nullable: Whether the column accepts NULL
        type: SQLAlchemy type used to bind anchor values (NullType when unknown)
    """

    nullable: bool = False
    type: TypeEngine[Any] = field(default_factory=NullType, compare=False)


@dataclass(frozen=True)
class TableOptions:
    """
    Schema descriptor for a table that can own sort columns.

    OrderDefinition only ever asks three questions of a table: does a column
    exist, is it nullable, and what is the primary key. This keeps order
    building a pure function of (descriptor, spec), so it can be used without
    a live database. Use from_source() to derive one from SQLAlchemy metadata.
    """

    name: str
    primary_key: str
    columns: dict[str, ColumnInfo] = field(default_factory=dict, compare=False)

    def has_column(self, name: str) -> bool:
        """
        Check if a column exists on this table.

        Args:
            name: Unprefixed column name

        Returns:
            True if the column exists, False otherwise
        """
        return name in self.columns

    def get_column(self, name: str) -> ColumnInfo | None:
        """
        Get column facts by unprefixed name.

        Returns:
            ColumnInfo if found, None otherwise
        """
        return self.columns.get(name)

    def is_nullable(self, name: str) -> bool:
        info = self.columns.get(name)
        return info.nullable if info is not None else False

    @classmethod
    def from_source(cls, source: Any) -> "TableOptions":
        """
        Builds a descriptor from a TableOptions, SQLAlchemy Table or mapped class.

        Raises:
            ConfigurationError: If the source cannot be inspected or does not
                have a single-column primary key
        """
        if isinstance(source, TableOptions):
            return source

        table = source
        if not isinstance(source, sa.Table):
            try:
                table = sa.inspect(source).local_table
            except (NoInspectionAvailable, AttributeError) as e:
                raise ConfigurationError(
                    f"Cannot derive table metadata from {source!r}", original_error=e
                ) from e

        pk_columns = list(table.primary_key.columns)
        if len(pk_columns) != 1:
            raise ConfigurationError(
                f"Table '{table.name}' must have exactly one primary key column, "
                f"found {len(pk_columns)}"
            )

        return cls(
            name=table.name,
            primary_key=pk_columns[0].name,
            columns={
                c.name: ColumnInfo(nullable=bool(c.nullable), type=c.type) for c in table.columns
            },
        )
