from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from enum import Enum
from typing import TYPE_CHECKING, Any

from ._logging import logger
from .column import Column, SortDirection
from .config import TableOptions
from .exceptions import InvalidColumn, MissingTiebreaker

if TYPE_CHECKING:
    from sqlalchemy.sql.elements import ColumnElement, Label

    from .dialects import Dialect

# Option keys accepted in the expanded form of a column definition.
_OPTION_KEYS = ("direction", "nulls", "nullable", "distinct", "model", "table")

SortSpec = Mapping[Any, Any]


class OrderDefinition:
    """
    The normalized ORDER BY column list of a page.

    A sort spec maps a column reference to either a bare direction (compact
    form) or a mapping of options (expanded form):

        OrderDefinition(users, {"last_name": "desc", "first_name": "asc"})
        OrderDefinition(users, {
            "last_name": {"direction": "desc", "nulls": "last"},
            "u_l.details": {"direction": "desc", "model": UserLog},
            "ssn": {"distinct": True, "nullable": False},
        })

    Whatever the spelling, the spec is canonicalized once here. The list always
    ends in a distinct, non-nullable column: the first such column in the spec,
    or the table's primary key appended in ascending order.
    """

    def __init__(self, source: Any, spec: SortSpec | None = None) -> None:
        self.table = TableOptions.from_source(source)
        self.columns: tuple[Column, ...] = self._build_columns(spec or {})

        logger.debug(
            "Order definition built",
            extra={"table": self.table.name, "columns": self.prefixed_column_names},
        )

    @classmethod
    def build(cls, source: Any, spec: SortSpec | None = None) -> OrderDefinition:
        return cls(source, spec)

    # --- COLUMN BUILDING ---

    def _build_columns(self, spec: SortSpec) -> tuple[Column, ...]:
        resolved: dict[str, Column] = {}
        for reference, options in spec.items():
            column = self._build_column(reference, options)
            resolved.setdefault(column.prefixed_name, column)

        definition: dict[str, Column] = {}
        for name, column in resolved.items():
            definition[name] = column
            if column.distinct and not column.nullable:
                # Columns after a unique one can never break a tie.
                break
        else:
            self._add_tiebreaker(definition)

        columns = list(definition.values())
        columns[0] = columns[0].as_leftmost()
        return tuple(columns)

    def _build_column(self, reference: Any, options: Any) -> Column:
        name, owner = self._column_reference(reference)
        options = self._normalize_options(options)

        table = self._column_table(options.get("model") or options.get("table") or owner, name)
        prefix, _, unprefixed = name.rpartition(".")
        if prefix == table.name:
            name = unprefixed

        return Column.build(
            table,
            name,
            direction=options.get("direction"),
            nullable=options.get("nullable"),
            nulls=options.get("nulls"),
            distinct=options.get("distinct"),
        )

    def _add_tiebreaker(self, definition: dict[str, Column]) -> None:
        pk_column = Column.build(
            self.table, self.table.primary_key, direction=SortDirection.ASC, nullable=False
        )
        if pk_column.prefixed_name in definition:
            # Listed explicitly but marked non-distinct or nullable.
            raise MissingTiebreaker(
                f"Primary key '{pk_column.prefixed_name}' cannot be used as tie-breaker "
                "unless it is distinct and non-nullable."
            )
        definition[pk_column.prefixed_name] = pk_column

    @staticmethod
    def _column_reference(reference: Any) -> tuple[str, Any]:
        """Returns the column name and, for SQLAlchemy columns, their table."""
        if isinstance(reference, Enum):
            reference = reference.value
        if isinstance(reference, str):
            return reference.strip(), None

        element = reference
        if hasattr(element, "__clause_element__"):
            element = element.__clause_element__()
        table = getattr(element, "table", None)
        key = getattr(element, "key", None)
        if table is None or key is None or not hasattr(table, "name"):
            raise InvalidColumn(f"Unsupported column reference {reference!r}")
        return f"{table.name}.{key}", table

    @staticmethod
    def _normalize_options(options: Any) -> dict[str, Any]:
        if not isinstance(options, Mapping):
            return {"direction": SortDirection.parse(options)}

        normalized: dict[str, Any] = {}
        for key, value in options.items():
            if isinstance(key, Enum):
                key = key.value
            key = str(key).lower()
            if key in _OPTION_KEYS:
                normalized[key] = value
        return normalized

    def _column_table(self, override: Any, name: str) -> TableOptions:
        prefix, _, unprefixed = name.rpartition(".")

        if override is not None:
            table = TableOptions.from_source(override)
            if table.has_column(unprefixed):
                return table
            raise InvalidColumn(
                f"Table '{table.name}' doesn't have a '{name}' column. "
                "Tip: check the 'model' option value in the column's order configuration.",
                column=name,
            )

        if (not prefix or prefix == self.table.name) and self.table.has_column(unprefixed):
            return self.table

        raise InvalidColumn(
            f"Unable to determine which table the column '{name}' belongs to. "
            "Tip: set/check the 'model' option value in the column's order configuration.",
            column=name,
        )

    # --- INTROSPECTION ---

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    @property
    def prefixed_column_names(self) -> list[str]:
        return [c.prefixed_name for c in self.columns]

    @property
    def tiebreaker(self) -> Column:
        return self.columns[-1]

    def to_dict(self) -> dict[str, dict[str, Any]]:
        result: dict[str, dict[str, Any]] = {}
        for column in self.columns:
            result.update(column.to_dict())
        return result

    @property
    def state(self) -> str:
        """
        Fingerprint of the normalized column list.

        Equivalent specs (different casing, Enum vs string values, prefixed vs
        bare names) share a state; any change to a column's direction, nulls,
        distinct or nullable flag produces a new one.
        """
        data = json.dumps(self.to_dict(), separators=(",", ":"))
        return hashlib.sha256(data.encode("utf-8")).hexdigest()

    # --- SQL ---

    def order_by(self, dialect: Dialect) -> list[ColumnElement[Any]]:
        """ORDER BY clauses for the natural (forward) order."""
        return [term for column in self.columns for term in column.order_by(dialect)]

    def reversed_order_by(self, dialect: Dialect) -> list[ColumnElement[Any]]:
        """ORDER BY clauses used to fetch a previous page."""
        return [term for column in self.columns for term in column.reversed_order_by(dialect)]

    def sql(self, dialect: Dialect) -> str:
        """Returns the ORDER BY expressions as SQL text."""
        return render_clauses(self.order_by(dialect), dialect)

    def reversed_sql(self, dialect: Dialect) -> str:
        """Returns the reversed ORDER BY expressions as SQL text."""
        return render_clauses(self.reversed_order_by(dialect), dialect)

    def select_columns(self) -> list[Label[Any]]:
        """Sort columns labelled with their cursor aliases, for adding to a SELECT."""
        return [column.select_expression() for column in self.columns]

    @property
    def select_sql(self) -> str:
        return ", ".join(column.select_sql for column in self.columns)

    def selected_values(self, row: Any) -> dict[str, Any]:
        """
        Extracts the sort column values from a row fetched with select_columns().

        Args:
            row: SQLAlchemy Row, mapping, or object with alias attributes

        Returns:
            Mapping of prefixed column name to value, empty for a missing row
        """
        if not row:
            return {}

        mapping = getattr(row, "_mapping", row)
        values: dict[str, Any] = {}
        for column in self.columns:
            alias = column.select_alias
            if isinstance(mapping, Mapping):
                if alias in mapping:
                    values[column.prefixed_name] = mapping[alias]
            elif hasattr(mapping, alias):
                values[column.prefixed_name] = getattr(mapping, alias)
        return values

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OrderDefinition):
            return NotImplemented
        return self.table == other.table and self.columns == other.columns

    def __hash__(self) -> int:
        return hash((self.table, self.columns))

    def __repr__(self) -> str:
        return f"OrderDefinition({self.table.name!r}, {self.to_dict()!r})"


def render_clauses(clauses: list[Any], dialect: Dialect) -> str:
    """Compiles SQLAlchemy clauses to SQL text with values inlined."""
    from sqlalchemy.dialects import mysql, postgresql, sqlite

    sa_dialect = {
        "mysql": mysql.dialect,
        "postgresql": postgresql.dialect,
    }.get(dialect.name, sqlite.dialect)()
    return ", ".join(
        str(clause.compile(dialect=sa_dialect, compile_kwargs={"literal_binds": True}))
        for clause in clauses
    )
