from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from .conditions import build_seek_condition
from .serializer import ValueSerializer

if TYPE_CHECKING:
    from sqlalchemy.sql.elements import ColumnElement

    from .dialects import Dialect
    from .order import OrderDefinition

_serializer = ValueSerializer()


@dataclass(frozen=True, eq=False)
class Record:
    """
    The anchor row of a cursor: the values of every sort column for one row.

    Values are kept in their token-safe form (see ValueSerializer), keyed by
    prefixed column name. Two records are equal when they hold the same values.
    """

    order: OrderDefinition
    values: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        normalized = _serializer.normalize_values(dict(self.values or {}))
        object.__setattr__(self, "values", MappingProxyType(normalized))

    @classmethod
    def from_row(cls, order: OrderDefinition, row: Any) -> Record:
        """Builds a record from a row fetched with the order's select columns."""
        return cls(order, order.selected_values(row))

    @property
    def state(self) -> str:
        """Fingerprint of the record values."""
        data = json.dumps(dict(self.values), sort_keys=True, separators=(",", ":"), default=str)
        return hashlib.sha256(data.encode("utf-8")).hexdigest()

    def seek_condition(self, direction: str, dialect: Dialect) -> ColumnElement[bool]:
        """
        Predicate selecting the rows after (``next``) or before (``prev``) this
        record in the order.
        """
        return build_seek_condition(self.order.columns, self.values, direction, dialect)

    def to_dict(self) -> dict[str, Any]:
        return dict(self.values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Record):
            return NotImplemented
        return dict(self.values) == dict(other.values)

    def __hash__(self) -> int:
        return hash(self.state)

    def __repr__(self) -> str:
        return f"Record({dict(self.values)!r})"
