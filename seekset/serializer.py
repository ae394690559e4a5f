from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy.types import TypeEngine

from .exceptions import InvalidColumn

# Values with no JSON form that survives a token round trip
_UNSUPPORTED_TYPES = (bytes, bytearray, memoryview, set, frozenset)


class ValueSerializer:
    """
    Converts anchor values between Python/database types and token-safe scalars.

    Architectural Note:
    -------------------
    Cursor tokens are JSON, and a cursor's state fingerprint is computed from
    the anchor values before encoding and again after decoding. Both sides only
    agree if values are normalized the same way on the way in. Datetimes become
    ISO 8601 strings (UTC for aware values), Decimals and UUIDs become strings.
    When the values are bound into a seek predicate they are restored to the
    column's Python type, since drivers such as SQLite's reject ISO strings for
    DateTime columns.
    """

    def normalize(self, value: Any, column: str | None = None) -> Any:
        """
        Prepares a single value for the token payload.

        Converts:
        - datetime -> ISO 8601 string (converted to UTC if timezone aware)
        - date/time -> ISO 8601 string
        - Decimal -> string (keeps precision that JSON floats would lose)
        - UUID -> string
        - Enum -> value

        Raises:
            InvalidColumn: For binary and set values, which cannot be carried in a cursor
        """
        if isinstance(value, Enum):
            return self.normalize(value.value, column)
        if isinstance(value, datetime):
            if value.utcoffset() is not None:
                value = value.astimezone(timezone.utc)
            return value.isoformat()
        if isinstance(value, (date, time)):
            return value.isoformat()
        if isinstance(value, Decimal):
            return str(value)
        if isinstance(value, UUID):
            return str(value)
        if isinstance(value, _UNSUPPORTED_TYPES):
            raise InvalidColumn(
                f"Column '{column}' holds {type(value).__name__} values, "
                "which cannot be used as cursor values",
                column=column,
            )
        return value

    def normalize_values(self, values: dict[str, Any]) -> dict[str, Any]:
        return {str(k): self.normalize(v, str(k)) for k, v in values.items()}

    def restore(self, value: Any, type_: TypeEngine[Any] | None) -> Any:
        """
        Restores a normalized value to the Python type expected by a column.

        Values that are not strings, or columns whose Python type is unknown,
        pass through unchanged.
        """
        if value is None or type_ is None or not isinstance(value, str):
            return value

        try:
            python_type = type_.python_type
        except NotImplementedError:
            return value

        try:
            if python_type is datetime:
                return datetime.fromisoformat(value)
            if python_type is date:
                return date.fromisoformat(value)
            if python_type is time:
                return time.fromisoformat(value)
            if python_type is Decimal:
                return Decimal(value)
            if python_type is UUID:
                return UUID(value)
        except (ValueError, InvalidOperation):
            # Leave it to the database to reject; the cursor state check
            # has already vouched for the value.
            return value
        return value
