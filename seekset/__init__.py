from .column import Column, NullsOrder, SortDirection
from .conditions import SeekConditionBuilder, build_seek_condition
from .config import ColumnInfo, TableOptions
from .cursor import Cursor, CursorDirection, CursorPayload
from .dialects import Dialect, MySQL, PostgreSQL, SQLite, get_dialect
from .exceptions import (
    ConfigurationError,
    CursorError,
    ExpiredCursor,
    InvalidColumn,
    InvalidCursor,
    InvalidCursorDirection,
    InvalidLimit,
    MissingTiebreaker,
    SeeksetError,
)
from .order import OrderDefinition
from .pagination import Page, PageResult
from .record import Record
from .settings import Settings, configure, get_settings, reset_settings, using_settings
from .tableizer import PageTableizer

__all__ = [
    "Page",
    "PageResult",
    "OrderDefinition",
    "Column",
    "SortDirection",
    "NullsOrder",
    "Record",
    "Cursor",
    "CursorDirection",
    "CursorPayload",
    "TableOptions",
    "ColumnInfo",
    "PageTableizer",
    # Seek predicates
    "SeekConditionBuilder",
    "build_seek_condition",
    # Dialects
    "Dialect",
    "SQLite",
    "MySQL",
    "PostgreSQL",
    "get_dialect",
    # Settings
    "Settings",
    "configure",
    "get_settings",
    "reset_settings",
    "using_settings",
    # Exceptions
    "SeeksetError",
    "CursorError",
    "InvalidCursor",
    "ExpiredCursor",
    "InvalidCursorDirection",
    "InvalidColumn",
    "InvalidLimit",
    "ConfigurationError",
    "MissingTiebreaker",
]
