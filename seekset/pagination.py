"""
Keyset pagination for SQLAlchemy queries.

A Page wraps a caller's SELECT, a sort spec and a limit. It fetches one window
of rows in that order and hands out opaque cursor tokens for the adjacent
windows, which a later request passes back to ``Page.at``:

    page = Page(conn, select(users).where(users.c.active), order={"last_name": "desc"}, limit=20)
    page.records
    page.next_token

    page = Page(conn, select(users).where(users.c.active), order={"last_name": "desc"}, limit=20)
    page = page.at(token_from_client)

PageResult is a plain snapshot of a page for API responses.
"""

from __future__ import annotations

import copy
import hashlib
import json
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from sqlalchemy import Select
from sqlalchemy.sql.selectable import Join

from ._logging import logger
from .config import TableOptions
from .cursor import Cursor, CursorDirection
from .dialects import Dialect, get_dialect
from .exceptions import ConfigurationError, InvalidLimit
from .order import OrderDefinition, SortSpec
from .query import PageQueryBuilder
from .record import Record
from .settings import Settings, get_settings
from .tableizer import PageTableizer

T = TypeVar("T")


@dataclass
class PageResult(Generic[T]):
    """
    Represents a single page of results with its pagination tokens.

    Attributes:
        items: Rows of this page
        next_token: Token for the next page (None if this is the last page)
        prev_token: Token for the previous page (None if this is the first page)
        count: Number of items in this page
    """

    items: list[T]
    next_token: str | None
    prev_token: str | None
    count: int

    @property
    def has_more(self) -> bool:
        """Returns True if there are more pages available."""
        return self.next_token is not None


class Page:
    """
    One window of a keyset-paginated query.

    Args:
        connection: SQLAlchemy Connection or Session used to run the query
        source: SELECT statement holding the caller's filters and joins
        order: Sort spec (see OrderDefinition). Defaults to the primary key
        limit: Rows per page, defaults to the configured default limit
        table: Table whose primary key breaks ties. Defaults to the first FROM of source
        settings: Settings to use instead of the active ones
        dialect: Null ordering rules. Defaults to the connection's dialect

    Raises:
        InvalidLimit: If limit is outside 1..page_max_limit
        InvalidColumn: If a sort column cannot be resolved
    """

    def __init__(
        self,
        connection: Any,
        source: Select[Any],
        *,
        order: SortSpec | None = None,
        limit: int | str | None = None,
        table: Any = None,
        settings: Settings | None = None,
        dialect: Any = None,
    ) -> None:
        self.connection = connection
        self.source = source
        self._settings = settings
        self.limit = self._validate_limit(limit)
        self.table = TableOptions.from_source(table if table is not None else _source_table(source))
        self.order = OrderDefinition(self.table, order)
        self.dialect: Dialect = get_dialect(dialect if dialect is not None else connection)
        self.cursor: Cursor | None = None
        self._loaded_rows: list[Any] | None = None

    @property
    def settings(self) -> Settings:
        """Settings passed to the page, else the ones active right now."""
        return self._settings if self._settings is not None else get_settings()

    def _validate_limit(self, limit: int | str | None) -> int:
        if limit is None or (isinstance(limit, str) and not limit.strip()):
            return self.settings.default_limit
        try:
            value = int(limit)
        except (TypeError, ValueError) as e:
            raise InvalidLimit(self.settings.page_max_limit, original_error=e) from e
        if value < 1 or value > self.settings.page_max_limit:
            raise InvalidLimit(self.settings.page_max_limit)
        return value

    # --- NAVIGATION ---

    def at(self, token: str | None) -> Page:
        """
        Returns a copy of this page pointed at a cursor token.

        An empty token returns the root page.

        Raises:
            InvalidCursor: If the token is malformed or was issued for another query
            ExpiredCursor: If the token is too old
        """
        page = copy.copy(self)
        page.cursor = Cursor.for_page_and_token(page, token) if token else None
        return page.reload()

    def reload(self) -> Page:
        """Clears the fetched rows so the next access queries again."""
        self._loaded_rows = None
        return self

    def next_page(self) -> Page | None:
        token = self.next_token
        return self.at(token) if token else None

    def prev_page(self) -> Page | None:
        token = self.prev_token
        return self.at(token) if token else None

    # --- ROWS ---

    def _load_rows(self) -> list[Any]:
        """
        Fetches limit + 1 rows. The extra row tells whether another page lies
        in the direction being paged; when paging back it is the last row of
        the page before and sits first once the rows are put back in order.
        """
        if self._loaded_rows is not None:
            return self._loaded_rows

        stmt = (
            PageQueryBuilder(self.source, self.order, self.dialect)
            .after(self.cursor)
            .reverse(self.paged_back)
            .limit(self.limit + 1)
            .build()
        )

        logger.info(
            "Fetching page",
            extra={
                "table": self.table.name,
                "limit": self.limit,
                "direction": self.cursor.direction.value if self.cursor else None,
                "has_cursor": self.cursor is not None,
            },
        )
        rows = list(self.connection.execute(stmt).all())
        if self.paged_back:
            rows.reverse()

        self._loaded_rows = rows
        return rows

    @property
    def records(self) -> list[Any]:
        """Rows of this page in the natural order, at most ``limit`` of them."""
        rows = self._load_rows()
        if self.paged_back and self._extra_row_returned:
            return rows[1 : self.limit + 1]
        return rows[: self.limit]

    @property
    def _extra_row_returned(self) -> bool:
        return len(self._load_rows()) > self.limit

    @property
    def paged_back(self) -> bool:
        return self.cursor is not None and self.cursor.is_prev

    @property
    def paged_forward(self) -> bool:
        return self.cursor is not None and self.cursor.is_next

    @property
    def has_next(self) -> bool:
        return ((self.cursor is None or self.paged_forward) and self._extra_row_returned) or (
            self.paged_back
        )

    @property
    def has_prev(self) -> bool:
        return (self.paged_back and self._extra_row_returned) or self.paged_forward

    @property
    def is_root(self) -> bool:
        return self.cursor is None or not self.has_prev

    # --- TOKENS ---

    def _token(self, direction: CursorDirection) -> str | None:
        records = self.records
        if not records:
            return None
        row = records[-1] if direction is CursorDirection.NEXT else records[0]
        record = Record.from_row(self.order, row)
        return Cursor(record, direction, page=self).to_token()

    @property
    def next_token(self) -> str | None:
        if not self.has_next:
            return None
        return self._token(CursorDirection.NEXT)

    @property
    def prev_token(self) -> str | None:
        if not self.has_prev:
            return None
        return self._token(CursorDirection.PREV)

    def links(self) -> dict[str, str]:
        """Tokens of the adjacent pages, keyed "previous"/"next"; missing pages are left out."""
        if not self.records:
            return {}
        links = {"previous": self.prev_token, "next": self.next_token}
        return {k: v for k, v in links.items() if v is not None}

    def result(self) -> PageResult[Any]:
        records = self.records
        return PageResult(
            items=records,
            next_token=self.next_token,
            prev_token=self.prev_token,
            count=len(records),
        )

    # --- STATE ---

    @property
    def state(self) -> str:
        """
        Fingerprint of the query a cursor is valid for: the source SQL, its
        bound parameters and the order. Filters or order changing between
        requests invalidate previously issued tokens.
        """
        compiled = self.source.compile()
        params = json.dumps(compiled.params, sort_keys=True, default=str)
        data = f"{compiled}~{params}~{self.order.state}"
        return hashlib.sha256(data.encode("utf-8")).hexdigest()

    def as_table(self) -> str:
        """Renders the page's sort column values as a text table, for debugging."""
        return PageTableizer(self).tableize()

    def __repr__(self) -> str:
        cursor_info = f" cursor={self.cursor!r}" if self.cursor is not None else ""
        return (
            f"<Page table={self.table.name!r} order={self.order.to_dict()!r} "
            f"limit={self.limit}{cursor_info}>"
        )


def _source_table(source: Select[Any]) -> Any:
    if not isinstance(source, Select):
        raise ConfigurationError(f"Expected a SQLAlchemy Select, got {type(source).__name__}")

    froms = source.get_final_froms()
    if not froms:
        raise ConfigurationError("Cannot determine the table to paginate, pass table= explicitly")
    table = froms[0]
    while isinstance(table, Join):
        table = table.left
    return table
