from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .pagination import Page

NULL_TEXT = "<NULL>"
COL_PADDING = 1


class PageTableizer:
    """
    Renders the sort column values of a page's rows as a text table.

    Meant for debugging and tests: the output is the same whichever database
    produced the rows.

        +--------------------------------------------------------------------------------+
        |  users.first_name  |  users.last_name  |        users.email        |  users.id  |
        +--------------------------------------------------------------------------------+
        |       George       |      <NULL>       |     george@domain.com     |     9      |
        |        Jane        |       Smith       |   jane.c.smith@email.com  |     3      |
        +--------------------------------------------------------------------------------+
    """

    def __init__(self, page: Page) -> None:
        self.page = page
        self.order = page.order

    def tableize(self) -> str:
        records = self.page.records
        if not records:
            return ""

        columns = self.order.prefixed_column_names
        rows = [self._row_values(record) for record in records]
        widths = {name: len(name) + COL_PADDING * 2 for name in columns}
        for row in rows:
            for name, value in row.items():
                widths[name] = max(widths[name], len(value) + COL_PADDING * 2)

        header = "".join(f"|{name.center(widths[name])}" for name in columns) + " |\n"
        divider = "+" + "-" * (len(header) - 3) + "+\n"
        lines = [
            "".join(f"|{row.get(name, '').center(widths[name])}" for name in columns) + " |"
            for row in rows
        ]
        return divider + header + divider + "\n".join(lines) + "\n" + divider

    def _row_values(self, record: Any) -> dict[str, str]:
        return {
            name: format_value(value)
            for name, value in self.order.selected_values(record).items()
        }


def format_value(value: Any) -> str:
    """
    Formats a cell value:
    - None -> <NULL>
    - empty string -> ''
    - datetime -> ISO 8601 in UTC with milliseconds and a Z suffix
    - float/Decimal -> plain notation, with a zero fraction dropped
    """
    if value is None:
        return NULL_TEXT
    if isinstance(value, str):
        return value if value else "''"
    if isinstance(value, datetime):
        if value.utcoffset() is not None:
            value = value.astimezone(timezone.utc)
        return value.replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z"
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float):
        value = Decimal(repr(value))
    if isinstance(value, Decimal):
        text = format(value, "f")
        if text.endswith(".0"):
            return text[:-2]
        return text
    return str(value)
