"""
Cursor tokens.

A cursor points at the boundary row of a page and says which way to go from
it. It travels to the client as an opaque token:

    base64url(json({"f": <anchor values>, "d": "next"|"prev", "s": <state>, "c": <epoch>}))

``s`` is an HMAC of everything the cursor depends on (the page's query and
order, the anchor values, the direction and the creation time), keyed by the
configured secret. A token whose state no longer matches is rejected, so
clients can neither forge anchors nor replay a token against a different
query.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from ._logging import logger, redact_values
from .dialects import get_dialect
from .exceptions import ExpiredCursor, InvalidCursor, InvalidCursorDirection, handle_token_errors
from .record import Record
from .settings import Settings, get_settings

if TYPE_CHECKING:
    from sqlalchemy.sql.elements import ColumnElement

    from .pagination import Page


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CursorDirection(str, Enum):
    NEXT = "next"
    PREV = "prev"

    @classmethod
    def parse(cls, value: Any) -> CursorDirection:
        if isinstance(value, CursorDirection):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        raise InvalidCursorDirection(value)


class CursorPayload(BaseModel):
    """Wire shape of a decoded token."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)

    values: dict[str, Any] = Field(alias="f")
    # Kept as a plain string so an unknown direction surfaces as InvalidCursorDirection.
    direction: str = Field(alias="d")
    state: str = Field(alias="s")
    created_at: int = Field(alias="c")


class Cursor:
    """
    A signed pointer to the row a page starts after (or ends before).

    Args:
        record: Anchor row values
        direction: "next"/"prev" (any case) or a CursorDirection
        created_at: Creation time, defaults to now. Naive values are taken as UTC
        page: Page the cursor belongs to. Its state scopes the signature
        settings: Settings to use instead of the active ones

    Raises:
        InvalidCursorDirection: If the direction is neither next nor prev
        ExpiredCursor: If created_at is older than the configured lifetime
    """

    def __init__(
        self,
        record: Record,
        direction: Any,
        created_at: datetime | None = None,
        *,
        page: Page | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.record = record
        self.direction = CursorDirection.parse(direction)
        self.page = page
        self._settings = settings

        created_at = created_at or _utcnow()
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        self.created_at = created_at

        self._check_expiration()

    @property
    def settings(self) -> Settings:
        """Explicit settings, else the page's, else the ones active right now."""
        if self._settings is not None:
            return self._settings
        if self.page is not None:
            return self.page.settings
        return get_settings()

    def _check_expiration(self) -> None:
        expires_in = self.settings.token_expires_in
        if expires_in is None:
            return
        if _utcnow() - self.created_at > timedelta(seconds=expires_in):
            raise ExpiredCursor()

    # --- BUILDING ---

    @classmethod
    def for_page_and_token(cls, page: Page, token: str) -> Cursor:
        """
        Rebuilds a cursor from a client token and checks it belongs to the page.

        Raises:
            InvalidCursor: If the token is malformed or was not issued for this page
            ExpiredCursor: If the token is too old
            InvalidCursorDirection: If the token carries an unknown direction
        """
        payload = cls.decode(token)

        record = Record(page.order, payload["f"])
        with handle_token_errors():
            created_at = datetime.fromtimestamp(payload["c"], tz=timezone.utc)
        cursor = cls(record, payload["d"], created_at=created_at, page=page)

        signature = str(payload["s"]).encode("utf-8", "surrogatepass")
        if not hmac.compare_digest(cursor.state.encode("ascii"), signature):
            logger.warning(
                "Rejected cursor token: state mismatch",
                extra={"table": page.table.name, "values": redact_values(record.values)},
            )
            raise InvalidCursor("Invalid cursor possibly due to filter or order changed")
        return cursor

    # --- ENCODING ---

    @staticmethod
    def encode(payload: dict[str, Any]) -> str:
        data = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")
        return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")

    @staticmethod
    def decode(token: str) -> dict[str, Any]:
        """
        Decodes a token into its payload mapping (``f``, ``d``, ``s``, ``c``).

        Raises:
            InvalidCursor: If the token is not a well-formed payload
        """
        if not isinstance(token, str) or not token.strip():
            raise InvalidCursor("Invalid cursor: malformed token")

        with handle_token_errors():
            token = token.strip()
            raw = base64.urlsafe_b64decode(token + "=" * (-len(token) % 4))
            payload = CursorPayload.model_validate_json(raw)
        return payload.model_dump(by_alias=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "f": self.record.to_dict(),
            "d": self.direction.value,
            "s": self.state,
            "c": self.created_at_epoch,
        }

    def to_token(self) -> str:
        return self.encode(self.to_dict())

    def __str__(self) -> str:
        return self.to_token()

    # --- STATE ---

    @property
    def created_at_epoch(self) -> int:
        return int(self.created_at.timestamp())

    @property
    def scope_state(self) -> str:
        if self.page is not None:
            return self.page.state
        return self.record.order.state

    @property
    def state(self) -> str:
        """
        HMAC-SHA256 over the scope, record, direction and creation time.

        Raises:
            ConfigurationError: If no secret is configured
        """
        secret = self.settings.require_secret()
        message = "".join(
            [
                self.scope_state,
                self.record.state,
                self.direction.value,
                str(self.created_at_epoch),
            ]
        )
        return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()

    # --- QUERYING ---

    @property
    def is_next(self) -> bool:
        return self.direction is CursorDirection.NEXT

    @property
    def is_prev(self) -> bool:
        return self.direction is CursorDirection.PREV

    def sql(self, dialect: Any = None) -> ColumnElement[bool]:
        """
        Seek predicate selecting the rows on this cursor's side of the anchor.

        Args:
            dialect: Anything get_dialect() accepts. Defaults to the page's dialect
        """
        if dialect is None and self.page is not None:
            dialect = self.page.dialect
        return self.record.seek_condition(self.direction.value, get_dialect(dialect))

    def __repr__(self) -> str:
        created_at = self.created_at.isoformat()
        return f"Cursor(direction={self.direction.value!r}, created_at={created_at!r})"
