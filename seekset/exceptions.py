from collections.abc import Generator
from contextlib import contextmanager

from pydantic import ValidationError


class SeeksetError(Exception):
    """Base exception for all Seekset errors."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class CursorError(SeeksetError):
    """Base class for errors caused by a client-held cursor token."""


class InvalidCursor(CursorError):
    """Raised when a token cannot be decoded or no longer matches its page."""


class ExpiredCursor(CursorError):
    """Raised when a cursor is older than the configured expiration window."""

    def __init__(
        self, message: str = "Cursor token expired", original_error: Exception | None = None
    ) -> None:
        super().__init__(message, original_error)


class InvalidCursorDirection(CursorError):
    """Raised when a cursor direction is neither 'next' nor 'prev'."""

    def __init__(self, direction: object, original_error: Exception | None = None) -> None:
        super().__init__(
            f"Cursor direction should either be 'prev' or 'next', got {direction!r}",
            original_error,
        )
        self.direction = direction


class InvalidColumn(SeeksetError):
    """Raised when a sort column cannot be resolved or its values cannot be put in a cursor."""

    def __init__(self, message: str, column: str | None = None) -> None:
        super().__init__(message)
        self.column = column


class InvalidLimit(SeeksetError):
    """Raised when a page limit is not within 1 and the configured maximum."""

    def __init__(self, max_limit: int, original_error: Exception | None = None) -> None:
        super().__init__(f"Allowed page limit is 1 up to {max_limit}", original_error)
        self.max_limit = max_limit


class ConfigurationError(SeeksetError):
    """Raised when required configuration is missing or inconsistent."""


class MissingTiebreaker(ConfigurationError):
    """Raised when an order definition cannot end in a distinct, non-nullable column."""

    def __init__(
        self,
        message: str = "A non-nullable and distinct column is required.",
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, original_error)


@contextmanager
def handle_token_errors() -> Generator[None, None, None]:
    """
    Context manager that catches low-level decoding failures
    and raises InvalidCursor instead.

    Base64 padding errors, invalid UTF-8, malformed JSON and payloads
    with the wrong shape all end up here.

    Usage:
        with handle_token_errors():
            payload = CursorPayload.model_validate_json(raw)
    """
    try:
        yield
    except ValidationError as e:
        message = f"Invalid cursor: malformed payload ({e.error_count()} errors)"
        raise InvalidCursor(message, e) from e
    except (ValueError, TypeError, OverflowError, OSError) as e:
        raise InvalidCursor(f"Invalid cursor: {e}", original_error=e) from e
