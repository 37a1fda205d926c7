"""Feed domain exceptions."""

from src.core.domain.exceptions import ConflictError, EntityNotFoundError


class FeedSessionNotFoundError(EntityNotFoundError):
    """Raised when a feed session does not exist or has expired."""

    error_code = "FEED_SESSION_NOT_FOUND"

    def __init__(self, session_id: str):
        super().__init__("Feed session", session_id)


class FeedClosedError(ConflictError):
    """Raised when an operation targets a feed that has been closed."""

    error_code = "FEED_CLOSED"

    def __init__(self, feed_id: str):
        super().__init__(f"Feed '{feed_id}' has been closed")
