# messaging/domain/exceptions.py
from typing import Any


class MessagingError(Exception):
    """Base class for errors raised by the messaging service.

    Every subclass carries the HTTP status code the API layer answers with.
    """

    status_code: int = 500
    default_message: str = "An internal messaging error occurred"

    def __init__(self, message: str | None = None, **context: Any):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.context or None,
        }


class NotFoundError(MessagingError):
    status_code = 404
    default_message = "Resource not found"


class UnauthorizedError(MessagingError):
    status_code = 403
    default_message = "Not authorized to perform this action"


class ValidationFailedError(MessagingError):
    status_code = 422
    default_message = "Validation failed"


class TransientIOError(MessagingError):
    """The write did not happen; retrying the whole operation is safe."""

    status_code = 503
    default_message = "Storage is temporarily unavailable"


class NotificationDeliveryError(MessagingError):
    default_message = "Failed to enqueue notifications"
