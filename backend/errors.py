"""
Error types shared by the calendar client and the persistence API
"""


class CalendarError(RuntimeError):
    """Base class for every calendar failure"""


class ValidationError(CalendarError):
    """Raised when an event is missing a required field or breaks a limit"""


class ConflictError(CalendarError):
    """Raised on a duplicate id or when a mutation is already in flight"""


class CollisionError(ConflictError):
    """Raised when scheduling would overlap an existing event"""


class NotFoundError(CalendarError):
    """Raised when the update/delete target does not exist"""


class TransportError(CalendarError):
    """Raised on network failure, a non-2xx response or a malformed body"""

    def __init__(self, message: str, status_code=None):
        super().__init__(message)
        self.status_code = status_code
