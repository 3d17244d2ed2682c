"""Typed failures returned by the reservation core.

Every operation either returns its post-state or raises one of these. The
HTTP layer maps each class onto a status code in ``main.py``.
"""


class ReservationError(Exception):
    code = "reservation_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ReservationError):
    """Bad quantity or date input."""

    code = "validation_error"


class InvalidStateError(ReservationError):
    """Illegal lifecycle transition, e.g. mutating a submitted cart."""

    code = "invalid_state"


class ConflictError(ReservationError):
    """A uniqueness or optimistic-update check failed. Refetch and retry."""

    code = "conflict"


class NotFoundError(ReservationError):
    code = "not_found"


class UpstreamError(ReservationError):
    """The store could not be reached or failed the call."""

    code = "upstream_error"
