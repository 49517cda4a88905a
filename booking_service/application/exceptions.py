class ValidationError(ValueError):
    """Raised when caller input is malformed or outside the currently valid set."""

    def __init__(self, message: str, fields: list[str] | None = None) -> None:
        super().__init__(message)
        self.fields = list(fields or [])


class ConfigurationError(RuntimeError):
    """Raised when business hours or the published catalog are inconsistent."""
    pass


class InvalidSessionState(RuntimeError):
    """Raised when a booking session operation is not allowed in the current step."""
    pass


class InvalidAppointmentState(RuntimeError):
    """Raised when an appointment cannot move to the requested status."""
    pass


class StoreUnavailableError(RuntimeError):
    """Raised by booking stores when the backing storage cannot be read or written."""
    pass


class ReservationTimeoutError(RuntimeError):
    """Raised by booking stores when the per-service lock is not acquired in time."""
    pass
