"""Errors raised by the scheduling core."""


class ReservationError(Exception):
    """Base class for scheduling errors."""


class InvalidViewMode(ReservationError, ValueError):
    def __init__(self, value: object) -> None:
        super().__init__(f"View mode must be day, week, or month (got {value!r})")
        self.value = value


class RepositoryUnavailable(ReservationError):
    """The booking store or a directory could not be read."""
