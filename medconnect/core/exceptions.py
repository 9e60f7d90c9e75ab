"""Domain errors raised by the availability service and doctor store."""


class AvailabilityError(Exception):
    """Base class for caller-input errors. Never retried."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRangeError(AvailabilityError):
    """Missing, unparseable or inverted date range."""


class ValidationError(AvailabilityError):
    """Missing or malformed mutation input."""


class NotFoundError(AvailabilityError):
    """Doctor lookup miss."""
