"""Exception types shared by the occurrence engine and its write boundary."""


class OccurrenceError(Exception):
    """Base exception for occurrence computation errors."""
    pass


class FormatError(OccurrenceError, ValueError):
    """Raised when a date key, time of day or recurrence rule fails to parse."""
    pass


class InvariantViolation(OccurrenceError):
    """Raised when a write would store a state the read side must never see."""
    pass


__all__ = ['OccurrenceError', 'FormatError', 'InvariantViolation']
