"""Exceptions raised by StepCards."""


class StepCardsError(Exception):
    """Base exception for all StepCards errors."""
    pass


class SchedulingError(StepCardsError):
    """Raised when a card or rating cannot be scheduled.

    These are data-integrity or programming errors. They are never retried.
    """
    pass


class InvalidRating(SchedulingError, ValueError):
    """Raised when a rating is not one of AGAIN, HARD, GOOD or EASY."""
    pass


class InvalidCardState(SchedulingError, ValueError):
    """Raised when a card carries a state tag outside the known four."""
    pass


class MalformedCard(SchedulingError, ValueError):
    """Raised when a card's numeric scheduling fields are missing or non-numeric."""
    pass


class ConfigurationError(StepCardsError, ValueError):
    """Raised when scheduler settings are inconsistent."""
    pass


class CardNotFoundError(StepCardsError, LookupError):
    """Raised when a card id is not present in the store."""
    pass
