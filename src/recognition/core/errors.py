"""Exception hierarchy for the recognition package."""

from __future__ import annotations


class RecognitionError(Exception):
    """Base class for all recognition errors."""


class FormulaSyntaxError(RecognitionError):
    """Raised when a formula cannot be turned into a recognition tree."""


class RuleValidationError(RecognitionError):
    """Raised when a rule payload is rejected before persistence."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class NotFoundError(RecognitionError):
    """Raised when a referenced entity does not exist."""

    def __init__(self, entity: str, key: object) -> None:
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} {key!r} was not found")
