"""Domain errors raised by the access layer.

Handlers registered in ``racecalendar.main`` translate them to HTTP
responses: not-found to 404, missing fields to 422, store failures to 500.
"""


class RaceCalendarError(Exception):
    """Base class for all domain errors."""


class NotFoundError(RaceCalendarError):
    """Referenced identifier has no matching record."""

    entity = "record"

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"{self.entity.capitalize()} not found: {record_id}")


class RaceNotFoundError(NotFoundError):
    entity = "race"


class UserNotFoundError(NotFoundError):
    entity = "user"


class ValidationMissingError(RaceCalendarError):
    """Required fields are absent on create."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Missing required fields: {', '.join(missing)}")


class RaceValidationError(ValidationMissingError):
    pass


class UserValidationError(ValidationMissingError):
    pass


class PersistenceError(RaceCalendarError):
    """A store operation was rejected."""

    def __init__(self, message: str, operation: str | None = None):
        self.operation = operation
        super().__init__(message)
