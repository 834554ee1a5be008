from enum import StrEnum


class ErrorKind(StrEnum):
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    DUPLICATION = "duplication"
    AUTHENTICATION = "authentication"


class DomainError(Exception):
    """Base for errors raised by the usecases; `kind` tells callers how to react."""

    kind: ErrorKind

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(DomainError):
    kind = ErrorKind.NOT_FOUND


class ValidationError(DomainError):
    kind = ErrorKind.VALIDATION


class DuplicationError(DomainError):
    kind = ErrorKind.DUPLICATION


class AuthenticationError(DomainError):
    kind = ErrorKind.AUTHENTICATION
