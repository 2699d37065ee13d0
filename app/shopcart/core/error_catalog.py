from dataclasses import dataclass
from fastapi import status


@dataclass(frozen=True)
class ErrorDefinition:
    code: str
    message: str
    status_code: int


class ErrorCatalog:
    INVALID_ATTRIBUTE = ErrorDefinition(
        "INVALID_ATTRIBUTE",
        "Invalid line item attribute",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    ROW_NOT_FOUND = ErrorDefinition(
        "ROW_NOT_FOUND",
        "Cart row not found",
        status.HTTP_404_NOT_FOUND,
    )
    UNKNOWN_MODEL = ErrorDefinition(
        "UNKNOWN_MODEL",
        "Unknown model",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    VALIDATION_ERROR = ErrorDefinition(
        "VALIDATION_ERROR",
        "Validation error",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    STORE_UNAVAILABLE = ErrorDefinition(
        "STORE_UNAVAILABLE",
        "Cart store unavailable",
        status.HTTP_503_SERVICE_UNAVAILABLE,
    )
    INTERNAL_ERROR = ErrorDefinition(
        "INTERNAL_ERROR",
        "Internal server error",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


class AppError(Exception):
    def __init__(self, error: ErrorDefinition, details: object | None = None, message: str | None = None):
        self.error = error
        self.details = details
        super().__init__(message or error.message)


class InvalidAttributeError(AppError):
    """A line item attribute (id, name, price, quantity, rate, options) is not valid."""

    def __init__(self, message: str, **details):
        super().__init__(ErrorCatalog.INVALID_ATTRIBUTE, details={"message": message, **details}, message=message)


class RowNotFoundError(AppError):
    def __init__(self, row_id: str):
        self.row_id = row_id
        message = f"The cart does not contain rowId {row_id}."
        super().__init__(ErrorCatalog.ROW_NOT_FOUND, details={"message": message, "row_id": row_id}, message=message)


class UnknownModelError(AppError):
    def __init__(self, model: str):
        self.model = model
        message = f"The supplied model {model} does not exist."
        super().__init__(ErrorCatalog.UNKNOWN_MODEL, details={"message": message, "model": model}, message=message)
