from enum import Enum
from typing import Any, Optional


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    ADAPTER_FAILURE = "ADAPTER_FAILURE"
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_FOUND = "NOT_FOUND"
    DUPLICATE_CATEGORY = "DUPLICATE_CATEGORY"
    PROTECTED_CATEGORY = "PROTECTED_CATEGORY"
    CATEGORY_NOT_FOUND = "CATEGORY_NOT_FOUND"


class CashtrackError(Exception):
    """Base error for everything raised by the package.

    message is safe to show to the user, code is stable for programmatic
    handling and details carries extra context for logs.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_ERROR,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code.value!r}, "
            f"details={self.details!r})"
        )


class AdapterFailure(CashtrackError):
    """A read or write against the transaction store did not complete.

    Raised only inside store implementations; the public store methods turn
    it into an unsuccessful StoreResult.
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message, ErrorCode.ADAPTER_FAILURE, details)


class ValidationFailure(CashtrackError):
    """Create/update input was rejected before anything was written."""

    def __init__(self, errors: list[dict[str, Any]]):
        fields = ", ".join(e.get("field", "?") for e in errors)
        super().__init__(
            f"Invalid entry: {fields}",
            ErrorCode.VALIDATION_ERROR,
            {"errors": errors},
        )
        self.errors = errors


class RegistryConflict(CashtrackError):
    pass


class DuplicateCategory(RegistryConflict):
    def __init__(self, name: str):
        super().__init__(
            f'Category "{name}" already exists',
            ErrorCode.DUPLICATE_CATEGORY,
            {"name": name},
        )
        self.name = name


class ProtectedCategory(RegistryConflict):
    def __init__(self, name: str):
        super().__init__(
            f'Category "{name}" is built in and cannot be removed',
            ErrorCode.PROTECTED_CATEGORY,
            {"name": name},
        )
        self.name = name


class CategoryNotFound(CashtrackError):
    def __init__(self, name: str):
        super().__init__(
            f'Category "{name}" does not exist',
            ErrorCode.CATEGORY_NOT_FOUND,
            {"name": name},
        )
        self.name = name
