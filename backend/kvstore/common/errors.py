"""
Error Definitions

Defines the exception classes raised by every store backend, so callers can
handle failures uniformly regardless of the engine behind a store.
"""

from contextlib import contextmanager
from typing import Any, Iterator, Optional, Union


class StoreError(Exception):
    """
    Store Base Exception

    Base class for all store exceptions, containing error message, type, and code.
    """

    def __init__(
        self,
        message: str,
        error_type: str = "store_error",
        code: str = "internal_error",
        details: Optional[dict[str, Any]] = None,
    ):
        """
        Initialize exception

        Args:
            message: Error message
            error_type: Error type
            code: Error code
            details: Extra error details (operation, key, table, ...)
        """
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.code = code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to dictionary format

        Returns:
            dict: Error information dictionary
        """
        result = {
            "error": {
                "message": self.message,
                "type": self.error_type,
                "code": self.code,
            }
        }
        if self.details:
            result["error"]["details"] = self.details
        return result


class NotFoundError(StoreError):
    """
    Record Not Found Error

    Raised by read when no live record matches the key in the namespace.
    """

    def __init__(
        self,
        message: str = "Record not found",
        code: str = "not_found",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            error_type="not_found_error",
            code=code,
            details=details,
        )


class BackendError(StoreError):
    """
    Backend Error

    Raised when the underlying engine cannot be reached or rejects a command.
    The original exception is chained as ``__cause__``.
    """

    def __init__(
        self,
        message: str = "Backend error",
        code: str = "backend_error",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            error_type="backend_error",
            code=code,
            details=details,
        )


class ConfigurationError(StoreError):
    """
    Configuration Error

    Raised when a store is configured with an invalid namespace, address or backend.
    """

    def __init__(
        self,
        message: str = "Invalid store configuration",
        code: str = "configuration_error",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            error_type="configuration_error",
            code=code,
            details=details,
        )


@contextmanager
def backend_errors(
    exc_types: Union[type[BaseException], tuple[type[BaseException], ...]],
    operation: str,
    **details: Any,
) -> Iterator[None]:
    """
    Re-raise engine exceptions as BackendError

    Args:
        exc_types: Engine exception class(es) to translate
        operation: Operation name, e.g. "read"
        **details: Context such as key and table

    Example:
        with backend_errors(RedisError, "read", key=key, table=table):
            await client.get(key)
    """
    try:
        yield
    except exc_types as e:
        raise BackendError(
            message=f"Couldn't {operation} {_describe(details)}: {str(e)}",
            details={"operation": operation, **details},
        ) from e


def _describe(details: dict[str, Any]) -> str:
    return ", ".join(f"{name}={value!r}" for name, value in details.items()) or "store"
