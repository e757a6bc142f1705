"""Exception hierarchy for the MongoDB MCP server.

All server errors inherit from MCPServerError so that the dispatcher can turn
any failure into a single error response shape. Exceptions are grouped by the
phase in which they occur:

1. **Startup faults** terminate the process with exit status 1
   - ConfigurationError: missing or invalid connection target / settings
   - DatabaseConnectionError: the initial ping against MongoDB failed
   - ToolRegistrationError: two tools share a name, or a handler is malformed

2. **Validation faults** are reported to the caller, serving continues
   - ValidationError: tool arguments do not match the declared schema
   - UnknownToolError: the request names a tool that is not registered

3. **Operation faults** are reported to the caller, serving continues
   - QueryExecutionError, DatabaseTimeoutError, DatabaseIntegrityError,
     and DatabaseConnectionError raised mid-call

4. **Shutdown faults** are logged and never block process exit
   - ShutdownError

Implementation Notes:
---------------------
- Exceptions are immutable (frozen dataclass) to prevent accidental modification
- All exceptions are serializable to JSON via to_dict()
- Error codes follow a consistent naming convention: DOMAIN_SPECIFIC_ERROR

Usage Example:
--------------
```python
try:
    result = await collection.update_one(filter, update)
except pymongo.errors.OperationFailure as e:
    raise convert_to_mcp_exception(e, context={"collection": "orders"})
```
"""

import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

# =============================================================================
# BASE EXCEPTION CLASS
# =============================================================================


@dataclass(frozen=True)
class MCPServerError(Exception):
    """Base exception for all MCP server errors.

    Attributes:
    -----------
    message : str
        Human-readable error description for callers and logs
    error_code : str
        Machine-readable error identifier (e.g., "VALIDATION_ERROR")
    details : dict
        Additional context about the error (tool, collection, field errors)
    timestamp : str
        ISO 8601 timestamp when error occurred
    request_id : str
        Unique identifier for this error occurrence
    original_exception : Optional[Exception]
        The underlying exception that caused this error

    Example:
    --------
    >>> raise MCPServerError(
    ...     message="Request validation failed",
    ...     error_code="VALIDATION_ERROR",
    ...     details={"field": "databaseName"},
    ... )
    """

    message: str
    error_code: str
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    request_id: str = field(default_factory=lambda: str(uuid4()))
    original_exception: Exception | None = None

    def __str__(self) -> str:
        """Human-readable error representation for logs and error payloads."""
        error_msg = f"[{self.error_code}] {self.message}"
        if self.details:
            error_msg += f" | Details: {self.details}"
        if self.original_exception:
            error_msg += (
                f" | Caused by: {type(self.original_exception).__name__}: {self.original_exception}"
            )
        return error_msg

    def __repr__(self) -> str:
        """Developer-friendly representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"error_code='{self.error_code}', "
            f"message='{self.message}', "
            f"request_id='{self.request_id}', "
            f"timestamp='{self.timestamp}'"
            f")"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for JSON serialization.

        Returns:
        --------
        dict with keys: error, error_code, details, timestamp, request_id
        (plus original_error when a cause is attached)
        """
        error_dict = {
            "error": self.message,
            "error_code": self.error_code,
            "details": self.details,
            "timestamp": self.timestamp,
            "request_id": self.request_id,
        }

        if self.original_exception:
            error_dict["original_error"] = {
                "type": type(self.original_exception).__name__,
                "message": str(self.original_exception),
                "traceback": traceback.format_exception(
                    type(self.original_exception),
                    self.original_exception,
                    self.original_exception.__traceback__,
                ),
            }

        return error_dict


# =============================================================================
# STARTUP EXCEPTIONS
# =============================================================================


@dataclass(frozen=True)
class ConfigurationError(MCPServerError):
    """Configuration or initialization errors.

    These crash the application at startup rather than being caught and
    handled. The server never runs without a connection target.

    Example:
    --------
    >>> raise ConfigurationError(
    ...     message="MongoDB URL is required",
    ...     details={"env_var": "MONGO_URL"},
    ... )
    """

    error_code: str = "CONFIGURATION_ERROR"


@dataclass(frozen=True)
class ToolRegistrationError(MCPServerError):
    """A tool definition could not be added to the registry."""

    error_code: str = "TOOL_REGISTRATION_FAILED"


# =============================================================================
# DATABASE EXCEPTIONS
# =============================================================================


@dataclass(frozen=True)
class DatabaseError(MCPServerError):
    """Base class for all database-related errors."""

    error_code: str = "DATABASE_ERROR"


@dataclass(frozen=True)
class DatabaseConnectionError(DatabaseError):
    """Database connection failures.

    Raised when the initial ping fails (fatal at startup), when a tool runs
    before connect() or after close(), or when the driver loses the server
    in the middle of an operation.
    """

    error_code: str = "DB_CONNECTION_FAILED"


@dataclass(frozen=True)
class QueryExecutionError(DatabaseError):
    """MongoDB rejected or failed to execute an operation.

    Example:
    --------
    >>> raise QueryExecutionError(
    ...     message="Database operation failed",
    ...     details={"collection": "orders", "error": "unknown operator: $foo"},
    ... )
    """

    error_code: str = "QUERY_EXECUTION_FAILED"


@dataclass(frozen=True)
class DatabaseTimeoutError(DatabaseError):
    """Operation exceeded the server or network time limit."""

    error_code: str = "DB_TIMEOUT"


@dataclass(frozen=True)
class DatabaseIntegrityError(DatabaseError):
    """Write violated a uniqueness or validation constraint."""

    error_code: str = "DB_INTEGRITY_ERROR"


# =============================================================================
# REQUEST EXCEPTIONS
# =============================================================================


@dataclass(frozen=True)
class ValidationError(MCPServerError):
    """Tool arguments do not match the tool's parameter schema.

    Example:
    --------
    >>> raise ValidationError(
    ...     message="Invalid arguments for tool 'find_documents'",
    ...     details={"errors": ["limit: Input should be greater than or equal to 0"]},
    ... )
    """

    error_code: str = "VALIDATION_ERROR"


@dataclass(frozen=True)
class UnknownToolError(ValidationError):
    """The request names a tool that is not registered."""

    error_code: str = "UNKNOWN_TOOL"


# =============================================================================
# SHUTDOWN EXCEPTIONS
# =============================================================================


@dataclass(frozen=True)
class ShutdownError(MCPServerError):
    """Error while releasing the MongoDB client during shutdown."""

    error_code: str = "SHUTDOWN_ERROR"


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def convert_to_mcp_exception(
    exception: Exception,
    default_message: str = "An unexpected error occurred",
    context: dict[str, Any] | None = None,
) -> MCPServerError:
    """Convert any exception to an appropriate MCP exception.

    Used at the dispatch boundary so that every failure reaches the caller in
    the same shape.

    Args:
    -----
    exception : Exception
        The original exception to convert
    default_message : str
        Fallback message if exception type is unknown
    context : dict, optional
        Additional context to include in error details

    Returns:
    --------
    MCPServerError or subclass
        Appropriate MCP exception for the given error
    """
    import bson.errors
    import pydantic
    import pymongo.errors

    context = context or {}

    # Already an MCP exception - return as-is
    if isinstance(exception, MCPServerError):
        return exception

    # Timeouts first: NetworkTimeout is a ConnectionFailure, ExecutionTimeout an OperationFailure
    if isinstance(exception, (pymongo.errors.ExecutionTimeout, pymongo.errors.NetworkTimeout)):
        return DatabaseTimeoutError(
            message="Database operation timed out",
            details={**context, "error": str(exception)},
            original_exception=exception,
        )

    if isinstance(exception, pymongo.errors.ConnectionFailure):
        return DatabaseConnectionError(
            message="Lost connection to database",
            details={**context, "error": str(exception)},
            original_exception=exception,
        )

    # DuplicateKeyError is a WriteError, check before the generic OperationFailure
    if isinstance(exception, pymongo.errors.DuplicateKeyError):
        return DatabaseIntegrityError(
            message="Write violated a unique index",
            details={**context, "error": str(exception)},
            original_exception=exception,
        )

    if isinstance(exception, (pymongo.errors.OperationFailure, pymongo.errors.InvalidOperation)):
        return QueryExecutionError(
            message="Database operation failed",
            details={**context, "error": str(exception)},
            original_exception=exception,
        )

    if isinstance(exception, pydantic.ValidationError):
        return ValidationError(
            message="Request validation failed",
            details={**context, "errors": format_validation_errors(exception)},
            original_exception=exception,
        )

    # Driver-side argument errors (bad sort spec, invalid document keys)
    if isinstance(exception, (pymongo.errors.InvalidName, bson.errors.InvalidDocument)):
        return QueryExecutionError(
            message="Database rejected the request",
            details={**context, "error": str(exception)},
            original_exception=exception,
        )

    # Generic fallback
    return MCPServerError(
        message=default_message,
        error_code="INTERNAL_ERROR",
        details={**context, "error_type": type(exception).__name__, "error": str(exception)},
        original_exception=exception,
    )


def format_validation_errors(exception: Exception) -> list[str]:
    """Flatten a pydantic ValidationError into "field: message" strings."""
    formatted = []
    for error in exception.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "arguments"
        formatted.append(f"{location}: {error.get('msg', 'invalid value')}")
    return formatted
