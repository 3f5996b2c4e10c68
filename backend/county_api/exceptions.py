"""
County Directory Backend: Custom Exception Hierarchy
======================================================

What:  Application-specific exceptions for the error scenarios of the API.
How:   Each exception carries a message and an optional context dict.
       Global exception handlers (registered in main.py) map them to HTTP
       status codes and the response bodies existing clients expect.
Who:   Raised by services; caught by global handlers.

Exception Hierarchy:
    CountyAPIError (base)
    ├── ValidationError          → 400 Bad Request
    ├── ConflictError            → 400 Bad Request (duplicate name/slug)
    ├── NotFoundError            → 404 Not Found
    └── InternalError            → 500 Internal Server Error
        ├── DatabaseError
        └── FileStorageError
"""

from typing import Any, Dict, Optional


class CountyAPIError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  Client-facing error description
        context:  Additional debug info (logged, never returned to the client)
    """

    status_code = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(CountyAPIError):
    """
    Raised when client input fails validation.

    When:    Missing required fields, malformed companies/robots structure,
             rejected icon upload (extension, size, empty file).
    HTTP:    400 Bad Request
    """

    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class ConflictError(CountyAPIError):
    """
    Raised when a county with the same name or slug already exists.

    Covers both the pre-insert existence check and unique constraint
    violations reported by the store on insert/update.
    HTTP:    400 Bad Request (kept at 400 for client compatibility)
    """

    status_code = 400

    def __init__(
        self,
        message: str = "County with that name or slug already exists.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(CountyAPIError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing rows; services convert that into
    this exception so the handler can answer with 404.
    """

    status_code = 404

    def __init__(
        self,
        resource: str = "County",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=f"{resource} not found", context=ctx)


class InternalError(CountyAPIError):
    """
    Any failure the client cannot fix.

    HTTP:    500 Internal Server Error, body carries the error message.
    """

    status_code = 500


class DatabaseError(InternalError):
    """
    Raised when a store operation fails unexpectedly.

    When:    Connection lost mid-query, driver errors, serialization failures.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(InternalError):
    """
    Raised when file system operations fail.

    When:    Disk full, permission denied, directory not writable, I/O error.
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
