"""Custom exception hierarchy for class lifecycle and record store errors."""
from typing import Optional

from fastapi import status


class TutorHubException(Exception):
    """Base exception for all application errors."""

    code = "INTERNAL_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def to_error_body(self) -> dict:
        """Error envelope returned by the API"""
        return {
            "error": {
                "code": self.code,
                "message": str(self),
                "details": None,
            }
        }


class SessionNotFoundError(TutorHubException):
    """Raised when a class session record does not exist."""

    code = "CLASS_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, class_id: str):
        self.class_id = class_id
        super().__init__(f"Class {class_id} not found")


class InvalidTransitionError(TutorHubException):
    """Raised when a lifecycle transition is not allowed from the current status."""

    code = "INVALID_TRANSITION"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, class_id: str, current_status: str, action: str):
        self.class_id = class_id
        self.current_status = current_status
        self.action = action
        super().__init__(
            f"Cannot {action} class {class_id}: status is already '{current_status}'"
        )


class StoreError(TutorHubException):
    """Base class for record store failures."""

    code = "STORE_ERROR"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class StoreWriteError(StoreError):
    """Raised when the record store rejects or fails a read/write."""

    code = "STORE_WRITE_FAILED"

    def __init__(self, operation: str, path: str, original_error: Optional[Exception] = None):
        self.operation = operation
        self.path = path
        self.original_error = original_error
        reason = f": {original_error}" if original_error else ""
        super().__init__(f"Record store {operation} on '{path}' failed{reason}")


class StoreTimeoutError(StoreWriteError):
    """Raised when a record store call does not complete in time."""

    code = "STORE_TIMEOUT"
    status_code = status.HTTP_504_GATEWAY_TIMEOUT

    def __init__(self, operation: str, path: str, timeout: float):
        self.operation = operation
        self.path = path
        self.original_error = None
        self.timeout = timeout
        StoreError.__init__(
            self, f"Record store {operation} on '{path}' timed out after {timeout:.1f}s"
        )


class RevisionConflictError(StoreError):
    """Raised when a compare-and-set update sees a newer record revision."""

    code = "REVISION_CONFLICT"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, path: str, expected: int, actual: int):
        self.path = path
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Revision conflict on '{path}': expected {expected}, found {actual}"
        )
