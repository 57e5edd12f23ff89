"""
Standardized exception hierarchy for StepXP
Provides rich context, consistent logging, and user-friendly error messages
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from uuid import uuid4
import json
import logging

logger = logging.getLogger(__name__)


class StepXPError(Exception):
    """
    Base exception for all StepXP errors

    Provides:
    - Automatic timestamping
    - Request ID for tracing
    - User-friendly messages
    - Structured context
    - Automatic logging

    Example:
        raise StepXPError(
            message="Failed to save progress",
            user_id="mock-user-1",
            operation="persist_progress",
            context={"total_xp": 750.0}
        )
    """

    def __init__(
        self,
        message: str,
        user_id: Optional[str] = None,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.user_id = user_id
        self.request_id = request_id or str(uuid4())
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.user_message = user_message or "An error occurred. Please try again."
        self.timestamp = datetime.now(timezone.utc)

        self._log_error()

    def _log_error(self) -> None:
        """Log error with full context"""
        log_data = {
            "error_type": self.__class__.__name__,
            "error_message": self.message,  # 'message' is reserved by logging
            "request_id": self.request_id,
            "user_id": self.user_id,
            "operation": self.operation,
            "error_context": self.context,
            "timestamp": self.timestamp.isoformat()
        }

        if self.cause:
            log_data["cause"] = str(self.cause)
            logger.error(f"{self.__class__.__name__}: {self.message}", extra=log_data, exc_info=self.cause)
        else:
            logger.error(f"{self.__class__.__name__}: {self.message}", extra=log_data)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for API responses"""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "user_message": self.user_message,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat()
        }


# ==========================================
# Validation Errors (Caller Input)
# ==========================================

class ValidationError(StepXPError):
    """
    Raised when a caller passes a value outside an operation's contract

    Examples:
    - Non-positive XP multiplier
    - Unknown subscription package

    Example:
        raise ValidationError(
            message="XP multiplier must be positive",
            field="xp_multiplier",
            value=0
        )
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs
    ):
        self.field = field
        self.value = value
        super().__init__(
            message=message,
            user_message=f"Invalid {field}: {message}" if field else message,
            context={"field": field, "value": value},
            **kwargs
        )


# ==========================================
# Storage Errors
# ==========================================

class StorageError(StepXPError):
    """Reading or writing the local user store failed"""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        **kwargs
    ):
        self.path = path
        kwargs.setdefault("user_message", "We couldn't save your progress. It will sync again later.")
        kwargs.setdefault("context", {"path": path})
        super().__init__(message=message, **kwargs)


class RecordNotFoundError(StorageError):
    """Requested user document does not exist"""

    def __init__(
        self,
        message: str,
        record_type: Optional[str] = None,
        record_id: Optional[str] = None,
        **kwargs
    ):
        self.record_type = record_type
        self.record_id = record_id
        super().__init__(
            message=message,
            user_message=f"{record_type or 'Record'} not found.",
            context={"record_type": record_type, "record_id": record_id},
            **kwargs
        )


# ==========================================
# External Collaborator Errors
# ==========================================

class HealthDataError(StepXPError):
    """Platform health store could not be read"""

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        **kwargs
    ):
        self.source = source
        super().__init__(
            message=message,
            user_message=f"We couldn't read your steps from {source or 'the health app'}.",
            context={"source": source},
            **kwargs
        )


class SubscriptionError(StepXPError):
    """Purchase or restore failed"""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("user_message", "We couldn't complete the purchase. You have not been charged.")
        super().__init__(message=message, **kwargs)


# ==========================================
# Helper Functions
# ==========================================

def wrap_external_exception(
    error: Exception,
    operation: str,
    user_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> StepXPError:
    """
    Wrap low-level exceptions (file I/O, JSON decoding) into our hierarchy

    Args:
        error: Original exception
        operation: What operation was being performed
        user_id: User ID if applicable
        context: Additional context

    Returns:
        Appropriate StepXPError subclass

    Example:
        try:
            path.write_text(payload)
        except OSError as e:
            raise wrap_external_exception(
                e,
                operation="write_user_document",
                user_id="mock-user-1",
            )
    """
    if isinstance(error, StepXPError):
        return error

    # json.JSONDecodeError is a ValueError, check it first
    if isinstance(error, json.JSONDecodeError):
        return StorageError(
            message=f"Stored document is corrupt: {error}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )
    elif isinstance(error, FileNotFoundError):
        return RecordNotFoundError(
            message=f"{operation} failed: {error}",
            record_type="User document",
            record_id=user_id,
            user_id=user_id,
            operation=operation,
            cause=error
        )
    elif isinstance(error, OSError):
        return StorageError(
            message=f"Storage I/O failed: {error}",
            path=getattr(error, "filename", None),
            user_id=user_id,
            operation=operation,
            context={"path": getattr(error, "filename", None), **(context or {})},
            cause=error
        )

    return StepXPError(
        message=f"{operation} failed: {str(error)}",
        user_id=user_id,
        operation=operation,
        context=context,
        cause=error
    )
