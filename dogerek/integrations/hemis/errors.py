"""
Error types for the HEMIS registry integration.
"""

from datetime import datetime
from typing import Dict, Any, Optional


class HemisErrorCategory:
    """Error categories for better classification."""
    NETWORK = "network"
    TIMEOUT = "timeout"
    PROVIDER_ERROR = "provider_error"
    DATA_VALIDATION = "data_validation"
    SYNC = "sync"


class HemisError(Exception):
    """Base exception for HEMIS integration errors."""

    def __init__(
        self,
        message: str,
        category: str = HemisErrorCategory.PROVIDER_ERROR,
        retryable: bool = True,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.retryable = retryable
        self.details = details or {}
        self.timestamp = datetime.utcnow()

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging."""
        return {
            'message': self.message,
            'category': self.category,
            'retryable': self.retryable,
            'details': self.details,
            'timestamp': self.timestamp.isoformat()
        }


class HemisAPIError(HemisError):
    """A single registry request failed.

    Network errors, timeouts, HTTP error statuses and unexpected response
    bodies all end up here; the caller decides whether to retry.
    """

    def __init__(
        self,
        message: str,
        page: Optional[int] = None,
        status: Optional[int] = None,
        category: str = HemisErrorCategory.PROVIDER_ERROR
    ):
        super().__init__(
            message,
            category=category,
            retryable=True,
            details={'page': page, 'status': status}
        )
        self.page = page
        self.status = status


class HemisSyncError(HemisError):
    """The sync run cannot continue; nothing has been written."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message,
            category=HemisErrorCategory.SYNC,
            retryable=False,
            details=details
        )
