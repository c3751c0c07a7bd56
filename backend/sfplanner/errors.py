"""
Error types and classification.
Degraded paths record a structured error instead of raising.
"""

from typing import Optional, Dict, Any
from enum import Enum
from dataclasses import dataclass


class PlannerError(Exception):
    """Base class for planner errors"""


class MetadataError(PlannerError):
    """Remote metadata provider failed"""
    
    def __init__(self, message: str, object_name: Optional[str] = None):
        super().__init__(message)
        self.object_name = object_name


class CatalogUnavailableError(MetadataError):
    """Object list could not be fetched"""


class DescribeError(MetadataError):
    """Describe call for a single object failed"""


class CacheError(PlannerError):
    """Describe cache backend failed"""


class ErrorCategory(Enum):
    """Categories of errors"""
    METADATA_ERROR = "metadata_error"  # Describe / list failures
    CACHE_ERROR = "cache_error"        # Cache backend failures
    NETWORK_ERROR = "network_error"    # Network/connectivity issues
    RATE_LIMIT_ERROR = "rate_limit"    # Rate limiting
    TIMEOUT_ERROR = "timeout"          # Timeout errors
    AUTH_ERROR = "auth_error"          # Authentication/authorization errors
    SYSTEM_ERROR = "system_error"      # Anything else


@dataclass
class AppError:
    """Structured error"""
    category: ErrorCategory
    message: str
    code: str
    details: Optional[Dict] = None
    retryable: bool = False
    suggestion: Optional[str] = None
    
    def to_dict(self) -> Dict:
        return {
            "error": True,
            "category": self.category.value,
            "message": self.message,
            "code": self.code,
            "details": self.details,
            "retryable": self.retryable,
            "suggestion": self.suggestion
        }


class ErrorClassifier:
    """Classify exceptions into error categories"""
    
    @staticmethod
    def classify(exception: Exception) -> AppError:
        """Classify an exception"""
        error_str = str(exception).lower()
        details = {"type": type(exception).__name__}
        
        if isinstance(exception, MetadataError) and exception.object_name:
            details["object"] = exception.object_name
        
        # Timeout errors
        if isinstance(exception, TimeoutError) or any(kw in error_str for kw in ['timeout', 'timed out']):
            return AppError(
                category=ErrorCategory.TIMEOUT_ERROR,
                message="Metadata request timed out",
                code="TIMEOUT",
                details=details,
                retryable=True,
                suggestion="Retry the request"
            )
        
        # Rate limit errors
        if any(kw in error_str for kw in ['rate limit', 'too many requests', '429', 'request_limit_exceeded']):
            return AppError(
                category=ErrorCategory.RATE_LIMIT_ERROR,
                message="Metadata API rate limit exceeded",
                code="RATE_LIMITED",
                details=details,
                retryable=True,
                suggestion="Wait a moment before making more requests"
            )
        
        # Auth errors
        if any(kw in error_str for kw in ['invalid_session', 'unauthorized', 'expired', '401', 'forbidden']):
            return AppError(
                category=ErrorCategory.AUTH_ERROR,
                message="Metadata API authentication failed",
                code="AUTH_ERROR",
                details=details,
                retryable=False,
                suggestion="Reconnect the org"
            )
        
        if isinstance(exception, CacheError):
            return AppError(
                category=ErrorCategory.CACHE_ERROR,
                message="Describe cache unavailable",
                code="CACHE_ERROR",
                details=details,
                retryable=True
            )
        
        if isinstance(exception, MetadataError) or any(kw in error_str for kw in ['not_found', 'invalid_type', 'describe']):
            return AppError(
                category=ErrorCategory.METADATA_ERROR,
                message="Object metadata unavailable",
                code="METADATA_ERROR",
                details=details,
                retryable=False,
                suggestion="Check that the object exists and is accessible"
            )
        
        if isinstance(exception, ConnectionError) or 'connection' in error_str:
            return AppError(
                category=ErrorCategory.NETWORK_ERROR,
                message="Could not reach the metadata API",
                code="NETWORK_ERROR",
                details=details,
                retryable=True
            )
        
        # Default to system error
        return AppError(
            category=ErrorCategory.SYSTEM_ERROR,
            message="An unexpected error occurred",
            code="INTERNAL_ERROR",
            details=details,
            retryable=True
        )


def create_error_response(
    exception: Exception,
    include_traceback: bool = False
) -> Dict[str, Any]:
    """Create standardized error response"""
    app_error = ErrorClassifier.classify(exception)
    response = app_error.to_dict()
    
    if include_traceback:
        import traceback
        response["traceback"] = traceback.format_exc()
    
    return response
