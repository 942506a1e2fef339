"""
Portal error types raised by the service layer
"""
from typing import Any, Dict, Optional


class PortalError(Exception):
    """Base exception for portal services."""

    status_code = 500

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)


class NotFoundError(PortalError):
    status_code = 404

    def __init__(self, message: str = "Not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details)


class ValidationError(PortalError):
    status_code = 400

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class PermissionDeniedError(PortalError):
    status_code = 403

    def __init__(self, message: str = "Permission denied", details: Optional[Dict[str, Any]] = None):
        super().__init__("PERMISSION_DENIED", message, details)


class TenderFetchError(PortalError):
    """A tender listing call to the backend failed. Never retried automatically."""

    status_code = 502

    def __init__(self, message: str = "Failed to fetch tenders", details: Optional[Dict[str, Any]] = None):
        super().__init__("TENDER_FETCH_ERROR", message, details)
