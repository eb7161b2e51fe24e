"""Custom exception classes and error handling utilities."""
from typing import Any, Dict, Optional
from fastapi import HTTPException, status
from loguru import logger


class DreamicException(Exception):
    """Base exception for the package."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class PreferencesStoreError(DreamicException):
    """Key-value store read or write failures."""
    pass


class PreferenceTypeError(PreferencesStoreError):
    """A stored value does not have the type the caller asked for."""
    pass


def handle_preferences_store_error(error: PreferencesStoreError) -> HTTPException:
    """Handle key-value store errors and return appropriate HTTP response."""
    logger.error("Preferences store error", reason=error.message, **error.details)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Permission tracking storage is temporarily unavailable. Please try again later."
    )
