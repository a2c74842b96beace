"""
Custom exception classes and error handling utilities.
"""

from typing import Optional, Dict, Any
import traceback


class SiteCrawlerError(Exception):
    """Base exception for all site crawler errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(SiteCrawlerError):
    """Exception raised for configuration-related issues."""
    pass


class ValidationError(SiteCrawlerError):
    """Exception raised for invalid input such as a malformed URL."""
    pass


class SchedulerError(SiteCrawlerError):
    """Exception raised for scheduler misuse (missing handler, double configure)."""
    pass


class FetchError(SiteCrawlerError):
    """Exception raised when a page cannot be fetched."""
    pass


class OutputError(SiteCrawlerError):
    """Exception raised when results cannot be rendered or written."""
    pass


def handle_error(
    error: Exception,
    logger,
    context: Optional[Dict[str, Any]] = None,
    reraise: bool = True
) -> None:
    """
    Handle and log errors with context information.

    Args:
        error: The exception that occurred
        logger: Logger instance to use for logging
        context: Additional context information
        reraise: Whether to reraise the exception after logging
    """
    error_context = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        **(context or {})
    }

    if isinstance(error, SiteCrawlerError):
        error_context.update(error.details)

    logger.error(f"Error occurred: {error_context}")
    logger.debug(f"Traceback: {traceback.format_exc()}")

    if reraise:
        raise error
