"""
Error classification for failed jobs.

Maps an arbitrary exception to an ErrorCategory. Errors raised inside the
pipeline carry their category explicitly (a `category` attribute holding
an ErrorCategory); anything else, typically from a third-party library,
is classified heuristically from its message.

The heuristic is best-effort. Keyword groups are checked in order and
the first match wins.
"""

from typing import Optional, Union

from .models import ErrorCategory


def _structured_category(error: BaseException) -> Optional[ErrorCategory]:
    category = getattr(error, "category", None)
    if isinstance(category, ErrorCategory):
        return category
    return None


def classify_error_message(message: str) -> ErrorCategory:
    """
    Classify a failure from its message text.

    Args:
        message: Error message (case-insensitive)

    Returns:
        ErrorCategory, SYSTEM when nothing matches
    """
    if not message:
        return ErrorCategory.SYSTEM

    message_lower = message.lower()

    if any(pattern in message_lower for pattern in [
        "input", "file not found", "format"
    ]):
        return ErrorCategory.INGESTION

    if any(pattern in message_lower for pattern in [
        "output", "write", "disk"
    ]):
        return ErrorCategory.OUTPUT

    if any(pattern in message_lower for pattern in [
        "delivery", "network", "upload"
    ]):
        return ErrorCategory.DELIVERY

    if any(pattern in message_lower for pattern in [
        "processing", "transform"
    ]):
        return ErrorCategory.PROCESSING

    return ErrorCategory.SYSTEM


def categorize_error(error: Union[BaseException, str]) -> ErrorCategory:
    """
    Classify a failure into the job error taxonomy.

    Structured categories take precedence over message keywords.

    Args:
        error: The exception (or bare message) that ended the job

    Returns:
        ErrorCategory
    """
    if isinstance(error, BaseException):
        category = _structured_category(error)
        if category is not None:
            return category
        return classify_error_message(str(error))
    return classify_error_message(error)
