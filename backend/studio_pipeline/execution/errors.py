"""
Execution-specific errors.

Every execution error carries the ErrorCategory a job fails with when the
error escapes the dispatcher. The classifier reads `category` directly.
Only TransformationError, which wraps foreign exceptions, derives its
category from the wrapped message.
"""

from typing import Optional

from ..jobs.failures import classify_error_message
from ..jobs.models import ErrorCategory


class ExecutionError(Exception):
    """
    Base exception for execution failures.

    A job that raises this fails; the queue keeps running.
    """

    category = ErrorCategory.PROCESSING


class InputNotFoundError(ExecutionError):
    """Input asset file is missing from storage."""

    category = ErrorCategory.INGESTION

    def __init__(self, asset_id: str, path: str):
        self.asset_id = asset_id
        self.path = path
        super().__init__(f"Input file not found for asset {asset_id}: {path}")


class ToolNotFoundError(ExecutionError):
    """FFmpeg or ffprobe is not installed or not executable."""

    category = ErrorCategory.SYSTEM

    def __init__(self, tool: str):
        self.tool = tool
        super().__init__(f"{tool} is not installed or not in PATH")


class ToolExecutionError(ExecutionError):
    """External tool exited with a non-zero code."""

    category = ErrorCategory.PROCESSING

    def __init__(self, tool: str, exit_code: int, stderr: Optional[str] = None):
        self.tool = tool
        self.exit_code = exit_code
        self.stderr = stderr or ""
        tail = self.stderr.strip().splitlines()[-1:] if self.stderr else []
        detail = f": {tail[0]}" if tail else ""
        super().__init__(f"{tool} exited with code {exit_code}{detail}")


class ToolTimeoutError(ExecutionError):
    """External tool exceeded its wall-clock limit and was killed."""

    category = ErrorCategory.PROCESSING

    def __init__(self, tool: str, timeout_seconds: float):
        self.tool = tool
        self.timeout_seconds = timeout_seconds
        super().__init__(f"{tool} timed out after {timeout_seconds:g}s and was killed")


class OutputWriteError(ExecutionError):
    """Output file or directory could not be written."""

    category = ErrorCategory.OUTPUT

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot write output {path}: {reason}")


class TransformationError(ExecutionError):
    """
    A strategy failed for a reason that has no more specific type.

    Without an explicit category the message is classified, so a wrapped
    network or disk failure still fails the job as DELIVERY or OUTPUT.
    """

    def __init__(self, reason: str, category: Optional[ErrorCategory] = None):
        self.reason = reason
        message = f"Processing failed: {reason}"
        self.category = category or classify_error_message(message)
        super().__init__(message)


class UnsupportedFormatError(ExecutionError):
    """Requested output format has no encoder mapping."""

    category = ErrorCategory.PROCESSING

    def __init__(self, output_format: str):
        self.output_format = output_format
        super().__init__(f"Unsupported format: {output_format}")
