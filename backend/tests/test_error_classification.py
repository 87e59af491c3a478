"""
Tests for job failure classification.

Structured categories win; messages are a best-effort fallback.
"""

import pytest

from studio_pipeline.execution.errors import (
    InputNotFoundError,
    ToolExecutionError,
    OutputWriteError,
    ToolNotFoundError,
    ToolTimeoutError,
    TransformationError,
)
from studio_pipeline.jobs import ErrorCategory, categorize_error, classify_error_message
from studio_pipeline.persistence.errors import SaveError
from studio_pipeline.presets.errors import PresetNotFoundError
from studio_pipeline.reporting.errors import ReportWriteError


class TestMessageClassification:
    """Keyword fallback for unstructured errors."""

    @pytest.mark.parametrize("message", [
        "Invalid input stream",
        "File not found: /tmp/x.wav",
        "Unrecognized format",
    ])
    def test_ingestion(self, message):
        assert classify_error_message(message) == ErrorCategory.INGESTION

    @pytest.mark.parametrize("message", [
        "Could not write header",
        "Disk quota exceeded",
        "output stream closed",
    ])
    def test_output(self, message):
        assert classify_error_message(message) == ErrorCategory.OUTPUT

    @pytest.mark.parametrize("message", [
        "Delivery rejected by platform",
        "Network unreachable",
        "Upload interrupted",
    ])
    def test_delivery(self, message):
        assert classify_error_message(message) == ErrorCategory.DELIVERY

    @pytest.mark.parametrize("message", [
        "Processing aborted",
        "Transform stage crashed",
    ])
    def test_processing(self, message):
        assert classify_error_message(message) == ErrorCategory.PROCESSING

    def test_unmatched_is_system(self):
        assert classify_error_message("Segmentation fault") == ErrorCategory.SYSTEM

    def test_empty_is_system(self):
        assert classify_error_message("") == ErrorCategory.SYSTEM

    def test_case_insensitive(self):
        assert classify_error_message("NETWORK DOWN") == ErrorCategory.DELIVERY

    def test_first_group_wins(self):
        # "input" (INGESTION) is checked before "write" (OUTPUT)
        assert classify_error_message("failed to write input cache") == ErrorCategory.INGESTION


class TestStructuredClassification:
    """Pipeline errors carry their category explicitly."""

    def test_input_not_found(self):
        assert categorize_error(InputNotFoundError("a1", "/x.wav")) == ErrorCategory.INGESTION

    def test_output_write(self):
        assert categorize_error(OutputWriteError("/out", "read-only")) == ErrorCategory.OUTPUT

    def test_tool_missing_is_system(self):
        assert categorize_error(ToolNotFoundError("ffmpeg")) == ErrorCategory.SYSTEM

    def test_timeout_is_processing(self):
        assert categorize_error(ToolTimeoutError("ffmpeg", 5)) == ErrorCategory.PROCESSING

    def test_structured_beats_keywords(self):
        # Message mentions "input" but the error says PROCESSING
        error = ToolExecutionError("ffmpeg", 1, "Invalid input file")
        assert categorize_error(error) == ErrorCategory.PROCESSING

    @pytest.mark.parametrize("reason,category", [
        ("network unreachable", ErrorCategory.DELIVERY),
        ("[Errno 28] No space left on device: disk full", ErrorCategory.OUTPUT),
        ("'sample_rate'", ErrorCategory.PROCESSING),
    ])
    def test_wrapped_errors_classified_from_message(self, reason, category):
        assert categorize_error(TransformationError(reason)) == category

    def test_wrapped_error_explicit_category(self):
        error = TransformationError("network unreachable", category=ErrorCategory.SYSTEM)
        assert categorize_error(error) == ErrorCategory.SYSTEM

    def test_report_write_is_output(self):
        assert categorize_error(ReportWriteError("j1", "locked")) == ErrorCategory.OUTPUT

    def test_preset_errors_are_processing(self):
        assert categorize_error(PresetNotFoundError("x")) == ErrorCategory.PROCESSING

    def test_persistence_errors_are_system(self):
        assert categorize_error(SaveError("boom")) == ErrorCategory.SYSTEM

    def test_plain_exception_falls_back_to_message(self):
        assert categorize_error(RuntimeError("disk full")) == ErrorCategory.OUTPUT

    def test_non_enum_category_attribute_is_ignored(self):
        error = RuntimeError("network reset")
        error.category = "OUTPUT"
        assert categorize_error(error) == ErrorCategory.DELIVERY

    def test_bare_message(self):
        assert categorize_error("upload failed") == ErrorCategory.DELIVERY
