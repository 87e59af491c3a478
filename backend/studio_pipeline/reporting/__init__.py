"""
Job reporting.

One human-readable report per completed job: summary, parameters applied,
rationale, impact, confidence and limitations.
"""

from .errors import ReportingError, ReportWriteError
from .models import Report
from .generator import ReportGenerator, render_text

__all__ = [
    "ReportingError",
    "ReportWriteError",
    "Report",
    "ReportGenerator",
    "render_text",
]
