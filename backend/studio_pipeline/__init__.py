"""
Studio audio job pipeline.

Accepts transformation requests against audio assets, runs them one at a
time through a FIFO queue, and produces derived assets plus a report.
"""

__version__ = "0.1.0"
