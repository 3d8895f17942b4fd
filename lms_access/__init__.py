"""
LMS Access Control Service

Prerequisite-gated access decisions for courses and lessons.
"""

__version__ = "1.0.0"
