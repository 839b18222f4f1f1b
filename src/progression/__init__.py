"""Progression control engine for course, lesson and assessment access."""

__version__ = "0.1.0"
