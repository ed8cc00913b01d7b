"""
Shared utilities for VELLUM.

Common functionality used across contexts:
- Logging setup
- Timestamps and date formatting
"""

from vellum.utils.timestamp import format_long_date, now, today

__all__ = ["format_long_date", "now", "today"]
