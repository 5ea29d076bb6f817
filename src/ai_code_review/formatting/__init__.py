"""
Output Formatting

This module renders review reports for the terminal.
"""

from .report import ReportFormatter

__all__ = ['ReportFormatter']
