"""
CLI output formatters.
"""

from .result_formatters import OutputFormat, print_records, print_summary

__all__ = ["OutputFormat", "print_records", "print_summary"]
