"""Text cleanup and value formatting."""

from .sanitizer import sanitize, sanitize_with_report, SanitizeResult
from .formatting import format_currency, number_to_word

__all__ = ['sanitize', 'sanitize_with_report', 'SanitizeResult', 'format_currency', 'number_to_word']
