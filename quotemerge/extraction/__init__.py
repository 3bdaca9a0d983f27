"""Template loading and placeholder search."""

from .loader import load_template, TemplateDocument, OutputDocument
from .token_locator import TokenLocator, find_tokens

__all__ = ['load_template', 'TemplateDocument', 'OutputDocument', 'TokenLocator', 'find_tokens']
