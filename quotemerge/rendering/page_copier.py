"""Lossless page copying from a template into an output document."""

from __future__ import annotations

import logging

import fitz  # PyMuPDF

from ..core.exceptions import CorruptDocument
from ..extraction.loader import OutputDocument, TemplateDocument

logger = logging.getLogger(__name__)


def copy_page(source: TemplateDocument, index: int, destination: OutputDocument) -> fitz.Page:
    """
    Append page ``index`` of ``source`` to ``destination``.

    ``insert_pdf`` grafts the page object with its content streams and
    resources, so text positioning survives for later token searches.

    Returns:
        The new page in ``destination``
    """
    count = source.page_count()
    if not 0 <= index < count:
        raise IndexError(f"Page index {index} out of range for {count}-page template")
    try:
        destination.fitz_document.insert_pdf(
            source.fitz_document, from_page=index, to_page=index
        )
    except (RuntimeError, ValueError) as e:
        raise CorruptDocument(
            f"Failed to copy page {index}: {e}", page=index, operation="copy_page", original_error=e
        ) from e
    return destination.get_page(destination.page_count() - 1)


def copy_all_pages(source: TemplateDocument, destination: OutputDocument) -> int:
    """Copy every page in source order. Returns the number of pages copied."""
    for index in range(source.page_count()):
        copy_page(source, index, destination)
    logger.debug(f"Copied {source.page_count()} page(s) verbatim")
    return source.page_count()
