"""Opening template PDFs and creating output documents."""

from __future__ import annotations

import logging
from typing import Optional, Tuple

import fitz  # PyMuPDF

from ..core.exceptions import CorruptDocument, InvalidFormat, RenderingError

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF"


class PdfDocument:
    """Shared page access over a PyMuPDF document."""

    def __init__(self, doc: "fitz.Document", name: Optional[str] = None):
        self._doc = doc
        self.name = name

    @property
    def fitz_document(self) -> "fitz.Document":
        return self._doc

    def page_count(self) -> int:
        return self._doc.page_count

    def get_page(self, index: int) -> "fitz.Page":
        count = self._doc.page_count
        if not 0 <= index < count:
            raise IndexError(f"Page index {index} out of range for {count}-page document")
        return self._doc[index]

    def page_size(self, index: int) -> Tuple[float, float]:
        rect = self.get_page(index).rect
        return rect.width, rect.height

    def close(self) -> None:
        if not self._doc.is_closed:
            self._doc.close()

    @property
    def closed(self) -> bool:
        return self._doc.is_closed

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class TemplateDocument(PdfDocument):
    """
    A loaded template. Read-only by contract.

    The original bytes are kept so output pages can be checked against the
    untouched source after serialization.
    """

    def __init__(self, doc: "fitz.Document", source_bytes: bytes, name: Optional[str] = None):
        super().__init__(doc, name)
        self.source_bytes = source_bytes


class OutputDocument(PdfDocument):
    """Empty document that pages are copied into, drawn on, then serialized once."""

    def __init__(self, name: Optional[str] = None, garbage: int = 3):
        super().__init__(fitz.open(), name)
        self.garbage = garbage
        self._serialized = False

    def serialize(self) -> bytes:
        """Write the document to bytes. Allowed once per document."""
        if self._serialized:
            raise RenderingError("Output document already serialized", operation="serialize")
        try:
            data = self._doc.tobytes(garbage=self.garbage, deflate=True)
        except (RuntimeError, ValueError) as e:
            raise RenderingError(f"Failed to serialize output: {e}", operation="serialize") from e
        self._serialized = True
        logger.debug(f"Serialized {self.page_count()} page(s), {len(data)} bytes")
        return data


def load_template(data: bytes, name: Optional[str] = None) -> TemplateDocument:
    """
    Validate and open template bytes.

    Args:
        data: Raw PDF bytes
        name: Optional filename, used in log messages

    Returns:
        TemplateDocument

    Raises:
        InvalidFormat: Input is not bytes or lacks the ``%PDF`` header
        CorruptDocument: PyMuPDF cannot parse the document, it is encrypted,
            or it has no pages
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise InvalidFormat(f"Template must be bytes, got {type(data).__name__}")

    source = bytes(data)
    if not source.startswith(PDF_MAGIC):
        raise InvalidFormat("Template does not start with the PDF header", header=source[:8])

    try:
        doc = fitz.open(stream=source, filetype="pdf")
    except (RuntimeError, ValueError) as e:
        # fitz.FileDataError and EmptyFileError derive from RuntimeError
        raise CorruptDocument(f"Cannot parse template: {e}", operation="open", original_error=e) from e

    if doc.needs_pass:
        doc.close()
        raise CorruptDocument("Template is password protected", operation="open")
    if doc.page_count == 0:
        doc.close()
        raise CorruptDocument("Template has no pages", operation="open")

    # Touch every page once so broken page objects fail here, not mid-merge.
    for index in range(doc.page_count):
        try:
            doc.load_page(index).rect
        except (RuntimeError, ValueError) as e:
            doc.close()
            raise CorruptDocument(
                f"Cannot load page {index}: {e}", page=index, operation="load_page", original_error=e
            ) from e

    logger.info(f"Loaded template {name or '<bytes>'}: {doc.page_count} page(s)")
    return TemplateDocument(doc, source, name)
