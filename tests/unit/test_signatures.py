"""Tests for signature block rendering."""

import pytest

try:
    import fitz  # PyMuPDF
    HAS_PYMUPDF = True
except ImportError:
    HAS_PYMUPDF = False

from quotemerge.core.models import SignatureBlock

if HAS_PYMUPDF:
    from quotemerge.rendering.fonts import FontSet
    from quotemerge.rendering.signatures import SIGNATURE_STYLES, SignatureRenderer


@pytest.mark.skipif(not HAS_PYMUPDF, reason="PyMuPDF not installed")
class TestSignatureRenderer:

    def _page(self, single_page_pdf):
        doc = fitz.open(stream=single_page_pdf, filetype="pdf")
        return doc, doc[0]

    def test_both_blocks(self, single_page_pdf, signed_quote):
        doc, page = self._page(single_page_pdf)
        try:
            dropped = SignatureRenderer(FontSet.standard()).render(page, signed_quote)
            text = page.get_text()
        finally:
            doc.close()
        assert dropped == 0
        for value in ("Sam Vendor", "Account Executive", "2026-01-02", "Jane Doe", "CIO", "2026-01-03"):
            assert value in text

    def test_no_blocks_draws_nothing(self, single_page_pdf, acme_quote):
        doc, page = self._page(single_page_pdf)
        try:
            before = page.get_text()
            SignatureRenderer(FontSet.standard()).render(page, acme_quote)
            after = page.get_text()
        finally:
            doc.close()
        assert before == after

    def test_client_only(self, single_page_pdf, acme_quote):
        from dataclasses import replace
        quote = replace(acme_quote, client_signature=SignatureBlock(signer_name="Jane Doe", title="CIO"))
        doc, page = self._page(single_page_pdf)
        try:
            SignatureRenderer(FontSet.standard()).render(page, quote)
            words = page.get_text("words")
        finally:
            doc.close()
        names = [w for w in words if w[4] == "CIO"]
        assert names and all(w[0] >= 340 for w in names)

    def test_style_index_wraps(self, single_page_pdf, acme_quote):
        from dataclasses import replace
        block = SignatureBlock(signer_name="Sam Vendor", style=len(SIGNATURE_STYLES) + 1)
        doc, page = self._page(single_page_pdf)
        try:
            SignatureRenderer(FontSet.standard()).render(page, replace(acme_quote, vendor_signature=block))
            assert "Sam Vendor" in page.get_text()
        finally:
            doc.close()
