"""Unit tests for token replacement and the degraded fallback."""

import pytest

try:
    import fitz  # PyMuPDF
    HAS_PYMUPDF = True
except ImportError:
    HAS_PYMUPDF = False

from quotemerge.core.exceptions import RenderingError
from quotemerge.core.models import TokenRequirement
from quotemerge.core.placeholders import COMPANY_NAME, PlaceholderMap
from quotemerge.evaluation.diff import masked_pixel_diff, page_content_digest
from quotemerge.extraction.loader import OutputDocument, load_template
from quotemerge.extraction.token_locator import TokenLocator
from quotemerge.rendering.fonts import FontSet
from quotemerge.rendering.page_copier import copy_all_pages
from quotemerge.rendering.token_replacer import TokenReplacer, apply_fallback, replace_tokens


ACME = PlaceholderMap({COMPANY_NAME: "Acme Corp"})


def line_text(words, bbox):
    """Words whose vertical centre lies inside ``bbox``, left to right."""
    row = [w for w in words if bbox.y0 < (w[1] + w[3]) / 2 < bbox.y1]
    return " ".join(w[4] for w in sorted(row, key=lambda w: w[0]))


@pytest.fixture
def fonts():
    return FontSet.standard()


@pytest.mark.skipif(not HAS_PYMUPDF, reason="PyMuPDF not installed")
class TestReplaceTokens:

    def test_rejects_template(self, fonts, token_pdf):
        with load_template(token_pdf) as template:
            matches = TokenLocator().find_tokens(template, [COMPANY_NAME])
            with pytest.raises(TypeError):
                TokenReplacer(fonts).replace_tokens(template, matches, ACME)

    def test_replaces_text(self, fonts, token_pdf):
        with load_template(token_pdf) as template, OutputDocument() as output:
            copy_all_pages(template, output)
            matches = TokenLocator().find_tokens(output, [COMPANY_NAME])
            result = TokenReplacer(fonts).replace_tokens(output, matches, ACME)
            text = output.get_page(0).get_text()
            words = output.get_page(0).get_text("words")

        assert result.count == 1
        assert result.document is output
        assert result.replacements[0].text == "Acme Corp"
        assert "{{Company Name}}" not in text
        assert "Acme Corp" in text
        assert line_text(words, matches[0].bbox) == "For Acme Corp"

    @pytest.mark.parametrize("dpi", [72, 144])
    def test_only_token_region_changes(self, fonts, token_pdf, dpi):
        with load_template(token_pdf) as template, OutputDocument() as output:
            copy_all_pages(template, output)
            matches = TokenLocator().find_tokens(output, [COMPANY_NAME])
            replace_tokens(output, matches, ACME, fonts)
            changed = masked_pixel_diff(
                template.get_page(0), output.get_page(0),
                allowed=[m.bbox for m in matches], dpi=dpi, margin=0, threshold=0,
            )
        assert changed == 0

    def test_replacement_starts_at_token_origin(self, fonts, token_pdf):
        with load_template(token_pdf) as template, OutputDocument() as output:
            copy_all_pages(template, output)
            match = TokenLocator().find_tokens(output, [COMPANY_NAME])[0]
            TokenReplacer(fonts).replace_tokens(output, [match], ACME)
            hits = output.get_page(0).search_for("Acme Corp")
        assert hits
        assert hits[0].x0 == pytest.approx(match.bbox.x0, abs=1.0)

    def test_long_value_fits_mask(self, fonts, token_pdf):
        long_name = PlaceholderMap({COMPANY_NAME: "Acme Consolidated International Holdings Limited"})
        with load_template(token_pdf) as template, OutputDocument() as output:
            copy_all_pages(template, output)
            match = TokenLocator().find_tokens(output, [COMPANY_NAME])[0]
            result = TokenReplacer(fonts, min_font_size=6).replace_tokens(output, [match], long_name)

        replacement = result.replacements[0]
        assert replacement.font_size >= 6
        assert replacement.font_size < match.font_size
        assert fonts.regular.text_length(replacement.text, replacement.font_size) <= match.bbox.width + 0.01
        assert long_name[COMPANY_NAME].startswith(replacement.text)

    def test_unresolved_left_alone(self, fonts, token_pdf):
        with load_template(token_pdf) as template, OutputDocument() as output:
            copy_all_pages(template, output)
            matches = TokenLocator().find_tokens(output, [COMPANY_NAME])
            result = TokenReplacer(fonts).replace_tokens(output, matches, PlaceholderMap({"{{date}}": "today"}))
            same = page_content_digest(output.get_page(0)) == page_content_digest(template.get_page(0))
        assert result.count == 0
        assert len(result.unresolved) == 1
        assert same

    def test_mask_only_keeps_original_glyphs(self, fonts, token_pdf):
        with load_template(token_pdf) as template, OutputDocument() as output:
            copy_all_pages(template, output)
            matches = TokenLocator().find_tokens(output, [COMPANY_NAME])
            TokenReplacer(fonts, redact_text=False).replace_tokens(output, matches, ACME)
            text = output.get_page(0).get_text()
        assert "{{Company Name}}" in text
        assert "Acme Corp" in text

    def test_sanitizes_value(self, fonts, token_pdf):
        with load_template(token_pdf) as template, OutputDocument() as output:
            copy_all_pages(template, output)
            matches = TokenLocator().find_tokens(output, [COMPANY_NAME])
            result = TokenReplacer(fonts).replace_tokens(
                output, matches, PlaceholderMap({COMPANY_NAME: "Acme 🚀"})
            )
        assert result.replacements[0].text == "Acme"
        assert result.chars_dropped == 1


@pytest.mark.skipif(not HAS_PYMUPDF, reason="PyMuPDF not installed")
class TestApplyFallback:

    def _output(self, template):
        output = OutputDocument()
        copy_all_pages(template, output)
        return output

    def test_writes_at_first_candidate(self, fonts, agreement_pdf):
        with load_template(agreement_pdf) as template:
            output = self._output(template)
            try:
                outcome = apply_fallback(output, 10, TokenRequirement(page_index=10), ACME, fonts)
                text = output.get_page(10).get_text()
            finally:
                output.close()

        assert outcome.candidate_index == 0
        assert outcome.text == "For Acme Corp"
        assert outcome.rect.to_tuple() == pytest.approx((300, 115, 550, 140))
        assert "For Acme Corp" in text

    def test_skips_candidates_outside_page(self, fonts, agreement_pdf):
        candidates = [(600, 115, 250, 25), (320, 115, 200, 20)]
        with load_template(agreement_pdf) as template:
            output = self._output(template)
            try:
                outcome = apply_fallback(output, 0, TokenRequirement(page_index=0), ACME, fonts,
                                         candidates=candidates)
            finally:
                output.close()
        assert outcome.candidate_index == 1

    def test_no_candidate_fits(self, fonts, agreement_pdf):
        with load_template(agreement_pdf) as template:
            output = self._output(template)
            try:
                with pytest.raises(RenderingError):
                    apply_fallback(output, 0, TokenRequirement(page_index=0), ACME, fonts,
                                   candidates=[(700, 100, 50, 20)])
            finally:
                output.close()

    def test_skips_candidates_over_drawn_content(self, fonts, agreement_pdf):
        drawn = [fitz.Rect(0, 0, 612, 120)]
        candidates = [(300, 115, 250, 25), (72, 300, 250, 25)]
        with load_template(agreement_pdf) as template:
            output = self._output(template)
            try:
                outcome = apply_fallback(output, 0, TokenRequirement(page_index=0), ACME, fonts,
                                         candidates=candidates, avoid=drawn)
            finally:
                output.close()
        assert outcome.candidate_index == 1
        assert outcome.rect.y0 == pytest.approx(300)

    def test_every_candidate_blocked(self, fonts, agreement_pdf):
        with load_template(agreement_pdf) as template:
            output = self._output(template)
            try:
                with pytest.raises(RenderingError) as exc_info:
                    apply_fallback(output, 0, TokenRequirement(page_index=0), ACME, fonts,
                                   avoid=[fitz.Rect(0, 0, 612, 200)])
                untouched = page_content_digest(output.get_page(0)) == page_content_digest(template.get_page(0))
            finally:
                output.close()
        assert exc_info.value.details["operation"] == "fallback"
        assert untouched

    def test_custom_format(self, fonts, agreement_pdf):
        requirement = TokenRequirement(page_index=0, key="{{date}}", fallback_format="Dated {value}")
        values = PlaceholderMap({"{{date}}": "March 5, 2026"})
        with load_template(agreement_pdf) as template:
            output = self._output(template)
            try:
                outcome = apply_fallback(output, 0, requirement, values, fonts)
            finally:
                output.close()
        assert outcome.text == "Dated March 5, 2026"

    def test_rejects_template(self, fonts, agreement_pdf):
        with load_template(agreement_pdf) as template:
            with pytest.raises(TypeError):
                apply_fallback(template, 0, TokenRequirement(page_index=0), ACME, fonts)
