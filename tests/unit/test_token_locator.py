"""Unit tests for placeholder search."""

import pytest

try:
    import fitz  # PyMuPDF
    HAS_PYMUPDF = True
except ImportError:
    HAS_PYMUPDF = False

from quotemerge.core.placeholders import COMPANY_NAME
from quotemerge.extraction.loader import load_template
from quotemerge.extraction.token_locator import (
    Found, NotFound, TokenLocator, extract_runs, find_tokens
)


@pytest.fixture
def locator():
    return TokenLocator()


@pytest.mark.skipif(not HAS_PYMUPDF, reason="PyMuPDF not installed")
class TestFindTokens:

    def test_single_token(self, locator, token_pdf):
        with load_template(token_pdf) as template:
            matches = locator.find_tokens(template, [COMPANY_NAME])
            prefix = fitz.get_text_length("For ", fontname="helv", fontsize=12)

        assert len(matches) == 1
        match = matches[0]
        assert match.page_index == 0
        assert match.token == COMPANY_NAME
        assert match.matched_text == COMPANY_NAME
        assert match.font_size == pytest.approx(12, abs=0.1)
        assert not match.bold
        assert match.x == pytest.approx(300 + prefix, abs=0.5)
        assert match.y == pytest.approx(140, abs=0.5)
        assert match.bbox.x0 == pytest.approx(300 + prefix, abs=0.5)
        assert match.bbox.width == pytest.approx(
            fitz.get_text_length(COMPANY_NAME, fontname="helv", fontsize=12), abs=1.0
        )
        assert match.bbox.y0 < 140 < match.bbox.y1

    def test_no_tokens(self, locator, agreement_pdf):
        with load_template(agreement_pdf) as template:
            assert locator.find_tokens(template, [COMPANY_NAME]) == []

    def test_empty_token_list(self, locator, token_pdf):
        with load_template(token_pdf) as template:
            assert locator.find_tokens(template, []) == []
            assert locator.find_tokens(template, [""]) == []

    def test_module_function(self, token_pdf):
        with load_template(token_pdf) as template:
            assert len(find_tokens(template, [COMPANY_NAME])) == 1

    def test_restricted_to_one_page(self, locator, generator):
        data = generator.token_page(pages=3, token_page=1)
        with load_template(data) as template:
            assert locator.find_tokens_on_page(template, 0, [COMPANY_NAME]) == []
            on_page = locator.find_tokens_on_page(template, 1, [COMPANY_NAME])
            everywhere = locator.find_tokens(template, [COMPANY_NAME])
        assert len(on_page) == 1
        assert [m.page_index for m in everywhere] == [1]


@pytest.mark.skipif(not HAS_PYMUPDF, reason="PyMuPDF not installed")
class TestSplitRuns:

    def test_token_split_across_fonts(self, locator, split_token_pdf):
        with load_template(split_token_pdf) as template:
            matches = locator.find_tokens(template, [COMPANY_NAME])
        assert len(matches) == 1
        match = matches[0]
        # geometry spans both runs, style comes from the first
        full = fitz.get_text_length("{{Company", fontname="helv", fontsize=12) + \
            fitz.get_text_length(" Name}}", fontname="hebo", fontsize=12)
        assert match.bbox.x0 == pytest.approx(100, abs=0.5)
        assert match.bbox.x1 == pytest.approx(100 + full, abs=1.0)
        assert not match.bold

    def test_word_gap_gets_space(self, locator, generator):
        data = generator.split_token_page(parts=("{{Company", "Name}}"), gap=3)
        with load_template(data) as template:
            matches = locator.find_tokens(template, [COMPANY_NAME])
        assert len(matches) == 1

    def test_runs_on_different_lines_not_joined(self, locator, generator):
        data = generator.lines_page(["{{Company", " Name}}"])
        with load_template(data) as template:
            assert locator.find_tokens(template, [COMPANY_NAME]) == []

    def test_extract_runs_reports_bold(self, split_token_pdf):
        with load_template(split_token_pdf) as template:
            runs = [r for r in extract_runs(template.get_page(0)) if "Name}}" in r.text]
        assert runs and runs[0].bold


@pytest.mark.skipif(not HAS_PYMUPDF, reason="PyMuPDF not installed")
class TestAliases:

    def test_alias_spelling_maps_to_canonical(self, locator, generator):
        data = generator.lines_page(["Prepared for {{Company_Name}} today"])
        with load_template(data) as template:
            matches = locator.find_tokens(template, [COMPANY_NAME])
        assert len(matches) == 1
        assert matches[0].token == COMPANY_NAME
        assert matches[0].matched_text == "{{Company_Name}}"

    def test_short_alias_needs_word_boundary(self, locator, generator):
        data = generator.lines_page([
            "Company compliance is complete",
            "Issued to comp.",
        ])
        with load_template(data) as template:
            matches = locator.find_tokens(template, [COMPANY_NAME])
        assert len(matches) == 1
        assert matches[0].matched_text == "comp"

    def test_search_by_alias(self, locator, token_pdf):
        with load_template(token_pdf) as template:
            matches = locator.find_tokens(template, ["comp"])
        assert [m.token for m in matches] == [COMPANY_NAME]

    def test_longest_match_wins(self, generator):
        locator = TokenLocator(aliases={"{{name}}": ("{{name}}!",)})
        data = generator.lines_page(["Hello {{name}}! and {{name}}"])
        with load_template(data) as template:
            matches = locator.find_tokens(template, ["{{name}}"])
        assert [m.matched_text for m in matches] == ["{{name}}!", "{{name}}"]
        assert matches[0].bbox.x1 <= matches[1].bbox.x0

    def test_case_sensitive(self, locator, generator):
        data = generator.lines_page(["{{COMPANY NAME}}"])
        with load_template(data) as template:
            assert locator.find_tokens(template, [COMPANY_NAME]) == []


@pytest.mark.skipif(not HAS_PYMUPDF, reason="PyMuPDF not installed")
class TestSearchResult:

    def test_found(self, locator, token_pdf):
        with load_template(token_pdf) as template:
            result = locator.search(template, [COMPANY_NAME])
        assert isinstance(result, Found)
        assert result.pages == [0]

    def test_not_found(self, locator, agreement_pdf):
        with load_template(agreement_pdf) as template:
            result = locator.search(template, [COMPANY_NAME])
        assert isinstance(result, NotFound)
        assert result.tokens == (COMPANY_NAME,)
        assert result.pages_scanned == 11

    def test_statistics(self, locator, generator):
        data = generator.lines_page(["{{Company Name}} and {{date}}", "{{Company Name}}"])
        with load_template(data) as template:
            matches = locator.find_tokens(template, [COMPANY_NAME, "{{date}}"])
        stats = TokenLocator.statistics(matches)
        assert stats["total"] == 3
        assert stats["by_token"] == {COMPANY_NAME: 2, "{{date}}": 1}
        assert stats["pages"] == [0]


def _run(text, x0, baseline, size=12.0, advance=6.0, font="Helvetica", flags=0):
    """Synthetic run with fixed-advance glyphs."""
    from quotemerge.core.models import BoundingBox
    from quotemerge.extraction.token_locator import Glyph, TextRun

    top, bottom = baseline - size * 0.8, baseline + size * 0.2
    run = TextRun(text=text, bbox=BoundingBox(x0, top, x0 + advance * len(text), bottom),
                  origin=(x0, baseline), size=size, font=font, flags=flags)
    run.glyphs = [
        Glyph(ch, BoundingBox(x0 + i * advance, top, x0 + (i + 1) * advance, bottom),
              (x0 + i * advance, baseline), run)
        for i, ch in enumerate(text)
    ]
    return run


class TestLineAssembly:

    def test_group_by_baseline(self, locator):
        runs = [_run("b", 50, 101), _run("a", 10, 100), _run("c", 10, 140)]
        lines = locator.group_lines(runs)
        assert [[r.text for r in line] for line in lines] == [["a", "b"], ["c"]]

    def test_adjacent_runs_join(self, locator):
        first = _run("{{Company", 10, 100)
        second = _run(" Name}}", first.bbox.x1 + 0.5, 100)
        segments = locator.segments([first, second])
        assert len(segments) == 1
        assert "".join(g.char for g in segments[0]) == "{{Company Name}}"

    def test_word_gap_inserts_space(self, locator):
        first = _run("{{Company", 10, 100)
        second = _run("Name}}", first.bbox.x1 + 4, 100)
        segments = locator.segments([first, second])
        assert "".join(g.char for g in segments[0]) == "{{Company Name}}"
        assert segments[0][9].run is None

    def test_wide_gap_splits(self, locator):
        first = _run("{{Company", 10, 100)
        second = _run(" Name}}", first.bbox.x1 + 30, 100)
        assert len(locator.segments([first, second])) == 2

    def test_match_style_from_first_glyph(self, locator):
        first = _run("{{Company", 10, 100, flags=16)
        second = _run(" Name}}", first.bbox.x1, 100, size=10)
        glyphs = locator.segments([first, second])[0]
        matches = locator._match_segment(glyphs, locator._compile([COMPANY_NAME]), 2)
        assert len(matches) == 1
        assert matches[0].bold
        assert matches[0].font_size == 12
        assert matches[0].page_index == 2
        assert matches[0].bbox.x1 == second.bbox.x1
