"""
Placeholder search over a document's positioned text.

PDF generators often split one visible string into several runs (font
switches, kerning, incremental edits). Runs that share a baseline and touch
horizontally are joined before matching, so ``{{Company`` + `` Name}}``
still matches ``{{Company Name}}``.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import fitz  # PyMuPDF

from ..core.models import BoundingBox, TokenMatch
from ..core.placeholders import TOKEN_ALIASES
from .loader import PdfDocument

logger = logging.getLogger(__name__)

TEXT_FONT_ITALIC = 2
TEXT_FONT_BOLD = 16


@dataclass
class Glyph:
    char: str
    bbox: BoundingBox
    origin: Tuple[float, float]
    run: Optional["TextRun"] = None   # None for spaces inserted between runs


@dataclass
class TextRun:
    """One extracted span with per-character geometry."""
    text: str
    bbox: BoundingBox
    origin: Tuple[float, float]
    size: float
    font: str
    flags: int
    glyphs: List[Glyph] = field(default_factory=list)

    @property
    def bold(self) -> bool:
        return bool(self.flags & TEXT_FONT_BOLD) or "bold" in self.font.lower()

    @property
    def italic(self) -> bool:
        name = self.font.lower()
        return bool(self.flags & TEXT_FONT_ITALIC) or "italic" in name or "oblique" in name


@dataclass(frozen=True)
class Found:
    """At least one placeholder was located."""
    matches: Tuple[TokenMatch, ...]

    @property
    def pages(self) -> List[int]:
        return sorted({m.page_index for m in self.matches})


@dataclass(frozen=True)
class NotFound:
    """No placeholder from the search list exists in the scanned pages."""
    tokens: Tuple[str, ...]
    pages_scanned: int


TokenSearchResult = Union[Found, NotFound]


def extract_runs(page: fitz.Page) -> List[TextRun]:
    """Read every text span on ``page`` with its character boxes."""
    runs: List[TextRun] = []
    raw = page.get_text("rawdict")
    for block in raw.get("blocks", []):
        for line in block.get("lines", []):
            for span in line.get("spans", []):
                chars = span.get("chars", [])
                if not chars:
                    continue
                run = TextRun(
                    text="".join(ch["c"] for ch in chars),
                    bbox=BoundingBox.from_sequence(span["bbox"]),
                    origin=tuple(span["origin"]),
                    size=float(span.get("size", 11.0)),
                    font=span.get("font", ""),
                    flags=int(span.get("flags", 0)),
                )
                run.glyphs = [
                    Glyph(ch["c"], BoundingBox.from_sequence(ch["bbox"]), tuple(ch["origin"]), run)
                    for ch in chars
                ]
                runs.append(run)
    return runs


class TokenLocator:
    """
    Finds literal placeholder tokens and their aliases in positioned text.

    Args:
        x_tolerance: Largest horizontal gap (pt) across which runs are joined directly
        y_tolerance: Largest baseline difference (pt) for runs on the same line
        word_gap_ratio: Gaps up to this fraction of the font size are joined with a space
        aliases: canonical key -> alternative spellings
    """

    def __init__(
        self,
        x_tolerance: float = 1.5,
        y_tolerance: float = 2.0,
        word_gap_ratio: float = 0.6,
        aliases: Optional[Dict[str, Tuple[str, ...]]] = None
    ):
        self.x_tolerance = x_tolerance
        self.y_tolerance = y_tolerance
        self.word_gap_ratio = word_gap_ratio
        self.aliases = TOKEN_ALIASES if aliases is None else aliases
        self._alias_owner = {
            alias: key for key, spellings in self.aliases.items() for alias in spellings
        }

    # ------------------------------------------------------------------
    # Line assembly
    # ------------------------------------------------------------------

    def group_lines(self, runs: Iterable[TextRun]) -> List[List[TextRun]]:
        """Cluster runs by baseline, each line sorted left to right."""
        lines: List[List[TextRun]] = []
        baselines: List[float] = []
        for run in sorted(runs, key=lambda r: (r.origin[1], r.bbox.x0)):
            y = run.origin[1]
            if lines and abs(y - baselines[-1]) <= self.y_tolerance:
                lines[-1].append(run)
            else:
                lines.append([run])
                baselines.append(y)
        return [sorted(line, key=lambda r: r.bbox.x0) for line in lines]

    def segments(self, line: Sequence[TextRun]) -> List[List[Glyph]]:
        """Split a line into glyph sequences of horizontally adjacent runs."""
        result: List[List[Glyph]] = []
        current: List[Glyph] = []
        prev: Optional[TextRun] = None
        for run in line:
            if prev is None:
                current = list(run.glyphs)
            else:
                gap = run.bbox.x0 - prev.bbox.x1
                word_gap = self.word_gap_ratio * max(run.size, prev.size)
                if -self.x_tolerance <= gap <= self.x_tolerance:
                    current.extend(run.glyphs)
                elif self.x_tolerance < gap <= word_gap:
                    if not (prev.text.endswith(" ") or run.text.startswith(" ")):
                        space_box = BoundingBox(prev.bbox.x1, min(prev.bbox.y0, run.bbox.y0),
                                                run.bbox.x0, max(prev.bbox.y1, run.bbox.y1))
                        current.append(Glyph(" ", space_box, (prev.bbox.x1, prev.origin[1])))
                    current.extend(run.glyphs)
                else:
                    result.append(current)
                    current = list(run.glyphs)
            prev = run
        if current:
            result.append(current)
        return result

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def canonical(self, token: str) -> str:
        """Canonical key for a token or one of its aliases."""
        return self._alias_owner.get(token, token)

    def spellings(self, token: str) -> List[str]:
        canonical = self.canonical(token)
        seen = [canonical]
        for spelling in (token, *self.aliases.get(canonical, ())):
            if spelling not in seen:
                seen.append(spelling)
        return seen

    @staticmethod
    def _pattern(literal: str) -> "re.Pattern[str]":
        body = re.escape(literal)
        if re.match(r"\w", literal[0]):
            body = r"(?<!\w)" + body
        if re.match(r"\w", literal[-1]):
            body = body + r"(?!\w)"
        return re.compile(body)

    def _compile(self, token_list: Sequence[str]) -> List[Tuple[str, str, "re.Pattern[str]"]]:
        patterns = []
        seen = set()
        for token in token_list:
            if not token:
                continue
            canonical = self.canonical(token)
            for spelling in self.spellings(token):
                if spelling in seen:
                    continue
                seen.add(spelling)
                patterns.append((canonical, spelling, self._pattern(spelling)))
        return patterns

    def _match_segment(
        self,
        glyphs: List[Glyph],
        patterns: List[Tuple[str, str, "re.Pattern[str]"]],
        page_index: int
    ) -> List[TokenMatch]:
        text = "".join(g.char for g in glyphs)
        candidates = []
        for canonical, spelling, pattern in patterns:
            for m in pattern.finditer(text):
                candidates.append((m.start(), m.end(), canonical, spelling))
        # earliest first, then longest
        candidates.sort(key=lambda c: (c[0], -(c[1] - c[0])))

        matches: List[TokenMatch] = []
        taken_until = -1
        for start, end, canonical, spelling in candidates:
            if start < taken_until:
                continue
            taken_until = end
            chosen = glyphs[start:end]
            first = next((g for g in chosen if g.run is not None), chosen[0])
            bbox = chosen[0].bbox
            for g in chosen[1:]:
                bbox = bbox.union(g.bbox)
            run = first.run
            matches.append(TokenMatch(
                page_index=page_index,
                token=canonical,
                matched_text=text[start:end],
                x=first.origin[0],
                y=first.origin[1],
                bbox=bbox,
                font_size=run.size if run else 11.0,
                bold=run.bold if run else False,
                italic=run.italic if run else False,
            ))
        return matches

    def find_tokens_on_page(self, document: PdfDocument, page_index: int, token_list: Sequence[str]) -> List[TokenMatch]:
        patterns = self._compile(token_list)
        if not patterns:
            return []
        page = document.get_page(page_index)
        matches: List[TokenMatch] = []
        for line in self.group_lines(extract_runs(page)):
            for glyphs in self.segments(line):
                matches.extend(self._match_segment(glyphs, patterns, page_index))
        return matches

    def find_tokens(self, document: PdfDocument, token_list: Sequence[str]) -> List[TokenMatch]:
        """
        Locate every occurrence of the given tokens (and their aliases).

        Args:
            document: Template or output document
            token_list: Placeholder keys to search for

        Returns:
            Matches in page order; empty when nothing is found
        """
        matches: List[TokenMatch] = []
        for index in range(document.page_count()):
            matches.extend(self.find_tokens_on_page(document, index, token_list))
        logger.debug(f"Token search over {document.page_count()} page(s): {len(matches)} match(es)")
        return matches

    def search(self, document: PdfDocument, token_list: Sequence[str]) -> TokenSearchResult:
        """Same scan as ``find_tokens`` with an explicit Found/NotFound outcome."""
        matches = self.find_tokens(document, token_list)
        if matches:
            return Found(tuple(matches))
        return NotFound(tuple(token_list), document.page_count())

    @staticmethod
    def statistics(matches: Sequence[TokenMatch]) -> Dict[str, object]:
        return {
            "total": len(matches),
            "by_token": dict(Counter(m.token for m in matches)),
            "by_page": dict(sorted(Counter(m.page_index for m in matches).items())),
            "pages": sorted({m.page_index for m in matches}),
        }


def find_tokens(document: PdfDocument, token_list: Sequence[str], **locator_options) -> List[TokenMatch]:
    """Locate ``token_list`` in ``document`` with a default-configured locator."""
    return TokenLocator(**locator_options).find_tokens(document, token_list)
