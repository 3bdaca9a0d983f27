"""
Replacing located placeholders on output pages.

Exact replacement masks each token's measured box and redraws the value at
the token's baseline. When a page that must carry a value has no token, the
fallback writes it at the first usable configured position and the caller is
told that the result is degraded.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

import fitz  # PyMuPDF

from ..core.exceptions import RenderingError
from ..core.models import BoundingBox, FallbackOutcome, TokenMatch, TokenRequirement
from ..extraction.loader import OutputDocument, TemplateDocument
from .canvas import BLACK, Canvas
from .fonts import FontSet
from .layout import Frame

logger = logging.getLogger(__name__)

# (x, top, width, height) on the 612 x 792 reference page, tried in order.
# Tuned for the signature page of the standard agreement templates.
DEFAULT_FALLBACK_CANDIDATES = (
    (300.0, 115.0, 250.0, 25.0),
    (320.0, 115.0, 200.0, 20.0),
    (280.0, 115.0, 300.0, 30.0),
    (350.0, 110.0, 180.0, 20.0),
)

# Redaction is shrunk by this much on each side so glyphs that merely touch
# the token box are kept.
REDACT_INSET_X = 1.0
REDACT_INSET_Y_RATIO = 0.2


@dataclass
class Replacement:
    match: TokenMatch
    text: str
    font_size: float


@dataclass
class ReplacementResult:
    document: OutputDocument
    replacements: List[Replacement] = field(default_factory=list)
    unresolved: List[TokenMatch] = field(default_factory=list)
    chars_dropped: int = 0

    @property
    def count(self) -> int:
        return len(self.replacements)


class TokenReplacer:
    """
    Masks token footprints and draws replacement values.

    Args:
        fonts: Per-call font set
        redact_text: Also remove the original glyphs from the content stream
        min_font_size: Smallest size a long replacement is shrunk to before truncation
    """

    def __init__(self, fonts: FontSet, redact_text: bool = True, min_font_size: float = 6.0):
        self.fonts = fonts
        self.redact_text = redact_text
        self.min_font_size = min_font_size

    def replace_tokens(
        self,
        document: OutputDocument,
        matches: Sequence[TokenMatch],
        placeholder_map: Mapping[str, str]
    ) -> ReplacementResult:
        """
        Replace every match in ``document``.

        Args:
            document: Output document (never the source template)
            matches: Matches located on ``document``
            placeholder_map: key -> replacement text

        Returns:
            ReplacementResult with the same document, patched in place
        """
        if isinstance(document, TemplateDocument) or not isinstance(document, OutputDocument):
            raise TypeError("Tokens can only be replaced on an OutputDocument")

        result = ReplacementResult(document=document)
        by_page: Dict[int, List[TokenMatch]] = defaultdict(list)
        for match in matches:
            if match.token in placeholder_map:
                by_page[match.page_index].append(match)
            else:
                result.unresolved.append(match)
                logger.warning(f"No replacement value for {match.token!r} on page {match.page_index}")

        for page_index in sorted(by_page):
            page = document.get_page(page_index)
            page_matches = by_page[page_index]
            if self.redact_text:
                self._redact(page, page_matches)

            canvas = Canvas(page, self.fonts, self.min_font_size)
            for match in page_matches:
                rect = fitz.Rect(match.bbox.to_tuple())
                canvas.clear(rect)
                face = self.fonts.face(bold=match.bold, italic=match.italic)
                text = canvas.clean(placeholder_map[match.token])
                text, size = canvas.fit(text, rect.width, match.font_size, face, self.min_font_size)
                if text:
                    canvas.text(match.x, match.y, text, size=size, face=face, color=BLACK)
                result.replacements.append(Replacement(match, text, size))
            result.chars_dropped += canvas.chars_dropped

        logger.debug(f"Replaced {result.count} token(s), {len(result.unresolved)} unresolved")
        return result

    def _redact(self, page: fitz.Page, matches: Sequence[TokenMatch]) -> None:
        """Remove the original glyphs without touching images or vector graphics."""
        for match in matches:
            box = match.bbox
            inset_y = box.height * REDACT_INSET_Y_RATIO
            rect = fitz.Rect(box.x0 + REDACT_INSET_X, box.y0 + inset_y,
                             box.x1 - REDACT_INSET_X, box.y1 - inset_y)
            if rect.is_empty:
                continue
            page.add_redact_annot(rect, fill=(1, 1, 1))
        try:
            page.apply_redactions(images=0, graphics=0)
        except (RuntimeError, ValueError) as e:
            raise RenderingError(f"Redaction failed: {e}", page=page.number, operation="apply_redactions") from e


def apply_fallback(
    document: OutputDocument,
    page_index: int,
    requirement: TokenRequirement,
    placeholder_map: Mapping[str, str],
    fonts: FontSet,
    candidates: Optional[Sequence[Sequence[float]]] = None,
    font_size: float = 12.0,
    avoid: Sequence[fitz.Rect] = ()
) -> FallbackOutcome:
    """
    Write a required value at a fixed position when its token was not found.

    Candidates are ``(x, top, width, height)`` in reference points and are
    tried in order; the first one fully inside the page and clear of every
    rectangle in ``avoid`` is masked and written. The outcome is degraded by
    definition.

    Raises:
        RenderingError: No candidate fits on the page
    """
    if isinstance(document, TemplateDocument):
        raise TypeError("Fallback substitution only applies to an OutputDocument")
    candidates = DEFAULT_FALLBACK_CANDIDATES if candidates is None else candidates
    page = document.get_page(page_index)
    frame = Frame(page.rect)
    value = placeholder_map.get(requirement.key) or "N/A"
    text = requirement.fallback_format.format(value=value)

    for index, (x, top, width, height) in enumerate(candidates):
        rect = frame.box(x, top, x + width, top + height)
        if rect.is_empty or not page.rect.contains(rect):
            logger.debug(f"Fallback candidate {index} outside page {page_index}: {rect}")
            continue
        if any(rect.intersects(area) for area in avoid):
            logger.debug(f"Fallback candidate {index} overlaps drawn content on page {page_index}")
            continue
        canvas = Canvas(page, fonts)
        canvas.clear(rect)
        size = frame.size(font_size)
        canvas.text(rect.x0 + frame.dx(5), rect.y1 - frame.dy(5), text, size=size, bold=True,
                    max_width=rect.width - frame.dx(10))
        logger.warning(
            f"Token {requirement.key!r} not found on page {page_index}; "
            f"wrote fallback at candidate {index} {tuple(round(v, 1) for v in rect)}"
        )
        return FallbackOutcome(
            page_index=page_index,
            key=requirement.key,
            candidate_index=index,
            rect=BoundingBox(rect.x0, rect.y0, rect.x1, rect.y1),
            text=canvas.clean(text),
        )

    raise RenderingError(
        f"No fallback position fits page {page_index} for {requirement.key!r}",
        page=page_index,
        operation="fallback",
    )


def replace_tokens(
    document: OutputDocument,
    matches: Sequence[TokenMatch],
    placeholder_map: Mapping[str, str],
    fonts: Optional[FontSet] = None
) -> ReplacementResult:
    """Replace ``matches`` using fresh standard fonts unless ``fonts`` is given."""
    return TokenReplacer(fonts or FontSet.standard()).replace_tokens(document, matches, placeholder_map)
