"""Drawing primitives over a PyMuPDF page."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

import fitz  # PyMuPDF

from ..core.exceptions import FontEmbedFailure, RenderingError
from ..text.sanitizer import sanitize_with_report
from .fonts import FontFace, FontSet

logger = logging.getLogger(__name__)

Color = Tuple[float, float, float]

BLACK: Color = (0, 0, 0)
WHITE: Color = (1, 1, 1)
GRAY: Color = (0.4, 0.4, 0.4)
LIGHT_GRAY: Color = (0.95, 0.95, 0.95)


class Canvas:
    """
    Draws sanitized text and shapes on one page.

    Every string is sanitized before it is measured or drawn; the number of
    characters dropped along the way is kept in ``chars_dropped``. The box of
    everything drawn is appended to ``painted``.
    """

    def __init__(self, page: fitz.Page, fonts: FontSet, min_font_size: float = 6.0):
        self.page = page
        self.fonts = fonts
        self.min_font_size = min_font_size
        self.chars_dropped = 0
        self.painted: List[fitz.Rect] = []
        self.fonts.register(page, fonts.regular)
        self.fonts.register(page, fonts.bold)

    @property
    def page_index(self) -> int:
        return self.page.number

    def clean(self, text) -> str:
        result = sanitize_with_report(text)
        self.chars_dropped += result.dropped
        return result.text

    def text_width(self, text: str, size: float, bold: bool = False, face: Optional[FontFace] = None) -> float:
        face = face or self.fonts.face(bold=bold)
        return face.text_length(text, size)

    def fit(
        self,
        text: str,
        max_width: float,
        size: float,
        face: FontFace,
        min_size: Optional[float] = None
    ) -> Tuple[str, float]:
        """Shrink ``size`` until ``text`` fits, then drop trailing characters."""
        min_size = self.min_font_size if min_size is None else min_size
        if max_width <= 0 or not text:
            return text, size
        width = face.text_length(text, size)
        if width <= max_width:
            return text, size
        fitted = max(min_size, size * max_width / width)
        if fitted < size:
            size = fitted
        while text and face.text_length(text, size) > max_width:
            text = text[:-1]
        return text.rstrip(), size

    def text(
        self,
        x: float,
        y: float,
        text,
        size: float = 10,
        bold: bool = False,
        italic: bool = False,
        color: Color = BLACK,
        align: str = "left",
        max_width: Optional[float] = None,
        face: Optional[FontFace] = None,
    ) -> float:
        """
        Draw one line with its baseline at ``y``.

        Args:
            x: Left edge, centre or right edge depending on ``align``
            y: Baseline
            text: Raw value; sanitized here
            max_width: Shrink-then-truncate limit

        Returns:
            Width of the drawn string
        """
        clean = self.clean(text)
        if not clean:
            return 0.0
        face = face or self.fonts.face(bold=bold, italic=italic)
        if max_width is not None:
            clean, size = self.fit(clean, max_width, size, face)
        width = face.text_length(clean, size)
        if align == "center":
            x -= width / 2
        elif align == "right":
            x -= width
        try:
            self.page.insert_text(
                fitz.Point(x, y),
                clean,
                fontsize=size,
                fontname=face.alias,
                fontfile=face.fontfile,
                color=color,
            )
        except (RuntimeError, ValueError) as e:
            raise FontEmbedFailure(face.fontfile or face.alias, page=self.page_index, original_error=e) from e
        self.painted.append(fitz.Rect(x, y - size * face.ascender, x + width, y - size * face.descender))
        return width

    def lines(
        self,
        x: float,
        y: float,
        rows: Sequence[str],
        size: float = 10,
        leading: float = 14,
        bold: bool = False,
        color: Color = BLACK,
        max_width: Optional[float] = None,
    ) -> float:
        """Draw rows top-down starting at baseline ``y``. Returns the next baseline."""
        for row in rows:
            self.text(x, y, row, size=size, bold=bold, color=color, max_width=max_width)
            y += leading
        return y

    def wrap(self, text, width: float, size: float, bold: bool = False) -> List[str]:
        """Greedy word wrap of sanitized ``text`` into lines no wider than ``width``."""
        face = self.fonts.face(bold=bold)
        words = self.clean(text).split()
        rows: List[str] = []
        current = ""
        for word in words:
            candidate = f"{current} {word}" if current else word
            if current and face.text_length(candidate, size) > width:
                rows.append(current)
                current = word
            else:
                current = candidate
        if current:
            rows.append(current)
        return rows

    def rect(
        self,
        rect: fitz.Rect,
        fill: Optional[Color] = None,
        color: Optional[Color] = None,
        width: float = 0,
    ) -> None:
        try:
            self.page.draw_rect(rect, color=color, fill=fill, width=width if color else 0)
        except (RuntimeError, ValueError) as e:
            raise RenderingError(f"draw_rect failed: {e}", page=self.page_index, operation="draw_rect") from e
        self.painted.append(fitz.Rect(rect))

    def clear(self, rect: fitz.Rect, fill: Color = WHITE) -> None:
        """Paint an opaque rectangle over whatever is underneath."""
        self.rect(rect, fill=fill)

    def line(self, p1: Tuple[float, float], p2: Tuple[float, float], color: Color = BLACK, width: float = 1) -> None:
        try:
            self.page.draw_line(fitz.Point(*p1), fitz.Point(*p2), color=color, width=width)
        except (RuntimeError, ValueError) as e:
            raise RenderingError(f"draw_line failed: {e}", page=self.page_index, operation="draw_line") from e
        self.painted.append(fitz.Rect(fitz.Point(*p1), fitz.Point(*p2)).normalize() + (-width, -width, width, width))

    def circle(
        self,
        center: Tuple[float, float],
        radius: float,
        fill: Optional[Color] = None,
        color: Optional[Color] = None,
        width: float = 1,
    ) -> None:
        try:
            self.page.draw_circle(fitz.Point(*center), radius, color=color, fill=fill, width=width if color else 0)
        except (RuntimeError, ValueError) as e:
            raise RenderingError(f"draw_circle failed: {e}", page=self.page_index, operation="draw_circle") from e
        cx, cy = center
        self.painted.append(fitz.Rect(cx - radius, cy - radius, cx + radius, cy + radius))
