"""Signature blocks for the vendor and client parties of an agreement page."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import fitz  # PyMuPDF

from ..core.models import Quote, SignatureBlock
from .canvas import BLACK, Canvas
from .fonts import FontSet
from .layout import Frame

logger = logging.getLogger(__name__)

# Selectable e-signature looks, by SignatureBlock.style
SIGNATURE_STYLES: Tuple[str, ...] = ("tiit", "tibi", "heit", "hebi", "coit")

SIGNATURE_INK = (0.05, 0.15, 0.45)


@dataclass(frozen=True)
class SignatureLayout:
    """Reference-page positions for the two signature columns."""
    vendor_x: float = 120
    client_x: float = 350
    anchor: float = 200                 # baseline of the "By" line
    signature_offset: float = -20       # e-signature baseline relative to anchor
    signature_size: float = 14
    field_offsets: Tuple[float, float, float] = (18, 43, 68)  # name, title, date baselines
    field_size: float = 10
    mask_width: float = 160
    mask_height: float = 15


class SignatureRenderer:
    """Fills Name/Title/Date fields and draws typed e-signatures."""

    def __init__(self, fonts: FontSet, layout: Optional[SignatureLayout] = None, min_font_size: float = 6.0):
        self.fonts = fonts
        self.layout = layout or SignatureLayout()
        self.min_font_size = min_font_size

    def render(self, page: fitz.Page, quote: Quote) -> int:
        """
        Draw whichever signature blocks ``quote`` carries.

        Returns:
            Number of characters the sanitizer dropped
        """
        canvas = Canvas(page, self.fonts, self.min_font_size)
        frame = Frame(page.rect)
        columns = (
            (self.layout.vendor_x, quote.vendor_signature, "vendor"),
            (self.layout.client_x, quote.client_signature, "client"),
        )
        drawn = 0
        for x, block, party in columns:
            if block is None or block.is_empty:
                continue
            self._draw_block(canvas, frame, x, block)
            drawn += 1
            logger.debug(f"Drew {party} signature block on page {page.number}")
        if drawn:
            logger.info(f"Added {drawn} signature block(s) to page {page.number}")
        return canvas.chars_dropped

    def _draw_block(self, canvas: Canvas, frame: Frame, x: float, block: SignatureBlock) -> None:
        lay = self.layout
        width = frame.dx(lay.mask_width)

        signature = block.signature_text or block.signer_name
        if signature:
            style = SIGNATURE_STYLES[block.style % len(SIGNATURE_STYLES)]
            face = self.fonts.base14(style)
            self.fonts.register(canvas.page, face)
            canvas.text(frame.x(x), frame.y(lay.anchor + lay.signature_offset), signature,
                        size=frame.size(lay.signature_size), color=SIGNATURE_INK,
                        face=face, max_width=width)

        values = (block.signer_name, block.title, block.date)
        for offset, value in zip(lay.field_offsets, values):
            if not value:
                continue
            baseline = lay.anchor + offset
            mask_bottom = baseline + 4
            canvas.clear(frame.box(x, mask_bottom - lay.mask_height, x + lay.mask_width, mask_bottom))
            canvas.text(frame.x(x + 2), frame.y(baseline), value,
                        size=frame.size(lay.field_size), color=BLACK, max_width=width - frame.dx(4))
