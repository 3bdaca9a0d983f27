"""
Quote overlay rendering.

``render_overlay`` paints the full agreement (branding, parties, summary,
pricing table, footer) on page 0 of a generic template.
``render_page_replace`` repaints only the title, intro paragraph and pricing
table of one page in a multi-page agreement.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import fitz  # PyMuPDF

from ..core.models import Branding, OverlayMode, Quote
from ..extraction.loader import OutputDocument
from ..text.formatting import (
    NOT_AVAILABLE,
    format_currency,
    format_duration,
    format_long_date,
    format_number,
    per_unit_cost,
    validity_phrase,
)
from .canvas import BLACK, GRAY, WHITE, Canvas
from .fonts import FontSet
from .layout import (
    BADGE_COLORS,
    BRAND_BLUE,
    FOOTER_FILL,
    HEADER_FILL,
    SUMMARY_FIELDS,
    SUMMARY_FILL,
    TABLE_HEADER_FILL,
    TABLE_RULE,
    TABLE_STYLES,
    TOTALS_FILL,
    Frame,
    GenericLayout,
    PageReplaceLayout,
    TableLayout,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LineItem:
    """One row of the services and pricing table."""
    job: Tuple[str, ...]
    description: Tuple[str, ...]
    kind: Tuple[str, ...]
    price: str

    def cell_lines(self, cells: Sequence[str]) -> List[str]:
        rows: List[str] = []
        for name in cells:
            value = getattr(self, name)
            rows.extend([value] if isinstance(value, str) else value)
        return rows


class OverlayRenderer:
    """Draws quote content onto copied template pages."""

    def __init__(
        self,
        fonts: FontSet,
        branding: Optional[Branding] = None,
        layout: Optional[GenericLayout] = None,
        page_layout: Optional[PageReplaceLayout] = None,
        table_style: str = "four_column",
        two_column_max_width: float = 420.0,
        min_font_size: float = 6.0
    ):
        if table_style not in TABLE_STYLES:
            raise ValueError(f"Unknown table style: {table_style}")
        self.fonts = fonts
        self.branding = branding or Branding()
        self.layout = layout or GenericLayout()
        self.page_layout = page_layout or PageReplaceLayout()
        self.table_style = table_style
        self.two_column_max_width = two_column_max_width
        self.min_font_size = min_font_size
        # page number -> boxes drawn there by this renderer
        self.painted: Dict[int, List[fitz.Rect]] = defaultdict(list)

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def line_items(self, quote: Quote) -> List[LineItem]:
        cfg = quote.configuration
        calc = quote.calculation
        b = self.branding
        users = format_number(cfg.number_of_users)
        source = cfg.migration_type or "Cloud"
        return [
            LineItem(
                job=(f"{b.vendor_name} {b.product_name}", "Data Migration"),
                description=(
                    f"{source} to {b.migration_target}",
                    f"Up to {users} Users",
                    f"{format_number(cfg.data_size_gb)} GB of Data",
                ),
                kind=("Managed Migration", "One-Time"),
                price=format_currency(calc.migration_cost),
            ),
            LineItem(
                job=("Managed Migration", "Service"),
                description=(
                    "Fully Managed Migration",
                    "Dedicated Project Manager",
                    "Pre-Migration Analysis",
                ),
                kind=("Managed", "Migration"),
                price=format_currency(calc.service_cost),
            ),
        ]

    def summary_values(self, quote: Quote) -> Dict[str, str]:
        cfg = quote.configuration
        calc = quote.calculation
        instances = NOT_AVAILABLE
        if cfg.number_of_instances:
            instances = f"{cfg.number_of_instances} x {cfg.instance_type or 'Standard'}"
        return {
            "migration_type": cfg.migration_type or NOT_AVAILABLE,
            "plan": quote.selected_tier.name or NOT_AVAILABLE,
            "users": format_number(cfg.number_of_users),
            "data_size": f"{format_number(cfg.data_size_gb)} GB",
            "duration": format_duration(cfg.duration_months),
            "per_user_cost": per_unit_cost(calc.user_cost, cfg.number_of_users),
            "instances": instances,
            "total_cost": format_currency(calc.total_cost),
        }

    def table_layout(self, frame: Frame, base: TableLayout) -> TableLayout:
        """Pick the column set for this page; narrow pages get two columns."""
        style = self.table_style
        if frame.width < self.two_column_max_width:
            style = "two_column"
        chosen = TABLE_STYLES[style]
        return chosen.with_top(base.top) if chosen is not base else base

    # ------------------------------------------------------------------
    # Full overlay
    # ------------------------------------------------------------------

    def render_overlay(
        self,
        page: fitz.Page,
        quote: Quote,
        quote_number: str,
        mode: OverlayMode = OverlayMode.PATCH,
        page_total: int = 1,
        include_features: bool = False
    ) -> int:
        """
        Draw the complete quote overlay on ``page``.

        Args:
            page: Output page to draw on
            quote: Quote data
            quote_number: Printed quote number / document reference
            mode: PATCH clears only painted regions; NEW_PAGE whites the page first
            page_total: Page count for the footer indicator
            include_features: Add the tier's feature list under the table

        Returns:
            Number of characters the sanitizer dropped
        """
        canvas = Canvas(page, self.fonts, self.min_font_size)
        frame = Frame(page.rect)
        lay = self.layout

        if mode is OverlayMode.NEW_PAGE:
            canvas.clear(page.rect)

        self._draw_header(canvas, frame, quote, quote_number)
        self._draw_parties(canvas, frame, quote)
        self._draw_summary(canvas, frame, quote)

        table = self.table_layout(frame, lay.table)
        items = self.line_items(quote)
        canvas.clear(frame.box(
            table.left - 8, lay.table_title_baseline - 18,
            table.left + table.width + 8, table.top + table.height(len(items)) + 4,
        ))
        canvas.text(frame.x(lay.margin), frame.y(lay.table_title_baseline), "Services and Pricing",
                    size=frame.size(14), bold=True, color=BRAND_BLUE)
        self._draw_table(canvas, frame, table, items, quote)

        if include_features:
            self._draw_features(canvas, frame, quote)

        self._draw_footer(canvas, frame, quote_number, page_total)

        self.painted[page.number].extend(canvas.painted)
        logger.debug(
            f"Rendered {mode.name} overlay on page {page.number} for quote {quote_number}"
        )
        return canvas.chars_dropped

    def _draw_header(self, canvas: Canvas, frame: Frame, quote: Quote, quote_number: str) -> None:
        lay = self.layout
        b = self.branding
        canvas.rect(frame.box(0, lay.header.top, 612, lay.header.bottom), fill=HEADER_FILL)

        # Logo mark: three strokes ending in dots
        lx, ly = lay.logo_origin
        for i in range(3):
            y = frame.y(ly + i * 8)
            end = frame.x(lx + 25 - i * 5)
            canvas.line((frame.x(lx), y), (end, y), color=BRAND_BLUE, width=frame.size(3))
            canvas.circle((end, y), frame.size(3), fill=BRAND_BLUE)
        canvas.text(frame.x(lx + 36), frame.y(lay.product_baseline), b.vendor_name,
                    size=frame.size(lay.product_size), bold=True, color=BRAND_BLUE)

        # Partner badge
        bx = lay.badge_left
        for i, color in enumerate(BADGE_COLORS):
            col, row = i % 2, i // 2
            canvas.rect(frame.box(bx + col * 7, 28 + row * 7, bx + col * 7 + 6, 34 + row * 7), fill=color)
        canvas.text(frame.x(bx + 18), frame.y(lay.badge_baseline - 4), b.partner_name,
                    size=frame.size(10), bold=True)
        canvas.text(frame.x(bx + 18), frame.y(lay.badge_baseline + 7), b.partner_label,
                    size=frame.size(9), color=GRAY)
        canvas.line((frame.x(bx + 82), frame.y(26)), (frame.x(bx + 82), frame.y(50)),
                    color=GRAY, width=frame.size(0.5))
        canvas.text(frame.x(bx + 88), frame.y(lay.badge_baseline - 4), b.partner_tier,
                    size=frame.size(8), color=GRAY, max_width=frame.x(612 - lay.margin) - frame.x(bx + 88))

        # Title and quote line
        title = b.title(quote.display_company)
        canvas.text(frame.x(306), frame.y(lay.title_baseline), title,
                    size=frame.size(lay.title_size), bold=True, align="center",
                    max_width=frame.dx(612 - 2 * lay.margin))
        canvas.text(frame.x(lay.margin), frame.y(lay.quote_line_baseline), f"Quote #{quote_number}",
                    size=frame.size(11))
        canvas.text(frame.right(lay.margin), frame.y(lay.quote_line_baseline),
                    f"Date: {format_long_date(quote.created_at)}", size=frame.size(11), align="right")

    def _draw_parties(self, canvas: Canvas, frame: Frame, quote: Quote) -> None:
        lay = self.layout
        top = lay.parties_baseline
        canvas.clear(frame.box(lay.margin - 4, top - 14, 612 - lay.margin + 4, top + 4 * lay.party_leading + 4))

        bill_to = [quote.client_name, quote.company, quote.client_email]
        columns = (
            (lay.margin, "Bill To:", [row for row in bill_to if row] or [NOT_AVAILABLE]),
            (lay.party_right, "From:", list(self.branding.from_lines)),
        )
        width = frame.x(lay.party_right - 10) - frame.x(lay.margin)
        for x, label, rows in columns:
            canvas.text(frame.x(x), frame.y(top), label, size=frame.size(12), bold=True, color=BRAND_BLUE)
            canvas.lines(frame.x(x), frame.y(top + lay.party_leading), rows[:4],
                         size=frame.size(10), leading=frame.dy(lay.party_leading),
                         max_width=width)

    def _draw_summary(self, canvas: Canvas, frame: Frame, quote: Quote) -> None:
        lay = self.layout
        box = frame.box(lay.margin, lay.summary.top, 612 - lay.margin, lay.summary.bottom)
        canvas.rect(box, fill=SUMMARY_FILL, color=TABLE_RULE, width=frame.size(0.5))
        canvas.text(frame.x(lay.margin + 10), frame.y(lay.summary.top + lay.summary_title_offset),
                    "Project Summary", size=frame.size(14), bold=True, color=BRAND_BLUE)

        values = self.summary_values(quote)
        col_x = (lay.margin + 10, lay.party_right)
        col_width = frame.x(lay.party_right - 10) - frame.x(lay.margin + 10 + lay.summary_value_offset)
        for i, (label, key) in enumerate(SUMMARY_FIELDS):
            row, col = divmod(i, 2)
            x = col_x[col]
            y = frame.y(lay.summary.top + lay.summary_first_row + row * lay.summary_leading)
            canvas.text(frame.x(x), y, f"{label}:", size=frame.size(10), bold=True)
            canvas.text(frame.x(x + lay.summary_value_offset), y, values[key],
                        size=frame.size(10), max_width=col_width)

    def _draw_table(
        self,
        canvas: Canvas,
        frame: Frame,
        table: TableLayout,
        items: Sequence[LineItem],
        quote: Quote
    ) -> None:
        offsets = table.column_offsets()
        right = table.left + table.width
        pad = table.padding

        def cell_x(index: int) -> Tuple[float, str]:
            col = table.columns[index]
            if col.align == "right":
                return frame.x(table.left + offsets[index] + col.width - pad), "right"
            return frame.x(table.left + offsets[index] + pad), "left"

        def cell_width(index: int) -> float:
            return frame.dx(table.columns[index].width - 2 * pad)

        # Header row
        y = table.top
        canvas.rect(frame.box(table.left, y, right, y + table.header_height), fill=TABLE_HEADER_FILL)
        baseline = frame.y(y + table.header_height / 2 + table.header_size / 3)
        for i, col in enumerate(table.columns):
            x, align = cell_x(i)
            canvas.text(x, baseline, col.title, size=frame.size(table.header_size), bold=True,
                        color=WHITE, align=align, max_width=cell_width(i))
        y += table.header_height

        # Line items
        max_lines = max(1, int((table.row_height - pad) // table.line_leading))
        for item in items:
            canvas.rect(frame.box(table.left, y, right, y + table.row_height),
                        color=TABLE_RULE, width=frame.size(0.5))
            for i, col in enumerate(table.columns):
                x, align = cell_x(i)
                rows = item.cell_lines(col.cells)[:max_lines]
                for n, text in enumerate(rows):
                    canvas.text(x, frame.y(y + pad + table.body_size + n * table.line_leading), text,
                                size=frame.size(table.body_size), bold=(n == 0 and "job" in col.cells),
                                align=align, max_width=cell_width(i))
            y += table.row_height

        # Totals row
        canvas.rect(frame.box(table.left, y, right, y + table.totals_height), fill=TOTALS_FILL)
        baseline = frame.y(y + table.totals_height / 2 + table.header_size / 3)
        canvas.text(frame.x(table.left + pad), baseline,
                    validity_phrase(quote.configuration.duration_months),
                    size=frame.size(table.header_size), bold=True, color=WHITE,
                    max_width=cell_width(0))
        label_edge = table.left + offsets[-1] - pad
        canvas.text(frame.x(label_edge), baseline, "Total Price:", size=frame.size(table.header_size),
                    bold=True, color=WHITE, align="right")
        x, align = cell_x(len(table.columns) - 1)
        canvas.text(x, baseline, format_currency(quote.calculation.total_cost),
                    size=frame.size(table.header_size), bold=True, color=WHITE, align=align,
                    max_width=cell_width(len(table.columns) - 1))

    def _draw_features(self, canvas: Canvas, frame: Frame, quote: Quote) -> None:
        lay = self.layout
        features = list(quote.selected_tier.features)[:lay.max_features]
        if not features:
            return
        canvas.text(frame.x(lay.margin), frame.y(lay.features_baseline), "Included Features",
                    size=frame.size(14), bold=True, color=BRAND_BLUE)
        for i, feature in enumerate(features):
            canvas.text(frame.x(lay.margin + 10), frame.y(lay.features_baseline + (i + 1) * lay.features_leading),
                        f"- {feature}", size=frame.size(10),
                        max_width=frame.x(612 - lay.margin) - frame.x(lay.margin + 10))

    def _draw_footer(self, canvas: Canvas, frame: Frame, quote_number: str, page_total: int) -> None:
        lay = self.layout
        b = self.branding
        canvas.rect(frame.box(0, lay.footer.top, 612, lay.footer.bottom), fill=FOOTER_FILL)
        canvas.line((frame.x(lay.margin), frame.y(lay.footer.top + 4)),
                    (frame.right(lay.margin), frame.y(lay.footer.top + 4)),
                    color=BRAND_BLUE, width=frame.size(1))

        left = [
            b.legal_name,
            *b.address_lines,
            f"{b.website}  |  {b.phone}",
            f"{b.sales_email}  |  {b.support_email}",
        ]
        right = [b.classification, f"Page 1 of {page_total}", f"Document Ref: {quote_number}"]
        first = lay.footer.top + 18
        size = frame.size(8)
        width = frame.x(lay.footer_right - 10) - frame.x(lay.margin)
        for i, row in enumerate(left[:5]):
            canvas.text(frame.x(lay.margin), frame.y(first + i * lay.footer_leading), row,
                        size=size, bold=(i == 0), color=BLACK if i == 0 else GRAY, max_width=width)
        for i, row in enumerate(right):
            canvas.text(frame.right(lay.margin), frame.y(first + i * lay.footer_leading), row,
                        size=size, bold=(i == 0), color=GRAY, align="right")

    # ------------------------------------------------------------------
    # Page-replace overlay
    # ------------------------------------------------------------------

    def render_page_replace(self, page: fitz.Page, quote: Quote, quote_number: str) -> int:
        """
        Repaint the title line, intro paragraph and pricing table of ``page``.

        Everything else on the page is left as copied.

        Returns:
            Number of characters the sanitizer dropped
        """
        canvas = Canvas(page, self.fonts, self.min_font_size)
        frame = Frame(page.rect)
        lay = self.page_layout
        company = quote.display_company

        canvas.clear(frame.box(*lay.title_clear))
        canvas.text(frame.x(306), frame.y(lay.title_baseline), self.branding.title(company),
                    size=frame.size(lay.title_size), bold=True, align="center",
                    max_width=frame.x(612 - lay.margin) - frame.x(lay.margin))

        canvas.clear(frame.box(*lay.intro_clear))
        width = frame.x(612 - lay.margin) - frame.x(lay.margin)
        rows = canvas.wrap(self.branding.intro(company), width, frame.size(lay.intro_size))
        for i, row in enumerate(rows[:lay.intro_max_lines]):
            canvas.text(frame.x(lay.margin), frame.y(lay.intro_baseline + i * lay.intro_leading), row,
                        size=frame.size(lay.intro_size), max_width=width)

        table = self.table_layout(frame, lay.table)
        items = self.line_items(quote)
        pad = lay.table_clear_pad
        canvas.clear(frame.box(
            table.left - pad, lay.table_title_baseline - 18,
            table.left + table.width + pad, table.top + table.height(len(items)) + pad,
        ))
        canvas.text(frame.x(lay.margin), frame.y(lay.table_title_baseline), "Services and Pricing",
                    size=frame.size(14), bold=True, color=BRAND_BLUE)
        self._draw_table(canvas, frame, table, items, quote)

        self.painted[page.number].extend(canvas.painted)
        logger.debug(f"Repainted page {page.number} for quote {quote_number}")
        return canvas.chars_dropped


def render_quote_document(
    quote: Quote,
    quote_number: str,
    fonts: Optional[FontSet] = None,
    branding: Optional[Branding] = None,
    page_size: Tuple[float, float] = (612, 792)
) -> bytes:
    """
    Build a standalone one-page quote PDF without a template.

    This is the only caller of ``OverlayMode.NEW_PAGE``: the page is created
    here, so painting its whole background is safe.
    """
    fonts = fonts or FontSet.standard()
    output = OutputDocument(name=f"quote-{quote_number}")
    try:
        width, height = page_size
        page = output.fitz_document.new_page(width=width, height=height)
        renderer = OverlayRenderer(fonts, branding)
        renderer.render_overlay(page, quote, quote_number, mode=OverlayMode.NEW_PAGE,
                                page_total=1, include_features=True)
        return output.serialize()
    finally:
        output.close()
