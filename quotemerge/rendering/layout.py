"""
Declarative layout tables for the quote overlays.

Every value is in points on a 612 x 792 reference page (US Letter), measured
from the top-left corner. ``Frame`` scales them to the actual page, so A4 or
landscape templates get proportional placement.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple

import fitz  # PyMuPDF

REFERENCE_WIDTH = 612.0
REFERENCE_HEIGHT = 792.0

BRAND_BLUE = (0.2, 0.4, 0.8)
HEADER_FILL = (0.98, 0.98, 0.98)
SUMMARY_FILL = (0.95, 0.97, 1.0)
TABLE_HEADER_FILL = (0.2, 0.4, 0.8)
TABLE_RULE = (0.8, 0.8, 0.8)
TOTALS_FILL = (0.1, 0.1, 0.1)
FOOTER_FILL = (0.96, 0.96, 0.96)
# Partner badge squares: red, green, blue, yellow
BADGE_COLORS = ((0.95, 0.31, 0.13), (0.5, 0.73, 0.0), (0.0, 0.64, 0.94), (1.0, 0.73, 0.0))


class Frame:
    """Maps reference coordinates onto a page rectangle."""

    def __init__(self, rect: fitz.Rect):
        self.rect = fitz.Rect(rect)
        self.sx = self.rect.width / REFERENCE_WIDTH
        self.sy = self.rect.height / REFERENCE_HEIGHT

    @property
    def width(self) -> float:
        return self.rect.width

    @property
    def height(self) -> float:
        return self.rect.height

    def x(self, value: float) -> float:
        return self.rect.x0 + value * self.sx

    def y(self, value: float) -> float:
        return self.rect.y0 + value * self.sy

    def dx(self, value: float) -> float:
        """Horizontal distance."""
        return value * self.sx

    def dy(self, value: float) -> float:
        """Vertical distance."""
        return value * self.sy

    def size(self, value: float) -> float:
        """Font sizes and line weights scale with the smaller axis."""
        return value * min(self.sx, self.sy)

    def right(self, value: float) -> float:
        """x coordinate ``value`` reference points in from the right edge."""
        return self.x(REFERENCE_WIDTH - value)

    def box(self, x0: float, y0: float, x1: float, y1: float) -> fitz.Rect:
        return fitz.Rect(self.x(x0), self.y(y0), self.x(x1), self.y(y1))


@dataclass(frozen=True)
class Column:
    """One table column: header title, width and the line-item fields it stacks."""
    title: str
    width: float
    cells: Tuple[str, ...]
    align: str = "left"


@dataclass(frozen=True)
class TableLayout:
    columns: Tuple[Column, ...]
    left: float = 50
    top: float = 384
    header_height: float = 24
    row_height: float = 44
    totals_height: float = 26
    padding: float = 6
    header_size: float = 9.5
    body_size: float = 8.5
    line_leading: float = 10.5

    @property
    def width(self) -> float:
        return sum(col.width for col in self.columns)

    def column_offsets(self) -> List[float]:
        """Left edge of every column, relative to ``left``."""
        offsets = []
        x = 0.0
        for col in self.columns:
            offsets.append(x)
            x += col.width
        return offsets

    def height(self, rows: int) -> float:
        return self.header_height + rows * self.row_height + self.totals_height

    def with_top(self, top: float) -> TableLayout:
        return TableLayout(
            columns=self.columns, left=self.left, top=top,
            header_height=self.header_height, row_height=self.row_height,
            totals_height=self.totals_height, padding=self.padding,
            header_size=self.header_size, body_size=self.body_size,
            line_leading=self.line_leading,
        )


FOUR_COLUMN_TABLE = TableLayout(
    columns=(
        Column("Job Requirement", 150, ("job",)),
        Column("Description", 180, ("description",)),
        Column("Migration Type", 100, ("kind",)),
        Column("Price(USD)", 82, ("price",), align="right"),
    ),
)

TWO_COLUMN_TABLE = TableLayout(
    columns=(
        Column("Service", 400, ("job", "description")),
        Column("Price(USD)", 112, ("price",), align="right"),
    ),
    row_height=56,
)

TABLE_STYLES = {
    "four_column": FOUR_COLUMN_TABLE,
    "two_column": TWO_COLUMN_TABLE,
}


@dataclass(frozen=True)
class Band:
    top: float
    height: float

    @property
    def bottom(self) -> float:
        return self.top + self.height


# (label, value key) pairs, drawn row-major in two columns
SUMMARY_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("Migration Type", "migration_type"),
    ("Plan", "plan"),
    ("Users", "users"),
    ("Data Size", "data_size"),
    ("Duration", "duration"),
    ("Per-User Cost", "per_user_cost"),
    ("Instances", "instances"),
    ("Total Cost", "total_cost"),
)


@dataclass(frozen=True)
class GenericLayout:
    """Full quote overlay for page 0 of a generic template."""
    margin: float = 50
    header: Band = Band(0, 120)
    logo_origin: Tuple[float, float] = (50, 28)
    product_baseline: float = 52
    product_size: float = 18
    badge_left: float = 392
    badge_baseline: float = 40
    title_baseline: float = 84
    title_size: float = 20
    quote_line_baseline: float = 106
    parties_baseline: float = 150
    party_right: float = 320
    party_leading: float = 15
    summary: Band = Band(222, 118)
    summary_title_offset: float = 20
    summary_first_row: float = 44
    summary_leading: float = 20
    summary_value_offset: float = 95
    table_title_baseline: float = 372
    table: TableLayout = FOUR_COLUMN_TABLE
    features_baseline: float = 556
    features_leading: float = 14
    max_features: int = 8
    footer: Band = Band(712, 80)
    footer_leading: float = 12
    footer_right: float = 380


@dataclass(frozen=True)
class PageReplaceLayout:
    """Narrow overlay for one page of a multi-page agreement."""
    margin: float = 50
    title_clear: Tuple[float, float, float, float] = (40, 78, 572, 110)
    title_baseline: float = 100
    title_size: float = 18
    intro_clear: Tuple[float, float, float, float] = (40, 114, 572, 172)
    intro_baseline: float = 134
    intro_size: float = 11
    intro_leading: float = 15
    intro_max_lines: int = 3
    table_title_baseline: float = 380
    table: TableLayout = field(default_factory=lambda: FOUR_COLUMN_TABLE.with_top(392))
    table_clear_pad: float = 10
