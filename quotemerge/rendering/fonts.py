"""
Font handling for overlays.

A ``FontSet`` is built fresh for every merge call and registered on each page
it draws on. Nothing here is cached at module level, so concurrent merges
never share font objects.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

import fitz  # PyMuPDF

from ..core.exceptions import FontEmbedFailure

logger = logging.getLogger(__name__)

# PyMuPDF Base14 codes, see https://pymupdf.readthedocs.io/en/latest/app1.html
BASE14 = {
    "helv": "Helvetica",
    "heit": "Helvetica-Oblique",
    "hebo": "Helvetica-Bold",
    "hebi": "Helvetica-BoldOblique",
    "tiro": "Times-Roman",
    "tiit": "Times-Italic",
    "tibo": "Times-Bold",
    "tibi": "Times-BoldItalic",
    "cour": "Courier",
    "coit": "Courier-Oblique",
    "cobo": "Courier-Bold",
    "cobi": "Courier-BoldOblique",
}


@dataclass
class FontFace:
    """One font: the name it is registered under on a page plus a measuring object."""
    alias: str
    font: fitz.Font
    fontfile: Optional[str] = None

    def text_length(self, text: str, size: float) -> float:
        return self.font.text_length(text, fontsize=size)

    @property
    def ascender(self) -> float:
        return self.font.ascender

    @property
    def descender(self) -> float:
        return self.font.descender


def _open_face(alias: str, fontfile: Optional[str] = None) -> FontFace:
    try:
        if fontfile:
            path = Path(fontfile)
            if not path.exists():
                raise FileNotFoundError(f"Font file not found: {path}")
            font = fitz.Font(fontfile=str(path))
        else:
            font = fitz.Font(fontname=alias)
    except (RuntimeError, ValueError, FileNotFoundError) as e:
        raise FontEmbedFailure(fontfile or alias, original_error=e) from e
    return FontFace(alias=alias, font=font, fontfile=str(fontfile) if fontfile else None)


class FontSet:
    """
    Regular/bold/italic faces for one merge call.

    Uses Helvetica from the Base14 set unless TrueType files are supplied.
    """

    def __init__(
        self,
        regular: FontFace,
        bold: FontFace,
        italic: Optional[FontFace] = None,
        bold_italic: Optional[FontFace] = None
    ):
        self.regular = regular
        self.bold = bold
        self.italic = italic or regular
        self.bold_italic = bold_italic or bold
        self._extra: Dict[str, FontFace] = {}

    @classmethod
    def standard(cls) -> FontSet:
        return cls(
            regular=_open_face("helv"),
            bold=_open_face("hebo"),
            italic=_open_face("heit"),
            bold_italic=_open_face("hebi"),
        )

    @classmethod
    def from_files(cls, regular_file: Optional[str] = None, bold_file: Optional[str] = None) -> FontSet:
        """Load TrueType faces; a missing file falls back to the matching Base14 face."""
        if not regular_file and not bold_file:
            return cls.standard()
        regular = _open_face("QMRegular", regular_file) if regular_file else _open_face("helv")
        bold = _open_face("QMBold", bold_file) if bold_file else _open_face("hebo")
        return cls(regular=regular, bold=bold)

    def face(self, bold: bool = False, italic: bool = False) -> FontFace:
        if bold and italic:
            return self.bold_italic
        if bold:
            return self.bold
        if italic:
            return self.italic
        return self.regular

    def base14(self, code: str) -> FontFace:
        """A Base14 face by code (e.g. ``tiit``), created once per FontSet."""
        if code not in BASE14:
            raise FontEmbedFailure(code, original_error=ValueError("not a Base14 font code"))
        if code not in self._extra:
            self._extra[code] = _open_face(code)
        return self._extra[code]

    def register(self, page: fitz.Page, face: FontFace) -> None:
        """Make ``face`` available on ``page``. PyMuPDF reuses an existing registration."""
        try:
            page.insert_font(fontname=face.alias, fontfile=face.fontfile)
        except (RuntimeError, ValueError) as e:
            raise FontEmbedFailure(face.fontfile or face.alias, page=page.number, original_error=e) from e
        logger.debug(f"Registered font {face.alias} on page {page.number}")
