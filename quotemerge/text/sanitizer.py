"""
Text sanitizer for strings drawn with the embedded fonts.

The base-14 and WinAnsi-style fonts used for overlays cover printable ASCII
and Latin-1. Everything is folded into that repertoire before it is drawn:
punctuation blocks become a space, and symbols, emoji, CJK and other scripts
are deleted.
"""

from __future__ import annotations

import logging
import unicodedata
from dataclasses import dataclass
from typing import Any, FrozenSet, Tuple

logger = logging.getLogger(__name__)

# Characters outside Latin-1 that the fonts still render.
ALLOWED_EXTRA: FrozenSet[str] = frozenset({"€"})  # euro sign

# Ranges folded to a single space instead of deleted.
SPACE_RANGES: Tuple[Tuple[int, int], ...] = (
    (0x2000, 0x206F),  # General Punctuation
    (0x3000, 0x303F),  # CJK Symbols and Punctuation
)

SPACE_CONTROLS: FrozenSet[str] = frozenset({"\t", "\n", "\r", "\x0b", "\x0c"})


@dataclass(frozen=True)
class SanitizeResult:
    """Sanitized text plus how many characters were lost or folded."""
    text: str
    dropped: int = 0
    replaced: int = 0

    @property
    def lossy(self) -> bool:
        return self.dropped > 0


def is_allowed(char: str) -> bool:
    """True when ``char`` can be drawn as-is."""
    code = ord(char)
    return (0x20 <= code <= 0x7E) or (0xA0 <= code <= 0xFF) or char in ALLOWED_EXTRA


def _folds_to_space(char: str) -> bool:
    if char in SPACE_CONTROLS:
        return True
    code = ord(char)
    return any(lo <= code <= hi for lo, hi in SPACE_RANGES)


def sanitize_with_report(text: Any) -> SanitizeResult:
    """
    Sanitize ``text`` and report dropped and space-folded characters.

    Never raises; ``None`` becomes an empty string and other objects are
    converted with ``str()``.
    """
    if text is None:
        return SanitizeResult("")
    if not isinstance(text, str):
        text = str(text)

    normalized = unicodedata.normalize("NFC", text)
    out = []
    dropped = 0
    replaced = 0
    for char in normalized:
        if is_allowed(char):
            out.append(char)
        elif _folds_to_space(char):
            out.append(" ")
            replaced += 1
        else:
            dropped += 1

    result = SanitizeResult("".join(out).strip(), dropped=dropped, replaced=replaced)
    if result.lossy:
        logger.debug(f"Sanitizer dropped {dropped} character(s) from {text!r}")
    return result


def sanitize(text: Any) -> str:
    """Return ``text`` restricted to the characters the overlay fonts can draw."""
    return sanitize_with_report(text).text
