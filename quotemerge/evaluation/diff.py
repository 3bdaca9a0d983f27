"""
Page comparison helpers for verifying merges.

Content digests show whether a copied page is unchanged. Pixel diffs show
where a patched page changed.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Dict, Iterable, List, Optional, Sequence

import fitz  # PyMuPDF
import numpy as np

from ..core.models import BoundingBox

logger = logging.getLogger(__name__)


def page_content_digest(page: fitz.Page) -> str:
    """
    SHA-256 over what makes a page look the way it does.

    Covers the decoded content stream(s), page box, rotation and the names of
    the fonts and images the page references.
    """
    h = hashlib.sha256()
    h.update(page.read_contents())
    h.update(repr(tuple(round(v, 3) for v in page.rect)).encode())
    h.update(str(page.rotation).encode())
    h.update(repr(sorted(f[3] for f in page.get_fonts())).encode())
    h.update(repr(sorted(img[7] for img in page.get_images())).encode())
    return h.hexdigest()


def document_digests(doc: fitz.Document) -> List[str]:
    return [page_content_digest(page) for page in doc]


def changed_pages(before: fitz.Document, after: fitz.Document) -> List[int]:
    """Indices whose digests differ. Page-count mismatches count every extra page."""
    a = document_digests(before)
    b = document_digests(after)
    changed = [i for i, (x, y) in enumerate(zip(a, b)) if x != y]
    changed.extend(range(min(len(a), len(b)), max(len(a), len(b))))
    return changed


def render_page(page: fitz.Page, dpi: int = 72) -> np.ndarray:
    """Rasterize ``page`` to an ``(h, w, 3)`` uint8 array."""
    pix = page.get_pixmap(dpi=dpi, alpha=False, colorspace=fitz.csRGB)
    return np.frombuffer(pix.samples, dtype=np.uint8).reshape(pix.height, pix.width, pix.n)[:, :, :3].copy()


def region_mask(
    shape: Sequence[int],
    regions: Iterable[BoundingBox],
    dpi: int = 72,
    margin: float = 0.0
) -> np.ndarray:
    """Boolean array, True inside any region (given in points)."""
    mask = np.zeros(shape[:2], dtype=bool)
    scale = dpi / 72.0
    height, width = shape[:2]
    for region in regions:
        r = region.expand(margin)
        x0 = max(int(np.floor(r.x0 * scale)), 0)
        y0 = max(int(np.floor(r.y0 * scale)), 0)
        x1 = min(int(np.ceil(r.x1 * scale)), width)
        y1 = min(int(np.ceil(r.y1 * scale)), height)
        if x1 > x0 and y1 > y0:
            mask[y0:y1, x0:x1] = True
    return mask


def masked_pixel_diff(
    before: fitz.Page,
    after: fitz.Page,
    allowed: Iterable[BoundingBox] = (),
    dpi: int = 72,
    margin: float = 1.0,
    threshold: int = 0
) -> int:
    """
    Count pixels that changed outside the ``allowed`` regions.

    Args:
        before: Untouched reference page
        after: Page after patching
        allowed: Regions where changes are expected
        margin: Points added around each region to absorb anti-aliasing
        threshold: Per-channel difference ignored as noise

    Returns:
        Number of changed pixels outside the allowed regions
    """
    a = render_page(before, dpi)
    b = render_page(after, dpi)
    if a.shape != b.shape:
        raise ValueError(f"Page renders differ in size: {a.shape} vs {b.shape}")
    diff = np.abs(a.astype(np.int16) - b.astype(np.int16)).max(axis=2) > threshold
    diff &= ~region_mask(a.shape, allowed, dpi, margin)
    count = int(diff.sum())
    if count:
        logger.debug(f"{count} pixel(s) changed outside allowed regions")
    return count


def changed_region(before: fitz.Page, after: fitz.Page, dpi: int = 72) -> Optional[BoundingBox]:
    """Bounding box (in points) of all changed pixels, or None when identical."""
    a = render_page(before, dpi)
    b = render_page(after, dpi)
    ys, xs = np.nonzero((a != b).any(axis=2))
    if len(xs) == 0:
        return None
    scale = 72.0 / dpi
    return BoundingBox(xs.min() * scale, ys.min() * scale, (xs.max() + 1) * scale, (ys.max() + 1) * scale)


def digest_report(before: fitz.Document, after: fitz.Document) -> Dict[str, object]:
    return {
        "pages_before": before.page_count,
        "pages_after": after.page_count,
        "changed": changed_pages(before, after),
    }
